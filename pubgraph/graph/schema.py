# pubgraph/graph/schema.py

from enum import Enum


class NodeType(str, Enum):
    ARTICLE = "article"
    JOURNAL = "journal"
    AUTHOR = "author"
    GRANT = "grant"
    KEYWORD = "keyword"


class EdgeType(str, Enum):
    # Article→article citation edges (citing -> cited)
    ARTICLE_CITES_ARTICLE = "ARTICLE_CITES_ARTICLE"

    # Article→journal publication link (at most one per article)
    ARTICLE_IN_JOURNAL = "ARTICLE_IN_JOURNAL"

    # Authorship, pointing from the author to the article
    AUTHOR_WROTE_ARTICLE = "AUTHOR_WROTE_ARTICLE"

    # Article→grant funding and article→keyword tagging
    ARTICLE_FUNDED_BY = "ARTICLE_FUNDED_BY"
    ARTICLE_HAS_KEYWORD = "ARTICLE_HAS_KEYWORD"
