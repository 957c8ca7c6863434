# pubgraph/graph/builder.py

"""
Encoding of bibliographic records as nodes and edges of the store's
MultiDiGraph, and decoding back into the dataclasses in `pubgraph.models`.

Everything here is a pure function of its arguments; mutation (and the undo
bookkeeping that goes with it) lives in `pubgraph.graph.store`.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

import networkx as nx

from pubgraph.graph.schema import EdgeType, NodeType
from pubgraph.models.article import Article
from pubgraph.models.author import Author, AuthorKey
from pubgraph.models.grant import Grant
from pubgraph.models.journal import Journal, JournalIssue


def article_node_id(article_id: int) -> str:
    """Return the canonical node id for an article."""
    return f"article:{article_id}"


def journal_node_id(journal_id: str) -> str:
    """Return the canonical node id for a journal."""
    return f"journal:{journal_id}"


def author_node_id(key: AuthorKey) -> str:
    """Return the canonical node id for an author (name pair, see AuthorKey)."""
    return f"author:{key.fore_name}|{key.last_name}"


def grant_node_id(grant_id: str) -> str:
    return f"grant:{grant_id}"


def keyword_node_id(keyword: str) -> str:
    return f"keyword:{keyword.strip()}"


# ---------------------------------------------------------------------------
# Node attributes
# ---------------------------------------------------------------------------

def article_attrs(article: Article) -> Dict[str, Any]:
    return {
        "type": NodeType.ARTICLE.value,
        "article_id": article.id,
        "title": article.title,
        "created": article.created,
        "completed": article.completed,
        "pub_model": article.pub_model,
        "placeholder": False,
    }


def placeholder_attrs(article_id: int) -> Dict[str, Any]:
    """
    Attributes of a bare article node standing in for a cited article that
    has not been stored (yet).
    """
    return {
        "type": NodeType.ARTICLE.value,
        "article_id": article_id,
        "placeholder": True,
    }


def is_real_article(attrs: Dict[str, Any]) -> bool:
    return attrs.get("type") == NodeType.ARTICLE.value and not attrs.get("placeholder", False)


def completion_year(attrs: Dict[str, Any]) -> Optional[int]:
    completed = attrs.get("completed")
    return completed.year if completed is not None else None


def journal_attrs(journal: Journal) -> Dict[str, Any]:
    issue = journal.issue
    return {
        "type": NodeType.JOURNAL.value,
        "journal_id": journal.id,
        "title": journal.title,
        "country": journal.country,
        "issn": journal.issn,
        "volume": issue.volume if issue is not None else None,
        "issue": issue.issue if issue is not None else None,
    }


def journal_from_attrs(attrs: Dict[str, Any]) -> Journal:
    volume = attrs.get("volume")
    issue = attrs.get("issue")
    return Journal(
        id=attrs["journal_id"],
        title=attrs.get("title", ""),
        country=attrs.get("country", ""),
        issn=attrs.get("issn", ""),
        issue=None if volume is None and issue is None else JournalIssue(volume or "", issue or ""),
    )


def author_attrs(author: Author) -> Dict[str, Any]:
    key = author.key
    return {
        "type": NodeType.AUTHOR.value,
        "fore_name": key.fore_name,
        "last_name": key.last_name,
        "initials": author.initials,
    }


def author_from_attrs(attrs: Dict[str, Any]) -> Author:
    return Author(
        fore_name=attrs["fore_name"],
        last_name=attrs["last_name"],
        initials=attrs.get("initials"),
    )


def grant_attrs(grant: Grant) -> Dict[str, Any]:
    return {
        "type": NodeType.GRANT.value,
        "grant_id": grant.id,
        "acronym": grant.acronym,
        "country": grant.country,
        "agency": grant.agency,
    }


def grant_from_attrs(attrs: Dict[str, Any]) -> Grant:
    return Grant(
        id=attrs["grant_id"],
        acronym=attrs.get("acronym", ""),
        country=attrs.get("country", ""),
        agency=attrs.get("agency", ""),
    )


def keyword_attrs(keyword: str) -> Dict[str, Any]:
    return {"type": NodeType.KEYWORD.value, "keyword": keyword.strip()}


# ---------------------------------------------------------------------------
# Edge helpers
# ---------------------------------------------------------------------------

def typed_out_edges(
    G: nx.MultiDiGraph,
    node: str,
    edge_type: EdgeType,
) -> Iterator[Tuple[str, Any]]:
    """Yield (target, edge_key) for outgoing edges of the given type."""
    for _, dst, key, data in G.out_edges(node, keys=True, data=True):
        if data.get("type") == edge_type.value:
            yield dst, key


def typed_in_edges(
    G: nx.MultiDiGraph,
    node: str,
    edge_type: EdgeType,
) -> Iterator[Tuple[str, Any]]:
    """Yield (source, edge_key) for incoming edges of the given type."""
    for src, _, key, data in G.in_edges(node, keys=True, data=True):
        if data.get("type") == edge_type.value:
            yield src, key


def has_typed_edge(G: nx.MultiDiGraph, src: str, dst: str, edge_type: EdgeType) -> bool:
    """True if an edge of this type already runs from src to dst."""
    return any(v == dst for v, _ in typed_out_edges(G, src, edge_type))


def unique_in_order(items: Iterable[Any]) -> List[Any]:
    """De-duplicate while preserving first-seen order."""
    seen = set()
    out: List[Any] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return out
