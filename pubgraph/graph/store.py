# pubgraph/graph/store.py

"""
The citation store: durable owner of articles, journals, authors, grants,
keywords and citation edges.

State is a single `networkx.MultiDiGraph` (see `graph/schema.py` for node and
edge types, `graph/builder.py` for the attribute encoding). It is persisted
with `graph/io.py` / `graph/storage.py`.

Concurrency
-----------
One re-entrant lock guards the graph. Reads hold it only while they
materialize their result into plain lists/dicts; `transaction()` holds it for
its whole scope, so no reader ever sees a half-applied write. `reading()`
holds it across a group of reads.

Transactions
------------
Every mutation goes through a handful of primitives (`_add_node`,
`_remove_node`, `_add_edge`, `_remove_edge`, `_replace_attrs`) that append an
inverse operation to the active undo journal. If the body of a transaction
raises, the journal is replayed in reverse and the graph is exactly what it
was when the transaction began.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import (
    Any,
    Callable,
    Collection,
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Tuple,
)

import networkx as nx

from pubgraph.errors import (
    DuplicateArticleError,
    InvalidArticleError,
    StoreUnavailableError,
)
from pubgraph.graph.builder import (
    article_attrs,
    article_node_id,
    author_attrs,
    author_from_attrs,
    author_node_id,
    completion_year,
    grant_attrs,
    grant_from_attrs,
    grant_node_id,
    has_typed_edge,
    is_real_article,
    journal_attrs,
    journal_from_attrs,
    journal_node_id,
    keyword_attrs,
    keyword_node_id,
    placeholder_attrs,
    typed_in_edges,
    typed_out_edges,
    unique_in_order,
)
from pubgraph.graph.schema import EdgeType, NodeType
from pubgraph.models.article import Article
from pubgraph.models.author import AuthorKey
from pubgraph.models.journal import Journal

logger = logging.getLogger(__name__)

# (citing article id, cited article id, citing article's completion year)
CitationEdge = Tuple[int, int, Optional[int]]


class CitationStore:
    def __init__(self, graph: Optional[nx.MultiDiGraph] = None) -> None:
        self._graph: nx.MultiDiGraph = graph if graph is not None else nx.MultiDiGraph()
        self._lock = threading.RLock()
        self._closed = False
        self._undo: Optional[List[Callable[[], None]]] = None

    @classmethod
    def from_articles(cls, articles: Iterable[Article]) -> "CitationStore":
        """Build a store by inserting the given articles in order."""
        store = cls()
        for article in articles:
            store.insert_article(article)
        return store

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        with self._lock:
            self._closed = True

    def _check_open(self) -> None:
        if self._closed:
            raise StoreUnavailableError("Citation store is closed")

    def snapshot_graph(self) -> nx.MultiDiGraph:
        """Consistent deep-enough copy of the graph, e.g. for saving to disk."""
        with self._lock:
            self._check_open()
            return self._graph.copy()

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator["CitationStore"]:
        """
        Exclusive, all-or-nothing scope over the store.

        Nested transactions join the outermost one; only the outermost scope
        rolls back, and it does so for everything recorded inside it.
        """
        with self._lock:
            self._check_open()
            outermost = self._undo is None
            if outermost:
                self._undo = []
            try:
                yield self
            except BaseException:
                if outermost:
                    self._rollback()
                raise
            finally:
                if outermost:
                    self._undo = None

    @contextmanager
    def reading(self) -> Iterator["CitationStore"]:
        """
        Hold the lock across several reads so they see one state. Used to
        read the citation count cache consistently with the store: a running
        transaction (e.g. a simulated insertion) finishes first.
        """
        with self._lock:
            self._check_open()
            yield self

    def _rollback(self) -> None:
        journal = self._undo or []
        logger.warning("Rolling back %d store mutation(s)", len(journal))
        for undo in reversed(journal):
            undo()
        journal.clear()

    def _record(self, undo: Callable[[], None]) -> None:
        if self._undo is not None:
            self._undo.append(undo)

    # ------------------------------------------------------------------
    # Mutation primitives (call with the lock held)
    # ------------------------------------------------------------------

    def _add_node(self, node: str, attrs: Dict[str, Any]) -> None:
        G = self._graph
        G.add_node(node, **attrs)
        self._record(lambda: G.remove_node(node))

    def _remove_node(self, node: str) -> None:
        G = self._graph
        attrs = dict(G.nodes[node])
        edges = [
            (u, v, k, dict(d))
            for u, v, k, d in list(G.in_edges(node, keys=True, data=True))
            + list(G.out_edges(node, keys=True, data=True))
        ]
        G.remove_node(node)

        def undo() -> None:
            G.add_node(node, **attrs)
            for u, v, k, d in edges:
                if not G.has_edge(u, v, key=k):
                    G.add_edge(u, v, key=k, **d)

        self._record(undo)

    def _replace_attrs(self, node: str, attrs: Dict[str, Any]) -> None:
        G = self._graph
        old = dict(G.nodes[node])
        G.nodes[node].clear()
        G.nodes[node].update(attrs)

        def undo() -> None:
            G.nodes[node].clear()
            G.nodes[node].update(old)

        self._record(undo)

    def _add_edge(self, src: str, dst: str, edge_type: EdgeType) -> None:
        G = self._graph
        key = G.add_edge(src, dst, type=edge_type.value)
        self._record(lambda: G.remove_edge(src, dst, key=key))

    def _remove_edge(self, src: str, dst: str, key: Any) -> None:
        G = self._graph
        data = dict(G.edges[src, dst, key])
        G.remove_edge(src, dst, key=key)
        self._record(lambda: G.add_edge(src, dst, key=key, **data))

    # ------------------------------------------------------------------
    # Articles
    # ------------------------------------------------------------------

    @staticmethod
    def _validate(article: Article) -> None:
        if isinstance(article.id, bool) or not isinstance(article.id, int):
            raise InvalidArticleError(f"Article id must be an int, got {article.id!r}")
        journal = article.journal
        if journal is not None and (not str(journal.id or "").strip() or not (journal.title or "").strip()):
            raise InvalidArticleError(
                f"Article {article.id} has a malformed journal (id={journal.id!r}, title={journal.title!r})",
                article_id=article.id,
            )

    def insert_article(self, article: Article) -> bool:
        """
        Store an article with its journal, authorship, grant, keyword and
        citation links.

        The journal is upserted by id. Cited ids that are not stored yet get
        placeholder nodes. Returns True if the journal node was created by
        this call.

        Raises DuplicateArticleError / InvalidArticleError without touching
        the store.
        """
        self._validate(article)

        with self.transaction():
            G = self._graph
            node = article_node_id(article.id)
            if node in G and is_real_article(G.nodes[node]):
                raise DuplicateArticleError(article.id)

            if node in G:
                # A placeholder for an article that was cited before it arrived.
                self._replace_attrs(node, article_attrs(article))
            else:
                self._add_node(node, article_attrs(article))

            journal_created = False
            if article.journal is not None:
                j_node = journal_node_id(article.journal.id)
                if j_node not in G:
                    self._add_node(j_node, journal_attrs(article.journal))
                    journal_created = True
                self._add_edge(node, j_node, EdgeType.ARTICLE_IN_JOURNAL)

            for author in article.authors:
                a_node = author_node_id(author.key)
                if a_node not in G:
                    self._add_node(a_node, author_attrs(author))
                if not has_typed_edge(G, a_node, node, EdgeType.AUTHOR_WROTE_ARTICLE):
                    self._add_edge(a_node, node, EdgeType.AUTHOR_WROTE_ARTICLE)

            for grant in article.grants:
                g_node = grant_node_id(grant.id)
                if g_node not in G:
                    self._add_node(g_node, grant_attrs(grant))
                if not has_typed_edge(G, node, g_node, EdgeType.ARTICLE_FUNDED_BY):
                    self._add_edge(node, g_node, EdgeType.ARTICLE_FUNDED_BY)

            for keyword in article.keywords:
                if not keyword or not keyword.strip():
                    continue
                k_node = keyword_node_id(keyword)
                if k_node not in G:
                    self._add_node(k_node, keyword_attrs(keyword))
                if not has_typed_edge(G, node, k_node, EdgeType.ARTICLE_HAS_KEYWORD):
                    self._add_edge(node, k_node, EdgeType.ARTICLE_HAS_KEYWORD)

            for cited_id in unique_in_order(article.references):
                cited_node = article_node_id(cited_id)
                if cited_node not in G:
                    self._add_node(cited_node, placeholder_attrs(cited_id))
                self._add_edge(node, cited_node, EdgeType.ARTICLE_CITES_ARTICLE)

        logger.debug("Stored article %s (journal created: %s)", article.id, journal_created)
        return journal_created

    def delete_article(self, article_id: int, *, prune_journal: bool = True) -> Optional[Article]:
        """
        Remove an article and every link it owns.

        Author / grant / keyword nodes and placeholder articles left without
        any link are removed too. The journal is removed when it is left
        without articles and `prune_journal` is set. If other articles still
        cite this one, it falls back to a placeholder node so their citation
        edges survive.

        Returns the removed article, or None if it was not stored.
        """
        with self.transaction():
            G = self._graph
            node = article_node_id(article_id)
            if node not in G or not is_real_article(G.nodes[node]):
                return None

            article = self._article_from_node(node)
            touched: List[str] = []

            for _, dst, key in list(G.out_edges(node, keys=True)):
                touched.append(dst)
                self._remove_edge(node, dst, key)
            for src, key in list(typed_in_edges(G, node, EdgeType.AUTHOR_WROTE_ARTICLE)):
                touched.append(src)
                self._remove_edge(src, node, key)

            if any(True for _ in typed_in_edges(G, node, EdgeType.ARTICLE_CITES_ARTICLE)):
                self._replace_attrs(node, placeholder_attrs(article_id))
            else:
                self._remove_node(node)

            for other in unique_in_order(touched):
                if other == node or other not in G:
                    continue
                attrs = G.nodes[other]
                kind = attrs.get("type")
                if kind == NodeType.JOURNAL.value:
                    if prune_journal and G.in_degree(other) == 0:
                        self._remove_node(other)
                elif kind == NodeType.ARTICLE.value:
                    if attrs.get("placeholder") and G.in_degree(other) == 0 and G.out_degree(other) == 0:
                        self._remove_node(other)
                elif G.degree(other) == 0:
                    self._remove_node(other)

        logger.debug("Deleted article %s", article_id)
        return article

    def _article_from_node(self, node: str) -> Article:
        G = self._graph
        attrs = G.nodes[node]

        journal: Optional[Journal] = None
        for dst, _ in typed_out_edges(G, node, EdgeType.ARTICLE_IN_JOURNAL):
            journal = journal_from_attrs(G.nodes[dst])
            break

        return Article(
            id=attrs["article_id"],
            title=attrs.get("title", ""),
            created=attrs.get("created"),
            completed=attrs.get("completed"),
            pub_model=attrs.get("pub_model", ""),
            authors=[
                author_from_attrs(G.nodes[src])
                for src, _ in typed_in_edges(G, node, EdgeType.AUTHOR_WROTE_ARTICLE)
            ],
            keywords=[
                G.nodes[dst]["keyword"]
                for dst, _ in typed_out_edges(G, node, EdgeType.ARTICLE_HAS_KEYWORD)
            ],
            journal=journal,
            references=[
                G.nodes[dst]["article_id"]
                for dst, _ in typed_out_edges(G, node, EdgeType.ARTICLE_CITES_ARTICLE)
            ],
            grants=[
                grant_from_attrs(G.nodes[dst])
                for dst, _ in typed_out_edges(G, node, EdgeType.ARTICLE_FUNDED_BY)
            ],
        )

    def get_article(self, article_id: int) -> Optional[Article]:
        with self._lock:
            self._check_open()
            node = article_node_id(article_id)
            if node not in self._graph or not is_real_article(self._graph.nodes[node]):
                return None
            return self._article_from_node(node)

    def has_article(self, article_id: int) -> bool:
        with self._lock:
            self._check_open()
            node = article_node_id(article_id)
            return node in self._graph and is_real_article(self._graph.nodes[node])

    def article_ids(self) -> List[int]:
        with self._lock:
            self._check_open()
            return sorted(
                attrs["article_id"]
                for _, attrs in self._graph.nodes(data=True)
                if is_real_article(attrs)
            )

    def references_of(self, article_id: int) -> List[int]:
        """Ids of the articles this article cites (outgoing citation edges)."""
        with self._lock:
            self._check_open()
            node = article_node_id(article_id)
            if node not in self._graph:
                return []
            return [
                self._graph.nodes[dst]["article_id"]
                for dst, _ in typed_out_edges(self._graph, node, EdgeType.ARTICLE_CITES_ARTICLE)
            ]

    def authors_of(self, article_id: int) -> List[AuthorKey]:
        with self._lock:
            self._check_open()
            node = article_node_id(article_id)
            if node not in self._graph:
                return []
            return [
                author_from_attrs(self._graph.nodes[src]).key
                for src, _ in typed_in_edges(self._graph, node, EdgeType.AUTHOR_WROTE_ARTICLE)
            ]

    def journal_of(self, article_id: int) -> Optional[Journal]:
        with self._lock:
            self._check_open()
            node = article_node_id(article_id)
            if node not in self._graph:
                return None
            for dst, _ in typed_out_edges(self._graph, node, EdgeType.ARTICLE_IN_JOURNAL):
                return journal_from_attrs(self._graph.nodes[dst])
            return None

    def articles_by_author(self, author: AuthorKey) -> List[int]:
        """All article ids written by anyone carrying this name pair."""
        with self._lock:
            self._check_open()
            a_node = author_node_id(author)
            if a_node not in self._graph:
                return []
            return sorted(
                self._graph.nodes[dst]["article_id"]
                for dst, _ in typed_out_edges(self._graph, a_node, EdgeType.AUTHOR_WROTE_ARTICLE)
            )

    # ------------------------------------------------------------------
    # Citation graph views
    # ------------------------------------------------------------------

    def iter_citation_edges(self) -> List[CitationEdge]:
        """
        Every citation edge as (citing id, cited id, citing completion year).

        Materialized under the lock; the year is None when the citing
        article has no completion date.
        """
        with self._lock:
            self._check_open()
            G = self._graph
            edges: List[CitationEdge] = []
            for src, dst, data in G.edges(data=True):
                if data.get("type") != EdgeType.ARTICLE_CITES_ARTICLE.value:
                    continue
                edges.append(
                    (
                        G.nodes[src]["article_id"],
                        G.nodes[dst]["article_id"],
                        completion_year(G.nodes[src]),
                    )
                )
            return edges

    def citation_adjacency(self) -> Dict[int, List[int]]:
        """Snapshot index: article id -> ids it cites (placeholders included)."""
        with self._lock:
            self._check_open()
            G = self._graph
            adjacency: Dict[int, List[int]] = {}
            for node, attrs in G.nodes(data=True):
                if attrs.get("type") != NodeType.ARTICLE.value:
                    continue
                adjacency[attrs["article_id"]] = [
                    G.nodes[dst]["article_id"]
                    for dst, _ in typed_out_edges(G, node, EdgeType.ARTICLE_CITES_ARTICLE)
                ]
            return adjacency

    # ------------------------------------------------------------------
    # Journals
    # ------------------------------------------------------------------

    def get_journal(self, journal_id: str) -> Optional[Journal]:
        with self._lock:
            self._check_open()
            j_node = journal_node_id(journal_id)
            if j_node not in self._graph:
                return None
            return journal_from_attrs(self._graph.nodes[j_node])

    def insert_journal(self, journal: Journal) -> bool:
        """Upsert by id; returns True if the journal was created."""
        with self.transaction():
            j_node = journal_node_id(journal.id)
            if j_node in self._graph:
                return False
            self._add_node(j_node, journal_attrs(journal))
            return True

    def delete_journal(self, journal_id: str) -> bool:
        """Remove a journal node together with its article links."""
        with self.transaction():
            j_node = journal_node_id(journal_id)
            if j_node not in self._graph:
                return False
            self._remove_node(j_node)
            return True

    def journal_article_count(self, journal_id: str) -> int:
        with self._lock:
            self._check_open()
            j_node = journal_node_id(journal_id)
            if j_node not in self._graph:
                return 0
            return sum(1 for _ in typed_in_edges(self._graph, j_node, EdgeType.ARTICLE_IN_JOURNAL))

    def articles_in_journal_for_years(
        self,
        journal_id: str,
        years: Collection[int],
    ) -> List[int]:
        """Ids of the journal's articles whose completion year is in `years`."""
        wanted = set(years)
        with self._lock:
            self._check_open()
            G = self._graph
            j_node = journal_node_id(journal_id)
            if j_node not in G:
                return []
            return sorted(
                G.nodes[src]["article_id"]
                for src, _ in typed_in_edges(G, j_node, EdgeType.ARTICLE_IN_JOURNAL)
                if completion_year(G.nodes[src]) in wanted
            )

    def relink_journal_articles(self, old_id: str, new_id: str, from_year: int) -> int:
        """
        Point every article of journal `old_id` completed in or after
        `from_year` at journal `new_id` instead. Both journals must exist.

        Returns the number of moved links.
        """
        with self.transaction():
            G = self._graph
            old_node = journal_node_id(old_id)
            new_node = journal_node_id(new_id)
            if old_node not in G or new_node not in G:
                return 0

            moved = 0
            for src, key in list(typed_in_edges(G, old_node, EdgeType.ARTICLE_IN_JOURNAL)):
                year = completion_year(G.nodes[src])
                if year is None or year < from_year:
                    continue
                self._remove_edge(src, old_node, key)
                self._add_edge(src, new_node, EdgeType.ARTICLE_IN_JOURNAL)
                moved += 1
            return moved

    # ------------------------------------------------------------------
    # Grants / keywords
    # ------------------------------------------------------------------

    def articles_funded_in_country(self, country: str) -> List[int]:
        with self._lock:
            self._check_open()
            G = self._graph
            ids = set()
            for node, attrs in G.nodes(data=True):
                if attrs.get("type") != NodeType.GRANT.value or attrs.get("country") != country:
                    continue
                for src, _ in typed_in_edges(G, node, EdgeType.ARTICLE_FUNDED_BY):
                    ids.add(G.nodes[src]["article_id"])
            return sorted(ids)

    def article_years_for_keyword(self, keyword: str) -> List[int]:
        """Completion years of the articles tagged with exactly this keyword."""
        with self._lock:
            self._check_open()
            G = self._graph
            k_node = keyword_node_id(keyword)
            if k_node not in G:
                return []
            years: List[int] = []
            for src, _ in typed_in_edges(G, k_node, EdgeType.ARTICLE_HAS_KEYWORD):
                year = completion_year(G.nodes[src])
                if year is not None:
                    years.append(year)
            return years
