# pubgraph/citations/linkage.py

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, Dict, List, Set, Tuple

from pubgraph.errors import StoreUnavailableError
from pubgraph.graph.store import CitationStore
from pubgraph.models.author import AuthorKey

logger = logging.getLogger(__name__)


class AuthorLinkResolver:
    """
    Minimum number of citation hops from any article of author A to any
    article of author B.

    Multi-source breadth-first search: all of A's articles start at depth 0,
    edges are followed citing -> cited, every article is enqueued at most
    once. The first dequeued article written by B gives the answer; an
    exhausted frontier gives -1.

    Seeds, targets and the adjacency index are read from the store under one
    lock per query, so they describe the same state. The traversal itself
    holds no locks and any number of queries can run side by side.
    """

    def __init__(self, store: CitationStore) -> None:
        self.store = store

    def shortest_link(self, author_a: AuthorKey, author_b: AuthorKey) -> int:
        """Store errors propagate; `get_min_articles_to_link_authors` is the read-path wrapper."""
        with self.store.reading():
            seeds = self.store.articles_by_author(author_a)
            if not seeds:
                return -1

            targets: Set[int] = set(self.store.articles_by_author(author_b))
            if not targets:
                return -1

            adjacency: Dict[int, List[int]] = self.store.citation_adjacency()

        visited: Set[int] = set(seeds)
        queue: Deque[Tuple[int, int]] = deque((article_id, 0) for article_id in seeds)

        while queue:
            article_id, depth = queue.popleft()
            if article_id in targets:
                return depth

            for cited_id in adjacency.get(article_id, ()):
                if cited_id in visited:
                    continue
                visited.add(cited_id)
                queue.append((cited_id, depth + 1))

        return -1

    def get_min_articles_to_link_authors(self, author_a: AuthorKey, author_b: AuthorKey) -> int:
        try:
            return self.shortest_link(author_a, author_b)
        except StoreUnavailableError:
            logger.error("Cannot link %s and %s: store unreachable", author_a, author_b, exc_info=True)
            return -1
