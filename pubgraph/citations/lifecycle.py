# pubgraph/citations/lifecycle.py

from __future__ import annotations

import logging
from typing import List

from pubgraph.citations.cache import CitationCountCache
from pubgraph.citations.impact import ImpactFactorCalculator
from pubgraph.errors import InvalidArticleError
from pubgraph.graph.store import CitationStore
from pubgraph.models.article import Article

logger = logging.getLogger(__name__)


class ArticleLifecycleCoordinator:
    """
    Runs the "simulate-then-revert" insertion of an article: store it, let
    its citations reach the count cache, read the resulting impact factor of
    its journal, then take everything back out.

    The whole sequence runs inside one store transaction. Other writers and
    readers of the store wait for it, so nobody observes the article while it
    is temporarily present, and any failure rolls the store back while the
    cache increments made so far are reversed.
    """

    def __init__(
        self,
        store: CitationStore,
        cache: CitationCountCache,
        calculator: ImpactFactorCalculator,
    ) -> None:
        self.store = store
        self.cache = cache
        self.calculator = calculator

    def add_article_and_update_if(self, article: Article) -> float:
        """
        Return the impact factor of `article.journal` for the article's
        completion year as it would be with the article stored. On return
        (or on error) the store and cache are as they were before the call.

        The article counts like any other article of the journal; it is not
        excluded from its own journal's numbers.

        Raises InvalidArticleError / DuplicateArticleError /
        StoreUnavailableError; nothing is left applied in those cases.
        """
        if article.journal is None:
            raise InvalidArticleError(f"Article {article.id} has no journal", article_id=article.id)
        year = article.completion_year
        if year is None:
            raise InvalidArticleError(f"Article {article.id} has no completion date", article_id=article.id)

        applied: List[int] = []
        while True:
            self.cache.ensure_initialized()
            with self.store.transaction():
                # drop()/rebuild() need the store lock, so readiness is fixed
                # from here until the transaction ends
                if not self.cache.is_ready:
                    logger.info("Citation count cache dropped before simulating article %s; rebuilding", article.id)
                    continue
                try:
                    journal_created = self.store.insert_article(article)

                    for cited_id in self.store.references_of(article.id):
                        if self.cache.increment(cited_id, year):
                            applied.append(cited_id)

                    impact_factor = self.calculator.compute(article.journal.id, year)

                    self.store.delete_article(article.id, prune_journal=journal_created)
                    self._revert(applied, year)
                except BaseException:
                    logger.error("Simulated insertion of article %s failed; reverting", article.id)
                    self._revert(applied, year)
                    raise
            break

        logger.info(
            "Simulated article %s in journal %s: impact factor %.4f for %d",
            article.id,
            article.journal.id,
            impact_factor,
            year,
        )
        return impact_factor

    def _revert(self, applied: List[int], year: int) -> None:
        while applied:
            self.cache.decrement(applied.pop(), year)
