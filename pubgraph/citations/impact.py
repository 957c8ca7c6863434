# pubgraph/citations/impact.py

from __future__ import annotations

import logging
from typing import List, Optional

from pubgraph.citations.cache import CitationCountCache
from pubgraph.config.settings import settings
from pubgraph.errors import StoreUnavailableError
from pubgraph.graph.store import CitationStore

logger = logging.getLogger(__name__)


class ImpactFactorCalculator:
    """
    Journal impact factor for a target year:

        IF(year) = A / B

    B = number of the journal's articles completed in the `window` years
        before `year` (year-2 and year-1 by default),
    A = citations those articles received from articles completed in `year`,
        read from the citation count cache.

    B == 0 gives 0.0.
    """

    def __init__(
        self,
        store: CitationStore,
        cache: CitationCountCache,
        *,
        window: Optional[int] = None,
    ) -> None:
        self.store = store
        self.cache = cache
        self.window = window if window is not None else settings.IMPACT_FACTOR_WINDOW_YEARS

    def window_years(self, year: int) -> List[int]:
        return [year - offset for offset in range(self.window, 0, -1)]

    def compute(self, journal_id: str, year: int) -> float:
        """
        Impact factor against the current store/cache state.

        Store errors propagate; `get_impact_factor` is the read-path wrapper.
        """
        article_ids = self.store.articles_in_journal_for_years(journal_id, self.window_years(year))
        denominator = len(article_ids)
        if denominator == 0:
            logger.debug("Journal %s has no articles in %s; impact factor is 0", journal_id, self.window_years(year))
            return 0.0

        citations = sum(self.cache.get_in_year(article_id, year) for article_id in article_ids)
        return citations / denominator

    def get_impact_factor(self, journal_id: str, year: int) -> float:
        """Read-path wrapper: consistent with the store, 0.0 if it is unreachable."""
        try:
            with self.store.reading():
                return self.compute(journal_id, year)
        except StoreUnavailableError:
            logger.error("Impact factor for %s/%s unavailable: store unreachable", journal_id, year, exc_info=True)
            return 0.0
