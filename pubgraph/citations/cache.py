# pubgraph/citations/cache.py

"""
Aggregate cache of citation counts keyed by (cited article id, citing year).

The cache is a projection of the citation store: built once by a single
pass over every citation edge, then kept in step by the writers that add or
remove citation edges (`increment` / `decrement`). It can be dropped and
rebuilt at any time without losing information.

Reads never raise. While the cache is not built (or the build failed because
the store was unavailable) every count is 0 and updates are no-ops, both
logged.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import Dict, List, Optional, Tuple

from pubgraph.config.settings import settings
from pubgraph.errors import InvariantViolationError, StoreUnavailableError
from pubgraph.graph.store import CitationStore
from pubgraph.models.article import CitationCountEntry

logger = logging.getLogger(__name__)

CacheKey = Tuple[int, int]  # (article id, year)


class CitationCountCache:
    def __init__(self, store: CitationStore, *, lock_stripes: Optional[int] = None) -> None:
        self._store = store
        self._counts: Dict[CacheKey, int] = {}
        # article id -> years with an entry, so `get` does not scan all keys
        self._years: Dict[int, set] = {}

        self._init_lock = threading.Lock()
        self._ready = False

        stripes = lock_stripes if lock_stripes is not None else settings.CACHE_LOCK_STRIPES
        self._stripes = [threading.Lock() for _ in range(max(1, stripes))]

    # ------------------------------------------------------------------
    # Build / teardown
    # ------------------------------------------------------------------

    @property
    def is_ready(self) -> bool:
        return self._ready

    def initialize(self) -> bool:
        """
        Build the cache from the store if that has not happened yet.

        Concurrent first callers serialize on the init lock: exactly one runs
        the aggregation pass, the others wait for it and then return. The pass
        holds the store lock (init lock first, then store lock), so it cannot
        land in the middle of a store transaction. Returns whether the cache
        is ready.
        """
        if self._ready:
            return True

        with self._init_lock:
            if self._ready:
                return True

            counts: Dict[CacheKey, int] = defaultdict(int)
            skipped = 0
            try:
                with self._store.reading():
                    edges = self._store.iter_citation_edges()
                    for _citing, cited, year in edges:
                        if year is None:
                            skipped += 1
                            continue
                        counts[(cited, year)] += 1

                    self._counts = dict(counts)
                    self._years = {}
                    for article_id, year in self._counts:
                        self._years.setdefault(article_id, set()).add(year)
                    self._ready = True
            except StoreUnavailableError:
                logger.error("Citation count cache not built: store unavailable", exc_info=True)
                return False

            logger.info(
                "Citation count cache built: %d entries from %d edges (%d without a citing year)",
                len(self._counts),
                len(edges),
                skipped,
            )
            return True

    ensure_initialized = initialize

    def drop(self) -> None:
        """
        Discard every entry; the cache reads as empty until rebuilt. Waits
        for a running store transaction to finish first.
        """
        with self._init_lock:
            try:
                with self._store.reading():
                    self._clear()
            except StoreUnavailableError:
                # a closed store has no transaction in flight
                self._clear()
        logger.info("Citation count cache dropped")

    def _clear(self) -> None:
        self._ready = False
        self._counts = {}
        self._years = {}

    def rebuild(self) -> bool:
        self.drop()
        return self.initialize()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, article_id: int) -> int:
        """Citations of `article_id` summed over all years (0 if unknown)."""
        if not self._ready:
            logger.warning("Citation count cache not initialized; get(%s) -> 0", article_id)
            return 0
        years = list(self._years.get(article_id, ()))
        return sum(self._counts.get((article_id, year), 0) for year in years)

    def get_in_year(self, article_id: int, year: int) -> int:
        """Citations of `article_id` made by articles completed in `year`."""
        if not self._ready:
            logger.warning(
                "Citation count cache not initialized; get_in_year(%s, %s) -> 0", article_id, year
            )
            return 0
        return self._counts.get((article_id, year), 0)

    def snapshot(self) -> Dict[CacheKey, int]:
        """Copy of every (article id, year) -> count entry."""
        return dict(self._counts)

    def entries(self) -> List[CitationCountEntry]:
        return [
            CitationCountEntry(article_id=article_id, year=year, count=count)
            for (article_id, year), count in sorted(self._counts.items())
        ]

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def _stripe(self, key: CacheKey) -> threading.Lock:
        return self._stripes[hash(key) % len(self._stripes)]

    def increment(self, article_id: int, year: int, delta: int = 1) -> bool:
        """
        Add `delta` to the (article, year) entry, creating it if needed.
        Returns False when the cache is not built and nothing changed.
        """
        return self._apply(article_id, year, delta)

    def decrement(self, article_id: int, year: int, delta: int = 1) -> bool:
        """
        Subtract `delta` from the (article, year) entry. An entry that
        reaches zero is removed; a negative result is logged as an invariant
        violation and stored as is.
        """
        return self._apply(article_id, year, -delta)

    def _apply(self, article_id: int, year: int, delta: int) -> bool:
        if not self._ready:
            logger.warning(
                "Citation count cache not initialized; ignoring update (%s, %s, %+d)",
                article_id,
                year,
                delta,
            )
            return False

        key = (article_id, year)
        with self._stripe(key):
            value = self._counts.get(key, 0) + delta
            if value == 0:
                # Absent and zero read the same; dropping the row keeps an
                # increment/decrement pair from leaving anything behind.
                self._counts.pop(key, None)
                self._years.get(article_id, set()).discard(year)
            else:
                self._counts[key] = value
                self._years.setdefault(article_id, set()).add(year)

        if value < 0:
            logger.error(
                "Citation count for article %s in %s went negative (%d); "
                "increment/decrement pairing is broken",
                article_id,
                year,
                value,
            )
        return True

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def verify(self) -> None:
        """
        Recount every citation edge in the store and compare with the cache.

        Zero-valued entries count as absent. Raises InvariantViolationError
        listing the mismatching keys as {key: (cached, actual)}.
        """
        actual: Dict[CacheKey, int] = defaultdict(int)
        for _citing, cited, year in self._store.iter_citation_edges():
            if year is not None:
                actual[(cited, year)] += 1

        cached = {k: v for k, v in self._counts.items() if v != 0}
        mismatches = {
            key: (cached.get(key, 0), actual.get(key, 0))
            for key in set(cached) | set(actual)
            if cached.get(key, 0) != actual.get(key, 0)
        }
        if mismatches:
            logger.error("Citation count cache diverged from store at %d key(s)", len(mismatches))
            raise InvariantViolationError(
                f"Citation count cache diverged at {len(mismatches)} key(s)",
                mismatches=mismatches,
            )
