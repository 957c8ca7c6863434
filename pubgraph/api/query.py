# pubgraph/api/query.py

from __future__ import annotations

import concurrent.futures
import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple, TypeVar, Union

from pubgraph.citations.cache import CitationCountCache
from pubgraph.citations.impact import ImpactFactorCalculator
from pubgraph.citations.lifecycle import ArticleLifecycleCoordinator
from pubgraph.citations.linkage import AuthorLinkResolver
from pubgraph.config.settings import settings
from pubgraph.errors import StoreUnavailableError
from pubgraph.graph.store import CitationStore
from pubgraph.models.article import Article
from pubgraph.models.author import Author, AuthorKey
from pubgraph.models.journal import Journal

logger = logging.getLogger(__name__)

T = TypeVar("T")
AuthorLike = Union[Author, AuthorKey]
JournalLike = Union[Journal, str]


def _author_key(author: AuthorLike) -> AuthorKey:
    if isinstance(author, AuthorKey):
        return author
    return author.key


class CitationQueryService:
    """
    Public operations over one citation store.

    Read queries never raise for missing data or an unreachable store; they
    answer empty / 0 / -1 and log. Write operations
    (`add_article_and_update_if`, `update_journal_name`) propagate errors.

    The citation count cache is built lazily on the first query that needs
    it (or at construction with `eager_init=True`).
    """

    def __init__(
        self,
        store: CitationStore,
        *,
        cache: Optional[CitationCountCache] = None,
        max_workers: Optional[int] = None,
        eager_init: Optional[bool] = None,
    ) -> None:
        self.store = store
        self.cache = cache if cache is not None else CitationCountCache(store)
        self.impact = ImpactFactorCalculator(store, self.cache)
        self.linker = AuthorLinkResolver(store)
        self.lifecycle = ArticleLifecycleCoordinator(store, self.cache, self.impact)
        self.max_workers = max_workers if max_workers is not None else settings.QUERY_MAX_WORKERS

        if eager_init if eager_init is not None else settings.cache_eager_init:
            self.cache.initialize()

    # ------------------------------------------------------------------
    # Articles
    # ------------------------------------------------------------------

    def get_article_citations_by_year(self, article_id: int, year: int) -> int:
        """Times `article_id` was cited by articles completed in `year`."""
        self.cache.ensure_initialized()
        try:
            with self.store.reading():
                return self.cache.get_in_year(article_id, year)
        except StoreUnavailableError:
            logger.error("Cannot count citations of %s in %s: store unreachable", article_id, year, exc_info=True)
            return 0

    def add_article_and_update_if(self, article: Article) -> float:
        """Impact factor of the article's journal with the article added; leaves no trace."""
        return self.lifecycle.add_article_and_update_if(article)

    # ------------------------------------------------------------------
    # Authors
    # ------------------------------------------------------------------

    def get_articles_by_author_sorted_by_citations(self, author: AuthorLike) -> List[int]:
        """
        Citation counts (not article ids!) of every article by `author`,
        largest first. Empty for an author without articles.
        """
        key = _author_key(author)
        self.cache.ensure_initialized()
        try:
            with self.store.reading():
                article_ids = self.store.articles_by_author(key)
                counts = [self.cache.get(article_id) for article_id in article_ids]
        except StoreUnavailableError:
            logger.error("Cannot rank articles of %s: store unreachable", key, exc_info=True)
            return []

        return sorted(counts, reverse=True)

    def get_journal_with_most_articles_by_author(self, author: AuthorLike) -> str:
        """
        Title of the journal holding most of the author's articles, "" if
        none. Ties go to the smaller title, then the smaller journal id.
        """
        key = _author_key(author)
        try:
            with self.store.reading():
                article_ids = self.store.articles_by_author(key)
                journals = [self.store.journal_of(article_id) for article_id in article_ids]
        except StoreUnavailableError:
            logger.error("Cannot find journals of %s: store unreachable", key, exc_info=True)
            return ""

        tally: Dict[Tuple[str, str], int] = {}
        for journal in journals:
            if journal is None:
                continue
            ident = (journal.title, journal.id)
            tally[ident] = tally.get(ident, 0) + 1

        if not tally:
            return ""

        (title, _journal_id), _count = min(tally.items(), key=lambda item: (-item[1], item[0]))
        return title

    def get_min_articles_to_link_authors(self, author_a: AuthorLike, author_b: AuthorLike) -> int:
        """Fewest citation hops from A's articles to B's, -1 if unreachable."""
        return self.linker.get_min_articles_to_link_authors(_author_key(author_a), _author_key(author_b))

    # ------------------------------------------------------------------
    # Journals
    # ------------------------------------------------------------------

    def get_impact_factor(self, journal_id: str, year: int) -> float:
        self.cache.ensure_initialized()
        return self.impact.get_impact_factor(journal_id, year)

    def update_journal_name(
        self,
        journal: JournalLike,
        year: int,
        new_name: str,
        new_id: str,
    ) -> bool:
        """
        Move the journal's articles completed in or after `year` to journal
        (`new_id`, `new_name`); earlier articles keep their link.

        Returns False without changing anything when the journal does not
        exist, `new_id` is the journal's own id, or no article qualifies.
        An existing journal `new_id` is reused as is. The source journal is
        removed if it ends up without articles.
        """
        source_id = journal.id if isinstance(journal, Journal) else str(journal)

        with self.store.transaction():
            source = self.store.get_journal(source_id)
            if source is None:
                logger.warning("Cannot rename journal %s: not found", source_id)
                return False
            if new_id == source_id:
                logger.warning("Cannot rename journal %s onto itself", source_id)
                return False

            created = self.store.insert_journal(
                Journal(
                    id=new_id,
                    title=new_name,
                    country=source.country,
                    issn=source.issn,
                    issue=source.issue,
                )
            )
            if not created:
                existing = self.store.get_journal(new_id)
                if existing is not None and existing.title != new_name:
                    logger.warning(
                        "Journal %s already exists as %r; keeping that title instead of %r",
                        new_id,
                        existing.title,
                        new_name,
                    )

            moved = self.store.relink_journal_articles(source_id, new_id, year)
            if moved == 0:
                if created:
                    self.store.delete_journal(new_id)
                logger.info("Journal %s has no articles from %d on; nothing renamed", source_id, year)
                return False

            if self.store.journal_article_count(source_id) == 0:
                self.store.delete_journal(source_id)

        logger.info(
            "Moved %d article(s) of journal %r (%s) to %r (%s) from year %d on",
            moved,
            source.title,
            source_id,
            new_name,
            new_id,
            year,
        )
        return True

    # ------------------------------------------------------------------
    # Grants / keywords
    # ------------------------------------------------------------------

    def get_country_fund_papers(self, country: str) -> List[int]:
        """Ids of articles funded by a grant from `country`, ascending."""
        try:
            return self.store.articles_funded_in_country(country)
        except StoreUnavailableError:
            logger.error("Cannot list papers funded in %s: store unreachable", country, exc_info=True)
            return []

    def get_article_count_by_keyword_in_past_years(self, keyword: str) -> List[int]:
        """Article counts per completion year for an exact keyword, newest year first."""
        try:
            years = self.store.article_years_for_keyword(keyword)
        except StoreUnavailableError:
            logger.error("Cannot count articles for keyword %r: store unreachable", keyword, exc_info=True)
            return []

        per_year: Dict[int, int] = {}
        for year in years:
            per_year[year] = per_year.get(year, 0) + 1
        return [per_year[year] for year in sorted(per_year, reverse=True)]

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def run_concurrently(self, calls: Sequence[Callable[[], T]]) -> List[T]:
        """
        Run zero-argument query callables on a bounded thread pool.

        Results come back in the order of `calls`; the first exception
        raised by a call propagates.
        """
        if not calls:
            return []

        workers = min(self.max_workers, len(calls))
        with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(call) for call in calls]
            return [future.result() for future in futures]

    def close(self) -> None:
        """Process shutdown: drop the cache and close the store."""
        self.cache.drop()
        self.store.close()
