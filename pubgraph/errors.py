# pubgraph/errors.py

from __future__ import annotations

from typing import Optional


class PubGraphError(RuntimeError):
    """
    Base class for every error raised by the citation store and the
    services built on top of it.
    """


class StoreUnavailableError(PubGraphError):
    """The citation store has been closed or cannot be reached."""


class DuplicateArticleError(PubGraphError):
    """An article with the same id is already stored."""

    def __init__(self, article_id: int) -> None:
        super().__init__(f"Article {article_id} already exists")
        self.article_id = article_id


class InvalidArticleError(PubGraphError):
    """
    The article cannot be stored as given (missing or malformed journal,
    missing completion date where one is required, ...).
    """

    def __init__(self, message: str, *, article_id: Optional[int] = None) -> None:
        super().__init__(message)
        self.article_id = article_id


class InvariantViolationError(PubGraphError):
    """
    The citation count cache disagrees with the store.

    Raised by explicit verification (`CitationCountCache.verify`); the hot
    paths only log these at error level.
    """

    def __init__(self, message: str, *, mismatches: Optional[dict] = None) -> None:
        super().__init__(message)
        self.mismatches = dict(mismatches or {})
