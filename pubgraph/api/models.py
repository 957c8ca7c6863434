# pubgraph/api/models.py

from __future__ import annotations

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pubgraph.models.article import Article
from pubgraph.models.author import Author
from pubgraph.models.grant import Grant
from pubgraph.models.journal import Journal, JournalIssue


class JournalIssuePayload(BaseModel):
    volume: str = ""
    issue: str = ""


class JournalPayload(BaseModel):
    """
    A journal as it appears inside an article payload.
    """
    id: str = Field(..., min_length=1, description="Journal id; journals are upserted by id.")
    title: str = Field(..., min_length=1, description="Journal title.")
    country: str = ""
    issn: str = ""
    issue: Optional[JournalIssuePayload] = None

    def to_journal(self) -> Journal:
        return Journal(
            id=self.id,
            title=self.title,
            country=self.country,
            issn=self.issn,
            issue=JournalIssue(self.issue.volume, self.issue.issue) if self.issue else None,
        )


class AuthorPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    fore_name: str = Field(..., alias="foreName")
    last_name: str = Field(..., alias="lastName")
    initials: Optional[str] = None

    def to_author(self) -> Author:
        return Author(fore_name=self.fore_name, last_name=self.last_name, initials=self.initials)


class GrantPayload(BaseModel):
    id: str
    acronym: str = ""
    country: str = ""
    agency: str = ""

    def to_grant(self) -> Grant:
        return Grant(id=self.id, acronym=self.acronym, country=self.country, agency=self.agency)


class ArticlePayload(BaseModel):
    """
    JSON shape accepted for an article, e.g. by `pubgraph query simulate-add`.

    References may be given as ints or numeric strings.
    """
    id: int = Field(..., description="PMID of the article.")
    title: str = ""
    created: Optional[date] = None
    completed: Optional[date] = None
    pub_model: str = ""
    authors: List[AuthorPayload] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)
    journal: Optional[JournalPayload] = None
    references: List[int] = Field(default_factory=list)
    grants: List[GrantPayload] = Field(default_factory=list)

    @field_validator("keywords")
    @classmethod
    def _strip_keywords(cls, value: List[str]) -> List[str]:
        return [k.strip() for k in value if k and k.strip()]

    def to_article(self) -> Article:
        return Article(
            id=self.id,
            title=self.title,
            created=self.created,
            completed=self.completed,
            pub_model=self.pub_model,
            authors=[a.to_author() for a in self.authors],
            keywords=list(self.keywords),
            journal=self.journal.to_journal() if self.journal else None,
            references=list(self.references),
            grants=[g.to_grant() for g in self.grants],
        )


class JournalRenameRequest(BaseModel):
    """Input of a journal rename: migrate links from `year` on to (new_id, new_name)."""
    journal_id: str = Field(..., min_length=1)
    year: int
    new_name: str = Field(..., min_length=1)
    new_id: str = Field(..., min_length=1)
