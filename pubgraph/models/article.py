# pubgraph/models/article.py

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from .author import Author
from .grant import Grant
from .journal import Journal


@dataclass
class Article:
    id: int  # PMID
    title: str
    created: Optional[date] = None
    completed: Optional[date] = None
    pub_model: str = ""

    authors: List[Author] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)
    journal: Optional[Journal] = None
    references: List[int] = field(default_factory=list)  # ids of cited articles
    grants: List[Grant] = field(default_factory=list)

    @property
    def completion_year(self) -> Optional[int]:
        """Year used to bucket the citations this article makes."""
        return self.completed.year if self.completed is not None else None


@dataclass(frozen=True)
class CitationCountEntry:
    """One cached aggregate: `count` citations of `article_id` made in `year`."""

    article_id: int
    year: int
    count: int
