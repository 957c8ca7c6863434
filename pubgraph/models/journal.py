# pubgraph/models/journal.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class JournalIssue:
    volume: str = ""
    issue: str = ""


@dataclass
class Journal:
    """
    A journal, identified by `id`.

    Journals are upserted by id when an article referencing them is stored
    and removed again once no article links to them.
    """

    id: str
    title: str
    country: str = ""
    issn: str = ""
    issue: Optional[JournalIssue] = None
