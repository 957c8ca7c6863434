# pubgraph/models/author.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class AuthorKey:
    """
    Identity of an author: the (fore name, last name) pair.

    This is deliberately *not* unique: two different people who share a
    name collapse into one logical author. Every query that seeds from or
    tests membership against an author uses this same key, so the collapse
    is at least consistent.
    """

    fore_name: str
    last_name: str

    def __str__(self) -> str:
        return f"{self.fore_name} {self.last_name}".strip()


@dataclass
class Author:
    fore_name: str
    last_name: str
    initials: Optional[str] = None  # informational only, not part of identity

    @property
    def key(self) -> AuthorKey:
        return AuthorKey(self.fore_name.strip(), self.last_name.strip())
