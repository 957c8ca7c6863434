# pubgraph/models/grant.py
from dataclasses import dataclass

@dataclass
class Grant:
    id: str
    acronym: str = ""
    country: str = ""
    agency: str = ""
