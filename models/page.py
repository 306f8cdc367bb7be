"""
Fetched page - produced by the fetch boundary, consumed once per run.
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class CandidatePage:
    url: str
    title: str = ""
    text: str = ""
    links: List[str] = field(default_factory=list)  # Absolute, same-origin
    emails: List[str] = field(default_factory=list)
    urls: List[str] = field(default_factory=list)
    success: bool = True
    error: Optional[str] = None

    @property
    def preview(self) -> str:
        return self.text[:300]
