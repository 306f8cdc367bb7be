"""
Crawl and save results returned to callers.
"""

from typing import Optional
from pydantic import Field

from .base import FinderModel
from .record import ValidatedRecord, GenreSuggestion


class PageFailure(FinderModel):
    url: str
    stage: str  # fetch | extract | crawl
    error: str


class CrawlWarning(FinderModel):
    """Too many candidate pages; the caller must confirm before crawling."""
    too_many_links: bool = True
    found_links: int
    limit: int
    overflow: int = 0
    sample_urls: list[str] = Field(default_factory=list)
    estimated_minutes: int = 0
    message: str = ""


class CrawlResult(FinderModel):
    """Partial successes plus a failure/warning summary."""
    records: list[ValidatedRecord] = Field(default_factory=list)
    warning: Optional[CrawlWarning] = None
    failures: list[PageFailure] = Field(default_factory=list)
    genre_suggestions: list[GenreSuggestion] = Field(default_factory=list)
    pages_fetched: int = 0
    pages_triaged: int = 0
    rejected: int = 0
    duplicates_dropped: int = 0

    def merge(self, other: "CrawlResult") -> None:
        """Fold another run's result into this one (multi-URL crawls)."""
        self.records = self.records + other.records
        self.failures = self.failures + other.failures
        self.genre_suggestions = self.genre_suggestions + other.genre_suggestions
        self.pages_fetched += other.pages_fetched
        self.pages_triaged += other.pages_triaged
        self.rejected += other.rejected
        self.duplicates_dropped += other.duplicates_dropped
        if other.warning is not None and self.warning is None:
            self.warning = other.warning


class SaveSummary(FinderModel):
    saved: int = 0
    failed: int = 0
    errors: list[str] = Field(default_factory=list)
