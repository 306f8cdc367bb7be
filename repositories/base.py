"""
Repository base classes - define the interface.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from models import Registry, ValidatedRecord


class SinkConfigError(ValueError):
    """Sink storage or credentials are not configured."""


class RegistryRepository(ABC):
    """Durable storage for the genre registry."""

    @abstractmethod
    def load(self) -> Optional[Registry]:
        """Load the registry. Returns None if never initialized or unreadable."""
        pass

    @abstractmethod
    def save(self, registry: Registry) -> None:
        """Persist the registry atomically."""
        pass

    @abstractmethod
    def exists(self) -> bool:
        pass


class RecordSink(ABC):
    """Destination for validated agent records."""

    @abstractmethod
    def append(self, record: ValidatedRecord, processed_at: datetime) -> None:
        """Write one record. Raises on failure; callers aggregate."""
        pass


# Column order of a flattened sink row
ROW_COLUMNS = [
    "processed_at",
    "agent_name",
    "agency_name",
    "agent_role",
    "email",
    "website",
    "submission_url",
    "country",
    "is_open_to_submissions",
    "status_notice",
    "estimated_response_time",
    "genres_fiction",
    "genres_nonfiction",
    "hard_nos",
    "target_audience",
    "manuscript_wishlist_summary",
    "specific_keywords",
    "requires_bio",
    "requires_expose",
    "requires_manuscript",
    "confidence_score",
    "consistency_score",
    "needs_review",
    "source_url",
]


def record_to_row(validated: ValidatedRecord, processed_at: datetime) -> list:
    """Flatten a validated record into ROW_COLUMNS order."""
    data = validated.record.model_dump(mode="json")
    data["processed_at"] = processed_at.isoformat()
    data["confidence_score"] = validated.confidence_score
    report = validated.consistency
    data["consistency_score"] = report.score if report else ""
    data["needs_review"] = report.needs_review if report else False

    row = []
    for column in ROW_COLUMNS:
        value = data.get(column, "")
        if isinstance(value, list):
            value = ", ".join(str(v) for v in value)
        elif value is None:
            value = ""
        row.append(value)
    return row
