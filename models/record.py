"""
Agent records as they move through the pipeline.

ExtractionSample -> ConsensusRecord -> ValidatedRecord
"""

from datetime import datetime
from typing import Any, Optional
from pydantic import Field, ConfigDict, field_validator

from .base import FinderModel


UNKNOWN = "Unknown"
NOT_FOUND = "Not found"
ERROR = "Error"

# Values that mean "the oracle did not find it"
SENTINELS = {"unknown", "not found", "error", "n/a", "none", "null", ""}

LIST_FIELDS = (
    "genres_fiction",
    "genres_nonfiction",
    "hard_nos",
    "target_audience",
    "specific_keywords",
)

# Provenance/bookkeeping, not business data
METADATA_FIELDS = (
    "source_url",
    "source_title",
    "source_snippet",
    "timestamp",
    "error",
    "profile_embedding",
    "genre_suggestions",
    "contact_suggestions",
)


def is_sentinel(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip().lower() in SENTINELS
    return False


class GenreSuggestion(FinderModel):
    """A raw genre term that missed the threshold, surfaced for manual approval."""
    term: str
    best_match: Optional[str] = None
    similarity: float = 0.0


class ContactSuggestions(FinderModel):
    """Every address harvested from the source page, generic inboxes included."""
    emails: list[str] = Field(default_factory=list)
    websites: list[str] = Field(default_factory=list)


class ExtractionSample(FinderModel):
    """One structured record extracted from one page at one temperature."""
    agent_name: str = UNKNOWN
    agent_name_evidence: str = ""
    agency_name: str = UNKNOWN
    agency_name_evidence: str = ""
    agent_role: str = UNKNOWN

    email: str = NOT_FOUND
    contact_email: str = NOT_FOUND
    website: str = NOT_FOUND
    submission_url: str = NOT_FOUND

    is_open_to_submissions: Optional[bool] = None
    is_open_to_submissions_evidence: str = ""
    status_notice: str = ""
    estimated_response_time: str = UNKNOWN

    genres_raw: str = ""
    hard_nos_raw: str = ""
    audience_raw: str = ""

    genres_fiction: list[str] = Field(default_factory=list)
    genres_nonfiction: list[str] = Field(default_factory=list)
    genre_suggestions: list[GenreSuggestion] = Field(default_factory=list)
    hard_nos: list[str] = Field(default_factory=list)
    target_audience: list[str] = Field(default_factory=list)

    manuscript_wishlist_summary: str = UNKNOWN
    specific_keywords: list[str] = Field(default_factory=list)
    requires_bio: bool = False
    requires_expose: bool = False
    requires_manuscript: bool = False
    country: str = UNKNOWN
    profile_embedding: Optional[list[float]] = None
    contact_suggestions: ContactSuggestions = Field(default_factory=ContactSuggestions)

    source_url: str = ""
    source_title: str = ""
    source_snippet: str = ""
    timestamp: Optional[datetime] = None
    error: Optional[str] = None

    @field_validator(*LIST_FIELDS, mode="before")
    @classmethod
    def _coerce_list(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            if is_sentinel(value):
                return []
            return [part.strip() for part in value.replace(";", ",").split(",") if part.strip()]
        if isinstance(value, (list, tuple, set)):
            return [str(v).strip() for v in value if v is not None and str(v).strip()]
        return [str(value)]

    @field_validator("genres_raw", "hard_nos_raw", "audience_raw", mode="before")
    @classmethod
    def _join_raw(cls, value):
        if value is None:
            return ""
        if isinstance(value, (list, tuple)):
            return ", ".join(str(v) for v in value if v is not None)
        return value

    @field_validator("is_open_to_submissions", mode="before")
    @classmethod
    def _coerce_tristate(cls, value):
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in ("true", "yes", "open"):
                return True
            if lowered in ("false", "no", "closed"):
                return False
            return None
        return value

    @field_validator("requires_bio", "requires_expose", "requires_manuscript", mode="before")
    @classmethod
    def _coerce_flag(cls, value):
        if value is None:
            return False
        if isinstance(value, str):
            return value.strip().lower() in ("true", "yes", "1")
        return value

    @field_validator(
        "agent_name", "agency_name", "agent_role", "email", "contact_email",
        "website", "submission_url", "estimated_response_time",
        "manuscript_wishlist_summary", "country",
        "agent_name_evidence", "agency_name_evidence",
        "is_open_to_submissions_evidence", "status_notice",
        mode="before",
    )
    @classmethod
    def _coerce_text(cls, value):
        if value is None:
            return ""
        if isinstance(value, (list, tuple)):
            return ", ".join(str(v) for v in value if v is not None)
        return str(value) if not isinstance(value, str) else value

    @property
    def is_error(self) -> bool:
        return bool(self.error)

    def business_fields(self) -> dict:
        """Field values without provenance bookkeeping."""
        data = self.model_dump()
        for key in METADATA_FIELDS:
            data.pop(key, None)
        return data


class FieldAgreement(FinderModel):
    score: float
    agreement_count: int
    sample_count: int

    @property
    def agreement(self) -> str:
        return f"{self.agreement_count}/{self.sample_count}"


class ConsistencyReport(FinderModel):
    """Summary attached to a validated record."""
    score: int  # 0-100
    samples: int
    needs_review: bool
    critical_fields_inconsistent: list[str] = Field(default_factory=list)
    field_scores: dict[str, dict] = Field(default_factory=dict)


class ConsensusRecord(FinderModel):
    """Merged record plus per-field agreement across samples."""
    record: ExtractionSample
    field_agreement: dict[str, FieldAgreement] = Field(default_factory=dict)
    overall_score: float = 1.0
    needs_review: bool = False
    critical_inconsistent: list[str] = Field(default_factory=list)
    sample_count: int = 1

    def report(self) -> ConsistencyReport:
        return ConsistencyReport(
            score=round(self.overall_score * 100),
            samples=self.sample_count,
            needs_review=self.needs_review,
            critical_fields_inconsistent=list(self.critical_inconsistent),
            field_scores={
                name: {"score": round(fa.score * 100), "agreement": fa.agreement}
                for name, fa in self.field_agreement.items()
            },
        )


class AgencyKnowledge(FinderModel):
    """Agency-wide facts frozen on the first confident page of a crawl."""
    model_config = ConfigDict(frozen=True, extra="ignore", str_strip_whitespace=True)

    agency_name: str = UNKNOWN
    agency_name_evidence: str = ""
    country: str = UNKNOWN

    @property
    def is_confident(self) -> bool:
        return not is_sentinel(self.agency_name)

    def known_fields(self) -> dict:
        """Non-sentinel fields, ready to inject into a prompt and overwrite a record."""
        fields = {
            "agency_name": self.agency_name,
            "agency_name_evidence": self.agency_name_evidence,
            "country": self.country,
        }
        return {k: v for k, v in fields.items() if not is_sentinel(v)}


class ValidatedRecord(FinderModel):
    """Normalized, scored record - the unit handed to a sink."""
    record: ExtractionSample
    confidence_score: int = 0
    passes_quality_gate: bool = False
    rejection_reason: Optional[str] = None
    consistency: Optional[ConsistencyReport] = None
