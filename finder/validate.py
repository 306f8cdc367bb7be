"""
Record validation, confidence scoring, quality gate and deduplication.

Everything here is deterministic and side-effect free apart from logging.
"""

import re
from typing import Iterable, Optional
from urllib.parse import urlparse

from models import (
    ConsensusRecord,
    ExtractionSample,
    ValidatedRecord,
    is_sentinel,
)
from .consistency import adjust_confidence

DEFAULT_QUALITY_FLOOR = 20

_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Role addresses, not a person
GENERIC_PREFIXES = (
    "info@",
    "kontakt@",
    "contact@",
    "office@",
    "admin@",
    "hello@",
    "mail@",
    "support@",
    "service@",
)

_COLLECTION_HINTS = ("genres_", "keywords", "hard_nos", "audience")

# Confidence weights
NAME_POINTS = 30
EMAIL_POINTS = 20
AGENCY_POINTS = 20
GENRE_POINTS = 5
STATUS_POINTS = 10
REQUIREMENTS_POINTS = 10
WEBSITE_POINTS = 5


def is_email_syntax(email: Optional[str]) -> bool:
    return isinstance(email, str) and bool(_EMAIL.match(email.strip()))


def is_valid_email(email: Optional[str]) -> bool:
    """Syntactically valid and not a generic role address."""
    if not is_email_syntax(email):
        return False
    lowered = email.strip().lower()
    return not any(lowered.startswith(prefix) for prefix in GENERIC_PREFIXES)


def is_valid_url(url: Optional[str]) -> bool:
    if not isinstance(url, str) or not url.strip():
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def normalize_name(name: Optional[str]) -> str:
    """Collapse whitespace and turn "Last, First" into "First Last"."""
    if not isinstance(name, str):
        return ""
    normalized = name.strip()
    if "," in normalized:
        parts = [p.strip() for p in normalized.split(",")]
        if len(parts) == 2:
            normalized = f"{parts[1]} {parts[0]}"
    return re.sub(r"\s+", " ", normalized).strip()


def _is_collection_field(name: str) -> bool:
    return not name.endswith("_raw") and any(h in name for h in _COLLECTION_HINTS)


def _as_list(value) -> list:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return [v.strip() if isinstance(v, str) else v for v in value
                if not (isinstance(v, str) and is_sentinel(v))]
    if isinstance(value, str):
        if is_sentinel(value):
            return []
        return [p.strip() for p in value.split(",") if p.strip()]
    return [value]


def validate_record(sample: ExtractionSample) -> ExtractionSample:
    """
    Normalize one record.

    Sentinels become "" or [], strings are trimmed, collection-named
    fields are coerced to lists. Malformed websites are cleared, and so
    are emails that are malformed or generic role addresses (info@,
    kontakt@ ...) since those identify an agency inbox, not an agent.
    """
    data = sample.model_dump()
    for key, value in data.items():
        if key == "error":
            continue
        if _is_collection_field(key):
            data[key] = _as_list(value)
        elif isinstance(value, str):
            value = value.strip()
            data[key] = "" if is_sentinel(value) else value

    data["agent_name"] = normalize_name(data.get("agent_name"))
    for key in ("email", "contact_email"):
        if data.get(key) and not is_valid_email(data[key]):
            data[key] = ""
    if data.get("website") and not is_valid_url(data["website"]):
        data["website"] = ""

    return ExtractionSample.model_validate(data)


def calculate_confidence(record: ExtractionSample) -> int:
    """Additive 0-100 score of how complete and usable a record is."""
    score = 0
    if not is_sentinel(record.agent_name):
        score += NAME_POINTS
    if is_valid_email(record.email):
        score += EMAIL_POINTS
    if not is_sentinel(record.agency_name):
        score += AGENCY_POINTS
    if record.genres_fiction or record.genres_nonfiction:
        score += GENRE_POINTS
    if isinstance(record.is_open_to_submissions, bool):
        score += STATUS_POINTS
    if record.requires_bio or record.requires_expose or record.requires_manuscript:
        score += REQUIREMENTS_POINTS
    if is_valid_url(record.website):
        score += WEBSITE_POINTS
    return min(score, 100)


def apply_quality_gate(record: ExtractionSample, confidence: int,
                       floor: int = DEFAULT_QUALITY_FLOOR) -> tuple[bool, Optional[str]]:
    """Accept or reject. Pure filter: logs, never raises."""
    label = record.agent_name or record.source_url
    if is_sentinel(record.agent_name):
        reason = "missing agent name"
    elif not (is_valid_email(record.email) or is_valid_url(record.website)
              or not is_sentinel(record.agency_name)):
        reason = "no email, website or agency"
    elif confidence < floor:
        reason = f"confidence {confidence} below {floor}"
    else:
        print(f"[VALIDATE] Accepted {label} (confidence {confidence})")
        return True, None

    print(f"[VALIDATE] Rejected {label}: {reason}")
    return False, reason


def validate(consensus: ConsensusRecord, floor: int = DEFAULT_QUALITY_FLOOR) -> ValidatedRecord:
    """Normalize, score and gate a consensus record."""
    record = validate_record(consensus.record)
    confidence = calculate_confidence(record)
    report = None
    if consensus.sample_count > 1:
        confidence = adjust_confidence(confidence, consensus.overall_score)
        report = consensus.report()

    passed, reason = apply_quality_gate(record, confidence, floor)
    return ValidatedRecord(
        record=record,
        confidence_score=confidence,
        passes_quality_gate=passed,
        rejection_reason=reason,
        consistency=report,
    )


def _dedupe_name(record: ExtractionSample) -> str:
    name = normalize_name(record.agent_name).lower()
    return "" if is_sentinel(name) else name


def is_duplicate(a: ExtractionSample, b: ExtractionSample) -> bool:
    name_a, name_b = _dedupe_name(a), _dedupe_name(b)
    if name_a and name_b and name_a == name_b:
        return True

    email_a = (a.email or "").strip().lower()
    email_b = (b.email or "").strip().lower()
    if is_valid_email(email_a) and email_a == email_b:
        return True

    if name_a and name_b and (name_a in name_b or name_b in name_a):
        agency_a = (a.agency_name or "").strip().lower()
        agency_b = (b.agency_name or "").strip().lower()
        if agency_a and not is_sentinel(agency_a) and agency_a == agency_b:
            return True

    return False


def remove_duplicates(records: Iterable[ValidatedRecord]) -> list[ValidatedRecord]:
    """First-seen wins. Idempotent."""
    unique: list[ValidatedRecord] = []
    for candidate in records:
        if any(is_duplicate(kept.record, candidate.record) for kept in unique):
            print(f"[DEDUP] Duplicate removed: {candidate.record.agent_name}")
            continue
        unique.append(candidate)
    return unique
