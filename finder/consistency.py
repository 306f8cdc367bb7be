"""
Self-consistency - extract the same page several times and vote.

Fields the samples agree on are trustworthy; fields they disagree on are
where the model is guessing. Agreement on the critical identity fields
decides whether a human needs to look at the record.
"""

import json
from typing import Any, Optional, Sequence

from models import (
    CandidatePage,
    ConsensusRecord,
    ExtractionSample,
    FieldAgreement,
    METADATA_FIELDS,
)
from .extract import Extractor

DEFAULT_SAMPLES = 2
TEMPERATURE_SCHEDULE = (0.0, 0.3, 0.5, 0.7)

CRITICAL_FIELDS = ("agent_name", "email", "agency_name")
CRITICAL_THRESHOLD = 2 / 3
REVIEW_THRESHOLD = 0.7


class ConsistencyError(Exception):
    """Every extraction sample failed."""


def normalize_value(value: Any) -> str:
    """Comparison key for a field value. Never stored."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value.casefold().strip()
    if isinstance(value, (list, tuple, set)):
        # Collections are unordered for voting purposes
        return json.dumps(sorted(normalize_value(v) for v in value))
    if isinstance(value, dict):
        return json.dumps(value, sort_keys=True, default=str)
    return str(value)


def field_consensus(values: Sequence[Any]) -> tuple[Any, FieldAgreement]:
    """
    Majority vote over one field's values.

    Ties go to the value seen first in sample order. Returns the
    as-produced value of the first sample holding the winning key.
    """
    counts: dict[str, int] = {}
    originals: dict[str, Any] = {}
    for value in values:
        key = normalize_value(value)
        counts[key] = counts.get(key, 0) + 1
        originals.setdefault(key, value)

    winner = max(counts, key=counts.get)
    total = len(values)
    agreement = FieldAgreement(
        score=counts[winner] / total,
        agreement_count=counts[winner],
        sample_count=total,
    )
    return originals[winner], agreement


def compute_consensus(samples: Sequence[ExtractionSample]) -> ConsensusRecord:
    """Merge samples field by field and score their agreement."""
    if not samples:
        raise ConsistencyError("No samples to merge")

    if len(samples) == 1:
        only = samples[0]
        agreement = {
            name: FieldAgreement(score=1.0, agreement_count=1, sample_count=1)
            for name in only.business_fields()
        }
        return ConsensusRecord(record=only, field_agreement=agreement,
                               overall_score=1.0, needs_review=False, sample_count=1)

    dumps = [s.model_dump() for s in samples]
    merged = dict(dumps[0])
    agreement: dict[str, FieldAgreement] = {}

    for name in samples[0].business_fields():
        value, fa = field_consensus([d.get(name) for d in dumps])
        merged[name] = value
        agreement[name] = fa

    scores = [fa.score for fa in agreement.values()]
    overall = sum(scores) / len(scores) if scores else 1.0
    critical = [name for name in CRITICAL_FIELDS
                if name in agreement and agreement[name].score < CRITICAL_THRESHOLD]
    needs_review = bool(critical) or overall < REVIEW_THRESHOLD

    return ConsensusRecord(
        record=ExtractionSample.model_validate(merged),
        field_agreement=agreement,
        overall_score=overall,
        needs_review=needs_review,
        critical_inconsistent=critical,
        sample_count=len(samples),
    )


def adjust_confidence(base: int, overall_score: float) -> int:
    """Nudge a confidence score by consensus strength, clamped to 0..100."""
    percent = overall_score * 100
    if percent >= 80:
        adjusted = base + 10
    elif percent >= 60:
        adjusted = base + 5
    else:
        adjusted = base - 15
    return max(0, min(100, adjusted))


class SelfConsistency:
    """Runs the extractor N times over an ascending temperature schedule."""

    def __init__(self, extractor: Extractor, samples: int = DEFAULT_SAMPLES,
                 schedule: Sequence[float] = TEMPERATURE_SCHEDULE):
        if samples < 1:
            raise ValueError("samples must be >= 1")
        self.extractor = extractor
        self.samples = samples
        self.schedule = tuple(schedule) or (0.0,)

    def temperature(self, index: int) -> float:
        return self.schedule[min(index, len(self.schedule) - 1)]

    async def run(self, page: CandidatePage, known_fields: Optional[dict] = None) -> ConsensusRecord:
        results: list[ExtractionSample] = []
        for i in range(self.samples):
            temperature = self.temperature(i)
            try:
                sample = await self.extractor.extract(page, temperature=temperature,
                                                      known_fields=known_fields)
            except Exception as e:
                print(f"[CONSISTENCY] Sample {i + 1} raised: {e}")
                continue
            if sample.is_error:
                print(f"[CONSISTENCY] Sample {i + 1} (t={temperature}) unusable: {sample.error}")
                continue
            results.append(sample)

        if not results:
            raise ConsistencyError(f"All {self.samples} samples failed for {page.url}")

        consensus = compute_consensus(results)
        print(f"[CONSISTENCY] {page.url}: {round(consensus.overall_score * 100)}% over "
              f"{consensus.sample_count} samples"
              + (f", review: {', '.join(consensus.critical_inconsistent) or 'low score'}"
                 if consensus.needs_review else ""))
        return consensus
