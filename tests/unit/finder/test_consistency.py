"""Unit tests for self-consistency voting and merging."""

import asyncio

import pytest
from models import CandidatePage, ExtractionSample
from finder.consistency import (
    ConsistencyError,
    SelfConsistency,
    adjust_confidence,
    compute_consensus,
    field_consensus,
    normalize_value,
)
from finder.extract import error_record


def sample(**overrides):
    data = {
        "agent_name": "Jane Doe",
        "agency_name": "Acme Lit",
        "email": "jane@acmelit.com",
        "contact_email": "jane@acmelit.com",
        "is_open_to_submissions": True,
        "genres_fiction": ["Thriller", "Romance"],
        "source_url": "https://acmelit.com/jane",
    }
    data.update(overrides)
    return ExtractionSample(**data)


class TestNormalizeValue:

    def test_strings_casefolded(self):
        assert normalize_value("  Jane DOE ") == normalize_value("jane doe")

    def test_booleans_stringified(self):
        assert normalize_value(True) == "true"
        assert normalize_value(False) == "false"

    def test_lists_unordered(self):
        assert normalize_value(["B", "a"]) == normalize_value(["A", "b"])

    def test_none(self):
        assert normalize_value(None) == "null"


class TestFieldConsensus:

    def test_majority(self):
        value, fa = field_consensus(["x", "y", "y"])
        assert value == "y"
        assert fa.score == pytest.approx(2 / 3)
        assert fa.agreement == "2/3"

    def test_tie_goes_to_first_seen(self):
        value, fa = field_consensus([False, True])
        assert value is False
        assert fa.score == 0.5

    def test_first_holder_supplies_value(self):
        value, _ = field_consensus(["acme lit", "Acme Lit", "Acme Lit"])
        # Winning key is shared; the first sample holding it supplies the value
        assert value == "acme lit"


class TestComputeConsensus:

    def test_single_sample_unchanged(self):
        only = sample()
        consensus = compute_consensus([only])
        assert consensus.record == only
        assert consensus.overall_score == 1.0
        assert consensus.needs_review is False
        assert consensus.sample_count == 1

    def test_identical_samples(self):
        samples = [sample(), sample(), sample()]
        consensus = compute_consensus(samples)
        assert consensus.overall_score == 1.0
        assert consensus.needs_review is False
        assert consensus.record == samples[0]

    def test_disagreeing_flag(self):
        """Name and agency agree, one non-critical boolean splits 1-1."""
        a = sample(is_open_to_submissions=True)
        b = sample(is_open_to_submissions=False)
        consensus = compute_consensus([a, b])

        assert consensus.record.agent_name == "Jane Doe"
        assert consensus.record.agency_name == "Acme Lit"
        assert consensus.field_agreement["is_open_to_submissions"].score == 0.5
        assert consensus.overall_score < 1.0
        assert consensus.critical_inconsistent == []
        assert consensus.needs_review is False

    def test_critical_disagreement_flags_review(self):
        consensus = compute_consensus([sample(), sample(email="other@acmelit.com")])
        assert "email" in consensus.critical_inconsistent
        assert consensus.needs_review is True

    def test_low_overall_score_flags_review(self):
        a = sample(agent_role="Agent", estimated_response_time="4 weeks", status_notice="Open",
                   manuscript_wishlist_summary="A", genres_raw="x", hard_nos_raw="y",
                   audience_raw="z", requires_bio=True, requires_expose=True, country="USA",
                   website="https://a.com", submission_url="https://a.com/s",
                   agent_name_evidence="e1", agency_name_evidence="e2",
                   is_open_to_submissions_evidence="e3", specific_keywords=["k"],
                   genres_nonfiction=["Memoir"], hard_nos=["Poetry"], target_audience=["Adult"],
                   requires_manuscript=True, is_open_to_submissions=False, genres_fiction=[])
        b = sample()
        consensus = compute_consensus([a, b])
        assert consensus.overall_score < 0.7
        assert consensus.needs_review is True

    def test_metadata_not_scored(self):
        a = sample(source_url="https://a.com/1")
        b = sample(source_url="https://a.com/2")
        consensus = compute_consensus([a, b])
        assert "source_url" not in consensus.field_agreement
        assert consensus.overall_score == 1.0
        assert consensus.record.source_url == "https://a.com/1"

    def test_list_order_does_not_matter(self):
        a = sample(genres_fiction=["Thriller", "Romance"])
        b = sample(genres_fiction=["Romance", "Thriller"])
        consensus = compute_consensus([a, b])
        assert consensus.field_agreement["genres_fiction"].score == 1.0

    def test_no_samples(self):
        with pytest.raises(ConsistencyError):
            compute_consensus([])

    def test_report(self):
        consensus = compute_consensus([sample(), sample(is_open_to_submissions=False)])
        report = consensus.report()
        assert report.samples == 2
        assert report.field_scores["is_open_to_submissions"] == {"score": 50, "agreement": "1/2"}


class TestAdjustConfidence:

    @pytest.mark.parametrize("base,score,expected", [
        (50, 0.9, 60),
        (50, 0.8, 60),
        (50, 0.7, 55),
        (50, 0.6, 55),
        (50, 0.5, 35),
        (95, 1.0, 100),
        (10, 0.1, 0),
    ])
    def test_adjustment(self, base, score, expected):
        assert adjust_confidence(base, score) == expected


class StubExtractor:
    """Returns queued samples and records the temperatures it was asked for."""

    def __init__(self, results):
        self.results = list(results)
        self.temperatures = []

    async def extract(self, page, temperature=0.0, known_fields=None):
        self.temperatures.append(temperature)
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class TestSelfConsistency:

    page = CandidatePage(url="https://acmelit.com/jane", text="x" * 300)

    def test_ascending_schedule(self):
        stub = StubExtractor([sample(), sample(), sample()])
        engine = SelfConsistency(stub, samples=3, schedule=(0.0, 0.3))
        asyncio.run(engine.run(self.page))
        assert stub.temperatures == [0.0, 0.3, 0.3]

    def test_tolerates_failed_samples(self):
        stub = StubExtractor([error_record(self.page.url, "timeout"), sample()])
        consensus = asyncio.run(SelfConsistency(stub, samples=2).run(self.page))
        assert consensus.sample_count == 1
        assert consensus.record.agent_name == "Jane Doe"

    def test_tolerates_raised_samples(self):
        stub = StubExtractor([RuntimeError("boom"), sample()])
        consensus = asyncio.run(SelfConsistency(stub, samples=2).run(self.page))
        assert consensus.sample_count == 1

    def test_all_failed(self):
        stub = StubExtractor([error_record(self.page.url, "a"), error_record(self.page.url, "b")])
        with pytest.raises(ConsistencyError):
            asyncio.run(SelfConsistency(stub, samples=2).run(self.page))

    def test_invalid_sample_count(self):
        with pytest.raises(ValueError):
            SelfConsistency(StubExtractor([]), samples=0)
