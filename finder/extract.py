"""
Multi-phase agent extraction from one page.

Phase 1: one broad oracle call -> full record with sentinel defaults
Phase 2: three independent classifiers, run concurrently
         a) genres    - similarity matcher against the registry (no oracle)
         b) hard nos  - focused oracle call, registry names only
         c) audience  - focused oracle call, closed audience list only
Phase 3: profile fingerprint (optional, non-fatal)

Phase 1 failures produce an error record instead of raising.
"""

import asyncio
from datetime import datetime
from typing import Optional

from pydantic import ValidationError

from config import Settings
from models import (
    CandidatePage,
    ExtractionSample,
    GenreSuggestion,
    Registry,
    is_sentinel,
    UNKNOWN,
    NOT_FOUND,
    ERROR,
)
from .embeddings import Embedder
from .matcher import Classification, classify_free_text
from .oracle import OracleClient, OracleParams
from .prompts import build_extract_prompt, build_hard_nos_prompt, build_audience_prompt
from .registry import RegistryCache
from .taxonomy import audience_categories

# Keys phase 1 is allowed to set; classification output is never taken from the oracle
PHASE1_FIELDS = (
    "agent_name", "agent_name_evidence", "agency_name", "agency_name_evidence",
    "agent_role", "contact_email", "website", "submission_url",
    "is_open_to_submissions", "is_open_to_submissions_evidence", "status_notice",
    "estimated_response_time", "genres_raw", "hard_nos_raw", "audience_raw",
    "manuscript_wishlist_summary", "specific_keywords",
    "requires_bio", "requires_expose", "requires_manuscript",
)

# Empty values for these are replaced by the model's sentinel default
SENTINEL_DEFAULTS = {
    "agent_name": UNKNOWN,
    "agency_name": UNKNOWN,
    "agent_role": UNKNOWN,
    "contact_email": NOT_FOUND,
    "website": NOT_FOUND,
    "submission_url": NOT_FOUND,
    "estimated_response_time": UNKNOWN,
    "manuscript_wishlist_summary": UNKNOWN,
}


def error_record(url: str, message: str) -> ExtractionSample:
    """Zero-information record for a page whose extraction failed."""
    return ExtractionSample(
        agent_name=ERROR,
        agency_name=ERROR,
        country=UNKNOWN,
        is_open_to_submissions=False,
        source_url=url,
        timestamp=datetime.now(),
        error=message,
    )


def _phase1_data(raw: dict) -> dict:
    data = {k: raw.get(k) for k in PHASE1_FIELDS if k in raw}
    for key, default in SENTINEL_DEFAULTS.items():
        value = data.get(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            data[key] = default
    return data


def profile_text(record: ExtractionSample) -> str:
    """Text the profile fingerprint is computed from."""
    parts = []
    if not is_sentinel(record.genres_raw):
        parts.append(f"Genres: {record.genres_raw}")
    if not is_sentinel(record.manuscript_wishlist_summary):
        parts.append(f"Wishlist: {record.manuscript_wishlist_summary}")
    if record.specific_keywords:
        parts.append(f"Keywords: {', '.join(record.specific_keywords)}")
    audience = record.target_audience or ([record.audience_raw] if record.audience_raw else [])
    if audience:
        parts.append(f"Audience: {', '.join(audience)}")
    return "\n".join(parts)


class Extractor:
    """Runs the three extraction phases for one page."""

    def __init__(self, oracle: OracleClient, embedder: Optional[Embedder],
                 registry_cache: RegistryCache, settings: Settings):
        self.oracle = oracle
        self.embedder = embedder
        self.registry_cache = registry_cache
        self.settings = settings

    def _broad_params(self, temperature: float) -> OracleParams:
        return OracleParams(
            temperature=temperature,
            max_tokens=4000,
            num_ctx=16384,
            top_p=0.1,
            repeat_penalty=1.2,
            timeout=self.settings.extract_timeout,
        )

    def _focused_params(self) -> OracleParams:
        return OracleParams(
            temperature=0.0,
            max_tokens=500,
            num_ctx=2048,
            top_p=0.1,
            timeout=self.settings.classify_timeout,
        )

    async def extract(self, page: CandidatePage, temperature: float = 0.0,
                      known_fields: Optional[dict] = None) -> ExtractionSample:
        """Extract one agent record. Never raises; failures give an error record."""
        try:
            return await self._extract(page, temperature, known_fields)
        except Exception as e:
            print(f"[EXTRACT] Failed for {page.url}: {e}")
            return error_record(page.url, str(e))

    async def _extract(self, page: CandidatePage, temperature: float,
                       known_fields: Optional[dict]) -> ExtractionSample:
        print(f"[EXTRACT] Phase 1: {page.url} ({len(page.text)} chars, t={temperature})")
        prompt = build_extract_prompt(page.title, page.text, page.links,
                                      known_fields, self.settings.max_prompt_chars)
        parsed = await self.oracle.ask_json(prompt, self._broad_params(temperature))
        if not parsed.ok:
            print(f"[EXTRACT] Phase 1 unusable: {parsed.error}")
            return error_record(page.url, f"Phase 1: {parsed.error}")
        if not isinstance(parsed.data, dict):
            return error_record(page.url, "Phase 1: response is not a JSON object")

        try:
            record = ExtractionSample.model_validate(_phase1_data(parsed.data))
        except ValidationError as e:
            return error_record(page.url, f"Phase 1: invalid fields ({e.error_count()} errors)")

        print(f"[EXTRACT] Agent: {record.agent_name}, Agency: {record.agency_name}")

        registry = None
        if not (is_sentinel(record.genres_raw) and is_sentinel(record.hard_nos_raw)):
            # A cold cache embeds every seed term
            try:
                registry = await asyncio.to_thread(self.registry_cache.get)
            except Exception as e:
                print(f"[EXTRACT] Registry unavailable: {e}")

        genres, hard_nos, audience = await asyncio.gather(
            self._classify_genres(record.genres_raw, registry),
            self._classify_hard_nos(record.hard_nos_raw, registry),
            self._classify_audience(record.audience_raw, record.genres_raw),
            return_exceptions=True,
        )
        if isinstance(genres, BaseException):
            print(f"[EXTRACT] Genre classification failed: {genres}")
            genres = Classification()
        if isinstance(hard_nos, BaseException):
            print(f"[EXTRACT] Hard-no classification failed: {hard_nos}")
            hard_nos = []
        if isinstance(audience, BaseException):
            print(f"[EXTRACT] Audience classification failed: {audience}")
            audience = []

        record.genres_fiction = genres.names("fiction")
        record.genres_nonfiction = genres.names("nonfiction")
        # Flat registries have no partitions; treat their matches as fiction
        flat = genres.names(None)
        if not record.genres_fiction and not record.genres_nonfiction and flat:
            record.genres_fiction = flat
        record.genre_suggestions = genres.suggestions
        record.hard_nos = hard_nos
        record.target_audience = audience

        if self.settings.profile_embedding and self.embedder is not None:
            text = profile_text(record)
            if text:
                record.profile_embedding = await asyncio.to_thread(self.embedder.try_embed, text)

        if known_fields:
            for key, value in known_fields.items():
                setattr(record, key, value)
        record.email = record.contact_email
        record.source_url = page.url
        record.source_title = page.title
        record.timestamp = datetime.now()
        return record

    async def _classify_genres(self, raw: str, registry: Optional[Registry]) -> Classification:
        if is_sentinel(raw) or registry is None:
            return Classification()
        return await asyncio.to_thread(
            classify_free_text, raw, registry, self.embedder, self.settings.match_threshold,
        )

    async def _classify_hard_nos(self, raw: str, registry: Optional[Registry]) -> list[str]:
        if is_sentinel(raw) or registry is None:
            return []
        names = list(dict.fromkeys(registry.names()))
        parsed = await self.oracle.ask_json(build_hard_nos_prompt(raw, names), self._focused_params())
        if not parsed.ok or not isinstance(parsed.data, dict):
            print(f"[EXTRACT] Hard nos unparseable: {parsed.error}")
            return []
        return _filter_vocabulary(parsed.data.get("hard_nos"), names)

    async def _classify_audience(self, audience_raw: str, genres_raw: str) -> list[str]:
        combined = ", ".join(p for p in (audience_raw, genres_raw) if not is_sentinel(p))
        if not combined:
            return []
        allowed = audience_categories()
        parsed = await self.oracle.ask_json(build_audience_prompt(combined, allowed), self._focused_params())
        if not parsed.ok or not isinstance(parsed.data, dict):
            print(f"[EXTRACT] Audience unparseable: {parsed.error}")
            return []
        return _filter_vocabulary(parsed.data.get("audience"), allowed)


def _filter_vocabulary(values, allowed: list[str]) -> list[str]:
    """Keep only exact vocabulary names, in response order, without repeats."""
    if not isinstance(values, list):
        return []
    allowed_set = set(allowed)
    kept = []
    for value in values:
        if isinstance(value, str) and value in allowed_set and value not in kept:
            kept.append(value)
    return kept


def suggestions_for_review(samples: list[ExtractionSample]) -> list[GenreSuggestion]:
    """Unique near-miss genre terms across records, most similar first."""
    by_term = {}
    for sample in samples:
        for s in sample.genre_suggestions:
            key = s.term.lower()
            if key not in by_term or s.similarity > by_term[key].similarity:
                by_term[key] = s
    return sorted(by_term.values(), key=lambda s: -s.similarity)
