"""
Crawl orchestration for one agency site.

DISCOVER → FILTER → FETCH → TRIAGE → EXTRACT → DEDUPLICATE → EMIT

FILTER may jump straight to EMIT with a CrawlWarning when the site has
more candidate pages than the configured cap. Single-page mode starts at
FETCH with only the seed URL and skips triage.

Nothing raised inside a unit (one fetch, one page extraction) aborts the
run; it is recorded as a PageFailure and the run continues.
"""

import asyncio
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from config import Settings
from models import (
    AgencyKnowledge,
    CandidatePage,
    ContactSuggestions,
    CrawlResult,
    CrawlWarning,
    ExtractionSample,
    PageFailure,
    ValidatedRecord,
    is_sentinel,
    UNKNOWN,
)
from .consistency import ConsistencyError, SelfConsistency, compute_consensus
from .country import resolve_country
from .discovery import discover_sitemap_urls, filter_links, prioritize
from .extract import Extractor, suggestions_for_review
from .fetcher import PageFetcher
from .oracle import OracleClient, OracleParams
from .prompts import build_triage_prompt
from .validate import remove_duplicates, validate

TRIAGE_SKIP_AT = 2  # This many pages or fewer are all extracted
SNIPPET_CHARS = 200
WARNING_SAMPLE = 10
SECONDS_PER_PAGE = 3


class CrawlPhase(Enum):
    """States of a crawl run."""
    DISCOVER = "discover"
    FILTER = "filter"
    FETCH = "fetch"
    TRIAGE = "triage"
    EXTRACT = "extract"
    DEDUPLICATE = "deduplicate"
    EMIT = "emit"


@dataclass
class CrawlState:
    """Everything one run accumulates. Discarded when the run ends."""
    seed_url: str
    single: bool = False
    confirm: bool = False
    phase: CrawlPhase = CrawlPhase.DISCOVER
    seed_page: Optional[CandidatePage] = None
    candidates: List[str] = field(default_factory=list)
    pages: List[CandidatePage] = field(default_factory=list)
    selected: List[CandidatePage] = field(default_factory=list)
    records: List[ValidatedRecord] = field(default_factory=list)
    samples: List[ExtractionSample] = field(default_factory=list)
    knowledge: Optional[AgencyKnowledge] = None  # Set once, never replaced
    country: Optional[str] = None
    result: CrawlResult = field(default_factory=CrawlResult)

    def fail(self, url: str, stage: str, error: str) -> None:
        self.result.failures.append(PageFailure(url=url, stage=stage, error=error))


class CrawlOrchestrator:
    """Drives one crawl run through its phases."""

    def __init__(self, fetcher: PageFetcher, extractor: Extractor, oracle: OracleClient,
                 settings: Settings, consistency: Optional[SelfConsistency] = None):
        self.fetcher = fetcher
        self.extractor = extractor
        self.oracle = oracle
        self.settings = settings
        self.consistency = consistency
        self._handlers = {
            CrawlPhase.DISCOVER: self._discover,
            CrawlPhase.FILTER: self._filter,
            CrawlPhase.FETCH: self._fetch,
            CrawlPhase.TRIAGE: self._triage,
            CrawlPhase.EXTRACT: self._extract,
            CrawlPhase.DEDUPLICATE: self._deduplicate,
        }

    async def run(self, url: str, confirm: bool = False) -> CrawlResult:
        """Dynamic crawl: discover pages from the seed URL."""
        return await self._run(CrawlState(seed_url=url, confirm=confirm))

    async def run_single(self, url: str) -> CrawlResult:
        """Fetch and extract only `url`."""
        return await self._run(CrawlState(seed_url=url, single=True, phase=CrawlPhase.FETCH))

    async def _run(self, state: CrawlState) -> CrawlResult:
        print(f"[CRAWL] {'Single page' if state.single else 'Crawl'}: {state.seed_url}")
        try:
            while state.phase is not CrawlPhase.EMIT:
                state.phase = await self._handlers[state.phase](state)
        except Exception as e:
            print(f"[ERROR] Crawl of {state.seed_url} stopped in {state.phase.value}: {e}")
            state.fail(state.seed_url, state.phase.value, str(e))
        return self._emit(state)

    async def _discover(self, state: CrawlState) -> CrawlPhase:
        seed = await asyncio.to_thread(self.fetcher.fetch, state.seed_url)
        if not seed.success:
            state.fail(state.seed_url, "fetch", seed.error or "fetch failed")
            return CrawlPhase.EMIT
        state.seed_page = seed

        timeout = self.settings.sitemap_timeout
        sitemap = await asyncio.to_thread(
            discover_sitemap_urls, state.seed_url, lambda u: self.fetcher.fetch_text(u, timeout)
        )
        if sitemap:
            state.candidates = sitemap
        else:
            print(f"[CRAWL] No sitemap, using {len(seed.links)} links from seed page")
            state.candidates = list(seed.links)

        state.country = await asyncio.to_thread(resolve_country, seed, self.fetcher)
        return CrawlPhase.FILTER

    async def _filter(self, state: CrawlState) -> CrawlPhase:
        filtered = filter_links(state.candidates, exclude=state.seed_url)
        ranked = await prioritize(filtered, state.seed_url, self.oracle, self.settings.triage_timeout)
        limit = self.settings.max_links
        print(f"[CRAWL] {len(ranked)} candidate pages after filtering")

        if len(ranked) > limit:
            if not state.confirm:
                skipped = ranked[limit:]
                state.result.warning = CrawlWarning(
                    found_links=len(ranked),
                    limit=limit,
                    overflow=len(skipped),
                    sample_urls=skipped[:WARNING_SAMPLE],
                    estimated_minutes=round(len(ranked) * SECONDS_PER_PAGE / 60),
                    message=(f"Found {len(ranked)} candidate pages, more than the limit of {limit}. "
                             f"Confirm to crawl the top {limit}."),
                )
                print(f"[WARN] {len(ranked)} candidates exceed limit {limit}, awaiting confirmation")
                return CrawlPhase.EMIT
            ranked = ranked[:limit]

        state.candidates = ranked
        return CrawlPhase.FETCH

    async def _fetch(self, state: CrawlState) -> CrawlPhase:
        urls = list(dict.fromkeys([state.seed_url] + state.candidates))
        fetched: Dict[int, CandidatePage] = {}
        queue = deque(enumerate(urls))

        if state.seed_page is not None:
            fetched[0] = state.seed_page
            queue.popleft()

        async def worker():
            while queue:
                index, url = queue.popleft()
                try:
                    fetched[index] = await asyncio.to_thread(self.fetcher.fetch, url)
                except Exception as e:
                    fetched[index] = CandidatePage(url=url, success=False, error=str(e))

        workers = min(self.settings.concurrency, len(queue))
        await asyncio.gather(*(worker() for _ in range(workers)))

        # Completion order is arbitrary; restore URL-list order
        for index in range(len(urls)):
            page = fetched[index]
            if not page.success:
                state.fail(page.url, "fetch", page.error or "fetch failed")
                continue
            state.result.pages_fetched += 1
            if len(page.text) > self.settings.min_page_chars:
                state.pages.append(page)
            else:
                print(f"[FETCH] Skipping short page ({len(page.text)} chars): {page.url}")

        print(f"[CRAWL] {len(state.pages)} usable pages of {len(urls)} URLs")
        return CrawlPhase.TRIAGE

    async def _triage(self, state: CrawlState) -> CrawlPhase:
        pages = state.pages
        if state.single or len(pages) <= TRIAGE_SKIP_AT:
            state.selected = list(pages)
        else:
            state.selected = await self.triage(state.seed_url, pages)
        state.result.pages_triaged = len(state.selected)
        return CrawlPhase.EXTRACT

    async def triage(self, base_url: str, pages: List[CandidatePage]) -> List[CandidatePage]:
        """One batched relevance call. Any failure keeps every page."""
        chars = self.settings.triage_preview_chars
        previews = [(p.url, p.title, p.text[:chars]) for p in pages]
        params = OracleParams(temperature=0.0, max_tokens=500, num_ctx=4096, top_p=0.1,
                              timeout=self.settings.triage_timeout)
        parsed = await self.oracle.ask_json(build_triage_prompt(base_url, previews), params)
        if not parsed.ok or not isinstance(parsed.data, dict) \
                or not isinstance(parsed.data.get("relevant"), list):
            print(f"[TRIAGE] Unusable response, keeping all {len(pages)} pages")
            return list(pages)

        indices = set()
        for value in parsed.data["relevant"]:
            if isinstance(value, bool):
                continue
            try:
                index = int(value)
            except (TypeError, ValueError):
                continue
            if 0 <= index < len(pages):
                indices.add(index)

        selected = [pages[i] for i in sorted(indices)]
        print(f"[TRIAGE] {len(selected)}/{len(pages)} pages relevant")
        return selected

    async def _extract(self, state: CrawlState) -> CrawlPhase:
        for page in state.selected:
            try:
                await self._extract_page(state, page)
            except Exception as e:
                print(f"[CRAWL] Extraction failed for {page.url}: {e}")
                state.fail(page.url, "extract", str(e))
        return CrawlPhase.DEDUPLICATE

    async def _extract_page(self, state: CrawlState, page: CandidatePage) -> None:
        known = None
        if state.knowledge is not None and state.knowledge.is_confident:
            known = state.knowledge.known_fields()

        if self.consistency is not None:
            try:
                consensus = await self.consistency.run(page, known)
            except ConsistencyError as e:
                state.fail(page.url, "extract", str(e))
                return
        else:
            sample = await self.extractor.extract(page, known_fields=known)
            if sample.is_error:
                state.fail(page.url, "extract", sample.error)
                return
            consensus = compute_consensus([sample])

        record = consensus.record
        if state.country:
            record.country = state.country
        record.source_snippet = page.text[:SNIPPET_CHARS]
        record.contact_suggestions = ContactSuggestions(emails=page.emails, websites=page.urls)
        state.samples.append(record)

        validated = validate(consensus, self.settings.quality_floor)

        if state.knowledge is None and not is_sentinel(validated.record.agency_name):
            state.knowledge = AgencyKnowledge(
                agency_name=validated.record.agency_name,
                agency_name_evidence=validated.record.agency_name_evidence,
                country=state.country or validated.record.country or UNKNOWN,
            )
            print(f"[CRAWL] Agency knowledge: {state.knowledge.agency_name}")

        if validated.passes_quality_gate:
            state.records.append(validated)
        else:
            state.result.rejected += 1

    async def _deduplicate(self, state: CrawlState) -> CrawlPhase:
        unique = remove_duplicates(state.records)
        state.result.duplicates_dropped = len(state.records) - len(unique)
        state.records = unique
        return CrawlPhase.EMIT

    def _emit(self, state: CrawlState) -> CrawlResult:
        result = state.result
        result.records = state.records
        result.genre_suggestions = suggestions_for_review(state.samples)
        if result.warning is None:
            print(f"[CRAWL] Done: {len(result.records)} agents, {result.rejected} rejected, "
                  f"{result.duplicates_dropped} duplicates, {len(result.failures)} failures")
        return result
