"""
Pipeline facade - the entry points used by the HTTP API and the CLI.

Owns one RegistryCache for the process and wires the components.
None of the operations let a component exception escape, except
SinkConfigError from save(), which the caller must surface.
"""

import asyncio
from datetime import datetime
from typing import Iterable, Optional

from config import Settings, load_settings
from models import CrawlResult, PageFailure, RegistryEntry, SaveSummary, ValidatedRecord
from repositories import JsonRegistryRepository, RecordSink, RegistryRepository, get_sink
from .consistency import SelfConsistency
from .crawl import CrawlOrchestrator
from .embeddings import Embedder
from .extract import Extractor
from .fetcher import PageFetcher
from .oracle import OracleClient
from .registry import RegistryCache
from .validate import remove_duplicates

MODES = ("single", "dynamic")


class Pipeline:
    """Agent extraction pipeline with its collaborators."""

    def __init__(self, settings: Optional[Settings] = None,
                 oracle: Optional[OracleClient] = None,
                 embedder: Optional[Embedder] = None,
                 fetcher: Optional[PageFetcher] = None,
                 registry_repo: Optional[RegistryRepository] = None,
                 sink: Optional[RecordSink] = None):
        self.settings = settings or load_settings()
        self.oracle = oracle or OracleClient(self.settings.oracle_model)
        self.embedder = embedder or Embedder(self.settings.embedding_model, self.settings.embed_timeout)
        self.fetcher = fetcher or PageFetcher(timeout=self.settings.fetch_timeout)
        self.registry_repo = registry_repo or JsonRegistryRepository(self.settings.registry_path)
        self._sink = sink

        self.registry_cache = RegistryCache(self.registry_repo, self.embedder)
        self.extractor = Extractor(self.oracle, self.embedder, self.registry_cache, self.settings)
        consistency = None
        if self.settings.self_consistency:
            consistency = SelfConsistency(self.extractor, samples=self.settings.consistency_samples)
        self.orchestrator = CrawlOrchestrator(self.fetcher, self.extractor, self.oracle,
                                              self.settings, consistency=consistency)

    # === Extraction ===

    async def aextract(self, url: str, confirm: bool = False) -> CrawlResult:
        return await self.orchestrator.run(url, confirm=confirm)

    async def acrawl(self, urls: Iterable[str], mode: str = "dynamic",
                     confirm: bool = False) -> CrawlResult:
        if mode not in MODES:
            raise ValueError(f"Unknown mode: {mode}")

        combined = CrawlResult()
        for url in urls:
            try:
                if mode == "single":
                    result = await self.orchestrator.run_single(url)
                else:
                    result = await self.orchestrator.run(url, confirm=confirm)
            except Exception as e:
                print(f"[ERROR] {url}: {e}")
                combined.failures.append(PageFailure(url=url, stage="crawl", error=str(e)))
                continue
            combined.merge(result)

        before = len(combined.records)
        combined.records = remove_duplicates(combined.records)
        combined.duplicates_dropped += before - len(combined.records)
        return combined

    def extract(self, url: str, confirm: bool = False) -> CrawlResult:
        """Crawl one agency site. May return a warning instead of records."""
        return asyncio.run(self.aextract(url, confirm))

    def crawl(self, urls: Iterable[str], mode: str = "dynamic", confirm: bool = False) -> CrawlResult:
        """Extract several URLs, each as a single page or a full site crawl."""
        return asyncio.run(self.acrawl(list(urls), mode, confirm))

    # === Registry ===

    def approve_term(self, name: str, category: Optional[str]) -> RegistryEntry:
        return self.registry_cache.approve(name, category)

    def list_registry(self, category: Optional[str] = None) -> list[RegistryEntry]:
        return self.registry_cache.get().in_category(category)

    # === Persistence ===

    @property
    def sink(self) -> RecordSink:
        if self._sink is None:
            self._sink = get_sink(self.settings)
        return self._sink

    def save(self, records: Iterable[ValidatedRecord]) -> SaveSummary:
        """Write records one at a time; one failure never blocks the rest."""
        sink = self.sink  # SinkConfigError propagates
        summary = SaveSummary()
        for record in records:
            try:
                sink.append(record, datetime.now())
                summary.saved += 1
            except Exception as e:
                summary.failed += 1
                summary.errors.append(f"{record.record.agent_name}: {e}")
                print(f"[SINK] Failed to save {record.record.agent_name}: {e}")
        print(f"[SINK] Saved {summary.saved}, failed {summary.failed}")
        return summary

    # === Status ===

    def health(self) -> dict:
        return {
            "status": "ok",
            "oracle": self.oracle.is_available(self.settings.probe_timeout),
            "oracle_model": self.settings.oracle_model,
            "embeddings": self.embedder.is_available(),
            "embedding_model": self.settings.embedding_model,
        }
