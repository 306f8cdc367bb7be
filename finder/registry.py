"""
Genre registry - load, seed, persist and extend the controlled vocabulary.

Writes always go through the repository's atomic replace. After every
write the owning RegistryCache must be invalidated so the next
classification sees the new term.
"""

import threading
from datetime import datetime
from typing import Optional

from models import Registry, RegistryEntry, Provenance, GenreCategory
from repositories import RegistryRepository
from .embeddings import Embedder, EmbeddingError
from .taxonomy import seed_terms, seed_aliases


def load_registry(repo: RegistryRepository) -> Optional[Registry]:
    """Read the registry; None if never initialized or unreadable."""
    registry = repo.load()
    if registry is not None:
        print(f"[REGISTRY] Loaded {len(registry.entries)} terms from storage")
    return registry


def save_registry(repo: RegistryRepository, registry: Registry) -> None:
    registry.touch()
    repo.save(registry)


def build_registry(seeds: dict[str, list[str]], embedder: Optional[Embedder],
                   aliases: Optional[dict[str, list[str]]] = None) -> Registry:
    """
    Create a fresh registry from seed terms.

    A term whose embedding fails keeps fingerprint=None and only matches
    by name or alias.
    """
    aliases = aliases or {}
    registry = Registry(embedding_model_id=embedder.model_id if embedder else "")
    failed = 0

    for category, names in seeds.items():
        cat = GenreCategory(category) if category else None
        for name in names:
            fingerprint = None
            if embedder is not None:
                try:
                    fingerprint = embedder.embed(name)
                except EmbeddingError as e:
                    failed += 1
                    print(f"[REGISTRY] No fingerprint for {name!r}: {e}")
            registry.entries.append(RegistryEntry(
                name=name,
                aliases=[a.lower() for a in aliases.get(name, [])],
                fingerprint=fingerprint,
                provenance=Provenance.SEED,
                category=cat,
            ))

    total = len(registry.entries)
    print(f"[REGISTRY] Seeded {total} terms ({total - failed} with fingerprints)")
    return registry


def initialize_registry(repo: RegistryRepository, embedder: Optional[Embedder],
                        seeds: Optional[dict[str, list[str]]] = None) -> Registry:
    """Seed a new registry and persist it."""
    registry = build_registry(seeds or seed_terms(), embedder,
                              aliases=seed_aliases() if seeds is None else None)
    save_registry(repo, registry)
    return registry


def add_approved(repo: RegistryRepository, registry: Registry, name: str,
                 category: Optional[str], embedder: Optional[Embedder],
                 cache: Optional["RegistryCache"] = None) -> RegistryEntry:
    """
    Append a user-approved term, persist, and invalidate the cache.

    Approving a name that already exists in the partition returns the
    existing entry unchanged.
    """
    name = name.strip()
    if not name:
        raise ValueError("Genre name is required")
    if category is not None and category not in {c.value for c in GenreCategory}:
        raise ValueError(f"Unknown category: {category}")

    existing = registry.find(name, category)
    if existing is not None:
        print(f"[REGISTRY] {name!r} already present in {category or 'registry'}")
        return existing

    fingerprint = embedder.try_embed(name) if embedder is not None else None
    entry = RegistryEntry(
        name=name,
        fingerprint=fingerprint,
        provenance=Provenance.USER,
        category=GenreCategory(category) if category else None,
        added_at=datetime.now(),
    )
    registry.entries.append(entry)
    save_registry(repo, registry)
    print(f"[REGISTRY] Approved {name!r} ({category or 'flat'})")

    if cache is not None:
        cache.invalidate()
    return entry


class RegistryCache:
    """
    Process-scoped view of the registry for repeated classification.

    Owned by the pipeline; call invalidate() right after any write.
    """

    def __init__(self, repo: RegistryRepository, embedder: Optional[Embedder]):
        self.repo = repo
        self.embedder = embedder
        self._registry: Optional[Registry] = None
        self._lock = threading.Lock()

    def get(self) -> Registry:
        """Safe to call from worker threads; seeds at most once."""
        with self._lock:
            if self._registry is None:
                self._registry = self._load_or_create()
            return self._registry

    def invalidate(self) -> None:
        self._registry = None

    def approve(self, name: str, category: Optional[str]) -> RegistryEntry:
        return add_approved(self.repo, self.get(), name, category, self.embedder, cache=self)

    def _load_or_create(self) -> Registry:
        registry = load_registry(self.repo)
        if registry is not None:
            return registry

        print("[REGISTRY] No usable registry found, initializing from seeds")
        try:
            return initialize_registry(self.repo, self.embedder)
        except OSError as e:
            # Storage unavailable: classify against an in-memory registry
            print(f"[ERROR] Could not persist registry: {e}")
            return build_registry(seed_terms(), self.embedder, aliases=seed_aliases())
