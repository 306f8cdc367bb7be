"""
Genre registry models - canonical taxonomy terms with embedding fingerprints.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import Field

from .base import FinderModel


REGISTRY_SCHEMA_VERSION = 2


class Provenance(str, Enum):
    """Where a registry entry came from."""
    SEED = "seed"
    USER = "user"


class GenreCategory(str, Enum):
    """Registry partition."""
    FICTION = "fiction"
    NONFICTION = "nonfiction"


class RegistryEntry(FinderModel):
    """
    One canonical term.

    An entry without a fingerprint still matches on name or alias,
    it is just skipped during vector matching.
    """
    name: str
    aliases: list[str] = Field(default_factory=list)
    fingerprint: Optional[list[float]] = None
    added_at: datetime = Field(default_factory=datetime.now)
    provenance: Provenance = Provenance.SEED
    category: Optional[GenreCategory] = None

    @property
    def has_fingerprint(self) -> bool:
        return bool(self.fingerprint)


class Registry(FinderModel):
    """Versioned container of registry entries."""
    schema_version: int = REGISTRY_SCHEMA_VERSION
    embedding_model_id: str = ""
    last_updated: datetime = Field(default_factory=datetime.now)
    entries: list[RegistryEntry] = Field(default_factory=list)

    def touch(self) -> None:
        self.last_updated = datetime.now()

    def in_category(self, category: Optional[str] = None) -> list[RegistryEntry]:
        """Entries of one partition, or all entries when category is None."""
        if category is None:
            return list(self.entries)
        return [e for e in self.entries if e.category is not None and e.category.value == category]

    def names(self, category: Optional[str] = None) -> list[str]:
        return [e.name for e in self.in_category(category)]

    def find(self, name: str, category: Optional[str] = None) -> Optional[RegistryEntry]:
        """Case-insensitive lookup by canonical name within a partition."""
        wanted = name.strip().lower()
        for entry in self.in_category(category):
            if entry.name.lower() == wanted:
                return entry
        return None
