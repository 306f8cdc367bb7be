"""
Domain models - single source of truth for all entities.

Design principles:
- Every entity defined once
- Validation at the boundary (oracle output is untrusted)
- Backend-agnostic (repository handles persistence)
"""

from .base import FinderModel
from .registry import Registry, RegistryEntry, Provenance, GenreCategory, REGISTRY_SCHEMA_VERSION
from .page import CandidatePage
from .record import (
    ExtractionSample,
    GenreSuggestion,
    ContactSuggestions,
    FieldAgreement,
    ConsensusRecord,
    ConsistencyReport,
    AgencyKnowledge,
    ValidatedRecord,
    is_sentinel,
    UNKNOWN,
    NOT_FOUND,
    ERROR,
    LIST_FIELDS,
    METADATA_FIELDS,
)
from .crawl import PageFailure, CrawlWarning, CrawlResult, SaveSummary

__all__ = [
    # Base
    "FinderModel",
    # Registry
    "Registry",
    "RegistryEntry",
    "Provenance",
    "GenreCategory",
    "REGISTRY_SCHEMA_VERSION",
    # Pages
    "CandidatePage",
    # Records
    "ExtractionSample",
    "GenreSuggestion",
    "ContactSuggestions",
    "FieldAgreement",
    "ConsensusRecord",
    "ConsistencyReport",
    "AgencyKnowledge",
    "ValidatedRecord",
    "is_sentinel",
    "UNKNOWN",
    "NOT_FOUND",
    "ERROR",
    "LIST_FIELDS",
    "METADATA_FIELDS",
    # Crawl
    "PageFailure",
    "CrawlWarning",
    "CrawlResult",
    "SaveSummary",
]
