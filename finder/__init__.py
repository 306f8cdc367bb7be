"""
Finder - extract literary agent contacts from agency websites.

Modules:
- registry: Versioned genre vocabulary with embedding fingerprints
- matcher: Free-text genre terms -> registry names (exact, substring, cosine)
- oracle: Text-generation client and JSON repair
- extract: Multi-phase extraction of one page
- consistency: Repeated sampling and per-field majority vote
- validate: Normalization, confidence score, quality gate, dedup
- crawl: Orchestration (DISCOVER → FILTER → FETCH → TRIAGE → EXTRACT → DEDUPLICATE → EMIT)
- pipeline: Entry points
"""

from .embeddings import Embedder, EmbeddingError, cosine_similarity
from .oracle import OracleClient, OracleError, OracleParams, ParseResult, parse_json_response, repair_json
from .registry import (
    RegistryCache,
    load_registry,
    save_registry,
    build_registry,
    initialize_registry,
    add_approved,
)
from .matcher import MatchResult, Classification, normalize, find_best_match, classify_free_text
from .extract import Extractor, error_record
from .consistency import (
    SelfConsistency,
    ConsistencyError,
    compute_consensus,
    field_consensus,
    adjust_confidence,
)
from .validate import (
    is_valid_email,
    is_valid_url,
    normalize_name,
    validate_record,
    calculate_confidence,
    apply_quality_gate,
    validate,
    is_duplicate,
    remove_duplicates,
)
from .fetcher import PageFetcher, parse_html
from .crawl import CrawlOrchestrator, CrawlPhase, CrawlState
from .pipeline import Pipeline

__all__ = [
    # Embeddings
    "Embedder",
    "EmbeddingError",
    "cosine_similarity",
    # Oracle
    "OracleClient",
    "OracleError",
    "OracleParams",
    "ParseResult",
    "parse_json_response",
    "repair_json",
    # Registry
    "RegistryCache",
    "load_registry",
    "save_registry",
    "build_registry",
    "initialize_registry",
    "add_approved",
    # Matching
    "MatchResult",
    "Classification",
    "normalize",
    "find_best_match",
    "classify_free_text",
    # Extraction
    "Extractor",
    "error_record",
    "SelfConsistency",
    "ConsistencyError",
    "compute_consensus",
    "field_consensus",
    "adjust_confidence",
    # Validation
    "is_valid_email",
    "is_valid_url",
    "normalize_name",
    "validate_record",
    "calculate_confidence",
    "apply_quality_gate",
    "validate",
    "is_duplicate",
    "remove_duplicates",
    # Crawl
    "PageFetcher",
    "parse_html",
    "CrawlOrchestrator",
    "CrawlPhase",
    "CrawlState",
    "Pipeline",
]
