"""
Similarity matching of free-text genre terms against the registry.

Tiers, cheapest first:
1. Exact name/alias match      -> 1.0
2. Substring containment       -> 0.95  ("crime fiction" ~ "crime")
3. Embedding cosine similarity -> accepted at >= threshold
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional

from models import Registry, RegistryEntry, GenreSuggestion
from .embeddings import Embedder, EmbeddingError, cosine_similarity

DEFAULT_THRESHOLD = 0.82
MAX_SUGGESTIONS = 5

# Too generic to classify
SKIP_TERMS = {"fiction", "nonfiction", "non-fiction", "books", "novels", "literature"}

_ARTICLES = re.compile(r"\b(the|a|an)\b")
_SPACES = re.compile(r"\s+")
_SPLIT = re.compile(r"[,;]+")


@dataclass
class MatchResult:
    match: Optional[str]
    similarity: float
    best_candidate: Optional[str] = None
    category: Optional[str] = None


@dataclass
class Classification:
    """Accepted registry matches plus near-misses for manual review."""
    matches: List[MatchResult] = field(default_factory=list)
    suggestions: List[GenreSuggestion] = field(default_factory=list)

    def names(self, category: Optional[str] = None) -> List[str]:
        return [m.match for m in self.matches if category is None or m.category == category]


def normalize(term: str) -> str:
    """Lowercase, trim, drop articles, collapse whitespace."""
    text = (term or "").lower().strip()
    text = _ARTICLES.sub("", text)
    return _SPACES.sub(" ", text).strip()


def _category(entry: RegistryEntry) -> Optional[str]:
    return entry.category.value if entry.category is not None else None


def find_best_match(raw_term: str, registry: Registry, embedder: Optional[Embedder],
                    threshold: float = DEFAULT_THRESHOLD,
                    category: Optional[str] = None) -> MatchResult:
    """Match one raw term. First tier that hits wins."""
    term = normalize(raw_term)
    entries = registry.in_category(category)
    if not term or not entries:
        return MatchResult(match=None, similarity=0.0)

    for entry in entries:
        if term == normalize(entry.name) or term in (normalize(a) for a in entry.aliases):
            return MatchResult(entry.name, 1.0, entry.name, _category(entry))

    for entry in entries:
        name = normalize(entry.name)
        if name and (name in term or term in name):
            return MatchResult(entry.name, 0.95, entry.name, _category(entry))

    if embedder is None:
        return MatchResult(match=None, similarity=0.0)

    try:
        vector = embedder.embed(raw_term)
    except EmbeddingError as e:
        print(f"[MATCH] Embedding failed for {raw_term!r}: {e}")
        return MatchResult(match=None, similarity=0.0)

    best: Optional[RegistryEntry] = None
    best_score = -1.0
    for entry in entries:
        if not entry.has_fingerprint:
            continue
        score = cosine_similarity(vector, entry.fingerprint)
        if score > best_score:
            best, best_score = entry, score

    if best is None:
        return MatchResult(match=None, similarity=0.0)

    similarity = round(best_score, 2)
    if best_score >= threshold:
        return MatchResult(best.name, similarity, best.name, _category(best))
    return MatchResult(None, similarity, best.name, _category(best))


def split_terms(raw: str) -> List[str]:
    """Split a delimited genre string, dropping short and generic tokens."""
    terms = []
    for part in _SPLIT.split(raw or ""):
        term = part.strip()
        if len(term) <= 1 or normalize(term) in SKIP_TERMS:
            continue
        terms.append(term)
    return terms


def classify_free_text(raw: str, registry: Registry, embedder: Optional[Embedder],
                       threshold: float = DEFAULT_THRESHOLD,
                       category: Optional[str] = None,
                       max_suggestions: int = MAX_SUGGESTIONS) -> Classification:
    """
    Classify every term of a delimited string.

    Accepted matches are unique by canonical name. Rejects keep only the
    most similar `max_suggestions`.
    """
    result = Classification()
    seen = set()

    for term in split_terms(raw):
        found = find_best_match(term, registry, embedder, threshold, category)
        if found.match:
            if found.match not in seen:
                seen.add(found.match)
                result.matches.append(found)
        else:
            result.suggestions.append(GenreSuggestion(
                term=term,
                best_match=found.best_candidate,
                similarity=found.similarity,
            ))

    if len(result.suggestions) > max_suggestions:
        # Stable sort keeps first-seen order among equal similarities
        result.suggestions.sort(key=lambda s: -s.similarity)
        result.suggestions = result.suggestions[:max_suggestions]

    if result.matches or result.suggestions:
        print(f"[MATCH] {len(result.matches)} matched, {len(result.suggestions)} for review")
    return result
