"""Unit tests for genre matching and cosine similarity."""

import math

import pytest
from finder.embeddings import cosine_similarity
from finder.matcher import classify_free_text, find_best_match, normalize, split_terms


class TestCosineSimilarity:
    """Cosine similarity properties."""

    def test_identical(self):
        assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)

    def test_opposite(self):
        assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)

    def test_orthogonal(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_symmetric(self):
        a, b = [0.3, -1.2, 4.0], [2.0, 0.5, -0.7]
        assert cosine_similarity(a, b) == cosine_similarity(b, a)

    def test_in_range(self):
        vectors = [[1e-9, 3.0], [5.0, -2.0], [-0.1, -0.1], [7.0, 7.0000001]]
        for a in vectors:
            for b in vectors:
                assert -1.0 <= cosine_similarity(a, b) <= 1.0

    def test_zero_magnitude_is_zero(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 2.0]) == 0.0
        assert cosine_similarity([1.0, 2.0], [0.0, 0.0]) == 0.0

    def test_empty_is_zero(self):
        assert cosine_similarity([], [1.0]) == 0.0

    def test_mismatched_dimensions_is_zero(self):
        assert cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0]) == 0.0


class TestNormalize:

    def test_articles_stripped(self):
        assert normalize("  The   Thriller ") == "thriller"

    def test_article_inside_word_kept(self):
        assert normalize("Anthology") == "anthology"

    def test_articles_between_words(self):
        assert normalize("Tales of a City") == "tales of city"


class TestFindBestMatch:
    """Tiered matching."""

    def test_exact_with_article(self, small_registry):
        result = find_best_match("the Thriller", small_registry, embedder=None)
        assert result.match == "Thriller"
        assert result.similarity == 1.0

    def test_every_entry_matches_with_article(self, small_registry):
        for entry in small_registry.entries:
            result = find_best_match(f"the {entry.name}", small_registry, embedder=None)
            assert result.match == entry.name
            assert result.similarity == 1.0

    def test_alias(self, small_registry):
        result = find_best_match("Sci-Fi", small_registry, embedder=None)
        assert result.match == "Science Fiction"
        assert result.similarity == 1.0

    def test_substring(self, small_registry):
        result = find_best_match("Psychological Thrillers", small_registry, embedder=None)
        assert result.match == "Thriller"
        assert result.similarity == 0.95

    def test_entry_without_fingerprint_still_exact_matches(self, small_registry):
        result = find_best_match("poetry", small_registry, embedder=None)
        assert result.match == "Poetry"

    def test_vector_match_above_threshold(self, small_registry, make_embedder):
        embedder = make_embedder({"suspense": [0.95, 0.05]})
        result = find_best_match("Suspense", small_registry, embedder)
        assert result.match == "Thriller"
        assert result.similarity >= 0.82

    def test_vector_below_threshold_reports_candidate(self, small_registry, make_embedder):
        embedder = make_embedder({"cozy": [0.5, 0.3]})
        result = find_best_match("Cozy", small_registry, embedder, threshold=0.99)
        assert result.match is None
        assert result.best_candidate is not None
        assert 0 < result.similarity < 0.99

    def test_threshold_is_configurable(self, small_registry, make_embedder):
        embedder = make_embedder({"cozy": [0.5, 0.3]})
        result = find_best_match("Cozy", small_registry, embedder, threshold=0.5)
        assert result.match is not None

    def test_embedding_failure_is_no_match(self, small_registry, make_embedder):
        result = find_best_match("Cozy", small_registry, make_embedder())
        assert result.match is None
        assert result.similarity == 0.0
        assert result.best_candidate is None

    def test_category_partition(self, small_registry):
        result = find_best_match("Memoir", small_registry, embedder=None, category="fiction")
        assert result.match is None
        result = find_best_match("Memoir", small_registry, embedder=None, category="nonfiction")
        assert result.match == "Memoir"
        assert result.category == "nonfiction"


class TestClassifyFreeText:

    def test_split_drops_generic_and_short(self):
        assert split_terms("Fiction; Thriller,, a , Books, Romance") == ["Thriller", "Romance"]

    def test_generic_terms_matched_after_normalizing(self):
        raw = "The Novels, NON-FICTION , a  Literature, Thriller"
        assert split_terms(raw) == ["Thriller"]

    def test_dedupes_matches(self, small_registry):
        result = classify_free_text("Thriller, thrillers, the thriller", small_registry, embedder=None)
        assert result.names() == ["Thriller"]

    def test_split_by_category(self, small_registry):
        result = classify_free_text("Thriller, Memoir", small_registry, embedder=None)
        assert result.names("fiction") == ["Thriller"]
        assert result.names("nonfiction") == ["Memoir"]

    def test_at_most_five_suggestions_most_similar_kept(self, small_registry, make_embedder):
        # Similarity to the nearest fingerprint rises with the index
        vectors = {}
        for i in range(8):
            angle = math.radians(80 - i * 8)
            vectors[f"odd{i}"] = [math.cos(angle), -math.sin(angle)]
        embedder = make_embedder(vectors)
        raw = ", ".join(f"odd{i}" for i in range(8))

        result = classify_free_text(raw, small_registry, embedder, threshold=0.999)

        assert result.matches == []
        assert len(result.suggestions) == 5
        kept = [s.term for s in result.suggestions]
        assert kept == ["odd7", "odd6", "odd5", "odd4", "odd3"]
        sims = [s.similarity for s in result.suggestions]
        assert sims == sorted(sims, reverse=True)

    def test_empty_input(self, small_registry):
        result = classify_free_text("", small_registry, embedder=None)
        assert result.matches == [] and result.suggestions == []
