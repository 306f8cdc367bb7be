"""
Embeddings - fingerprints for genre terms and agent profiles.

Uses the OpenAI embeddings API format, which ollama also serves under /v1.
"""

import numpy as np
from typing import Optional

from config import get_client

DEFAULT_EMBEDDING_MODEL = "ollama/nomic-embed-text"

# Roughly the context of small embedding models
MAX_EMBED_CHARS = 8000


class EmbeddingError(Exception):
    """The embedding service failed or returned nothing usable."""


class Embedder:
    """Thin client over an OpenAI-compatible embeddings endpoint."""

    def __init__(self, model_key: str = DEFAULT_EMBEDDING_MODEL, timeout: float = 10.0):
        self.model_key = model_key
        self.timeout = timeout
        self._client = None
        self._model = None

    @property
    def model_id(self) -> str:
        return self.model_key

    def _resolve(self):
        if self._client is None:
            self._client, cfg = get_client(self.model_key)
            self._model = cfg["model"]
        return self._client.with_options(timeout=self.timeout), self._model

    def embed(self, text: str) -> list[float]:
        """Embed a single text. Raises EmbeddingError on failure."""
        if not text or not text.strip():
            raise EmbeddingError("Cannot embed empty text")

        try:
            client, model = self._resolve()
            response = client.embeddings.create(model=model, input=text[:MAX_EMBED_CHARS])
            vector = response.data[0].embedding
        except Exception as e:
            raise EmbeddingError(f"{self.model_key}: {e}") from e

        if not vector:
            raise EmbeddingError(f"{self.model_key}: empty embedding")
        return list(vector)

    def try_embed(self, text: str) -> Optional[list[float]]:
        """Embed, returning None instead of raising."""
        try:
            return self.embed(text)
        except EmbeddingError as e:
            print(f"[EMBED] Failed for {text[:40]!r}: {e}")
            return None

    def is_available(self) -> bool:
        """Cheap probe: can the model embed a single word?"""
        try:
            self.embed("test")
            return True
        except EmbeddingError:
            return False


def cosine_similarity(vec1: list[float], vec2: list[float]) -> float:
    """Calculate cosine similarity between two vectors. Zero-magnitude gives 0.0."""
    if vec1 is None or vec2 is None or len(vec1) == 0 or len(vec2) == 0:
        return 0.0

    a = np.asarray(vec1, dtype=float)
    b = np.asarray(vec2, dtype=float)
    if a.shape != b.shape:
        return 0.0

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)

    if norm_a == 0 or norm_b == 0:
        return 0.0

    # Clip float error so the result stays in [-1, 1]
    return float(np.clip(np.dot(a, b) / (norm_a * norm_b), -1.0, 1.0))
