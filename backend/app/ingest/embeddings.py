"""Embedding providers and the batched embedding stage."""
from __future__ import annotations

import logging
from typing import List, Protocol, Sequence

import httpx

from ..core.config import Settings, settings
from .errors import EmbeddingError

logger = logging.getLogger(__name__)


class Embedder(Protocol):
    """Protocol implemented by embedding providers."""

    def embed(self, texts: Sequence[str]) -> List[List[float]]:
        """Return one vector per input text, in input order."""


class OllamaEmbedder:
    """Embed texts through Ollama's ``/api/embed`` endpoint."""

    def __init__(self, client: httpx.Client, *, model: str) -> None:
        self.client = client
        self.model = model

    def embed(self, texts: Sequence[str]) -> List[List[float]]:
        response = self.client.post("/api/embed", json={"model": self.model, "input": list(texts)})
        response.raise_for_status()
        payload = response.json()
        vectors = payload.get("embeddings")
        if not isinstance(vectors, list):
            raise EmbeddingError("Embedding response did not contain 'embeddings'")
        return [[float(value) for value in vector] for vector in vectors]


def embed_chunks(
    embedder: Embedder,
    texts: Sequence[str],
    *,
    embedding_dim: int | None = None,
) -> List[List[float]]:
    """Embed ``texts`` in a single batch, keeping input order.

    An empty batch never reaches the provider. Any provider failure, or a
    response whose length differs from the input, raises ``EmbeddingError``
    and no vectors are returned.
    """

    if not texts:
        return []

    logger.info("Generating embeddings for %s chunks", len(texts))
    try:
        vectors = embedder.embed(list(texts))
    except EmbeddingError:
        raise
    except Exception as exc:
        raise EmbeddingError(f"Embedding provider failed: {exc}") from exc

    if len(vectors) != len(texts):
        raise EmbeddingError(
            f"Embedding provider returned {len(vectors)} vectors for {len(texts)} chunks"
        )

    target_dim = embedding_dim or settings.EMBEDDING_DIM
    return [_pad_vector(vector, target_dim) for vector in vectors]


def build_embedder(config: Settings, *, client: httpx.Client | None = None) -> Embedder:
    """Create the embedding provider selected by ``EMBEDDING_PROVIDER``."""

    provider = config.EMBEDDING_PROVIDER.strip().lower()
    if provider == "ollama":
        http_client = client or httpx.Client(base_url=config.OLLAMA_HOST, timeout=config.OLLAMA_TIMEOUT)
        return OllamaEmbedder(http_client, model=config.EMBEDDING_MODEL_NAME)
    if provider in {"sentence-transformers", "sentence_transformers", "local"}:
        # Imported on demand; the extra pulls in torch.
        from .local_embeddings import SentenceTransformerEmbedder

        return SentenceTransformerEmbedder(config.EMBEDDING_MODEL_NAME)
    raise ValueError(f"Unknown embedding provider: {config.EMBEDDING_PROVIDER}")


def _pad_vector(vector: Sequence[float], target_dim: int) -> List[float]:
    values = list(vector)
    if len(values) == target_dim:
        return values
    if len(values) > target_dim:
        logger.debug("Truncating embedding vector from %s to %s dimensions", len(values), target_dim)
        return values[:target_dim]
    return values + [0.0] * (target_dim - len(values))
