"""In-process embeddings with sentence-transformers."""
from __future__ import annotations

import logging
import threading
from typing import List, Sequence

from sentence_transformers import SentenceTransformer

logger = logging.getLogger(__name__)
_model_lock = threading.Lock()
_models: dict[str, SentenceTransformer] = {}


def get_model(model_name: str) -> SentenceTransformer:
    """Return a cached sentence-transformers model instance."""

    with _model_lock:
        model = _models.get(model_name)
        if model is None:
            logger.info("Loading embedding model: %s", model_name)
            model = SentenceTransformer(model_name)
            _models[model_name] = model
    return model


class SentenceTransformerEmbedder:
    """Embed texts with a locally loaded sentence-transformers model."""

    def __init__(self, model_name: str, *, batch_size: int = 32) -> None:
        self.model_name = model_name
        self.batch_size = batch_size

    def embed(self, texts: Sequence[str]) -> List[List[float]]:
        model = get_model(self.model_name)
        rows = model.encode(
            list(texts),
            batch_size=self.batch_size,
            convert_to_numpy=True,
            show_progress_bar=False,
            normalize_embeddings=False,
        )
        return [row.tolist() for row in rows]
