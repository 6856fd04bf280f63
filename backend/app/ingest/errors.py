"""Exceptions raised by the ingestion stages."""
from __future__ import annotations


class IngestionError(RuntimeError):
    """Base class for failures that abort an ingestion run."""


class FetchError(IngestionError):
    """Raised when the source file cannot be downloaded."""


class ExtractionError(IngestionError):
    """Raised when text cannot be extracted from the downloaded bytes."""


class EmbeddingError(IngestionError):
    """Raised when the embedding provider fails or returns misaligned vectors."""


class PersistenceError(IngestionError):
    """Raised when chunk rows or the asset status cannot be written."""
