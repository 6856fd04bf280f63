"""Asset ingestion pipeline: fetch, extract, chunk, embed, persist.

The pipeline runs synchronously inside the request that triggered it and
always leaves the asset in a terminal status (``READY`` or ``ERROR``).
Re-indexing an asset overwrites its chunks. Two concurrent runs for the same
asset are not serialised and may interleave their chunk writes.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import Settings
from ..core.metrics import record_ingest_result, track_stage
from ..models import Asset, AssetStatus
from . import chunking, embeddings, loaders, parsers, store
from .errors import PersistenceError

logger = logging.getLogger(__name__)

ASSET_NOT_FOUND = "Asset not found"


@dataclass(slots=True)
class IndexResult:
    """Outcome of a single ingestion run."""

    success: bool
    chunks_processed: int = 0
    error: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": self.success, "chunksProcessed": self.chunks_processed}
        if self.error is not None:
            payload["error"] = self.error
        return payload


@dataclass(slots=True)
class IngestionClients:
    """External collaborators the pipeline talks to.

    The process entry point builds one instance and owns its lifecycle; the
    pipeline only borrows it.
    """

    session_factory: Callable[[], Session]
    http_client: httpx.Client
    embedder: embeddings.Embedder
    chunk_size: int = chunking.DEFAULT_CHUNK_SIZE
    chunk_overlap: int = chunking.DEFAULT_CHUNK_OVERLAP
    embedding_dim: int | None = None

    @classmethod
    def from_settings(
        cls,
        config: Settings,
        session_factory: Callable[[], Session],
    ) -> "IngestionClients":
        """Build clients for ``config`` using fresh HTTP connection pools."""

        http_client = httpx.Client(timeout=config.FETCH_TIMEOUT)
        return cls(
            session_factory=session_factory,
            http_client=http_client,
            embedder=embeddings.build_embedder(config),
            chunk_size=config.INGEST_CHUNK_SIZE,
            chunk_overlap=config.INGEST_CHUNK_OVERLAP,
            embedding_dim=config.EMBEDDING_DIM,
        )

    def close(self) -> None:
        """Release HTTP connection pools held by the clients."""

        self.http_client.close()
        embedder_client = getattr(self.embedder, "client", None)
        if isinstance(embedder_client, httpx.Client):
            embedder_client.close()


def index_asset(asset_id: uuid.UUID | str, *, clients: IngestionClients) -> IndexResult:
    """Ingest one asset and resolve it to ``READY`` or ``ERROR``."""

    try:
        asset_uuid = uuid.UUID(str(asset_id))
    except (TypeError, ValueError):
        logger.error("Invalid asset id provided for indexing: %r", asset_id)
        return IndexResult(success=False, error=ASSET_NOT_FOUND)

    session = clients.session_factory()
    try:
        asset = session.get(Asset, asset_uuid)
        if asset is None:
            logger.error("Asset %s not found for indexing", asset_uuid)
            return IndexResult(success=False, error=ASSET_NOT_FOUND)

        logger.info("Indexing asset %s (%s) from %s", asset.id, asset.name, asset.url)

        with track_stage("fetch"):
            data = loaders.fetch_bytes(asset.url, client=clients.http_client)

        with track_stage("extract"):
            text = parsers.extract_text(data, asset.name)
        logger.info("Extracted %s characters from asset %s", len(text), asset.id)

        chunks = chunking.chunk_text(
            text,
            chunk_size=clients.chunk_size,
            overlap=clients.chunk_overlap,
        )
        logger.info("Created %s chunks for asset %s", len(chunks), asset.id)

        with track_stage("embed"):
            vectors = embeddings.embed_chunks(
                clients.embedder,
                [chunk.text for chunk in chunks],
                embedding_dim=clients.embedding_dim,
            )

        with track_stage("persist"):
            store.replace_chunks(session, asset, chunks, vectors)
            store.mark_status(session, asset.id, AssetStatus.READY)
            _commit(session)

        record_ingest_result("succeeded", len(chunks))
        logger.info("Asset %s marked as READY with %s chunks", asset_uuid, len(chunks))
        return IndexResult(success=True, chunks_processed=len(chunks))
    except Exception as exc:
        session.rollback()
        logger.exception("Failed to index asset %s: %s", asset_uuid, exc)
        message = str(exc) or exc.__class__.__name__
        _mark_failed(session, asset_uuid, message)
        record_ingest_result("failed")
        return IndexResult(success=False, error=message)
    finally:
        session.close()


def _commit(session: Session) -> None:
    try:
        session.commit()
    except SQLAlchemyError as exc:
        raise PersistenceError(f"Failed to commit ingestion results: {exc}") from exc


def _mark_failed(session: Session, asset_id: uuid.UUID, message: str) -> None:
    try:
        store.mark_status(session, asset_id, AssetStatus.ERROR, error=message)
        session.commit()
    except Exception:
        session.rollback()
        logger.exception("Failed to mark asset %s as ERROR", asset_id)
