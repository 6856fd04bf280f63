"""Persist chunk rows and asset status."""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import Asset, AssetStatus, DocumentChunk
from .chunking import Chunk
from .errors import PersistenceError

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 1000


def replace_chunks(
    session: Session,
    asset: Asset,
    chunks: Sequence[Chunk],
    vectors: Sequence[Sequence[float]],
) -> int:
    """Swap the asset's chunk rows for ``chunks`` inside the open transaction.

    Earlier rows are removed first so a re-index overwrites rather than
    appends. Nothing becomes visible until the caller commits.
    """

    if len(chunks) != len(vectors):
        raise PersistenceError(
            f"Cannot store {len(chunks)} chunks with {len(vectors)} embeddings"
        )

    try:
        session.execute(delete(DocumentChunk).where(DocumentChunk.asset_id == asset.id))
        session.add_all(
            DocumentChunk(
                asset_id=asset.id,
                chunk_index=chunk.index,
                content=chunk.text,
                embedding=list(vector),
            )
            for chunk, vector in zip(chunks, vectors)
        )
        session.flush()
    except SQLAlchemyError as exc:
        raise PersistenceError(f"Failed to store chunks: {exc}") from exc

    logger.info("Stored %s chunks for asset %s", len(chunks), asset.id)
    return len(chunks)


def mark_status(
    session: Session,
    asset_id: uuid.UUID,
    status: AssetStatus,
    *,
    error: str | None = None,
) -> Asset | None:
    """Move an asset to a terminal status, recording the failure message."""

    try:
        asset = session.get(Asset, asset_id)
        if asset is None:
            return None
        asset.status = status.value
        asset.error = error[:MAX_ERROR_LENGTH] if error else None
        asset.updated_at = datetime.now(timezone.utc)
        session.flush()
    except SQLAlchemyError as exc:
        raise PersistenceError(f"Failed to update asset status: {exc}") from exc
    return asset
