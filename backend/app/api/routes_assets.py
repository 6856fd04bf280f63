"""Workshop asset endpoints: upload, listing, status polling and streaming, deletion."""

import asyncio
import io
import logging
import mimetypes
import re
import uuid
from datetime import datetime
from typing import Any, AsyncGenerator, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.db import get_session
from ..core.rate_limiter import limiter
from ..core.s3 import build_object_url, get_minio_client
from ..core.sse import format_json_event, stream
from ..ingest.pipeline import IngestionClients, index_asset
from ..models import Asset, AssetStatus, AssetType, DocumentChunk, Workshop
from .deps import get_ingestion_clients

logger = logging.getLogger(__name__)
router = APIRouter()

FILENAME_CLEANER = re.compile(r"[^A-Za-z0-9._-]+")


class AssetResponse(BaseModel):
    id: uuid.UUID
    workshop_id: uuid.UUID
    name: str
    url: str
    type: str
    status: str
    error: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    chunk_count: int


class UploadResponse(BaseModel):
    asset: AssetResponse
    chunks_processed: int


class AssetListResponse(BaseModel):
    assets: list[AssetResponse]


def _normalize_filename(filename: str) -> str:
    base = filename.strip()
    if not base:
        return "document"
    cleaned = FILENAME_CLEANER.sub("_", base)
    return cleaned.strip("._") or "document"


def _infer_content_type(filename: str, provided: str | None) -> str:
    if provided and provided.strip():
        return provided.split(";", 1)[0].strip()
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or "application/octet-stream"


def _build_object_key(workshop_id: uuid.UUID, asset_id: uuid.UUID, filename: str) -> str:
    return f"workshops/{workshop_id}/{asset_id}/{filename}"


def _validate_asset_type(value: str) -> str:
    normalized = (value or "").strip().upper()
    try:
        return AssetType(normalized).value
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported asset type: {value}",
        ) from None


def _ensure_within_size_limit(size: int) -> None:
    if size <= 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded file is empty",
        )
    if size > settings.UPLOAD_MAX_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="Uploaded file exceeds size limit",
        )


async def _ensure_bucket() -> None:
    client = get_minio_client()
    exists = await run_in_threadpool(client.bucket_exists, settings.MINIO_BUCKET)
    if not exists:
        await run_in_threadpool(client.make_bucket, settings.MINIO_BUCKET)


async def _store_object(object_key: str, data: bytes, content_type: str) -> None:
    await _ensure_bucket()
    client = get_minio_client()
    await run_in_threadpool(
        client.put_object,
        settings.MINIO_BUCKET,
        object_key,
        io.BytesIO(data),
        len(data),
        content_type=content_type,
    )


@router.post(
    "/upload",
    response_model=UploadResponse,
    summary="Upload a document and index it",
)
@limiter.limit(settings.RATE_LIMIT_INGESTION)
async def upload_asset(
    request: Request,
    workshop_id: uuid.UUID = Form(...),
    asset_type: str = Form(AssetType.DOSSIER.value, alias="type"),
    file: UploadFile = File(...),
    session: Session = Depends(get_session),
    clients: IngestionClients = Depends(get_ingestion_clients),
) -> UploadResponse:
    """Store the file, create the asset and index it before responding.

    Indexing runs inside the request so that no work is left behind once
    the response is sent.
    """

    if session.get(Workshop, workshop_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workshop not found")

    validated_type = _validate_asset_type(asset_type)
    data = await file.read()
    _ensure_within_size_limit(len(data))

    original_name = (file.filename or "").strip() or "document"
    asset = Asset(
        workshop_id=workshop_id,
        name=original_name,
        url="",  # placeholder until we derive the object key
        type=validated_type,
        status=AssetStatus.PROCESSING.value,
    )
    session.add(asset)
    session.flush()

    object_key = _build_object_key(workshop_id, asset.id, _normalize_filename(original_name))
    content_type = _infer_content_type(original_name, file.content_type)
    try:
        await _store_object(object_key, data, content_type)
    except Exception as exc:
        logger.exception("Failed to store upload for asset %s", asset.id)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Upload failed",
        ) from exc

    asset.storage_key = object_key
    asset.url = build_object_url(object_key)
    session.commit()
    logger.info("Stored asset %s for workshop %s at %s", asset.id, workshop_id, object_key)

    result = await run_in_threadpool(index_asset, asset.id, clients=clients)
    session.refresh(asset)

    return UploadResponse(
        asset=_to_asset_response(asset, chunk_count=_count_chunks(session, asset.id)),
        chunks_processed=result.chunks_processed,
    )


@router.get("/", response_model=AssetListResponse, summary="List workshop assets")
async def list_assets(
    workshop_id: uuid.UUID = Query(...),
    status_filter: list[str] | None = Query(None, alias="status"),
    session: Session = Depends(get_session),
) -> AssetListResponse:
    """Return the assets of a workshop with their chunk counts."""

    stmt = (
        select(Asset, func.count(DocumentChunk.id))
        .join(DocumentChunk, DocumentChunk.asset_id == Asset.id, isouter=True)
        .where(Asset.workshop_id == workshop_id)
        .group_by(Asset.id)
        .order_by(Asset.created_at.desc())
    )
    if status_filter:
        statuses = {value.upper() for value in status_filter if value}
        stmt = stmt.where(Asset.status.in_(list(statuses)))

    results = session.execute(stmt).all()
    return AssetListResponse(
        assets=[_to_asset_response(asset, chunk_count=count) for asset, count in results]
    )


@router.get("/status-stream", summary="Stream asset status changes")
async def status_stream(
    request: Request,
    workshop_id: Optional[uuid.UUID] = Query(None),
    clients: IngestionClients = Depends(get_ingestion_clients),
):
    """Send every asset once, then poll processing assets until none remain."""

    if workshop_id is None:
        return JSONResponse({"error": "workshop_id required"}, status_code=status.HTTP_400_BAD_REQUEST)

    async def events() -> AsyncGenerator[str, None]:
        try:
            initial = _status_snapshot(clients, workshop_id)
        except SQLAlchemyError:
            logger.exception("Initial status snapshot failed for workshop %s", workshop_id)
        else:
            yield format_json_event({"type": "initial", "assets": initial})

        while True:
            await asyncio.sleep(settings.STATUS_POLL_INTERVAL)
            if await request.is_disconnected():
                break
            try:
                processing = _status_snapshot(clients, workshop_id, only_processing=True)
            except SQLAlchemyError:
                logger.exception("Status poll failed for workshop %s; closing stream", workshop_id)
                break
            if not processing:
                break
            yield format_json_event({"type": "update", "assets": processing})

    return stream(events())


@router.get("/{asset_id}/status", summary="Get the ingestion status of an asset")
async def asset_status(
    asset_id: str,
    session: Session = Depends(get_session),
) -> JSONResponse:
    """Return only the status, for clients polling a processing asset."""

    try:
        asset_uuid = uuid.UUID(asset_id)
    except ValueError:
        asset_uuid = None

    current = None
    if asset_uuid is not None:
        current = session.execute(
            select(Asset.status).where(Asset.id == asset_uuid)
        ).scalar_one_or_none()
    if current is None:
        return JSONResponse({"error": "Asset not found"}, status_code=status.HTTP_404_NOT_FOUND)
    return JSONResponse({"status": current})


@router.delete("/{asset_id}", summary="Delete an asset")
async def delete_asset(
    asset_id: uuid.UUID,
    session: Session = Depends(get_session),
) -> dict[str, Any]:
    """Remove the stored file, then the asset row together with its chunks."""

    asset = session.get(Asset, asset_id)
    if asset is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Asset not found")

    if asset.storage_key:
        client = get_minio_client()
        try:
            await run_in_threadpool(client.remove_object, settings.MINIO_BUCKET, asset.storage_key)
        except Exception as exc:
            logger.warning("Blob delete failed for asset %s (may already be deleted): %s", asset_id, exc)

    session.delete(asset)
    logger.info("Deleted asset %s", asset_id)
    return {"success": True}


def _status_snapshot(
    clients: IngestionClients,
    workshop_id: uuid.UUID,
    *,
    only_processing: bool = False,
) -> list[dict[str, str]]:
    stmt = select(Asset.id, Asset.name, Asset.status).where(Asset.workshop_id == workshop_id)
    if only_processing:
        stmt = stmt.where(Asset.status == AssetStatus.PROCESSING.value)
    with clients.session_factory() as session:
        rows = session.execute(stmt).all()
    return [{"id": str(row.id), "name": row.name, "status": row.status} for row in rows]


def _count_chunks(session: Session, asset_id: uuid.UUID) -> int:
    stmt = select(func.count(DocumentChunk.id)).where(DocumentChunk.asset_id == asset_id)
    return int(session.execute(stmt).scalar_one() or 0)


def _to_asset_response(asset: Asset, chunk_count: int) -> AssetResponse:
    return AssetResponse(
        id=asset.id,
        workshop_id=asset.workshop_id,
        name=asset.name,
        url=asset.url,
        type=asset.type,
        status=asset.status,
        error=asset.error,
        created_at=asset.created_at,
        updated_at=asset.updated_at,
        chunk_count=chunk_count,
    )
