"""Explicit (re-)indexing of an existing asset."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from ..core.config import settings
from ..core.rate_limiter import limiter
from ..ingest.pipeline import IngestionClients, index_asset
from .deps import get_ingestion_clients

logger = logging.getLogger(__name__)
router = APIRouter()


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _requested_asset_id(payload: Any) -> Any:
    if not isinstance(payload, dict):
        raise ValueError(f"Expected a JSON object, got {type(payload).__name__}")
    return payload.get("assetId", payload.get("asset_id"))


@router.post("", summary="Index an asset for retrieval")
@limiter.limit(settings.RATE_LIMIT_INGESTION)
async def index_rag(
    request: Request,
    clients: IngestionClients = Depends(get_ingestion_clients),
) -> JSONResponse:
    """Run the ingestion pipeline for ``assetId`` and report the outcome.

    The body is read as raw JSON so malformed input is answered with the
    same ``{"error": ...}`` shape as a failed run.
    """

    try:
        asset_id = _requested_asset_id(await request.json())
    except ValueError as exc:
        logger.warning("Rejected indexing request with unreadable body: %s", exc)
        return _error("Indexing failed", status.HTTP_500_INTERNAL_SERVER_ERROR)

    if not asset_id:
        return _error("Asset ID required", status.HTTP_400_BAD_REQUEST)

    asset_id = str(asset_id)
    logger.info("Received indexing request for asset %s", asset_id)
    result = await run_in_threadpool(index_asset, asset_id, clients=clients)

    if result.success:
        return JSONResponse({"success": True, "chunksProcessed": result.chunks_processed})
    return _error(result.error or "Indexing failed", status.HTTP_500_INTERNAL_SERVER_ERROR)
