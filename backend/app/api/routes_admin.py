"""Administrative API endpoints."""
import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..core.config import settings
from ..ingest.pipeline import IngestionClients
from .deps import get_ingestion_clients

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/health", summary="Liveness probe")
async def admin_health() -> dict[str, str]:
    """Return a simple health payload."""
    return {"status": "ok", "version": settings.VERSION}


@router.get("/ready", summary="Readiness probe")
async def admin_ready(clients: IngestionClients = Depends(get_ingestion_clients)) -> JSONResponse:
    """Report whether the database answers queries."""

    try:
        with clients.session_factory() as session:
            session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.warning("Readiness check failed: %s", exc)
        return JSONResponse(
            {"status": "unavailable"},
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    return JSONResponse({"status": "ready"})


@router.get("/metrics", summary="Prometheus metrics feed")
async def admin_metrics() -> Response:
    """Expose Prometheus-formatted metrics for scraping."""

    payload = generate_latest()
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)
