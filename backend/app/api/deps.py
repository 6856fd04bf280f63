"""Shared FastAPI dependencies."""
from __future__ import annotations

from fastapi import HTTPException, status
from starlette.requests import Request

from ..ingest.pipeline import IngestionClients


def get_ingestion_clients(request: Request) -> IngestionClients:
    """Return the ingestion clients owned by the running application."""

    clients = getattr(request.app.state, "ingestion_clients", None)
    if clients is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Ingestion is not configured",
        )
    return clients
