"""FastAPI application entry point for the asset ingestion service."""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from .api import routes_admin, routes_assets, routes_index
from .core.config import settings
from .core.db import SessionLocal
from .core.middleware import RequestLoggingMiddleware
from .core.rate_limiter import limiter, rate_limit_handler
from .ingest.pipeline import IngestionClients

logger = logging.getLogger(__name__)


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once for the process."""

    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(ingestion_clients: Optional[IngestionClients] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    When ``ingestion_clients`` is given the caller owns it; otherwise the
    clients are built from settings on startup and closed on shutdown.
    """

    configure_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned = getattr(app.state, "ingestion_clients", None) is None
        if owned:
            app.state.ingestion_clients = IngestionClients.from_settings(settings, SessionLocal)
            logger.info("Ingestion clients initialised (embedding provider=%s)", settings.EMBEDDING_PROVIDER)
        try:
            yield
        finally:
            if owned:
                app.state.ingestion_clients.close()
                app.state.ingestion_clients = None

    app = FastAPI(title=settings.PROJECT_NAME, version=settings.VERSION, lifespan=lifespan)
    app.state.ingestion_clients = ingestion_clients

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)

    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_URL.rstrip("/")],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(routes_admin.router, prefix="/admin", tags=["admin"])
    app.include_router(routes_assets.router, prefix="/api/assets", tags=["assets"])
    app.include_router(routes_index.router, prefix="/api/index-rag", tags=["indexing"])

    return app


app = create_app()
