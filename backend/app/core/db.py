"""Database engine and session helpers for SQLAlchemy and Alembic."""
from __future__ import annotations

from typing import Generator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from .config import settings


def create_db_engine(database_url: str | None = None) -> Engine:
    """Create an engine for ``database_url`` (defaults to the configured URL)."""

    return create_engine(database_url or settings.DATABASE_URL, pool_pre_ping=True, future=True)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Return a session factory bound to ``engine``."""

    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


ENGINE: Engine = create_db_engine()
SessionLocal = create_session_factory(ENGINE)


def get_session() -> Generator[Session, None, None]:
    """Provide a transactional scope around a request."""

    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
