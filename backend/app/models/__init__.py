"""SQLAlchemy declarative base for the application models."""
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# Import models so that Alembic discovers the tables via Base.metadata.
# The imports sit at the end of the module to avoid circular imports when
# the individual model modules import ``Base``.
from .assets import Asset, AssetStatus, AssetType  # noqa: F401  (re-export for convenience)
from .chunks import DocumentChunk  # noqa: F401
from .workshops import Workshop  # noqa: F401


__all__ = [
    "Asset",
    "AssetStatus",
    "AssetType",
    "Base",
    "DocumentChunk",
    "Workshop",
]
