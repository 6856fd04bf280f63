"""Uploaded workshop documents and their ingestion status."""
from __future__ import annotations

import enum
import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from . import Base


class AssetStatus(str, enum.Enum):
    """Lifecycle states for an ingested asset.

    ``PROCESSING`` is set when the asset is uploaded; the ingestion pipeline
    moves it to exactly one of the terminal states ``READY`` or ``ERROR``.
    """

    PROCESSING = "PROCESSING"
    READY = "READY"
    ERROR = "ERROR"


class AssetType(str, enum.Enum):
    """Kinds of documents a workshop can be given."""

    DOSSIER = "DOSSIER"
    BACKLOG = "BACKLOG"
    MARKET_SIGNAL = "MARKET_SIGNAL"


class Asset(Base):
    """A document uploaded to a workshop."""

    __tablename__ = "assets"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    workshop_id = Column(
        UUID(as_uuid=True),
        ForeignKey("workshops.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String, nullable=False)
    url = Column(String, nullable=False)
    storage_key = Column(String, nullable=True)
    type = Column(String, nullable=False, default=AssetType.DOSSIER.value)
    status = Column(
        String,
        nullable=False,
        default=AssetStatus.PROCESSING.value,
        server_default=AssetStatus.PROCESSING.value,
    )
    error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    workshop = relationship("Workshop", back_populates="assets")
    chunks = relationship(
        "DocumentChunk",
        back_populates="asset",
        cascade="all, delete-orphan",
        order_by="DocumentChunk.chunk_index",
    )
