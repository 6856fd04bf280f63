"""Workshop model owning uploaded assets."""
from __future__ import annotations

import uuid

from sqlalchemy import Column, DateTime, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from . import Base


class Workshop(Base):
    """An opportunity workshop grouping the documents it was given."""

    __tablename__ = "workshops"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    assets = relationship("Asset", back_populates="workshop", cascade="all, delete-orphan")
