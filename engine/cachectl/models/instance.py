"""Managed instance model — the persisted desired-state object."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from ..db import Base


class ManagedInstance(Base):
    __tablename__ = "managed_instances"

    name: Mapped[str] = mapped_column(String(128), primary_key=True)
    kind: Mapped[str] = mapped_column(String(64), nullable=False, default="CloudMemorystoreInstance")
    provider_config_id: Mapped[str] = mapped_column(String(64), default="default")
    # Full resource document (metadata, spec, status) as JSON
    document: Mapped[dict] = mapped_column(JSON, default=dict)
    deletion_requested: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
