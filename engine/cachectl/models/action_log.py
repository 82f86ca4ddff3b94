"""Action log model — audit trail of every reconcile pass."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from ..db import Base


class ActionLog(Base):
    __tablename__ = "action_logs"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    # Not a foreign key: entries outlive the instance they describe
    instance_name: Mapped[str] = mapped_column(String(128), nullable=False)
    action_type: Mapped[str] = mapped_column(
        String(32), nullable=False
    )  # observe, create, update, delete
    status: Mapped[str] = mapped_column(
        String(16), default="success"
    )  # success, failed
    details: Mapped[dict] = mapped_column(JSON, default=dict)
    initiated_by: Mapped[str] = mapped_column(
        String(32), default="scheduler"
    )  # scheduler, cli
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
