"""Task model."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, UUIDMixin, TimestampMixin, TenantMixin


class Task(UUIDMixin, TimestampMixin, TenantMixin, Base):
    __tablename__ = "tasks"

    lead_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("leads.id", ondelete="CASCADE"), default=None, index=True
    )
    assigned_to: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), default=None, index=True
    )
    title: Mapped[str] = mapped_column(String(300))
    description: Mapped[str | None] = mapped_column(Text, default=None)
    type: Mapped[str] = mapped_column(String(30), default="follow_up")
    priority: Mapped[str] = mapped_column(String(10), default="medium")  # low, medium, high
    status: Mapped[str] = mapped_column(String(20), default="pending")  # pending, in_progress, completed
    due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None, index=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)

    assigned_user: Mapped["User"] = relationship()  # noqa: F821
    lead: Mapped["Lead"] = relationship()  # noqa: F821

    def __repr__(self) -> str:
        return f"<Task {self.title!r} {self.status}>"
