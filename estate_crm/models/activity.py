"""Activity model - immutable lead timeline entry."""

from __future__ import annotations

import uuid

from sqlalchemy import JSON, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, UUIDMixin, CreatedMixin, TenantMixin


class Activity(UUIDMixin, CreatedMixin, TenantMixin, Base):
    __tablename__ = "activities"

    lead_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("leads.id", ondelete="CASCADE"), index=True
    )
    # System-generated entries carry no user.
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), default=None, index=True
    )
    type: Mapped[str] = mapped_column(String(30))  # note, call, whatsapp, email, meeting, status_change, assignment
    title: Mapped[str] = mapped_column(String(300))
    description: Mapped[str | None] = mapped_column(Text, default=None)
    metadata_json: Mapped[dict | None] = mapped_column("metadata", JSON, default=dict)

    user: Mapped["User"] = relationship()  # noqa: F821
    lead: Mapped["Lead"] = relationship()  # noqa: F821

    def __repr__(self) -> str:
        return f"<Activity {self.type} {self.title!r}>"
