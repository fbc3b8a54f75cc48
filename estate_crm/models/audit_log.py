"""Audit log model - source of the notification feed."""

from __future__ import annotations

import uuid

from sqlalchemy import JSON, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, CreatedMixin, TenantMixin


class AuditLog(UUIDMixin, CreatedMixin, TenantMixin, Base):
    __tablename__ = "audit_logs"

    user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, default=None, index=True)
    user_email: Mapped[str | None] = mapped_column(String(255), default=None)
    user_name: Mapped[str | None] = mapped_column(String(200), default=None)
    action: Mapped[str] = mapped_column(String(30), index=True)
    resource: Mapped[str] = mapped_column(String(30), index=True)
    resource_id: Mapped[str | None] = mapped_column(String(64), default=None)
    resource_name: Mapped[str | None] = mapped_column(String(300), default=None)
    old_values: Mapped[dict | None] = mapped_column(JSON, default=None)
    new_values: Mapped[dict | None] = mapped_column(JSON, default=None)
    metadata_json: Mapped[dict | None] = mapped_column("metadata", JSON, default=dict)

    def __repr__(self) -> str:
        return f"<AuditLog {self.action} {self.resource}>"
