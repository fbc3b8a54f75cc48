"""User (team member) model."""

from __future__ import annotations

import uuid

from sqlalchemy import Boolean, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, TimestampMixin, TenantMixin


class User(UUIDMixin, TimestampMixin, TenantMixin, Base):
    __tablename__ = "users"

    auth_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, unique=True, default=None)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    full_name: Mapped[str] = mapped_column(String(200))
    role: Mapped[str] = mapped_column(String(20), default="agent")  # admin, manager, team_lead, agent, backoffice
    team: Mapped[str | None] = mapped_column(String(50), default=None)  # off-plan, secondary, leasing, usa_desk
    market: Mapped[str | None] = mapped_column(String(20), default=None)
    avatar_url: Mapped[str | None] = mapped_column(String(500), default=None)
    phone: Mapped[str | None] = mapped_column(String(50), default=None)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    def __repr__(self) -> str:
        return f"<User {self.email!r} {self.role}>"
