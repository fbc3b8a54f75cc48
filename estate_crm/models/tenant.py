"""Tenant model - an isolated customer organization."""

from __future__ import annotations

from sqlalchemy import JSON, Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, CreatedMixin


class Tenant(UUIDMixin, CreatedMixin, Base):
    __tablename__ = "tenants"

    name: Mapped[str] = mapped_column(String(200))
    slug: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    domain: Mapped[str | None] = mapped_column(String(255), default=None)
    branding: Mapped[dict | None] = mapped_column(JSON, default=dict)
    settings: Mapped[dict | None] = mapped_column(JSON, default=dict)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    def __repr__(self) -> str:
        return f"<Tenant {self.slug!r}>"
