"""Lead model - a prospect moving through the sales pipeline."""

from __future__ import annotations

import uuid

from sqlalchemy import Float, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, UUIDMixin, TimestampMixin, TenantMixin


class Lead(UUIDMixin, TimestampMixin, TenantMixin, Base):
    __tablename__ = "leads"
    __table_args__ = (
        Index("ix_leads_tenant_status", "tenant_id", "status"),
        Index("ix_leads_tenant_market", "tenant_id", "market"),
    )

    full_name: Mapped[str] = mapped_column(String(200))
    phone: Mapped[str | None] = mapped_column(String(50), default=None)
    email: Mapped[str | None] = mapped_column(String(255), default=None)
    whatsapp: Mapped[str | None] = mapped_column(String(50), default=None)
    nationality: Mapped[str | None] = mapped_column(String(100), default=None)
    language: Mapped[str | None] = mapped_column(String(10), default="en")

    channel: Mapped[str | None] = mapped_column(String(50), default=None)  # meta_ads, google, portal, referral
    source: Mapped[str | None] = mapped_column(String(100), default=None)
    campaign: Mapped[str | None] = mapped_column(String(200), default=None)

    market: Mapped[str | None] = mapped_column(String(20), default=None)
    segment: Mapped[str | None] = mapped_column(String(50), default=None)
    status: Mapped[str] = mapped_column(String(40), default="nuevo")
    intent: Mapped[str | None] = mapped_column(String(10), default=None)  # alta, media, baja
    interest_zone: Mapped[str | None] = mapped_column(String(200), default=None)
    interest_type: Mapped[str | None] = mapped_column(String(50), default=None)
    interest_property_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("properties.id", ondelete="SET NULL"), default=None
    )
    budget_min: Mapped[float | None] = mapped_column(Float, default=None)
    budget_max: Mapped[float | None] = mapped_column(Float, default=None)
    budget_currency: Mapped[str] = mapped_column(String(10), default="AED")
    timing: Mapped[str | None] = mapped_column(String(20), default=None)  # 0-30, 30-60, 60-90, 90+
    ai_score: Mapped[int | None] = mapped_column(default=None)
    ai_summary: Mapped[str | None] = mapped_column(Text, default=None)

    assigned_to: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), default=None, index=True
    )

    assigned_user: Mapped["User"] = relationship()  # noqa: F821
    interest_property: Mapped["Property"] = relationship()  # noqa: F821

    def __repr__(self) -> str:
        return f"<Lead {self.full_name!r} {self.status}>"
