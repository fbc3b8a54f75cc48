"""Property listing model."""

from __future__ import annotations

from sqlalchemy import JSON, Float, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, TimestampMixin, TenantMixin


class Property(UUIDMixin, TimestampMixin, TenantMixin, Base):
    __tablename__ = "properties"

    code: Mapped[str] = mapped_column(String(100), index=True)
    title: Mapped[str] = mapped_column(String(300))
    description: Mapped[str | None] = mapped_column(Text, default=None)
    type: Mapped[str] = mapped_column(String(50))  # 1BR, 2BR, Villa, Condo
    bedrooms: Mapped[int | None] = mapped_column(default=None)
    bathrooms: Mapped[int | None] = mapped_column(default=None)
    area: Mapped[str | None] = mapped_column(String(50), default=None)
    price: Mapped[float] = mapped_column(Float, default=0)
    currency: Mapped[str] = mapped_column(String(10), default="AED")
    status: Mapped[str] = mapped_column(String(20), default="disponible", index=True)
    operation: Mapped[str] = mapped_column(String(20))  # off-plan, resale, rent
    market: Mapped[str] = mapped_column(String(20))
    zone: Mapped[str] = mapped_column(String(200))
    developer: Mapped[str | None] = mapped_column(String(200), default=None)
    features: Mapped[list] = mapped_column(JSON, default=list)
    tags: Mapped[list] = mapped_column(JSON, default=list)
    images: Mapped[list] = mapped_column(JSON, default=list)

    def __repr__(self) -> str:
        return f"<Property {self.code!r}>"
