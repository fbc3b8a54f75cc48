"""Property schemas."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel


class PropertyResponse(BaseModel):
    id: uuid.UUID
    code: str
    title: str
    description: str | None = None
    type: str
    bedrooms: int | None = None
    bathrooms: int | None = None
    area: str | None = None
    price: float
    currency: str
    status: str
    operation: str
    market: str
    zone: str
    developer: str | None = None
    features: list[str] = []
    tags: list[str] = []
    images: list[str] = []
    created_at: datetime | None = None

    model_config = {"from_attributes": True}
