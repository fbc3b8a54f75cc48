"""Lead schemas."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel

from .team import UserBrief


class LeadCreate(BaseModel):
    full_name: str
    phone: str | None = None
    email: str | None = None
    whatsapp: str | None = None
    nationality: str | None = None
    language: str | None = None
    channel: str | None = None
    source: str | None = None
    campaign: str | None = None
    market: str | None = None
    segment: str | None = None
    status: str = "nuevo"
    intent: str | None = None
    interest_zone: str | None = None
    interest_type: str | None = None
    interest_property_id: uuid.UUID | None = None
    budget_min: float | None = None
    budget_max: float | None = None
    budget_currency: str | None = None
    timing: str | None = None
    assigned_to: uuid.UUID | None = None


class LeadResponse(LeadCreate):
    id: uuid.UUID
    ai_score: int | None = None
    ai_summary: str | None = None
    assigned_user: UserBrief | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class StatusUpdate(BaseModel):
    status: str


class AssignRequest(BaseModel):
    user_id: uuid.UUID | None = None
