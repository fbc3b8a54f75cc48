"""Team member schemas."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel


class UserBrief(BaseModel):
    id: uuid.UUID
    full_name: str
    email: str

    model_config = {"from_attributes": True}


class TeamMemberResponse(UserBrief):
    role: str
    team: str | None = None
    market: str | None = None
    avatar_url: str | None = None
    phone: str | None = None
    is_active: bool = True
    created_at: datetime | None = None


class UserCreate(BaseModel):
    email: str
    full_name: str
    role: str = "agent"
    team: str | None = None
    market: str | None = None
    phone: str | None = None


class UserUpdate(BaseModel):
    full_name: str | None = None
    role: str | None = None
    team: str | None = None
    market: str | None = None
    phone: str | None = None
    is_active: bool | None = None
