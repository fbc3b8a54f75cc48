"""Activity and task schemas."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from .team import UserBrief


class LeadBrief(BaseModel):
    id: uuid.UUID
    full_name: str

    model_config = {"from_attributes": True}


class ActivityCreate(BaseModel):
    lead_id: uuid.UUID
    type: str
    title: str
    description: str | None = None
    metadata: dict | None = None


class ActivityResponse(BaseModel):
    id: uuid.UUID
    lead_id: uuid.UUID
    user_id: uuid.UUID | None = None
    type: str
    title: str
    description: str | None = None
    metadata: dict | None = Field(default=None, validation_alias="metadata_json")
    created_at: datetime | None = None
    user: UserBrief | None = None

    model_config = {"from_attributes": True}


class TaskResponse(BaseModel):
    id: uuid.UUID
    lead_id: uuid.UUID | None = None
    assigned_to: uuid.UUID | None = None
    title: str
    description: str | None = None
    type: str
    priority: str
    status: str
    due_date: datetime | None = None
    completed_at: datetime | None = None
    assigned_user: UserBrief | None = None
    lead: LeadBrief | None = None

    model_config = {"from_attributes": True}


class RecentActivityResponse(ActivityResponse):
    lead: LeadBrief | None = None
