"""Profile, preference and audit schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class ProfileUpdate(BaseModel):
    full_name: str | None = None
    phone: str | None = None


class PasswordUpdate(BaseModel):
    new_password: str


class PreferenceUpdate(BaseModel):
    theme: Literal["light", "dark", "system"] | None = None
    language: Literal["en", "es", "ar"] | None = None


class AuditLogResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID | None = None
    user_email: str | None = None
    user_name: str | None = None
    action: str
    resource: str
    resource_id: str | None = None
    resource_name: str | None = None
    old_values: dict | None = None
    new_values: dict | None = None
    metadata: dict | None = Field(default=None, validation_alias="metadata_json")
    created_at: datetime | None = None

    model_config = {"from_attributes": True}
