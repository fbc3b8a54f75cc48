"""Activity service - lead timeline entries. Activities are never updated or deleted."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..models.activity import Activity
from ..models.lead import Lead
from ..results import Rows

logger = logging.getLogger(__name__)

ACTIVITY_TYPE_LABELS = {
    "call": "Call",
    "email": "Email",
    "whatsapp": "WhatsApp",
    "meeting": "Meeting",
    "note": "Note",
    "status_change": "Status Change",
    "assignment": "Assignment",
    "property_view": "Property View",
}

ACTIVITY_TYPE_ICONS = {
    "call": "Phone",
    "email": "Mail",
    "whatsapp": "MessageCircle",
    "meeting": "Calendar",
    "note": "FileText",
    "status_change": "ArrowRight",
    "assignment": "UserPlus",
    "property_view": "Building2",
}


async def list_lead_activities(
    db: AsyncSession, tenant_id: uuid.UUID, lead_id: uuid.UUID
) -> Rows[Activity]:
    """Timeline for one lead, newest first."""
    stmt = (
        select(Activity)
        .where(Activity.tenant_id == tenant_id, Activity.lead_id == lead_id)
        .options(selectinload(Activity.user))
        .order_by(Activity.created_at.desc())
    )
    try:
        result = await db.execute(stmt)
        return Rows(list(result.scalars().all()))
    except SQLAlchemyError as exc:
        logger.warning("Error fetching activities for lead %s", lead_id, exc_info=True)
        return Rows.failure(str(exc))


async def list_recent_activities(
    db: AsyncSession, tenant_id: uuid.UUID, limit: int = 20
) -> Rows[Activity]:
    stmt = (
        select(Activity)
        .where(Activity.tenant_id == tenant_id)
        .options(selectinload(Activity.user), selectinload(Activity.lead))
        .order_by(Activity.created_at.desc())
        .limit(limit)
    )
    try:
        result = await db.execute(stmt)
        return Rows(list(result.scalars().all()))
    except SQLAlchemyError as exc:
        logger.warning("Error fetching recent activities", exc_info=True)
        return Rows.failure(str(exc))


async def create_activity(
    db: AsyncSession,
    lead_id: uuid.UUID,
    type: str,
    title: str,
    user_id: uuid.UUID | None = None,
    description: str | None = None,
    metadata: dict | None = None,
    tenant_id: uuid.UUID | None = None,
) -> Activity | None:
    """Append to a lead's timeline. The tenant always comes from the lead."""
    try:
        stmt = select(Lead.tenant_id).where(Lead.id == lead_id)
        if tenant_id is not None:
            stmt = stmt.where(Lead.tenant_id == tenant_id)
        lead_tenant = (await db.execute(stmt)).scalar_one_or_none()
        if lead_tenant is None:
            logger.warning("Lead %s not found; activity not created", lead_id)
            return None

        activity = Activity(
            tenant_id=lead_tenant,
            lead_id=lead_id,
            user_id=user_id,
            type=type,
            title=title,
            description=description,
            metadata_json=metadata or {},
        )
        db.add(activity)
        await db.commit()
        await db.refresh(activity)
        return activity
    except SQLAlchemyError:
        logger.exception("Error creating activity for lead %s", lead_id)
        await db.rollback()
        return None
