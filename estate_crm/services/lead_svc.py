"""Lead service - pipeline listing, status changes, assignment."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Collection
from dataclasses import dataclass

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..models.activity import Activity
from ..models.lead import Lead
from ..models.user import User
from ..results import MutationResult, Rows
from . import audit_svc
from .common import active_filter, count_by, like_term, utcnow

logger = logging.getLogger(__name__)

LEAD_STATUSES = (
    "nuevo",
    "contactado",
    "calificado",
    "meeting_programado",
    "meeting_realizado",
    "oferta_reserva",
    "negociacion",
    "cerrado_ganado",
    "cerrado_perdido",
    "dormido",
)
LEAD_INTENTS = ("alta", "media", "baja")

_EDITABLE_FIELDS = {
    "full_name", "phone", "email", "whatsapp", "nationality", "language",
    "channel", "source", "campaign", "market", "segment", "status", "intent",
    "interest_zone", "interest_type", "interest_property_id", "budget_min",
    "budget_max", "budget_currency", "timing", "ai_score", "ai_summary", "assigned_to",
}


@dataclass
class LeadFilters:
    status: str | None = None
    market: str | None = None
    assigned_to: uuid.UUID | None = None
    search: str | None = None
    assigned_in: Collection[uuid.UUID] | None = None


def _with_assignee(stmt):
    return stmt.options(selectinload(Lead.assigned_user))


async def list_leads(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    filters: LeadFilters | None = None,
) -> Rows[Lead]:
    """Tenant leads, newest first, with the assigned user expanded."""
    filters = filters or LeadFilters()
    stmt = select(Lead).where(Lead.tenant_id == tenant_id)

    status = active_filter(filters.status)
    market = active_filter(filters.market)
    if status:
        stmt = stmt.where(Lead.status == status)
    if market:
        stmt = stmt.where(Lead.market == market)
    if filters.assigned_to:
        stmt = stmt.where(Lead.assigned_to == filters.assigned_to)
    if filters.assigned_in is not None:
        stmt = stmt.where(Lead.assigned_to.in_(list(filters.assigned_in)))
    if filters.search and filters.search.strip():
        q = like_term(filters.search)
        stmt = stmt.where(or_(Lead.full_name.ilike(q), Lead.email.ilike(q), Lead.phone.ilike(q)))

    stmt = _with_assignee(stmt).order_by(Lead.created_at.desc())
    try:
        result = await db.execute(stmt)
        return Rows(list(result.scalars().all()))
    except SQLAlchemyError as exc:
        logger.warning("Error fetching leads", exc_info=True)
        return Rows.failure(str(exc))


async def get_lead(db: AsyncSession, tenant_id: uuid.UUID, lead_id: uuid.UUID) -> Lead | None:
    stmt = _with_assignee(select(Lead).where(Lead.id == lead_id, Lead.tenant_id == tenant_id))
    try:
        result = await db.execute(stmt)
        return result.scalar_one_or_none()
    except SQLAlchemyError:
        logger.warning("Error fetching lead %s", lead_id, exc_info=True)
        return None


async def leads_by_status(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    filters: LeadFilters | None = None,
) -> dict[str, list[Lead]]:
    """Group leads by pipeline stage; stages keep pipeline order."""
    grouped: dict[str, list[Lead]] = {}
    for lead in await list_leads(db, tenant_id, filters):
        grouped.setdefault(lead.status, []).append(lead)
    ordered = {s: grouped.pop(s) for s in LEAD_STATUSES if s in grouped}
    ordered.update(grouped)
    return ordered


async def create_lead(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    actor: User | None = None,
    **fields,
) -> Lead | None:
    data = {k: v for k, v in fields.items() if k in _EDITABLE_FIELDS}
    lead = Lead(tenant_id=tenant_id, **data)
    try:
        db.add(lead)
        await db.commit()
        await db.refresh(lead)
    except SQLAlchemyError:
        logger.exception("Error creating lead")
        await db.rollback()
        return None
    await audit_svc.log_audit_action(
        db, actor, action="create", resource="lead",
        resource_id=lead.id, resource_name=lead.full_name,
    )
    return lead


async def update_lead(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    lead_id: uuid.UUID,
    actor: User | None = None,
    **fields,
) -> MutationResult:
    data = {k: v for k, v in fields.items() if k in _EDITABLE_FIELDS}
    try:
        lead = (
            await db.execute(select(Lead).where(Lead.id == lead_id, Lead.tenant_id == tenant_id))
        ).scalar_one_or_none()
        if not lead:
            return MutationResult.fail("Lead not found")
        for key, value in data.items():
            setattr(lead, key, value)
        lead.updated_at = utcnow()
        await db.commit()
    except SQLAlchemyError:
        logger.exception("Error updating lead %s", lead_id)
        await db.rollback()
        return MutationResult.fail("Failed to update lead")
    await audit_svc.log_audit_action(
        db, actor, action="update", resource="lead",
        resource_id=lead_id, resource_name=lead.full_name, new_values=data,
    )
    return MutationResult.ok()


async def update_lead_status(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    lead_id: uuid.UUID,
    status: str,
    actor: User | None = None,
) -> MutationResult:
    """Move a lead to any stage and record a status_change activity."""
    try:
        lead = (
            await db.execute(select(Lead).where(Lead.id == lead_id, Lead.tenant_id == tenant_id))
        ).scalar_one_or_none()
        if not lead:
            return MutationResult.fail("Lead not found")
        previous = lead.status
        lead.status = status
        lead.updated_at = utcnow()
        db.add(
            Activity(
                tenant_id=tenant_id,
                lead_id=lead.id,
                user_id=actor.id if actor else None,
                type="status_change",
                title=f"Status changed to {status}",
                metadata_json={"previousStatus": previous, "newStatus": status},
            )
        )
        await db.commit()
    except SQLAlchemyError:
        logger.exception("Error updating lead status %s", lead_id)
        await db.rollback()
        return MutationResult.fail("Failed to update lead status")
    await audit_svc.log_audit_action(
        db, actor, action="update", resource="lead", resource_id=lead_id,
        resource_name=lead.full_name,
        old_values={"status": previous}, new_values={"status": status},
    )
    return MutationResult.ok()


async def assign_lead(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    lead_id: uuid.UUID,
    user_id: uuid.UUID | None,
    actor: User | None = None,
) -> MutationResult:
    try:
        lead = (
            await db.execute(select(Lead).where(Lead.id == lead_id, Lead.tenant_id == tenant_id))
        ).scalar_one_or_none()
        if not lead:
            return MutationResult.fail("Lead not found")
        assignee = None
        if user_id:
            assignee = (
                await db.execute(select(User).where(User.id == user_id, User.tenant_id == tenant_id))
            ).scalar_one_or_none()
            if not assignee:
                return MutationResult.fail("User not found")
        previous = lead.assigned_to
        lead.assigned_to = user_id
        lead.updated_at = utcnow()
        db.add(
            Activity(
                tenant_id=tenant_id,
                lead_id=lead.id,
                user_id=actor.id if actor else None,
                type="assignment",
                title=f"Assigned to {assignee.full_name}" if assignee else "Unassigned",
                metadata_json={
                    "previousAssignee": str(previous) if previous else None,
                    "newAssignee": str(user_id) if user_id else None,
                },
            )
        )
        await db.commit()
    except SQLAlchemyError:
        logger.exception("Error assigning lead %s", lead_id)
        await db.rollback()
        return MutationResult.fail("Failed to assign lead")
    await audit_svc.log_audit_action(
        db, actor, action="assign", resource="lead",
        resource_id=lead_id, resource_name=lead.full_name,
    )
    return MutationResult.ok()


async def delete_lead(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    lead_id: uuid.UUID,
    actor: User | None = None,
) -> MutationResult:
    try:
        lead = (
            await db.execute(select(Lead).where(Lead.id == lead_id, Lead.tenant_id == tenant_id))
        ).scalar_one_or_none()
        if not lead:
            return MutationResult.fail("Lead not found")
        name = lead.full_name
        await db.execute(delete(Lead).where(Lead.id == lead_id, Lead.tenant_id == tenant_id))
        await db.commit()
    except SQLAlchemyError:
        logger.exception("Error deleting lead %s", lead_id)
        await db.rollback()
        return MutationResult.fail("Failed to delete lead")
    await audit_svc.log_audit_action(
        db, actor, action="delete", resource="lead", resource_id=lead_id, resource_name=name,
    )
    return MutationResult.ok()


async def lead_stats(db: AsyncSession, tenant_id: uuid.UUID) -> dict | None:
    try:
        result = await db.execute(select(Lead.status, Lead.market).where(Lead.tenant_id == tenant_id))
        rows = result.all()
    except SQLAlchemyError:
        logger.warning("Error fetching lead stats", exc_info=True)
        return None
    by_status = count_by(rows, "status")
    return {
        "total": len(rows),
        "byStatus": by_status,
        "byMarket": count_by(rows, "market"),
        "qualified": by_status.get("calificado", 0),
    }


def _short_amount(amount: float) -> str:
    if amount >= 1_000_000:
        return f"{amount / 1_000_000:.1f}M"
    if amount >= 1_000:
        return f"{amount / 1_000:.0f}k"
    return f"{int(amount):,}" if float(amount).is_integer() else f"{amount:,}"


def format_budget_range(budget_min: float | None, budget_max: float | None, currency: str) -> str:
    if budget_min and budget_max:
        return f"{currency} {_short_amount(budget_min)} - {_short_amount(budget_max)}"
    if budget_min:
        return f"{currency} {_short_amount(budget_min)}+"
    if budget_max:
        return f"Up to {currency} {_short_amount(budget_max)}"
    return "Not specified"
