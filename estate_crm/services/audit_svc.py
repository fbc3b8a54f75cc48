"""Audit trail service - write actions, page through the log."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.audit_log import AuditLog
from ..models.user import User
from ..results import MutationResult, Rows
from .common import active_filter, like_term

logger = logging.getLogger(__name__)

AUDIT_ACTIONS = (
    "create", "update", "delete", "assign", "login", "logout",
    "export", "import", "invite", "deactivate", "reactivate",
)
AUDIT_RESOURCES = ("lead", "property", "task", "user", "team", "report", "settings")


@dataclass
class AuditFilters:
    action: str | None = None
    resource: str | None = None
    user_id: uuid.UUID | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    search: str | None = None


async def log_audit_action(
    db: AsyncSession,
    actor: User | None,
    *,
    action: str,
    resource: str,
    resource_id: uuid.UUID | str | None = None,
    resource_name: str | None = None,
    old_values: dict | None = None,
    new_values: dict | None = None,
    metadata: dict | None = None,
) -> MutationResult:
    """Record an action by the current profile. Never raises."""
    if actor is None:
        return MutationResult.fail("Not authenticated")
    if actor.tenant_id is None:
        return MutationResult.fail("User profile not found")

    entry = AuditLog(
        tenant_id=actor.tenant_id,
        user_id=actor.id,
        user_email=actor.email,
        user_name=actor.full_name,
        action=action,
        resource=resource,
        resource_id=str(resource_id) if resource_id else None,
        resource_name=resource_name or None,
        old_values=old_values or None,
        new_values=new_values or None,
        metadata_json=metadata or {},
    )
    try:
        db.add(entry)
        await db.commit()
    except SQLAlchemyError:
        logger.exception("Error logging audit action %s/%s", action, resource)
        await db.rollback()
        return MutationResult.fail("Failed to log action")
    return MutationResult.ok()


async def list_audit_logs(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    filters: AuditFilters | None = None,
    *,
    page: int = 1,
    page_size: int = 50,
) -> tuple[Rows[AuditLog], int]:
    """Newest-first audit log page. Returns (rows, total)."""
    filters = filters or AuditFilters()
    stmt = select(AuditLog).where(AuditLog.tenant_id == tenant_id)

    action = active_filter(filters.action)
    resource = active_filter(filters.resource)
    if action:
        stmt = stmt.where(AuditLog.action == action)
    if resource:
        stmt = stmt.where(AuditLog.resource == resource)
    if filters.user_id:
        stmt = stmt.where(AuditLog.user_id == filters.user_id)
    if filters.date_from:
        stmt = stmt.where(AuditLog.created_at >= filters.date_from)
    if filters.date_to:
        stmt = stmt.where(AuditLog.created_at <= filters.date_to)
    if filters.search:
        q = like_term(filters.search)
        stmt = stmt.where(
            or_(
                AuditLog.user_name.ilike(q),
                AuditLog.user_email.ilike(q),
                AuditLog.resource_name.ilike(q),
            )
        )

    page = max(1, page)
    page_size = max(1, min(page_size, 500))
    try:
        total = (await db.execute(select(func.count()).select_from(stmt.subquery()))).scalar() or 0
        result = await db.execute(
            stmt.order_by(AuditLog.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return Rows(list(result.scalars().all())), int(total)
    except SQLAlchemyError as exc:
        logger.warning("Error fetching audit logs", exc_info=True)
        return Rows.failure(str(exc)), 0


async def get_audit_log(db: AsyncSession, tenant_id: uuid.UUID, log_id: uuid.UUID) -> AuditLog | None:
    try:
        result = await db.execute(
            select(AuditLog).where(AuditLog.id == log_id, AuditLog.tenant_id == tenant_id)
        )
        return result.scalar_one_or_none()
    except SQLAlchemyError:
        logger.warning("Error fetching audit log %s", log_id, exc_info=True)
        return None
