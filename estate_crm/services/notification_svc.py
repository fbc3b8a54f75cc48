"""Notifications derived from the last day of audit log entries."""

from __future__ import annotations

import logging
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.audit_log import AuditLog
from .common import as_utc, utcnow

logger = logging.getLogger(__name__)

WINDOW = timedelta(hours=24)
LIMIT = 20
UNREAD_MINUTES = 60

ACTION_LABELS = {
    "create": "New",
    "update": "Updated",
    "delete": "Deleted",
    "export": "Exported",
    "import": "Imported",
}
RESOURCE_LABELS = {"lead": "lead", "property": "property", "task": "task", "user": "user"}
NOTIFICATION_TYPES = {"lead": "lead", "property": "property", "task": "task"}


@dataclass(frozen=True)
class Notification:
    id: str
    title: str
    description: str
    time: str
    unread: bool
    type: str

    def as_dict(self) -> dict:
        return asdict(self)


def relative_time_label(delta: timedelta) -> str:
    """Fixed buckets. Anything a day or older reads "1d ago"."""
    minutes = int(delta.total_seconds() // 60)
    hours = int(delta.total_seconds() // 3600)
    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    return "1d ago"


def describe(resource_name: str | None, user_name: str | None) -> str:
    if resource_name:
        return f"{resource_name} by {user_name}" if user_name else resource_name
    return user_name or ""


def to_notification(log: AuditLog, now: datetime) -> Notification:
    delta = as_utc(now) - as_utc(log.created_at)
    action = ACTION_LABELS.get(log.action, log.action)
    resource = RESOURCE_LABELS.get(log.resource, log.resource)
    return Notification(
        id=str(log.id),
        title=f"{action} {resource}",
        description=describe(log.resource_name, log.user_name),
        time=relative_time_label(delta),
        unread=delta < timedelta(minutes=UNREAD_MINUTES),
        type=NOTIFICATION_TYPES.get(log.resource, "system"),
    )


async def list_notifications(
    db: AsyncSession, tenant_id: uuid.UUID, now: datetime | None = None
) -> list[Notification]:
    now = as_utc(now or utcnow())
    stmt = (
        select(AuditLog)
        .where(AuditLog.tenant_id == tenant_id, AuditLog.created_at >= now - WINDOW)
        .order_by(AuditLog.created_at.desc())
        .limit(LIMIT)
    )
    try:
        result = await db.execute(stmt)
        logs = result.scalars().all()
    except SQLAlchemyError:
        logger.warning("Error fetching notifications", exc_info=True)
        return []
    return [to_notification(log, now) for log in logs]
