"""Task service - follow-ups attached to leads and team members."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Collection
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..models.task import Task
from ..models.user import User
from ..results import MutationResult, Rows
from . import audit_svc
from .common import active_filter, count_by, utcnow

logger = logging.getLogger(__name__)

TASK_TYPE_LABELS = {
    "follow_up": "Follow Up",
    "call": "Call",
    "meeting": "Meeting",
    "email": "Email",
    "document": "Document",
    "other": "Other",
}
TASK_PRIORITY_LABELS = {"high": "High", "medium": "Medium", "low": "Low"}
TASK_STATUS_LABELS = {"pending": "Pending", "in_progress": "In Progress", "completed": "Completed"}


@dataclass
class TaskFilters:
    status: str | None = None
    priority: str | None = None
    assigned_to: uuid.UUID | None = None
    type: str | None = None
    due_before: datetime | None = None
    assigned_in: Collection[uuid.UUID] | None = None


def _with_relations(stmt):
    return stmt.options(selectinload(Task.assigned_user), selectinload(Task.lead))


async def list_tasks(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    filters: TaskFilters | None = None,
) -> Rows[Task]:
    """Tasks by due date, undated tasks last."""
    filters = filters or TaskFilters()
    stmt = select(Task).where(Task.tenant_id == tenant_id)
    for column, value in (
        (Task.status, filters.status),
        (Task.priority, filters.priority),
        (Task.type, filters.type),
    ):
        value = active_filter(value)
        if value:
            stmt = stmt.where(column == value)
    if filters.assigned_to:
        stmt = stmt.where(Task.assigned_to == filters.assigned_to)
    if filters.assigned_in is not None:
        stmt = stmt.where(Task.assigned_to.in_(list(filters.assigned_in)))
    if filters.due_before:
        stmt = stmt.where(Task.due_date <= filters.due_before)

    stmt = _with_relations(stmt).order_by(Task.due_date.asc().nulls_last(), Task.created_at.desc())
    try:
        result = await db.execute(stmt)
        return Rows(list(result.scalars().all()))
    except SQLAlchemyError as exc:
        logger.warning("Error fetching tasks", exc_info=True)
        return Rows.failure(str(exc))


async def get_task(db: AsyncSession, tenant_id: uuid.UUID, task_id: uuid.UUID) -> Task | None:
    try:
        result = await db.execute(
            _with_relations(select(Task).where(Task.id == task_id, Task.tenant_id == tenant_id))
        )
        return result.scalar_one_or_none()
    except SQLAlchemyError:
        logger.warning("Error fetching task %s", task_id, exc_info=True)
        return None


async def list_lead_tasks(db: AsyncSession, tenant_id: uuid.UUID, lead_id: uuid.UUID) -> Rows[Task]:
    stmt = _with_relations(
        select(Task).where(Task.tenant_id == tenant_id, Task.lead_id == lead_id)
    ).order_by(Task.due_date.asc().nulls_last())
    try:
        result = await db.execute(stmt)
        return Rows(list(result.scalars().all()))
    except SQLAlchemyError as exc:
        logger.warning("Error fetching tasks for lead %s", lead_id, exc_info=True)
        return Rows.failure(str(exc))


async def create_task(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    title: str,
    actor: User | None = None,
    **fields,
) -> Task | None:
    allowed = {"lead_id", "assigned_to", "description", "type", "priority", "status", "due_date"}
    task = Task(tenant_id=tenant_id, title=title, **{k: v for k, v in fields.items() if k in allowed})
    try:
        db.add(task)
        await db.commit()
        await db.refresh(task)
    except SQLAlchemyError:
        logger.exception("Error creating task")
        await db.rollback()
        return None
    await audit_svc.log_audit_action(
        db, actor, action="create", resource="task", resource_id=task.id, resource_name=task.title,
    )
    return task


async def update_task_status(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    task_id: uuid.UUID,
    status: str,
    actor: User | None = None,
) -> MutationResult:
    try:
        task = (
            await db.execute(select(Task).where(Task.id == task_id, Task.tenant_id == tenant_id))
        ).scalar_one_or_none()
        if not task:
            return MutationResult.fail("Task not found")
        previous = task.status
        task.status = status
        task.updated_at = utcnow()
        if status == "completed":
            task.completed_at = utcnow()
        await db.commit()
    except SQLAlchemyError:
        logger.exception("Error updating task status %s", task_id)
        await db.rollback()
        return MutationResult.fail("Failed to update task")
    await audit_svc.log_audit_action(
        db, actor, action="update", resource="task", resource_id=task_id,
        resource_name=task.title,
        old_values={"status": previous}, new_values={"status": status},
    )
    return MutationResult.ok()


async def delete_task(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    task_id: uuid.UUID,
    actor: User | None = None,
) -> MutationResult:
    try:
        task = (
            await db.execute(select(Task).where(Task.id == task_id, Task.tenant_id == tenant_id))
        ).scalar_one_or_none()
        if not task:
            return MutationResult.fail("Task not found")
        title = task.title
        await db.execute(delete(Task).where(Task.id == task_id, Task.tenant_id == tenant_id))
        await db.commit()
    except SQLAlchemyError:
        logger.exception("Error deleting task %s", task_id)
        await db.rollback()
        return MutationResult.fail("Failed to delete task")
    await audit_svc.log_audit_action(
        db, actor, action="delete", resource="task", resource_id=task_id, resource_name=title,
    )
    return MutationResult.ok()


async def task_stats(db: AsyncSession, tenant_id: uuid.UUID, now: datetime | None = None) -> dict | None:
    try:
        result = await db.execute(
            select(Task.status, Task.priority, Task.due_date).where(Task.tenant_id == tenant_id)
        )
        rows = result.all()
    except SQLAlchemyError:
        logger.warning("Error fetching task stats", exc_info=True)
        return None

    today = (now or utcnow()).date()
    overdue = due_today = 0
    for row in rows:
        if row.due_date is None or row.status == "completed":
            continue
        due = row.due_date.date()
        if due < today:
            overdue += 1
        elif due == today:
            due_today += 1

    by_status = count_by(rows, "status")
    return {
        "total": len(rows),
        "byStatus": by_status,
        "byPriority": count_by(rows, "priority"),
        "pending": by_status.get("pending", 0),
        "inProgress": by_status.get("in_progress", 0),
        "completed": by_status.get("completed", 0),
        "overdue": overdue,
        "dueToday": due_today,
    }
