"""Global search across leads, properties and tasks."""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import asdict, dataclass

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError

from ..database import Backend
from ..models.lead import Lead
from ..models.property import Property
from ..models.task import Task

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2
PER_TYPE_LIMIT = 5


@dataclass(frozen=True)
class SearchResult:
    id: str
    type: str  # lead, property, task
    title: str
    subtitle: str
    href: str

    def as_dict(self) -> dict:
        return asdict(self)


async def _search_leads(backend: Backend, tenant_id: uuid.UUID, term: str) -> list[SearchResult]:
    stmt = (
        select(Lead.id, Lead.full_name, Lead.email, Lead.status)
        .where(
            Lead.tenant_id == tenant_id,
            or_(Lead.full_name.ilike(term), Lead.email.ilike(term), Lead.phone.ilike(term)),
        )
        .limit(PER_TYPE_LIMIT)
    )
    async with backend.session() as db:
        rows = (await db.execute(stmt)).all()
    return [
        SearchResult(
            id=str(r.id),
            type="lead",
            title=r.full_name,
            subtitle=r.email or r.status,
            href=f"/dashboard/leads/{r.id}",
        )
        for r in rows
    ]


async def _search_properties(backend: Backend, tenant_id: uuid.UUID, term: str) -> list[SearchResult]:
    stmt = (
        select(Property.id, Property.title, Property.code, Property.zone)
        .where(
            Property.tenant_id == tenant_id,
            or_(Property.title.ilike(term), Property.zone.ilike(term), Property.code.ilike(term)),
        )
        .limit(PER_TYPE_LIMIT)
    )
    async with backend.session() as db:
        rows = (await db.execute(stmt)).all()
    return [
        SearchResult(
            id=str(r.id),
            type="property",
            title=r.title,
            subtitle=" · ".join(part for part in (r.code, r.zone) if part),
            href=f"/dashboard/properties/{r.id}",
        )
        for r in rows
    ]


async def _search_tasks(backend: Backend, tenant_id: uuid.UUID, term: str) -> list[SearchResult]:
    stmt = (
        select(Task.id, Task.title, Task.status, Task.priority)
        .where(Task.tenant_id == tenant_id, Task.title.ilike(term))
        .limit(PER_TYPE_LIMIT)
    )
    async with backend.session() as db:
        rows = (await db.execute(stmt)).all()
    return [
        SearchResult(
            id=str(r.id),
            type="task",
            title=r.title,
            subtitle=f"{r.priority} · {r.status}",
            href="/dashboard/tasks",
        )
        for r in rows
    ]


async def _branch(name: str, coro) -> list[SearchResult]:
    try:
        return await coro
    except SQLAlchemyError:
        logger.warning("Search branch %s failed", name, exc_info=True)
        return []


async def global_search(backend: Backend, tenant_id: uuid.UUID, query: str) -> list[SearchResult]:
    """Substring match over the three resources, leads first, then properties, then tasks.

    Queries shorter than two characters return nothing without touching the
    database. Each branch runs on its own session; a failing branch yields no
    rows and does not abort the others.
    """
    if not query or len(query) < MIN_QUERY_LENGTH:
        return []

    term = f"%{query}%"
    leads, properties, tasks = await asyncio.gather(
        _branch("leads", _search_leads(backend, tenant_id, term)),
        _branch("properties", _search_properties(backend, tenant_id, term)),
        _branch("tasks", _search_tasks(backend, tenant_id, term)),
    )
    return [*leads, *properties, *tasks]
