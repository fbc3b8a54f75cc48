"""Dashboard overview numbers, response-time alerts and the agent leaderboard."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..models.lead import Lead
from ..models.user import User
from ..results import Rows
from . import lead_svc, property_svc, task_svc, team_svc
from .common import as_utc, count_by, utcnow

logger = logging.getLogger(__name__)

MARKETS = ("dubai", "usa")
MARKET_LABELS = {"dubai": "Dubai", "usa": "USA"}
SLA_ALERT_LIMIT = 10
CLOSED_WON = "cerrado_ganado"


@dataclass(frozen=True)
class SLAAlert:
    id: str
    lead_name: str
    market: str
    minutes: int
    assignee: str
    severity: str  # low, medium, high

    @property
    def time(self) -> str:
        return f"{self.minutes} min"

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "leadName": self.lead_name,
            "market": self.market,
            "time": self.time,
            "minutes": self.minutes,
            "assignee": self.assignee,
            "severity": self.severity,
        }


@dataclass(frozen=True)
class TopAgent:
    id: str
    name: str
    closings: int
    total_leads: int

    @property
    def initials(self) -> str:
        return "".join(part[0] for part in self.name.split())[:2].upper()

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "closings": self.closings,
            "totalLeads": self.total_leads,
            "avatar": self.initials,
        }


async def dashboard_stats(db: AsyncSession, tenant_id: uuid.UUID) -> dict | None:
    """Headline counts for the overview page; None if the lead query failed."""
    try:
        result = await db.execute(
            select(Lead.status, Lead.market, Lead.channel).where(Lead.tenant_id == tenant_id)
        )
        leads = result.all()
    except SQLAlchemyError:
        logger.warning("Error fetching leads for dashboard stats", exc_info=True)
        return None

    properties = await _property_stats(db, tenant_id)
    by_status = count_by(leads, "status")
    by_market = count_by(leads, "market")
    return {
        "totalLeads": len(leads),
        "qualifiedLeads": by_status.get("calificado", 0),
        "availableProperties": properties.get("available", 0),
        "closings": by_status.get(CLOSED_WON, 0),
        "leadsByMarket": {m: by_market.get(m, 0) for m in MARKETS},
        "propertiesByMarket": {m: properties.get("byMarket", {}).get(m, 0) for m in MARKETS},
        "leadsByStatus": by_status,
        "leadsByChannel": count_by(leads, "channel"),
        "tasks": await task_svc.task_stats(db, tenant_id),
        "team": await team_svc.team_stats(db, tenant_id),
    }


async def _property_stats(db: AsyncSession, tenant_id: uuid.UUID) -> dict:
    return await property_svc.property_stats(db, tenant_id) or {}


async def recent_leads(db: AsyncSession, tenant_id: uuid.UUID, limit: int = 5) -> Rows[Lead]:
    leads = await lead_svc.list_leads(db, tenant_id)
    return Rows(list(leads[:limit]), leads.error)


def sla_severity(minutes: int, sla_minutes: int) -> str:
    """Past twice the SLA is high, past the SLA is medium, anything earlier is low."""
    if minutes > 2 * sla_minutes:
        return "high"
    if minutes > sla_minutes:
        return "medium"
    return "low"


async def sla_alerts(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    sla_minutes: int = 15,
    now: datetime | None = None,
    limit: int = SLA_ALERT_LIMIT,
) -> Rows[SLAAlert]:
    """Leads still in ``nuevo`` once two thirds of the response SLA has passed, oldest first.

    With the default 15 minute SLA a lead starts showing at 10 minutes (low),
    turns medium after 15 and high after 30.
    """
    now = as_utc(now or utcnow())
    sla_minutes = max(1, int(sla_minutes))
    cutoff = now - timedelta(minutes=sla_minutes * 2 / 3)
    stmt = (
        select(Lead)
        .where(Lead.tenant_id == tenant_id, Lead.status == "nuevo", Lead.created_at < cutoff)
        .options(selectinload(Lead.assigned_user))
        .order_by(Lead.created_at.asc())
        .limit(limit)
    )
    try:
        result = await db.execute(stmt)
        leads = result.scalars().all()
    except SQLAlchemyError as exc:
        logger.warning("Error fetching SLA alerts", exc_info=True)
        return Rows.failure(str(exc))

    alerts = []
    for lead in leads:
        minutes = int((now - as_utc(lead.created_at)).total_seconds() // 60)
        alerts.append(SLAAlert(
            id=str(lead.id),
            lead_name=lead.full_name,
            market=MARKET_LABELS.get(lead.market or "", lead.market or ""),
            minutes=minutes,
            assignee=lead.assigned_user.full_name if lead.assigned_user else "Unassigned",
            severity=sla_severity(minutes, sla_minutes),
        ))
    return Rows(alerts)


async def top_agents(db: AsyncSession, tenant_id: uuid.UUID, limit: int = 3) -> Rows[TopAgent]:
    """Active agents with at least one lead, ranked by closings then lead count."""
    try:
        agents = (
            await db.execute(
                select(User.id, User.full_name)
                .where(User.tenant_id == tenant_id, User.role == "agent", User.is_active.is_(True))
                .order_by(User.full_name.asc())
            )
        ).all()
        leads = (
            await db.execute(
                select(Lead.assigned_to, Lead.status)
                .where(Lead.tenant_id == tenant_id, Lead.assigned_to.is_not(None))
            )
        ).all()
    except SQLAlchemyError as exc:
        logger.warning("Error fetching top agents", exc_info=True)
        return Rows.failure(str(exc))

    totals: dict[uuid.UUID, int] = {}
    closings: dict[uuid.UUID, int] = {}
    for lead in leads:
        totals[lead.assigned_to] = totals.get(lead.assigned_to, 0) + 1
        if lead.status == CLOSED_WON:
            closings[lead.assigned_to] = closings.get(lead.assigned_to, 0) + 1

    ranked = [
        TopAgent(id=str(a.id), name=a.full_name, closings=closings.get(a.id, 0), total_leads=totals[a.id])
        for a in agents
        if totals.get(a.id)
    ]
    ranked.sort(key=lambda agent: (-agent.closings, -agent.total_leads))
    return Rows(ranked[:limit])
