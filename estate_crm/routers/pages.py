"""Server-rendered pages: landing and dashboard overview."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.templating import Jinja2Templates
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import BackendMode, settings
from ..context.request import RequestContext, get_request_context
from ..database import get_db
from ..models.auth import Healthcheck
from ..services import dashboard_svc, notification_svc, property_svc
from ..services.lead_svc import format_budget_range

logger = logging.getLogger(__name__)

router = APIRouter(tags=["pages"])
templates = Jinja2Templates(directory=str(settings.templates_dir))
templates.env.globals["app_title"] = settings.app_title
templates.env.filters["budget"] = lambda lead: format_budget_range(
    lead.budget_min, lead.budget_max, lead.budget_currency or "AED"
)
templates.env.filters["price"] = lambda prop: property_svc.format_property_price(prop.price, prop.currency)


def page_context(request: Request, ctx: RequestContext, **extra) -> dict:
    """Template variables every page needs."""
    context = {
        "request": request,
        "ctx": ctx,
        "html": ctx.html_attrs,
        "branding": ctx.tenant.branding,
        "not_configured": ctx.backend_mode is BackendMode.DEGRADED,
        "is_demo_mode": ctx.user.is_demo_mode,
    }
    context.update(extra)
    return context


async def _check_backend(db: AsyncSession) -> str:
    try:
        await db.execute(select(Healthcheck.id).limit(1))
    except SQLAlchemyError:
        logger.warning("Backend connection check failed", exc_info=True)
        return "error"
    return "connected"


@router.get("/")
async def landing(
    request: Request,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    connection = "not_configured"
    if ctx.backend_mode is BackendMode.READY:
        connection = await _check_backend(db)
    return templates.TemplateResponse(
        request, "home.html", page_context(request, ctx, connection=connection)
    )


@router.get("/dashboard")
async def dashboard(
    request: Request,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    stats = None
    recent = []
    notifications = []
    alerts = []
    agents = []
    error = ctx.user.error or ctx.tenant.error
    if ctx.user.is_authenticated and ctx.tenant_id is not None:
        stats = await dashboard_svc.dashboard_stats(db, ctx.tenant_id)
        recent = await dashboard_svc.recent_leads(db, ctx.tenant_id)
        notifications = await notification_svc.list_notifications(db, ctx.tenant_id)
        alerts = await dashboard_svc.sla_alerts(db, ctx.tenant_id, ctx.tenant.sla_response_minutes)
        agents = await dashboard_svc.top_agents(db, ctx.tenant_id)
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        page_context(
            request,
            ctx,
            stats=stats,
            recent_leads=recent,
            notifications=notifications,
            sla_alerts=alerts,
            top_agents=agents,
            error=error,
        ),
    )
