"""JSON API for the dashboard pages."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..context.language import LanguageState
from ..context.request import (
    RequestContext,
    get_language,
    get_preferences,
    get_theme,
    require_minimum_role,
    require_permission,
    require_tenant,
)
from ..context.storage import CookiePreferenceStore
from ..context.theme import ThemeState
from ..database import Backend, get_backend, get_db
from ..results import MutationResult
from ..schemas.account import AuditLogResponse, PasswordUpdate, PreferenceUpdate, ProfileUpdate
from ..schemas.activity import ActivityCreate, ActivityResponse, RecentActivityResponse, TaskResponse
from ..schemas.lead import AssignRequest, LeadCreate, LeadResponse, StatusUpdate
from ..schemas.property import PropertyResponse
from ..schemas.team import TeamMemberResponse, UserCreate, UserUpdate
from ..services import (
    activity_svc,
    audit_svc,
    dashboard_svc,
    lead_svc,
    notification_svc,
    profile_svc,
    property_svc,
    search_svc,
    task_svc,
    team_svc,
)
from ..storage import ObjectStore

router = APIRouter(prefix="/api", tags=["api"])


def get_object_store() -> ObjectStore:
    return ObjectStore(settings.storage_path)


def _items(rows, schema) -> dict:
    return {
        "items": [schema.model_validate(row).model_dump(mode="json") for row in rows],
        "error": rows.error,
    }


def _mutation(result: MutationResult) -> JSONResponse:
    return JSONResponse(result.as_dict(), status_code=200 if result.success else 400)


async def _visible_assignees(ctx: RequestContext, db: AsyncSession, resource: str) -> set[uuid.UUID] | None:
    """Assignee ids the caller may see for ``resource``; None means the whole tenant.

    "own" is the caller alone. "team" is every member of the caller's team,
    falling back to "own" when the caller has no team.
    """
    user = ctx.user.user
    scope = ctx.user.scope_for(resource)
    if user is None or scope == "all":
        return None
    if scope == "team" and user.team:
        members = await team_svc.list_team_members(db, ctx.tenant_id, team_svc.TeamFilters(team=user.team))
        return {member.id for member in members} | {user.id}
    return {user.id}


async def _ensure_lead_in_scope(ctx: RequestContext, db: AsyncSession, lead_id: uuid.UUID, resource: str = "leads"):
    """404 when a scoped caller asks for a lead assigned outside their scope."""
    visible = await _visible_assignees(ctx, db, resource)
    if visible is None:
        return
    lead = await lead_svc.get_lead(db, ctx.tenant_id, lead_id)
    if lead is None or lead.assigned_to not in visible:
        raise HTTPException(status_code=404, detail="Lead not found")


async def _ensure_task_in_scope(ctx: RequestContext, db: AsyncSession, task_id: uuid.UUID):
    visible = await _visible_assignees(ctx, db, "tasks")
    if visible is None:
        return
    task = await task_svc.get_task(db, ctx.tenant_id, task_id)
    if task is None or task.assigned_to not in visible:
        raise HTTPException(status_code=404, detail="Task not found")


def _auth_id(ctx: RequestContext):
    if ctx.actor is None:
        return None
    return ctx.actor.auth_id


# -- Leads ------------------------------------------------------------------

@router.get("/leads")
async def leads_list(
    status: str | None = None,
    market: str | None = None,
    assigned_to: uuid.UUID | None = None,
    search: str | None = None,
    ctx: RequestContext = Depends(require_permission("leads", "view")),
    db: AsyncSession = Depends(get_db),
):
    filters = lead_svc.LeadFilters(
        status=status,
        market=market,
        assigned_to=assigned_to,
        search=search,
        assigned_in=await _visible_assignees(ctx, db, "leads"),
    )
    rows = await lead_svc.list_leads(db, ctx.tenant_id, filters)
    return _items(rows, LeadResponse)


@router.post("/leads", status_code=201)
async def lead_create(
    body: LeadCreate,
    ctx: RequestContext = Depends(require_permission("leads", "create")),
    db: AsyncSession = Depends(get_db),
):
    fields = body.model_dump(exclude_none=True)
    if ctx.actor is not None and ctx.user.scope_for("leads") != "all":
        fields.setdefault("assigned_to", ctx.actor.id)
    lead = await lead_svc.create_lead(db, ctx.tenant_id, ctx.actor, **fields)
    if lead is None:
        raise HTTPException(status_code=400, detail="Failed to create lead")
    lead = await lead_svc.get_lead(db, ctx.tenant_id, lead.id)
    return LeadResponse.model_validate(lead).model_dump(mode="json")


@router.get("/leads/stats")
async def leads_stats(
    ctx: RequestContext = Depends(require_permission("leads", "view")),
    db: AsyncSession = Depends(get_db),
):
    return await lead_svc.lead_stats(db, ctx.tenant_id)


@router.get("/pipeline")
async def pipeline(
    ctx: RequestContext = Depends(require_permission("pipeline", "view")),
    db: AsyncSession = Depends(get_db),
):
    filters = lead_svc.LeadFilters(assigned_in=await _visible_assignees(ctx, db, "pipeline"))
    grouped = await lead_svc.leads_by_status(db, ctx.tenant_id, filters)
    return {
        status: [LeadResponse.model_validate(lead).model_dump(mode="json") for lead in leads]
        for status, leads in grouped.items()
    }


@router.get("/leads/{lead_id}")
async def lead_detail(
    lead_id: uuid.UUID,
    ctx: RequestContext = Depends(require_permission("leads", "view")),
    db: AsyncSession = Depends(get_db),
):
    await _ensure_lead_in_scope(ctx, db, lead_id)
    lead = await lead_svc.get_lead(db, ctx.tenant_id, lead_id)
    if not lead:
        raise HTTPException(status_code=404, detail="Lead not found")
    return LeadResponse.model_validate(lead).model_dump(mode="json")


@router.patch("/leads/{lead_id}/status")
async def lead_status(
    lead_id: uuid.UUID,
    body: StatusUpdate,
    ctx: RequestContext = Depends(require_permission("pipeline", "edit")),
    db: AsyncSession = Depends(get_db),
):
    await _ensure_lead_in_scope(ctx, db, lead_id, "pipeline")
    return _mutation(await lead_svc.update_lead_status(db, ctx.tenant_id, lead_id, body.status, ctx.actor))


@router.post("/leads/{lead_id}/assign")
async def lead_assign(
    lead_id: uuid.UUID,
    body: AssignRequest,
    ctx: RequestContext = Depends(require_permission("leads", "assign")),
    db: AsyncSession = Depends(get_db),
):
    await _ensure_lead_in_scope(ctx, db, lead_id)
    return _mutation(await lead_svc.assign_lead(db, ctx.tenant_id, lead_id, body.user_id, ctx.actor))


@router.delete("/leads/{lead_id}")
async def lead_delete(
    lead_id: uuid.UUID,
    ctx: RequestContext = Depends(require_permission("leads", "delete")),
    db: AsyncSession = Depends(get_db),
):
    await _ensure_lead_in_scope(ctx, db, lead_id)
    return _mutation(await lead_svc.delete_lead(db, ctx.tenant_id, lead_id, ctx.actor))


@router.get("/leads/{lead_id}/activities")
async def lead_activities(
    lead_id: uuid.UUID,
    ctx: RequestContext = Depends(require_permission("leads", "view")),
    db: AsyncSession = Depends(get_db),
):
    await _ensure_lead_in_scope(ctx, db, lead_id)
    return _items(await activity_svc.list_lead_activities(db, ctx.tenant_id, lead_id), ActivityResponse)


@router.get("/leads/{lead_id}/tasks")
async def lead_tasks(
    lead_id: uuid.UUID,
    ctx: RequestContext = Depends(require_permission("tasks", "view")),
    db: AsyncSession = Depends(get_db),
):
    await _ensure_lead_in_scope(ctx, db, lead_id)
    return _items(await task_svc.list_lead_tasks(db, ctx.tenant_id, lead_id), TaskResponse)


# -- Properties -------------------------------------------------------------

@router.get("/properties")
async def properties_list(
    status: str | None = None,
    market: str | None = None,
    operation: str | None = None,
    type: str | None = None,
    min_price: float | None = None,
    max_price: float | None = None,
    bedrooms: int | None = None,
    search: str | None = None,
    ctx: RequestContext = Depends(require_permission("properties", "view")),
    db: AsyncSession = Depends(get_db),
):
    filters = property_svc.PropertyFilters(
        status=status, market=market, operation=operation, type=type,
        min_price=min_price, max_price=max_price, bedrooms=bedrooms, search=search,
    )
    return _items(await property_svc.list_properties(db, ctx.tenant_id, filters), PropertyResponse)


@router.get("/properties/stats")
async def properties_stats(
    ctx: RequestContext = Depends(require_permission("properties", "view")),
    db: AsyncSession = Depends(get_db),
):
    return await property_svc.property_stats(db, ctx.tenant_id)


@router.get("/properties/{property_id}")
async def property_detail(
    property_id: uuid.UUID,
    ctx: RequestContext = Depends(require_permission("properties", "view")),
    db: AsyncSession = Depends(get_db),
):
    prop = await property_svc.get_property(db, ctx.tenant_id, property_id)
    if not prop:
        raise HTTPException(status_code=404, detail="Property not found")
    data = PropertyResponse.model_validate(prop).model_dump(mode="json")
    data["formatted_price"] = property_svc.format_property_price(prop.price, prop.currency)
    return data


@router.delete("/properties/{property_id}")
async def property_delete(
    property_id: uuid.UUID,
    ctx: RequestContext = Depends(require_permission("properties", "delete")),
    db: AsyncSession = Depends(get_db),
):
    return _mutation(await property_svc.delete_property(db, ctx.tenant_id, property_id, ctx.actor))


# -- Team -------------------------------------------------------------------

@router.get("/team")
async def team_list(
    role: str | None = None,
    market: str | None = None,
    team: str | None = None,
    is_active: bool | None = None,
    search: str | None = None,
    ctx: RequestContext = Depends(require_permission("team", "view")),
    db: AsyncSession = Depends(get_db),
):
    filters = team_svc.TeamFilters(role=role, market=market, team=team, is_active=is_active, search=search)
    return _items(await team_svc.list_team_members(db, ctx.tenant_id, filters), TeamMemberResponse)


@router.get("/team/stats")
async def team_stats(
    ctx: RequestContext = Depends(require_permission("team", "view")),
    db: AsyncSession = Depends(get_db),
):
    return await team_svc.team_stats(db, ctx.tenant_id)


@router.get("/team/{user_id}")
async def team_detail(
    user_id: uuid.UUID,
    ctx: RequestContext = Depends(require_permission("team", "view")),
    db: AsyncSession = Depends(get_db),
):
    member = await team_svc.get_team_member(db, ctx.tenant_id, user_id)
    if not member:
        raise HTTPException(status_code=404, detail="Team member not found")
    return TeamMemberResponse.model_validate(member).model_dump(mode="json")


@router.post("/team", status_code=201)
async def team_create(
    body: UserCreate,
    ctx: RequestContext = Depends(require_permission("team", "create")),
    db: AsyncSession = Depends(get_db),
):
    user, error = await team_svc.create_user(db, ctx.tenant_id, ctx.actor, **body.model_dump())
    if error:
        raise HTTPException(status_code=400, detail=error)
    return TeamMemberResponse.model_validate(user).model_dump(mode="json")


@router.patch("/team/{user_id}")
async def team_update(
    user_id: uuid.UUID,
    body: UserUpdate,
    ctx: RequestContext = Depends(require_permission("team", "edit")),
    db: AsyncSession = Depends(get_db),
):
    fields = body.model_dump(exclude_unset=True)
    return _mutation(await team_svc.update_user(db, ctx.tenant_id, user_id, ctx.actor, **fields))


@router.post("/team/{user_id}/deactivate")
async def team_deactivate(
    user_id: uuid.UUID,
    ctx: RequestContext = Depends(require_permission("team", "manage")),
    db: AsyncSession = Depends(get_db),
):
    return _mutation(await team_svc.deactivate_user(db, ctx.tenant_id, user_id, ctx.actor))


@router.post("/team/{user_id}/reactivate")
async def team_reactivate(
    user_id: uuid.UUID,
    ctx: RequestContext = Depends(require_permission("team", "manage")),
    db: AsyncSession = Depends(get_db),
):
    return _mutation(await team_svc.reactivate_user(db, ctx.tenant_id, user_id, ctx.actor))


# -- Activities -------------------------------------------------------------

@router.get("/activities/recent")
async def activities_recent(
    limit: int = 20,
    ctx: RequestContext = Depends(require_permission("dashboard", "view")),
    db: AsyncSession = Depends(get_db),
):
    rows = await activity_svc.list_recent_activities(db, ctx.tenant_id, limit=max(1, min(limit, 100)))
    return _items(rows, RecentActivityResponse)


@router.post("/activities", status_code=201)
async def activity_create(
    body: ActivityCreate,
    ctx: RequestContext = Depends(require_permission("leads", "edit")),
    db: AsyncSession = Depends(get_db),
):
    await _ensure_lead_in_scope(ctx, db, body.lead_id)
    activity = await activity_svc.create_activity(
        db,
        body.lead_id,
        body.type,
        body.title,
        user_id=ctx.actor.id if ctx.actor else None,
        description=body.description,
        metadata=body.metadata,
        tenant_id=ctx.tenant_id,
    )
    if activity is None:
        raise HTTPException(status_code=404, detail="Lead not found")
    return ActivityResponse(
        id=activity.id,
        lead_id=activity.lead_id,
        user_id=activity.user_id,
        type=activity.type,
        title=activity.title,
        description=activity.description,
        metadata_json=activity.metadata_json,
        created_at=activity.created_at,
    ).model_dump(mode="json")


# -- Tasks ------------------------------------------------------------------

@router.get("/tasks")
async def tasks_list(
    status: str | None = None,
    priority: str | None = None,
    assigned_to: uuid.UUID | None = None,
    type: str | None = None,
    ctx: RequestContext = Depends(require_permission("tasks", "view")),
    db: AsyncSession = Depends(get_db),
):
    filters = task_svc.TaskFilters(
        status=status,
        priority=priority,
        assigned_to=assigned_to,
        type=type,
        assigned_in=await _visible_assignees(ctx, db, "tasks"),
    )
    return _items(await task_svc.list_tasks(db, ctx.tenant_id, filters), TaskResponse)


@router.patch("/tasks/{task_id}/status")
async def task_status(
    task_id: uuid.UUID,
    body: StatusUpdate,
    ctx: RequestContext = Depends(require_permission("tasks", "edit")),
    db: AsyncSession = Depends(get_db),
):
    await _ensure_task_in_scope(ctx, db, task_id)
    return _mutation(await task_svc.update_task_status(db, ctx.tenant_id, task_id, body.status, ctx.actor))


@router.delete("/tasks/{task_id}")
async def task_delete(
    task_id: uuid.UUID,
    ctx: RequestContext = Depends(require_permission("tasks", "delete")),
    db: AsyncSession = Depends(get_db),
):
    await _ensure_task_in_scope(ctx, db, task_id)
    return _mutation(await task_svc.delete_task(db, ctx.tenant_id, task_id, ctx.actor))


# -- Notifications, search, dashboard ---------------------------------------

@router.get("/notifications")
async def notifications(
    ctx: RequestContext = Depends(require_tenant),
    db: AsyncSession = Depends(get_db),
):
    items = await notification_svc.list_notifications(db, ctx.tenant_id)
    return {"items": [n.as_dict() for n in items]}


@router.get("/search")
async def search(
    q: str = "",
    ctx: RequestContext = Depends(require_tenant),
    backend: Backend = Depends(get_backend),
):
    results = await search_svc.global_search(backend, ctx.tenant_id, q)
    return {"items": [r.as_dict() for r in results]}


@router.get("/dashboard/stats")
async def dashboard_stats(
    ctx: RequestContext = Depends(require_permission("dashboard", "view")),
    db: AsyncSession = Depends(get_db),
):
    return await dashboard_svc.dashboard_stats(db, ctx.tenant_id)


@router.get("/dashboard/sla-alerts")
async def dashboard_sla_alerts(
    ctx: RequestContext = Depends(require_permission("dashboard", "view")),
    db: AsyncSession = Depends(get_db),
):
    sla = ctx.tenant.sla_response_minutes
    rows = await dashboard_svc.sla_alerts(db, ctx.tenant_id, sla)
    return {"items": [a.as_dict() for a in rows], "error": rows.error, "slaMinutes": sla}


@router.get("/dashboard/top-agents")
async def dashboard_top_agents(
    limit: int = 3,
    ctx: RequestContext = Depends(require_permission("dashboard", "view")),
    db: AsyncSession = Depends(get_db),
):
    rows = await dashboard_svc.top_agents(db, ctx.tenant_id, limit=max(1, min(limit, 20)))
    return {"items": [a.as_dict() for a in rows], "error": rows.error}


# -- Profile ----------------------------------------------------------------

@router.get("/profile")
async def profile(
    ctx: RequestContext = Depends(require_tenant),
    db: AsyncSession = Depends(get_db),
):
    data = await profile_svc.get_profile(
        db, _auth_id(ctx), language=ctx.language.language, theme=ctx.theme.theme,
    )
    if data is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return data


@router.patch("/profile")
async def profile_update(
    body: ProfileUpdate,
    ctx: RequestContext = Depends(require_tenant),
    db: AsyncSession = Depends(get_db),
):
    fields = body.model_dump(exclude_unset=True)
    return _mutation(await profile_svc.update_profile(db, _auth_id(ctx), **fields))


@router.post("/profile/password")
async def profile_password(
    body: PasswordUpdate,
    ctx: RequestContext = Depends(require_tenant),
    db: AsyncSession = Depends(get_db),
):
    email = ctx.actor.email if ctx.actor else None
    return _mutation(await profile_svc.update_password(db, email, body.new_password))


@router.post("/profile/avatar")
async def profile_avatar_upload(
    file: UploadFile = File(...),
    ctx: RequestContext = Depends(require_tenant),
    db: AsyncSession = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
):
    data = await file.read()
    result = await profile_svc.upload_avatar(
        db, store, _auth_id(ctx), file.filename or "", data, max_bytes=settings.avatar_max_bytes,
    )
    return JSONResponse(result, status_code=200 if result["error"] is None else 400)


@router.delete("/profile/avatar")
async def profile_avatar_delete(
    ctx: RequestContext = Depends(require_tenant),
    db: AsyncSession = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
):
    return _mutation(await profile_svc.delete_avatar(db, store, _auth_id(ctx)))


# -- Audit ------------------------------------------------------------------

@router.get("/audit-logs")
async def audit_logs(
    action: str | None = None,
    resource: str | None = None,
    user_id: uuid.UUID | None = None,
    search: str | None = None,
    page: int = 1,
    page_size: int = 50,
    ctx: RequestContext = Depends(require_minimum_role("manager")),
    db: AsyncSession = Depends(get_db),
):
    filters = audit_svc.AuditFilters(action=action, resource=resource, user_id=user_id, search=search)
    rows, total = await audit_svc.list_audit_logs(db, ctx.tenant_id, filters, page=page, page_size=page_size)
    payload = _items(rows, AuditLogResponse)
    payload.update({"total": total, "page": max(1, page)})
    return payload


@router.get("/audit-logs/{log_id}")
async def audit_log_detail(
    log_id: uuid.UUID,
    ctx: RequestContext = Depends(require_minimum_role("manager")),
    db: AsyncSession = Depends(get_db),
):
    entry = await audit_svc.get_audit_log(db, ctx.tenant_id, log_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Audit log entry not found")
    return AuditLogResponse.model_validate(entry).model_dump(mode="json")


# -- Labels -----------------------------------------------------------------

@router.get("/labels")
async def labels(ctx: RequestContext = Depends(require_tenant)):
    """Display names for the enumerations used across the dashboard."""
    return {
        "roles": team_svc.ROLE_LABELS,
        "teams": team_svc.TEAM_LABELS,
        "markets": dashboard_svc.MARKET_LABELS,
        "leadStatuses": list(lead_svc.LEAD_STATUSES),
        "activityTypes": {
            key: {"label": label, "icon": activity_svc.ACTIVITY_TYPE_ICONS.get(key)}
            for key, label in activity_svc.ACTIVITY_TYPE_LABELS.items()
        },
        "taskTypes": task_svc.TASK_TYPE_LABELS,
        "taskPriorities": task_svc.TASK_PRIORITY_LABELS,
        "taskStatuses": task_svc.TASK_STATUS_LABELS,
        "auditActions": list(audit_svc.AUDIT_ACTIONS),
        "auditResources": list(audit_svc.AUDIT_RESOURCES),
    }


# -- Preferences ------------------------------------------------------------

@router.get("/preferences")
async def preferences(
    theme: ThemeState = Depends(get_theme),
    language: LanguageState = Depends(get_language),
):
    return {
        "theme": theme.theme,
        "resolvedTheme": theme.resolved_theme,
        "language": language.language,
        "dir": language.direction,
    }


@router.put("/preferences")
async def preferences_update(
    body: PreferenceUpdate,
    store: CookiePreferenceStore = Depends(get_preferences),
    theme: ThemeState = Depends(get_theme),
    language: LanguageState = Depends(get_language),
):
    if body.theme:
        theme.set_theme(body.theme)
    if body.language:
        language.set_language(body.language)
    response = JSONResponse({
        "theme": theme.theme,
        "resolvedTheme": theme.resolved_theme,
        "language": language.language,
        "dir": language.direction,
    })
    store.apply(response)
    theme.unmount()
    return response
