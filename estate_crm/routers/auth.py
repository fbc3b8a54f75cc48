"""Sign-in pages, logout and auth status."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth.gate import DASHBOARD_PATH, LOGIN_PATH
from ..auth.session import (
    AuthError,
    clear_demo_cookie,
    clear_session_cookie,
    decode_session_token,
    is_demo_mode,
    set_session_cookie,
)
from ..config import BackendMode, settings
from ..context.request import RequestContext, get_request_context
from ..context.user import ACCOUNT_DEACTIVATED, load_current_user
from ..database import get_db
from ..services import audit_svc, auth_svc
from .pages import page_context, templates

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.get("/api/auth/status")
async def auth_status(request: Request):
    return {"isDemoMode": is_demo_mode(request, settings)}


@router.get("/api/logout")
async def logout(
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    if ctx.actor is not None:
        await audit_svc.log_audit_action(db, ctx.actor, action="logout", resource="user",
                                         resource_id=ctx.actor.id, resource_name=ctx.actor.full_name)
    response = RedirectResponse(LOGIN_PATH, status_code=307)
    clear_session_cookie(response, settings)
    clear_demo_cookie(response, settings)
    return response


@router.get("/login")
async def login_page(request: Request, ctx: RequestContext = Depends(get_request_context)):
    return templates.TemplateResponse(request, "login.html", page_context(request, ctx, error=None, email=""))


@router.post("/login")
async def login_submit(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    if ctx.backend_mode is BackendMode.DEGRADED:
        return templates.TemplateResponse(
            request,
            "login.html",
            page_context(request, ctx, error="Backend is not configured", email=email),
            status_code=503,
        )
    try:
        _, token = await auth_svc.sign_in(db, settings, email, password)
    except AuthError as exc:
        logger.info("Sign-in failed for %s: %s", email, exc.message)
        return templates.TemplateResponse(
            request, "login.html", page_context(request, ctx, error=exc.message, email=email), status_code=400
        )

    user_ctx = await load_current_user(db, decode_session_token(settings, token))
    if user_ctx.error == ACCOUNT_DEACTIVATED:
        return templates.TemplateResponse(
            request, "login.html", page_context(request, ctx, error=user_ctx.error, email=email), status_code=403
        )
    if user_ctx.user is not None:
        await audit_svc.log_audit_action(db, user_ctx.user, action="login", resource="user",
                                         resource_id=user_ctx.user.id, resource_name=user_ctx.user.full_name)
    response = RedirectResponse(DASHBOARD_PATH, status_code=303)
    set_session_cookie(response, settings, token)
    return response


@router.get("/register")
async def register_page(request: Request, ctx: RequestContext = Depends(get_request_context)):
    return templates.TemplateResponse(request, "auth_placeholder.html", page_context(request, ctx, page="register"))


@router.get("/forgot-password")
async def forgot_password_page(request: Request, ctx: RequestContext = Depends(get_request_context)):
    return templates.TemplateResponse(request, "auth_placeholder.html", page_context(request, ctx, page="forgot-password"))
