"""Request gate: demo mode, session checks and auth-page redirects."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from urllib.parse import parse_qsl

from starlette.datastructures import URL
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse

from ..config import BackendMode, resolve_backend_mode
from .session import (
    SessionUser,
    issue_session_token,
    needs_refresh,
    session_from_request,
    set_demo_cookie,
    set_session_cookie,
)

logger = logging.getLogger(__name__)

AUTH_PAGE_PREFIXES = ("/login", "/register", "/forgot-password")
PUBLIC_PATHS = frozenset({"/"})
DASHBOARD_PATH = "/dashboard"
LOGIN_PATH = "/login"

BYPASS_PREFIXES = ("/static/", "/storage/", "/health")
_ASSET_RE = re.compile(r"\.(?:svg|png|jpg|jpeg|gif|webp|ico)$", re.IGNORECASE)

ALLOW = "allow"
REDIRECT = "redirect"
UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class GateDecision:
    action: str
    location: str | None = None
    set_demo_cookie: bool = False
    session_user: SessionUser | None = None
    demo_mode: bool = False


def is_auth_page(path: str) -> bool:
    return path.startswith(AUTH_PAGE_PREFIXES)


def is_bypassed(path: str) -> bool:
    if path == "/favicon.ico" or _ASSET_RE.search(path):
        return True
    return any(path == p or path.startswith(p if p.endswith("/") else p + "/") for p in BYPASS_PREFIXES)


def _relative(url: URL) -> str:
    return f"{url.path}?{url.query}" if url.query else url.path


def evaluate_gate(
    url: URL,
    *,
    demo_cookie: bool,
    mode: BackendMode,
    session_user: SessionUser | None,
    fail_closed: bool = False,
) -> GateDecision:
    """Decide what happens to a request. Pure; cookies are applied by the caller."""
    path = url.path

    if dict(parse_qsl(url.query, keep_blank_values=True)).get("demo") == "true":
        clean = url.remove_query_params("demo")
        return GateDecision(REDIRECT, location=_relative(clean), set_demo_cookie=True, demo_mode=True)

    if demo_cookie:
        if path.startswith(LOGIN_PATH):
            return GateDecision(REDIRECT, location=_relative(url.replace(path=DASHBOARD_PATH)), demo_mode=True)
        return GateDecision(ALLOW, demo_mode=True)

    if mode is BackendMode.DEGRADED:
        if fail_closed:
            return GateDecision(UNAVAILABLE)
        return GateDecision(ALLOW)

    auth_page = is_auth_page(path)
    if session_user is None and not auth_page and path not in PUBLIC_PATHS:
        return GateDecision(REDIRECT, location=_relative(url.replace(path=LOGIN_PATH)))
    if session_user is not None and auth_page:
        return GateDecision(
            REDIRECT,
            location=_relative(url.replace(path=DASHBOARD_PATH)),
            session_user=session_user,
        )
    return GateDecision(ALLOW, session_user=session_user)


class AuthGateMiddleware(BaseHTTPMiddleware):
    """Runs on every request ahead of the routers."""

    def __init__(self, app, *, settings_obj):
        super().__init__(app)
        self._settings_obj = settings_obj

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if is_bypassed(path):
            return await call_next(request)

        settings_obj = self._settings_obj
        mode = resolve_backend_mode(settings_obj)
        demo_cookie = request.cookies.get(settings_obj.demo_cookie_name) == "true"
        session_user = None
        if mode is BackendMode.READY and not demo_cookie:
            session_user = session_from_request(request, settings_obj)

        decision = evaluate_gate(
            request.url,
            demo_cookie=demo_cookie,
            mode=mode,
            session_user=session_user,
            fail_closed=settings_obj.security_fail_closed,
        )
        request.state.backend_mode = mode
        request.state.demo_mode = decision.demo_mode
        request.state.session_user = decision.session_user

        if decision.action == UNAVAILABLE:
            logger.warning("Backend not configured; refusing %s (fail-closed)", path)
            return JSONResponse({"detail": "Backend is not configured"}, status_code=503)

        if decision.action == REDIRECT:
            response = RedirectResponse(decision.location, status_code=307)
            if decision.set_demo_cookie:
                set_demo_cookie(response, settings_obj)
            return response

        response = await call_next(request)
        if decision.session_user is not None and needs_refresh(settings_obj, decision.session_user):
            token = issue_session_token(
                settings_obj, decision.session_user.auth_id, decision.session_user.email
            )
            set_session_cookie(response, settings_obj, token)
        return response
