"""Per-request context assembled by FastAPI dependencies."""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import BackendMode, EstateSettings, resolve_backend_mode, settings
from ..database import get_db
from ..models.user import User
from .language import LanguageState
from .storage import CookiePreferenceStore
from .tenant import TenantContext, load_tenant
from .theme import SystemColorScheme, ThemeState
from .user import UserContext, load_current_user


@dataclass
class RequestContext:
    settings: EstateSettings
    backend_mode: BackendMode
    preferences: CookiePreferenceStore
    theme: ThemeState
    language: LanguageState
    tenant: TenantContext
    user: UserContext

    @property
    def tenant_id(self) -> uuid.UUID | None:
        if self.user.user is not None and self.user.user.tenant_id is not None:
            return self.user.user.tenant_id
        return self.tenant.tenant_id

    @property
    def actor(self) -> User | None:
        """Profile that mutations are attributed to; demo sessions have none."""
        if self.user.is_demo_mode:
            return None
        return self.user.user

    @property
    def html_attrs(self) -> dict:
        return {
            "lang": self.language.document_lang,
            "dir": self.language.direction,
            "class": " ".join(self.theme.root_classes),
        }


def get_settings() -> EstateSettings:
    return settings


def get_preferences(request: Request, settings_obj: EstateSettings = Depends(get_settings)) -> CookiePreferenceStore:
    store = getattr(request.state, "preferences", None)
    if store is None:
        store = CookiePreferenceStore(request.cookies, secure=settings_obj.is_production)
        request.state.preferences = store
    return store


def get_theme(request: Request, store: CookiePreferenceStore = Depends(get_preferences)) -> ThemeState:
    return ThemeState(store, SystemColorScheme.from_headers(request.headers))


def get_language(store: CookiePreferenceStore = Depends(get_preferences)) -> LanguageState:
    return LanguageState(store)


async def get_tenant_context(
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings_obj: EstateSettings = Depends(get_settings),
) -> TenantContext:
    if resolve_backend_mode(settings_obj) is BackendMode.DEGRADED:
        return TenantContext(error="Backend is not configured")
    return await load_tenant(db, host=request.headers.get("host"), settings_obj=settings_obj)


async def get_user_context(
    request: Request,
    db: AsyncSession = Depends(get_db),
    tenant: TenantContext = Depends(get_tenant_context),
) -> UserContext:
    return await load_current_user(
        db,
        getattr(request.state, "session_user", None),
        demo_mode=bool(getattr(request.state, "demo_mode", False)),
        demo_tenant_id=tenant.tenant_id,
    )


async def get_request_context(
    settings_obj: EstateSettings = Depends(get_settings),
    preferences: CookiePreferenceStore = Depends(get_preferences),
    theme: ThemeState = Depends(get_theme),
    language: LanguageState = Depends(get_language),
    tenant: TenantContext = Depends(get_tenant_context),
    user: UserContext = Depends(get_user_context),
) -> RequestContext:
    return RequestContext(
        settings=settings_obj,
        backend_mode=resolve_backend_mode(settings_obj),
        preferences=preferences,
        theme=theme,
        language=language,
        tenant=tenant,
        user=user,
    )


async def require_tenant(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
    """Context for data endpoints: needs a signed-in (or demo) user and a tenant."""
    if not ctx.user.is_authenticated:
        raise HTTPException(status_code=401, detail=ctx.user.error or "Not authenticated")
    if ctx.tenant_id is None:
        raise HTTPException(status_code=404, detail=ctx.tenant.error or "Tenant not found")
    return ctx


def require_minimum_role(role: str):
    async def _check(ctx: RequestContext = Depends(require_tenant)) -> RequestContext:
        if not ctx.user.has_minimum_role(role):
            raise HTTPException(status_code=403, detail="Permission denied")
        return ctx

    return _check


def require_permission(resource: str, action: str):
    """Dependency factory enforcing the role permission table."""

    async def _check(ctx: RequestContext = Depends(require_tenant)) -> RequestContext:
        if not ctx.user.can(resource, action):
            raise HTTPException(status_code=403, detail=f"Permission denied: {resource}.{action}")
        return ctx

    return _check
