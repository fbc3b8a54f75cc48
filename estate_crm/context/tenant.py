"""Tenant resolution and branding/settings defaults."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import EstateSettings, settings
from ..models.tenant import Tenant

logger = logging.getLogger(__name__)

DEFAULT_BRANDING = {
    "primaryColor": "#7C3AED",
    "accentColor": "#B87333",
    "logoUrl": None,
    "logoWhiteUrl": None,
    "faviconUrl": None,
    "fontFamily": "Inter",
    "companyName": "AURIX",
    "companyShortName": "AX",
}

DEFAULT_SETTINGS = {
    "slaResponseMinutes": 15,
    "defaultTimezone": "UTC",
    "defaultCurrency": "USD",
    "defaultLanguage": "en",
    "enabledMarkets": ["dubai", "usa"],
    "enabledFeatures": ["leads", "properties", "pipeline", "tasks", "reports", "team"],
    "customFields": {},
}

LOCAL_HOSTS = {"localhost", "127.0.0.1"}


def normalize_branding(name: str, branding: dict | None) -> dict:
    merged = {**DEFAULT_BRANDING, **(branding or {})}
    merged["companyName"] = (branding or {}).get("companyName") or name
    merged["companyShortName"] = (branding or {}).get("companyShortName") or name[:1]
    return merged


def normalize_settings(raw: dict | None) -> dict:
    return {**DEFAULT_SETTINGS, **(raw or {})}


@dataclass
class TenantContext:
    tenant: Tenant | None = None
    error: str | None = None
    loading: bool = False
    branding: dict = field(default_factory=lambda: dict(DEFAULT_BRANDING))
    settings: dict = field(default_factory=lambda: dict(DEFAULT_SETTINGS))

    @property
    def tenant_id(self) -> uuid.UUID | None:
        return self.tenant.id if self.tenant else None

    def is_feature_enabled(self, feature: str) -> bool:
        return feature in self.settings.get("enabledFeatures", [])

    def is_market_enabled(self, market: str) -> bool:
        return market in self.settings.get("enabledMarkets", [])

    @property
    def sla_response_minutes(self) -> int:
        try:
            minutes = int(self.settings.get("slaResponseMinutes"))
        except (TypeError, ValueError):
            return DEFAULT_SETTINGS["slaResponseMinutes"]
        return minutes if minutes > 0 else DEFAULT_SETTINGS["slaResponseMinutes"]

    @classmethod
    def for_tenant(cls, tenant: Tenant) -> TenantContext:
        return cls(
            tenant=tenant,
            branding=normalize_branding(tenant.name, tenant.branding),
            settings=normalize_settings(tenant.settings),
        )


def detect_slug(host: str | None, settings_obj: EstateSettings = settings) -> str | None:
    """Explicit config slug, then <slug>.<suffix>, then the local dev tenant."""
    if settings_obj.tenant_slug.strip():
        return settings_obj.tenant_slug.strip()

    hostname = (host or "").split(":", 1)[0].strip().lower()
    if not hostname:
        return None
    for suffix in settings_obj.domain_suffixes:
        if hostname.endswith(suffix.lower()) and hostname != suffix.lower().lstrip("."):
            return hostname.split(".", 1)[0]
    if hostname in LOCAL_HOSTS:
        return settings_obj.default_dev_tenant_slug or None
    return None


async def load_tenant(
    db: AsyncSession,
    slug: str | None = None,
    host: str | None = None,
    settings_obj: EstateSettings = settings,
) -> TenantContext:
    """Resolve the tenant for a request. Failures land in ``error``."""
    slug = slug or detect_slug(host, settings_obj)
    try:
        if slug:
            result = await db.execute(select(Tenant).where(Tenant.slug == slug))
            tenant = result.scalar_one_or_none()
            if tenant is None:
                return TenantContext(error=f"Tenant '{slug}' not found")
        else:
            result = await db.execute(
                select(Tenant).where(Tenant.is_active.is_(True)).order_by(Tenant.created_at).limit(1)
            )
            tenant = result.scalar_one_or_none()
            if tenant is None:
                return TenantContext()
    except SQLAlchemyError:
        logger.warning("Error loading tenant %s", slug or "(first active)", exc_info=True)
        return TenantContext(error="Failed to load tenant")
    return TenantContext.for_tenant(tenant)
