"""Estate CRM configuration via pydantic-settings."""

from __future__ import annotations

import enum
from pathlib import Path

from pydantic_settings import BaseSettings


class BackendMode(str, enum.Enum):
    """Outcome of resolving backend credentials before any request is gated."""

    READY = "ready"
    DEGRADED = "degraded"


class EstateSettings(BaseSettings):
    environment: str = "development"
    backend_url: str = ""
    backend_anon_key: str = ""
    service_role_key: str = ""
    site_url: str = "http://localhost:8030"
    echo_sql: bool = False
    app_title: str = "Estate CRM"

    session_cookie_name: str = "estate_session"
    session_ttl_seconds: int = 7 * 86400
    demo_cookie_name: str = "demo_mode"
    demo_ttl_seconds: int = 86400
    security_fail_closed: bool = False

    # Tenant detection: explicit slug wins, then <slug>.<suffix> hosts, then
    # the local development tenant, then the first active tenant.
    tenant_slug: str = ""
    tenant_domain_suffixes: str = ".aurix.app,.aurix.com"
    default_dev_tenant_slug: str = "meridian-harbor"

    storage_dir: str = "data/storage"
    avatar_max_bytes: int = 2 * 1024 * 1024

    model_config = {"env_prefix": "ESTATE_", "env_file": ".env", "extra": "ignore"}

    @property
    def base_dir(self) -> Path:
        return Path(__file__).resolve().parent

    @property
    def project_dir(self) -> Path:
        return self.base_dir.parent

    @property
    def templates_dir(self) -> Path:
        return self.base_dir / "templates"

    @property
    def storage_path(self) -> Path:
        path = Path(self.storage_dir)
        if not path.is_absolute():
            path = self.project_dir / path
        return path

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in {"prod", "production"}

    @property
    def domain_suffixes(self) -> list[str]:
        return [s.strip() for s in self.tenant_domain_suffixes.split(",") if s.strip()]

    @property
    def backend_configured(self) -> bool:
        return bool(self.backend_url.strip() and self.backend_anon_key.strip())


def resolve_backend_mode(settings_obj: EstateSettings) -> BackendMode:
    """READY only when both the backend URL and the anon key are present."""
    if settings_obj.backend_configured:
        return BackendMode.READY
    return BackendMode.DEGRADED


settings = EstateSettings()
