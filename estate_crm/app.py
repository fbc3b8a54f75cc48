"""FastAPI application for Estate CRM."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from .auth.gate import AuthGateMiddleware
from .config import BackendMode, resolve_backend_mode, settings
from .database import backend
from .models import Base

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings.storage_path.mkdir(parents=True, exist_ok=True)
    mode = resolve_backend_mode(settings)
    if mode is BackendMode.DEGRADED:
        if settings.security_fail_closed:
            logger.error("Backend URL/key missing; refusing requests (fail-closed)")
        else:
            logger.warning("Backend URL/key missing; running with the auth gate open")
    elif backend.engine.dialect.name == "sqlite":
        async with backend.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    yield
    await backend.dispose()


app = FastAPI(title=settings.app_title, lifespan=lifespan)

app.add_middleware(AuthGateMiddleware, settings_obj=settings)

app.mount(
    "/storage",
    StaticFiles(directory=str(settings.storage_path), check_dir=False),
    name="storage",
)

from .routers import api, auth, health, pages  # noqa: E402

app.include_router(health.router)
app.include_router(pages.router)
app.include_router(auth.router)
app.include_router(api.router)
