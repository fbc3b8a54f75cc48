"""Async test fixtures for Estate CRM using SQLite."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from estate_crm.auth.session import hash_password, issue_session_token
from estate_crm.config import settings
from estate_crm.database import Backend, get_backend, get_db
from estate_crm.models import AuthIdentity, Base, Lead, Property, Task, Tenant, User

ANON_KEY = "test-anon-key"


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest_asyncio.fixture
async def engine(tmp_path):
    # File-backed so concurrent sessions get their own connections.
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'estate.db'}", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def db(engine):
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def backend(engine):
    return Backend.from_engine(engine)


@pytest.fixture
def configured(monkeypatch):
    """Backend credentials present: the gate enforces sessions."""
    monkeypatch.setattr(settings, "backend_url", "sqlite+aiosqlite:///:memory:")
    monkeypatch.setattr(settings, "backend_anon_key", ANON_KEY)
    monkeypatch.setattr(settings, "tenant_slug", "")
    monkeypatch.setattr(settings, "security_fail_closed", False)
    return settings


@pytest.fixture
def unconfigured(monkeypatch):
    monkeypatch.setattr(settings, "backend_url", "")
    monkeypatch.setattr(settings, "backend_anon_key", "")
    monkeypatch.setattr(settings, "security_fail_closed", False)
    return settings


def ts(minutes_ago: float = 0) -> datetime:
    return datetime.now(timezone.utc) - timedelta(minutes=minutes_ago)


def db_error(*args, **kwargs):
    raise OperationalError("SELECT 1", {}, Exception("connection refused"))


async def failing_execute(*args, **kwargs):
    db_error()


@pytest_asyncio.fixture
async def tenant(db: AsyncSession):
    t = Tenant(
        id=uuid.uuid4(),
        name="Meridian Harbor",
        slug="meridian-harbor",
        branding={"primaryColor": "#123456"},
        settings={"enabledMarkets": ["dubai"]},
        is_active=True,
    )
    db.add(t)
    await db.commit()
    await db.refresh(t)
    return t


@pytest_asyncio.fixture
async def other_tenant(db: AsyncSession):
    t = Tenant(id=uuid.uuid4(), name="Other Realty", slug="other-realty", is_active=True)
    db.add(t)
    await db.commit()
    return t


async def make_user(db: AsyncSession, tenant: Tenant, *, email: str, role: str = "agent",
                    full_name: str | None = None, password: str | None = None, **kwargs) -> User:
    auth_id = None
    if password:
        identity = AuthIdentity(email=email, password_hash=hash_password(password))
        db.add(identity)
        await db.flush()
        auth_id = identity.id
    user = User(
        tenant_id=tenant.id,
        auth_id=auth_id,
        email=email,
        full_name=full_name or email.split("@")[0].title(),
        role=role,
        **kwargs,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def admin(db: AsyncSession, tenant):
    return await make_user(db, tenant, email="admin@meridian.test", role="admin",
                           full_name="Ana Admin", password="correct-horse")


@pytest_asyncio.fixture
async def agent(db: AsyncSession, tenant):
    return await make_user(db, tenant, email="agent@meridian.test", role="agent",
                           full_name="Omar Agent", password="agent-password", market="dubai")


async def make_lead(db: AsyncSession, tenant: Tenant, full_name: str, minutes_ago: float = 0, **kwargs) -> Lead:
    lead = Lead(tenant_id=tenant.id, full_name=full_name, created_at=ts(minutes_ago), **kwargs)
    db.add(lead)
    await db.commit()
    await db.refresh(lead)
    return lead


async def make_property(db: AsyncSession, tenant: Tenant, code: str, minutes_ago: float = 0, **kwargs) -> Property:
    defaults = {
        "title": f"Listing {code}",
        "type": "2BR",
        "price": 1_500_000,
        "currency": "AED",
        "operation": "resale",
        "market": "dubai",
        "zone": "Dubai Marina",
    }
    defaults.update(kwargs)
    prop = Property(tenant_id=tenant.id, code=code, created_at=ts(minutes_ago), **defaults)
    db.add(prop)
    await db.commit()
    await db.refresh(prop)
    return prop


async def make_task(db: AsyncSession, tenant: Tenant, title: str, **kwargs) -> Task:
    task = Task(tenant_id=tenant.id, title=title, **kwargs)
    db.add(task)
    await db.commit()
    await db.refresh(task)
    return task


def session_cookie(user: User) -> str:
    return issue_session_token(settings, str(user.auth_id), user.email)


@pytest_asyncio.fixture
async def client(engine, backend):
    """HTTPX async test client against the Estate CRM app."""
    from estate_crm.app import app

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_backend] = lambda: backend

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
