"""Current user profile and permission helpers."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import rbac
from ..auth.session import SessionUser
from ..models.user import User
from ..services.common import coerce_uuid

logger = logging.getLogger(__name__)

DEMO_USER_ID = uuid.UUID("00000000-0000-4000-8000-00000000d3e0")
PROFILE_NOT_FOUND = "User profile not found. Please contact support."
ACCOUNT_DEACTIVATED = "This account has been deactivated. Please contact your administrator."


def demo_user(tenant_id: uuid.UUID | None = None) -> User:
    """Fixed admin used in demo mode. Never persisted."""
    return User(
        id=DEMO_USER_ID,
        auth_id=None,
        email="demo@aurix.com",
        full_name="Demo User",
        role="admin",
        team=None,
        market="dubai",
        avatar_url=None,
        phone="+971 50 123 4567",
        is_active=True,
        tenant_id=tenant_id,
    )


@dataclass
class UserContext:
    user: User | None = None
    error: str | None = None
    is_demo_mode: bool = False
    loading: bool = False

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def role(self) -> str | None:
        return rbac.normalize_role(self.user.role) if self.user else None

    @property
    def permissions(self) -> tuple[rbac.Permission, ...]:
        return rbac.ROLE_PERMISSIONS.get(self.role, ()) if self.role else ()

    def can(self, resource: str, action: str) -> bool:
        return bool(self.role) and rbac.has_permission(self.role, resource, action)

    def can_access_nav(self, resource: str) -> bool:
        return bool(self.role) and rbac.can_access_nav(self.role, resource)

    def scope_for(self, resource: str) -> str | None:
        return rbac.data_scope(self.role, resource) if self.role else None

    def has_role(self, role: str) -> bool:
        return self.role == role

    def has_minimum_role(self, role: str) -> bool:
        return bool(self.role) and rbac.has_minimum_role(self.role, role)

    @property
    def is_admin(self) -> bool:
        return self.has_role("admin")

    @property
    def is_manager(self) -> bool:
        return self.has_role("manager")

    @property
    def is_team_lead(self) -> bool:
        return self.has_role("team_lead")

    @property
    def is_agent(self) -> bool:
        return self.has_role("agent")

    @property
    def is_backoffice(self) -> bool:
        return self.has_role("backoffice")


async def load_current_user(
    db: AsyncSession,
    session_user: SessionUser | None,
    demo_mode: bool = False,
    demo_tenant_id: uuid.UUID | None = None,
) -> UserContext:
    """Profile for the session: by auth id first, then by email (back-filling auth id)."""
    if demo_mode:
        return UserContext(user=demo_user(demo_tenant_id), is_demo_mode=True)
    if session_user is None:
        return UserContext()

    auth_id = coerce_uuid(session_user.auth_id)
    try:
        user = None
        if auth_id is not None:
            result = await db.execute(select(User).where(User.auth_id == auth_id))
            user = result.scalar_one_or_none()
        if user is None and session_user.email:
            result = await db.execute(select(User).where(User.email == session_user.email))
            user = result.scalar_one_or_none()
            if user is None:
                logger.warning("No profile for auth user %s", session_user.auth_id)
                return UserContext(error=PROFILE_NOT_FOUND)
            if auth_id is not None and user.auth_id != auth_id:
                user.auth_id = auth_id
                await db.commit()
        if user is None:
            return UserContext(error=PROFILE_NOT_FOUND)
    except SQLAlchemyError:
        logger.warning("Error fetching user profile", exc_info=True)
        await db.rollback()
        return UserContext(error="Failed to load user profile")
    if not user.is_active:
        logger.info("Rejected session for deactivated user %s", user.email)
        return UserContext(error=ACCOUNT_DEACTIVATED)
    return UserContext(user=user)
