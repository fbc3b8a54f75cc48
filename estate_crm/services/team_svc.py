"""Team service - tenant users as team members."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth.rbac import ROLE_ORDER
from ..models.user import User
from ..results import MutationResult, Rows
from . import audit_svc
from .common import active_filter, count_by, like_term, utcnow

logger = logging.getLogger(__name__)

ROLE_LABELS = {
    "admin": "Administrator",
    "manager": "Manager",
    "team_lead": "Team Lead",
    "agent": "Agent",
    "backoffice": "Back Office",
}

TEAM_LABELS = {
    "off-plan": "Off-Plan",
    "secondary": "Secondary Market",
    "leasing": "Leasing",
    "usa_desk": "USA Desk",
}


@dataclass
class TeamFilters:
    role: str | None = None
    market: str | None = None
    team: str | None = None
    is_active: bool | None = None
    search: str | None = None


async def list_team_members(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    filters: TeamFilters | None = None,
) -> Rows[User]:
    """Team members ordered by name."""
    filters = filters or TeamFilters()
    stmt = select(User).where(User.tenant_id == tenant_id)
    for column, value in (
        (User.role, filters.role),
        (User.market, filters.market),
        (User.team, filters.team),
    ):
        value = active_filter(value)
        if value:
            stmt = stmt.where(column == value)
    if filters.is_active is not None:
        stmt = stmt.where(User.is_active == filters.is_active)
    if filters.search and filters.search.strip():
        q = like_term(filters.search)
        stmt = stmt.where(or_(User.full_name.ilike(q), User.email.ilike(q)))

    try:
        result = await db.execute(stmt.order_by(User.full_name.asc()))
        return Rows(list(result.scalars().all()))
    except SQLAlchemyError as exc:
        logger.warning("Error fetching team members", exc_info=True)
        return Rows.failure(str(exc))


async def get_team_member(db: AsyncSession, tenant_id: uuid.UUID, user_id: uuid.UUID) -> User | None:
    try:
        result = await db.execute(select(User).where(User.id == user_id, User.tenant_id == tenant_id))
        return result.scalar_one_or_none()
    except SQLAlchemyError:
        logger.warning("Error fetching team member %s", user_id, exc_info=True)
        return None


async def list_agents(db: AsyncSession, tenant_id: uuid.UUID) -> Rows[User]:
    return await list_team_members(db, tenant_id, TeamFilters(role="agent"))


async def team_stats(db: AsyncSession, tenant_id: uuid.UUID) -> dict | None:
    try:
        result = await db.execute(
            select(User.role, User.market, User.is_active).where(User.tenant_id == tenant_id)
        )
        rows = result.all()
    except SQLAlchemyError:
        logger.warning("Error fetching team stats", exc_info=True)
        return None

    by_role = count_by(rows, "role")
    return {
        "total": len(rows),
        "active": sum(1 for row in rows if row.is_active),
        "byRole": by_role,
        "byMarket": count_by(rows, "market"),
        "agents": by_role.get("agent", 0) + by_role.get("team_lead", 0),
    }


# -- User administration ----------------------------------------------------

_USER_FIELDS = {"full_name", "role", "team", "market", "phone", "is_active"}


async def create_user(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    actor: User | None,
    *,
    email: str,
    full_name: str,
    role: str = "agent",
    team: str | None = None,
    market: str | None = None,
    phone: str | None = None,
) -> tuple[User | None, str | None]:
    """Add a profile to the tenant. The person signs in once an identity with the same email exists."""
    if actor is None:
        return None, "Not authenticated"
    email_norm = (email or "").strip().lower()
    if not email_norm:
        return None, "Email is required"
    if role not in ROLE_ORDER:
        return None, f"Unknown role: {role}"
    try:
        existing = await db.execute(select(User.id).where(User.email == email_norm))
        if existing.scalar_one_or_none() is not None:
            return None, "A user with this email already exists"
        user = User(
            tenant_id=tenant_id, email=email_norm, full_name=full_name, role=role,
            team=team or None, market=market or None, phone=phone or None, is_active=True,
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
    except SQLAlchemyError:
        logger.exception("Error creating user %s", email_norm)
        await db.rollback()
        return None, "Failed to create user"
    await audit_svc.log_audit_action(
        db, actor, action="invite", resource="user", resource_id=user.id,
        resource_name=user.full_name, new_values={"email": email_norm, "role": role},
    )
    return user, None


async def update_user(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    user_id: uuid.UUID,
    actor: User | None,
    **fields,
) -> MutationResult:
    if actor is None:
        return MutationResult.fail("Not authenticated")
    data = {k: v for k, v in fields.items() if k in _USER_FIELDS}
    if "role" in data and data["role"] not in ROLE_ORDER:
        return MutationResult.fail(f"Unknown role: {data['role']}")
    try:
        user = (
            await db.execute(select(User).where(User.id == user_id, User.tenant_id == tenant_id))
        ).scalar_one_or_none()
        if not user:
            return MutationResult.fail("User not found")
        old_values = {key: getattr(user, key) for key in data}
        for key, value in data.items():
            setattr(user, key, value)
        user.updated_at = utcnow()
        name = user.full_name
        await db.commit()
    except SQLAlchemyError:
        logger.exception("Error updating user %s", user_id)
        await db.rollback()
        return MutationResult.fail("Failed to update user")
    await audit_svc.log_audit_action(
        db, actor, action="update", resource="user", resource_id=user_id,
        resource_name=name, old_values=old_values, new_values=data,
    )
    return MutationResult.ok()


async def _set_active(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    user_id: uuid.UUID,
    actor: User | None,
    active: bool,
) -> MutationResult:
    verb = "reactivate" if active else "deactivate"
    if actor is None:
        return MutationResult.fail("Not authenticated")
    if not active and actor.id == user_id:
        return MutationResult.fail("You cannot deactivate your own account")
    try:
        user = (
            await db.execute(select(User).where(User.id == user_id, User.tenant_id == tenant_id))
        ).scalar_one_or_none()
        if not user:
            return MutationResult.fail("User not found")
        user.is_active = active
        user.updated_at = utcnow()
        name = user.full_name
        await db.commit()
    except SQLAlchemyError:
        logger.exception("Error trying to %s user %s", verb, user_id)
        await db.rollback()
        return MutationResult.fail(f"Failed to {verb} user")
    await audit_svc.log_audit_action(
        db, actor, action=verb, resource="user", resource_id=user_id, resource_name=name,
        new_values={"is_active": active},
    )
    return MutationResult.ok()


async def deactivate_user(
    db: AsyncSession, tenant_id: uuid.UUID, user_id: uuid.UUID, actor: User | None
) -> MutationResult:
    """Soft-disable a profile; its sessions stop resolving to a user."""
    return await _set_active(db, tenant_id, user_id, actor, False)


async def reactivate_user(
    db: AsyncSession, tenant_id: uuid.UUID, user_id: uuid.UUID, actor: User | None
) -> MutationResult:
    return await _set_active(db, tenant_id, user_id, actor, True)
