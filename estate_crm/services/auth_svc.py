"""Auth service - password sign-in against the identity table."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth.session import AuthError, hash_password, issue_session_token, verify_password
from ..models.auth import AuthIdentity
from ..results import MutationResult
from .common import utcnow

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


async def get_identity(db: AsyncSession, email: str) -> AuthIdentity | None:
    result = await db.execute(select(AuthIdentity).where(AuthIdentity.email == _normalize_email(email)))
    return result.scalar_one_or_none()


async def create_identity(db: AsyncSession, email: str, password: str) -> AuthIdentity:
    """Register credentials. Raises AuthError on a weak password or duplicate email."""
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise AuthError(f"Password should be at least {MIN_PASSWORD_LENGTH} characters")
    email_norm = _normalize_email(email)
    if not email_norm:
        raise AuthError("Email is required")
    if await get_identity(db, email_norm):
        raise AuthError("User already registered")

    identity = AuthIdentity(email=email_norm, password_hash=hash_password(password))
    db.add(identity)
    await db.commit()
    await db.refresh(identity)
    return identity


async def sign_in(db: AsyncSession, settings_obj, email: str, password: str) -> tuple[AuthIdentity, str]:
    """Check credentials and return (identity, session token)."""
    try:
        identity = await get_identity(db, email)
    except SQLAlchemyError:
        logger.warning("Error looking up identity for sign-in", exc_info=True)
        raise AuthError("Authentication service unavailable")

    if not identity or not verify_password(password, identity.password_hash):
        raise AuthError("Invalid login credentials")

    # A failed commit expires the identity; read what the token needs first.
    auth_id, email_norm = str(identity.id), identity.email
    identity.last_sign_in_at = utcnow()
    try:
        await db.commit()
    except SQLAlchemyError:
        logger.warning("Could not record sign-in time for %s", email_norm, exc_info=True)
        await db.rollback()

    token = issue_session_token(settings_obj, auth_id, email_norm)
    return identity, token


async def update_password(db: AsyncSession, email: str | None, new_password: str) -> MutationResult:
    if not email:
        return MutationResult.fail("Not authenticated")
    if len(new_password or "") < MIN_PASSWORD_LENGTH:
        return MutationResult.fail(f"Password should be at least {MIN_PASSWORD_LENGTH} characters")
    try:
        identity = await get_identity(db, email)
        if not identity:
            return MutationResult.fail("Not authenticated")
        identity.password_hash = hash_password(new_password)
        await db.commit()
    except SQLAlchemyError:
        logger.exception("Error updating password")
        await db.rollback()
        return MutationResult.fail("Failed to update password")
    return MutationResult.ok()
