"""Profile service - the signed-in user's own record and avatar."""

from __future__ import annotations

import logging
import time
import uuid

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.user import User
from ..results import MutationResult
from ..storage import ObjectStore, StorageError
from . import auth_svc
from .common import coerce_uuid, utcnow

logger = logging.getLogger(__name__)

AVATAR_BUCKET = "avatars"
AVATAR_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp"}

# Only these columns exist on the users table; the rest of the profile form
# lives in preferences.
PROFILE_FIELDS = ("full_name", "phone", "avatar_url")


async def _profile_for(db: AsyncSession, auth_id) -> User | None:
    auth_uuid = coerce_uuid(auth_id)
    if auth_uuid is None:
        return None
    result = await db.execute(select(User).where(User.auth_id == auth_uuid))
    return result.scalar_one_or_none()


async def get_profile(
    db: AsyncSession,
    auth_id: str | uuid.UUID | None,
    *,
    language: str = "en",
    theme: str = "system",
) -> dict | None:
    if not auth_id:
        return None
    try:
        user = await _profile_for(db, auth_id)
    except SQLAlchemyError:
        logger.warning("Error fetching profile", exc_info=True)
        return None
    if not user:
        return None
    return {
        "id": str(user.id),
        "email": user.email,
        "full_name": user.full_name,
        "phone": user.phone,
        "avatar_url": user.avatar_url,
        "language": language,
        "theme": theme,
        "notifications_email": True,
        "notifications_push": True,
        "notifications_sla": True,
    }


async def update_profile(db: AsyncSession, auth_id: str | uuid.UUID | None, **fields) -> MutationResult:
    """Update name/phone/avatar; other keys are ignored."""
    if not auth_id:
        return MutationResult.fail("Not authenticated")
    try:
        user = await _profile_for(db, auth_id)
        if not user:
            return MutationResult.fail("User profile not found")
        for key in PROFILE_FIELDS:
            if key in fields:
                setattr(user, key, fields[key])
        user.updated_at = utcnow()
        await db.commit()
    except SQLAlchemyError:
        logger.exception("Error updating profile")
        await db.rollback()
        return MutationResult.fail("Failed to update profile")
    return MutationResult.ok()


async def update_password(db: AsyncSession, email: str | None, new_password: str) -> MutationResult:
    return await auth_svc.update_password(db, email, new_password)


async def upload_avatar(
    db: AsyncSession,
    store: ObjectStore,
    auth_id: str | uuid.UUID | None,
    filename: str,
    data: bytes,
    max_bytes: int | None = None,
) -> dict:
    """Store an avatar image and point the profile at it. Returns {url, error}."""
    if not auth_id:
        return {"url": None, "error": "Not authenticated"}

    ext = (filename or "").rsplit(".", 1)[-1].lower() if "." in (filename or "") else ""
    if ext not in AVATAR_EXTENSIONS:
        return {"url": None, "error": "Unsupported image type"}
    if max_bytes is not None and len(data) > max_bytes:
        return {"url": None, "error": "Image is too large"}

    name = f"{auth_id}-{int(time.time() * 1000)}.{ext}"
    try:
        store.put_bytes_atomic(AVATAR_BUCKET, name, data)
    except (OSError, StorageError):
        logger.exception("Error uploading avatar")
        return {"url": None, "error": "Failed to upload image"}

    url = store.public_url(AVATAR_BUCKET, name)
    result = await update_profile(db, auth_id, avatar_url=url)
    if not result.success:
        store.remove(AVATAR_BUCKET, name)
        return {"url": None, "error": result.error}
    return {"url": url, "error": None}


async def delete_avatar(db: AsyncSession, store: ObjectStore, auth_id: str | uuid.UUID | None) -> MutationResult:
    if not auth_id:
        return MutationResult.fail("Not authenticated")
    try:
        user = await _profile_for(db, auth_id)
    except SQLAlchemyError:
        logger.warning("Error fetching profile for avatar removal", exc_info=True)
        return MutationResult.fail("Failed to update profile")

    if user and user.avatar_url:
        try:
            store.remove(AVATAR_BUCKET, store.name_from_url(user.avatar_url))
        except OSError:
            logger.warning("Could not remove avatar file %s", user.avatar_url, exc_info=True)

    return await update_profile(db, auth_id, avatar_url=None)
