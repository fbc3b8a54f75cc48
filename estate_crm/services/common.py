"""Helpers shared by the data-access services."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone


def active_filter(value: str | None) -> str | None:
    """Treat blank and "all" filter values as absent."""
    if value is None:
        return None
    value = str(value).strip()
    if not value or value.lower() == "all":
        return None
    return value


def like_term(search: str) -> str:
    return f"%{search.strip()}%"


def coerce_uuid(value) -> uuid.UUID | None:
    if value is None or isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def count_by(rows, attr: str) -> dict[str, int]:
    counts: dict[str, int] = {}
    for row in rows:
        key = getattr(row, attr)
        if key:
            counts[key] = counts.get(key, 0) + 1
    return counts


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
