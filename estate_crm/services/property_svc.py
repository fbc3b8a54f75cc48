"""Property service - listings inventory CRUD and stats."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.property import Property
from ..models.user import User
from ..results import MutationResult, Rows
from . import audit_svc
from .common import active_filter, count_by, like_term, utcnow

logger = logging.getLogger(__name__)

PROPERTY_STATUSES = ("disponible", "reservado", "vendido")
PROPERTY_OPERATIONS = ("off-plan", "resale", "rent")

_EDITABLE_FIELDS = {
    "code", "title", "description", "type", "bedrooms", "bathrooms", "area",
    "price", "currency", "status", "operation", "market", "zone", "developer",
    "features", "tags", "images",
}


@dataclass
class PropertyFilters:
    status: str | None = None
    market: str | None = None
    operation: str | None = None
    type: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    bedrooms: int | None = None
    search: str | None = None


async def list_properties(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    filters: PropertyFilters | None = None,
) -> Rows[Property]:
    filters = filters or PropertyFilters()
    stmt = select(Property).where(Property.tenant_id == tenant_id)

    for column, value in (
        (Property.status, filters.status),
        (Property.market, filters.market),
        (Property.operation, filters.operation),
        (Property.type, filters.type),
    ):
        value = active_filter(value)
        if value:
            stmt = stmt.where(column == value)
    # Zero price/bedroom bounds count as unset.
    if filters.min_price:
        stmt = stmt.where(Property.price >= filters.min_price)
    if filters.max_price:
        stmt = stmt.where(Property.price <= filters.max_price)
    if filters.bedrooms:
        stmt = stmt.where(Property.bedrooms == filters.bedrooms)
    if filters.search and filters.search.strip():
        q = like_term(filters.search)
        stmt = stmt.where(or_(Property.title.ilike(q), Property.zone.ilike(q), Property.code.ilike(q)))

    try:
        result = await db.execute(stmt.order_by(Property.created_at.desc()))
        return Rows(list(result.scalars().all()))
    except SQLAlchemyError as exc:
        logger.warning("Error fetching properties", exc_info=True)
        return Rows.failure(str(exc))


async def get_property(
    db: AsyncSession, tenant_id: uuid.UUID, property_id: uuid.UUID
) -> Property | None:
    try:
        result = await db.execute(
            select(Property).where(Property.id == property_id, Property.tenant_id == tenant_id)
        )
        return result.scalar_one_or_none()
    except SQLAlchemyError:
        logger.warning("Error fetching property %s", property_id, exc_info=True)
        return None


async def create_property(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    actor: User | None = None,
    **fields,
) -> Property | None:
    prop = Property(tenant_id=tenant_id, **{k: v for k, v in fields.items() if k in _EDITABLE_FIELDS})
    try:
        db.add(prop)
        await db.commit()
        await db.refresh(prop)
    except SQLAlchemyError:
        logger.exception("Error creating property")
        await db.rollback()
        return None
    await audit_svc.log_audit_action(
        db, actor, action="create", resource="property",
        resource_id=prop.id, resource_name=prop.title,
    )
    return prop


async def update_property(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    property_id: uuid.UUID,
    actor: User | None = None,
    **fields,
) -> MutationResult:
    data = {k: v for k, v in fields.items() if k in _EDITABLE_FIELDS}
    try:
        prop = await db.get(Property, property_id)
        if not prop or prop.tenant_id != tenant_id:
            return MutationResult.fail("Property not found")
        for key, value in data.items():
            setattr(prop, key, value)
        prop.updated_at = utcnow()
        await db.commit()
    except SQLAlchemyError:
        logger.exception("Error updating property %s", property_id)
        await db.rollback()
        return MutationResult.fail("Failed to update property")
    await audit_svc.log_audit_action(
        db, actor, action="update", resource="property",
        resource_id=property_id, resource_name=prop.title, new_values=data,
    )
    return MutationResult.ok()


async def delete_property(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    property_id: uuid.UUID,
    actor: User | None = None,
) -> MutationResult:
    try:
        prop = await db.get(Property, property_id)
        if not prop or prop.tenant_id != tenant_id:
            return MutationResult.fail("Property not found")
        title = prop.title
        await db.execute(
            delete(Property).where(Property.id == property_id, Property.tenant_id == tenant_id)
        )
        await db.commit()
    except SQLAlchemyError:
        logger.exception("Error deleting property %s", property_id)
        await db.rollback()
        return MutationResult.fail("Failed to delete property")
    await audit_svc.log_audit_action(
        db, actor, action="delete", resource="property", resource_id=property_id, resource_name=title,
    )
    return MutationResult.ok()


async def property_stats(db: AsyncSession, tenant_id: uuid.UUID) -> dict | None:
    try:
        result = await db.execute(
            select(Property.status, Property.market, Property.price).where(Property.tenant_id == tenant_id)
        )
        rows = result.all()
    except SQLAlchemyError:
        logger.warning("Error fetching property stats", exc_info=True)
        return None

    total = len(rows)
    total_value = sum(row.price or 0 for row in rows)
    by_status = count_by(rows, "status")
    return {
        "total": total,
        "byStatus": by_status,
        "byMarket": count_by(rows, "market"),
        "available": by_status.get("disponible", 0),
        "avgPrice": round(total_value / total) if total else 0,
    }


def _grouped(price: float) -> str:
    if float(price).is_integer():
        return f"{int(price):,}"
    return f"{price:,}"


def format_property_price(price: float, currency: str) -> str:
    """'AED 1.2M' above a million for AED/USD, grouped digits otherwise."""
    if currency in ("AED", "USD") and price >= 1_000_000:
        return f"{currency} {price / 1_000_000:.1f}M"
    return f"{currency} {_grouped(price)}"
