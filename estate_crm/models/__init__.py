"""Estate CRM models - re-exports all models and Base.metadata."""

from .base import Base, UUIDMixin, CreatedMixin, TimestampMixin, TenantMixin
from .tenant import Tenant
from .user import User
from .property import Property
from .lead import Lead
from .activity import Activity
from .task import Task
from .audit_log import AuditLog
from .auth import AuthIdentity, Healthcheck

__all__ = [
    "Base",
    "UUIDMixin",
    "CreatedMixin",
    "TimestampMixin",
    "TenantMixin",
    "Tenant",
    "User",
    "Property",
    "Lead",
    "Activity",
    "Task",
    "AuditLog",
    "AuthIdentity",
    "Healthcheck",
]
