"""Role-based access control tables and checks."""

from __future__ import annotations

from dataclasses import dataclass

ROLE_ORDER = ["backoffice", "agent", "team_lead", "manager", "admin"]
RESOURCES = ("dashboard", "leads", "properties", "pipeline", "tasks", "team", "reports", "settings")
ACTIONS = ("view", "create", "edit", "delete", "assign", "export", "import", "manage")


@dataclass(frozen=True)
class Permission:
    resource: str
    actions: frozenset[str]
    scope: str  # own, team, all


def _p(resource: str, actions: str, scope: str) -> Permission:
    return Permission(resource, frozenset(actions.split()), scope)


ROLE_PERMISSIONS: dict[str, tuple[Permission, ...]] = {
    "admin": (
        _p("dashboard", "view", "all"),
        _p("leads", "view create edit delete assign export import", "all"),
        _p("properties", "view create edit delete export import", "all"),
        _p("pipeline", "view edit", "all"),
        _p("tasks", "view create edit delete assign", "all"),
        _p("team", "view create edit delete manage", "all"),
        _p("reports", "view export", "all"),
        _p("settings", "view edit manage", "all"),
    ),
    "manager": (
        _p("dashboard", "view", "all"),
        _p("leads", "view create edit delete assign export", "all"),
        _p("properties", "view create edit delete export", "all"),
        _p("pipeline", "view edit", "all"),
        _p("tasks", "view create edit delete assign", "all"),
        _p("team", "view create edit manage", "all"),
        _p("reports", "view export", "all"),
        _p("settings", "view edit", "all"),
    ),
    "team_lead": (
        _p("dashboard", "view", "team"),
        _p("leads", "view create edit assign", "team"),
        _p("properties", "view", "all"),
        _p("pipeline", "view edit", "team"),
        _p("tasks", "view create edit assign", "team"),
        _p("team", "view", "team"),
        _p("reports", "view", "team"),
        _p("settings", "view", "own"),
    ),
    "agent": (
        _p("dashboard", "view", "own"),
        _p("leads", "view create edit", "own"),
        _p("properties", "view", "all"),
        _p("pipeline", "view edit", "own"),
        _p("tasks", "view create edit", "own"),
        _p("team", "view", "team"),
        _p("reports", "view", "own"),
        _p("settings", "view", "own"),
    ),
    "backoffice": (
        _p("dashboard", "view", "all"),
        _p("leads", "view", "all"),
        _p("properties", "view create edit delete export import", "all"),
        _p("pipeline", "view", "all"),
        _p("tasks", "view create edit", "own"),
        _p("team", "view", "all"),
        _p("reports", "view", "all"),
        _p("settings", "view", "own"),
    ),
}

NAV_PERMISSIONS: dict[str, tuple[str, ...]] = {
    "admin": ("dashboard", "leads", "pipeline", "properties", "tasks", "team", "reports", "settings"),
    "manager": ("dashboard", "leads", "pipeline", "properties", "tasks", "team", "reports", "settings"),
    "team_lead": ("dashboard", "leads", "pipeline", "properties", "tasks", "team", "reports"),
    "agent": ("dashboard", "leads", "pipeline", "properties", "tasks"),
    "backoffice": ("dashboard", "properties", "tasks", "reports"),
}


def normalize_role(role: str | None) -> str:
    role_norm = (role or "").strip().lower()
    return role_norm if role_norm in ROLE_ORDER else "agent"


def _permission_for(role: str, resource: str) -> Permission | None:
    for perm in ROLE_PERMISSIONS.get(normalize_role(role), ()):
        if perm.resource == resource:
            return perm
    return None


def has_permission(role: str, resource: str, action: str) -> bool:
    perm = _permission_for(role, resource)
    return bool(perm and action in perm.actions)


def data_scope(role: str, resource: str) -> str | None:
    perm = _permission_for(role, resource)
    return perm.scope if perm else None


def can_access_nav(role: str, resource: str) -> bool:
    return resource in NAV_PERMISSIONS.get(normalize_role(role), ())


def has_minimum_role(role: str, minimum: str) -> bool:
    return ROLE_ORDER.index(normalize_role(role)) >= ROLE_ORDER.index(normalize_role(minimum))
