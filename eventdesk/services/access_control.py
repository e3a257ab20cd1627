"""
Access Control — role hierarchy + permission overrides + ownership checks.

Evaluation is deterministic and deny-by-default:
  - no principal (unauthenticated) or an inactive principal → False
  - ``admin`` / ``root`` permission short-circuits every check → True
  - otherwise an action passes when the principal's role reaches the action's
    baseline role OR the principal holds the action's explicit permission

All functions are pure predicates: no I/O, no side effects, never raise.
Callers decide how to present a denial; the service layer turns it into
PermissionDenied before refusing a mutation.

Role levels: admin=4 > manager=3 > member=2 > viewer=1
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable

from eventdesk.models.entities import Event, Principal
from eventdesk.models.enums import ROLE_LEVELS, SUPER_PERMISSIONS, Permission, Role


class Action(str, Enum):
    CREATE_EVENT = "create_event"
    EDIT_EVENT = "edit_event"
    DELETE_EVENT = "delete_event"
    VIEW_EVENT = "view_event"
    CREATE_STAKEHOLDER = "create_stakeholder"
    EDIT_STAKEHOLDER = "edit_stakeholder"
    DELETE_STAKEHOLDER = "delete_stakeholder"
    VIEW_STAKEHOLDER = "view_stakeholder"
    ASSIGN_STAKEHOLDER = "assign_stakeholder"
    INVITE_STAKEHOLDER = "invite_stakeholder"
    MANAGE_USERS = "manage_users"
    VIEW_REPORTS = "view_reports"
    EDIT_SETTINGS = "edit_settings"


# action → (baseline role or None, explicit permission)
ACTION_RULES: dict[Action, tuple[Role | None, Permission]] = {
    Action.CREATE_EVENT: (Role.MANAGER, Permission.CREATE_EVENT),
    Action.EDIT_EVENT: (Role.MANAGER, Permission.EDIT_EVENT),
    Action.DELETE_EVENT: (Role.MANAGER, Permission.DELETE_EVENT),
    Action.VIEW_EVENT: (Role.MEMBER, Permission.VIEW_EVENT),
    Action.CREATE_STAKEHOLDER: (Role.MANAGER, Permission.CREATE_STAKEHOLDER),
    Action.EDIT_STAKEHOLDER: (Role.MANAGER, Permission.EDIT_STAKEHOLDER),
    Action.DELETE_STAKEHOLDER: (Role.MANAGER, Permission.DELETE_STAKEHOLDER),
    Action.VIEW_STAKEHOLDER: (Role.MEMBER, Permission.VIEW_STAKEHOLDER),
    Action.ASSIGN_STAKEHOLDER: (Role.MANAGER, Permission.ASSIGN_STAKEHOLDER),
    Action.INVITE_STAKEHOLDER: (Role.MANAGER, Permission.INVITE_STAKEHOLDER),
    Action.MANAGE_USERS: (Role.MANAGER, Permission.MANAGE_USERS),
    Action.VIEW_REPORTS: (Role.MANAGER, Permission.VIEW_REPORTS),
    # No role baseline: must be granted explicitly (or via admin/root).
    Action.EDIT_SETTINGS: (None, Permission.EDIT_SETTINGS),
}

_EVENT_PERMISSIONS = [
    Permission.CREATE_EVENT,
    Permission.EDIT_EVENT,
    Permission.DELETE_EVENT,
    Permission.VIEW_EVENT,
]
_STAKEHOLDER_PERMISSIONS = [
    Permission.CREATE_STAKEHOLDER,
    Permission.EDIT_STAKEHOLDER,
    Permission.DELETE_STAKEHOLDER,
    Permission.VIEW_STAKEHOLDER,
    Permission.ASSIGN_STAKEHOLDER,
    Permission.INVITE_STAKEHOLDER,
]

DEFAULT_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.ADMIN: frozenset(
        _EVENT_PERMISSIONS + _STAKEHOLDER_PERMISSIONS + [
            Permission.MANAGE_USERS,
            Permission.VIEW_REPORTS,
            Permission.EDIT_SETTINGS,
            Permission.ADMIN,
        ]
    ),
    Role.MANAGER: frozenset(
        _EVENT_PERMISSIONS + _STAKEHOLDER_PERMISSIONS + [Permission.VIEW_REPORTS]
    ),
    Role.MEMBER: frozenset({
        Permission.CREATE_EVENT,
        Permission.EDIT_EVENT,
        Permission.VIEW_EVENT,
        Permission.VIEW_STAKEHOLDER,
        Permission.ASSIGN_STAKEHOLDER,
    }),
    Role.VIEWER: frozenset({Permission.VIEW_EVENT, Permission.VIEW_STAKEHOLDER}),
}

ROLE_LABELS = {
    Role.ADMIN: ("Administrator", "Full access to all features and settings"),
    Role.MANAGER: ("Manager", "Can manage events, stakeholders, and view reports"),
    Role.MEMBER: ("Member", "Can create and edit events, view stakeholders"),
    Role.VIEWER: ("Viewer", "Read-only access to events and stakeholders"),
}

PERMISSION_LABELS = {
    Permission.CREATE_EVENT: "Create Events",
    Permission.EDIT_EVENT: "Edit Events",
    Permission.DELETE_EVENT: "Delete Events",
    Permission.VIEW_EVENT: "View Events",
    Permission.CREATE_STAKEHOLDER: "Create Stakeholders",
    Permission.EDIT_STAKEHOLDER: "Edit Stakeholders",
    Permission.DELETE_STAKEHOLDER: "Delete Stakeholders",
    Permission.VIEW_STAKEHOLDER: "View Stakeholders",
    Permission.ASSIGN_STAKEHOLDER: "Assign Stakeholders",
    Permission.INVITE_STAKEHOLDER: "Invite Stakeholders",
    Permission.MANAGE_USERS: "Manage Users",
    Permission.VIEW_REPORTS: "View Reports",
    Permission.EDIT_SETTINGS: "Edit Settings",
    Permission.ADMIN: "Administrator Access",
    Permission.ROOT: "Root Access",
}


def _usable(principal: Principal | None) -> bool:
    return principal is not None and principal.is_active


# ═════════════════════════════════════════════════════════════════════════════
# Permission & role predicates
# ═════════════════════════════════════════════════════════════════════════════


def has_permission(principal: Principal | None, permission: Permission) -> bool:
    if not _usable(principal):
        return False
    return permission in principal.permissions


def has_any_permission(principal: Principal | None, permissions: Iterable[Permission]) -> bool:
    return any(has_permission(principal, p) for p in permissions)


def has_all_permissions(principal: Principal | None, permissions: Iterable[Permission]) -> bool:
    if not _usable(principal):
        return False
    return all(has_permission(principal, p) for p in permissions)


def is_super_admin(principal: Principal | None) -> bool:
    return has_any_permission(principal, SUPER_PERMISSIONS)


def has_minimum_role(principal: Principal | None, role: Role) -> bool:
    if not _usable(principal):
        return False
    return ROLE_LEVELS[principal.role] >= ROLE_LEVELS[role]


def can_grant_role(principal: Principal | None, role: Role) -> bool:
    """A principal may hand out its own role level or below; admin/root may grant any."""
    return is_super_admin(principal) or has_minimum_role(principal, role)


# ═════════════════════════════════════════════════════════════════════════════
# Composite gates
# ═════════════════════════════════════════════════════════════════════════════


def can_perform(principal: Principal | None, action: Action, resource=None) -> bool:
    """Composite gate for ``action``.

    When ``resource`` is an Event, edit/delete are narrowed to the
    resource-specific checks below.
    """
    if not _usable(principal):
        return False
    if isinstance(resource, Event):
        if action == Action.EDIT_EVENT:
            return can_edit_specific_event(principal, resource)
        if action == Action.DELETE_EVENT:
            return can_delete_specific_event(principal, resource)

    if is_super_admin(principal):
        return True
    required_role, permission = ACTION_RULES[action]
    if required_role is not None and has_minimum_role(principal, required_role):
        return True
    return has_permission(principal, permission)


def can_edit_specific_event(principal: Principal | None, event: Event) -> bool:
    """Managers edit any event; others only events they own.

    An owner qualifies with either the edit permission or the create
    permission (creators may edit what they created).
    """
    if not _usable(principal):
        return False
    if is_super_admin(principal) or has_minimum_role(principal, Role.MANAGER):
        return True
    if event.owner_id != principal.id:
        return False
    return can_perform(principal, Action.EDIT_EVENT) or can_perform(principal, Action.CREATE_EVENT)


def can_delete_specific_event(principal: Principal | None, event: Event) -> bool:
    """Delete needs the delete gate AND a management role; ownership is not enough."""
    if not _usable(principal):
        return False
    if is_super_admin(principal):
        return True
    return can_perform(principal, Action.DELETE_EVENT) and has_minimum_role(principal, Role.MANAGER)


# ═════════════════════════════════════════════════════════════════════════════
# Defaults & display helpers
# ═════════════════════════════════════════════════════════════════════════════


def default_permissions(role: Role) -> frozenset[Permission]:
    return DEFAULT_PERMISSIONS[role]


def display_role(permissions: Iterable[Permission]) -> str:
    """Label for the highest capability tier present in ``permissions``."""
    perms = set(permissions)
    if Permission.ROOT in perms:
        return "Root"
    if Permission.ADMIN in perms:
        return "Admin"
    if Permission.MANAGE_USERS in perms:
        return "Manager"
    if perms & {
        Permission.CREATE_EVENT,
        Permission.EDIT_EVENT,
        Permission.DELETE_EVENT,
        Permission.CREATE_STAKEHOLDER,
        Permission.EDIT_STAKEHOLDER,
        Permission.DELETE_STAKEHOLDER,
    }:
        return "Member"
    if perms & {Permission.VIEW_EVENT, Permission.VIEW_STAKEHOLDER}:
        return "Viewer"
    return "User"


def role_label(role: Role) -> str:
    return ROLE_LABELS[role][0]


def role_description(role: Role) -> str:
    return ROLE_LABELS[role][1]


def permission_label(permission: Permission) -> str:
    return PERMISSION_LABELS[permission]
