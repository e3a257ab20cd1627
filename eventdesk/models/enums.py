"""
Domain enums and their document-store string encoding.

Each enum's ``value`` IS the string stored in documents. ``parse_enum`` is the
single decoding path from store/API strings back to members; unknown strings
are rejected with ValidationError instead of silently defaulting.
"""

from __future__ import annotations

from enum import Enum
from typing import TypeVar

from eventdesk.core.exceptions import ValidationError


class Role(str, Enum):
    """Coarse-grained rank of a principal."""
    ADMIN = "admin"
    MANAGER = "manager"
    MEMBER = "member"
    VIEWER = "viewer"

    @property
    def level(self) -> int:
        return ROLE_LEVELS[self]


# Strict total order: Admin > Manager > Member > Viewer
ROLE_LEVELS: dict[Role, int] = {
    Role.ADMIN: 4,
    Role.MANAGER: 3,
    Role.MEMBER: 2,
    Role.VIEWER: 1,
}


class Permission(str, Enum):
    """Fine-grained capability tag. ADMIN and ROOT satisfy every check."""
    CREATE_EVENT = "createEvent"
    EDIT_EVENT = "editEvent"
    DELETE_EVENT = "deleteEvent"
    VIEW_EVENT = "viewEvent"
    CREATE_STAKEHOLDER = "createStakeholder"
    EDIT_STAKEHOLDER = "editStakeholder"
    DELETE_STAKEHOLDER = "deleteStakeholder"
    VIEW_STAKEHOLDER = "viewStakeholder"
    ASSIGN_STAKEHOLDER = "assignStakeholder"
    INVITE_STAKEHOLDER = "inviteStakeholder"
    MANAGE_USERS = "manageUsers"
    VIEW_REPORTS = "viewReports"
    EDIT_SETTINGS = "editSettings"
    ADMIN = "admin"
    ROOT = "root"


SUPER_PERMISSIONS = frozenset({Permission.ADMIN, Permission.ROOT})


class EventStatus(str, Enum):
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "inProgress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class EventPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ParticipationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    TENTATIVE = "tentative"
    NO_RESPONSE = "noResponse"


class StakeholderType(str, Enum):
    INTERNAL = "internal"
    EXTERNAL = "external"
    CLIENT = "client"
    VENDOR = "vendor"
    PARTNER = "partner"


class RelationshipType(str, Enum):
    ORGANIZER = "organizer"
    PRESENTER = "presenter"
    ATTENDEE = "attendee"
    SPONSOR = "sponsor"
    GUEST = "guest"
    SUPPORT = "support"


class InviteStatus(str, Enum):
    NOT_INVITED = "notInvited"
    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"


class NotificationType(str, Enum):
    WELCOME = "welcome"
    EVENT_ASSIGNMENT = "event_assignment"
    EVENT_REMINDER = "event_reminder"
    EVENT_UPDATE = "event_update"
    INVITE_ACCEPTED = "invite_accepted"
    GENERAL = "general"


E = TypeVar("E", bound=Enum)


def parse_enum(enum_cls: type[E], value, field: str | None = None) -> E:
    """Decode a store/API string into ``enum_cls``.

    Members pass through unchanged. Anything that is not one of the declared
    values raises ValidationError naming the field and the accepted values.
    """
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        name = field or enum_cls.__name__
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(
            f"Invalid {name}: {value!r}. Must be one of: {allowed}",
            details={name: f"unknown value {value!r}"},
        ) from None


def parse_enum_list(enum_cls: type[E], values, field: str | None = None) -> list[E]:
    """Decode a list of store/API strings, preserving order and dropping duplicates."""
    if values is None:
        return []
    if isinstance(values, (str, bytes)) or not hasattr(values, "__iter__"):
        raise ValidationError(
            f"{field or enum_cls.__name__} must be a list",
            details={field or enum_cls.__name__: "expected a list"},
        )
    result: list[E] = []
    for v in values:
        member = parse_enum(enum_cls, v, field)
        if member not in result:
            result.append(member)
    return result
