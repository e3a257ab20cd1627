"""
Domain entities — principals, events, stakeholders and their junction index.

Each entity is a dataclass with two encodings:
  - ``to_document()`` / ``from_document()`` — the camelCase document-store
    body (enum values as stored strings, datetimes as ISO-8601)
  - ``to_dict()`` — the snake_case API representation

Collections:
  users              Principal documents, keyed by principal id
  events             Event documents (stakeholderIds array)
  stakeholders       Stakeholder documents (eventIds array)
  eventStakeholders  Junction records keyed by junction_id(event, stakeholder)
  invites            Invite records keyed by token
  notifications      In-app notices addressed to one principal
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from eventdesk.models.enums import (
    EventPriority,
    EventStatus,
    InviteStatus,
    NotificationType,
    ParticipationStatus,
    Permission,
    RelationshipType,
    Role,
    StakeholderType,
    parse_enum,
    parse_enum_list,
)
from eventdesk.utils.helpers import parse_datetime, to_iso, utcnow

USERS = "users"
EVENTS = "events"
STAKEHOLDERS = "stakeholders"
EVENT_STAKEHOLDERS = "eventStakeholders"
INVITES = "invites"
NOTIFICATIONS = "notifications"


def junction_id(event_id: str, stakeholder_id: str) -> str:
    """Deterministic key of the junction record for one (event, stakeholder) pair."""
    return f"{event_id}_{stakeholder_id}"


def _unique(ids) -> list[str]:
    seen: list[str] = []
    for i in ids or []:
        if i not in seen:
            seen.append(i)
    return seen


# ═══════════════════════════════════════════════════════════════
# Principal
# ═══════════════════════════════════════════════════════════════
@dataclass
class Principal:
    """An authenticated user subject to access checks. Never hard-deleted."""
    id: str
    email: str
    display_name: str = ""
    role: Role = Role.MEMBER
    permissions: frozenset[Permission] = frozenset()
    is_active: bool = True
    stakeholder_id: str | None = None
    photo_url: str | None = None
    created_at: datetime | None = None
    last_login_at: datetime | None = None

    def to_document(self) -> dict:
        return {
            "email": self.email,
            "displayName": self.display_name,
            "photoUrl": self.photo_url,
            "role": self.role.value,
            "permissions": sorted(p.value for p in self.permissions),
            "isActive": self.is_active,
            "stakeholderId": self.stakeholder_id,
            "createdAt": to_iso(self.created_at),
            "lastLoginAt": to_iso(self.last_login_at),
        }

    @classmethod
    def from_document(cls, doc: dict) -> "Principal":
        return cls(
            id=doc["id"],
            email=doc.get("email", ""),
            display_name=doc.get("displayName") or "",
            photo_url=doc.get("photoUrl"),
            role=parse_enum(Role, doc.get("role", Role.MEMBER.value), "role"),
            permissions=frozenset(
                parse_enum_list(Permission, doc.get("permissions") or [], "permissions")
            ),
            is_active=doc.get("isActive", True),
            stakeholder_id=doc.get("stakeholderId"),
            created_at=parse_datetime(doc.get("createdAt"), "createdAt"),
            last_login_at=parse_datetime(doc.get("lastLoginAt"), "lastLoginAt"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "display_name": self.display_name,
            "photo_url": self.photo_url,
            "role": self.role.value,
            "permissions": sorted(p.value for p in self.permissions),
            "is_active": self.is_active,
            "stakeholder_id": self.stakeholder_id,
            "created_at": to_iso(self.created_at),
            "last_login_at": to_iso(self.last_login_at),
        }


# ═══════════════════════════════════════════════════════════════
# Event
# ═══════════════════════════════════════════════════════════════
@dataclass
class EventLocation:
    """Physical or virtual place of an event."""
    name: str
    address: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    is_virtual: bool = False
    virtual_link: str | None = None

    def to_document(self) -> dict:
        return {
            "name": self.name,
            "address": self.address,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "isVirtual": self.is_virtual,
            "virtualLink": self.virtual_link,
        }

    @classmethod
    def from_document(cls, doc: dict | None) -> "EventLocation | None":
        if not doc:
            return None
        return cls(
            name=doc.get("name") or "",
            address=doc.get("address"),
            latitude=doc.get("latitude"),
            longitude=doc.get("longitude"),
            is_virtual=bool(doc.get("isVirtual", False)),
            virtual_link=doc.get("virtualLink"),
        )

    @classmethod
    def from_dict(cls, data: dict | None) -> "EventLocation | None":
        if not data:
            return None
        return cls(
            name=(data.get("name") or "").strip(),
            address=data.get("address"),
            latitude=data.get("latitude"),
            longitude=data.get("longitude"),
            is_virtual=bool(data.get("is_virtual", False)),
            virtual_link=data.get("virtual_link"),
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "address": self.address,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "is_virtual": self.is_virtual,
            "virtual_link": self.virtual_link,
        }


@dataclass
class Event:
    """A scheduled, time-bounded activity owned by a principal."""
    id: str
    title: str
    start_time: datetime
    end_time: datetime
    owner_id: str
    status: EventStatus = EventStatus.DRAFT
    priority: EventPriority = EventPriority.MEDIUM
    stakeholder_ids: list[str] = field(default_factory=list)
    description: str | None = None
    location: EventLocation | None = None
    owner_name: str | None = None
    recurrence_rule: str | None = None
    metadata: dict | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self):
        self.stakeholder_ids = _unique(self.stakeholder_ids)

    @property
    def duration(self) -> timedelta:
        return self.end_time - self.start_time

    @property
    def is_active(self) -> bool:
        now = utcnow()
        return self.start_time < now < self.end_time

    @property
    def is_past(self) -> bool:
        return utcnow() > self.end_time

    @property
    def is_upcoming(self) -> bool:
        return utcnow() < self.start_time

    def to_document(self) -> dict:
        return {
            "title": self.title,
            "description": self.description,
            "startTime": to_iso(self.start_time),
            "endTime": to_iso(self.end_time),
            "location": self.location.to_document() if self.location else None,
            "ownerId": self.owner_id,
            "ownerName": self.owner_name,
            "status": self.status.value,
            "priority": self.priority.value,
            "stakeholderIds": list(self.stakeholder_ids),
            "recurrenceRule": self.recurrence_rule,
            "metadata": self.metadata,
            "createdAt": to_iso(self.created_at),
            "updatedAt": to_iso(self.updated_at),
        }

    @classmethod
    def from_document(cls, doc: dict) -> "Event":
        return cls(
            id=doc["id"],
            title=doc.get("title") or "",
            description=doc.get("description"),
            start_time=parse_datetime(doc.get("startTime"), "startTime"),
            end_time=parse_datetime(doc.get("endTime"), "endTime"),
            location=EventLocation.from_document(doc.get("location")),
            owner_id=doc.get("ownerId"),
            owner_name=doc.get("ownerName"),
            status=parse_enum(EventStatus, doc.get("status", EventStatus.DRAFT.value), "status"),
            priority=parse_enum(
                EventPriority, doc.get("priority", EventPriority.MEDIUM.value), "priority"
            ),
            stakeholder_ids=list(doc.get("stakeholderIds") or []),
            recurrence_rule=doc.get("recurrenceRule"),
            metadata=doc.get("metadata"),
            created_at=parse_datetime(doc.get("createdAt"), "createdAt"),
            updated_at=parse_datetime(doc.get("updatedAt"), "updatedAt"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "start_time": to_iso(self.start_time),
            "end_time": to_iso(self.end_time),
            "location": self.location.to_dict() if self.location else None,
            "owner_id": self.owner_id,
            "owner_name": self.owner_name,
            "status": self.status.value,
            "priority": self.priority.value,
            "stakeholder_ids": list(self.stakeholder_ids),
            "recurrence_rule": self.recurrence_rule,
            "metadata": self.metadata,
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
        }


# ═══════════════════════════════════════════════════════════════
# Stakeholder
# ═══════════════════════════════════════════════════════════════
@dataclass
class Stakeholder:
    """A person assignable to events (attendee / participant record)."""
    id: str
    name: str
    email: str
    phone: str | None = None
    organization: str | None = None
    title: str | None = None
    type: StakeholderType = StakeholderType.EXTERNAL
    relationship_type: RelationshipType = RelationshipType.ATTENDEE
    participation_status: ParticipationStatus = ParticipationStatus.PENDING
    notes: str | None = None
    event_ids: list[str] = field(default_factory=list)
    is_active: bool = True
    linked_user_id: str | None = None
    invite_status: InviteStatus = InviteStatus.NOT_INVITED
    invited_at: datetime | None = None
    invite_token: str | None = None
    metadata: dict | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self):
        self.event_ids = _unique(self.event_ids)

    @property
    def has_account(self) -> bool:
        return self.linked_user_id is not None

    @property
    def is_invite_pending(self) -> bool:
        return self.invite_status == InviteStatus.PENDING

    @property
    def display_name_with_org(self) -> str:
        return f"{self.name} ({self.organization})" if self.organization else self.name

    def to_document(self) -> dict:
        return {
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "organization": self.organization,
            "title": self.title,
            "type": self.type.value,
            "relationshipType": self.relationship_type.value,
            "participationStatus": self.participation_status.value,
            "notes": self.notes,
            "eventIds": list(self.event_ids),
            "isActive": self.is_active,
            "linkedUserId": self.linked_user_id,
            "inviteStatus": self.invite_status.value,
            "invitedAt": to_iso(self.invited_at),
            "inviteToken": self.invite_token,
            "metadata": self.metadata,
            "createdAt": to_iso(self.created_at),
            "updatedAt": to_iso(self.updated_at),
        }

    @classmethod
    def from_document(cls, doc: dict) -> "Stakeholder":
        return cls(
            id=doc["id"],
            name=doc.get("name") or "",
            email=doc.get("email") or "",
            phone=doc.get("phone"),
            organization=doc.get("organization"),
            title=doc.get("title"),
            type=parse_enum(StakeholderType, doc.get("type", StakeholderType.EXTERNAL.value), "type"),
            relationship_type=parse_enum(
                RelationshipType,
                doc.get("relationshipType", RelationshipType.ATTENDEE.value),
                "relationshipType",
            ),
            participation_status=parse_enum(
                ParticipationStatus,
                doc.get("participationStatus", ParticipationStatus.PENDING.value),
                "participationStatus",
            ),
            notes=doc.get("notes"),
            event_ids=list(doc.get("eventIds") or []),
            is_active=doc.get("isActive", True),
            linked_user_id=doc.get("linkedUserId"),
            invite_status=parse_enum(
                InviteStatus, doc.get("inviteStatus", InviteStatus.NOT_INVITED.value), "inviteStatus"
            ),
            invited_at=parse_datetime(doc.get("invitedAt"), "invitedAt"),
            invite_token=doc.get("inviteToken"),
            metadata=doc.get("metadata"),
            created_at=parse_datetime(doc.get("createdAt"), "createdAt"),
            updated_at=parse_datetime(doc.get("updatedAt"), "updatedAt"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "organization": self.organization,
            "title": self.title,
            "type": self.type.value,
            "relationship_type": self.relationship_type.value,
            "participation_status": self.participation_status.value,
            "notes": self.notes,
            "event_ids": list(self.event_ids),
            "is_active": self.is_active,
            "linked_user_id": self.linked_user_id,
            "invite_status": self.invite_status.value,
            "invited_at": to_iso(self.invited_at),
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
        }


# ═══════════════════════════════════════════════════════════════
# Junction record & invites
# ═══════════════════════════════════════════════════════════════
@dataclass
class EventStakeholder:
    """Materialized index row for one Event–Stakeholder link."""
    event_id: str
    stakeholder_id: str
    assigned_at: datetime
    role: RelationshipType = RelationshipType.ATTENDEE
    status: ParticipationStatus = ParticipationStatus.PENDING
    responded_at: datetime | None = None
    response_note: str | None = None

    @property
    def id(self) -> str:
        return junction_id(self.event_id, self.stakeholder_id)

    def to_document(self) -> dict:
        return {
            "eventId": self.event_id,
            "stakeholderId": self.stakeholder_id,
            "role": self.role.value,
            "status": self.status.value,
            "assignedAt": to_iso(self.assigned_at),
            "respondedAt": to_iso(self.responded_at),
            "responseNote": self.response_note,
        }

    @classmethod
    def from_document(cls, doc: dict) -> "EventStakeholder":
        return cls(
            event_id=doc["eventId"],
            stakeholder_id=doc["stakeholderId"],
            role=parse_enum(RelationshipType, doc.get("role", RelationshipType.ATTENDEE.value), "role"),
            status=parse_enum(
                ParticipationStatus, doc.get("status", ParticipationStatus.PENDING.value), "status"
            ),
            assigned_at=parse_datetime(doc.get("assignedAt"), "assignedAt"),
            responded_at=parse_datetime(doc.get("respondedAt"), "respondedAt"),
            response_note=doc.get("responseNote"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "event_id": self.event_id,
            "stakeholder_id": self.stakeholder_id,
            "role": self.role.value,
            "status": self.status.value,
            "assigned_at": to_iso(self.assigned_at),
            "responded_at": to_iso(self.responded_at),
            "response_note": self.response_note,
        }


@dataclass
class Invite:
    """Single-use token that links a new principal to a stakeholder."""
    token: str
    stakeholder_id: str
    email: str
    default_role: Role
    created_at: datetime
    expires_at: datetime
    used: bool = False

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utcnow()) > self.expires_at

    def to_document(self) -> dict:
        return {
            "stakeholderId": self.stakeholder_id,
            "email": self.email,
            "defaultRole": self.default_role.value,
            "createdAt": to_iso(self.created_at),
            "expiresAt": to_iso(self.expires_at),
            "used": self.used,
        }

    @classmethod
    def from_document(cls, doc: dict) -> "Invite":
        return cls(
            token=doc["id"],
            stakeholder_id=doc["stakeholderId"],
            email=doc.get("email") or "",
            default_role=parse_enum(Role, doc.get("defaultRole", Role.MEMBER.value), "defaultRole"),
            created_at=parse_datetime(doc.get("createdAt"), "createdAt"),
            expires_at=parse_datetime(doc.get("expiresAt"), "expiresAt"),
            used=bool(doc.get("used", False)),
        )


@dataclass
class Notification:
    """In-app notice for one principal; read state is per notice."""
    id: str
    user_id: str
    title: str
    body: str
    type: NotificationType = NotificationType.GENERAL
    event_id: str | None = None
    data: dict | None = None
    is_read: bool = False
    read_at: datetime | None = None
    created_at: datetime | None = None

    def to_document(self) -> dict:
        return {
            "userId": self.user_id,
            "title": self.title,
            "body": self.body,
            "type": self.type.value,
            "eventId": self.event_id,
            "data": self.data,
            "isRead": self.is_read,
            "readAt": to_iso(self.read_at),
            "createdAt": to_iso(self.created_at),
        }

    @classmethod
    def from_document(cls, doc: dict) -> "Notification":
        return cls(
            id=doc["id"],
            user_id=doc["userId"],
            title=doc.get("title") or "",
            body=doc.get("body") or "",
            type=parse_enum(
                NotificationType, doc.get("type", NotificationType.GENERAL.value), "type"
            ),
            event_id=doc.get("eventId"),
            data=doc.get("data"),
            is_read=bool(doc.get("isRead", False)),
            read_at=parse_datetime(doc.get("readAt"), "readAt"),
            created_at=parse_datetime(doc.get("createdAt"), "createdAt"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "body": self.body,
            "type": self.type.value,
            "event_id": self.event_id,
            "data": self.data,
            "is_read": self.is_read,
            "read_at": to_iso(self.read_at),
            "created_at": to_iso(self.created_at),
        }
