"""
Stakeholder Service.

Business logic for the stakeholder directory: people who can be attached to
events, their participation status and their event memberships.

Functions:
    - create_stakeholder:             Create with validated email
    - get_stakeholder:                Get single
    - list_stakeholders:              List with optional type/status/event filters
    - search_stakeholders:            Case-insensitive match on name/email/organization
    - update_stakeholder:             Update profile fields
    - update_participation_status:   Record a participation answer (mirrored on junctions)
    - delete_stakeholder:             Cascade delete (event links, junctions, document)
    - events_for_stakeholder:         Events the stakeholder is linked to
"""

import logging
import uuid

from email_validator import EmailNotValidError, validate_email

from eventdesk.core.exceptions import NotFoundError, PermissionDenied, ValidationError
from eventdesk.models.entities import (
    EVENT_STAKEHOLDERS,
    EVENTS,
    STAKEHOLDERS,
    Event,
    Principal,
    Stakeholder,
)
from eventdesk.models.enums import (
    ParticipationStatus,
    RelationshipType,
    StakeholderType,
    parse_enum,
)
from eventdesk.services.access_control import Action, can_perform
from eventdesk.signals import stakeholder_deleted, stakeholder_saved
from eventdesk.store.base import SERVER_TIMESTAMP, ArrayRemove, DocumentStore
from eventdesk.utils.helpers import to_iso, utcnow

logger = logging.getLogger(__name__)

NAME_MAX_LEN = 200
NOTES_MAX_LEN = 2000

# Profile fields update_stakeholder accepts: API name → document field.
_EDITABLE_FIELDS = {
    "name": "name",
    "email": "email",
    "phone": "phone",
    "organization": "organization",
    "title": "title",
    "type": "type",
    "relationship_type": "relationshipType",
    "notes": "notes",
    "is_active": "isActive",
    "metadata": "metadata",
}


def _require(principal: Principal | None, action: Action) -> None:
    if not can_perform(principal, action):
        raise PermissionDenied(principal.id if principal else None, action.value)


def normalize_email(email: str | None) -> str:
    """Validate and normalize an email address.

    Raises:
        ValidationError: address is missing or malformed.
    """
    email = (email or "").strip()
    if not email:
        raise ValidationError("Stakeholder email is required.", details={"email": "required"})
    try:
        valid = validate_email(email, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid email: {e}", details={"email": str(e)}) from None
    return valid.normalized


def _clean_name(name) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Stakeholder name is required.", details={"name": "required"})
    if len(name) > NAME_MAX_LEN:
        raise ValidationError(
            f"Name must be less than {NAME_MAX_LEN} characters", details={"name": "too long"}
        )
    return name


def _optional(value, max_len: int = 200) -> str | None:
    return (value or "").strip()[:max_len] or None


class StakeholderService:

    def __init__(self, store: DocumentStore):
        self.store = store

    def _load(self, stakeholder_id: str) -> Stakeholder:
        doc = self.store.get_by_id(STAKEHOLDERS, stakeholder_id)
        if doc is None:
            raise NotFoundError(resource="Stakeholder", resource_id=stakeholder_id)
        return Stakeholder.from_document(doc)

    # ── CRUD ──────────────────────────────────────────────────────────────

    def create_stakeholder(self, principal: Principal, data: dict) -> Stakeholder:
        """Create a stakeholder.

        Args:
            principal: Caller; needs the create-stakeholder gate.
            data: name and email required; type / relationship_type /
                participation_status default to external / attendee / pending.

        Raises:
            PermissionDenied, ValidationError.
        """
        _require(principal, Action.CREATE_STAKEHOLDER)
        notes = data.get("notes")
        if notes and len(notes) > NOTES_MAX_LEN:
            raise ValidationError("Notes must be less than 2000 characters")

        now = utcnow()
        stakeholder = Stakeholder(
            id=uuid.uuid4().hex,
            name=_clean_name(data.get("name")),
            email=normalize_email(data.get("email")),
            phone=_optional(data.get("phone"), 50),
            organization=_optional(data.get("organization")),
            title=_optional(data.get("title")),
            type=parse_enum(StakeholderType, data.get("type") or StakeholderType.EXTERNAL, "type"),
            relationship_type=parse_enum(
                RelationshipType,
                data.get("relationship_type") or RelationshipType.ATTENDEE,
                "relationship_type",
            ),
            participation_status=parse_enum(
                ParticipationStatus,
                data.get("participation_status") or ParticipationStatus.PENDING,
                "participation_status",
            ),
            notes=notes,
            is_active=data.get("is_active", True),
            metadata=data.get("metadata"),
            created_at=now,
            updated_at=now,
        )
        self.store.batch().set(STAKEHOLDERS, stakeholder.id, stakeholder.to_document()).commit()
        logger.info(
            "Stakeholder created",
            extra={"stakeholder_id": stakeholder.id, "principal_id": principal.id},
        )
        stakeholder_saved.send(self, stakeholder=stakeholder, created=True)
        return stakeholder

    def get_stakeholder(self, principal: Principal, stakeholder_id: str) -> Stakeholder:
        _require(principal, Action.VIEW_STAKEHOLDER)
        return self._load(stakeholder_id)

    def list_stakeholders(
        self,
        principal: Principal,
        type: str | None = None,
        status: str | None = None,
        event_id: str | None = None,
        active_only: bool = False,
    ) -> list[Stakeholder]:
        """List stakeholders sorted by name, with optional filters."""
        _require(principal, Action.VIEW_STAKEHOLDER)
        if event_id:
            docs = self.store.query(STAKEHOLDERS, "eventIds", "array-contains", event_id)
        else:
            docs = self.store.all(STAKEHOLDERS)
        result = [Stakeholder.from_document(d) for d in docs]
        if type:
            wanted_type = parse_enum(StakeholderType, type, "type")
            result = [s for s in result if s.type == wanted_type]
        if status:
            wanted_status = parse_enum(ParticipationStatus, status, "participation_status")
            result = [s for s in result if s.participation_status == wanted_status]
        if active_only:
            result = [s for s in result if s.is_active]
        return sorted(result, key=lambda s: s.name.lower())

    def search_stakeholders(self, principal: Principal, text: str) -> list[Stakeholder]:
        needle = (text or "").strip().lower()
        stakeholders = self.list_stakeholders(principal)
        if not needle:
            return stakeholders
        return [
            s for s in stakeholders
            if needle in s.name.lower()
            or needle in s.email.lower()
            or needle in (s.organization or "").lower()
        ]

    def update_stakeholder(self, principal: Principal, stakeholder_id: str, data: dict) -> Stakeholder:
        """Update profile fields.

        Event memberships and invite state have their own operations and are
        rejected here.
        """
        _require(principal, Action.EDIT_STAKEHOLDER)
        self._load(stakeholder_id)

        rejected = sorted(set(data) - set(_EDITABLE_FIELDS))
        if rejected:
            raise ValidationError(
                f"Fields cannot be changed here: {', '.join(rejected)}",
                details={f: "not editable" for f in rejected},
            )

        fields: dict = {}
        for key, value in data.items():
            if key == "name":
                value = _clean_name(value)
            elif key == "email":
                value = normalize_email(value)
            elif key == "type":
                value = parse_enum(StakeholderType, value, "type").value
            elif key == "relationship_type":
                value = parse_enum(RelationshipType, value, "relationship_type").value
            elif key == "notes" and value and len(value) > NOTES_MAX_LEN:
                raise ValidationError("Notes must be less than 2000 characters")
            elif key == "is_active":
                value = bool(value)
            fields[_EDITABLE_FIELDS[key]] = value
        fields["updatedAt"] = SERVER_TIMESTAMP
        self.store.batch().update(STAKEHOLDERS, stakeholder_id, fields).commit()

        logger.info(
            "Stakeholder updated",
            extra={"stakeholder_id": stakeholder_id, "principal_id": principal.id},
        )
        updated = self._load(stakeholder_id)
        stakeholder_saved.send(self, stakeholder=updated, created=False)
        return updated

    def update_participation_status(
        self,
        principal: Principal,
        stakeholder_id: str,
        status,
        event_id: str | None = None,
        note: str | None = None,
    ) -> Stakeholder:
        """Record a participation answer.

        A stakeholder may answer for themselves (principal linked to the
        stakeholder); anyone else needs the edit-stakeholder gate. With
        ``event_id`` only that junction record is updated as well; without it
        every junction of the stakeholder mirrors the new status.
        """
        stakeholder = self._load(stakeholder_id)
        is_self = principal is not None and principal.is_active and (
            principal.stakeholder_id == stakeholder_id or stakeholder.linked_user_id == principal.id
        )
        if not is_self:
            _require(principal, Action.EDIT_STAKEHOLDER)
        wanted = parse_enum(ParticipationStatus, status, "participation_status")

        if event_id is not None and event_id not in stakeholder.event_ids:
            raise ValidationError(
                "Stakeholder is not assigned to this event",
                details={"event_id": event_id},
            )
        responded_at = to_iso(utcnow())
        batch = self.store.batch()
        batch.update(STAKEHOLDERS, stakeholder_id, {
            "participationStatus": wanted.value,
            "updatedAt": SERVER_TIMESTAMP,
        })
        for doc in self.store.query(EVENT_STAKEHOLDERS, "stakeholderId", "==", stakeholder_id):
            if event_id is not None and doc.get("eventId") != event_id:
                continue
            batch.update(EVENT_STAKEHOLDERS, doc["id"], {
                "status": wanted.value,
                "respondedAt": responded_at,
                "responseNote": note,
            })
        batch.commit()

        logger.info(
            "Participation status set to %s", wanted.value,
            extra={"stakeholder_id": stakeholder_id, "event_id": event_id},
        )
        updated = self._load(stakeholder_id)
        stakeholder_saved.send(self, stakeholder=updated, created=False)
        return updated

    def delete_stakeholder(self, principal: Principal, stakeholder_id: str) -> None:
        """Delete a stakeholder and every link that points at it, atomically."""
        _require(principal, Action.DELETE_STAKEHOLDER)
        self._load(stakeholder_id)

        batch = self.store.batch()
        for doc in self.store.query(EVENTS, "stakeholderIds", "array-contains", stakeholder_id):
            batch.update(EVENTS, doc["id"], {
                "stakeholderIds": ArrayRemove(stakeholder_id),
                "updatedAt": SERVER_TIMESTAMP,
            })
        for doc in self.store.query(EVENT_STAKEHOLDERS, "stakeholderId", "==", stakeholder_id):
            batch.delete(EVENT_STAKEHOLDERS, doc["id"])
        batch.delete(STAKEHOLDERS, stakeholder_id)
        batch.commit()

        logger.info(
            "Stakeholder deleted",
            extra={"stakeholder_id": stakeholder_id, "principal_id": principal.id},
        )
        stakeholder_deleted.send(self, stakeholder_id=stakeholder_id)

    def events_for_stakeholder(self, principal: Principal, stakeholder_id: str) -> list[Event]:
        _require(principal, Action.VIEW_EVENT)
        stakeholder = self._load(stakeholder_id)
        events = []
        for eid in stakeholder.event_ids:
            doc = self.store.get_by_id(EVENTS, eid)
            if doc is not None:
                events.append(Event.from_document(doc))
        return sorted(events, key=lambda e: e.start_time)
