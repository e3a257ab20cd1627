"""
Event Service — event CRUD, status changes and stakeholder links.

Every mutation re-checks access here (``PermissionDenied``) and runs the
lifecycle rules (``ValidationError`` carrying the rule's message) before it
touches the store. Multi-document writes go through one atomic batch.

Functions:
    - create_event:          Create (Draft / Medium by default) with initial stakeholders
    - get_event:             Get single
    - list_events:           List with optional owner/status filters
    - events_for_date:       Events starting on a given day
    - upcoming_events:       Next N not-yet-started, not-finished events
    - search_events:         Case-insensitive text match on title/description/location
    - update_event:          Edit fields (ownership gate + can_edit)
    - change_status:         Status transition (ownership gate + transition guard)
    - delete_event:          Cascade delete (event, reverse links, junctions)
    - assign_stakeholder:    Gated RelationshipService.assign
    - unassign_stakeholder:  Gated RelationshipService.unassign
"""

import logging
import uuid
from datetime import date, datetime, time, timedelta, timezone

from eventdesk.core.exceptions import NotFoundError, PermissionDenied, ValidationError
from eventdesk.models.entities import (
    EVENT_STAKEHOLDERS,
    EVENTS,
    STAKEHOLDERS,
    Event,
    EventLocation,
    EventStakeholder,
    Principal,
    Stakeholder,
)
from eventdesk.models.enums import EventPriority, EventStatus, parse_enum
from eventdesk.services import event_lifecycle
from eventdesk.services.access_control import Action, can_perform
from eventdesk.services.relationship_service import RelationshipService
from eventdesk.signals import event_deleted, event_saved
from eventdesk.store.base import SERVER_TIMESTAMP, ArrayRemove, ArrayUnion, DocumentStore
from eventdesk.utils.helpers import parse_datetime, utcnow

logger = logging.getLogger(__name__)

# Fields update_event accepts; status and links have dedicated operations.
_EDITABLE_FIELDS = {
    "title", "description", "start_time", "end_time", "location",
    "priority", "recurrence_rule", "metadata",
}
_FINISHED = {EventStatus.COMPLETED, EventStatus.CANCELLED}


def _require(principal: Principal | None, action: Action, resource=None) -> None:
    if not can_perform(principal, action, resource):
        raise PermissionDenied(principal.id if principal else None, action.value)


def _raise_if_invalid(result: event_lifecycle.ValidationResult) -> None:
    if not result.valid:
        raise ValidationError(result.error_message)


class EventService:

    def __init__(self, store: DocumentStore, relationships: RelationshipService):
        self.store = store
        self.relationships = relationships

    def _load(self, event_id: str) -> Event:
        doc = self.store.get_by_id(EVENTS, event_id)
        if doc is None:
            raise NotFoundError(resource="Event", resource_id=event_id)
        return Event.from_document(doc)

    def _validate(self, event: Event, stakeholder_ids: list[str] | None = None) -> None:
        errors = event_lifecycle.validate_event(event, stakeholder_ids)
        if errors:
            raise ValidationError(errors[0], details={"errors": errors})

    # ── Create / read ─────────────────────────────────────────────────────

    def create_event(self, principal: Principal, data: dict) -> Event:
        """Create an event owned by ``principal``.

        Initial ``stakeholder_ids`` are linked in the same batch as the event:
        each stakeholder gets the reverse link and a junction record.

        Raises:
            PermissionDenied: principal may not create events (or assign).
            ValidationError: a field or time-range rule failed.
            NotFoundError: an initial stakeholder id does not exist.
        """
        _require(principal, Action.CREATE_EVENT)

        raw_ids = data.get("stakeholder_ids") or []
        if not isinstance(raw_ids, list):
            raise ValidationError("stakeholder_ids must be a list")
        _raise_if_invalid(event_lifecycle.validate_stakeholder_ids(raw_ids))
        if raw_ids:
            _require(principal, Action.ASSIGN_STAKEHOLDER)

        now = utcnow()
        event = Event(
            id=uuid.uuid4().hex,
            title=(data.get("title") or "").strip(),
            description=(data.get("description") or "").strip() or None,
            start_time=parse_datetime(data.get("start_time"), "start_time"),
            end_time=parse_datetime(data.get("end_time"), "end_time"),
            location=EventLocation.from_dict(data.get("location")),
            owner_id=principal.id,
            owner_name=principal.display_name or None,
            status=parse_enum(EventStatus, data.get("status") or EventStatus.DRAFT, "status"),
            priority=parse_enum(EventPriority, data.get("priority") or EventPriority.MEDIUM, "priority"),
            stakeholder_ids=raw_ids,
            recurrence_rule=data.get("recurrence_rule"),
            metadata=data.get("metadata"),
            created_at=now,
            updated_at=now,
        )
        self._validate(event)

        stakeholders = []
        for sid in event.stakeholder_ids:
            doc = self.store.get_by_id(STAKEHOLDERS, sid)
            if doc is None:
                raise NotFoundError(resource="Stakeholder", resource_id=sid)
            stakeholders.append(Stakeholder.from_document(doc))

        batch = self.store.batch()
        batch.set(EVENTS, event.id, event.to_document())
        for s in stakeholders:
            junction = EventStakeholder(
                event_id=event.id,
                stakeholder_id=s.id,
                assigned_at=now,
                role=s.relationship_type,
                status=s.participation_status,
            )
            batch.update(STAKEHOLDERS, s.id, {
                "eventIds": ArrayUnion(event.id),
                "updatedAt": SERVER_TIMESTAMP,
            })
            batch.set(EVENT_STAKEHOLDERS, junction.id, junction.to_document())
        batch.commit()

        logger.info(
            "Event created",
            extra={"event_id": event.id, "principal_id": principal.id},
        )
        event_saved.send(self, event=event, created=True)
        return event

    def get_event(self, principal: Principal, event_id: str) -> Event:
        _require(principal, Action.VIEW_EVENT)
        return self._load(event_id)

    def list_events(
        self,
        principal: Principal,
        owner_id: str | None = None,
        status: str | EventStatus | None = None,
    ) -> list[Event]:
        """List events ordered by start time, optionally by owner and status."""
        _require(principal, Action.VIEW_EVENT)
        if owner_id:
            docs = self.store.query(EVENTS, "ownerId", "==", owner_id)
        else:
            docs = self.store.all(EVENTS)
        events = [Event.from_document(d) for d in docs]
        if status:
            wanted = parse_enum(EventStatus, status, "status")
            events = [e for e in events if e.status == wanted]
        return sorted(events, key=lambda e: e.start_time)

    def events_for_date(self, principal: Principal, day: date) -> list[Event]:
        """Events whose start time falls on ``day`` (UTC)."""
        start = datetime.combine(day, time.min, tzinfo=timezone.utc)
        end = start + timedelta(days=1)
        return [e for e in self.list_events(principal) if start <= e.start_time < end]

    def upcoming_events(self, principal: Principal, limit: int = 10) -> list[Event]:
        now = utcnow()
        upcoming = [
            e for e in self.list_events(principal)
            if e.start_time > now and e.status not in _FINISHED
        ]
        return upcoming[:limit]

    def search_events(self, principal: Principal, text: str) -> list[Event]:
        needle = (text or "").strip().lower()
        events = self.list_events(principal)
        if not needle:
            return events

        def _hit(e: Event) -> bool:
            haystack = [e.title, e.description or ""]
            if e.location:
                haystack.append(e.location.name)
            return any(needle in h.lower() for h in haystack)

        return [e for e in events if _hit(e)]

    # ── Mutations ─────────────────────────────────────────────────────────

    def update_event(self, principal: Principal, event_id: str, data: dict) -> Event:
        """Edit event fields.

        Raises:
            PermissionDenied: principal may not edit this specific event.
            ValidationError: event is finished, a non-editable field was sent,
                or the edited event fails validation.
        """
        event = self._load(event_id)
        _require(principal, Action.EDIT_EVENT, event)
        _raise_if_invalid(event_lifecycle.can_edit(event))

        rejected = sorted(set(data) - _EDITABLE_FIELDS)
        if rejected:
            raise ValidationError(
                f"Fields cannot be changed here: {', '.join(rejected)}",
                details={f: "not editable" for f in rejected},
            )

        if "title" in data:
            event.title = (data["title"] or "").strip()
        if "description" in data:
            event.description = (data["description"] or "").strip() or None
        if "start_time" in data:
            event.start_time = parse_datetime(data["start_time"], "start_time")
        if "end_time" in data:
            event.end_time = parse_datetime(data["end_time"], "end_time")
        if "location" in data:
            event.location = EventLocation.from_dict(data["location"])
        if "priority" in data:
            event.priority = parse_enum(EventPriority, data["priority"], "priority")
        if "recurrence_rule" in data:
            event.recurrence_rule = data["recurrence_rule"]
        if "metadata" in data:
            event.metadata = data["metadata"]
        self._validate(event)

        body = event.to_document()
        fields = {
            key: body[key]
            for key in ("title", "description", "startTime", "endTime", "location",
                        "priority", "recurrenceRule", "metadata")
        }
        fields["updatedAt"] = SERVER_TIMESTAMP
        self.store.batch().update(EVENTS, event.id, fields).commit()

        logger.info("Event updated", extra={"event_id": event.id, "principal_id": principal.id})
        updated = self._load(event.id)
        event_saved.send(self, event=updated, created=False)
        return updated

    def change_status(self, principal: Principal, event_id: str, status) -> Event:
        event = self._load(event_id)
        _require(principal, Action.EDIT_EVENT, event)
        target = parse_enum(EventStatus, status, "status")
        _raise_if_invalid(event_lifecycle.validate_transition(event.status, target))
        if target == event.status:
            return event

        self.store.batch().update(EVENTS, event.id, {
            "status": target.value,
            "updatedAt": SERVER_TIMESTAMP,
        }).commit()
        logger.info(
            "Event status changed %s -> %s", event.status.value, target.value,
            extra={"event_id": event.id, "principal_id": principal.id},
        )
        updated = self._load(event.id)
        event_saved.send(self, event=updated, created=False)
        return updated

    def delete_event(self, principal: Principal, event_id: str) -> None:
        """Delete an event together with every link that points at it.

        Reverse links are found through the stakeholders that actually
        reference the event, so dangling ids on the event itself are
        tolerated.
        """
        event = self._load(event_id)
        _require(principal, Action.DELETE_EVENT, event)
        _raise_if_invalid(event_lifecycle.can_delete(event))

        batch = self.store.batch()
        for doc in self.store.query(STAKEHOLDERS, "eventIds", "array-contains", event.id):
            batch.update(STAKEHOLDERS, doc["id"], {
                "eventIds": ArrayRemove(event.id),
                "updatedAt": SERVER_TIMESTAMP,
            })
        for doc in self.store.query(EVENT_STAKEHOLDERS, "eventId", "==", event.id):
            batch.delete(EVENT_STAKEHOLDERS, doc["id"])
        batch.delete(EVENTS, event.id)
        batch.commit()

        logger.info("Event deleted", extra={"event_id": event.id, "principal_id": principal.id})
        event_deleted.send(self, event_id=event.id)

    # ── Stakeholder links ─────────────────────────────────────────────────

    def assign_stakeholder(self, principal: Principal, event_id: str, stakeholder_id: str) -> Stakeholder:
        _require(principal, Action.ASSIGN_STAKEHOLDER)
        event = self._load(event_id)
        _raise_if_invalid(event_lifecycle.can_edit(event))
        if stakeholder_id not in event.stakeholder_ids:
            _raise_if_invalid(
                event_lifecycle.validate_stakeholder_ids(event.stakeholder_ids + [stakeholder_id])
            )
        return self.relationships.assign(stakeholder_id, event_id)

    def unassign_stakeholder(self, principal: Principal, event_id: str, stakeholder_id: str) -> Stakeholder:
        _require(principal, Action.ASSIGN_STAKEHOLDER)
        return self.relationships.unassign(stakeholder_id, event_id)

    def stakeholders_for_event(self, principal: Principal, event_id: str) -> list[Stakeholder]:
        _require(principal, Action.VIEW_STAKEHOLDER)
        self._load(event_id)
        result = []
        for junction in self.relationships.stakeholders_for_event(event_id):
            doc = self.store.get_by_id(STAKEHOLDERS, junction.stakeholder_id)
            if doc is not None:
                result.append(Stakeholder.from_document(doc))
        return result
