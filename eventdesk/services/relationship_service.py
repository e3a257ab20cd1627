"""
Relationship Service — keeps the Event ↔ Stakeholder link symmetric.

Every link lives in three places:
  - stakeholders/<sid>.eventIds           contains <eid>
  - events/<eid>.stakeholderIds           contains <sid>
  - eventStakeholders/<eid>_<sid>         junction record (query index)

assign / unassign write all three in ONE atomic batch; the store either
applies the whole batch or none of it, so a failure never leaves a half-linked
pair behind. Array fields use set-union / set-removal transforms, which makes
concurrent duplicate calls converge to the same state.

Functions:
    - assign:                  link (idempotent)
    - unassign:                unlink (idempotent)
    - stakeholders_for_event:  junction records for an event
    - events_for_stakeholder:  junction records for a stakeholder
    - audit_event_links:       report asymmetric links / orphan junctions
"""

import logging

from eventdesk.core.exceptions import NotFoundError
from eventdesk.models.entities import (
    EVENT_STAKEHOLDERS,
    EVENTS,
    STAKEHOLDERS,
    Event,
    EventStakeholder,
    Stakeholder,
    junction_id,
)
from eventdesk.signals import stakeholder_assigned, stakeholder_unassigned
from eventdesk.store.base import SERVER_TIMESTAMP, ArrayRemove, ArrayUnion, DocumentStore
from eventdesk.utils.helpers import utcnow

logger = logging.getLogger(__name__)


class RelationshipService:

    def __init__(self, store: DocumentStore):
        self.store = store

    # ── Lookups ───────────────────────────────────────────────────────────

    def _stakeholder(self, stakeholder_id: str) -> Stakeholder:
        doc = self.store.get_by_id(STAKEHOLDERS, stakeholder_id)
        if doc is None:
            raise NotFoundError(resource="Stakeholder", resource_id=stakeholder_id)
        return Stakeholder.from_document(doc)

    def _event(self, event_id: str) -> Event:
        doc = self.store.get_by_id(EVENTS, event_id)
        if doc is None:
            raise NotFoundError(resource="Event", resource_id=event_id)
        return Event.from_document(doc)

    # ── Link / unlink ─────────────────────────────────────────────────────

    def assign(self, stakeholder_id: str, event_id: str) -> Stakeholder:
        """Link a stakeholder to an event.

        Already linked → the stakeholder is returned unchanged and nothing is
        written. Otherwise one batch carries exactly three writes: both array
        unions and the junction upsert.

        Raises:
            NotFoundError: stakeholder or event does not exist.
        """
        stakeholder = self._stakeholder(stakeholder_id)
        if event_id in stakeholder.event_ids:
            return stakeholder
        self._event(event_id)

        junction = EventStakeholder(
            event_id=event_id,
            stakeholder_id=stakeholder_id,
            assigned_at=utcnow(),
            role=stakeholder.relationship_type,
            status=stakeholder.participation_status,
        )
        batch = self.store.batch()
        batch.update(STAKEHOLDERS, stakeholder_id, {
            "eventIds": ArrayUnion(event_id),
            "updatedAt": SERVER_TIMESTAMP,
        })
        batch.update(EVENTS, event_id, {
            "stakeholderIds": ArrayUnion(stakeholder_id),
            "updatedAt": SERVER_TIMESTAMP,
        })
        batch.set(EVENT_STAKEHOLDERS, junction.id, junction.to_document())
        batch.commit()

        logger.info(
            "Stakeholder assigned to event",
            extra={"stakeholder_id": stakeholder_id, "event_id": event_id},
        )
        stakeholder_assigned.send(self, stakeholder_id=stakeholder_id, event_id=event_id)
        return self._stakeholder(stakeholder_id)

    def unassign(self, stakeholder_id: str, event_id: str) -> Stakeholder:
        """Remove the link between a stakeholder and an event.

        Not linked → no-op success. Otherwise one batch removes both array
        entries and deletes the junction record.

        Raises:
            NotFoundError: stakeholder does not exist, or the event is missing
                while the stakeholder still references it.
        """
        stakeholder = self._stakeholder(stakeholder_id)
        if event_id not in stakeholder.event_ids:
            return stakeholder
        self._event(event_id)

        batch = self.store.batch()
        batch.update(STAKEHOLDERS, stakeholder_id, {
            "eventIds": ArrayRemove(event_id),
            "updatedAt": SERVER_TIMESTAMP,
        })
        batch.update(EVENTS, event_id, {
            "stakeholderIds": ArrayRemove(stakeholder_id),
            "updatedAt": SERVER_TIMESTAMP,
        })
        batch.delete(EVENT_STAKEHOLDERS, junction_id(event_id, stakeholder_id))
        batch.commit()

        logger.info(
            "Stakeholder removed from event",
            extra={"stakeholder_id": stakeholder_id, "event_id": event_id},
        )
        stakeholder_unassigned.send(self, stakeholder_id=stakeholder_id, event_id=event_id)
        return self._stakeholder(stakeholder_id)

    # ── Index queries ─────────────────────────────────────────────────────

    def stakeholders_for_event(self, event_id: str) -> list[EventStakeholder]:
        docs = self.store.query(EVENT_STAKEHOLDERS, "eventId", "==", event_id)
        return sorted(
            (EventStakeholder.from_document(d) for d in docs),
            key=lambda j: j.assigned_at,
        )

    def events_for_stakeholder(self, stakeholder_id: str) -> list[EventStakeholder]:
        docs = self.store.query(EVENT_STAKEHOLDERS, "stakeholderId", "==", stakeholder_id)
        return sorted(
            (EventStakeholder.from_document(d) for d in docs),
            key=lambda j: j.assigned_at,
        )

    def audit_event_links(self, event_id: str) -> list[dict]:
        """Compare the three link locations for one event.

        Returns one entry per stakeholder whose link is not present in all
        three places: {"stakeholder_id", "on_event", "on_stakeholder",
        "junction"}. An empty list means the event is fully consistent.
        """
        event = self._event(event_id)
        on_event = set(event.stakeholder_ids)
        junctions = {j.stakeholder_id for j in self.stakeholders_for_event(event_id)}
        back_refs = {
            d["id"] for d in self.store.query(STAKEHOLDERS, "eventIds", "array-contains", event_id)
        }

        issues = []
        for sid in sorted(on_event | junctions | back_refs):
            flags = {
                "on_event": sid in on_event,
                "on_stakeholder": sid in back_refs,
                "junction": sid in junctions,
            }
            if not all(flags.values()):
                issues.append({"stakeholder_id": sid, **flags})
        if issues:
            logger.warning(
                "Asymmetric event links detected: %d", len(issues),
                extra={"event_id": event_id},
            )
        return issues
