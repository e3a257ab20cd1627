"""
Tests for EventService (runs against both store backends).

Covers:
  - create_event: defaults, owner, access gate, validation messages
  - create_event with initial stakeholders writes reverse links + junctions
  - update_event: ownership gate, finished events immutable, non-editable fields
  - change_status: transition guard, identity transition is a no-op
  - delete_event: management role required, in-progress blocked, cascade
  - list / date / upcoming / search
  - assign_stakeholder gate
"""

from datetime import date, timedelta

import pytest

from conftest import START, make_event, make_principal, make_stakeholder
from eventdesk.core.exceptions import NotFoundError, PermissionDenied, ValidationError
from eventdesk.models.entities import EVENT_STAKEHOLDERS, EVENTS, STAKEHOLDERS
from eventdesk.models.enums import EventPriority, EventStatus, Role
from eventdesk.utils.helpers import to_iso, utcnow


def _payload(**overrides):
    data = {
        "title": "Product Launch",
        "start_time": to_iso(START),
        "end_time": to_iso(START + timedelta(hours=2)),
    }
    data.update(overrides)
    return data


@pytest.fixture()
def member():
    return make_principal(id="member-1", role=Role.MEMBER)


@pytest.fixture()
def manager():
    return make_principal(id="manager-1", role=Role.MANAGER)


class TestCreate:
    def test_defaults(self, registry, member):
        event = registry.events.create_event(member, _payload())
        assert event.owner_id == "member-1"
        assert event.status == EventStatus.DRAFT
        assert event.priority == EventPriority.MEDIUM
        stored = registry.store.get_by_id(EVENTS, event.id)
        assert stored["title"] == "Product Launch"
        assert stored["status"] == "draft"

    def test_viewer_cannot_create(self, registry):
        viewer = make_principal(id="v", role=Role.VIEWER)
        with pytest.raises(PermissionDenied):
            registry.events.create_event(viewer, _payload())

    def test_anonymous_cannot_create(self, registry):
        with pytest.raises(PermissionDenied) as exc:
            registry.events.create_event(None, _payload())
        assert exc.value.principal_id is None

    def test_short_event_rejected(self, registry, member):
        data = _payload(end_time=to_iso(START + timedelta(minutes=3)))
        with pytest.raises(ValidationError, match="at least 5 minutes"):
            registry.events.create_event(member, data)

    def test_unknown_priority_rejected(self, registry, member):
        with pytest.raises(ValidationError, match="Invalid priority"):
            registry.events.create_event(member, _payload(priority="critical"))

    def test_bad_datetime_rejected(self, registry, member):
        with pytest.raises(ValidationError):
            registry.events.create_event(member, _payload(start_time="next tuesday"))

    def test_initial_stakeholders_linked(self, registry, member):
        make_stakeholder(registry.store, id="s1")
        make_stakeholder(registry.store, id="s2", email="s2@example.com")
        event = registry.events.create_event(member, _payload(stakeholder_ids=["s1", "s2"]))

        assert registry.store.get_by_id(EVENTS, event.id)["stakeholderIds"] == ["s1", "s2"]
        for sid in ("s1", "s2"):
            assert registry.store.get_by_id(STAKEHOLDERS, sid)["eventIds"] == [event.id]
            assert registry.store.get_by_id(EVENT_STAKEHOLDERS, f"{event.id}_{sid}") is not None
        assert registry.relationships.audit_event_links(event.id) == []

    def test_unknown_initial_stakeholder_writes_nothing(self, registry, member):
        with pytest.raises(NotFoundError):
            registry.events.create_event(member, _payload(stakeholder_ids=["ghost"]))
        assert registry.store.all(EVENTS) == []

    def test_duplicate_initial_stakeholders_rejected(self, registry, member):
        make_stakeholder(registry.store, id="s1")
        with pytest.raises(ValidationError, match="Duplicate"):
            registry.events.create_event(member, _payload(stakeholder_ids=["s1", "s1"]))


class TestUpdate:
    def test_owner_member_can_edit(self, registry, member):
        make_event(registry.store, owner_id="member-1")
        event = registry.events.update_event(member, "event-1", {"title": "Renamed Launch"})
        assert event.title == "Renamed Launch"
        assert registry.store.get_by_id(EVENTS, "event-1")["title"] == "Renamed Launch"

    def test_non_owner_member_cannot_edit(self, registry, member):
        make_event(registry.store, owner_id="someone-else")
        with pytest.raises(PermissionDenied):
            registry.events.update_event(member, "event-1", {"title": "Hijacked"})

    def test_manager_edits_any_event(self, registry, manager):
        make_event(registry.store, owner_id="someone-else")
        event = registry.events.update_event(manager, "event-1", {"priority": "high"})
        assert event.priority == EventPriority.HIGH

    def test_completed_event_is_immutable(self, registry, manager):
        make_event(registry.store, status=EventStatus.COMPLETED)
        with pytest.raises(ValidationError, match="Completed events cannot be edited"):
            registry.events.update_event(manager, "event-1", {"title": "Too late"})

    def test_status_not_editable_here(self, registry, manager):
        make_event(registry.store)
        with pytest.raises(ValidationError, match="status"):
            registry.events.update_event(manager, "event-1", {"status": "completed"})

    def test_invalid_edit_is_not_saved(self, registry, manager):
        make_event(registry.store)
        with pytest.raises(ValidationError, match="End time must be after start time"):
            registry.events.update_event(manager, "event-1", {"end_time": to_iso(START - timedelta(hours=1))})
        assert registry.store.get_by_id(EVENTS, "event-1")["endTime"] == to_iso(START + timedelta(hours=1))

    def test_missing_event(self, registry, manager):
        with pytest.raises(NotFoundError):
            registry.events.update_event(manager, "ghost", {"title": "Anything"})


class TestChangeStatus:
    def test_scheduled_to_completed(self, registry, member):
        make_event(registry.store, owner_id="member-1")
        event = registry.events.change_status(member, "event-1", "completed")
        assert event.status == EventStatus.COMPLETED

    def test_completed_to_draft_rejected(self, registry, manager):
        make_event(registry.store, status=EventStatus.COMPLETED)
        with pytest.raises(ValidationError, match="Cannot revert a completed event to draft"):
            registry.events.change_status(manager, "event-1", "draft")

    def test_cancelled_to_in_progress_rejected(self, registry, manager):
        make_event(registry.store, status=EventStatus.CANCELLED)
        with pytest.raises(ValidationError, match="Cannot start a cancelled event"):
            registry.events.change_status(manager, "event-1", EventStatus.IN_PROGRESS)

    def test_unknown_status_rejected(self, registry, manager):
        make_event(registry.store)
        with pytest.raises(ValidationError, match="Invalid status"):
            registry.events.change_status(manager, "event-1", "postponed")


class TestDelete:
    def test_owner_member_cannot_delete(self, registry):
        owner = make_principal(id="m1", role=Role.MEMBER, permissions=["deleteEvent", "editEvent"])
        make_event(registry.store, owner_id="m1")
        with pytest.raises(PermissionDenied):
            registry.events.delete_event(owner, "event-1")
        assert registry.store.get_by_id(EVENTS, "event-1") is not None

    def test_in_progress_cannot_be_deleted(self, registry, manager):
        make_event(registry.store, status=EventStatus.IN_PROGRESS)
        with pytest.raises(ValidationError, match="in progress"):
            registry.events.delete_event(manager, "event-1")

    def test_delete_cascades(self, registry, manager):
        make_event(registry.store)
        make_stakeholder(registry.store, id="s1")
        make_stakeholder(registry.store, id="s2", email="s2@example.com")
        registry.relationships.assign("s1", "event-1")
        registry.relationships.assign("s2", "event-1")

        registry.events.delete_event(manager, "event-1")

        assert registry.store.get_by_id(EVENTS, "event-1") is None
        assert registry.store.get_by_id(STAKEHOLDERS, "s1")["eventIds"] == []
        assert registry.store.get_by_id(STAKEHOLDERS, "s2")["eventIds"] == []
        assert registry.store.query(EVENT_STAKEHOLDERS, "eventId", "==", "event-1") == []


class TestQueries:
    @pytest.fixture()
    def events(self, registry):
        make_event(registry.store, id="a", title="Board Meeting", owner_id="u1", start=START)
        make_event(registry.store, id="b", title="Team Offsite", owner_id="u2",
                   start=START + timedelta(days=1), status=EventStatus.DRAFT)
        make_event(registry.store, id="c", title="Old Retro", owner_id="u1",
                   start=utcnow() - timedelta(days=3), status=EventStatus.COMPLETED)

    def test_list_sorted_and_filtered(self, registry, member, events):
        assert [e.id for e in registry.events.list_events(member)] == ["c", "a", "b"]
        assert [e.id for e in registry.events.list_events(member, owner_id="u1")] == ["c", "a"]
        assert [e.id for e in registry.events.list_events(member, status="draft")] == ["b"]

    def test_viewer_without_permission_cannot_list(self, registry, events):
        viewer = make_principal(id="v", role=Role.VIEWER, permissions=[])
        with pytest.raises(PermissionDenied):
            registry.events.list_events(viewer)

    def test_events_for_date(self, registry, member, events):
        day = date(START.year, START.month, START.day)
        assert [e.id for e in registry.events.events_for_date(member, day)] == ["a"]

    def test_upcoming_skips_past_and_finished(self, registry, member, events):
        assert [e.id for e in registry.events.upcoming_events(member, limit=1)] == ["a"]
        assert [e.id for e in registry.events.upcoming_events(member)] == ["a", "b"]

    def test_search(self, registry, member, events):
        assert [e.id for e in registry.events.search_events(member, "offsite")] == ["b"]
        assert len(registry.events.search_events(member, "")) == 3


class TestAssignGate:
    def test_viewer_cannot_assign(self, registry):
        make_event(registry.store)
        make_stakeholder(registry.store, id="s1")
        viewer = make_principal(id="v", role=Role.VIEWER)
        with pytest.raises(PermissionDenied):
            registry.events.assign_stakeholder(viewer, "event-1", "s1")

    def test_member_assigns_and_lists(self, registry, member):
        make_event(registry.store)
        make_stakeholder(registry.store, id="s1")
        registry.events.assign_stakeholder(member, "event-1", "s1")
        assert [s.id for s in registry.events.stakeholders_for_event(member, "event-1")] == ["s1"]

        registry.events.unassign_stakeholder(member, "event-1", "s1")
        assert registry.events.stakeholders_for_event(member, "event-1") == []

    def test_cannot_assign_to_finished_event(self, registry, manager):
        make_event(registry.store, status=EventStatus.CANCELLED)
        make_stakeholder(registry.store, id="s1")
        with pytest.raises(ValidationError, match="Cancelled events cannot be edited"):
            registry.events.assign_stakeholder(manager, "event-1", "s1")
