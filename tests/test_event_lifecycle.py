"""
Tests for event_lifecycle validators.

Covers:
  - forbidden transitions (completed → draft, cancelled → inProgress)
  - every other transition pair is allowed, identity included
  - time range boundaries: 5 minutes / 30 days inclusive
  - ordering errors (end before start, end == start, missing bounds)
  - can_edit / can_delete by status
  - field validators and validate_event aggregation
"""

from datetime import datetime, timedelta, timezone

import pytest

from conftest import make_event
from eventdesk.models.entities import EventLocation
from eventdesk.models.enums import EventStatus
from eventdesk.services import event_lifecycle
from eventdesk.services.event_lifecycle import ValidationResult

T0 = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)


class TestTransitions:
    def test_completed_to_draft_is_forbidden(self):
        result = event_lifecycle.validate_transition(EventStatus.COMPLETED, EventStatus.DRAFT)
        assert not result.valid
        assert result.error_message == "Cannot revert a completed event to draft"

    def test_cancelled_to_in_progress_is_forbidden(self):
        result = event_lifecycle.validate_transition(EventStatus.CANCELLED, EventStatus.IN_PROGRESS)
        assert not result.valid
        assert result.error_message == "Cannot start a cancelled event"

    def test_scheduled_to_in_progress_is_allowed(self):
        assert event_lifecycle.validate_transition(EventStatus.SCHEDULED, EventStatus.IN_PROGRESS).valid

    def test_all_other_pairs_allowed(self):
        forbidden = set(event_lifecycle.FORBIDDEN_TRANSITIONS)
        for current in EventStatus:
            for target in EventStatus:
                result = event_lifecycle.validate_transition(current, target)
                assert result.valid == ((current, target) not in forbidden)

    def test_result_is_truthy_when_valid(self):
        assert ValidationResult.ok()
        assert not ValidationResult.error("nope")
        assert ValidationResult.error("nope").to_dict() == {"valid": False, "error_message": "nope"}


class TestTimeRange:
    @pytest.mark.parametrize("duration,valid", [
        (timedelta(minutes=5), True),
        (timedelta(minutes=4, seconds=59), False),
        (timedelta(days=30), True),
        (timedelta(days=30, minutes=1), False),
        (timedelta(hours=2), True),
    ])
    def test_duration_bounds(self, duration, valid):
        assert event_lifecycle.validate_time_range(T0, T0 + duration).valid is valid

    def test_short_and_long_messages(self):
        short = event_lifecycle.validate_time_range(T0, T0 + timedelta(minutes=1))
        assert short.error_message == "Event must be at least 5 minutes long"
        long = event_lifecycle.validate_time_range(T0, T0 + timedelta(days=31))
        assert long.error_message == "Event cannot be longer than 30 days"

    def test_end_before_start(self):
        result = event_lifecycle.validate_time_range(T0, T0 - timedelta(hours=1))
        assert result.error_message == "End time must be after start time"

    def test_end_equal_start(self):
        result = event_lifecycle.validate_time_range(T0, T0)
        assert result.error_message == "End time must be different from start time"

    def test_missing_bounds(self):
        assert event_lifecycle.validate_time_range(None, T0).error_message == "Start time is required"
        assert event_lifecycle.validate_time_range(T0, None).error_message == "End time is required"


class TestEditDelete:
    @pytest.mark.parametrize("status,editable", [
        (EventStatus.DRAFT, True),
        (EventStatus.SCHEDULED, True),
        (EventStatus.IN_PROGRESS, True),
        (EventStatus.COMPLETED, False),
        (EventStatus.CANCELLED, False),
    ])
    def test_can_edit(self, status, editable):
        assert event_lifecycle.can_edit(make_event(status=status)).valid is editable

    def test_completed_message(self):
        result = event_lifecycle.can_edit(make_event(status=EventStatus.COMPLETED))
        assert result.error_message == "Completed events cannot be edited"

    @pytest.mark.parametrize("status", list(EventStatus))
    def test_can_delete_only_blocks_in_progress(self, status):
        result = event_lifecycle.can_delete(make_event(status=status))
        assert result.valid is (status != EventStatus.IN_PROGRESS)


class TestFieldValidators:
    @pytest.mark.parametrize("title,message", [
        ("", "Event title is required"),
        ("ab", "Title must be at least 3 characters"),
        ("x" * 101, "Title must be less than 100 characters"),
        ("#launch", "Title must start with a letter or number"),
        ("  Launch  ", None),
    ])
    def test_title(self, title, message):
        assert event_lifecycle.validate_title(title).error_message == message

    def test_description_optional_but_bounded(self):
        assert event_lifecycle.validate_description(None).valid
        assert not event_lifecycle.validate_description("d" * 501).valid

    def test_location_name(self):
        assert not event_lifecycle.validate_location_name("").valid
        assert not event_lifecycle.validate_location_name("a").valid
        assert event_lifecycle.validate_location_name("HQ").valid

    @pytest.mark.parametrize("link,valid", [
        (None, True),
        ("https://meet.example.com/abc", True),
        ("ftp://files.example.com", False),
        ("not a url", False),
    ])
    def test_virtual_link(self, link, valid):
        assert event_lifecycle.validate_virtual_link(link).valid is valid

    def test_stakeholder_ids(self):
        assert event_lifecycle.validate_stakeholder_ids(["a", "b"]).valid
        assert not event_lifecycle.validate_stakeholder_ids(["a", "a"]).valid
        assert not event_lifecycle.validate_stakeholder_ids([str(i) for i in range(101)]).valid

    def test_validate_event_aggregates_errors(self):
        event = make_event(title="x", duration=timedelta(minutes=1))
        event.location = EventLocation(name="Online", is_virtual=True, virtual_link="nope")
        errors = event_lifecycle.validate_event(event)
        assert "Title must be at least 3 characters" in errors
        assert "Event must be at least 5 minutes long" in errors
        assert any("valid URL" in e for e in errors)
        assert not event_lifecycle.is_valid_event(event)

    def test_valid_event(self):
        assert event_lifecycle.is_valid_event(make_event())
