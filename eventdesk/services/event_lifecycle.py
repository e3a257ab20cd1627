"""
Event Lifecycle — status transitions, time-range rules and field validators.

Every validator is a pure function returning a ValidationResult; business-rule
violations are values, never exceptions. ``error_message`` is shown to the
end user verbatim.

Status machine (draft, scheduled, inProgress, completed, cancelled):
  - completed → draft        forbidden
  - cancelled → inProgress   forbidden
  - every other pair, including current == target, is allowed

Usage:
    from eventdesk.services import event_lifecycle

    result = event_lifecycle.validate_transition(EventStatus.SCHEDULED, EventStatus.COMPLETED)
    if not result.valid:
        raise ValidationError(result.error_message)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from urllib.parse import urlparse

from eventdesk.models.entities import Event
from eventdesk.models.enums import EventStatus

MIN_EVENT_DURATION = timedelta(minutes=5)
MAX_EVENT_DURATION = timedelta(days=30)

TITLE_MIN_LEN = 3
TITLE_MAX_LEN = 100
DESCRIPTION_MAX_LEN = 500
LOCATION_MIN_LEN = 2
LOCATION_MAX_LEN = 200
LINK_MAX_LEN = 500
MAX_STAKEHOLDERS = 100

# (current, target) → reason
FORBIDDEN_TRANSITIONS: dict[tuple[EventStatus, EventStatus], str] = {
    (EventStatus.COMPLETED, EventStatus.DRAFT): "Cannot revert a completed event to draft",
    (EventStatus.CANCELLED, EventStatus.IN_PROGRESS): "Cannot start a cancelled event",
}

_STARTS_WITH_ALNUM = re.compile(r"^[a-zA-Z0-9]")


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    error_message: str | None = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(True, None)

    @classmethod
    def error(cls, message: str) -> "ValidationResult":
        return cls(False, message)

    def __bool__(self):
        return self.valid

    def to_dict(self) -> dict:
        return {"valid": self.valid, "error_message": self.error_message}


# ═════════════════════════════════════════════════════════════════════════════
# Status & time rules
# ═════════════════════════════════════════════════════════════════════════════


def validate_transition(current: EventStatus, target: EventStatus) -> ValidationResult:
    """Check whether an event may move from ``current`` to ``target`` status."""
    reason = FORBIDDEN_TRANSITIONS.get((current, target))
    if reason:
        return ValidationResult.error(reason)
    return ValidationResult.ok()


def validate_time_range(start: datetime | None, end: datetime | None) -> ValidationResult:
    """Check start/end ordering and the 5-minute / 30-day duration bounds (inclusive)."""
    if start is None:
        return ValidationResult.error("Start time is required")
    if end is None:
        return ValidationResult.error("End time is required")
    if end < start:
        return ValidationResult.error("End time must be after start time")
    if end == start:
        return ValidationResult.error("End time must be different from start time")

    duration = end - start
    if duration < MIN_EVENT_DURATION:
        return ValidationResult.error("Event must be at least 5 minutes long")
    if duration > MAX_EVENT_DURATION:
        return ValidationResult.error("Event cannot be longer than 30 days")
    return ValidationResult.ok()


def can_edit(event: Event) -> ValidationResult:
    """Finished events (completed / cancelled) are immutable."""
    if event.status == EventStatus.COMPLETED:
        return ValidationResult.error("Completed events cannot be edited")
    if event.status == EventStatus.CANCELLED:
        return ValidationResult.error("Cancelled events cannot be edited")
    return ValidationResult.ok()


def can_delete(event: Event) -> ValidationResult:
    """A live event cannot be deleted."""
    if event.status == EventStatus.IN_PROGRESS:
        return ValidationResult.error("Cannot delete an event that is in progress")
    return ValidationResult.ok()


# ═════════════════════════════════════════════════════════════════════════════
# Field validators
# ═════════════════════════════════════════════════════════════════════════════


def validate_title(title: str | None) -> ValidationResult:
    if title is None or not title.strip():
        return ValidationResult.error("Event title is required")
    trimmed = title.strip()
    if len(trimmed) < TITLE_MIN_LEN:
        return ValidationResult.error("Title must be at least 3 characters")
    if len(trimmed) > TITLE_MAX_LEN:
        return ValidationResult.error("Title must be less than 100 characters")
    if not _STARTS_WITH_ALNUM.match(trimmed):
        return ValidationResult.error("Title must start with a letter or number")
    return ValidationResult.ok()


def validate_description(description: str | None) -> ValidationResult:
    if description is None or not description.strip():
        return ValidationResult.ok()
    if len(description.strip()) > DESCRIPTION_MAX_LEN:
        return ValidationResult.error("Description must be less than 500 characters")
    return ValidationResult.ok()


def validate_location_name(name: str | None) -> ValidationResult:
    if name is None or not name.strip():
        return ValidationResult.error("Location is required")
    trimmed = name.strip()
    if len(trimmed) < LOCATION_MIN_LEN:
        return ValidationResult.error("Location must be at least 2 characters")
    if len(trimmed) > LOCATION_MAX_LEN:
        return ValidationResult.error("Location must be less than 200 characters")
    return ValidationResult.ok()


def validate_virtual_link(link: str | None) -> ValidationResult:
    """Optional meeting link; when present it must be an http(s) URL."""
    if link is None or not link.strip():
        return ValidationResult.ok()
    trimmed = link.strip()
    parsed = urlparse(trimmed)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return ValidationResult.error(
            "Please enter a valid URL (starting with http:// or https://)"
        )
    if len(trimmed) > LINK_MAX_LEN:
        return ValidationResult.error("Link must be less than 500 characters")
    return ValidationResult.ok()


def validate_stakeholder_ids(stakeholder_ids: list[str] | None) -> ValidationResult:
    if not stakeholder_ids:
        return ValidationResult.ok()
    if len(stakeholder_ids) > MAX_STAKEHOLDERS:
        return ValidationResult.error("Cannot have more than 100 stakeholders")
    if len(set(stakeholder_ids)) != len(stakeholder_ids):
        return ValidationResult.error("Duplicate stakeholders are not allowed")
    return ValidationResult.ok()


def validate_event(event: Event, stakeholder_ids: list[str] | None = None) -> list[str]:
    """Run every field and time-range validator; return all error messages.

    Location is optional on an event; when one is given its name (and, for
    virtual locations, its link) must validate.
    """
    checks = [
        validate_title(event.title),
        validate_description(event.description),
        validate_time_range(event.start_time, event.end_time),
        validate_stakeholder_ids(
            stakeholder_ids if stakeholder_ids is not None else event.stakeholder_ids
        ),
    ]
    if event.location is not None:
        checks.append(validate_location_name(event.location.name))
        if event.location.is_virtual:
            checks.append(validate_virtual_link(event.location.virtual_link))
    return [c.error_message for c in checks if not c.valid]


def is_valid_event(event: Event) -> bool:
    return not validate_event(event)
