"""Store/API string decoding for the domain enums."""

import pytest

from eventdesk.core.exceptions import ValidationError
from eventdesk.models.entities import Event, Principal
from eventdesk.models.enums import EventStatus, Permission, Role, parse_enum, parse_enum_list


def test_members_pass_through():
    assert parse_enum(Role, Role.VIEWER) is Role.VIEWER
    assert parse_enum(EventStatus, "inProgress") is EventStatus.IN_PROGRESS


def test_unknown_value_is_rejected():
    with pytest.raises(ValidationError) as exc:
        parse_enum(EventStatus, "postponed", "status")
    assert "Invalid status" in exc.value.message
    assert exc.value.details == {"status": "unknown value 'postponed'"}


def test_list_keeps_order_and_drops_duplicates():
    perms = parse_enum_list(Permission, ["viewEvent", "admin", "viewEvent"])
    assert perms == [Permission.VIEW_EVENT, Permission.ADMIN]
    assert parse_enum_list(Permission, None) == []


def test_list_requires_a_list():
    with pytest.raises(ValidationError, match="must be a list"):
        parse_enum_list(Permission, "viewEvent", "permissions")


def test_unknown_stored_status_fails_decoding():
    doc = {
        "id": "e1",
        "title": "Broken",
        "startTime": "2030-01-01T10:00:00+00:00",
        "endTime": "2030-01-01T11:00:00+00:00",
        "ownerId": "u1",
        "status": "archived",
    }
    with pytest.raises(ValidationError, match="Invalid status"):
        Event.from_document(doc)


def test_unknown_stored_permission_fails_decoding():
    with pytest.raises(ValidationError):
        Principal.from_document({"id": "u1", "email": "u1@example.com", "permissions": ["superuser"]})
