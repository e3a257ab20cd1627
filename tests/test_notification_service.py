"""
Tests for NotificationService: stored in-app notices.

Covers:
  - welcome notice on signup, none on later principal changes
  - assignment notices reach the stakeholder's linked account only
  - event creation / update notify assigned stakeholders with accounts
  - list newest first, unread filter, mark read / mark all read, delete, clear
  - another principal's notice is reported as missing
  - manual send requires manage-users
  - receivers are bound to their own registry
"""

import pytest

from conftest import START, make_event, make_principal, make_stakeholder, save_principal
from eventdesk.core.exceptions import NotFoundError, PermissionDenied, ValidationError
from eventdesk.models.entities import NOTIFICATIONS
from eventdesk.models.enums import NotificationType, Role
from eventdesk.services.registry import ServiceRegistry
from eventdesk.store import InMemoryDocumentStore
from eventdesk.utils.helpers import to_iso


@pytest.fixture()
def manager(registry):
    return save_principal(registry.store, make_principal(id="manager-1", role=Role.MANAGER))


@pytest.fixture()
def ada(registry):
    """Principal linked to stakeholder s1 through signup."""
    make_stakeholder(registry.store, id="s1", email="ada@example.com")
    return registry.users.register_principal("ada", "ada@example.com", display_name="Ada")


def _types(registry, principal):
    return [n.type for n in registry.notifications.list_notifications(principal)]


class TestReceivers:
    def test_welcome_on_signup(self, registry, ada):
        [welcome] = registry.notifications.list_notifications(ada)
        assert welcome.type == NotificationType.WELCOME
        assert welcome.title == "Welcome to EventDesk!"
        assert welcome.body.startswith("Hi Ada!")
        assert not welcome.is_read

    def test_no_welcome_for_role_change(self, registry, manager, ada):
        registry.users.update_role(manager, "ada", Role.VIEWER)
        assert _types(registry, ada) == [NotificationType.WELCOME]

    def test_assignment_notifies_linked_account(self, registry, manager, ada):
        make_event(registry.store, id="e1", title="Board Meeting")
        registry.events.assign_stakeholder(manager, "e1", "s1")

        latest = registry.notifications.list_notifications(ada)[0]
        assert latest.type == NotificationType.EVENT_ASSIGNMENT
        assert latest.body == "You've been assigned to: Board Meeting"
        assert latest.event_id == "e1"
        assert latest.data == {"stakeholder_id": "s1"}

    def test_stakeholder_without_account_gets_nothing(self, registry, manager):
        make_event(registry.store, id="e1")
        make_stakeholder(registry.store, id="s2", email="grace@example.com")
        registry.events.assign_stakeholder(manager, "e1", "s2")
        assert registry.store.all(NOTIFICATIONS) == []

    def test_event_created_with_stakeholders(self, registry, manager, ada):
        event = registry.events.create_event(manager, {
            "title": "Kickoff",
            "start_time": to_iso(START),
            "end_time": to_iso(START.replace(hour=10)),
            "stakeholder_ids": ["s1"],
        })
        latest = registry.notifications.list_notifications(ada)[0]
        assert latest.type == NotificationType.EVENT_ASSIGNMENT
        assert latest.event_id == event.id

    def test_event_update_notifies_assigned(self, registry, manager, ada):
        make_event(registry.store, id="e1", owner_id="manager-1")
        registry.events.assign_stakeholder(manager, "e1", "s1")
        registry.events.update_event(manager, "e1", {"title": "Renamed Review"})

        latest = registry.notifications.list_notifications(ada)[0]
        assert latest.type == NotificationType.EVENT_UPDATE
        assert latest.body == "Renamed Review has been updated"

    def test_receivers_stay_with_their_registry(self, registry, ada):
        other = ServiceRegistry.build(InMemoryDocumentStore())
        other.users.register_principal("grace", "grace@example.com")
        assert other.store.all(NOTIFICATIONS)[0]["userId"] == "grace"
        assert [d["userId"] for d in registry.store.all(NOTIFICATIONS)] == ["ada"]


class TestReadState:
    @pytest.fixture()
    def inbox(self, registry, ada):
        for i in range(3):
            registry.notifications.notify("ada", NotificationType.GENERAL, f"Notice {i}", "body")
        return registry.notifications.list_notifications(ada)

    def test_newest_first_and_limit(self, registry, ada, inbox):
        assert [n.title for n in inbox[:3]] == ["Notice 2", "Notice 1", "Notice 0"]
        assert len(registry.notifications.list_notifications(ada, limit=2)) == 2

    def test_mark_read(self, registry, ada, inbox):
        n = registry.notifications.mark_read(ada, inbox[0].id)
        assert n.is_read and n.read_at is not None
        assert registry.notifications.unread_count(ada) == 3
        assert inbox[0].id not in [
            x.id for x in registry.notifications.list_notifications(ada, unread_only=True)
        ]

    def test_mark_all_read(self, registry, ada, inbox):
        assert registry.notifications.mark_all_read(ada) == 4
        assert registry.notifications.unread_count(ada) == 0
        assert registry.notifications.mark_all_read(ada) == 0

    def test_delete_and_clear(self, registry, ada, inbox):
        registry.notifications.delete_notification(ada, inbox[0].id)
        assert len(registry.notifications.list_notifications(ada)) == 3
        assert registry.notifications.clear_all(ada) == 3
        assert registry.notifications.list_notifications(ada) == []

    def test_other_principals_notice_is_missing(self, registry, manager, inbox):
        with pytest.raises(NotFoundError):
            registry.notifications.mark_read(manager, inbox[0].id)
        with pytest.raises(NotFoundError):
            registry.notifications.delete_notification(manager, inbox[0].id)

    def test_inactive_caller_denied(self, registry, ada):
        gone = make_principal(id="ada", is_active=False)
        with pytest.raises(PermissionDenied):
            registry.notifications.list_notifications(gone)


class TestSend:
    def test_manager_sends(self, registry, manager, ada):
        n = registry.notifications.send_notification(manager, "ada", "Heads up", "Room changed")
        assert n.type == NotificationType.GENERAL
        assert n.user_id == "ada"

    def test_member_cannot_send(self, registry, ada):
        with pytest.raises(PermissionDenied):
            registry.notifications.send_notification(ada, "ada", "Hi", "there")

    def test_title_and_body_required(self, registry, manager, ada):
        with pytest.raises(ValidationError) as exc:
            registry.notifications.send_notification(manager, "ada", " ", "")
        assert exc.value.details == {"title": "required", "body": "required"}

    def test_unknown_recipient(self, registry, manager):
        with pytest.raises(NotFoundError):
            registry.notifications.send_notification(manager, "ghost", "Hi", "there")

    def test_unknown_type_rejected(self, registry, manager, ada):
        with pytest.raises(ValidationError, match="Invalid type"):
            registry.notifications.send_notification(manager, "ada", "Hi", "there", type="sms")
