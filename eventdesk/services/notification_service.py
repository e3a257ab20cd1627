"""
Notification Service — stored in-app notices for principals.

Notices are documents in the ``notifications`` collection, one per recipient.
They are written by the receivers below after the triggering batch has
committed, and read / marked / deleted by their recipient only.

Receivers (connected per registry, filtered by sending service):
    stakeholder_assigned   → "New Event Assigned" to the stakeholder's account
    event_saved (created)  → "New Event Assigned" for every initial stakeholder
    event_saved (updated)  → "Event Updated" for every assigned stakeholder
    principal_updated (created) → "Welcome" notice

Stakeholders without a linked account get no notice. A failing receiver is
logged; the write that triggered it stays committed.

Functions:
    - notify:               Write one notice (internal + receivers)
    - send_notification:    Manual notice to any principal (manage-users)
    - list_notifications:   Caller's notices, newest first
    - unread_count:         Caller's unread total
    - mark_read / mark_all_read
    - delete_notification / clear_all
"""

import logging
import uuid

from eventdesk.core.exceptions import NotFoundError, PermissionDenied, ValidationError
from eventdesk.models.entities import (
    EVENTS,
    NOTIFICATIONS,
    STAKEHOLDERS,
    USERS,
    Event,
    Notification,
    Principal,
    Stakeholder,
)
from eventdesk.models.enums import NotificationType, parse_enum
from eventdesk.services.access_control import Action, can_perform
from eventdesk.signals import event_saved, principal_updated, stakeholder_assigned
from eventdesk.store.base import SERVER_TIMESTAMP, DocumentStore
from eventdesk.utils.helpers import utcnow

logger = logging.getLogger(__name__)

APP_NAME = "EventDesk"


def _require_active(caller: Principal | None, action: str) -> None:
    if caller is None or not caller.is_active:
        raise PermissionDenied(caller.id if caller else None, action)


class NotificationService:

    def __init__(self, store: DocumentStore):
        self.store = store

    def connect(self, relationships=None, events=None, users=None) -> None:
        """Subscribe to the change signals sent by these service instances."""
        if relationships is not None:
            stakeholder_assigned.connect(self._on_stakeholder_assigned, sender=relationships)
        if events is not None:
            event_saved.connect(self._on_event_saved, sender=events)
        if users is not None:
            principal_updated.connect(self._on_principal_updated, sender=users)

    # ── Writing ───────────────────────────────────────────────────────────

    def notify(
        self,
        user_id: str,
        type,
        title: str,
        body: str,
        event_id: str | None = None,
        data: dict | None = None,
    ) -> Notification:
        notification = Notification(
            id=uuid.uuid4().hex,
            user_id=user_id,
            title=title,
            body=body,
            type=parse_enum(NotificationType, type, "type"),
            event_id=event_id,
            data=data,
            created_at=utcnow(),
        )
        self.store.batch().set(NOTIFICATIONS, notification.id, notification.to_document()).commit()
        logger.info(
            "Notification sent: %s", notification.type.value,
            extra={"principal_id": user_id, "event_id": event_id},
        )
        return notification

    def send_notification(
        self,
        caller: Principal,
        user_id: str,
        title: str,
        body: str,
        type=NotificationType.GENERAL,
        event_id: str | None = None,
    ) -> Notification:
        """Send a manual notice to one principal.

        Raises:
            PermissionDenied: caller lacks manage-users.
            ValidationError: title or body missing.
            NotFoundError: recipient does not exist.
        """
        if not can_perform(caller, Action.MANAGE_USERS):
            raise PermissionDenied(caller.id if caller else None, Action.MANAGE_USERS.value)
        title = (title or "").strip()
        body = (body or "").strip()
        if not title or not body:
            raise ValidationError(
                "Title and body are required",
                details={k: "required" for k, v in (("title", title), ("body", body)) if not v},
            )
        if self.store.get_by_id(USERS, user_id) is None:
            raise NotFoundError(resource="Principal", resource_id=user_id)
        return self.notify(user_id, type, title, body, event_id=event_id)

    # ── Reading ───────────────────────────────────────────────────────────

    def list_notifications(
        self,
        caller: Principal,
        limit: int | None = None,
        unread_only: bool = False,
    ) -> list[Notification]:
        _require_active(caller, "view_notifications")
        items = [
            Notification.from_document(d)
            for d in self.store.query(NOTIFICATIONS, "userId", "==", caller.id)
        ]
        if unread_only:
            items = [n for n in items if not n.is_read]
        items.sort(key=lambda n: n.created_at, reverse=True)
        return items[:limit] if limit else items

    def unread_count(self, caller: Principal) -> int:
        return len(self.list_notifications(caller, unread_only=True))

    def _own(self, caller: Principal, notification_id: str) -> Notification:
        doc = self.store.get_by_id(NOTIFICATIONS, notification_id)
        # another principal's notice is reported as missing
        if doc is None or doc.get("userId") != caller.id:
            raise NotFoundError(resource="Notification", resource_id=notification_id)
        return Notification.from_document(doc)

    # ── Read state / deletion ─────────────────────────────────────────────

    def mark_read(self, caller: Principal, notification_id: str) -> Notification:
        _require_active(caller, "update_notifications")
        notification = self._own(caller, notification_id)
        if notification.is_read:
            return notification
        self.store.batch().update(NOTIFICATIONS, notification_id, {
            "isRead": True,
            "readAt": SERVER_TIMESTAMP,
        }).commit()
        return self._own(caller, notification_id)

    def mark_all_read(self, caller: Principal) -> int:
        unread = self.list_notifications(caller, unread_only=True)
        if not unread:
            return 0
        batch = self.store.batch()
        for n in unread:
            batch.update(NOTIFICATIONS, n.id, {"isRead": True, "readAt": SERVER_TIMESTAMP})
        batch.commit()
        logger.info("Notifications marked read: %d", len(unread), extra={"principal_id": caller.id})
        return len(unread)

    def delete_notification(self, caller: Principal, notification_id: str) -> None:
        _require_active(caller, "delete_notifications")
        self._own(caller, notification_id)
        self.store.batch().delete(NOTIFICATIONS, notification_id).commit()

    def clear_all(self, caller: Principal) -> int:
        items = self.list_notifications(caller)
        if not items:
            return 0
        batch = self.store.batch()
        for n in items:
            batch.delete(NOTIFICATIONS, n.id)
        batch.commit()
        logger.info("Notifications cleared: %d", len(items), extra={"principal_id": caller.id})
        return len(items)

    # ── Signal receivers ──────────────────────────────────────────────────

    def _linked_user(self, stakeholder_id: str) -> str | None:
        doc = self.store.get_by_id(STAKEHOLDERS, stakeholder_id)
        return Stakeholder.from_document(doc).linked_user_id if doc else None

    def _notify_stakeholders(self, stakeholder_ids, type, title: str, body: str, event_id: str):
        for sid in stakeholder_ids:
            user_id = self._linked_user(sid)
            if user_id:
                self.notify(user_id, type, title, body, event_id=event_id,
                            data={"stakeholder_id": sid})

    def _on_stakeholder_assigned(self, sender, stakeholder_id, event_id, **extra):
        try:
            doc = self.store.get_by_id(EVENTS, event_id)
            title = Event.from_document(doc).title if doc else event_id
            self._notify_stakeholders(
                [stakeholder_id], NotificationType.EVENT_ASSIGNMENT,
                "New Event Assigned", f"You've been assigned to: {title}", event_id,
            )
        except Exception:
            logger.exception("Assignment notification failed", extra={"event_id": event_id})

    def _on_event_saved(self, sender, event, created=False, **extra):
        try:
            if created:
                self._notify_stakeholders(
                    event.stakeholder_ids, NotificationType.EVENT_ASSIGNMENT,
                    "New Event Assigned", f"You've been assigned to: {event.title}", event.id,
                )
            else:
                self._notify_stakeholders(
                    event.stakeholder_ids, NotificationType.EVENT_UPDATE,
                    "Event Updated", f"{event.title} has been updated", event.id,
                )
        except Exception:
            logger.exception("Event notification failed", extra={"event_id": event.id})

    def _on_principal_updated(self, sender, principal, created=False, **extra):
        if not created:
            return
        try:
            self.notify(
                principal.id, NotificationType.WELCOME,
                f"Welcome to {APP_NAME}!",
                f"Hi {principal.display_name or 'there'}! Welcome to {APP_NAME}.",
            )
        except Exception:
            logger.exception("Welcome notification failed", extra={"principal_id": principal.id})
