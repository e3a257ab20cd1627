"""
Service wiring.

The app factory builds one ServiceRegistry per application around the
configured document store and stores it in ``app.extensions["eventdesk"]``.
Blueprints fetch it with ``get_services()``; tests can build their own
registry around an in-memory store. Notification receivers are connected to
this registry's own service instances only.
"""

from dataclasses import dataclass

from flask import current_app

from eventdesk.services.event_service import EventService
from eventdesk.services.invite_service import DEFAULT_EXPIRY_DAYS, InviteService
from eventdesk.services.notification_service import NotificationService
from eventdesk.services.relationship_service import RelationshipService
from eventdesk.services.stakeholder_service import StakeholderService
from eventdesk.services.user_service import UserService
from eventdesk.store.base import DocumentStore


@dataclass
class ServiceRegistry:
    store: DocumentStore
    relationships: RelationshipService
    events: EventService
    stakeholders: StakeholderService
    users: UserService
    invites: InviteService
    notifications: NotificationService

    @classmethod
    def build(cls, store: DocumentStore, invite_expiry_days: int = DEFAULT_EXPIRY_DAYS) -> "ServiceRegistry":
        relationships = RelationshipService(store)
        events = EventService(store, relationships)
        users = UserService(store)
        notifications = NotificationService(store)
        notifications.connect(relationships=relationships, events=events, users=users)
        return cls(
            store=store,
            relationships=relationships,
            events=events,
            stakeholders=StakeholderService(store),
            users=users,
            invites=InviteService(store, expiry_days=invite_expiry_days),
            notifications=notifications,
        )


def get_services() -> ServiceRegistry:
    return current_app.extensions["eventdesk"]
