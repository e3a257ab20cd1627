"""
Shared pytest fixtures for the EventDesk test suite.

Provides:
    - app: Flask application (session-scoped, "testing" config, SQL store)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - services: the app's ServiceRegistry (SQL-backed)
    - store: document store, parametrized over the memory and SQL backends
    - registry: ServiceRegistry built around ``store``
    - auth_headers: Bearer headers for a principal saved in the app's store

Factory helpers (plain functions, importable from tests):
    make_principal, save_principal, make_event, make_stakeholder
"""

from datetime import datetime, timedelta, timezone

import pytest

from eventdesk import create_app
from eventdesk.models import db as _db
from eventdesk.models.entities import EVENTS, STAKEHOLDERS, USERS, Event, Principal, Stakeholder
from eventdesk.models.enums import EventStatus, Permission, Role
from eventdesk.services.access_control import default_permissions
from eventdesk.services.jwt_service import generate_access_token
from eventdesk.services.registry import ServiceRegistry
from eventdesk.store import InMemoryDocumentStore, SqlDocumentStore

START = datetime(2030, 5, 1, 9, 0, tzinfo=timezone.utc)


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def services(app):
    return app.extensions["eventdesk"]


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Each store-level test runs against both backends."""
    if request.param == "memory":
        return InMemoryDocumentStore()
    return SqlDocumentStore()


@pytest.fixture()
def registry(store):
    return ServiceRegistry.build(store)


@pytest.fixture()
def auth_headers(services):
    """Return a function: principal → Authorization headers.

    The principal is saved to the app's store first so the JWT middleware
    can resolve it.
    """

    def _headers(principal: Principal) -> dict:
        save_principal(services.store, principal)
        return {"Authorization": f"Bearer {generate_access_token(principal)}"}

    return _headers


# ── Factories ────────────────────────────────────────────────────────────


def make_principal(
    id: str = "user-1",
    role: Role = Role.MEMBER,
    permissions=None,
    is_active: bool = True,
    email: str | None = None,
) -> Principal:
    """Build a principal; ``permissions=None`` means the role's defaults."""
    if permissions is None:
        perms = default_permissions(role)
    else:
        perms = frozenset(Permission(p) for p in permissions)
    return Principal(
        id=id,
        email=email or f"{id}@example.com",
        display_name=id.replace("-", " ").title(),
        role=role,
        permissions=perms,
        is_active=is_active,
    )


def save_principal(store, principal: Principal) -> Principal:
    store.batch().set(USERS, principal.id, principal.to_document()).commit()
    return principal


def make_event(
    store=None,
    id: str = "event-1",
    owner_id: str = "user-1",
    status: EventStatus = EventStatus.SCHEDULED,
    start: datetime = START,
    duration: timedelta = timedelta(hours=1),
    title: str = "Quarterly Planning",
    stakeholder_ids=None,
) -> Event:
    """Build an event and, when ``store`` is given, write it directly."""
    event = Event(
        id=id,
        title=title,
        start_time=start,
        end_time=start + duration,
        owner_id=owner_id,
        status=status,
        stakeholder_ids=list(stakeholder_ids or []),
        created_at=START,
        updated_at=START,
    )
    if store is not None:
        store.batch().set(EVENTS, event.id, event.to_document()).commit()
    return event


def make_stakeholder(
    store=None,
    id: str = "stakeholder-1",
    name: str = "Ada Lovelace",
    email: str = "ada@example.com",
    event_ids=None,
) -> Stakeholder:
    """Build a stakeholder and, when ``store`` is given, write it directly."""
    stakeholder = Stakeholder(
        id=id,
        name=name,
        email=email,
        organization="Analytical Engines Ltd",
        event_ids=list(event_ids or []),
        created_at=START,
        updated_at=START,
    )
    if store is not None:
        store.batch().set(STAKEHOLDERS, stakeholder.id, stakeholder.to_document()).commit()
    return stakeholder
