"""
Document store backends.

    from eventdesk.store import build_store
    store = build_store(app.config)     # DOCUMENT_STORE = "sql" | "memory"

The backend is chosen once, at construction time; business logic only sees
the DocumentStore interface.
"""

from eventdesk.store.base import (  # noqa: F401
    SERVER_TIMESTAMP,
    ArrayRemove,
    ArrayUnion,
    DeleteOp,
    DocumentStore,
    SetOp,
    UpdateOp,
    WriteBatch,
)
from eventdesk.store.memory import InMemoryDocumentStore
from eventdesk.store.sql import SqlDocumentStore

STORE_BACKENDS = {
    "sql": SqlDocumentStore,
    "memory": InMemoryDocumentStore,
}


def build_store(config) -> DocumentStore:
    """Instantiate the backend named by ``config["DOCUMENT_STORE"]`` (default: sql)."""
    name = (config.get("DOCUMENT_STORE") or "sql").lower()
    backend = STORE_BACKENDS.get(name)
    if backend is None:
        raise ValueError(
            f"Unknown DOCUMENT_STORE {name!r}; expected one of: {', '.join(sorted(STORE_BACKENDS))}"
        )
    return backend()
