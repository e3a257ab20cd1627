"""
In-memory document store.

Used by the test-suite and by local development (DOCUMENT_STORE=memory).
It implements the same atomic batch contract as the SQL backend: a batch is
applied to deep copies of the touched documents and swapped in only after
every operation succeeded, under a single lock.
"""

import copy
import logging
import threading

from eventdesk.store.base import DocumentStore, WriteOp, apply_write, matches
from eventdesk.utils.helpers import to_iso, utcnow

logger = logging.getLogger(__name__)


class InMemoryDocumentStore(DocumentStore):
    """Thread-safe dict-of-dicts store: {collection: {doc_id: body}}."""

    def __init__(self):
        self._collections: dict[str, dict[str, dict]] = {}
        self._lock = threading.Lock()

    def get_by_id(self, collection: str, doc_id: str) -> dict | None:
        with self._lock:
            body = self._collections.get(collection, {}).get(doc_id)
            if body is None:
                return None
            doc = copy.deepcopy(body)
        doc["id"] = doc_id
        return doc

    def query(self, collection: str, field_path: str, op: str, value) -> list[dict]:
        with self._lock:
            snapshot = copy.deepcopy(self._collections.get(collection, {}))
        result = []
        for doc_id, body in snapshot.items():
            body["id"] = doc_id
            if matches(body, field_path, op, value):
                result.append(body)
        return result

    def batch_write(self, operations: list[WriteOp]) -> None:
        now_iso = to_iso(utcnow())
        with self._lock:
            staged: dict[tuple[str, str], dict | None] = {}
            for op in operations:
                key = (op.collection, op.doc_id)
                if key in staged:
                    current = staged[key]
                else:
                    current = self._collections.get(op.collection, {}).get(op.doc_id)
                staged[key] = self._apply_op(current, op, now_iso)

            # Every op applied cleanly; publish the staged documents.
            for (collection, doc_id), body in staged.items():
                docs = self._collections.setdefault(collection, {})
                if body is None:
                    docs.pop(doc_id, None)
                else:
                    docs[doc_id] = body
        logger.debug("In-memory batch committed: %d ops", len(operations))

    def _apply_op(self, current: dict | None, op: WriteOp, now_iso: str) -> dict | None:
        return apply_write(current, op, now_iso)

    def clear(self) -> None:
        with self._lock:
            self._collections.clear()
