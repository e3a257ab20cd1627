"""
Document store capability interface.

The rules core only needs three things from its storage collaborator:

    get_by_id(collection, doc_id)            -> dict | None
    query(collection, field_path, op, value) -> list[dict]
    batch_write(operations)                  -> None   (all-or-nothing)

Write operations are plain value objects (SetOp / UpdateOp / DeleteOp). Field
values inside SetOp / UpdateOp may be transforms: ArrayUnion, ArrayRemove
(set semantics on list fields) or SERVER_TIMESTAMP (resolved at commit).

``apply_write`` and ``matches`` hold the shared semantics so both backends
behave identically.
"""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Union

from eventdesk.core.exceptions import NotFoundError, ValidationError


class _ServerTimestamp:
    def __repr__(self):
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


@dataclass(frozen=True)
class ArrayUnion:
    """Add each value to a list field unless already present."""
    values: tuple

    def __init__(self, *values):
        object.__setattr__(self, "values", tuple(values))


@dataclass(frozen=True)
class ArrayRemove:
    """Remove every occurrence of each value from a list field."""
    values: tuple

    def __init__(self, *values):
        object.__setattr__(self, "values", tuple(values))


@dataclass(frozen=True)
class SetOp:
    collection: str
    doc_id: str
    data: dict = field(default_factory=dict)
    merge: bool = False


@dataclass(frozen=True)
class UpdateOp:
    """Partial update; the document must already exist."""
    collection: str
    doc_id: str
    fields: dict = field(default_factory=dict)


@dataclass(frozen=True)
class DeleteOp:
    """Delete a document; deleting a missing document is a no-op."""
    collection: str
    doc_id: str


WriteOp = Union[SetOp, UpdateOp, DeleteOp]

QUERY_OPS = frozenset({"==", "!=", "<", "<=", ">", ">=", "in", "array-contains"})


# ═════════════════════════════════════════════════════════════════════════════
# Shared semantics
# ═════════════════════════════════════════════════════════════════════════════

_MISSING = object()


def get_field(doc: dict, field_path: str):
    """Resolve a dotted field path; returns _MISSING when absent."""
    node: Any = doc
    for part in field_path.split("."):
        if not isinstance(node, dict) or part not in node:
            return _MISSING
        node = node[part]
    return node


def matches(doc: dict, field_path: str, op: str, value) -> bool:
    """Evaluate one query predicate against a document body."""
    if op not in QUERY_OPS:
        raise ValidationError(f"Unsupported query operator: {op!r}")
    actual = doc.get("id", _MISSING) if field_path == "id" else get_field(doc, field_path)
    if actual is _MISSING:
        return op == "!=" and value is not None
    if op == "==":
        return actual == value
    if op == "!=":
        return actual != value
    if op == "in":
        return actual in value
    if op == "array-contains":
        return isinstance(actual, list) and value in actual
    if actual is None or value is None:
        return False
    try:
        if op == "<":
            return actual < value
        if op == "<=":
            return actual <= value
        if op == ">":
            return actual > value
        return actual >= value
    except TypeError:
        return False


def _resolve(value, current, now_iso: str):
    if value is SERVER_TIMESTAMP:
        return now_iso
    if isinstance(value, ArrayUnion):
        base = list(current) if isinstance(current, list) else []
        for v in value.values:
            if v not in base:
                base.append(v)
        return base
    if isinstance(value, ArrayRemove):
        base = list(current) if isinstance(current, list) else []
        return [v for v in base if v not in value.values]
    return copy.deepcopy(value)


def _set_path(body: dict, field_path: str, value, now_iso: str) -> None:
    parts = field_path.split(".")
    node = body
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = _resolve(value, node.get(parts[-1]), now_iso)


def apply_write(current: dict | None, op: WriteOp, now_iso: str) -> dict | None:
    """Return the document body after applying ``op`` (None means deleted).

    ``current`` is never mutated. UpdateOp against a missing document raises
    NotFoundError, which rejects the enclosing batch.
    """
    if isinstance(op, DeleteOp):
        return None
    if isinstance(op, UpdateOp):
        if current is None:
            raise NotFoundError(resource=op.collection, resource_id=op.doc_id)
        body = copy.deepcopy(current)
        for path, value in op.fields.items():
            _set_path(body, path, value, now_iso)
        return body
    if isinstance(op, SetOp):
        body = copy.deepcopy(current) if (op.merge and current is not None) else {}
        for key, value in op.data.items():
            if key == "id":
                continue
            body[key] = _resolve(value, body.get(key), now_iso)
        return body
    raise TypeError(f"Unsupported write operation: {op!r}")


# ═════════════════════════════════════════════════════════════════════════════
# Interface
# ═════════════════════════════════════════════════════════════════════════════


class DocumentStore(ABC):
    """Collection/document store with query-by-field and atomic batches."""

    @abstractmethod
    def get_by_id(self, collection: str, doc_id: str) -> dict | None:
        """Return the document (with its ``id``) or None."""

    @abstractmethod
    def query(self, collection: str, field_path: str, op: str, value) -> list[dict]:
        """Return every document of ``collection`` matching one predicate."""

    @abstractmethod
    def batch_write(self, operations: list[WriteOp]) -> None:
        """Apply ``operations`` atomically: all of them or none."""

    def all(self, collection: str) -> list[dict]:
        return self.query(collection, "id", "!=", None)

    def batch(self) -> "WriteBatch":
        return WriteBatch(self)


class WriteBatch:
    """Collects write operations and commits them in one ``batch_write``.

    Usage:
        batch = store.batch()
        batch.update("stakeholders", sid, {"eventIds": ArrayUnion(eid)})
        batch.delete("eventStakeholders", jid)
        batch.commit()
    """

    def __init__(self, store: DocumentStore):
        self._store = store
        self._ops: list[WriteOp] = []

    @property
    def operations(self) -> list[WriteOp]:
        return list(self._ops)

    def __len__(self):
        return len(self._ops)

    def set(self, collection: str, doc_id: str, data: dict, merge: bool = False) -> "WriteBatch":
        self._ops.append(SetOp(collection, doc_id, data, merge))
        return self

    def update(self, collection: str, doc_id: str, fields: dict) -> "WriteBatch":
        self._ops.append(UpdateOp(collection, doc_id, fields))
        return self

    def delete(self, collection: str, doc_id: str) -> "WriteBatch":
        self._ops.append(DeleteOp(collection, doc_id))
        return self

    def commit(self) -> None:
        if self._ops:
            self._store.batch_write(self._ops)
