"""
SQL-backed document store (Flask-SQLAlchemy ``documents`` table).

One batch == one database transaction. The touched rows are loaded with
SELECT ... FOR UPDATE, the operations are applied to copies of their JSON
bodies, and the session is committed once; any failure rolls the whole
transaction back and the error propagates to the caller unchanged.

Every row carries a version counter (``Document.version``). If another
writer commits one of the touched rows between our read and our write (SQLite
ignores FOR UPDATE), the flush raises StaleDataError and the whole batch is
re-read and re-applied, so ArrayUnion / ArrayRemove never overwrite a
concurrent change. A batch that keeps losing raises ConflictError.

Queries load the collection and evaluate the predicate on the decoded body,
which keeps the operator semantics identical to the in-memory backend on
both SQLite and PostgreSQL.
"""

import copy
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from eventdesk.core.exceptions import ConflictError
from eventdesk.models import db
from eventdesk.models.document import Document
from eventdesk.store.base import DocumentStore, WriteOp, apply_write, matches
from eventdesk.utils.helpers import to_iso, utcnow

logger = logging.getLogger(__name__)

MAX_WRITE_ATTEMPTS = 5


class SqlDocumentStore(DocumentStore):

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def _load(self, collection: str, doc_id: str, for_update: bool = False) -> Document | None:
        stmt = select(Document).where(
            Document.collection == collection,
            Document.doc_id == doc_id,
        )
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.session.execute(stmt).scalar_one_or_none()

    def get_by_id(self, collection: str, doc_id: str) -> dict | None:
        row = self._load(collection, doc_id)
        return copy.deepcopy(row.to_dict()) if row else None

    def query(self, collection: str, field_path: str, op: str, value) -> list[dict]:
        stmt = (
            select(Document)
            .where(Document.collection == collection)
            .order_by(Document.id)
        )
        rows = self.session.execute(stmt).scalars().all()
        result = []
        for row in rows:
            body = copy.deepcopy(row.to_dict())
            if matches(body, field_path, op, value):
                result.append(body)
        return result

    def batch_write(self, operations: list[WriteOp]) -> None:
        for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
            try:
                self._write_once(operations)
            except (StaleDataError, IntegrityError) as e:
                if attempt == MAX_WRITE_ATTEMPTS:
                    raise ConflictError(resource="Document batch", field="version") from e
                logger.info(
                    "Document batch lost a write race, retrying (attempt %d/%d)",
                    attempt, MAX_WRITE_ATTEMPTS,
                )
                continue
            logger.debug("SQL batch committed: %d ops", len(operations))
            return

    def _write_once(self, operations: list[WriteOp]) -> None:
        session = self.session
        now_iso = to_iso(utcnow())
        try:
            # lock every touched row in key order before any op is applied
            keys = sorted({(op.collection, op.doc_id) for op in operations})
            rows = {key: self._load(*key, for_update=True) for key in keys}
            staged: dict[tuple[str, str], dict | None] = {
                key: copy.deepcopy(row.data) if row else None for key, row in rows.items()
            }
            for op in operations:
                key = (op.collection, op.doc_id)
                staged[key] = self._apply_op(staged[key], op, now_iso)

            for (collection, doc_id), body in staged.items():
                row = rows[(collection, doc_id)]
                if body is None:
                    if row is not None:
                        session.delete(row)
                elif row is None:
                    session.add(Document(collection=collection, doc_id=doc_id, data=body))
                else:
                    row.data = body
            session.commit()
        except Exception:
            session.rollback()
            logger.warning("Document batch rolled back (%d ops)", len(operations))
            raise

    def _apply_op(self, current: dict | None, op: WriteOp, now_iso: str) -> dict | None:
        return apply_write(current, op, now_iso)
