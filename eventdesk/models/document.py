"""
Document table — one row per (collection, doc_id) for the SQL-backed store.

The row holds the document body as JSON and a version counter that
SQLAlchemy bumps on every write. Array fields (eventIds,
stakeholderIds) live inside ``data``; ``SqlDocumentStore`` evaluates field
queries against the decoded body.
"""

from datetime import datetime, timezone

from eventdesk.models import db


class Document(db.Model):
    __tablename__ = "documents"
    __table_args__ = (
        db.UniqueConstraint("collection", "doc_id", name="uq_documents_collection_doc_id"),
        db.Index("ix_documents_collection", "collection"),
    )

    id = db.Column(db.Integer, primary_key=True)
    version = db.Column(db.Integer, nullable=False)
    collection = db.Column(db.String(100), nullable=False)
    doc_id = db.Column(db.String(200), nullable=False)
    data = db.Column(db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # UPDATE ... WHERE version = :seen; a concurrent writer raises StaleDataError
    __mapper_args__ = {"version_id_col": version}

    def to_dict(self) -> dict:
        body = dict(self.data or {})
        body["id"] = self.doc_id
        return body

    def __repr__(self):
        return f"<Document {self.collection}/{self.doc_id}>"
