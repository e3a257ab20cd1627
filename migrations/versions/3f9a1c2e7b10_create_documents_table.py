"""create_documents_table

Revision ID: 3f9a1c2e7b10
Revises:
Create Date: 2026-10-18 09:12:40.512031

Adds:
    - documents: one row per (collection, doc_id) holding the JSON body
      of users, events, stakeholders, eventStakeholders, invites and
      notifications, plus an optimistic-locking version counter
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3f9a1c2e7b10'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "documents",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("collection", sa.String(100), nullable=False),
        sa.Column("doc_id", sa.String(200), nullable=False),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("collection", "doc_id", name="uq_documents_collection_doc_id"),
        if_not_exists=True,
    )
    op.create_index("ix_documents_collection", "documents", ["collection"], if_not_exists=True)


def downgrade():
    op.drop_index("ix_documents_collection", table_name="documents", if_exists=True)
    op.drop_table("documents", if_exists=True)
