"""create record_events table

Revision ID: 0001_create_record_events
Revises:
Create Date: 2026-10-18

"""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_create_record_events"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "record_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("kind", sa.String(length=32), nullable=False),
        sa.Column("record_id", sa.Integer(), nullable=True),
        sa.Column("actor", sa.String(length=128), nullable=True),
        sa.Column("subject", sa.String(length=128), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(op.f("ix_record_events_kind"), "record_events", ["kind"], unique=False)
    op.create_index(
        op.f("ix_record_events_record_id"), "record_events", ["record_id"], unique=False
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_record_events_record_id"), table_name="record_events")
    op.drop_index(op.f("ix_record_events_kind"), table_name="record_events")
    op.drop_table("record_events")
