"""Create events and event_codes tables for the SQL event store

Revision ID: 4f1c2a9d7e30
Revises:
Create Date: 2026-10-19 12:00:00.000000+00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# Revision identifiers, used by Alembic.
revision: str = "4f1c2a9d7e30"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "events",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("expires_at", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_events_expires_at", "events", ["expires_at"], unique=False)

    op.create_table(
        "event_codes",
        sa.Column("code", sa.String(length=8), nullable=False),
        sa.Column("event_id", sa.String(length=32), nullable=False),
        sa.Column("expires_at", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("code"),
    )
    op.create_index("idx_event_codes_event_id", "event_codes", ["event_id"], unique=False)
    op.create_index("idx_event_codes_expires_at", "event_codes", ["expires_at"], unique=False)


def downgrade() -> None:
    op.drop_index("idx_event_codes_expires_at", table_name="event_codes")
    op.drop_index("idx_event_codes_event_id", table_name="event_codes")
    op.drop_table("event_codes")
    op.drop_index("idx_events_expires_at", table_name="events")
    op.drop_table("events")
