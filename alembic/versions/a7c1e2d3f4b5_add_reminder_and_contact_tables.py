"""Add reminder and parent contact tables

Revision ID: a7c1e2d3f4b5
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "a7c1e2d3f4b5"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    # Create reminders table
    op.create_table(
        "reminders",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("baby_id", sa.String(length=128), nullable=False),
        sa.Column("parent_id", sa.String(length=128), nullable=False),
        sa.Column("medicine_name", sa.String(length=255), nullable=False),
        sa.Column("dosage", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("frequency", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("dose_time", sa.String(length=5), nullable=False),
        sa.Column("scheduled_for", sa.DateTime(timezone=True), nullable=False),
        sa.Column("dedupe_key", sa.String(length=512), nullable=False),
        sa.Column("channels", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("attempt_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_attempt_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("retry_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("next_attempt_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("claim_token", sa.String(length=64), nullable=True),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_reminders"),
        sa.UniqueConstraint("dedupe_key", name="uq_reminders_dedupe_key"),
    )
    op.create_index("idx_reminders_baby_id", "reminders", ["baby_id"], unique=False)
    op.create_index("idx_reminders_parent_id", "reminders", ["parent_id"], unique=False)
    op.create_index("idx_reminders_status", "reminders", ["status"], unique=False)

    # Create parent_contacts table
    op.create_table(
        "parent_contacts",
        sa.Column("parent_id", sa.String(length=128), nullable=False),
        sa.Column("push_token", sa.Text(), nullable=True),
        sa.Column("phone_number", sa.String(length=32), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("parent_id", name="pk_parent_contacts"),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("parent_contacts")
    op.drop_index("idx_reminders_status", table_name="reminders")
    op.drop_index("idx_reminders_parent_id", table_name="reminders")
    op.drop_index("idx_reminders_baby_id", table_name="reminders")
    op.drop_table("reminders")
