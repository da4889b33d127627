"""Add notifications and analysis throttle state (idempotent).

Revision ID: 8d3e6b2a5c44
Revises: 4f2a9c1d7e01
Create Date: 2026-10-08 00:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "8d3e6b2a5c44"
down_revision: Union[str, Sequence[str], None] = "4f2a9c1d7e01"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _table_exists(bind, name: str) -> bool:
    return sa.inspect(bind).has_table(name)


def upgrade() -> None:
    bind = op.get_bind()

    if not _table_exists(bind, "notifications"):
        op.create_table(
            "notifications",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("user_id", sa.String(length=36), nullable=False),
            sa.Column("type", sa.String(length=20), nullable=False),
            sa.Column("title", sa.String(length=200), nullable=False),
            sa.Column("message", sa.Text(), nullable=False),
            sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("data", sa.JSON(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
            sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], ondelete="CASCADE"),
        )
        op.create_index("ix_notifications_user_created", "notifications", ["user_id", "created_at"])

    if not _table_exists(bind, "analysis_throttle_states"):
        op.create_table(
            "analysis_throttle_states",
            sa.Column("user_id", sa.String(length=36), nullable=False),
            sa.Column("kind", sa.String(length=60), nullable=False),
            sa.Column("last_run_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("user_id", "kind"),
            sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], ondelete="CASCADE"),
        )
        op.create_index("ix_analysis_throttle_states_user_id", "analysis_throttle_states", ["user_id"])


def downgrade() -> None:
    bind = op.get_bind()

    if _table_exists(bind, "analysis_throttle_states"):
        op.drop_index("ix_analysis_throttle_states_user_id", table_name="analysis_throttle_states")
        op.drop_table("analysis_throttle_states")
    if _table_exists(bind, "notifications"):
        op.drop_index("ix_notifications_user_created", table_name="notifications")
        op.drop_table("notifications")
