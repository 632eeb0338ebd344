"""create rate_limit_windows table

Revision ID: 20261017_0003
Revises: 20261017_0002
Create Date: 2026-10-17 10:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261017_0003"
down_revision = "20261017_0002"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "rate_limit_windows",
        sa.Column("key", sa.String(length=512), nullable=False),
        sa.Column("count", sa.Integer(), nullable=False),
        sa.Column("reset_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("key"),
    )
    op.create_index("ix_rate_limit_windows_reset_at", "rate_limit_windows", ["reset_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_rate_limit_windows_reset_at", table_name="rate_limit_windows")
    op.drop_table("rate_limit_windows")
