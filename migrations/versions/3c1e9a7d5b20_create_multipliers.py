"""create multipliers table

Revision ID: 3c1e9a7d5b20
Revises:
Create Date: 2026-10-17 09:12:44.301552

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3c1e9a7d5b20"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the rounds table with a unique round number."""
    op.create_table(
        "multipliers",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("round_number", sa.BigInteger(), nullable=False),
        sa.Column("multiplier", sa.Float(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("round_number"),
    )
    op.create_index(
        op.f("ix_multipliers_round_number"), "multipliers", ["round_number"], unique=False
    )


def downgrade() -> None:
    """Drop the rounds table."""
    op.drop_index(op.f("ix_multipliers_round_number"), table_name="multipliers")
    op.drop_table("multipliers")
