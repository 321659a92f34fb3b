"""init

Revision ID: 0001_init
Revises:
Create Date: 2026-10-18

"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "conversions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("source_amount", sa.BigInteger(), nullable=False),
        sa.Column("source_currency", sa.String(length=3), nullable=False),
        sa.Column("target_amount", sa.BigInteger(), nullable=False),
        sa.Column("target_currency", sa.String(length=3), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_conversions_target_currency", "conversions", ["target_currency"])
    op.create_index("ix_conversions_created_at", "conversions", ["created_at"])

    op.create_table(
        "rate_cache_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("key", sa.String(length=120), nullable=False),
        sa.Column("value", sa.JSON(), nullable=False),
        sa.Column("expires_at", sa.BigInteger(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_rate_cache_entries_key", "rate_cache_entries", ["key"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_rate_cache_entries_key", table_name="rate_cache_entries")
    op.drop_table("rate_cache_entries")
    op.drop_index("ix_conversions_created_at", table_name="conversions")
    op.drop_index("ix_conversions_target_currency", table_name="conversions")
    op.drop_table("conversions")
