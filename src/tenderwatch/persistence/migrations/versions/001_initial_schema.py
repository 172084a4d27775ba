"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from __future__ import annotations

from typing import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the tenders table."""
    op.create_table(
        "tenders",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("external_id", sa.String(length=200), nullable=True),
        sa.Column("source", sa.String(length=100), nullable=False),
        sa.Column("title", sa.String(length=1000), nullable=False),
        sa.Column("agency", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="Open"),
        sa.Column("value", sa.String(length=40), nullable=True),
        sa.Column("location", sa.String(length=500), nullable=True),
        sa.Column("publish_date", sa.DateTime(), nullable=True),
        sa.Column("close_date", sa.DateTime(), nullable=True),
        sa.Column("categories", sa.JSON(), nullable=False),
        sa.Column("match_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("ai_summary", sa.Text(), nullable=True),
        sa.Column("ai_categories", sa.JSON(), nullable=True),
        sa.Column("ai_enriched", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("ai_enriched_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("source", "external_id", name="uq_tender_source_external"),
    )
    op.create_index("ix_tenders_source", "tenders", ["source"])
    op.create_index("ix_tenders_status", "tenders", ["status"])
    op.create_index("ix_tenders_close_date", "tenders", ["close_date"])
    op.create_index("ix_tender_enriched_id", "tenders", ["ai_enriched", "id"])
    op.create_index("ix_tender_source_status", "tenders", ["source", "status"])


def downgrade() -> None:
    """Drop the tenders table."""
    op.drop_table("tenders")
