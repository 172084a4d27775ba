"""
SQLAlchemy ORM models for TenderWatch.

Defines the ``tenders`` table: the canonical tender fields written by the
sync, plus the AI fields owned by the enrichment worker.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


# =============================================================================
# Base Class
# =============================================================================


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    type_annotation_map = {
        dict[str, Any]: JSON,
        list[str]: JSON,
    }


# =============================================================================
# Mixins
# =============================================================================


class TimestampMixin:
    """Mixin providing created_at and updated_at columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=_utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime,
        default=None,
        onupdate=_utcnow,
        nullable=True,
    )


# =============================================================================
# Tender Model
# =============================================================================


# Columns only the enrichment worker writes; the sync never touches them
AI_FIELDS = frozenset({"ai_summary", "ai_categories", "ai_enriched", "ai_enriched_at"})


class Tender(Base, TimestampMixin):
    """A procurement opportunity aggregated from one source."""

    __tablename__ = "tenders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Stable within its source; records without one are never deduplicated
    external_id: Mapped[str | None] = mapped_column(String(200), nullable=True)
    source: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    title: Mapped[str] = mapped_column(String(1000), nullable=False)
    agency: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="Open", index=True)

    # Exact decimal text, never a float
    value: Mapped[str | None] = mapped_column(String(40), nullable=True)
    location: Mapped[str | None] = mapped_column(String(500), nullable=True)

    publish_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    close_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)

    categories: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    match_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # AI fields
    ai_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    ai_categories: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    ai_enriched: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    ai_enriched_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("source", "external_id", name="uq_tender_source_external"),
        Index("ix_tender_enriched_id", "ai_enriched", "id"),
        Index("ix_tender_source_status", "source", "status"),
    )

    def __repr__(self) -> str:
        return f"<Tender(id={self.id}, external_id='{self.external_id}', title='{self.title[:50] if self.title else ''}')>"
