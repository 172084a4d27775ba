"""
Repository pattern for database operations.

Provides the tender store used by the sync orchestrator and the enrichment
worker, including the upsert that keeps AI-derived fields intact.
"""

from __future__ import annotations

from typing import Any, Sequence

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from .models import AI_FIELDS, Tender

# Columns a sync candidate may write
WRITABLE_FIELDS = frozenset(
    {
        "external_id",
        "source",
        "title",
        "agency",
        "description",
        "status",
        "value",
        "location",
        "publish_date",
        "close_date",
        "categories",
        "match_score",
    }
)


class TenderRepository:
    """Repository for Tender operations."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, tender_id: int) -> Tender | None:
        """Get tender by ID."""
        return self.session.get(Tender, tender_id)

    def get_by_external_id(self, source: str, external_id: str) -> Tender | None:
        """Get tender by source and external ID."""
        stmt = select(Tender).where(
            and_(
                Tender.source == source,
                Tender.external_id == external_id,
            )
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def create(self, fields: dict[str, Any]) -> Tender:
        tender = Tender(**fields)
        self.session.add(tender)
        self.session.flush()
        return tender

    def update(self, tender_id: int, fields: dict[str, Any]) -> Tender | None:
        """Apply column updates to one tender; returns None when it doesn't exist."""
        tender = self.get(tender_id)
        if tender is None:
            return None
        for name, value in fields.items():
            setattr(tender, name, value)
        self.session.flush()
        return tender

    def get_unenriched(self, limit: int) -> Sequence[Tender]:
        """Oldest tenders still awaiting enrichment, by ascending id."""
        stmt = (
            select(Tender)
            .where(Tender.ai_enriched == False)  # noqa: E712
            .order_by(Tender.id.asc())
            .limit(limit)
        )
        return self.session.execute(stmt).scalars().all()

    def upsert(self, candidate: dict[str, Any]) -> tuple[Tender, bool]:
        """Insert or update a tender keyed by (source, external id).

        AI fields on the candidate are ignored on both paths. A candidate
        without an external id is always inserted.

        Returns:
            Tuple of (tender, is_new)
        """
        fields = {k: v for k, v in candidate.items() if k in WRITABLE_FIELDS and k not in AI_FIELDS}
        external_id = fields.get("external_id")
        source = fields.get("source")

        existing = (
            self.get_by_external_id(source, external_id) if source and external_id else None
        )
        if existing is None:
            return self.create(fields), True

        for name, value in fields.items():
            setattr(existing, name, value)
        self.session.flush()
        return existing, False

    def list_tenders(
        self,
        source: str | None = None,
        status: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> Sequence[Tender]:
        """List tenders, soonest closing first."""
        stmt = select(Tender)
        if source is not None:
            stmt = stmt.where(Tender.source == source)
        if status is not None:
            stmt = stmt.where(Tender.status == status)
        stmt = stmt.order_by(Tender.close_date.asc().nullslast(), Tender.id.asc())
        return self.session.execute(stmt.limit(limit).offset(offset)).scalars().all()

    def count(self) -> int:
        return self.session.execute(select(func.count(Tender.id))).scalar_one()

    def count_by_source(self) -> dict[str, int]:
        stmt = select(Tender.source, func.count(Tender.id)).group_by(Tender.source)
        return {source: count for source, count in self.session.execute(stmt).all()}

    def count_by_status(self, source: str | None = None) -> dict[str, int]:
        """Count tenders grouped by status."""
        stmt = select(Tender.status, func.count(Tender.id)).group_by(Tender.status)
        if source is not None:
            stmt = stmt.where(Tender.source == source)
        return {status: count for status, count in self.session.execute(stmt).all()}

    def count_enriched(self) -> dict[str, int]:
        """Enriched / summarized / pending counts for status reporting."""
        enriched = self.session.execute(
            select(func.count(Tender.id)).where(Tender.ai_enriched == True)  # noqa: E712
        ).scalar_one()
        summarized = self.session.execute(
            select(func.count(Tender.id)).where(Tender.ai_summary.is_not(None))
        ).scalar_one()
        return {
            "enriched": enriched,
            "summarized": summarized,
            "pending": self.count() - enriched,
        }
