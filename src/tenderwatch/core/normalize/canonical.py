"""
Canonical tender model for normalized data.

Provides a clean interface between source adapters and database persistence,
plus the shared normalization rules every adapter applies:

- Description quality gate
- Ordered, de-duplicated categories with a sentinel fallback
- Status derivation from award markers and close dates
- Location / agency fallback cascades
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable

from .parsing import normalize_whitespace

MIN_DESCRIPTION_LENGTH = 5
SENTINEL_CATEGORY = "Government Procurement"
TITLE_MAX_LENGTH = 100


class TenderStatus(str, Enum):
    """Tender lifecycle status."""

    OPEN = "Open"
    CLOSED = "Closed"
    AWARDED = "Awarded"


@dataclass
class TenderCanonical:
    """Normalized tender ready for the upsert layer.

    Adapters produce these; the store assigns ids and the enrichment worker
    owns the AI fields, so neither appears here.
    """

    source: str
    title: str
    agency: str
    description: str
    external_id: str | None = None
    status: TenderStatus = TenderStatus.OPEN
    value: str | None = None
    location: str | None = None
    publish_date: datetime | None = None
    close_date: datetime | None = None
    categories: list[str] = field(default_factory=lambda: [SENTINEL_CATEGORY])
    match_score: int = 0

    def __post_init__(self) -> None:
        if not self.categories:
            self.categories = [SENTINEL_CATEGORY]

    def to_dict(self) -> dict[str, Any]:
        """Convert to the column mapping used for persistence."""
        data = asdict(self)
        data["status"] = TenderStatus(self.status).value
        data["categories"] = list(self.categories)
        return data


# =============================================================================
# Shared normalization rules
# =============================================================================


def utcnow() -> datetime:
    """Current time as naive UTC, matching stored timestamps."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def usable_description(text: Any) -> str | None:
    """Return the normalized description, or None when it fails the quality gate."""
    if text is None:
        return None
    description = normalize_whitespace(str(text))
    if len(description) < MIN_DESCRIPTION_LENGTH:
        return None
    return description


def truncate_title(text: str, limit: int = TITLE_MAX_LENGTH) -> str:
    """Title stand-in for records that only carry a description."""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def collect_categories(*groups: Any) -> list[str]:
    """Merge category labels in order, dropping blanks and duplicates.

    Each group may be a single label or an iterable of labels. An empty
    result falls back to the sentinel category.
    """
    seen: set[str] = set()
    categories: list[str] = []

    for group in groups:
        if group is None:
            continue
        labels: Iterable[Any] = [group] if isinstance(group, str) else group
        for label in labels:
            if label is None:
                continue
            text = normalize_whitespace(str(label))
            if text and text not in seen:
                seen.add(text)
                categories.append(text)

    return categories or [SENTINEL_CATEGORY]


def derive_status(
    awarded: bool,
    close_date: datetime | None,
    now: datetime | None = None,
) -> TenderStatus:
    """Awarded when the source marks it so, else Closed once the close date passed."""
    if awarded:
        return TenderStatus.AWARDED
    if close_date is not None and close_date < (now or utcnow()):
        return TenderStatus.CLOSED
    return TenderStatus.OPEN


def first_present(*values: Any, default: str | None = None) -> str | None:
    """First value that is non-empty after whitespace normalization."""
    for value in values:
        if value is None:
            continue
        text = normalize_whitespace(str(value))
        if text:
            return text
    return default
