"""
Parsing utilities for normalizing source records.

Handles date, money, and status parsing from the formats tender sources
publish.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

import dateparser


# =============================================================================
# Date Parsing
# =============================================================================


@dataclass
class ParsedDate:
    """Result of parsing a date string."""

    value: datetime | None
    original: str
    format_detected: str | None = None


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values pass through."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_date(
    value: str | datetime | date | None,
    *,
    prefer_day_first: bool = True,
) -> ParsedDate:
    """Parse a date/datetime from various formats.

    Handles:
    - ISO 8601 with ``Z`` or numeric offsets (converted to naive UTC)
    - Australian formats (DD/MM/YYYY, optionally with a time)
    - Anything else dateparser understands

    Args:
        value: String or datetime to parse
        prefer_day_first: Prefer DD/MM/YYYY over MM/DD/YYYY

    Returns:
        ParsedDate with the parsed value, or ``value=None`` when unparseable
    """
    if value is None:
        return ParsedDate(value=None, original="")

    if isinstance(value, datetime):
        return ParsedDate(value=to_naive_utc(value), original=value.isoformat(), format_detected="datetime")

    if isinstance(value, date):
        return ParsedDate(
            value=datetime.combine(value, time.min),
            original=value.isoformat(),
            format_detected="date",
        )

    original = str(value).strip()
    if not original:
        return ParsedDate(value=None, original=original)

    # ISO 8601 fast path
    iso_text = original[:-1] + "+00:00" if original.endswith(("Z", "z")) else original
    try:
        return ParsedDate(
            value=to_naive_utc(datetime.fromisoformat(iso_text)),
            original=original,
            format_detected="iso8601",
        )
    except ValueError:
        pass

    result = _try_common_patterns(original, prefer_day_first)
    if result:
        return ParsedDate(value=result[0], original=original, format_detected=result[1])

    settings: dict[str, Any] = {
        "DATE_ORDER": "DMY" if prefer_day_first else "MDY",
        "TO_TIMEZONE": "UTC",
        "RETURN_AS_TIMEZONE_AWARE": False,
    }
    parsed = dateparser.parse(original, settings=settings)
    if parsed:
        return ParsedDate(value=parsed, original=original, format_detected="dateparser")

    return ParsedDate(value=None, original=original)


_SLASH_DATE = re.compile(
    r"^(\d{1,2})/(\d{1,2})/(\d{4})(?:\s+(\d{1,2}):(\d{2})(?::(\d{2}))?\s*(AM|PM)?)?$",
    re.IGNORECASE,
)


def _try_common_patterns(text: str, day_first: bool) -> tuple[datetime, str] | None:
    """Try slash-separated dates (fast path before dateparser)."""
    match = _SLASH_DATE.match(text)
    if not match:
        return None

    first, second, year = int(match.group(1)), int(match.group(2)), int(match.group(3))
    day, month = (first, second) if day_first else (second, first)

    hour = int(match.group(4)) if match.group(4) else 0
    minute = int(match.group(5)) if match.group(5) else 0
    second_ = int(match.group(6)) if match.group(6) else 0
    ampm = (match.group(7) or "").upper()
    if ampm == "PM" and hour < 12:
        hour += 12
    elif ampm == "AM" and hour == 12:
        hour = 0

    try:
        return datetime(year, month, day, hour, minute, second_), "dmy" if day_first else "mdy"
    except ValueError:
        return None


# =============================================================================
# Money Parsing
# =============================================================================


_MONEY_NOISE = re.compile(r"(AUD|USD|A\$|AU\$|\$|,|\s)", re.IGNORECASE)


def parse_decimal_text(value: str | int | float | Decimal | None) -> str | None:
    """Render a monetary amount as exact decimal text.

    ``Decimal`` and ``int`` inputs keep every digit they carry. Strings may
    include currency markers and thousands separators. Non-numeric input
    yields ``None``.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int):
        return str(value)
    elif isinstance(value, float):
        amount = Decimal(repr(value))
    else:
        text = _MONEY_NOISE.sub("", str(value))
        if not text:
            return None
        try:
            amount = Decimal(text)
        except InvalidOperation:
            return None

    if not amount.is_finite():
        return None
    return format(amount, "f")


# =============================================================================
# Status Parsing
# =============================================================================


@dataclass
class ParsedStatus:
    """Result of parsing a status string."""

    status: str | None  # Canonical status value
    original: str


# Checked in order; awarded wins over the others
STATUS_PATTERNS: dict[str, list[str]] = {
    "Awarded": [
        "awarded",
        "award",
        "contract",
        "successful tenderer",
    ],
    "Closed": [
        "closed",
        "expired",
        "cancelled",
        "canceled",
        "withdrawn",
        "complete",
    ],
    "Open": [
        "open",
        "active",
        "current",
        "planning",
        "tender",
    ],
}


def parse_status(value: str | None, *, default: str | None = None) -> ParsedStatus:
    """Parse a free-text status to a canonical status value.

    Args:
        value: Status string to parse
        default: Status returned when nothing matches

    Returns:
        ParsedStatus with the canonical status (or ``default``)
    """
    if value is None:
        return ParsedStatus(status=default, original="")

    original = str(value).strip()
    text = original.lower()

    for status, patterns in STATUS_PATTERNS.items():
        for pattern in patterns:
            if pattern in text:
                return ParsedStatus(status=status, original=original)

    return ParsedStatus(status=default, original=original)


# =============================================================================
# Utility Functions
# =============================================================================


def normalize_whitespace(text: str | None) -> str:
    """Normalize whitespace in text."""
    if text is None:
        return ""
    return " ".join(str(text).split())


def clean_html_text(text: str | None) -> str:
    """Clean text that may carry HTML tags or entities."""
    if text is None:
        return ""

    text = re.sub(r"<br\s*/?>|</p>", " ", str(text), flags=re.IGNORECASE)
    text = re.sub(r"<[^>]+>", "", text)
    text = re.sub(r"&nbsp;?", " ", text)
    text = re.sub(r"&amp;?", "&", text)
    text = re.sub(r"&lt;?", "<", text)
    text = re.sub(r"&gt;?", ">", text)
    text = re.sub(r"&quot;?", '"', text)
    text = re.sub(r"&#39;?", "'", text)

    return normalize_whitespace(text)
