"""Normalization and canonicalization of source records."""

from .parsing import (
    ParsedDate,
    ParsedStatus,
    parse_date,
    parse_decimal_text,
    parse_status,
    normalize_whitespace,
    clean_html_text,
    to_naive_utc,
)
from .canonical import (
    MIN_DESCRIPTION_LENGTH,
    SENTINEL_CATEGORY,
    TenderCanonical,
    TenderStatus,
    collect_categories,
    derive_status,
    first_present,
    truncate_title,
    usable_description,
    utcnow,
)

__all__ = [
    # Parsing
    "ParsedDate",
    "ParsedStatus",
    "parse_date",
    "parse_decimal_text",
    "parse_status",
    "normalize_whitespace",
    "clean_html_text",
    "to_naive_utc",
    # Canonical
    "MIN_DESCRIPTION_LENGTH",
    "SENTINEL_CATEGORY",
    "TenderCanonical",
    "TenderStatus",
    "collect_categories",
    "derive_status",
    "first_present",
    "truncate_title",
    "usable_description",
    "utcnow",
]
