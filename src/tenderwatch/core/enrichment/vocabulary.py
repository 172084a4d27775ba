"""Controlled vocabulary of business categories for AI classification."""

from __future__ import annotations

FALLBACK_CATEGORY = "Other"

BUSINESS_CATEGORIES: tuple[str, ...] = (
    "Information Technology",
    "Construction & Infrastructure",
    "Healthcare & Medical",
    "Professional Services",
    "Defence & Security",
    "Education & Training",
    "Environmental Services",
    "Transport & Logistics",
    "Financial Services",
    "Manufacturing",
    "Energy & Utilities",
    "Agriculture & Resources",
    "Communications & Media",
    "Legal Services",
    "Research & Development",
    "Facilities Management",
    "Human Resources",
    "Marketing & Advertising",
    "Social Services",
    FALLBACK_CATEGORY,
)

_VOCABULARY = frozenset(BUSINESS_CATEGORIES)


def is_business_category(label: object) -> bool:
    return isinstance(label, str) and label in _VOCABULARY


def validate_categories(categories: list[object]) -> list[str]:
    """Keep vocabulary labels in first-seen order; fall back to ``["Other"]``."""
    valid: list[str] = []
    for label in categories:
        if is_business_category(label) and label not in valid:
            valid.append(label)  # type: ignore[arg-type]
    return valid or [FALLBACK_CATEGORY]
