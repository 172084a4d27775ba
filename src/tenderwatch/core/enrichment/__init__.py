"""AI enrichment of stored tenders."""

from .client import EnrichmentError, EnrichmentParseError, LLMClient
from .vocabulary import BUSINESS_CATEGORIES, FALLBACK_CATEGORY, validate_categories
from .worker import (
    EnrichmentResult,
    EnrichmentWorker,
    build_prompt,
    enrich_batch,
    enrich_single_tender,
    extract_json_object,
    format_value,
    parse_enrichment,
)

__all__ = [
    "EnrichmentError",
    "EnrichmentParseError",
    "LLMClient",
    "BUSINESS_CATEGORIES",
    "FALLBACK_CATEGORY",
    "validate_categories",
    "EnrichmentResult",
    "EnrichmentWorker",
    "build_prompt",
    "enrich_batch",
    "enrich_single_tender",
    "extract_json_object",
    "format_value",
    "parse_enrichment",
]
