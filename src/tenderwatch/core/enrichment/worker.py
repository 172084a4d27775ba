"""
Enrichment worker.

Attaches an AI summary and business categories to stored tenders:

- Batch path: up to N unenriched tenders, one model call at a time with a
  fixed pause between calls. A failed call still marks the tender enriched
  (categories ``["Other"]``, no summary) so it is never retried automatically.
- Single path: one tender on demand, returning the cached summary when one
  already exists.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Awaitable, Callable

from tenderwatch.persistence.db import SessionScope, get_session
from tenderwatch.persistence.models import Tender
from tenderwatch.persistence.repo import TenderRepository

from ..config.models import EnrichmentConfig
from ..normalize.canonical import utcnow
from .client import EnrichmentParseError, LLMClient
from .vocabulary import BUSINESS_CATEGORIES, FALLBACK_CATEGORY, validate_categories

logger = logging.getLogger(__name__)


@dataclass
class EnrichmentResult:
    """Validated model output for one tender."""

    summary: str
    categories: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"summary": self.summary, "categories": list(self.categories)}


# =============================================================================
# Prompt
# =============================================================================


def format_value(value: str | None) -> str:
    if not value:
        return "Not specified"
    try:
        return f"${Decimal(value):,}"
    except (InvalidOperation, ValueError):
        return value


def build_prompt(tender: Tender) -> str:
    """Structured analysis prompt embedding the tender and the category list."""
    close_date = tender.close_date.strftime("%d/%m/%Y") if tender.close_date else "Not specified"
    categories = "\n".join(f"- {label}" for label in BUSINESS_CATEGORIES)

    return f"""Analyze this Australian government tender and provide:
1. A detailed summary (2-3 paragraphs) that explains:
   - What the government agency is looking for
   - Key requirements and deliverables
   - Any eligibility criteria or mandatory qualifications
   - Timeline and contract details if available
   - What type of business would be well-suited to apply

2. Select 1-3 most relevant business categories from this list:
{categories}

TENDER DETAILS:
Title: {tender.title}
Agency: {tender.agency}
Description: {tender.description}
Value: {format_value(tender.value)}
Location: {tender.location or "National"}
Status: {tender.status}
Close Date: {close_date}

Respond in JSON format:
{{
  "summary": "Your detailed summary here...",
  "categories": ["Category1", "Category2"]
}}"""


# =============================================================================
# Reply parsing
# =============================================================================


_decoder = json.JSONDecoder()


def extract_json_object(text: str) -> dict[str, Any] | None:
    """First top-level JSON object embedded in free text, if any."""
    position = text.find("{")
    while position != -1:
        try:
            value, _ = _decoder.raw_decode(text, position)
        except ValueError:
            position = text.find("{", position + 1)
            continue
        if isinstance(value, dict):
            return value
        position = text.find("{", position + 1)
    return None


def parse_enrichment(text: str) -> EnrichmentResult:
    """Parse and validate a model reply.

    Raises:
        EnrichmentParseError: No JSON object, or summary/categories missing
    """
    data = extract_json_object(text)
    if data is None:
        raise EnrichmentParseError("No JSON object found in model reply")

    summary = data.get("summary")
    categories = data.get("categories")
    if not isinstance(summary, str) or not summary.strip():
        raise EnrichmentParseError("Model reply has no summary")
    if not isinstance(categories, list):
        raise EnrichmentParseError("Model reply has no category list")

    return EnrichmentResult(summary=summary.strip(), categories=validate_categories(categories))


# =============================================================================
# Worker
# =============================================================================


class EnrichmentWorker:
    """Sequential, paced enrichment over the tender store."""

    def __init__(
        self,
        client: LLMClient | None = None,
        session_scope: SessionScope | None = None,
        config: EnrichmentConfig | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.config = config or EnrichmentConfig()
        self.client = client or LLMClient(self.config)
        self.session_scope = session_scope or get_session
        self.sleep = sleep

    async def analyze(self, tender: Tender) -> EnrichmentResult:
        """One model call for one tender.

        Raises:
            EnrichmentError: Unusable reply
            Exception: Whatever the model client raises
        """
        reply = await self.client.complete(build_prompt(tender))
        try:
            return parse_enrichment(reply)
        except EnrichmentParseError as e:
            e.tender_id = tender.id
            raise

    def _persist(self, tender_id: int, result: EnrichmentResult | None) -> None:
        if result is not None:
            fields: dict[str, Any] = {
                "ai_summary": result.summary,
                "ai_categories": list(result.categories),
            }
        else:
            fields = {"ai_categories": [FALLBACK_CATEGORY]}
        fields["ai_enriched"] = True
        fields["ai_enriched_at"] = utcnow()

        with self.session_scope() as session:
            TenderRepository(session).update(tender_id, fields)

    async def _analyze_or_none(self, tender: Tender) -> EnrichmentResult | None:
        try:
            return await self.analyze(tender)
        except Exception as e:
            logger.warning(
                f"Enrichment failed for tender {tender.id}, defaulting to '{FALLBACK_CATEGORY}': {e}",
                extra={"tender_id": tender.id},
            )
            return None

    async def enrich_batch(self, max_count: int) -> int:
        """Enrich up to ``max_count`` unenriched tenders.

        Returns:
            Number of tenders that received a real summary
        """
        with self.session_scope() as session:
            pending = list(TenderRepository(session).get_unenriched(max_count))

        if not pending:
            logger.info("No unenriched tenders found")
            return 0

        logger.info(f"Enriching {len(pending)} tenders")
        delay = self.config.delay_ms / 1000
        enriched = 0

        for index, tender in enumerate(pending):
            if index and delay:
                await self.sleep(delay)

            logger.debug(
                f"Enriching tender {tender.id}: {tender.title[:50]}",
                extra={"tender_id": tender.id},
            )
            result = await self._analyze_or_none(tender)

            try:
                self._persist(tender.id, result)
            except Exception:
                logger.exception(
                    f"Could not store enrichment for tender {tender.id}",
                    extra={"tender_id": tender.id},
                )
                continue

            if result is not None:
                enriched += 1
                logger.info(
                    f"Enriched tender {tender.id}: {', '.join(result.categories)}",
                    extra={"tender_id": tender.id},
                )

        logger.info(f"Enrichment complete: {enriched}/{len(pending)} tenders enriched")
        return enriched

    async def enrich_single(self, tender_id: int) -> EnrichmentResult | None:
        """Enrich one tender now, or return its cached summary.

        Returns:
            The result, or None when the tender is missing or the call failed
        """
        with self.session_scope() as session:
            tender = TenderRepository(session).get(tender_id)

        if tender is None:
            logger.info(f"Tender {tender_id} not found", extra={"tender_id": tender_id})
            return None

        if tender.ai_summary:
            return EnrichmentResult(
                summary=tender.ai_summary,
                categories=list(tender.ai_categories or [FALLBACK_CATEGORY]),
            )

        result = await self._analyze_or_none(tender)

        try:
            self._persist(tender.id, result)
        except Exception:
            logger.exception(
                f"Could not store enrichment for tender {tender.id}",
                extra={"tender_id": tender.id},
            )
            return None

        return result

    async def close(self) -> None:
        await self.client.close()


# =============================================================================
# Convenience entry points
# =============================================================================


async def enrich_batch(max_count: int = 10, config: EnrichmentConfig | None = None) -> int:
    worker = EnrichmentWorker(config=config)
    try:
        return await worker.enrich_batch(max_count)
    finally:
        await worker.close()


async def enrich_single_tender(
    tender_id: int,
    config: EnrichmentConfig | None = None,
) -> EnrichmentResult | None:
    worker = EnrichmentWorker(config=config)
    try:
        return await worker.enrich_single(tender_id)
    finally:
        await worker.close()
