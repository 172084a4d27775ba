"""
OCDS release adapter.

Reads Open Contracting Data Standard releases from a
``findByDates/contractPublished/{start}/{end}`` endpoint (AusTender's OCDS
API) and maps the first contract of each release to a canonical tender.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import httpx

from ..backends.base import BackendError, RequestSpec
from ..backends.http_backend import HttpBackend
from ..config.models import SourceConfig
from ..normalize.canonical import (
    TenderCanonical,
    collect_categories,
    derive_status,
    first_present,
    truncate_title,
    usable_description,
)
from ..normalize.parsing import parse_date, parse_decimal_text
from .base import decode_json_response, fetch_window, guarded_fetch, guarded_probe

logger = logging.getLogger(__name__)

DEFAULT_AGENCY = "Australian Government"
DEFAULT_LOCATION = "National"
PROBE_DAYS = 1

# OCDS release tags that mean a contract was let; cancellations and
# terminations are excluded
AWARD_TAGS = frozenset({"award", "awardUpdate", "contract", "contractUpdate"})


def format_ocds_timestamp(value: datetime) -> str:
    """ISO-8601 at second precision with a ``Z`` suffix."""
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


def _party_with_role(parties: list[dict[str, Any]], role: str) -> dict[str, Any]:
    for party in parties:
        if role in (party.get("roles") or []):
            return party
    return {}


def map_ocds_release(release: dict[str, Any], source_name: str = "AusTender") -> TenderCanonical | None:
    """Map one OCDS release; returns None when the description is unusable.

    Raises:
        KeyError, TypeError, ValueError: For structurally malformed releases
    """
    contracts = release.get("contracts") or []
    contract: dict[str, Any] = contracts[0] if contracts else {}
    parties = release.get("parties") or []
    procuring_entity = _party_with_role(parties, "procuringEntity")
    supplier = _party_with_role(parties, "supplier")

    description = usable_description(contract.get("description"))
    if description is None:
        return None

    tender_block = release.get("tender") or {}
    item_labels = [
        (item.get("classification") or {}).get("description")
        for item in contract.get("items") or []
    ]

    close_date = parse_date((contract.get("period") or {}).get("endDate")).value
    tags = [str(tag) for tag in release.get("tag") or []]
    awarded = any(tag in AWARD_TAGS for tag in tags)

    return TenderCanonical(
        external_id=release["ocid"],
        source=source_name,
        title=truncate_title(description),
        agency=first_present(procuring_entity.get("name"), default=DEFAULT_AGENCY),
        description=description,
        status=derive_status(awarded, close_date),
        value=parse_decimal_text((contract.get("value") or {}).get("amount")),
        location=first_present(
            (procuring_entity.get("address") or {}).get("region"),
            (supplier.get("address") or {}).get("region"),
            default=DEFAULT_LOCATION,
        ),
        publish_date=parse_date(release.get("date")).value,
        close_date=close_date,
        categories=collect_categories(tender_block.get("procurementMethodDetails"), item_labels),
    )


class OcdsReleaseSource:
    """Date-windowed OCDS release feed over plain HTTP."""

    def __init__(
        self,
        config: SourceConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.transport = transport

    @property
    def name(self) -> str:
        return self.config.name

    def _backend(self) -> HttpBackend:
        http = self.config.http
        return HttpBackend(
            timeout=http.timeout_seconds,
            max_retries=http.max_retries,
            retry_backoff=http.retry_backoff_factor,
            user_agent=http.user_agent,
            default_headers={"Accept": "application/json", **self.config.headers},
            transport=self.transport,
        )

    def window_url(self, days_back: int, now: datetime | None = None) -> str:
        start, end = fetch_window(days_back, now)
        base = self.config.api_url.rstrip("/")
        return (
            f"{base}/findByDates/contractPublished/"
            f"{format_ocds_timestamp(start)}/{format_ocds_timestamp(end)}"
        )

    async def _load_releases(self, days_back: int) -> list[Any]:
        releases: list[Any] = []
        url: str | None = self.window_url(days_back)
        page = 0

        async with self._backend() as backend:
            while url and page < self.config.max_pages:
                page += 1
                logger.info(f"Fetching releases page {page}: {url}", extra={"source": self.name})
                try:
                    result = await backend.fetch(RequestSpec(url=url, source_name=self.name))
                    payload = decode_json_response(result, self.name)
                except BackendError as e:
                    if page == 1:
                        raise
                    logger.warning(
                        f"Stopping pagination at page {page}: {e}",
                        extra={"source": self.name},
                    )
                    break

                if not isinstance(payload, dict):
                    raise BackendError(f"{self.name} returned an unexpected payload", url=url)

                page_releases = payload.get("releases")
                if not isinstance(page_releases, list):
                    logger.info("No releases found in response", extra={"source": self.name})
                    break
                releases.extend(page_releases)

                next_url = (payload.get("links") or {}).get("next")
                url = next_url if isinstance(next_url, str) and next_url != url else None

        return releases

    async def fetch(self, days_back: int | None = None) -> list[TenderCanonical]:
        days = days_back or self.config.days_back
        return await guarded_fetch(
            self.name,
            lambda: self._load_releases(days),
            lambda release: map_ocds_release(release, self.name),
            record_key=lambda release: release.get("ocid"),
        )

    async def _probe(self) -> bool:
        async with self._backend() as backend:
            result = await backend.fetch(
                RequestSpec(url=self.window_url(PROBE_DAYS), source_name=self.name)
            )
        return result.ok

    async def test_connection(self) -> bool:
        return await guarded_probe(self.name, self._probe)
