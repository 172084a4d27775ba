"""
NSW eTendering adapter.

The NSW tender search API sits behind a web application firewall that
rejects plain HTTP clients, so this adapter drives a real browser:

1. Warm-up navigation to the public site so the WAF challenge can run
2. Short wait for client-side challenges to settle
3. The API request is issued from inside that page, reusing its session

The browser is scoped to a single fetch or probe and always torn down.
Without a registered browser (remote endpoint or local launch) the adapter
logs configuration guidance and returns nothing.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from ..backends.base import RequestSpec
from ..backends.playwright_backend import PlaywrightBackend
from ..config.models import BrowserConfig, SourceConfig
from ..normalize.canonical import (
    TenderCanonical,
    collect_categories,
    derive_status,
    first_present,
    usable_description,
)
from ..normalize.parsing import parse_date, parse_status
from .base import decode_json_response, guarded_fetch, guarded_probe

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Untitled Tender"
DEFAULT_AGENCY = "NSW Government"
DEFAULT_LOCATION = "NSW"

BrowserFactory = Callable[[BrowserConfig], PlaywrightBackend]


def default_browser_factory(config: BrowserConfig) -> PlaywrightBackend:
    return PlaywrightBackend(
        ws_endpoint=config.ws_endpoint,
        headless=config.headless,
        timeout=config.navigation_timeout_ms / 1000,
        browser_type=config.browser,
        viewport_width=config.viewport_width,
        viewport_height=config.viewport_height,
        user_agent=config.user_agent,
    )


def nsw_location(value: Any) -> str:
    location = first_present(value, default=DEFAULT_LOCATION)
    if "NSW" not in location:
        location = f"{location}, NSW"
    return location


def map_nsw_rft(rft: dict[str, Any], source_name: str = "NSW eTendering") -> TenderCanonical | None:
    """Map one NSW request-for-tender record; None when the description is unusable."""
    description = usable_description(rft.get("TenderDescription"))
    if description is None:
        return None

    external_id = first_present(rft.get("RFTUUID"))
    if external_id is None:
        raise ValueError("record has no RFTUUID")

    close_date = parse_date(rft.get("CloseDateTime")).value
    awarded = parse_status(rft.get("RFTStatus")).status == "Awarded"

    return TenderCanonical(
        external_id=external_id,
        source=source_name,
        title=first_present(rft.get("TenderTitle"), default=DEFAULT_TITLE),
        agency=first_present(rft.get("AgencyName"), default=DEFAULT_AGENCY),
        description=description,
        status=derive_status(awarded, close_date),
        location=nsw_location(rft.get("Location")),
        publish_date=parse_date(rft.get("PublishDateTime")).value,
        close_date=close_date,
        categories=collect_categories(
            rft.get("Category"),
            [entry.get("UNSPSCTitle") for entry in rft.get("UNSPSC") or [] if isinstance(entry, dict)],
            rft.get("TenderType"),
        ),
    )


def extract_rfts(payload: Any) -> list[Any]:
    """Records live under ``rfts`` (search) or ``rft`` (older responses)."""
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return []
    for key in ("rfts", "rft"):
        records = payload.get(key)
        if isinstance(records, list):
            return records
    return []


class NswETenderingSource:
    """Browser-rendered JSON source for NSW eTendering."""

    def __init__(
        self,
        config: SourceConfig,
        *,
        browser_factory: BrowserFactory | None = None,
    ) -> None:
        self.config = config
        self.browser_factory = browser_factory or default_browser_factory

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def home_url(self) -> str:
        return self.config.base_url or self.config.api_url

    def log_guidance(self) -> None:
        logger.warning(
            "No browser configured; this source is protected by a WAF that blocks "
            "plain HTTP clients. Set browser.ws_endpoint (remote browser) or "
            f"browser.launch_local: true to enable it. Site: {self.home_url}",
            extra={"source": self.name},
        )

    async def _load_rfts(self) -> list[Any]:
        browser_config = self.config.browser

        async with self.browser_factory(browser_config) as browser:
            logger.info(f"Warming up browser session at {self.home_url}", extra={"source": self.name})
            await browser.warm_up(self.home_url, browser_config.challenge_wait_ms)

            result = await browser.fetch_in_page(
                RequestSpec(
                    url=self.config.api_url,
                    headers={"Accept": "application/json", **self.config.headers},
                    params=dict(self.config.query_params),
                    source_name=self.name,
                )
            )
            payload = decode_json_response(result, self.name)

        records = extract_rfts(payload)
        if not records:
            logger.info("No tenders found in response", extra={"source": self.name})
        return records

    async def fetch(self, days_back: int | None = None) -> list[TenderCanonical]:
        """Fetch current NSW tenders; the search API has no date window."""
        if not self.config.browser.registered:
            self.log_guidance()
            return []

        return await guarded_fetch(
            self.name,
            self._load_rfts,
            lambda rft: map_nsw_rft(rft, self.name),
            record_key=lambda rft: rft.get("RFTUUID"),
        )

    async def _probe(self) -> bool:
        async with self.browser_factory(self.config.browser) as browser:
            await browser.warm_up(self.home_url, self.config.browser.challenge_wait_ms)
            result = await browser.fetch_in_page(
                RequestSpec(url=self.config.api_url, headers={"Accept": "application/json"})
            )
        return result.ok

    async def test_connection(self) -> bool:
        if not self.config.browser.registered:
            logger.info("Probe skipped: no browser configured", extra={"source": self.name})
            return False
        return await guarded_probe(self.name, self._probe)
