"""
Generic JSON listing adapter.

For sources that publish (or have been scraped into) a plain JSON list of
tenders. Field names are declared in the source's ``mapping`` block; the
first non-empty candidate key wins for each canonical field.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..backends.base import RequestSpec
from ..backends.http_backend import HttpBackend
from ..config.models import JsonFeedMapping, SourceConfig
from ..normalize.canonical import (
    TenderCanonical,
    collect_categories,
    derive_status,
    first_present,
    truncate_title,
    usable_description,
)
from ..normalize.parsing import clean_html_text, parse_date, parse_decimal_text, parse_status
from .base import decode_json_response, dig, fetch_window, guarded_fetch, guarded_probe

logger = logging.getLogger(__name__)


def _get_first(record: dict[str, Any], keys: list[str]) -> Any | None:
    """Get the first non-empty value from a list of keys."""
    for key in keys:
        value = dig(record, key)
        if value is not None and value != "":
            return value
    return None


def _category_labels(value: Any, label_key: str | None) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, dict):
        return [value.get(label_key)] if label_key else []
    if not isinstance(value, (list, tuple)):
        return [value]
    labels: list[Any] = []
    for entry in value:
        if isinstance(entry, dict):
            if label_key:
                labels.append(entry.get(label_key))
        else:
            labels.append(entry)
    return labels


def map_feed_record(
    record: dict[str, Any],
    mapping: JsonFeedMapping,
    source_name: str,
) -> TenderCanonical | None:
    """Map one listing record according to the configured field mapping."""
    description = usable_description(clean_html_text(_get_first(record, mapping.description)))
    if description is None:
        return None

    external_id = _get_first(record, mapping.external_id)
    title = first_present(clean_html_text(_get_first(record, mapping.title)))
    close_date = parse_date(_get_first(record, mapping.close_date)).value
    status_text = _get_first(record, mapping.status)
    awarded = parse_status(str(status_text) if status_text is not None else None).status == "Awarded"

    return TenderCanonical(
        external_id=str(external_id) if external_id is not None else None,
        source=source_name,
        title=title or truncate_title(description),
        agency=first_present(_get_first(record, mapping.agency), default=mapping.default_agency),
        description=description,
        status=derive_status(awarded, close_date),
        value=parse_decimal_text(_get_first(record, mapping.value)),
        location=first_present(_get_first(record, mapping.location), default=mapping.default_location),
        publish_date=parse_date(_get_first(record, mapping.publish_date)).value,
        close_date=close_date,
        categories=collect_categories(
            *(_category_labels(dig(record, key), mapping.category_label_key) for key in mapping.categories)
        ),
    )


class JsonFeedSource:
    """Plain HTTP JSON listing source."""

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

    def request_params(self, days_back: int) -> dict[str, str]:
        params = dict(self.config.query_params)
        if self.config.date_from_param:
            start, _ = fetch_window(days_back)
            params[self.config.date_from_param] = start.date().isoformat()
        return params

    async def _load_records(self, days_back: int) -> list[Any]:
        async with self._backend() as backend:
            result = await backend.fetch(
                RequestSpec(
                    url=self.config.api_url,
                    params=self.request_params(days_back),
                    source_name=self.name,
                )
            )
        payload = decode_json_response(result, self.name)

        records = dig(payload, self.config.records_path)
        if not isinstance(records, list):
            logger.info(
                f"No record list at '{self.config.records_path or '<root>'}'",
                extra={"source": self.name},
            )
            return []
        return records

    async def fetch(self, days_back: int | None = None) -> list[TenderCanonical]:
        days = days_back or self.config.days_back
        mapping = self.config.mapping
        return await guarded_fetch(
            self.name,
            lambda: self._load_records(days),
            lambda record: map_feed_record(record, mapping, self.name),
            record_key=lambda record: _get_first(record, mapping.external_id),
        )

    async def _probe(self) -> bool:
        async with self._backend() as backend:
            result = await backend.fetch(
                RequestSpec(url=self.config.probe_url or self.config.api_url, source_name=self.name)
            )
        return result.ok

    async def test_connection(self) -> bool:
        return await guarded_probe(self.name, self._probe)
