"""
Tender source interface and shared adapter helpers.

Every source is an independent class satisfying the ``TenderSource``
protocol; the registry picks one per configured source kind. The helpers
here give each adapter the same failure semantics:

- ``fetch`` returns an empty list instead of raising
- a malformed record is logged and skipped
- records failing the quality gate are dropped silently (debug log)
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Iterable, Protocol, runtime_checkable

from ..backends.base import BackendError, FetchError, FetchResult
from ..normalize.canonical import TenderCanonical, utcnow

logger = logging.getLogger(__name__)


@runtime_checkable
class TenderSource(Protocol):
    """Capability shared by every tender source."""

    @property
    def name(self) -> str:
        """Source name stored on every tender it produces."""
        ...

    async def fetch(self, days_back: int | None = None) -> list[TenderCanonical]:
        """Fetch and map recent tenders; never raises."""
        ...

    async def test_connection(self) -> bool:
        """Lightweight reachability probe; never raises."""
        ...


# =============================================================================
# Response handling
# =============================================================================


def decode_json_response(result: FetchResult, source_name: str) -> Any:
    """Decode a JSON API response.

    Raises:
        FetchError: Non-2xx status, non-JSON content type or undecodable body
    """
    if not result.ok:
        raise FetchError(
            f"{source_name} API returned HTTP {result.status_code}",
            url=result.url,
            status_code=result.status_code,
        )

    if not result.is_json:
        raise FetchError(
            f"{source_name} API returned non-JSON content ({result.content_type or 'unknown'})",
            url=result.url,
            status_code=result.status_code,
        )

    try:
        return result.json()
    except ValueError as e:
        raise FetchError(
            f"{source_name} API returned malformed JSON: {e}",
            url=result.url,
            status_code=result.status_code,
            cause=e,
        ) from e


def dig(data: Any, path: str | None) -> Any:
    """Follow a dotted key path through nested mappings."""
    if not path:
        return data
    for key in path.split("."):
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def fetch_window(days_back: int, now: datetime | None = None) -> tuple[datetime, datetime]:
    """Publication window ending now, in naive UTC."""
    end = (now or utcnow()).replace(microsecond=0)
    return end - timedelta(days=days_back), end


# =============================================================================
# Mapping
# =============================================================================


def map_records(
    source_name: str,
    records: Iterable[Any],
    mapper: Callable[[dict[str, Any]], TenderCanonical | None],
    record_key: Callable[[dict[str, Any]], Any] | None = None,
) -> list[TenderCanonical]:
    """Map raw records, skipping rejected and malformed ones."""
    tenders: list[TenderCanonical] = []
    rejected = 0
    failed = 0

    for index, record in enumerate(records):
        if not isinstance(record, dict):
            failed += 1
            logger.warning(
                f"Skipping non-object record #{index}",
                extra={"source": source_name},
            )
            continue

        try:
            tender = mapper(record)
        except Exception as e:
            failed += 1
            key = record_key(record) if record_key else index
            logger.warning(
                f"Skipping malformed record {key}: {e}",
                extra={"source": source_name},
            )
            continue

        if tender is None:
            rejected += 1
            continue
        tenders.append(tender)

    if rejected:
        logger.debug(
            f"Rejected {rejected} records without a usable description",
            extra={"source": source_name},
        )
    logger.info(
        f"Mapped {len(tenders)} tenders ({rejected} rejected, {failed} malformed)",
        extra={"source": source_name},
    )
    return tenders


async def guarded_fetch(
    source_name: str,
    load: Callable[[], Awaitable[list[Any]]],
    mapper: Callable[[dict[str, Any]], TenderCanonical | None],
    record_key: Callable[[dict[str, Any]], Any] | None = None,
) -> list[TenderCanonical]:
    """Load raw records and map them; any load failure yields an empty list."""
    try:
        records = await load()
    except BackendError as e:
        logger.warning(
            f"Fetch failed, no tenders this run: {e}",
            extra={"source": source_name, "url": e.url},
        )
        return []
    except Exception:
        logger.exception("Unexpected fetch failure", extra={"source": source_name})
        return []

    logger.info(f"Fetched {len(records)} raw records", extra={"source": source_name})
    return map_records(source_name, records, mapper, record_key)


async def guarded_probe(source_name: str, probe: Callable[[], Awaitable[bool]]) -> bool:
    """Run a connectivity probe, treating any exception as unreachable."""
    try:
        reachable = await probe()
    except Exception as e:
        logger.info(f"Probe failed: {e}", extra={"source": source_name})
        return False
    logger.debug(f"Probe reachable={reachable}", extra={"source": source_name})
    return reachable
