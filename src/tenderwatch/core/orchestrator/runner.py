"""
Tender sync orchestrator.

Coordinates one sync run: each configured source in order, every mapped
record upserted individually, then a detached enrichment batch over
tenders that haven't been enriched yet.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Sequence

from tenderwatch.persistence.db import SessionScope, get_session
from tenderwatch.persistence.repo import TenderRepository

from ..config.models import AppConfig
from ..enrichment.worker import EnrichmentWorker
from ..logging import get_contextual_logger
from ..sources.base import TenderSource
from ..sources.registry import build_sources

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Per-source tallies for one sync run."""

    source: str
    fetched: int = 0
    added: int = 0
    updated: int = 0
    errors: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "fetched": self.fetched,
            "added": self.added,
            "updated": self.updated,
            "errors": self.errors,
        }


class TenderSync:
    """Runs sources sequentially and hands new tenders to the enrichment worker.

    One sync runs at a time per instance; a second ``run_sync`` call waits
    for the first to finish.
    """

    def __init__(
        self,
        sources: Sequence[TenderSource],
        *,
        session_scope: SessionScope | None = None,
        enrichment_worker: EnrichmentWorker | None = None,
        enrichment_batch_size: int = 10,
        enrich_after_sync: bool = True,
    ) -> None:
        self.sources = list(sources)
        self.session_scope = session_scope or get_session
        self.enrichment_worker = enrichment_worker
        self.enrichment_batch_size = enrichment_batch_size
        self.enrich_after_sync = enrich_after_sync and enrichment_worker is not None

        self._lock = asyncio.Lock()
        self._enrichment_task: asyncio.Task[int] | None = None

    @property
    def enrichment_task(self) -> asyncio.Task[int] | None:
        return self._enrichment_task

    async def run_sync(self, days_back: int | None = None) -> list[SyncResult]:
        """Sync every source; one SyncResult per source in configuration order."""
        async with self._lock:
            run_id = uuid.uuid4().hex[:8]
            logger.info(f"Starting sync of {len(self.sources)} sources", extra={"run_id": run_id})

            results = []
            for source in self.sources:
                results.append(await self._sync_source(source, run_id, days_back))

            logger.info(
                "Sync complete: "
                + ", ".join(f"{r.source} +{r.added}/~{r.updated}/!{r.errors}" for r in results),
                extra={"run_id": run_id},
            )

            if self.enrich_after_sync:
                self._schedule_enrichment()

            return results

    async def _sync_source(
        self,
        source: TenderSource,
        run_id: str,
        days_back: int | None,
    ) -> SyncResult:
        log = get_contextual_logger("orchestrator", source=source.name, run_id=run_id)
        result = SyncResult(source=source.name)

        try:
            tenders = await source.fetch(days_back)
        except Exception:
            log.exception("Source crashed during fetch")
            result.errors += 1
            return result

        result.fetched = len(tenders)

        for tender in tenders:
            try:
                with self.session_scope() as session:
                    _, is_new = TenderRepository(session).upsert(tender.to_dict())
            except Exception as e:
                log.warning(f"Could not save tender {tender.external_id}: {e}")
                result.errors += 1
                continue

            if is_new:
                result.added += 1
            else:
                result.updated += 1

        log.info(
            f"Fetched {result.fetched}: {result.added} added, "
            f"{result.updated} updated, {result.errors} errors"
        )
        return result

    # =========================================================================
    # Background enrichment
    # =========================================================================

    def _schedule_enrichment(self) -> None:
        if self._enrichment_task is not None and not self._enrichment_task.done():
            logger.info("Enrichment batch still running; not scheduling another")
            return

        assert self.enrichment_worker is not None
        logger.info(f"Scheduling enrichment of up to {self.enrichment_batch_size} tenders")
        task = asyncio.create_task(
            self.enrichment_worker.enrich_batch(self.enrichment_batch_size),
            name="tender-enrichment",
        )
        task.add_done_callback(self._log_enrichment_outcome)
        self._enrichment_task = task

    @staticmethod
    def _log_enrichment_outcome(task: asyncio.Task[int]) -> None:
        if task.cancelled():
            logger.warning("Background enrichment was cancelled")
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Background enrichment failed: {error!r}")
            return
        logger.info(f"Background enrichment completed: {task.result()} tenders enriched")

    async def wait_for_enrichment(self) -> int | None:
        """Wait for the current background batch, if any; None when none ran or it failed."""
        task = self._enrichment_task
        if task is None:
            return None
        await asyncio.wait({task})
        if task.cancelled() or task.exception() is not None:
            return None
        return task.result()

    # =========================================================================
    # Connectivity
    # =========================================================================

    async def test_connections(self) -> dict[str, bool]:
        """Probe every source concurrently; name -> reachable."""
        outcomes = await asyncio.gather(
            *(source.test_connection() for source in self.sources),
            return_exceptions=True,
        )
        return {
            source.name: outcome is True
            for source, outcome in zip(self.sources, outcomes)
        }

    async def close(self) -> None:
        if self.enrichment_worker is not None:
            await self.enrichment_worker.close()


# =============================================================================
# Convenience entry points
# =============================================================================


def build_sync(
    config: AppConfig,
    *,
    source_names: Sequence[str] | None = None,
    enrich: bool | None = None,
    session_scope: SessionScope | None = None,
) -> TenderSync:
    """Wire a TenderSync from application configuration."""
    source_configs = config.enabled_sources()
    if source_names:
        wanted = {name.lower() for name in source_names}
        source_configs = [s for s in source_configs if s.name.lower() in wanted]

    enrich_after_sync = config.sync.enrich_after_sync if enrich is None else enrich
    worker = (
        EnrichmentWorker(config=config.enrichment, session_scope=session_scope)
        if enrich_after_sync
        else None
    )

    return TenderSync(
        build_sources(source_configs),
        session_scope=session_scope,
        enrichment_worker=worker,
        enrichment_batch_size=config.sync.enrichment_batch_size,
        enrich_after_sync=enrich_after_sync,
    )


async def sync_all_tenders(config: AppConfig | None = None) -> list[SyncResult]:
    """Run one sync and wait for its enrichment batch before returning.

    For short-lived processes; long-running services keep a TenderSync and
    let enrichment run in the background.
    """
    sync = build_sync(config or AppConfig())
    try:
        results = await sync.run_sync()
        await sync.wait_for_enrichment()
        return results
    finally:
        await sync.close()


async def test_connections(config: AppConfig | None = None) -> dict[str, bool]:
    sync = build_sync(config or AppConfig(), enrich=False)
    return await sync.test_connections()
