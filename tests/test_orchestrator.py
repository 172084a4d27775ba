"""
Tests for the TenderSync orchestrator.
"""

import asyncio
from contextlib import contextmanager
from datetime import datetime

import httpx
import pytest

from tenderwatch.core.config.models import AppConfig, HttpConfig, SourceConfig, SourceKind
from tenderwatch.core.orchestrator import SyncResult, TenderSync, build_sync
from tenderwatch.core.sources.ocds import OcdsReleaseSource
from tenderwatch.persistence.repo import TenderRepository


class StaticSource:
    """Source returning a fixed list of tenders."""

    def __init__(self, name, tenders=(), error=None, reachable=True):
        self.name = name
        self.tenders = list(tenders)
        self.error = error
        self.reachable = reachable
        self.calls = 0

    async def fetch(self, days_back=None):
        self.calls += 1
        if self.error:
            raise self.error
        return list(self.tenders)

    async def test_connection(self):
        if isinstance(self.reachable, Exception):
            raise self.reachable
        return self.reachable


class RecordingWorker:
    """Enrichment worker double that can be held open."""

    def __init__(self, result=0, error=None):
        self.result = result
        self.error = error
        self.release = asyncio.Event()
        self.calls = []
        self.closed = False

    async def enrich_batch(self, max_count):
        self.calls.append(max_count)
        await self.release.wait()
        if self.error:
            raise self.error
        return self.result

    async def close(self):
        self.closed = True


def flaky_scope(scope, fail_on):
    calls = {"n": 0}

    @contextmanager
    def wrapped():
        calls["n"] += 1
        if calls["n"] == fail_on:
            raise RuntimeError("database is locked")
        with scope() as session:
            yield session

    return wrapped


def ocds_source(payloads):
    """Real OCDS adapter serving one fixture payload per fetch."""

    def handler(request):
        return httpx.Response(200, json=payloads.pop(0))

    config = SourceConfig(
        name="AusTender",
        kind=SourceKind.OCDS,
        api_url="https://api.example.gov.au/ocds",
        http=HttpConfig(max_retries=1),
    )
    return OcdsReleaseSource(config, transport=httpx.MockTransport(handler))


def release(description):
    return {
        "ocid": "OCDS-1",
        "date": "2024-02-01T00:00:00Z",
        "tag": ["tender"],
        "parties": [],
        "contracts": [{"description": description, "period": {"endDate": "2030-01-01T00:00:00Z"}}],
    }


class TestSyncResult:
    """Test SyncResult."""

    def test_defaults_and_to_dict(self):
        result = SyncResult(source="AusTender", fetched=3, added=2, updated=1)
        assert result.to_dict() == {
            "source": "AusTender",
            "fetched": 3,
            "added": 2,
            "updated": 1,
            "errors": 0,
        }


class TestRunSync:
    """Test TenderSync.run_sync()."""

    @pytest.mark.asyncio
    async def test_two_runs_insert_then_update(self, session_scope):
        source = ocds_source(
            [
                {"releases": [release("Build a bridge")]},
                {"releases": [release("Build a bridge (amended)")]},
            ]
        )
        sync = TenderSync([source], session_scope=session_scope)

        first = await sync.run_sync()
        with session_scope() as session:
            assert TenderRepository(session).count() == 1

        second = await sync.run_sync()

        assert (first[0].added, first[0].updated) == (1, 0)
        assert (second[0].added, second[0].updated) == (0, 1)
        with session_scope() as session:
            repo = TenderRepository(session)
            assert repo.count() == 1
            assert repo.get_by_external_id("AusTender", "OCDS-1").description == "Build a bridge (amended)"

    @pytest.mark.asyncio
    async def test_resync_is_idempotent(self, session_scope, make_tender):
        tenders = [make_tender("T-1"), make_tender("T-2")]
        sync = TenderSync([StaticSource("AusTender", tenders)], session_scope=session_scope)

        await sync.run_sync()
        enriched_at = datetime(2024, 3, 1, 9, 30)
        with session_scope() as session:
            repo = TenderRepository(session)
            for tender in repo.list_tenders():
                repo.update(
                    tender.id,
                    {
                        "ai_summary": f"Summary of {tender.external_id}",
                        "ai_categories": ["Office Supplies", "Other"],
                        "ai_enriched": True,
                        "ai_enriched_at": enriched_at,
                    },
                )

        def snapshot():
            with session_scope() as session:
                return {
                    t.external_id: (
                        t.title,
                        t.status,
                        t.close_date,
                        t.ai_summary,
                        t.ai_categories,
                        t.ai_enriched,
                        t.ai_enriched_at,
                    )
                    for t in TenderRepository(session).list_tenders()
                }

        before = snapshot()
        results = await sync.run_sync()
        after = snapshot()

        assert results[0].added == 0
        assert results[0].updated == 2
        assert before == after
        assert after["T-1"][3:] == ("Summary of T-1", ["Office Supplies", "Other"], True, enriched_at)

    @pytest.mark.asyncio
    async def test_same_external_id_in_two_sources_stays_separate(self, session_scope, make_tender):
        sync = TenderSync(
            [
                StaticSource("Feed A", [make_tender("1", source="Feed A", title="Feed A tender")]),
                StaticSource("Feed B", [make_tender("1", source="Feed B", title="Feed B tender")]),
            ],
            session_scope=session_scope,
        )

        results = await sync.run_sync()

        assert [(r.added, r.updated) for r in results] == [(1, 0), (1, 0)]
        with session_scope() as session:
            repo = TenderRepository(session)
            assert repo.count() == 2
            assert repo.get_by_external_id("Feed A", "1").title == "Feed A tender"
            assert repo.get_by_external_id("Feed B", "1").title == "Feed B tender"

    @pytest.mark.asyncio
    async def test_one_result_per_source_in_order(self, session_scope, make_tender):
        sources = [
            StaticSource("AusTender", [make_tender("A-1")]),
            StaticSource("NSW eTendering"),
            StaticSource("Scraped", [make_tender("S-1", source="Scraped")]),
        ]
        results = await TenderSync(sources, session_scope=session_scope).run_sync()

        assert [r.source for r in results] == ["AusTender", "NSW eTendering", "Scraped"]
        assert [r.fetched for r in results] == [1, 0, 1]

    @pytest.mark.asyncio
    async def test_upsert_error_counted_and_sync_continues(self, session_scope, make_tender):
        tenders = [make_tender("T-1"), make_tender("T-2"), make_tender("T-3")]
        sync = TenderSync(
            [StaticSource("AusTender", tenders)],
            session_scope=flaky_scope(session_scope, fail_on=2),
        )

        [result] = await sync.run_sync()

        assert result.to_dict() == {
            "source": "AusTender",
            "fetched": 3,
            "added": 2,
            "updated": 0,
            "errors": 1,
        }

    @pytest.mark.asyncio
    async def test_adapter_crash_counted_and_next_source_runs(self, session_scope, make_tender):
        crashing = StaticSource("Broken", error=RuntimeError("boom"))
        healthy = StaticSource("AusTender", [make_tender("T-1")])

        results = await TenderSync([crashing, healthy], session_scope=session_scope).run_sync()

        assert results[0].errors == 1
        assert results[0].fetched == 0
        assert results[1].added == 1

    @pytest.mark.asyncio
    async def test_concurrent_syncs_are_serialized(self, session_scope, make_tender):
        active = {"now": 0, "max": 0}

        class SlowSource(StaticSource):
            async def fetch(self, days_back=None):
                active["now"] += 1
                active["max"] = max(active["max"], active["now"])
                await asyncio.sleep(0.01)
                active["now"] -= 1
                return [make_tender("T-1")]

        sync = TenderSync([SlowSource("AusTender")], session_scope=session_scope)
        await asyncio.gather(sync.run_sync(), sync.run_sync())

        assert active["max"] == 1


class TestBackgroundEnrichment:
    """Test the detached enrichment task."""

    @pytest.mark.asyncio
    async def test_run_sync_does_not_wait_for_enrichment(self, session_scope, make_tender):
        worker = RecordingWorker(result=1)
        sync = TenderSync(
            [StaticSource("AusTender", [make_tender("T-1")])],
            session_scope=session_scope,
            enrichment_worker=worker,
            enrichment_batch_size=5,
        )

        results = await sync.run_sync()

        assert results[0].added == 1
        assert sync.enrichment_task is not None
        assert not sync.enrichment_task.done()

        worker.release.set()
        assert await sync.wait_for_enrichment() == 1
        assert worker.calls == [5]

    @pytest.mark.asyncio
    async def test_enrichment_failure_does_not_touch_sync_result(self, session_scope, make_tender):
        worker = RecordingWorker(error=RuntimeError("model unavailable"))
        worker.release.set()
        sync = TenderSync(
            [StaticSource("AusTender", [make_tender("T-1")])],
            session_scope=session_scope,
            enrichment_worker=worker,
        )

        results = await sync.run_sync()

        assert await sync.wait_for_enrichment() is None
        assert results[0].errors == 0

    @pytest.mark.asyncio
    async def test_no_second_batch_while_first_running(self, session_scope):
        worker = RecordingWorker()
        sync = TenderSync([StaticSource("AusTender")], session_scope=session_scope, enrichment_worker=worker)

        await sync.run_sync()
        first_task = sync.enrichment_task
        await sync.run_sync()
        await asyncio.sleep(0)

        assert sync.enrichment_task is first_task
        assert len(worker.calls) == 1

        worker.release.set()
        await sync.wait_for_enrichment()

    @pytest.mark.asyncio
    async def test_enrichment_disabled(self, session_scope):
        worker = RecordingWorker()
        sync = TenderSync(
            [StaticSource("AusTender")],
            session_scope=session_scope,
            enrichment_worker=worker,
            enrich_after_sync=False,
        )

        await sync.run_sync()

        assert sync.enrichment_task is None
        assert await sync.wait_for_enrichment() is None


class TestConnections:
    """Test TenderSync.test_connections()."""

    @pytest.mark.asyncio
    async def test_reports_each_source(self, session_scope):
        sources = [
            StaticSource("AusTender", reachable=True),
            StaticSource("NSW eTendering", reachable=False),
            StaticSource("Broken", reachable=RuntimeError("probe crashed")),
        ]

        outcomes = await TenderSync(sources, session_scope=session_scope).test_connections()

        assert outcomes == {"AusTender": True, "NSW eTendering": False, "Broken": False}


class TestBuildSync:
    """Test build_sync()."""

    def test_uses_enabled_sources_in_order(self):
        config = AppConfig(
            sources=[
                SourceConfig(name="AusTender", kind=SourceKind.OCDS, api_url="https://a.example"),
                SourceConfig(name="Off", kind=SourceKind.JSON_FEED, api_url="https://b.example", enabled=False),
                SourceConfig(name="Feed", kind=SourceKind.JSON_FEED, api_url="https://c.example"),
            ]
        )

        sync = build_sync(config, enrich=False)

        assert [s.name for s in sync.sources] == ["AusTender", "Feed"]
        assert sync.enrichment_worker is None

    def test_source_filter_is_case_insensitive(self):
        sync = build_sync(AppConfig(), source_names=["austender"], enrich=False)
        assert [s.name for s in sync.sources] == ["AusTender"]

    def test_enrichment_worker_wired_from_config(self):
        config = AppConfig()
        config.sync.enrichment_batch_size = 25

        sync = build_sync(config)

        assert sync.enrichment_worker is not None
        assert sync.enrichment_batch_size == 25
        assert sync.enrich_after_sync is True
