"""
Tests for the NSW eTendering browser-rendered adapter.
"""

import json
from datetime import datetime

import pytest

from tenderwatch.core.backends.base import FetchResult
from tenderwatch.core.backends.playwright_backend import NavigationTimeout
from tenderwatch.core.config.models import BrowserConfig, SourceConfig, SourceKind
from tenderwatch.core.normalize import TenderStatus
from tenderwatch.core.sources.nsw_etendering import (
    NswETenderingSource,
    extract_rfts,
    map_nsw_rft,
    nsw_location,
)

API_URL = "https://tenders.example.nsw.gov.au/?event=public.api.tender.search"
HOME_URL = "https://tenders.example.nsw.gov.au"


def make_rft(uuid="RFT-1", **overrides):
    rft = {
        "RFTUUID": uuid,
        "TenderTitle": "Hospital cleaning services",
        "AgencyName": "Health Infrastructure",
        "TenderDescription": "Cleaning services for regional hospitals",
        "RFTStatus": "Current",
        "Location": "Dubbo",
        "PublishDateTime": "2024-02-01T09:00:00Z",
        "CloseDateTime": "2030-03-01T14:00:00Z",
        "Category": "Cleaning",
        "UNSPSC": [{"UNSPSCTitle": "Janitorial services"}, {"UNSPSCTitle": "Cleaning"}],
        "TenderType": "RFT",
    }
    rft.update(overrides)
    return rft


class FakeBrowser:
    """Stands in for PlaywrightBackend within one fetch."""

    def __init__(self, result=None, warm_up_error=None):
        self.result = result
        self.warm_up_error = warm_up_error
        self.entered = False
        self.closed = False
        self.warmed = []
        self.requests = []

    async def __aenter__(self):
        self.entered = True
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.closed = True

    async def warm_up(self, url, wait_ms):
        self.warmed.append((url, wait_ms))
        if self.warm_up_error:
            raise self.warm_up_error

    async def fetch_in_page(self, request):
        self.requests.append(request)
        return self.result


def json_result(payload, status=200):
    return FetchResult(
        url=API_URL,
        final_url=API_URL,
        status_code=status,
        text=json.dumps(payload),
        headers={"content-type": "application/json;charset=utf-8"},
        elapsed_ms=12.0,
    )


def make_source(browser, registered=True):
    config = SourceConfig(
        name="NSW eTendering",
        kind=SourceKind.BROWSER_JSON,
        api_url=API_URL,
        base_url=HOME_URL,
        browser=BrowserConfig(ws_endpoint="ws://browser:3000" if registered else None, challenge_wait_ms=10),
    )
    factories = []

    def factory(browser_config):
        factories.append(browser_config)
        return browser

    source = NswETenderingSource(config, browser_factory=factory)
    return source, factories


class TestMapNswRft:
    """Test map_nsw_rft()."""

    def test_maps_record(self):
        tender = map_nsw_rft(make_rft())

        assert tender.external_id == "RFT-1"
        assert tender.source == "NSW eTendering"
        assert tender.title == "Hospital cleaning services"
        assert tender.agency == "Health Infrastructure"
        assert tender.location == "Dubbo, NSW"
        assert tender.publish_date == datetime(2024, 2, 1, 9, 0)
        assert tender.close_date == datetime(2030, 3, 1, 14, 0)
        assert tender.status is TenderStatus.OPEN
        assert tender.categories == ["Cleaning", "Janitorial services", "RFT"]

    def test_defaults(self):
        tender = map_nsw_rft(make_rft(TenderTitle=None, AgencyName="", Location=None, Category=None, UNSPSC=None, TenderType=None))

        assert tender.title == "Untitled Tender"
        assert tender.agency == "NSW Government"
        assert tender.location == "NSW"
        assert tender.categories == ["Government Procurement"]

    def test_awarded_status(self):
        assert map_nsw_rft(make_rft(RFTStatus="Awarded")).status is TenderStatus.AWARDED

    def test_past_close_date_is_closed(self):
        assert map_nsw_rft(make_rft(CloseDateTime="2020-01-01T00:00:00Z")).status is TenderStatus.CLOSED

    def test_short_description_rejected(self):
        assert map_nsw_rft(make_rft(TenderDescription="tbd")) is None

    def test_missing_uuid_is_malformed(self):
        with pytest.raises(ValueError):
            map_nsw_rft(make_rft(RFTUUID=None))

    def test_location_suffix(self):
        assert nsw_location("Sydney NSW") == "Sydney NSW"
        assert nsw_location("Newcastle") == "Newcastle, NSW"


class TestExtractRfts:
    """Test extract_rfts()."""

    def test_reads_either_key(self):
        assert extract_rfts({"rfts": [1]}) == [1]
        assert extract_rfts({"rft": [2]}) == [2]
        assert extract_rfts({"other": []}) == []
        assert extract_rfts("nope") == []


class TestNswETenderingFetch:
    """Test NswETenderingSource.fetch()."""

    @pytest.mark.asyncio
    async def test_unregistered_browser_returns_empty_without_launching(self):
        browser = FakeBrowser()
        source, factories = make_source(browser, registered=False)

        assert await source.fetch() == []
        assert factories == []
        assert not browser.entered

    @pytest.mark.asyncio
    async def test_warm_up_then_in_page_request(self):
        browser = FakeBrowser(result=json_result({"rfts": [make_rft("RFT-1"), make_rft("RFT-2", TenderDescription="")]}))
        source, _ = make_source(browser)

        tenders = await source.fetch()

        assert [t.external_id for t in tenders] == ["RFT-1"]
        assert browser.warmed == [(HOME_URL, 10)]
        assert browser.requests[0].url == API_URL
        assert browser.closed

    @pytest.mark.asyncio
    async def test_non_2xx_returns_empty_and_closes_browser(self):
        browser = FakeBrowser(result=json_result({"error": "forbidden"}, status=403))
        source, _ = make_source(browser)

        assert await source.fetch() == []
        assert browser.closed

    @pytest.mark.asyncio
    async def test_non_json_returns_empty(self):
        result = FetchResult(
            url=API_URL,
            final_url=API_URL,
            status_code=200,
            text="<html>challenge</html>",
            headers={"content-type": "text/html"},
            elapsed_ms=5.0,
        )
        browser = FakeBrowser(result=result)
        source, _ = make_source(browser)

        assert await source.fetch() == []

    @pytest.mark.asyncio
    async def test_browser_error_returns_empty_and_closes_browser(self):
        browser = FakeBrowser(warm_up_error=NavigationTimeout("timed out", url=HOME_URL))
        source, _ = make_source(browser)

        assert await source.fetch() == []
        assert browser.closed


class TestNswETenderingProbe:
    """Test NswETenderingSource.test_connection()."""

    @pytest.mark.asyncio
    async def test_unregistered_is_unreachable(self):
        source, factories = make_source(FakeBrowser(), registered=False)
        assert await source.test_connection() is False
        assert factories == []

    @pytest.mark.asyncio
    async def test_reachable(self):
        source, _ = make_source(FakeBrowser(result=json_result({"rfts": []})))
        assert await source.test_connection() is True

    @pytest.mark.asyncio
    async def test_error_is_unreachable(self):
        source, _ = make_source(FakeBrowser(warm_up_error=RuntimeError("crashed")))
        assert await source.test_connection() is False
