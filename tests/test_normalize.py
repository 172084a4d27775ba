"""
Tests for parsing helpers and canonical normalization rules.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

from tenderwatch.core.normalize import (
    SENTINEL_CATEGORY,
    TenderCanonical,
    TenderStatus,
    collect_categories,
    derive_status,
    first_present,
    truncate_title,
    usable_description,
)
from tenderwatch.core.normalize.parsing import (
    clean_html_text,
    parse_date,
    parse_decimal_text,
    parse_status,
)


class TestParseDate:
    """Test parse_date()."""

    def test_iso_with_z_suffix_is_naive_utc(self):
        parsed = parse_date("2024-03-01T10:30:00Z")
        assert parsed.value == datetime(2024, 3, 1, 10, 30)
        assert parsed.format_detected == "iso8601"

    def test_iso_with_offset_converted_to_utc(self):
        parsed = parse_date("2024-03-01T10:00:00+10:00")
        assert parsed.value == datetime(2024, 3, 1, 0, 0)

    def test_australian_day_first(self):
        parsed = parse_date("05/04/2024")
        assert parsed.value == datetime(2024, 4, 5)

    def test_slash_date_with_time(self):
        parsed = parse_date("05/04/2024 2:00 PM")
        assert parsed.value == datetime(2024, 4, 5, 14, 0)

    def test_aware_datetime_input(self):
        value = datetime(2024, 1, 1, 12, tzinfo=timezone.utc)
        assert parse_date(value).value == datetime(2024, 1, 1, 12)

    def test_date_input(self):
        assert parse_date(date(2024, 1, 2)).value == datetime(2024, 1, 2)

    def test_empty_and_none(self):
        assert parse_date(None).value is None
        assert parse_date("   ").value is None


class TestParseDecimalText:
    """Test parse_decimal_text()."""

    def test_keeps_decimal_digits(self):
        assert parse_decimal_text(Decimal("1234567.891")) == "1234567.891"

    def test_integer(self):
        assert parse_decimal_text(50000) == "50000"

    def test_currency_string(self):
        assert parse_decimal_text("AUD $1,250,000.50") == "1250000.50"

    def test_rejects_garbage_and_bools(self):
        assert parse_decimal_text("TBC") is None
        assert parse_decimal_text(True) is None
        assert parse_decimal_text(None) is None


class TestParseStatus:
    """Test parse_status()."""

    def test_awarded_wins(self):
        assert parse_status("Contract Awarded").status == "Awarded"

    def test_closed(self):
        assert parse_status("Closed").status == "Closed"

    def test_unknown_uses_default(self):
        assert parse_status("mystery", default="Open").status == "Open"
        assert parse_status(None).status is None


class TestQualityGate:
    """Test the description quality gate."""

    def test_short_description_rejected(self):
        assert usable_description("abcd") is None
        assert usable_description("   ") is None
        assert usable_description(None) is None

    def test_minimum_length_accepted(self):
        assert usable_description("abcde") == "abcde"

    def test_whitespace_normalized(self):
        assert usable_description("  Road\n  works  ") == "Road works"


class TestCanonicalRules:
    """Test shared normalization rules."""

    def test_truncate_title(self):
        text = "x" * 150
        assert truncate_title(text) == "x" * 100 + "..."
        assert truncate_title("short") == "short"

    def test_collect_categories_dedupes_in_order(self):
        assert collect_categories("IT", ["Cloud", "IT", None, " "], "Cloud") == ["IT", "Cloud"]

    def test_collect_categories_fallback(self):
        assert collect_categories(None, []) == [SENTINEL_CATEGORY]

    def test_canonical_never_has_empty_categories(self):
        tender = TenderCanonical(source="S", title="T", agency="A", description="Desc text", categories=[])
        assert tender.categories == [SENTINEL_CATEGORY]

    def test_derive_status(self):
        now = datetime(2024, 6, 1)
        assert derive_status(True, None, now) is TenderStatus.AWARDED
        assert derive_status(False, datetime(2024, 5, 1), now) is TenderStatus.CLOSED
        assert derive_status(False, datetime(2024, 7, 1), now) is TenderStatus.OPEN
        assert derive_status(False, None, now) is TenderStatus.OPEN

    def test_first_present(self):
        assert first_present(None, "  ", " NSW ", default="National") == "NSW"
        assert first_present(None, default="National") == "National"

    def test_to_dict_uses_status_value(self):
        tender = TenderCanonical(
            source="S", title="T", agency="A", description="Desc text", status=TenderStatus.CLOSED
        )
        assert tender.to_dict()["status"] == "Closed"


class TestCleanHtmlText:
    """Test clean_html_text()."""

    def test_strips_tags_and_entities(self):
        assert clean_html_text("<p>Roads &amp; bridges</p><br/>upgrade") == "Roads & bridges upgrade"
