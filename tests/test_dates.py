"""Tests for site_news_scraper.dates."""

from datetime import datetime, timedelta, timezone

import pytest

from site_news_scraper.dates import DateNormalizer, clean_date_string, parse_date

from conftest import FIXED_NOW


@pytest.fixture
def dates() -> DateNormalizer:
    return DateNormalizer(clock=lambda: FIXED_NOW)


class TestRelative:
    def test_hours_ago(self, dates):
        assert dates.parse("3 hours ago") == FIXED_NOW - timedelta(hours=3)

    def test_days_ago_without_space(self, dates):
        assert dates.parse("2days ago") == FIXED_NOW - timedelta(days=2)

    def test_months_ago_uses_calendar_months(self, dates):
        assert dates.parse("1 month ago") == datetime(2024, 5, 15, 12, 0, tzinfo=timezone.utc)

    def test_yesterday_and_chinese_keywords(self, dates):
        assert dates.parse("yesterday") == FIXED_NOW - timedelta(days=1)
        assert dates.parse("昨天") == FIXED_NOW - timedelta(days=1)
        assert dates.parse("刚刚") == FIXED_NOW


class TestMachineFormats:
    def test_iso_with_z(self, dates):
        assert dates.parse("2024-01-15T10:30:00Z") == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

    def test_iso_with_fraction_and_offset(self, dates):
        result = dates.parse("2024-01-15T10:30:00.250+08:00")
        assert result == datetime(2024, 1, 15, 2, 30, 0, 250000, tzinfo=timezone.utc)
        assert result.tzinfo == timezone.utc

    def test_rfc2822_gmt(self, dates):
        assert dates.parse("Mon, 15 Jan 2024 10:30:00 GMT") == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

    def test_rfc2822_numeric_offset(self, dates):
        assert dates.parse("Mon, 15 Jan 2024 10:30:00 +0200") == datetime(2024, 1, 15, 8, 30, tzinfo=timezone.utc)


class TestExplicitPatterns:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("2024-01-15", datetime(2024, 1, 15, tzinfo=timezone.utc)),
            ("2024/01/15 08:05", datetime(2024, 1, 15, 8, 5, tzinfo=timezone.utc)),
            ("Jan 15, 2024", datetime(2024, 1, 15, tzinfo=timezone.utc)),
            ("15 January 2024", datetime(2024, 1, 15, tzinfo=timezone.utc)),
            ("Published: 2024-01-15 10:30", datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)),
        ],
    )
    def test_standard_formats_are_utc(self, dates, text, expected):
        assert dates.parse(text) == expected

    def test_named_zone(self, dates):
        assert dates.parse("2024-01-15 10:30:00 EST") == datetime(2024, 1, 15, 15, 30, tzinfo=timezone.utc)

    def test_gmt_offset(self, dates):
        assert dates.parse("2024-01-15 10:30:00 GMT+8") == datetime(2024, 1, 15, 2, 30, tzinfo=timezone.utc)

    def test_redundant_zone_name_after_offset(self, dates):
        result = dates.parse("2024-01-15 10:30:00 +0000 UTC")
        assert result == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("2024-01-15 10:30 PST", datetime(2024, 1, 15, 18, 30, tzinfo=timezone.utc)),
            ("Jan 15, 2024 10:30 GMT+8", datetime(2024, 1, 15, 2, 30, tzinfo=timezone.utc)),
            ("2024/01/15 10:30:00 +0800", datetime(2024, 1, 15, 2, 30, tzinfo=timezone.utc)),
            ("2024/01/15 10:30 EST", datetime(2024, 1, 15, 15, 30, tzinfo=timezone.utc)),
        ],
    )
    def test_zone_after_minute_precision_keeps_time_of_day(self, dates, text, expected):
        assert dates.parse(text) == expected


class TestChinese:
    def test_full_date(self, dates):
        assert dates.parse("2024年1月15日") == datetime(2024, 1, 15, tzinfo=timezone.utc)

    def test_full_date_with_time(self, dates):
        assert dates.parse("2024年01月15日 09:45") == datetime(2024, 1, 15, 9, 45, tzinfo=timezone.utc)

    def test_yearless_uses_current_year(self, dates):
        assert dates.parse("3月7日") == datetime(2024, 3, 7, tzinfo=timezone.utc)


class TestFuzzyAndFailures:
    def test_fuzzy_scan(self, dates):
        assert dates.parse("edition 2024 vol 3 no 7") == datetime(2024, 3, 7, tzinfo=timezone.utc)

    @pytest.mark.parametrize("text", [None, "", "   ", "not a date", "lorem ipsum"])
    def test_unparseable_returns_none(self, dates, text):
        assert dates.parse(text) is None

    def test_impossible_date_does_not_raise(self, dates):
        assert dates.parse("2024-02-30") is None

    def test_callable(self, dates):
        assert dates("2024-01-15") == datetime(2024, 1, 15, tzinfo=timezone.utc)


class TestCleanDateString:
    def test_strips_label_and_entities(self):
        assert clean_date_string("Updated:&nbsp;Jan 5,   2024") == "Jan 5, 2024"

    def test_drops_zone_name_only_after_numeric_offset(self):
        assert clean_date_string("2024-01-15 10:30:00 +0800 CST") == "2024-01-15 10:30:00 +0800"
        assert clean_date_string("2024-01-15 10:30:00 CST") == "2024-01-15 10:30:00 CST"


class TestParseDate:
    def test_fixed_now(self):
        assert parse_date("1 day ago", now=FIXED_NOW) == FIXED_NOW - timedelta(days=1)

    def test_default_normalizer(self):
        assert parse_date("2024-01-15T00:00:00Z") == datetime(2024, 1, 15, tzinfo=timezone.utc)
