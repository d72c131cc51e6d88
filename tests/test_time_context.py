"""Tests for the service-local time context."""

from datetime import UTC, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pytest

from peatus_mcp.services.time_context import (
    format_clock,
    format_day_month,
    load_transit_zone,
    next_date,
    now_context,
    parse_gtfs_date,
    weekday_of,
)

TALLINN = ZoneInfo("Europe/Tallinn")


class TestNextDate:
    """Tests for rolling a YYYYMMDD date forward."""

    def test_same_month(self) -> None:
        assert next_date("20250110") == "20250111"

    def test_month_boundary(self) -> None:
        assert next_date("20250131") == "20250201"

    def test_year_boundary(self) -> None:
        assert next_date("20241231") == "20250101"

    def test_leap_year_february(self) -> None:
        assert next_date("20240228") == "20240229"
        assert next_date("20240229") == "20240301"

    def test_non_leap_year_february(self) -> None:
        assert next_date("20250228") == "20250301"

    def test_century_non_leap_year(self) -> None:
        assert next_date("21000228") == "21000301"


class TestWeekdayOf:
    """Tests for weekday numbering (0=Sunday)."""

    def test_sunday_is_zero(self) -> None:
        assert weekday_of("20250105") == 0

    def test_friday(self) -> None:
        assert weekday_of("20250110") == 5

    def test_saturday_is_six(self) -> None:
        assert weekday_of("20250111") == 6

    def test_leap_day(self) -> None:
        # February 29, 2024 was a Thursday
        assert weekday_of("20240229") == 4


class TestParseGtfsDate:
    """Tests for YYYYMMDD parsing."""

    def test_invalid_length(self) -> None:
        with pytest.raises(ValueError):
            parse_gtfs_date("2025011")

    def test_non_digits(self) -> None:
        with pytest.raises(ValueError):
            parse_gtfs_date("2025-1-10")

    def test_impossible_date(self) -> None:
        with pytest.raises(ValueError):
            parse_gtfs_date("20250230")


class TestFormatting:
    """Tests for clock and date formatting helpers."""

    def test_format_clock(self) -> None:
        assert format_clock(0) == "00:00:00"
        assert format_clock(50400) == "14:00:00"
        assert format_clock(86399) == "23:59:59"

    def test_format_day_month(self) -> None:
        assert format_day_month("20250111") == "11.01"


class TestNowContext:
    """Tests for decomposing an instant in the transit timezone."""

    def test_local_instant(self) -> None:
        ctx = now_context(TALLINN, datetime(2025, 1, 10, 14, 0, 0, tzinfo=TALLINN))
        assert ctx.date == "20250110"
        assert ctx.weekday == 5
        assert ctx.time_of_day == 14 * 3600
        assert ctx.clock == "14:00:00"

    def test_utc_instant_converted(self) -> None:
        """Tallinn is UTC+2 in winter, independent of the host zone."""
        ctx = now_context(TALLINN, datetime(2025, 1, 10, 12, 0, 0, tzinfo=UTC))
        assert ctx.date == "20250110"
        assert ctx.time_of_day == 14 * 3600

    def test_utc_evening_is_next_local_day(self) -> None:
        ctx = now_context(TALLINN, datetime(2025, 1, 10, 23, 30, 0, tzinfo=UTC))
        assert ctx.date == "20250111"
        assert ctx.weekday == 6
        assert ctx.time_of_day == 1 * 3600 + 30 * 60

    def test_naive_instant_taken_as_utc(self) -> None:
        ctx = now_context(TALLINN, datetime(2025, 7, 1, 9, 0, 0))
        # summer time, UTC+3
        assert ctx.time_of_day == 12 * 3600

    def test_default_is_current_time(self) -> None:
        ctx = now_context(TALLINN)
        assert len(ctx.date) == 8
        assert 0 <= ctx.time_of_day < 86400


class TestLoadTransitZone:
    """Tests for resolving the transit timezone."""

    def test_known_zone(self) -> None:
        assert load_transit_zone("Europe/Tallinn") == TALLINN

    def test_unknown_zone_fails_loudly(self) -> None:
        with pytest.raises(ZoneInfoNotFoundError):
            load_transit_zone("Europe/Atlantis")
