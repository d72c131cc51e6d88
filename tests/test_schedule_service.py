"""Tests for GTFS time handling and the stop/route join."""

from pathlib import Path

import aiosqlite
import pytest

from peatus_mcp.errors import NotFoundKind, RouteNotFoundError, StopNotFoundError
from peatus_mcp.services.schedule_service import (
    ScheduledTime,
    find_stop_times,
    format_hhmm,
    get_route_ids_by_short_name,
    get_stop,
    gtfs_time_to_seconds,
    join_stop_times,
    parse_gtfs_time,
)


class TestGTFSTimeParsing:
    """Tests for GTFS time parsing functions."""

    def test_parse_normal_time(self) -> None:
        assert parse_gtfs_time("08:30:00") == (8, 30, 0)

    def test_parse_time_exceeding_24(self) -> None:
        assert parse_gtfs_time("25:10:00") == (25, 10, 0)

    def test_parse_single_digit_hour(self) -> None:
        assert parse_gtfs_time(" 7:05:00 ") == (7, 5, 0)

    @pytest.mark.parametrize("value", ["invalid", "08:30", "", "08:75:00", "aa:bb:cc", "-1:00:00"])
    def test_parse_invalid(self, value: str) -> None:
        with pytest.raises(ValueError):
            parse_gtfs_time(value)

    def test_to_seconds(self) -> None:
        assert gtfs_time_to_seconds("00:00:00") == 0
        assert gtfs_time_to_seconds("14:35:00") == 52500
        assert gtfs_time_to_seconds("25:10:00") == 90600

    def test_format_hhmm(self) -> None:
        assert format_hhmm(0) == "00:00"
        assert format_hhmm(4200) == "01:10"
        assert format_hhmm(86399) == "23:59"


class TestScheduledTime:
    """Tests for the single past-midnight conversion."""

    def test_same_day(self) -> None:
        display = ScheduledTime("20250110", 52500).to_display("20250110")
        assert display.display_date == "20250110"
        assert display.display_seconds == 52500
        assert display.sort_key == 52500

    def test_past_midnight_shows_next_day(self) -> None:
        scheduled = ScheduledTime("20250110", gtfs_time_to_seconds("25:10:00"))
        display = scheduled.to_display("20250110")
        assert scheduled.is_past_midnight is True
        assert display.display_date == "20250111"
        assert format_hhmm(display.display_seconds) == "01:10"
        assert display.sort_key == 90600

    def test_exactly_midnight_is_past_midnight(self) -> None:
        scheduled = ScheduledTime("20250110", 86400)
        assert scheduled.is_past_midnight is True
        assert scheduled.to_display("20250110").display_seconds == 0

    def test_tomorrow_service_offset(self) -> None:
        display = ScheduledTime("20250111", gtfs_time_to_seconds("07:00:00")).to_display(
            "20250110"
        )
        assert display.display_date == "20250111"
        assert display.sort_key == 111600

    def test_month_rollover(self) -> None:
        display = ScheduledTime("20250131", 87000).to_display("20250131")
        assert display.display_date == "20250201"


class TestStopTimeJoin:
    """Tests for the stop/route join against the database."""

    async def test_get_stop(self, db_path: Path) -> None:
        async with aiosqlite.connect(db_path) as db:
            db.row_factory = aiosqlite.Row
            stop = await get_stop(db, "1234")
            missing = await get_stop(db, "NOPE")
        assert stop is not None
        assert stop.stop_name == "Balti jaam"
        assert stop.region == "Tallinn"
        assert missing is None

    async def test_short_name_resolves_to_all_route_ids(self, db_path: Path) -> None:
        async with aiosqlite.connect(db_path) as db:
            db.row_factory = aiosqlite.Row
            assert await get_route_ids_by_short_name(db, "2") == ["R2A", "R2B"]
            assert await get_route_ids_by_short_name(db, "404") == []

    async def test_find_stop_times_includes_every_agency(self, db_path: Path) -> None:
        async with aiosqlite.connect(db_path) as db:
            db.row_factory = aiosqlite.Row
            rows = await find_stop_times(db, "1234", ["R2A", "R2B"])
        assert {row.trip_id for row in rows} == {"T2A", "T2B"}
        assert {row.route_long_name for row in rows} == {
            "Mustamäe - Kadriorg",
            "Haapsalu - Uuemõisa",
        }

    async def test_find_stop_times_is_date_independent(self, db_path: Path) -> None:
        async with aiosqlite.connect(db_path) as db:
            db.row_factory = aiosqlite.Row
            rows = await find_stop_times(db, "1234", ["R10A"])
        times = sorted(row.arrival_time for row in rows)
        assert times == ["13:30:00", "14:35:00", "24:10:00", "bad"]

    async def test_join_stop_not_found(self, db_path: Path) -> None:
        async with aiosqlite.connect(db_path) as db:
            db.row_factory = aiosqlite.Row
            with pytest.raises(StopNotFoundError) as exc_info:
                await join_stop_times(db, "NOPE", "10A")
        assert exc_info.value.kind == NotFoundKind.STOP

    async def test_join_route_not_found(self, db_path: Path) -> None:
        async with aiosqlite.connect(db_path) as db:
            db.row_factory = aiosqlite.Row
            with pytest.raises(RouteNotFoundError) as exc_info:
                await join_stop_times(db, "1234", "404")
        assert exc_info.value.kind == NotFoundKind.ROUTE

    async def test_join_existing_route_without_visits(self, db_path: Path) -> None:
        async with aiosqlite.connect(db_path) as db:
            db.row_factory = aiosqlite.Row
            join = await join_stop_times(db, "1234", "99")
        assert join.rows == []
        assert [r.route_id for r in join.routes] == ["R99"]
