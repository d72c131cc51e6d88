"""Scheduled stop times: GTFS time handling and the stop/route join."""

from dataclasses import dataclass
from datetime import timedelta

import aiosqlite

from peatus_mcp.data.database import fetch_all, fetch_one
from peatus_mcp.errors import RouteNotFoundError, StopNotFoundError
from peatus_mcp.models.gtfs import Route, Stop
from peatus_mcp.services.time_context import (
    SECONDS_PER_DAY,
    date_to_gtfs_format,
    parse_gtfs_date,
)


def parse_gtfs_time(time_str: str) -> tuple[int, int, int]:
    """Parse a GTFS time string into hours, minutes, seconds.

    GTFS times can exceed 24:00:00 for trips that extend past midnight.
    For example, "25:30:00" means 1:30 AM the next day.

    Args:
        time_str: Time string in HH:MM:SS format (hours can exceed 24).

    Returns:
        Tuple of (hours, minutes, seconds).

    Raises:
        ValueError: If the time string is invalid.
    """
    parts = time_str.strip().split(":")
    if len(parts) != 3:
        raise ValueError(f"Invalid GTFS time format: {time_str}")

    try:
        hours = int(parts[0])
        minutes = int(parts[1])
        seconds = int(parts[2])
    except ValueError as e:
        raise ValueError(f"Invalid GTFS time format: {time_str}") from e

    if hours < 0 or not 0 <= minutes < 60 or not 0 <= seconds < 60:
        raise ValueError(f"Invalid GTFS time format: {time_str}")

    return hours, minutes, seconds


def gtfs_time_to_seconds(time_str: str) -> int:
    """Convert a GTFS time string to seconds since midnight.

    Returns:
        Total seconds since midnight (can exceed 86400 for next-day times).
    """
    hours, minutes, seconds = parse_gtfs_time(time_str)
    return hours * 3600 + minutes * 60 + seconds


def format_hhmm(seconds: int) -> str:
    """Format seconds since midnight (< 86400) as HH:MM."""
    hours, remaining = divmod(seconds, 3600)
    return f"{hours:02d}:{remaining // 60:02d}"


@dataclass(frozen=True)
class DisplayTime:
    """Where a scheduled time lands on the rider's clock and in the ranking."""

    display_date: str  # YYYYMMDD
    display_seconds: int  # 0..86399
    sort_key: int  # seconds from the start of `today`


@dataclass(frozen=True)
class ScheduledTime:
    """A GTFS time attached to the service date whose calendar activated it."""

    service_date: str  # YYYYMMDD
    raw_seconds: int  # literal GTFS value, may exceed 86399

    @property
    def is_past_midnight(self) -> bool:
        return self.raw_seconds >= SECONDS_PER_DAY

    def to_display(self, today: str) -> DisplayTime:
        """Convert to display date/time and a sort key relative to `today`.

        A service-date offset of one day adds 86400 to the key, so tomorrow's
        service always ranks after today's, including today's past-midnight times.
        """
        day_offset = (parse_gtfs_date(self.service_date) - parse_gtfs_date(today)).days
        extra_days, display_seconds = divmod(self.raw_seconds, SECONDS_PER_DAY)
        display_date = parse_gtfs_date(self.service_date) + timedelta(days=extra_days)
        return DisplayTime(
            display_date=date_to_gtfs_format(display_date),
            display_seconds=display_seconds,
            sort_key=self.raw_seconds + day_offset * SECONDS_PER_DAY,
        )


@dataclass(frozen=True)
class StopTimeRow:
    """One scheduled visit of a trip to the queried stop."""

    trip_id: str
    service_id: str
    arrival_time: str | None
    trip_headsign: str | None
    direction_id: int | None
    route_id: str
    route_short_name: str
    route_long_name: str | None


@dataclass
class StopTimeJoin:
    """Result of joining a stop with every route sharing a short name."""

    stop: Stop
    routes: list[Route]
    rows: list[StopTimeRow]


def _row_to_stop(row: aiosqlite.Row) -> Stop:
    return Stop(
        stop_id=row["stop_id"],
        stop_code=row["stop_code"],
        stop_name=row["stop_name"],
        stop_desc=row["stop_desc"],
        stop_lat=float(row["stop_lat"]) if row["stop_lat"] is not None else None,
        stop_lon=float(row["stop_lon"]) if row["stop_lon"] is not None else None,
        zone_id=row["zone_id"],
        region=row["region"],
    )


async def get_stop(
    db: aiosqlite.Connection,
    stop_id: str,
    timeout: float | None = None,
) -> Stop | None:
    """Get a stop by ID, or None."""
    sql = """
        SELECT stop_id, stop_code, stop_name, stop_desc, stop_lat, stop_lon, zone_id, region
        FROM stops
        WHERE stop_id = ?
    """
    row = await fetch_one(db, sql, (stop_id,), timeout=timeout)
    return _row_to_stop(row) if row is not None else None


async def get_routes_by_short_name(
    db: aiosqlite.Connection,
    route_short_name: str,
    timeout: float | None = None,
) -> list[Route]:
    """Get every route sharing a short name, ordered by route_id."""
    sql = """
        SELECT route_id, agency_id, route_short_name, route_long_name, route_type
        FROM routes
        WHERE route_short_name = ?
        ORDER BY route_id
    """
    rows = await fetch_all(db, sql, (route_short_name,), timeout=timeout)
    return [
        Route(
            route_id=row["route_id"],
            agency_id=row["agency_id"],
            route_short_name=row["route_short_name"],
            route_long_name=row["route_long_name"],
            route_type=int(row["route_type"]) if row["route_type"] is not None else None,
        )
        for row in rows
    ]


async def get_route_ids_by_short_name(
    db: aiosqlite.Connection,
    route_short_name: str,
    timeout: float | None = None,
) -> list[str]:
    """Get every route_id sharing a short name (short names are not unique)."""
    routes = await get_routes_by_short_name(db, route_short_name, timeout=timeout)
    return [route.route_id for route in routes]


async def find_stop_times(
    db: aiosqlite.Connection,
    stop_id: str,
    route_ids: list[str],
    timeout: float | None = None,
) -> list[StopTimeRow]:
    """Get all scheduled visits to a stop by trips of any of the given routes.

    No date or time filtering happens here.
    """
    if not route_ids:
        return []

    placeholders = ",".join(["?"] * len(route_ids))
    sql = f"""
        SELECT st.trip_id,
               t.service_id,
               COALESCE(st.arrival_time, st.departure_time) AS arrival_time,
               t.trip_headsign,
               t.direction_id,
               r.route_id,
               r.route_short_name,
               r.route_long_name
        FROM stop_times st
        JOIN trips t ON st.trip_id = t.trip_id
        JOIN routes r ON t.route_id = r.route_id
        WHERE st.stop_id = ?
          AND t.route_id IN ({placeholders})
        ORDER BY r.route_id, st.trip_id, st.stop_sequence
    """
    rows = await fetch_all(db, sql, [stop_id, *route_ids], timeout=timeout)
    return [
        StopTimeRow(
            trip_id=row["trip_id"],
            service_id=row["service_id"],
            arrival_time=row["arrival_time"],
            trip_headsign=row["trip_headsign"],
            direction_id=int(row["direction_id"]) if row["direction_id"] is not None else None,
            route_id=row["route_id"],
            route_short_name=row["route_short_name"],
            route_long_name=row["route_long_name"],
        )
        for row in rows
    ]


async def join_stop_times(
    db: aiosqlite.Connection,
    stop_id: str,
    route_short_name: str,
    timeout: float | None = None,
) -> StopTimeJoin:
    """Resolve a stop and route short name and fetch their scheduled visits.

    Raises:
        StopNotFoundError: If stop_id matches no stop.
        RouteNotFoundError: If route_short_name matches no route.
        StoreTimeoutError: If a query times out.
    """
    stop = await get_stop(db, stop_id, timeout=timeout)
    if stop is None:
        raise StopNotFoundError(stop_id)

    routes = await get_routes_by_short_name(db, route_short_name, timeout=timeout)
    if not routes:
        raise RouteNotFoundError(route_short_name)

    rows = await find_stop_times(db, stop_id, [r.route_id for r in routes], timeout=timeout)
    return StopTimeJoin(stop=stop, routes=routes, rows=rows)
