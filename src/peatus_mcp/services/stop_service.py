"""Stop catalog queries: regions, stops, routes at a stop and nearest stop."""

import math
import re
from pathlib import Path

import aiosqlite

from peatus_mcp.data.database import fetch_all, get_db
from peatus_mcp.data.regions import UNKNOWN_REGION
from peatus_mcp.models.responses import (
    ListRegionsResponse,
    NearestStopResponse,
    RouteAtStop,
    RoutesAtStopResponse,
    StopResult,
    StopsInRegionResponse,
)

# Earth's radius in kilometers for haversine calculation
EARTH_RADIUS_KM = 6371.0

_ROUTE_NAME_RE = re.compile(r"^(\d*)(\D*)$")
_LEADING_DIGITS_RE = re.compile(r"^(\d+)")

STOP_COLUMNS = "stop_id, stop_code, stop_name, stop_desc, stop_lat, stop_lon, zone_id, region"


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate the great-circle distance between two points in kilometers.

    Args:
        lat1, lon1: First point coordinates in degrees.
        lat2, lon2: Second point coordinates in degrees.

    Returns:
        Distance in kilometers.
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def natural_route_key(name: str) -> tuple[float, str]:
    """Sort key for route short names: 2, 9, 10, 10A, 11, 100, 100A, then non-numeric."""
    match = _ROUTE_NAME_RE.match(name)
    if match:
        digits, suffix = match.group(1), match.group(2)
    else:
        # mixed names like "10A1": leading number, rest as suffix
        leading = _LEADING_DIGITS_RE.match(name)
        digits = leading.group(1) if leading else ""
        suffix = name[len(digits) :]
    number = float(int(digits)) if digits else math.inf
    return number, suffix


def _row_to_stop_result(row: aiosqlite.Row, distance: float | None = None) -> StopResult:
    """Convert a database row to a StopResult."""
    return StopResult(
        stop_id=row["stop_id"],
        stop_code=row["stop_code"],
        stop_name=row["stop_name"],
        stop_desc=row["stop_desc"],
        stop_lat=float(row["stop_lat"]) if row["stop_lat"] is not None else None,
        stop_lon=float(row["stop_lon"]) if row["stop_lon"] is not None else None,
        zone_id=row["zone_id"],
        region=row["region"],
        distance_km=distance,
    )


def _has_valid_location(lat: float | None, lon: float | None) -> bool:
    if lat is None or lon is None:
        return False
    return not (lat == 0 and lon == 0)


async def list_regions(db_path: Path | None = None) -> ListRegionsResponse:
    """List distinct stop regions alphabetically, excluding empty and unknown ones."""
    sql = """
        SELECT DISTINCT region
        FROM stops
        WHERE region IS NOT NULL
          AND region != ''
          AND region != ?
        ORDER BY region ASC
    """
    async with get_db(db_path) as db:
        rows = await fetch_all(db, sql, (UNKNOWN_REGION,))

    regions = [row["region"] for row in rows]
    return ListRegionsResponse(regions=regions, count=len(regions))


async def get_stops_in_region(
    region: str,
    db_path: Path | None = None,
) -> StopsInRegionResponse:
    """Get the stops of a region ordered by name."""
    sql = f"""
        SELECT {STOP_COLUMNS}
        FROM stops
        WHERE region = ?
        ORDER BY stop_name ASC, stop_id ASC
    """
    async with get_db(db_path) as db:
        rows = await fetch_all(db, sql, (region,))

    stops = [_row_to_stop_result(row) for row in rows]
    return StopsInRegionResponse(region=region, stops=stops, count=len(stops))


async def get_stop_by_id(
    stop_id: str,
    db_path: Path | None = None,
) -> StopResult | None:
    """Get a single stop by its ID.

    Returns:
        StopResult if found, None otherwise.
    """
    sql = f"SELECT {STOP_COLUMNS} FROM stops WHERE stop_id = ?"
    async with get_db(db_path) as db:
        rows = await fetch_all(db, sql, (stop_id,))

    if not rows:
        return None
    return _row_to_stop_result(rows[0])


async def get_routes_at_stop(
    stop_id: str,
    db_path: Path | None = None,
) -> RoutesAtStopResponse:
    """Get the routes whose trips visit a stop, in natural route order."""
    sql = """
        SELECT DISTINCT r.route_id, r.route_short_name, r.route_long_name, r.route_type
        FROM stop_times st
        JOIN trips t ON st.trip_id = t.trip_id
        JOIN routes r ON t.route_id = r.route_id
        WHERE st.stop_id = ?
        ORDER BY r.route_short_name, r.route_id
    """
    async with get_db(db_path) as db:
        rows = await fetch_all(db, sql, (stop_id,))

    routes = [
        RouteAtStop(
            route_id=row["route_id"],
            route_short_name=row["route_short_name"],
            route_long_name=row["route_long_name"],
            route_type=int(row["route_type"]) if row["route_type"] is not None else None,
        )
        for row in rows
    ]
    routes.sort(key=lambda r: natural_route_key(r.route_short_name or ""))

    route_names: list[str] = []
    for route in routes:
        if route.route_short_name and route.route_short_name not in route_names:
            route_names.append(route.route_short_name)

    return RoutesAtStopResponse(
        stop_id=stop_id,
        route_names=route_names,
        routes=routes,
        count=len(route_names),
    )


async def find_nearest_stop(
    lat: float,
    lon: float,
    db_path: Path | None = None,
) -> NearestStopResponse:
    """Find the stop closest to a location.

    Stops without coordinates (or at exactly 0,0) are ignored. On equal
    distance the first stop in stop_id order wins.

    Raises:
        ValueError: If the coordinates are out of range.
    """
    if not -90 <= lat <= 90 or not -180 <= lon <= 180:
        raise ValueError("Coordinates out of valid range")

    sql = f"""
        SELECT {STOP_COLUMNS}
        FROM stops
        WHERE stop_lat IS NOT NULL
          AND stop_lon IS NOT NULL
        ORDER BY stop_id
    """
    async with get_db(db_path) as db:
        rows = await fetch_all(db, sql)

    nearest: aiosqlite.Row | None = None
    min_distance = math.inf
    for row in rows:
        stop_lat, stop_lon = float(row["stop_lat"]), float(row["stop_lon"])
        if not _has_valid_location(stop_lat, stop_lon):
            continue
        distance = haversine_km(lat, lon, stop_lat, stop_lon)
        if distance < min_distance:
            nearest, min_distance = row, distance

    if nearest is None:
        return NearestStopResponse(lat=lat, lon=lon, stop=None, found=False)

    return NearestStopResponse(
        lat=lat,
        lon=lon,
        stop=_row_to_stop_result(nearest, round(min_distance, 2)),
        found=True,
    )
