"""MCP tools for browsing stops and routes."""

from peatus_mcp.app import mcp
from peatus_mcp.models.responses import (
    ListRegionsResponse,
    NearestStopResponse,
    RoutesAtStopResponse,
    StopResult,
    StopsInRegionResponse,
)
from peatus_mcp.services import stop_service


@mcp.tool()
async def list_regions() -> ListRegionsResponse:
    """List the regions (municipalities/areas) that have stops, alphabetically."""
    return await stop_service.list_regions()


@mcp.tool()
async def get_stops_in_region(region: str) -> StopsInRegionResponse:
    """List the stops in a region, ordered by name.

    Args:
        region: Region name exactly as returned by list_regions (e.g. "Tartu linn").
    """
    return await stop_service.get_stops_in_region(region)


@mcp.tool()
async def get_stop(stop_id: str) -> StopResult | None:
    """Get a single stop by ID. Returns null if the stop does not exist."""
    return await stop_service.get_stop_by_id(stop_id)


@mcp.tool()
async def get_routes_at_stop(stop_id: str) -> RoutesAtStopResponse:
    """List the routes that serve a stop.

    Route names come in natural order (2, 9, 10, 10A, 11, 100).

    Args:
        stop_id: The stop ID.
    """
    return await stop_service.get_routes_at_stop(stop_id)


@mcp.tool()
async def find_nearest_stop(lat: float, lon: float) -> NearestStopResponse:
    """Find the stop nearest to a location.

    Examples:
        find_nearest_stop(lat=59.437, lon=24.7536)  # Tallinn city centre

    Args:
        lat: Latitude in degrees (-90..90).
        lon: Longitude in degrees (-180..180).

    Returns:
        NearestStopResponse with the stop and its distance_km.
    """
    return await stop_service.find_nearest_stop(lat, lon)
