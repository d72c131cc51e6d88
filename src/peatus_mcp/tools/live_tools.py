from peatus_mcp.app import mcp
from peatus_mcp.models.responses import GetLiveDeparturesResponse
from peatus_mcp.services.live_service import get_live_departures as _get_live_departures


@mcp.tool()
async def get_live_departures(stop_id: str, route: str | None = None) -> GetLiveDeparturesResponse:
    """Get live departures at a Tallinn city stop from transport.tallinn.ee.

    This forwards the city's live feed without schedule resolution; it only
    covers Tallinn city transport. Use get_arrivals for timetable data.

    Args:
        stop_id: Stop ID in the Tallinn live feed.
        route: Optional route number to filter by.

    Returns:
        GetLiveDeparturesResponse; available is false if the feed could not be reached.
    """
    return await _get_live_departures(stop_id=stop_id, route=route)
