from peatus_mcp.app import mcp
from peatus_mcp.models.responses import GetArrivalsResponse
from peatus_mcp.services.arrivals_service import resolve_arrivals


@mcp.tool()
async def get_arrivals(
    stop_id: str,
    route: str,
    limit: int = 5,
) -> GetArrivalsResponse:
    """Get the next scheduled arrivals of a route at a stop.

    Uses the GTFS timetable in Estonian time (Europe/Tallinn). Looks at today's
    service and, when needed, tomorrow's, so late-evening queries still show
    the first arrivals after midnight. Each arrival is labeled "today",
    "tomorrow" (or DD.MM) and shows HH:MM.

    Examples:
        get_arrivals(stop_id="1234", route="10A")
        get_arrivals(stop_id="1234", route="2", limit=3)

    Args:
        stop_id: The stop ID (use get_stops_in_region or find_nearest_stop to find one).
        route: Route short name as shown on the vehicle (e.g. "2", "10A").
               Every route sharing this name is included.
        limit: Maximum number of arrivals to return (1-20, default 5).

    Returns:
        GetArrivalsResponse. When success is false, not_found is "stop" or
        "route", or retryable is true for a temporary database problem.
    """
    # Validate and clamp limit to 1-20
    limit = max(1, min(20, limit))

    return await resolve_arrivals(stop_id=stop_id, route_short_name=route, limit=limit)
