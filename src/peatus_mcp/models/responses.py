from pydantic import BaseModel, Field

from peatus_mcp.errors import NotFoundKind


class StopResult(BaseModel):
    stop_id: str
    stop_code: str | None = None
    stop_name: str
    stop_desc: str | None = None
    stop_lat: float | None = None
    stop_lon: float | None = None
    zone_id: str | None = None
    region: str | None = None
    distance_km: float | None = Field(
        default=None, description="Distance from search coordinates (nearest-stop search only)"
    )


class ListRegionsResponse(BaseModel):
    regions: list[str]
    count: int = Field(description="Number of regions returned")


class StopsInRegionResponse(BaseModel):
    region: str
    stops: list[StopResult]
    count: int = Field(description="Number of stops returned")


class RouteAtStop(BaseModel):
    route_id: str
    route_short_name: str | None = None
    route_long_name: str | None = None
    route_type: int | None = None


class RoutesAtStopResponse(BaseModel):
    stop_id: str
    route_names: list[str] = Field(
        description="Distinct route short names in natural order (2, 10, 10A, 100)"
    )
    routes: list[RouteAtStop]
    count: int = Field(description="Number of distinct route short names")


class NearestStopResponse(BaseModel):
    lat: float
    lon: float
    stop: StopResult | None = Field(default=None, description="Nearest stop, if any has coordinates")
    found: bool


class StopInfo(BaseModel):
    stop_id: str
    stop_name: str
    stop_code: str | None = None
    stop_lat: float | None = None
    stop_lon: float | None = None


class RouteInfo(BaseModel):
    route_short_name: str
    route_long_name: str | None = None
    route_ids: list[str] = Field(
        default_factory=list, description="All route IDs sharing this short name"
    )


class ArrivalEntry(BaseModel):
    """One upcoming arrival, as shown to a rider."""

    time: str = Field(description="Arrival time in HH:MM (service-local clock)")
    date_label: str = Field(description="'today', 'tomorrow', or DD.MM")
    date: str = Field(description="Calendar date of the arrival in YYYYMMDD format")
    headsign: str = Field(description="Trip headsign, falling back to route long name")
    direction: int | None = Field(default=None, description="GTFS direction_id (0/1)")
    route: str = Field(description="Route short name")


class GetArrivalsResponse(BaseModel):
    """Upcoming arrivals for one stop and route short name.

    Failures are reported in-band: `success` is False and either `not_found`
    names the unresolved entity or `retryable` marks a transient store failure.
    """

    success: bool
    stop: StopInfo | None = None
    route: RouteInfo | None = None
    arrivals: list[ArrivalEntry] = Field(default_factory=list)
    count: int = Field(default=0, description="Number of arrivals returned")
    current_time: str | None = Field(default=None, description="Service-local time HH:MM:SS")
    current_date: str | None = Field(default=None, description="Service-local date YYYYMMDD")
    error: str | None = None
    not_found: NotFoundKind | None = Field(
        default=None, description="'stop' or 'route' when the lookup failed"
    )
    retryable: bool = Field(
        default=False, description="True when the data store timed out or was unavailable"
    )


class LiveDeparture(BaseModel):
    transport: str = Field(description="tram, bus, trolley, train or ferry")
    route: str
    expected_time: str = Field(description="Expected time HH:MM")
    schedule_time: str = Field(description="Scheduled time HH:MM")
    expected_minutes: int = Field(description="Minutes until expected departure")
    is_realtime: bool = Field(description="True when expected differs from schedule")


class GetLiveDeparturesResponse(BaseModel):
    stop_id: str
    route: str | None = None
    departures: list[LiveDeparture] = Field(default_factory=list)
    count: int = 0
    available: bool = Field(description="Whether the live feed answered")
    fetched_at: str | None = Field(default=None, description="ISO timestamp of the fetch")
