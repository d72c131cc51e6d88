"""Pydantic models for GTFS entities."""

from pydantic import BaseModel


class Stop(BaseModel):
    """GTFS stop entity with derived region."""

    stop_id: str
    stop_code: str | None = None
    stop_name: str
    stop_desc: str | None = None
    stop_lat: float | None = None
    stop_lon: float | None = None
    zone_id: str | None = None
    region: str | None = None


class Route(BaseModel):
    """GTFS route entity. route_short_name is not unique across agencies."""

    route_id: str
    agency_id: str | None = None
    route_short_name: str | None = None
    route_long_name: str | None = None
    route_type: int | None = None
