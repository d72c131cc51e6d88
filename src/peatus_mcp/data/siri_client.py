"""Client for the transport.tallinn.ee live stop departures feed."""

from datetime import datetime

import httpx

from peatus_mcp.data.config import Settings
from peatus_mcp.models.responses import LiveDeparture

# Transport type codes used by the feed
TRANSPORT_TYPES = {
    "1": "tram",
    "2": "bus",
    "3": "trolley",
    "4": "train",
    "5": "ferry",
}


def transport_type(code: str) -> str:
    return TRANSPORT_TYPES.get(code.strip(), "bus")


def parse_departures(body: str, now: datetime) -> list[LiveDeparture]:
    """Parse the departures CSV.

    The first line is a header
    (Transport,RouteNum,ExpectedTimeInSeconds,ScheduleTimeInSeconds,...);
    times are seconds from `now`. Rows with fewer than four fields are skipped.

    Returns:
        Departures sorted by expected minutes.
    """
    lines = body.strip().splitlines()
    departures: list[LiveDeparture] = []
    for line in lines[1:]:
        parts = line.split(",")
        if len(parts) < 4:
            continue
        expected = _to_int(parts[2])
        scheduled = _to_int(parts[3])
        departures.append(
            LiveDeparture(
                transport=transport_type(parts[0]),
                route=parts[1].strip(),
                expected_time=_clock_after(now, expected),
                schedule_time=_clock_after(now, scheduled),
                expected_minutes=round(expected / 60),
                is_realtime=expected != scheduled,
            )
        )
    departures.sort(key=lambda d: d.expected_minutes)
    return departures


def _to_int(value: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        return 0


def _clock_after(now: datetime, seconds: int) -> str:
    ts = now.timestamp() + seconds
    return datetime.fromtimestamp(ts, tz=now.tzinfo).strftime("%H:%M")


class SiriClient:
    """Async HTTP client for live stop departures.

    Usage:
        async with SiriClient(settings) as client:
            departures = await client.fetch_departures("1234", now)
    """

    def __init__(self, settings: Settings):
        self._settings = settings
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "SiriClient":
        """Enter async context - create HTTP client."""
        self._client = httpx.AsyncClient(base_url=self._settings.live_base_url, timeout=10.0)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context - close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch_departures(self, stop_id: str, now: datetime) -> list[LiveDeparture]:
        """Fetch and parse departures for one stop.

        Raises:
            RuntimeError: If client not initialized.
            httpx.HTTPError: If the HTTP request fails.
        """
        if not self._client:
            raise RuntimeError("Client not initialized - use 'async with'")

        response = await self._client.get("/siri-stop-departures.php", params={"stopid": stop_id})
        response.raise_for_status()
        return parse_departures(response.text, now)
