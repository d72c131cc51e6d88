"""Live departures passthrough with caching.

No resolution happens here: the feed's departures are forwarded as-is,
optionally filtered by route. All errors are caught and logged - the
response reports available=False instead.
"""

import logging
from datetime import datetime

from peatus_mcp.data.cache import KeyedTTLCache
from peatus_mcp.data.config import get_settings
from peatus_mcp.data.siri_client import SiriClient
from peatus_mcp.models.responses import GetLiveDeparturesResponse, LiveDeparture

logger = logging.getLogger(__name__)

MAX_LIVE_DEPARTURES = 10

# Module-level cache (lazy-initialized)
_departures_cache: KeyedTTLCache[str, list[LiveDeparture]] | None = None


def _get_departures_cache() -> KeyedTTLCache[str, list[LiveDeparture]]:
    """Get or create the departures cache singleton."""
    global _departures_cache
    if _departures_cache is None:
        _departures_cache = KeyedTTLCache(ttl=get_settings().live_cache_ttl_seconds)
    return _departures_cache


async def fetch_departures(stop_id: str, force_refresh: bool = False) -> list[LiveDeparture] | None:
    """Fetch live departures for a stop with caching.

    Returns:
        Departures if successful, None if the feed is unavailable.
    """
    cache = _get_departures_cache()
    if not force_refresh:
        cached = cache.get(stop_id)
        if cached is not None:
            return cached

    async with cache.lock(stop_id):
        # another request may have filled the cache while we waited
        if not force_refresh:
            cached = cache.get(stop_id)
            if cached is not None:
                return cached

        settings = get_settings()
        try:
            async with SiriClient(settings) as client:
                departures = await client.fetch_departures(stop_id, datetime.now(settings.zone))
        except Exception as e:
            logger.warning(f"Live departures for stop {stop_id} unavailable: {e}")
            return None

        cache.set(stop_id, departures)
        logger.debug(f"Fetched {len(departures)} live departures for stop {stop_id}")
        return departures


async def get_live_departures(
    stop_id: str,
    route: str | None = None,
) -> GetLiveDeparturesResponse:
    """Get live departures at a stop, optionally for one route."""
    departures = await fetch_departures(stop_id)
    fetched_at = datetime.now(get_settings().zone).isoformat()

    if departures is None:
        return GetLiveDeparturesResponse(
            stop_id=stop_id, route=route, available=False, fetched_at=fetched_at
        )

    if route:
        departures = [d for d in departures if d.route == route]
    departures = departures[:MAX_LIVE_DEPARTURES]

    return GetLiveDeparturesResponse(
        stop_id=stop_id,
        route=route,
        departures=departures,
        count=len(departures),
        available=True,
        fetched_at=fetched_at,
    )


def reset_cache() -> None:
    """Drop the departures cache. Useful for testing."""
    global _departures_cache
    _departures_cache = None
