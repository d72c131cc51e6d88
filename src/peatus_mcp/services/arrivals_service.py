"""Arrival resolution for a stop and route short name.

Combines the service calendar for today and tomorrow with the stop/route join,
normalizes GTFS past-midnight times and produces a short, ordered list of
upcoming arrivals labeled for riders.

Ranking uses one sort key per arrival, in seconds from the start of today:
- today's service, same day: the raw GTFS time (only if not yet passed)
- today's service, past midnight (>= 24:00:00): the raw time, shown tomorrow
- tomorrow's service: raw time + 86400; past-midnight times would land on a
  third day and are dropped
"""

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from peatus_mcp.data.config import get_settings
from peatus_mcp.data.database import get_db
from peatus_mcp.errors import NotFoundError, StoreTimeoutError
from peatus_mcp.models.responses import (
    ArrivalEntry,
    GetArrivalsResponse,
    RouteInfo,
    StopInfo,
)
from peatus_mcp.services.calendar_service import get_active_services
from peatus_mcp.services.schedule_service import (
    DisplayTime,
    ScheduledTime,
    StopTimeRow,
    format_hhmm,
    gtfs_time_to_seconds,
    join_stop_times,
)
from peatus_mcp.services.time_context import (
    SECONDS_PER_DAY,
    format_day_month,
    next_date,
    now_context,
)

logger = logging.getLogger(__name__)

TODAY_LABEL = "today"
TOMORROW_LABEL = "tomorrow"


@dataclass(frozen=True)
class ResolvedArrival:
    """A stop visit that made it past the calendar and clock filters."""

    row: StopTimeRow
    display: DisplayTime


def _scheduled_times(
    rows: list[StopTimeRow],
    active_services: set[str],
    service_date: str,
) -> Iterator[tuple[StopTimeRow, ScheduledTime]]:
    """Yield parsed times for rows whose service runs on service_date.

    Rows with a missing or malformed arrival time are skipped.
    """
    for row in rows:
        if row.service_id not in active_services:
            continue
        if row.arrival_time is None:
            logger.warning(f"Skipping trip {row.trip_id}: no arrival time")
            continue
        try:
            raw_seconds = gtfs_time_to_seconds(row.arrival_time)
        except ValueError:
            logger.warning(f"Skipping trip {row.trip_id}: malformed time {row.arrival_time!r}")
            continue
        yield row, ScheduledTime(service_date=service_date, raw_seconds=raw_seconds)


def select_today(
    rows: list[StopTimeRow],
    active_today: set[str],
    today: str,
    now_seconds: int,
) -> list[ResolvedArrival]:
    """Arrivals of today's service that have not departed yet.

    Past-midnight times are kept regardless of the clock; they are shown tomorrow.
    """
    selected: list[ResolvedArrival] = []
    for row, scheduled in _scheduled_times(rows, active_today, today):
        if scheduled.is_past_midnight or scheduled.raw_seconds >= now_seconds:
            selected.append(ResolvedArrival(row=row, display=scheduled.to_display(today)))
    return selected


def select_tomorrow(
    rows: list[StopTimeRow],
    active_tomorrow: set[str],
    today: str,
    tomorrow: str,
) -> list[ResolvedArrival]:
    """Arrivals of tomorrow's service that fall on tomorrow's calendar day."""
    selected: list[ResolvedArrival] = []
    for row, scheduled in _scheduled_times(rows, active_tomorrow, tomorrow):
        if scheduled.is_past_midnight:
            continue
        selected.append(ResolvedArrival(row=row, display=scheduled.to_display(today)))
    return selected


def needs_next_day(today_arrivals: list[ResolvedArrival], limit: int) -> bool:
    """Whether tomorrow's service could still change the top `limit` arrivals.

    Tomorrow's earliest possible sort key is 86400, so it can be skipped only
    when the first `limit` arrivals of today all rank below that.
    """
    if len(today_arrivals) < limit:
        return True
    keys = sorted(a.display.sort_key for a in today_arrivals)
    return keys[limit - 1] >= SECONDS_PER_DAY


def rank_arrivals(arrivals: list[ResolvedArrival], limit: int) -> list[ResolvedArrival]:
    """Order by sort key (stable) and keep the first `limit`."""
    return sorted(arrivals, key=lambda a: a.display.sort_key)[:limit]


def label_date(display_date: str, today: str, tomorrow: str) -> str:
    """Label a date as 'today', 'tomorrow' or DD.MM for anything else."""
    if display_date == today:
        return TODAY_LABEL
    if display_date == tomorrow:
        return TOMORROW_LABEL
    return format_day_month(display_date)


def to_arrival_entry(arrival: ResolvedArrival, today: str, tomorrow: str) -> ArrivalEntry:
    row = arrival.row
    return ArrivalEntry(
        time=format_hhmm(arrival.display.display_seconds),
        date_label=label_date(arrival.display.display_date, today, tomorrow),
        date=arrival.display.display_date,
        headsign=row.trip_headsign or row.route_long_name or "",
        direction=row.direction_id,
        route=row.route_short_name,
    )


async def resolve_arrivals(
    stop_id: str,
    route_short_name: str,
    now: datetime | None = None,
    limit: int | None = None,
    db_path: Path | None = None,
    timeout: float | None = None,
) -> GetArrivalsResponse:
    """Resolve the next arrivals of a route at a stop.

    Args:
        stop_id: Stop ID.
        route_short_name: Rider-facing route label; every route_id sharing it is included.
        now: Instant to resolve for (default: current time in the transit zone).
        limit: Maximum number of arrivals (default: PEATUS_ARRIVALS_LIMIT).
        db_path: Optional database path override.
        timeout: Per-query timeout in seconds (default: PEATUS_QUERY_TIMEOUT).

    Returns:
        GetArrivalsResponse. Unknown stop/route and store timeouts are reported
        in the response (`not_found`, `retryable`) rather than raised. An empty
        arrival list with success=True means nothing is scheduled.
    """
    settings = get_settings()
    if limit is None:
        limit = settings.arrivals_limit
    limit = max(1, limit)

    ctx = now_context(settings.zone, now)
    today = ctx.date
    tomorrow = next_date(today)

    try:
        async with get_db(db_path, timeout=timeout) as db:
            join = await join_stop_times(db, stop_id, route_short_name, timeout=timeout)
            candidates = {row.service_id for row in join.rows}

            # a failure here fails the request; there is no tomorrow-only fallback
            active_today = await get_active_services(db, today, candidates, timeout=timeout)
            arrivals = select_today(join.rows, active_today, today, ctx.time_of_day)

            if needs_next_day(arrivals, limit):
                active_tomorrow = await get_active_services(
                    db, tomorrow, candidates, timeout=timeout
                )
                arrivals.extend(select_tomorrow(join.rows, active_tomorrow, today, tomorrow))
    except NotFoundError as e:
        return GetArrivalsResponse(
            success=False,
            error=str(e),
            not_found=e.kind,
            current_time=ctx.clock,
            current_date=today,
        )
    except StoreTimeoutError as e:
        logger.warning(f"Arrivals for stop {stop_id} route {route_short_name} failed: {e}")
        return GetArrivalsResponse(
            success=False,
            error=str(e),
            retryable=True,
            current_time=ctx.clock,
            current_date=today,
        )

    entries = [to_arrival_entry(a, today, tomorrow) for a in rank_arrivals(arrivals, limit)]

    stop = join.stop
    return GetArrivalsResponse(
        success=True,
        stop=StopInfo(
            stop_id=stop.stop_id,
            stop_name=stop.stop_name,
            stop_code=stop.stop_code,
            stop_lat=stop.stop_lat,
            stop_lon=stop.stop_lon,
        ),
        route=RouteInfo(
            route_short_name=route_short_name,
            # routes are ordered by route_id; the first one names the line
            route_long_name=join.routes[0].route_long_name,
            route_ids=[r.route_id for r in join.routes],
        ),
        arrivals=entries,
        count=len(entries),
        current_time=ctx.clock,
        current_date=today,
    )
