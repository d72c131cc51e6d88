"""Service calendar resolution: weekly recurrence plus dated exceptions."""

from collections.abc import Iterable

import aiosqlite

from peatus_mcp.data.database import fetch_all
from peatus_mcp.services.time_context import WEEKDAY_COLUMNS, weekday_of

EXCEPTION_ADDED = 1
EXCEPTION_REMOVED = 2


def is_service_active(
    weekly_flag: bool | None,
    validity_window: tuple[str, str] | None,
    exception_type: int | None,
    service_date: str,
) -> bool:
    """Decide whether a service runs on a date.

    An added exception always activates the service, even without a calendar row
    or outside its window. A removed exception always deactivates it. Otherwise
    the weekly flag must be set and the date must fall in the inclusive window.

    Args:
        weekly_flag: Calendar flag for the date's weekday, None without a calendar row.
        validity_window: (start_date, end_date) in YYYYMMDD, None without a calendar row.
        exception_type: calendar_dates exception for (service, date), if any.
        service_date: Date being checked, YYYYMMDD.
    """
    if exception_type == EXCEPTION_ADDED:
        return True
    if exception_type == EXCEPTION_REMOVED:
        return False
    if not weekly_flag or validity_window is None:
        return False
    start_date, end_date = validity_window
    return start_date <= service_date <= end_date


async def get_active_services(
    db: aiosqlite.Connection,
    service_date: str,
    candidates: Iterable[str],
    timeout: float | None = None,
) -> set[str]:
    """Get the subset of candidate service IDs active on a date.

    Runs one calendar query and one calendar_dates query for the whole
    candidate set, then applies is_service_active per service.

    Args:
        db: Database connection.
        service_date: Date in YYYYMMDD format.
        candidates: Service IDs to check.
        timeout: Per-query timeout in seconds.

    Returns:
        Set of active service IDs.

    Raises:
        StoreTimeoutError: If a query times out.
    """
    service_ids = sorted(set(candidates))
    if not service_ids:
        return set()

    placeholders = ",".join(["?"] * len(service_ids))
    weekday_col = WEEKDAY_COLUMNS[weekday_of(service_date)]

    sql = f"""
        SELECT service_id, {weekday_col} AS runs, start_date, end_date
        FROM calendar
        WHERE service_id IN ({placeholders})
    """
    weekly_rows = await fetch_all(db, sql, service_ids, timeout=timeout)
    weekly = {
        row["service_id"]: (bool(int(row["runs"] or 0)), (row["start_date"], row["end_date"]))
        for row in weekly_rows
    }

    sql = f"""
        SELECT service_id, exception_type
        FROM calendar_dates
        WHERE date = ?
          AND service_id IN ({placeholders})
    """
    exception_rows = await fetch_all(db, sql, [service_date, *service_ids], timeout=timeout)
    exceptions = {row["service_id"]: int(row["exception_type"]) for row in exception_rows}

    active: set[str] = set()
    for service_id in service_ids:
        weekly_flag, window = weekly.get(service_id, (None, None))
        if is_service_active(weekly_flag, window, exceptions.get(service_id), service_date):
            active.add(service_id)
    return active
