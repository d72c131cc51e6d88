"""Service-local notion of "now" for the transit timezone.

Dates are handled as GTFS YYYYMMDD strings throughout; weekdays use
0=Sunday .. 6=Saturday.
"""

from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo

SECONDS_PER_DAY = 86400

# GTFS calendar weekday columns indexed by weekday (0=Sunday, 6=Saturday)
WEEKDAY_COLUMNS = [
    "sunday",
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
]


@dataclass(frozen=True)
class TimeContext:
    """The current instant decomposed in the transit timezone."""

    date: str  # YYYYMMDD
    weekday: int  # 0=Sunday
    time_of_day: int  # seconds since local midnight

    @property
    def clock(self) -> str:
        return format_clock(self.time_of_day)


def parse_gtfs_date(value: str) -> date:
    """Parse a YYYYMMDD string.

    Raises:
        ValueError: If the string is not a valid YYYYMMDD date.
    """
    if len(value) != 8 or not value.isdigit():
        raise ValueError(f"Invalid GTFS date: {value}")
    return date(int(value[:4]), int(value[4:6]), int(value[6:]))


def date_to_gtfs_format(d: date) -> str:
    """Convert a date to GTFS date format (YYYYMMDD)."""
    return d.strftime("%Y%m%d")


def next_date(value: str) -> str:
    """Return the calendar day after a YYYYMMDD date (month, year and leap-day aware)."""
    return date_to_gtfs_format(parse_gtfs_date(value) + timedelta(days=1))


def weekday_of(value: str) -> int:
    """Return the weekday of a YYYYMMDD date with 0=Sunday."""
    # date.weekday() is 0=Monday
    return (parse_gtfs_date(value).weekday() + 1) % 7


def format_clock(seconds: int) -> str:
    """Format seconds since midnight as HH:MM:SS."""
    hours, remaining = divmod(seconds, 3600)
    minutes, secs = divmod(remaining, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def format_day_month(value: str) -> str:
    """Format a YYYYMMDD date as DD.MM."""
    return f"{value[6:8]}.{value[4:6]}"


def load_transit_zone(name: str) -> ZoneInfo:
    """Resolve the transit timezone.

    Raises:
        zoneinfo.ZoneInfoNotFoundError: If the zone data is not available.
    """
    return ZoneInfo(name)


def now_context(zone: ZoneInfo, now: datetime | None = None) -> TimeContext:
    """Build the time context for an instant in the transit timezone.

    Args:
        zone: Transit timezone; the host's local zone is never consulted.
        now: Optional instant. Naive datetimes are taken as UTC. Defaults to now.

    Returns:
        TimeContext with local date, weekday and seconds since local midnight.
    """
    if now is None:
        now = datetime.now(zone)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    local = now.astimezone(zone)

    today = date_to_gtfs_format(local.date())
    return TimeContext(
        date=today,
        weekday=weekday_of(today),
        time_of_day=local.hour * 3600 + local.minute * 60 + local.second,
    )
