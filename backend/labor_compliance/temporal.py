"""Time zone normalization and day/week windows.

All comparisons happen on UTC instants. Windows are built from local
calendar boundaries in the rule set's time zone, so a day that contains a
DST transition is 23 or 25 hours long. Naive datetimes are read as UTC.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable

from dateutil import tz

from .types import TimeEntry

DEFAULT_TIMEZONE = "Europe/Madrid"

Window = tuple[datetime, datetime]  # [start, end) as UTC instants


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def get_timezone(name: str = DEFAULT_TIMEZONE):
    zone = tz.gettz(name)
    if zone is None:
        raise ValueError(f"Unknown time zone: {name}")
    return zone


def ensure_utc(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def to_local(instant: datetime, tz_name: str = DEFAULT_TIMEZONE) -> datetime:
    """Wall-clock equivalent of an instant in the reference time zone."""
    return ensure_utc(instant).astimezone(get_timezone(tz_name))


def local_datetime(day: date, at: time, tz_name: str = DEFAULT_TIMEZONE) -> datetime:
    """UTC instant of a local wall-clock time on a given day."""
    local = datetime.combine(day, at, tzinfo=get_timezone(tz_name))
    return local.astimezone(timezone.utc)


def start_of_day(instant: datetime, tz_name: str = DEFAULT_TIMEZONE) -> datetime:
    return local_datetime(to_local(instant, tz_name).date(), time(0), tz_name)


def start_of_week(instant: datetime, tz_name: str = DEFAULT_TIMEZONE) -> datetime:
    """Local Monday midnight of the week containing the instant."""
    local_day = to_local(instant, tz_name).date()
    monday = local_day - timedelta(days=local_day.weekday())
    return local_datetime(monday, time(0), tz_name)


def day_window(instant: datetime, tz_name: str = DEFAULT_TIMEZONE) -> Window:
    local_day = to_local(instant, tz_name).date()
    return (
        local_datetime(local_day, time(0), tz_name),
        local_datetime(local_day + timedelta(days=1), time(0), tz_name),
    )


def week_window(instant: datetime, tz_name: str = DEFAULT_TIMEZONE) -> Window:
    local_day = to_local(instant, tz_name).date()
    monday = local_day - timedelta(days=local_day.weekday())
    return (
        local_datetime(monday, time(0), tz_name),
        local_datetime(monday + timedelta(days=7), time(0), tz_name),
    )


def entries_in_window(entries: Iterable[TimeEntry], window: Window) -> list[TimeEntry]:
    """Entries whose clock-in falls in the window. Clock-out is ignored."""
    start, end = window
    return [e for e in entries if start <= ensure_utc(e.clock_in) < end]


def entries_for_day(
    entries: Iterable[TimeEntry], instant: datetime, tz_name: str = DEFAULT_TIMEZONE
) -> list[TimeEntry]:
    return entries_in_window(entries, day_window(instant, tz_name))


def entries_for_week(
    entries: Iterable[TimeEntry], instant: datetime, tz_name: str = DEFAULT_TIMEZONE
) -> list[TimeEntry]:
    return entries_in_window(entries, week_window(instant, tz_name))


def is_night_hour(
    instant: datetime,
    start_hour: int = 20,
    end_hour: int = 6,
    tz_name: str = DEFAULT_TIMEZONE,
) -> bool:
    """Whether the local hour of an instant falls in [start_hour, end_hour)."""
    hour = to_local(instant, tz_name).hour
    if start_hour > end_hour:
        return hour >= start_hour or hour < end_hour
    return start_hour <= hour < end_hour
