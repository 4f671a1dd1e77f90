"""Worked-hours, break and night-hour calculations."""

from datetime import datetime, time, timedelta
from typing import Iterable, Optional

from .temporal import DEFAULT_TIMEZONE, ensure_utc, is_night_hour, local_datetime, to_local
from .types import BreakEntry, ComplianceRules, NightHoursMethod, TimeEntry

HOUR = timedelta(hours=1)


def hours_between(start: datetime, end: datetime, break_minutes: float = 0) -> float:
    """Elapsed hours net of break time, clamped at zero."""
    elapsed = (ensure_utc(end) - ensure_utc(start)).total_seconds() / 3600
    return max(0.0, elapsed - break_minutes / 60)


def entry_hours(entry: TimeEntry) -> float:
    """Net worked hours of an entry. Open entries count as zero."""
    if entry.clock_out is None:
        return 0.0
    return hours_between(entry.clock_in, entry.clock_out, entry.break_minutes)


def total_hours(entries: Iterable[TimeEntry]) -> float:
    return sum((entry_hours(e) for e in entries), 0.0)


def completed_breaks(entry: TimeEntry, breaks: Iterable[BreakEntry]) -> list[BreakEntry]:
    """The entry's closed breaks, sorted by start."""
    owned = [b for b in breaks if b.time_entry_id == entry.id and b.break_end is not None]
    return sorted(owned, key=lambda b: ensure_utc(b.break_start))


def recorded_break_minutes(entry: TimeEntry, breaks: Iterable[BreakEntry]) -> float:
    """Break minutes for an entry.

    Closed break records are summed when the entry has any; otherwise the
    entry's own break_minutes stands in for them.
    """
    owned = completed_breaks(entry, breaks)
    if not owned:
        return float(entry.break_minutes)
    return sum(
        max(0.0, (ensure_utc(b.break_end) - ensure_utc(b.break_start)).total_seconds() / 60)
        for b in owned
    )


def night_hours(entry: TimeEntry, rules: Optional[ComplianceRules] = None) -> float:
    """Hours of an entry worked inside the night window, net of breaks."""
    rules = rules or ComplianceRules()
    if entry.clock_out is None:
        return 0.0
    if rules.night_hours_method == NightHoursMethod.EXACT:
        return _exact_night_hours(entry, rules)
    return _stepped_night_hours(entry, rules)


def _stepped_night_hours(entry: TimeEntry, rules: ComplianceRules) -> float:
    # Step from clock-in one hour at a time; each step counts as night when
    # its starting instant is inside the window.
    start = ensure_utc(entry.clock_in)
    end = ensure_utc(entry.clock_out)

    steps = 0
    night_steps = 0
    current = start
    while current < end:
        steps += 1
        if is_night_hour(current, rules.night_work_start_hour, rules.night_work_end_hour, rules.timezone):
            night_steps += 1
        current += HOUR

    if steps == 0:
        return 0.0

    return hours_between(start, end, entry.break_minutes) * night_steps / steps


def _exact_night_hours(entry: TimeEntry, rules: ComplianceRules) -> float:
    start = ensure_utc(entry.clock_in)
    end = ensure_utc(entry.clock_out)
    gross = hours_between(start, end)
    if gross == 0:
        return 0.0

    overlap = 0.0
    for window_start, window_end in night_windows(start, end, rules):
        lo = max(start, window_start)
        hi = min(end, window_end)
        if hi > lo:
            overlap += (hi - lo).total_seconds() / 3600

    net = hours_between(start, end, entry.break_minutes)
    return overlap * (net / gross)


def night_windows(start: datetime, end: datetime, rules: ComplianceRules):
    """Yield the night windows (UTC) that can overlap [start, end)."""
    tz_name = rules.timezone or DEFAULT_TIMEZONE
    start_at = time(rules.night_work_start_hour)
    end_at = time(rules.night_work_end_hour)
    wraps = rules.night_work_start_hour > rules.night_work_end_hour

    day = to_local(start, tz_name).date() - timedelta(days=1)
    last_day = to_local(end, tz_name).date()
    while day <= last_day:
        end_day = day + timedelta(days=1) if wraps else day
        yield local_datetime(day, start_at, tz_name), local_datetime(end_day, end_at, tz_name)
        day += timedelta(days=1)
