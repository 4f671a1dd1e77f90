import pytest
from datetime import date, datetime, time, timedelta

from labor_compliance.engine import ComplianceEngine
from labor_compliance.temporal import local_datetime
from labor_compliance.types import (
    BreakEntry,
    BreakType,
    ComplianceRules,
    TimeEntry,
    ValidationContext,
)
from labor_compliance.validators import ComplianceValidator

SITE = (40.4168, -3.7038)  # Puerta del Sol, Madrid
METERS_PER_DEGREE_LATITUDE = 111_194.93


def offset_north(coords, meters):
    """Coordinates the given distance due north along the meridian."""
    lat, lng = coords
    return lat + meters / METERS_PER_DEGREE_LATITUDE, lng


@pytest.fixture
def default_rules():
    """Spanish compliance rules."""
    return ComplianceRules()


@pytest.fixture
def validator(default_rules):
    return ComplianceValidator(default_rules)


@pytest.fixture
def engine(default_rules):
    return ComplianceEngine(default_rules)


@pytest.fixture
def madrid():
    """Factory for UTC instants given Madrid wall-clock time."""
    def _madrid(year, month, day, hour=0, minute=0, second=0) -> datetime:
        return local_datetime(date(year, month, day), time(hour, minute, second), "Europe/Madrid")
    return _madrid


@pytest.fixture
def make_entry():
    """Factory to create TimeEntry objects."""
    def _make_entry(
        entry_id: str,
        clock_in: datetime,
        clock_out: datetime = None,
        break_minutes: int = 0,
        clock_in_location=None,
    ) -> TimeEntry:
        return TimeEntry(
            id=entry_id,
            clock_in=clock_in,
            clock_out=clock_out,
            break_minutes=break_minutes,
            clock_in_location=clock_in_location,
        )
    return _make_entry


@pytest.fixture
def make_break():
    """Factory to create BreakEntry objects."""
    def _make_break(
        entry_id: str,
        start: datetime,
        end: datetime = None,
        break_type: BreakType = BreakType.UNPAID,
    ) -> BreakEntry:
        return BreakEntry(
            id=f"{entry_id}-{start:%H%M%S}",
            time_entry_id=entry_id,
            break_start=start,
            break_end=end,
            break_type=break_type,
        )
    return _make_break


@pytest.fixture
def make_week(madrid, make_entry):
    """Factory for one entry per day starting Monday 2026-02-09 at 08:00 Madrid."""
    def _make_week(hours_per_day: list[float], start_hour: int = 8) -> list[TimeEntry]:
        entries = []
        for offset, hours in enumerate(hours_per_day):
            clock_in = madrid(2026, 2, 9 + offset, start_hour)
            entries.append(make_entry(
                f"day-{offset}",
                clock_in,
                clock_in + timedelta(hours=hours),
            ))
        return entries
    return _make_week


@pytest.fixture
def make_context():
    """Factory to create ValidationContext objects."""
    def _make_context(
        current_entry: TimeEntry,
        all_entries: list[TimeEntry] = None,
        breaks: list[BreakEntry] = None,
        user_age: int = None,
        is_pregnant: bool = None,
        location_coords=SITE,
        user_coords=SITE,
    ) -> ValidationContext:
        return ValidationContext(
            current_entry=current_entry,
            all_entries=all_entries if all_entries is not None else [current_entry],
            breaks=breaks or [],
            location_coords=location_coords,
            user_coords=user_coords,
            user_age=user_age,
            is_pregnant=is_pregnant,
        )
    return _make_context
