"""Type definitions for the labor compliance module."""

from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from enum import Enum
from typing import Any, Optional

Coordinates = tuple[float, float]  # (latitude, longitude)


class ComplianceContractError(ValueError):
    """Raised when a caller breaks the input contract of the validator."""


class RuleKind(str, Enum):
    """The twelve compliance rules, in reporting order."""
    DAILY_LIMIT = "daily_limit"
    WEEKLY_LIMIT = "weekly_limit"
    REST_PERIOD = "rest_period"
    MANDATORY_BREAK = "mandatory_break"
    CONTINUOUS_WORK = "continuous_work"
    WEEKLY_REST = "weekly_rest"
    NIGHT_WORK = "night_work"
    OVERTIME = "overtime"
    ABSOLUTE_WEEKLY_MAX = "absolute_weekly_max"
    ADOLESCENT_RESTRICTIONS = "adolescent_restrictions"
    PREGNANT_WORKER = "pregnant_worker"
    GEOFENCE = "geofence"


class Severity(str, Enum):
    """Severity levels for a verdict."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_ORDER.index(self)


_SEVERITY_ORDER = [Severity.LOW, Severity.MEDIUM, Severity.HIGH, Severity.CRITICAL]


class CheckResult(str, Enum):
    """Classification stored alongside a compliance check."""
    PASS = "pass"
    WARNING = "warning"  # Passed, but with an informational severity
    VIOLATION = "violation"


class BreakType(str, Enum):
    PAID = "paid"
    UNPAID = "unpaid"


class NightHoursMethod(str, Enum):
    """How night hours are apportioned for a shift."""
    STEPPED = "stepped"  # Whole hourly steps scaled over the shift
    EXACT = "exact"  # Exact intersection with the night window


@dataclass
class TimeEntry:
    """One clock-in/clock-out record."""
    id: str
    clock_in: datetime
    clock_out: Optional[datetime] = None
    break_minutes: int = 0
    clock_in_location: Optional[Coordinates] = None
    clock_out_location: Optional[Coordinates] = None

    @property
    def is_complete(self) -> bool:
        return self.clock_out is not None


@dataclass
class BreakEntry:
    """One in-shift break, owned by a time entry."""
    id: str
    time_entry_id: str
    break_start: datetime
    break_end: Optional[datetime] = None
    break_type: BreakType = BreakType.UNPAID

    @property
    def is_complete(self) -> bool:
        return self.break_end is not None


@dataclass
class ComplianceResult:
    """The verdict of one rule evaluation."""
    passed: bool
    message: str
    severity: Optional[Severity] = None
    rule_reference: Optional[str] = None
    recommended_action: Optional[str] = None
    rule: Optional[RuleKind] = None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def check_result(self) -> CheckResult:
        if not self.passed:
            return CheckResult.VIOLATION
        if self.severity is not None:
            return CheckResult.WARNING
        return CheckResult.PASS

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        return {
            "rule": self.rule.value if self.rule else None,
            "pass": self.passed,
            "check_result": self.check_result.value,
            "severity": self.severity.value if self.severity else None,
            "message": self.message,
            "rule_reference": self.rule_reference,
            "recommended_action": self.recommended_action,
            "details": dict(self.details),
        }


@dataclass(frozen=True)
class ComplianceRules:
    """Thresholds for one jurisdiction. Defaults encode Spanish labor law."""
    jurisdiction: str = "ES"
    timezone: str = "Europe/Madrid"

    # Working time (Estatuto Art. 34)
    max_daily_hours: float = 9.0
    daily_critical_margin_hours: float = 2.0
    max_weekly_hours_regular: float = 40.0
    weekly_medium_margin_hours: float = 4.0
    max_weekly_hours_absolute: float = 48.0

    # Rest
    min_rest_hours_between_shifts: float = 12.0
    min_weekly_rest_hours: float = 35.0

    # Breaks
    mandatory_break_threshold_hours: float = 6.0
    mandatory_break_minutes: int = 15
    max_continuous_work_hours: float = 9.0

    # Night work (Estatuto Art. 36)
    max_night_work_hours: float = 8.0
    night_work_start_hour: int = 20
    night_work_end_hour: int = 6
    night_hours_method: NightHoursMethod = NightHoursMethod.STEPPED

    # Location verification
    geofence_radius_meters: float = 50.0
    geofence_high_severity_factor: float = 2.0

    # Minors
    adolescent_age_threshold: int = 18
    adolescent_max_daily_hours: float = 8.0
    adolescent_max_weekly_hours: float = 40.0

    @classmethod
    def from_dict(cls, data: dict) -> "ComplianceRules":
        """Create from a stored rule document, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known and v is not None}
        if "night_hours_method" in values:
            values["night_hours_method"] = NightHoursMethod(values["night_hours_method"])
        return cls(**values)

    @classmethod
    def from_env(cls) -> "ComplianceRules":
        """Create from the process configuration (.env / environment)."""
        from . import config

        return cls(
            jurisdiction=config.COMPLIANCE_JURISDICTION,
            timezone=config.COMPLIANCE_TIMEZONE,
            night_hours_method=NightHoursMethod(config.COMPLIANCE_NIGHT_HOURS_METHOD),
        )

    def with_overrides(self, **overrides) -> "ComplianceRules":
        return replace(self, **overrides)


@dataclass
class ValidationContext:
    """Everything validate_all needs for one worker and one entry."""
    current_entry: TimeEntry
    all_entries: list[TimeEntry]
    breaks: list[BreakEntry]
    location_coords: Coordinates  # Work site
    user_coords: Coordinates  # Where the worker clocked in
    user_age: Optional[int] = None
    is_pregnant: Optional[bool] = None


@dataclass
class ComplianceReport:
    """The twelve verdicts for one context, with summary counts."""
    results: list[ComplianceResult] = field(default_factory=list)

    @property
    def is_compliant(self) -> bool:
        return all(r.passed for r in self.results)

    @property
    def violations(self) -> list[ComplianceResult]:
        return [r for r in self.results if not r.passed]

    @property
    def warnings(self) -> list[ComplianceResult]:
        return [r for r in self.results if r.check_result == CheckResult.WARNING]

    @property
    def violation_count(self) -> int:
        return len(self.violations)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    @property
    def highest_severity(self) -> Optional[Severity]:
        """Most severe level among failed rules."""
        levels = [r.severity for r in self.violations if r.severity is not None]
        if not levels:
            return None
        return max(levels, key=lambda s: s.rank)

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        highest = self.highest_severity
        return {
            "is_compliant": self.is_compliant,
            "violation_count": self.violation_count,
            "warning_count": self.warning_count,
            "highest_severity": highest.value if highest else None,
            "results": [r.to_dict() for r in self.results],
        }
