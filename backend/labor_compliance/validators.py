"""Spanish labor law rule evaluators.

Each method is a pure function of its arguments and returns one
ComplianceResult. References:
- Estatuto de los Trabajadores Art. 34.1: 40h/week regular, 48h absolute
- Art. 34.3: 9h/day, 12h rest between shifts, limits for minors
- Art. 34.4: 15 minute break for shifts over 6h
- Art. 36: night work
- Art. 37.1: 35h continuous weekly rest
- Ley 31/1995 Art. 26: protection of pregnant workers
"""

from datetime import datetime
from typing import Optional

from .durations import (
    completed_breaks,
    entry_hours,
    hours_between,
    night_hours,
    recorded_break_minutes,
    total_hours,
)
from .geo import haversine_distance
from .temporal import ensure_utc, entries_for_day, entries_for_week, is_night_hour, utc_now
from .types import (
    BreakEntry,
    ComplianceResult,
    ComplianceRules,
    Coordinates,
    RuleKind,
    Severity,
    TimeEntry,
)

REF_WORKING_TIME = "Estatuto Art. 34.1"
REF_DAILY_AND_REST = "Estatuto Art. 34.3"
REF_BREAKS = "Estatuto Art. 34.4"
REF_NIGHT_WORK = "Estatuto Art. 36"
REF_WEEKLY_REST = "Estatuto Art. 37.1"
REF_PREGNANCY = "Ley 31/1995 Art. 26"
REF_GEOFENCE = "Organization geofence policy"

SHIFT_INCOMPLETE = "Shift not yet complete"


class ComplianceValidator:
    """Evaluates the twelve compliance rules against one rule set."""

    def __init__(self, rules: Optional[ComplianceRules] = None):
        self.rules = rules or ComplianceRules()

    # ------------------------------------------------------------------
    # Working time
    # ------------------------------------------------------------------

    def validate_daily_limit(
        self, entries: list[TimeEntry], target_date: Optional[datetime] = None
    ) -> ComplianceResult:
        """1. Daily hours limit."""
        rules = self.rules
        day_entries = entries_for_day(entries, target_date or utc_now(), rules.timezone)
        worked = total_hours(day_entries)
        details = {"hours_worked": round(worked, 2), "hours_limit": rules.max_daily_hours}

        if worked <= rules.max_daily_hours:
            return ComplianceResult(
                passed=True,
                message=f"Daily hours ({worked:.1f}h) within limit",
                rule_reference=REF_DAILY_AND_REST,
                rule=RuleKind.DAILY_LIMIT,
                details=details,
            )

        over_margin = worked > rules.max_daily_hours + rules.daily_critical_margin_hours
        return ComplianceResult(
            passed=False,
            severity=Severity.CRITICAL if over_margin else Severity.HIGH,
            message=f"Daily hours ({worked:.1f}h) exceed limit of {rules.max_daily_hours:g}h",
            rule_reference=REF_DAILY_AND_REST,
            recommended_action="Contact your manager for approval and document the exception",
            rule=RuleKind.DAILY_LIMIT,
            details=details,
        )

    def validate_weekly_limit(
        self, entries: list[TimeEntry], target_date: Optional[datetime] = None
    ) -> ComplianceResult:
        """2. Weekly regular hours limit."""
        rules = self.rules
        worked = total_hours(entries_for_week(entries, target_date or utc_now(), rules.timezone))
        details = {"hours_worked": round(worked, 2), "hours_limit": rules.max_weekly_hours_regular}

        if worked <= rules.max_weekly_hours_regular:
            return ComplianceResult(
                passed=True,
                message=f"Weekly hours ({worked:.1f}h) within regular limit",
                rule_reference=REF_WORKING_TIME,
                rule=RuleKind.WEEKLY_LIMIT,
                details=details,
            )

        over_margin = worked > rules.max_weekly_hours_regular + rules.weekly_medium_margin_hours
        return ComplianceResult(
            passed=False,
            severity=Severity.MEDIUM if over_margin else Severity.LOW,
            message=(
                f"Weekly hours ({worked:.1f}h) exceed regular limit of "
                f"{rules.max_weekly_hours_regular:g}h"
            ),
            rule_reference=REF_WORKING_TIME,
            recommended_action=(
                f"Hours between {rules.max_weekly_hours_regular:g}-{rules.max_weekly_hours_absolute:g} "
                "count as overtime and require compensation"
            ),
            rule=RuleKind.WEEKLY_LIMIT,
            details=details,
        )

    # ------------------------------------------------------------------
    # Rest and breaks
    # ------------------------------------------------------------------

    def validate_rest_period(self, entries: list[TimeEntry]) -> ComplianceResult:
        """3. Rest between consecutive shifts. Reports the first short gap."""
        rules = self.rules
        required = rules.min_rest_hours_between_shifts

        if len(entries) < 2:
            return ComplianceResult(
                passed=True,
                message="Insufficient shift history to validate rest period",
                rule_reference=REF_DAILY_AND_REST,
                rule=RuleKind.REST_PERIOD,
            )

        finished = sorted(
            (e for e in entries if e.clock_out is not None),
            key=lambda e: ensure_utc(e.clock_out),
        )

        for previous, following in zip(finished, finished[1:]):
            rest = hours_between(previous.clock_out, following.clock_in)
            if rest < required:
                return ComplianceResult(
                    passed=False,
                    severity=Severity.CRITICAL,
                    message=f"Rest period ({rest:.1f}h) below minimum of {required:g}h",
                    rule_reference=REF_DAILY_AND_REST,
                    recommended_action=(
                        f"Schedule must ensure {required:g} hours between shift end and next shift start"
                    ),
                    rule=RuleKind.REST_PERIOD,
                    details={
                        "rest_hours": round(rest, 2),
                        "required_rest_hours": required,
                        "previous_entry_id": previous.id,
                        "next_entry_id": following.id,
                    },
                )

        return ComplianceResult(
            passed=True,
            message="All rest periods meet minimum requirement",
            rule_reference=REF_DAILY_AND_REST,
            rule=RuleKind.REST_PERIOD,
        )

    def validate_mandatory_break(self, entry: TimeEntry, breaks: list[BreakEntry]) -> ComplianceResult:
        """4. Mandatory break for long shifts."""
        rules = self.rules
        if entry.clock_out is None:
            return ComplianceResult(
                passed=True,
                message=SHIFT_INCOMPLETE,
                rule_reference=REF_BREAKS,
                rule=RuleKind.MANDATORY_BREAK,
            )

        shift_hours = hours_between(entry.clock_in, entry.clock_out)
        if shift_hours <= rules.mandatory_break_threshold_hours:
            return ComplianceResult(
                passed=True,
                message=f"Shift ({shift_hours:.1f}h) does not require mandatory break",
                rule_reference=REF_BREAKS,
                rule=RuleKind.MANDATORY_BREAK,
            )

        taken = recorded_break_minutes(entry, breaks)
        details = {
            "shift_hours": round(shift_hours, 2),
            "break_minutes": round(taken, 2),
            "required_break_minutes": rules.mandatory_break_minutes,
        }

        if taken >= rules.mandatory_break_minutes:
            return ComplianceResult(
                passed=True,
                message=f"Break time ({taken:.0f}min) meets requirement",
                rule_reference=REF_BREAKS,
                rule=RuleKind.MANDATORY_BREAK,
                details=details,
            )

        return ComplianceResult(
            passed=False,
            severity=Severity.HIGH,
            message=(
                f"Shift >{rules.mandatory_break_threshold_hours:g}h requires "
                f"{rules.mandatory_break_minutes}min break (current: {taken:.0f}min)"
            ),
            rule_reference=REF_BREAKS,
            recommended_action="Ensure employee takes mandatory break before end of shift",
            rule=RuleKind.MANDATORY_BREAK,
            details=details,
        )

    def validate_continuous_work(self, entry: TimeEntry, breaks: list[BreakEntry]) -> ComplianceResult:
        """5. Longest stretch of work between breaks. Reports the first long segment."""
        rules = self.rules
        limit = rules.max_continuous_work_hours
        if entry.clock_out is None:
            return ComplianceResult(
                passed=True,
                message=SHIFT_INCOMPLETE,
                rule_reference=REF_BREAKS,
                rule=RuleKind.CONTINUOUS_WORK,
            )

        entry_breaks = completed_breaks(entry, breaks)
        segment_start = ensure_utc(entry.clock_in)

        for index, break_entry in enumerate(entry_breaks):
            segment = hours_between(segment_start, break_entry.break_start)
            if segment > limit:
                return self._continuous_work_failure(
                    segment,
                    index,
                    label="Continuous work segment",
                    action="Break should be scheduled earlier in shift",
                )
            segment_start = max(segment_start, ensure_utc(break_entry.break_end))

        final = hours_between(segment_start, entry.clock_out)
        if final > limit:
            if not entry_breaks:
                return self._continuous_work_failure(
                    final,
                    0,
                    label="Continuous work",
                    action="Schedule break within continuous work period",
                )
            return self._continuous_work_failure(
                final,
                len(entry_breaks),
                label="Final work segment",
                action="Additional break needed before end of shift",
            )

        return ComplianceResult(
            passed=True,
            message="Continuous work periods within acceptable limits",
            rule_reference=REF_BREAKS,
            rule=RuleKind.CONTINUOUS_WORK,
        )

    def _continuous_work_failure(self, hours: float, segment_index: int, label: str, action: str):
        limit = self.rules.max_continuous_work_hours
        return ComplianceResult(
            passed=False,
            severity=Severity.HIGH,
            message=f"{label} ({hours:.1f}h) exceeds {limit:g}h without break",
            rule_reference=REF_BREAKS,
            recommended_action=action,
            rule=RuleKind.CONTINUOUS_WORK,
            details={
                "segment_hours": round(hours, 2),
                "segment_index": segment_index,
                "hours_limit": limit,
            },
        )

    def validate_weekly_rest(
        self, entries: list[TimeEntry], target_date: Optional[datetime] = None
    ) -> ComplianceResult:
        """6. One long continuous rest per week, measured between completed shifts."""
        rules = self.rules
        required = rules.min_weekly_rest_hours
        week_entries = sorted(
            (
                e for e in entries_for_week(entries, target_date or utc_now(), rules.timezone)
                if e.clock_out is not None
            ),
            key=lambda e: ensure_utc(e.clock_in),
        )

        if len(week_entries) < 2:
            message = "No completed shifts this week" if not week_entries else "Only one completed shift this week"
            return ComplianceResult(
                passed=True,
                message=message,
                rule_reference=REF_WEEKLY_REST,
                rule=RuleKind.WEEKLY_REST,
            )

        longest = max(
            hours_between(previous.clock_out, following.clock_in)
            for previous, following in zip(week_entries, week_entries[1:])
        )
        details = {"rest_hours": round(longest, 2), "required_rest_hours": required}

        if longest >= required:
            return ComplianceResult(
                passed=True,
                message=f"Weekly rest period ({longest:.1f}h) meets requirement",
                rule_reference=REF_WEEKLY_REST,
                rule=RuleKind.WEEKLY_REST,
                details=details,
            )

        return ComplianceResult(
            passed=False,
            severity=Severity.CRITICAL,
            message=f"No {required:g}h continuous rest period found (max: {longest:.1f}h)",
            rule_reference=REF_WEEKLY_REST,
            recommended_action=f"Schedule must include {required:g} continuous hours rest per week",
            rule=RuleKind.WEEKLY_REST,
            details=details,
        )

    # ------------------------------------------------------------------
    # Night work and overtime
    # ------------------------------------------------------------------

    def validate_night_work(self, entry: TimeEntry) -> ComplianceResult:
        """7. Night hours in a single shift."""
        rules = self.rules
        if entry.clock_out is None:
            return ComplianceResult(
                passed=True,
                message=SHIFT_INCOMPLETE,
                rule_reference=REF_NIGHT_WORK,
                rule=RuleKind.NIGHT_WORK,
            )

        worked_at_night = night_hours(entry, rules)
        details = {
            "night_hours": round(worked_at_night, 2),
            "hours_limit": rules.max_night_work_hours,
            "method": rules.night_hours_method.value,
        }

        if worked_at_night <= rules.max_night_work_hours:
            return ComplianceResult(
                passed=True,
                message=f"Night work hours ({worked_at_night:.1f}h) within limit",
                rule_reference=REF_NIGHT_WORK,
                rule=RuleKind.NIGHT_WORK,
                details=details,
            )

        return ComplianceResult(
            passed=False,
            severity=Severity.HIGH,
            message=(
                f"Night work hours ({worked_at_night:.1f}h) exceed limit of "
                f"{rules.max_night_work_hours:g}h"
            ),
            rule_reference=REF_NIGHT_WORK,
            recommended_action="Limit night shift duration or schedule breaks during night hours",
            rule=RuleKind.NIGHT_WORK,
            details=details,
        )

    def validate_overtime(
        self, entries: list[TimeEntry], target_date: Optional[datetime] = None
    ) -> ComplianceResult:
        """8. Overtime tracking. Overtime up to the absolute maximum passes with a notice."""
        rules = self.rules
        regular = rules.max_weekly_hours_regular
        worked = total_hours(entries_for_week(entries, target_date or utc_now(), rules.timezone))
        overtime = max(0.0, worked - regular)
        details = {
            "hours_worked": round(worked, 2),
            "overtime_hours": round(overtime, 2),
            "hours_limit": rules.max_weekly_hours_absolute,
        }

        if worked <= regular:
            return ComplianceResult(
                passed=True,
                message=f"No overtime ({worked:.1f}h <= {regular:g}h)",
                rule_reference=REF_WORKING_TIME,
                rule=RuleKind.OVERTIME,
                details=details,
            )

        if worked <= rules.max_weekly_hours_absolute:
            return ComplianceResult(
                passed=True,
                severity=Severity.LOW,
                message=f"Overtime tracked: {overtime:.1f}h (within legal limit)",
                rule_reference=REF_WORKING_TIME,
                recommended_action="Ensure overtime is compensated or offset with time off",
                rule=RuleKind.OVERTIME,
                details=details,
            )

        return ComplianceResult(
            passed=False,
            severity=Severity.CRITICAL,
            message=f"Overtime ({overtime:.1f}h) causes total to exceed absolute maximum",
            rule_reference=REF_WORKING_TIME,
            recommended_action=(
                f"Total weekly hours cannot exceed {rules.max_weekly_hours_absolute:g}h including overtime"
            ),
            rule=RuleKind.OVERTIME,
            details=details,
        )

    def validate_absolute_weekly_max(
        self, entries: list[TimeEntry], target_date: Optional[datetime] = None
    ) -> ComplianceResult:
        """9. Absolute weekly maximum, overtime included."""
        rules = self.rules
        limit = rules.max_weekly_hours_absolute
        worked = total_hours(entries_for_week(entries, target_date or utc_now(), rules.timezone))
        details = {"hours_worked": round(worked, 2), "hours_limit": limit}

        if worked <= limit:
            return ComplianceResult(
                passed=True,
                message=f"Weekly hours ({worked:.1f}h) within absolute maximum",
                rule_reference=REF_WORKING_TIME,
                rule=RuleKind.ABSOLUTE_WEEKLY_MAX,
                details=details,
            )

        return ComplianceResult(
            passed=False,
            severity=Severity.CRITICAL,
            message=f"Weekly hours ({worked:.1f}h) exceed absolute maximum of {limit:g}h",
            rule_reference=REF_WORKING_TIME,
            recommended_action="Immediate action required - no further work allowed this week",
            rule=RuleKind.ABSOLUTE_WEEKLY_MAX,
            details=details,
        )

    # ------------------------------------------------------------------
    # Protected workers
    # ------------------------------------------------------------------

    def validate_adolescent_restrictions(
        self, entry: TimeEntry, entries: list[TimeEntry], user_age: Optional[int] = None
    ) -> ComplianceResult:
        """10. Stricter daily and weekly limits for workers under 18."""
        rules = self.rules
        if user_age is None or user_age >= rules.adolescent_age_threshold:
            return ComplianceResult(
                passed=True,
                message=f"Not applicable (user is {rules.adolescent_age_threshold} or older)",
                rule_reference=REF_DAILY_AND_REST,
                rule=RuleKind.ADOLESCENT_RESTRICTIONS,
            )

        daily = entry_hours(entry)
        if daily > rules.adolescent_max_daily_hours:
            return ComplianceResult(
                passed=False,
                severity=Severity.CRITICAL,
                message=(
                    f"Adolescent daily hours ({daily:.1f}h) exceed limit of "
                    f"{rules.adolescent_max_daily_hours:g}h"
                ),
                rule_reference=REF_DAILY_AND_REST,
                recommended_action=(
                    f"Adolescent workers (<{rules.adolescent_age_threshold}) have stricter hour limits"
                ),
                rule=RuleKind.ADOLESCENT_RESTRICTIONS,
                details={"hours_worked": round(daily, 2), "hours_limit": rules.adolescent_max_daily_hours},
            )

        weekly = total_hours(entries_for_week(entries, entry.clock_in, rules.timezone))
        if weekly > rules.adolescent_max_weekly_hours:
            return ComplianceResult(
                passed=False,
                severity=Severity.CRITICAL,
                message=(
                    f"Adolescent weekly hours ({weekly:.1f}h) exceed limit of "
                    f"{rules.adolescent_max_weekly_hours:g}h"
                ),
                rule_reference=REF_DAILY_AND_REST,
                recommended_action=(
                    f"Adolescent workers (<{rules.adolescent_age_threshold}) cannot work more than "
                    f"{rules.adolescent_max_weekly_hours:g}h/week"
                ),
                rule=RuleKind.ADOLESCENT_RESTRICTIONS,
                details={"hours_worked": round(weekly, 2), "hours_limit": rules.adolescent_max_weekly_hours},
            )

        return ComplianceResult(
            passed=True,
            message="Adolescent restrictions met",
            rule_reference=REF_DAILY_AND_REST,
            rule=RuleKind.ADOLESCENT_RESTRICTIONS,
        )

    def validate_pregnant_worker(self, entry: TimeEntry, is_pregnant: Optional[bool] = None) -> ComplianceResult:
        """11. No night shifts for pregnant workers."""
        rules = self.rules
        if not is_pregnant:
            return ComplianceResult(
                passed=True,
                message="Not applicable",
                rule_reference=REF_PREGNANCY,
                rule=RuleKind.PREGNANT_WORKER,
            )

        def at_night(instant: datetime) -> bool:
            return is_night_hour(instant, rules.night_work_start_hour, rules.night_work_end_hour, rules.timezone)

        clock_in_night = at_night(entry.clock_in)
        clock_out_night = entry.clock_out is not None and at_night(entry.clock_out)

        if clock_in_night or clock_out_night:
            return ComplianceResult(
                passed=False,
                severity=Severity.CRITICAL,
                message="Pregnant workers should not be assigned night shifts",
                rule_reference=REF_PREGNANCY,
                recommended_action="Reassign to daytime shift immediately",
                rule=RuleKind.PREGNANT_WORKER,
                details={"clock_in_at_night": clock_in_night, "clock_out_at_night": clock_out_night},
            )

        return ComplianceResult(
            passed=True,
            message="Pregnant worker protections met",
            rule_reference=REF_PREGNANCY,
            rule=RuleKind.PREGNANT_WORKER,
        )

    # ------------------------------------------------------------------
    # Location
    # ------------------------------------------------------------------

    def validate_geofence(self, user_coords: Coordinates, site_coords: Coordinates) -> ComplianceResult:
        """12. Clock-in location within the site's geofence."""
        rules = self.rules
        radius = rules.geofence_radius_meters
        distance = haversine_distance(user_coords, site_coords)
        details = {"distance_meters": round(distance, 1), "radius_meters": radius}

        if distance <= radius:
            return ComplianceResult(
                passed=True,
                message=f"Clock-in location verified ({distance:.1f}m from site)",
                rule_reference=REF_GEOFENCE,
                rule=RuleKind.GEOFENCE,
                details=details,
            )

        far_away = distance > radius * rules.geofence_high_severity_factor
        return ComplianceResult(
            passed=False,
            severity=Severity.HIGH if far_away else Severity.MEDIUM,
            message=f"Clock-in location ({distance:.1f}m) exceeds geofence radius ({radius:g}m)",
            rule_reference=REF_GEOFENCE,
            recommended_action="Verify employee is at correct work location",
            rule=RuleKind.GEOFENCE,
            details=details,
        )
