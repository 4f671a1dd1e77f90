"""Compliance engine that runs the rule table against a validation context."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, Optional

from dateutil import parser

from . import config
from .temporal import ensure_utc
from .types import (
    BreakEntry,
    BreakType,
    ComplianceContractError,
    ComplianceReport,
    ComplianceResult,
    ComplianceRules,
    Coordinates,
    RuleKind,
    TimeEntry,
    ValidationContext,
)
from .validators import ComplianceValidator

logger = logging.getLogger(__name__)

Evaluator = Callable[[ComplianceValidator, ValidationContext], ComplianceResult]


@dataclass(frozen=True)
class RuleSpec:
    """One row of the rule table."""
    kind: RuleKind
    title: str
    evaluate: Evaluator


RULE_TABLE: tuple[RuleSpec, ...] = (
    RuleSpec(
        RuleKind.DAILY_LIMIT,
        "Daily hours limit",
        lambda v, ctx: v.validate_daily_limit(ctx.all_entries, ctx.current_entry.clock_in),
    ),
    RuleSpec(
        RuleKind.WEEKLY_LIMIT,
        "Weekly regular hours limit",
        lambda v, ctx: v.validate_weekly_limit(ctx.all_entries, ctx.current_entry.clock_in),
    ),
    RuleSpec(
        RuleKind.REST_PERIOD,
        "Rest between shifts",
        lambda v, ctx: v.validate_rest_period(ctx.all_entries),
    ),
    RuleSpec(
        RuleKind.MANDATORY_BREAK,
        "Mandatory break",
        lambda v, ctx: v.validate_mandatory_break(ctx.current_entry, ctx.breaks),
    ),
    RuleSpec(
        RuleKind.CONTINUOUS_WORK,
        "Continuous work",
        lambda v, ctx: v.validate_continuous_work(ctx.current_entry, ctx.breaks),
    ),
    RuleSpec(
        RuleKind.WEEKLY_REST,
        "Weekly rest",
        lambda v, ctx: v.validate_weekly_rest(ctx.all_entries, ctx.current_entry.clock_in),
    ),
    RuleSpec(
        RuleKind.NIGHT_WORK,
        "Night work",
        lambda v, ctx: v.validate_night_work(ctx.current_entry),
    ),
    RuleSpec(
        RuleKind.OVERTIME,
        "Overtime tracking",
        lambda v, ctx: v.validate_overtime(ctx.all_entries, ctx.current_entry.clock_in),
    ),
    RuleSpec(
        RuleKind.ABSOLUTE_WEEKLY_MAX,
        "Absolute weekly maximum",
        lambda v, ctx: v.validate_absolute_weekly_max(ctx.all_entries, ctx.current_entry.clock_in),
    ),
    RuleSpec(
        RuleKind.ADOLESCENT_RESTRICTIONS,
        "Minor restrictions",
        lambda v, ctx: v.validate_adolescent_restrictions(ctx.current_entry, ctx.all_entries, ctx.user_age),
    ),
    RuleSpec(
        RuleKind.PREGNANT_WORKER,
        "Pregnancy protection",
        lambda v, ctx: v.validate_pregnant_worker(ctx.current_entry, ctx.is_pregnant),
    ),
    RuleSpec(
        RuleKind.GEOFENCE,
        "Geofence",
        lambda v, ctx: v.validate_geofence(ctx.user_coords, ctx.location_coords),
    ),
)


class ComplianceEngine:
    """
    Main engine for running compliance validation.

    Holds a validator bound to one rule set and walks the rule table.
    Stateless between calls. Without an explicit rule set the engine reads
    the COMPLIANCE_* settings through ComplianceRules.from_env().
    """

    def __init__(self, rules: Optional[ComplianceRules] = None):
        self.validator = ComplianceValidator(rules or ComplianceRules.from_env())

    @classmethod
    def from_env(cls) -> "ComplianceEngine":
        """
        Engine for a service process.

        Checks the environment settings, installs console logging and
        builds the rule set from COMPLIANCE_* values.
        """
        config.validate_compliance_config()
        config.setup_logging()
        engine = cls(ComplianceRules.from_env())
        logger.info(
            f"Compliance engine ready: jurisdiction {engine.rules.jurisdiction}, "
            f"timezone {engine.rules.timezone}, night hours {engine.rules.night_hours_method.value}"
        )
        return engine

    @property
    def rules(self) -> ComplianceRules:
        return self.validator.rules

    def validate_all(self, context: ValidationContext) -> list[ComplianceResult]:
        """
        Run all twelve rules.

        Args:
            context: The validation context for one worker and entry

        Returns:
            Twelve results in rule table order, failures included
        """
        return self.run(context, [spec.kind for spec in RULE_TABLE])

    def run(self, context: ValidationContext, kinds: Iterable[RuleKind]) -> list[ComplianceResult]:
        """Run the requested rules, in table order."""
        requested = set()
        for kind in kinds:
            try:
                requested.add(RuleKind(kind))
            except ValueError:
                raise ComplianceContractError(f"Unknown compliance rule: {kind!r}") from None

        self._check_context(context)

        results = []
        for spec in RULE_TABLE:
            if spec.kind not in requested:
                continue
            result = spec.evaluate(self.validator, context)
            logger.debug(
                f"{spec.kind.value} for entry {context.current_entry.id}: "
                f"{'pass' if result.passed else 'fail'} ({result.message})"
            )
            results.append(result)
        return results

    def evaluate(self, context: ValidationContext) -> ComplianceReport:
        """Run all rules and wrap the results in a report."""
        report = ComplianceReport(results=self.validate_all(context))
        highest = report.highest_severity
        logger.info(
            f"Compliance for entry {context.current_entry.id}: "
            f"{report.violation_count} violation(s), {report.warning_count} warning(s)"
            + (f", highest severity {highest.value}" if highest else "")
        )
        return report

    @staticmethod
    def _check_context(context: ValidationContext) -> None:
        entry_ids = {e.id for e in context.all_entries}
        if context.current_entry.id not in entry_ids:
            raise ComplianceContractError(
                f"Current entry {context.current_entry.id!r} is missing from the entry history"
            )

    @classmethod
    def build_context(
        cls,
        current_entry_id: str,
        entries: list[dict],
        breaks: list[dict],
        location_coords,
        user_coords=None,
        user_age: Optional[int] = None,
        is_pregnant: Optional[bool] = None,
    ) -> ValidationContext:
        """
        Build a ValidationContext from persisted rows.

        Args:
            current_entry_id: Id of the entry under evaluation
            entries: Time entry dicts (id, clock_in, clock_out, break_minutes, locations)
            breaks: Break dicts (id, time_entry_id, break_start, break_end, break_type)
            location_coords: Site coordinates, as (lat, lng) or {"lat", "lng"}
            user_coords: Worker coordinates; defaults to the entry's clock-in location
            user_age: Worker age, if known
            is_pregnant: Worker pregnancy flag, if known

        Returns:
            ValidationContext ready for validation
        """
        time_entries = [cls._row_to_entry(row) for row in entries]
        break_entries = [cls._row_to_break(row) for row in breaks]

        current = next((e for e in time_entries if e.id == str(current_entry_id)), None)
        if current is None:
            raise ComplianceContractError(
                f"Current entry {current_entry_id!r} is missing from the entry history"
            )

        worker_coords = _parse_coords(user_coords) if user_coords is not None else current.clock_in_location
        if worker_coords is None:
            raise ComplianceContractError(
                f"No clock-in coordinates for entry {current.id!r} and none supplied"
            )

        return ValidationContext(
            current_entry=current,
            all_entries=time_entries,
            breaks=break_entries,
            location_coords=_parse_coords(location_coords),
            user_coords=worker_coords,
            user_age=user_age,
            is_pregnant=is_pregnant,
        )

    @staticmethod
    def _row_to_entry(row: dict) -> TimeEntry:
        for key in ("id", "clock_in"):
            if row.get(key) is None:
                raise ComplianceContractError(f"Time entry {row.get('id')!r} has no {key}")
        return TimeEntry(
            id=str(row["id"]),
            clock_in=_parse_instant(row["clock_in"]),
            clock_out=_parse_instant(row["clock_out"]) if row.get("clock_out") else None,
            break_minutes=row.get("break_minutes") or 0,
            clock_in_location=_parse_coords(row.get("clock_in_location")),
            clock_out_location=_parse_coords(row.get("clock_out_location")),
        )

    @staticmethod
    def _row_to_break(row: dict) -> BreakEntry:
        for key in ("time_entry_id", "break_start"):
            if row.get(key) is None:
                raise ComplianceContractError(f"Break {row.get('id')!r} has no {key}")
        try:
            break_type = BreakType(row.get("break_type") or BreakType.UNPAID.value)
        except ValueError as exc:
            raise ComplianceContractError(
                f"Break {row.get('id')!r} has unknown break_type {row.get('break_type')!r}"
            ) from exc
        return BreakEntry(
            id=str(row.get("id", "")),
            time_entry_id=str(row["time_entry_id"]),
            break_start=_parse_instant(row["break_start"]),
            break_end=_parse_instant(row["break_end"]) if row.get("break_end") else None,
            break_type=break_type,
        )


def _parse_instant(value) -> datetime:
    if isinstance(value, datetime):
        return ensure_utc(value)
    try:
        return ensure_utc(parser.parse(value))
    except (ValueError, OverflowError, TypeError) as exc:
        raise ComplianceContractError(f"Unparseable timestamp: {value!r}") from exc


def _parse_coords(value) -> Optional[Coordinates]:
    if value is None:
        return None
    try:
        if isinstance(value, dict):
            return float(value["lat"]), float(value["lng"])
        lat, lng = value
        return float(lat), float(lng)
    except (KeyError, TypeError, ValueError) as exc:
        raise ComplianceContractError(f"Unusable coordinates: {value!r}") from exc


def validate_all(context: ValidationContext, rules: Optional[ComplianceRules] = None) -> list[ComplianceResult]:
    """Convenience wrapper: run all twelve rules with the given rule set, or the configured one."""
    return ComplianceEngine(rules).validate_all(context)
