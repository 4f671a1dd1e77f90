"""Labor law compliance validation for attendance records."""

from .types import (
    BreakEntry,
    BreakType,
    CheckResult,
    ComplianceContractError,
    ComplianceReport,
    ComplianceResult,
    ComplianceRules,
    NightHoursMethod,
    RuleKind,
    Severity,
    TimeEntry,
    ValidationContext,
)
from .engine import RULE_TABLE, ComplianceEngine, RuleSpec, validate_all
from .validators import ComplianceValidator

__all__ = [
    "BreakEntry",
    "BreakType",
    "CheckResult",
    "ComplianceContractError",
    "ComplianceReport",
    "ComplianceResult",
    "ComplianceRules",
    "NightHoursMethod",
    "RuleKind",
    "Severity",
    "TimeEntry",
    "ValidationContext",
    "RULE_TABLE",
    "ComplianceEngine",
    "RuleSpec",
    "validate_all",
    "ComplianceValidator",
]
