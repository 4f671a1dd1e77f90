from pydantic import BaseModel, ConfigDict, Field

from .types import ComplianceReport, ComplianceResult


class ComplianceResultSchema(BaseModel):
    """One rule verdict as returned by the API and stored for reports."""
    model_config = ConfigDict(populate_by_name=True)

    rule: str | None = None  # "daily_limit", "rest_period", etc.
    passed: bool = Field(alias="pass")
    check_result: str  # "pass", "warning", "violation"
    severity: str | None = None  # "low", "medium", "high", "critical"
    message: str
    rule_reference: str | None = None
    recommended_action: str | None = None
    details: dict = {}

    @classmethod
    def from_result(cls, result: ComplianceResult) -> "ComplianceResultSchema":
        return cls.model_validate(result.to_dict())


class ComplianceReportSchema(BaseModel):
    is_compliant: bool
    violation_count: int
    warning_count: int
    highest_severity: str | None = None
    results: list[ComplianceResultSchema]

    @classmethod
    def from_report(cls, report: ComplianceReport) -> "ComplianceReportSchema":
        return cls(
            is_compliant=report.is_compliant,
            violation_count=report.violation_count,
            warning_count=report.warning_count,
            highest_severity=report.highest_severity.value if report.highest_severity else None,
            results=[ComplianceResultSchema.from_result(r) for r in report.results],
        )
