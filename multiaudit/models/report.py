"""Run-level report models."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from multiaudit.models.findings import (
    AgentReport,
    ConflictResolution,
    Severity,
    ValidatedFinding,
)
from multiaudit.models.fixes import FixSummary


class ReportSummary(BaseModel):
    """Counts over validated, de-duplicated, non-false-positive findings."""

    model_config = ConfigDict(frozen=True)

    total_issues: int = 0
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    info: int = 0
    false_positives: int = 0
    auto_fixable: int = 0
    auto_fixed: int = 0
    conflicts_resolved: int = 0
    files_skipped: int = 0

    def count_for(self, severity: Severity) -> int:
        return getattr(self, severity.value)


class SkippedFile(BaseModel):
    """A file left out of the run because it could not be parsed."""

    model_config = ConfigDict(frozen=True)

    file: str
    reason: str


class Report(BaseModel):
    """Terminal artifact of an orchestrator run."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    files: list[str] = Field(default_factory=list)
    agent_reports: list[AgentReport] = Field(default_factory=list)
    duration_ms: float = 0.0
    summary: ReportSummary = Field(default_factory=ReportSummary)
    resolved_conflicts: list[ConflictResolution] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    validated_findings: list[ValidatedFinding] = Field(default_factory=list)
    skipped_files: list[SkippedFile] = Field(default_factory=list)
    fix_summary: FixSummary | None = None
    policy_version: str = ""

    @property
    def active_findings(self) -> list[ValidatedFinding]:
        """Findings that count towards the summary."""
        return [f for f in self.validated_findings if not f.is_false_positive]

    @property
    def false_positives(self) -> list[ValidatedFinding]:
        return [f for f in self.validated_findings if f.is_false_positive]
