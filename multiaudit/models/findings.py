"""Finding models shared by every agent.

Defines the vocabulary all detectors emit into:
- Issue: a single finding
- DimensionReport: one agent's result for one dimension on one file
- AgentReport: one agent's aggregate for a run
- ValidatedFinding / ConflictResolution: products of reconciliation
"""

from enum import Enum
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field, computed_field


class Severity(str, Enum):
    """Issue severity, ordered critical > high > medium > low > info."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def at_least(self, other: "Severity") -> bool:
        return self.rank >= other.rank


_SEVERITY_RANK = {
    Severity.CRITICAL: 4,
    Severity.HIGH: 3,
    Severity.MEDIUM: 2,
    Severity.LOW: 1,
    Severity.INFO: 0,
}


class DimensionStatus(str, Enum):
    """Outcome of a dimension check."""

    PASS = "pass"
    WARNING = "warning"
    FAIL = "fail"

    @classmethod
    def worst(cls, statuses: Iterable["DimensionStatus"]) -> "DimensionStatus":
        result = cls.PASS
        for status in statuses:
            if status == cls.FAIL:
                return cls.FAIL
            if status == cls.WARNING:
                result = cls.WARNING
        return result


class Issue(BaseModel):
    """One finding emitted by an agent."""

    model_config = ConfigDict(frozen=True)

    dimension: str = Field(..., min_length=1)
    file: str
    line: int | None = Field(default=None, ge=1)
    column: int | None = Field(default=None, ge=1)
    message: str
    severity: Severity
    suggestion: str | None = None
    estimated_effort: str | None = None
    fixable: bool = False
    references: list[str] = Field(default_factory=list)
    related_files: list[str] = Field(default_factory=list)

    @property
    def location(self) -> str:
        if self.line is None:
            return self.file
        if self.column is None:
            return f"{self.file}:{self.line}"
        return f"{self.file}:{self.line}:{self.column}"

    def sort_key(self) -> tuple:
        """Canonical ordering used for deterministic output."""
        return (
            -self.severity.rank,
            self.file,
            self.line or 0,
            self.column or 0,
            self.dimension,
            self.message,
        )


class DimensionReport(BaseModel):
    """One agent's result for one dimension on one file."""

    model_config = ConfigDict(frozen=True)

    dimension: str
    status: DimensionStatus
    issues: list[Issue] = Field(default_factory=list)
    metrics: dict[str, float] = Field(default_factory=dict)
    duration_ms: float = 0.0

    @computed_field
    @property
    def issue_count(self) -> int:
        return len(self.issues)


class AgentReport(BaseModel):
    """One agent's aggregate for a run."""

    model_config = ConfigDict(frozen=True)

    agent: str
    status: DimensionStatus
    dimension_reports: list[DimensionReport] = Field(default_factory=list)
    duration_ms: float = 0.0

    @computed_field
    @property
    def issue_count(self) -> int:
        return sum(r.issue_count for r in self.dimension_reports)

    @property
    def issues(self) -> list[Issue]:
        return [issue for report in self.dimension_reports for issue in report.issues]


class ValidatedFinding(BaseModel):
    """An issue after conflict resolution and false-positive validation."""

    model_config = ConfigDict(frozen=True)

    issue: Issue
    agent: str
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    is_false_positive: bool = False
    validated_by: list[str] = Field(default_factory=list)
    reasons: list[str] = Field(default_factory=list)


class ConflictType(str, Enum):
    """How colliding issues relate to each other."""

    DUPLICATE = "duplicate"  # same dimension reported more than once
    SEVERITY = "severity"  # related dimensions disagreeing on severity
    OVERLAP = "overlap"  # related dimensions, same severity


class ConflictResolution(BaseModel):
    """How a set of issues describing one defect was reconciled."""

    model_config = ConfigDict(frozen=True)

    conflict_type: ConflictType
    issues: list[Issue]
    strategy: str
    reasoning: str
    winner: Issue
    winner_agent: str
