"""Data models shared across agents, orchestrator, fixer and reporter."""

from .findings import (
    AgentReport,
    ConflictResolution,
    ConflictType,
    DimensionReport,
    DimensionStatus,
    Issue,
    Severity,
    ValidatedFinding,
)
from .fixes import FixOutcome, FixResult, FixSummary
from .report import Report, ReportSummary, SkippedFile

__all__ = [
    # Findings
    "AgentReport",
    "ConflictResolution",
    "ConflictType",
    "DimensionReport",
    "DimensionStatus",
    "Issue",
    "Severity",
    "ValidatedFinding",
    # Fixes
    "FixOutcome",
    "FixResult",
    "FixSummary",
    # Report
    "Report",
    "ReportSummary",
    "SkippedFile",
]
