"""Tests for the finding, fix and report models."""

import pytest
from pydantic import ValidationError

from multiaudit.config import AuditSettings, OrchestratorOptions
from multiaudit.models import (
    AgentReport,
    DimensionReport,
    DimensionStatus,
    FixOutcome,
    FixResult,
    FixSummary,
    Issue,
    Report,
    ReportSummary,
    Severity,
)


class TestSeverity:
    """Tests for severity ordering."""

    def test_ordering(self):
        """Critical outranks high, high outranks medium, and so on."""
        ranks = [s.rank for s in (Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW, Severity.INFO)]
        assert ranks == sorted(ranks, reverse=True)

    def test_at_least(self):
        assert Severity.HIGH.at_least(Severity.MEDIUM)
        assert Severity.HIGH.at_least(Severity.HIGH)
        assert not Severity.LOW.at_least(Severity.MEDIUM)


class TestIssue:
    """Tests for Issue validation."""

    def test_location(self, make_issue):
        assert make_issue(line=None).location == "app.py"
        assert make_issue(line=4).location == "app.py:4"
        assert make_issue(line=4, column=2).location == "app.py:4:2"

    def test_line_must_be_positive(self, make_issue):
        """Lines are 1-based."""
        with pytest.raises(ValidationError):
            make_issue(line=0)

    def test_dimension_required(self, make_issue):
        with pytest.raises(ValidationError):
            make_issue(dimension="")

    def test_frozen(self, make_issue):
        issue = make_issue()
        with pytest.raises(ValidationError):
            issue.line = 3

    def test_sort_key_puts_severe_first(self, make_issue):
        low = make_issue(severity=Severity.LOW, file="a.py")
        critical = make_issue(severity=Severity.CRITICAL, file="z.py")
        assert sorted([low, critical], key=Issue.sort_key) == [critical, low]


class TestReports:
    """Tests for dimension and agent reports."""

    def test_worst_status(self):
        assert DimensionStatus.worst([]) == DimensionStatus.PASS
        assert DimensionStatus.worst([DimensionStatus.PASS, DimensionStatus.WARNING]) == DimensionStatus.WARNING
        assert DimensionStatus.worst([DimensionStatus.WARNING, DimensionStatus.FAIL]) == DimensionStatus.FAIL

    def test_issue_counts(self, make_issue):
        report = DimensionReport(dimension="complexity", status=DimensionStatus.WARNING, issues=[make_issue()])
        agent = AgentReport(agent="CodeQuality", status=DimensionStatus.WARNING, dimension_reports=[report, report])

        assert report.issue_count == 1
        assert agent.issue_count == 2
        assert len(agent.issues) == 2

    def test_report_json_round_trip(self, make_finding):
        """The JSON view is lossless."""
        report = Report(
            files=["app.py"],
            summary=ReportSummary(total_issues=1, medium=1),
            validated_findings=[make_finding(), make_finding(false_positive=True, line=20)],
            policy_version="test",
        )

        restored = Report.model_validate_json(report.model_dump_json())

        assert restored == report
        assert len(restored.active_findings) == 1
        assert len(restored.false_positives) == 1


class TestFixSummary:
    """Tests for FixSummary aggregation."""

    def test_counts(self, make_issue):
        issue = make_issue()
        results = [
            FixResult(success=True, outcome=FixOutcome.APPLIED, issue=issue),
            FixResult(success=True, outcome=FixOutcome.ALREADY_FIXED, issue=issue),
            FixResult(success=False, outcome=FixOutcome.FAILED, issue=issue),
            FixResult(success=False, outcome=FixOutcome.MANUAL_REVIEW, issue=issue),
        ]

        summary = FixSummary.from_results(total=6, results=results, duration_ms=1.0)

        assert summary.fixed == 1
        assert summary.failed == 1
        assert summary.skipped == 4
        assert summary.fixed + summary.failed + summary.skipped == summary.total


class TestConfig:
    """Tests for settings and per-run options."""

    def test_defaults(self):
        settings = AuditSettings()
        assert settings.min_confidence == 0.5
        assert settings.debounce_ms == 500
        assert settings.complexity_warning == 10
        assert settings.complexity_critical == 20

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("MULTIAUDIT_DEBOUNCE_MS", "250")
        monkeypatch.setenv("MULTIAUDIT_FAIL_FAST", "true")

        settings = AuditSettings()

        assert settings.debounce_ms == 250
        assert settings.fail_fast is True

    def test_options_from_settings(self):
        """Explicit values win; None falls back to settings."""
        settings = AuditSettings(min_confidence=0.7)

        options = OrchestratorOptions.from_settings(settings, auto_fix=True, min_confidence=None)

        assert options.auto_fix is True
        assert options.min_confidence == 0.7
