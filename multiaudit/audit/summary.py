"""Aggregation, recommendations and exit codes.

All functions here are pure: the same findings always give the same
summary, and the same summary always gives the same recommendations and
exit code.
"""

from multiaudit.models import ReportSummary, Severity, ValidatedFinding

# Number of high-severity findings that calls for a dedicated pass
HIGH_VOLUME_THRESHOLD = 5

EXIT_OK = 0
EXIT_HIGH = 1
EXIT_CRITICAL = 2


def build_summary(
    findings: list[ValidatedFinding],
    conflicts_resolved: int = 0,
    files_skipped: int = 0,
    auto_fixed: int = 0,
) -> ReportSummary:
    """Count findings by severity, excluding false positives.

    Args:
        findings: Validated findings of one run
        conflicts_resolved: Number of conflict sets folded by the resolver
        files_skipped: Number of unparseable files
        auto_fixed: Number of fixes applied in this run

    Returns:
        ReportSummary whose per-severity counts sum to ``total_issues``
    """
    counts = {severity: 0 for severity in Severity}
    false_positives = 0
    fixable = 0
    for finding in findings:
        if finding.is_false_positive:
            false_positives += 1
            continue
        counts[finding.issue.severity] += 1
        if finding.issue.fixable:
            fixable += 1

    return ReportSummary(
        total_issues=sum(counts.values()),
        critical=counts[Severity.CRITICAL],
        high=counts[Severity.HIGH],
        medium=counts[Severity.MEDIUM],
        low=counts[Severity.LOW],
        info=counts[Severity.INFO],
        false_positives=false_positives,
        auto_fixable=fixable,
        auto_fixed=auto_fixed,
        conflicts_resolved=conflicts_resolved,
        files_skipped=files_skipped,
    )


def build_recommendations(summary: ReportSummary) -> list[str]:
    """Ordered, human-readable next steps for a summary."""
    recommendations = []

    if summary.critical:
        recommendations.append(f"Fix {summary.critical} critical issue(s) before merging")
    if summary.high >= HIGH_VOLUME_THRESHOLD:
        recommendations.append(f"{summary.high} high-severity issues: schedule a dedicated remediation pass")
    elif summary.high:
        recommendations.append(f"Review {summary.high} high-severity issue(s)")

    remaining_fixable = summary.auto_fixable - summary.auto_fixed
    if remaining_fixable > 0:
        recommendations.append(f"{remaining_fixable} issue(s) can be fixed automatically: run with --fix")
    if summary.auto_fixed:
        recommendations.append(f"{summary.auto_fixed} issue(s) were fixed automatically; review the diff")

    if summary.conflicts_resolved:
        recommendations.append(
            f"{summary.conflicts_resolved} set(s) of overlapping findings were merged; see resolved conflicts"
        )
    if summary.false_positives:
        recommendations.append(f"{summary.false_positives} likely false positive(s) were excluded from the counts")
    if summary.files_skipped:
        recommendations.append(f"{summary.files_skipped} file(s) could not be parsed and were skipped")

    if summary.total_issues == 0 and not summary.files_skipped:
        recommendations.append("No issues found")
    return recommendations


def exit_code(summary: ReportSummary) -> int:
    """2 when critical issues exist, 1 for high, 0 otherwise."""
    if summary.critical:
        return EXIT_CRITICAL
    if summary.high:
        return EXIT_HIGH
    return EXIT_OK


def exceeds_threshold(summary: ReportSummary, severity: Severity) -> bool:
    """True if any counted issue is at or above ``severity``."""
    return any(summary.count_for(s) for s in Severity if s.at_least(severity))
