"""Report rendering.

Renders a Report into one of several views. ``json`` and ``sarif`` are
complete; the human-oriented views list at most ``top_n`` findings and
say so when they truncate.
"""

import html
import io
import json
from enum import Enum
from pathlib import Path
from typing import Any

import structlog
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from multiaudit import __version__
from multiaudit.agents import get_dimension
from multiaudit.models import Report, Severity, ValidatedFinding

logger = structlog.get_logger()


class ReportView(str, Enum):
    """Output views for reports."""

    JSON = "json"
    TABLE = "table"
    DETAILED = "detailed"
    MARKDOWN = "markdown"
    SARIF = "sarif"  # Static Analysis Results Interchange Format
    HTML = "html"


_SARIF_LEVELS = {
    Severity.CRITICAL: "error",
    Severity.HIGH: "error",
    Severity.MEDIUM: "warning",
    Severity.LOW: "note",
    Severity.INFO: "note",
}

_SEVERITY_STYLES = {
    Severity.CRITICAL: "bold red",
    Severity.HIGH: "red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "cyan",
    Severity.INFO: "dim",
}


def truncation_notice(shown: int, total: int) -> str | None:
    if total > shown:
        return f"Showing {shown} of {total} issues"
    return None


class ReportRenderer:
    """Renders Reports in various views."""

    def __init__(self, top_n: int = 20, width: int = 120):
        self.top_n = top_n
        self.width = width
        self._logger = logger.bind(component="ReportRenderer")

    def render(self, report: Report, view: ReportView = ReportView.TABLE) -> str:
        """Render a report.

        Args:
            report: The report to render
            view: Output view

        Returns:
            Rendered text
        """
        match view:
            case ReportView.JSON:
                return report.model_dump_json(indent=2)
            case ReportView.TABLE:
                return self._render_table(report)
            case ReportView.DETAILED:
                return self._render_detailed(report)
            case ReportView.MARKDOWN:
                return self._render_markdown(report)
            case ReportView.SARIF:
                return self._render_sarif(report)
            case ReportView.HTML:
                return self._render_html(report)
            case _:
                raise ValueError(f"Unknown report view: {view}")

    def _top(self, report: Report) -> tuple[list[ValidatedFinding], str | None]:
        findings = report.active_findings
        shown = findings[: self.top_n]
        return shown, truncation_notice(len(shown), len(findings))

    def _console(self) -> tuple[Console, io.StringIO]:
        buffer = io.StringIO()
        console = Console(file=buffer, width=self.width, color_system=None, highlight=False)
        return console, buffer

    def _summary_table(self, report: Report) -> Table:
        s = report.summary
        table = Table(title="Summary", show_header=False)
        table.add_column("Metric")
        table.add_column("Value", justify="right")
        table.add_row("Files analyzed", str(len(report.files)))
        table.add_row("Files skipped", str(s.files_skipped))
        table.add_row("Total issues", str(s.total_issues))
        for severity in Severity:
            table.add_row(f"  {severity.value}", str(s.count_for(severity)))
        table.add_row("False positives", str(s.false_positives))
        table.add_row("Conflicts resolved", str(s.conflicts_resolved))
        table.add_row("Auto-fixable", str(s.auto_fixable))
        table.add_row("Auto-fixed", str(s.auto_fixed))
        table.add_row("Duration", f"{report.duration_ms:.0f} ms")
        return table

    def _render_table(self, report: Report) -> str:
        console, buffer = self._console()
        console.print(self._summary_table(report))

        shown, notice = self._top(report)
        if shown:
            table = Table(title="Issues")
            table.add_column("Severity")
            table.add_column("Location")
            table.add_column("Dimension")
            table.add_column("Message")
            for finding in shown:
                issue = finding.issue
                table.add_row(
                    f"[{_SEVERITY_STYLES[issue.severity]}]{issue.severity.value}[/]",
                    escape(issue.location),
                    issue.dimension,
                    escape(issue.message),
                )
            console.print(table)
        if notice:
            console.print(notice)

        for recommendation in report.recommendations:
            console.print(f"- {escape(recommendation)}")
        return buffer.getvalue()

    def _render_detailed(self, report: Report) -> str:
        console, buffer = self._console()
        console.print(self._summary_table(report))

        agents = Table(title="Agents")
        agents.add_column("Agent")
        agents.add_column("Status")
        agents.add_column("Issues", justify="right")
        agents.add_column("Duration", justify="right")
        for agent in report.agent_reports:
            agents.add_row(agent.agent, agent.status.value, str(agent.issue_count), f"{agent.duration_ms:.0f} ms")
        console.print(agents)

        shown, notice = self._top(report)
        for finding in shown:
            issue = finding.issue
            spec = get_dimension(issue.dimension)
            console.print(
                f"[{_SEVERITY_STYLES[issue.severity]}]{issue.severity.value.upper()}[/] "
                f"{escape(issue.location)} {spec.title} ({finding.agent})"
            )
            console.print(f"    {escape(issue.message)}")
            if issue.suggestion:
                console.print(f"    Fix: {escape(issue.suggestion)}")
            if issue.related_files:
                console.print(f"    Related: {escape(', '.join(issue.related_files))}")
            if len(finding.validated_by) > 1:
                console.print(f"    Confirmed by: {', '.join(finding.validated_by)}")
        if notice:
            console.print(notice)

        if report.resolved_conflicts:
            console.print(f"\nResolved conflicts ({len(report.resolved_conflicts)}):")
            for conflict in report.resolved_conflicts:
                console.print(f"  {conflict.conflict_type.value}: {escape(conflict.reasoning)}")

        if report.skipped_files:
            console.print("\nSkipped files:")
            for skipped in report.skipped_files:
                console.print(f"  {escape(skipped.file)}: {escape(skipped.reason)}")

        if report.fix_summary:
            fs = report.fix_summary
            console.print(f"\nAuto-fix: {fs.fixed} fixed, {fs.failed} failed, {fs.skipped} skipped of {fs.total}")

        if report.recommendations:
            console.print("\nRecommendations:")
            for recommendation in report.recommendations:
                console.print(f"  - {escape(recommendation)}")
        return buffer.getvalue()

    def _render_markdown(self, report: Report) -> str:
        lines = []
        s = report.summary

        lines.append("# Code Audit Report")
        lines.append("")
        lines.append(f"**Generated:** {report.timestamp.isoformat()}")
        lines.append(f"**Policy:** {report.policy_version}")
        lines.append("")

        lines.append("## Summary")
        lines.append("")
        lines.append("| Metric | Value |")
        lines.append("|--------|-------|")
        lines.append(f"| Files Analyzed | {len(report.files)} |")
        lines.append(f"| Total Issues | {s.total_issues} |")
        for severity in Severity:
            lines.append(f"| {severity.value.capitalize()} | {s.count_for(severity)} |")
        lines.append(f"| False Positives | {s.false_positives} |")
        lines.append(f"| Conflicts Resolved | {s.conflicts_resolved} |")
        lines.append(f"| Auto-fixed | {s.auto_fixed} |")
        lines.append("")

        shown, notice = self._top(report)
        lines.append("## Issues")
        lines.append("")
        if shown:
            lines.append("| Severity | Location | Dimension | Message |")
            lines.append("|----------|----------|-----------|---------|")
            for finding in shown:
                issue = finding.issue
                message = issue.message.replace("|", "\\|")
                lines.append(f"| {issue.severity.value} | `{issue.location}` | {issue.dimension} | {message} |")
            lines.append("")
        else:
            lines.append("No issues found.")
            lines.append("")
        if notice:
            lines.append(f"_{notice}_")
            lines.append("")

        if report.recommendations:
            lines.append("## Recommendations")
            lines.append("")
            for recommendation in report.recommendations:
                lines.append(f"- {recommendation}")
            lines.append("")

        return "\n".join(lines)

    def _render_sarif(self, report: Report) -> str:
        """Render as SARIF 2.1.0 for code-scanning integrations."""
        sarif = {
            "$schema": "https://json.schemastore.org/sarif-2.1.0.json",
            "version": "2.1.0",
            "runs": [
                {
                    "tool": {
                        "driver": {
                            "name": "multiaudit",
                            "version": __version__,
                            "rules": self._sarif_rules(report),
                        }
                    },
                    "results": self._sarif_results(report),
                }
            ],
        }
        return json.dumps(sarif, indent=2)

    def _sarif_rules(self, report: Report) -> list[dict[str, Any]]:
        rules: dict[str, dict[str, Any]] = {}
        for finding in report.active_findings:
            dimension = finding.issue.dimension
            if dimension in rules:
                continue
            spec = get_dimension(dimension)
            rules[dimension] = {
                "id": dimension,
                "name": spec.title,
                "shortDescription": {"text": spec.title},
                "fullDescription": {"text": spec.description},
                "defaultConfiguration": {"level": _SARIF_LEVELS[spec.default_severity]},
            }
        return [rules[key] for key in sorted(rules)]

    def _sarif_results(self, report: Report) -> list[dict[str, Any]]:
        results = []
        for finding in report.active_findings:
            issue = finding.issue
            region: dict[str, int] = {"startLine": issue.line or 1}
            if issue.column:
                region["startColumn"] = issue.column
            result: dict[str, Any] = {
                "ruleId": issue.dimension,
                "level": _SARIF_LEVELS[issue.severity],
                "message": {"text": issue.message},
                "locations": [
                    {
                        "physicalLocation": {
                            "artifactLocation": {"uri": Path(issue.file).as_posix()},
                            "region": region,
                        }
                    }
                ],
                "properties": {"agent": finding.agent, "confidence": finding.confidence},
            }
            if issue.suggestion:
                result["properties"]["suggestion"] = issue.suggestion
            results.append(result)
        return results

    def _render_html(self, report: Report) -> str:
        s = report.summary
        shown, notice = self._top(report)
        esc = html.escape

        rows = "\n".join(
            "<tr class=\"{sev}\"><td>{sev}</td><td><code>{loc}</code></td><td>{dim}</td><td>{msg}</td></tr>".format(
                sev=esc(f.issue.severity.value),
                loc=esc(f.issue.location),
                dim=esc(f.issue.dimension),
                msg=esc(f.issue.message),
            )
            for f in shown
        )
        counts = "".join(
            f"<li>{esc(severity.value)}: {s.count_for(severity)}</li>" for severity in Severity
        )
        recommendations = "".join(f"<li>{esc(r)}</li>" for r in report.recommendations)
        notice_html = f"<p class=\"notice\">{esc(notice)}</p>" if notice else ""

        return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>Code Audit Report</title>
<style>
body {{ font-family: sans-serif; margin: 2em; }}
table {{ border-collapse: collapse; width: 100%; }}
td, th {{ border: 1px solid #ccc; padding: 4px 8px; text-align: left; }}
tr.critical td:first-child {{ color: #b00; font-weight: bold; }}
tr.high td:first-child {{ color: #d33; }}
tr.medium td:first-child {{ color: #b80; }}
</style>
</head>
<body>
<h1>Code Audit Report</h1>
<p>Generated {esc(report.timestamp.isoformat())} &middot; policy {esc(report.policy_version)}</p>
<h2>Summary</h2>
<p>{s.total_issues} issue(s) in {len(report.files)} file(s)</p>
<ul>{counts}</ul>
<h2>Issues</h2>
<table>
<tr><th>Severity</th><th>Location</th><th>Dimension</th><th>Message</th></tr>
{rows}
</table>
{notice_html}
<h2>Recommendations</h2>
<ul>{recommendations}</ul>
</body>
</html>
"""


_VIEW_BY_SUFFIX = {
    ".json": ReportView.JSON,
    ".md": ReportView.MARKDOWN,
    ".sarif": ReportView.SARIF,
    ".html": ReportView.HTML,
    ".htm": ReportView.HTML,
    ".txt": ReportView.DETAILED,
}


def save_report(
    report: Report,
    output_path: str | Path,
    view: ReportView | None = None,
    top_n: int = 20,
) -> Path:
    """Render and write a report; the view is inferred from the suffix if omitted."""
    path = Path(output_path)
    if view is None:
        view = _VIEW_BY_SUFFIX.get(path.suffix.lower(), ReportView.JSON)

    path.write_text(ReportRenderer(top_n=top_n).render(report, view), encoding="utf-8")
    logger.info("Report saved", path=str(path), view=view.value)
    return path


def load_report(path: str | Path) -> Report:
    """Read a report previously saved with the JSON view."""
    return Report.model_validate_json(Path(path).read_text(encoding="utf-8"))
