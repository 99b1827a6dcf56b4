"""Demo script for the multi-agent audit pipeline.

This demonstrates:
1. Running every agent over a small throwaway project
2. Conflict resolution and false-positive validation
3. Rendering the report
4. Auto-fixing the fixable findings and re-analyzing

Usage:
    python examples/demo_audit.py
"""

import asyncio
import tempfile
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from multiaudit.audit import AnalysisOrchestrator
from multiaudit.config import AuditSettings, OrchestratorOptions
from multiaudit.fix import AutoFixer
from multiaudit.report import ReportRenderer, ReportView

console = Console()


SAMPLE_SERVICE = '''"""Order service with intentional problems."""
import sys
import os
import json
import subprocess

API_TOKEN = "tok-live-0123456789abcdef"


def totalOrders(rows, verbose):
    total = 0
    for row in rows:
        if row.get("status") == None:
            continue
        try:
            total += row["amount"]
        except:
            pass
    if verbose:
        subprocess.run("echo " + str(total), shell=True)
    return total


def load_orders(path):
    return json.loads(open(path).read())


def save_orders(path, rows):
    with open(path, "w") as handle:
        handle.write(json.dumps(rows))


def main():
    print(load_orders(sys.argv[1]))
'''

SAMPLE_TEST = '''from service import load_orders

API_TOKEN = "test-token-not-a-secret"


def test_load_orders(tmp_path):
    path = tmp_path / "orders.json"
    path.write_text("[]")
    assert load_orders(path) == []
'''


def write_project(root: Path) -> Path:
    (root / "pyproject.toml").write_text('[project]\nname = "demo"\n', encoding="utf-8")
    (root / "tests").mkdir()
    (root / "tests" / "test_service.py").write_text(SAMPLE_TEST, encoding="utf-8")
    service = root / "service.py"
    service.write_text(SAMPLE_SERVICE, encoding="utf-8")
    return service


async def demo_analysis(service: Path, settings: AuditSettings):
    """Run the full pipeline and print the report."""
    console.print("\n[bold cyan]═══ Analysis ═══[/bold cyan]\n")

    orchestrator = AnalysisOrchestrator(settings=settings)
    report = await orchestrator.run([str(service), str(service.parent / "tests" / "test_service.py")])

    console.print(ReportRenderer(top_n=15).render(report, ReportView.TABLE), markup=False, highlight=False)

    if report.resolved_conflicts:
        table = Table(title="Resolved Conflicts")
        table.add_column("Type", style="cyan")
        table.add_column("Reasoning", style="yellow")
        for conflict in report.resolved_conflicts:
            table.add_row(conflict.conflict_type.value, conflict.reasoning)
        console.print(table)

    if report.false_positives:
        console.print("\n[bold]Likely false positives:[/bold]")
        for finding in report.false_positives:
            console.print(f"  • {finding.issue.location} {finding.issue.dimension} (confidence {finding.confidence})")

    return report


def demo_fixes(report, service: Path) -> None:
    """Apply fixes and show the resulting diff."""
    console.print("\n[bold cyan]═══ Auto-Fix ═══[/bold cyan]\n")

    fixer = AutoFixer()
    summary = fixer.apply_fixes([f.issue for f in report.active_findings])

    table = Table(title="Fix Results")
    table.add_column("Dimension", style="cyan")
    table.add_column("Line")
    table.add_column("Outcome", style="green")
    table.add_column("Reason", style="dim")
    for result in summary.results:
        table.add_row(result.issue.dimension, str(result.issue.line or ""), result.outcome.value, result.reason or "")
    console.print(table)
    console.print(f"Fixed {summary.fixed}, failed {summary.failed}, skipped {summary.skipped} of {summary.total}")

    console.print(Panel(Syntax(service.read_text(encoding="utf-8"), "python", line_numbers=True), title="service.py after fixes"))


async def demo_rerun(service: Path, settings: AuditSettings) -> None:
    """Re-analyze after fixing: the fixed dimensions are gone."""
    console.print("\n[bold cyan]═══ Re-analysis ═══[/bold cyan]\n")

    options = OrchestratorOptions.from_settings(settings, exclude_agents=["Documentation"])
    report = await AnalysisOrchestrator(options=options, settings=settings).run([str(service)])
    for recommendation in report.recommendations:
        console.print(f"  • {recommendation}")


async def main():
    console.print(Panel.fit("[bold]multiaudit demo[/bold]", border_style="cyan"))
    settings = AuditSettings()

    with tempfile.TemporaryDirectory() as tmp:
        service = write_project(Path(tmp))
        report = await demo_analysis(service, settings)
        demo_fixes(report, service)
        await demo_rerun(service, settings)


if __name__ == "__main__":
    asyncio.run(main())
