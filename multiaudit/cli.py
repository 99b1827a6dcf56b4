"""
multiaudit command line.

Usage:
    multiaudit analyze src/ --format table
    multiaudit watch src/ --fix
    multiaudit report src/ -o audit.json --html --fail-on high
"""

import asyncio
import logging
import sys
from pathlib import Path

import click
import structlog

from multiaudit import __version__
from multiaudit.audit import AnalysisOrchestrator, exceeds_threshold, exit_code, expand_paths
from multiaudit.config import AuditSettings, OrchestratorOptions, get_settings
from multiaudit.errors import AgentExecutionError, WatchError
from multiaudit.models import Report, Severity
from multiaudit.report import ReportRenderer, ReportView, save_report
from multiaudit.watch import WatchSession


def configure_logging(verbose: bool = False) -> None:
    """Send structlog output to stderr so stdout carries only the report."""
    level = logging.DEBUG if verbose else logging.WARNING
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%H:%M:%S"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def _split_agents(values: tuple[str, ...]) -> list[str]:
    """Accept both ``--exclude A --exclude B`` and ``--exclude A,B``."""
    return [name.strip() for value in values for name in value.split(",") if name.strip()]


def _collect_files(paths: tuple[str, ...], settings: AuditSettings) -> list[str]:
    try:
        return expand_paths(list(paths), settings.exclude_dirs)
    except FileNotFoundError as e:
        raise click.BadParameter(str(e), param_hint="PATHS") from e


def _build_orchestrator(
    settings: AuditSettings,
    fix: bool,
    exclude: tuple[str, ...],
    min_confidence: float | None = None,
    fail_fast: bool | None = None,
) -> AnalysisOrchestrator:
    options = OrchestratorOptions.from_settings(
        settings,
        auto_fix=fix or None,
        fail_fast=fail_fast or None,
        min_confidence=min_confidence,
        exclude_agents=_split_agents(exclude),
    )
    return AnalysisOrchestrator(options=options, settings=settings)


def _run_analysis(orchestrator: AnalysisOrchestrator, files: list[str]) -> Report:
    try:
        return asyncio.run(orchestrator.run(files))
    except AgentExecutionError as e:
        raise click.ClickException(str(e)) from e


_paths_argument = click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True))
_exclude_option = click.option(
    "--exclude",
    multiple=True,
    metavar="AGENTS",
    help="Agents to skip (repeat or comma-separate).",
)
_verbose_option = click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")


@click.group()
@click.version_option(version=__version__, prog_name="multiaudit")
def cli() -> None:
    """multiaudit: multi-agent source audit for Python projects."""


@cli.command()
@_paths_argument
@click.option(
    "--format",
    "view",
    type=click.Choice([v.value for v in ReportView]),
    default=ReportView.TABLE.value,
    show_default=True,
    help="Output view.",
)
@click.option("--fix", is_flag=True, help="Apply automatic fixes to fixable findings.")
@_exclude_option
@click.option("--min-confidence", type=click.FloatRange(0.0, 1.0), default=None, help="Validation threshold.")
@click.option("--fail-fast", is_flag=True, help="Abort on the first agent error.")
@click.option("--top-n", type=click.IntRange(min=1), default=None, help="Issues listed in summary views.")
@_verbose_option
def analyze(
    paths: tuple[str, ...],
    view: str,
    fix: bool,
    exclude: tuple[str, ...],
    min_confidence: float | None,
    fail_fast: bool,
    top_n: int | None,
    verbose: bool,
) -> None:
    """Analyze PATHS and print the report.

    Exits 2 if critical issues remain, 1 for high-severity issues, 0 otherwise.
    """
    configure_logging(verbose)
    settings = get_settings()

    files = _collect_files(paths, settings)
    if not files:
        click.secho("No Python files found", fg="yellow", err=True)
        return

    orchestrator = _build_orchestrator(settings, fix, exclude, min_confidence, fail_fast)
    report = _run_analysis(orchestrator, files)

    renderer = ReportRenderer(top_n=top_n or settings.top_n)
    click.echo(renderer.render(report, ReportView(view)))
    sys.exit(exit_code(report.summary))


@cli.command()
@_paths_argument
@click.option("--fix", is_flag=True, help="Apply automatic fixes after each run.")
@click.option("--debounce", "debounce_ms", type=click.IntRange(min=0), default=None, help="Debounce window in ms.")
@_exclude_option
@click.option(
    "--exclude-patterns",
    multiple=True,
    metavar="GLOB",
    help="File patterns to ignore (repeat or comma-separate).",
)
@click.option("--poll-interval", type=click.FloatRange(min=0.05), default=None, help="Seconds between polls.")
@click.option("--min-confidence", type=click.FloatRange(0.0, 1.0), default=None, help="Validation threshold.")
@click.option("--fail-fast", is_flag=True, help="Abort a run on the first agent error.")
@click.option("--no-clear", is_flag=True, help="Keep earlier output instead of clearing the screen per run.")
@_verbose_option
def watch(
    paths: tuple[str, ...],
    fix: bool,
    debounce_ms: int | None,
    exclude: tuple[str, ...],
    exclude_patterns: tuple[str, ...],
    poll_interval: float | None,
    min_confidence: float | None,
    fail_fast: bool,
    no_clear: bool,
    verbose: bool,
) -> None:
    """Re-analyze PATHS whenever a Python file changes. Stop with Ctrl+C."""
    configure_logging(verbose)
    settings = get_settings()

    session = WatchSession(
        list(paths),
        _build_orchestrator(settings, fix, exclude, min_confidence, fail_fast),
        debounce_ms=settings.debounce_ms if debounce_ms is None else debounce_ms,
        poll_interval=poll_interval or settings.poll_interval,
        exclude_patterns=_split_agents(exclude_patterns),
        clear_screen=not no_clear,
    )
    click.secho(f"Watching {', '.join(paths)} (Ctrl+C to stop)", fg="cyan", err=True)
    try:
        asyncio.run(session.run())
    except WatchError as e:
        raise click.ClickException(str(e)) from e


@cli.command()
@_paths_argument
@click.option(
    "--output",
    "-o",
    "output",
    type=click.Path(dir_okay=False),
    default="multiaudit-report.json",
    show_default=True,
    help="Where to write the JSON report.",
)
@click.option("--html", "with_html", is_flag=True, help="Also write an HTML report next to the JSON one.")
@click.option(
    "--fail-on",
    type=click.Choice([s.value for s in Severity]),
    default=None,
    help="Exit 1 if issues at or above this severity exist.",
)
@_exclude_option
@_verbose_option
def report(
    paths: tuple[str, ...],
    output: str,
    with_html: bool,
    fail_on: str | None,
    exclude: tuple[str, ...],
    verbose: bool,
) -> None:
    """Analyze PATHS and save the report to disk."""
    configure_logging(verbose)
    settings = get_settings()

    files = _collect_files(paths, settings)
    if not files:
        click.secho("No Python files found", fg="yellow", err=True)
        return

    result = _run_analysis(_build_orchestrator(settings, False, exclude), files)

    json_path = save_report(result, output, ReportView.JSON, top_n=settings.top_n)
    click.echo(f"Report written to {json_path}")
    if with_html:
        html_path = save_report(result, Path(output).with_suffix(".html"), ReportView.HTML, top_n=settings.top_n)
        click.echo(f"HTML report written to {html_path}")

    summary = result.summary
    click.echo(
        f"{summary.total_issues} issue(s): {summary.critical} critical, {summary.high} high, "
        f"{summary.medium} medium, {summary.low} low, {summary.info} info"
    )
    if fail_on and exceeds_threshold(summary, Severity(fail_on)):
        sys.exit(1)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
