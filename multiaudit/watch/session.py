"""Watch session: poller + scheduler + orchestrator + console display."""

import asyncio
import signal
from datetime import datetime
from pathlib import Path

import structlog
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from multiaudit.audit import AnalysisOrchestrator
from multiaudit.errors import WatchError
from multiaudit.models import Report, Severity
from multiaudit.watch.poller import PollingWatcher
from multiaudit.watch.scheduler import WatchScheduler, WatchStatistics

logger = structlog.get_logger()

_SEVERITY_STYLES = {
    Severity.CRITICAL: "bold red",
    Severity.HIGH: "red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "cyan",
    Severity.INFO: "dim",
}

# Findings shown per run in the live display
DISPLAY_LIMIT = 5


class WatchSession:
    """Runs watch mode until interrupted or a watched path vanishes."""

    def __init__(
        self,
        paths: list[str | Path],
        orchestrator: AnalysisOrchestrator,
        debounce_ms: int = 500,
        poll_interval: float = 1.0,
        exclude_patterns: list[str] | None = None,
        console: Console | None = None,
        clear_screen: bool = True,
    ):
        self.orchestrator = orchestrator
        self.clear_screen = clear_screen
        self.console = console or Console()
        self.scheduler = WatchScheduler(self._analyze, debounce_ms=debounce_ms, on_report=self._display)
        self.poller = PollingWatcher(
            paths,
            on_change=self.scheduler.notify_change,
            interval=poll_interval,
            exclude_patterns=exclude_patterns,
            exclude_dirs=orchestrator.settings.exclude_dirs,
        )
        self._stop = asyncio.Event()
        self._logger = logger.bind(component="WatchSession")

    async def _analyze(self, files: list[str]) -> Report:
        return await self.orchestrator.run(files)

    def _display(self, report: Report, files: list[str]) -> None:
        if self.clear_screen:
            self.console.clear()
        summary = report.summary
        stamp = datetime.now().strftime("%H:%M:%S")
        label = escape(", ".join(Path(f).name for f in files))
        status = "green" if summary.total_issues == 0 else _SEVERITY_STYLES[
            next((s for s in Severity if summary.count_for(s)), Severity.INFO)
        ]
        line = f"[dim]{stamp}[/dim] {label}: [{status}]{summary.total_issues} issue(s)[/{status}]"
        if summary.auto_fixed:
            line += f", [green]{summary.auto_fixed} fixed[/green]"
        if report.skipped_files:
            line += f", [yellow]skipped: {escape(report.skipped_files[0].reason)}[/yellow]"
        self.console.print(line)

        for finding in report.active_findings[:DISPLAY_LIMIT]:
            issue = finding.issue
            style = _SEVERITY_STYLES[issue.severity]
            self.console.print(
                f"  [{style}]{issue.severity.value:<8}[/{style}] {escape(issue.location)}  {escape(issue.message)}",
                highlight=False,
            )
        hidden = len(report.active_findings) - DISPLAY_LIMIT
        if hidden > 0:
            self.console.print(f"  [dim]... and {hidden} more[/dim]")

    def request_stop(self) -> None:
        self._stop.set()

    def print_statistics(self) -> None:
        stats = self.scheduler.statistics
        table = Table(title="Watch session")
        table.add_column("Metric")
        table.add_column("Value", justify="right")
        table.add_row("Runs", str(stats.runs))
        table.add_row("Queued runs", str(stats.queued_runs))
        table.add_row("Failed runs", str(stats.failed_runs))
        table.add_row("Issues reported", str(stats.total_issues))
        table.add_row("Issues fixed", str(stats.total_fixed))
        table.add_row("Average duration", f"{stats.average_duration_ms:.0f} ms")
        self.console.print(table)

    def _install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> list[signal.Signals]:
        installed = []
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_stop)
                installed.append(sig)
            except (NotImplementedError, RuntimeError):
                # Not supported on this platform or outside the main thread
                continue
        return installed

    async def run(self) -> WatchStatistics:
        """Watch until stopped; returns the session statistics.

        Raises:
            WatchError: If a watched path disappears
        """
        loop = asyncio.get_running_loop()
        installed = self._install_signal_handlers(loop)
        poll_task = asyncio.create_task(self.poller.run())
        stop_task = asyncio.create_task(self._stop.wait())
        error: BaseException | None = None

        try:
            done, _ = await asyncio.wait({poll_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
            if poll_task in done:
                error = poll_task.exception()
        finally:
            self.poller.stop()
            stop_task.cancel()
            await self.scheduler.stop()
            await asyncio.gather(poll_task, stop_task, return_exceptions=True)
            for sig in installed:
                loop.remove_signal_handler(sig)

        if error is not None:
            await self._logger.aerror("Watch stopped", error=str(error))
        self.print_statistics()
        if isinstance(error, WatchError):
            raise error
        if error is not None:
            raise WatchError(f"Watcher failed: {error}") from error
        return self.scheduler.statistics
