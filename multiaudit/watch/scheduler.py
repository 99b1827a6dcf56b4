"""Debounced, serialized analysis runs for watch mode.

State machine:

    IDLE --change--> DEBOUNCING --timer--> ANALYZING
    ANALYZING --timer for another path--> ANALYZING_QUEUED
    run done --> drain queue one file at a time --> IDLE

At most one analysis run is in flight at any time. Changes that settle
while a run is in flight are queued, de-duplicated, and analyzed one by
one after it.
"""

import asyncio
import inspect
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable

import structlog

from multiaudit.models import Report

logger = structlog.get_logger()

RunAnalysis = Callable[[list[str]], Awaitable[Report]]
ReportCallback = Callable[[Report, list[str]], Any]


class WatchState(str, Enum):
    """Observable scheduler state."""

    IDLE = "idle"
    DEBOUNCING = "debouncing"
    ANALYZING = "analyzing"
    ANALYZING_QUEUED = "analyzing_queued"


@dataclass
class WatchStatistics:
    """Rolling statistics for the lifetime of one watch process."""

    runs: int = 0
    queued_runs: int = 0
    failed_runs: int = 0
    total_issues: int = 0
    total_fixed: int = 0
    average_duration_ms: float = 0.0

    def record(
        self,
        duration_ms: float,
        queued: bool,
        report: Report | None = None,
    ) -> None:
        """Fold one finished run into the statistics; ``report`` is None on failure."""
        self.runs += 1
        if queued:
            self.queued_runs += 1
        if report is None:
            self.failed_runs += 1
        else:
            self.total_issues += report.summary.total_issues
            self.total_fixed += report.summary.auto_fixed
        self.average_duration_ms += (duration_ms - self.average_duration_ms) / self.runs


class WatchScheduler:
    """Turns a stream of file-change notifications into serialized runs."""

    def __init__(
        self,
        run_analysis: RunAnalysis,
        debounce_ms: int = 500,
        on_report: ReportCallback | None = None,
    ):
        self._run_analysis = run_analysis
        self.debounce_ms = debounce_ms
        self._on_report = on_report
        self.statistics = WatchStatistics()

        self._timers: dict[str, asyncio.TimerHandle] = {}
        self._queue: dict[str, None] = {}  # insertion-ordered set
        self._running = False
        self._current: asyncio.Task | None = None
        self._stopped = False
        self._idle = asyncio.Event()
        self._idle.set()
        self._logger = logger.bind(component="WatchScheduler")

    @property
    def state(self) -> WatchState:
        if self._running:
            return WatchState.ANALYZING_QUEUED if self._queue else WatchState.ANALYZING
        if self._timers:
            return WatchState.DEBOUNCING
        return WatchState.IDLE

    @property
    def queued(self) -> list[str]:
        return list(self._queue)

    def notify_change(self, path: str) -> None:
        """(Re)start the debounce timer for ``path``."""
        if self._stopped:
            return
        loop = asyncio.get_running_loop()
        pending = self._timers.pop(path, None)
        if pending is not None:
            pending.cancel()
        self._timers[path] = loop.call_later(self.debounce_ms / 1000, self._on_timer, path)
        self._idle.clear()
        self._logger.debug("Change noticed", file=path, state=self.state.value)

    def _on_timer(self, path: str) -> None:
        self._timers.pop(path, None)
        if self._stopped:
            return
        if self._running:
            self._queue[path] = None
            self._logger.debug("Run in flight, queued", file=path, queued=len(self._queue))
            return
        # Flag before the task exists so a timer firing in the same loop tick queues
        self._running = True
        self._current = asyncio.get_running_loop().create_task(self._drain(path))

    async def _drain(self, path: str) -> None:
        queued = False
        try:
            while True:
                await self._execute(path, queued)
                if not self._queue or self._stopped:
                    break
                path = next(iter(self._queue))
                del self._queue[path]
                queued = True
        finally:
            self._running = False
            self._current = None
            if not self._timers:
                self._idle.set()

    async def _execute(self, path: str, queued: bool) -> None:
        started = time.perf_counter()
        try:
            report = await self._run_analysis([path])
        except Exception as e:
            self.statistics.record((time.perf_counter() - started) * 1000, queued)
            await self._logger.aerror("Analysis run failed", file=path, error=str(e))
            return

        self.statistics.record((time.perf_counter() - started) * 1000, queued, report)
        await self._logger.adebug(
            "Analysis run finished",
            file=path,
            issues=report.summary.total_issues,
            queued=queued,
        )
        if self._on_report is None:
            return
        try:
            result = self._on_report(report, [path])
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            await self._logger.aerror("Report callback failed", file=path, error=str(e))

    async def wait_until_idle(self) -> None:
        """Block until no timer is pending and no run is in flight."""
        await self._idle.wait()

    async def stop(self) -> None:
        """Cancel timers, clear the queue and wait for the in-flight run."""
        self._stopped = True
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        self._queue.clear()
        if self._current is not None:
            await self._current
        self._idle.set()
        self._logger.debug("Scheduler stopped", runs=self.statistics.runs)
