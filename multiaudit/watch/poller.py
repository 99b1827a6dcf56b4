"""Mtime polling event source for watch mode.

Polling needs no platform file-notification support and only costs one
stat() per watched file per interval.
"""

import asyncio
from fnmatch import fnmatch
from pathlib import Path
from typing import Callable

import structlog

from multiaudit.audit.discovery import python_files
from multiaudit.errors import WatchError

logger = structlog.get_logger()


class PollingWatcher:
    """Reports Python files whose mtime changed since the previous poll."""

    def __init__(
        self,
        paths: list[str | Path],
        on_change: Callable[[str], None],
        interval: float = 1.0,
        exclude_patterns: list[str] | None = None,
        exclude_dirs: list[str] | None = None,
    ):
        self.paths = [Path(p) for p in paths]
        self.on_change = on_change
        self.interval = interval
        self.exclude_patterns = exclude_patterns or []
        self.exclude_dirs = exclude_dirs
        self._mtimes: dict[str, float] = {}
        self._stopped = asyncio.Event()
        self._logger = logger.bind(component="PollingWatcher")

    def _is_excluded(self, path: Path) -> bool:
        text = path.as_posix()
        return any(fnmatch(text, pattern) or fnmatch(path.name, pattern) for pattern in self.exclude_patterns)

    def snapshot(self) -> dict[str, float]:
        """Current mtime of every watched file.

        Raises:
            WatchError: If a watched root path no longer exists
        """
        mtimes: dict[str, float] = {}
        for root in self.paths:
            if not root.exists():
                raise WatchError(f"Watched path disappeared: {root}")
            candidates = python_files(root, self.exclude_dirs) if root.is_dir() else [root]
            for path in candidates:
                if self._is_excluded(path):
                    continue
                try:
                    mtimes[str(path)] = path.stat().st_mtime
                except FileNotFoundError:
                    continue  # removed between listing and stat
        return mtimes

    def poll(self) -> list[str]:
        """Files created or modified since the last poll, sorted."""
        current = self.snapshot()
        changed = sorted(path for path, mtime in current.items() if self._mtimes.get(path) != mtime)
        self._mtimes = current
        return changed

    async def run(self) -> None:
        """Poll until stopped, reporting each changed file to ``on_change``."""
        self._mtimes = self.snapshot()
        await self._logger.ainfo("Watching", paths=[str(p) for p in self.paths], files=len(self._mtimes))
        while not self._stopped.is_set():
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
            if self._stopped.is_set():
                break
            for path in self.poll():
                self.on_change(path)

    def stop(self) -> None:
        self._stopped.set()
