"""Watch mode: polling, debouncing and serialized re-analysis."""

from multiaudit.watch.poller import PollingWatcher
from multiaudit.watch.scheduler import WatchScheduler, WatchState, WatchStatistics
from multiaudit.watch.session import WatchSession

__all__ = ["PollingWatcher", "WatchScheduler", "WatchSession", "WatchState", "WatchStatistics"]
