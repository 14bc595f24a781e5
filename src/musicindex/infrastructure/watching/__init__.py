"""Filesystem event sources."""

from musicindex.infrastructure.watching.watchdog_source import WatchdogEventSource

__all__ = ["WatchdogEventSource"]
