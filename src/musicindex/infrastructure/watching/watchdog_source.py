# Hey future me - watchdog calls our handler on ITS OWN observer thread, never on the event
# loop. Every event is handed over with loop.call_soon_threadsafe(queue.put_nowait, ...);
# touching the asyncio.Queue directly from that thread is NOT safe.
#
# Startup order matters: the observer is started FIRST, then we walk the roots and emit an
# ADD for every existing file, then READY. A file changed during the walk therefore shows up
# at least once - duplicates are fine, the watcher keys everything by path.
"""watchdog-backed filesystem event source."""

import asyncio
import logging
import os
from collections.abc import AsyncIterator, Sequence

from watchdog.events import (
    DirCreatedEvent,
    DirDeletedEvent,
    DirModifiedEvent,
    DirMovedEvent,
    FileClosedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from musicindex.domain.entities import WatchEvent, WatchEventKind
from musicindex.domain.exceptions import WatcherInitError
from musicindex.domain.ports import IWatchSource
from musicindex.domain.value_objects import file_signature, is_hidden, is_supported
from musicindex.infrastructure.filesystem.traversal import list_files

logger = logging.getLogger(__name__)


def _is_tracked(root: str, path: str) -> bool:
    """Supported file with no hidden component between root and the file."""
    relative = os.path.relpath(path, root)
    if relative.startswith(os.pardir):
        return False
    parts = relative.split(os.sep)
    if any(is_hidden(part) for part in parts[:-1]):
        return False
    return is_supported(parts[-1])


def _snapshot(root: str, subdir: str = "") -> list[WatchEvent]:
    """ADD events for every tracked file under root (or root/subdir)."""
    events: list[WatchEvent] = []
    try:
        relative_paths = list_files(root, subdir)
    except FileNotFoundError:
        return events
    for relative in relative_paths:
        path = os.path.join(root, relative)
        try:
            events.append(WatchEvent(WatchEventKind.ADD, path, file_signature(path)))
        except OSError:
            # vanished between listing and stat - the unlink event follows
            continue
    return events


class _BridgeHandler(FileSystemEventHandler):
    """Translates watchdog events for one root into WatchEvents on the loop."""

    def __init__(self, source: "WatchdogEventSource", root: str) -> None:
        super().__init__()
        self._source = source
        self._root = root

    def _file_event(self, kind: WatchEventKind, path: str) -> None:
        if not _is_tracked(self._root, path):
            return
        try:
            signature = file_signature(path)
        except OSError:
            return
        self._source.push(WatchEvent(kind, path, signature))

    def _directory_added(self, path: str) -> None:
        # Files copied in together with their folder may predate the new inotify watch
        subdir = os.path.relpath(path, self._root)
        if subdir.startswith(os.pardir) or any(is_hidden(p) for p in subdir.split(os.sep)):
            return
        for event in _snapshot(self._root, subdir):
            self._source.push(event)

    def on_created(self, event: DirCreatedEvent | FileCreatedEvent) -> None:
        if event.is_directory:
            self._directory_added(os.fsdecode(event.src_path))
        else:
            self._file_event(WatchEventKind.ADD, os.fsdecode(event.src_path))

    def on_modified(self, event: DirModifiedEvent | FileModifiedEvent) -> None:
        if not event.is_directory:
            self._file_event(WatchEventKind.CHANGE, os.fsdecode(event.src_path))

    def on_closed(self, event: FileClosedEvent) -> None:
        # inotify reports the end of a write here; mtime is final at this point
        self._file_event(WatchEventKind.CHANGE, os.fsdecode(event.src_path))

    def on_deleted(self, event: DirDeletedEvent | FileDeletedEvent) -> None:
        path = os.fsdecode(event.src_path)
        if event.is_directory:
            self._source.push(WatchEvent(WatchEventKind.UNLINK_DIR, path))
        elif _is_tracked(self._root, path):
            self._source.push(WatchEvent(WatchEventKind.UNLINK, path))

    def on_moved(self, event: DirMovedEvent | FileMovedEvent) -> None:
        src, dest = os.fsdecode(event.src_path), os.fsdecode(event.dest_path)
        if event.is_directory:
            self._source.push(WatchEvent(WatchEventKind.UNLINK_DIR, src))
            self._directory_added(dest)
            return
        if _is_tracked(self._root, src):
            self._source.push(WatchEvent(WatchEventKind.UNLINK, src))
        self._file_event(WatchEventKind.ADD, dest)


class WatchdogEventSource(IWatchSource):
    """IWatchSource over a watchdog Observer."""

    def __init__(self, roots: Sequence[str]) -> None:
        self.roots = [os.path.abspath(r) for r in roots]
        self._queue: asyncio.Queue[WatchEvent | None] = asyncio.Queue()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._observer: Observer | None = None  # type: ignore[valid-type]
        self._initial_task: asyncio.Task[None] | None = None
        self._stopped = False

    def push(self, event: WatchEvent) -> None:
        """Thread-safe hand-over of an event to the loop."""
        if self._loop is None or self._stopped:
            return
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, event)
        except RuntimeError:
            # loop already closed during shutdown
            logger.debug(f"Dropped {event.kind.value} event for {event.path}")

    async def start(self) -> list[str]:
        """Schedule watches, start the observer and kick off the initial walk.

        Raises:
            WatcherInitError: If the observer itself cannot start (e.g. inotify limits)
        """
        self._loop = asyncio.get_running_loop()
        observer = Observer()
        watched: list[str] = []

        for root in self.roots:
            if not os.path.isdir(root):
                logger.warning(f"Library root {root} does not exist, not watching it")
                continue
            try:
                observer.schedule(_BridgeHandler(self, root), root, recursive=True)
            except OSError as e:
                logger.warning(WatcherInitError(root, str(e)).message)
                continue
            watched.append(root)

        if not watched:
            return []

        try:
            await self._loop.run_in_executor(None, observer.start)
        except OSError as e:
            raise WatcherInitError(", ".join(watched), str(e)) from e

        self._observer = observer
        logger.info(f"Watching {len(watched)} library root(s): {', '.join(watched)}")
        self._initial_task = asyncio.create_task(self._emit_initial(watched))
        return watched

    async def _emit_initial(self, roots: list[str]) -> None:
        for root in roots:
            events = await asyncio.to_thread(_snapshot, root)
            for event in events:
                self._queue.put_nowait(event)
        self._queue.put_nowait(WatchEvent(WatchEventKind.READY))

    async def events(self) -> AsyncIterator[WatchEvent]:
        while True:
            event = await self._queue.get()
            if event is None:
                return
            yield event

    async def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        if self._initial_task is not None and not self._initial_task.done():
            self._initial_task.cancel()
        if self._observer is not None:
            observer, self._observer = self._observer, None
            observer.stop()
            await asyncio.to_thread(observer.join)
        self._queue.put_nowait(None)
        logger.info("Filesystem watching stopped")
