"""Keep the library index live while files change on disk."""

import asyncio
import logging
import os
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable, Sequence

from musicindex.domain.entities import (
    ArtistFolder,
    WatchEntry,
    WatchEvent,
    WatchEventKind,
    WatchState,
    WatchUpdate,
)
from musicindex.domain.exceptions import WatcherInitError
from musicindex.domain.ports import IWatchSource
from musicindex.infrastructure.observability.logging import set_correlation_id

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[WatchUpdate], Awaitable[None]]

# Event kinds with their own debounce buffer; UNLINK_DIR shares the UNLINK buffer
_DEBOUNCED_KINDS = (WatchEventKind.ADD, WatchEventKind.CHANGE, WatchEventKind.UNLINK)


class LibraryWatcher:
    """Reconciles filesystem events against a caller-supplied baseline.

    Lifecycle:
        STARTING - the event source reports every existing file as ADD. Each one is
                   compared with the baseline signature; a mismatch marks it dirty
                   (changed while nobody was watching).
        READY    - one consolidated WatchUpdate: added, dirty, removed and the full
                   sorted song list. Affected artist folders are rescanned, artist
                   folders that vanished are reported as removed.
        STEADY   - live events are debounced per kind: the first event of a burst
                   arms a timer, everything arriving before it fires is flushed as
                   ONE update.
        STOPPED  - after stop().

    Every update is pushed to ``updates()`` and awaited through ``on_change``.
    Flushes hold a lock, so two rescans never overlap.
    """

    def __init__(
        self,
        roots: Sequence[str],
        baseline: Iterable[WatchEntry],
        source: IWatchSource,
        on_change: ChangeCallback | None = None,
        debounce_ms: int = 3000,
    ) -> None:
        """Initialize watcher.

        Args:
            roots: Library roots being watched
            baseline: (absolute path, signature) pairs the caller last knew about
            source: Filesystem event source
            on_change: Awaited for every WatchUpdate (rescans happen here)
            debounce_ms: Quiet period before a burst is flushed
        """
        self.roots = [os.path.abspath(r) for r in roots]
        self.debounce_ms = debounce_ms
        self.state = WatchState.STARTING

        self._source = source
        self._on_change = on_change
        self._baseline: dict[str, str] = dict(baseline)
        self._observed: dict[str, str] = {}
        self._dirty: set[str] = set()
        self._songs: dict[str, str] = {}
        self._watched_roots: list[str] = []

        self._pending: dict[WatchEventKind, dict[str, str | None]] = {
            kind: {} for kind in _DEBOUNCED_KINDS
        }
        self._timers: dict[WatchEventKind, asyncio.TimerHandle] = {}
        self._flush_tasks: set[asyncio.Task[None]] = set()
        self._flush_lock = asyncio.Lock()
        self._updates: asyncio.Queue[WatchUpdate | None] = asyncio.Queue()
        self._consumer: asyncio.Task[None] | None = None

    @property
    def songs(self) -> list[WatchEntry]:
        """Current known files, sorted by path."""
        return sorted(self._songs.items())

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def start(self) -> None:
        """Start the event source and begin consuming its events."""
        try:
            self._watched_roots = await self._source.start()
        except WatcherInitError as e:
            logger.warning(f"{e.message} - continuing without filesystem watching")
            self._watched_roots = []

        if not self._watched_roots:
            logger.warning("No library root could be watched, emitting empty result")
            await self._publish(WatchUpdate())
            await self.stop()
            return

        self._consumer = asyncio.create_task(self._consume())

    async def _consume(self) -> None:
        async for event in self._source.events():
            try:
                await self.handle_event(event)
            except Exception:
                # One bad event must not end watching for the rest of the session
                logger.exception(
                    f"Failed to handle {event.kind.value} event for {event.path}"
                )

    async def stop(self) -> None:
        if self.state is WatchState.STOPPED:
            return
        self.state = WatchState.STOPPED
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        dropped = sum(len(p) for p in self._pending.values())
        if dropped:
            logger.debug(f"Discarding {dropped} buffered events on stop")

        await self._source.stop()
        if self._consumer is not None and self._consumer is not asyncio.current_task():
            self._consumer.cancel()
            await asyncio.gather(self._consumer, return_exceptions=True)
        pending = [t for t in self._flush_tasks if t is not asyncio.current_task()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._updates.put_nowait(None)

    async def updates(self) -> AsyncIterator[WatchUpdate]:
        """Stream of consolidated updates; ends after stop()."""
        while True:
            update = await self._updates.get()
            if update is None:
                return
            yield update

    # =========================================================================
    # EVENT HANDLING
    # =========================================================================

    async def handle_event(self, event: WatchEvent) -> None:
        """Feed one raw event into the state machine."""
        if self.state is WatchState.STARTING:
            await self._handle_initial(event)
        elif self.state is WatchState.STEADY:
            if event.kind is not WatchEventKind.READY:
                self._buffer(event)

    async def _handle_initial(self, event: WatchEvent) -> None:
        kind = event.kind
        if kind in (WatchEventKind.ADD, WatchEventKind.CHANGE) and event.signature:
            self._observed[event.path] = event.signature
            known = self._baseline.get(event.path)
            if known is not None and known != event.signature:
                self._dirty.add(event.path)
        elif kind is WatchEventKind.UNLINK:
            self._observed.pop(event.path, None)
            self._dirty.discard(event.path)
        elif kind is WatchEventKind.UNLINK_DIR:
            for path in self._under(event.path, self._observed):
                self._observed.pop(path, None)
                self._dirty.discard(path)
        elif kind is WatchEventKind.READY:
            await self._on_ready()

    async def _on_ready(self) -> None:
        self.state = WatchState.READY
        baseline = set(self._baseline)
        observed = set(self._observed)

        added = observed - baseline
        removed = baseline - observed
        dirty = self._dirty - removed

        songs = {p: self._baseline[p] for p in baseline - dirty - removed}
        songs.update({p: self._observed[p] for p in dirty | added})
        self._songs = songs

        update = WatchUpdate(
            added=sorted(added),
            updated=sorted(dirty),
            removed=sorted(removed),
            songs=self.songs,
        )
        if not self._baseline:
            # First run: nothing known yet, index the roots from scratch
            update.full_rescan_roots = list(self._watched_roots)
        else:
            update.rescan, update.removed_artists = self._classify(added | dirty | removed)

        logger.info(
            f"Watcher ready: {len(added)} added, {len(dirty)} changed, "
            f"{len(removed)} removed since last run ({len(songs)} files)"
        )
        self._dirty.clear()
        self._observed.clear()
        self.state = WatchState.STEADY
        await self._publish(update)

    def _buffer(self, event: WatchEvent) -> None:
        if event.kind is WatchEventKind.UNLINK_DIR:
            kind = WatchEventKind.UNLINK
            for path in self._under(event.path, self._songs):
                self._pending[kind][path] = None
        else:
            kind = event.kind
            self._pending[kind][event.path] = event.signature

        if kind not in self._timers:
            loop = asyncio.get_running_loop()
            self._timers[kind] = loop.call_later(
                self.debounce_ms / 1000, self._schedule_flush, kind
            )

    def _schedule_flush(self, kind: WatchEventKind) -> None:
        self._timers.pop(kind, None)
        batch, self._pending[kind] = self._pending[kind], {}
        if not batch or self.state is WatchState.STOPPED:
            return
        task = asyncio.create_task(self._flush(kind, batch))
        self._flush_tasks.add(task)
        task.add_done_callback(self._flush_tasks.discard)

    async def _flush(self, kind: WatchEventKind, batch: dict[str, str | None]) -> None:
        # Runs in its own task, so the id stays local to this flush
        set_correlation_id(f"watch-{uuid.uuid4().hex[:12]}")
        added: list[str] = []
        updated: list[str] = []
        removed: list[str] = []

        for path, signature in sorted(batch.items()):
            if kind is WatchEventKind.UNLINK:
                if self._songs.pop(path, None) is not None:
                    removed.append(path)
                continue
            if signature is None:
                continue
            if path in self._songs:
                if self._songs[path] != signature:
                    updated.append(path)
            else:
                added.append(path)
            self._songs[path] = signature

        update = WatchUpdate(added=added, updated=updated, removed=removed, songs=self.songs)
        update.rescan, update.removed_artists = self._classify(set(added + updated + removed))
        if update.is_empty():
            return
        logger.info(
            f"Library change ({kind.value}): {len(added)} added, {len(updated)} changed, "
            f"{len(removed)} removed"
        )
        await self._publish(update)

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _publish(self, update: WatchUpdate) -> None:
        async with self._flush_lock:
            self._updates.put_nowait(update)
            if self._on_change is None:
                return
            try:
                await self._on_change(update)
            except Exception:
                logger.exception(
                    "Library change handler failed, index may be stale until the next change"
                )

    def _artist_folder(self, path: str) -> ArtistFolder | None:
        for root in self.roots:
            if path.startswith(root + os.sep):
                parts = os.path.relpath(path, root).split(os.sep)
                # A file straight in the root belongs to no artist
                if len(parts) < 2:
                    return None
                return ArtistFolder(root=root, name=parts[0])
        return None

    def _classify(
        self, paths: set[str]
    ) -> tuple[list[ArtistFolder], list[ArtistFolder]]:
        """Split the artist folders owning paths into (rescan, removed)."""
        touched = {f for f in map(self._artist_folder, paths) if f is not None}
        still_known = {f for f in map(self._artist_folder, self._songs) if f is not None}

        rescan: list[ArtistFolder] = []
        removed: list[ArtistFolder] = []
        for folder in sorted(touched, key=lambda f: (f.root, f.name)):
            # Deleted only when no known file lives there AND a fresh check agrees.
            # An artist folder that merely lost all its tracks still exists.
            if folder not in still_known and not os.path.isdir(
                os.path.join(folder.root, folder.name)
            ):
                removed.append(folder)
            else:
                rescan.append(folder)
        return rescan, removed

    @staticmethod
    def _under(directory: str, paths: Iterable[str]) -> list[str]:
        prefix = directory.rstrip(os.sep) + os.sep
        return [p for p in paths if p.startswith(prefix)]
