"""Tests for LibraryWatcher reconciliation and debouncing.

A scripted IWatchSource stands in for watchdog; events are pushed by hand.
"""

import asyncio
import os
from collections.abc import AsyncIterator
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from musicindex.application.services.library_watcher import LibraryWatcher
from musicindex.domain.entities import (
    ArtistFolder,
    WatchEvent,
    WatchEventKind,
    WatchState,
    WatchUpdate,
)
from musicindex.domain.exceptions import WatcherInitError
from musicindex.domain.ports import IWatchSource
from musicindex.infrastructure.observability.logging import get_correlation_id


class ScriptedSource(IWatchSource):
    def __init__(self, roots: list[str], fail: bool = False) -> None:
        self.roots = roots
        self.fail = fail
        self.queue: asyncio.Queue[WatchEvent | None] = asyncio.Queue()
        self.stopped = False

    async def start(self) -> list[str]:
        if self.fail:
            raise WatcherInitError(self.roots[0], "inotify watch limit reached")
        return list(self.roots)

    async def events(self) -> AsyncIterator[WatchEvent]:
        while True:
            event = await self.queue.get()
            if event is None:
                return
            yield event

    async def stop(self) -> None:
        self.stopped = True
        self.queue.put_nowait(None)

    def push(self, *events: WatchEvent) -> None:
        for event in events:
            self.queue.put_nowait(event)


def _add(path: str, signature: str) -> WatchEvent:
    return WatchEvent(WatchEventKind.ADD, path, signature)


READY = WatchEvent(WatchEventKind.READY)


async def _next_update(updates: AsyncIterator[WatchUpdate], timeout: float = 2.0) -> WatchUpdate:
    return await asyncio.wait_for(anext(updates), timeout)


@pytest.fixture
def root(tmp_path: Path) -> str:
    (tmp_path / "A").mkdir()
    return str(tmp_path)


class TestInitialReconciliation:
    """STARTING -> READY against a baseline."""

    async def test_dirty_and_added_files(self, root: str) -> None:
        a = os.path.join(root, "A", "a.mp3")
        b = os.path.join(root, "A", "b.mp3")
        source = ScriptedSource([root])
        watcher = LibraryWatcher([root], [(a, "h1")], source)
        updates = watcher.updates()

        await watcher.start()
        source.push(_add(a, "h2"), _add(b, "h3"), READY)
        update = await _next_update(updates)

        assert update.updated == [a]
        assert update.added == [b]
        assert update.removed == []
        assert update.songs == [(a, "h2"), (b, "h3")]
        assert update.rescan == [ArtistFolder(root, "A")]
        assert update.full_rescan_roots == []
        assert watcher.state is WatchState.STEADY
        await watcher.stop()

    async def test_unchanged_files_produce_no_rescan(self, root: str) -> None:
        a = os.path.join(root, "A", "a.mp3")
        source = ScriptedSource([root])
        watcher = LibraryWatcher([root], [(a, "h1")], source)
        updates = watcher.updates()

        await watcher.start()
        source.push(_add(a, "h1"), READY)
        update = await _next_update(updates)

        assert update.is_empty()
        assert update.songs == [(a, "h1")]
        await watcher.stop()

    async def test_empty_baseline_requests_full_rescan(self, root: str) -> None:
        a = os.path.join(root, "A", "a.mp3")
        source = ScriptedSource([root])
        watcher = LibraryWatcher([root], [], source)
        updates = watcher.updates()

        await watcher.start()
        source.push(_add(a, "h1"), READY)
        update = await _next_update(updates)

        assert update.full_rescan_roots == [root]
        assert update.added == [a]
        assert update.rescan == []
        await watcher.stop()

    async def test_vanished_artist_folder_reported_removed(self, root: str) -> None:
        a = os.path.join(root, "A", "a.mp3")
        gone = os.path.join(root, "Gone", "Album", "x.mp3")
        source = ScriptedSource([root])
        watcher = LibraryWatcher([root], [(a, "h1"), (gone, "h2")], source)
        updates = watcher.updates()

        await watcher.start()
        source.push(_add(a, "h1"), READY)
        update = await _next_update(updates)

        assert update.removed == [gone]
        assert update.removed_artists == [ArtistFolder(root, "Gone")]
        assert update.rescan == []
        assert update.songs == [(a, "h1")]
        await watcher.stop()

    async def test_emptied_but_existing_artist_folder_is_rescanned(self, root: str) -> None:
        """Folder still on disk: not a deletion, even with no known files left."""
        a = os.path.join(root, "A", "a.mp3")
        source = ScriptedSource([root])
        watcher = LibraryWatcher([root], [(a, "h1")], source)
        updates = watcher.updates()

        await watcher.start()
        source.push(READY)
        update = await _next_update(updates)

        assert update.removed == [a]
        assert update.removed_artists == []
        assert update.rescan == [ArtistFolder(root, "A")]
        await watcher.stop()

    async def test_on_change_awaited_with_ready_update(self, root: str) -> None:
        source = ScriptedSource([root])
        on_change = AsyncMock()
        watcher = LibraryWatcher([root], [], source, on_change=on_change)
        updates = watcher.updates()

        await watcher.start()
        source.push(READY)
        update = await _next_update(updates)
        await asyncio.sleep(0)

        on_change.assert_awaited_once_with(update)
        await watcher.stop()


class TestSteadyState:
    """Debounced live events after READY."""

    @pytest.fixture
    def a(self, root: str) -> str:
        return os.path.join(root, "A", "a.mp3")

    async def _ready(
        self, root: str, baseline: list[tuple[str, str]], **kwargs: object
    ) -> tuple[LibraryWatcher, ScriptedSource, AsyncIterator[WatchUpdate]]:
        source = ScriptedSource([root])
        watcher = LibraryWatcher([root], baseline, source, debounce_ms=50, **kwargs)  # type: ignore[arg-type]
        updates = watcher.updates()
        await watcher.start()
        source.push(*[_add(p, s) for p, s in baseline], READY)
        await _next_update(updates)
        return watcher, source, updates

    async def test_burst_of_adds_flushes_once(self, root: str, a: str) -> None:
        watcher, source, updates = await self._ready(root, [(a, "h1")])
        new = [os.path.join(root, "A", f"{n}.mp3") for n in ("c", "b", "d")]

        source.push(*[_add(p, "x") for p in new])
        update = await _next_update(updates)

        assert update.added == sorted(new)
        assert update.rescan == [ArtistFolder(root, "A")]
        assert [p for p, _ in update.songs] == sorted([a, *new])
        await watcher.stop()

    async def test_change_with_new_signature(self, root: str, a: str) -> None:
        watcher, source, updates = await self._ready(root, [(a, "h1")])

        source.push(WatchEvent(WatchEventKind.CHANGE, a, "h2"))
        update = await _next_update(updates)

        assert update.updated == [a]
        assert update.songs == [(a, "h2")]
        await watcher.stop()

    async def test_change_with_same_signature_is_dropped(self, root: str, a: str) -> None:
        watcher, source, updates = await self._ready(root, [(a, "h1")])

        source.push(WatchEvent(WatchEventKind.CHANGE, a, "h1"))
        with pytest.raises(asyncio.TimeoutError):
            await _next_update(updates, timeout=0.3)
        await watcher.stop()

    async def test_unlink_dir_removes_known_files_below(self, root: str, tmp_path: Path) -> None:
        b1 = os.path.join(root, "B", "Album", "1.mp3")
        b2 = os.path.join(root, "B", "Album", "2.mp3")
        a = os.path.join(root, "A", "a.mp3")
        (tmp_path / "B" / "Album").mkdir(parents=True)
        watcher, source, updates = await self._ready(root, [(a, "h"), (b1, "h"), (b2, "h")])

        (tmp_path / "B" / "Album").rmdir()
        (tmp_path / "B").rmdir()
        source.push(WatchEvent(WatchEventKind.UNLINK_DIR, os.path.join(root, "B")))
        update = await _next_update(updates)

        assert update.removed == [b1, b2]
        assert update.removed_artists == [ArtistFolder(root, "B")]
        assert update.songs == [(a, "h")]
        await watcher.stop()

    async def test_failing_handler_does_not_stop_watching(self, root: str, a: str) -> None:
        on_change = AsyncMock(side_effect=[None, RuntimeError("boom"), None])
        watcher, source, updates = await self._ready(root, [(a, "h1")], on_change=on_change)

        source.push(WatchEvent(WatchEventKind.CHANGE, a, "h2"))
        await _next_update(updates)
        source.push(WatchEvent(WatchEventKind.CHANGE, a, "h3"))
        update = await _next_update(updates)

        assert update.updated == [a]
        assert on_change.await_count == 3
        await watcher.stop()

    async def test_events_spread_over_window_flush_once(self, root: str, a: str) -> None:
        on_change = AsyncMock()
        source = ScriptedSource([root])
        watcher = LibraryWatcher(
            [root], [(a, "h1")], source, on_change=on_change, debounce_ms=400
        )
        updates = watcher.updates()
        await watcher.start()
        source.push(_add(a, "h1"), READY)
        await _next_update(updates)
        new = [os.path.join(root, "A", f"{n}.mp3") for n in ("b", "c", "d", "e")]

        for path in new:
            source.push(_add(path, "x"))
            await asyncio.sleep(0.05)
        update = await _next_update(updates)

        assert update.added == new
        with pytest.raises(asyncio.TimeoutError):
            await _next_update(updates, timeout=0.5)
        # READY update plus exactly one flush for the whole burst
        assert on_change.await_count == 2
        await watcher.stop()

    async def test_flushes_of_different_kinds_never_overlap(self, root: str, a: str) -> None:
        active = 0
        peak = 0
        seen: list[WatchUpdate] = []

        async def slow_handler(update: WatchUpdate) -> None:
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.1)
            seen.append(update)
            active -= 1

        watcher, source, updates = await self._ready(
            root, [(a, "h1")], on_change=slow_handler
        )
        b = os.path.join(root, "A", "b.mp3")

        source.push(_add(b, "x"), WatchEvent(WatchEventKind.UNLINK, a))
        first = await _next_update(updates)
        second = await _next_update(updates)
        await watcher.stop()

        assert peak == 1
        assert {tuple(first.added), tuple(second.added)} == {(b,), ()}
        assert [a] in (first.removed, second.removed)
        assert len(seen) == 3

    async def test_flush_runs_under_its_own_correlation_id(self, root: str, a: str) -> None:
        ids: list[str] = []

        async def record(update: WatchUpdate) -> None:
            ids.append(get_correlation_id())

        watcher, source, updates = await self._ready(root, [(a, "h1")], on_change=record)

        source.push(WatchEvent(WatchEventKind.CHANGE, a, "h2"))
        await _next_update(updates)
        source.push(WatchEvent(WatchEventKind.CHANGE, a, "h3"))
        await _next_update(updates)
        await watcher.stop()

        flush_ids = ids[1:]
        assert all(i.startswith("watch-") for i in flush_ids)
        assert flush_ids[0] != flush_ids[1]


class TestLifecycle:
    async def test_stop_ends_update_stream(self, root: str) -> None:
        source = ScriptedSource([root])
        watcher = LibraryWatcher([root], [], source)
        updates = watcher.updates()
        await watcher.start()

        await watcher.stop()

        assert watcher.state is WatchState.STOPPED
        assert source.stopped
        assert [u async for u in updates] == []

    async def test_source_failure_emits_empty_update_and_stops(self, root: str) -> None:
        source = ScriptedSource([root], fail=True)
        watcher = LibraryWatcher([root], [], source)
        updates = watcher.updates()

        await watcher.start()

        update = await _next_update(updates)
        assert update.is_empty()
        assert watcher.state is WatchState.STOPPED

    async def test_events_after_stop_are_ignored(self, root: str) -> None:
        source = ScriptedSource([root])
        watcher = LibraryWatcher([root], [], source)
        await watcher.start()
        await watcher.stop()

        await watcher.handle_event(_add(os.path.join(root, "A", "x.mp3"), "h"))

        assert watcher.songs == []
