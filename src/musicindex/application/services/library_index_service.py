"""The owning context of one library root: current graph, scans, watch updates."""

import asyncio
import logging
import os
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from musicindex.application.services.collection_builder import build_collection
from musicindex.application.services.library_synchronizer import (
    LibrarySynchronizer,
    ProgressCallback,
)
from musicindex.domain.entities import (
    MediaCollection,
    ScanReport,
    ScanStatus,
    UrlMode,
    WatchUpdate,
)
from musicindex.domain.exceptions import ConfigurationError
from musicindex.domain.value_objects import encode_path_id
from musicindex.infrastructure.filesystem.traversal import list_files_async
from musicindex.infrastructure.observability.logger_template import log_operation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndexChange:
    """Tells listeners which artists were rebuilt or dropped from the index."""

    refreshed: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    full: bool = False


IndexListener = Callable[[IndexChange], None]


# Hey future me - this object replaces what used to be module-level globals (the collection
# maps and the "is a scan running" flag). One LibraryIndex per library root, so tests and
# multi-root setups each get their own state. The collection is swapped, never mutated in
# place: readers holding the old MediaCollection keep a consistent snapshot.
class LibraryIndex:
    """Holds the current MediaCollection and drives scans for one library root."""

    def __init__(
        self,
        root: str,
        synchronizer: LibrarySynchronizer,
        url_mode: UrlMode = UrlMode.CONTENT,
        base_url: str = "",
    ) -> None:
        self.root = os.path.abspath(root)
        self.url_mode = url_mode
        self.base_url = base_url
        self.collection = MediaCollection()
        self.last_report: ScanReport | None = None
        self._synchronizer = synchronizer
        self._listeners: list[IndexListener] = []

    @property
    def is_scanning(self) -> bool:
        return self._synchronizer.is_scanning

    @property
    def scanning_enabled(self) -> bool:
        return self._synchronizer.enabled

    def add_listener(self, listener: IndexListener) -> None:
        self._listeners.append(listener)

    def _notify(self, change: IndexChange) -> None:
        for listener in self._listeners:
            try:
                listener(change)
            except Exception:
                logger.exception("Index listener failed")

    def _build(self, files: list[str]) -> MediaCollection:
        return build_collection(files, self.root, self.url_mode, self.base_url)

    # =========================================================================
    # FULL AND SCOPED REFRESH
    # =========================================================================

    async def refresh(self, progress: ProgressCallback | None = None) -> ScanReport:
        """Rebuild the whole graph from disk and sync the store.

        Raises:
            ConfigurationError: If the library root does not exist
        """
        async with log_operation(logger, "index.build", root=self.root) as result:
            try:
                files = await list_files_async(self.root)
            except FileNotFoundError as e:
                raise ConfigurationError(f"Library root {self.root} does not exist") from e

            self.collection = self._build(files)
            result["artists"] = len(self.collection.artists)
            result["albums"] = len(self.collection.albums)
            result["tracks"] = len(self.collection.audio)
        self._notify(IndexChange(refreshed=list(self.collection.artists), full=True))
        return await self._scan(self.collection, progress)

    async def rescan_artists(self, folders: Iterable[str]) -> ScanReport:
        """Rebuild and re-sync only the given artist folders."""
        names = sorted(set(folders))
        files: list[str] = []
        missing: list[str] = []
        present: list[str] = []
        for name in names:
            try:
                files.extend(await list_files_async(self.root, name))
                present.append(name)
            except FileNotFoundError:
                # Only a fresh directory check counts as "artist deleted"
                if await asyncio.to_thread(os.path.isdir, os.path.join(self.root, name)):
                    logger.warning(f"Artist folder {name} changed while listing it, skipping")
                else:
                    missing.append(name)

        if missing:
            logger.info(f"Artist folders gone during rescan: {', '.join(missing)}")
            self.remove_artists(missing)

        if not present:
            return ScanReport(status=ScanStatus.COMPLETED)

        artist_ids = {encode_path_id(n) for n in present}
        scoped = self._build(files)
        self.collection = self.collection.without_artists(artist_ids).merged_with(scoped)
        logger.info(f"Rebuilt {len(present)} artist folder(s): {', '.join(present)}")
        self._notify(IndexChange(refreshed=sorted(artist_ids)))
        return await self._scan(scoped)

    def remove_artists(self, folders: Iterable[str]) -> list[str]:
        """Drop artists from the graph. Persisted records stay in the store."""
        artist_ids = {encode_path_id(n) for n in folders}
        gone = sorted(artist_ids & set(self.collection.artists))
        if not gone:
            return []
        self.collection = self.collection.without_artists(set(gone))
        logger.info(f"Removed {len(gone)} artist(s) from the index")
        self._notify(IndexChange(removed=gone))
        return gone

    async def handle_watch_update(self, update: WatchUpdate) -> None:
        """on_change callback for LibraryWatcher."""
        if self.root in update.full_rescan_roots:
            await self.refresh()
            return

        removed = [f.name for f in update.removed_artists if f.root == self.root]
        if removed:
            self.remove_artists(removed)

        rescan = [f.name for f in update.rescan if f.root == self.root]
        if rescan:
            await self.rescan_artists(rescan)

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _scan(
        self, collection: MediaCollection, progress: ProgressCallback | None = None
    ) -> ScanReport:
        report = await self._synchronizer.scan(
            collection.audio.values(), collection.albums.values(), progress=progress
        )
        if report.status is ScanStatus.COMPLETED:
            self.last_report = report
        return report

