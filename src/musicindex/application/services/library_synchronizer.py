"""Reconcile the in-memory library graph against the metadata store."""

import asyncio
import inspect
import logging
import os
import time
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable, Sequence
from enum import Enum
from typing import Any, TypeVar

from musicindex.domain.entities import (
    Album,
    AlbumRecord,
    AudioRecord,
    MediaFile,
    ScanEvent,
    ScanPhase,
    ScanReport,
    ScanStatus,
)
from musicindex.domain.ports import IMetadataExtractor, IMetadataStore
from musicindex.infrastructure.filesystem.traversal import file_mtime_async
from musicindex.infrastructure.observability.logging import correlation_id_var
from musicindex.infrastructure.persistence.models import utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T")

ProgressCallback = Callable[[ScanEvent], Awaitable[None] | None]


class _Outcome(str, Enum):
    INSERTED = "inserted"
    UPDATED = "updated"
    SKIPPED = "skipped"


class LibrarySynchronizer:
    """Keeps the metadata store in step with the files on disk.

    Three phases, each run in sequential batches of ``batch_size`` concurrent members:

    1. INSERTING   - audio files whose id is not in the store: stat, extract, insert
    2. UPDATING    - audio files already stored: stat, and only if the file mtime is
                     newer than the record's modified_at, re-extract and update
    3. AGGREGATING - albums: the aggregate is a projection of the first member track
                     that has a record; written when missing or older than the newest
                     member record

    Only one scan runs at a time per synchronizer. A scan requested while another is in
    flight returns a REJECTED report right away and touches nothing.
    """

    def __init__(
        self,
        store: IMetadataStore,
        extractor: IMetadataExtractor,
        library_root: str,
        batch_size: int = 4,
        enabled: bool = True,
    ) -> None:
        """Initialize synchronizer.

        Args:
            store: Metadata store with audio and album repositories
            extractor: Tag extractor (must not raise for bad files)
            library_root: Absolute library root the relative paths hang off
            batch_size: Concurrent members per batch
            enabled: False turns every scan into a no-op
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._store = store
        self._extractor = extractor
        self.library_root = library_root
        self.batch_size = batch_size
        self.enabled = enabled
        self._in_flight = False

    @property
    def is_scanning(self) -> bool:
        return self._in_flight

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    async def scan(
        self,
        audio: Iterable[MediaFile],
        albums: Iterable[Album],
        progress: ProgressCallback | None = None,
    ) -> ScanReport:
        """Run one full reconciliation.

        Args:
            audio: Audio files from the collection builder
            albums: Albums from the collection builder
            progress: Optional callback (sync or async) receiving ScanEvents

        Returns:
            ScanReport with per-outcome counts, or a REJECTED/DISABLED report
        """
        if not self.enabled:
            logger.info("Scanning is disabled, skipping metadata scan")
            return ScanReport(status=ScanStatus.DISABLED)

        # No await between the check and the set - nothing can sneak in between
        if self._in_flight:
            logger.info("Scan already in progress, ignoring new scan request")
            return ScanReport(status=ScanStatus.REJECTED)
        self._in_flight = True

        token = correlation_id_var.set(f"scan-{uuid.uuid4().hex[:12]}")
        try:
            return await self._run(list(audio), list(albums), progress)
        finally:
            correlation_id_var.reset(token)
            self._in_flight = False

    async def iter_scan(
        self, audio: Iterable[MediaFile], albums: Iterable[Album]
    ) -> AsyncIterator[ScanEvent]:
        """Stream form of scan(): yields progress events, COMPLETE last.

        Yields nothing when the scan is rejected or disabled. Breaking out of the
        loop early does not stop the scan, it runs to completion in the background.
        """
        queue: asyncio.Queue[ScanEvent | None] = asyncio.Queue()
        task = asyncio.create_task(self.scan(audio, albums, progress=queue.put_nowait))
        task.add_done_callback(lambda _: queue.put_nowait(None))

        while True:
            event = await queue.get()
            if event is None:
                break
            yield event

        # Surface scan-level failures (e.g. the store being unreachable) to the consumer
        await task

    # =========================================================================
    # PHASES
    # =========================================================================

    async def _run(
        self,
        audio: list[MediaFile],
        albums: list[Album],
        progress: ProgressCallback | None,
    ) -> ScanReport:
        report = ScanReport(status=ScanStatus.COMPLETED, started_at=utc_now())
        logger.info(
            f"Starting library scan: {len(audio)} audio files, {len(albums)} albums"
        )

        known_ids = await self._store.audio.find_all_ids()
        insert_candidates = [f for f in audio if f.id not in known_ids]
        update_candidates = [f for f in audio if f.id in known_ids]
        stored = {
            r.path_id: r
            for r in await self._store.audio.find_many(f.id for f in update_candidates)
        }

        async def insert_member(file: MediaFile) -> _Outcome:
            return await self._insert_audio(file)

        async def update_member(file: MediaFile) -> _Outcome:
            return await self._update_audio(file, stored[file.id])

        def tally_audio(outcome: _Outcome) -> None:
            if outcome is _Outcome.INSERTED:
                report.inserted += 1
            elif outcome is _Outcome.UPDATED:
                report.updated += 1
            else:
                report.skipped += 1

        def tally_album(outcome: _Outcome) -> None:
            if outcome is _Outcome.INSERTED:
                report.albums_inserted += 1
            elif outcome is _Outcome.UPDATED:
                report.albums_updated += 1

        report.failed += await self._run_phase(
            ScanPhase.INSERTING,
            insert_candidates,
            insert_member,
            tally_audio,
            report,
            progress,
        )
        report.failed += await self._run_phase(
            ScanPhase.UPDATING,
            [f for f in update_candidates if f.id in stored],
            update_member,
            tally_audio,
            report,
            progress,
        )
        report.albums_failed += await self._run_phase(
            ScanPhase.AGGREGATING,
            albums,
            self._sync_album,
            tally_album,
            report,
            progress,
        )

        report.completed_at = utc_now()
        await self._emit(progress, ScanEvent(ScanPhase.COMPLETE, len(audio), len(audio)))
        logger.info(
            f"Library scan complete: {report.inserted} inserted, {report.updated} updated, "
            f"{report.skipped} unchanged, {report.failed} failed, "
            f"{report.albums_inserted + report.albums_updated} albums written",
            extra={"scan": report.to_dict()},
        )
        return report

    async def _run_phase(
        self,
        phase: ScanPhase,
        items: Sequence[T],
        worker: Callable[[T], Awaitable[_Outcome]],
        tally: Callable[[_Outcome], None],
        report: ScanReport,
        progress: ProgressCallback | None,
    ) -> int:
        """Process items in sequential batches; returns the number of failed members."""
        total = len(items)
        processed = 0
        failed = 0
        started = time.monotonic()

        # Hey future me - batch N+1 does NOT start until every member of batch N settled.
        # That's the whole point: at most batch_size extractions / open files at once.
        for start in range(0, total, self.batch_size):
            batch = items[start : start + self.batch_size]
            results = await asyncio.gather(
                *(worker(item) for item in batch), return_exceptions=True
            )
            for item, result in zip(batch, results, strict=True):
                if isinstance(result, Exception):
                    failed += 1
                    self._log_failure(phase, item, result)
                elif isinstance(result, BaseException):
                    raise result
                else:
                    tally(result)
            processed += len(batch)
            await self._emit(progress, ScanEvent(phase, processed, total))

        report.phase_durations_ms[phase.value] = int((time.monotonic() - started) * 1000)
        return failed

    # =========================================================================
    # BATCH MEMBERS
    # =========================================================================

    def _absolute(self, file: MediaFile) -> str:
        return os.path.join(self.library_root, file.path)

    async def _insert_audio(self, file: MediaFile) -> _Outcome:
        path = self._absolute(file)
        mtime = await file_mtime_async(path)
        metadata = await self._extractor.extract(path)
        await self._store.audio.insert(
            AudioRecord(
                path_id=file.id,
                modified_at=mtime,
                filename=file.name,
                metadata=metadata,
            )
        )
        logger.debug(f"Inserted {file.path}")
        return _Outcome.INSERTED

    async def _update_audio(self, file: MediaFile, record: AudioRecord) -> _Outcome:
        path = self._absolute(file)
        mtime = await file_mtime_async(path)
        if mtime <= record.modified_at:
            return _Outcome.SKIPPED

        metadata = await self._extractor.extract(path)
        await self._store.audio.update(
            file.id, {"modified_at": mtime, "filename": file.name, "metadata": metadata}
        )
        logger.debug(f"Updated {file.path} (modified {mtime.isoformat()})")
        return _Outcome.UPDATED

    async def _sync_album(self, album: Album) -> _Outcome:
        member_ids = [f.id for f in album.files]
        if not member_ids:
            return _Outcome.SKIPPED

        members = await self._store.audio.find_many(member_ids)
        if not members:
            # every member failed to insert - retried on the next scan
            return _Outcome.SKIPPED

        last_modified = max(m.modified_at for m in members)
        representative = members[0]
        existing = await self._store.albums.find_one(album.id)

        if existing is None:
            await self._store.albums.insert(
                AlbumRecord(
                    path_id=album.id,
                    modified_at=last_modified,
                    filename=album.name,
                    metadata=representative.metadata.to_album_metadata(),
                )
            )
            return _Outcome.INSERTED

        if existing.modified_at < last_modified:
            await self._store.albums.update(
                album.id,
                {
                    "modified_at": last_modified,
                    "filename": album.name,
                    "metadata": representative.metadata.to_album_metadata(),
                },
            )
            return _Outcome.UPDATED

        return _Outcome.SKIPPED

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    async def _emit(progress: ProgressCallback | None, event: ScanEvent) -> None:
        if progress is None:
            return
        result = progress(event)
        if inspect.isawaitable(result):
            await result

    @staticmethod
    def _log_failure(phase: ScanPhase, item: Any, error: Exception) -> None:
        if isinstance(item, Album):
            path = os.path.join(item.artist_name, item.name)
        else:
            path = item.path
        logger.error(
            f"Scan {phase.value} failed for {path} ({item.id}): "
            f"{type(error).__name__}: {error}"
        )
