"""Domain entities."""

from musicindex.domain.entities.collection import (
    Album,
    AlbumSummary,
    Artist,
    FileRef,
    FirstAlbumAudio,
    MediaCollection,
    MediaFile,
    UrlMode,
)
from musicindex.domain.entities.metadata import (
    AlbumMetadata,
    AlbumRecord,
    AudioMetadata,
    AudioRecord,
    NumberOf,
)
from musicindex.domain.entities.scan import ScanEvent, ScanPhase, ScanReport, ScanStatus
from musicindex.domain.entities.watch import (
    ArtistFolder,
    WatchEntry,
    WatchEvent,
    WatchEventKind,
    WatchState,
    WatchUpdate,
)

__all__ = [
    "Album",
    "AlbumMetadata",
    "AlbumRecord",
    "AlbumSummary",
    "Artist",
    "ArtistFolder",
    "AudioMetadata",
    "AudioRecord",
    "FileRef",
    "FirstAlbumAudio",
    "MediaCollection",
    "MediaFile",
    "NumberOf",
    "ScanEvent",
    "ScanPhase",
    "ScanReport",
    "ScanStatus",
    "UrlMode",
    "WatchEntry",
    "WatchEvent",
    "WatchEventKind",
    "WatchState",
    "WatchUpdate",
]
