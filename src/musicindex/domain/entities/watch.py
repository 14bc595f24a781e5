"""Filesystem watch types."""

from dataclasses import dataclass, field
from enum import Enum

# (absolute path, signature) - signature is file_signature() of the file
WatchEntry = tuple[str, str]


class WatchState(str, Enum):
    STARTING = "starting"
    READY = "ready"
    STEADY = "steady"
    STOPPED = "stopped"


class WatchEventKind(str, Enum):
    ADD = "add"
    CHANGE = "change"
    UNLINK = "unlink"
    UNLINK_DIR = "unlink_dir"
    READY = "ready"


@dataclass(frozen=True)
class WatchEvent:
    """Raw event from a watch source. signature is only set for ADD/CHANGE."""

    kind: WatchEventKind
    path: str = ""
    signature: str | None = None


@dataclass(frozen=True)
class ArtistFolder:
    """Top-level folder under one library root."""

    root: str
    name: str


@dataclass
class WatchUpdate:
    """One consolidated change set.

    songs is the complete, path-sorted list of known files after applying the change.
    rescan lists artist folders whose content changed and still exist; removed_artists
    lists folders confirmed gone from disk. full_rescan_roots is set on a first run
    (empty baseline) when whole roots need indexing.
    """

    added: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    songs: list[WatchEntry] = field(default_factory=list)
    rescan: list[ArtistFolder] = field(default_factory=list)
    removed_artists: list[ArtistFolder] = field(default_factory=list)
    full_rescan_roots: list[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (
            self.added
            or self.updated
            or self.removed
            or self.rescan
            or self.removed_artists
            or self.full_rescan_roots
        )
