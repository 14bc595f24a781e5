"""Application services."""

from musicindex.application.services.collection_builder import build_collection
from musicindex.application.services.library_index_service import (
    IndexChange,
    LibraryIndex,
)
from musicindex.application.services.library_synchronizer import LibrarySynchronizer
from musicindex.application.services.library_view_service import (
    AlbumView,
    ArtistView,
    AudioView,
    FindResult,
    LibraryViewService,
    TrackView,
)
from musicindex.application.services.library_watcher import LibraryWatcher

__all__ = [
    "AlbumView",
    "ArtistView",
    "AudioView",
    "FindResult",
    "IndexChange",
    "LibraryIndex",
    "LibrarySynchronizer",
    "LibraryViewService",
    "LibraryWatcher",
    "TrackView",
    "build_collection",
]
