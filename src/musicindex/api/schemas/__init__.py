"""API response schemas."""

from musicindex.api.schemas.library import (
    AlbumResponse,
    ArtistListItem,
    ArtistResponse,
    AudioResponse,
    FileRefResponse,
    FindResponse,
    HealthResponse,
    ImageResponse,
    ScanResponse,
    TrackResponse,
)

__all__ = [
    "AlbumResponse",
    "ArtistListItem",
    "ArtistResponse",
    "AudioResponse",
    "FileRefResponse",
    "FindResponse",
    "HealthResponse",
    "ImageResponse",
    "ScanResponse",
    "TrackResponse",
]
