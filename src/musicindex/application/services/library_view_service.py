"""Caller-facing read model: artist pages, album pages, tracks and search.

Combines the in-memory graph (structure, URLs) with persisted metadata (titles,
track numbers, years). Nothing here writes.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from rapidfuzz import fuzz, process

from musicindex.application.services.library_index_service import LibraryIndex
from musicindex.domain.entities import (
    Album,
    AlbumMetadata,
    AlbumSummary,
    Artist,
    AudioMetadata,
    AudioRecord,
    FileRef,
    MediaFile,
)
from musicindex.domain.exceptions import EntityNotFoundException
from musicindex.domain.ports import IMetadataStore
from musicindex.domain.value_objects import (
    format_track_key,
    track_pad_width,
    track_sort_key,
)

logger = logging.getLogger(__name__)

# rapidfuzz WRatio score (0-100) below which a match is noise
FIND_SCORE_CUTOFF = 60


@dataclass
class TrackView:
    id: str
    name: str
    filename: str
    track: str | None
    url: str
    file_url: str
    metadata: AudioMetadata | None = None


@dataclass
class AlbumView:
    id: str
    name: str
    url: str
    artist_name: str
    artist_url: str
    cover_url: str | None
    year: int | None = None
    files: list[TrackView] = field(default_factory=list)
    images: list[FileRef] = field(default_factory=list)
    metadata: AlbumMetadata | None = None


@dataclass
class ArtistView:
    id: str
    name: str
    url: str
    albums: list[AlbumView] = field(default_factory=list)
    files: list[TrackView] = field(default_factory=list)
    images: list[FileRef] = field(default_factory=list)


@dataclass
class AudioView:
    id: str
    name: str
    filename: str
    track: str | None
    url: str
    file_url: str
    artist_name: str
    artist_url: str
    album_id: str | None
    album_name: str | None
    album_url: str | None
    cover_url: str | None
    metadata: AudioMetadata | None = None


@dataclass
class FindResult:
    artists: list[ArtistView] = field(default_factory=list)
    albums: list[AlbumView] = field(default_factory=list)
    audios: list[AudioView] = field(default_factory=list)


def _by_year(album: AlbumView) -> tuple[Any, ...]:
    # Albums without a year go last, ties keep first-seen order (sort is stable)
    return (album.year is None, album.year or 0)


class LibraryViewService:
    """Read-only views over a LibraryIndex and its metadata store."""

    def __init__(self, index: LibraryIndex, store: IMetadataStore) -> None:
        self._index = index
        self._store = store

    # =========================================================================
    # ARTISTS
    # =========================================================================

    def list_artists(self) -> list[Artist]:
        return sorted(self._index.collection.artists.values(), key=lambda a: a.name.lower())

    def _artist(self, artist_id: str) -> Artist:
        artist = self._index.collection.artists.get(artist_id)
        if artist is None:
            raise EntityNotFoundException("Artist", artist_id)
        return artist

    async def get_artist(self, artist_id: str) -> ArtistView:
        """Artist with album summaries named/dated from their first track, oldest first."""
        artist = self._artist(artist_id)
        first_ids = [a.first_album_audio.id for a in artist.albums if a.first_album_audio]
        records = await self._records(first_ids)

        albums = [self._summary_view(artist, summary, records) for summary in artist.albums]
        albums.sort(key=_by_year)
        return ArtistView(
            id=artist.id,
            name=artist.name,
            url=artist.url,
            albums=albums,
            images=list(artist.images),
        )

    async def get_artist_albums(self, artist_id: str) -> ArtistView:
        """Artist with every album's ordered tracks plus its loose tracks."""
        artist = self._artist(artist_id)
        collection = self._index.collection
        pairs = [(s, collection.albums[s.id]) for s in artist.albums if s.id in collection.albums]

        member_ids = [f.id for _, album in pairs for f in album.files]
        records = await self._records(member_ids + [f.id for f in artist.files])

        album_views = []
        for summary, album in pairs:
            view = self._summary_view(artist, summary, records)
            view.files = self._ordered_tracks(album.files, records)
            view.images = list(album.images)
            album_views.append(view)
        album_views.sort(key=_by_year)

        # Loose tracks: no album-wide padding context, plain 2-digit keys
        loose = self._ordered_tracks(artist.files, records, pad_to_album=False)
        return ArtistView(
            id=artist.id,
            name=artist.name,
            url=artist.url,
            albums=album_views,
            files=loose,
            images=list(artist.images),
        )

    # =========================================================================
    # ALBUMS AND AUDIO
    # =========================================================================

    async def get_album(self, album_id: str) -> AlbumView:
        album = self._index.collection.albums.get(album_id)
        if album is None:
            raise EntityNotFoundException("Album", album_id)
        return await self._album_view(album)

    async def _album_view(self, album: Album) -> AlbumView:
        aggregate = await self._store.albums.find_one(album.id)
        records = await self._records([f.id for f in album.files])
        metadata = aggregate.metadata if aggregate else None
        return AlbumView(
            id=album.id,
            name=(metadata.album if metadata and metadata.album else album.name),
            url=album.url,
            artist_name=album.artist_name,
            artist_url=album.artist_url,
            cover_url=album.cover_url,
            year=metadata.year if metadata else None,
            files=self._ordered_tracks(album.files, records),
            images=list(album.images),
            metadata=metadata,
        )

    async def get_audio(self, audio_id: str) -> AudioView:
        audio = self._index.collection.audio.get(audio_id)
        if audio is None:
            raise EntityNotFoundException("Audio", audio_id)
        record = await self._store.audio.find_one(audio_id)
        return self._audio_view(audio_id, record)

    def _audio_view(self, audio_id: str, record: AudioRecord | None) -> AudioView:
        collection = self._index.collection
        audio = collection.audio[audio_id]
        album = collection.albums.get(audio.album_id) if audio.album_id else None
        metadata = record.metadata if record else None
        return AudioView(
            id=audio.id,
            name=(metadata.title if metadata and metadata.title else audio.name),
            filename=audio.name,
            track=self._track_key(metadata),
            url=audio.url,
            file_url=audio.file_url,
            artist_name=audio.artist_name,
            artist_url=audio.artist_url,
            album_id=audio.album_id,
            album_name=audio.album_name,
            album_url=audio.album_url,
            cover_url=album.cover_url if album else None,
            metadata=metadata,
        )

    def get_image(self, image_id: str) -> MediaFile:
        image = self._index.collection.images.get(image_id)
        if image is None:
            raise EntityNotFoundException("Image", image_id)
        return image

    # =========================================================================
    # FIND
    # =========================================================================

    async def find(self, query: str, limit: int = 4) -> FindResult:
        """Fuzzy search over artist, album and track names."""
        query = query.strip()
        if not query:
            return FindResult()

        collection = self._index.collection
        artist_hits = self._fuzzy(query, {a.id: a.name for a in collection.artists.values()}, limit)
        album_hits = self._fuzzy(query, {a.id: a.name for a in collection.albums.values()}, limit)
        audio_hits = self._fuzzy(
            query, {a.id: a.name for a in collection.audio.values()}, limit + 2
        )

        records = await self._records(audio_hits)
        return FindResult(
            artists=[await self.get_artist_albums(i) for i in artist_hits],
            albums=[await self._album_view(collection.albums[i]) for i in album_hits],
            audios=[self._audio_view(i, records.get(i)) for i in audio_hits],
        )

    @staticmethod
    def _fuzzy(query: str, choices: dict[str, str], limit: int) -> list[str]:
        matches = process.extract(
            query,
            choices,
            scorer=fuzz.WRatio,
            processor=str.lower,
            limit=limit,
            score_cutoff=FIND_SCORE_CUTOFF,
        )
        # dict choices -> (name, score, key)
        return [key for _name, _score, key in matches]

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _records(self, ids: list[str]) -> dict[str, AudioRecord]:
        if not ids:
            return {}
        return {r.path_id: r for r in await self._store.audio.find_many(ids)}

    @staticmethod
    def _summary_view(
        artist: Artist, summary: AlbumSummary, records: dict[str, AudioRecord]
    ) -> AlbumView:
        first = records.get(summary.first_album_audio.id) if summary.first_album_audio else None
        metadata = first.metadata if first else None
        return AlbumView(
            id=summary.id,
            name=(metadata.album if metadata and metadata.album else summary.name),
            url=summary.url,
            artist_name=artist.name,
            artist_url=artist.url,
            cover_url=summary.cover_url,
            year=metadata.year if metadata else None,
        )

    @staticmethod
    def _track_key(metadata: AudioMetadata | None, width: int = 2) -> str | None:
        if metadata is None:
            return None
        return format_track_key(metadata.track.no, metadata.disk.no, width)

    def _ordered_tracks(
        self,
        files: list[FileRef],
        records: dict[str, AudioRecord],
        pad_to_album: bool = True,
    ) -> list[TrackView]:
        metadata = {f.id: records[f.id].metadata for f in files if f.id in records}
        width = (
            track_pad_width(m.track.no for m in metadata.values()) if pad_to_album else 2
        )
        tracks = []
        for f in files:
            meta = metadata.get(f.id)
            key = self._track_key(meta, width)
            if not pad_to_album and key == "00":
                # loose files tagged track 0 are effectively untagged
                key = None
            tracks.append(
                TrackView(
                    id=f.id,
                    name=(meta.title if meta and meta.title else f.name),
                    filename=f.name,
                    track=key,
                    url=f.url,
                    file_url=f.file_url,
                    metadata=meta,
                )
            )
        tracks.sort(key=lambda t: track_sort_key(t.track, t.filename))
        return tracks
