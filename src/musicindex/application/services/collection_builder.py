"""Turn a flat file list into the artist/album/audio/image graph.

Hey future me - this is a PURE function on purpose. No stat calls, no store, no logging.
The watcher calls it for a handful of artist folders, the full refresh calls it for the
whole library, tests call it with made-up path lists. Same input, same output, always.

Layout it understands (relative to the library root):

    Artist/track.mp3                  -> loose artist-level audio
    Artist/photo.jpg                  -> loose artist-level image
    Artist/Album/01 - Song.flac       -> album audio
    Artist/Album/Scans/front.jpg      -> album image (any depth below the album)
    Artist/Album/CD1/01 - Song.flac   -> album audio (any depth below the album)

Anything deeper than the album folder belongs to that album. A file directly in the
library root has no artist folder and is dropped.
"""

import os
from pathlib import Path

from musicindex.domain.entities import (
    Album,
    AlbumSummary,
    Artist,
    FileRef,
    FirstAlbumAudio,
    MediaCollection,
    MediaFile,
    UrlMode,
)
from musicindex.domain.value_objects import (
    encode_path_id,
    is_album_cover,
    is_default_cover_name,
    is_image,
)


def _content_url(base_url: str, kind: str, path_id: str) -> str:
    return f"{base_url}/{kind}/{path_id}"


class _UrlFactory:
    """Renders entity and playable URLs for one build."""

    def __init__(self, root: str, url_mode: UrlMode, base_url: str) -> None:
        self._root = Path(root)
        self._mode = url_mode
        self._base_url = base_url.rstrip("/")

    def entity(self, kind: str, path_id: str) -> str:
        if self._mode is UrlMode.FILE:
            return ""
        return _content_url(self._base_url, kind, path_id)

    def playable(self, relative_path: str, path_id: str) -> str:
        if self._mode is UrlMode.FILE:
            return (self._root / relative_path).absolute().as_uri()
        return _content_url(self._base_url, "file", path_id)


def build_collection(
    files: list[str],
    root: str,
    url_mode: UrlMode = UrlMode.CONTENT,
    base_url: str = "",
) -> MediaCollection:
    """Build the four ID-keyed maps from a pre-filtered relative path list.

    Args:
        files: Relative paths (host separator), hidden and unsupported files already removed
        root: Library root the paths are relative to (only used for file:// URLs)
        url_mode: CONTENT for HTTP URLs, FILE for direct file:// references
        base_url: Prefix for CONTENT URLs

    Returns:
        MediaCollection with artists, albums, audio and images maps
    """
    urls = _UrlFactory(root, url_mode, base_url)
    collection = MediaCollection()
    artists = collection.artists
    albums = collection.albums

    # =========================================================================
    # FIRST PASS: route every file into its artist / album bucket
    # =========================================================================
    for relative_path in files:
        artist_name, *rest = relative_path.split(os.sep)
        if not rest or not artist_name:
            continue

        artist_id = encode_path_id(artist_name)
        file_id = encode_path_id(relative_path)
        artist_url = urls.entity("artist", artist_id)
        file_url = urls.playable(relative_path, file_id)

        artist = artists.get(artist_id)
        if artist is None:
            artist = Artist(id=artist_id, name=artist_name, url=artist_url)
            artists[artist_id] = artist

        if len(rest) == 1:
            name = rest[0]
            media = MediaFile(
                id=file_id,
                name=name,
                path=relative_path,
                artist_id=artist_id,
                artist_name=artist_name,
                artist_url=artist_url,
                url=urls.entity("image" if is_image(name) else "audio", file_id),
                file_url=file_url,
            )
            ref = FileRef(id=file_id, name=name, url=media.url, file_url=file_url)
            if is_image(name):
                artist.images.append(ref)
                collection.images[file_id] = media
            else:
                artist.files.append(ref)
                collection.audio[file_id] = media
            continue

        album_name, *album_rest = rest
        name = album_rest[-1]
        album_id = encode_path_id(os.path.join(artist_name, album_name))
        album_url = urls.entity("album", album_id)

        album = albums.get(album_id)
        if album is None:
            album = Album(
                id=album_id,
                name=album_name,
                url=album_url,
                artist_id=artist_id,
                artist_name=artist_name,
                artist_url=artist_url,
            )
            albums[album_id] = album
            # First sighting fixes the album's position in the artist's list
            artist.albums.append(AlbumSummary(id=album_id, name=album_name, url=album_url))

        media = MediaFile(
            id=file_id,
            name=name,
            path=relative_path,
            artist_id=artist_id,
            artist_name=artist_name,
            artist_url=artist_url,
            url=urls.entity("image" if is_image(name) else "audio", file_id),
            file_url=file_url,
            album_id=album_id,
            album_name=album_name,
            album_url=album_url,
        )
        ref = FileRef(id=file_id, name=name, url=media.url, file_url=file_url)

        if is_image(name):
            album.images.append(ref)
            collection.images[file_id] = media
            # Eager match: "Valta/Valta.jpg" beats any later heuristic
            if album.cover_url is None and is_album_cover(album_name, name):
                album.cover_url = file_url
        else:
            album.files.append(ref)
            collection.audio[file_id] = media

    # =========================================================================
    # SECOND PASS: first album audio + cover fallbacks
    # =========================================================================
    for artist in artists.values():
        for summary in artist.albums:
            album = albums[summary.id]
            if album.files:
                first = album.files[0]
                summary.first_album_audio = FirstAlbumAudio(id=first.id, name=first.name)

            if album.cover_url is None:
                album.cover_url = _fallback_cover(album.images)
            summary.cover_url = album.cover_url

    return collection


def _fallback_cover(images: list[FileRef]) -> str | None:
    for image in images:
        if is_default_cover_name(image.name):
            return image.file_url
    if images:
        return images[0].file_url
    return None
