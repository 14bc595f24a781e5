"""Album cover detection rules.

Precedence used by the collection builder:
1. an image named after the album folder ("Valta/Valta.jpg")
2. an image whose name looks like a scan default (front, cover, _large, folder)
3. the first image found under the album
"""

import os
import re

# Characters Windows/macOS refuse in file names. Rippers replace them when naming the cover
# after the album, so "AC/DC: Live" ends up as "ACDC Live.jpg" - strip them on both sides.
_ILLEGAL_CHARS = re.compile(r'[<>:"/\\|?*]')

DEFAULT_COVER_MARKERS: tuple[str, ...] = ("front", "cover", "_large", "folder")


def normalize_cover_name(name: str) -> str:
    """Lower-case, drop filesystem-illegal characters and surrounding whitespace."""
    return _ILLEGAL_CHARS.sub("", name).strip().lower()


def is_album_cover(album_name: str, image_name: str) -> bool:
    """True if the image file is named after the album (extension ignored)."""
    stem = os.path.splitext(image_name)[0]
    normalized = normalize_cover_name(stem)
    return bool(normalized) and normalized == normalize_cover_name(album_name)


def is_default_cover_name(image_name: str) -> bool:
    """True for the usual cover file names: front.jpg, Cover.png, AlbumArt_large.jpg, folder.jpg."""
    lowered = image_name.lower()
    return any(marker in lowered for marker in DEFAULT_COVER_MARKERS)
