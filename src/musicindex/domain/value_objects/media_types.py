"""Supported file kinds of the library."""

import os

AUDIO_EXTENSIONS: frozenset[str] = frozenset({".mp3", ".flac", ".ogg"})
IMAGE_EXTENSIONS: frozenset[str] = frozenset({".jpg", ".jpeg", ".png"})
SUPPORTED_EXTENSIONS: frozenset[str] = AUDIO_EXTENSIONS | IMAGE_EXTENSIONS


def extension_of(name: str) -> str:
    """Lower-cased extension including the dot ("" if none)."""
    return os.path.splitext(name)[1].lower()


def is_audio(name: str) -> bool:
    return extension_of(name) in AUDIO_EXTENSIONS


def is_image(name: str) -> bool:
    return extension_of(name) in IMAGE_EXTENSIONS


def is_hidden(name: str) -> bool:
    """Dot-files and dot-folders (.DS_Store, .git, the store's own .musicindex.db)."""
    return os.path.basename(name).startswith(".")


def is_supported(name: str) -> bool:
    """True for non-hidden audio or image files."""
    return not is_hidden(name) and extension_of(name) in SUPPORTED_EXTENSIONS
