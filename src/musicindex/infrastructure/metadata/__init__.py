"""Metadata extraction adapters."""

from musicindex.infrastructure.metadata.mutagen_extractor import (
    MutagenMetadataExtractor,
    read_tags,
)

__all__ = ["MutagenMetadataExtractor", "read_tags"]
