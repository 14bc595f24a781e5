"""Domain value objects."""

from musicindex.domain.value_objects.byte_range import (
    ByteRange,
    first_range,
    parse_range_header,
)
from musicindex.domain.value_objects.content_id import decode_path_id, encode_path_id
from musicindex.domain.value_objects.cover_art import (
    is_album_cover,
    is_default_cover_name,
    normalize_cover_name,
)
from musicindex.domain.value_objects.file_signature import (
    file_signature,
    signature_from_stat,
)
from musicindex.domain.value_objects.media_types import (
    AUDIO_EXTENSIONS,
    IMAGE_EXTENSIONS,
    SUPPORTED_EXTENSIONS,
    is_audio,
    is_hidden,
    is_image,
    is_supported,
)
from musicindex.domain.value_objects.track_order import (
    format_track_key,
    track_pad_width,
    track_sort_key,
)

__all__ = [
    "AUDIO_EXTENSIONS",
    "IMAGE_EXTENSIONS",
    "SUPPORTED_EXTENSIONS",
    "ByteRange",
    "decode_path_id",
    "encode_path_id",
    "file_signature",
    "first_range",
    "format_track_key",
    "is_album_cover",
    "is_audio",
    "is_default_cover_name",
    "is_hidden",
    "is_image",
    "is_supported",
    "normalize_cover_name",
    "parse_range_header",
    "signature_from_stat",
    "track_pad_width",
    "track_sort_key",
]
