"""Tag extraction with mutagen."""

import logging
import re
from concurrent.futures.process import BrokenProcessPool
from typing import Any

from mutagen import File as MutagenFile  # type: ignore[attr-defined]

from musicindex.application.workers.extraction_pool import ExtractionPool
from musicindex.domain.entities import AudioMetadata, NumberOf
from musicindex.domain.exceptions import ExtractionError
from musicindex.domain.ports import IMetadataExtractor

logger = logging.getLogger(__name__)

# Hey future me - we normalize every tag format into Vorbis-style lowercase keys first, then
# build AudioMetadata from that single shape. FLAC and OGG already use Vorbis comments, so
# only ID3 (MP3) needs translating. Keys missing here are simply ignored.
ID3_FRAME_MAP: dict[str, str] = {
    "TIT2": "title",
    "TPE1": "artist",
    "TPE2": "albumartist",
    "TALB": "album",
    "TRCK": "tracknumber",
    "TPOS": "discnumber",
    "TDRC": "date",
    "TYER": "date",
    "TCON": "genre",
    "TCOM": "composer",
    "TSSE": "encodersettings",
}

# Vorbis spellings seen in the wild -> the key we read
VORBIS_ALIASES: dict[str, str] = {
    "album artist": "albumartist",
    "album_artist": "albumartist",
    "totaltracks": "tracktotal",
    "totaldiscs": "disctotal",
    "description": "comment",
    "encoder": "encodersettings",
    "encoder settings": "encodersettings",
}

_GAIN_PATTERN = re.compile(r"[-+]?\d+(?:[.,]\d+)?")
_YEAR_PATTERN = re.compile(r"\d{4}")


def _id3_to_vorbis(tags: Any) -> dict[str, list[str]]:
    raw: dict[str, list[str]] = {}
    for frame_id, key in ID3_FRAME_MAP.items():
        frame = tags.get(frame_id)
        if frame is not None and key not in raw:
            raw[key] = [str(text) for text in frame.text if str(text)]
    # TXXX frames carry ReplayGain and dynamic range values, keyed by description
    for frame in tags.getall("TXXX"):
        raw[frame.desc.lower()] = [str(text) for text in frame.text]
    comments = [str(text) for frame in tags.getall("COMM") for text in frame.text]
    if comments:
        raw["comment"] = comments
    return raw


def _vorbis_to_dict(tags: Any) -> dict[str, list[str]]:
    raw: dict[str, list[str]] = {}
    for key, values in tags.as_dict().items():
        key = VORBIS_ALIASES.get(key.lower(), key.lower())
        raw.setdefault(key, []).extend(str(v) for v in values)
    return raw


def _first(raw: dict[str, list[str]], key: str) -> str | None:
    values = raw.get(key)
    return values[0].strip() if values and values[0].strip() else None


def _parse_int(value: str | None) -> int | None:
    if not value:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def _parse_number_of(raw: dict[str, list[str]], key: str, total_key: str) -> NumberOf:
    # "3/12" (ID3 style) or "3" plus a separate total tag (Vorbis style)
    value = _first(raw, key) or ""
    number, _, total = value.partition("/")
    return NumberOf(
        no=_parse_int(number),
        of=_parse_int(total) or _parse_int(_first(raw, total_key)),
    )


def _parse_gain(value: str | None) -> float | None:
    if not value:
        return None
    match = _GAIN_PATTERN.search(value)
    return float(match.group().replace(",", ".")) if match else None


def _build_metadata(raw: dict[str, list[str]], info: Any) -> AudioMetadata:
    date = _first(raw, "date")
    year_match = _YEAR_PATTERN.search(date) if date else None
    artists = [a for a in raw.get("artist", []) if a.strip()]

    return AudioMetadata(
        track=_parse_number_of(raw, "tracknumber", "tracktotal"),
        disk=_parse_number_of(raw, "discnumber", "disctotal"),
        title=_first(raw, "title"),
        album=_first(raw, "album"),
        date=date,
        year=int(year_match.group()) if year_match else None,
        artists=artists,
        artist=", ".join(artists) if artists else None,
        album_artist=_first(raw, "albumartist"),
        genre=[g for g in raw.get("genre", []) if g.strip()],
        composer=[c for c in raw.get("composer", []) if c.strip()],
        comment=[c for c in raw.get("comment", []) if c.strip()],
        encoder_settings=_first(raw, "encodersettings"),
        replay_gain_track_gain=_parse_gain(_first(raw, "replaygain_track_gain")),
        replay_gain_track_peak=_parse_gain(_first(raw, "replaygain_track_peak")),
        replay_gain_album_gain=_parse_gain(_first(raw, "replaygain_album_gain")),
        replay_gain_album_peak=_parse_gain(_first(raw, "replaygain_album_peak")),
        dynamic_range=_first(raw, "dynamic range"),
        dynamic_range_album=_first(raw, "album dynamic range"),
        duration=getattr(info, "length", None) or None,
        bitrate=getattr(info, "bitrate", None) or None,
        sample_rate=getattr(info, "sample_rate", None) or None,
    )


def read_tags(path: str) -> AudioMetadata:
    """Read tags and stream info from an audio file.

    Module-level so it can be pickled into a process pool.

    Raises:
        ExtractionError: If mutagen cannot open or parse the file
    """
    try:
        audio = MutagenFile(path)
    except Exception as e:
        # mutagen raises a zoo of exception types for damaged files (MutagenError,
        # struct.error, IndexError ...) - they all mean "can't read this one".
        raise ExtractionError(path, f"{type(e).__name__}: {e}") from e
    if audio is None:
        raise ExtractionError(path, "unrecognized audio format")

    tags = audio.tags
    if tags is None:
        raw: dict[str, list[str]] = {}
    elif hasattr(tags, "getall"):
        raw = _id3_to_vorbis(tags)
    else:
        raw = _vorbis_to_dict(tags)

    return _build_metadata(raw, audio.info)


class MutagenMetadataExtractor(IMetadataExtractor):
    """IMetadataExtractor running read_tags() on an ExtractionPool.

    Never raises for bad files: failures are logged and empty metadata is returned.
    """

    def __init__(self, pool: ExtractionPool) -> None:
        self._pool = pool

    async def extract(self, absolute_path: str) -> AudioMetadata:
        try:
            return await self._pool.run(read_tags, absolute_path)
        except ExtractionError as e:
            logger.warning(f"{e.message} - storing empty metadata")
        except BrokenProcessPool:
            logger.warning(
                f"Extraction worker died on {absolute_path} - storing empty metadata"
            )
        return AudioMetadata()
