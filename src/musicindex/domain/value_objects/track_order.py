"""Track ordering keys for album listings.

Keys look like "07", "2.07" or "1.007": the disk number (when tagged) as a prefix, then
the track number zero-padded to max(2, digits of the album's highest track number).
Sorting the keys as strings gives the play order.
"""

from collections.abc import Iterable
from typing import Any

MIN_TRACK_WIDTH = 2


def track_pad_width(track_numbers: Iterable[int | None]) -> int:
    """Padding width for an album whose tracks carry these numbers."""
    highest = max((n for n in track_numbers if n is not None), default=0)
    return max(MIN_TRACK_WIDTH, len(str(highest)))


def format_track_key(
    track_no: int | None, disk_no: int | None = None, width: int = MIN_TRACK_WIDTH
) -> str | None:
    """Build the ordering key, or None when the track has no number."""
    if track_no is None:
        return None
    key = str(track_no).zfill(width)
    if disk_no is not None:
        return f"{disk_no}.{key}"
    return key


def track_sort_key(track_key: str | None, name: str) -> tuple[Any, ...]:
    """Sort key: numbered tracks first (by key), then unnumbered ones by file name."""
    if track_key is None:
        return (1, "", name.lower())
    return (0, track_key, name.lower())
