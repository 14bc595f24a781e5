"""HTTP Range header parsing for the media gateway."""

ByteRange = tuple[int, int]


def parse_range_header(header: str | None, size: int) -> list[ByteRange]:
    """Parse a ``Range: bytes=...`` header against a resource of ``size`` bytes.

    Supported forms per range: ``start-end``, ``start-`` (to the end) and ``-N``
    (the last N bytes). Ends past the resource are clamped to ``size - 1``;
    malformed or inverted ranges are dropped. Any unit other than ``bytes``
    yields no ranges.

    Args:
        header: Raw header value, e.g. "bytes=0-499,1000-"
        size: Total resource length in bytes

    Returns:
        List of inclusive (start, end) tuples, possibly empty

    Example:
        >>> parse_range_header("bytes=-100", 1000)
        [(900, 999)]
    """
    if not header or size <= 0:
        return []

    unit, sep, spec = header.partition("=")
    if not sep or unit.strip().lower() != "bytes":
        return []

    ranges: list[ByteRange] = []
    for part in spec.split(","):
        first, dash, last = part.strip().partition("-")
        if not dash:
            continue
        first, last = first.strip(), last.strip()
        try:
            if not first:
                # suffix form: last N bytes
                length = int(last)
                start, end = max(0, size - length), size - 1
            else:
                start = int(first)
                end = int(last) if last else size - 1
        except ValueError:
            continue

        end = min(end, size - 1)
        if start < 0 or start > end:
            continue
        ranges.append((start, end))

    return ranges


def first_range(header: str | None, size: int) -> ByteRange | None:
    """Only the first satisfiable range is honored when streaming."""
    ranges = parse_range_header(header, size)
    return ranges[0] if ranges else None
