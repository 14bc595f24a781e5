"""Byte-range media gateway: GET /file/{id}."""

import logging
import mimetypes
import os
from collections.abc import Iterator

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import FileResponse, StreamingResponse

from musicindex.api.dependencies import get_library_index
from musicindex.application.services.library_index_service import LibraryIndex
from musicindex.domain.exceptions import EntityNotFoundException
from musicindex.domain.value_objects import (
    decode_path_id,
    first_range,
    is_image,
    is_supported,
)

router = APIRouter(tags=["media"])
logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


def resolve_library_file(root: str, relative: str) -> str | None:
    """Absolute path of relative under root, or None if it escapes the root."""
    real_root = os.path.realpath(root)
    candidate = os.path.realpath(os.path.join(real_root, relative))
    if os.path.commonpath([real_root, candidate]) != real_root or candidate == real_root:
        return None
    return candidate


def _iter_file(path: str, start: int, end: int) -> Iterator[bytes]:
    # Sync generator: Starlette iterates it in its threadpool
    remaining = end - start + 1
    with open(path, "rb") as f:
        f.seek(start)
        while remaining > 0:
            chunk = f.read(min(CHUNK_SIZE, remaining))
            if not chunk:
                break
            remaining -= len(chunk)
            yield chunk


# Hey future me - players (the <audio> element, mpv, ...) always send a Range header when
# streaming, so a Range-less request for AUDIO gets an empty 204. Images are small and
# fetched by plain <img> tags, so those come back whole with 200. Only the first range of
# a multi-range header is served; we never build multipart/byteranges bodies.
@router.get("/file/{path_id}")
async def serve_file(
    path_id: str,
    request: Request,
    index: LibraryIndex = Depends(get_library_index),
) -> Response:
    """Serve a library file, honoring the first requested byte range.

    Raises:
        PathDecodeError: If path_id is not a valid content id (400)
        EntityNotFoundException: If the file is missing or outside the library (404)
    """
    relative = decode_path_id(path_id)
    path = resolve_library_file(index.root, relative)
    if path is None or not is_supported(path) or not os.path.isfile(path):
        raise EntityNotFoundException("File", path_id)

    size = os.path.getsize(path)
    media_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    range_header = request.headers.get("range")

    if range_header is None:
        if is_image(path):
            return FileResponse(path, media_type=media_type)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    byte_range = first_range(range_header, size)
    if byte_range is None:
        logger.debug(f"Unsatisfiable range {range_header!r} for {relative} ({size} bytes)")
        return Response(
            status_code=status.HTTP_416_REQUESTED_RANGE_NOT_SATISFIABLE,
            headers={"Content-Range": f"bytes */{size}"},
        )

    start, end = byte_range
    return StreamingResponse(
        _iter_file(path, start, end),
        status_code=status.HTTP_206_PARTIAL_CONTENT,
        media_type=media_type,
        headers={
            "Content-Range": f"bytes {start}-{end}/{size}",
            "Accept-Ranges": "bytes",
            "Content-Length": str(end - start + 1),
        },
    )
