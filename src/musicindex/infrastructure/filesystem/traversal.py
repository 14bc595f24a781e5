"""Library directory traversal."""

import asyncio
import logging
import os
from datetime import UTC, datetime

from musicindex.domain.value_objects import is_hidden, is_supported

logger = logging.getLogger(__name__)


def _walk(directory: str, prefix: str, seen: set[tuple[int, int]]) -> list[str]:
    """Collect supported files below directory as paths prefixed with prefix.

    Unreadable or vanished directories are logged and skipped. seen holds the
    (st_dev, st_ino) of every directory entered so symlink cycles are walked once.
    """
    try:
        st = os.stat(directory)
        key = (st.st_dev, st.st_ino)
        if key in seen:
            logger.warning(f"Skipping directory cycle at {directory}")
            return []
        seen.add(key)
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        logger.warning(f"Skipping unreadable directory {directory}: {e}")
        return []

    found: list[str] = []
    for entry in entries:
        if is_hidden(entry.name):
            continue
        relative = os.path.join(prefix, entry.name) if prefix else entry.name
        try:
            is_dir = entry.is_dir(follow_symlinks=True)
        except OSError:
            is_dir = False
        if is_dir:
            found.extend(_walk(entry.path, relative, seen))
        elif is_supported(entry.name):
            found.append(relative)
    return found


def list_files(root: str, subdir: str = "") -> list[str]:
    """List supported, non-hidden files under root, relative to root.

    Args:
        root: Library root
        subdir: Optional relative folder (e.g. one artist) to limit the walk to

    Returns:
        Sorted relative paths using the host separator

    Raises:
        FileNotFoundError: If root (or root/subdir) does not exist
    """
    start = os.path.join(root, subdir) if subdir else root
    if not os.path.isdir(start):
        raise FileNotFoundError(start)
    return _walk(start, subdir, set())


async def list_files_async(root: str, subdir: str = "") -> list[str]:
    return await asyncio.to_thread(list_files, root, subdir)


def file_mtime(path: str) -> datetime:
    """Modification time of path as an aware UTC datetime."""
    return datetime.fromtimestamp(os.stat(path).st_mtime, tz=UTC)


async def file_mtime_async(path: str) -> datetime:
    return await asyncio.to_thread(file_mtime, path)
