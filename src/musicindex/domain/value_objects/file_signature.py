"""Change signature of a file as seen by the watcher."""

import hashlib
import os


def signature_from_stat(st: os.stat_result) -> str:
    """Hash of (mtime, ctime, birthtime).

    st_birthtime only exists on macOS/BSD (and Windows since 3.12); elsewhere it is
    hashed as None so the signature stays stable on the same host.
    """
    birthtime = getattr(st, "st_birthtime", None)
    payload = f"{st.st_mtime!r}|{st.st_ctime!r}|{birthtime!r}"
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()


def file_signature(path: str) -> str:
    """Signature of the file at path (raises OSError if it vanished)."""
    return signature_from_stat(os.stat(path))
