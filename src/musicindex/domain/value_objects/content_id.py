"""Reversible path <-> content ID encoding.

Every artist, album, audio and image in the index is keyed by the URL-safe base64
form of its path relative to the library root, with the "=" padding stripped.
This is NOT a hash: the ID decodes back to the exact path, so two different
paths can never share an ID and any component (HTTP layer, store, watcher) can
turn an ID back into a file without a lookup table.

Example:
    >>> encode_path_id("Valta/Valta/01 - Intro.mp3")
    'VmFsdGEvVmFsdGEvMDEgLSBJbnRyby5tcDM'
    >>> decode_path_id("VmFsdGEvVmFsdGEvMDEgLSBJbnRyby5tcDM")
    'Valta/Valta/01 - Intro.mp3'
"""

import base64
import binascii
import re

from musicindex.domain.exceptions import PathDecodeError

# Hey future me - surrogateescape is what os.listdir() uses for bytes that are not valid
# UTF-8 on POSIX. Encoding with the same handler gives us back the SAME raw bytes, so
# even a badly-named file from an old Windows-1252 rip round-trips through its ID.
_PATH_ENCODING = "utf-8"
_PATH_ERRORS = "surrogateescape"

_ID_ALPHABET = re.compile(r"^[A-Za-z0-9_-]*$")


def encode_path_id(relative_path: str) -> str:
    """Encode a library-relative path into its content ID.

    Args:
        relative_path: Path relative to the library root, host separators

    Returns:
        Unpadded URL-safe base64 string
    """
    raw = relative_path.encode(_PATH_ENCODING, _PATH_ERRORS)
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def decode_path_id(path_id: str) -> str:
    """Decode a content ID back into the library-relative path.

    Args:
        path_id: ID produced by encode_path_id()

    Returns:
        The decoded relative path

    Raises:
        PathDecodeError: If the ID is not canonical unpadded URL-safe base64
    """
    if not _ID_ALPHABET.match(path_id):
        raise PathDecodeError(path_id, "characters outside the URL-safe alphabet")
    if len(path_id) % 4 == 1:
        raise PathDecodeError(path_id, "truncated id")

    padded = path_id + "=" * (-len(path_id) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded)
    except (binascii.Error, ValueError) as e:
        raise PathDecodeError(path_id, str(e)) from e

    # Non-zero trailing bits decode to the same bytes as the canonical form. Reject them,
    # otherwise two IDs would point at one file and the ID would stop being a primary key.
    if base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii") != path_id:
        raise PathDecodeError(path_id, "non-canonical encoding")

    return raw.decode(_PATH_ENCODING, _PATH_ERRORS)
