"""Domain exceptions."""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, message is kept as an attribute so handlers can read it without parsing
    # str(exc). Don't raise this directly - raise a subclass so callers can catch precisely.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class EntityNotFoundException(DomainException):
    """Raised when an artist/album/audio/image ID is not in the current index."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(f"{entity_type} with id {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ConfigurationError(DomainException):
    """Raised when settings are unusable, e.g. the library root does not exist."""

    pass


class PathDecodeError(DomainException):
    """Raised when a content ID is not valid URL-safe base64 of a path.

    IDs minted by encode_path_id() always decode, so seeing this means somebody
    handed us a hand-crafted or truncated ID (typically via the HTTP API).
    """

    def __init__(self, path_id: str, reason: str = "invalid content id") -> None:
        super().__init__(f"Cannot decode path id {path_id!r}: {reason}")
        self.path_id = path_id


class ExtractionError(DomainException):
    """Raised when tag extraction fails for a single file.

    The metadata extractor adapter catches this and falls back to empty metadata,
    so the file stays discoverable by filename.
    """

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Metadata extraction failed for {path}: {reason}")
        self.path = path
        self.reason = reason

    # Raised inside process-pool workers, so it must survive a pickle round trip
    def __reduce__(self) -> tuple[Any, ...]:
        return (type(self), (self.path, self.reason))


class StoreError(DomainException):
    """Raised when a metadata store read/write fails after retries."""

    def __init__(self, operation: str, path_id: str | None, reason: str) -> None:
        target = f" ({path_id})" if path_id else ""
        super().__init__(f"Store {operation} failed{target}: {reason}")
        self.operation = operation
        self.path_id = path_id


class WatcherInitError(DomainException):
    """Raised when a library root cannot be watched (missing, unreadable)."""

    def __init__(self, root: str, reason: str) -> None:
        super().__init__(f"Cannot watch {root}: {reason}")
        self.root = root
