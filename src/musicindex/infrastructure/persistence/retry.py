# Hey future me - SQLite allows ONE writer at a time, even in WAL mode. A scan batch writes
# up to batch_size records concurrently, and the HTTP API reads alongside, so "database is
# locked" WILL happen now and then. The lock is temporary: wait, retry, done.
"""Retry helpers for SQLite lock errors."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass
from functools import wraps
from typing import Any, ParamSpec, TypeVar

from sqlalchemy.exc import OperationalError

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


@dataclass
class LockStats:
    """Counters for lock retries, exposed on the health endpoint."""

    attempts: int = 0
    retries: int = 0
    failures: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def reset(self) -> None:
        self.attempts = self.retries = self.failures = 0


def _owner_stats(args: tuple[Any, ...]) -> LockStats:
    owned = getattr(args[0], "lock_stats", None) if args else None
    # Free functions without explicit stats count into a throwaway instance
    return owned if isinstance(owned, LockStats) else LockStats()


def is_lock_error(exception: BaseException) -> bool:
    """Check if an exception is a retryable database lock error."""
    if not isinstance(exception, OperationalError):
        return False
    error_msg = str(exception).lower()
    return "locked" in error_msg or "busy" in error_msg


def with_db_retry(
    max_attempts: int = 3,
    initial_delay: float = 0.5,
    max_delay: float = 5.0,
    backoff_factor: float = 2.0,
    stats: LockStats | None = None,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Retry an async DB operation on lock errors with exponential backoff.

    The backoff goes 0.5s -> 1s -> 2s (capped at max_delay). Other
    OperationalErrors are raised immediately.

    Args:
        max_attempts: Maximum attempts including the first one
        initial_delay: Delay before the first retry, in seconds
        max_delay: Upper bound for a single delay
        backoff_factor: Multiplier applied after every retry
        stats: Counters to update. When omitted the decorated method's owner is
            asked for its `lock_stats` (repositories hand out their Database's)

    Example:
        @with_db_retry(max_attempts=3)
        async def insert(self, record: AudioRecord) -> None:
            ...
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            delay = initial_delay
            counters = stats if stats is not None else _owner_stats(args)
            counters.attempts += 1
            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except OperationalError as e:
                    if not is_lock_error(e) or attempt == max_attempts:
                        counters.failures += 1
                        if is_lock_error(e):
                            logger.error(
                                "Database locked after %d attempts, giving up: %s",
                                max_attempts,
                                func.__qualname__,
                            )
                        raise
                    counters.retries += 1
                    logger.warning(
                        "Database locked (attempt %d/%d), retrying in %.1fs: %s",
                        attempt,
                        max_attempts,
                        delay,
                        func.__qualname__,
                    )
                    await asyncio.sleep(delay)
                    delay = min(delay * backoff_factor, max_delay)
            raise RuntimeError("Unexpected state in retry decorator")

        return wrapper

    return decorator
