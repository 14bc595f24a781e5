"""Shared logging helpers."""

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any


# Yo, wrap any phase you want timed in this. It logs "{operation}.started" and
# "{operation}.completed" with duration_ms, or "{operation}.failed" with the traceback and
# re-raises. The yielded dict lets the body attach result fields to the completion line.
@asynccontextmanager
async def log_operation(
    logger: logging.Logger,
    operation: str,
    **context: Any,
) -> AsyncIterator[dict[str, Any]]:
    """Log operation start/end with automatic timing.

    Args:
        logger: Module logger
        operation: Operation name (e.g., "scan.inserting")
        **context: Extra fields for both log lines

    Example:
        >>> async with log_operation(logger, "scan.aggregating", albums=12) as result:
        ...     result["albums_updated"] = await aggregate()
    """
    start = time.monotonic()
    result: dict[str, Any] = {}
    logger.debug(f"{operation}.started", extra=context)
    try:
        yield result
    except Exception as e:
        duration_ms = int((time.monotonic() - start) * 1000)
        logger.error(
            f"{operation}.failed",
            extra={
                **context,
                "duration_ms": duration_ms,
                "error": str(e),
                "error_type": type(e).__name__,
            },
            exc_info=True,
        )
        raise
    duration_ms = int((time.monotonic() - start) * 1000)
    result["duration_ms"] = duration_ms
    logger.info(
        f"{operation}.completed",
        extra={**context, **result},
    )
