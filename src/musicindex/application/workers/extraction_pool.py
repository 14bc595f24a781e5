# Hey future me - tag parsing is CPU-bound and some malformed files make parsers misbehave.
# This pool keeps that work OFF the event loop and bounds how much of it runs at once.
# Two modes:
# - "thread": ThreadPoolExecutor, cheap, fine for mutagen (pure Python, releases GIL on I/O)
# - "process": ProcessPoolExecutor, full isolation. A segfaulting worker breaks the pool,
#   so we catch BrokenProcessPool, throw the dead pool away and build a fresh one. The task
#   that was running fails, everything after it keeps working.
"""Bounded worker pool for metadata extraction."""

import asyncio
import logging
import threading
from collections.abc import Callable
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from concurrent.futures.process import BrokenProcessPool
from typing import Any, Literal, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

WorkerMode = Literal["thread", "process"]


class ExtractionPool:
    """Bounded executor wrapper with crash recovery.

    Submitted callables must be module-level functions when running in process
    mode (they are pickled).
    """

    def __init__(self, max_workers: int = 4, mode: WorkerMode = "thread") -> None:
        self.max_workers = max_workers
        self.mode = mode
        self._lock = threading.Lock()
        self._executor: Executor | None = None
        self._closed = False
        self._stats = {"submitted": 0, "succeeded": 0, "failed": 0, "restarts": 0}

    def _create_executor(self) -> Executor:
        if self.mode == "process":
            return ProcessPoolExecutor(max_workers=self.max_workers)
        return ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="musicindex-extract"
        )

    def _get_executor(self) -> Executor:
        with self._lock:
            if self._closed:
                raise RuntimeError("ExtractionPool is shut down")
            if self._executor is None:
                self._executor = self._create_executor()
                logger.debug(
                    f"Started {self.mode} extraction pool ({self.max_workers} workers)"
                )
            return self._executor

    def _discard_executor(self, broken: Executor) -> None:
        with self._lock:
            # Another task may already have replaced it
            if self._executor is broken:
                self._executor = None
                self._stats["restarts"] += 1
        broken.shutdown(wait=False, cancel_futures=True)

    async def run(self, func: Callable[..., T], *args: Any) -> T:
        """Run func(*args) on a worker and await the result.

        Raises:
            Whatever func raised, or BrokenProcessPool if the worker died.
        """
        executor = self._get_executor()
        loop = asyncio.get_running_loop()
        self._stats["submitted"] += 1
        try:
            result = await loop.run_in_executor(executor, func, *args)
        except BrokenProcessPool:
            self._stats["failed"] += 1
            logger.error(
                f"Extraction worker crashed while running {getattr(func, '__name__', func)}, "
                "restarting pool"
            )
            self._discard_executor(executor)
            raise
        except Exception:
            self._stats["failed"] += 1
            raise
        self._stats["succeeded"] += 1
        return result

    def get_stats(self) -> dict[str, Any]:
        return {"mode": self.mode, "max_workers": self.max_workers, **self._stats}

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            self._closed = True
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait, cancel_futures=True)
            logger.debug("Extraction pool shut down")
