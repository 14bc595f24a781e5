"""Application lifecycle: wire everything up at startup, tear it down at shutdown.

Startup order:
1. Logging
2. Library root validation
3. Database + tables, metadata store
4. Extraction pool, extractor, synchronizer, LibraryIndex, view service
5. Watcher (its READY update triggers the first full refresh) or, with watching
   disabled, a background refresh task

Shutdown runs in reverse and never lets one failing step skip the rest.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager, suppress
from pathlib import Path

from fastapi import FastAPI

from musicindex.application.services.library_index_service import LibraryIndex
from musicindex.application.services.library_synchronizer import LibrarySynchronizer
from musicindex.application.services.library_view_service import LibraryViewService
from musicindex.application.services.library_watcher import LibraryWatcher
from musicindex.application.workers.extraction_pool import ExtractionPool
from musicindex.config import Settings, get_settings
from musicindex.domain.entities import UrlMode, WatchState
from musicindex.domain.exceptions import ConfigurationError, DomainException
from musicindex.infrastructure.metadata import MutagenMetadataExtractor
from musicindex.infrastructure.observability import configure_logging
from musicindex.infrastructure.persistence import Database, SqlMetadataStore
from musicindex.infrastructure.watching import WatchdogEventSource

logger = logging.getLogger(__name__)


def validate_library_root(settings: Settings) -> Path:
    """Resolve the library root and make sure it is a readable directory.

    Raises:
        ConfigurationError: If the path is missing or not a directory
    """
    root = settings.library.path.expanduser().resolve()
    if not root.exists():
        raise ConfigurationError(
            f"Library path '{root}' does not exist. "
            "Set MUSICINDEX_LIBRARY__PATH to your music folder."
        )
    if not root.is_dir():
        raise ConfigurationError(f"Library path '{root}' is not a directory")
    return root


async def _initial_refresh(index: LibraryIndex) -> None:
    try:
        await index.refresh()
    except DomainException as e:
        logger.error(f"Initial library refresh failed: {e.message}")
    except OSError as e:
        logger.exception(f"Initial library refresh failed reading the library: {e}")


# Listen future me, everything before `yield` is STARTUP, everything after is SHUTDOWN. Routes
# find their collaborators on app.state (see api/dependencies.py). The first full index
# build does NOT block startup: the API answers right away with an empty index that fills
# in as soon as the refresh completes.
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings: Settings = getattr(app.state, "settings", None) or get_settings()

    configure_logging(
        log_level=settings.log_level,
        json_format=settings.observability.log_json_format,
        app_name=settings.app_name,
    )
    logger.info(f"Starting application: {settings.app_name}")

    root = validate_library_root(settings)
    watcher: LibraryWatcher | None = None
    refresh_task: asyncio.Task[None] | None = None
    pool: ExtractionPool | None = None
    db: Database | None = None

    try:
        db = Database(settings)
        await db.create_tables()
        app.state.db = db
        logger.info(f"Database initialized: {db.url}")
        store = SqlMetadataStore(db)

        pool = ExtractionPool(
            max_workers=settings.scanner.max_workers,
            mode=settings.scanner.worker_mode,
        )
        app.state.pool = pool
        synchronizer = LibrarySynchronizer(
            store,
            MutagenMetadataExtractor(pool),
            str(root),
            batch_size=settings.scanner.batch_size,
            enabled=settings.scanner.enabled,
        )
        index = LibraryIndex(
            str(root),
            synchronizer,
            url_mode=UrlMode(settings.library.url_mode),
            base_url=settings.library.base_url,
        )
        app.state.index = index
        app.state.view = LibraryViewService(index, store)

        if settings.watcher.enabled:
            # Empty baseline: the READY update asks for a full rescan of the root
            watcher = LibraryWatcher(
                [str(root)],
                [],
                WatchdogEventSource([str(root)]),
                on_change=index.handle_watch_update,
                debounce_ms=settings.watcher.debounce_ms,
            )
            app.state.watcher = watcher
            await watcher.start()
            if watcher.state is WatchState.STOPPED:
                logger.warning("Watcher could not start, indexing once without it")
                refresh_task = asyncio.create_task(_initial_refresh(index))
        else:
            logger.info("Filesystem watching disabled")
            refresh_task = asyncio.create_task(_initial_refresh(index))

        yield

    except Exception as e:
        logger.exception(f"Error during application startup: {e}")
        raise
    finally:
        logger.info("Shutting down application")

        if watcher is not None:
            try:
                await watcher.stop()
            except Exception as e:
                logger.exception(f"Error stopping watcher: {e}")

        if refresh_task is not None and not refresh_task.done():
            refresh_task.cancel()
            with suppress(asyncio.CancelledError):
                await refresh_task

        if pool is not None:
            pool.shutdown(wait=False)
            logger.info("Extraction pool stopped")

        if db is not None:
            try:
                await db.close()
                logger.info("Database connection closed")
            except Exception as e:
                logger.exception(f"Error closing database: {e}")
