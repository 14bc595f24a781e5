"""Health check endpoint for Docker health checks and dashboards."""

from typing import Any

from fastapi import APIRouter, Request

from musicindex import __version__
from musicindex.api.schemas import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    """Index size, scan state and database lock counters.

    Reports "starting" until the lifespan has put the index on app.state.
    """
    state = request.app.state
    index = getattr(state, "index", None)
    db = getattr(state, "db", None)
    checks: dict[str, Any] = {
        "database": db.lock_stats.to_dict() if db is not None else "not connected"
    }

    pool = getattr(state, "pool", None)
    if pool is not None:
        checks["extraction_pool"] = pool.get_stats()
    watcher = getattr(state, "watcher", None)
    checks["watcher"] = watcher.state.value if watcher is not None else "disabled"

    if index is None:
        return HealthResponse(
            status="starting",
            version=__version__,
            scanning=False,
            artists=0,
            albums=0,
            audio=0,
            checks=checks,
        )

    collection = index.collection
    return HealthResponse(
        status="healthy",
        version=__version__,
        scanning=index.is_scanning,
        artists=len(collection.artists),
        albums=len(collection.albums),
        audio=len(collection.audio),
        last_report=index.last_report.to_dict() if index.last_report else None,
        checks=checks,
    )
