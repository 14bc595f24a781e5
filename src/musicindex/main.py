"""ASGI entry point: ``uvicorn musicindex.main:app`` or the ``musicindex`` script."""

from fastapi import FastAPI

from musicindex import __version__
from musicindex.api.exception_handlers import register_exception_handlers
from musicindex.api.routers import health, library, media
from musicindex.config import Settings, get_settings
from musicindex.infrastructure.lifecycle import lifespan


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Explicit settings (tests); defaults to get_settings()
    """
    settings = settings or get_settings()
    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    register_exception_handlers(app)
    app.include_router(library.router)
    app.include_router(media.router)
    app.include_router(health.router)
    return app


app = create_app()


def run() -> None:
    """Run the server with uvicorn (console script entry point)."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "musicindex.main:app",
        host=settings.api.host,
        port=settings.api.port,
        log_config=None,  # configure_logging() owns the handlers
    )
