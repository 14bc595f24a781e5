"""API routers."""

from musicindex.api.routers import health, library, media

__all__ = ["health", "library", "media"]
