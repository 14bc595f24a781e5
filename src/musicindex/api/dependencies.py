"""Dependency injection for API endpoints."""

from typing import cast

from fastapi import HTTPException, Request

from musicindex.application.services.library_index_service import LibraryIndex
from musicindex.application.services.library_view_service import LibraryViewService


# Hey future me, everything lives on app.state (see infrastructure/lifecycle.py). If the
# attribute is missing the lifespan never ran or failed half way - answer 503 instead of
# an AttributeError turning into a 500.
def get_library_index(request: Request) -> LibraryIndex:
    """Get the LibraryIndex from app state.

    Raises:
        HTTPException: 503 if the index is not initialized
    """
    if not hasattr(request.app.state, "index"):
        raise HTTPException(status_code=503, detail="Library index not initialized")
    return cast(LibraryIndex, request.app.state.index)


def get_view_service(request: Request) -> LibraryViewService:
    """Get the LibraryViewService from app state.

    Raises:
        HTTPException: 503 if the view service is not initialized
    """
    if not hasattr(request.app.state, "view"):
        raise HTTPException(status_code=503, detail="Library view not initialized")
    return cast(LibraryViewService, request.app.state.view)
