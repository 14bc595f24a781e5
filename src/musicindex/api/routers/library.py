"""Library browsing, search and scan endpoints."""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status

from musicindex.api.dependencies import get_library_index, get_view_service
from musicindex.api.schemas import (
    AlbumResponse,
    ArtistListItem,
    ArtistResponse,
    AudioResponse,
    FindResponse,
    ImageResponse,
    ScanResponse,
)
from musicindex.application.services.library_index_service import LibraryIndex
from musicindex.application.services.library_view_service import LibraryViewService
from musicindex.domain.exceptions import DomainException

router = APIRouter(tags=["library"])
logger = logging.getLogger(__name__)


@router.get("/artists", response_model=list[ArtistListItem])
async def list_artists(
    view: LibraryViewService = Depends(get_view_service),
) -> list[ArtistListItem]:
    """All artists, sorted by name."""
    return [ArtistListItem.model_validate(a) for a in view.list_artists()]


@router.get("/artist/{artist_id}", response_model=ArtistResponse)
async def get_artist(
    artist_id: str,
    view: LibraryViewService = Depends(get_view_service),
) -> ArtistResponse:
    """Artist with album summaries, oldest album first."""
    return ArtistResponse.model_validate(await view.get_artist(artist_id))


@router.get("/artist/{artist_id}/albums", response_model=ArtistResponse)
async def get_artist_albums(
    artist_id: str,
    view: LibraryViewService = Depends(get_view_service),
) -> ArtistResponse:
    """Artist with every album's tracks plus loose tracks."""
    return ArtistResponse.model_validate(await view.get_artist_albums(artist_id))


@router.get("/album/{album_id}", response_model=AlbumResponse)
async def get_album(
    album_id: str,
    view: LibraryViewService = Depends(get_view_service),
) -> AlbumResponse:
    return AlbumResponse.model_validate(await view.get_album(album_id))


@router.get("/audio/{audio_id}", response_model=AudioResponse)
async def get_audio(
    audio_id: str,
    view: LibraryViewService = Depends(get_view_service),
) -> AudioResponse:
    return AudioResponse.model_validate(await view.get_audio(audio_id))


@router.get("/image/{image_id}", response_model=ImageResponse)
async def get_image(
    image_id: str,
    view: LibraryViewService = Depends(get_view_service),
) -> ImageResponse:
    return ImageResponse.model_validate(view.get_image(image_id))


@router.get("/find", response_model=FindResponse)
async def find(
    q: str = Query("", description="Free-text query"),
    limit: int = Query(4, ge=1, le=50),
    view: LibraryViewService = Depends(get_view_service),
) -> FindResponse:
    """Fuzzy search across artist, album and track names."""
    return FindResponse.model_validate(await view.find(q, limit=limit))


# Hey future me, the refresh runs AFTER the response is sent (BackgroundTasks), so the
# 202 only says "accepted". The is_scanning check here is a courtesy; the synchronizer's
# own in-flight flag is what actually guards against overlapping scans.
async def _refresh_in_background(index: LibraryIndex) -> None:
    try:
        report = await index.refresh()
    except DomainException as e:
        logger.error(f"Requested library refresh failed: {e.message}")
        return
    logger.info(f"Requested library refresh finished: {report.status.value}")


@router.post(
    "/scan", response_model=ScanResponse, status_code=status.HTTP_202_ACCEPTED
)
async def start_scan(
    background_tasks: BackgroundTasks,
    index: LibraryIndex = Depends(get_library_index),
) -> ScanResponse:
    """Trigger a full refresh of the library."""
    last = index.last_report.to_dict() if index.last_report else None
    if not index.scanning_enabled:
        return ScanResponse(status="disabled", last_report=last)
    if index.is_scanning:
        logger.info("Scan requested while another is running, rejecting")
        return ScanResponse(status="rejected", last_report=last)

    background_tasks.add_task(_refresh_in_background, index)
    return ScanResponse(status="accepted", last_report=last)
