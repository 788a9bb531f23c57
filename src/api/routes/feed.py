from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.api.dependencies import get_feed_sessions
from src.api.schemas.feed_responses import FeedPageResponse, page_to_response
from src.application.errors import (
    FeedBusyError,
    FeedSessionNotFoundError,
    UpstreamUnavailableError,
)
from src.application.use_cases.browse_feed import FeedSessions
from src.config import settings
from src.domain.enums.property import SearchMode

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/feed", tags=["feed"])


def _upstream_failed(exc: UpstreamUnavailableError) -> HTTPException:
    logger.warning("feed_upstream_unavailable", source=exc.source, error=str(exc))
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))


@router.post(
    "/sessions",
    status_code=status.HTTP_201_CREATED,
    response_model=FeedPageResponse,
)
async def open_feed(
    mode: SearchMode = Query(default=SearchMode.RENT),
    country: str | None = Query(default=None),
    page_size: int = Query(
        default=settings.feed_default_page_size, ge=1, le=settings.feed_max_page_size
    ),
    sessions: FeedSessions = Depends(get_feed_sessions),
) -> FeedPageResponse:
    """Open a feed session and return its first ranked page."""
    try:
        result = await sessions.get_feed(mode, country, page_size)
    except UpstreamUnavailableError as exc:
        raise _upstream_failed(exc)
    return page_to_response(result.session_id, result.page)


@router.get("/sessions/{session_id}/more", response_model=FeedPageResponse)
async def load_more(
    session_id: UUID,
    sessions: FeedSessions = Depends(get_feed_sessions),
) -> FeedPageResponse:
    try:
        page = await sessions.load_more(session_id)
    except FeedSessionNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except FeedBusyError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    except UpstreamUnavailableError as exc:
        raise _upstream_failed(exc)
    return page_to_response(session_id, page)


@router.post("/sessions/{session_id}/refresh", response_model=FeedPageResponse)
async def refresh_feed(
    session_id: UUID,
    sessions: FeedSessions = Depends(get_feed_sessions),
) -> FeedPageResponse:
    """Drop the cached first page and rebuild the feed from scratch."""
    try:
        page = await sessions.refresh_feed(session_id)
    except FeedSessionNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except UpstreamUnavailableError as exc:
        raise _upstream_failed(exc)
    return page_to_response(session_id, page)


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_feed(
    session_id: UUID,
    sessions: FeedSessions = Depends(get_feed_sessions),
) -> None:
    sessions.close(session_id)
