"""Bookmark endpoints: create, list, delete and the live feed stream."""
import logging
from collections.abc import AsyncGenerator

import anyio
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from api.dependencies import (
    get_bookmark_gateway,
    get_current_user,
    get_form_registry,
    get_settings,
)
from core.config import Settings
from models.identity import Identity
from schemas.bookmark import (
    BookmarkCreate,
    BookmarkListResponse,
    BookmarkResponse,
    ErrorResponse,
)
from services import bookmark_service
from services.bookmark_feed import BookmarkFeed, create_feed
from services.bookmark_form import BookmarkFormRegistry
from services.bookmark_gateway import BookmarkGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookmarks", tags=["bookmarks"])


@router.post(
    "/",
    response_model=BookmarkResponse,
    status_code=201,
    responses={409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def create_bookmark(
    data: BookmarkCreate,
    current_user: Identity = Depends(get_current_user),
    gateway: BookmarkGateway = Depends(get_bookmark_gateway),
    forms: BookmarkFormRegistry = Depends(get_form_registry),
) -> BookmarkResponse:
    """
    Create a new bookmark.

    Returns 422 if title or url is blank and 409 if the user already has a
    submission in flight.
    """
    form = forms.get(current_user.id)
    try:
        form.fill(data.title, data.url)
        bookmark = await form.submit(gateway)
    finally:
        forms.discard_idle()
    return BookmarkResponse.model_validate(bookmark)


@router.get("/", response_model=BookmarkListResponse)
async def list_bookmarks(
    current_user: Identity = Depends(get_current_user),
    gateway: BookmarkGateway = Depends(get_bookmark_gateway),
) -> BookmarkListResponse:
    """List the current user's bookmarks, newest first."""
    bookmarks = await bookmark_service.get_bookmarks(gateway, current_user.id)
    items = [BookmarkResponse.model_validate(b) for b in bookmarks]
    return BookmarkListResponse(items=items, total=len(items))


@router.get("/stream")
async def stream_bookmarks(
    current_user: Identity = Depends(get_current_user),
    gateway: BookmarkGateway = Depends(get_bookmark_gateway),
    settings: Settings = Depends(get_settings),
) -> StreamingResponse:
    """
    Stream the user's bookmark list as server-sent events.

    Each `snapshot` event carries the full list plus the live indicator. The
    feed is stopped when the client disconnects.
    """
    logger.info("Opening bookmark stream for user %s", current_user.id)
    feed = create_feed(gateway, current_user.id, settings)
    return StreamingResponse(
        feed_events(feed, keepalive=settings.stream_keepalive_seconds),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.delete("/{bookmark_id}", status_code=204)
async def delete_bookmark(
    bookmark_id: str,
    current_user: Identity = Depends(get_current_user),
    gateway: BookmarkGateway = Depends(get_bookmark_gateway),
) -> None:
    """Delete a bookmark. The list reflects it on the next feed update."""
    deleted = await bookmark_service.delete_bookmark(gateway, current_user.id, bookmark_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Bookmark not found")


async def feed_events(
    feed: BookmarkFeed,
    keepalive: float | None = None,
) -> AsyncGenerator[str]:
    """Run a feed for the lifetime of the generator and format its changes as SSE."""
    try:
        await feed.start()
        async for snapshot in feed.changes(keepalive=keepalive):
            if snapshot is None:
                yield ": keepalive\n\n"
                continue
            yield f"event: snapshot\ndata: {snapshot.model_dump_json()}\n\n"
    finally:
        # Client disconnects cancel the enclosing scope; teardown must still finish
        with anyio.CancelScope(shield=True):
            await feed.stop()
