"""Service layer for bookmark create, list and delete operations."""
import logging

from models.bookmark import Bookmark
from services.bookmark_gateway import BookmarkGateway
from services.exceptions import BackendError, BookmarkValidationError

logger = logging.getLogger(__name__)

MISSING_FIELDS_MESSAGE = "Please enter both title and URL"


def normalize_bookmark_fields(title: str | None, url: str | None) -> tuple[str, str]:
    """
    Trim title and url and check that neither is empty.

    Raises:
        BookmarkValidationError: If either trimmed field is empty.
    """
    title = (title or "").strip()
    url = (url or "").strip()
    if not title or not url:
        raise BookmarkValidationError(MISSING_FIELDS_MESSAGE)
    return title, url


async def create_bookmark(
    gateway: BookmarkGateway,
    user_id: str,
    title: str,
    url: str,
) -> Bookmark:
    """
    Create a bookmark owned by user_id.

    Issues exactly one insert. Failures are not retried.

    Raises:
        BookmarkValidationError: If title or url is empty after trimming.
        BackendError: If the backend rejects the insert.
    """
    title, url = normalize_bookmark_fields(title, url)
    try:
        row = await gateway.insert_bookmark({"title": title, "url": url, "user_id": user_id})
    except BackendError as e:
        logger.warning("Failed to add bookmark for user %s (%s): %s", user_id, e.kind, e.message)
        raise
    bookmark = Bookmark.model_validate(row)
    logger.info("Bookmark %s added for user %s", bookmark.id, user_id)
    return bookmark


async def get_bookmarks(gateway: BookmarkGateway, user_id: str) -> list[Bookmark]:
    """Get all bookmarks for a user, newest first."""
    rows = await gateway.select_bookmarks(user_id)
    return [Bookmark.model_validate(row) for row in rows]


async def delete_bookmark(
    gateway: BookmarkGateway,
    user_id: str,
    bookmark_id: str,
) -> bool:
    """
    Delete a bookmark. Returns True if deleted, False if not found.

    The delete is filtered by both id and owner, so a bookmark belonging to
    another user is reported as not found rather than removed.
    """
    try:
        deleted = await gateway.delete_bookmark(bookmark_id, user_id)
    except BackendError as e:
        logger.warning(
            "Failed to delete bookmark %s for user %s (%s): %s",
            bookmark_id, user_id, e.kind, e.message,
        )
        raise
    if not deleted:
        return False
    logger.info("Bookmark %s deleted for user %s", bookmark_id, user_id)
    return True
