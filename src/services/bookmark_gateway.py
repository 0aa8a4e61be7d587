"""
Backend gateway for the bookmarks table.

The gateway is the only place that talks to the platform's data and realtime
APIs. Everything above it (services, feed, routers) depends on the
`BookmarkGateway` protocol so tests can substitute an in-memory implementation.
"""
import logging
from collections.abc import Callable
from enum import StrEnum
from typing import Any, Protocol

from supabase import AsyncClient

from models.bookmark import BOOKMARKS_TABLE
from services.exceptions import classify_backend_error

logger = logging.getLogger(__name__)

CHANNEL_TOPIC = f"public:{BOOKMARKS_TABLE}"

Row = dict[str, Any]
RowCallback = Callable[[Row], None]


class ChannelStatus(StrEnum):
    """Subscription states reported by the realtime channel."""

    SUBSCRIBED = "SUBSCRIBED"
    TIMED_OUT = "TIMED_OUT"
    CLOSED = "CLOSED"
    CHANNEL_ERROR = "CHANNEL_ERROR"


StatusCallback = Callable[[ChannelStatus], None]


class Subscription(Protocol):
    """Handle to an open change-notification channel."""

    async def close(self) -> None:
        """Release the channel."""
        ...


class BookmarkGateway(Protocol):
    """Operations the bookmark manager needs from the backend platform."""

    async def insert_bookmark(self, fields: Row) -> Row:
        """Insert one row and return it as stored."""
        ...

    async def select_bookmarks(self, user_id: str) -> list[Row]:
        """Return all rows owned by user_id, newest first."""
        ...

    async def delete_bookmark(self, bookmark_id: str, user_id: str) -> list[Row]:
        """Delete the row with bookmark_id owned by user_id; return deleted rows."""
        ...

    async def subscribe_to_changes(
        self,
        user_id: str,
        on_insert: RowCallback,
        on_delete: RowCallback,
        on_status: StatusCallback,
    ) -> Subscription:
        """Open a change channel on the bookmarks table."""
        ...


def extract_new_record(payload: Row) -> Row | None:
    """Get the inserted row from a realtime postgres_changes payload."""
    data = payload.get("data", payload)
    return data.get("record") or data.get("new")


def extract_old_record(payload: Row) -> Row | None:
    """
    Get the deleted row from a realtime postgres_changes payload.

    Under the default replica identity only the primary key is present.
    """
    data = payload.get("data", payload)
    return data.get("old_record") or data.get("old")


class SupabaseSubscription:
    """Realtime channel wrapper returned by SupabaseBookmarkGateway."""

    def __init__(self, client: AsyncClient, channel: Any) -> None:
        self._client = client
        self._channel = channel

    async def close(self) -> None:
        """Unsubscribe and remove the channel from the realtime client."""
        try:
            await self._client.remove_channel(self._channel)
        except Exception as e:
            raise classify_backend_error(e) from e
        logger.info("Realtime channel %s removed", CHANNEL_TOPIC)


class SupabaseBookmarkGateway:
    """BookmarkGateway backed by a Supabase async client."""

    def __init__(self, client: AsyncClient, access_token: str | None = None) -> None:
        """
        Initialize the gateway.

        Args:
            client: Supabase client built for the current request.
            access_token: The signed-in user's token. When given, data calls
                run under the user's row-level security policies.
        """
        self._client = client
        self._access_token = access_token
        if access_token:
            client.postgrest.auth(access_token)

    async def insert_bookmark(self, fields: Row) -> Row:
        """Insert one bookmark row and return the stored representation."""
        try:
            response = await self._client.table(BOOKMARKS_TABLE).insert(fields).execute()
        except Exception as e:
            raise classify_backend_error(e) from e
        return response.data[0]

    async def select_bookmarks(self, user_id: str) -> list[Row]:
        """Fetch all bookmark rows for user_id ordered by created_at descending."""
        try:
            response = await (
                self._client.table(BOOKMARKS_TABLE)
                .select("*")
                .eq("user_id", user_id)
                .order("created_at", desc=True)
                .execute()
            )
        except Exception as e:
            raise classify_backend_error(e) from e
        return list(response.data or [])

    async def delete_bookmark(self, bookmark_id: str, user_id: str) -> list[Row]:
        """Delete one bookmark row by id, scoped to its owner."""
        try:
            response = await (
                self._client.table(BOOKMARKS_TABLE)
                .delete()
                .eq("id", bookmark_id)
                .eq("user_id", user_id)
                .execute()
            )
        except Exception as e:
            raise classify_backend_error(e) from e
        return list(response.data or [])

    async def subscribe_to_changes(
        self,
        user_id: str,
        on_insert: RowCallback,
        on_delete: RowCallback,
        on_status: StatusCallback,
    ) -> SupabaseSubscription:
        """
        Subscribe to insert and delete events on the bookmarks table.

        Insert events are filtered server-side by user_id. Delete events cannot
        be filtered by the platform and arrive for every row.
        """

        def handle_insert(payload: Row) -> None:
            record = extract_new_record(payload)
            if record is not None:
                on_insert(record)

        def handle_delete(payload: Row) -> None:
            record = extract_old_record(payload)
            if record is not None:
                on_delete(record)

        def handle_status(status: Any, error: Exception | None = None) -> None:
            if error is not None:
                logger.warning("Realtime channel %s error: %s", CHANNEL_TOPIC, error)
            try:
                on_status(ChannelStatus(status))
            except ValueError:
                logger.debug("Ignoring unknown channel status %s", status)

        try:
            if self._access_token:
                await self._client.realtime.set_auth(self._access_token)
            channel = (
                self._client.channel(CHANNEL_TOPIC)
                .on_postgres_changes(
                    "INSERT",
                    handle_insert,
                    table=BOOKMARKS_TABLE,
                    schema="public",
                    filter=f"user_id=eq.{user_id}",
                )
                .on_postgres_changes(
                    "DELETE",
                    handle_delete,
                    table=BOOKMARKS_TABLE,
                    schema="public",
                )
            )
            await channel.subscribe(handle_status)
        except Exception as e:
            raise classify_backend_error(e) from e

        logger.info("Subscribed to realtime channel %s for user %s", CHANNEL_TOPIC, user_id)
        return SupabaseSubscription(self._client, channel)
