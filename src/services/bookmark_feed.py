"""
Live bookmark list for one user.

A BookmarkFeed owns a local, newest-first sequence of bookmarks and keeps it
close to the backend using one of two strategies:

- push: realtime insert/delete events, a resubscribe with bounded exponential
  backoff when the channel drops, and a low-frequency reconciliation fetch.
- poll: a wholesale re-fetch on a fixed interval.

The feed lives exactly as long as the view that consumes it. After stop(),
results of requests that were already in flight are discarded. An unauthorized
response from the backend stops the feed: the session it was opened with has
expired, and the consumer reconnects with a refreshed one.
"""
import asyncio
import logging
from collections.abc import AsyncIterator, Coroutine
from typing import Any

from pydantic import ValidationError

from core.config import Settings, SyncStrategy
from models.bookmark import Bookmark
from schemas.bookmark import BookmarkResponse, FeedSnapshot
from services.bookmark_gateway import BookmarkGateway, ChannelStatus, Row, Subscription
from services.exceptions import BackendError, BackendErrorKind

logger = logging.getLogger(__name__)


class ReconnectBackoff:
    """Exponential delays between resubscribe attempts, capped at max_delay."""

    def __init__(self, base_delay: float = 1.0, max_delay: float = 30.0, factor: float = 2.0) -> None:
        if base_delay <= 0 or max_delay < base_delay or factor < 1:
            raise ValueError("Invalid backoff parameters")
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.factor = factor
        self.attempts = 0

    def next_delay(self) -> float:
        """Return the delay before the next attempt and count the attempt."""
        delay = min(self.base_delay * (self.factor ** self.attempts), self.max_delay)
        self.attempts += 1
        return delay

    def reset(self) -> None:
        """Start over from base_delay after a successful connection."""
        self.attempts = 0


class BookmarkFeed:
    """Client-side synchronized bookmark sequence for one identity."""

    def __init__(
        self,
        gateway: BookmarkGateway,
        user_id: str,
        *,
        strategy: SyncStrategy = SyncStrategy.PUSH,
        poll_interval: float = 3.0,
        reconcile_interval: float = 30.0,
        backoff: ReconnectBackoff | None = None,
    ) -> None:
        self.gateway = gateway
        self.user_id = user_id
        self.strategy = strategy
        self.poll_interval = poll_interval
        self.reconcile_interval = reconcile_interval
        self.backoff = backoff or ReconnectBackoff()

        self._bookmarks: list[Bookmark] = []
        self._alive = False
        self._is_live = False
        self._subscription: Subscription | None = None
        self._reconnect_task: asyncio.Task | None = None
        self._tasks: set[asyncio.Task] = set()
        self._version = 0
        self._changed = asyncio.Event()

    @property
    def bookmarks(self) -> list[Bookmark]:
        """Current sequence, newest first."""
        return list(self._bookmarks)

    @property
    def is_alive(self) -> bool:
        """True between start() and stop()."""
        return self._alive

    @property
    def is_live(self) -> bool:
        """True while the push channel reports SUBSCRIBED."""
        return self._is_live

    @property
    def version(self) -> int:
        """Counter bumped on every observable state change."""
        return self._version

    def snapshot(self) -> FeedSnapshot:
        """Serializable view of the current state."""
        items = [BookmarkResponse.model_validate(b) for b in self._bookmarks]
        return FeedSnapshot(
            items=items,
            total=len(items),
            live=self._is_live,
            strategy=self.strategy,
        )

    async def start(self) -> None:
        """Run the initial fetch, then start the configured strategy."""
        if self._alive:
            return
        self._alive = True
        await self.refresh()
        if not self._alive:
            return

        if self.strategy == SyncStrategy.PUSH:
            await self._subscribe()
            if not self._alive:
                return
            self._spawn(self._run_timer(self.reconcile_interval))
        else:
            self._spawn(self._run_timer(self.poll_interval))
        logger.info("Bookmark feed started for user %s (%s)", self.user_id, self.strategy)

    async def stop(self) -> None:
        """Cancel timers and pending reconnects and release the subscription."""
        if not self._alive:
            return
        self._alive = False
        self._is_live = False

        # stop() may run inside one of the feed's own tasks after a session expiry
        current = asyncio.current_task()
        tasks = [task for task in self._tasks if task is not current]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        self._reconnect_task = None

        await self._close_subscription()
        self._notify()
        logger.info("Bookmark feed stopped for user %s", self.user_id)

    async def refresh(self) -> None:
        """
        Re-fetch the user's bookmarks and replace local state wholesale.

        A failed fetch keeps the current state (empty before the first
        successful fetch) and is only logged. An unauthorized failure means
        the session behind the feed has expired, so the feed is stopped and
        its consumer can reconnect with a refreshed session.
        """
        try:
            rows = await self.gateway.select_bookmarks(self.user_id)
        except BackendError as e:
            logger.warning(
                "Bookmark fetch failed for user %s (%s): %s", self.user_id, e.kind, e.message,
            )
            if e.kind == BackendErrorKind.UNAUTHORIZED:
                await self._expire()
            return
        if not self._alive:
            return

        bookmarks = []
        for row in rows:
            bookmark = self._parse(row)
            if bookmark is not None:
                bookmarks.append(bookmark)
        self._bookmarks = bookmarks
        self._notify()

    def apply_insert(self, record: Row) -> None:
        """Prepend an inserted row if it belongs to this user and is not already shown."""
        if not self._alive:
            return
        bookmark = self._parse(record)
        if bookmark is None or bookmark.user_id != self.user_id:
            return
        if any(b.id == bookmark.id for b in self._bookmarks):
            logger.debug("Bookmark %s already present, skipping insert event", bookmark.id)
            return
        self._bookmarks = [bookmark, *self._bookmarks]
        self._notify()

    def apply_delete(self, old_record: Row) -> None:
        """
        Remove the entry whose id matches a delete event.

        Ownership is not re-checked: delete payloads carry only the primary
        key, and the local sequence holds only this user's rows.
        """
        if not self._alive:
            return
        bookmark_id = old_record.get("id")
        if bookmark_id is None:
            return
        bookmark_id = str(bookmark_id)
        remaining = [b for b in self._bookmarks if b.id != bookmark_id]
        if len(remaining) != len(self._bookmarks):
            self._bookmarks = remaining
            self._notify()

    def handle_status(self, status: ChannelStatus) -> None:
        """Track channel state and schedule a resubscribe when the channel drops."""
        if not self._alive:
            return
        logger.info("Realtime status for user %s: %s", self.user_id, status)
        if status == ChannelStatus.SUBSCRIBED:
            self.backoff.reset()
            if not self._is_live:
                self._is_live = True
                self._notify()
            return

        if self._is_live:
            self._is_live = False
            self._notify()
        self._schedule_reconnect()

    async def changes(self, keepalive: float | None = None) -> AsyncIterator[FeedSnapshot | None]:
        """
        Yield a snapshot for the current state and then for every change.

        Yields None when keepalive seconds pass without a change. Ends when
        the feed is stopped.
        """
        last_version = -1
        while self._alive:
            if self._version != last_version:
                last_version = self._version
                yield self.snapshot()
                continue
            self._changed.clear()
            try:
                await asyncio.wait_for(self._changed.wait(), timeout=keepalive)
            except TimeoutError:
                yield None

    async def _subscribe(self) -> None:
        try:
            subscription = await self.gateway.subscribe_to_changes(
                self.user_id,
                on_insert=self.apply_insert,
                on_delete=self.apply_delete,
                on_status=self.handle_status,
            )
        except BackendError as e:
            logger.warning(
                "Realtime subscribe failed for user %s (%s): %s", self.user_id, e.kind, e.message,
            )
            if e.kind == BackendErrorKind.UNAUTHORIZED:
                await self._expire()
            else:
                self._schedule_reconnect()
            return
        if not self._alive:
            await self._release(subscription)
            return
        self._subscription = subscription

    async def _expire(self) -> None:
        if self._alive:
            logger.info("Session expired for user %s, stopping bookmark feed", self.user_id)
            await self.stop()

    async def _close_subscription(self) -> None:
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            await self._release(subscription)

    async def _release(self, subscription: Subscription) -> None:
        try:
            await subscription.close()
        except BackendError as e:
            logger.warning("Failed to release realtime channel for user %s: %s", self.user_id, e.message)

    def _schedule_reconnect(self) -> None:
        if not self._alive or self.strategy != SyncStrategy.PUSH:
            return
        if self._reconnect_task is not None and not self._reconnect_task.done():
            return
        self._reconnect_task = self._spawn(self._reconnect())

    async def _reconnect(self) -> None:
        delay = self.backoff.next_delay()
        logger.info(
            "Resubscribing bookmark feed for user %s in %.1fs (attempt %d)",
            self.user_id, delay, self.backoff.attempts,
        )
        await asyncio.sleep(delay)
        if not self._alive:
            return
        await self._close_subscription()
        self._reconnect_task = None
        await self._subscribe()
        if self._subscription is not None:
            # Catch up on events missed while disconnected
            await self.refresh()

    async def _run_timer(self, interval: float) -> None:
        while self._alive:
            await asyncio.sleep(interval)
            await self.refresh()

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _parse(self, row: Row) -> Bookmark | None:
        try:
            return Bookmark.model_validate(row)
        except ValidationError:
            logger.warning("Ignoring malformed bookmark row for user %s: %r", self.user_id, row)
            return None

    def _notify(self) -> None:
        self._version += 1
        self._changed.set()


def create_feed(gateway: BookmarkGateway, user_id: str, settings: Settings) -> BookmarkFeed:
    """Build a feed configured from application settings."""
    return BookmarkFeed(
        gateway,
        user_id,
        strategy=settings.sync_strategy,
        poll_interval=settings.poll_interval_seconds,
        reconcile_interval=settings.reconcile_interval_seconds,
        backoff=ReconnectBackoff(
            base_delay=settings.reconnect_base_delay_seconds,
            max_delay=settings.reconnect_max_delay_seconds,
        ),
    )
