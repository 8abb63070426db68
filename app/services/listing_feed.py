"""
Listing feed synchronizer - the browse view's in-memory list of available listings.
Challenge: Stay equal to {items : status = available} even when a push is lost.
Design: Two producers (change events on "items", a poll timer) feed one reconciliation
function, reload_snapshot(), which replaces the whole list. No incremental patching.
Overlapping reloads are ordered by sequence number; an older response that lands
after a newer one is dropped.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence

from app.core.errors import describe
from app.core.metrics import FEED_RELOADS
from app.realtime.changes import ChangeChannel, ChangeEvent, Subscription
from app.schemas.common import LoadState
from app.schemas.item import ItemWithOwnerResponse

logger = logging.getLogger(__name__)

SnapshotLoader = Callable[[], Awaitable[list[ItemWithOwnerResponse]]]
SnapshotCallback = Callable[["ListingFeedSynchronizer"], Awaitable[None]]


def filter_listings(
    listings: Sequence[ItemWithOwnerResponse],
    search_term: str = "",
    category: str | None = None,
) -> list[ItemWithOwnerResponse]:
    """Case-insensitive substring match on title or description, optional exact category."""
    term = (search_term or "").lower()
    return [
        item
        for item in listings
        if (term in item.title.lower() or term in (item.description or "").lower())
        and (not category or item.category == category)
    ]


class ListingFeedSynchronizer:
    def __init__(
        self,
        loader: SnapshotLoader,
        changes: ChangeChannel,
        poll_interval: float = 2.0,
        on_snapshot: SnapshotCallback | None = None,
    ):
        self.loader = loader
        self.changes = changes
        self.poll_interval = poll_interval
        self.on_snapshot = on_snapshot

        self.listings: list[ItemWithOwnerResponse] = []
        self.state = LoadState.IDLE
        self.error: str | None = None
        self.search_term = ""
        self.category: str | None = None

        self._requested = 0
        self._applied = 0
        self._subscription: Subscription | None = None
        self._poller: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._subscription is not None

    @property
    def visible(self) -> list[ItemWithOwnerResponse]:
        return filter_listings(self.listings, self.search_term, self.category)

    @property
    def categories(self) -> list[str]:
        return sorted({item.category.value for item in self.listings})

    async def start(self) -> None:
        if self.running:
            return
        self._subscription = self.changes.subscribe("items", self._on_change)
        self._poller = asyncio.create_task(self._poll())
        await self.reload_snapshot("initial")

    async def stop(self) -> None:
        """Release the subscription and the timer. Safe to call more than once."""
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        if self._poller is not None:
            self._poller.cancel()
            try:
                await self._poller
            except asyncio.CancelledError:
                pass
            self._poller = None

    async def set_filter(self, search_term: str = "", category: str | None = None) -> None:
        self.search_term = search_term or ""
        self.category = category or None
        await self._notify()

    async def reload_snapshot(self, trigger: str = "manual") -> bool:
        """Fetch all available listings and replace the snapshot. False if dropped or failed."""
        self._requested += 1
        seq = self._requested
        FEED_RELOADS.labels(trigger=trigger).inc()
        if self.state is LoadState.IDLE:
            self.state = LoadState.LOADING
        try:
            rows = await self.loader()
        except Exception as e:
            if seq < self._applied:
                return False
            logger.warning("Feed reload (%s) failed: %s", trigger, e)
            self.state = LoadState.ERROR
            self.error = describe(e)
            await self._notify()
            return False
        if seq < self._applied:
            logger.debug("Dropping stale feed snapshot %d (have %d)", seq, self._applied)
            return False
        self._applied = seq
        self.listings = list(rows)
        self.state = LoadState.SUCCESS
        self.error = None
        await self._notify()
        return True

    async def _on_change(self, event: ChangeEvent) -> None:
        await self.reload_snapshot(f"push:{event.type.value}")

    async def _poll(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            await self.reload_snapshot("poll")

    async def _notify(self) -> None:
        if self.on_snapshot is None:
            return
        try:
            await self.on_snapshot(self)
        except Exception as e:
            logger.warning("Feed consumer failed: %s", e)
