"""
Change notification channel - insert/update/delete events per collection.
Challenge: Push changes to live views; subscriptions must be released explicitly.
Design: ChangeChannel fans out inside one process; RedisChangeChannel relays through
Redis pub/sub so every API worker's subscribers see every write.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from pydantic import BaseModel
from redis.asyncio import Redis
from redis.exceptions import RedisError

from app.config import get_settings
from app.core.metrics import CHANGE_EVENTS

logger = logging.getLogger(__name__)

CHANNEL_PREFIX = "changes:"


class ChangeType(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class ChangeEvent(BaseModel):
    collection: str
    type: ChangeType
    record: dict[str, Any]
    old_record: dict[str, Any] | None = None


ChangeHandler = Callable[[ChangeEvent], Awaitable[None]]


class Subscription:
    """Handle returned by subscribe(). unsubscribe() is safe to call twice."""

    def __init__(
        self,
        channel: "ChangeChannel",
        collection: str,
        handler: ChangeHandler,
        row_filter: dict[str, Any] | None = None,
        types: set[ChangeType] | None = None,
    ):
        self.channel = channel
        self.collection = collection
        self.handler = handler
        self.row_filter = row_filter or {}
        self.types = types
        self.active = True

    def matches(self, event: ChangeEvent) -> bool:
        if event.collection != self.collection:
            return False
        if self.types is not None and event.type not in self.types:
            return False
        record = event.record or event.old_record or {}
        return all(record.get(key) == value for key, value in self.row_filter.items())

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self.channel._remove(self)


class ChangeChannel:
    """In-process channel. publish() hands the event to a background task and returns;
    flush() waits until everything published so far has reached its handlers."""

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []
        self._pending: set[asyncio.Task] = set()

    def subscribe(
        self,
        collection: str,
        handler: ChangeHandler,
        row_filter: dict[str, Any] | None = None,
        types: set[ChangeType] | None = None,
    ) -> Subscription:
        sub = Subscription(self, collection, handler, row_filter, types)
        self._subscriptions.append(sub)
        return sub

    def subscriber_count(self, collection: str | None = None) -> int:
        return sum(1 for s in self._subscriptions if collection in (None, s.collection))

    def _remove(self, sub: Subscription) -> None:
        if sub in self._subscriptions:
            self._subscriptions.remove(sub)

    async def publish(self, event: ChangeEvent) -> None:
        CHANGE_EVENTS.labels(collection=event.collection, type=event.type.value).inc()
        task = asyncio.create_task(self._dispatch(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def flush(self) -> None:
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def _dispatch(self, event: ChangeEvent) -> None:
        targets = [s for s in list(self._subscriptions) if s.active and s.matches(event)]
        results = await asyncio.gather(*(s.handler(event) for s in targets), return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.error("Change handler failed for %s/%s: %s", event.collection, event.type.value, result)

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        await self.flush()
        for sub in list(self._subscriptions):
            sub.unsubscribe()


class RedisChangeChannel(ChangeChannel):
    """Relays events through Redis pub/sub; local subscribers are fed by one listener task."""

    def __init__(self, redis_url: str):
        super().__init__()
        self._redis = Redis.from_url(redis_url, encoding="utf-8", decode_responses=True)
        self._listener: asyncio.Task | None = None

    async def publish(self, event: ChangeEvent) -> None:
        CHANGE_EVENTS.labels(collection=event.collection, type=event.type.value).inc()
        await self._redis.publish(CHANNEL_PREFIX + event.collection, event.model_dump_json())

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except (RedisError, OSError) as e:
            logger.warning("Redis ping failed: %s", e)
            return False

    def subscribe(self, collection, handler, row_filter=None, types=None) -> Subscription:
        sub = super().subscribe(collection, handler, row_filter, types)
        self._ensure_listener()
        return sub

    def _ensure_listener(self) -> None:
        if self._listener is None or self._listener.done():
            self._listener = asyncio.create_task(self._listen())

    async def _listen(self) -> None:
        pubsub = self._redis.pubsub()
        await pubsub.psubscribe(CHANNEL_PREFIX + "*")
        try:
            async for message in pubsub.listen():
                if message.get("type") != "pmessage":
                    continue
                try:
                    event = ChangeEvent.model_validate_json(message["data"])
                except ValueError as e:
                    logger.warning("Dropping malformed change event on %s: %s", message.get("channel"), e)
                    continue
                await self._dispatch(event)
        finally:
            await pubsub.aclose()

    async def close(self) -> None:
        await super().close()
        if self._listener is not None:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            self._listener = None
        await self._redis.aclose()


_channel: ChangeChannel | None = None


def get_change_channel() -> ChangeChannel:
    """Shared change channel (Redis-backed unless realtime_backend=memory). Used as FastAPI dependency."""
    global _channel
    if _channel is None:
        settings = get_settings()
        if settings.realtime_backend == "redis":
            _channel = RedisChangeChannel(settings.redis_url)
        else:
            _channel = ChangeChannel()
    return _channel


async def close_change_channel() -> None:
    global _channel
    if _channel is not None:
        await _channel.close()
        _channel = None
