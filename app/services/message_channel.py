"""
Message channel - the chat view of one trade.
Challenge: Pushed inserts may arrive out of order or twice; the view must stay sorted
by created_at and a failed send must not lose what the user typed.
"""

import bisect
import logging
from collections.abc import Awaitable, Callable

from app.core.errors import ValidationError, describe
from app.core.session_store import SessionContext
from app.realtime.changes import ChangeChannel, ChangeEvent, ChangeType, Subscription
from app.schemas.common import LoadState
from app.schemas.message import MessageRecord

logger = logging.getLogger(__name__)

MessageLoader = Callable[[], Awaitable[list[MessageRecord]]]
MessageSender = Callable[[SessionContext, str], Awaitable[MessageRecord]]
MessageCallback = Callable[[MessageRecord], Awaitable[None]]


def _sort_key(message: MessageRecord):
    return (message.created_at, message.id)


class MessageChannel:
    def __init__(
        self,
        trade_id: str,
        loader: MessageLoader,
        sender: MessageSender,
        changes: ChangeChannel,
        on_message: MessageCallback | None = None,
    ):
        self.trade_id = trade_id
        self.loader = loader
        self.sender = sender
        self.changes = changes
        self.on_message = on_message

        self.messages: list[MessageRecord] = []
        self.state = LoadState.IDLE
        self.error: str | None = None
        self.draft = ""
        self.sending = False
        self._ids: set[str] = set()
        self._subscription: Subscription | None = None

    async def open(self) -> None:
        """Subscribe first so nothing inserted during the initial load is missed."""
        if self._subscription is None:
            self._subscription = self.changes.subscribe(
                "messages",
                self._on_insert,
                row_filter={"trade_request_id": self.trade_id},
                types={ChangeType.INSERT},
            )
        self.state = LoadState.LOADING
        try:
            loaded = await self.loader()
        except Exception as e:
            logger.warning("Loading messages for trade %s failed: %s", self.trade_id, e)
            self.state = LoadState.ERROR
            self.error = describe(e)
            # Nothing reaches a view whose history was refused
            self.close()
            self.messages = []
            self._ids.clear()
            return
        for message in loaded:
            self._insert(message)
        self.state = LoadState.SUCCESS
        self.error = None

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def _insert(self, message: MessageRecord) -> bool:
        if message.id in self._ids:
            return False
        self._ids.add(message.id)
        keys = [_sort_key(m) for m in self.messages]
        self.messages.insert(bisect.bisect_right(keys, _sort_key(message)), message)
        return True

    async def _on_insert(self, event: ChangeEvent) -> None:
        if self._subscription is None:
            return
        try:
            message = MessageRecord.model_validate(event.record)
        except ValueError as e:
            logger.warning("Ignoring malformed message event: %s", e)
            return
        # Inserts that land during the initial load are reported with the history
        if self._insert(message) and self.on_message is not None and self.state is not LoadState.LOADING:
            await self.on_message(message)

    async def send(self, ctx: SessionContext | None, content: str | None = None) -> MessageRecord | None:
        """Send content (or the current draft). On failure the draft is kept for resubmission."""
        if content is not None:
            self.draft = content
        if ctx is None:
            self.error = "You need to sign in to chat"
            self.state = LoadState.ERROR
            return None
        if not self.draft.strip():
            self.error = ValidationError("Message cannot be empty").message
            return None

        self.sending = True
        try:
            message = await self.sender(ctx, self.draft)
        except Exception as e:
            logger.warning("Sending message on trade %s failed: %s", self.trade_id, e)
            self.error = describe(e)
            self.state = LoadState.ERROR
            return None
        finally:
            self.sending = False
        self.draft = ""
        self.error = None
        self.state = LoadState.SUCCESS
        if self._insert(message) and self.on_message is not None:
            await self.on_message(message)
        return message
