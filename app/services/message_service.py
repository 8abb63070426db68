"""
Message service - append chat lines to a trade and announce them.
"""

import logging

from app.core.errors import NotFoundError, PermissionDeniedError, ValidationError
from app.core.session_store import SessionContext
from app.db.models.message import Message
from app.db.repositories.message_repository import MessageRepository
from app.db.repositories.trade_repository import TradeRepository
from app.realtime.changes import ChangeChannel, ChangeEvent, ChangeType
from app.schemas.message import MessageRecord

logger = logging.getLogger(__name__)


class MessageService:
    def __init__(self, message_repo: MessageRepository, trade_repo: TradeRepository, changes: ChangeChannel):
        self.message_repo = message_repo
        self.trade_repo = trade_repo
        self.changes = changes

    async def check_participant(self, ctx: SessionContext, trade_id: str) -> None:
        trade = await self.trade_repo.get_by_id(trade_id)
        if trade is None:
            raise NotFoundError("Trade not found")
        if ctx.user_id not in (trade.requester_id, trade.receiver_id):
            raise PermissionDeniedError("You are not part of this trade")

    async def list_messages(self, ctx: SessionContext, trade_id: str) -> list[MessageRecord]:
        await self.check_participant(ctx, trade_id)
        return [MessageRecord.model_validate(m) for m in await self.message_repo.list_for_trade(trade_id)]

    async def post(self, ctx: SessionContext, trade_id: str, content: str) -> MessageRecord:
        text = content.strip()
        if not text:
            raise ValidationError("Message cannot be empty")
        await self.check_participant(ctx, trade_id)
        message = await self.message_repo.add(
            Message(trade_request_id=trade_id, sender_id=ctx.user_id, content=text)
        )
        await self.message_repo.session.commit()
        record = MessageRecord.model_validate(message)
        await self.changes.publish(
            ChangeEvent(collection="messages", type=ChangeType.INSERT, record=record.model_dump(mode="json"))
        )
        return record
