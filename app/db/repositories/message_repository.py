"""
Message repository - append-only chat log per trade.
"""

from sqlalchemy import select

from app.db.models.message import Message
from app.db.repositories.base_repository import BaseRepository


class MessageRepository(BaseRepository[Message]):
    def __init__(self, session):
        super().__init__(session, Message)

    async def list_for_trade(self, trade_id: str) -> list[Message]:
        """Oldest first; id breaks created_at ties so order is stable across reloads."""
        result = await self.session.execute(
            select(Message)
            .where(Message.trade_request_id == trade_id)
            .order_by(Message.created_at.asc(), Message.id.asc())
        )
        return list(result.scalars().all())
