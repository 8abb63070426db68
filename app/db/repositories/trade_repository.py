"""
Trade repository - trade request reads and conditional status writes.
Challenge: Status changes must not overwrite a concurrent decision (compare-and-set).
"""

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.orm import selectinload

from app.db.models.trade import TradeRequest
from app.db.repositories.base_repository import BaseRepository


class TradeRepository(BaseRepository[TradeRequest]):
    def __init__(self, session):
        super().__init__(session, TradeRequest)

    async def get_by_id_with_parties(self, id: str) -> TradeRequest | None:
        result = await self.session.execute(
            select(TradeRequest)
            .where(TradeRequest.id == id)
            .options(selectinload(TradeRequest.requester), selectinload(TradeRequest.receiver))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: str, role: str) -> list[TradeRequest]:
        """role is 'receiver' or 'requester'. Newest first."""
        column = TradeRequest.receiver_id if role == "receiver" else TradeRequest.requester_id
        result = await self.session.execute(
            select(TradeRequest)
            .where(column == user_id)
            .options(selectinload(TradeRequest.requester), selectinload(TradeRequest.receiver))
            .order_by(TradeRequest.created_at.desc(), TradeRequest.id)
        )
        return list(result.scalars().all())

    async def list_pending(self, exclude_id: str | None = None) -> list[TradeRequest]:
        stmt = select(TradeRequest).where(TradeRequest.status == "pending")
        if exclude_id is not None:
            stmt = stmt.where(TradeRequest.id != exclude_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def compare_and_set_status(
        self,
        id: str,
        expected: str,
        new: str,
        now: datetime,
        receiver_id: str | None = None,
    ) -> bool:
        """Move id from expected to new. False when the row is gone or was already moved."""
        stmt = (
            update(TradeRequest)
            .where(TradeRequest.id == id, TradeRequest.status == expected)
            .values(status=new, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if receiver_id is not None:
            stmt = stmt.where(TradeRequest.receiver_id == receiver_id)
        result = await self.session.execute(stmt)
        return result.rowcount == 1
