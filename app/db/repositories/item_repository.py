"""
Item repository - listing data access and query optimization (SOLID: Single Responsibility).
Challenge: Database query performance; avoid N+1, use indexes.
"""

from sqlalchemy import select, update
from sqlalchemy.orm import selectinload

from app.db.base import utcnow
from app.db.models.item import Item
from app.db.repositories.base_repository import BaseRepository

AVAILABLE = "available"
TRADED = "traded"


class ItemRepository(BaseRepository[Item]):
    """Item-specific queries. Uses selectinload to avoid N+1 when loading owner."""

    def __init__(self, session):
        super().__init__(session, Item)

    async def get_by_id_with_owner(self, id: str) -> Item | None:
        """Fetch item with owner in one query (solves N+1 problem)."""
        result = await self.session.execute(
            select(Item)
            .where(Item.id == id)
            .options(selectinload(Item.owner))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_available(self) -> list[Item]:
        """All available listings with owner, newest first. Backs the feed snapshot."""
        result = await self.session.execute(
            select(Item)
            .where(Item.status == AVAILABLE)
            .options(selectinload(Item.owner))
            .order_by(Item.created_at.desc(), Item.id)
        )
        return list(result.scalars().all())

    async def list_by_owner(self, owner_id: str, status: str | None = AVAILABLE) -> list[Item]:
        stmt = select(Item).where(Item.user_id == owner_id)
        if status is not None:
            stmt = stmt.where(Item.status == status)
        result = await self.session.execute(stmt.order_by(Item.created_at.desc()))
        return list(result.scalars().all())

    async def get_many_by_ids(self, ids: list[str], for_update: bool = False) -> dict[str, Item]:
        if not ids:
            return {}
        stmt = select(Item).where(Item.id.in_(ids)).execution_options(populate_existing=True)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return {i.id: i for i in result.scalars().all()}

    async def available_categories(self) -> list[str]:
        result = await self.session.execute(
            select(Item.category).where(Item.status == AVAILABLE).distinct().order_by(Item.category)
        )
        return list(result.scalars().all())

    async def mark_traded(self, ids: list[str]) -> None:
        await self.session.execute(
            update(Item)
            .where(Item.id.in_(ids))
            .values(status=TRADED, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
