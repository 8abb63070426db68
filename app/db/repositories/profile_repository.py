"""
Profile repository - profile lookups and trade statistics (SOLID: Single Responsibility).
Challenge: Keep queries in one place for optimization and reuse.
"""

from sqlalchemy import select, update

from app.db.base import utcnow
from app.db.models.profile import Profile
from app.db.repositories.base_repository import BaseRepository


class ProfileRepository(BaseRepository[Profile]):
    """Profile-specific queries. Extends base CRUD with domain logic."""

    def __init__(self, session):
        super().__init__(session, Profile)

    async def get_by_username(self, username: str) -> Profile | None:
        result = await self.session.execute(select(Profile).where(Profile.username == username))
        return result.scalar_one_or_none()

    async def get_many_by_ids(self, ids: list[str]) -> dict[str, Profile]:
        if not ids:
            return {}
        result = await self.session.execute(select(Profile).where(Profile.id.in_(ids)))
        return {p.id: p for p in result.scalars().all()}

    async def record_completed_trade(self, ids: list[str], reputation_delta: float) -> None:
        """Bump trades_completed and reputation in SQL (no read-modify-write race)."""
        await self.session.execute(
            update(Profile)
            .where(Profile.id.in_(ids))
            .values(
                trades_completed=Profile.trades_completed + 1,
                reputation_score=Profile.reputation_score + reputation_delta,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
