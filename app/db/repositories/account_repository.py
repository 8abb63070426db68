"""
Account repository - credential lookups for the auth collaborator.
"""

from sqlalchemy import select

from app.db.models.account import Account
from app.db.repositories.base_repository import BaseRepository


class AccountRepository(BaseRepository[Account]):
    def __init__(self, session):
        super().__init__(session, Account)

    async def get_by_email(self, email: str) -> Account | None:
        """Find account by email - used for authentication."""
        result = await self.session.execute(select(Account).where(Account.email == email.lower()))
        return result.scalar_one_or_none()
