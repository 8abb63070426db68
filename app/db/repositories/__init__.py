# Repository pattern: abstract data access (SOLID - Dependency Inversion)

from app.db.repositories.account_repository import AccountRepository
from app.db.repositories.item_repository import ItemRepository
from app.db.repositories.message_repository import MessageRepository
from app.db.repositories.profile_repository import ProfileRepository
from app.db.repositories.trade_repository import TradeRepository

__all__ = [
    "AccountRepository",
    "ItemRepository",
    "MessageRepository",
    "ProfileRepository",
    "TradeRepository",
]
