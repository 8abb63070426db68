from app.db.models.account import Account
from app.db.models.profile import Profile
from app.db.models.item import Item
from app.db.models.trade import TradeRequest
from app.db.models.message import Message

__all__ = ["Account", "Profile", "Item", "TradeRequest", "Message"]
