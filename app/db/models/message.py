"""
Message model - append-only chat line attached to a trade request.
"""

from datetime import datetime

from sqlalchemy import String, Text, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, new_id, utcnow


class Message(Base):
    __tablename__ = "messages"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    trade_request_id: Mapped[str] = mapped_column(ForeignKey("trade_requests.id"), nullable=False, index=True)
    sender_id: Mapped[str] = mapped_column(ForeignKey("profiles.id"), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)

    def __repr__(self) -> str:
        return f"<Message(id={self.id}, trade_request_id={self.trade_request_id})>"
