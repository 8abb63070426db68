"""
Trade request model - a proposed exchange of two item sets between two profiles.
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import JSON, String, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, new_id, utcnow

if TYPE_CHECKING:
    from app.db.models.profile import Profile


class TradeRequest(Base):
    __tablename__ = "trade_requests"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    requester_id: Mapped[str] = mapped_column(ForeignKey("profiles.id"), nullable=False, index=True)
    receiver_id: Mapped[str] = mapped_column(ForeignKey("profiles.id"), nullable=False, index=True)
    requester_items: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    receiver_items: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending", index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    requester: Mapped["Profile"] = relationship("Profile", foreign_keys=[requester_id])
    receiver: Mapped["Profile"] = relationship("Profile", foreign_keys=[receiver_id])

    def __repr__(self) -> str:
        return f"<TradeRequest(id={self.id}, status={self.status})>"
