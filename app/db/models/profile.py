"""
Profile model - public identity and trading statistics, keyed 1:1 by account id.
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import String, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, utcnow

if TYPE_CHECKING:
    from app.db.models.item import Item


class Profile(Base):
    """One row per identity. The primary key doubles as the provisioning idempotency key."""

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(36), ForeignKey("accounts.id"), primary_key=True)
    username: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    avatar_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    reputation_score: Mapped[float] = mapped_column(nullable=False, default=0.0)
    trades_completed: Mapped[int] = mapped_column(nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    items: Mapped[list["Item"]] = relationship("Item", back_populates="owner", lazy="noload")

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, username={self.username})>"
