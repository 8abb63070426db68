"""
SQLAlchemy declarative base and metadata.
Challenge: Single place for table definitions and migrations.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all ORM models. Enables Alembic migrations."""

    pass


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    # Client-side timestamps keep microseconds, so message order survives SQLite's CURRENT_TIMESTAMP
    return datetime.now(timezone.utc)
