"""
Base model classes for the Raid Ledger backend.

Provides the timestamp mixin and abstract base shared by all models.
"""

from datetime import UTC, datetime

from sqlalchemy import Column, DateTime
from sqlalchemy.orm import declarative_mixin

# Import Base from the database module to avoid duplicate declarations
from ..core.database import Base


def utcnow() -> datetime:
    return datetime.now(UTC)


@declarative_mixin
class TimestampMixin:
    """Mixin for adding timestamp columns to models."""

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class BaseModel(Base):
    """Base model class with common functionality."""

    __abstract__ = True

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"
