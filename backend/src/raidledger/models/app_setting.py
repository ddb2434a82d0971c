"""AppSetting model: application key/value settings.

Plugin integrations keep their credentials here under the keys their
manifest declares. The plugin host only checks existence, upserts and
deletes; reading values is the owning plugin's business.
"""

from sqlalchemy import JSON, Column, String

from .base import BaseModel, TimestampMixin


class AppSetting(TimestampMixin, BaseModel):
    """Key/value settings table with JSON-backed values."""

    __tablename__ = "app_settings"

    key = Column(String(128), primary_key=True, index=True)
    value = Column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<AppSetting(key='{self.key}')>"
