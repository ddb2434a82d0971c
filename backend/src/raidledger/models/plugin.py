"""Plugin install record model.

One row per installed plugin. The row is the only source of truth for
installed/active state across restarts; the in-memory active-slug cache is
always re-derived from it.
"""

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from .base import BaseModel, utcnow


class PluginInstallRecord(BaseModel):
    """Persisted install state for a plugin.

    Fields:
    - slug: manifest identifier (unique)
    - name/version: manifest metadata captured at install time
    - active: whether the plugin's capabilities are currently exposed
    - installed_at/updated_at: lifecycle timestamps
    """

    __tablename__ = "plugins"

    id = Column(Integer, primary_key=True, autoincrement=True)
    slug = Column(String(100), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)
    version = Column(String(50), nullable=False)
    active = Column(Boolean, nullable=False, default=True, index=True)
    installed_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<PluginInstallRecord(slug={self.slug}, version={self.version}, active={self.active})>"
