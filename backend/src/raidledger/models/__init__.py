"""
Database models for the Raid Ledger backend.
"""

from .app_setting import AppSetting
from .base import Base, BaseModel, TimestampMixin
from .plugin import PluginInstallRecord

__all__ = [
    "Base",
    "BaseModel",
    "TimestampMixin",
    "AppSetting",
    "PluginInstallRecord",
]
