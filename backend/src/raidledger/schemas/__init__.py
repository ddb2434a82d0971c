"""
Pydantic schemas for the Raid Ledger API.
"""

from .envelope import ErrorResponse, SuccessResponse
from .plugin import (
    CronJobSummary,
    IntegrationCredentialsUpdate,
    IntegrationSummary,
    LifecycleResponse,
    PluginStatus,
    PluginSummary,
)

__all__ = [
    "SuccessResponse",
    "ErrorResponse",
    "PluginStatus",
    "PluginSummary",
    "IntegrationSummary",
    "IntegrationCredentialsUpdate",
    "LifecycleResponse",
    "CronJobSummary",
]
