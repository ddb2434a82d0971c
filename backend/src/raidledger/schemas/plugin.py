"""Schemas for the plugin admin surface."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class PluginStatus(str, Enum):
    NOT_INSTALLED = "not_installed"
    INACTIVE = "inactive"
    ACTIVE = "active"


class IntegrationSummary(BaseModel):
    key: str
    name: str
    description: str = ""
    icon: str | None = None
    # True iff every credential key of the integration exists in the settings store
    configured: bool = False
    credential_labels: list[str] = Field(default_factory=list)


class PluginSummary(BaseModel):
    slug: str
    name: str
    version: str
    description: str = ""
    author: str = ""
    game_scopes: list[str] = Field(default_factory=list)
    capabilities: list[str] = Field(default_factory=list)
    integrations: list[IntegrationSummary] = Field(default_factory=list)
    status: PluginStatus
    installed_at: datetime | None = None


class LifecycleResponse(BaseModel):
    success: bool
    message: str


class IntegrationCredentialsUpdate(BaseModel):
    """Credential values keyed by the integration's declared credential keys."""

    values: dict[str, Any]


class CronJobSummary(BaseModel):
    name: str
    plugin_slug: str
    cron_expression: str
    next_run_at: datetime | None = None
    last_run_at: datetime | None = None
