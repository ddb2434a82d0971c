"""Plugin manifests and the in-process manifest catalog.

A manifest is the static, compiled-in description of a plugin: identity,
the game scopes it serves, the capabilities it exposes, the settings it
owns and the plugins it depends on. Each plugin module registers exactly one
manifest at startup.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..core.exceptions import PluginSlugValidationError

logger = logging.getLogger(__name__)

SLUG_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]*[a-z0-9]$")
SLUG_MIN_LENGTH = 2
SLUG_MAX_LENGTH = 100


def validate_plugin_slug(slug: str) -> str:
    """Return ``slug`` unchanged or raise PluginSlugValidationError."""
    if not isinstance(slug, str):
        raise PluginSlugValidationError(str(slug), "slug must be a string")
    if not SLUG_MIN_LENGTH <= len(slug) <= SLUG_MAX_LENGTH:
        raise PluginSlugValidationError(slug, f"length must be between {SLUG_MIN_LENGTH} and {SLUG_MAX_LENGTH}")
    if not SLUG_PATTERN.fullmatch(slug):
        raise PluginSlugValidationError(
            slug, "must be lowercase alphanumerics and dashes, not starting or ending with a dash"
        )
    return slug


class IntegrationDescriptor(BaseModel):
    """An external service a plugin talks to, and the settings keys holding its credentials."""

    model_config = ConfigDict(frozen=True)

    key: str
    name: str
    description: str = ""
    icon: str | None = None
    credential_keys: tuple[str, ...] = ()
    credential_labels: tuple[str, ...] = ()
    # Published on the event bus when the integration's credentials change
    change_event_name: str | None = None


class PluginManifest(BaseModel):
    model_config = ConfigDict(frozen=True)

    slug: str
    name: str
    version: str
    description: str = ""
    author: str = ""
    game_scopes: frozenset[str] = Field(default_factory=frozenset)
    capabilities: frozenset[str] = Field(default_factory=frozenset)
    setting_keys: tuple[str, ...] = ()
    integrations: tuple[IntegrationDescriptor, ...] = ()
    dependencies: frozenset[str] = Field(default_factory=frozenset)

    @model_validator(mode="after")
    def _check_slug(self) -> PluginManifest:
        validate_plugin_slug(self.slug)
        return self

    def get_integration(self, key: str) -> IntegrationDescriptor | None:
        return next((i for i in self.integrations if i.key == key), None)

    def credential_keys(self) -> list[str]:
        """All credential keys across integrations, in declaration order."""
        return [k for integration in self.integrations for k in integration.credential_keys]

    def owned_setting_keys(self) -> list[str]:
        """Every settings key this plugin owns (plain settings first, then credentials), de-duplicated."""
        return list(dict.fromkeys([*self.setting_keys, *self.credential_keys()]))


class ManifestCatalog:
    """Manifests keyed by slug. Registering an existing slug overwrites it."""

    def __init__(self) -> None:
        self._manifests: dict[str, PluginManifest] = {}

    def register(self, manifest: PluginManifest) -> None:
        previous = self._manifests.get(manifest.slug)
        self._manifests[manifest.slug] = manifest
        if previous is not None and previous.version != manifest.version:
            logger.info("Plugin manifest %s updated v%s -> v%s", manifest.slug, previous.version, manifest.version)
        else:
            logger.info("Registered plugin manifest: %s v%s", manifest.slug, manifest.version)

    def get(self, slug: str) -> PluginManifest | None:
        return self._manifests.get(slug)

    def __contains__(self, slug: object) -> bool:
        return slug in self._manifests

    def __iter__(self) -> Iterator[PluginManifest]:
        return iter(list(self._manifests.values()))

    def __len__(self) -> int:
        return len(self._manifests)
