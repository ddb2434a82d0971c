"""Extension point contracts and the adapter directory.

Each extension point is a Protocol a plugin may implement. Plugin modules
register adapters explicitly under ``(extension point, capability key)``,
where the capability key is usually a game scope (``"world-of-warcraft"``)
or, for per-plugin contracts like cron jobs, the plugin slug. Several keys
may point at the same adapter instance.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class ExtensionPoint(str, Enum):
    CHARACTER_SYNC = "character-sync"
    CONTENT_PROVIDER = "content-provider"
    CRON_REGISTRAR = "cron-registrar"
    AUTH_PROVIDER = "auth-provider"


@dataclass(frozen=True)
class CronJobDefinition:
    """A recurring job a plugin wants scheduled while it is active.

    Scheduled under ``"{slug}:{name}"`` so names only need to be unique per plugin.
    """

    name: str
    cron_expression: str
    handler: Callable[[], Awaitable[Any] | Any]


@runtime_checkable
class CronRegistrar(Protocol):
    def get_cron_jobs(self) -> list[CronJobDefinition]: ...


@runtime_checkable
class CharacterSyncAdapter(Protocol):
    """Imports and refreshes characters from a game's external API."""

    def resolve_game_slugs(self, game_variant: str | None = None) -> list[str]:
        """Game slugs this adapter handles for a variant; empty when unsupported."""
        ...

    async def fetch_character(
        self, name: str, realm: str | None, region: str, game_variant: str | None = None
    ) -> dict[str, Any]: ...


@runtime_checkable
class ContentProvider(Protocol):
    """Supplies game content (instances, encounters, quests) for event planning."""

    async def search_content(self, game_slug: str, query: str) -> list[dict[str, Any]]: ...

    async def get_content(self, game_slug: str, content_id: str) -> dict[str, Any] | None: ...


@runtime_checkable
class AuthProvider(Protocol):
    """An extra login method offered to the authentication subsystem."""

    provider_key: str

    def get_authorize_url(self, state: str, redirect_uri: str) -> str: ...

    async def exchange_code(self, code: str, redirect_uri: str) -> dict[str, Any]: ...


@dataclass(frozen=True)
class AdapterRegistration:
    extension_point: str
    key: str
    adapter: Any
    plugin_slug: str


def _point_id(extension_point: ExtensionPoint | str) -> str:
    return extension_point.value if isinstance(extension_point, ExtensionPoint) else str(extension_point)


class AdapterRegistry:
    """(extension point, capability key) -> adapter, remembering which plugin registered each entry."""

    def __init__(self) -> None:
        self._registrations: dict[tuple[str, str], AdapterRegistration] = {}

    def register(
        self,
        extension_point: ExtensionPoint | str,
        key: str,
        adapter: Any,
        *,
        plugin_slug: str | None = None,
    ) -> None:
        point = _point_id(extension_point)
        owner = plugin_slug or key
        existing = self._registrations.get((point, key))
        if existing is not None and existing.adapter is not adapter:
            logger.warning(
                "Replacing adapter for %s/%s (was owned by %s, now %s)", point, key, existing.plugin_slug, owner
            )
        self._registrations[(point, key)] = AdapterRegistration(point, key, adapter, owner)
        logger.debug("Registered adapter", extra={"extension_point": point, "key": key, "plugin_slug": owner})

    def get(self, extension_point: ExtensionPoint | str, key: str) -> Any | None:
        registration = self._registrations.get((_point_id(extension_point), key))
        return registration.adapter if registration else None

    def get_for_extension_point(self, extension_point: ExtensionPoint | str) -> dict[str, Any]:
        point = _point_id(extension_point)
        return {key: reg.adapter for (p, key), reg in self._registrations.items() if p == point}

    def remove(self, extension_point: ExtensionPoint | str, key: str) -> bool:
        return self._registrations.pop((_point_id(extension_point), key), None) is not None

    def remove_for_plugin(self, plugin_slug: str, keys: set[str] | frozenset[str] = frozenset()) -> int:
        """Drop everything ``plugin_slug`` registered.

        Entries registered without an explicit owner are owned by their key; pass
        the plugin's game scopes as ``keys`` to sweep those too.
        """
        owners = {plugin_slug, *keys}
        doomed = [pair for pair, reg in self._registrations.items() if reg.plugin_slug in owners]
        for pair in doomed:
            del self._registrations[pair]
        return len(doomed)

    def registrations_for_plugin(self, plugin_slug: str) -> list[AdapterRegistration]:
        return [reg for reg in self._registrations.values() if reg.plugin_slug == plugin_slug]
