"""Plugin registry: install, activate, deactivate and uninstall compiled-in plugins.

Owns the manifest catalog, the in-memory active-slug cache and the adapter
directory. The persisted install records are the source of truth; after
every mutation the cache is re-derived from a fresh store read (never
patched incrementally) before the lifecycle event goes out, so a caller
never sees a stale cache once its own call has returned.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from ..core.events import EventBus, PluginEvent
from ..core.exceptions import (
    PluginAlreadyInstalledError,
    PluginDependencyMissingError,
    PluginManifestNotFoundError,
    PluginNotInstalledError,
    PluginStillActiveError,
    ValidationError,
)
from ..models.plugin import PluginInstallRecord
from ..schemas.plugin import IntegrationSummary, PluginStatus, PluginSummary
from .extension_points import AdapterRegistry, ExtensionPoint
from .manifest import ManifestCatalog, PluginManifest
from .store import PluginLifecycleStore

logger = logging.getLogger(__name__)


class PluginRegistryService:
    def __init__(
        self,
        store: PluginLifecycleStore,
        event_bus: EventBus,
        catalog: ManifestCatalog | None = None,
        adapters: AdapterRegistry | None = None,
    ):
        self._store = store
        self._events = event_bus
        self._catalog = catalog if catalog is not None else ManifestCatalog()
        self._adapters = adapters if adapters is not None else AdapterRegistry()
        self._active_slugs: frozenset[str] = frozenset()
        # One lock per catalog slug; slugs with no manifest share a single lock
        self._slug_locks: dict[str, asyncio.Lock] = {}
        self._unknown_slug_lock = asyncio.Lock()

    def _lock_for(self, slug: str) -> asyncio.Lock:
        if slug not in self._catalog:
            return self._unknown_slug_lock
        return self._slug_locks.setdefault(slug, asyncio.Lock())

    @property
    def catalog(self) -> ManifestCatalog:
        return self._catalog

    async def initialize(self) -> None:
        """Load the active-slug cache from the store at process start."""
        await self.refresh_active_cache()
        logger.info("Plugin registry initialized", extra={"active_plugins": len(self._active_slugs)})

    # ------------------------------------------------------------------
    # Manifests
    # ------------------------------------------------------------------

    def register_manifest(self, manifest: PluginManifest) -> None:
        self._catalog.register(manifest)

    def get_manifest(self, slug: str) -> PluginManifest | None:
        return self._catalog.get(slug)

    async def list_plugins(self) -> list[PluginSummary]:
        """Every catalog manifest merged with its install record, if any."""
        records = {r.slug: r for r in await self._store.list_all()}
        manifests = list(self._catalog)

        # One batched existence lookup covering every integration of every manifest
        all_credential_keys = [k for m in manifests for k in m.credential_keys()]
        existing_keys = await self._store.existing_setting_keys(all_credential_keys)

        result: list[PluginSummary] = []
        for manifest in manifests:
            record = records.get(manifest.slug)
            if record is None:
                status = PluginStatus.NOT_INSTALLED
            elif record.active:
                status = PluginStatus.ACTIVE
            else:
                status = PluginStatus.INACTIVE
            result.append(
                PluginSummary(
                    slug=manifest.slug,
                    name=manifest.name,
                    version=manifest.version,
                    description=manifest.description,
                    author=manifest.author,
                    game_scopes=sorted(manifest.game_scopes),
                    capabilities=sorted(manifest.capabilities),
                    integrations=[
                        IntegrationSummary(
                            key=integration.key,
                            name=integration.name,
                            description=integration.description,
                            icon=integration.icon,
                            configured=all(k in existing_keys for k in integration.credential_keys),
                            credential_labels=list(integration.credential_labels),
                        )
                        for integration in manifest.integrations
                    ],
                    status=status,
                    installed_at=record.installed_at if record is not None else None,
                )
            )
        return result

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def install(self, slug: str) -> PluginInstallRecord:
        manifest = self._catalog.get(slug)
        if manifest is None:
            raise PluginManifestNotFoundError(slug)

        async with self._lock_for(slug):
            if await self._store.get(slug) is not None:
                raise PluginAlreadyInstalledError(slug)

            # Flat pass over declared dependencies; cycles are not detected
            if manifest.dependencies:
                installed = await self._store.find_installed(manifest.dependencies)
                missing = sorted(manifest.dependencies - installed)
                if missing:
                    raise PluginDependencyMissingError(slug, missing)

            record = await self._store.create(slug, manifest.name, manifest.version, active=True)
            await self.refresh_active_cache()

        await self._events.publish(PluginEvent.INSTALLED, slug, {"slug": slug, "manifest": manifest})
        logger.info("Plugin installed and activated: %s", slug)
        return record

    async def uninstall(self, slug: str) -> None:
        async with self._lock_for(slug):
            record = await self._store.get(slug)
            if record is None:
                raise PluginNotInstalledError(slug)
            if record.active:
                raise PluginStillActiveError(slug)

            manifest = self._catalog.get(slug)
            setting_keys = manifest.owned_setting_keys() if manifest is not None else []
            await self._store.delete(slug, setting_keys)
            await self.refresh_active_cache()
            self.remove_adapters_for_plugin(slug)

        await self._events.publish(PluginEvent.UNINSTALLED, slug)
        logger.info("Plugin uninstalled: %s", slug)

    async def activate(self, slug: str) -> bool:
        """Activate an installed plugin. Returns False when it was already active (no write, no event)."""
        async with self._lock_for(slug):
            record = await self._store.get(slug)
            if record is None:
                raise PluginNotInstalledError(slug)
            if record.active:
                return False
            await self._store.set_active(slug, True)
            await self.refresh_active_cache()

        await self._events.publish(PluginEvent.ACTIVATED, slug)
        logger.info("Plugin activated: %s", slug)
        return True

    async def deactivate(self, slug: str) -> bool:
        """Deactivate an installed plugin. Returns False when it was already inactive."""
        async with self._lock_for(slug):
            record = await self._store.get(slug)
            if record is None:
                raise PluginNotInstalledError(slug)
            if not record.active:
                return False
            await self._store.set_active(slug, False)
            await self.refresh_active_cache()
            self.remove_adapters_for_plugin(slug)

        await self._events.publish(PluginEvent.DEACTIVATED, slug)
        logger.info("Plugin deactivated: %s", slug)
        return True

    async def update_integration_credentials(self, slug: str, integration_key: str, values: dict[str, Any]) -> None:
        """Store credentials for one integration and announce the change."""
        manifest = self._catalog.get(slug)
        if manifest is None:
            raise PluginManifestNotFoundError(slug)
        integration = manifest.get_integration(integration_key)
        if integration is None:
            raise ValidationError(
                f'Plugin "{slug}" has no integration "{integration_key}"',
                details={"slug": slug, "integration": integration_key},
            )
        unknown = sorted(set(values) - set(integration.credential_keys))
        if unknown:
            raise ValidationError(
                f'Unknown credential keys for integration "{integration_key}": {", ".join(unknown)}',
                details={"slug": slug, "integration": integration_key, "unknown_keys": unknown},
            )

        await self._store.upsert_settings(values)
        logger.info("Updated %d credential(s) for %s/%s", len(values), slug, integration_key)
        if integration.change_event_name:
            await self._events.publish(
                integration.change_event_name, slug, {"integration": integration_key, "keys": sorted(values)}
            )

    # ------------------------------------------------------------------
    # Active-slug cache (hot path: never touches the store)
    # ------------------------------------------------------------------

    def is_active(self, slug: str) -> bool:
        return slug in self._active_slugs

    def get_active_slugs_sync(self) -> frozenset[str]:
        return self._active_slugs

    async def refresh_active_cache(self) -> None:
        # Swap the whole set in one assignment; readers never see a partial update
        self._active_slugs = frozenset(await self._store.list_active_slugs())

    # ------------------------------------------------------------------
    # Adapter directory
    # ------------------------------------------------------------------

    def register_adapter(
        self,
        extension_point: ExtensionPoint | str,
        key: str,
        adapter: Any,
        *,
        plugin_slug: str | None = None,
    ) -> None:
        self._adapters.register(extension_point, key, adapter, plugin_slug=plugin_slug)

    def get_adapter(self, extension_point: ExtensionPoint | str, key: str) -> Any | None:
        return self._adapters.get(extension_point, key)

    def get_adapters_for_extension_point(self, extension_point: ExtensionPoint | str) -> dict[str, Any]:
        return self._adapters.get_for_extension_point(extension_point)

    def remove_adapters_for_plugin(self, slug: str) -> int:
        manifest = self._catalog.get(slug)
        scopes = manifest.game_scopes if manifest is not None else frozenset()
        removed = self._adapters.remove_for_plugin(slug, scopes)
        if removed:
            logger.info("Removed %d adapter(s) for plugin %s", removed, slug)
        return removed
