"""Process-wide plugin host: wires the registry, event bus, scheduler and guard together."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.config import Settings
from ..core.events import EventBus
from .cron_manager import CronManager
from .extension_points import AdapterRegistry
from .guard import PluginActiveGuard
from .loader import PluginLoader, PluginModule
from .manifest import ManifestCatalog
from .registry import PluginRegistryService
from .scheduler import CronScheduler
from .store import PluginLifecycleStore

logger = logging.getLogger(__name__)


class PluginHost:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], settings: Settings):
        self.settings = settings
        self.event_bus = EventBus()
        self.catalog = ManifestCatalog()
        self.adapters = AdapterRegistry()
        self.store = PluginLifecycleStore(session_factory)
        self.registry = PluginRegistryService(self.store, self.event_bus, self.catalog, self.adapters)
        self.scheduler = CronScheduler(timezone=settings.scheduler_timezone)
        self.cron_manager = CronManager(self.registry, self.scheduler)
        self.guard = PluginActiveGuard(self.registry)
        self.modules: list[PluginModule] = []

    def discover_modules(self) -> list[PluginModule]:
        loader = PluginLoader(
            modules=self.settings.plugin_modules,
            entry_point_group=self.settings.plugin_entry_point_group,
        )
        return loader.discover()

    async def start(self, modules: list[PluginModule] | None = None) -> None:
        """Bring the plugin system up.

        Order matters: the active-slug cache is loaded first so modules can
        register adapters for already-active plugins, modules subscribe before
        the cron manager so adapters exist by the time it handles an event,
        and bootstrap picks up jobs for plugins that were active before start.
        """
        await self.registry.initialize()

        self.modules = list(modules) if modules is not None else self.discover_modules()
        for module in self.modules:
            try:
                module.setup(self)
            except Exception:
                logger.error("Plugin module setup failed: %s", module.manifest.slug, exc_info=True)

        self.cron_manager.subscribe(self.event_bus)
        self.cron_manager.on_bootstrap()

        if self.settings.scheduler_enabled:
            self.scheduler.start()
        else:
            logger.info("Cron scheduler disabled by configuration")
        logger.info(
            "Plugin host started | plugins=%d active=%d",
            len(self.catalog),
            len(self.registry.get_active_slugs_sync()),
        )

    async def stop(self) -> None:
        await self.scheduler.shutdown()
        logger.info("Plugin host stopped")


# Process-wide host, created during application startup
_HOST: PluginHost | None = None


def get_plugin_host() -> PluginHost:
    if _HOST is None:
        raise RuntimeError("Plugin host has not been started")
    return _HOST


def set_plugin_host(host: PluginHost | None) -> None:
    global _HOST
    _HOST = host
