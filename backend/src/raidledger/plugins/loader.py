"""
Plugin modules and how the host finds them.

A plugin module is the unit a deployment compiles in: it owns one manifest
and knows how to register its adapters. Modules are named either in
``RAIDLEDGER_PLUGIN_MODULES`` as ``"package.module:ClassName"`` entries or
advertised by installed distributions under the ``raidledger.plugins``
entry-point group.
"""
from __future__ import annotations

import importlib
import logging
from importlib.metadata import entry_points
from typing import TYPE_CHECKING, ClassVar

from ..core.events import Event, PluginEvent
from ..core.exceptions import AdapterFailureError
from .manifest import PluginManifest
from .registry import PluginRegistryService

if TYPE_CHECKING:
    from .host import PluginHost

logger = logging.getLogger(__name__)


class PluginModule:
    """Base class for compiled-in plugins.

    Subclasses set ``manifest`` and implement ``register_adapters``. The host
    calls ``setup`` once at startup; adapters are (re)registered whenever the
    plugin is installed or activated, and the registry removes them again on
    deactivation and uninstall.
    """

    manifest: ClassVar[PluginManifest]

    def register_adapters(self, registry: PluginRegistryService) -> None:
        """Register this plugin's adapters with the registry."""

    def setup(self, host: PluginHost) -> None:
        registry = host.registry
        slug = self.manifest.slug
        registry.register_manifest(self.manifest)

        def on_enabled(event: Event) -> None:
            if event.slug == slug:
                self.register_adapters(registry)

        host.event_bus.subscribe(PluginEvent.INSTALLED, on_enabled)
        host.event_bus.subscribe(PluginEvent.ACTIVATED, on_enabled)

        # Already active at process start: no Activated event will ever arrive
        if registry.is_active(slug):
            try:
                self.register_adapters(registry)
            except Exception as e:
                failure = AdapterFailureError(slug, "register_adapters", str(e))
                logger.error(failure.message, extra={"slug": slug}, exc_info=True)


class PluginLoader:
    def __init__(self, *, modules: list[str] | None = None, entry_point_group: str | None = None):
        self.modules = list(modules or [])
        self.entry_point_group = entry_point_group

    def load_entry(self, entry: str) -> PluginModule:
        """Instantiate a plugin module from a dotted ``"package.module:Class"`` path."""
        module_path, sep, class_name = entry.partition(":")
        if not sep or not module_path or not class_name:
            raise ImportError(f"Plugin module entry '{entry}' must look like 'package.module:ClassName'")
        mod = importlib.import_module(module_path)
        cls = getattr(mod, class_name)
        return self._instantiate(cls, entry)

    def _instantiate(self, cls: type, source: str) -> PluginModule:
        plugin = cls()
        if not isinstance(plugin, PluginModule):
            raise ImportError(f"Plugin module '{source}' is not a PluginModule")
        if not isinstance(getattr(plugin, "manifest", None), PluginManifest):
            raise ImportError(f"Plugin module '{source}' does not declare a manifest")
        return plugin

    def discover(self) -> list[PluginModule]:
        """Load every configured module; a module that fails to load is logged and skipped."""
        loaded: list[PluginModule] = []
        seen: set[str] = set()

        for entry in self.modules:
            try:
                plugin = self.load_entry(entry)
            except Exception as e:  # noqa: BLE001
                logger.exception("Failed loading plugin module %s: %s", entry, e)
                continue
            if plugin.manifest.slug not in seen:
                seen.add(plugin.manifest.slug)
                loaded.append(plugin)

        if self.entry_point_group:
            for ep in entry_points(group=self.entry_point_group):
                try:
                    plugin = self._instantiate(ep.load(), ep.value)
                except Exception as e:  # noqa: BLE001
                    logger.exception("Failed loading plugin entry point %s: %s", ep.name, e)
                    continue
                if plugin.manifest.slug in seen:
                    logger.warning("Plugin %s provided more than once; keeping the first", plugin.manifest.slug)
                    continue
                seen.add(plugin.manifest.slug)
                loaded.append(plugin)

        logger.info("Loaded %d plugin module(s): %s", len(loaded), [p.manifest.slug for p in loaded])
        return loaded
