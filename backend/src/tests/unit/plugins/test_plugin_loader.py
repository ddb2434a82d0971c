"""
Unit tests for plugin module loading and the PluginModule setup contract.
"""

import sys
import types
from unittest.mock import MagicMock, patch

import pytest

from raidledger.core.events import EventBus, PluginEvent
from raidledger.plugins.extension_points import ExtensionPoint
from raidledger.plugins.loader import PluginLoader, PluginModule
from raidledger.plugins.manifest import PluginManifest


class SteamPlugin(PluginModule):
    manifest = PluginManifest(slug="steam", name="Steam", version="0.3.0", game_scopes=frozenset({"steam"}))

    def register_adapters(self, registry):
        registry.register_adapter(ExtensionPoint.CONTENT_PROVIDER, "steam", "steam-content", plugin_slug="steam")


class NotAPlugin:
    pass


@pytest.fixture
def plugin_package(monkeypatch):
    module = types.ModuleType("ledger_test_plugins")
    module.SteamPlugin = SteamPlugin
    module.NotAPlugin = NotAPlugin
    monkeypatch.setitem(sys.modules, "ledger_test_plugins", module)
    return module


class TestPluginLoader:
    def test_load_entry(self, plugin_package):
        plugin = PluginLoader().load_entry("ledger_test_plugins:SteamPlugin")
        assert isinstance(plugin, SteamPlugin)

    @pytest.mark.parametrize("entry", ["ledger_test_plugins", "ledger_test_plugins:", ":SteamPlugin"])
    def test_malformed_entry(self, entry, plugin_package):
        with pytest.raises(ImportError, match="package.module:ClassName"):
            PluginLoader().load_entry(entry)

    def test_non_plugin_class_rejected(self, plugin_package):
        with pytest.raises(ImportError, match="not a PluginModule"):
            PluginLoader().load_entry("ledger_test_plugins:NotAPlugin")

    def test_discover_skips_broken_and_duplicate_entries(self, plugin_package):
        loader = PluginLoader(
            modules=[
                "ledger_test_plugins:SteamPlugin",
                "ledger_test_plugins:Missing",
                "no_such_package.plugin:Plugin",
                "ledger_test_plugins:SteamPlugin",
            ]
        )
        assert [p.manifest.slug for p in loader.discover()] == ["steam"]

    def test_discover_entry_points(self):
        ep = MagicMock()
        ep.name = "steam"
        ep.value = "ledger_test_plugins:SteamPlugin"
        ep.load.return_value = SteamPlugin
        with patch("raidledger.plugins.loader.entry_points", return_value=[ep]) as mock_eps:
            plugins = PluginLoader(entry_point_group="raidledger.plugins").discover()

        mock_eps.assert_called_once_with(group="raidledger.plugins")
        assert [p.manifest.slug for p in plugins] == ["steam"]


class TestPluginModuleSetup:
    def _host(self, active=()):
        host = MagicMock()
        host.event_bus = EventBus()
        host.registry.is_active.side_effect = lambda slug: slug in active
        return host

    def test_registers_manifest_and_skips_adapters_when_inactive(self):
        host = self._host()
        SteamPlugin().setup(host)

        host.registry.register_manifest.assert_called_once_with(SteamPlugin.manifest)
        host.registry.register_adapter.assert_not_called()

    def test_registers_adapters_when_already_active(self):
        host = self._host(active={"steam"})
        SteamPlugin().setup(host)
        host.registry.register_adapter.assert_called_once()

    @pytest.mark.asyncio
    async def test_registers_adapters_on_own_activation_only(self):
        host = self._host()
        SteamPlugin().setup(host)

        await host.event_bus.publish(PluginEvent.ACTIVATED, "blizzard")
        host.registry.register_adapter.assert_not_called()

        await host.event_bus.publish(PluginEvent.INSTALLED, "steam")
        await host.event_bus.publish(PluginEvent.ACTIVATED, "steam")
        assert host.registry.register_adapter.call_count == 2
