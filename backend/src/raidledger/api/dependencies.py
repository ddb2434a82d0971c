"""FastAPI dependencies resolving the process-wide plugin host components."""

from ..plugins.cron_manager import CronManager
from ..plugins.host import get_plugin_host
from ..plugins.registry import PluginRegistryService


def get_plugin_registry() -> PluginRegistryService:
    return get_plugin_host().registry


def get_cron_manager() -> CronManager:
    return get_plugin_host().cron_manager
