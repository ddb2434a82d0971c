"""Keeps the live cron scheduler in step with the set of active plugins.

Plugin jobs are scheduled as ``"{slug}:{job name}"``. Before adding a job the
manager asks the scheduler whether that name is already registered, so the
bootstrap pass and a late Activated event for the same plugin never
double-register. Failures here are logged per job and per plugin; they never
undo the lifecycle transition that triggered them.
"""

from __future__ import annotations

import logging
from typing import Any

from ..core.events import Event, EventBus, PluginEvent
from ..core.exceptions import AdapterFailureError, CronJobNotFoundError, LedgerException
from ..schemas.plugin import CronJobSummary
from .extension_points import CronJobDefinition, ExtensionPoint
from .registry import PluginRegistryService
from .scheduler import CronScheduler

logger = logging.getLogger(__name__)

JOB_NAME_SEPARATOR = ":"


def plugin_job_name(slug: str, job_name: str) -> str:
    return f"{slug}{JOB_NAME_SEPARATOR}{job_name}"


class CronManager:
    def __init__(self, registry: PluginRegistryService, scheduler: CronScheduler):
        self._registry = registry
        self._scheduler = scheduler

    def subscribe(self, event_bus: EventBus) -> None:
        # Install creates an active record, so it is handled like activation
        event_bus.subscribe(PluginEvent.INSTALLED, self.handle_plugin_activated)
        event_bus.subscribe(PluginEvent.ACTIVATED, self.handle_plugin_activated)
        event_bus.subscribe(PluginEvent.DEACTIVATED, self.handle_plugin_deactivated)
        event_bus.subscribe(PluginEvent.UNINSTALLED, self.handle_plugin_deactivated)

    def handle_plugin_activated(self, event: Event) -> None:
        if event.slug:
            self.on_plugin_activated(event.slug)

    def handle_plugin_deactivated(self, event: Event) -> None:
        if event.slug:
            self.on_plugin_deactivated(event.slug)

    def on_bootstrap(self) -> int:
        """Register jobs for plugins that were already active when the process started."""
        registrars = self._registry.get_adapters_for_extension_point(ExtensionPoint.CRON_REGISTRAR)
        total = 0
        for slug, registrar in registrars.items():
            if not self._registry.is_active(slug):
                continue
            total += self._register_jobs(slug, registrar)
        logger.info("Cron bootstrap complete | registered=%d", total)
        return total

    def on_plugin_activated(self, slug: str) -> int:
        registrar = self._registry.get_adapter(ExtensionPoint.CRON_REGISTRAR, slug)
        if registrar is None:
            return 0
        return self._register_jobs(slug, registrar)

    def on_plugin_deactivated(self, slug: str) -> int:
        prefix = plugin_job_name(slug, "")
        removed = 0
        for name in list(self._scheduler.get_cron_jobs()):
            if not name.startswith(prefix):
                continue
            try:
                self._scheduler.delete_cron_job(name)
                removed += 1
            except Exception:
                logger.warning("Failed to remove cron job %s", name, exc_info=True)
        if removed:
            logger.info("Removed %d cron job(s) for plugin %s", removed, slug)
        return removed

    def _register_jobs(self, slug: str, registrar: Any) -> int:
        try:
            jobs: list[CronJobDefinition] = list(registrar.get_cron_jobs())
        except Exception as e:
            failure = AdapterFailureError(slug, ExtensionPoint.CRON_REGISTRAR.value, str(e))
            logger.error(failure.message, extra={"slug": slug}, exc_info=True)
            return 0

        registered = 0
        for job in jobs:
            try:
                name = plugin_job_name(slug, job.name)
            except Exception:
                logger.error("Skipping malformed cron job from plugin %s: %r", slug, job, exc_info=True)
                continue
            # Ask the scheduler itself; it is the only record of what is registered
            if self._scheduler.has_cron_job(name):
                continue
            try:
                self._scheduler.add_cron_job(name, job.cron_expression, job.handler)
                registered += 1
            except LedgerException as e:
                logger.warning("Skipping cron job %s: %s", name, e.message)
            except Exception:
                logger.error("Failed to register cron job %s", name, exc_info=True)
        if registered:
            logger.info("Registered %d cron job(s) for plugin %s", registered, slug)
        return registered

    def list_plugin_jobs(self) -> list[CronJobSummary]:
        summaries = []
        for name, job in sorted(self._scheduler.get_cron_jobs().items()):
            slug, sep, _ = name.partition(JOB_NAME_SEPARATOR)
            if not sep:
                continue
            summaries.append(
                CronJobSummary(
                    name=name,
                    plugin_slug=slug,
                    cron_expression=job.cron_expression,
                    next_run_at=job.next_run_at,
                    last_run_at=job.last_run_at,
                )
            )
        return summaries

    async def trigger_job(self, name: str) -> None:
        if JOB_NAME_SEPARATOR not in name or not self._scheduler.has_cron_job(name):
            raise CronJobNotFoundError(name)
        logger.info("Manually triggering cron job %s", name)
        await self._scheduler.run_job_now(name)
