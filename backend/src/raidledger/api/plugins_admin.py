"""
Admin API for plugin lifecycle management.

Every route requires an administrator. Slugs in the path are validated
before the registry is touched, and lifecycle failures surface through the
application's LedgerException handler (404 for missing manifests/records,
400 for state conflicts).
"""

import logging

from fastapi import APIRouter, Depends

from ..core.response import LedgerResponse
from ..auth.rbac import AuthenticatedUser, require_admin
from ..plugins.cron_manager import CronManager
from ..plugins.manifest import validate_plugin_slug
from ..plugins.registry import PluginRegistryService
from ..schemas.envelope import ErrorResponse, SuccessResponse
from ..schemas.plugin import CronJobSummary, IntegrationCredentialsUpdate, LifecycleResponse, PluginSummary
from .dependencies import get_cron_manager, get_plugin_registry

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin/plugins",
    tags=["plugins-admin"],
    dependencies=[Depends(require_admin)],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)


@router.get("", response_model=SuccessResponse[list[PluginSummary]])
async def list_plugins(registry: PluginRegistryService = Depends(get_plugin_registry)):
    """Every compiled-in plugin with its install status and integration configuration."""
    return LedgerResponse.success(await registry.list_plugins())


@router.get("/cron-jobs", response_model=SuccessResponse[list[CronJobSummary]])
async def list_cron_jobs(cron_manager: CronManager = Depends(get_cron_manager)):
    return LedgerResponse.success(cron_manager.list_plugin_jobs())


@router.post("/cron-jobs/{name}/run", response_model=LifecycleResponse)
async def run_cron_job(
    name: str,
    current_user: AuthenticatedUser = Depends(require_admin),
    cron_manager: CronManager = Depends(get_cron_manager),
):
    await cron_manager.trigger_job(name)
    logger.info("Cron job %s triggered by %s", name, current_user.user_id)
    return LifecycleResponse(success=True, message=f'Cron job "{name}" executed')


@router.post("/{slug}/install", response_model=LifecycleResponse)
async def install_plugin(
    slug: str,
    current_user: AuthenticatedUser = Depends(require_admin),
    registry: PluginRegistryService = Depends(get_plugin_registry),
):
    validate_plugin_slug(slug)
    await registry.install(slug)
    logger.info("Plugin %s installed by %s", slug, current_user.user_id)
    return LifecycleResponse(success=True, message=f'Plugin "{slug}" installed and activated')


@router.post("/{slug}/uninstall", response_model=LifecycleResponse)
async def uninstall_plugin(
    slug: str,
    current_user: AuthenticatedUser = Depends(require_admin),
    registry: PluginRegistryService = Depends(get_plugin_registry),
):
    validate_plugin_slug(slug)
    await registry.uninstall(slug)
    logger.info("Plugin %s uninstalled by %s", slug, current_user.user_id)
    return LifecycleResponse(success=True, message=f'Plugin "{slug}" uninstalled')


@router.post("/{slug}/activate", response_model=LifecycleResponse)
async def activate_plugin(
    slug: str,
    current_user: AuthenticatedUser = Depends(require_admin),
    registry: PluginRegistryService = Depends(get_plugin_registry),
):
    validate_plugin_slug(slug)
    changed = await registry.activate(slug)
    if not changed:
        return LifecycleResponse(success=True, message=f'Plugin "{slug}" is already active')
    logger.info("Plugin %s activated by %s", slug, current_user.user_id)
    return LifecycleResponse(success=True, message=f'Plugin "{slug}" activated')


@router.post("/{slug}/deactivate", response_model=LifecycleResponse)
async def deactivate_plugin(
    slug: str,
    current_user: AuthenticatedUser = Depends(require_admin),
    registry: PluginRegistryService = Depends(get_plugin_registry),
):
    validate_plugin_slug(slug)
    changed = await registry.deactivate(slug)
    if not changed:
        return LifecycleResponse(success=True, message=f'Plugin "{slug}" is already inactive')
    logger.info("Plugin %s deactivated by %s", slug, current_user.user_id)
    return LifecycleResponse(success=True, message=f'Plugin "{slug}" deactivated')


@router.put("/{slug}/integrations/{integration_key}", response_model=LifecycleResponse)
async def update_integration(
    slug: str,
    integration_key: str,
    body: IntegrationCredentialsUpdate,
    registry: PluginRegistryService = Depends(get_plugin_registry),
):
    validate_plugin_slug(slug)
    await registry.update_integration_credentials(slug, integration_key, body.values)
    return LifecycleResponse(success=True, message=f'Integration "{integration_key}" updated')
