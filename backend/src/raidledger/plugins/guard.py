"""Request-time gate for capability surfaces owned by a plugin.

Routes (or whole route groups) are marked with the slug of the plugin that
owns them. A marked request is allowed only while that slug is in the
registry's active-slug cache. The check is synchronous and never touches
the database, so routes that stay mounted after their plugin is deactivated
are closed off immediately.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, TypeVar

from fastapi import Request

from ..core.exceptions import PluginInactiveError
from .registry import PluginRegistryService

logger = logging.getLogger(__name__)

REQUIRED_PLUGIN_ATTR = "__required_plugin__"

F = TypeVar("F")


def requires_plugin(slug: str) -> Callable[[F], F]:
    """Mark a handler function or a handler class as owned by plugin ``slug``."""

    def decorator(target: F) -> F:
        setattr(target, REQUIRED_PLUGIN_ATTR, slug)
        return target

    return decorator


def resolve_required_plugin(handler: Any, owner: Any = None) -> str | None:
    """Nearest required-plugin marker: the handler's own marker wins over its class's."""
    func = getattr(handler, "__func__", handler)
    slug = func.__dict__.get(REQUIRED_PLUGIN_ATTR) if hasattr(func, "__dict__") else None
    if slug:
        return slug
    if owner is None:
        bound_to = getattr(handler, "__self__", None)
        if bound_to is not None:
            owner = bound_to if isinstance(bound_to, type) else type(bound_to)
    if owner is not None:
        return getattr(owner, REQUIRED_PLUGIN_ATTR, None)
    return None


class PluginActiveGuard:
    def __init__(self, registry: PluginRegistryService):
        self._registry = registry

    def check_slug(self, slug: str | None) -> None:
        if slug is None:
            return
        if not self._registry.is_active(slug):
            logger.warning("Blocked request to inactive plugin surface", extra={"slug": slug})
            raise PluginInactiveError(slug)

    def check(self, handler: Any, owner: Any = None) -> None:
        """Raise PluginInactiveError when the handler is marked for an inactive plugin."""
        self.check_slug(resolve_required_plugin(handler, owner))

    def can_activate(self, handler: Any, owner: Any = None) -> bool:
        slug = resolve_required_plugin(handler, owner)
        return slug is None or self._registry.is_active(slug)


def plugin_guard(group_slug: str | None = None) -> Callable[[Request], None]:
    """FastAPI dependency enforcing the active guard.

    Use as a route dependency for ``@requires_plugin``-marked endpoints, or
    on a whole router with ``group_slug`` to gate every route in the group.
    A marker on the endpoint itself takes precedence over ``group_slug``.
    """

    def dependency(request: Request) -> None:
        from .host import get_plugin_host

        endpoint = request.scope.get("endpoint")
        slug = resolve_required_plugin(endpoint) if endpoint is not None else None
        get_plugin_host().guard.check_slug(slug or group_slug)

    return dependency
