"""In-process event bus.

Plugin lifecycle notifications (installed, uninstalled, activated,
deactivated) and integration change events are published here. Delivery is
in-process and in subscription order, and completes before ``publish``
returns. A subscriber that raises is logged and skipped; it never unwinds
the operation that published the event.
"""

from __future__ import annotations

import inspect
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class PluginEvent(str, Enum):
    INSTALLED = "plugin.installed"
    UNINSTALLED = "plugin.uninstalled"
    ACTIVATED = "plugin.activated"
    DEACTIVATED = "plugin.deactivated"


@dataclass(frozen=True)
class Event:
    """A published event. ``slug`` is set for every plugin lifecycle event."""

    name: str
    slug: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))


EventHandler = Callable[[Event], Awaitable[None] | None]


def _event_name(name: str | PluginEvent) -> str:
    return name.value if isinstance(name, PluginEvent) else str(name)


class EventBus:
    """Named-topic publish/subscribe with sync or async handlers."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, name: str | PluginEvent, handler: EventHandler) -> None:
        handlers = self._subscribers[_event_name(name)]
        if handler not in handlers:
            handlers.append(handler)

    def unsubscribe(self, name: str | PluginEvent, handler: EventHandler) -> None:
        try:
            self._subscribers[_event_name(name)].remove(handler)
        except ValueError:
            pass

    def subscribers(self, name: str | PluginEvent) -> list[EventHandler]:
        return list(self._subscribers.get(_event_name(name), []))

    async def publish(
        self,
        name: str | PluginEvent,
        slug: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> Event:
        """Deliver an event to every subscriber, returning the event that was sent."""
        event = Event(name=_event_name(name), slug=slug, payload=dict(payload or {}))
        # Snapshot: handlers may (un)subscribe while we iterate
        for handler in self.subscribers(event.name):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.error(
                    "Event subscriber failed",
                    extra={
                        "event": event.name,
                        "slug": slug,
                        "handler": getattr(handler, "__qualname__", repr(handler)),
                    },
                    exc_info=True,
                )
        logger.debug("Event published", extra={"event": event.name, "slug": slug})
        return event
