"""
Unit tests for the in-process event bus.

Covers:
- delivery in subscription order to sync and async handlers
- a raising subscriber is logged and does not stop later subscribers
- subscribe is idempotent; unsubscribe removes the handler
"""

import logging

import pytest

from raidledger.core.events import Event, EventBus, PluginEvent


class TestEventBus:
    @pytest.mark.asyncio
    async def test_delivers_in_subscription_order(self):
        bus = EventBus()
        calls = []

        def first(event):
            calls.append(("first", event.slug))

        async def second(event):
            calls.append(("second", event.slug))

        bus.subscribe(PluginEvent.ACTIVATED, first)
        bus.subscribe(PluginEvent.ACTIVATED, second)

        event = await bus.publish(PluginEvent.ACTIVATED, "blizzard", {"extra": 1})

        assert calls == [("first", "blizzard"), ("second", "blizzard")]
        assert isinstance(event, Event)
        assert event.name == "plugin.activated"
        assert event.payload == {"extra": 1}

    @pytest.mark.asyncio
    async def test_enum_and_string_names_are_the_same_topic(self):
        bus = EventBus()
        seen = []
        bus.subscribe("plugin.installed", seen.append)

        await bus.publish(PluginEvent.INSTALLED, "blizzard")

        assert [e.slug for e in seen] == ["blizzard"]

    @pytest.mark.asyncio
    async def test_failing_subscriber_is_isolated(self, caplog):
        bus = EventBus()
        seen = []

        def broken(event):
            raise RuntimeError("boom")

        bus.subscribe(PluginEvent.DEACTIVATED, broken)
        bus.subscribe(PluginEvent.DEACTIVATED, seen.append)

        with caplog.at_level(logging.ERROR):
            await bus.publish(PluginEvent.DEACTIVATED, "blizzard")

        assert len(seen) == 1
        assert "Event subscriber failed" in caplog.text

    @pytest.mark.asyncio
    async def test_subscribe_is_idempotent_and_unsubscribe_removes(self):
        bus = EventBus()
        seen = []
        bus.subscribe(PluginEvent.UNINSTALLED, seen.append)
        bus.subscribe(PluginEvent.UNINSTALLED, seen.append)
        assert len(bus.subscribers(PluginEvent.UNINSTALLED)) == 1

        await bus.publish(PluginEvent.UNINSTALLED, "blizzard")
        bus.unsubscribe(PluginEvent.UNINSTALLED, seen.append)
        await bus.publish(PluginEvent.UNINSTALLED, "blizzard")

        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_publish_without_subscribers(self):
        event = await EventBus().publish("integration.changed")
        assert event.slug is None
        assert event.payload == {}
