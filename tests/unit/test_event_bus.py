# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the in-memory event bus."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from learnhub.infrastructure.events import (
    EventBus,
    EventData,
    EventPatterns,
    EventTypes,
    get_event_bus,
    reset_event_bus,
)


class TestSubscribeAndPublish:
    """Tests for exact and pattern subscriptions."""

    @pytest.mark.asyncio
    async def test_exact_subscriber_receives_event(self, event_bus: EventBus) -> None:
        """Test an exact subscriber gets the payload and metadata."""
        handler = AsyncMock()
        event_bus.subscribe(EventTypes.Enrollment.ADDED, handler)

        event = await event_bus.publish(
            EventTypes.Enrollment.ADDED,
            {"course_id": "c1"},
            actor_id="u1",
        )
        await event_bus.drain()

        handler.assert_awaited_once_with(event)
        assert event.payload == {"course_id": "c1"}
        assert event.actor_id == "u1"

    @pytest.mark.asyncio
    async def test_pattern_subscriber_matches_group(self, event_bus: EventBus) -> None:
        """Test wildcard subscriptions receive every event of a group."""
        handler = AsyncMock()
        event_bus.subscribe(EventPatterns.INVITATION, handler)

        await event_bus.publish(EventTypes.Invitation.CREATED, {})
        await event_bus.publish(EventTypes.Invitation.DECLINED, {})
        await event_bus.publish(EventTypes.Enrollment.ADDED, {})
        await event_bus.drain()

        assert handler.await_count == 2

    @pytest.mark.asyncio
    async def test_unsubscribe(self, event_bus: EventBus) -> None:
        """Test unsubscribed handlers are no longer called."""
        handler = AsyncMock()
        event_bus.subscribe(EventTypes.Enrollment.REMOVED, handler)

        assert event_bus.unsubscribe(EventTypes.Enrollment.REMOVED, handler) is True
        assert event_bus.unsubscribe(EventTypes.Enrollment.REMOVED, handler) is False

        await event_bus.publish(EventTypes.Enrollment.REMOVED, {})
        await event_bus.drain()
        handler.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_publish_without_handlers(self, event_bus: EventBus) -> None:
        """Test publishing with no subscribers still counts the event."""
        event = await event_bus.publish(EventTypes.Invitation.EXPIRED, {"expired": 0})

        assert isinstance(event, EventData)
        assert event_bus.get_stats()["events_published"] == 1


class TestFailureIsolation:
    """Tests for the best-effort delivery contract."""

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_propagate(self, event_bus: EventBus) -> None:
        """Test a raising handler is logged and other handlers still run."""
        failing = AsyncMock(side_effect=RuntimeError("boom"))
        healthy = AsyncMock()
        event_bus.subscribe(EventTypes.Enrollment.ADDED, failing)
        event_bus.subscribe(EventTypes.Enrollment.ADDED, healthy)

        await event_bus.publish(EventTypes.Enrollment.ADDED, {})
        await event_bus.drain()

        healthy.assert_awaited_once()
        assert event_bus.get_stats()["handler_failures"] == 1

    @pytest.mark.asyncio
    async def test_slow_handler_times_out(self) -> None:
        """Test a handler exceeding the timeout is cancelled."""
        bus = EventBus(handler_timeout=0.05)

        async def slow(event: EventData) -> None:
            await asyncio.sleep(5)

        bus.subscribe(EventTypes.Enrollment.RATED, slow)

        await bus.publish(EventTypes.Enrollment.RATED, {})
        await bus.drain()

        assert bus.get_stats()["handler_failures"] == 1


class TestBackgroundDelivery:
    """Tests for handlers running outside the publisher's await."""

    @pytest.mark.asyncio
    async def test_publish_returns_before_slow_handler(self, event_bus: EventBus) -> None:
        """Test publish does not wait for a handler that is still running."""
        release = asyncio.Event()
        finished: list[str] = []

        async def slow(event: EventData) -> None:
            await release.wait()
            finished.append(event.event_id)

        event_bus.subscribe(EventTypes.Enrollment.ADDED, slow)

        event = await asyncio.wait_for(
            event_bus.publish(EventTypes.Enrollment.ADDED, {}),
            timeout=0.5,
        )

        assert finished == []
        assert event_bus.get_stats()["pending_handlers"] == 1

        release.set()
        await event_bus.drain()

        assert finished == [event.event_id]
        assert event_bus.get_stats()["pending_handlers"] == 0

    @pytest.mark.asyncio
    async def test_drain_waits_for_chained_events(self, event_bus: EventBus) -> None:
        """Test drain covers events published from inside a handler."""
        received: list[str] = []

        async def relay(event: EventData) -> None:
            await event_bus.publish(EventTypes.Enrollment.REMOVED, {})

        async def record(event: EventData) -> None:
            await asyncio.sleep(0.01)
            received.append(event.event_type)

        event_bus.subscribe(EventTypes.Enrollment.ADDED, relay)
        event_bus.subscribe(EventTypes.Enrollment.REMOVED, record)

        await event_bus.publish(EventTypes.Enrollment.ADDED, {})
        await event_bus.drain()

        assert received == [EventTypes.Enrollment.REMOVED]

    @pytest.mark.asyncio
    async def test_reset_cancels_pending_handlers(self) -> None:
        """Test reset_event_bus cancels handlers still in flight."""
        reset_event_bus()
        bus = get_event_bus()

        async def forever(event: EventData) -> None:
            await asyncio.sleep(60)

        bus.subscribe(EventTypes.Invitation.CREATED, forever)
        await bus.publish(EventTypes.Invitation.CREATED, {})
        assert bus.get_stats()["pending_handlers"] == 1

        reset_event_bus()
        await bus.drain()

        assert bus.get_stats()["pending_handlers"] == 0
        assert bus.get_stats()["handler_failures"] == 0


class TestEventBusStats:
    """Tests for statistics and lifecycle helpers."""

    def test_stats_and_clear(self, event_bus: EventBus) -> None:
        """Test subscription counters and clear()."""
        event_bus.subscribe(EventTypes.Enrollment.ADDED, AsyncMock())
        event_bus.subscribe(EventPatterns.ALL, AsyncMock())

        stats = event_bus.get_stats()
        assert stats["exact_subscriptions"] == 1
        assert stats["pattern_subscriptions"] == 1
        assert stats["total_handlers"] == 2
        assert stats["event_types"] == [EventTypes.Enrollment.ADDED]

        event_bus.clear()
        assert event_bus.get_stats()["total_handlers"] == 0

    def test_singleton_reset(self) -> None:
        """Test reset_event_bus drops the singleton."""
        reset_event_bus()
        first = get_event_bus()
        assert get_event_bus() is first

        reset_event_bus()
        assert get_event_bus() is not first
        reset_event_bus()

    def test_event_data_to_dict(self) -> None:
        """Test EventData serialization."""
        event = EventData(event_type="enrollment.added", payload={"a": 1}, actor_id="u")

        data = event.to_dict()

        assert data["event_type"] == "enrollment.added"
        assert data["payload"] == {"a": 1}
        assert data["actor_id"] == "u"
        assert "T" in data["timestamp"]
