# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""In-memory event bus for side effects of committed state changes.

Services publish after their transaction commits. Subscribers forward the
event to live sessions and to email. Delivery contract:

- at-most-once: no retry, no persistence, no replay
- non-blocking: each handler runs as a background task bounded by a
  timeout, so publish returns before any handler finishes
- failure-silent: handler errors and timeouts are logged and swallowed,
  so a side channel can never turn a committed transition into a failure

Example:
    from learnhub.infrastructure.events import get_event_bus, EventTypes

    event_bus = get_event_bus()

    async def on_enrollment_added(event):
        print(f"Enrolled: {event.payload}")

    event_bus.subscribe(EventTypes.Enrollment.ADDED, on_enrollment_added)

    # Pattern match (any invitation event)
    event_bus.subscribe("invitation.*", on_any_invitation_event)

    await event_bus.publish(
        EventTypes.Enrollment.ADDED,
        {"course_id": "123", "student_id": "456"},
    )
"""

import asyncio
import fnmatch
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable
from uuid import uuid4

from learnhub.utils.datetime import utc_now

logger = logging.getLogger(__name__)

# Type alias for event handlers
EventHandler = Callable[[Any], Awaitable[None]]

DEFAULT_HANDLER_TIMEOUT = 15.0


@dataclass
class EventData:
    """Container for event data with metadata.

    Attributes:
        event_type: The event type string.
        payload: The event payload data.
        event_id: Unique event identifier.
        timestamp: When the event was published.
        actor_id: User whose request caused the event, if any.
    """

    event_type: str
    payload: dict[str, Any]
    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=utc_now)
    actor_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "payload": self.payload,
            "timestamp": self.timestamp.isoformat(),
            "actor_id": self.actor_id,
        }


class EventBus:
    """In-memory async event bus with pattern matching support.

    Designed for single-process async use. Multi-process deployments see
    only their own subscribers, which is acceptable for best-effort side
    effects.

    Attributes:
        _handlers: Dictionary mapping event types to handler lists.
        _pattern_handlers: Dictionary mapping patterns to handler lists.
        _handler_timeout: Seconds a single handler may run.
    """

    def __init__(self, handler_timeout: float = DEFAULT_HANDLER_TIMEOUT) -> None:
        """Initialize the event bus.

        Args:
            handler_timeout: Seconds a single handler may run before it is
                cancelled and logged.
        """
        self._handlers: dict[str, list[EventHandler]] = {}
        self._pattern_handlers: dict[str, list[EventHandler]] = {}
        self._handler_timeout = handler_timeout
        self._event_count = 0
        self._failure_count = 0
        self._tasks: set[asyncio.Task[None]] = set()
        logger.debug("EventBus initialized")

    def subscribe(
        self,
        event_type: str,
        handler: EventHandler,
    ) -> None:
        """Subscribe a handler to an event type or pattern.

        Args:
            event_type: Event type string or pattern with wildcards.
            handler: Async function to call when event is published.
        """
        if "*" in event_type or "?" in event_type:
            self._pattern_handlers.setdefault(event_type, []).append(handler)
            logger.debug("Subscribed pattern handler to: %s", event_type)
        else:
            self._handlers.setdefault(event_type, []).append(handler)
            logger.debug("Subscribed handler to: %s", event_type)

    def unsubscribe(
        self,
        event_type: str,
        handler: EventHandler,
    ) -> bool:
        """Unsubscribe a handler from an event type or pattern.

        Returns:
            True if handler was found and removed, False otherwise.
        """
        registry = (
            self._pattern_handlers
            if "*" in event_type or "?" in event_type
            else self._handlers
        )
        handlers = registry.get(event_type)
        if not handlers or handler not in handlers:
            return False

        handlers.remove(handler)
        if not handlers:
            del registry[event_type]
        return True

    async def publish(
        self,
        event_type: str,
        payload: dict[str, Any],
        actor_id: str | None = None,
    ) -> EventData:
        """Publish an event to all matching subscribers.

        Each handler is scheduled as a tracked background task and this
        method returns without waiting for it. Errors and timeouts in
        individual handlers are logged and never reach the publisher.

        Args:
            event_type: The event type string.
            payload: Event data dictionary.
            actor_id: User whose request caused the event.

        Returns:
            EventData object with event metadata.
        """
        event = EventData(
            event_type=event_type,
            payload=payload,
            actor_id=actor_id,
        )

        self._event_count += 1

        handlers_to_call: list[EventHandler] = list(self._handlers.get(event_type, []))
        for pattern, pattern_handlers in self._pattern_handlers.items():
            if fnmatch.fnmatch(event_type, pattern):
                handlers_to_call.extend(pattern_handlers)

        if not handlers_to_call:
            logger.debug("No handlers for event: %s", event_type)
            return event

        logger.debug(
            "Publishing event %s to %d handlers",
            event_type,
            len(handlers_to_call),
        )

        async def safe_call(handler: EventHandler) -> None:
            """Call handler with timeout and error handling."""
            try:
                await asyncio.wait_for(handler(event), timeout=self._handler_timeout)
            except asyncio.TimeoutError:
                self._failure_count += 1
                logger.warning(
                    "Handler timed out after %.1fs for event %s",
                    self._handler_timeout,
                    event_type,
                )
            except Exception as e:
                self._failure_count += 1
                logger.error(
                    "Handler error for event %s: %s",
                    event_type,
                    str(e),
                    exc_info=True,
                )

        for handler in handlers_to_call:
            task = asyncio.create_task(safe_call(handler))
            self._tasks.add(task)
            task.add_done_callback(self._on_task_done)

        return event

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        """Forget a finished handler task."""
        self._tasks.discard(task)
        if task.cancelled():
            logger.debug("Event handler task cancelled")

    async def drain(self) -> None:
        """Wait until every scheduled handler task has finished.

        Handlers may publish further events, so this loops until no task
        is left.
        """
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def cancel_pending(self) -> None:
        """Cancel handler tasks that have not finished."""
        for task in list(self._tasks):
            task.cancel()

    def clear(self) -> None:
        """Remove all subscriptions."""
        self._handlers.clear()
        self._pattern_handlers.clear()
        logger.debug("EventBus cleared all subscriptions")

    def get_stats(self) -> dict[str, Any]:
        """Get event bus statistics.

        Returns:
            Dictionary with subscription and event counts.
        """
        exact_count = sum(len(h) for h in self._handlers.values())
        pattern_count = sum(len(h) for h in self._pattern_handlers.values())

        return {
            "exact_subscriptions": len(self._handlers),
            "pattern_subscriptions": len(self._pattern_handlers),
            "total_handlers": exact_count + pattern_count,
            "events_published": self._event_count,
            "handler_failures": self._failure_count,
            "pending_handlers": len(self._tasks),
            "event_types": list(self._handlers.keys()),
            "patterns": list(self._pattern_handlers.keys()),
        }


# Singleton instance
_event_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Get the singleton event bus instance.

    The handler timeout is read from settings on first use.
    """
    global _event_bus
    if _event_bus is None:
        from learnhub.core.config import get_settings

        _event_bus = EventBus(
            handler_timeout=get_settings().events.handler_timeout_seconds,
        )
    return _event_bus


def reset_event_bus() -> None:
    """Reset the event bus singleton.

    Pending handler tasks are cancelled. Useful for testing to ensure
    clean state between tests.
    """
    global _event_bus
    if _event_bus is not None:
        _event_bus.cancel_pending()
        _event_bus.clear()
    _event_bus = None
