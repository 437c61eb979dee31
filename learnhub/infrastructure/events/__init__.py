# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Event infrastructure module for LearnHub.

Components:
- EventBus: In-memory pub/sub with pattern matching and a best-effort
  delivery contract
- EventTypes: Centralized event type constants

Architecture:
    Service (commit) → EventBus.publish() → RealtimeBridge → BroadcastHub
                                          → email triggers → EmailDispatcher

Quick Start:
    from learnhub.infrastructure.events import get_event_bus, EventTypes

    event_bus = get_event_bus()
    event_bus.subscribe(EventTypes.Enrollment.ADDED, my_handler)

    await event_bus.publish(
        EventTypes.Enrollment.ADDED,
        {"course_id": "123", "student_id": "456"},
    )
"""

from learnhub.infrastructure.events.bus import (
    EventBus,
    EventData,
    EventHandler,
    get_event_bus,
    reset_event_bus,
)
from learnhub.infrastructure.events.types import EventPatterns, EventTypes

__all__ = [
    # Event Bus
    "EventBus",
    "EventData",
    "EventHandler",
    "get_event_bus",
    "reset_event_bus",
    # Event Types
    "EventTypes",
    "EventPatterns",
]
