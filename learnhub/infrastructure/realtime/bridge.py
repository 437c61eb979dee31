# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Bridge from domain events to live rooms.

Subscribes to the EventBus and turns committed domain events into typed
live events for the right rooms:

    enrollment.added     → enrollmentAdded        course, learner, owner
    enrollment.removed   → enrollmentRemoved      course, learner, owner
    invitation.created   → courseInvitationCreated learner
    invitation.accepted  → courseEnrollmentAdded  course
    maintenance.counts.reconciled → adminNotification admin (drift only)

Example:
    bridge = RealtimeBridge(event_bus, hub)
    bridge.start()
    ...
    bridge.stop()
"""

import logging
from typing import Any

from learnhub.infrastructure.events import EventBus, EventData, EventTypes
from learnhub.infrastructure.realtime.hub import (
    ADMIN_ROOM,
    Broadcaster,
    course_room,
    user_room,
)
from learnhub.infrastructure.realtime.payloads import (
    AdminNotification,
    CourseEnrollmentAdded,
    CourseInvitationCreated,
    EnrollmentAdded,
    EnrollmentRemoved,
    EnrollmentSummary,
)

logger = logging.getLogger(__name__)


class RealtimeBridge:
    """Forwards domain events from the EventBus to a Broadcaster.

    Attributes:
        _event_bus: Source of domain events.
        _broadcaster: Destination for live events.
        _subscriptions: Handlers registered by start(), for stop().
    """

    def __init__(self, event_bus: EventBus, broadcaster: Broadcaster) -> None:
        self._event_bus = event_bus
        self._broadcaster = broadcaster
        self._subscriptions: list[tuple[str, Any]] = []

    @property
    def is_running(self) -> bool:
        """Check if the bridge is subscribed."""
        return bool(self._subscriptions)

    def start(self) -> None:
        """Subscribe to the domain events this bridge forwards."""
        if self.is_running:
            return

        self._subscribe(EventTypes.Enrollment.ADDED, self._on_enrollment_added)
        self._subscribe(EventTypes.Enrollment.REMOVED, self._on_enrollment_removed)
        self._subscribe(EventTypes.Invitation.CREATED, self._on_invitation_created)
        self._subscribe(EventTypes.Invitation.ACCEPTED, self._on_invitation_accepted)
        self._subscribe(EventTypes.Maintenance.COUNTS_RECONCILED, self._on_counts_reconciled)

        logger.info("Realtime bridge started with %d subscriptions", len(self._subscriptions))

    def stop(self) -> None:
        """Remove all subscriptions made by start()."""
        for event_type, handler in self._subscriptions:
            self._event_bus.unsubscribe(event_type, handler)
        self._subscriptions.clear()
        logger.info("Realtime bridge stopped")

    def _subscribe(self, event_type: str, handler: Any) -> None:
        self._event_bus.subscribe(event_type, handler)
        self._subscriptions.append((event_type, handler))

    @staticmethod
    def _member_rooms(payload: dict[str, Any]) -> list[str]:
        return [
            course_room(payload["course_id"]),
            user_room(payload["student_id"]),
            user_room(payload["owner_id"]),
        ]

    async def _on_enrollment_added(self, event: EventData) -> None:
        payload = event.payload
        live = EnrollmentAdded(
            timestamp=event.timestamp,
            course_id=payload["course_id"],
            course_title=payload.get("course_title"),
            enrollment=EnrollmentSummary(
                id=payload["enrollment_id"],
                student_id=payload["student_id"],
                student_name=payload.get("student_name"),
                enrolled_at=payload["enrolled_at"],
                progress_percentage=payload.get("progress_percentage", 0.0),
            ),
            enrollment_count=payload["enrollment_count"],
        )
        await self._broadcaster.emit_to_rooms(self._member_rooms(payload), live)

    async def _on_enrollment_removed(self, event: EventData) -> None:
        payload = event.payload
        live = EnrollmentRemoved(
            timestamp=event.timestamp,
            course_id=payload["course_id"],
            student_id=payload["student_id"],
            enrollment_count=payload["enrollment_count"],
        )
        await self._broadcaster.emit_to_rooms(self._member_rooms(payload), live)

    async def _on_invitation_created(self, event: EventData) -> None:
        payload = event.payload
        live = CourseInvitationCreated(
            timestamp=event.timestamp,
            invitation_id=payload["invitation_id"],
            course_id=payload["course_id"],
            course_title=payload["course_title"],
            teacher_id=payload["teacher_id"],
            teacher_name=payload["teacher_name"],
            message=payload.get("message"),
            expires_at=payload["expires_at"],
        )
        await self._broadcaster.emit(user_room(payload["student_id"]), live)

    async def _on_invitation_accepted(self, event: EventData) -> None:
        payload = event.payload
        live = CourseEnrollmentAdded(
            timestamp=event.timestamp,
            invitation_id=payload["invitation_id"],
            course_id=payload["course_id"],
            student_id=payload["student_id"],
            student_name=payload.get("student_name"),
            enrollment_count=payload["enrollment_count"],
        )
        await self._broadcaster.emit(course_room(payload["course_id"]), live)

    async def _on_counts_reconciled(self, event: EventData) -> None:
        payload = event.payload
        if not payload.get("fixed"):
            return

        live = AdminNotification(
            timestamp=event.timestamp,
            level="warning",
            message=f"Enrollment aggregates corrected for {payload['fixed']} course(s)",
            details=payload,
        )
        await self._broadcaster.emit(ADMIN_ROOM, live)
