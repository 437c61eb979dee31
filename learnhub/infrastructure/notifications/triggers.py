# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Email triggers for committed domain events.

Trigger Conditions:
    - invitation.created: invitation email to the learner
    - enrollment.added: confirmation to the learner
    - enrollment.removed: removal notice to the learner

Handlers run inside the EventBus contract (timeout-bounded, errors logged
and swallowed), and the dispatcher itself never raises.
"""

from typing import Any

from learnhub.infrastructure.events import EventBus, EventData, EventTypes
from learnhub.infrastructure.notifications.email import DeliveryResult, EmailDispatcher
from learnhub.utils.logging import get_logger

logger = get_logger(__name__)


class EmailTriggers:
    """Subscribes the email dispatcher to domain events.

    Attributes:
        _event_bus: Source of domain events.
        _dispatcher: Outbound email.
        _frontend_url: Base URL for links in emails.
    """

    def __init__(
        self,
        event_bus: EventBus,
        dispatcher: EmailDispatcher,
        frontend_url: str,
    ) -> None:
        self._event_bus = event_bus
        self._dispatcher = dispatcher
        self._frontend_url = frontend_url.rstrip("/")
        self._subscriptions: list[tuple[str, Any]] = []

    def start(self) -> None:
        """Subscribe to the events that send email."""
        if self._subscriptions:
            return

        for event_type, handler in (
            (EventTypes.Invitation.CREATED, self.on_invitation_created),
            (EventTypes.Enrollment.ADDED, self.on_enrollment_added),
            (EventTypes.Enrollment.REMOVED, self.on_enrollment_removed),
        ):
            self._event_bus.subscribe(event_type, handler)
            self._subscriptions.append((event_type, handler))

        logger.info("Email triggers registered", events=len(self._subscriptions))

    def stop(self) -> None:
        """Remove all subscriptions made by start()."""
        for event_type, handler in self._subscriptions:
            self._event_bus.unsubscribe(event_type, handler)
        self._subscriptions.clear()

    async def on_invitation_created(self, event: EventData) -> DeliveryResult:
        payload = event.payload
        lines = [
            f"{payload['teacher_name']} invited you to join \"{payload['course_title']}\".",
        ]
        if payload.get("message"):
            lines.extend(["", payload["message"]])
        lines.extend(["", f"The invitation expires on {payload['expires_at'][:10]}."])

        return await self._dispatcher.send(
            to=payload.get("student_email"),
            subject=f"Invitation to {payload['course_title']}",
            text="\n".join(lines),
            action_url=f"{self._frontend_url}/invitations/{payload['invitation_id']}",
            action_label="View invitation",
        )

    async def on_enrollment_added(self, event: EventData) -> DeliveryResult:
        payload = event.payload
        return await self._dispatcher.send(
            to=payload.get("student_email"),
            subject=f"You are enrolled in {payload['course_title']}",
            text=f"Your enrollment in \"{payload['course_title']}\" is active.",
            action_url=f"{self._frontend_url}/courses/{payload['course_id']}",
            action_label="Open course",
        )

    async def on_enrollment_removed(self, event: EventData) -> DeliveryResult:
        payload = event.payload
        return await self._dispatcher.send(
            to=payload.get("student_email"),
            subject=f"Enrollment ended: {payload['course_title']}",
            text=f"You have been removed from \"{payload['course_title']}\" by the course owner.",
        )
