# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Centralized domain event type definitions for LearnHub.

These are in-process bus topics published after a commit. They are distinct
from the live event tags pushed to browser sessions, which live in
learnhub.infrastructure.realtime.payloads.

Adding a new event:
1. Add constant to appropriate class here
2. Map it in the realtime bridge and/or the email triggers if it has
   side effects
"""


class EventTypes:
    """All domain event types organized by domain."""

    class Enrollment:
        """Membership lifecycle events."""

        ADDED = "enrollment.added"
        REMOVED = "enrollment.removed"
        RATED = "enrollment.rated"

    class Invitation:
        """Invitation state machine events."""

        CREATED = "invitation.created"
        ACCEPTED = "invitation.accepted"
        DECLINED = "invitation.declined"
        CANCELLED = "invitation.cancelled"
        EXPIRED = "invitation.expired"

    class Maintenance:
        """Reconciliation and housekeeping events."""

        COUNTS_RECONCILED = "maintenance.counts.reconciled"


class EventPatterns:
    """Wildcard patterns for subscribing to event groups."""

    ALL = "*"
    ENROLLMENT = "enrollment.*"
    INVITATION = "invitation.*"
    MAINTENANCE = "maintenance.*"
