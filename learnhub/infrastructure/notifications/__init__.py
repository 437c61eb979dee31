# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification system for LearnHub.

Key Components:
- NotificationService: durable per-user inbox (the backstop for live events)
- EmailDispatcher: best-effort SMTP delivery
- EmailTriggers: EventBus subscribers that send email after commits

Usage:
    from learnhub.infrastructure.notifications import NotificationService

    service = NotificationService(db)
    items = await service.list_for_user(user_id, limit=20)
    unread = await service.count_unread(user_id)
"""

from learnhub.infrastructure.notifications.email import (
    DeliveryResult,
    DeliveryStatus,
    EmailDispatcher,
)
from learnhub.infrastructure.notifications.service import (
    NotificationNotFoundError,
    NotificationService,
    NotificationServiceError,
)
from learnhub.infrastructure.notifications.triggers import EmailTriggers

__all__ = [
    # Inbox
    "NotificationService",
    "NotificationServiceError",
    "NotificationNotFoundError",
    # Email
    "EmailDispatcher",
    "DeliveryResult",
    "DeliveryStatus",
    "EmailTriggers",
]
