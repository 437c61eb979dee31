# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Durable per-user notification inbox.

Domain services stage notifications inside their own transaction so the
inbox entry commits together with the state change it describes. The REST
surface uses the committing methods directly.

Every mutation is scoped to (user_id, notification_id): a notification that
belongs to someone else behaves exactly like one that does not exist.
"""

import logging
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.core.errors import NotFoundError
from learnhub.infrastructure.database.models import Notification
from learnhub.utils.identifiers import parse_id

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 20
MAX_LIST_LIMIT = 100


class NotificationServiceError(Exception):
    """Base exception for notification service errors."""

    pass


class NotificationNotFoundError(NotificationServiceError, NotFoundError):
    """Raised when a notification is missing or owned by another user."""

    pass


class NotificationService:
    """Per-user inbox operations.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize notification service.

        Args:
            db: Async database session.
        """
        self.db = db

    def stage(
        self,
        user_id: str,
        title: str,
        body: str,
        meta: dict[str, Any] | None = None,
    ) -> Notification:
        """Add a notification to the current transaction without committing.

        Args:
            user_id: Recipient.
            title: Short headline.
            body: Message text.
            meta: Optional structured data such as a deep link.

        Returns:
            The pending Notification object.
        """
        notification = Notification(
            user_id=parse_id(user_id, "user id"),
            title=title,
            body=body,
            meta=meta,
        )
        self.db.add(notification)
        return notification

    async def create(
        self,
        user_id: str,
        title: str,
        body: str,
        meta: dict[str, Any] | None = None,
    ) -> Notification:
        """Create and commit a notification."""
        notification = self.stage(user_id, title, body, meta)
        await self.db.commit()
        await self.db.refresh(notification)

        logger.debug("Notification created: id=%s, user=%s", notification.id, user_id)
        return notification

    async def list_for_user(
        self,
        user_id: str,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> list[Notification]:
        """List a user's notifications, newest first.

        Args:
            user_id: Owner.
            limit: Maximum number of rows, clamped to 1..100.
        """
        user_id = parse_id(user_id, "user id")
        limit = max(1, min(limit, MAX_LIST_LIMIT))

        result = await self.db.execute(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_unread(self, user_id: str) -> int:
        """Count a user's unread notifications."""
        user_id = parse_id(user_id, "user id")

        result = await self.db.execute(
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
        )
        return result.scalar_one()

    async def mark_read(self, user_id: str, notification_id: str) -> None:
        """Mark one notification as read.

        Raises:
            InvalidIdentifierError: If either id is malformed.
            NotificationNotFoundError: If the user has no such notification.
        """
        user_id = parse_id(user_id, "user id")
        notification_id = parse_id(notification_id, "notification id")

        result = await self.db.execute(
            update(Notification)
            .where(Notification.id == notification_id, Notification.user_id == user_id)
            .values(read=True)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            raise NotificationNotFoundError("Notification not found")

        await self.db.commit()

    async def mark_all_read(self, user_id: str) -> int:
        """Mark all of a user's notifications as read.

        Returns:
            Number of notifications that were unread.
        """
        user_id = parse_id(user_id, "user id")

        result = await self.db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
            .values(read=True)
        )
        await self.db.commit()

        logger.debug("Marked %d notifications read for user %s", result.rowcount, user_id)
        return result.rowcount

    async def remove(self, user_id: str, notification_id: str) -> None:
        """Delete one notification.

        Raises:
            InvalidIdentifierError: If either id is malformed.
            NotificationNotFoundError: If the user has no such notification.
        """
        user_id = parse_id(user_id, "user id")
        notification_id = parse_id(notification_id, "notification id")

        result = await self.db.execute(
            delete(Notification)
            .where(Notification.id == notification_id, Notification.user_id == user_id)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            raise NotificationNotFoundError("Notification not found")

        await self.db.commit()
