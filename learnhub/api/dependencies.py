# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

This module provides dependency functions for FastAPI endpoints.
Dependencies are used to:
- Get database sessions
- Get authenticated users
- Get the event bus and broadcast hub
- Get service instances

Example:
    @router.post("/courses/{course_id}/enroll")
    async def enroll(
        course_id: str,
        service: EnrollmentService = Depends(get_enrollment_service),
        current_user: CurrentUser = Depends(require_auth),
    ):
        ...
"""

import logging
from typing import AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.api.middleware.auth import CurrentUser, get_current_user
from learnhub.core.config import Settings, get_settings
from learnhub.domains.enrollment import EnrollmentReconciler, EnrollmentService
from learnhub.domains.invitation import InvitationService
from learnhub.infrastructure.database.connection import get_session
from learnhub.infrastructure.events import EventBus, get_event_bus
from learnhub.infrastructure.notifications import NotificationService
from learnhub.infrastructure.realtime import BroadcastHub, get_broadcast_hub

logger = logging.getLogger(__name__)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get a database session for one request.

    Yields:
        AsyncSession committed on success, rolled back on error.
    """
    async with get_session() as session:
        yield session


def get_app_settings() -> Settings:
    """Get application settings."""
    return get_settings()


def get_bus() -> EventBus:
    """Get the process event bus."""
    return get_event_bus()


def get_hub() -> BroadcastHub:
    """Get the process broadcast hub."""
    return get_broadcast_hub()


# =========================================================================
# Authentication Dependencies
# =========================================================================


def require_auth(request: Request) -> CurrentUser:
    """Require authenticated user.

    Raises:
        HTTPException: If not authenticated.
    """
    user = get_current_user(request)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_admin(request: Request) -> CurrentUser:
    """Require admin user.

    Raises:
        HTTPException: If not authenticated or not admin.
    """
    user = require_auth(request)
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user


def require_teacher(request: Request) -> CurrentUser:
    """Require teacher user.

    Raises:
        HTTPException: If not a teacher.
    """
    user = require_auth(request)
    if not user.is_teacher:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Teacher access required",
        )
    return user


def require_teacher_or_admin(request: Request) -> CurrentUser:
    """Require teacher or admin user.

    Raises:
        HTTPException: If not teacher or admin.
    """
    user = require_auth(request)
    if not (user.is_teacher or user.is_admin):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Teacher or admin access required",
        )
    return user


# =========================================================================
# Service Dependencies
# =========================================================================


def get_enrollment_service(
    db: AsyncSession = Depends(get_db),
    event_bus: EventBus = Depends(get_bus),
) -> EnrollmentService:
    """Get enrollment service bound to the request session."""
    return EnrollmentService(db, event_bus)


def get_invitation_service(
    db: AsyncSession = Depends(get_db),
    event_bus: EventBus = Depends(get_bus),
    settings: Settings = Depends(get_app_settings),
) -> InvitationService:
    """Get invitation service bound to the request session."""
    return InvitationService(db, event_bus, settings.invitation)


def get_notification_service(db: AsyncSession = Depends(get_db)) -> NotificationService:
    """Get notification service bound to the request session."""
    return NotificationService(db)


def get_reconciler(
    db: AsyncSession = Depends(get_db),
    event_bus: EventBus = Depends(get_bus),
) -> EnrollmentReconciler:
    """Get the aggregate reconciler bound to the request session."""
    return EnrollmentReconciler(db, event_bus)
