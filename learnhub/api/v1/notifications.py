# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification inbox API endpoints.

- GET / - Recent notifications plus the unread count
- POST /mark-read/{notification_id} - Mark one as read
- POST /mark-all-read - Mark all as read
- DELETE /{notification_id} - Delete one
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from learnhub.api.dependencies import get_notification_service, require_auth
from learnhub.api.middleware.auth import CurrentUser
from learnhub.core.errors import DomainError
from learnhub.infrastructure.notifications import NotificationService
from learnhub.models.notification import (
    NotificationActionResponse,
    NotificationListResponse,
    NotificationResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "",
    response_model=NotificationListResponse,
    summary="List notifications",
)
async def list_notifications(
    limit: int = Query(default=20, ge=1, le=100),
    current_user: CurrentUser = Depends(require_auth),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationListResponse:
    """List the caller's notifications, newest first.

    Args:
        limit: Maximum number of items to return.
        current_user: Authenticated user.
        service: Notification service.

    Returns:
        The page of notifications and the total unread count.
    """
    items = await service.list_for_user(current_user.id, limit=limit)
    unread = await service.count_unread(current_user.id)

    return NotificationListResponse(
        items=[NotificationResponse.model_validate(n) for n in items],
        unread=unread,
    )


@router.post(
    "/mark-read/{notification_id}",
    response_model=NotificationActionResponse,
    summary="Mark notification read",
)
async def mark_read(
    notification_id: str,
    current_user: CurrentUser = Depends(require_auth),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationActionResponse:
    """Mark one of the caller's notifications as read."""
    try:
        await service.mark_read(current_user.id, notification_id)
    except DomainError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    return NotificationActionResponse(unread=await service.count_unread(current_user.id))


@router.post(
    "/mark-all-read",
    response_model=NotificationActionResponse,
    summary="Mark all notifications read",
)
async def mark_all_read(
    current_user: CurrentUser = Depends(require_auth),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationActionResponse:
    """Mark every notification of the caller as read."""
    updated = await service.mark_all_read(current_user.id)
    return NotificationActionResponse(unread=0, updated=updated)


@router.delete(
    "/{notification_id}",
    response_model=NotificationActionResponse,
    summary="Delete notification",
)
async def delete_notification(
    notification_id: str,
    current_user: CurrentUser = Depends(require_auth),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationActionResponse:
    """Delete one of the caller's notifications."""
    try:
        await service.remove(current_user.id, notification_id)
    except DomainError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    return NotificationActionResponse(unread=await service.count_unread(current_user.id))
