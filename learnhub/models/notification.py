# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Response models for the notification inbox."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class NotificationResponse(BaseModel):
    """One inbox entry."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    body: str
    read: bool
    meta: dict[str, Any] | None = None
    created_at: datetime


class NotificationListResponse(BaseModel):
    """Inbox page plus unread counter."""

    items: list[NotificationResponse]
    unread: int = Field(..., description="Unread notifications for the user")


class NotificationActionResponse(BaseModel):
    """Outcome of a read-state change or delete."""

    success: bool = True
    unread: int = Field(..., description="Unread notifications after the change")
    updated: int | None = Field(None, description="Rows changed by mark-all-read")
