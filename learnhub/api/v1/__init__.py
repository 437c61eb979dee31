# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes.

This module aggregates all v1 API routers.
"""

from fastapi import APIRouter

from learnhub.api.v1 import admin, courses, invitations, notifications, realtime

router = APIRouter(prefix="/api/v1")

router.include_router(courses.router, prefix="/courses", tags=["Courses"])
router.include_router(invitations.router, prefix="/invitations", tags=["Invitations"])
router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
router.include_router(admin.router, prefix="/admin", tags=["Admin"])
router.include_router(realtime.router, prefix="/realtime", tags=["Realtime"])

__all__ = ["router"]
