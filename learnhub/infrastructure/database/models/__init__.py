# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy models for LearnHub.

Importing this package registers every table on Base.metadata.
"""

from learnhub.infrastructure.database.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from learnhub.infrastructure.database.models.course import Course
from learnhub.infrastructure.database.models.enrollment import CourseEnrollment
from learnhub.infrastructure.database.models.invitation import CourseInvitation, InvitationStatus
from learnhub.infrastructure.database.models.notification import Notification
from learnhub.infrastructure.database.models.user import User, UserRole

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "Course",
    "CourseEnrollment",
    "CourseInvitation",
    "InvitationStatus",
    "Notification",
    "User",
    "UserRole",
]
