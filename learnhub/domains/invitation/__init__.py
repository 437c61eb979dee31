# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Invitation domain: the owner-to-learner invitation workflow."""

from learnhub.domains.invitation.service import (
    AlreadyEnrolledError,
    CourseNotFoundError,
    DuplicateInvitationError,
    InvitationExpiredError,
    InvitationNotFoundError,
    InvitationNotPendingError,
    InvitationService,
    InvitationServiceError,
    NotCourseOwnerError,
    NotInvitationParticipantError,
    StudentNotFoundError,
)

__all__ = [
    "InvitationService",
    "InvitationServiceError",
    "InvitationNotFoundError",
    "CourseNotFoundError",
    "StudentNotFoundError",
    "NotCourseOwnerError",
    "NotInvitationParticipantError",
    "AlreadyEnrolledError",
    "DuplicateInvitationError",
    "InvitationNotPendingError",
    "InvitationExpiredError",
]
