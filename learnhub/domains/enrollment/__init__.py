# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment domain: course memberships and their aggregates."""

from learnhub.domains.enrollment.reconciler import (
    EnrollmentReconciler,
    ReconcileCourseNotFoundError,
    ReconcilerError,
)
from learnhub.domains.enrollment.service import (
    CourseNotFoundError,
    EnrollmentRequiredError,
    EnrollmentService,
    EnrollmentServiceError,
    InvalidProgressError,
    InvalidRatingError,
    LearnerNotFoundError,
    MembershipActivation,
    NotCourseOwnerError,
    NotEnrolledError,
)

__all__ = [
    "EnrollmentService",
    "EnrollmentReconciler",
    "MembershipActivation",
    # Errors
    "EnrollmentServiceError",
    "CourseNotFoundError",
    "LearnerNotFoundError",
    "NotEnrolledError",
    "NotCourseOwnerError",
    "EnrollmentRequiredError",
    "InvalidRatingError",
    "InvalidProgressError",
    "ReconcilerError",
    "ReconcileCourseNotFoundError",
]
