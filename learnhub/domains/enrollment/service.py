# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment service for course memberships.

This module provides the EnrollmentService class for:
- Self-enrollment and reactivation
- Removal of learners by the course owner
- Ratings, progress and membership queries

Every mutation runs guards first, then writes membership, aggregates and
inbox entries in one transaction. Domain events are published only after
the commit succeeds.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.core.errors import BadRequestError, ForbiddenError, NotFoundError
from learnhub.domains.enrollment.reconciler import EnrollmentReconciler
from learnhub.infrastructure.database.models import Course, CourseEnrollment, User
from learnhub.infrastructure.events import EventBus, EventTypes
from learnhub.infrastructure.notifications import NotificationService
from learnhub.models.enrollment import (
    CourseEnrollmentResponse,
    CourseRatingResponse,
    EnrollmentStatusResponse,
    EnrollResponse,
    LearnerSummary,
    MyEnrollmentResponse,
)
from learnhub.utils.datetime import utc_now
from learnhub.utils.identifiers import parse_id

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


class EnrollmentServiceError(Exception):
    """Base exception for enrollment service errors."""

    pass


class CourseNotFoundError(EnrollmentServiceError, NotFoundError):
    """Raised when course is not found."""

    pass


class LearnerNotFoundError(EnrollmentServiceError, NotFoundError):
    """Raised when the learner does not exist."""

    pass


class NotEnrolledError(EnrollmentServiceError, NotFoundError):
    """Raised when the learner has no active membership."""

    pass


class NotCourseOwnerError(EnrollmentServiceError, ForbiddenError):
    """Raised when the caller does not own the course."""

    pass


class EnrollmentRequiredError(EnrollmentServiceError, ForbiddenError):
    """Raised when rating a course without an active membership."""

    pass


class InvalidRatingError(EnrollmentServiceError, BadRequestError):
    """Raised when a rating is outside 1-5."""

    pass


class InvalidProgressError(EnrollmentServiceError, BadRequestError):
    """Raised when a progress percentage is outside 0-100."""

    pass


@dataclass
class MembershipActivation:
    """Outcome of activate_membership().

    Attributes:
        membership: The active membership row.
        changed: True if the row was created or reactivated.
        reactivated: True if an inactive row was switched back on.
        enrollment_count: Course counter after the change.
    """

    membership: CourseEnrollment
    changed: bool
    reactivated: bool
    enrollment_count: int


class EnrollmentService:
    """Service for course memberships and their aggregates.

    Attributes:
        db: Async database session.
    """

    def __init__(
        self,
        db: AsyncSession,
        event_bus: EventBus,
        reconciler: EnrollmentReconciler | None = None,
    ) -> None:
        """Initialize enrollment service.

        Args:
            db: Async database session.
            event_bus: Bus that receives events after commit.
            reconciler: Aggregate maintainer sharing the same session.
        """
        self.db = db
        self._event_bus = event_bus
        self._reconciler = reconciler or EnrollmentReconciler(db)
        self._notifications = NotificationService(db)

    async def enroll(self, learner_id: str, course_id: str) -> EnrollResponse:
        """Enroll a learner in a course.

        Idempotent: an already active membership is left untouched.

        Args:
            learner_id: Learner enrolling.
            course_id: Course identifier.

        Returns:
            Enrollment outcome.

        Raises:
            InvalidIdentifierError: If an id is malformed.
            CourseNotFoundError: If course not found.
            LearnerNotFoundError: If the learner does not exist.
        """
        learner_id = parse_id(learner_id, "learner id")
        course_id = parse_id(course_id, "course id")

        course = await self._get_course(course_id)
        learner = await self._get_user(learner_id)

        try:
            activation = await self.activate_membership(course, learner_id)
        except IntegrityError:
            # A concurrent request created the row first
            await self.db.rollback()
            logger.info(
                "Enrollment race resolved as already enrolled: learner=%s, course=%s",
                learner_id,
                course_id,
            )
            return EnrollResponse(message="Already enrolled", changed=False)

        if not activation.changed:
            return EnrollResponse(message="Already enrolled", changed=False)

        self._stage_enrollment_notifications(course, learner)
        await self.db.commit()

        logger.info(
            "Enrolled learner: learner=%s, course=%s, reactivated=%s, count=%d",
            learner_id,
            course_id,
            activation.reactivated,
            activation.enrollment_count,
        )

        await self._event_bus.publish(
            EventTypes.Enrollment.ADDED,
            self.enrollment_added_payload(course, learner, activation),
            actor_id=learner_id,
        )
        return EnrollResponse(message="Enrolled successfully", changed=True)

    async def activate_membership(
        self,
        course: Course,
        learner_id: str,
    ) -> MembershipActivation:
        """Make the learner's membership active without committing.

        Reactivates an inactive row or inserts a new one, and bumps the
        course counter by exactly one when anything changed.

        Raises:
            IntegrityError: If a concurrent insert won the unique constraint.
                The session must be rolled back by the caller.
        """
        membership = await self._get_membership(course.id, learner_id)

        if membership is not None and membership.is_active:
            return MembershipActivation(
                membership=membership,
                changed=False,
                reactivated=False,
                enrollment_count=course.enrollment_count,
            )

        reactivated = False
        if membership is not None:
            result = await self.db.execute(
                update(CourseEnrollment)
                .where(
                    CourseEnrollment.id == membership.id,
                    CourseEnrollment.is_active.is_(False),
                )
                .values(is_active=True, enrolled_at=utc_now())
            )
            if result.rowcount == 0:
                return MembershipActivation(
                    membership=membership,
                    changed=False,
                    reactivated=False,
                    enrollment_count=course.enrollment_count,
                )
            reactivated = True
        else:
            membership = CourseEnrollment(student_id=learner_id, course_id=course.id)
            self.db.add(membership)
            await self.db.flush()

        count = await self._reconciler.increment(course.id)
        if reactivated and membership.rating is not None:
            # The returning rating counts again
            await self._reconciler.refresh_rating(course.id)

        return MembershipActivation(
            membership=membership,
            changed=True,
            reactivated=reactivated,
            enrollment_count=count,
        )

    async def remove(
        self,
        learner_id: str,
        course_id: str,
        caller_id: str,
    ) -> None:
        """Remove a learner from a course.

        The membership is deactivated, not deleted.

        Args:
            learner_id: Learner to remove.
            course_id: Course identifier.
            caller_id: User performing the removal.

        Raises:
            InvalidIdentifierError: If an id is malformed.
            CourseNotFoundError: If course not found.
            NotCourseOwnerError: If the caller does not own the course.
            NotEnrolledError: If the learner has no active membership.
        """
        learner_id = parse_id(learner_id, "learner id")
        course_id = parse_id(course_id, "course id")
        caller_id = parse_id(caller_id, "caller id")

        course = await self._get_course(course_id)
        if not course.is_owned_by(caller_id):
            raise NotCourseOwnerError("Not course owner")

        result = await self.db.execute(
            update(CourseEnrollment)
            .where(
                CourseEnrollment.course_id == course_id,
                CourseEnrollment.student_id == learner_id,
                CourseEnrollment.is_active.is_(True),
            )
            .values(is_active=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            raise NotEnrolledError("Enrollment not found")

        count = await self._reconciler.decrement(course_id)
        await self._reconciler.refresh_rating(course_id)

        learner = await self.db.get(User, learner_id)
        learner_name = learner.name if learner else "A learner"
        self._notifications.stage(
            learner_id,
            "Removed from course",
            f"You have been removed from \"{course.title}\".",
            meta={"course_id": course_id},
        )
        self._notifications.stage(
            course.created_by,
            "Learner removed",
            f"{learner_name} was removed from \"{course.title}\".",
            meta={"course_id": course_id, "student_id": learner_id},
        )
        await self.db.commit()

        logger.info(
            "Removed learner: learner=%s, course=%s, by=%s, count=%d",
            learner_id,
            course_id,
            caller_id,
            count,
        )

        await self._event_bus.publish(
            EventTypes.Enrollment.REMOVED,
            {
                "course_id": course_id,
                "course_title": course.title,
                "owner_id": course.created_by,
                "student_id": learner_id,
                "student_name": learner.name if learner else None,
                "student_email": learner.email if learner else None,
                "enrollment_count": count,
            },
            actor_id=caller_id,
        )

    async def rate(
        self,
        learner_id: str,
        course_id: str,
        rating: int,
        review: str | None = None,
    ) -> CourseRatingResponse:
        """Store a learner's rating and recompute the course aggregate.

        Args:
            learner_id: Learner rating the course.
            course_id: Course identifier.
            rating: Rating from 1 to 5.
            review: Optional review text. None keeps the existing review.

        Returns:
            Updated aggregate.

        Raises:
            InvalidRatingError: If rating is outside 1-5.
            CourseNotFoundError: If course not found.
            EnrollmentRequiredError: If the learner has no active membership.
        """
        if rating < MIN_RATING or rating > MAX_RATING:
            raise InvalidRatingError("Rating must be between 1 and 5")

        learner_id = parse_id(learner_id, "learner id")
        course_id = parse_id(course_id, "course id")

        await self._get_course(course_id)
        membership = await self._get_membership(course_id, learner_id)
        if membership is None or not membership.is_active:
            raise EnrollmentRequiredError("Enroll before rating")

        membership.rating = rating
        if review is not None:
            membership.review = review
        await self.db.flush()

        average, total = await self._reconciler.refresh_rating(course_id)
        await self.db.commit()

        logger.info(
            "Course rated: learner=%s, course=%s, rating=%d, average=%.2f",
            learner_id,
            course_id,
            rating,
            average,
        )

        await self._event_bus.publish(
            EventTypes.Enrollment.RATED,
            {
                "course_id": course_id,
                "student_id": learner_id,
                "rating": rating,
                "average_rating": average,
                "total_ratings": total,
            },
            actor_id=learner_id,
        )

        return CourseRatingResponse(
            course_id=course_id,
            rating=rating,
            review=membership.review,
            average_rating=average,
            total_ratings=total,
        )

    async def update_progress(
        self,
        learner_id: str,
        course_id: str,
        percentage: float,
    ) -> EnrollmentStatusResponse:
        """Set a learner's progress percentage.

        Raises:
            InvalidProgressError: If percentage is outside 0-100.
            NotEnrolledError: If the learner has no active membership.
        """
        if not math.isfinite(percentage) or not 0 <= percentage <= 100:
            raise InvalidProgressError("Progress must be between 0 and 100")

        learner_id = parse_id(learner_id, "learner id")
        course_id = parse_id(course_id, "course id")

        membership = await self._get_membership(course_id, learner_id)
        if membership is None or not membership.is_active:
            raise NotEnrolledError("Enrollment not found")

        membership.progress_percentage = percentage
        await self.db.commit()

        return self._to_status(membership)

    async def get_status(self, course_id: str, learner_id: str) -> EnrollmentStatusResponse:
        """Get a learner's standing in one course."""
        course_id = parse_id(course_id, "course id")
        learner_id = parse_id(learner_id, "learner id")

        membership = await self._get_membership(course_id, learner_id)
        if membership is None or not membership.is_active:
            return EnrollmentStatusResponse(enrolled=False)
        return self._to_status(membership)

    async def list_course_enrollments(
        self,
        course_id: str,
        caller_id: str,
        caller_is_admin: bool = False,
    ) -> list[CourseEnrollmentResponse]:
        """List a course's active memberships, newest first.

        Raises:
            CourseNotFoundError: If course not found.
            NotCourseOwnerError: If the caller is neither owner nor admin.
        """
        course_id = parse_id(course_id, "course id")
        caller_id = parse_id(caller_id, "caller id")

        course = await self._get_course(course_id)
        if not caller_is_admin and not course.is_owned_by(caller_id):
            raise NotCourseOwnerError("Not course owner")

        result = await self.db.execute(
            select(CourseEnrollment, User)
            .join(User, User.id == CourseEnrollment.student_id)
            .where(
                CourseEnrollment.course_id == course_id,
                CourseEnrollment.is_active.is_(True),
            )
            .order_by(CourseEnrollment.enrolled_at.desc())
        )

        return [
            CourseEnrollmentResponse(
                id=membership.id,
                course_id=membership.course_id,
                student=LearnerSummary.model_validate(student),
                enrolled_at=membership.enrolled_at,
                progress_percentage=membership.progress_percentage,
                rating=membership.rating,
                review=membership.review,
            )
            for membership, student in result.all()
        ]

    async def list_my_enrollments(self, learner_id: str) -> list[MyEnrollmentResponse]:
        """List a learner's active memberships, newest first."""
        learner_id = parse_id(learner_id, "learner id")

        result = await self.db.execute(
            select(CourseEnrollment, Course.title)
            .join(Course, Course.id == CourseEnrollment.course_id)
            .where(
                CourseEnrollment.student_id == learner_id,
                CourseEnrollment.is_active.is_(True),
            )
            .order_by(CourseEnrollment.enrolled_at.desc())
        )

        return [
            MyEnrollmentResponse(
                id=membership.id,
                course_id=membership.course_id,
                course_title=title,
                enrolled_at=membership.enrolled_at,
                progress_percentage=membership.progress_percentage,
                rating=membership.rating,
            )
            for membership, title in result.all()
        ]

    @staticmethod
    def enrollment_added_payload(
        course: Course,
        learner: User | None,
        activation: MembershipActivation,
    ) -> dict[str, Any]:
        """Build the enrollment.added event payload."""
        membership = activation.membership
        return {
            "course_id": course.id,
            "course_title": course.title,
            "owner_id": course.created_by,
            "student_id": membership.student_id,
            "student_name": learner.name if learner else None,
            "student_email": learner.email if learner else None,
            "enrollment_id": membership.id,
            "enrolled_at": membership.enrolled_at.isoformat(),
            "progress_percentage": membership.progress_percentage,
            "enrollment_count": activation.enrollment_count,
            "reactivated": activation.reactivated,
        }

    def _stage_enrollment_notifications(self, course: Course, learner: User) -> None:
        self._notifications.stage(
            learner.id,
            "Enrolled",
            f"You are now enrolled in \"{course.title}\".",
            meta={"course_id": course.id},
        )
        if course.created_by != learner.id:
            self._notifications.stage(
                course.created_by,
                "New learner",
                f"{learner.name} enrolled in \"{course.title}\".",
                meta={"course_id": course.id, "student_id": learner.id},
            )

    async def _get_course(self, course_id: str) -> Course:
        course = await self.db.get(Course, course_id)
        if course is None:
            raise CourseNotFoundError(f"Course {course_id} not found")
        return course

    async def _get_user(self, user_id: str) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise LearnerNotFoundError(f"User {user_id} not found")
        return user

    async def _get_membership(
        self,
        course_id: str,
        learner_id: str,
    ) -> CourseEnrollment | None:
        result = await self.db.execute(
            select(CourseEnrollment).where(
                CourseEnrollment.course_id == course_id,
                CourseEnrollment.student_id == learner_id,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _to_status(membership: CourseEnrollment) -> EnrollmentStatusResponse:
        return EnrollmentStatusResponse(
            enrolled=membership.is_active,
            progress=membership.progress_percentage,
            rating=membership.rating,
            review=membership.review,
        )
