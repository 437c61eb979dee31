# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment counter and rating aggregate maintenance.

Course.enrollment_count, average_rating and total_ratings are denormalized
copies of what course_enrollments already says. Online adjustments run in
the caller's transaction as single SQL statements; reconcile() recomputes
everything from the membership rows and overwrites the stored values.

Ratings are always recomputed from AVG/COUNT over active memberships. There
is no incremental mean, so repeated rating changes cannot accumulate drift.
"""

import logging

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.core.errors import NotFoundError
from learnhub.infrastructure.database.models import Course, CourseEnrollment
from learnhub.infrastructure.events import EventBus, EventTypes
from learnhub.models.admin import FixEnrollmentCountsResponse, ReconcileResult
from learnhub.utils.identifiers import parse_id

logger = logging.getLogger(__name__)


class ReconcilerError(Exception):
    """Base exception for reconciler errors."""

    pass


class ReconcileCourseNotFoundError(ReconcilerError, NotFoundError):
    """Raised when reconciling a course that does not exist."""

    pass


class EnrollmentReconciler:
    """Keeps course aggregates consistent with membership rows.

    increment(), decrement() and refresh_rating() never commit: they are
    part of the enrolling or removing transaction. reconcile() and
    reconcile_all() are standalone maintenance operations and commit.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession, event_bus: EventBus | None = None) -> None:
        """Initialize the reconciler.

        Args:
            db: Async database session.
            event_bus: Optional bus for announcing maintenance results.
        """
        self.db = db
        self._event_bus = event_bus

    async def increment(self, course_id: str) -> int:
        """Add one to the course's enrollment counter.

        Returns:
            The counter value after the update.
        """
        await self.db.execute(
            update(Course)
            .where(Course.id == course_id)
            .values(enrollment_count=Course.enrollment_count + 1)
        )
        return await self._current_count(course_id)

    async def decrement(self, course_id: str) -> int:
        """Subtract one from the course's enrollment counter, never below zero.

        Returns:
            The counter value after the update.
        """
        result = await self.db.execute(
            update(Course)
            .where(Course.id == course_id, Course.enrollment_count > 0)
            .values(enrollment_count=Course.enrollment_count - 1)
        )
        if result.rowcount == 0:
            logger.warning(
                "Enrollment counter already at zero for course %s; drift left for reconcile",
                course_id,
            )
        return await self._current_count(course_id)

    async def refresh_rating(self, course_id: str) -> tuple[float, int]:
        """Recompute the course's rating aggregate from active memberships.

        Returns:
            (average_rating, total_ratings) as stored.
        """
        average, total = await self._compute_rating(course_id)
        await self.db.execute(
            update(Course)
            .where(Course.id == course_id)
            .values(average_rating=average, total_ratings=total)
        )
        return average, total

    async def reconcile(self, course_id: str) -> ReconcileResult:
        """Recompute and overwrite one course's aggregates.

        Args:
            course_id: Course to reconcile.

        Returns:
            Before and after values.

        Raises:
            InvalidIdentifierError: If course_id is malformed.
            ReconcileCourseNotFoundError: If the course does not exist.
        """
        course_id = parse_id(course_id, "course id")
        course = await self.db.get(Course, course_id, populate_existing=True)
        if course is None:
            raise ReconcileCourseNotFoundError(f"Course {course_id} not found")

        result = await self._reconcile_course(course)
        await self.db.commit()

        if result.changed:
            await self._announce([result], processed=1)
        return result

    async def reconcile_all(self) -> FixEnrollmentCountsResponse:
        """Recompute and overwrite the aggregates of every course.

        Returns:
            Summary with one result per course.
        """
        result = await self.db.execute(
            select(Course)
            .order_by(Course.created_at)
            .execution_options(populate_existing=True)
        )
        courses = result.scalars().all()

        results = [await self._reconcile_course(course) for course in courses]
        await self.db.commit()

        fixed = [r for r in results if r.changed]
        logger.info(
            "Reconciled enrollment aggregates: processed=%d, fixed=%d",
            len(results),
            len(fixed),
        )
        await self._announce(fixed, processed=len(results))

        return FixEnrollmentCountsResponse(
            processed=len(results),
            fixed=len(fixed),
            results=results,
        )

    async def _reconcile_course(self, course: Course) -> ReconcileResult:
        active = await self.db.execute(
            select(func.count())
            .select_from(CourseEnrollment)
            .where(
                CourseEnrollment.course_id == course.id,
                CourseEnrollment.is_active.is_(True),
            )
        )
        actual_count = active.scalar_one()
        average, total = await self._compute_rating(course.id)

        result = ReconcileResult(
            course_id=course.id,
            course_title=course.title,
            enrollment_count_before=course.enrollment_count,
            enrollment_count_after=actual_count,
            average_rating_before=course.average_rating,
            average_rating_after=average,
            total_ratings_before=course.total_ratings,
            total_ratings_after=total,
        )

        course.enrollment_count = actual_count
        course.average_rating = average
        course.total_ratings = total

        if result.changed:
            logger.warning(
                "Corrected aggregates for course %s: count %d -> %d, rating %.2f/%d -> %.2f/%d",
                course.id,
                result.enrollment_count_before,
                result.enrollment_count_after,
                result.average_rating_before,
                result.total_ratings_before,
                result.average_rating_after,
                result.total_ratings_after,
            )
        return result

    async def _compute_rating(self, course_id: str) -> tuple[float, int]:
        result = await self.db.execute(
            select(func.avg(CourseEnrollment.rating), func.count(CourseEnrollment.rating))
            .where(
                CourseEnrollment.course_id == course_id,
                CourseEnrollment.is_active.is_(True),
                CourseEnrollment.rating.is_not(None),
            )
        )
        average, total = result.one()
        return round(float(average or 0.0), 2), int(total or 0)

    async def _current_count(self, course_id: str) -> int:
        result = await self.db.execute(
            select(Course.enrollment_count).where(Course.id == course_id)
        )
        return result.scalar_one_or_none() or 0

    async def _announce(self, fixed: list[ReconcileResult], processed: int) -> None:
        if self._event_bus is None:
            return
        await self._event_bus.publish(
            EventTypes.Maintenance.COUNTS_RECONCILED,
            {
                "processed": processed,
                "fixed": len(fixed),
                "results": [r.model_dump() for r in fixed],
            },
        )
