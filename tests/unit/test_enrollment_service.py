# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the enrollment service."""

import asyncio
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from learnhub.core.errors import InvalidIdentifierError
from learnhub.domains.enrollment import (
    CourseNotFoundError,
    EnrollmentRequiredError,
    EnrollmentService,
    InvalidProgressError,
    InvalidRatingError,
    LearnerNotFoundError,
    NotCourseOwnerError,
    NotEnrolledError,
)
from learnhub.infrastructure.database.models import (
    Course,
    CourseEnrollment,
    Notification,
    User,
    UserRole,
)
from learnhub.infrastructure.events import EventBus, EventData, EventTypes
from learnhub.utils.identifiers import new_id


@pytest.fixture
def service(db_session: AsyncSession, event_bus: EventBus) -> EnrollmentService:
    """Enrollment service bound to the test session."""
    return EnrollmentService(db_session, event_bus)


async def _count(db: AsyncSession, course: Course) -> int:
    await db.refresh(course)
    return course.enrollment_count


async def _notifications_for(db: AsyncSession, user: User) -> list[Notification]:
    result = await db.execute(select(Notification).where(Notification.user_id == user.id))
    return list(result.scalars().all())


class TestEnroll:
    """Tests for self-enrollment."""

    @pytest.mark.asyncio
    async def test_enroll_creates_membership(
        self,
        service: EnrollmentService,
        db_session: AsyncSession,
        course: Course,
        student: User,
        teacher: User,
        event_bus: EventBus,
        published: list[EventData],
    ) -> None:
        """Test enrolling activates a membership and bumps the counter."""
        result = await service.enroll(student.id, course.id)

        assert result.changed is True
        assert result.enrolled is True
        assert await _count(db_session, course) == 1

        status = await service.get_status(course.id, student.id)
        assert status.enrolled is True
        assert status.progress == 0.0

        await event_bus.drain()
        assert [e.event_type for e in published] == [EventTypes.Enrollment.ADDED]
        payload = published[0].payload
        assert payload["course_id"] == course.id
        assert payload["student_id"] == student.id
        assert payload["owner_id"] == teacher.id
        assert payload["student_email"] == "sam@example.com"
        assert payload["enrollment_count"] == 1
        assert payload["reactivated"] is False

        assert len(await _notifications_for(db_session, student)) == 1
        assert len(await _notifications_for(db_session, teacher)) == 1

    @pytest.mark.asyncio
    async def test_enroll_is_idempotent(
        self,
        service: EnrollmentService,
        db_session: AsyncSession,
        course: Course,
        student: User,
        event_bus: EventBus,
        published: list[EventData],
    ) -> None:
        """Test enrolling twice changes nothing the second time."""
        await service.enroll(student.id, course.id)
        result = await service.enroll(student.id, course.id)

        assert result.changed is False
        assert result.message == "Already enrolled"
        assert await _count(db_session, course) == 1
        await event_bus.drain()
        assert len(published) == 1

    @pytest.mark.asyncio
    async def test_owner_enrolling_gets_one_notification(
        self,
        service: EnrollmentService,
        db_session: AsyncSession,
        course: Course,
        teacher: User,
    ) -> None:
        """Test the owner is not notified twice about themselves."""
        await service.enroll(teacher.id, course.id)

        assert len(await _notifications_for(db_session, teacher)) == 1

    @pytest.mark.asyncio
    async def test_enroll_does_not_wait_for_subscribers(
        self,
        service: EnrollmentService,
        event_bus: EventBus,
        course: Course,
        student: User,
    ) -> None:
        """Test a slow side effect never holds up the enrollment call."""
        release = asyncio.Event()
        delivered: list[EventData] = []

        async def slow_mailer(event: EventData) -> None:
            await release.wait()
            delivered.append(event)

        event_bus.subscribe(EventTypes.Enrollment.ADDED, slow_mailer)

        result = await asyncio.wait_for(service.enroll(student.id, course.id), timeout=2.0)

        assert result.changed is True
        assert delivered == []

        release.set()
        await event_bus.drain()
        assert len(delivered) == 1

    @pytest.mark.asyncio
    async def test_concurrent_insert_resolves_as_already_enrolled(
        self,
        service: EnrollmentService,
        session_factory: async_sessionmaker[AsyncSession],
        db_session: AsyncSession,
        event_bus: EventBus,
        course: Course,
        student: User,
        published: list[EventData],
    ) -> None:
        """Test losing the unique-constraint race is reported as a no-op."""
        await service.enroll(student.id, course.id)

        async with session_factory() as other:
            racer = EnrollmentService(other, event_bus)
            # Simulate a read that happened before the winner's insert
            racer._get_membership = AsyncMock(return_value=None)

            result = await racer.enroll(student.id, course.id)

        assert result.changed is False
        assert await _count(db_session, course) == 1
        await event_bus.drain()
        assert len(published) == 1

    @pytest.mark.asyncio
    async def test_enroll_unknown_course(self, service: EnrollmentService, student: User) -> None:
        """Test enrolling in a missing course."""
        with pytest.raises(CourseNotFoundError):
            await service.enroll(student.id, new_id())

    @pytest.mark.asyncio
    async def test_enroll_unknown_learner(self, service: EnrollmentService, course: Course) -> None:
        """Test enrolling a user that does not exist."""
        with pytest.raises(LearnerNotFoundError):
            await service.enroll(new_id(), course.id)

    @pytest.mark.asyncio
    async def test_enroll_malformed_course_id(
        self,
        service: EnrollmentService,
        student: User,
    ) -> None:
        """Test malformed identifiers are rejected as conflicts."""
        with pytest.raises(InvalidIdentifierError) as exc_info:
            await service.enroll(student.id, "course-1")

        assert exc_info.value.status_code == 409


class TestRemove:
    """Tests for removal by the course owner."""

    @pytest.mark.asyncio
    async def test_remove_deactivates(
        self,
        service: EnrollmentService,
        db_session: AsyncSession,
        course: Course,
        student: User,
        teacher: User,
        event_bus: EventBus,
        published: list[EventData],
    ) -> None:
        """Test removal keeps the row but deactivates it."""
        await service.enroll(student.id, course.id)

        await service.remove(student.id, course.id, teacher.id)

        assert await _count(db_session, course) == 0
        rows = await db_session.execute(
            select(func.count()).select_from(CourseEnrollment).where(
                CourseEnrollment.course_id == course.id,
            )
        )
        assert rows.scalar_one() == 1
        assert (await service.get_status(course.id, student.id)).enrolled is False

        await event_bus.drain()
        removed = published[-1]
        assert removed.event_type == EventTypes.Enrollment.REMOVED
        assert removed.payload["enrollment_count"] == 0
        assert removed.actor_id == teacher.id

    @pytest.mark.asyncio
    async def test_remove_requires_owner(
        self,
        service: EnrollmentService,
        course: Course,
        student: User,
        make_user,
    ) -> None:
        """Test only the owner can remove learners."""
        await service.enroll(student.id, course.id)
        other_teacher = await make_user(UserRole.TEACHER)

        with pytest.raises(NotCourseOwnerError):
            await service.remove(student.id, course.id, other_teacher.id)

    @pytest.mark.asyncio
    async def test_remove_not_enrolled(
        self,
        service: EnrollmentService,
        db_session: AsyncSession,
        course: Course,
        student: User,
        teacher: User,
        event_bus: EventBus,
        published: list[EventData],
    ) -> None:
        """Test removing twice fails and leaves the counter alone."""
        await service.enroll(student.id, course.id)
        await service.remove(student.id, course.id, teacher.id)

        with pytest.raises(NotEnrolledError):
            await service.remove(student.id, course.id, teacher.id)

        assert await _count(db_session, course) == 0
        await event_bus.drain()
        assert len(published) == 2

    @pytest.mark.asyncio
    async def test_reenroll_reactivates_same_row(
        self,
        service: EnrollmentService,
        db_session: AsyncSession,
        course: Course,
        student: User,
        teacher: User,
        event_bus: EventBus,
        published: list[EventData],
    ) -> None:
        """Test re-enrolling after removal reactivates and restores the rating."""
        await service.enroll(student.id, course.id)
        await service.rate(student.id, course.id, 5)
        await service.remove(student.id, course.id, teacher.id)

        await db_session.refresh(course)
        assert (course.average_rating, course.total_ratings) == (0.0, 0)

        result = await service.enroll(student.id, course.id)

        assert result.changed is True
        await event_bus.drain()
        assert published[-1].payload["reactivated"] is True
        await db_session.refresh(course)
        assert course.enrollment_count == 1
        assert (course.average_rating, course.total_ratings) == (5.0, 1)


class TestRate:
    """Tests for ratings."""

    @pytest.mark.asyncio
    async def test_rating_requires_membership(
        self,
        service: EnrollmentService,
        course: Course,
        student: User,
    ) -> None:
        """Test learners must be enrolled to rate."""
        with pytest.raises(EnrollmentRequiredError) as exc_info:
            await service.rate(student.id, course.id, 4)

        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    @pytest.mark.parametrize("rating", [0, 6, -1])
    async def test_rating_range(
        self,
        service: EnrollmentService,
        course: Course,
        student: User,
        rating: int,
    ) -> None:
        """Test ratings outside 1-5 are rejected."""
        await service.enroll(student.id, course.id)

        with pytest.raises(InvalidRatingError) as exc_info:
            await service.rate(student.id, course.id, rating)

        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_rerating_recomputes_without_drift(
        self,
        service: EnrollmentService,
        course: Course,
        student: User,
        make_user,
        event_bus: EventBus,
        published: list[EventData],
    ) -> None:
        """Test changing a rating replaces it in the aggregate."""
        other = await make_user()
        await service.enroll(student.id, course.id)
        await service.enroll(other.id, course.id)

        await service.rate(student.id, course.id, 5, review="Great")
        await service.rate(other.id, course.id, 2)
        result = await service.rate(student.id, course.id, 3)

        assert result.average_rating == 2.5
        assert result.total_ratings == 2
        assert result.review == "Great"
        await event_bus.drain()
        assert published[-1].event_type == EventTypes.Enrollment.RATED
        assert published[-1].payload["average_rating"] == 2.5

    @pytest.mark.asyncio
    async def test_removed_learner_rating_excluded(
        self,
        service: EnrollmentService,
        db_session: AsyncSession,
        course: Course,
        student: User,
        teacher: User,
        make_user,
    ) -> None:
        """Test the aggregate only counts active memberships."""
        other = await make_user()
        await service.enroll(student.id, course.id)
        await service.enroll(other.id, course.id)
        await service.rate(student.id, course.id, 5)
        await service.rate(other.id, course.id, 3)

        await service.remove(other.id, course.id, teacher.id)

        await db_session.refresh(course)
        assert course.average_rating == 5.0
        assert course.total_ratings == 1


class TestProgressAndQueries:
    """Tests for progress updates and membership listings."""

    @pytest.mark.asyncio
    async def test_update_progress(
        self,
        service: EnrollmentService,
        course: Course,
        student: User,
    ) -> None:
        """Test progress is stored for an active membership."""
        await service.enroll(student.id, course.id)

        status = await service.update_progress(student.id, course.id, 42.5)

        assert status.progress == 42.5

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "percentage", [-0.1, 100.5, float("nan"), float("inf"), float("-inf")]
    )
    async def test_update_progress_range(
        self,
        service: EnrollmentService,
        course: Course,
        student: User,
        percentage: float,
    ) -> None:
        """Test progress outside 0-100, including non-finite values, is rejected."""
        with pytest.raises(InvalidProgressError):
            await service.update_progress(student.id, course.id, percentage)

    @pytest.mark.asyncio
    async def test_update_progress_not_enrolled(
        self,
        service: EnrollmentService,
        course: Course,
        student: User,
    ) -> None:
        """Test progress needs an active membership."""
        with pytest.raises(NotEnrolledError):
            await service.update_progress(student.id, course.id, 10)

    @pytest.mark.asyncio
    async def test_list_course_enrollments(
        self,
        service: EnrollmentService,
        course: Course,
        student: User,
        teacher: User,
        make_user,
    ) -> None:
        """Test owners and admins see active learners, others do not."""
        await service.enroll(student.id, course.id)
        outsider = await make_user(UserRole.TEACHER)

        items = await service.list_course_enrollments(course.id, teacher.id)
        assert [i.student.email for i in items] == ["sam@example.com"]

        admin_items = await service.list_course_enrollments(
            course.id,
            outsider.id,
            caller_is_admin=True,
        )
        assert len(admin_items) == 1

        with pytest.raises(NotCourseOwnerError):
            await service.list_course_enrollments(course.id, outsider.id)

    @pytest.mark.asyncio
    async def test_list_my_enrollments(
        self,
        service: EnrollmentService,
        course: Course,
        student: User,
        teacher: User,
        make_course,
    ) -> None:
        """Test a learner sees only active memberships with course titles."""
        other_course = await make_course(teacher, title="Geometry")
        await service.enroll(student.id, course.id)
        await service.enroll(student.id, other_course.id)
        await service.remove(student.id, other_course.id, teacher.id)

        items = await service.list_my_enrollments(student.id)

        assert [i.course_title for i in items] == ["Algebra I"]
