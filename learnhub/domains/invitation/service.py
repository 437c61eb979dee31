# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course invitation service.

Invitation lifecycle:
    pending → accepted   learner accepts, membership activated
    pending → declined   learner declines
    pending → cancelled  issuing teacher withdraws it
    pending → expired    reported lazily once expires_at has passed

Every transition out of pending is a conditional UPDATE on status, so two
concurrent transitions cannot both succeed: the loser matches zero rows and
gets a conflict with nothing written.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.core.config.settings import InvitationSettings
from learnhub.core.errors import ConflictError, ForbiddenError, NotFoundError
from learnhub.domains.enrollment.service import EnrollmentService
from learnhub.infrastructure.database.models import (
    Course,
    CourseEnrollment,
    CourseInvitation,
    InvitationStatus,
    User,
    UserRole,
)
from learnhub.infrastructure.events import EventBus, EventTypes
from learnhub.infrastructure.notifications import NotificationService
from learnhub.models.invitation import InvitationResponse
from learnhub.utils.datetime import utc_now
from learnhub.utils.identifiers import parse_id

logger = logging.getLogger(__name__)


class InvitationServiceError(Exception):
    """Base exception for invitation service errors."""

    pass


class InvitationNotFoundError(InvitationServiceError, NotFoundError):
    """Raised when invitation is not found."""

    pass


class CourseNotFoundError(InvitationServiceError, NotFoundError):
    """Raised when the invited-to course is not found."""

    pass


class StudentNotFoundError(InvitationServiceError, NotFoundError):
    """Raised when no student account matches the email."""

    pass


class NotCourseOwnerError(InvitationServiceError, ForbiddenError):
    """Raised when a non-owner tries to invite."""

    pass


class NotInvitationParticipantError(InvitationServiceError, ForbiddenError):
    """Raised when the caller is not allowed to act on the invitation."""

    pass


class AlreadyEnrolledError(InvitationServiceError, ConflictError):
    """Raised when inviting a learner who is already enrolled."""

    pass


class DuplicateInvitationError(InvitationServiceError, ConflictError):
    """Raised when a pending invitation already exists for the pair."""

    pass


class InvitationNotPendingError(InvitationServiceError, ConflictError):
    """Raised when the invitation already reached a terminal state."""

    pass


class InvitationExpiredError(InvitationServiceError, ConflictError):
    """Raised when acting on an invitation past its expiry."""

    pass


class InvitationService:
    """Service for the course invitation workflow.

    Attributes:
        db: Async database session.
    """

    def __init__(
        self,
        db: AsyncSession,
        event_bus: EventBus,
        settings: InvitationSettings,
        enrollments: EnrollmentService | None = None,
    ) -> None:
        """Initialize invitation service.

        Args:
            db: Async database session.
            event_bus: Bus that receives events after commit.
            settings: Invitation lifetime and link settings.
            enrollments: Membership service sharing the same session.
        """
        self.db = db
        self._event_bus = event_bus
        self._settings = settings
        self._enrollments = enrollments or EnrollmentService(db, event_bus)
        self._notifications = NotificationService(db)

    async def create(
        self,
        course_id: str,
        student_email: str,
        issuer_id: str,
        message: str | None = None,
    ) -> InvitationResponse:
        """Invite a student to a course.

        Args:
            course_id: Course to invite to.
            student_email: Student's email, matched case-insensitively.
            issuer_id: Teacher sending the invitation.
            message: Optional personal note.

        Returns:
            The pending invitation.

        Raises:
            InvalidIdentifierError: If an id is malformed.
            CourseNotFoundError: If course not found.
            NotCourseOwnerError: If the issuer does not own the course.
            StudentNotFoundError: If no student has that email.
            AlreadyEnrolledError: If the student is actively enrolled.
            DuplicateInvitationError: If a pending invitation exists.
        """
        course_id = parse_id(course_id, "course id")
        issuer_id = parse_id(issuer_id, "issuer id")

        course = await self.db.get(Course, course_id)
        if course is None:
            raise CourseNotFoundError(f"Course {course_id} not found")
        if not course.is_owned_by(issuer_id):
            raise NotCourseOwnerError("You can only invite students to your own courses")

        student = await self._find_student(student_email)
        if student is None:
            raise StudentNotFoundError(f"No student account found for {student_email}")

        active = await self.db.execute(
            select(CourseEnrollment.id).where(
                CourseEnrollment.course_id == course_id,
                CourseEnrollment.student_id == student.id,
                CourseEnrollment.is_active.is_(True),
            )
        )
        if active.first() is not None:
            raise AlreadyEnrolledError("Student is already enrolled in this course")

        now = utc_now()
        pending = await self.db.execute(
            select(CourseInvitation.id).where(
                CourseInvitation.course_id == course_id,
                CourseInvitation.student_id == student.id,
                CourseInvitation.status == InvitationStatus.PENDING.value,
                CourseInvitation.expires_at > now,
            )
        )
        if pending.first() is not None:
            raise DuplicateInvitationError("A pending invitation already exists for this student")

        # Retire old rows for the pair so the pending slot is free
        await self.db.execute(
            update(CourseInvitation)
            .where(
                CourseInvitation.course_id == course_id,
                CourseInvitation.student_id == student.id,
                or_(
                    CourseInvitation.status.in_(
                        [InvitationStatus.EXPIRED.value, InvitationStatus.DECLINED.value]
                    ),
                    and_(
                        CourseInvitation.status == InvitationStatus.PENDING.value,
                        CourseInvitation.expires_at <= now,
                    ),
                ),
            )
            .values(status=InvitationStatus.DECLINED.value)
            .execution_options(synchronize_session="fetch")
        )

        issuer = await self.db.get(User, issuer_id)
        invitation = CourseInvitation(
            course_id=course_id,
            teacher_id=issuer_id,
            student_id=student.id,
            student_email=student.email,
            course_title=course.title,
            teacher_name=issuer.name if issuer else "Your teacher",
            message=message,
            status=InvitationStatus.PENDING.value,
            expires_at=now + timedelta(days=self._settings.ttl_days),
        )
        self.db.add(invitation)

        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            raise DuplicateInvitationError(
                "A pending invitation already exists for this student"
            ) from None

        self._notifications.stage(
            student.id,
            "Course invitation",
            f"{invitation.teacher_name} invited you to join \"{course.title}\".",
            meta={
                "invitation_id": invitation.id,
                "course_id": course_id,
                "link": f"{self._settings.frontend_url.rstrip('/')}/invitations/{invitation.id}",
            },
        )
        await self.db.commit()

        logger.info(
            "Invitation created: id=%s, course=%s, student=%s, by=%s",
            invitation.id,
            course_id,
            student.id,
            issuer_id,
        )

        await self._event_bus.publish(
            EventTypes.Invitation.CREATED,
            {
                "invitation_id": invitation.id,
                "course_id": course_id,
                "course_title": course.title,
                "teacher_id": issuer_id,
                "teacher_name": invitation.teacher_name,
                "student_id": student.id,
                "student_email": student.email,
                "message": message,
                "expires_at": invitation.expires_at.isoformat(),
            },
            actor_id=issuer_id,
        )

        return self._to_response(invitation)

    async def accept(self, invitation_id: str, caller_id: str) -> InvitationResponse:
        """Accept an invitation and activate the membership.

        Args:
            invitation_id: Invitation identifier.
            caller_id: Learner accepting.

        Returns:
            The accepted invitation.

        Raises:
            InvitationNotFoundError: If invitation not found.
            NotInvitationParticipantError: If the caller is not the invitee.
            InvitationNotPendingError: If already accepted, declined or cancelled,
                or if a concurrent transition won.
            InvitationExpiredError: If the invitation has expired.
        """
        invitation_id = parse_id(invitation_id, "invitation id")
        caller_id = parse_id(caller_id, "caller id")

        invitation = await self._get_invitation(invitation_id)
        if invitation.student_id != caller_id:
            raise NotInvitationParticipantError("This invitation is not addressed to you")
        self._ensure_pending(invitation)

        now = utc_now()
        await self._transition(invitation, InvitationStatus.ACCEPTED, accepted_at=now)

        course_id = invitation.course_id
        course = await self.db.get(Course, course_id)
        if course is None:
            await self.db.rollback()
            raise CourseNotFoundError(f"Course {course_id} not found")

        try:
            activation = await self._enrollments.activate_membership(course, caller_id)
        except IntegrityError:
            await self.db.rollback()
            raise InvitationNotPendingError(
                "Enrollment changed concurrently, please retry"
            ) from None

        student = await self.db.get(User, caller_id)
        student_name = student.name if student else "A learner"
        self._notifications.stage(
            invitation.teacher_id,
            "Invitation accepted",
            f"{student_name} accepted your invitation to \"{course.title}\".",
            meta={"invitation_id": invitation.id, "course_id": course.id},
        )
        await self.db.commit()

        logger.info(
            "Invitation accepted: id=%s, course=%s, student=%s, membership_changed=%s",
            invitation.id,
            course.id,
            caller_id,
            activation.changed,
        )

        await self._event_bus.publish(
            EventTypes.Invitation.ACCEPTED,
            {
                "invitation_id": invitation.id,
                "course_id": course.id,
                "course_title": course.title,
                "teacher_id": invitation.teacher_id,
                "student_id": caller_id,
                "student_name": student.name if student else None,
                "enrollment_count": activation.enrollment_count,
                "membership_changed": activation.changed,
            },
            actor_id=caller_id,
        )
        return self._to_response(invitation)

    async def decline(self, invitation_id: str, caller_id: str) -> InvitationResponse:
        """Decline an invitation.

        Raises:
            InvitationNotFoundError: If invitation not found.
            NotInvitationParticipantError: If the caller is not the invitee.
            InvitationNotPendingError: If no longer pending.
            InvitationExpiredError: If the invitation has expired.
        """
        invitation_id = parse_id(invitation_id, "invitation id")
        caller_id = parse_id(caller_id, "caller id")

        invitation = await self._get_invitation(invitation_id)
        if invitation.student_id != caller_id:
            raise NotInvitationParticipantError("This invitation is not addressed to you")
        self._ensure_pending(invitation)

        await self._transition(invitation, InvitationStatus.DECLINED, declined_at=utc_now())

        self._notifications.stage(
            invitation.teacher_id,
            "Invitation declined",
            f"Your invitation to \"{invitation.course_title}\" was declined.",
            meta={"invitation_id": invitation.id, "course_id": invitation.course_id},
        )
        await self.db.commit()

        logger.info("Invitation declined: id=%s, student=%s", invitation.id, caller_id)

        await self._publish_closed(EventTypes.Invitation.DECLINED, invitation, caller_id)
        return self._to_response(invitation)

    async def cancel(self, invitation_id: str, issuer_id: str) -> InvitationResponse:
        """Withdraw a pending invitation.

        Raises:
            InvitationNotFoundError: If invitation not found.
            NotInvitationParticipantError: If the caller did not issue it.
            InvitationNotPendingError: If no longer pending.
            InvitationExpiredError: If the invitation has expired.
        """
        invitation_id = parse_id(invitation_id, "invitation id")
        issuer_id = parse_id(issuer_id, "issuer id")

        invitation = await self._get_invitation(invitation_id)
        if invitation.teacher_id != issuer_id:
            raise NotInvitationParticipantError("Only the issuing teacher can cancel")
        self._ensure_pending(invitation)

        await self._transition(invitation, InvitationStatus.CANCELLED, cancelled_at=utc_now())

        self._notifications.stage(
            invitation.student_id,
            "Invitation withdrawn",
            f"Your invitation to \"{invitation.course_title}\" was withdrawn.",
            meta={"invitation_id": invitation.id, "course_id": invitation.course_id},
        )
        await self.db.commit()

        logger.info("Invitation cancelled: id=%s, by=%s", invitation.id, issuer_id)

        await self._publish_closed(EventTypes.Invitation.CANCELLED, invitation, issuer_id)
        return self._to_response(invitation)

    async def get(self, invitation_id: str, caller_id: str) -> InvitationResponse:
        """Get one invitation visible to its learner or issuer."""
        invitation_id = parse_id(invitation_id, "invitation id")
        caller_id = parse_id(caller_id, "caller id")

        invitation = await self._get_invitation(invitation_id)
        if caller_id not in (invitation.student_id, invitation.teacher_id):
            raise NotInvitationParticipantError("You cannot view this invitation")
        return self._to_response(invitation)

    async def list_pending_for_student(self, student_id: str) -> list[InvitationResponse]:
        """List a student's pending, unexpired invitations, newest first."""
        student_id = parse_id(student_id, "student id")

        result = await self.db.execute(
            select(CourseInvitation)
            .where(
                CourseInvitation.student_id == student_id,
                CourseInvitation.status == InvitationStatus.PENDING.value,
                CourseInvitation.expires_at > utc_now(),
            )
            .order_by(CourseInvitation.created_at.desc())
        )
        return [self._to_response(i) for i in result.scalars().all()]

    async def list_sent(self, teacher_id: str) -> list[InvitationResponse]:
        """List every invitation a teacher issued, newest first."""
        teacher_id = parse_id(teacher_id, "teacher id")

        result = await self.db.execute(
            select(CourseInvitation)
            .where(CourseInvitation.teacher_id == teacher_id)
            .order_by(CourseInvitation.created_at.desc())
        )
        return [self._to_response(i) for i in result.scalars().all()]

    async def expire_stale(self) -> int:
        """Persist the expired status of pending invitations past expires_at.

        Reads already report these as expired; the sweep only makes the
        stored status agree.

        Returns:
            Number of invitations flipped.
        """
        result = await self.db.execute(
            update(CourseInvitation)
            .where(
                CourseInvitation.status == InvitationStatus.PENDING.value,
                CourseInvitation.expires_at <= utc_now(),
            )
            .values(status=InvitationStatus.EXPIRED.value)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

        if result.rowcount:
            logger.info("Expired %d stale invitations", result.rowcount)
            await self._event_bus.publish(
                EventTypes.Invitation.EXPIRED,
                {"expired": result.rowcount},
            )
        return result.rowcount

    async def _find_student(self, email: str) -> User | None:
        result = await self.db.execute(
            select(User).where(
                func.lower(User.email) == email.strip().lower(),
                User.role == UserRole.STUDENT.value,
            )
        )
        return result.scalars().first()

    async def _get_invitation(self, invitation_id: str) -> CourseInvitation:
        invitation = await self.db.get(CourseInvitation, invitation_id)
        if invitation is None:
            raise InvitationNotFoundError("Invitation not found")
        return invitation

    @staticmethod
    def _ensure_pending(invitation: CourseInvitation) -> None:
        status = invitation.effective_status()
        if status is InvitationStatus.EXPIRED:
            raise InvitationExpiredError("Invitation has expired")
        if status is not InvitationStatus.PENDING:
            raise InvitationNotPendingError(f"Invitation is already {status.value}")

    async def _transition(
        self,
        invitation: CourseInvitation,
        target: InvitationStatus,
        **timestamps,
    ) -> None:
        """Compare-and-set the invitation out of pending.

        Raises:
            InvitationNotPendingError: If another transition won.
        """
        invitation_id = invitation.id
        result = await self.db.execute(
            update(CourseInvitation)
            .where(
                CourseInvitation.id == invitation_id,
                CourseInvitation.status == InvitationStatus.PENDING.value,
            )
            .values(status=target.value, **timestamps)
        )
        if result.rowcount == 0:
            # Rollback expires the loaded invitation; only locals after this
            await self.db.rollback()
            logger.info(
                "Invitation transition lost: id=%s, target=%s",
                invitation_id,
                target.value,
            )
            raise InvitationNotPendingError("Invitation is no longer pending")

        invitation.status = target.value
        for name, value in timestamps.items():
            setattr(invitation, name, value)

    async def _publish_closed(
        self,
        event_type: str,
        invitation: CourseInvitation,
        actor_id: str,
    ) -> None:
        await self._event_bus.publish(
            event_type,
            {
                "invitation_id": invitation.id,
                "course_id": invitation.course_id,
                "teacher_id": invitation.teacher_id,
                "student_id": invitation.student_id,
            },
            actor_id=actor_id,
        )

    @staticmethod
    def _to_response(invitation: CourseInvitation) -> InvitationResponse:
        return InvitationResponse(
            id=invitation.id,
            course_id=invitation.course_id,
            course_title=invitation.course_title,
            teacher_id=invitation.teacher_id,
            teacher_name=invitation.teacher_name,
            student_id=invitation.student_id,
            student_email=invitation.student_email,
            message=invitation.message,
            status=invitation.effective_status(),
            expires_at=invitation.expires_at,
            accepted_at=invitation.accepted_at,
            declined_at=invitation.declined_at,
            cancelled_at=invitation.cancelled_at,
            created_at=invitation.created_at,
        )
