# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Typed live event payloads.

Every event pushed to a live session is one of the models below. The
``event`` field is the tag clients dispatch on; all payloads carry a
``timestamp``. On the wire a message is ``{"event": <tag>, "data": {...}}``.

Example:
    event = EnrollmentRemoved(course_id=course.id, student_id=student.id)
    await hub.emit(course_room(course.id), event)
"""

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from learnhub.utils.datetime import utc_now


class LiveEvent(BaseModel):
    """Base for all live event payloads."""

    event: str
    timestamp: datetime = Field(default_factory=utc_now)

    def to_message(self) -> dict[str, Any]:
        """Serialize to the wire frame sent to sessions."""
        return {
            "event": self.event,
            "data": self.model_dump(mode="json", exclude={"event"}),
        }


class EnrollmentSummary(BaseModel):
    """Membership snapshot embedded in enrollment events."""

    id: str
    student_id: str
    student_name: str | None = None
    enrolled_at: datetime
    progress_percentage: float = 0.0


# =============================================================================
# Course membership
# =============================================================================


class EnrollmentAdded(LiveEvent):
    """A learner became an active member of a course."""

    event: Literal["enrollmentAdded"] = "enrollmentAdded"
    course_id: str
    course_title: str | None = None
    enrollment: EnrollmentSummary
    enrollment_count: int


class EnrollmentRemoved(LiveEvent):
    """A learner's membership was deactivated by the course owner."""

    event: Literal["enrollmentRemoved"] = "enrollmentRemoved"
    course_id: str
    student_id: str
    enrollment_count: int


class CourseInvitationCreated(LiveEvent):
    """A learner received an invitation."""

    event: Literal["courseInvitationCreated"] = "courseInvitationCreated"
    invitation_id: str
    course_id: str
    course_title: str
    teacher_id: str
    teacher_name: str
    message: str | None = None
    expires_at: datetime


class CourseEnrollmentAdded(LiveEvent):
    """An invitation was accepted and the learner joined the course."""

    event: Literal["courseEnrollmentAdded"] = "courseEnrollmentAdded"
    invitation_id: str
    course_id: str
    student_id: str
    student_name: str | None = None
    enrollment_count: int


# =============================================================================
# Classroom
# =============================================================================


class ClassroomStudentAdded(LiveEvent):
    """A learner joined a classroom."""

    event: Literal["classroomStudentAdded"] = "classroomStudentAdded"
    classroom_id: str
    student_id: str
    student_name: str | None = None


class ClassroomStudentRemoved(LiveEvent):
    """A learner left a classroom."""

    event: Literal["classroomStudentRemoved"] = "classroomStudentRemoved"
    classroom_id: str
    student_id: str


class SubmissionCreated(LiveEvent):
    """A learner submitted an assignment."""

    event: Literal["submissionCreated"] = "submissionCreated"
    classroom_id: str
    assignment_id: str
    submission_id: str
    student_id: str


class SubmissionGraded(LiveEvent):
    """A submission received a grade."""

    event: Literal["submissionGraded"] = "submissionGraded"
    classroom_id: str
    assignment_id: str
    submission_id: str
    student_id: str
    grade: float | None = None
    feedback: str | None = None


class MessageAuthor(BaseModel):
    """Sender shown next to chat messages."""

    id: str
    name: str


class ClassMessage(LiveEvent):
    """A chat message posted in a classroom."""

    event: Literal["classMessage"] = "classMessage"
    classroom_id: str
    message: str
    user: MessageAuthor


class ClassMessageUpdated(LiveEvent):
    """A classroom chat message was edited."""

    event: Literal["classMessageUpdated"] = "classMessageUpdated"
    classroom_id: str
    message_id: str
    content: str


class ClassMessageDeleted(LiveEvent):
    """A classroom chat message was deleted."""

    event: Literal["classMessageDeleted"] = "classMessageDeleted"
    classroom_id: str
    message_id: str


class LessonMessageUpdated(LiveEvent):
    """A lesson discussion message was edited. Routed to the course room."""

    event: Literal["lessonMessageUpdated"] = "lessonMessageUpdated"
    course_id: str
    lesson_id: str
    message_id: str
    content: str


class LessonMessageDeleted(LiveEvent):
    """A lesson discussion message was deleted. Routed to the course room."""

    event: Literal["lessonMessageDeleted"] = "lessonMessageDeleted"
    course_id: str
    lesson_id: str
    message_id: str


# =============================================================================
# Admin channel
# =============================================================================


class AnalyticsUpdate(LiveEvent):
    """Refreshed analytics snapshot for admin dashboards."""

    event: Literal["analyticsUpdate"] = "analyticsUpdate"
    data: dict[str, Any] = Field(default_factory=dict)


class DashboardStatsUpdate(LiveEvent):
    """Refreshed headline counters for admin dashboards."""

    event: Literal["dashboardStatsUpdate"] = "dashboardStatsUpdate"
    stats: dict[str, Any] = Field(default_factory=dict)


class AdminNotification(LiveEvent):
    """Operational message for administrators."""

    event: Literal["adminNotification"] = "adminNotification"
    level: Literal["info", "warning", "error"] = "info"
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


AnyLiveEvent = Annotated[
    Union[
        EnrollmentAdded,
        EnrollmentRemoved,
        CourseInvitationCreated,
        CourseEnrollmentAdded,
        ClassroomStudentAdded,
        ClassroomStudentRemoved,
        SubmissionCreated,
        SubmissionGraded,
        ClassMessage,
        ClassMessageUpdated,
        ClassMessageDeleted,
        LessonMessageUpdated,
        LessonMessageDeleted,
        AnalyticsUpdate,
        DashboardStatsUpdate,
        AdminNotification,
    ],
    Field(discriminator="event"),
]

_live_event_adapter: TypeAdapter[AnyLiveEvent] = TypeAdapter(AnyLiveEvent)


def parse_live_event(message: dict[str, Any]) -> LiveEvent:
    """Parse a wire frame back into its typed payload.

    Used by clients written in Python and by tests.

    Raises:
        pydantic.ValidationError: If the tag is unknown or the payload
            does not match the tag's shape.
    """
    return _live_event_adapter.validate_python({"event": message.get("event"), **message.get("data", {})})
