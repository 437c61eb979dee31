# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Live event delivery: rooms, typed payloads and the EventBus bridge."""

from learnhub.infrastructure.realtime.bridge import RealtimeBridge
from learnhub.infrastructure.realtime.hub import (
    ADMIN_ROOM,
    Broadcaster,
    BroadcastHub,
    InvalidRoomError,
    LiveSession,
    classroom_room,
    course_room,
    get_broadcast_hub,
    parse_room,
    reset_broadcast_hub,
    user_room,
)
from learnhub.infrastructure.realtime.payloads import (
    AdminNotification,
    AnalyticsUpdate,
    AnyLiveEvent,
    ClassMessage,
    ClassMessageDeleted,
    ClassMessageUpdated,
    ClassroomStudentAdded,
    ClassroomStudentRemoved,
    CourseEnrollmentAdded,
    CourseInvitationCreated,
    DashboardStatsUpdate,
    EnrollmentAdded,
    EnrollmentRemoved,
    EnrollmentSummary,
    LessonMessageDeleted,
    LessonMessageUpdated,
    LiveEvent,
    MessageAuthor,
    SubmissionCreated,
    SubmissionGraded,
    parse_live_event,
)

__all__ = [
    # Hub
    "ADMIN_ROOM",
    "Broadcaster",
    "BroadcastHub",
    "InvalidRoomError",
    "LiveSession",
    "classroom_room",
    "course_room",
    "user_room",
    "parse_room",
    "get_broadcast_hub",
    "reset_broadcast_hub",
    # Bridge
    "RealtimeBridge",
    # Payloads
    "AnyLiveEvent",
    "LiveEvent",
    "EnrollmentSummary",
    "MessageAuthor",
    "EnrollmentAdded",
    "EnrollmentRemoved",
    "CourseInvitationCreated",
    "CourseEnrollmentAdded",
    "ClassroomStudentAdded",
    "ClassroomStudentRemoved",
    "SubmissionCreated",
    "SubmissionGraded",
    "ClassMessage",
    "ClassMessageUpdated",
    "ClassMessageDeleted",
    "LessonMessageUpdated",
    "LessonMessageDeleted",
    "AnalyticsUpdate",
    "DashboardStatsUpdate",
    "AdminNotification",
    "parse_live_event",
]
