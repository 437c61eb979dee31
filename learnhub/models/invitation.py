# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request and response models for course invitations."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from learnhub.infrastructure.database.models.invitation import InvitationStatus


class InvitationCreateRequest(BaseModel):
    """Invite a learner to a course by email."""

    course_id: str = Field(..., description="Course to invite to")
    student_email: EmailStr = Field(..., description="Learner's email address")
    message: str | None = Field(None, max_length=1000, description="Personal note")


class InvitationResponse(BaseModel):
    """An invitation with its effective status.

    A pending invitation past expires_at is reported as expired.
    """

    id: str
    course_id: str
    course_title: str
    teacher_id: str
    teacher_name: str
    student_id: str
    student_email: str
    message: str | None = None
    status: InvitationStatus
    expires_at: datetime
    accepted_at: datetime | None = None
    declined_at: datetime | None = None
    cancelled_at: datetime | None = None
    created_at: datetime


class InvitationActionResponse(BaseModel):
    """Outcome of accept, decline or cancel."""

    message: str
    invitation: InvitationResponse
