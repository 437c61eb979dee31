# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course invitation table.

An invitation starts pending and moves to exactly one terminal state.
Expiry is evaluated lazily: a pending row past expires_at is reported as
expired whether or not the stored status was ever flipped.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from learnhub.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)
from learnhub.utils.datetime import is_expired


class InvitationStatus(str, Enum):
    """Invitation lifecycle states."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class CourseInvitation(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Invitation from a course owner to a learner."""

    __tablename__ = "course_invitations"
    __table_args__ = (
        # At most one pending invitation per (course, student)
        Index(
            "uq_course_invitations_pending_pair",
            "course_id",
            "student_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
        Index("ix_course_invitations_student_status", "student_id", "status"),
    )

    course_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    teacher_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    student_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    student_email: Mapped[str] = mapped_column(String(255), nullable=False)
    course_title: Mapped[str] = mapped_column(String(255), nullable=False)
    teacher_name: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=InvitationStatus.PENDING.value,
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    declined_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def effective_status(self, now: datetime | None = None) -> InvitationStatus:
        """Status as reported to callers, with lazy expiry applied."""
        status = InvitationStatus(self.status)
        if status is InvitationStatus.PENDING and is_expired(self.expires_at, now):
            return InvitationStatus.EXPIRED
        return status

    def __repr__(self) -> str:
        return f"<CourseInvitation {self.id} course={self.course_id} {self.status}>"
