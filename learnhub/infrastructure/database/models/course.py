# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course table.

Course content is authored elsewhere. This service owns only the
denormalized enrollment and rating aggregates, which the reconciler keeps
consistent with course_enrollments.
"""

from sqlalchemy import CheckConstraint, Float, ForeignKey, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from learnhub.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)


class Course(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A course and its enrollment aggregates.

    Attributes:
        created_by: Owning teacher. Only the owner may invite or remove learners.
        enrollment_count: Number of active memberships (eventually consistent).
        average_rating: Mean of active memberships' ratings, 2 decimals.
        total_ratings: Number of active memberships with a rating.
    """

    __tablename__ = "courses"
    __table_args__ = (
        CheckConstraint("enrollment_count >= 0", name="enrollment_count_non_negative"),
        CheckConstraint("total_ratings >= 0", name="total_ratings_non_negative"),
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    created_by: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    enrollment_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )
    average_rating: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=0.0,
        server_default=text("0"),
    )
    total_ratings: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )

    def is_owned_by(self, user_id: str) -> bool:
        """Check if the given user owns this course."""
        return self.created_by == user_id

    def __repr__(self) -> str:
        return f"<Course {self.id} {self.title!r}>"
