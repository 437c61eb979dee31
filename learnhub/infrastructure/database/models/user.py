# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User directory table.

Users are provisioned by the identity service. This service reads them to
resolve invitation recipients and to render learner summaries.
"""

from enum import Enum

from sqlalchemy import Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from learnhub.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)


class UserRole(str, Enum):
    """Roles known to the enrollment core."""

    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


class User(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A platform user."""

    __tablename__ = "users"
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=UserRole.STUDENT.value,
    )

    @property
    def is_student(self) -> bool:
        """Check if user is a student."""
        return self.role == UserRole.STUDENT.value

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"


# Case-insensitive lookups when resolving invitation recipients
Index("ix_users_email_lower", func.lower(User.email))
