# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request and response models for course enrollment."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class EnrollResponse(BaseModel):
    """Result of a self-enrollment request."""

    message: str = Field(..., description="Human readable outcome")
    enrolled: bool = Field(default=True, description="Learner is now actively enrolled")
    changed: bool = Field(..., description="False when the learner was already enrolled")


class EnrollmentStatusResponse(BaseModel):
    """A learner's standing in one course."""

    enrolled: bool = Field(..., description="Active membership exists")
    progress: float = Field(default=0.0, description="Progress percentage 0-100")
    rating: int | None = Field(None, description="Learner's rating 1-5")
    review: str | None = Field(None, description="Learner's review text")


class RateCourseRequest(BaseModel):
    """Rate a course. The 1-5 range is enforced by the service."""

    rating: int = Field(..., description="Rating from 1 to 5")
    review: str | None = Field(None, max_length=5000, description="Optional review")


class CourseRatingResponse(BaseModel):
    """Course rating aggregate after a rating change."""

    course_id: str
    rating: int
    review: str | None = None
    average_rating: float = Field(..., description="Mean of active ratings, 2 decimals")
    total_ratings: int


class ProgressUpdateRequest(BaseModel):
    """Update a learner's progress. The 0-100 range is enforced by the service."""

    percentage: float = Field(..., allow_inf_nan=False, description="Progress percentage 0-100")


class LearnerSummary(BaseModel):
    """Minimal learner info shown to course owners."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str


class CourseEnrollmentResponse(BaseModel):
    """An active membership as listed for the course owner."""

    id: str
    course_id: str
    student: LearnerSummary
    enrolled_at: datetime
    progress_percentage: float
    rating: int | None = None
    review: str | None = None


class MyEnrollmentResponse(BaseModel):
    """An active membership as listed for the learner."""

    id: str
    course_id: str
    course_title: str
    enrolled_at: datetime
    progress_percentage: float
    rating: int | None = None
