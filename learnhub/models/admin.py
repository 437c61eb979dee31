# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Models for maintenance and reconciliation."""

from typing import Any

from pydantic import BaseModel, Field


class ReconcileResult(BaseModel):
    """Before/after aggregates for one course."""

    course_id: str
    course_title: str
    enrollment_count_before: int
    enrollment_count_after: int
    average_rating_before: float
    average_rating_after: float
    total_ratings_before: int
    total_ratings_after: int

    @property
    def changed(self) -> bool:
        """Whether any stored aggregate differed from the recomputed one."""
        return (
            self.enrollment_count_before != self.enrollment_count_after
            or self.total_ratings_before != self.total_ratings_after
            or round(self.average_rating_before, 2) != self.average_rating_after
        )

    @property
    def enrollment_delta(self) -> int:
        """Correction applied to enrollment_count."""
        return self.enrollment_count_after - self.enrollment_count_before


class FixEnrollmentCountsResponse(BaseModel):
    """Summary of a reconciliation pass over all courses."""

    processed: int = Field(..., description="Courses examined")
    fixed: int = Field(..., description="Courses whose aggregates changed")
    results: list[ReconcileResult] = Field(default_factory=list)


class ExpireInvitationsResponse(BaseModel):
    """Summary of an expiry sweep."""

    expired: int = Field(..., description="Pending invitations flipped to expired")


class RealtimeStatsResponse(BaseModel):
    """Live hub and event bus counters."""

    hub: dict[str, Any]
    events: dict[str, Any]
