# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course enrollment API endpoints.

Learner endpoints:
- POST /{course_id}/enroll - Enroll in a course
- GET /{course_id}/enrollment - Own enrollment status
- POST /{course_id}/rate - Rate a course
- PUT /{course_id}/progress - Update own progress
- GET /my-enrollments - Own active enrollments

Course owner endpoints:
- GET /{course_id}/enrollments - List active learners
- DELETE /{course_id}/enrollments/{learner_id} - Remove a learner
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from learnhub.api.dependencies import (
    get_enrollment_service,
    require_auth,
    require_teacher_or_admin,
)
from learnhub.api.middleware.auth import CurrentUser
from learnhub.core.errors import DomainError
from learnhub.domains.enrollment import EnrollmentService
from learnhub.models.common import MessageResponse
from learnhub.models.enrollment import (
    CourseEnrollmentResponse,
    CourseRatingResponse,
    EnrollmentStatusResponse,
    EnrollResponse,
    MyEnrollmentResponse,
    ProgressUpdateRequest,
    RateCourseRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_http(error: DomainError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=str(error))


@router.get(
    "/my-enrollments",
    response_model=list[MyEnrollmentResponse],
    summary="List my enrollments",
)
async def list_my_enrollments(
    current_user: CurrentUser = Depends(require_auth),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> list[MyEnrollmentResponse]:
    """List the caller's active enrollments, newest first."""
    try:
        return await service.list_my_enrollments(current_user.id)
    except DomainError as e:
        raise _to_http(e)


@router.post(
    "/{course_id}/enroll",
    response_model=EnrollResponse,
    summary="Enroll in course",
    description="Enroll the caller. Enrolling twice is a no-op.",
)
async def enroll(
    course_id: str,
    current_user: CurrentUser = Depends(require_auth),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> EnrollResponse:
    """Enroll the caller in a course.

    Args:
        course_id: Course identifier.
        current_user: Authenticated learner.
        service: Enrollment service.

    Returns:
        Enrollment outcome.

    Raises:
        HTTPException: 404 if the course is missing, 409 on a malformed id.
    """
    try:
        return await service.enroll(current_user.id, course_id)
    except DomainError as e:
        raise _to_http(e)


@router.get(
    "/{course_id}/enrollment",
    response_model=EnrollmentStatusResponse,
    summary="Get my enrollment status",
)
async def get_enrollment_status(
    course_id: str,
    current_user: CurrentUser = Depends(require_auth),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> EnrollmentStatusResponse:
    """Get the caller's standing in a course."""
    try:
        return await service.get_status(course_id, current_user.id)
    except DomainError as e:
        raise _to_http(e)


@router.post(
    "/{course_id}/rate",
    response_model=CourseRatingResponse,
    summary="Rate course",
)
async def rate_course(
    course_id: str,
    data: RateCourseRequest,
    current_user: CurrentUser = Depends(require_auth),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> CourseRatingResponse:
    """Rate a course the caller is enrolled in.

    Raises:
        HTTPException: 400 if the rating is outside 1-5, 403 if not enrolled.
    """
    try:
        return await service.rate(current_user.id, course_id, data.rating, data.review)
    except DomainError as e:
        raise _to_http(e)


@router.put(
    "/{course_id}/progress",
    response_model=EnrollmentStatusResponse,
    summary="Update my progress",
)
async def update_progress(
    course_id: str,
    data: ProgressUpdateRequest,
    current_user: CurrentUser = Depends(require_auth),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> EnrollmentStatusResponse:
    """Set the caller's progress percentage in a course."""
    try:
        return await service.update_progress(current_user.id, course_id, data.percentage)
    except DomainError as e:
        raise _to_http(e)


@router.get(
    "/{course_id}/enrollments",
    response_model=list[CourseEnrollmentResponse],
    summary="List course enrollments",
    description="Active learners of a course. Course owner or admin only.",
)
async def list_course_enrollments(
    course_id: str,
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> list[CourseEnrollmentResponse]:
    """List a course's active learners, newest first."""
    try:
        return await service.list_course_enrollments(
            course_id,
            current_user.id,
            caller_is_admin=current_user.is_admin,
        )
    except DomainError as e:
        raise _to_http(e)


@router.delete(
    "/{course_id}/enrollments/{learner_id}",
    response_model=MessageResponse,
    summary="Remove learner",
    description="Deactivate a learner's membership. Course owner only.",
)
async def remove_learner(
    course_id: str,
    learner_id: str,
    current_user: CurrentUser = Depends(require_auth),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> MessageResponse:
    """Remove a learner from a course.

    Raises:
        HTTPException: 403 if not the owner, 404 if not enrolled.
    """
    logger.info(
        "Removing learner %s from course %s by %s",
        learner_id,
        course_id,
        current_user.id,
    )

    try:
        await service.remove(learner_id, course_id, current_user.id)
    except DomainError as e:
        raise _to_http(e)

    return MessageResponse(message="Student removed from course successfully")
