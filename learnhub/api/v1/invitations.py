# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course invitation API endpoints.

- POST / - Invite a student (course owner)
- GET /mine - Pending invitations addressed to the caller
- GET /sent - Invitations the caller issued
- GET /{invitation_id} - One invitation (invitee or issuer)
- PUT /{invitation_id}/accept - Accept (invitee)
- PUT /{invitation_id}/decline - Decline (invitee)
- DELETE /{invitation_id} - Cancel (issuer)
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from learnhub.api.dependencies import (
    get_invitation_service,
    require_auth,
    require_teacher,
)
from learnhub.api.middleware.auth import CurrentUser
from learnhub.core.errors import DomainError
from learnhub.domains.invitation import InvitationService
from learnhub.models.invitation import (
    InvitationActionResponse,
    InvitationCreateRequest,
    InvitationResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_http(error: DomainError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=str(error))


@router.post(
    "",
    response_model=InvitationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Invite student",
    description="Invite a student to one of the caller's courses by email.",
)
async def create_invitation(
    data: InvitationCreateRequest,
    current_user: CurrentUser = Depends(require_teacher),
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationResponse:
    """Create a pending invitation.

    Args:
        data: Invitation request.
        current_user: Authenticated teacher.
        service: Invitation service.

    Returns:
        The pending invitation.

    Raises:
        HTTPException: 404 for unknown course or student, 403 if not the
            course owner, 409 if enrolled or already invited.
    """
    logger.info(
        "Inviting %s to course %s by %s",
        data.student_email,
        data.course_id,
        current_user.id,
    )

    try:
        return await service.create(
            course_id=data.course_id,
            student_email=data.student_email,
            issuer_id=current_user.id,
            message=data.message,
        )
    except DomainError as e:
        raise _to_http(e)


@router.get(
    "/mine",
    response_model=list[InvitationResponse],
    summary="List my invitations",
)
async def list_my_invitations(
    current_user: CurrentUser = Depends(require_auth),
    service: InvitationService = Depends(get_invitation_service),
) -> list[InvitationResponse]:
    """List pending, unexpired invitations addressed to the caller."""
    try:
        return await service.list_pending_for_student(current_user.id)
    except DomainError as e:
        raise _to_http(e)


@router.get(
    "/sent",
    response_model=list[InvitationResponse],
    summary="List sent invitations",
)
async def list_sent_invitations(
    current_user: CurrentUser = Depends(require_teacher),
    service: InvitationService = Depends(get_invitation_service),
) -> list[InvitationResponse]:
    """List every invitation the caller issued."""
    try:
        return await service.list_sent(current_user.id)
    except DomainError as e:
        raise _to_http(e)


@router.get(
    "/{invitation_id}",
    response_model=InvitationResponse,
    summary="Get invitation",
)
async def get_invitation(
    invitation_id: str,
    current_user: CurrentUser = Depends(require_auth),
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationResponse:
    """Get an invitation addressed to or issued by the caller."""
    try:
        return await service.get(invitation_id, current_user.id)
    except DomainError as e:
        raise _to_http(e)


@router.put(
    "/{invitation_id}/accept",
    response_model=InvitationActionResponse,
    summary="Accept invitation",
)
async def accept_invitation(
    invitation_id: str,
    current_user: CurrentUser = Depends(require_auth),
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationActionResponse:
    """Accept an invitation and join the course.

    Raises:
        HTTPException: 409 if no longer pending or expired.
    """
    try:
        invitation = await service.accept(invitation_id, current_user.id)
    except DomainError as e:
        raise _to_http(e)

    return InvitationActionResponse(
        message="Invitation accepted successfully",
        invitation=invitation,
    )


@router.put(
    "/{invitation_id}/decline",
    response_model=InvitationActionResponse,
    summary="Decline invitation",
)
async def decline_invitation(
    invitation_id: str,
    current_user: CurrentUser = Depends(require_auth),
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationActionResponse:
    """Decline an invitation."""
    try:
        invitation = await service.decline(invitation_id, current_user.id)
    except DomainError as e:
        raise _to_http(e)

    return InvitationActionResponse(message="Invitation declined", invitation=invitation)


@router.delete(
    "/{invitation_id}",
    response_model=InvitationActionResponse,
    summary="Cancel invitation",
)
async def cancel_invitation(
    invitation_id: str,
    current_user: CurrentUser = Depends(require_auth),
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationActionResponse:
    """Withdraw a pending invitation the caller issued."""
    try:
        invitation = await service.cancel(invitation_id, current_user.id)
    except DomainError as e:
        raise _to_http(e)

    return InvitationActionResponse(message="Invitation cancelled", invitation=invitation)
