# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Admin maintenance API endpoints.

All endpoints require the admin role.

- POST /fix-enrollment-counts - Recompute course aggregates
- POST /expire-invitations - Flip stale pending invitations to expired
- GET /realtime/stats - Live hub and event bus counters
"""

import logging

from fastapi import APIRouter, Depends

from learnhub.api.dependencies import (
    get_bus,
    get_hub,
    get_invitation_service,
    get_reconciler,
    require_admin,
)
from learnhub.api.middleware.auth import CurrentUser
from learnhub.domains.enrollment import EnrollmentReconciler
from learnhub.domains.invitation import InvitationService
from learnhub.infrastructure.events import EventBus
from learnhub.infrastructure.realtime import BroadcastHub
from learnhub.models.admin import (
    ExpireInvitationsResponse,
    FixEnrollmentCountsResponse,
    RealtimeStatsResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/fix-enrollment-counts",
    response_model=FixEnrollmentCountsResponse,
    summary="Reconcile course aggregates",
    description=(
        "Recompute enrollment_count, average_rating and total_ratings for "
        "every course from its active memberships."
    ),
)
async def fix_enrollment_counts(
    current_user: CurrentUser = Depends(require_admin),
    reconciler: EnrollmentReconciler = Depends(get_reconciler),
) -> FixEnrollmentCountsResponse:
    """Run a reconciliation pass over all courses.

    Args:
        current_user: Authenticated admin.
        reconciler: Aggregate reconciler.

    Returns:
        Number of courses examined and the ones that changed.
    """
    logger.info("Enrollment count reconciliation requested by %s", current_user.id)
    return await reconciler.reconcile_all()


@router.post(
    "/expire-invitations",
    response_model=ExpireInvitationsResponse,
    summary="Expire stale invitations",
)
async def expire_invitations(
    current_user: CurrentUser = Depends(require_admin),
    service: InvitationService = Depends(get_invitation_service),
) -> ExpireInvitationsResponse:
    """Persist the expired state of pending invitations past their deadline."""
    logger.info("Invitation expiry sweep requested by %s", current_user.id)
    return ExpireInvitationsResponse(expired=await service.expire_stale())


@router.get(
    "/realtime/stats",
    response_model=RealtimeStatsResponse,
    summary="Live channel statistics",
)
async def realtime_stats(
    current_user: CurrentUser = Depends(require_admin),
    hub: BroadcastHub = Depends(get_hub),
    event_bus: EventBus = Depends(get_bus),
) -> RealtimeStatsResponse:
    """Return broadcast hub and event bus counters."""
    return RealtimeStatsResponse(hub=hub.get_stats(), events=event_bus.get_stats())
