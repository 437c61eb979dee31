# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Error kinds shared by all domain services.

Each domain keeps its own exception hierarchy (``InvitationServiceError``,
``EnrollmentServiceError``, ...). Concrete errors additionally inherit one of
the kinds below so the API layer can map any of them to a stable HTTP status
without knowing every subclass.
"""

from fastapi import status


class DomainError(Exception):
    """Base class for business-rule violations surfaced to callers."""

    status_code: int = status.HTTP_400_BAD_REQUEST


class NotFoundError(DomainError):
    """Entity missing, or not visible to the caller."""

    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(DomainError):
    """Caller is not allowed to act on the entity."""

    status_code = status.HTTP_403_FORBIDDEN


class ConflictError(DomainError):
    """Operation contradicts current state."""

    status_code = status.HTTP_409_CONFLICT


class BadRequestError(DomainError):
    """Input is outside the accepted range."""

    status_code = status.HTTP_400_BAD_REQUEST


class InvalidIdentifierError(ConflictError):
    """Identifier is not a well-formed UUID."""

    pass
