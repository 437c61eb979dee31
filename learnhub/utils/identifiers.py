# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Identifier helpers.

Entity ids are UUIDs stored in their canonical string form.
"""

from uuid import UUID, uuid4

from learnhub.core.errors import InvalidIdentifierError


def new_id() -> str:
    """Generate a new entity id."""
    return str(uuid4())


def parse_id(value: str | UUID, label: str = "id") -> str:
    """Validate an identifier and return its canonical string form.

    Args:
        value: Raw identifier from a path, body or token.
        label: Name used in the error message.

    Returns:
        Lower-case hyphenated UUID string.

    Raises:
        InvalidIdentifierError: If the value is not a UUID.
    """
    if isinstance(value, UUID):
        return str(value)
    try:
        return str(UUID(str(value)))
    except (TypeError, ValueError, AttributeError):
        raise InvalidIdentifierError(f"Invalid {label}: {value!r}") from None
