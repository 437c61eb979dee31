# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers for LearnHub.

This package contains cross-cutting utilities:
- logging: Structured logging with structlog
- datetime: Timezone-aware datetime operations
- identifiers: UUID validation and generation
"""

from learnhub.utils.datetime import (
    ensure_utc,
    is_expired,
    utc_now,
)
from learnhub.utils.identifiers import new_id, parse_id
from learnhub.utils.logging import bind_context, clear_context, get_logger, setup_logging

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    # Datetime
    "utc_now",
    "ensure_utc",
    "is_expired",
    # Identifiers
    "new_id",
    "parse_id",
]
