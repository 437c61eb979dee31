# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Periodic maintenance jobs."""

from learnhub.infrastructure.background.scheduler import (
    EXPIRE_JOB_ID,
    RECONCILE_JOB_ID,
    MaintenanceScheduler,
    ScheduledJob,
)

__all__ = [
    "MaintenanceScheduler",
    "ScheduledJob",
    "RECONCILE_JOB_ID",
    "EXPIRE_JOB_ID",
]
