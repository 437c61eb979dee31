# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for LearnHub.

Example:
    >>> from learnhub.core.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.environment)
    'development'
"""

from learnhub.core.config.settings import (
    CORSSettings,
    DatabaseSettings,
    EventSettings,
    InvitationSettings,
    JWTSettings,
    MaintenanceSettings,
    RealtimeSettings,
    Settings,
    SMTPSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "clear_settings_cache",
    # Subsettings
    "DatabaseSettings",
    "JWTSettings",
    "SMTPSettings",
    "InvitationSettings",
    "RealtimeSettings",
    "EventSettings",
    "MaintenanceSettings",
    "CORSSettings",
]
