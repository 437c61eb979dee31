# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for logging setup."""

import logging
from collections.abc import Iterator

import pytest
import structlog
from structlog.testing import capture_logs

from learnhub.core.config.settings import Settings
from learnhub.utils.logging import bind_context, clear_context, get_logger, setup_logging


@pytest.fixture(autouse=True)
def reset_structlog() -> Iterator[None]:
    """Restore structlog defaults and an empty context after each test."""
    yield
    clear_context()
    structlog.reset_defaults()


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_levels_follow_settings(self) -> None:
        """Test the package level comes from settings and noisy loggers are quieted."""
        setup_logging(Settings(log_level="INFO"))

        assert logging.getLogger("learnhub").level == logging.INFO
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
        assert logging.getLogger("apscheduler").level == logging.WARNING


class TestStructuredLogger:
    """Tests for keyword-field loggers and request context."""

    def test_logger_carries_module_name(self) -> None:
        """Test get_logger tags every entry with the module name."""
        with capture_logs() as logs:
            get_logger("learnhub.triggers").info("Email triggers registered", events=4)

        assert logs == [
            {
                "logger": "learnhub.triggers",
                "events": 4,
                "event": "Email triggers registered",
                "log_level": "info",
            }
        ]

    def test_bind_and_clear_context(self) -> None:
        """Test request context is bound and cleared."""
        bind_context(user_id="u1")
        assert structlog.contextvars.get_contextvars() == {"user_id": "u1"}

        clear_context()
        assert structlog.contextvars.get_contextvars() == {}
