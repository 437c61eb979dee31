# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Logging setup for the API process.

Service modules log through ``logging.getLogger(__name__)``. Components
that attach key/value fields (email triggers) use ``get_logger``. The
request middleware binds the caller's user id for the life of a request.
"""

import logging
import sys
from typing import TYPE_CHECKING

import structlog
from structlog.types import FilteringBoundLogger

if TYPE_CHECKING:
    from learnhub.core.config.settings import Settings

# Chatty below WARNING: server access lines, SQL echo, SMTP and job runs
_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite", "apscheduler", "aiosmtplib")

bind_context = structlog.contextvars.bind_contextvars
clear_context = structlog.contextvars.clear_contextvars


def setup_logging(settings: "Settings") -> None:
    """Configure stdlib logging and structlog from settings.

    Development gets colored console lines, every other environment one
    JSON object per line.
    """
    level = logging.getLevelName(settings.log_level.upper())
    if settings.is_development or settings.debug:
        renderer = structlog.dev.ConsoleRenderer(colors=True)
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s", stream=sys.stdout)
    logging.getLogger("learnhub").setLevel(level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> FilteringBoundLogger:
    """Return a structlog logger that accepts keyword fields."""
    return structlog.get_logger().bind(logger=name)
