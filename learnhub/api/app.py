# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI Application Factory.

This module provides the main application factory for the LearnHub API.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from learnhub.api.middleware.auth import AuthMiddleware
from learnhub.api.routes import health
from learnhub.api.v1 import router as v1_router
from learnhub.core.config import get_settings
from learnhub.infrastructure.background import MaintenanceScheduler
from learnhub.infrastructure.database.connection import (
    close_database,
    create_tables,
    get_sessionmaker,
    init_database,
)
from learnhub.infrastructure.events import get_event_bus
from learnhub.infrastructure.notifications import EmailDispatcher, EmailTriggers
from learnhub.infrastructure.realtime import RealtimeBridge, get_broadcast_hub
from learnhub.utils.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown events for the application.
    Initializes and cleans up:
    - Database connection pool
    - EventBus to BroadcastHub bridge
    - Email triggers
    - APScheduler maintenance jobs

    Args:
        app: The FastAPI application instance.

    Yields:
        None during application runtime.
    """
    settings = get_settings()
    setup_logging(settings)
    logger.info(
        "Starting %s API",
        settings.app_name,
        extra={"environment": settings.environment, "debug": settings.debug},
    )

    event_bus = get_event_bus()
    bridge = RealtimeBridge(event_bus, get_broadcast_hub())
    triggers = EmailTriggers(
        event_bus,
        EmailDispatcher(settings.smtp),
        settings.invitation.frontend_url,
    )
    scheduler: MaintenanceScheduler | None = None

    # =========================================================================
    # Startup
    # =========================================================================

    try:
        await init_database(settings)
        if settings.database.is_sqlite:
            await create_tables()
        logger.info("Database connection initialized")
    except Exception as e:
        logger.warning("Failed to initialize database connection: %s", str(e))

    try:
        bridge.start()
        logger.info("Realtime bridge started")
    except Exception as e:
        logger.warning("Failed to start realtime bridge: %s", str(e))

    try:
        triggers.start()
    except Exception as e:
        logger.warning("Failed to register email triggers: %s", str(e))

    try:
        scheduler = MaintenanceScheduler(settings, get_sessionmaker(), event_bus)
        await scheduler.start()
        app.state.scheduler = scheduler
        logger.info("Scheduler started")
    except Exception as e:
        logger.warning("Failed to start scheduler: %s", str(e))

    yield

    # =========================================================================
    # Shutdown
    # =========================================================================

    # Stop scheduler first (it may trigger events)
    if scheduler is not None:
        try:
            await scheduler.stop()
            logger.info("Scheduler stopped")
        except Exception as e:
            logger.warning("Error stopping scheduler: %s", str(e))

    # Let in-flight handlers finish before unsubscribing; each is timeout-bounded
    try:
        await event_bus.drain()
    except Exception as e:
        logger.warning("Error draining event handlers: %s", str(e))

    triggers.stop()
    bridge.stop()

    try:
        await close_database()
        logger.info("Database connection closed")
    except Exception as e:
        logger.warning("Error closing database connection: %s", str(e))

    logger.info("Shutting down %s API", settings.app_name)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    This factory function creates a new FastAPI instance with all
    middleware, routes, and configurations applied.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title=f"{settings.app_name} API",
        description="Course enrollment, invitations and live updates",
        version="1.0.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
        # Disable automatic redirects from /path to /path/
        # This prevents 307 redirects that lose Authorization headers
        redirect_slashes=False,
    )

    # =========================================================================
    # Middleware (order matters - last added is first executed)
    # =========================================================================

    app.add_middleware(AuthMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.origins_list,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=settings.cors.allow_methods,
        allow_headers=settings.cors.allow_headers,
    )

    # =========================================================================
    # Routes
    # =========================================================================
    app.include_router(health.router, tags=["Health"])
    app.include_router(v1_router)

    return app
