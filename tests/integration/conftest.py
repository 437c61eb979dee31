# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Fixtures for API tests.

The application is built with create_app() and driven in-process through
httpx. Database, event bus and hub dependencies are overridden so each
test gets its own SQLite file and fresh in-memory components.
"""

from collections.abc import AsyncGenerator, Callable

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from learnhub.api import create_app
from learnhub.api.dependencies import get_bus, get_db, get_hub
from learnhub.core.config import get_settings
from learnhub.domains.auth.jwt import JWTManager
from learnhub.infrastructure.database.models import User
from learnhub.infrastructure.events import EventBus
from learnhub.infrastructure.realtime import BroadcastHub


@pytest.fixture
def hub() -> BroadcastHub:
    """Fresh broadcast hub."""
    return BroadcastHub()


@pytest.fixture
def app(
    session_factory: async_sessionmaker[AsyncSession],
    event_bus: EventBus,
    hub: BroadcastHub,
) -> FastAPI:
    """Create the application with test dependencies."""
    app = create_app()

    async def _get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_bus] = lambda: event_bus
    app.dependency_overrides[get_hub] = lambda: hub
    return app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the application."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def auth_headers() -> Callable[[User], dict[str, str]]:
    """Build Authorization headers for a persisted user."""
    manager = JWTManager(get_settings().jwt)

    def _headers(user: User) -> dict[str, str]:
        token = manager.create_access_token(
            user_id=user.id,
            user_type=user.role,
            roles=[user.role],
            email=user.email,
            name=user.name,
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers
