# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

Service and API tests run against a throwaway SQLite file through
aiosqlite, so each test gets its own schema and independent sessions can
race against the same rows.
"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from pathlib import Path

import pytest
import pytest_asyncio
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from learnhub.core.config import InvitationSettings, JWTSettings
from learnhub.domains.auth.jwt import JWTManager
from learnhub.infrastructure.database.connection import build_sessionmaker
from learnhub.infrastructure.database.models import Base, Course, User, UserRole
from learnhub.infrastructure.events import EventBus, EventData
from learnhub.utils.identifiers import new_id


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Create a SQLite database with the full schema."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'learnhub.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory configured like the application's."""
    return build_sessionmaker(engine)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Provide a session for one test."""
    async with session_factory() as session:
        yield session


# =============================================================================
# Entity Factories
# =============================================================================


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    """Factory that persists a user."""

    async def _make(
        role: UserRole = UserRole.STUDENT,
        name: str | None = None,
        email: str | None = None,
    ) -> User:
        user_id = new_id()
        user = User(
            id=user_id,
            email=email or f"{role.value}-{user_id[:8]}@example.com",
            name=name or f"{role.value.title()} {user_id[:4]}",
            role=role.value,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _make


@pytest.fixture
def make_course(db_session: AsyncSession) -> Callable[..., Awaitable[Course]]:
    """Factory that persists a course owned by the given user."""

    async def _make(owner: User, title: str = "Algebra I", **aggregates: object) -> Course:
        course = Course(id=new_id(), title=title, created_by=owner.id, **aggregates)
        db_session.add(course)
        await db_session.commit()
        return course

    return _make


@pytest_asyncio.fixture
async def teacher(make_user) -> User:
    """A teacher account."""
    return await make_user(UserRole.TEACHER, name="Ada Teacher")


@pytest_asyncio.fixture
async def student(make_user) -> User:
    """A student account."""
    return await make_user(UserRole.STUDENT, name="Sam Student", email="sam@example.com")


@pytest_asyncio.fixture
async def course(make_course, teacher: User) -> Course:
    """A course owned by the teacher fixture."""
    return await make_course(teacher, title="Algebra I")


# =============================================================================
# Event Fixtures
# =============================================================================


@pytest.fixture
def event_bus() -> EventBus:
    """Fresh event bus with a short handler timeout."""
    return EventBus(handler_timeout=1.0)


@pytest.fixture
def published(event_bus: EventBus) -> list[EventData]:
    """Every event published on the event_bus fixture, in order."""
    events: list[EventData] = []

    async def record(event: EventData) -> None:
        events.append(event)

    event_bus.subscribe("*", record)
    return events


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def invitation_settings() -> InvitationSettings:
    """Invitation settings with the default lifetime."""
    return InvitationSettings(ttl_days=7)


@pytest.fixture
def jwt_settings() -> JWTSettings:
    """JWT settings with a test secret."""
    return JWTSettings(secret_key=SecretStr("test-secret-key-for-jwt-testing"))


@pytest.fixture
def jwt_manager(jwt_settings: JWTSettings) -> JWTManager:
    """JWT manager with test settings."""
    return JWTManager(jwt_settings)
