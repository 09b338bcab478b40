"""Shared test fixtures."""

from collections.abc import AsyncIterator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from health_context.core.config import Settings
from health_context.models.base import Base
from health_context.services.health_data import HealthDataAggregator
from health_context.services.query_analyzer import QueryAnalyzer
from tests.fixtures.fakes import fixed_clock


@pytest.fixture
def test_settings() -> Settings:
    """Settings with defaults only (no .env, no API key)."""
    return Settings(_env_file=None, google_api_key=None)


@pytest.fixture
def analyzer() -> QueryAnalyzer:
    """Analyzer with the default vocabulary and a fixed clock."""
    return QueryAnalyzer(clock=fixed_clock)


@pytest.fixture
async def async_engine(tmp_path):
    """Create async SQLite engine for testing.

    File-backed rather than in-memory so concurrent fetches each get their
    own connection.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'health.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_maker(async_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def async_session(session_maker) -> AsyncIterator[AsyncSession]:
    """Create async session for seeding data."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def aggregator(session_maker, test_settings) -> HealthDataAggregator:
    """Aggregator reading from the test database."""
    return HealthDataAggregator(session_maker, test_settings)
