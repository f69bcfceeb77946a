"""
Pytest configuration and fixtures for the Haven daily brief.
"""

from datetime import datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

import haven.models  # noqa: F401  registers every table on Base.metadata
from haven.db.session import Base
from haven.services.brief_repository import BriefRepository

# Tuesday 24 February 2026, 09:00 UTC
FIXED_NOW = datetime(2026, 2, 24, 9, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def async_engine(tmp_path):
    """File-backed SQLite engine so concurrent sessions see the same data."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'haven_test.db'}",
        echo=False,
        poolclass=NullPool,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine):
    """Session factory handed to the repository under test."""
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def repository(session_factory):
    return BriefRepository(session_factory)


@pytest.fixture
def seed(session_factory):
    """Persist factory-built rows and return them."""

    async def _seed(*rows):
        async with session_factory() as session:
            session.add_all(rows)
            await session.commit()
        return rows

    return _seed


@pytest.fixture
def fixed_now():
    return FIXED_NOW
