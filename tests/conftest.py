"""Shared test fixtures for settings, the async database, and sample manifests."""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from pack_manager.core.config import Settings
from pack_manager.models.base import Base

SAMPLE_MANIFEST = """\
schema_version: "1.0.0"
last_updated: "2025-09-01"
name: Lab handbook
description: Reusable lab wiki content
author: Lab team
pages:
  MainPage:
    file: pages/MainPage.wiki
    last_updated: "2025-08-30"
  PubTemplate:
    file: templates/Pub.wiki
  Onboarding:
    file: pages/Onboarding.wiki
packs:
  base:
    version: "1.0.0"
    description: Shared templates
    pages: [PubTemplate]
    tags: [core]
  publication:
    version: "1.2.0"
    description: Publications
    pages: [MainPage, PubTemplate]
    depends_on: [base]
    tags: [research, core]
  onboarding:
    version: "0.3.1"
    pages: [Onboarding]
    depends_on: [base, publication]
"""


@pytest.fixture
def settings() -> Settings:
    """Test application settings."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        database_url="sqlite+aiosqlite:///:memory:",
        fetcher_backend="worktree",
        worktree_root="./does-not-exist",
    )


@pytest.fixture
def sample_manifest_text() -> str:
    return SAMPLE_MANIFEST


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """Create an in-memory async SQLite engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, expire_on_commit=False)


@pytest.fixture
async def async_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession]:
    """Create a per-test async session."""
    async with session_factory() as session:
        yield session


class FakeClock:
    """Deterministic clock that advances one second per call."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 1, 12, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        current = self.now
        self.now += timedelta(seconds=1)
        return current


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
