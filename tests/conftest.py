"""Pytest configuration and fixtures."""

import itertools
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from storycatalog.infrastructure.database import get_session
from storycatalog.infrastructure.metrics_log import MetricsLog
from storycatalog.infrastructure.models import Base, GenreModel, StoryModel
from storycatalog.main import app

# Test database URL (use SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

BASE_TIME = datetime(2024, 1, 1, tzinfo=UTC)


@pytest.fixture(autouse=True)
def metrics_log(tmp_path, monkeypatch) -> MetricsLog:
    """Point the process-wide metrics log at a temp file."""
    log = MetricsLog(tmp_path / "metrics.csv")
    monkeypatch.setattr("storycatalog.infrastructure.metrics_log._metrics_log", log)
    return log


@pytest.fixture
async def test_engine():
    """Create test database engine."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def test_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_story(test_session):
    """Factory inserting published stories; story N is updated N hours after BASE_TIME."""
    counter = itertools.count(1)

    async def _make(**overrides) -> StoryModel:
        n = next(counter)
        values = {
            "title": f"Story {n}",
            "slug": f"story-{n}",
            "is_published": True,
            "created_at": BASE_TIME + timedelta(hours=n),
            "updated_at": BASE_TIME + timedelta(hours=n),
        }
        values.update(overrides)
        story = StoryModel(**values)
        test_session.add(story)
        await test_session.flush()
        return story

    return _make


@pytest.fixture
def make_genre(test_session):
    """Factory inserting genres."""

    async def _make(name: str, slug: str | None = None) -> GenreModel:
        genre = GenreModel(name=name, slug=slug or name.lower())
        test_session.add(genre)
        await test_session.flush()
        return genre

    return _make


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client backed by the SQLite test database."""

    async def override_get_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
