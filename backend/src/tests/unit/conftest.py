"""
Shared pytest fixtures and path setup for unit tests.
"""

import os
import sys
from pathlib import Path

# Set required environment variables BEFORE any raidledger imports to prevent
# Pydantic Settings validation errors. These are test-only defaults.
os.environ.setdefault("RAIDLEDGER_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("RAIDLEDGER_ENVIRONMENT", "test")
os.environ.setdefault("RAIDLEDGER_API_KEY", "test-api-key")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-unit-tests")

# Add backend/src to sys.path so raidledger.* imports work when running pytest from repo root.
PROJECT_SRC = Path(__file__).resolve().parents[2]
if str(PROJECT_SRC) not in sys.path:
    sys.path.insert(0, str(PROJECT_SRC))

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool


@pytest_asyncio.fixture
async def session_factory():
    """Session factory over a fresh in-memory SQLite database with all tables created."""
    from raidledger.models import Base

    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield async_sessionmaker(engine, expire_on_commit=False, autoflush=False)
    finally:
        await engine.dispose()


@pytest.fixture
def make_manifest():
    """Build a PluginManifest with sensible defaults for the fields a test doesn't care about."""
    from raidledger.plugins.manifest import PluginManifest

    def _make(slug: str, **overrides):
        data = {"slug": slug, "name": slug.replace("-", " ").title(), "version": "1.0.0"}
        data.update(overrides)
        return PluginManifest(**data)

    return _make


@pytest.fixture
def event_log():
    """Subscribe a recorder to every lifecycle event on a bus; returns (attach, events)."""
    from raidledger.core.events import PluginEvent

    events = []

    def attach(bus):
        for name in PluginEvent:
            bus.subscribe(name, events.append)
        return events

    return attach
