"""
Database connection and session management for the Raid Ledger backend.

Lazily builds one async engine and session factory per process.
"""

import logging
import os

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from .config import get_settings_instance
from .exceptions import DatabaseConnectionError, DatabaseSessionError

logger = logging.getLogger(__name__)

# Create declarative base
Base = declarative_base()

# Global async engine and session factory - lazy initialization
_async_engine: AsyncEngine | None = None
_AsyncSessionLocal: async_sessionmaker[AsyncSession] | None = None


def get_database_url() -> str:
    env_url = os.getenv("RAIDLEDGER_DATABASE_URL")
    if env_url:
        return env_url
    try:
        return get_settings_instance().database_url
    except Exception:
        logger.error("Could not determine database URL from environment or settings", exc_info=True)
        raise DatabaseConnectionError(
            "Could not determine database URL. Please set RAIDLEDGER_DATABASE_URL."
        )


def _redacted(url: str) -> str:
    """Host/database part of a URL, credentials dropped."""
    return url.split("@", 1)[1] if "@" in url else url.split("://", 1)[0]


def get_async_engine() -> AsyncEngine:
    global _async_engine  # noqa: PLW0603
    if _async_engine is None:
        database_url = get_database_url()
        settings = get_settings_instance()
        logger.debug("Database configuration: %s", _redacted(database_url))
        engine_kwargs: dict = {"pool_pre_ping": True, "echo": False}
        # SQLite uses a static/singleton pool that rejects sizing arguments
        if not database_url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=settings.database_pool_size,
                max_overflow=settings.database_max_overflow,
                pool_timeout=settings.database_pool_timeout,
                pool_recycle=settings.database_pool_recycle,
            )
        try:
            _async_engine = create_async_engine(database_url, **engine_kwargs)
        except Exception as e:
            logger.error(f"Failed to create async database engine: {e}")
            raise DatabaseConnectionError(f"engine creation: {e}")
    return _async_engine


def get_async_session_local() -> async_sessionmaker[AsyncSession]:
    global _AsyncSessionLocal  # noqa: PLW0603
    if _AsyncSessionLocal is None:
        _AsyncSessionLocal = async_sessionmaker(
            bind=get_async_engine(),
            expire_on_commit=False,
            autoflush=False,
            class_=AsyncSession,
        )
    return _AsyncSessionLocal



async def init_db() -> None:
    """Create tables for every registered model that does not exist yet."""
    try:
        from ..models.registry import register_all_models

        register_all_models()
        engine = get_async_engine()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise DatabaseSessionError(f"database initialization: {e}")


async def close_db() -> None:
    global _async_engine, _AsyncSessionLocal  # noqa: PLW0603
    if _async_engine is None:
        return
    try:
        await _async_engine.dispose()
        logger.debug("Database connections closed")
    except Exception as e:
        logger.error(f"Error closing database connections: {e}")
    finally:
        _async_engine = None
        _AsyncSessionLocal = None


async def check_db_connection() -> bool:
    """Check if database connection is working."""
    try:
        async with get_async_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return False
