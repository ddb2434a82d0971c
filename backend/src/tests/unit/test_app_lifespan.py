"""Unit tests for the application lifespan: startup and shutdown of the database and plugin host."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI

from raidledger import main
from raidledger.plugins.host import get_plugin_host


@pytest.fixture
def lifespan_deps():
    host = MagicMock()
    host.start = AsyncMock()
    host.stop = AsyncMock()
    with (
        patch.object(main, "setup_logging"),
        patch.object(main, "init_db", new=AsyncMock()) as init_db,
        patch.object(main, "close_db", new=AsyncMock()) as close_db,
        patch.object(main, "get_async_session_local"),
        patch.object(main, "PluginHost", return_value=host),
    ):
        yield {"host": host, "init_db": init_db, "close_db": close_db}


class TestLifespan:
    @pytest.mark.asyncio
    async def test_clean_start_and_shutdown(self, lifespan_deps):
        app = FastAPI()
        async with main.lifespan(app):
            assert app.state.plugin_host is lifespan_deps["host"]
            assert get_plugin_host() is lifespan_deps["host"]

        lifespan_deps["host"].stop.assert_awaited_once()
        lifespan_deps["close_db"].assert_awaited_once()

    @pytest.mark.asyncio
    async def test_host_start_failure_still_closes_database(self, lifespan_deps):
        lifespan_deps["host"].start.side_effect = RuntimeError("startup failed")

        with pytest.raises(RuntimeError, match="startup failed"):
            async with main.lifespan(FastAPI()):
                pass

        lifespan_deps["close_db"].assert_awaited_once()

    @pytest.mark.asyncio
    async def test_init_db_failure_skips_host_stop(self, lifespan_deps):
        lifespan_deps["init_db"].side_effect = RuntimeError("database unreachable")

        with pytest.raises(RuntimeError, match="database unreachable"):
            async with main.lifespan(FastAPI()):
                pass

        lifespan_deps["host"].stop.assert_not_awaited()
        lifespan_deps["close_db"].assert_awaited_once()
