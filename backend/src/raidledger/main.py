"""
Raid Ledger backend application.

FastAPI app factory and lifespan: logging, database, the plugin host and the
admin plugin routes.
"""

import traceback
import uuid
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import plugins_admin_router
from .core.config import get_settings_instance
from .core.database import check_db_connection, close_db, get_async_session_local, init_db
from .core.exceptions import LedgerException
from .core.logging import get_logger, setup_logging
from .plugins.host import PluginHost, set_plugin_host

logger = get_logger(__name__)


def generate_error_id() -> str:
    """Generate a unique error ID for tracking."""
    return f"ERR-{uuid.uuid4().hex[:8].upper()}"


def get_request_context(request: Request) -> dict[str, Any]:
    """Extract relevant context from request for error logging."""
    return {
        "method": request.method,
        "path": request.url.path,
        "query_params": dict(request.query_params),
        "client": request.client.host if request.client else None,
    }


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging()
    settings = get_settings_instance()

    logger.info("Starting %s", settings.app_name)
    logger.info("Version: %s | environment: %s", settings.version, settings.environment)

    host: PluginHost | None = None
    try:
        await init_db()

        host = PluginHost(get_async_session_local(), settings)
        await host.start()
        set_plugin_host(host)
        app.state.plugin_host = host

        yield
    finally:
        logger.info("Shutting down %s", settings.app_name)
        if host is not None:
            await host.stop()
            set_plugin_host(None)
        await close_db()


def setup_exception_handlers(app: FastAPI) -> None:
    """Render LedgerException, HTTPException and unexpected errors as error envelopes."""
    settings = get_settings_instance()

    @app.exception_handler(LedgerException)
    async def ledger_exception_handler(request: Request, exc: LedgerException):
        error_id = generate_error_id() if exc.status_code >= 500 else None

        if exc.status_code >= 500:
            logger.error(
                "Server error",
                extra={
                    "error_id": error_id,
                    "error_code": exc.error_code,
                    "error_message": exc.message,
                    "details": exc.details,
                    "request_context": get_request_context(request),
                },
            )
        elif exc.status_code >= 400:
            logger.warning(
                "Client error",
                extra={
                    "error_code": exc.error_code,
                    "error_message": exc.message,
                    "details": exc.details,
                    "request_context": get_request_context(request),
                },
            )

        error_response = {"error": {"code": exc.error_code, "message": exc.message, "details": exc.details}}
        if error_id:
            error_response["error"]["error_id"] = error_id
        return JSONResponse(status_code=exc.status_code, content=error_response)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        if exc.status_code >= 400:
            logger.warning(
                "HTTP client error",
                extra={
                    "status_code": exc.status_code,
                    "detail": exc.detail,
                    "request_context": get_request_context(request),
                },
            )
        error_response = {"error": {"code": f"HTTP_{exc.status_code}", "message": exc.detail, "details": {}}}
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response,
            headers=getattr(exc, "headers", None) or None,
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        error_id = generate_error_id()
        include_traceback = settings.debug or settings.environment == "development"
        logger.error(
            "Unhandled exception",
            extra={
                "error_id": error_id,
                "exception_type": type(exc).__name__,
                "exception_message": str(exc),
                "request_context": get_request_context(request),
            },
            exc_info=exc,
        )

        error_response = {
            "error": {
                "code": "INTERNAL_SERVER_ERROR",
                "message": "Internal server error",
                "error_id": error_id,
                "details": {},
            }
        }
        if include_traceback:
            error_response["error"]["details"] = {
                "exception_type": type(exc).__name__,
                "exception_message": str(exc),
                "traceback": traceback.format_exception(exc),
            }
        return JSONResponse(status_code=500, content=error_response)


def setup_routes(app: FastAPI) -> None:
    settings = get_settings_instance()
    app.include_router(plugins_admin_router, prefix=settings.api_prefix)

    @app.get("/health", include_in_schema=False)
    async def health():
        database_ok = await check_db_connection()
        return JSONResponse(
            status_code=200 if database_ok else 503,
            content={"status": "ok" if database_ok else "degraded", "database": database_ok},
        )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings_instance()
    app = FastAPI(
        title=settings.app_name,
        description="Raid Ledger API",
        version=settings.version,
        debug=settings.debug,
        docs_url="/docs" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    setup_exception_handlers(app)
    setup_routes(app)
    return app


def main() -> None:
    import uvicorn

    settings = get_settings_instance()
    uvicorn.run(
        "raidledger.main:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
