"""Logging configuration for the Raid Ledger backend.

Human-readable colored output in development, JSON lines for production
(``RAIDLEDGER_LOG_FORMAT=json``). An optional plain file handler mirrors the
console when ``RAIDLEDGER_LOG_DIR`` is set.
"""

import json
import logging
import os
import socket
import sys
import traceback
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, ClassVar

from .config import get_settings_instance

# Guard against double configuration (import time + lifespan startup)
_LOGGING_CONFIGURED = False

# Attributes every LogRecord carries; anything else came in through ``extra=``
_RESERVED_RECORD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "getMessage",
    }
)


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _RESERVED_RECORD_ATTRS}


class ColoredFormatter(logging.Formatter):
    """Colored formatter for human-readable logs."""

    COLORS: ClassVar[dict[str, str]] = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",
    }

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors and sys.stdout.isatty()

    def format(self, record: logging.LogRecord) -> str:
        level_color = self.COLORS.get(record.levelname, "") if self.use_colors else ""
        reset_color = self.COLORS["RESET"] if self.use_colors else ""

        timestamp = datetime.fromtimestamp(record.created, UTC).strftime("%Y-%m-%d %H:%M:%S")
        log_line = f"{timestamp} - {level_color}{record.levelname}{reset_color} - {record.name} - {record.getMessage()}"

        # Short scalar extras only; nested payloads belong in JSON output
        extras = [
            f"{key}={value}"
            for key, value in _extra_fields(record).items()
            if value is not None and isinstance(value, (str, int, float, bool)) and len(str(value)) < 100
        ]
        if extras:
            log_line += f" | {' '.join(extras)}"

        if record.exc_info:
            log_line += f"\n{level_color}Exception:{reset_color}\n" + "".join(traceback.format_exception(*record.exc_info))

        return log_line


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging (production/monitoring)."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            exc_type = record.exc_info[0]
            log_data["exception"] = {
                "type": exc_type.__name__ if exc_type is not None else "Unknown",
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info),
            }

        log_data.update(_extra_fields(record))
        return json.dumps(log_data, default=str)


def setup_logging() -> None:
    """Configure root, package and third-party loggers once per process."""
    global _LOGGING_CONFIGURED  # noqa: PLW0603
    if _LOGGING_CONFIGURED:
        return

    settings = get_settings_instance()
    level = getattr(logging, settings.log_level)

    use_colors = settings.environment == "development" and sys.stdout.isatty()
    formatter = JSONFormatter() if settings.log_format == "json" else ColoredFormatter(use_colors=use_colors)

    handlers: list[logging.Handler] = []
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    if settings.log_dir:
        log_dir = Path(settings.log_dir)
        os.makedirs(log_dir, exist_ok=True)
        # Hostname in the filename keeps replicas sharing a volume apart
        file_handler = logging.FileHandler(log_dir / f"raidledger_{socket.gethostname()}.log", encoding="utf-8")
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)
    for handler in handlers:
        root_logger.addHandler(handler)

    # SQLAlchemy logs every statement at INFO; keep it to errors
    for logger_name in ("sqlalchemy", "sqlalchemy.engine", "sqlalchemy.pool", "sqlalchemy.orm"):
        logging.getLogger(logger_name).setLevel(logging.ERROR)

    external_lib_level = min(level, logging.WARNING)
    for logger_name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        uvicorn_log = logging.getLogger(logger_name)
        uvicorn_log.setLevel(level)
        uvicorn_log.handlers.clear()
        uvicorn_log.propagate = True
    for logger_name in ("httpx", "httpcore", "asyncio"):
        logging.getLogger(logger_name).setLevel(max(external_lib_level, logging.WARNING))

    logging.getLogger("raidledger").setLevel(level)

    logging.getLogger(__name__).info(
        "Logging configured",
        extra={
            "log_level": settings.log_level,
            "log_format": settings.log_format,
            "environment": settings.environment,
            "use_colors": use_colors,
        },
    )
    _LOGGING_CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the package namespace."""
    if name.startswith("raidledger"):
        return logging.getLogger(name)
    return logging.getLogger(f"raidledger.{name}")
