"""Response helpers for the Raid Ledger API.

Reads are wrapped in a single ``{"data": ...}`` envelope; errors use
``{"error": {"code", "message", "details"}}``.
"""

from typing import Any

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from .logging import get_logger

logger = get_logger(__name__)


def to_serializable(obj):
    """Recursively convert Pydantic models, lists, and dicts to serializable types."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json")
    if isinstance(obj, list):
        return [to_serializable(item) for item in obj]
    if isinstance(obj, dict):
        return {k: to_serializable(v) for k, v in obj.items()}
    return obj


class LedgerResponse:
    """Consistent JSON envelopes for API endpoints."""

    @staticmethod
    def success(data: Any, status_code: int = status.HTTP_200_OK) -> JSONResponse:
        content = jsonable_encoder({"data": to_serializable(data)})
        logger.debug("Creating success response", extra={"status_code": status_code, "data_type": type(data).__name__})
        return JSONResponse(content=content, status_code=status_code)
