"""
Envelope schemas for standardized API responses.

Successful reads are wrapped as ``{"data": ...}``; failures as
``{"error": {"code", "message", "details"}}``.
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class SuccessResponse(BaseModel, Generic[T]):
    data: T


class ErrorResponse(BaseModel):
    error: dict[str, Any]
