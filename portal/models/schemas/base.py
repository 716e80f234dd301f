"""
Base schemas used across the application.
"""
from typing import Any, Generic, Optional, TypeVar
from pydantic import BaseModel, Field

T = TypeVar("T")

class Envelope(BaseModel, Generic[T]):
    """Success body wrapper: every endpoint answers ``{"response": ...}``."""
    response: T

class ErrorResponse(BaseModel):
    """Error body produced by the exception handlers.

    This is the payload the client layer carries in ``ApiError.payload``.
    """
    success: bool = False
    message: Any = Field(description="Human readable reason (or validation detail list)")
    details: Optional[Any] = None
    request_id: str = "unknown"

class MessagePayload(BaseModel):
    message: str
