"""
reportsonic/core/schemas.py

Core Schemas

Defines core Pydantic models used across the application, including:
- Generic paginated response schema.
- Generic message and error response schemas.
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field


# Define a type variable for the items in the paginated response
T = TypeVar("T")


class PaginatedResponse(BaseModel, Generic[T]):
    """
    Generic schema for paginated list responses.
    """

    total_count: int = Field(..., description="Total number of items available")
    has_next_page: bool = Field(..., description="Indicates if there are more items available")
    items: list[T] = Field(..., description="List of items for the current page")


class MessageResponse(BaseModel):
    """
    Generic response schema for simple success or informational messages.
    """

    message: str = Field(..., description="Response message")


class SuccessMessageResponse(MessageResponse):
    success: bool = Field(True, description="Operation outcome")


class ErrorResponse(BaseModel):
    """
    Shape of every error body returned by the API.
    """

    error: str = Field(..., description="Human readable error message")


# Documented on every router; the handlers in core/exceptions.py produce this body
ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    code: {"model": ErrorResponse} for code in (400, 401, 403, 404, 500)
}
