"""
core/exceptions.py

Defines the standard error response format for the API and the
application-wide exception handlers that render every failure as
`{"error": "<message>"}`.
"""

import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class APIError(HTTPException):
    """Custom exception with standardized error response and optional extra fields."""

    def __init__(
        self,
        status_code: int,
        message: str,
        headers: dict[str, Any] | None = None,
        extra: dict[str, Any] | None = None,
    ):
        super().__init__(
            status_code=status_code,
            detail={"error": message, **(extra or {})},
            headers=headers,
        )


def error_body(detail: Any) -> dict[str, Any]:
    """Normalizes an HTTPException detail into the `{"error": ...}` envelope."""
    if isinstance(detail, dict) and "error" in detail:
        return detail
    return {"error": detail if isinstance(detail, str) else str(detail)}


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = str(first.get("msg", "Invalid request"))
    return f"{location}: {message}" if location else message


# ---------------------------------------------------
# Handlers
# ---------------------------------------------------
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        body: dict[str, Any] = {"error": "Method not allowed"}
    elif exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        body = {"error": "Not found"}
    else:
        body = error_body(exc.detail)

    if exc.status_code >= 500:
        logger.error(f"[HTTP] {request.method} {request.url.path} -> {exc.status_code}: {body['error']}")
    else:
        logger.info(f"[HTTP] {request.method} {request.url.path} -> {exc.status_code}: {body['error']}")

    return JSONResponse(
        status_code=exc.status_code,
        content=body,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = _validation_message(exc)
    logger.info(f"[VALIDATION] {request.method} {request.url.path}: {message}")
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"[UNHANDLED] {request.method} {request.url.path}: {type(exc).__name__}: {exc}",
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the JSON error handlers to the application."""
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)
