"""
tests/core/test_errors.py

The `{"error": ...}` envelope, shared validators and app-level fallbacks.
"""

import pytest
from fastapi import status
from httpx import AsyncClient

from reportsonic.core.exceptions import APIError, error_body
from reportsonic.core.validators import is_valid_email, normalize_email, password_validator


def test_api_error_detail() -> None:
    error = APIError(status_code=status.HTTP_429_TOO_MANY_REQUESTS, message="Slow down", extra={"retry": 5})
    assert error.detail == {"error": "Slow down", "retry": 5}


@pytest.mark.parametrize(
    "detail, body",
    [
        ({"error": "Boom", "code": 1}, {"error": "Boom", "code": 1}),
        ("Plain text", {"error": "Plain text"}),
        ({"message": "other"}, {"error": "{'message': 'other'}"}),
    ],
)
def test_error_body(detail: object, body: dict) -> None:
    assert error_body(detail) == body


def test_password_validator() -> None:
    assert password_validator("abcdef") == "abcdef"
    with pytest.raises(ValueError, match="at least 6 characters"):
        password_validator("abc")


@pytest.mark.parametrize(
    "email, valid",
    [
        ("a@b.co", True),
        ("first.last@example.org", True),
        ("no-at.example.com", False),
        ("a@b", False),
        ("a b@c.de", False),
    ],
)
def test_is_valid_email(email: str, valid: bool) -> None:
    assert is_valid_email(email) is valid


def test_normalize_email() -> None:
    assert normalize_email("  Mixed.Case@Example.COM ") == "mixed.case@example.com"


@pytest.mark.asyncio
async def test_unknown_route(async_client: AsyncClient) -> None:
    response = await async_client.get("/api/nowhere")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"error": "Not found"}


@pytest.mark.asyncio
async def test_method_not_allowed(async_client: AsyncClient) -> None:
    response = await async_client.put("/health")
    assert response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED
    assert response.json() == {"error": "Method not allowed"}


@pytest.mark.asyncio
async def test_root(async_client: AsyncClient) -> None:
    response = await async_client.get("/")
    assert response.json() == {"name": "ReportSonic", "status": "ok"}
    assert response.headers["x-frame-options"] == "DENY"


@pytest.mark.asyncio
async def test_error_body_is_documented(async_client: AsyncClient) -> None:
    schema = (await async_client.get("/openapi.json")).json()
    assert schema["components"]["schemas"]["ErrorResponse"]["required"] == ["error"]
    export_responses = schema["paths"]["/api/reports/export"]["post"]["responses"]
    assert export_responses["403"]["content"]["application/json"]["schema"] == {
        "$ref": "#/components/schemas/ErrorResponse"
    }
