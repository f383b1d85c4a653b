"""
tests/auth/test_auth_routes.py

Unit tests for auth/routes.py with both success and failure scenarios
- Mocks service logic
- Uses Pytest fixtures for DRY code
- Uses httpx AsyncClient for integration tests
"""

from unittest.mock import AsyncMock, patch
from urllib.parse import unquote

import pytest
from fastapi import status
from httpx import AsyncClient

from reportsonic.auth.schemas import (
    AuthUserResponse,
    ForgotPasswordResponse,
    LoginResult,
    RegisteredUser,
    RegisterResponse,
)
from reportsonic.core.exceptions import APIError
from reportsonic.core.schemas import MessageResponse, SuccessMessageResponse
from reportsonic.database.models import User


# =====================
# --- Register Tests ---
# =====================
@pytest.mark.asyncio
@patch("reportsonic.auth.routes.register_user", new_callable=AsyncMock)
async def test_register_success(
    mock_register: AsyncMock, async_client: AsyncClient, override_get_db: None
) -> None:
    """Test successful registration"""
    mock_register.return_value = RegisterResponse(
        message="Account created successfully! Welcome to ReportSonic!",
        userId=7,
        user=RegisteredUser(id=7, name="Jane Doe", email="jane@example.com"),
    )
    payload = {"name": "Jane Doe", "email": "jane@example.com", "password": "secret123"}
    response = await async_client.post("/api/auth/register", json=payload)
    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["userId"] == 7
    assert body["user"]["email"] == "jane@example.com"
    mock_register.assert_awaited_once()
    assert mock_register.call_args[0][0].email == "jane@example.com"


@pytest.mark.asyncio
@patch("reportsonic.auth.routes.register_user", new_callable=AsyncMock)
async def test_register_duplicate_email(
    mock_register: AsyncMock, async_client: AsyncClient, override_get_db: None
) -> None:
    """Test registration failure due to a duplicate email"""
    mock_register.side_effect = APIError(
        status_code=status.HTTP_400_BAD_REQUEST, message="User already exists with this email"
    )
    payload = {"name": "Jane Doe", "email": "jane@example.com", "password": "secret123"}
    response = await async_client.post("/api/auth/register", json=payload)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "User already exists with this email"}


@pytest.mark.asyncio
async def test_register_malformed_body(async_client: AsyncClient, override_get_db: None) -> None:
    """Unparseable bodies are reported with the error envelope and 400"""
    response = await async_client.post(
        "/api/auth/register",
        content="not json",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "error" in response.json()


# ==================
# --- Login Tests ---
# ==================
@pytest.mark.asyncio
@patch("reportsonic.auth.routes.login_user", new_callable=AsyncMock)
async def test_login_sets_session_cookie(
    mock_login: AsyncMock, async_client: AsyncClient, override_get_db: None, fake_user: User
) -> None:
    mock_login.return_value = LoginResult(
        access_token="session.jwt.token",
        user=AuthUserResponse.model_validate(fake_user),
    )
    payload = {"email": fake_user.email, "password": "secret123"}
    response = await async_client.post("/api/auth/login", json=payload)

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Login successful"
    assert body["user"]["email"] == fake_user.email
    assert "access_token" not in body

    cookie = response.headers["set-cookie"].lower()
    assert "auth-token=session.jwt.token" in cookie
    assert "httponly" in cookie
    assert "samesite=strict" in cookie
    assert "path=/" in cookie

    call_args, _ = mock_login.call_args
    assert call_args[0].email == fake_user.email
    assert isinstance(call_args[2], str)


@pytest.mark.asyncio
@patch("reportsonic.auth.routes.login_user", new_callable=AsyncMock)
async def test_login_invalid_credentials(
    mock_login: AsyncMock, async_client: AsyncClient, override_get_db: None
) -> None:
    mock_login.side_effect = APIError(
        status_code=status.HTTP_401_UNAUTHORIZED, message="Invalid credentials"
    )
    payload = {"email": "user@example.com", "password": "wrong-password"}
    response = await async_client.post("/api/auth/login", json=payload)
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json() == {"error": "Invalid credentials"}
    assert "set-cookie" not in response.headers


@pytest.mark.asyncio
async def test_login_wrong_method(async_client: AsyncClient) -> None:
    response = await async_client.get("/api/auth/login")
    assert response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED
    assert response.json() == {"error": "Method not allowed"}


# ===================
# --- Logout Tests ---
# ===================
@pytest.mark.asyncio
@patch("reportsonic.auth.routes.logout_user_token", new_callable=AsyncMock)
async def test_logout_clears_cookie(mock_logout: AsyncMock, async_client: AsyncClient) -> None:
    mock_logout.return_value = SuccessMessageResponse(message="Logout successful")
    response = await async_client.post(
        "/api/auth/logout", headers={"Authorization": "Bearer header.jwt.token"}
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"message": "Logout successful", "success": True}
    assert "max-age=0" in response.headers["set-cookie"].lower()
    mock_logout.assert_awaited_once_with("header.jwt.token")


@pytest.mark.asyncio
async def test_logout_without_session(async_client: AsyncClient) -> None:
    """Logout succeeds even when no token is presented"""
    response = await async_client.post("/api/auth/logout")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["message"] == "Logout successful"


# ======================
# --- Current User ---
# ======================
@pytest.mark.asyncio
async def test_me_returns_current_user(
    async_client: AsyncClient, override_get_current_user: User
) -> None:
    response = await async_client.get("/api/auth/me")
    assert response.status_code == status.HTTP_200_OK
    user = response.json()["user"]
    assert user["id"] == override_get_current_user.id
    assert user["role"] == "user"
    assert user["subscription_plan"] == "free"
    assert "password" not in user


@pytest.mark.asyncio
async def test_me_without_token(async_client: AsyncClient, override_get_db: None) -> None:
    response = await async_client.get("/api/auth/me")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json() == {"error": "No token provided"}


@pytest.mark.asyncio
async def test_me_with_garbage_token(async_client: AsyncClient, override_get_db: None) -> None:
    response = await async_client.get(
        "/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"}
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json() == {"error": "Invalid token"}


# ===============================
# --- Forgot / Reset Password ---
# ===============================
@pytest.mark.asyncio
@patch("reportsonic.auth.routes.request_password_reset", new_callable=AsyncMock)
async def test_forgot_password_hides_reset_link(
    mock_forgot: AsyncMock, async_client: AsyncClient, override_get_db: None
) -> None:
    mock_forgot.return_value = ForgotPasswordResponse(
        message="If an account with that email exists, we have sent a password reset link."
    )
    response = await async_client.post(
        "/api/auth/forgot-password", json={"email": "someone@example.com"}
    )
    assert response.status_code == status.HTTP_200_OK
    assert "resetLink" not in response.json()


@pytest.mark.asyncio
@patch("reportsonic.auth.routes.reset_password", new_callable=AsyncMock)
async def test_reset_password_success(
    mock_reset: AsyncMock, async_client: AsyncClient, override_get_db: None
) -> None:
    mock_reset.return_value = MessageResponse(message="Password has been reset successfully.")
    response = await async_client.post(
        "/api/auth/reset-password", json={"token": "abc", "password": "newpass1"}
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["message"] == "Password has been reset successfully."


@pytest.mark.asyncio
@patch("reportsonic.auth.routes.reset_password", new_callable=AsyncMock)
async def test_reset_password_invalid_token(
    mock_reset: AsyncMock, async_client: AsyncClient, override_get_db: None
) -> None:
    mock_reset.side_effect = APIError(
        status_code=status.HTTP_400_BAD_REQUEST, message="Invalid or expired reset token"
    )
    response = await async_client.post(
        "/api/auth/reset-password", json={"token": "stale", "password": "newpass1"}
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "Invalid or expired reset token"}


# =====================================
# --- Google OAuth / Error Redirect ---
# =====================================
@pytest.mark.asyncio
@patch("reportsonic.auth.services.is_google_oauth_configured", return_value=False)
async def test_google_login_not_configured(_: object, async_client: AsyncClient) -> None:
    response = await async_client.get("/api/auth/google/login")
    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert response.json() == {"error": "Google login is not configured."}


@pytest.mark.asyncio
async def test_auth_error_redirect_known_code(async_client: AsyncClient) -> None:
    response = await async_client.get("/api/auth/error", params={"error": "AccessDenied"})
    assert response.status_code == status.HTTP_307_TEMPORARY_REDIRECT
    location = response.headers["location"]
    assert location.startswith("/auth/signin?error=")
    assert unquote(location.split("=", 1)[1]) == "Access was denied. You may not have permission to sign in"


@pytest.mark.asyncio
async def test_auth_error_redirect_without_code(async_client: AsyncClient) -> None:
    response = await async_client.get("/api/auth/error")
    assert response.status_code == status.HTTP_307_TEMPORARY_REDIRECT
    assert unquote(response.headers["location"].split("=", 1)[1]) == "An authentication error occurred"


# =====================
# --- Health Checks ---
# =====================
@pytest.mark.asyncio
async def test_health(async_client: AsyncClient) -> None:
    response = await async_client.get("/health")
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "ok"}
    assert response.headers["x-content-type-options"] == "nosniff"
