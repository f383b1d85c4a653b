"""
tests/auth/test_auth_services.py

Unit tests for auth/services.py against a mocked AsyncSession:
- Registration, login and logout
- Forgot / reset password
- Google account lookup and the auth error redirect
"""

from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import status
from jose import jwt
from sqlalchemy.exc import IntegrityError

from reportsonic.auth import services
from reportsonic.auth.schemas import (
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
)
from reportsonic.core.config import settings
from reportsonic.core.exceptions import APIError
from reportsonic.core.security import get_password_hash
from reportsonic.core.tokens import create_access_token
from reportsonic.database.enums import AuthProvider, SubscriptionPlan, UserRole


async def _assign_id(obj: Any) -> None:
    if getattr(obj, "id", None) is None:
        obj.id = 42


# =====================
# --- Registration ---
# =====================
@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload, message",
    [
        ({"email": "a@example.com", "password": "secret1"}, "Name, email, and password are required"),
        ({"name": "A", "email": "a@example.com", "password": "123"}, "Password must be at least 6 characters"),
        ({"name": "A", "email": "not-an-email", "password": "secret1"}, "Please enter a valid email address"),
    ],
)
async def test_register_rejects_bad_input(payload: dict, message: str, mock_db: AsyncMock) -> None:
    with pytest.raises(APIError) as exc:
        await services.register_user(RegisterRequest(**payload), mock_db)
    assert exc.value.status_code == status.HTTP_400_BAD_REQUEST
    assert exc.value.detail == {"error": message}
    mock_db.commit.assert_not_awaited()


@pytest.mark.asyncio
@patch("reportsonic.auth.services.get_user_by_email", new_callable=AsyncMock)
async def test_register_duplicate_email(
    mock_lookup: AsyncMock, mock_db: AsyncMock, fake_user: Any
) -> None:
    mock_lookup.return_value = fake_user
    with pytest.raises(APIError) as exc:
        await services.register_user(
            RegisterRequest(name="Dup", email="User.Test@Example.com", password="secret1"), mock_db
        )
    assert exc.value.detail["error"] == "User already exists with this email"
    mock_lookup.assert_awaited_once_with("user.test@example.com", mock_db)


@pytest.mark.asyncio
@patch("reportsonic.auth.services.send_welcome_email", new_callable=AsyncMock)
@patch("reportsonic.auth.services.get_user_by_email", new_callable=AsyncMock, return_value=None)
async def test_register_concurrent_duplicate(
    _lookup: AsyncMock, mock_welcome: AsyncMock, mock_db: AsyncMock
) -> None:
    """A unique-key violation on commit is reported like a duplicate email"""
    mock_db.commit.side_effect = IntegrityError(
        "INSERT INTO users", {}, Exception("Duplicate entry 'jane@example.com' for key 'users.email'")
    )

    with pytest.raises(APIError) as exc:
        await services.register_user(
            RegisterRequest(name="Jane", email="jane@example.com", password="secret1"), mock_db
        )

    assert exc.value.status_code == status.HTTP_400_BAD_REQUEST
    assert exc.value.detail == {"error": "User already exists with this email"}
    mock_db.rollback.assert_awaited_once()
    mock_db.refresh.assert_not_awaited()
    mock_welcome.assert_not_awaited()


@pytest.mark.asyncio
@patch("reportsonic.auth.services.send_welcome_email", new_callable=AsyncMock)
@patch("reportsonic.auth.services.get_password_hash", return_value="hashed")
async def test_register_success(
    _hash: Any, mock_welcome: AsyncMock, mock_db: AsyncMock
) -> None:
    mock_db.refresh = AsyncMock(side_effect=_assign_id)

    result = await services.register_user(
        RegisterRequest(name="  Jane  ", email="  Jane@Example.com ", password="secret1"), mock_db
    )

    assert result.userId == 42
    assert result.user.email == "jane@example.com"
    assert result.user.name == "Jane"
    created = mock_db.add.call_args[0][0]
    assert created.password == "hashed"
    assert created.provider == AuthProvider.CREDENTIALS
    assert created.subscription_plan == SubscriptionPlan.FREE
    mock_welcome.assert_awaited_once_with("jane@example.com", "Jane")


@pytest.mark.asyncio
@patch("reportsonic.auth.services.send_welcome_email", new_callable=AsyncMock)
@patch("reportsonic.auth.services.get_password_hash", return_value="hashed")
async def test_register_survives_email_failure(
    _hash: Any, mock_welcome: AsyncMock, mock_db: AsyncMock
) -> None:
    mock_db.refresh = AsyncMock(side_effect=_assign_id)
    mock_welcome.side_effect = RuntimeError("smtp down")

    result = await services.register_user(
        RegisterRequest(name="Jane", email="jane@example.com", password="secret1"), mock_db
    )
    assert result.userId == 42


# ==============
# --- Login ---
# ==============
@pytest.mark.asyncio
async def test_authenticate_requires_both_fields(mock_db: AsyncMock) -> None:
    with pytest.raises(APIError) as exc:
        await services.authenticate_user(LoginRequest(email="a@example.com"), mock_db)
    assert exc.value.status_code == status.HTTP_400_BAD_REQUEST
    assert exc.value.detail["error"] == "Email and password are required"


@pytest.mark.asyncio
async def test_authenticate_unknown_email(mock_db: AsyncMock) -> None:
    with pytest.raises(APIError) as exc:
        await services.authenticate_user(
            LoginRequest(email="ghost@example.com", password="secret1"), mock_db
        )
    assert exc.value.status_code == status.HTTP_401_UNAUTHORIZED
    assert exc.value.detail["error"] == "Invalid credentials"


@pytest.mark.asyncio
async def test_login_wrong_password_and_oauth_account(
    mock_db: AsyncMock, user_factory: Any, result_factory: Any
) -> None:
    with_password = user_factory(password=get_password_hash("secret1"))
    oauth_only = user_factory(password=None, provider=AuthProvider.GOOGLE)

    for user, password in ((with_password, "wrong-one"), (oauth_only, "anything")):
        mock_db.execute = AsyncMock(return_value=result_factory(user))
        with pytest.raises(APIError) as exc:
            await services.login_user(
                LoginRequest(email=user.email, password=password), mock_db, "127.0.0.1"
            )
        assert exc.value.detail["error"] == "Invalid credentials"


@pytest.mark.asyncio
async def test_login_issues_session_token(
    mock_db: AsyncMock, user_factory: Any, result_factory: Any
) -> None:
    user = user_factory(password=get_password_hash("secret1"), role=UserRole.ADMIN)
    mock_db.execute = AsyncMock(return_value=result_factory(user))

    result = await services.login_user(
        LoginRequest(email="USER.TEST@example.com", password="secret1"), mock_db, "127.0.0.1"
    )

    claims = jwt.decode(result.access_token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    assert claims["id"] == user.id
    assert claims["email"] == user.email
    assert claims["name"] == user.name
    assert claims["role"] == "admin"
    assert claims["jti"]
    assert result.user.email == user.email


# ===============
# --- Logout ---
# ===============
@pytest.mark.asyncio
@patch("reportsonic.auth.services.blacklist_token", new_callable=AsyncMock)
async def test_logout_blacklists_token(mock_blacklist: AsyncMock) -> None:
    token = create_access_token({"id": 1, "email": "user@example.com"})
    jti = jwt.get_unverified_claims(token)["jti"]

    result = await services.logout_user_token(token)

    assert result.success is True
    mock_blacklist.assert_awaited_once()
    blacklisted_jti, ttl = mock_blacklist.call_args[0]
    assert blacklisted_jti == jti
    assert 0 < ttl <= settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60


@pytest.mark.asyncio
@patch("reportsonic.auth.services.blacklist_token", new_callable=AsyncMock)
async def test_logout_ignores_bad_and_expired_tokens(mock_blacklist: AsyncMock) -> None:
    expired = create_access_token(
        {"id": 1, "email": "user@example.com"}, expires_delta=timedelta(minutes=-5)
    )
    for token in (None, "garbage", expired):
        result = await services.logout_user_token(token)
        assert result.message == "Logout successful"
    mock_blacklist.assert_not_awaited()


# ================================
# --- Forgot / Reset Password ---
# ================================
@pytest.mark.asyncio
async def test_forgot_password_unknown_email(mock_db: AsyncMock) -> None:
    result = await services.request_password_reset(
        ForgotPasswordRequest(email="ghost@example.com"), mock_db
    )
    assert result.message == services.FORGOT_PASSWORD_MESSAGE
    assert result.resetLink is None
    mock_db.commit.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "email, message",
    [(None, "Email is required"), ("nope", "Please enter a valid email address")],
)
async def test_forgot_password_validation(email: Any, message: str, mock_db: AsyncMock) -> None:
    with pytest.raises(APIError) as exc:
        await services.request_password_reset(ForgotPasswordRequest(email=email), mock_db)
    assert exc.value.detail["error"] == message


@pytest.mark.asyncio
@patch("reportsonic.auth.services.send_password_reset_email", new_callable=AsyncMock)
async def test_forgot_password_known_email(
    mock_send: AsyncMock, mock_db: AsyncMock, fake_user: Any, result_factory: Any
) -> None:
    mock_db.execute = AsyncMock(return_value=result_factory(fake_user))
    before = datetime.now(timezone.utc)

    result = await services.request_password_reset(
        ForgotPasswordRequest(email=fake_user.email), mock_db
    )

    assert result.message == services.FORGOT_PASSWORD_MESSAGE
    assert len(fake_user.reset_token) == 64
    assert fake_user.reset_token_expiry > before + timedelta(minutes=59)
    mock_db.commit.assert_awaited_once()
    to, link = mock_send.call_args[0][:2]
    assert to == fake_user.email
    assert link.endswith(f"/auth/reset-password?token={fake_user.reset_token}")


@pytest.mark.asyncio
async def test_reset_password_invalid_token(mock_db: AsyncMock) -> None:
    with pytest.raises(APIError) as exc:
        await services.reset_password(ResetPasswordRequest(token="stale", password="secret1"), mock_db)
    assert exc.value.detail["error"] == "Invalid or expired reset token"


@pytest.mark.asyncio
async def test_reset_password_short_password(mock_db: AsyncMock) -> None:
    with pytest.raises(APIError) as exc:
        await services.reset_password(ResetPasswordRequest(token="abc", password="123"), mock_db)
    assert exc.value.detail["error"] == "Password must be at least 6 characters"
    mock_db.execute.assert_not_awaited()


@pytest.mark.asyncio
@patch("reportsonic.auth.services.send_password_reset_confirmation", new_callable=AsyncMock)
@patch("reportsonic.auth.services.get_password_hash", return_value="new-hash")
async def test_reset_password_success(
    _hash: Any, mock_confirm: AsyncMock, mock_db: AsyncMock, user_factory: Any, result_factory: Any
) -> None:
    user = user_factory(
        reset_token="abc", reset_token_expiry=datetime.now(timezone.utc) + timedelta(minutes=30)
    )
    mock_db.execute = AsyncMock(return_value=result_factory(user))

    result = await services.reset_password(ResetPasswordRequest(token="abc", password="secret1"), mock_db)

    assert result.message == services.RESET_PASSWORD_MESSAGE
    assert user.password == "new-hash"
    assert user.reset_token is None
    assert user.reset_token_expiry is None
    mock_confirm.assert_awaited_once()


# ===========================
# --- Auth Error Messages ---
# ===========================
@pytest.mark.parametrize(
    "code, message",
    [
        ("OAuthAccountNotLinked", "Email already exists with a different provider"),
        ("CredentialsSignin", "Sign in failed. Check your credentials"),
        ("Whatever", "Authentication error: Whatever"),
        (None, "An authentication error occurred"),
        ("", "An authentication error occurred"),
    ],
)
def test_auth_error_message(code: Any, message: str) -> None:
    assert services.auth_error_message(code) == message


def test_auth_error_redirect_url_is_encoded() -> None:
    url = services.auth_error_redirect_url("Configuration")
    assert url == "/auth/signin?error=There%20is%20a%20problem%20with%20the%20server%20configuration"


# ===========================
# --- Google Accounts ---
# ===========================
@pytest.mark.asyncio
@patch("reportsonic.auth.services.send_welcome_email", new_callable=AsyncMock)
async def test_google_user_created_on_first_sign_in(mock_welcome: AsyncMock, mock_db: AsyncMock) -> None:
    mock_db.refresh = AsyncMock(side_effect=_assign_id)
    info = {"email": "New.Person@Gmail.com", "name": "New Person", "picture": "https://img/p.png"}

    user = await services.find_or_create_google_user(info, mock_db)

    assert user.email == "new.person@gmail.com"
    assert user.provider == AuthProvider.GOOGLE
    assert user.password is None
    assert user.image == "https://img/p.png"
    assert user.subscription_plan == SubscriptionPlan.FREE
    mock_welcome.assert_awaited_once()


@pytest.mark.asyncio
async def test_google_user_reuses_existing_account(
    mock_db: AsyncMock, fake_user: Any, result_factory: Any
) -> None:
    mock_db.execute = AsyncMock(return_value=result_factory(fake_user))
    info = {"email": fake_user.email, "picture": "https://img/p.png"}

    user = await services.find_or_create_google_user(info, mock_db)

    assert user is fake_user
    assert user.image == "https://img/p.png"
    mock_db.add.assert_not_called()


@pytest.mark.asyncio
async def test_google_user_requires_email(mock_db: AsyncMock) -> None:
    with pytest.raises(APIError) as exc:
        await services.find_or_create_google_user({"name": "No Email"}, mock_db)
    assert exc.value.detail["error"] == "Email not provided by Google."
