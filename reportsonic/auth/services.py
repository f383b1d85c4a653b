"""
auth/services.py

Handles authentication-related business logic:
- Registration and email/password login
- Session token issuance and logout (JWT blacklist)
- Current-user lookup
- Forgot/reset password with a stored one-time token
- Google OAuth2 login flow and callback
- Mapping of authentication error codes to user-facing messages
"""

import logging
import os
from datetime import datetime, timedelta, timezone
from typing import cast
from urllib.parse import quote

from authlib.integrations.starlette_client import OAuth, OAuthError
from fastapi import Request, Response, status
from fastapi.responses import RedirectResponse
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.config import Config as StarletteConfig

from reportsonic.auth.schemas import (
    AuthUserResponse,
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    LoginRequest,
    LoginResult,
    MeResponse,
    MeUser,
    RegisteredUser,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    UserCreate,
)
from reportsonic.core.blacklist import blacklist_token
from reportsonic.core.config import settings
from reportsonic.core.email import (
    send_password_reset_confirmation,
    send_password_reset_email,
    send_welcome_email,
)
from reportsonic.core.exceptions import APIError
from reportsonic.core.schemas import MessageResponse, SuccessMessageResponse
from reportsonic.core.security import generate_reset_token, get_password_hash, verify_password
from reportsonic.core.tokens import create_access_token, remaining_lifetime
from reportsonic.core.validators import (
    is_valid_email,
    normalize_email,
    password_validator,
)
from reportsonic.database.enums import AuthProvider, SubscriptionPlan, SubscriptionStatus
from reportsonic.database.models import User

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = "If an account with that email exists, we have sent a password reset link."
RESET_PASSWORD_MESSAGE = "Password has been reset successfully. You can now log in with your new password."
REGISTER_MESSAGE = "Account created successfully! Welcome to ReportSonic!"


def _bad_request(message: str) -> APIError:
    return APIError(status_code=status.HTTP_400_BAD_REQUEST, message=message)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _check_password_length(password: str) -> None:
    try:
        password_validator(password)
    except ValueError as e:
        raise _bad_request(str(e))


async def get_user_by_email(email: str, db: AsyncSession) -> User | None:
    result = await db.execute(select(User).filter(User.email == email))
    return result.unique().scalar_one_or_none()


def issue_session_token(user: User) -> str:
    """Signs the session JWT for a user."""
    role = getattr(user.role, "value", user.role)
    return create_access_token({"id": user.id, "email": user.email, "name": user.name, "role": role})


# ------------------------------------------------
# Registration
# ------------------------------------------------
async def register_user(payload: RegisterRequest, db: AsyncSession) -> RegisterResponse:
    """Creates a credentials account on the free plan and sends the welcome email."""
    if not payload.name or not payload.email or not payload.password:
        raise _bad_request("Name, email, and password are required")

    _check_password_length(payload.password)

    email = normalize_email(payload.email)
    if not is_valid_email(email):
        raise _bad_request("Please enter a valid email address")

    try:
        if await get_user_by_email(email, db):
            logger.info(f"[AUTH] Registration rejected, email already registered: {email}")
            raise _bad_request("User already exists with this email")

        user = User(
            name=payload.name.strip(),
            email=email,
            password=get_password_hash(payload.password),
            provider=AuthProvider.CREDENTIALS,
            subscription_plan=SubscriptionPlan.FREE,
            subscription_status=SubscriptionStatus.ACTIVE,
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
    except IntegrityError:
        # Lost a race against a concurrent registration for the same email
        await db.rollback()
        logger.info(f"[AUTH] Registration raced on unique email: {email}")
        raise _bad_request("User already exists with this email")
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"[AUTH] Registration failed for {email}: {e}")
        raise APIError(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message="Failed to create account. Please try again.",
        )

    logger.info(f"[AUTH] New user registered: id={user.id} email={user.email}")

    try:
        await send_welcome_email(user.email, user.name)
    except Exception as e:
        logger.error(f"[AUTH] Failed to send welcome email to {user.email}: {e}")

    return RegisterResponse(
        message=REGISTER_MESSAGE,
        userId=user.id,
        user=RegisteredUser.model_validate(user),
    )


# ------------------------------------------------
# Login
# ------------------------------------------------
async def authenticate_user(payload: LoginRequest, db: AsyncSession) -> User:
    """
    Looks up the account and checks the password.

    Unknown emails, OAuth-only accounts and wrong passwords all answer with
    the same 401 so the response does not reveal which accounts exist.
    """
    if not payload.email or not payload.password:
        raise _bad_request("Email and password are required")

    email = normalize_email(payload.email)
    user = await get_user_by_email(email, db)

    if not user or not verify_password(payload.password, user.password):
        logger.warning(f"[AUTH] Failed login attempt for email: {email}")
        raise APIError(status_code=status.HTTP_401_UNAUTHORIZED, message="Invalid credentials")

    return user


async def login_user(payload: LoginRequest, db: AsyncSession, client_ip: str) -> LoginResult:
    """Authenticates and issues the session token; the route sets the cookie."""
    user = await authenticate_user(payload, db)
    access_token = issue_session_token(user)
    logger.info(f"[AUTH] User logged in successfully: {user.email} from IP: {client_ip}")
    return LoginResult(access_token=access_token, user=AuthUserResponse.model_validate(user))


# ------------------------------------------------
# Logout
# ------------------------------------------------
async def logout_user_token(token: str | None) -> SuccessMessageResponse:
    """
    Blacklists the session token for its remaining lifetime.
    Undecodable or missing tokens are ignored; logout always succeeds.
    """
    if token:
        try:
            payload = jwt.decode(
                token,
                settings.SECRET_KEY,
                algorithms=[settings.ALGORITHM],
                options={"verify_exp": False},
            )
            jti = payload.get("jti")
            ttl = remaining_lifetime(payload)
            if jti and ttl > 0:
                await blacklist_token(jti, ttl)
                logger.info(f"[AUTH] Access token blacklisted (JTI: {jti}) for {ttl} seconds.")
            else:
                logger.info("[AUTH] Logout with expired or JTI-less token. Nothing to blacklist.")
        except JWTError as e:
            logger.warning(f"[AUTH] Error decoding token during logout: {e}")

    return SuccessMessageResponse(message="Logout successful")


# ------------------------------------------------
# Current User
# ------------------------------------------------
def get_me(user: User) -> MeResponse:
    return MeResponse(user=MeUser.model_validate(user))


# ------------------------------------------------
# Forgot / Reset Password
# ------------------------------------------------
def build_reset_link(token: str) -> str:
    return f"{settings.BASE_URL.rstrip('/')}/auth/reset-password?token={token}"


async def request_password_reset(
    payload: ForgotPasswordRequest, db: AsyncSession
) -> ForgotPasswordResponse:
    """
    Stores a one-hour reset token on the account and emails the link.
    The answer is identical whether or not the email is registered.
    """
    if not payload.email:
        raise _bad_request("Email is required")

    email = normalize_email(payload.email)
    if not is_valid_email(email):
        raise _bad_request("Please enter a valid email address")

    try:
        user = await get_user_by_email(email, db)
        if not user:
            logger.info(f"[AUTH] Password reset requested for unknown email: {email}")
            return ForgotPasswordResponse(message=FORGOT_PASSWORD_MESSAGE)

        token = generate_reset_token()
        user.reset_token = token
        user.reset_token_expiry = _utcnow() + timedelta(
            minutes=settings.PASSWORD_RESET_TOKEN_EXPIRE_MINUTES
        )
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"[AUTH] Failed to store reset token for {email}: {e}")
        raise APIError(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message="Failed to process password reset request",
        )

    reset_link = build_reset_link(token)
    try:
        await send_password_reset_email(user.email, reset_link, name=user.name)
    except Exception as e:
        logger.error(f"[AUTH] Failed to send password reset email to {user.email}: {e}")

    logger.info(f"[AUTH] Password reset token issued for user {user.id}")
    return ForgotPasswordResponse(
        message=FORGOT_PASSWORD_MESSAGE,
        resetLink=reset_link if settings.DEBUG else None,
    )


async def reset_password(payload: ResetPasswordRequest, db: AsyncSession) -> MessageResponse:
    """Consumes a valid reset token and stores the new password hash."""
    if not payload.token or not payload.password:
        raise _bad_request("Token and password are required")

    _check_password_length(payload.password)

    try:
        result = await db.execute(
            select(User).filter(
                User.reset_token == payload.token,
                User.reset_token_expiry > _utcnow(),
            )
        )
        user = result.unique().scalar_one_or_none()
        if not user:
            logger.warning("[AUTH] Password reset attempted with invalid or expired token.")
            raise _bad_request("Invalid or expired reset token")

        user.password = get_password_hash(payload.password)
        user.reset_token = None
        user.reset_token_expiry = None
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"[AUTH] Password reset failed: {e}")
        raise APIError(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, message="Failed to reset password"
        )

    logger.info(f"[AUTH] Password successfully reset for user: {user.email}")

    try:
        await send_password_reset_confirmation(user.email, name=user.name)
    except Exception as e:
        logger.error(f"[AUTH] Failed to send password confirmation email to {user.email}: {e}")

    return MessageResponse(message=RESET_PASSWORD_MESSAGE)


# ------------------------------------------------
# Authentication Error Redirect
# ------------------------------------------------
AUTH_ERROR_MESSAGES: dict[str, str] = {
    "Configuration": "There is a problem with the server configuration",
    "AccessDenied": "Access was denied. You may not have permission to sign in",
    "Verification": "The verification token has expired or has already been used",
    "OAuthSignin": "Error in OAuth sign-in process",
    "OAuthCallback": "Error in OAuth callback",
    "OAuthCreateAccount": "Could not create OAuth account",
    "EmailCreateAccount": "Could not create email account",
    "Callback": "Error in callback",
    "OAuthAccountNotLinked": "Email already exists with a different provider",
    "EmailSignin": "Check your email for a sign-in link",
    "CredentialsSignin": "Sign in failed. Check your credentials",
    "SessionRequired": "Please sign in to access this page",
}


def auth_error_message(code: str | None) -> str:
    if not code:
        return "An authentication error occurred"
    return AUTH_ERROR_MESSAGES.get(code, f"Authentication error: {code}")


def auth_error_redirect_url(code: str | None) -> str:
    return f"/auth/signin?error={quote(auth_error_message(code), safe='')}"


# ------------------------------------------------
# Google OAuth2 Setup
# ------------------------------------------------
starlette_config = StarletteConfig(environ=os.environ)
oauth = OAuth(starlette_config)

if settings.GOOGLE_CLIENT_ID and settings.GOOGLE_CLIENT_SECRET:
    oauth.register(
        name="google",
        server_metadata_url="https://accounts.google.com/.well-known/openid-configuration",
        client_id=settings.GOOGLE_CLIENT_ID,
        client_secret=settings.GOOGLE_CLIENT_SECRET,
        client_kwargs={"scope": "openid email profile"},
    )
else:
    logger.warning("[AUTH] Google OAuth2 credentials not configured. Google login disabled.")


def is_google_oauth_configured() -> bool:
    return bool(settings.GOOGLE_CLIENT_ID and settings.GOOGLE_CLIENT_SECRET)


def _google_disabled() -> APIError:
    return APIError(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE, message="Google login is not configured."
    )


def set_session_cookie(response: Response, token: str) -> None:
    """Sets the HttpOnly session cookie on any Starlette response."""
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="strict",
        secure=not settings.DEBUG,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        path="/",
    )


async def handle_google_login(request: Request) -> RedirectResponse:
    """Redirects to Google's consent screen. Authlib keeps the state in the session."""
    if not is_google_oauth_configured():
        raise _google_disabled()

    redirect_uri = str(request.url_for("google_callback"))
    logger.info("[AUTH] Redirecting to Google OAuth2.")
    return cast(RedirectResponse, await oauth.google.authorize_redirect(request, redirect_uri))


async def find_or_create_google_user(user_info: dict, db: AsyncSession) -> User:
    """Returns the account for a Google identity, creating a free-plan one on first sign-in."""
    raw_email = user_info.get("email")
    if not raw_email:
        raise _bad_request("Email not provided by Google.")

    email = normalize_email(raw_email)
    user = await get_user_by_email(email, db)
    if user:
        if not user.image and user_info.get("picture"):
            user.image = user_info["picture"]
            await db.commit()
            await db.refresh(user)
        return user

    logger.info(f"[AUTH] Creating new user via Google OAuth: {email}")
    user = User(**UserCreate.from_google(user_info, email).model_dump())
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info(f"[AUTH] New user {user.id} created via Google OAuth.")

    try:
        await send_welcome_email(user.email, user.name)
    except Exception as e:
        logger.error(f"[AUTH] Failed to send welcome email to new Google user {user.email}: {e}")

    return user


async def handle_google_callback(request: Request, db: AsyncSession) -> RedirectResponse:
    """
    Exchanges the authorization code, finds or creates the user, sets the
    session cookie and redirects to the dashboard. Provider failures are
    sent to the auth error page.
    """
    if not is_google_oauth_configured():
        logger.error("[AUTH] Google OAuth callback attempted but not configured.")
        raise _google_disabled()

    try:
        token_dict = await oauth.google.authorize_access_token(request)
        user_info = token_dict.get("userinfo")
        if not user_info:
            resp = await oauth.google.get("userinfo", token=token_dict)
            resp.raise_for_status()
            user_info = resp.json()
    except OAuthError as e:
        logger.error(f"[AUTH] OAuth token exchange failed during callback: {e}")
        code = "AccessDenied" if e.error == "access_denied" else "OAuthCallback"
        return RedirectResponse(url=auth_error_redirect_url(code))

    try:
        user = await find_or_create_google_user(dict(user_info), db)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"[AUTH] Could not create Google account: {e}")
        return RedirectResponse(url=auth_error_redirect_url("OAuthCreateAccount"))

    response = RedirectResponse(url=f"{settings.BASE_URL.rstrip('/')}/dashboard")
    set_session_cookie(response, issue_session_token(user))
    logger.info(f"[AUTH] User authenticated via Google: {user.email}")
    return response
