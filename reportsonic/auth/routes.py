"""
auth/routes.py

Handles authentication routes including:
- User registration and login (session token in HttpOnly cookie)
- Logout (cookie cleared, token blacklisted)
- Current user lookup
- Forgot/reset password
- Google OAuth2 login flow and the authentication error redirect
"""

import logging

from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from reportsonic.auth.schemas import (
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    LoginRequest,
    LoginResponse,
    MeResponse,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
)
from reportsonic.auth.services import (
    auth_error_redirect_url,
    get_me,
    handle_google_callback,
    handle_google_login,
    login_user,
    logout_user_token,
    register_user,
    request_password_reset,
    reset_password,
    set_session_cookie,
)
from reportsonic.core.config import settings
from reportsonic.core.dependencies import get_current_user
from reportsonic.core.limiter import limiter
from reportsonic.core.schemas import ERROR_RESPONSES, MessageResponse, SuccessMessageResponse
from reportsonic.database.models import User
from reportsonic.database.session import get_db

# ---------------------------------------------------
# Router Configuration
# ---------------------------------------------------
router = APIRouter(prefix="/api/auth", tags=["Authentication"], responses=ERROR_RESPONSES)
logger = logging.getLogger(__name__)


# ---------------------------------------------------
# Registration
# ---------------------------------------------------
@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register New User",
    description="Creates a credentials account on the free plan and sends a welcome email.",
)
@limiter.limit("5/minute")
async def register(
    request: Request,
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_db),
) -> RegisterResponse:
    return await register_user(payload, db)


# ---------------------------------------------------
# Login
# ---------------------------------------------------
@router.post(
    "/login",
    response_model=LoginResponse,
    status_code=status.HTTP_200_OK,
    summary="Login (Cookie Auth)",
    description="Authenticates with email and password. Returns user info in body; sets the session token in an HttpOnly cookie.",
)
@limiter.limit("10/minute")
async def login(
    request: Request,
    payload: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    client_ip = request.client.host if request.client else "unknown"
    login_result = await login_user(payload, db, client_ip)
    set_session_cookie(response, login_result.access_token)
    return LoginResponse(user=login_result.user)


# ---------------------------------------------------
# Logout
# ---------------------------------------------------
@router.post(
    "/logout",
    response_model=SuccessMessageResponse,
    status_code=status.HTTP_200_OK,
    summary="Logout User",
    description="Clears the session cookie and blacklists the current token.",
)
@limiter.limit("20/minute")
async def logout(request: Request, response: Response) -> SuccessMessageResponse:
    """
    Logout never requires a valid session: the cookie is always cleared.
    """
    token = request.cookies.get(settings.AUTH_COOKIE_NAME)
    auth_header = request.headers.get("Authorization")
    if not token and auth_header and auth_header.startswith("Bearer "):
        token = auth_header.removeprefix("Bearer ")

    result = await logout_user_token(token)
    response.delete_cookie(
        key=settings.AUTH_COOKIE_NAME,
        path="/",
        httponly=True,
        samesite="strict",
        secure=not settings.DEBUG,
    )
    return result


# ---------------------------------------------------
# Current User
# ---------------------------------------------------
@router.get(
    "/me",
    response_model=MeResponse,
    status_code=status.HTTP_200_OK,
    summary="Current User",
    description="Returns the authenticated user's account fields read fresh from the database.",
)
async def me(current_user: User = Depends(get_current_user)) -> MeResponse:
    return get_me(current_user)


# ---------------------------------------------------
# Forgot Password Flow
# ---------------------------------------------------
@router.post(
    "/forgot-password",
    response_model=ForgotPasswordResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    summary="Request Password Reset",
    description="Emails a one-hour reset link if the account exists. The answer is the same either way.",
)
@limiter.limit("5/minute")
async def forgot_password(
    request: Request,
    payload: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db),
) -> ForgotPasswordResponse:
    return await request_password_reset(payload, db)


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    status_code=status.HTTP_200_OK,
    summary="Reset Password",
    description="Sets a new password using a valid, unexpired reset token.",
)
@limiter.limit("5/minute")
async def post_reset_password(
    request: Request,
    payload: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    return await reset_password(payload, db)


# ---------------------------------------------------
# Google OAuth2 Login Flow
# ---------------------------------------------------
@router.get(
    "/google/login",
    status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    summary="Start Google OAuth2 Flow",
    description="Redirects the user to Google's OAuth2 consent screen.",
    response_class=RedirectResponse,
)
@limiter.limit("10/minute")
async def google_login(request: Request) -> RedirectResponse:
    return await handle_google_login(request)


@router.get(
    "/google/callback",
    response_class=RedirectResponse,
    status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    summary="Handle Google OAuth2 Callback",
    description="Exchanges the code, signs the user in or up, sets the session cookie and redirects to the dashboard.",
)
@limiter.limit("10/minute")
async def google_callback(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> RedirectResponse:
    return await handle_google_callback(request, db)


# ---------------------------------------------------
# Authentication Error Redirect
# ---------------------------------------------------
@router.get(
    "/error",
    response_class=RedirectResponse,
    status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    summary="Authentication Error",
    description="Maps an authentication error code to a message and redirects to the sign-in page.",
)
async def auth_error(
    error: str | None = Query(None, description="Authentication error code"),
) -> RedirectResponse:
    logger.info(f"[AUTH] Authentication error redirect for code: {error}")
    return RedirectResponse(url=auth_error_redirect_url(error))
