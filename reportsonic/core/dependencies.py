"""
reportsonic/core/dependencies.py

Authentication and Authorization Dependencies

Provides authentication and role-based access control (RBAC) for FastAPI routes:
- Validates JWT tokens from the `auth-token` HttpOnly cookie OR a Bearer header
- Checks against blacklisted tokens (logout protection)
- Retrieves authenticated user from the database
- Restricts access based on user roles

Pagination Dependency:
- Provides reusable dependency for pagination (skip, limit).
"""

import logging
from collections.abc import Callable, Coroutine
from typing import Annotated, Any

from fastapi import Cookie, Depends, Query, status
from fastapi.security import OAuth2PasswordBearer
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from reportsonic.auth.schemas import TokenPayload
from reportsonic.core.blacklist import is_token_blacklisted
from reportsonic.core.config import settings
from reportsonic.core.exceptions import APIError
from reportsonic.core.tokens import decode_access_token
from reportsonic.database.enums import UserRole
from reportsonic.database.models import User
from reportsonic.database.session import get_db

# ---------------------------------------------------
# Logger Configuration
# ---------------------------------------------------
logger = logging.getLogger(__name__)

# ---------------------------------------------------
# OAuth2 Configuration
# ---------------------------------------------------
# auto_error=False so a missing header falls through to the cookie
oauth2_scheme: OAuth2PasswordBearer = OAuth2PasswordBearer(
    tokenUrl="/api/auth/login", auto_error=False
)


# ---------------------------------------------------
# Pagination Dependency
# ---------------------------------------------------
class PaginationParams:
    """
    Dependency that provides pagination parameters from query parameters.
    """

    def __init__(
        self,
        skip: int = Query(0, ge=0, description="Number of records to skip for pagination"),
        limit: int = Query(100, ge=1, le=500, description="Maximum number of records to return"),
    ):
        self.skip = skip
        self.limit = limit


# ---------------------------------------------------
# Authentication Functions
# ---------------------------------------------------
def _unauthorized(message: str) -> APIError:
    return APIError(status_code=status.HTTP_401_UNAUTHORIZED, message=message)


async def get_current_user(
    token_cookie: Annotated[str | None, Cookie(alias=settings.AUTH_COOKIE_NAME)] = None,
    token_header: Annotated[str | None, Depends(oauth2_scheme)] = None,
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Authenticate the current user from the session cookie, falling back to
    the Authorization header.

    Raises:
        APIError: 401 "No token provided", "Invalid token" or "User not found".
    """
    token = token_cookie or token_header
    if not token:
        logger.debug("[AUTH] No token found in auth-token cookie or Authorization header.")
        raise _unauthorized("No token provided")

    payload = decode_access_token(token)
    try:
        token_data = TokenPayload(**payload)
    except ValidationError as e:
        logger.warning(f"[AUTH] Token payload failed validation: {e}")
        raise _unauthorized("Invalid token")

    if token_data.jti and await is_token_blacklisted(token_data.jti):
        logger.warning(f"[AUTH] Blacklisted token detected: jti={token_data.jti}")
        raise _unauthorized("Invalid token")

    result = await db.execute(select(User).filter(User.id == token_data.id))
    user = result.unique().scalar_one_or_none()
    if not user:
        logger.warning(f"[AUTH] JWT valid but no matching user found: user_id={token_data.id}")
        raise _unauthorized("User not found")

    logger.debug(
        f"[AUTH] User {user.id} authenticated successfully via {'Cookie' if token_cookie else 'Header'}."
    )
    return user


# ---------------------------------------------------
# Authorization Functions (Role-Based)
# ---------------------------------------------------
def require_roles(
    *roles: UserRole, detail: str | None = None
) -> Callable[..., Coroutine[Any, Any, User]]:
    """
    Dependency to restrict access to users having any of the specified roles.
    """

    async def checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            logger.warning(
                f"[RBAC] Access denied: User {user.id} with role {user.role} attempted access (allowed roles: {roles})"
            )
            raise APIError(
                status_code=status.HTTP_403_FORBIDDEN,
                message=detail or f"Access denied for role: {getattr(user.role, 'value', user.role)}",
            )
        return user

    return checker


require_superadmin = require_roles(UserRole.SUPERADMIN, detail="Superadmin access required")
