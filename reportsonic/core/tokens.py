"""
core/tokens.py

Session token utilities:
- JWT access token with expiration and JTI
- Access token decoding for cookie/header authentication
- Remaining-lifetime helper used when blacklisting on logout
"""

import uuid
import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import status
from jose import jwt, JWTError, ExpiredSignatureError

from reportsonic.core.config import settings
from reportsonic.core.exceptions import APIError

logger = logging.getLogger(__name__)


# ------------------------------------------------------
# --- Access Token ---
# ------------------------------------------------------
def create_access_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """
    Create a JWT access token with expiration and unique JTI.

    Args:
        data (dict[str, Any]): Payload data to include in the token (must contain 'id' and 'email').
        expires_delta (timedelta | None): Optional custom expiration time. Defaults to settings.

    Returns:
        str: Encoded JWT access token.
    """
    if "id" not in data or "email" not in data:
        logger.error("Access token creation attempt missing 'id' or 'email' in data.")
        raise ValueError("Access token payload must include 'id' and 'email'.")

    expire: datetime = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    jti: str = str(uuid.uuid4())
    payload: dict[str, Any] = {**data, "sub": str(data["id"]), "exp": expire, "jti": jti}

    logger.info(f"Issuing access token for sub={payload['sub']} exp={expire} jti={jti}")
    token = jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return str(token)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decodes and verifies an access token.

    Raises:
        APIError 401: If the token is malformed, tampered with or expired.
    """
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError:
        logger.info("[AUTH] Expired access token received.")
        raise APIError(status_code=status.HTTP_401_UNAUTHORIZED, message="Invalid token")
    except JWTError as e:
        logger.warning(f"[AUTH] Invalid access token received: {e}")
        raise APIError(status_code=status.HTTP_401_UNAUTHORIZED, message="Invalid token")


def remaining_lifetime(payload: dict[str, Any]) -> int:
    """Seconds left before the token's `exp` claim; 0 when absent or already past."""
    exp = payload.get("exp")
    if not exp:
        return 0
    now = datetime.now(timezone.utc).timestamp()
    return max(0, int(exp - now))
