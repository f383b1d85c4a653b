"""
core/security.py

Password hashing and one-time secret generation:
- bcrypt hashing (cost factor 12) through passlib
- Random hex tokens for password reset links
"""

import secrets
from typing import cast

from passlib.context import CryptContext

BCRYPT_ROUNDS = 12
RESET_TOKEN_BYTES = 32

# Password hashing configuration
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=BCRYPT_ROUNDS)


def get_password_hash(password: str) -> str:
    """Hashes a plain text password."""
    return cast(str, pwd_context.hash(password))


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Verifies a plain text password against a hash. Accounts without a hash never match."""
    if not hashed_password:
        return False
    return cast(bool, pwd_context.verify(plain_password, hashed_password))


def generate_reset_token() -> str:
    """Returns a 64 character hex token."""
    return secrets.token_hex(RESET_TOKEN_BYTES)
