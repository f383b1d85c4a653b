"""
core/validators.py

Input validators shared by the auth and admin flows:
- Password rule (minimum length)
- Email normalization and format check
"""

import re
from typing import Final


# -------------------------------
# Constants
# -------------------------------
MIN_PASSWORD_LENGTH: Final[int] = 6
EMAIL_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


# -------------------------------
# Validator Functions
# -------------------------------
def password_validator(password: str) -> str:
    """
    Validates password length.

    Returns:
        str: The valid password (if the check passes)

    Raises:
        ValueError: If the password is shorter than MIN_PASSWORD_LENGTH
    """
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return password


def normalize_email(email: str) -> str:
    return email.strip().lower()


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email))
