"""
auth/schemas.py

Defines Pydantic models for authentication flows:
- Register, login and password reset request payloads
- JWT token payload
- Authenticated user response schemas
- Factory method for Google OAuth user creation

Request fields are optional at the schema level; the services check
presence themselves so missing fields produce the documented messages.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from reportsonic.database.enums import AuthProvider, SubscriptionPlan, SubscriptionStatus, UserRole


# --------------------------------------------------
# AUTH REQUEST SCHEMAS
# --------------------------------------------------

class RegisterRequest(BaseModel):
    """
    Request schema for new account registration.
    """
    name: str | None = Field(None, description="Display name")
    email: str | None = Field(None, description="Email address for the new account")
    password: str | None = Field(None, description="Password (at least 6 characters)")


class LoginRequest(BaseModel):
    """
    Request schema for email/password login.
    """
    email: str | None = Field(None, description="Account email address")
    password: str | None = Field(None, description="Account password")


class ForgotPasswordRequest(BaseModel):
    email: str | None = Field(None, description="Email address to send the reset link to")


class ResetPasswordRequest(BaseModel):
    token: str | None = Field(None, description="Reset token received by email")
    password: str | None = Field(None, description="New password (at least 6 characters)")


# --------------------------------------------------
# AUTH TOKEN SCHEMAS
# --------------------------------------------------

class TokenPayload(BaseModel):
    """
    Claims carried by the session JWT.
    """
    id: int = Field(..., description="User ID")
    email: str = Field(..., description="User email at issue time")
    name: str | None = Field(None, description="User name at issue time")
    role: UserRole = Field(UserRole.USER, description="User role at issue time")
    jti: str | None = Field(None, description="Unique token identifier")
    exp: int | None = Field(None, description="Expiry (epoch seconds)")


# --------------------------------------------------
# AUTH RESPONSE SCHEMAS
# --------------------------------------------------

class RegisteredUser(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str


class RegisterResponse(BaseModel):
    message: str = Field(..., description="Welcome message")
    userId: int = Field(..., description="ID of the created user")
    user: RegisteredUser


class AuthUserResponse(BaseModel):
    """
    Public user fields returned after login.
    """
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="User ID")
    email: str = Field(..., description="Email address")
    name: str = Field(..., description="Display name")
    image: str | None = Field(None, description="Avatar URL")


class LoginResponse(BaseModel):
    success: bool = True
    message: str = "Login successful"
    user: AuthUserResponse


class LoginResult(BaseModel):
    """
    Internal result of a successful login: the user plus the session token.
    """
    access_token: str
    user: AuthUserResponse


class MeUser(AuthUserResponse):
    role: UserRole = Field(UserRole.USER, description="User role")
    subscription_plan: SubscriptionPlan = Field(SubscriptionPlan.FREE, description="Subscription tier")
    subscription_status: SubscriptionStatus = Field(
        SubscriptionStatus.ACTIVE, description="Subscription state"
    )


class MeResponse(BaseModel):
    success: bool = True
    user: MeUser


class ForgotPasswordResponse(BaseModel):
    message: str
    resetLink: str | None = Field(None, description="Only populated in DEBUG mode")


# --------------------------------------------------
# OAUTH USER FACTORY
# --------------------------------------------------

class UserCreate(BaseModel):
    """
    Internal schema for creating users outside the register endpoint.
    """
    email: str
    name: str
    password: str | None = None
    image: str | None = None
    provider: AuthProvider = AuthProvider.CREDENTIALS
    role: UserRole = UserRole.USER
    subscription_plan: SubscriptionPlan = SubscriptionPlan.FREE
    subscription_status: SubscriptionStatus = SubscriptionStatus.ACTIVE

    @classmethod
    def from_google(cls, user_info: dict[str, Any], email: str) -> "UserCreate":
        """Build a Google-provider account from the userinfo payload."""
        return cls(
            email=email,
            name=user_info.get("name") or "Google User",
            image=user_info.get("picture"),
            provider=AuthProvider.GOOGLE,
        )
