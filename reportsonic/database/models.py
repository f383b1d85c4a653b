"""
reportsonic/database/models.py

Core SQLAlchemy ORM Models

Defines:
- User: Account with credentials/OAuth identity, role, subscription and usage counters
- Report: A saved generated report owned by a user
- UsageLog: Analytics record of report generation and quota events

Deleting a user cascades to their reports and usage logs; deleting a report
keeps its usage logs with the report reference cleared.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from reportsonic.database.base import Base
from reportsonic.database.enums import (
    AuthProvider,
    SubscriptionPlan,
    SubscriptionStatus,
    UsageAction,
    UserRole,
)


def _enum(enum_cls: type, name: str) -> Enum:
    """Stores enum values (lower-case strings) rather than member names."""
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )


# ---------------------------------------------------
# User Model
# ---------------------------------------------------


class User(Base):
    __tablename__ = "users"

    # -------------------------------------
    # Identity
    # -------------------------------------
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True, comment="Unique identifier for the user"
    )
    email: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, comment="Normalized (lower-case) email address"
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, comment="Display name")
    password: Mapped[str | None] = mapped_column(
        String(255), nullable=True, comment="bcrypt hash; NULL for OAuth-only accounts"
    )
    image: Mapped[str | None] = mapped_column(
        String(500), nullable=True, comment="Avatar URL (optional)"
    )
    provider: Mapped[AuthProvider] = mapped_column(
        _enum(AuthProvider, "auth_provider"),
        nullable=False,
        default=AuthProvider.CREDENTIALS,
        server_default=AuthProvider.CREDENTIALS.value,
        comment="Sign-in provider (credentials or google)",
    )
    role: Mapped[UserRole] = mapped_column(
        _enum(UserRole, "user_role"),
        nullable=False,
        default=UserRole.USER,
        server_default=UserRole.USER.value,
        comment="User role (user, admin, superadmin)",
    )

    # -------------------------------------
    # Subscription
    # -------------------------------------
    subscription_plan: Mapped[SubscriptionPlan] = mapped_column(
        _enum(SubscriptionPlan, "subscription_plan"),
        nullable=False,
        default=SubscriptionPlan.FREE,
        server_default=SubscriptionPlan.FREE.value,
        comment="Subscription tier",
    )
    subscription_status: Mapped[SubscriptionStatus] = mapped_column(
        _enum(SubscriptionStatus, "subscription_status"),
        nullable=False,
        default=SubscriptionStatus.ACTIVE,
        server_default=SubscriptionStatus.ACTIVE.value,
        comment="Subscription state",
    )
    stripe_customer_id: Mapped[str | None] = mapped_column(
        String(255), nullable=True, comment="Stripe customer identifier"
    )
    stripe_subscription_id: Mapped[str | None] = mapped_column(
        String(255), nullable=True, comment="Stripe subscription identifier"
    )
    current_period_end: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, comment="End of the paid billing period"
    )

    # -------------------------------------
    # Usage Counters
    # -------------------------------------
    monthly_cells_used: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0", comment="Cells used this month"
    )
    monthly_reports_used: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0", comment="Reports generated this month"
    )
    total_cells_used: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0", comment="Lifetime cells used"
    )
    last_reset_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        comment="Start of the current usage month",
    )

    # -------------------------------------
    # Password Reset
    # -------------------------------------
    reset_token: Mapped[str | None] = mapped_column(
        String(255), nullable=True, index=True, comment="Pending password reset token"
    )
    reset_token_expiry: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, comment="Reset token expiry"
    )

    # -------------------------------------
    # Timestamps
    # -------------------------------------
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), comment="Account creation timestamp"
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        comment="Last update timestamp",
    )

    # -------------------------------------
    # Relationships
    # -------------------------------------
    reports: Mapped[list["Report"]] = relationship(
        back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    usage_logs: Mapped[list["UsageLog"]] = relationship(
        back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"


# ---------------------------------------------------
# Report Model
# ---------------------------------------------------


class Report(Base):
    __tablename__ = "reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False, comment="Report title")
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    data: Mapped[Any | None] = mapped_column(JSON, nullable=True, comment="Source data rows")
    charts: Mapped[Any | None] = mapped_column(JSON, nullable=True, comment="Chart configurations")
    settings: Mapped[Any | None] = mapped_column(
        JSON, nullable=True, comment="Template and generation options"
    )
    cells_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    user: Mapped["User"] = relationship(back_populates="reports")

    def __repr__(self) -> str:
        return f"<Report(id={self.id}, user_id={self.user_id}, title={self.title!r})>"


# ---------------------------------------------------
# Usage Log Model
# ---------------------------------------------------


class UsageLog(Base):
    __tablename__ = "usage_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    report_id: Mapped[int | None] = mapped_column(
        ForeignKey("reports.id", ondelete="SET NULL"), nullable=True
    )
    action_type: Mapped[UsageAction] = mapped_column(_enum(UsageAction, "usage_action"), nullable=False)
    cells_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    reports_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    details: Mapped[Any | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )

    user: Mapped["User"] = relationship(back_populates="usage_logs")
