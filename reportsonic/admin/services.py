"""
admin/services.py

Admin Service Layer
Provides user administration:
- Role and plan assignment by email
- Superadmin listing with report aggregates
- Create, inspect, update and delete accounts
"""

import logging
from enum import Enum
from typing import TypeVar

from fastapi import status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from reportsonic.admin import schemas
from reportsonic.core.exceptions import APIError
from reportsonic.core.security import get_password_hash
from reportsonic.core.validators import is_valid_email, normalize_email
from reportsonic.database.enums import (
    AuthProvider,
    SubscriptionPlan,
    SubscriptionStatus,
    UserRole,
)
from reportsonic.database.models import Report, UsageLog, User

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)

USAGE_LOG_LIMIT = 50


def _bad_request(message: str) -> APIError:
    return APIError(status_code=status.HTTP_400_BAD_REQUEST, message=message)


def _parse_enum(enum_cls: type[E], value: str | None, default: E, label: str) -> E:
    if not value:
        return default
    try:
        return enum_cls(value.strip().lower())
    except ValueError:
        raise _bad_request(f"Invalid {label}: {value}")


# ---------------------------------------------------
# AdminService
# ---------------------------------------------------
class AdminService:
    """User administration on top of one database session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ---------------------------------------------------
    # Internal DB Helpers
    # ---------------------------------------------------
    async def _get_user_or_404(self, user_id: int) -> User:
        result = await self.db.execute(select(User).filter(User.id == user_id))
        user = result.unique().scalar_one_or_none()
        if not user:
            logger.error(f"[ADMIN] User not found: user_id={user_id}")
            raise APIError(status_code=status.HTTP_404_NOT_FOUND, message="User not found")
        return user

    async def _email_owner(self, email: str) -> User | None:
        result = await self.db.execute(select(User).filter(User.email == email))
        return result.unique().scalar_one_or_none()

    # ---------------------------------------------------
    # Role Assignment
    # ---------------------------------------------------
    async def update_user_role(self, payload: schemas.UpdateUserRoleRequest) -> User:
        """
        Sets role and plan for the account with the given email and marks the
        subscription active. The plan defaults to professional.
        """
        if not payload.email or not payload.role:
            raise _bad_request("Email and role are required")

        role = _parse_enum(UserRole, payload.role, UserRole.USER, "role")
        plan = _parse_enum(
            SubscriptionPlan, payload.subscription_plan, SubscriptionPlan.PROFESSIONAL, "subscription plan"
        )

        user = await self._email_owner(normalize_email(payload.email))
        if not user:
            raise APIError(status_code=status.HTTP_404_NOT_FOUND, message="User not found")

        logger.info(f"[ADMIN] Updating user {user.email} to role {role.value}, plan {plan.value}")
        user.role = role
        user.subscription_plan = plan
        user.subscription_status = SubscriptionStatus.ACTIVE
        await self.db.commit()
        await self.db.refresh(user)
        return user

    # ---------------------------------------------------
    # Superadmin User Management
    # ---------------------------------------------------
    async def list_users(
        self, skip: int = 0, limit: int = 100
    ) -> tuple[list[schemas.AdminUserListItem], int]:
        """Users newest first, with report count and cells summed over their reports."""
        total_reports = func.count(Report.id).label("total_reports")
        total_cells = func.coalesce(func.sum(Report.cells_used), 0).label("total_cells_generated")
        stmt = (
            select(User, total_reports, total_cells)
            .outerjoin(Report, Report.user_id == User.id)
            .group_by(User.id)
            .order_by(User.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        rows = (await self.db.execute(stmt)).all()
        total_count = (await self.db.execute(select(func.count()).select_from(User))).scalar_one()

        items = [
            schemas.AdminUserListItem.model_validate(
                {
                    **schemas.AdminUserView.model_validate(user).model_dump(),
                    "total_reports": int(reports or 0),
                    "total_cells_generated": int(cells or 0),
                }
            )
            for user, reports, cells in rows
        ]
        logger.info(f"[ADMIN] Listed {len(items)} of {total_count} users (skip={skip}, limit={limit})")
        return items, total_count

    async def create_user(self, payload: schemas.AdminUserCreateRequest) -> User:
        if not payload.name or not payload.email or not payload.password:
            raise _bad_request("Name, email, and password are required")

        email = normalize_email(payload.email)
        if not is_valid_email(email):
            raise _bad_request("Please enter a valid email address")
        if await self._email_owner(email):
            raise _bad_request("Email already taken")

        user = User(
            name=payload.name.strip(),
            email=email,
            password=get_password_hash(payload.password),
            provider=AuthProvider.CREDENTIALS,
            role=_parse_enum(UserRole, payload.role, UserRole.USER, "role"),
            subscription_plan=_parse_enum(
                SubscriptionPlan, payload.subscription_plan, SubscriptionPlan.FREE, "subscription plan"
            ),
            subscription_status=SubscriptionStatus.ACTIVE,
            monthly_cells_used=0,
            monthly_reports_used=0,
            total_cells_used=0,
        )
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        logger.info(f"[ADMIN] Created user {user.id} ({user.email})")
        return user

    async def get_user_detail(self, user_id: int) -> schemas.AdminUserDetail:
        user = await self._get_user_or_404(user_id)

        reports = (
            await self.db.execute(
                select(Report).filter(Report.user_id == user_id).order_by(Report.created_at.desc())
            )
        ).scalars().all()
        logs = (
            await self.db.execute(
                select(UsageLog)
                .filter(UsageLog.user_id == user_id)
                .order_by(UsageLog.created_at.desc())
                .limit(USAGE_LOG_LIMIT)
            )
        ).scalars().all()

        return schemas.AdminUserDetail(
            user=schemas.AdminUserView.model_validate(user),
            reports=[schemas.AdminReportSummary.model_validate(r) for r in reports],
            usageLogs=[schemas.UsageLogView.model_validate(log) for log in logs],
        )

    async def update_user(self, user_id: int, payload: schemas.AdminUserUpdateRequest) -> User:
        """
        Replaces name, email, role, plan and the monthly counters. Omitted
        role/plan/counters reset to their defaults.
        """
        if not payload.name or not payload.email:
            raise _bad_request("Name and email are required")

        email = normalize_email(payload.email)
        owner = await self._email_owner(email)
        if owner and owner.id != user_id:
            raise _bad_request("Email already taken by another user")

        user = await self._get_user_or_404(user_id)
        user.name = payload.name.strip()
        user.email = email
        user.role = _parse_enum(UserRole, payload.role, UserRole.USER, "role")
        user.subscription_plan = _parse_enum(
            SubscriptionPlan, payload.subscription_plan, SubscriptionPlan.FREE, "subscription plan"
        )
        user.monthly_reports_used = payload.monthly_reports_used or 0
        user.monthly_cells_used = payload.monthly_cells_used or 0
        await self.db.commit()
        await self.db.refresh(user)
        logger.info(f"[ADMIN] Updated user {user.id}")
        return user

    async def delete_user(self, user_id: int) -> None:
        """Deletes the account; reports and usage logs go with it."""
        user = await self._get_user_or_404(user_id)
        await self.db.delete(user)
        await self.db.commit()
        logger.info(f"[ADMIN] Deleted user {user_id}")
