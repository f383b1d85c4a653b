"""
admin/schemas.py

Schemas for user administration:
- Role/plan update by email
- Superadmin user create/update payloads
- Admin views of users, their reports and usage logs
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from reportsonic.database.enums import (
    AuthProvider,
    SubscriptionPlan,
    SubscriptionStatus,
    UsageAction,
    UserRole,
)


# ---------------------------------------------------
# Requests
# ---------------------------------------------------
class UpdateUserRoleRequest(BaseModel):
    email: str | None = Field(None, description="Email of the account to update")
    role: str | None = Field(None, description="New role (user, admin, superadmin)")
    subscription_plan: str | None = Field(None, description="New plan, defaults to professional")


class AdminUserCreateRequest(BaseModel):
    """
    Superadmin payload for creating an account directly.
    """
    name: str | None = None
    email: str | None = None
    password: str | None = None
    role: str | None = Field(None, description="Defaults to user")
    subscription_plan: str | None = Field(None, description="Defaults to free")


class AdminUserUpdateRequest(BaseModel):
    name: str | None = None
    email: str | None = None
    role: str | None = Field(None, description="Defaults to user")
    subscription_plan: str | None = Field(None, description="Defaults to free")
    monthly_reports_used: int | None = Field(None, ge=0)
    monthly_cells_used: int | None = Field(None, ge=0)


# ---------------------------------------------------
# Views
# ---------------------------------------------------
class AdminUserView(BaseModel):
    """
    Full account row as seen by administrators, minus credentials.
    """
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: str
    image: str | None = None
    provider: AuthProvider
    role: UserRole
    subscription_plan: SubscriptionPlan
    subscription_status: SubscriptionStatus
    stripe_customer_id: str | None = None
    stripe_subscription_id: str | None = None
    current_period_end: datetime | None = None
    monthly_cells_used: int = 0
    monthly_reports_used: int = 0
    total_cells_used: int = 0
    last_reset_date: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AdminUserListItem(AdminUserView):
    total_reports: int = Field(0, description="Number of saved reports")
    total_cells_generated: int = Field(0, description="Sum of cells across saved reports")


class AdminReportSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    cells_used: int
    created_at: datetime | None = None


class UsageLogView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    report_id: int | None = None
    action_type: UsageAction
    cells_used: int
    reports_used: int
    details: Any | None = None
    created_at: datetime | None = None


class AdminUserDetail(BaseModel):
    user: AdminUserView
    reports: list[AdminReportSummary]
    usageLogs: list[UsageLogView]


class UpdateUserRoleResponse(BaseModel):
    message: str = "User updated successfully"
    user: AdminUserView
