"""
users/schemas.py

Profile view of the signed-in user.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from reportsonic.database.enums import SubscriptionPlan, SubscriptionStatus


class UserProfileResponse(BaseModel):
    """
    Account fields without credentials or reset tokens.
    """
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: str
    image: str | None = None
    subscription_plan: SubscriptionPlan = SubscriptionPlan.FREE
    subscription_status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    monthly_cells_used: int = Field(0, description="Cells used in the current month")
    monthly_reports_used: int = Field(0, description="Reports generated in the current month")
    total_cells_used: int = Field(0, description="Lifetime cells used")
    last_reset_date: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("monthly_cells_used", "monthly_reports_used", "total_cells_used", mode="before")
    @classmethod
    def default_counter(cls, value: int | None) -> int:
        return value or 0
