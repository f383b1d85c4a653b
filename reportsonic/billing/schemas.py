"""
billing/schemas.py

Request and response models for the Stripe checkout, portal and webhook
endpoints, plus the usage summary returned to signed-in users.
"""

from typing import Any

from pydantic import BaseModel, Field

from reportsonic.database.enums import SubscriptionPlan, SubscriptionStatus


class CheckoutSessionRequest(BaseModel):
    plan: str | None = Field(None, description="Plan to subscribe to (starter or professional)")


class CheckoutSessionResponse(BaseModel):
    sessionId: str = Field(..., description="Stripe checkout session ID")
    url: str | None = Field(None, description="Hosted checkout page URL")


class PortalSessionResponse(BaseModel):
    url: str = Field(..., description="Stripe billing portal URL")


class WebhookResponse(BaseModel):
    received: bool = True


class UsageSummaryResponse(BaseModel):
    """
    Current plan, its limits and the month's usage.
    """
    plan: SubscriptionPlan
    planName: str
    status: SubscriptionStatus
    limits: dict[str, Any] = Field(..., description="Static limits of the plan")
    usage: dict[str, Any] = Field(..., description="Usage statistics for the current month")
    cells_remaining: int
    reports_remaining: int
    upgradePrompt: str
