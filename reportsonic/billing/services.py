"""
billing/services.py

Subscription lifecycle through Stripe:
- Checkout session creation (customer created on first use)
- Billing portal session
- Webhook dispatch keeping the user's plan, status and period in sync
- Usage summary for the signed-in user
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

import stripe
from fastapi import status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from reportsonic.billing import stripe_client
from reportsonic.billing.pricing import (
    calculate_usage_stats,
    get_plan_display_name,
    get_pricing_limits,
    get_upgrade_prompt,
)
from reportsonic.billing.schemas import (
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    PortalSessionResponse,
    UsageSummaryResponse,
    WebhookResponse,
)
from reportsonic.billing.usage import reset_monthly_usage_if_needed
from reportsonic.core.config import settings
from reportsonic.core.exceptions import APIError
from reportsonic.database.enums import SubscriptionPlan, SubscriptionStatus
from reportsonic.database.models import User

logger = logging.getLogger(__name__)

PAID_PLANS = {SubscriptionPlan.STARTER, SubscriptionPlan.PROFESSIONAL}


def _frontend_url(path: str) -> str:
    return f"{settings.BASE_URL.rstrip('/')}{path}"


# ---------------------------------------------------
# Usage Summary
# ---------------------------------------------------
async def get_usage_summary(user: User, db: AsyncSession) -> UsageSummaryResponse:
    await reset_monthly_usage_if_needed(user, db)
    stats = calculate_usage_stats(
        user.subscription_plan, user.monthly_cells_used or 0, user.monthly_reports_used or 0
    )
    return UsageSummaryResponse(
        plan=user.subscription_plan,
        planName=get_plan_display_name(user.subscription_plan),
        status=user.subscription_status,
        limits=get_pricing_limits(user.subscription_plan).to_dict(),
        usage=stats.to_dict(),
        cells_remaining=stats.cells_remaining,
        reports_remaining=stats.reports_remaining,
        upgradePrompt=get_upgrade_prompt(user.subscription_plan),
    )


# ---------------------------------------------------
# Checkout / Portal
# ---------------------------------------------------
async def create_checkout_session(
    payload: CheckoutSessionRequest, user: User, db: AsyncSession
) -> CheckoutSessionResponse:
    """Starts a subscription checkout for a paid plan."""
    try:
        plan = SubscriptionPlan(payload.plan) if payload.plan else None
    except ValueError:
        plan = None
    if plan not in PAID_PLANS:
        raise APIError(status_code=status.HTTP_400_BAD_REQUEST, message="Invalid plan")

    price_id = stripe_client.get_price_id(plan)
    if not price_id:
        logger.error(f"[BILLING] Price ID not configured for plan: {plan.value}")
        raise APIError(
            status_code=status.HTTP_400_BAD_REQUEST, message="Price ID not configured for this plan"
        )

    try:
        customer_id = user.stripe_customer_id
        if not customer_id:
            customer = await stripe_client.create_customer(user.email, user.name)
            customer_id = customer["id"]
            user.stripe_customer_id = customer_id
            await db.commit()

        session = await stripe_client.create_checkout_session(
            customer_id,
            price_id,
            _frontend_url("/dashboard?success=true"),
            _frontend_url("/dashboard?canceled=true"),
        )
    except stripe.StripeError as e:
        logger.error(f"[BILLING] Checkout session creation failed for user {user.id}: {e}")
        raise APIError(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message="Failed to create checkout session",
        )

    logger.info(f"[BILLING] Checkout session {session['id']} created for user {user.id} ({plan.value})")
    return CheckoutSessionResponse(sessionId=session["id"], url=session.get("url"))


async def create_portal_session(user: User) -> PortalSessionResponse:
    if not user.stripe_customer_id:
        raise APIError(status_code=status.HTTP_400_BAD_REQUEST, message="No subscription found")

    try:
        session = await stripe_client.create_billing_portal_session(
            user.stripe_customer_id, _frontend_url("/dashboard")
        )
    except stripe.StripeError as e:
        logger.error(f"[BILLING] Portal session creation failed for user {user.id}: {e}")
        raise APIError(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message="Failed to create portal session",
        )
    return PortalSessionResponse(url=session["url"])


# ---------------------------------------------------
# Webhook Handlers
# ---------------------------------------------------
async def _user_for_customer(customer_id: str | None, db: AsyncSession) -> User | None:
    if not customer_id:
        return None
    result = await db.execute(select(User).filter(User.stripe_customer_id == customer_id))
    return result.unique().scalar_one_or_none()


def _period_end(subscription: dict[str, Any]) -> datetime | None:
    # Newer API versions carry the period on the subscription item
    timestamp = subscription.get("current_period_end")
    if timestamp is None:
        items = (subscription.get("items") or {}).get("data") or []
        timestamp = items[0].get("current_period_end") if items else None
    if timestamp is None:
        return None
    return datetime.fromtimestamp(int(timestamp), tz=timezone.utc)


def _subscription_price_id(subscription: dict[str, Any]) -> str | None:
    items = (subscription.get("items") or {}).get("data") or []
    if not items:
        return None
    return (items[0].get("price") or {}).get("id")


async def handle_subscription_updated(subscription: dict[str, Any], db: AsyncSession) -> None:
    user = await _user_for_customer(subscription.get("customer"), db)
    if not user:
        logger.error(f"[BILLING] User not found for subscription: {subscription.get('id')}")
        return

    plan = stripe_client.plan_for_price(_subscription_price_id(subscription))
    user.subscription_plan = plan
    user.subscription_status = (
        SubscriptionStatus.ACTIVE
        if subscription.get("status") == "active"
        else SubscriptionStatus.CANCELED
    )
    user.stripe_subscription_id = subscription.get("id")
    user.current_period_end = _period_end(subscription)
    await db.commit()
    logger.info(f"[BILLING] Updated user {user.email} to plan {plan.value}")


async def handle_subscription_deleted(subscription: dict[str, Any], db: AsyncSession) -> None:
    user = await _user_for_customer(subscription.get("customer"), db)
    if not user:
        logger.error(f"[BILLING] User not found for subscription: {subscription.get('id')}")
        return

    user.subscription_plan = SubscriptionPlan.FREE
    user.subscription_status = SubscriptionStatus.CANCELED
    user.stripe_subscription_id = None
    user.current_period_end = None
    await db.commit()
    logger.info(f"[BILLING] Downgraded user {user.email} to free plan")


async def _sync_subscription(subscription_id: str | None, db: AsyncSession) -> None:
    if not subscription_id:
        return
    subscription = await stripe_client.retrieve_subscription(subscription_id)
    await handle_subscription_updated(subscription, db)


async def handle_checkout_completed(session: dict[str, Any], db: AsyncSession) -> None:
    logger.info(f"[BILLING] Checkout session completed: {session.get('id')}")
    await _sync_subscription(session.get("subscription"), db)


async def handle_payment_succeeded(invoice: dict[str, Any], db: AsyncSession) -> None:
    logger.info(f"[BILLING] Payment succeeded for invoice: {invoice.get('id')}")
    await _sync_subscription(invoice.get("subscription"), db)


async def handle_payment_failed(invoice: dict[str, Any], db: AsyncSession) -> None:
    logger.info(f"[BILLING] Payment failed for invoice: {invoice.get('id')}")
    user = await _user_for_customer(invoice.get("customer"), db)
    if not user:
        logger.error(f"[BILLING] User not found for invoice: {invoice.get('id')}")
        return

    user.subscription_status = SubscriptionStatus.PAST_DUE
    await db.commit()
    logger.info(f"[BILLING] Updated user {user.email} subscription to past_due")


WEBHOOK_HANDLERS: dict[str, Callable[[dict[str, Any], AsyncSession], Awaitable[None]]] = {
    "checkout.session.completed": handle_checkout_completed,
    "customer.subscription.created": handle_subscription_updated,
    "customer.subscription.updated": handle_subscription_updated,
    "customer.subscription.deleted": handle_subscription_deleted,
    "invoice.payment_succeeded": handle_payment_succeeded,
    "invoice.payment_failed": handle_payment_failed,
}


async def process_webhook(payload: bytes, signature: str | None, db: AsyncSession) -> WebhookResponse:
    """
    Verifies and dispatches a Stripe event. Any failure answers 400
    "Webhook error" so Stripe retries the delivery.
    """
    try:
        event = stripe_client.construct_webhook_event(payload, signature)
        event_type = event.get("type", "")
        handler = WEBHOOK_HANDLERS.get(event_type)
        if handler is None:
            logger.info(f"[BILLING] Unhandled event type: {event_type}")
        else:
            await handler(event["data"]["object"], db)
    except Exception as e:
        logger.error(f"[BILLING] Webhook error: {e}")
        raise APIError(status_code=status.HTTP_400_BAD_REQUEST, message="Webhook error")

    return WebhookResponse()
