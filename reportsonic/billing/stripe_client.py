"""
reportsonic/billing/stripe_client.py

Thin async wrappers around the blocking Stripe SDK. Every call runs in the
threadpool and returns plain dicts so callers never depend on the SDK's
object model.
"""

import json
import logging
from typing import Any

import stripe
from starlette.concurrency import run_in_threadpool

from reportsonic.core.config import settings
from reportsonic.database.enums import SubscriptionPlan

logger = logging.getLogger(__name__)

STRIPE_METADATA = {"source": "reportsonic"}


def _configure() -> None:
    stripe.api_key = settings.STRIPE_SECRET_KEY


def _plain(obj: Any) -> dict[str, Any]:
    for attr in ("to_dict_recursive", "to_dict"):
        converter = getattr(obj, attr, None)
        if callable(converter):
            return converter()
    return dict(obj)


def get_price_id(plan: SubscriptionPlan) -> str:
    """Returns the configured price id, or "" when the plan has none."""
    if plan == SubscriptionPlan.STARTER:
        return settings.STRIPE_STARTER_PRICE_ID
    if plan == SubscriptionPlan.PROFESSIONAL:
        return settings.STRIPE_PROFESSIONAL_PRICE_ID
    return ""


def plan_for_price(price_id: str | None) -> SubscriptionPlan:
    if price_id and price_id == settings.STRIPE_STARTER_PRICE_ID:
        return SubscriptionPlan.STARTER
    if price_id and price_id == settings.STRIPE_PROFESSIONAL_PRICE_ID:
        return SubscriptionPlan.PROFESSIONAL
    return SubscriptionPlan.FREE


# ---------------------------------------------------
# SDK Calls
# ---------------------------------------------------
async def create_customer(email: str, name: str) -> dict[str, Any]:
    _configure()
    customer = await run_in_threadpool(
        stripe.Customer.create, email=email, name=name, metadata=STRIPE_METADATA
    )
    logger.info(f"[STRIPE] Created customer {customer['id']} for {email}")
    return _plain(customer)


async def create_checkout_session(
    customer_id: str, price_id: str, success_url: str, cancel_url: str
) -> dict[str, Any]:
    _configure()
    session = await run_in_threadpool(
        stripe.checkout.Session.create,
        customer=customer_id,
        payment_method_types=["card"],
        line_items=[{"price": price_id, "quantity": 1}],
        mode="subscription",
        success_url=success_url,
        cancel_url=cancel_url,
        metadata=STRIPE_METADATA,
    )
    return _plain(session)


async def create_billing_portal_session(customer_id: str, return_url: str) -> dict[str, Any]:
    _configure()
    session = await run_in_threadpool(
        stripe.billing_portal.Session.create, customer=customer_id, return_url=return_url
    )
    return _plain(session)


async def retrieve_subscription(subscription_id: str) -> dict[str, Any]:
    _configure()
    subscription = await run_in_threadpool(stripe.Subscription.retrieve, subscription_id)
    return _plain(subscription)


def construct_webhook_event(payload: bytes, signature: str | None) -> dict[str, Any]:
    """
    Verifies the Stripe signature and returns the event as a plain dict.

    Raises:
        ValueError: Malformed payload.
        stripe.SignatureVerificationError: Bad or missing signature.
    """
    stripe.Webhook.construct_event(payload, signature or "", settings.STRIPE_WEBHOOK_SECRET)
    return json.loads(payload)
