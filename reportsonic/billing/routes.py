"""
billing/routes.py

Stripe subscription endpoints:
- Checkout session for the starter / professional plans
- Billing portal session for existing customers
- Signed webhook receiver
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from reportsonic.billing.schemas import (
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    PortalSessionResponse,
    WebhookResponse,
)
from reportsonic.billing.services import (
    create_checkout_session,
    create_portal_session,
    process_webhook,
)
from reportsonic.core.dependencies import get_current_user
from reportsonic.core.limiter import limiter
from reportsonic.core.schemas import ERROR_RESPONSES
from reportsonic.database.models import User
from reportsonic.database.session import get_db

router = APIRouter(prefix="/api/stripe", tags=["Billing"], responses=ERROR_RESPONSES)
logger = logging.getLogger(__name__)

DBDep = Annotated[AsyncSession, Depends(get_db)]
CurrentUserDep = Annotated[User, Depends(get_current_user)]


@router.post(
    "/create-checkout-session",
    response_model=CheckoutSessionResponse,
    status_code=status.HTTP_200_OK,
    summary="Create Checkout Session",
    description="Creates a Stripe checkout session for the starter or professional plan.",
)
@limiter.limit("10/minute")
async def post_create_checkout_session(
    request: Request,
    payload: CheckoutSessionRequest,
    current_user: CurrentUserDep,
    db: DBDep,
) -> CheckoutSessionResponse:
    return await create_checkout_session(payload, current_user, db)


@router.post(
    "/create-portal-session",
    response_model=PortalSessionResponse,
    status_code=status.HTTP_200_OK,
    summary="Create Billing Portal Session",
    description="Creates a Stripe billing portal session for the current customer.",
)
@limiter.limit("10/minute")
async def post_create_portal_session(
    request: Request,
    current_user: CurrentUserDep,
) -> PortalSessionResponse:
    return await create_portal_session(current_user)


@router.post(
    "/webhook",
    response_model=WebhookResponse,
    status_code=status.HTTP_200_OK,
    summary="Stripe Webhook",
    description="Receives signed Stripe events and syncs subscription state.",
)
async def stripe_webhook(
    request: Request,
    db: DBDep,
    stripe_signature: Annotated[str | None, Header(alias="Stripe-Signature")] = None,
) -> WebhookResponse:
    payload = await request.body()
    return await process_webhook(payload, stripe_signature, db)
