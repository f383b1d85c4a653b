"""
users/routes.py

Endpoints for the signed-in user's own account:
- Profile
- Plan limits and usage for the current month
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from reportsonic.billing.schemas import UsageSummaryResponse
from reportsonic.billing.services import get_usage_summary
from reportsonic.core.dependencies import get_current_user
from reportsonic.core.schemas import ERROR_RESPONSES
from reportsonic.database.models import User
from reportsonic.database.session import get_db
from reportsonic.users.schemas import UserProfileResponse

router = APIRouter(prefix="/api/user", tags=["Users"], responses=ERROR_RESPONSES)
logger = logging.getLogger(__name__)

CurrentUserDep = Annotated[User, Depends(get_current_user)]


@router.get(
    "/profile",
    response_model=UserProfileResponse,
    status_code=status.HTTP_200_OK,
    summary="Get Profile",
    description="Returns the signed-in user's account and usage counters.",
)
async def get_profile(current_user: CurrentUserDep) -> UserProfileResponse:
    logger.debug(f"[USERS] Profile requested by user {current_user.id}")
    return UserProfileResponse.model_validate(current_user)


@router.get(
    "/usage",
    response_model=UsageSummaryResponse,
    status_code=status.HTTP_200_OK,
    summary="Get Usage",
    description="Returns the plan limits, this month's usage and an upgrade prompt.",
)
async def get_usage(
    current_user: CurrentUserDep,
    db: AsyncSession = Depends(get_db),
) -> UsageSummaryResponse:
    return await get_usage_summary(current_user, db)
