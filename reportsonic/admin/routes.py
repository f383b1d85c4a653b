"""
admin/routes.py

Admin API Routes

- Role/plan assignment by email (open endpoint, kept for operator tooling)
- Superadmin user management: list, create, view, update, delete
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Path, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from reportsonic.admin.schemas import (
    AdminUserCreateRequest,
    AdminUserDetail,
    AdminUserListItem,
    AdminUserUpdateRequest,
    AdminUserView,
    UpdateUserRoleRequest,
    UpdateUserRoleResponse,
)
from reportsonic.admin.services import AdminService
from reportsonic.core.dependencies import PaginationParams, require_superadmin
from reportsonic.core.limiter import limiter
from reportsonic.core.schemas import ERROR_RESPONSES, MessageResponse, PaginatedResponse
from reportsonic.database.models import User
from reportsonic.database.session import get_db

# ---------------------------------------------------
# Router Configuration
# ---------------------------------------------------
router = APIRouter(prefix="/api/admin", tags=["Admin"], responses=ERROR_RESPONSES)
logger = logging.getLogger(__name__)

# ---------------------------------------------------
# Dependencies
# ---------------------------------------------------
DBDep = Annotated[AsyncSession, Depends(get_db)]
SuperadminDep = Annotated[User, Depends(require_superadmin)]
UserIdPath = Annotated[int, Path(..., description="ID of the user")]


# ---------------------------------------------------
# Role Assignment
# ---------------------------------------------------
@router.post(
    "/update-user-role",
    response_model=UpdateUserRoleResponse,
    status_code=status.HTTP_200_OK,
    summary="Update User Role",
    description="Sets role and subscription plan for the account with the given email. Does not require authentication.",
)
@limiter.limit("10/minute")
async def update_user_role(
    request: Request,
    payload: UpdateUserRoleRequest,
    db: DBDep,
) -> UpdateUserRoleResponse:
    user = await AdminService(db).update_user_role(payload)
    return UpdateUserRoleResponse(user=AdminUserView.model_validate(user))


# ---------------------------------------------------
# User Management (Superadmin)
# ---------------------------------------------------
@router.get(
    "/users",
    response_model=PaginatedResponse[AdminUserListItem],
    status_code=status.HTTP_200_OK,
    summary="List Users",
    description="Lists users newest first with report aggregates. Requires superadmin role.",
)
@limiter.limit("30/minute")
async def list_users(
    request: Request,
    db: DBDep,
    admin: SuperadminDep,
    pagination: PaginationParams = Depends(),
) -> PaginatedResponse[AdminUserListItem]:
    items, total_count = await AdminService(db).list_users(
        skip=pagination.skip, limit=pagination.limit
    )
    return PaginatedResponse(
        total_count=total_count,
        has_next_page=(pagination.skip + len(items)) < total_count,
        items=items,
    )


@router.post(
    "/users",
    response_model=AdminUserView,
    status_code=status.HTTP_201_CREATED,
    summary="Create User",
    description="Creates an account with the given role and plan. Requires superadmin role.",
)
@limiter.limit("10/minute")
async def create_user(
    request: Request,
    payload: AdminUserCreateRequest,
    db: DBDep,
    admin: SuperadminDep,
) -> AdminUserView:
    user = await AdminService(db).create_user(payload)
    return AdminUserView.model_validate(user)


@router.get(
    "/users/{user_id}",
    response_model=AdminUserDetail,
    status_code=status.HTTP_200_OK,
    summary="Get User Details",
    description="Returns the account, its reports and its 50 most recent usage logs. Requires superadmin role.",
)
async def get_user(user_id: UserIdPath, db: DBDep, admin: SuperadminDep) -> AdminUserDetail:
    return await AdminService(db).get_user_detail(user_id)


@router.put(
    "/users/{user_id}",
    response_model=AdminUserView,
    status_code=status.HTTP_200_OK,
    summary="Update User",
    description="Updates name, email, role, plan and monthly counters. Requires superadmin role.",
)
async def update_user(
    user_id: UserIdPath,
    payload: AdminUserUpdateRequest,
    db: DBDep,
    admin: SuperadminDep,
) -> AdminUserView:
    user = await AdminService(db).update_user(user_id, payload)
    return AdminUserView.model_validate(user)


@router.delete(
    "/users/{user_id}",
    response_model=MessageResponse,
    status_code=status.HTTP_200_OK,
    summary="Delete User",
    description="Deletes the account with its reports and usage logs. Requires superadmin role.",
)
async def delete_user(user_id: UserIdPath, db: DBDep, admin: SuperadminDep) -> MessageResponse:
    logger.info(f"[ADMIN] Superadmin {admin.id} deleting user {user_id}")
    await AdminService(db).delete_user(user_id)
    return MessageResponse(message="User deleted successfully")
