"""
tests/admin/test_admin_routes.py

Route tests for the admin API:
- Open role/plan assignment endpoint
- Superadmin-only user management with RBAC checks
"""

from typing import Any
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import status
from httpx import AsyncClient

from reportsonic.admin.schemas import AdminUserDetail, AdminUserListItem, AdminUserView
from reportsonic.core.exceptions import APIError
from reportsonic.database.enums import SubscriptionPlan, UserRole
from reportsonic.database.models import User


# =============================
# --- Update User Role ---
# =============================
@pytest.mark.asyncio
@patch("reportsonic.admin.routes.AdminService.update_user_role", new_callable=AsyncMock)
async def test_update_user_role_without_auth(
    mock_update: AsyncMock, async_client: AsyncClient, override_get_db: None, user_factory: Any
) -> None:
    """The endpoint is open: no session is required"""
    mock_update.return_value = user_factory(
        role=UserRole.ADMIN, subscription_plan=SubscriptionPlan.PROFESSIONAL
    )
    response = await async_client.post(
        "/api/admin/update-user-role", json={"email": "user.test@example.com", "role": "admin"}
    )
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["message"] == "User updated successfully"
    assert body["user"]["role"] == "admin"
    assert body["user"]["subscription_plan"] == "professional"
    assert "password" not in body["user"]


@pytest.mark.asyncio
@patch("reportsonic.admin.routes.AdminService.update_user_role", new_callable=AsyncMock)
async def test_update_user_role_unknown_email(
    mock_update: AsyncMock, async_client: AsyncClient, override_get_db: None
) -> None:
    mock_update.side_effect = APIError(status_code=status.HTTP_404_NOT_FOUND, message="User not found")
    response = await async_client.post(
        "/api/admin/update-user-role", json={"email": "ghost@example.com", "role": "admin"}
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"error": "User not found"}


# ===================================
# --- Superadmin User Management ---
# ===================================
@pytest.mark.asyncio
async def test_list_users_forbidden_for_regular_user(
    async_client: AsyncClient, override_get_db: None, override_get_current_user: User
) -> None:
    response = await async_client.get("/api/admin/users")
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json() == {"error": "Superadmin access required"}


@pytest.mark.asyncio
@patch("reportsonic.admin.routes.AdminService.list_users", new_callable=AsyncMock)
async def test_list_users_paginated(
    mock_list: AsyncMock,
    async_client: AsyncClient,
    override_get_db: None,
    mock_current_superadmin: User,
    fake_user: User,
) -> None:
    item = AdminUserListItem(
        **AdminUserView.model_validate(fake_user).model_dump(),
        total_reports=3,
        total_cells_generated=1200,
    )
    mock_list.return_value = ([item], 5)

    response = await async_client.get("/api/admin/users", params={"skip": 2, "limit": 1})

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["total_count"] == 5
    assert body["has_next_page"] is True
    assert body["items"][0]["total_reports"] == 3
    assert body["items"][0]["total_cells_generated"] == 1200
    mock_list.assert_awaited_once_with(skip=2, limit=1)


@pytest.mark.asyncio
@patch("reportsonic.admin.routes.AdminService.create_user", new_callable=AsyncMock)
async def test_create_user(
    mock_create: AsyncMock,
    async_client: AsyncClient,
    override_get_db: None,
    mock_current_superadmin: User,
    user_factory: Any,
) -> None:
    mock_create.return_value = user_factory(id=12, email="new@example.com", name="New")
    response = await async_client.post(
        "/api/admin/users",
        json={"name": "New", "email": "new@example.com", "password": "secret1"},
    )
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["id"] == 12


@pytest.mark.asyncio
@patch("reportsonic.admin.routes.AdminService.get_user_detail", new_callable=AsyncMock)
async def test_get_user_detail(
    mock_detail: AsyncMock,
    async_client: AsyncClient,
    override_get_db: None,
    mock_current_superadmin: User,
    fake_user: User,
) -> None:
    mock_detail.return_value = AdminUserDetail(
        user=AdminUserView.model_validate(fake_user), reports=[], usageLogs=[]
    )
    response = await async_client.get(f"/api/admin/users/{fake_user.id}")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["user"]["email"] == fake_user.email
    assert response.json()["usageLogs"] == []


@pytest.mark.asyncio
@patch("reportsonic.admin.routes.AdminService.update_user", new_callable=AsyncMock)
async def test_update_user_email_conflict(
    mock_update: AsyncMock,
    async_client: AsyncClient,
    override_get_db: None,
    mock_current_superadmin: User,
) -> None:
    mock_update.side_effect = APIError(
        status_code=status.HTTP_400_BAD_REQUEST, message="Email already taken by another user"
    )
    response = await async_client.put(
        "/api/admin/users/5", json={"name": "X", "email": "taken@example.com"}
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "Email already taken by another user"}


@pytest.mark.asyncio
@patch("reportsonic.admin.routes.AdminService.delete_user", new_callable=AsyncMock)
async def test_delete_user(
    mock_delete: AsyncMock,
    async_client: AsyncClient,
    override_get_db: None,
    mock_current_superadmin: User,
) -> None:
    response = await async_client.delete("/api/admin/users/5")
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"message": "User deleted successfully"}
    mock_delete.assert_awaited_once_with(5)


@pytest.mark.asyncio
async def test_user_id_must_be_integer(
    async_client: AsyncClient, override_get_db: None, mock_current_superadmin: User
) -> None:
    response = await async_client.get("/api/admin/users/not-a-number")
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "error" in response.json()
