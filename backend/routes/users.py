"""
Fieldforce - Routes Users
Admin manages identities; everyone reads their own profile, edits their own
phone and changes their own password.
"""

import logging
from typing import Optional
from fastapi import APIRouter, HTTPException, Depends

from models.auth import UserLogin, UserCreate, UserUpdate, PasswordChange
from routes.auth import get_current_user, login_user
from services import api_response
from services.permissions import (
    Identity,
    Operation,
    ResourceKind,
    authorize,
    enforce,
    require_access,
    sanitize_payload,
)
from services.query_builder import build_scoped_query, page_meta, pagination
from services.users import (
    PUBLIC_PROJECTION,
    create_identity,
    deactivate_identity,
    email_exists,
    get_user,
    update_identity,
    verify_password,
)
from config import db

logger = logging.getLogger("users")

router = APIRouter(prefix="/users", tags=["Users"])

USER_SEARCH_FIELDS = ["name", "email", "employeeId", "territory"]


@router.post("/login")
async def login(data: UserLogin):
    return await login_user(data)


@router.get("/me")
async def get_me(user: Identity = Depends(get_current_user)):
    profile = await get_user(user.id)
    return api_response.success(profile, "User profile retrieved successfully")


@router.put("/me/password")
async def change_password(data: PasswordChange, user: Identity = Depends(get_current_user)):
    stored = await db.users.find_one({"id": user.id}, {"_id": 0, "password": 1})
    if not stored or not verify_password(data.currentPassword, stored.get("password")):
        raise HTTPException(status_code=400, detail="Current password is incorrect")

    await update_identity(user.id, {"password": data.newPassword})
    logger.info(f"[USERS] Password changed for {user.email}")
    return api_response.success(message="Password changed successfully")


@router.get("/manager/{manager_id}/mrs")
async def get_manager_mrs(manager_id: str, user: Identity = Depends(get_current_user)):
    """MRs reporting to a manager. The manager themselves or an Admin."""
    if not user.is_admin and user.id != manager_id:
        raise HTTPException(status_code=403, detail="Access denied. You can only view your own team")

    mrs = await db.users.find(
        {"role": "MR", "reportingManager": manager_id, "isActive": True},
        PUBLIC_PROJECTION,
    ).sort("name", 1).to_list(500)
    return api_response.success({"count": len(mrs), "users": mrs}, "Team retrieved successfully")


@router.get("")
async def list_users(
    role: Optional[str] = None,
    isActive: Optional[bool] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    user: Identity = Depends(require_access(ResourceKind.USER, Operation.LIST)),
):
    paging = pagination(page, limit)
    query = build_scoped_query(
        filters={"role": role, "isActive": isActive},
        search=search,
        search_fields=USER_SEARCH_FIELDS,
    )
    total = await db.users.count_documents(query)
    users = await db.users.find(query, PUBLIC_PROJECTION).sort("createdAt", -1) \
        .skip(paging["skip"]).limit(paging["limit"]).to_list(paging["limit"])

    return api_response.success(
        {"users": users, "pagination": page_meta(paging["page"], paging["limit"], total)},
        "Users retrieved successfully",
    )


@router.get("/{user_id}")
async def get_user_by_id(user_id: str, user: Identity = Depends(get_current_user)):
    target = await get_user(user_id)
    if not target:
        raise HTTPException(status_code=404, detail="User not found")
    enforce(authorize(user, ResourceKind.USER, Operation.READ, target))
    return api_response.success(target, "User retrieved successfully")


@router.post("")
async def create_user(
    data: UserCreate,
    user: Identity = Depends(require_access(ResourceKind.USER, Operation.CREATE)),
):
    if await email_exists(data.email):
        raise HTTPException(status_code=400, detail="User with this email already exists")
    if data.employeeId and await db.users.find_one({"employeeId": data.employeeId}):
        raise HTTPException(status_code=400, detail="User with this employee ID already exists")

    created = await create_identity(data.model_dump(), created_by=user.id)
    return api_response.created(created, "User created successfully")


@router.put("/{user_id}")
async def update_user(user_id: str, data: UserUpdate, user: Identity = Depends(get_current_user)):
    target = await get_user(user_id)
    if not target:
        raise HTTPException(status_code=404, detail="User not found")
    enforce(authorize(user, ResourceKind.USER, Operation.UPDATE, target))

    changes = sanitize_payload(user, ResourceKind.USER, data.model_dump(exclude_unset=True))
    if not changes:
        raise HTTPException(status_code=400, detail="No updatable fields provided")

    if changes.get("email") and changes["email"] != target.get("email") and await email_exists(changes["email"]):
        raise HTTPException(status_code=400, detail="User with this email already exists")

    updated = await update_identity(user_id, changes)
    return api_response.success(updated, "User updated successfully")


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    user: Identity = Depends(require_access(ResourceKind.USER, Operation.DELETE)),
):
    """Identities are never hard-deleted."""
    if user_id == user.id:
        raise HTTPException(status_code=400, detail="You cannot deactivate your own account")
    if not await deactivate_identity(user_id):
        raise HTTPException(status_code=404, detail="User not found")
    logger.info(f"[USERS] Deactivated {user_id} by {user.id}")
    return api_response.success(message="User deactivated successfully")
