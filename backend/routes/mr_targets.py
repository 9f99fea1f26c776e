"""
Fieldforce - Routes MR Targets
Admin sets monthly targets; each MR reads their own.
"""

import logging
import uuid
from typing import Optional
from fastapi import APIRouter, HTTPException, Depends

from config import db, now_iso
from models.targets import MRTargetCreate, MRTargetUpdate
from routes.auth import get_current_user
from services import api_response
from services.lookups import attach_period
from services.permissions import Identity, Operation, ResourceKind, authorize, enforce, require_access
from services.query_builder import build_scoped_query, caller_filters

logger = logging.getLogger("mr_targets")

router = APIRouter(prefix="/mr-targets", tags=["MR Targets"])


async def _get_target_or_404(target_id: str) -> dict:
    target = await db.mr_targets.find_one({"id": target_id}, {"_id": 0})
    if not target:
        raise HTTPException(status_code=404, detail="Target not found")
    return target


async def _view(target: dict) -> dict:
    return (await attach_period([target]))[0]


@router.get("")
async def list_targets(
    month: Optional[int] = None,
    year: Optional[int] = None,
    mr: Optional[str] = None,
    user: Identity = Depends(get_current_user),
):
    scope = enforce(authorize(user, ResourceKind.MR_TARGET, Operation.LIST))
    query = build_scoped_query(scope, caller_filters(user, mr=mr, month=month, year=year))
    targets = await db.mr_targets.find(query, {"_id": 0}).sort([("year", -1), ("month", -1)]).to_list(1000)
    return api_response.success(
        {"count": len(targets), "targets": await attach_period(targets)},
        "Targets retrieved successfully",
    )


@router.get("/{target_id}")
async def get_target(target_id: str, user: Identity = Depends(get_current_user)):
    target = await _get_target_or_404(target_id)
    enforce(authorize(user, ResourceKind.MR_TARGET, Operation.READ, target))
    return api_response.success(await _view(target), "Target retrieved successfully")


@router.post("")
async def create_target(
    data: MRTargetCreate,
    user: Identity = Depends(require_access(ResourceKind.MR_TARGET, Operation.CREATE)),
):
    if not await db.users.find_one({"id": data.mr}, {"_id": 1}):
        raise HTTPException(status_code=400, detail="MR not found")
    if await db.mr_targets.find_one({"mr": data.mr, "month": data.month, "year": data.year}, {"_id": 1}):
        raise HTTPException(status_code=400, detail="Target already exists for this MR and period")

    now = now_iso()
    target = {
        "id": str(uuid.uuid4()),
        **data.model_dump(exclude_none=True),
        "created_by": user.id,
        "createdAt": now,
        "updatedAt": now,
    }
    await db.mr_targets.insert_one(target)
    target.pop("_id", None)
    logger.info(f"[TARGETS] Created target mr={data.mr} period={data.month}/{data.year}")
    return api_response.created(await _view(target), "Target created successfully")


@router.put("/{target_id}")
async def update_target(
    target_id: str,
    data: MRTargetUpdate,
    user: Identity = Depends(require_access(ResourceKind.MR_TARGET, Operation.UPDATE)),
):
    await _get_target_or_404(target_id)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    changes["updatedAt"] = now_iso()
    await db.mr_targets.update_one({"id": target_id}, {"$set": changes})
    updated = await _get_target_or_404(target_id)
    return api_response.success(await _view(updated), "Target updated successfully")


@router.delete("/{target_id}")
async def delete_target(
    target_id: str,
    user: Identity = Depends(require_access(ResourceKind.MR_TARGET, Operation.DELETE)),
):
    await _get_target_or_404(target_id)
    await db.mr_targets.delete_one({"id": target_id})
    return api_response.success(message="Target deleted successfully")
