"""
Fieldforce - Routes MR Performance Logs
Admin records and verifies monthly performance; each MR reads their own.
"""

import logging
import uuid
from typing import Optional
from fastapi import APIRouter, HTTPException, Depends

from config import db, now_iso
from models.targets import MRPerformanceCreate, MRPerformanceUpdate, compute_averages
from routes.auth import get_current_user, require_admin
from services import api_response
from services.lookups import attach_period
from services.permissions import Identity, Operation, ResourceKind, authorize, enforce, require_access
from services.query_builder import build_scoped_query, caller_filters

logger = logging.getLogger("mr_performance")

router = APIRouter(prefix="/mr-performance", tags=["MR Performance"])


async def _get_log_or_404(log_id: str) -> dict:
    log = await db.mr_performance_logs.find_one({"id": log_id}, {"_id": 0})
    if not log:
        raise HTTPException(status_code=404, detail="Performance log not found")
    return log


async def _view(log: dict) -> dict:
    return (await attach_period([log]))[0]


@router.get("")
async def list_performance_logs(
    month: Optional[int] = None,
    year: Optional[int] = None,
    status: Optional[str] = None,
    mr: Optional[str] = None,
    user: Identity = Depends(get_current_user),
):
    scope = enforce(authorize(user, ResourceKind.MR_PERFORMANCE, Operation.LIST))
    query = build_scoped_query(scope, caller_filters(user, mr=mr, month=month, year=year, status=status))
    logs = await db.mr_performance_logs.find(query, {"_id": 0}).sort([("year", -1), ("month", -1)]).to_list(1000)
    return api_response.success(
        {"count": len(logs), "logs": await attach_period(logs)},
        "Performance logs retrieved successfully",
    )


@router.get("/{log_id}")
async def get_performance_log(log_id: str, user: Identity = Depends(get_current_user)):
    log = await _get_log_or_404(log_id)
    enforce(authorize(user, ResourceKind.MR_PERFORMANCE, Operation.READ, log))
    return api_response.success(await _view(log), "Performance log retrieved successfully")


@router.post("")
async def create_performance_log(
    data: MRPerformanceCreate,
    user: Identity = Depends(require_access(ResourceKind.MR_PERFORMANCE, Operation.CREATE)),
):
    if not await db.users.find_one({"id": data.mr}, {"_id": 1}):
        raise HTTPException(status_code=400, detail="MR not found")
    if await db.mr_performance_logs.find_one({"mr": data.mr, "month": data.month, "year": data.year}, {"_id": 1}):
        raise HTTPException(status_code=400, detail="Performance log already exists for this MR and period")

    now = now_iso()
    log = compute_averages({
        "id": str(uuid.uuid4()),
        "total_visits": 0,
        "total_orders": 0,
        "total_sale_amount": 0,
        "working_days": 0,
        **data.model_dump(exclude_none=True),
        "createdAt": now,
        "updatedAt": now,
    })
    await db.mr_performance_logs.insert_one(log)
    log.pop("_id", None)
    logger.info(f"[PERFORMANCE] Created log mr={data.mr} period={data.month}/{data.year}")
    return api_response.created(await _view(log), "Performance log created successfully")


@router.put("/{log_id}")
async def update_performance_log(
    log_id: str,
    data: MRPerformanceUpdate,
    user: Identity = Depends(require_access(ResourceKind.MR_PERFORMANCE, Operation.UPDATE)),
):
    log = await _get_log_or_404(log_id)
    merged = compute_averages({**log, **data.model_dump(exclude_unset=True, exclude_none=True)})
    merged["updatedAt"] = now_iso()
    merged.pop("id", None)
    await db.mr_performance_logs.update_one({"id": log_id}, {"$set": merged})
    updated = await _get_log_or_404(log_id)
    return api_response.success(await _view(updated), "Performance log updated successfully")


@router.post("/{log_id}/verify")
async def verify_performance_log(log_id: str, user: Identity = Depends(require_admin)):
    await _get_log_or_404(log_id)
    now = now_iso()
    await db.mr_performance_logs.update_one(
        {"id": log_id},
        {"$set": {"status": "Verified", "verified_by": user.id, "verified_at": now, "updatedAt": now}},
    )
    updated = await _get_log_or_404(log_id)
    logger.info(f"[PERFORMANCE] Verified log {log_id} by={user.id}")
    return api_response.success(await _view(updated), "Performance log verified successfully")


@router.delete("/{log_id}")
async def delete_performance_log(
    log_id: str,
    user: Identity = Depends(require_access(ResourceKind.MR_PERFORMANCE, Operation.DELETE)),
):
    await _get_log_or_404(log_id)
    await db.mr_performance_logs.delete_one({"id": log_id})
    return api_response.success(message="Performance log deleted successfully")
