"""
Fieldforce - Routes Product Activity
MRs log and read their own product activity; Admin reads everything and
gets per-product analytics.
"""

import logging
from datetime import datetime, timezone
from typing import Optional
from fastapi import APIRouter, HTTPException, Depends

from config import db
from models.product_activity import ProductActivityCreate
from routes.auth import get_current_user, require_admin
from services import api_response
from services.lookups import attach_people, products_by_id
from services.permissions import Identity, Operation, ResourceKind, authorize, enforce, force_owner, sanitize_payload
from services.product_activity import log_activity, mr_product_summary, product_analytics
from services.query_builder import build_scoped_query, caller_filters, date_range_clause

logger = logging.getLogger("product_activity")

router = APIRouter(prefix="/product-activity", tags=["Product Activity"])


async def _with_products(rows: list) -> list:
    products = await products_by_id(r.get("product") for r in rows)
    for r in rows:
        r["productInfo"] = products.get(r.get("product"))
    return await attach_people(rows)


@router.get("")
async def list_activities(
    productId: Optional[str] = None,
    doctorId: Optional[str] = None,
    activityType: Optional[str] = None,
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    mr: Optional[str] = None,
    user: Identity = Depends(get_current_user),
):
    scope = enforce(authorize(user, ResourceKind.PRODUCT_ACTIVITY, Operation.LIST))
    query = build_scoped_query(
        scope,
        caller_filters(user, mr=mr, product=productId, doctor=doctorId, activity_type=activityType),
        date_field="date",
        start=startDate,
        end=endDate,
    )
    activities = await db.product_activity_logs.find(query, {"_id": 0}).sort("date", -1).to_list(1000)
    return api_response.success(
        {"count": len(activities), "activities": await _with_products(activities)},
        "Activities retrieved successfully",
    )


@router.get("/summary")
async def get_mr_summary(
    month: Optional[int] = None,
    year: Optional[int] = None,
    mr: Optional[str] = None,
    user: Identity = Depends(get_current_user),
):
    """Per-product summary for one MR and month (defaults: caller, current month)."""
    enforce(authorize(user, ResourceKind.PRODUCT_ACTIVITY, Operation.LIST))
    today = datetime.now(timezone.utc)
    month = month or today.month
    year = year or today.year
    if month < 1 or month > 12:
        raise HTTPException(status_code=400, detail="Month must be between 1 and 12")

    mr_id = mr if (mr and user.is_admin) else user.id
    summary = await mr_product_summary(mr_id, month, year)
    products = await products_by_id(s["product"] for s in summary)
    for s in summary:
        s["productInfo"] = products.get(s["product"])
    return api_response.success(
        {"mr": mr_id, "month": month, "year": year, "products": summary},
        "Product summary retrieved successfully",
    )


@router.get("/analytics/product/{product_id}")
async def get_product_analytics(
    product_id: str,
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    user: Identity = Depends(require_admin),
):
    window = date_range_clause("date", startDate, endDate) or {}
    analytics = await product_analytics(product_id, window)
    return api_response.success(analytics, "Product analytics retrieved successfully")


@router.get("/{activity_id}")
async def get_activity(activity_id: str, user: Identity = Depends(get_current_user)):
    activity = await db.product_activity_logs.find_one({"id": activity_id}, {"_id": 0})
    if not activity:
        raise HTTPException(status_code=404, detail="Activity not found")
    enforce(authorize(user, ResourceKind.PRODUCT_ACTIVITY, Operation.READ, activity))
    return api_response.success((await _with_products([activity]))[0], "Activity retrieved successfully")


@router.post("")
async def create_activity(data: ProductActivityCreate, user: Identity = Depends(get_current_user)):
    enforce(authorize(user, ResourceKind.PRODUCT_ACTIVITY, Operation.CREATE))

    if not await db.products.find_one({"id": data.product}, {"_id": 1}):
        raise HTTPException(status_code=400, detail="Product not found")

    payload = sanitize_payload(user, ResourceKind.PRODUCT_ACTIVITY, data.model_dump(exclude_none=True))
    payload = force_owner(user, ResourceKind.PRODUCT_ACTIVITY, payload)
    if not payload.get("mr"):
        raise HTTPException(status_code=400, detail="MR is required")

    activity = await log_activity(payload)
    logger.info(f"[ACTIVITY] {activity['activity_type']} product={activity['product']} mr={activity['mr']}")
    return api_response.created(activity, "Activity logged successfully")
