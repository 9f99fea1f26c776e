"""
Fieldforce - Routes Orders
MRs place and edit their own orders while Pending or Confirmed; status
transitions past that belong to Admin.
"""

import logging
import uuid
from typing import Optional
from fastapi import APIRouter, HTTPException, Depends

from config import db, now_iso
from models.order import OrderCreate, OrderUpdate, OrderStatusUpdate, OrderCancel
from routes.auth import get_current_user, require_admin
from services import api_response
from services.lookups import attach_people
from services.order_totals import apply_order_totals
from services.permissions import (
    Identity,
    Operation,
    ResourceKind,
    authorize,
    enforce,
    force_owner,
    sanitize_payload,
)
from services.query_builder import build_scoped_query, caller_filters, page_meta, pagination
from services.sequences import next_order_id
from services.state_machine import transition_order

logger = logging.getLogger("orders")

router = APIRouter(prefix="/orders", tags=["Orders"])

ORDER_SEARCH_FIELDS = ["orderId", "notes", "delivery.contactPerson"]
MERGED_BLOCKS = ["orderDetails", "delivery", "financial"]


async def _get_order_or_404(order_id: str) -> dict:
    order = await db.orders.find_one({"id": order_id}, {"_id": 0})
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


async def _check_references(doctor_id: Optional[str], items: Optional[list]):
    if doctor_id and not await db.doctors.find_one({"id": doctor_id}, {"_id": 1}):
        raise HTTPException(status_code=400, detail="Doctor not found")
    product_ids = {i["product"] for i in items or []}
    if product_ids:
        found = {p["id"] async for p in db.products.find({"id": {"$in": list(product_ids)}}, {"_id": 0, "id": 1})}
        missing = sorted(product_ids - found)
        if missing:
            raise HTTPException(status_code=400, detail=f"Product not found: {', '.join(missing)}")


async def _view(order: dict) -> dict:
    return (await attach_people([order]))[0]


@router.get("")
async def list_orders(
    status: Optional[str] = None,
    orderType: Optional[str] = None,
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    search: Optional[str] = None,
    mr: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    user: Identity = Depends(get_current_user),
):
    scope = enforce(authorize(user, ResourceKind.ORDER, Operation.LIST))
    paging = pagination(page, limit)

    filters = caller_filters(user, mr=mr, status=status)
    if orderType:
        filters["orderDetails.orderType"] = orderType
    query = build_scoped_query(
        scope, filters, search, ORDER_SEARCH_FIELDS,
        date_field="orderDetails.orderDate", start=startDate, end=endDate,
    )
    total = await db.orders.count_documents(query)
    orders = await db.orders.find(query, {"_id": 0}).sort("createdAt", -1) \
        .skip(paging["skip"]).limit(paging["limit"]).to_list(paging["limit"])

    return api_response.success(
        {"orders": await attach_people(orders), "pagination": page_meta(paging["page"], paging["limit"], total)},
        "Orders retrieved successfully",
    )


@router.get("/{order_id}")
async def get_order(order_id: str, user: Identity = Depends(get_current_user)):
    order = await _get_order_or_404(order_id)
    enforce(authorize(user, ResourceKind.ORDER, Operation.READ, order))
    return api_response.success(await _view(order), "Order retrieved successfully")


@router.post("")
async def create_order(data: OrderCreate, user: Identity = Depends(get_current_user)):
    enforce(authorize(user, ResourceKind.ORDER, Operation.CREATE))

    payload = sanitize_payload(user, ResourceKind.ORDER, data.model_dump(exclude_none=True))
    payload = force_owner(user, ResourceKind.ORDER, payload)
    if not payload.get("mr"):
        raise HTTPException(status_code=400, detail="MR is required")
    await _check_references(payload["doctor"], payload["items"])

    now = now_iso()
    order = {
        "id": str(uuid.uuid4()),
        "orderId": await next_order_id(),
        **payload,
        "status": "Pending",
        "statusHistory": [],
        "createdAt": now,
        "updatedAt": now,
    }
    order["orderDetails"] = {"orderDate": now, **(order.get("orderDetails") or {})}
    order = apply_order_totals(order)

    await db.orders.insert_one(order)
    order.pop("_id", None)
    logger.info(f"[ORDERS] Created {order['orderId']} mr={order['mr']} total={order['financial']['grandTotal']}")
    return api_response.created(await _view(order), "Order created successfully")


@router.put("/{order_id}")
async def update_order(order_id: str, data: OrderUpdate, user: Identity = Depends(get_current_user)):
    order = await _get_order_or_404(order_id)
    enforce(authorize(user, ResourceKind.ORDER, Operation.UPDATE, order))

    changes = sanitize_payload(user, ResourceKind.ORDER, data.model_dump(exclude_unset=True, exclude_none=True))
    await _check_references(changes.get("doctor"), changes.get("items"))

    for block in MERGED_BLOCKS:
        if block in changes:
            changes[block] = {**(order.get(block) or {}), **changes[block]}

    if "items" in changes or "financial" in changes:
        totals = apply_order_totals({**order, **changes})
        changes["items"] = totals["items"]
        changes["financial"] = totals["financial"]

    changes["updatedAt"] = now_iso()
    await db.orders.update_one({"id": order_id}, {"$set": changes})
    updated = await _get_order_or_404(order_id)
    return api_response.success(await _view(updated), "Order updated successfully")


@router.delete("/{order_id}")
async def delete_order(order_id: str, user: Identity = Depends(get_current_user)):
    order = await _get_order_or_404(order_id)
    enforce(authorize(user, ResourceKind.ORDER, Operation.DELETE, order))

    await db.orders.delete_one({"id": order_id})
    logger.info(f"[ORDERS] Deleted {order.get('orderId')} by={user.id}")
    return api_response.success(message="Order deleted successfully")


# ==================== STATUS ====================

@router.put("/{order_id}/status")
async def update_order_status(order_id: str, data: OrderStatusUpdate, user: Identity = Depends(require_admin)):
    order = await _get_order_or_404(order_id)
    updated = await transition_order(order, data.status, user, notes=data.notes)
    return api_response.success(await _view(updated), "Order status updated successfully")


@router.post("/{order_id}/cancel")
async def cancel_order(
    order_id: str,
    data: Optional[OrderCancel] = None,
    user: Identity = Depends(get_current_user),
):
    order = await _get_order_or_404(order_id)
    enforce(authorize(user, ResourceKind.ORDER, Operation.UPDATE, order))

    reason = data.reason if data else None
    updated = await transition_order(order, "Cancelled", user, notes=reason, reason=reason)
    return api_response.success(await _view(updated), "Order cancelled successfully")
