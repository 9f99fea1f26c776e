"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  FIELDFORCE - Status State Machines                                          ║
║                                                                              ║
║  Only this module moves a visit report, an order or an MR request from one   ║
║  status to another.                                                          ║
║                                                                              ║
║  INVARIANTS:                                                                 ║
║  - Approved / Rejected visit reports carry approvedBy + approvedAt           ║
║  - every order transition appends exactly one statusHistory entry            ║
║  - order status never moves backward on the forward path                     ║
║  - Cancelled / Returned orders are terminal                                  ║
║  - an MR request leaves "pending" at most once                               ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import logging
from typing import Any, Dict, Optional

from fastapi import HTTPException
from pymongo import ReturnDocument

from config import db, now_iso
from services.permissions import ORDER_MUTABLE_STATES, VISIT_TERMINAL_STATES, Identity

logger = logging.getLogger("state_machine")


class StateTransitionError(Exception):
    """Raised when a requested status change is not allowed."""
    pass


# ════════════════════════════════════════════════════════════════════════════
# VISIT REPORTS
# ════════════════════════════════════════════════════════════════════════════

VISIT_STATUSES = ["Draft", "Submitted", "Approved", "Rejected"]


def validate_visit_transition(from_status: str, to_status: str) -> bool:
    if to_status not in VISIT_STATUSES:
        raise StateTransitionError(f"Invalid visit report status: {to_status}")
    if from_status == to_status and to_status in VISIT_TERMINAL_STATES:
        raise StateTransitionError(f"Visit report is already {to_status.lower()}")
    return True


def visit_decision_fields(to_status: str, identity: Identity, reason: Optional[str] = None) -> Dict[str, Any]:
    """Stamps written alongside a terminal visit status."""
    fields = {
        "status": to_status,
        "approvedBy": identity.id,
        "approvedAt": now_iso(),
    }
    if to_status == "Rejected":
        fields["rejectionReason"] = reason or ""
    return fields


async def decide_visit_report(report: dict, to_status: str, identity: Identity, reason: Optional[str] = None) -> dict:
    """Approve or reject a visit report. Admin only, checked by the caller."""
    try:
        validate_visit_transition(report.get("status"), to_status)
    except StateTransitionError as e:
        raise HTTPException(status_code=400, detail=str(e))

    fields = visit_decision_fields(to_status, identity, reason)
    fields["updatedAt"] = fields["approvedAt"]

    updated = await db.visit_reports.find_one_and_update(
        {"id": report["id"], "status": {"$ne": to_status}},
        {"$set": fields},
        projection={"_id": 0},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise HTTPException(status_code=400, detail=f"Visit report is already {to_status.lower()}")

    logger.info(f"[STATE_MACHINE] visit_report={report['id']} {report.get('status')} -> {to_status} by={identity.id}")
    return updated


# ════════════════════════════════════════════════════════════════════════════
# ORDERS
# ════════════════════════════════════════════════════════════════════════════

ORDER_FORWARD_PATH = ["Pending", "Confirmed", "Processing", "Shipped", "Delivered"]
ORDER_STATUSES = ORDER_FORWARD_PATH + ["Cancelled", "Returned"]
ORDER_TERMINAL_STATES = {"Cancelled", "Returned"}
ORDER_RETURNABLE_STATES = {"Shipped", "Delivered"}


def valid_order_targets(from_status: str) -> list:
    if from_status in ORDER_TERMINAL_STATES:
        return []
    targets = []
    if from_status in ORDER_FORWARD_PATH:
        targets = ORDER_FORWARD_PATH[ORDER_FORWARD_PATH.index(from_status) + 1:]
    if from_status in ORDER_MUTABLE_STATES:
        targets.append("Cancelled")
    if from_status in ORDER_RETURNABLE_STATES:
        targets.append("Returned")
    return targets


def validate_order_transition(from_status: str, to_status: str) -> bool:
    if to_status not in ORDER_STATUSES:
        raise StateTransitionError(f"Invalid order status: {to_status}")
    valid_next = valid_order_targets(from_status)
    if to_status not in valid_next:
        raise StateTransitionError(
            f"Cannot change order status from {from_status} to {to_status}. "
            f"Valid transitions: {valid_next}"
        )
    return True


def history_entry(status: str, identity: Identity, notes: Optional[str] = None) -> Dict[str, Any]:
    return {
        "status": status,
        "updatedBy": identity.id,
        "timestamp": now_iso(),
        "notes": notes or "",
    }


async def transition_order(
    order: dict,
    to_status: str,
    identity: Identity,
    notes: Optional[str] = None,
    reason: Optional[str] = None,
) -> dict:
    """
    Move an order to `to_status`. The update is conditioned on the status
    read by the caller, so a concurrent transition makes this one fail
    instead of writing two history entries.
    """
    from_status = order.get("status")
    try:
        validate_order_transition(from_status, to_status)
    except StateTransitionError as e:
        raise HTTPException(status_code=400, detail=str(e))

    entry = history_entry(to_status, identity, notes)
    fields = {"status": to_status, "updatedAt": entry["timestamp"]}
    if to_status == "Delivered":
        fields["orderDetails.actualDeliveryDate"] = entry["timestamp"]
    if to_status == "Cancelled":
        fields["cancellationReason"] = reason or notes or ""

    updated = await db.orders.find_one_and_update(
        {"id": order["id"], "status": from_status},
        {"$set": fields, "$push": {"statusHistory": entry}},
        projection={"_id": 0},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise HTTPException(status_code=400, detail="Order status changed concurrently, reload and retry")

    logger.info(f"[STATE_MACHINE] order={order.get('orderId')} {from_status} -> {to_status} by={identity.id}")
    return updated


# ════════════════════════════════════════════════════════════════════════════
# MR REQUESTS
# ════════════════════════════════════════════════════════════════════════════

async def claim_mr_request(request_id: str, to_status: str, identity: Identity, extra: Optional[dict] = None) -> dict:
    """
    Compare-and-swap pending -> to_status. Exactly one caller wins; every
    other sees 400 "Request has already been processed".
    """
    if to_status not in ("approved", "rejected"):
        raise HTTPException(status_code=400, detail=f"Invalid request status: {to_status}")

    fields = {"status": to_status, "processedBy": identity.id, "processedAt": now_iso()}
    fields.update(extra or {})

    claimed = await db.mr_requests.find_one_and_update(
        {"id": request_id, "status": "pending"},
        {"$set": fields},
        projection={"_id": 0},
        return_document=ReturnDocument.AFTER,
    )
    if claimed:
        logger.info(f"[STATE_MACHINE] mr_request={request_id} pending -> {to_status} by={identity.id}")
        return claimed

    existing = await db.mr_requests.find_one({"id": request_id}, {"_id": 0, "id": 1})
    if not existing:
        raise HTTPException(status_code=404, detail="MR request not found")
    raise HTTPException(status_code=400, detail="Request has already been processed")


async def release_mr_request(request_id: str, from_status: str) -> bool:
    """Undo a claim whose follow-up work failed."""
    result = await db.mr_requests.update_one(
        {"id": request_id, "status": from_status},
        {"$set": {"status": "pending", "processedBy": None, "processedAt": None}},
    )
    if result.modified_count:
        logger.warning(f"[STATE_MACHINE] mr_request={request_id} released back to pending")
    return bool(result.modified_count)
