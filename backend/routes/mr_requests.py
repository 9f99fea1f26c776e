"""
Fieldforce - Routes MR Requests
Public MR application, Admin review. Approval spawns the MR identity and
mails a one-time password; the request can leave "pending" only once.
"""

import logging
import uuid
from typing import Optional
from fastapi import APIRouter, HTTPException, Depends

import email_service
from config import db, now_iso, generate_temp_password
from models.mr_request import MRRequestCreate, MRRequestReject
from services import api_response
from services.lookups import users_by_id
from services.permissions import Identity, Operation, ResourceKind, require_access
from services.state_machine import claim_mr_request, release_mr_request
from services.users import create_identity, email_exists

logger = logging.getLogger("mr_requests")

router = APIRouter(prefix="/mr-requests", tags=["MR Requests"])

DEFAULT_REJECTION_REASON = "Application not approved"


async def _get_request_or_404(request_id: str) -> dict:
    request = await db.mr_requests.find_one({"id": request_id}, {"_id": 0})
    if not request:
        raise HTTPException(status_code=404, detail="MR request not found")
    return request


async def _notify(kind: str, coro):
    """Email after commit; the outcome is logged and never fails the request."""
    result = await coro
    if result.get("success"):
        logger.info(f"[MR_REQUEST] {kind} email sent")
    else:
        logger.warning(f"[MR_REQUEST] {kind} email not sent: {result.get('error')}")
    return result


@router.post("")
async def submit_request(data: MRRequestCreate):
    """Public: no authentication."""
    if await db.mr_requests.find_one({"email": data.email, "status": "pending"}, {"_id": 1}):
        raise HTTPException(status_code=400, detail="An application with this email is already pending")
    if await email_exists(data.email):
        raise HTTPException(status_code=400, detail="An account with this email already exists")

    now = now_iso()
    request = {
        "id": str(uuid.uuid4()),
        **data.model_dump(),
        "experience": data.experience or "",
        "status": "pending",
        "createdAt": now,
        "updatedAt": now,
    }
    await db.mr_requests.insert_one(request)
    logger.info(f"[MR_REQUEST] New application {data.email} area={data.area}")

    await _notify("application received", email_service.send_application_received_email(data.email, data.name))

    return api_response.created(
        {"id": request["id"], "name": request["name"], "email": request["email"], "status": request["status"]},
        "Application submitted successfully",
    )


@router.get("")
async def list_requests(
    status: Optional[str] = None,
    user: Identity = Depends(require_access(ResourceKind.MR_REQUEST, Operation.LIST)),
):
    query = {"status": status} if status else {}
    requests = await db.mr_requests.find(query, {"_id": 0}).sort("createdAt", -1).to_list(1000)

    people = await users_by_id(
        [r.get("processedBy") for r in requests] + [r.get("createdUserId") for r in requests]
    )
    for r in requests:
        r["processedByInfo"] = people.get(r.get("processedBy"))
        r["createdUserInfo"] = people.get(r.get("createdUserId"))

    return api_response.success({"count": len(requests), "requests": requests}, "MR requests retrieved successfully")


@router.get("/{request_id}")
async def get_request(
    request_id: str,
    user: Identity = Depends(require_access(ResourceKind.MR_REQUEST, Operation.READ)),
):
    request = await _get_request_or_404(request_id)
    return api_response.success(request, "MR request retrieved successfully")


@router.put("/{request_id}/approve")
async def approve_request(
    request_id: str,
    user: Identity = Depends(require_access(ResourceKind.MR_REQUEST, Operation.UPDATE)),
):
    request = await _get_request_or_404(request_id)
    if request.get("status") != "pending":
        raise HTTPException(status_code=400, detail="Request has already been processed")
    if await email_exists(request["email"]):
        raise HTTPException(status_code=400, detail="User with this email already exists")

    # claim first: a concurrent approve loses here, before any identity exists
    claimed = await claim_mr_request(request_id, "approved", user)

    temp_password = generate_temp_password()
    try:
        new_user = await create_identity({
            "name": request["name"],
            "email": request["email"],
            "password": temp_password,
            "role": "MR",
            "phone": request.get("phone"),
            "territory": request.get("area"),
            "region": request.get("area"),
            "city": request.get("area"),
            "joiningDate": now_iso(),
        }, created_by=user.id)
    except Exception:
        logger.exception(f"[MR_REQUEST] Identity creation failed for {request_id}")
        await release_mr_request(request_id, "approved")
        raise

    await db.mr_requests.update_one({"id": request_id}, {"$set": {"createdUserId": new_user["id"], "updatedAt": now_iso()}})
    claimed["createdUserId"] = new_user["id"]
    logger.info(f"[MR_REQUEST] Approved {request['email']} employeeId={new_user.get('employeeId')}")

    email_result = await _notify("approval", email_service.send_approval_email(request["email"], temp_password))

    return api_response.success(
        {
            "request": claimed,
            "user": new_user,
            "tempPassword": temp_password,
            "emailSent": bool(email_result.get("success")),
        },
        "MR request approved successfully",
    )


@router.put("/{request_id}/reject")
async def reject_request(
    request_id: str,
    data: Optional[MRRequestReject] = None,
    user: Identity = Depends(require_access(ResourceKind.MR_REQUEST, Operation.UPDATE)),
):
    reason = (data.reason if data else None) or DEFAULT_REJECTION_REASON
    claimed = await claim_mr_request(request_id, "rejected", user, {"rejectionReason": reason})
    logger.info(f"[MR_REQUEST] Rejected {claimed['email']}: {reason}")

    await _notify("rejection", email_service.send_rejection_email(claimed["email"], claimed["name"], reason))
    return api_response.success(claimed, "MR request rejected successfully")


@router.delete("/{request_id}")
async def delete_request(
    request_id: str,
    user: Identity = Depends(require_access(ResourceKind.MR_REQUEST, Operation.DELETE)),
):
    await _get_request_or_404(request_id)
    await db.mr_requests.delete_one({"id": request_id})
    return api_response.success(message="MR request deleted successfully")
