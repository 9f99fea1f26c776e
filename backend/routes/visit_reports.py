"""
Fieldforce - Routes Visit Reports
MRs file reports for their own visits; Admin approves or rejects them.
"""

import logging
import uuid
from typing import Optional
from fastapi import APIRouter, HTTPException, Depends

from config import db, now_iso
from models.visit_report import VisitReportCreate, VisitReportUpdate, VisitRejection
from routes.auth import get_current_user, require_admin
from services import api_response
from services.lookups import attach_people
from services.order_totals import apply_visit_order_totals
from services.permissions import (
    Identity,
    Operation,
    ResourceKind,
    authorize,
    enforce,
    force_owner,
    sanitize_payload,
)
from services.product_activity import log_visit_activities
from services.query_builder import build_scoped_query, caller_filters, page_meta, pagination
from services.sequences import next_visit_id
from services.state_machine import VISIT_TERMINAL_STATES, decide_visit_report, visit_decision_fields

logger = logging.getLogger("visit_reports")

router = APIRouter(prefix="/visit-reports", tags=["Visit Reports"])

VISIT_SEARCH_FIELDS = ["visitId", "interaction.notes", "visitDetails.location"]
MERGED_BLOCKS = ["visitDetails", "interaction"]
DECISION_STAMPS = ["approvedBy", "approvedAt", "rejectionReason"]


async def _get_report_or_404(report_id: str) -> dict:
    report = await db.visit_reports.find_one({"id": report_id}, {"_id": 0})
    if not report:
        raise HTTPException(status_code=404, detail="Visit report not found")
    return report


async def _view(report: dict) -> dict:
    return (await attach_people([report]))[0]


@router.get("")
async def list_visit_reports(
    status: Optional[str] = None,
    doctorId: Optional[str] = None,
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    search: Optional[str] = None,
    mr: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    user: Identity = Depends(get_current_user),
):
    scope = enforce(authorize(user, ResourceKind.VISIT_REPORT, Operation.LIST))
    paging = pagination(page, limit)

    query = build_scoped_query(
        scope,
        caller_filters(user, mr=mr, status=status, doctor=doctorId),
        search,
        VISIT_SEARCH_FIELDS,
        date_field="visitDetails.visitDate",
        start=startDate,
        end=endDate,
    )
    total = await db.visit_reports.count_documents(query)
    reports = await db.visit_reports.find(query, {"_id": 0}).sort("visitDetails.visitDate", -1) \
        .skip(paging["skip"]).limit(paging["limit"]).to_list(paging["limit"])

    return api_response.success(
        {"visitReports": await attach_people(reports), "pagination": page_meta(paging["page"], paging["limit"], total)},
        "Visit reports retrieved successfully",
    )


@router.get("/{report_id}")
async def get_visit_report(report_id: str, user: Identity = Depends(get_current_user)):
    report = await _get_report_or_404(report_id)
    enforce(authorize(user, ResourceKind.VISIT_REPORT, Operation.READ, report))
    return api_response.success(await _view(report), "Visit report retrieved successfully")


@router.post("")
async def create_visit_report(data: VisitReportCreate, user: Identity = Depends(get_current_user)):
    enforce(authorize(user, ResourceKind.VISIT_REPORT, Operation.CREATE))

    payload = sanitize_payload(user, ResourceKind.VISIT_REPORT, data.model_dump(exclude_none=True))
    payload = force_owner(user, ResourceKind.VISIT_REPORT, payload)
    if not payload.get("mr"):
        raise HTTPException(status_code=400, detail="MR is required")

    if not await db.doctors.find_one({"id": payload["doctor"]}, {"_id": 1}):
        raise HTTPException(status_code=400, detail="Doctor not found")

    now = now_iso()
    report = {
        "id": str(uuid.uuid4()),
        "visitId": await next_visit_id(),
        "status": "Draft",
        **payload,
        "createdAt": now,
        "updatedAt": now,
    }
    report["orders"] = apply_visit_order_totals(report.get("orders"))
    if report["status"] in VISIT_TERMINAL_STATES:
        report.update(visit_decision_fields(report["status"], user))

    await db.visit_reports.insert_one(report)
    report.pop("_id", None)
    logger.info(f"[VISITS] Created {report['visitId']} mr={report['mr']} doctor={report['doctor']}")

    await log_visit_activities(report)
    return api_response.created(await _view(report), "Visit report created successfully")


@router.put("/{report_id}")
async def update_visit_report(report_id: str, data: VisitReportUpdate, user: Identity = Depends(get_current_user)):
    report = await _get_report_or_404(report_id)
    enforce(authorize(user, ResourceKind.VISIT_REPORT, Operation.UPDATE, report))

    changes = sanitize_payload(user, ResourceKind.VISIT_REPORT, data.model_dump(exclude_unset=True))
    for block in MERGED_BLOCKS:
        if block in changes:
            changes[block] = {**(report.get(block) or {}), **(changes[block] or {})}
    if "orders" in changes:
        changes["orders"] = apply_visit_order_totals(changes["orders"])

    update = {}
    new_status = changes.get("status")
    if new_status in VISIT_TERMINAL_STATES and new_status != report.get("status"):
        changes.update(visit_decision_fields(new_status, user, changes.get("rejectionReason")))
    elif new_status and report.get("status") in VISIT_TERMINAL_STATES and new_status not in VISIT_TERMINAL_STATES:
        # reopened: the decision stamps no longer apply
        for stamp in DECISION_STAMPS:
            changes.pop(stamp, None)
        update["$unset"] = {stamp: "" for stamp in DECISION_STAMPS}

    changes["updatedAt"] = now_iso()
    update["$set"] = changes
    await db.visit_reports.update_one({"id": report_id}, update)
    updated = await _get_report_or_404(report_id)
    return api_response.success(await _view(updated), "Visit report updated successfully")


@router.delete("/{report_id}")
async def delete_visit_report(report_id: str, user: Identity = Depends(get_current_user)):
    report = await _get_report_or_404(report_id)
    enforce(authorize(user, ResourceKind.VISIT_REPORT, Operation.DELETE, report))

    await db.visit_reports.delete_one({"id": report_id})
    logger.info(f"[VISITS] Deleted {report.get('visitId')} by={user.id}")
    return api_response.success(message="Visit report deleted successfully")


# ==================== APPROVAL (Admin) ====================

@router.post("/{report_id}/approve")
async def approve_visit_report(report_id: str, user: Identity = Depends(require_admin)):
    report = await _get_report_or_404(report_id)
    updated = await decide_visit_report(report, "Approved", user)
    return api_response.success(await _view(updated), "Visit report approved successfully")


@router.post("/{report_id}/reject")
async def reject_visit_report(
    report_id: str,
    data: Optional[VisitRejection] = None,
    user: Identity = Depends(require_admin),
):
    report = await _get_report_or_404(report_id)
    reason = data.reason if data else None
    updated = await decide_visit_report(report, "Rejected", user, reason)
    return api_response.success(await _view(updated), "Visit report rejected successfully")
