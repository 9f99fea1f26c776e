"""
Fieldforce - Routes Doctors
MRs see and edit the doctors assigned to them; assignment and
deactivation belong to Admin.
"""

import logging
import uuid
from typing import Optional
from fastapi import APIRouter, HTTPException, Depends

from config import db, now_iso
from models.doctor import DoctorCreate, DoctorUpdate, AssignMR
from routes.auth import get_current_user, require_admin
from services import api_response
from services.lookups import users_by_id
from services.permissions import (
    Identity,
    Operation,
    ResourceKind,
    authorize,
    enforce,
    force_owner,
    require_access,
    sanitize_payload,
)
from services.query_builder import build_scoped_query, page_meta, pagination
from services.sequences import next_doctor_sr_no

logger = logging.getLogger("doctors")

router = APIRouter(prefix="/doctors", tags=["Doctors"])

DOCTOR_SEARCH_FIELDS = ["name", "specialization", "place", "qualification", "phone"]


async def _get_doctor_or_404(doctor_id: str) -> dict:
    doctor = await db.doctors.find_one({"id": doctor_id}, {"_id": 0})
    if not doctor:
        raise HTTPException(status_code=404, detail="Doctor not found")
    return doctor


async def _check_phone_unique(phone: Optional[str], exclude_id: Optional[str] = None):
    if not phone:
        return
    query = {"phone": phone}
    if exclude_id:
        query["id"] = {"$ne": exclude_id}
    if await db.doctors.find_one(query, {"_id": 1}):
        raise HTTPException(status_code=400, detail="Doctor with this phone number already exists")


@router.get("")
async def list_doctors(
    search: Optional[str] = None,
    specialization: Optional[str] = None,
    city: Optional[str] = None,
    isActive: Optional[bool] = True,
    assignedMR: Optional[str] = None,
    page: int = 1,
    limit: int = 50,
    user: Identity = Depends(get_current_user),
):
    scope = enforce(authorize(user, ResourceKind.DOCTOR, Operation.LIST))
    paging = pagination(page, limit)

    filters = {"specialization": specialization, "place": city, "isActive": isActive}
    if assignedMR and user.is_admin:
        filters["assignedMRs"] = assignedMR
    query = build_scoped_query(scope, filters, search, DOCTOR_SEARCH_FIELDS)

    total = await db.doctors.count_documents(query)
    doctors = await db.doctors.find(query, {"_id": 0}).sort("name", 1) \
        .skip(paging["skip"]).limit(paging["limit"]).to_list(paging["limit"])

    return api_response.success(
        {"doctors": doctors, "pagination": page_meta(paging["page"], paging["limit"], total)},
        "Doctors retrieved successfully",
    )


@router.get("/{doctor_id}")
async def get_doctor(doctor_id: str, user: Identity = Depends(get_current_user)):
    doctor = await _get_doctor_or_404(doctor_id)
    enforce(authorize(user, ResourceKind.DOCTOR, Operation.READ, doctor))

    mrs = await users_by_id(doctor.get("assignedMRs") or [])
    doctor["assignedMRInfo"] = [mrs[m] for m in doctor.get("assignedMRs") or [] if m in mrs]
    return api_response.success(doctor, "Doctor retrieved successfully")


@router.post("")
async def create_doctor(data: DoctorCreate, user: Identity = Depends(get_current_user)):
    enforce(authorize(user, ResourceKind.DOCTOR, Operation.CREATE))

    payload = sanitize_payload(user, ResourceKind.DOCTOR, data.model_dump(exclude_none=True))
    payload = force_owner(user, ResourceKind.DOCTOR, payload)
    await _check_phone_unique(payload.get("phone"))

    now = now_iso()
    doctor = {
        "id": str(uuid.uuid4()),
        "srNo": await next_doctor_sr_no(),
        "assignedMRs": [],
        "isActive": True,
        **payload,
        "createdAt": now,
        "updatedAt": now,
        "createdBy": user.id,
    }
    await db.doctors.insert_one(doctor)
    doctor.pop("_id", None)

    logger.info(f"[DOCTORS] Created {doctor['name']} srNo={doctor['srNo']} by={user.id}")
    return api_response.created(doctor, "Doctor created successfully")


@router.put("/{doctor_id}")
async def update_doctor(doctor_id: str, data: DoctorUpdate, user: Identity = Depends(get_current_user)):
    doctor = await _get_doctor_or_404(doctor_id)
    enforce(authorize(user, ResourceKind.DOCTOR, Operation.UPDATE, doctor))

    changes = sanitize_payload(user, ResourceKind.DOCTOR, data.model_dump(exclude_unset=True))
    if "phone" in changes and changes["phone"] != doctor.get("phone"):
        await _check_phone_unique(changes["phone"], exclude_id=doctor_id)
    changes["updatedAt"] = now_iso()

    await db.doctors.update_one({"id": doctor_id}, {"$set": changes})
    updated = await _get_doctor_or_404(doctor_id)
    return api_response.success(updated, "Doctor updated successfully")


@router.delete("/{doctor_id}")
async def delete_doctor(
    doctor_id: str,
    user: Identity = Depends(require_access(ResourceKind.DOCTOR, Operation.DELETE)),
):
    await _get_doctor_or_404(doctor_id)
    await db.doctors.update_one({"id": doctor_id}, {"$set": {"isActive": False, "updatedAt": now_iso()}})
    logger.info(f"[DOCTORS] Deactivated {doctor_id} by={user.id}")
    return api_response.success(message="Doctor deleted successfully")


# ==================== ASSIGNMENT (Admin) ====================

@router.post("/{doctor_id}/assign-mr")
async def assign_mr(
    doctor_id: str,
    data: AssignMR,
    user: Identity = Depends(require_admin),
):
    await _get_doctor_or_404(doctor_id)
    mr = await db.users.find_one({"id": data.mrId}, {"_id": 0, "id": 1, "role": 1, "workInfo": 1})
    if not mr or not Identity.from_document(mr).is_mr:
        raise HTTPException(status_code=400, detail="MR not found")

    await db.doctors.update_one(
        {"id": doctor_id},
        {"$addToSet": {"assignedMRs": data.mrId}, "$set": {"updatedAt": now_iso()}},
    )
    logger.info(f"[DOCTORS] Assigned MR {data.mrId} to doctor {doctor_id}")
    updated = await _get_doctor_or_404(doctor_id)
    return api_response.success(updated, "MR assigned successfully")


@router.delete("/{doctor_id}/remove-mr/{mr_id}")
async def remove_mr(
    doctor_id: str,
    mr_id: str,
    user: Identity = Depends(require_admin),
):
    await _get_doctor_or_404(doctor_id)
    await db.doctors.update_one(
        {"id": doctor_id},
        {"$pull": {"assignedMRs": mr_id}, "$set": {"updatedAt": now_iso()}},
    )
    logger.info(f"[DOCTORS] Removed MR {mr_id} from doctor {doctor_id}")
    updated = await _get_doctor_or_404(doctor_id)
    return api_response.success(updated, "MR removed successfully")
