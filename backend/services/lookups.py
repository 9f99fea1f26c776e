"""
Batched reference lookups for read views (mrInfo, doctorInfo, productInfo).
One `$in` query per collection, never one per document.
"""

from typing import Dict, Iterable, List

from config import db, period_label

USER_SUMMARY = {"_id": 0, "id": 1, "name": 1, "email": 1, "employeeId": 1, "territory": 1, "personalInfo": 1}
DOCTOR_SUMMARY = {"_id": 0, "id": 1, "name": 1, "specialization": 1, "place": 1, "phone": 1}
PRODUCT_SUMMARY = {"_id": 0, "id": 1, "productId": 1, "basicInfo.name": 1, "basicInfo.category": 1, "businessInfo.mrp": 1}


def _ids(values: Iterable) -> List[str]:
    return sorted({v for v in values if v})


async def users_by_id(ids: Iterable[str]) -> Dict[str, dict]:
    ids = _ids(ids)
    if not ids:
        return {}
    found = {}
    async for u in db.users.find({"id": {"$in": ids}}, USER_SUMMARY):
        personal = u.pop("personalInfo", None) or {}
        u.setdefault("name", personal.get("name", ""))
        found[u["id"]] = u
    return found


async def doctors_by_id(ids: Iterable[str]) -> Dict[str, dict]:
    ids = _ids(ids)
    if not ids:
        return {}
    return {d["id"]: d async for d in db.doctors.find({"id": {"$in": ids}}, DOCTOR_SUMMARY)}


async def products_by_id(ids: Iterable[str]) -> Dict[str, dict]:
    ids = _ids(ids)
    if not ids:
        return {}
    return {p["id"]: p async for p in db.products.find({"id": {"$in": ids}}, PRODUCT_SUMMARY)}


async def attach_people(docs: List[dict]) -> List[dict]:
    """Add mrInfo / doctorInfo to visit reports, orders and activity logs."""
    mrs = await users_by_id(d.get("mr") for d in docs)
    doctors = await doctors_by_id(d.get("doctor") for d in docs)
    for d in docs:
        d["mrInfo"] = mrs.get(d.get("mr"))
        if "doctor" in d:
            d["doctorInfo"] = doctors.get(d.get("doctor"))
    return docs


async def attach_period(docs: List[dict]) -> List[dict]:
    """Targets and performance logs: period label plus mrInfo."""
    mrs = await users_by_id(d.get("mr") for d in docs)
    for d in docs:
        d["period"] = period_label(d.get("month"), d.get("year"))
        d["mrInfo"] = mrs.get(d.get("mr"))
    return docs
