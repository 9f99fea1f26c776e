"""
Product activity log: append-only record of product touches in the field.
Rows are written by hand (POST /product-activity) and automatically when a
visit report is created.
"""

import logging
import uuid
from calendar import monthrange
from typing import Any, Dict, List, Optional

from config import db, now_iso

logger = logging.getLogger("product_activity")

ACTIVITY_TYPES = ["Discussion", "Sample Given", "Literature Provided", "Order Placed", "Feedback Received"]
INTEREST_LEVELS = ["High", "Medium", "Low"]
OUTCOMES = ["Positive", "Neutral", "Negative"]


def build_activity(data: Dict[str, Any]) -> dict:
    now = now_iso()
    doc = {
        "id": str(uuid.uuid4()),
        "activity_type": "Discussion",
        "date": now,
        "quantity": 0,
        "interest_level": "Medium",
        "outcome": "Neutral",
    }
    doc.update({k: v for k, v in data.items() if v is not None})
    doc["createdAt"] = now
    doc["updatedAt"] = now
    return doc


async def log_activity(data: Dict[str, Any]) -> dict:
    doc = build_activity(data)
    await db.product_activity_logs.insert_one(doc)
    doc.pop("_id", None)
    return doc


def _outcome_for(visit_outcome: Optional[str]) -> str:
    if visit_outcome in OUTCOMES:
        return visit_outcome
    return "Neutral"


async def log_visit_activities(report: dict) -> List[dict]:
    """
    One Discussion row per discussed product (Sample Given when samples
    were handed over) and one Order Placed row per order line.
    """
    interaction = report.get("interaction") or {}
    visit_date = (report.get("visitDetails") or {}).get("visitDate") or now_iso()
    outcome = _outcome_for(interaction.get("visitOutcome"))
    rows = []

    for discussed in interaction.get("productsDiscussed") or []:
        product = discussed.get("product")
        if not product:
            continue
        samples = discussed.get("samplesGiven") or 0
        rows.append(build_activity({
            "product": product,
            "mr": report["mr"],
            "doctor": report.get("doctor"),
            "activity_type": "Sample Given" if samples else "Discussion",
            "date": visit_date,
            "quantity": samples,
            "doctor_feedback": discussed.get("doctorFeedback"),
            "interest_level": discussed.get("interestLevel") if discussed.get("interestLevel") in INTEREST_LEVELS else None,
            "outcome": outcome,
            "visit_report": report["id"],
        }))

    for line in report.get("orders") or []:
        product = line.get("product")
        if not product:
            continue
        rows.append(build_activity({
            "product": product,
            "mr": report["mr"],
            "doctor": report.get("doctor"),
            "activity_type": "Order Placed",
            "date": visit_date,
            "quantity": line.get("quantity") or 0,
            "outcome": outcome,
            "visit_report": report["id"],
        }))

    if rows:
        await db.product_activity_logs.insert_many(rows)
        for r in rows:
            r.pop("_id", None)
        logger.info(f"[ACTIVITY] visit={report.get('visitId')} logged {len(rows)} product activities")
    return rows


def month_window(month: int, year: int) -> Dict[str, str]:
    last_day = monthrange(year, month)[1]
    return {
        "$gte": f"{year:04d}-{month:02d}-01",
        "$lte": f"{year:04d}-{month:02d}-{last_day:02d}T23:59:59.999999",
    }


async def product_analytics(product_id: str, query: Dict[str, Any]) -> List[dict]:
    """Per activity type: count, quantity, distinct doctors and MRs."""
    match = dict(query)
    match["product"] = product_id
    pipeline = [
        {"$match": match},
        {"$group": {
            "_id": "$activity_type",
            "count": {"$sum": 1},
            "totalQuantity": {"$sum": "$quantity"},
            "uniqueDoctors": {"$addToSet": "$doctor"},
            "uniqueMRs": {"$addToSet": "$mr"},
        }},
        {"$sort": {"_id": 1}},
    ]
    results = []
    async for row in db.product_activity_logs.aggregate(pipeline):
        results.append({
            "activity_type": row["_id"],
            "count": row["count"],
            "totalQuantity": row["totalQuantity"],
            "uniqueDoctorsCount": len([d for d in row["uniqueDoctors"] if d]),
            "uniqueMRsCount": len([m for m in row["uniqueMRs"] if m]),
        })
    return results


async def mr_product_summary(mr_id: str, month: int, year: int) -> List[dict]:
    """Per product for one MR and month: activity count, quantity, doctors reached."""
    summary: Dict[str, dict] = {}
    cursor = db.product_activity_logs.find(
        {"mr": mr_id, "date": month_window(month, year)},
        {"_id": 0, "product": 1, "activity_type": 1, "quantity": 1, "doctor": 1},
    )
    async for row in cursor:
        entry = summary.setdefault(row["product"], {
            "product": row["product"],
            "totalActivities": 0,
            "totalQuantity": 0,
            "activityTypes": {},
            "doctors": set(),
        })
        entry["totalActivities"] += 1
        entry["totalQuantity"] += row.get("quantity") or 0
        kind = row.get("activity_type", "Discussion")
        entry["activityTypes"][kind] = entry["activityTypes"].get(kind, 0) + 1
        if row.get("doctor"):
            entry["doctors"].add(row["doctor"])

    results = []
    for entry in summary.values():
        entry["uniqueDoctors"] = len(entry.pop("doctors"))
        results.append(entry)
    results.sort(key=lambda e: e["totalActivities"], reverse=True)
    return results
