"""
Admin reporting: dashboard KPIs, per-MR performance ranking, report exports.
"""

import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from config import db
from services.lookups import doctors_by_id, products_by_id, users_by_id
from services.query_builder import date_range_clause, page_meta

logger = logging.getLogger("reports")

REPORT_TYPES = ["summary", "visits", "orders", "doctors", "products"]

MR_QUERY = {"$or": [{"role": "MR"}, {"workInfo.role": "MR"}], "isActive": True}


def created_window(start: Optional[str], end: Optional[str]) -> Dict[str, Any]:
    return date_range_clause("createdAt", start, end) or {}


async def _order_value(match: Dict[str, Any]) -> float:
    pipeline = [
        {"$match": match},
        {"$group": {"_id": None, "total": {"$sum": "$financial.grandTotal"}}},
    ]
    async for row in db.orders.aggregate(pipeline):
        return round(row.get("total") or 0, 2)
    return 0


async def _mr_ids(territory: Optional[str] = None, region: Optional[str] = None) -> List[str]:
    query = dict(MR_QUERY)
    if territory:
        query["territory"] = territory
    if region:
        query["region"] = region
    return [u["id"] async for u in db.users.find(query, {"_id": 0, "id": 1})]


# ==================== DASHBOARD ====================

async def dashboard(start: Optional[str] = None, end: Optional[str] = None) -> dict:
    window = created_window(start, end)

    kpis = {
        "totalDoctors": await db.doctors.count_documents({"isActive": True}),
        "totalProducts": await db.products.count_documents({"isActive": True}),
        "totalMRs": await db.users.count_documents(MR_QUERY),
        "totalVisits": await db.visit_reports.count_documents(window),
        "totalOrders": await db.orders.count_documents(window),
        "totalOrderValue": await _order_value(window),
    }

    product_rows = []
    pipeline = [
        {"$match": window},
        {"$unwind": "$items"},
        {"$group": {
            "_id": "$items.product",
            "orders": {"$sum": "$items.quantity"},
            "value": {"$sum": "$items.totalAmount"},
        }},
        {"$sort": {"orders": -1}},
        {"$limit": 10},
    ]
    async for row in db.orders.aggregate(pipeline):
        product_rows.append(row)
    products = await products_by_id(r["_id"] for r in product_rows)
    product_orders = [
        {
            "product": r["_id"],
            "name": ((products.get(r["_id"]) or {}).get("basicInfo") or {}).get("name"),
            "orders": r["orders"],
            "value": round(r["value"] or 0, 2),
        }
        for r in product_rows
    ]

    # last 7 days, bucketed by the date part of the ISO visit date
    since = (datetime.now(timezone.utc) - timedelta(days=7)).date().isoformat()
    trend = Counter()
    async for v in db.visit_reports.find(
        {"visitDetails.visitDate": {"$gte": since}},
        {"_id": 0, "visitDetails.visitDate": 1},
    ):
        trend[str(v["visitDetails"]["visitDate"])[:10]] += 1
    visits_trend = [{"date": day, "visits": trend[day]} for day in sorted(trend)]

    orders_by_status = []
    async for row in db.orders.aggregate([
        {"$match": window},
        {"$group": {"_id": "$status", "count": {"$sum": 1}, "value": {"$sum": "$financial.grandTotal"}}},
        {"$sort": {"_id": 1}},
    ]):
        orders_by_status.append({"status": row["_id"], "count": row["count"], "value": round(row["value"] or 0, 2)})

    return {
        "kpis": kpis,
        "charts": {
            "productOrders": product_orders,
            "visitsTrend": visits_trend,
            "ordersByStatus": orders_by_status,
        },
    }


# ==================== MR PERFORMANCE ====================

def performance_score(visits: int, positive: int, orders: int, doctors: int) -> float:
    """
    40% visit success, 30% orders (capped at 10), 30% doctor reach
    (capped at 20). Zero visits scores zero.
    """
    if visits <= 0:
        return 0.0
    score = (positive / visits) * 40
    score += min(orders / 10, 1) * 30
    score += min(doctors / 20, 1) * 30
    return round(score, 2)


async def mr_performance(
    start: Optional[str] = None,
    end: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> dict:
    visit_window = date_range_clause("visitDetails.visitDate", start, end) or {}
    order_window = date_range_clause("orderDetails.orderDate", start, end) or {}

    rows = []
    async for mr in db.users.find(MR_QUERY, {"_id": 0, "password": 0}):
        visits = [v async for v in db.visit_reports.find(
            {"mr": mr["id"], **visit_window},
            {"_id": 0, "doctor": 1, "interaction.visitOutcome": 1},
        )]
        orders = [o async for o in db.orders.find(
            {"mr": mr["id"], **order_window},
            {"_id": 0, "financial.grandTotal": 1},
        )]
        positive = sum(1 for v in visits if (v.get("interaction") or {}).get("visitOutcome") == "Positive")
        doctors = len({v.get("doctor") for v in visits if v.get("doctor")})
        rows.append({
            "id": mr["id"],
            "name": mr.get("name") or (mr.get("personalInfo") or {}).get("name"),
            "employeeId": mr.get("employeeId"),
            "territory": mr.get("territory"),
            "region": mr.get("region"),
            "visits": len(visits),
            "orders": len(orders),
            "totalOrderValue": round(sum((o.get("financial") or {}).get("grandTotal") or 0 for o in orders), 2),
            "positiveVisits": positive,
            "uniqueDoctors": doctors,
            "performance": performance_score(len(visits), positive, len(orders), doctors),
            "successRate": round(positive / len(visits) * 100, 2) if visits else 0,
        })

    rows.sort(key=lambda r: r["performance"], reverse=True)
    skip = (page - 1) * limit
    meta = page_meta(page, limit, len(rows))
    meta["hasNext"] = page * limit < len(rows)
    meta["hasPrev"] = page > 1
    return {"mrPerformance": rows[skip:skip + limit], "pagination": meta}


# ==================== REPORTS ====================

async def _mr_match(mr_id: Optional[str], territory: Optional[str], region: Optional[str]) -> Dict[str, Any]:
    if mr_id:
        return {"mr": mr_id}
    if territory or region:
        return {"mr": {"$in": await _mr_ids(territory, region)}}
    return {}


async def summary_report(window: Dict[str, Any], territory=None, region=None) -> dict:
    mr_query = dict(MR_QUERY)
    if territory:
        mr_query["territory"] = territory
    if region:
        mr_query["region"] = region
    return {"summary": {
        "totalVisits": await db.visit_reports.count_documents(window),
        "totalOrders": await db.orders.count_documents(window),
        "totalOrderValue": await _order_value(window),
        "activeMRs": await db.users.count_documents(mr_query),
        "activeDoctors": await db.doctors.count_documents({"isActive": True}),
        "activeProducts": await db.products.count_documents({"isActive": True}),
    }}


async def visits_report(window: Dict[str, Any], mr_id=None, territory=None, region=None) -> dict:
    query = {**window, **await _mr_match(mr_id, territory, region)}
    visits = await db.visit_reports.find(query, {"_id": 0}).to_list(5000)
    mrs = await users_by_id(v.get("mr") for v in visits)
    doctors = await doctors_by_id(v.get("doctor") for v in visits)
    rows = []
    for v in visits:
        doctor = doctors.get(v.get("doctor")) or {}
        orders = v.get("orders") or []
        rows.append({
            "visitId": v.get("visitId"),
            "visitDate": (v.get("visitDetails") or {}).get("visitDate"),
            "mrName": (mrs.get(v.get("mr")) or {}).get("name"),
            "doctorName": doctor.get("name"),
            "city": doctor.get("place"),
            "visitOutcome": (v.get("interaction") or {}).get("visitOutcome"),
            "status": v.get("status"),
            "ordersCount": len(orders),
            "totalOrderValue": round(sum(o.get("totalAmount") or 0 for o in orders), 2),
        })
    rows.sort(key=lambda r: str(r["visitDate"] or ""), reverse=True)
    return {"visits": rows}


async def orders_report(window: Dict[str, Any], mr_id=None, territory=None, region=None) -> dict:
    query = {**window, **await _mr_match(mr_id, territory, region)}
    orders = await db.orders.find(query, {"_id": 0}).to_list(5000)
    mrs = await users_by_id(o.get("mr") for o in orders)
    doctors = await doctors_by_id(o.get("doctor") for o in orders)
    rows = [
        {
            "orderId": o.get("orderId"),
            "orderDate": (o.get("orderDetails") or {}).get("orderDate"),
            "mrName": (mrs.get(o.get("mr")) or {}).get("name"),
            "doctorName": (doctors.get(o.get("doctor")) or {}).get("name"),
            "status": o.get("status"),
            "itemsCount": len(o.get("items") or []),
            "totalValue": (o.get("financial") or {}).get("grandTotal", 0),
        }
        for o in orders
    ]
    rows.sort(key=lambda r: str(r["orderDate"] or ""), reverse=True)
    return {"orders": rows}


async def doctors_report(territory=None, region=None) -> dict:
    query = {"isActive": True}
    if territory or region:
        query["assignedMRs"] = {"$in": await _mr_ids(territory, region)}
    doctors = await db.doctors.find(query, {"_id": 0}).sort("name", 1).to_list(5000)
    mrs = await users_by_id(m for d in doctors for m in d.get("assignedMRs") or [])
    for d in doctors:
        d["assignedMRInfo"] = [mrs[m] for m in d.get("assignedMRs") or [] if m in mrs]
    return {"doctors": doctors}


async def products_report(window: Dict[str, Any]) -> dict:
    sold: Dict[str, dict] = {}
    async for o in db.orders.find(window, {"_id": 0, "id": 1, "items": 1}):
        for item in o.get("items") or []:
            entry = sold.setdefault(item.get("product"), {"orders": set(), "quantity": 0, "revenue": 0.0})
            entry["orders"].add(o["id"])
            entry["quantity"] += item.get("quantity") or 0
            entry["revenue"] += item.get("totalAmount") or 0

    rows = []
    async for p in db.products.find({"isActive": True}, {"_id": 0}):
        entry = sold.get(p["id"]) or {"orders": set(), "quantity": 0, "revenue": 0.0}
        rows.append({
            "id": p["id"],
            "productId": p.get("productId"),
            "name": (p.get("basicInfo") or {}).get("name"),
            "category": (p.get("basicInfo") or {}).get("category"),
            "mrp": (p.get("businessInfo") or {}).get("mrp"),
            "stockQuantity": (p.get("inventory") or {}).get("stockQuantity"),
            "ordersCount": len(entry["orders"]),
            "totalQuantitySold": entry["quantity"],
            "totalRevenue": round(entry["revenue"], 2),
        })
    rows.sort(key=lambda r: r["totalRevenue"], reverse=True)
    return {"products": rows}


async def build_report(
    report_type: str = "summary",
    start: Optional[str] = None,
    end: Optional[str] = None,
    mr_id: Optional[str] = None,
    territory: Optional[str] = None,
    region: Optional[str] = None,
) -> dict:
    window = created_window(start, end)
    logger.info(f"[REPORTS] type={report_type} start={start} end={end} mr={mr_id}")
    if report_type == "visits":
        return await visits_report(window, mr_id, territory, region)
    if report_type == "orders":
        return await orders_report(window, mr_id, territory, region)
    if report_type == "doctors":
        return await doctors_report(territory, region)
    if report_type == "products":
        return await products_report(window)
    return await summary_report(window, territory, region)
