"""
Business identifiers (MR001, PROD0001, ORD000001, VIS000001, doctor srNo).

Each sequence is one document in `counters`, incremented atomically so two
concurrent creates never receive the same number.
"""

from pymongo import ReturnDocument

from config import db

SEQUENCE_FORMATS = {
    "employee": ("MR", 3),
    "product": ("PROD", 4),
    "order": ("ORD", 6),
    "visit": ("VIS", 6),
}


async def next_value(name: str) -> int:
    counter = await db.counters.find_one_and_update(
        {"_id": name},
        {"$inc": {"seq": 1}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    return counter["seq"]


async def next_code(name: str) -> str:
    prefix, width = SEQUENCE_FORMATS[name]
    value = await next_value(name)
    return f"{prefix}{str(value).zfill(width)}"


async def next_employee_id() -> str:
    return await next_code("employee")


async def next_product_id() -> str:
    return await next_code("product")


async def next_order_id() -> str:
    return await next_code("order")


async def next_visit_id() -> str:
    return await next_code("visit")


async def next_doctor_sr_no() -> int:
    return await next_value("doctor")
