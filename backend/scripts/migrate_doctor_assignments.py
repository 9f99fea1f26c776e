"""
Fieldforce - Migration: fold legacy single `assignedMR` into `assignedMRs`.
Run: cd backend && python scripts/migrate_doctor_assignments.py
Idempotent: doctors without `assignedMR` are left untouched.
"""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from config import client, db


async def migrate(database=None):
    database = database if database is not None else db

    total = await database.doctors.count_documents({})
    legacy = 0
    merged = 0
    missing_array = 0

    cursor = database.doctors.find({}, {"_id": 0, "id": 1, "assignedMR": 1, "assignedMRs": 1})

    async for doctor in cursor:
        doctor_id = doctor.get("id")
        assigned = list(doctor.get("assignedMRs") or [])
        update = {}
        unset = {}

        if "assignedMR" in doctor:
            legacy += 1
            single = doctor.get("assignedMR")
            if single and single not in assigned:
                assigned.append(single)
                merged += 1
            update["assignedMRs"] = assigned
            unset["assignedMR"] = ""
        elif "assignedMRs" not in doctor:
            missing_array += 1
            update["assignedMRs"] = []

        if update or unset:
            ops = {}
            if update:
                ops["$set"] = update
            if unset:
                ops["$unset"] = unset
            await database.doctors.update_one({"id": doctor_id}, ops)

    print("\n════════════════════════════════════")
    print("  MIGRATION REPORT")
    print("════════════════════════════════════")
    print(f"  Total doctors:         {total}")
    print(f"  Legacy assignedMR:     {legacy}")
    print(f"  Merged into array:     {merged}")
    print(f"  Empty array created:   {missing_array}")
    print("════════════════════════════════════")

    return {
        "total": total,
        "legacy": legacy,
        "merged": merged,
        "missing_array": missing_array,
    }


if __name__ == "__main__":
    try:
        asyncio.run(migrate())
    finally:
        client.close()
