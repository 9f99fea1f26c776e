"""
Fieldforce - Doctor assignment migration (assignedMR -> assignedMRs)
"""

import pytest

from config import db
from scripts.migrate_doctor_assignments import migrate


@pytest.mark.asyncio
async def test_folds_legacy_field_and_is_idempotent():
    await db.doctors.insert_many([
        {"id": "d1", "name": "Legacy", "assignedMR": "mr-a"},
        {"id": "d2", "name": "Both", "assignedMR": "mr-a", "assignedMRs": ["mr-a", "mr-b"]},
        {"id": "d3", "name": "Bare"},
        {"id": "d4", "name": "Current", "assignedMRs": ["mr-c"]},
    ])

    report = await migrate(db)
    assert report == {"total": 4, "legacy": 2, "merged": 1, "missing_array": 1}

    docs = {d["id"]: d async for d in db.doctors.find({}, {"_id": 0})}
    assert docs["d1"]["assignedMRs"] == ["mr-a"]
    assert docs["d2"]["assignedMRs"] == ["mr-a", "mr-b"]
    assert docs["d3"]["assignedMRs"] == []
    assert docs["d4"]["assignedMRs"] == ["mr-c"]
    assert all("assignedMR" not in d for d in docs.values())

    again = await migrate(db)
    assert again["legacy"] == 0
    assert again["merged"] == 0
