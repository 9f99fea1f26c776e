"""
Identity store.

The only place passwords are hashed. Callers always hand over plaintext;
a write is hashed only when it carries a `password` key.
"""

import logging
import uuid
from typing import Any, Dict, Optional

import bcrypt

from config import db, now_iso
from services.permissions import Role, normalize_role
from services.sequences import next_employee_id

logger = logging.getLogger("users")

PUBLIC_PROJECTION = {"_id": 0, "password": 0}


def hash_password(plaintext: str) -> str:
    return bcrypt.hashpw(plaintext.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plaintext: str, hashed: Optional[str]) -> bool:
    if not plaintext or not hashed:
        return False
    try:
        return bcrypt.checkpw(plaintext.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # stored value is not a bcrypt hash
        return False


def public_user(doc: Optional[dict]) -> Optional[dict]:
    if doc is None:
        return None
    user = {k: v for k, v in doc.items() if k not in ("password", "_id")}
    return user


async def find_by_email(email: str) -> Optional[dict]:
    """Matches both the flat and the legacy nested email field."""
    email = (email or "").lower().strip()
    return await db.users.find_one(
        {"$or": [{"email": email}, {"personalInfo.email": email}]},
        {"_id": 0},
    )


async def get_user(user_id: str) -> Optional[dict]:
    return await db.users.find_one({"id": user_id}, PUBLIC_PROJECTION)


async def email_exists(email: str) -> bool:
    return await find_by_email(email) is not None


async def create_identity(data: Dict[str, Any], created_by: Optional[str] = None) -> dict:
    """
    Persist a new identity. `data["password"]` is plaintext.
    MRs without an employeeId get the next one from the sequence.
    """
    role = normalize_role(data.get("role")) or Role.MR
    now = now_iso()

    doc = {k: v for k, v in data.items() if v is not None}
    doc["id"] = str(uuid.uuid4())
    doc["email"] = data["email"].lower().strip()
    doc["password"] = hash_password(data["password"])
    doc["role"] = role.value
    doc.setdefault("isActive", True)
    doc["createdAt"] = now
    doc["updatedAt"] = now
    if created_by:
        doc["createdBy"] = created_by

    if role == Role.MR and not doc.get("employeeId"):
        doc["employeeId"] = await next_employee_id()

    await db.users.insert_one(doc)
    logger.info(f"[USERS] Created identity {doc['email']} role={role.value} employeeId={doc.get('employeeId')}")
    return public_user(doc)


async def update_identity(user_id: str, changes: Dict[str, Any]) -> Optional[dict]:
    """Apply `changes`; a plaintext `password` among them is hashed here."""
    fields = dict(changes)
    if "password" in fields:
        if not fields["password"]:
            fields.pop("password")
        else:
            fields["password"] = hash_password(fields["password"])
    if "email" in fields and fields["email"]:
        fields["email"] = fields["email"].lower().strip()
    if "role" in fields and fields["role"]:
        role = normalize_role(fields["role"])
        fields["role"] = role.value if role else fields["role"]
    fields["updatedAt"] = now_iso()

    result = await db.users.update_one({"id": user_id}, {"$set": fields})
    if result.matched_count == 0:
        return None
    return await get_user(user_id)


async def deactivate_identity(user_id: str) -> bool:
    result = await db.users.update_one(
        {"id": user_id},
        {"$set": {"isActive": False, "updatedAt": now_iso()}},
    )
    return result.matched_count > 0


async def touch_last_login(user_id: str):
    await db.users.update_one({"id": user_id}, {"$set": {"lastLogin": now_iso()}})
