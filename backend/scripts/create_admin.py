"""
Fieldforce - Create the first Admin identity.
Run: cd backend && python scripts/create_admin.py <email> <password> [name]
Goes through services.users so the password is hashed exactly once.
"""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from config import client, ensure_indexes
from services.users import create_identity, find_by_email, update_identity


async def create_admin(email: str, password: str, name: str = "Administrator"):
    await ensure_indexes()

    existing = await find_by_email(email)
    if existing:
        await update_identity(existing["id"], {"role": "Admin", "isActive": True, "password": password})
        print(f"Existing account {email} promoted to Admin, password reset")
        return existing["id"]

    user = await create_identity({
        "name": name,
        "email": email,
        "password": password,
        "role": "Admin",
    })
    print(f"Admin created: {user['email']} (id={user['id']})")
    return user["id"]


async def main():
    if len(sys.argv) < 3:
        print("Usage: python scripts/create_admin.py <email> <password> [name]")
        sys.exit(1)

    email, password = sys.argv[1], sys.argv[2]
    name = sys.argv[3] if len(sys.argv) > 3 else "Administrator"
    try:
        await create_admin(email, password, name)
    finally:
        client.close()


if __name__ == "__main__":
    asyncio.run(main())
