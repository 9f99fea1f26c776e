"""
Fieldforce - Test fixtures

API tests run in-process: httpx.AsyncClient over ASGITransport against an
in-memory mongomock-motor database. Email is replaced by a recorder.
"""

import motor.motor_asyncio
from mongomock_motor import AsyncMongoMockClient

# Must happen before config is imported: config builds its client at import.
motor.motor_asyncio.AsyncIOMotorClient = AsyncMongoMockClient

import httpx
import pytest
import pytest_asyncio

import config
import email_service
from server import app
from services.authentication import create_token
from services.users import create_identity

COLLECTIONS = [
    "users", "doctors", "products", "visit_reports", "orders", "mr_targets",
    "mr_performance_logs", "product_activity_logs", "mr_requests", "counters",
]

TEST_PASSWORD = "Secret123"

_indexes_ready = False


@pytest_asyncio.fixture(autouse=True)
async def clean_db():
    global _indexes_ready
    if not _indexes_ready:
        await config.ensure_indexes()
        _indexes_ready = True
    for name in COLLECTIONS:
        await config.db[name].delete_many({})
    yield


class EmailRecorder:
    def __init__(self):
        self.sent = []

    async def __call__(self, to, subject, html):
        self.sent.append({"to": to, "subject": subject, "html": html})
        return {"success": True, "messageId": f"test-{len(self.sent)}"}


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    recorder = EmailRecorder()
    monkeypatch.setattr(email_service, "send_email", recorder)
    return recorder


@pytest_asyncio.fixture
async def client():
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def make_user(role: str, email: str, **extra) -> dict:
    """Create an identity and return {user, token, headers}."""
    user = await create_identity({
        "name": extra.pop("name", email.split("@")[0]),
        "email": email,
        "password": TEST_PASSWORD,
        "role": role,
        **extra,
    })
    token = create_token(user)
    return {"user": user, "token": token, "headers": {"Authorization": f"Bearer {token}"}}


@pytest_asyncio.fixture
async def admin():
    return await make_user("Admin", "admin@test.com", name="Admin User")


@pytest_asyncio.fixture
async def mr():
    return await make_user("MR", "mr1@test.com", name="First MR", territory="North")


@pytest_asyncio.fixture
async def other_mr():
    return await make_user("MR", "mr2@test.com", name="Second MR", territory="South")


@pytest_asyncio.fixture
async def manager():
    return await make_user("Manager", "manager@test.com", name="Area Manager")


@pytest_asyncio.fixture
async def doctor(client, admin, mr):
    res = await client.post("/api/doctors", headers=admin["headers"], json={
        "name": "Dr. Mehta",
        "specialization": "Cardiology",
        "place": "Pune",
        "phone": "9000000001",
        "assignedMRs": [mr["user"]["id"]],
    })
    assert res.status_code == 201, res.text
    return res.json()["data"]


@pytest_asyncio.fixture
async def product(client, admin):
    res = await client.post("/api/products", headers=admin["headers"], json={
        "basicInfo": {"name": "Cardiotab 10", "category": "Tablet"},
        "businessInfo": {"mrp": 120.0, "packSize": "10 tablets"},
    })
    assert res.status_code == 201, res.text
    return res.json()["data"]
