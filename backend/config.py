"""
Configuration and shared helpers
"""

import os
import logging
import secrets
import string
from datetime import datetime, timezone
from motor.motor_asyncio import AsyncIOMotorClient
from dotenv import load_dotenv
from pathlib import Path

logger = logging.getLogger("config")

# Load .env
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

ENV = os.environ.get('ENV', 'development')

# MongoDB
MONGO_URL = os.environ.get('MONGO_URL', 'mongodb://localhost:27017')
DB_NAME = os.environ.get('DB_NAME', 'fieldforce')

client = AsyncIOMotorClient(MONGO_URL)
db = client[DB_NAME]

logger.info(f"[CONFIG] Using database: {DB_NAME}")

# JWT
JWT_SECRET = os.environ.get('JWT_SECRET')
if not JWT_SECRET:
    if ENV == 'production':
        raise RuntimeError("JWT_SECRET environment variable is required in production")
    JWT_SECRET = 'dev-only-secret-change-in-production'
    logger.warning("[CONFIG] Using development JWT secret. Set JWT_SECRET for production")

JWT_ALGORITHM = "HS256"
JWT_EXPIRES_DAYS = int(os.environ.get('JWT_EXPIRES_DAYS', '7'))

# CORS
CORS_ORIGINS = os.environ.get('CORS_ORIGINS', 'http://localhost:5173,http://localhost:3000').split(',')

# Email (SendGrid)
SENDGRID_API_KEY = os.environ.get('SENDGRID_API_KEY', '')
SENDER_EMAIL = os.environ.get('SENDER_EMAIL', 'noreply@ajakapharma.com')
SENDER_NAME = os.environ.get('SENDER_NAME', 'Ajaka Pharma')
FRONTEND_URL = os.environ.get('FRONTEND_URL', 'http://localhost:5173')


# ==================== HELPERS ====================

def now_iso() -> str:
    """Current UTC time as ISO-8601"""
    return datetime.now(timezone.utc).isoformat()


def generate_temp_password(length: int = 10) -> str:
    """One-time password handed to a newly approved MR."""
    alphabet = string.ascii_uppercase + string.digits
    return ''.join(secrets.choice(alphabet) for _ in range(length))


MONTH_LABELS = ['Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun', 'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec']


def period_label(month: int, year: int) -> str:
    """'Jan 2025' style label for target and performance periods."""
    if not month or month < 1 or month > 12:
        return str(year or "")
    return f"{MONTH_LABELS[month - 1]} {year}"


async def ensure_indexes():
    """Unique indexes the handlers rely on for conflict detection."""
    for name in (
        "users", "doctors", "products", "visit_reports", "orders",
        "mr_targets", "mr_performance_logs", "product_activity_logs", "mr_requests",
    ):
        await db[name].create_index("id", unique=True)

    await db.users.create_index("email", unique=True)
    await db.users.create_index("employeeId", unique=True, sparse=True)
    await db.products.create_index("productId", unique=True, sparse=True)
    await db.orders.create_index("orderId", unique=True)
    await db.visit_reports.create_index("visitId", unique=True)
    await db.mr_targets.create_index([("mr", 1), ("month", 1), ("year", 1)], unique=True)
    await db.mr_performance_logs.create_index([("mr", 1), ("month", 1), ("year", 1)], unique=True)
    await db.product_activity_logs.create_index([("mr", 1), ("date", -1)])
    await db.product_activity_logs.create_index([("product", 1), ("date", -1)])
