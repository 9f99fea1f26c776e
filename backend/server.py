"""
Fieldforce - FastAPI application
Routers, CORS, request logging, error envelope, startup indexes.
"""

import logging
from fastapi import FastAPI, APIRouter, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware
from pymongo.errors import DuplicateKeyError

from config import client, ensure_indexes, CORS_ORIGINS, ENV, now_iso
from services import api_response

from routes.auth import router as auth_router
from routes.users import router as users_router
from routes.doctors import router as doctors_router
from routes.products import router as products_router
from routes.visit_reports import router as visit_reports_router
from routes.orders import router as orders_router
from routes.mr_targets import router as mr_targets_router
from routes.mr_performance import router as mr_performance_router
from routes.product_activity import router as product_activity_router
from routes.mr_requests import router as mr_requests_router
from routes.email import router as email_router
from routes.admin import router as admin_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("server")

app = FastAPI(title="Fieldforce API")

# Create a router with the /api prefix
api_router = APIRouter(prefix="/api")

api_router.include_router(auth_router)
api_router.include_router(users_router)
api_router.include_router(doctors_router)
api_router.include_router(products_router)
api_router.include_router(visit_reports_router)
api_router.include_router(orders_router)
api_router.include_router(mr_targets_router)
api_router.include_router(mr_performance_router)
api_router.include_router(product_activity_router)
api_router.include_router(mr_requests_router)
api_router.include_router(email_router)
api_router.include_router(admin_router)

app.include_router(api_router)

app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    response = await call_next(request)
    logger.info(f"[HTTP] {request.method} {request.url.path} -> {response.status_code}")
    return response


# ==================== ERROR ENVELOPE ====================

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return api_response.error(str(exc.detail), exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(p) for p in err.get("loc", []) if p != "body"),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    return api_response.bad_request("Validation failed", {"errors": errors})


@app.exception_handler(DuplicateKeyError)
async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    logger.warning(f"[DB] Duplicate key on {request.method} {request.url.path}: {exc}")
    return api_response.bad_request("Duplicate field value entered")


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"[ERROR] Unhandled exception on {request.method} {request.url.path}")
    return api_response.error("Internal server error", 500)


# ==================== HEALTH ====================

@app.get("/health")
async def health():
    return api_response.success({"status": "OK", "environment": ENV, "timestamp": now_iso()}, "Server is running")


# ==================== LIFECYCLE ====================

@app.on_event("startup")
async def startup():
    await ensure_indexes()
    logger.info("[STARTUP] Indexes ensured")


@app.on_event("shutdown")
async def shutdown_db_client():
    client.close()
