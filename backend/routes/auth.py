"""
Fieldforce - Routes Auth
Login / current user / token refresh, and the bearer-token gate every
protected route depends on.
"""

import logging
from fastapi import APIRouter, HTTPException, Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from models.auth import UserLogin, TokenRefresh
from services import api_response
from services.authentication import AuthError, authenticate, create_token
from services.permissions import Identity, roles_match
from services.users import find_by_email, get_user, public_user, touch_last_login, verify_password

logger = logging.getLogger("auth")

router = APIRouter(prefix="/auth", tags=["Auth"])
security = HTTPBearer(auto_error=False)


# ==================== GATE ====================

async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Identity:
    """Resolve the bearer token into an Identity bound to the request."""
    if not credentials:
        raise HTTPException(status_code=401, detail="Access denied. No token provided")

    try:
        identity = await authenticate(credentials.credentials)
    except AuthError as e:
        raise HTTPException(status_code=401, detail=str(e))

    request.state.identity = identity
    return identity


async def require_admin(user: Identity = Depends(get_current_user)) -> Identity:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Access denied. Admin role required")
    return user


# ==================== LOGIN ====================

async def login_user(data: UserLogin):
    """
    Unknown email, wrong password and inactive account all answer 401
    "Invalid credentials". A role that does not match the stored one is a
    separate 403.
    """
    user = await find_by_email(data.email)

    if not user or not verify_password(data.password, user.get("password")):
        logger.info(f"[LOGIN] Failed login for {data.email}")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    identity = Identity.from_document(user)
    if not identity.is_active:
        logger.info(f"[LOGIN] Inactive account {data.email}")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if data.role and not roles_match(identity.role, data.role):
        raise HTTPException(status_code=403, detail=f"This account is not registered as {data.role}")

    await touch_last_login(identity.id)
    token = create_token(user)
    logger.info(f"[LOGIN] {identity.email} role={identity.role.value if identity.role else None}")

    return api_response.success(
        {"token": token, "user": public_user(user)},
        "Login successful",
    )


@router.post("/login")
async def login(data: UserLogin):
    return await login_user(data)


@router.get("/me")
async def get_me(user: Identity = Depends(get_current_user)):
    profile = await get_user(user.id)
    return api_response.success(profile, "User profile retrieved successfully")


@router.post("/refresh")
async def refresh_token(data: TokenRefresh):
    """Exchange a still-valid token for a fresh one."""
    try:
        identity = await authenticate(data.token)
    except AuthError as e:
        raise HTTPException(status_code=401, detail=str(e))

    user = await get_user(identity.id)
    return api_response.success({"token": create_token(user), "user": user}, "Token refreshed successfully")
