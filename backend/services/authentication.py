"""
Authentication gate: bearer token -> Identity.
"""

import logging
from datetime import datetime, timedelta, timezone
from enum import Enum

import jwt

from config import db, JWT_SECRET, JWT_ALGORITHM, JWT_EXPIRES_DAYS
from services.permissions import Identity

logger = logging.getLogger("authentication")


class AuthErrorKind(str, Enum):
    INVALID_OR_EXPIRED = "InvalidOrExpired"
    NOT_FOUND = "NotFound"
    INACTIVE = "Inactive"


AUTH_ERROR_MESSAGES = {
    AuthErrorKind.INVALID_OR_EXPIRED: "Invalid or expired token",
    AuthErrorKind.NOT_FOUND: "User not found",
    AuthErrorKind.INACTIVE: "Account is deactivated",
}


class AuthError(Exception):
    def __init__(self, kind: AuthErrorKind):
        self.kind = kind
        super().__init__(AUTH_ERROR_MESSAGES[kind])


def create_token(user: dict) -> str:
    identity = Identity.from_document(user)
    payload = {
        "sub": identity.id,
        "email": identity.email,
        "role": identity.role.value if identity.role else None,
        "iat": datetime.now(timezone.utc),
        "exp": datetime.now(timezone.utc) + timedelta(days=JWT_EXPIRES_DAYS),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError as e:
        logger.info(f"[AUTH] Token rejected: {e}")
        raise AuthError(AuthErrorKind.INVALID_OR_EXPIRED)


async def authenticate(token: str) -> Identity:
    """
    Resolve a bearer credential. The role is read from the stored identity,
    not from the token, so a role change applies on the next request.
    """
    if not token:
        raise AuthError(AuthErrorKind.INVALID_OR_EXPIRED)

    payload = decode_token(token)
    user_id = payload.get("sub")
    if not user_id:
        raise AuthError(AuthErrorKind.INVALID_OR_EXPIRED)

    user = await db.users.find_one({"id": user_id}, {"_id": 0, "password": 0})
    if not user:
        raise AuthError(AuthErrorKind.NOT_FOUND)

    identity = Identity.from_document(user)
    if not identity.is_active:
        raise AuthError(AuthErrorKind.INACTIVE)
    return identity
