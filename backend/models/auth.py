"""
Fieldforce - Auth & user models
Exactly one role per identity: Admin, MR or Manager.
"""

import re
from pydantic import BaseModel, field_validator
from typing import Optional

from services.permissions import VALID_ROLES, normalize_role


def is_valid_email_format(email: str) -> bool:
    if not email:
        return False
    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return bool(re.match(pattern, email))


def _check_email(v):
    if v is None:
        return v
    v = v.lower().strip()
    if not is_valid_email_format(v):
        raise ValueError(f"Invalid email format: {v}")
    return v


def _check_role(v):
    if v is None:
        return v
    role = normalize_role(v)
    if role is None:
        raise ValueError(f"Invalid role: {v}. Valid roles: {VALID_ROLES}")
    return role.value


class UserLogin(BaseModel):
    email: str
    password: str
    role: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        return v.lower().strip()


class TokenRefresh(BaseModel):
    token: str


class PasswordChange(BaseModel):
    currentPassword: str
    newPassword: str

    @field_validator("newPassword")
    @classmethod
    def validate_new_password(cls, v):
        if len(v) < 6:
            raise ValueError("Password must be at least 6 characters")
        return v


class UserCreate(BaseModel):
    name: str
    email: str
    password: str
    role: str = "MR"
    employeeId: Optional[str] = None
    phone: Optional[str] = None
    territory: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None
    joiningDate: Optional[str] = None
    reportingManager: Optional[str] = None
    monthlyVisits: Optional[int] = None
    monthlySales: Optional[float] = None
    quarterlyTarget: Optional[float] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        return _check_email(v)

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        return _check_role(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        if len(v) < 6:
            raise ValueError("Password must be at least 6 characters")
        return v


class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None
    employeeId: Optional[str] = None
    phone: Optional[str] = None
    territory: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None
    joiningDate: Optional[str] = None
    reportingManager: Optional[str] = None
    monthlyVisits: Optional[int] = None
    monthlySales: Optional[float] = None
    quarterlyTarget: Optional[float] = None
    isActive: Optional[bool] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        return _check_email(v)

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        return _check_role(v)
