"""
MR onboarding requests: public application, Admin approval or rejection.
"""

from typing import Optional
from pydantic import BaseModel, field_validator

from models.auth import is_valid_email_format


class MRRequestCreate(BaseModel):
    name: str
    email: str
    phone: str
    area: str
    experience: Optional[str] = None

    @field_validator("name", "phone", "area")
    @classmethod
    def validate_required(cls, v):
        if not v or not v.strip():
            raise ValueError("Field is required")
        return v.strip()

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        v = v.lower().strip()
        if not is_valid_email_format(v):
            raise ValueError(f"Invalid email format: {v}")
        return v


class MRRequestReject(BaseModel):
    reason: Optional[str] = None
