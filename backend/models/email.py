"""
Email trigger bodies (Admin sends, public application acknowledgement).
"""

from typing import Optional
from pydantic import BaseModel, field_validator

from models.auth import is_valid_email_format


def _check_email(v: str) -> str:
    v = v.lower().strip()
    if not is_valid_email_format(v):
        raise ValueError(f"Invalid email format: {v}")
    return v


class SendEmailRequest(BaseModel):
    to: str
    subject: str
    htmlContent: str

    @field_validator("to")
    @classmethod
    def validate_to(cls, v):
        return _check_email(v)

    @field_validator("subject", "htmlContent")
    @classmethod
    def validate_required(cls, v):
        if not v or not v.strip():
            raise ValueError("Field is required")
        return v


class ApprovalEmailRequest(BaseModel):
    email: str
    tempPassword: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        return _check_email(v)


class RejectionEmailRequest(BaseModel):
    email: str
    name: Optional[str] = None
    reason: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        return _check_email(v)


class ApplicationReceivedEmailRequest(BaseModel):
    name: str
    email: str
    phone: str
    area: str

    @field_validator("name", "phone", "area")
    @classmethod
    def validate_required(cls, v):
        if not v or not v.strip():
            raise ValueError("Field is required")
        return v.strip()

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        return _check_email(v)
