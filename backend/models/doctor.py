"""
Doctor models.
Ownership lives in `assignedMRs`; only an Admin writes it.
"""

from typing import List, Optional
from pydantic import BaseModel, field_validator


class DoctorCreate(BaseModel):
    name: str
    qualification: Optional[str] = None
    place: Optional[str] = None
    specialization: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    assignedMRs: Optional[List[str]] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Doctor name is required")
        return v.strip()

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v is None:
            return v
        return v.strip() or None


class DoctorUpdate(BaseModel):
    name: Optional[str] = None
    qualification: Optional[str] = None
    place: Optional[str] = None
    specialization: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    assignedMRs: Optional[List[str]] = None
    isActive: Optional[bool] = None


class AssignMR(BaseModel):
    mrId: str
