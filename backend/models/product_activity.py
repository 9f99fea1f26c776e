"""
Product activity log entry (append-only).
"""

from typing import Optional
from pydantic import BaseModel, field_validator

from services.product_activity import ACTIVITY_TYPES, INTEREST_LEVELS, OUTCOMES


class ActivityLocation(BaseModel):
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    address: Optional[str] = None


class ProductActivityCreate(BaseModel):
    product: str
    mr: Optional[str] = None
    doctor: Optional[str] = None
    activity_type: str = "Discussion"
    date: Optional[str] = None
    quantity: int = 0
    doctor_feedback: Optional[str] = None
    interest_level: str = "Medium"
    outcome: str = "Neutral"
    visit_report: Optional[str] = None
    order: Optional[str] = None
    notes: Optional[str] = None
    location: Optional[ActivityLocation] = None

    @field_validator("activity_type")
    @classmethod
    def validate_type(cls, v):
        if v not in ACTIVITY_TYPES:
            raise ValueError(f"Invalid activity type: {v}. Valid: {ACTIVITY_TYPES}")
        return v

    @field_validator("interest_level")
    @classmethod
    def validate_interest(cls, v):
        if v not in INTEREST_LEVELS:
            raise ValueError(f"Invalid interest level: {v}. Valid: {INTEREST_LEVELS}")
        return v

    @field_validator("outcome")
    @classmethod
    def validate_outcome(cls, v):
        if v not in OUTCOMES:
            raise ValueError(f"Invalid outcome: {v}. Valid: {OUTCOMES}")
        return v

    @field_validator("quantity")
    @classmethod
    def validate_quantity(cls, v):
        if v < 0:
            raise ValueError("Quantity cannot be negative")
        return v
