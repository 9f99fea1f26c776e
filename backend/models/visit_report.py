"""
Visit report models.

Draft/Submitted are written by the owning MR; Approved/Rejected only by an
Admin, through update or the approve/reject actions.
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, field_validator

from services.state_machine import VISIT_STATUSES

VISIT_TYPES = ["Regular", "Follow-up", "New Doctor", "Emergency", "Promotional"]
VISIT_OUTCOMES = ["Positive", "Neutral", "Negative", "Follow-up Required"]


class VisitDetails(BaseModel):
    model_config = ConfigDict(extra="allow")

    visitDate: str
    visitTime: Optional[str] = None
    duration: Optional[int] = None
    visitType: Optional[str] = "Regular"
    location: Optional[str] = None
    nextVisitDate: Optional[str] = None


class VisitDetailsUpdate(BaseModel):
    model_config = ConfigDict(extra="allow")

    visitDate: Optional[str] = None
    visitTime: Optional[str] = None
    duration: Optional[int] = None
    visitType: Optional[str] = None
    location: Optional[str] = None
    nextVisitDate: Optional[str] = None


class ProductDiscussed(BaseModel):
    model_config = ConfigDict(extra="allow")

    product: str
    samplesGiven: Optional[int] = 0
    doctorFeedback: Optional[str] = None
    interestLevel: Optional[str] = None


class Interaction(BaseModel):
    model_config = ConfigDict(extra="allow")

    productsDiscussed: List[ProductDiscussed] = []
    notes: Optional[str] = None
    visitOutcome: Optional[str] = None
    doctorAvailability: Optional[str] = None
    competitorActivity: Optional[str] = None

    @field_validator("visitOutcome")
    @classmethod
    def validate_outcome(cls, v):
        if v is not None and v not in VISIT_OUTCOMES:
            raise ValueError(f"Invalid visit outcome: {v}. Valid: {VISIT_OUTCOMES}")
        return v


class VisitOrderLine(BaseModel):
    product: str
    quantity: int
    unitPrice: float

    @field_validator("quantity")
    @classmethod
    def validate_quantity(cls, v):
        if v < 1:
            raise ValueError("Quantity must be at least 1")
        return v


def _check_status(v):
    if v is not None and v not in VISIT_STATUSES:
        raise ValueError(f"Invalid status: {v}. Valid: {VISIT_STATUSES}")
    return v


class VisitReportCreate(BaseModel):
    doctor: str
    mr: Optional[str] = None
    visitDetails: VisitDetails
    interaction: Optional[Interaction] = None
    orders: List[VisitOrderLine] = []
    attachments: List[str] = []
    status: Optional[str] = "Draft"

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        return _check_status(v)


class VisitReportUpdate(BaseModel):
    doctor: Optional[str] = None
    visitDetails: Optional[VisitDetailsUpdate] = None
    interaction: Optional[Interaction] = None
    orders: Optional[List[VisitOrderLine]] = None
    attachments: Optional[List[str]] = None
    status: Optional[str] = None
    rejectionReason: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        return _check_status(v)


class VisitRejection(BaseModel):
    reason: Optional[str] = None
