"""
Order models. `financial` and item totals are always recomputed server side;
whatever the client sends for them is ignored apart from shippingCharges.
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, field_validator

from services.state_machine import ORDER_STATUSES

ORDER_TYPES = ["Regular", "Urgent", "Sample", "Return"]
PRIORITIES = ["Low", "Medium", "High", "Urgent"]


class OrderItem(BaseModel):
    product: str
    quantity: int
    unitPrice: float
    discount: float = 0
    taxRate: float = 0

    @field_validator("quantity")
    @classmethod
    def validate_quantity(cls, v):
        if v < 1:
            raise ValueError("Quantity must be at least 1")
        return v

    @field_validator("unitPrice")
    @classmethod
    def validate_price(cls, v):
        if v < 0:
            raise ValueError("Unit price cannot be negative")
        return v

    @field_validator("discount", "taxRate")
    @classmethod
    def validate_percent(cls, v):
        if v < 0 or v > 100:
            raise ValueError("Percentage must be between 0 and 100")
        return v


class OrderDetails(BaseModel):
    model_config = ConfigDict(extra="allow")

    orderDate: Optional[str] = None
    expectedDeliveryDate: Optional[str] = None
    orderType: Optional[str] = "Regular"
    priority: Optional[str] = "Medium"

    @field_validator("orderType")
    @classmethod
    def validate_type(cls, v):
        if v is not None and v not in ORDER_TYPES:
            raise ValueError(f"Invalid order type: {v}. Valid: {ORDER_TYPES}")
        return v

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v):
        if v is not None and v not in PRIORITIES:
            raise ValueError(f"Invalid priority: {v}. Valid: {PRIORITIES}")
        return v


class Financial(BaseModel):
    model_config = ConfigDict(extra="ignore")

    shippingCharges: float = 0


class Delivery(BaseModel):
    model_config = ConfigDict(extra="allow")

    address: Optional[str] = None
    contactPerson: Optional[str] = None
    contactPhone: Optional[str] = None
    deliveryInstructions: Optional[str] = None


class OrderCreate(BaseModel):
    doctor: str
    mr: Optional[str] = None
    visitReport: Optional[str] = None
    orderDetails: Optional[OrderDetails] = None
    items: List[OrderItem]
    financial: Optional[Financial] = None
    delivery: Optional[Delivery] = None
    notes: Optional[str] = None
    internalNotes: Optional[str] = None

    @field_validator("items")
    @classmethod
    def validate_items(cls, v):
        if not v:
            raise ValueError("Order must contain at least one item")
        return v


class OrderUpdate(BaseModel):
    doctor: Optional[str] = None
    visitReport: Optional[str] = None
    orderDetails: Optional[OrderDetails] = None
    items: Optional[List[OrderItem]] = None
    financial: Optional[Financial] = None
    delivery: Optional[Delivery] = None
    notes: Optional[str] = None
    internalNotes: Optional[str] = None

    @field_validator("items")
    @classmethod
    def validate_items(cls, v):
        if v is not None and not v:
            raise ValueError("Order must contain at least one item")
        return v


class OrderStatusUpdate(BaseModel):
    status: str
    notes: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v not in ORDER_STATUSES:
            raise ValueError(f"Invalid status: {v}. Valid: {ORDER_STATUSES}")
        return v


class OrderCancel(BaseModel):
    reason: Optional[str] = None
