"""
Monthly MR targets and performance logs. One of each per (mr, month, year).
"""

from typing import Optional
from pydantic import BaseModel, field_validator

TARGET_STATUSES = ["Active", "Completed", "Pending"]
PERFORMANCE_STATUSES = ["In Progress", "Completed", "Verified"]


def _check_month(v):
    if v is not None and (v < 1 or v > 12):
        raise ValueError("Month must be between 1 and 12")
    return v


def _check_year(v):
    if v is not None and (v < 2000 or v > 2100):
        raise ValueError("Year must be between 2000 and 2100")
    return v


# ==================== TARGETS ====================

class MRTargetCreate(BaseModel):
    mr: str
    month: int
    year: int
    target_visits: int = 0
    target_sales: float = 0
    target_new_doctors: int = 0
    target_orders: int = 0
    status: str = "Active"
    notes: Optional[str] = None

    @field_validator("month")
    @classmethod
    def validate_month(cls, v):
        return _check_month(v)

    @field_validator("year")
    @classmethod
    def validate_year(cls, v):
        return _check_year(v)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v not in TARGET_STATUSES:
            raise ValueError(f"Invalid status: {v}. Valid: {TARGET_STATUSES}")
        return v


class MRTargetUpdate(BaseModel):
    target_visits: Optional[int] = None
    target_sales: Optional[float] = None
    target_new_doctors: Optional[int] = None
    target_orders: Optional[int] = None
    status: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v is not None and v not in TARGET_STATUSES:
            raise ValueError(f"Invalid status: {v}. Valid: {TARGET_STATUSES}")
        return v


# ==================== PERFORMANCE LOGS ====================

class PerformanceMetrics(BaseModel):
    total_visits: Optional[int] = None
    unique_doctors_visited: Optional[int] = None
    new_doctors_added: Optional[int] = None
    total_orders: Optional[int] = None
    total_sale_amount: Optional[float] = None
    products_discussed: Optional[int] = None
    samples_distributed: Optional[int] = None
    target_achievement_percentage: Optional[float] = None
    visit_success_rate: Optional[float] = None
    rank_in_region: Optional[int] = None
    rank_overall: Optional[int] = None
    working_days: Optional[int] = None
    notes: Optional[str] = None


class MRPerformanceCreate(PerformanceMetrics):
    mr: str
    month: int
    year: int
    status: str = "In Progress"

    @field_validator("month")
    @classmethod
    def validate_month(cls, v):
        return _check_month(v)

    @field_validator("year")
    @classmethod
    def validate_year(cls, v):
        return _check_year(v)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v not in PERFORMANCE_STATUSES:
            raise ValueError(f"Invalid status: {v}. Valid: {PERFORMANCE_STATUSES}")
        return v


class MRPerformanceUpdate(PerformanceMetrics):
    status: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v is not None and v not in PERFORMANCE_STATUSES:
            raise ValueError(f"Invalid status: {v}. Valid: {PERFORMANCE_STATUSES}")
        return v


def compute_averages(doc: dict) -> dict:
    """average_visits_per_day and average_order_value, recomputed on every save."""
    result = dict(doc)
    working_days = result.get("working_days") or 0
    total_orders = result.get("total_orders") or 0
    result["average_visits_per_day"] = (
        round((result.get("total_visits") or 0) / working_days, 2) if working_days > 0 else 0
    )
    result["average_order_value"] = (
        round((result.get("total_sale_amount") or 0) / total_orders, 2) if total_orders > 0 else 0
    )
    return result
