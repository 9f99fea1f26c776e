"""
Product models. Products have no owner: every authenticated identity reads
them, only an Admin writes them.
"""

from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, field_validator


PRODUCT_CATEGORIES = [
    "Tablet", "Capsule", "Syrup", "Injection", "Ointment", "Drops", "Powder", "Other",
]


class BasicInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    brandName: Optional[str] = None
    genericName: Optional[str] = None
    category: Optional[str] = None
    subCategory: Optional[str] = None
    description: Optional[str] = None
    productImage: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Product name is required")
        return v.strip()


class BusinessInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    mrp: Optional[float] = None
    dealerPrice: Optional[float] = None
    distributorPrice: Optional[float] = None
    margin: Optional[float] = None
    packSize: Optional[str] = None
    manufacturer: Optional[str] = None
    manufacturerLicense: Optional[str] = None
    hsnCode: Optional[str] = None

    @field_validator("mrp", "dealerPrice", "distributorPrice")
    @classmethod
    def validate_price(cls, v):
        if v is not None and v < 0:
            raise ValueError("Price cannot be negative")
        return v


class ProductCreate(BaseModel):
    basicInfo: BasicInfo
    medicalInfo: Optional[Dict[str, Any]] = None
    businessInfo: Optional[BusinessInfo] = None
    inventory: Optional[Dict[str, Any]] = None
    regulatory: Optional[Dict[str, Any]] = None


class ProductUpdate(BaseModel):
    basicInfo: Optional[BasicInfo] = None
    medicalInfo: Optional[Dict[str, Any]] = None
    businessInfo: Optional[BusinessInfo] = None
    inventory: Optional[Dict[str, Any]] = None
    regulatory: Optional[Dict[str, Any]] = None
    isActive: Optional[bool] = None
    isDiscontinued: Optional[bool] = None
