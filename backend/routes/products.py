"""
Fieldforce - Routes Products
Read by every authenticated identity, written by Admin only.
"""

import logging
import re
import uuid
from typing import Optional
from fastapi import APIRouter, HTTPException, Depends

from config import db, now_iso
from models.product import ProductCreate, ProductUpdate
from services import api_response
from services.permissions import Identity, Operation, ResourceKind, require_access
from services.query_builder import build_scoped_query, page_meta, pagination
from services.sequences import next_product_id

logger = logging.getLogger("products")

router = APIRouter(prefix="/products", tags=["Products"])

PRODUCT_SEARCH_FIELDS = ["basicInfo.name", "basicInfo.brandName", "basicInfo.genericName", "productId"]
NESTED_BLOCKS = ["basicInfo", "medicalInfo", "businessInfo", "inventory", "regulatory"]


async def _get_product_or_404(product_id: str) -> dict:
    product = await db.products.find_one({"id": product_id}, {"_id": 0})
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


async def _check_name_unique(name: str, exclude_id: Optional[str] = None):
    query = {"basicInfo.name": {"$regex": f"^{re.escape(name)}$", "$options": "i"}}
    if exclude_id:
        query["id"] = {"$ne": exclude_id}
    if await db.products.find_one(query, {"_id": 1}):
        raise HTTPException(status_code=400, detail="Product with this name already exists")


@router.get("")
async def list_products(
    category: Optional[str] = None,
    search: Optional[str] = None,
    isActive: Optional[bool] = True,
    page: int = 1,
    limit: int = 50,
    user: Identity = Depends(require_access(ResourceKind.PRODUCT, Operation.LIST)),
):
    paging = pagination(page, limit)
    query = build_scoped_query(
        filters={"basicInfo.category": category, "isActive": isActive},
        search=search,
        search_fields=PRODUCT_SEARCH_FIELDS,
    )
    total = await db.products.count_documents(query)
    products = await db.products.find(query, {"_id": 0}).sort("basicInfo.name", 1) \
        .skip(paging["skip"]).limit(paging["limit"]).to_list(paging["limit"])

    return api_response.success(
        {"products": products, "pagination": page_meta(paging["page"], paging["limit"], total)},
        "Products retrieved successfully",
    )


@router.get("/{product_id}")
async def get_product(
    product_id: str,
    user: Identity = Depends(require_access(ResourceKind.PRODUCT, Operation.READ)),
):
    product = await _get_product_or_404(product_id)
    return api_response.success(product, "Product retrieved successfully")


@router.post("")
async def create_product(
    data: ProductCreate,
    user: Identity = Depends(require_access(ResourceKind.PRODUCT, Operation.CREATE)),
):
    payload = data.model_dump(exclude_none=True)
    await _check_name_unique(payload["basicInfo"]["name"])

    now = now_iso()
    product = {
        "id": str(uuid.uuid4()),
        "productId": await next_product_id(),
        **payload,
        "isActive": True,
        "isDiscontinued": False,
        "createdAt": now,
        "updatedAt": now,
        "createdBy": user.id,
    }
    await db.products.insert_one(product)
    product.pop("_id", None)

    logger.info(f"[PRODUCTS] Created {product['productId']} {payload['basicInfo']['name']}")
    return api_response.created(product, "Product created successfully")


@router.put("/{product_id}")
async def update_product(
    product_id: str,
    data: ProductUpdate,
    user: Identity = Depends(require_access(ResourceKind.PRODUCT, Operation.UPDATE)),
):
    product = await _get_product_or_404(product_id)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)

    # nested blocks merge into what is stored
    for block in NESTED_BLOCKS:
        if block in changes:
            changes[block] = {**(product.get(block) or {}), **changes[block]}

    new_name = (changes.get("basicInfo") or {}).get("name")
    if new_name and new_name != (product.get("basicInfo") or {}).get("name"):
        await _check_name_unique(new_name, exclude_id=product_id)

    changes["updatedAt"] = now_iso()
    await db.products.update_one({"id": product_id}, {"$set": changes})
    updated = await _get_product_or_404(product_id)
    return api_response.success(updated, "Product updated successfully")


@router.delete("/{product_id}")
async def delete_product(
    product_id: str,
    user: Identity = Depends(require_access(ResourceKind.PRODUCT, Operation.DELETE)),
):
    await _get_product_or_404(product_id)
    await db.products.update_one(
        {"id": product_id},
        {"$set": {"isActive": False, "isDiscontinued": True, "updatedAt": now_iso()}},
    )
    logger.info(f"[PRODUCTS] Discontinued {product_id} by={user.id}")
    return api_response.success(message="Product deleted successfully")
