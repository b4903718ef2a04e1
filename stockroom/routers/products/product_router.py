# stockroom/routers/products/product_router.py

import logging
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from stockroom.core.db import get_db
from stockroom.schemas.products.product_schemas import (
    ProductCreate,
    ProductUpdate,
    ProductOut,
    ProductListData,
)
from stockroom.services.products.product_service import (
    create_product,
    list_products,
    get_product,
    get_product_by_code,
    list_low_stock_products,
    update_product,
    delete_product,
)
from stockroom.utils.check_roles import require_admin, require_any_user
from stockroom.utils.response import APIResponse, success_response

router = APIRouter(prefix="/products", tags=["Products"])
logger = logging.getLogger(__name__)


@router.post("/", response_model=APIResponse[ProductOut])
async def create_product_api(
    payload: ProductCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_any_user),
):
    logger.info("Create product", extra={"unique_code": payload.unique_code})
    product = await create_product(db, payload, user)
    return success_response("Product created successfully", product)


@router.get("/", response_model=APIResponse[ProductListData])
async def list_products_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_any_user),
    search: str | None = Query(None, description="Search by internal code, unique code or name"),
    low_stock_only: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    sort_by: str = Query("created_at"),
    order: str = Query("desc"),
):
    logger.info("List products", extra={"search": search})
    data = await list_products(
        db=db,
        search=search,
        low_stock_only=low_stock_only,
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        order=order,
    )
    return success_response("Products fetched successfully", data)


@router.get("/status/low-stock", response_model=APIResponse[list[ProductOut]])
async def low_stock_products_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_any_user),
):
    products = await list_low_stock_products(db)
    return success_response("Low stock products fetched successfully", products)


@router.get("/code/internal/{internal_code}", response_model=APIResponse[ProductOut])
async def get_product_by_internal_code_api(
    internal_code: str,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_any_user),
):
    product = await get_product_by_code(db, internal_code=internal_code)
    return success_response("Product fetched successfully", product)


@router.get("/code/unique/{unique_code}", response_model=APIResponse[ProductOut])
async def get_product_by_unique_code_api(
    unique_code: str,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_any_user),
):
    product = await get_product_by_code(db, unique_code=unique_code)
    return success_response("Product fetched successfully", product)


@router.get("/{product_id}", response_model=APIResponse[ProductOut])
async def get_product_api(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_any_user),
):
    product = await get_product(db, product_id)
    return success_response("Product fetched successfully", product)


@router.patch("/{product_id}", response_model=APIResponse[ProductOut])
async def update_product_api(
    product_id: int,
    payload: ProductUpdate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_any_user),
):
    product = await update_product(db, product_id, payload, user)
    return success_response("Product updated successfully", product)


@router.delete("/{product_id}", response_model=APIResponse[ProductOut])
async def delete_product_api(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_admin),
):
    logger.info("Delete product", extra={"product_id": product_id})
    product = await delete_product(db, product_id, user)
    return success_response("Product deleted successfully", product)
