# stockroom/routers/inventory/inventory_router.py

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from stockroom.core.db import get_db
from stockroom.schemas.inventory.inventory_schemas import (
    InventoryItemOut,
    InventorySummary,
    TurnoverOut,
    ProductStatusOut,
)
from stockroom.schemas.ledger.transaction_schemas import StockMovementOut
from stockroom.services.inventory.inventory_service import (
    get_current_inventory,
    get_inventory_summary,
    get_low_stock_items,
    get_out_of_stock_items,
    get_stock_turnover,
    get_product_status,
)
from stockroom.services.ledger.transaction_query_service import (
    get_stock_movements,
    MAX_MOVEMENT_DAYS,
)
from stockroom.utils.check_roles import require_any_user
from stockroom.utils.response import APIResponse, success_response

router = APIRouter(prefix="/inventory", tags=["Inventory"])


@router.get("/current", response_model=APIResponse[list[InventoryItemOut]])
async def current_inventory_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_any_user),
    low_stock_only: bool = Query(False),
):
    items = await get_current_inventory(db, low_stock_only=low_stock_only)
    return success_response("Inventory fetched successfully", items)


@router.get("/summary", response_model=APIResponse[InventorySummary])
async def inventory_summary_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_any_user),
):
    summary = await get_inventory_summary(db)
    return success_response("Inventory summary fetched successfully", summary)


@router.get("/low-stock", response_model=APIResponse[list[InventoryItemOut]])
async def low_stock_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_any_user),
):
    items = await get_low_stock_items(db)
    return success_response("Low stock items fetched successfully", items)


@router.get("/out-of-stock", response_model=APIResponse[list[InventoryItemOut]])
async def out_of_stock_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_any_user),
):
    items = await get_out_of_stock_items(db)
    return success_response("Out of stock items fetched successfully", items)


@router.get("/movements/{product_id}", response_model=APIResponse[list[StockMovementOut]])
async def stock_movements_api(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_any_user),
    days: int = Query(30, ge=1, le=MAX_MOVEMENT_DAYS),
):
    movements = await get_stock_movements(db, product_id, days=days)
    return success_response("Stock movements fetched successfully", movements)


@router.get("/turnover", response_model=APIResponse[list[TurnoverOut]])
async def stock_turnover_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_any_user),
    product_id: int | None = Query(None),
):
    items = await get_stock_turnover(db, product_id)
    return success_response("Stock turnover fetched successfully", items)


@router.get("/status/{product_id}", response_model=APIResponse[ProductStatusOut])
async def product_status_api(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_any_user),
):
    status = await get_product_status(db, product_id)
    return success_response("Product status fetched successfully", status)
