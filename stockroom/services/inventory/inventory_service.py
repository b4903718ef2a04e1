# stockroom/services/inventory/inventory_service.py

import logging
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import select, func, case, desc, asc
from sqlalchemy.ext.asyncio import AsyncSession

from stockroom.core.exceptions import NotFoundError
from stockroom.constants.error_codes import ErrorCode
from stockroom.constants.stock_status import StockStatus, classify_stock
from stockroom.constants.transaction_type import TransactionType
from stockroom.models.products.product_models import Product
from stockroom.models.ledger.transaction_models import StockTransaction
from stockroom.schemas.inventory.inventory_schemas import (
    InventoryItemOut,
    InventorySummary,
    TurnoverOut,
    ProductStatusOut,
)
from stockroom.services.ledger.transaction_query_service import get_stock_movements
from stockroom.services.products.product_service import get_product
from stockroom.utils.decimal_utils import to_decimal, ratio

logger = logging.getLogger(__name__)

TURNOVER_WINDOW_DAYS = 30
RECENT_WINDOW_DAYS = 30
STATUS_MOVEMENT_DAYS = 7

INBOUND = TransactionType.INBOUND.value
OUTBOUND = TransactionType.OUTBOUND.value


def _ledger_totals():
    return (
        select(
            StockTransaction.product_id.label("product_id"),
            func.coalesce(
                func.sum(case((StockTransaction.type == INBOUND, StockTransaction.quantity), else_=0)), 0
            ).label("total_inbound"),
            func.coalesce(
                func.sum(case((StockTransaction.type == OUTBOUND, StockTransaction.quantity), else_=0)), 0
            ).label("total_outbound"),
            func.max(
                case((StockTransaction.type == INBOUND, StockTransaction.transaction_date))
            ).label("last_inbound_date"),
            func.max(
                case((StockTransaction.type == OUTBOUND, StockTransaction.transaction_date))
            ).label("last_outbound_date"),
        )
        .group_by(StockTransaction.product_id)
        .subquery()
    )


def _map_inventory_row(row) -> InventoryItemOut:
    status = classify_stock(row.current_stock, row.min_stock)
    return InventoryItemOut(
        id=row.id,
        internal_code=row.internal_code,
        unique_code=row.unique_code,
        name=row.name,
        description=row.description,
        unit=row.unit,
        unit_price=row.unit_price,
        min_stock=row.min_stock,
        current_stock=row.current_stock,
        stock_status=status,
        is_low_stock=row.current_stock <= row.min_stock,
        total_inbound=int(row.total_inbound or 0),
        total_outbound=int(row.total_outbound or 0),
        last_inbound_date=row.last_inbound_date,
        last_outbound_date=row.last_outbound_date,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


# =========================
# CURRENT INVENTORY
# =========================
async def get_current_inventory(
    db: AsyncSession,
    *,
    product_ids: list[int] | None = None,
    low_stock_only: bool = False,
) -> list[InventoryItemOut]:
    totals = _ledger_totals()

    stmt = (
        select(
            Product.id,
            Product.internal_code,
            Product.unique_code,
            Product.name,
            Product.description,
            Product.unit,
            Product.unit_price,
            Product.min_stock,
            Product.current_stock,
            Product.created_at,
            Product.updated_at,
            totals.c.total_inbound,
            totals.c.total_outbound,
            totals.c.last_inbound_date,
            totals.c.last_outbound_date,
        )
        .outerjoin(totals, totals.c.product_id == Product.id)
        .order_by(asc(Product.name), asc(Product.id))
    )

    if product_ids:
        stmt = stmt.where(Product.id.in_(product_ids))
    if low_stock_only:
        stmt = stmt.where(Product.current_stock <= Product.min_stock)

    rows = (await db.execute(stmt)).all()
    return [_map_inventory_row(r) for r in rows]


# =========================
# SUMMARY
# =========================
async def get_inventory_summary(db: AsyncSession) -> InventorySummary:
    latest_inbound_price = (
        select(StockTransaction.unit_price)
        .where(
            StockTransaction.product_id == Product.id,
            StockTransaction.type == INBOUND,
            StockTransaction.unit_price.is_not(None),
        )
        .order_by(desc(StockTransaction.created_at), desc(StockTransaction.id))
        .limit(1)
        .scalar_subquery()
    )

    row = (
        await db.execute(
            select(
                func.count(Product.id).label("total_products"),
                func.coalesce(
                    func.sum(Product.current_stock * func.coalesce(latest_inbound_price, 0)), 0
                ).label("total_stock_value"),
                func.count(Product.id)
                .filter(Product.current_stock > 0, Product.current_stock <= Product.min_stock)
                .label("low_stock_count"),
                func.count(Product.id)
                .filter(Product.current_stock <= 0)
                .label("out_of_stock_count"),
            )
        )
    ).one()

    since = date.today() - timedelta(days=RECENT_WINDOW_DAYS)
    recent = await db.scalar(
        select(func.count(StockTransaction.id)).where(
            StockTransaction.transaction_date >= since
        )
    )

    return InventorySummary(
        total_products=row.total_products or 0,
        total_stock_value=to_decimal(Decimal(str(row.total_stock_value or 0))),
        low_stock_count=row.low_stock_count or 0,
        out_of_stock_count=row.out_of_stock_count or 0,
        recent_transactions_count=recent or 0,
    )


# =========================
# LOW / OUT OF STOCK
# =========================
async def get_low_stock_items(db: AsyncSession) -> list[InventoryItemOut]:
    items = await get_current_inventory(db, low_stock_only=True)
    # Out of stock first, then the emptiest shelves
    return sorted(
        items,
        key=lambda i: (i.stock_status != StockStatus.OUT_OF_STOCK, i.current_stock, i.name),
    )


async def get_out_of_stock_items(db: AsyncSession) -> list[InventoryItemOut]:
    items = await get_current_inventory(db)
    return [i for i in items if i.stock_status == StockStatus.OUT_OF_STOCK]


# =========================
# TURNOVER
# =========================
async def get_stock_turnover(
    db: AsyncSession,
    product_id: int | None = None,
) -> list[TurnoverOut]:
    since = date.today() - timedelta(days=TURNOVER_WINDOW_DAYS)

    outbound_recent = (
        select(func.coalesce(func.sum(StockTransaction.quantity), 0))
        .where(
            StockTransaction.product_id == Product.id,
            StockTransaction.type == OUTBOUND,
            StockTransaction.transaction_date >= since,
        )
        .scalar_subquery()
    )

    stmt = select(
        Product.id,
        Product.internal_code,
        Product.name,
        Product.current_stock,
        outbound_recent.label("outbound_last_30_days"),
    )
    if product_id is not None:
        stmt = stmt.where(Product.id == product_id)

    rows = (await db.execute(stmt)).all()

    if product_id is not None and not rows:
        raise NotFoundError(
            "Product not found",
            ErrorCode.PRODUCT_NOT_FOUND,
            {"product_id": product_id},
        )

    items = [
        TurnoverOut(
            product_id=r.id,
            internal_code=r.internal_code,
            name=r.name,
            current_stock=r.current_stock,
            outbound_last_30_days=int(r.outbound_last_30_days or 0),
            turnover_ratio=ratio(int(r.outbound_last_30_days or 0), r.current_stock),
        )
        for r in rows
    ]
    items.sort(key=lambda t: (-t.turnover_ratio, t.name))
    return items


# =========================
# PER PRODUCT STATUS
# =========================
async def get_product_status(db: AsyncSession, product_id: int) -> ProductStatusOut:
    product = await get_product(db, product_id)
    movements = await get_stock_movements(db, product_id, days=STATUS_MOVEMENT_DAYS)
    turnover = await get_stock_turnover(db, product_id)

    return ProductStatusOut(
        product=product,
        stock_status=classify_stock(product.current_stock, product.min_stock),
        recent_movements=movements,
        turnover=turnover[0],
    )
