# stockroom/services/ledger/transaction_query_service.py

import logging
from datetime import date, timedelta
from typing import Iterable

from sqlalchemy import select, func, desc
from sqlalchemy.ext.asyncio import AsyncSession

from stockroom.core.exceptions import AppException, NotFoundError
from stockroom.constants.error_codes import ErrorCode
from stockroom.constants.transaction_type import TransactionType
from stockroom.models.products.product_models import Product
from stockroom.models.ledger.transaction_models import StockTransaction
from stockroom.schemas.ledger.transaction_schemas import (
    TransactionDetailOut,
    TransactionListData,
    StockMovementOut,
)
from stockroom.utils.response import page_fields

logger = logging.getLogger(__name__)

MAX_MOVEMENT_DAYS = 365


def _detail_columns():
    return (
        StockTransaction,
        Product.name.label("product_name"),
        Product.internal_code.label("product_internal_code"),
        Product.unique_code.label("product_unique_code"),
        Product.unit.label("product_unit"),
    )


def _map_detail(row) -> TransactionDetailOut:
    t = row.StockTransaction
    return TransactionDetailOut(
        id=t.id,
        product_id=t.product_id,
        type=t.type,
        quantity=t.quantity,
        unit_price=t.unit_price,
        total_amount=t.total_amount,
        supplier=t.supplier,
        reason=t.reason,
        transaction_date=t.transaction_date,
        created_at=t.created_at,
        created_by_id=t.created_by_id,
        product_name=row.product_name,
        product_internal_code=row.product_internal_code,
        product_unique_code=row.product_unique_code,
        product_unit=row.product_unit,
    )


def _build_filters(
    *,
    product_id: int | None,
    product_ids: Iterable[int] | None,
    transaction_type: TransactionType | None,
    start_date: date | None,
    end_date: date | None,
) -> list:
    if start_date and end_date and start_date > end_date:
        raise AppException(
            400,
            "start_date must not be after end_date",
            ErrorCode.VALIDATION_ERROR,
        )

    filters = []
    if product_id:
        filters.append(StockTransaction.product_id == product_id)
    if product_ids:
        filters.append(StockTransaction.product_id.in_(list(product_ids)))
    if transaction_type:
        filters.append(StockTransaction.type == TransactionType(transaction_type).value)
    if start_date:
        filters.append(StockTransaction.transaction_date >= start_date)
    if end_date:
        filters.append(StockTransaction.transaction_date <= end_date)
    return filters


# ---------------- LIST ----------------
async def list_transactions(
    db: AsyncSession,
    *,
    product_id: int | None = None,
    product_ids: Iterable[int] | None = None,
    transaction_type: TransactionType | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    page: int = 1,
    page_size: int | None = 50,
) -> TransactionListData:
    """Newest first. ``page_size=None`` returns every matching row."""
    filters = _build_filters(
        product_id=product_id,
        product_ids=product_ids,
        transaction_type=transaction_type,
        start_date=start_date,
        end_date=end_date,
    )

    stmt = (
        select(*_detail_columns())
        .join(Product, Product.id == StockTransaction.product_id)
        .where(*filters)
        .order_by(desc(StockTransaction.created_at), desc(StockTransaction.id))
    )
    if page_size is not None:
        stmt = stmt.offset((page - 1) * page_size).limit(page_size)

    rows = (await db.execute(stmt)).all()

    total = await db.scalar(
        select(func.count()).select_from(
            select(StockTransaction.id).where(*filters).subquery()
        )
    )

    return TransactionListData(**page_fields([_map_detail(r) for r in rows], total, page, page_size))


# ---------------- GET ----------------
async def get_transaction(db: AsyncSession, transaction_id: int) -> TransactionDetailOut:
    row = (
        await db.execute(
            select(*_detail_columns())
            .join(Product, Product.id == StockTransaction.product_id)
            .where(StockTransaction.id == transaction_id)
        )
    ).first()

    if not row:
        raise NotFoundError(
            "Transaction not found",
            ErrorCode.TRANSACTION_NOT_FOUND,
            {"transaction_id": transaction_id},
        )
    return _map_detail(row)


# =====================================================
# STOCK MOVEMENT TIMELINE
# =====================================================
def build_stock_timeline(
    transactions: Iterable[StockTransaction],
    *,
    since: date | None = None,
) -> list[StockMovementOut]:
    """Annotate each row with the stock level right after it.

    The running total walks every row in creation order, so the
    window given by ``since`` only trims the output.
    """
    ordered = sorted(transactions, key=lambda t: (t.created_at, t.id))

    running = 0
    timeline: list[StockMovementOut] = []
    for t in ordered:
        if t.type == TransactionType.INBOUND.value:
            running += t.quantity
        else:
            running -= t.quantity

        if since is not None and t.transaction_date < since:
            continue

        timeline.append(
            StockMovementOut(
                id=t.id,
                product_id=t.product_id,
                type=t.type,
                quantity=t.quantity,
                unit_price=t.unit_price,
                total_amount=t.total_amount,
                supplier=t.supplier,
                reason=t.reason,
                transaction_date=t.transaction_date,
                created_at=t.created_at,
                created_by_id=t.created_by_id,
                stock_after_transaction=running,
            )
        )

    timeline.reverse()
    return timeline


async def get_stock_movements(
    db: AsyncSession,
    product_id: int,
    days: int = 30,
) -> list[StockMovementOut]:
    if days < 1 or days > MAX_MOVEMENT_DAYS:
        raise AppException(
            400,
            f"days must be between 1 and {MAX_MOVEMENT_DAYS}",
            ErrorCode.VALIDATION_ERROR,
        )

    exists = await db.scalar(select(Product.id).where(Product.id == product_id))
    if not exists:
        raise NotFoundError(
            "Product not found",
            ErrorCode.PRODUCT_NOT_FOUND,
            {"product_id": product_id},
        )

    result = await db.execute(
        select(StockTransaction).where(StockTransaction.product_id == product_id)
    )
    since = date.today() - timedelta(days=days)
    return build_stock_timeline(result.scalars().all(), since=since)
