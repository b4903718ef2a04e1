# stockroom/services/ledger/ledger_service.py

import logging
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import select, update, case, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import noload
from sqlalchemy.orm.attributes import set_committed_value

from stockroom.core.db import unit_of_work
from stockroom.core.exceptions import (
    NotFoundError,
    InvalidInputError,
    InsufficientStockError,
    InvariantViolationError,
)
from stockroom.constants.error_codes import ErrorCode
from stockroom.constants.transaction_type import TransactionType
from stockroom.models.products.product_models import Product
from stockroom.models.ledger.transaction_models import StockTransaction
from stockroom.schemas.ledger.transaction_schemas import (
    RecomputeResult,
    StockAdjustment,
)
from stockroom.utils.decimal_utils import line_total

logger = logging.getLogger(__name__)


# =====================================================
# VALIDATION
# =====================================================
def _validate_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidInputError(
            "Quantity must be a positive integer",
            details={"quantity": str(quantity)},
        )
    return quantity


def _validate_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
    raise InvalidInputError(
        "Transaction date must be a valid YYYY-MM-DD date",
        details={"transaction_date": str(value)},
    )


def _validate_unit_price(unit_price) -> Decimal | None:
    if unit_price is None:
        return None
    try:
        price = Decimal(str(unit_price))
    except ArithmeticError:
        price = None
    if price is None or not price.is_finite() or price < 0:
        raise InvalidInputError(
            "Unit price must be a non-negative number",
            details={"unit_price": str(unit_price)},
        )
    return price


def signed_quantity():
    """SQL expression: +quantity for INBOUND rows, -quantity for OUTBOUND rows."""
    return case(
        (StockTransaction.type == TransactionType.INBOUND.value, StockTransaction.quantity),
        else_=-StockTransaction.quantity,
    )


# =====================================================
# STORE ACCESS (inside the caller's unit of work)
# =====================================================
async def _lock_product(db: AsyncSession, product_id: int) -> Product:
    result = await db.execute(
        select(Product)
        .options(noload("*"))
        .where(Product.id == product_id)
        .with_for_update()
    )
    product = result.scalar_one_or_none()
    if not product:
        raise NotFoundError(
            "Product not found",
            ErrorCode.PRODUCT_NOT_FOUND,
            {"product_id": product_id},
        )
    return product


async def _apply_stock_delta(db: AsyncSession, product_id: int, delta: int) -> int | None:
    """Shift current_stock by ``delta`` unless the result would be negative.

    Returns the stored stock after the change, or None when the guard
    rejected it. The check and the write are a single statement, so a
    concurrent writer can never slip between them.
    """
    result = await db.execute(
        update(Product)
        .where(
            Product.id == product_id,
            Product.current_stock + delta >= 0,
        )
        .values(current_stock=Product.current_stock + delta)
        .returning(Product.current_stock)
        .execution_options(synchronize_session=False)
    )
    return result.scalar_one_or_none()


# =====================================================
# INBOUND
# =====================================================
async def process_inbound(
    db: AsyncSession,
    *,
    product_id: int,
    quantity: int,
    transaction_date,
    unit_price=None,
    supplier: str | None = None,
    actor_id: int | None = None,
) -> StockTransaction:
    async with unit_of_work(db):
        quantity = _validate_quantity(quantity)
        transaction_date = _validate_date(transaction_date)
        unit_price = _validate_unit_price(unit_price)

        product = await _lock_product(db, product_id)

        transaction = StockTransaction(
            product_id=product.id,
            type=TransactionType.INBOUND.value,
            quantity=quantity,
            unit_price=unit_price,
            total_amount=line_total(unit_price, quantity),
            supplier=supplier or None,
            transaction_date=transaction_date,
            created_by_id=actor_id,
        )
        db.add(transaction)
        await db.flush()

        new_stock = await _apply_stock_delta(db, product.id, quantity)
        if new_stock is None:
            raise NotFoundError(
                "Product not found",
                ErrorCode.PRODUCT_NOT_FOUND,
                {"product_id": product_id},
            )
        set_committed_value(product, "current_stock", new_stock)

    logger.info(
        "Inbound recorded",
        extra={
            "transaction_id": transaction.id,
            "product_id": product_id,
            "quantity": quantity,
            "current_stock": new_stock,
        },
    )
    return transaction


# =====================================================
# OUTBOUND
# =====================================================
async def process_outbound(
    db: AsyncSession,
    *,
    product_id: int,
    quantity: int,
    transaction_date,
    reason: str | None = None,
    actor_id: int | None = None,
) -> StockTransaction:
    async with unit_of_work(db):
        quantity = _validate_quantity(quantity)
        transaction_date = _validate_date(transaction_date)

        product = await _lock_product(db, product_id)

        if quantity > product.current_stock:
            raise InsufficientStockError(product.current_stock, quantity, product.unit)

        transaction = StockTransaction(
            product_id=product.id,
            type=TransactionType.OUTBOUND.value,
            quantity=quantity,
            reason=reason or None,
            transaction_date=transaction_date,
            created_by_id=actor_id,
        )
        db.add(transaction)
        await db.flush()

        new_stock = await _apply_stock_delta(db, product.id, -quantity)
        if new_stock is None:
            # Another writer consumed the stock after our read
            current = await db.scalar(
                select(Product.current_stock).where(Product.id == product.id)
            )
            logger.warning(
                "Outbound lost stock race",
                extra={"product_id": product_id, "requested": quantity, "current_stock": current},
            )
            raise InsufficientStockError(current or 0, quantity, product.unit)
        set_committed_value(product, "current_stock", new_stock)

    logger.info(
        "Outbound recorded",
        extra={
            "transaction_id": transaction.id,
            "product_id": product_id,
            "quantity": quantity,
            "current_stock": new_stock,
        },
    )
    return transaction


# =====================================================
# DELETE (REVERSAL)
# =====================================================
async def delete_transaction(db: AsyncSession, transaction_id: int) -> StockTransaction:
    """Remove a ledger row and reverse its effect on stock.

    Returns the deleted row (detached, attributes still readable).
    """
    async with unit_of_work(db):
        result = await db.execute(
            select(StockTransaction)
            .options(noload("*"))
            .where(StockTransaction.id == transaction_id)
            .with_for_update()
        )
        transaction = result.scalar_one_or_none()
        if not transaction:
            raise NotFoundError(
                "Transaction not found",
                ErrorCode.TRANSACTION_NOT_FOUND,
                {"transaction_id": transaction_id},
            )

        product = await _lock_product(db, transaction.product_id)

        if transaction.type == TransactionType.INBOUND.value:
            delta = -transaction.quantity
        else:
            delta = transaction.quantity

        new_stock = product.current_stock + delta
        if new_stock < 0:
            raise InvariantViolationError(
                "Cannot delete transaction: stock would become negative "
                f"(current stock: {product.current_stock}{product.unit}, "
                f"after deletion: {new_stock}{product.unit})",
                {
                    "transaction_id": transaction.id,
                    "current_stock": product.current_stock,
                    "resulting_stock": new_stock,
                },
            )

        applied = await _apply_stock_delta(db, product.id, delta)
        if applied is None:
            raise InvariantViolationError(
                "Cannot delete transaction: stock would become negative",
                {"transaction_id": transaction.id},
            )
        set_committed_value(product, "current_stock", applied)

        await db.delete(transaction)

    logger.info(
        "Transaction deleted",
        extra={
            "transaction_id": transaction_id,
            "product_id": transaction.product_id,
            "current_stock": applied,
        },
    )
    return transaction


# =====================================================
# REPAIR: RECOMPUTE FROM HISTORY
# =====================================================
async def recompute_all_stock(db: AsyncSession) -> RecomputeResult:
    ledger_stock = (
        select(func.coalesce(func.sum(signed_quantity()), 0))
        .where(StockTransaction.product_id == Product.id)
        .scalar_subquery()
    )

    async with unit_of_work(db):
        rows = (
            await db.execute(
                select(
                    Product.id,
                    Product.internal_code,
                    Product.current_stock,
                    ledger_stock.label("ledger_stock"),
                ).order_by(Product.id)
            )
        ).all()

        await db.execute(
            update(Product)
            .values(current_stock=ledger_stock)
            .execution_options(synchronize_session=False)
        )

    adjustments = [
        StockAdjustment(
            product_id=r.id,
            internal_code=r.internal_code,
            previous_stock=r.current_stock,
            recomputed_stock=int(r.ledger_stock),
        )
        for r in rows
        if r.current_stock != int(r.ledger_stock)
    ]

    if adjustments:
        logger.warning(
            "Stock drift corrected",
            extra={"corrected": len(adjustments), "examined": len(rows)},
        )
    else:
        logger.info("Stock recompute found no drift", extra={"examined": len(rows)})

    return RecomputeResult(
        examined=len(rows),
        corrected=len(adjustments),
        adjustments=adjustments,
    )
