import asyncio
import logging
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select, func, update
from sqlalchemy.exc import SQLAlchemyError

from stockroom.core.exceptions import (
    NotFoundError,
    InvalidInputError,
    InsufficientStockError,
    InvariantViolationError,
    StoreFailureError,
)
from stockroom.constants.error_codes import ErrorCode
from stockroom.models.products.product_models import Product
from stockroom.models.ledger.transaction_models import StockTransaction
from stockroom.services.ledger import ledger_service

TODAY = date(2025, 1, 15)


async def stock_of(session, product_id: int) -> int:
    return await session.scalar(
        select(Product.current_stock)
        .where(Product.id == product_id)
        .execution_options(populate_existing=True)
    )


async def ledger_sum(session, product_id: int) -> int:
    return await session.scalar(
        select(func.coalesce(func.sum(ledger_service.signed_quantity()), 0))
        .where(StockTransaction.product_id == product_id)
    )


async def transaction_count(session, product_id: int) -> int:
    return await session.scalar(
        select(func.count(StockTransaction.id)).where(StockTransaction.product_id == product_id)
    )


# =========================
# INBOUND
# =========================
async def test_inbound_adds_stock_and_records_transaction(session, make_product, admin_user):
    product = await make_product()

    transaction = await ledger_service.process_inbound(
        session,
        product_id=product.id,
        quantity=100,
        transaction_date=TODAY,
        unit_price=Decimal("2.50"),
        supplier="Acme",
        actor_id=admin_user.id,
    )

    assert transaction.id is not None
    assert transaction.type == "INBOUND"
    assert transaction.total_amount == Decimal("250.00")
    assert transaction.created_at is not None
    assert await stock_of(session, product.id) == 100


async def test_inbound_without_price_has_no_total(session, make_product):
    product = await make_product()

    transaction = await ledger_service.process_inbound(
        session, product_id=product.id, quantity=3, transaction_date="2025-01-15"
    )

    assert transaction.unit_price is None
    assert transaction.total_amount is None
    assert transaction.transaction_date == TODAY


async def test_inbound_is_logged_under_module_logger(session, make_product, caplog):
    product = await make_product()
    caplog.set_level(logging.INFO, logger=ledger_service.__name__)

    await ledger_service.process_inbound(
        session, product_id=product.id, quantity=2, transaction_date=TODAY
    )

    records = [r for r in caplog.records if r.name == ledger_service.__name__]
    assert [r.getMessage() for r in records] == ["Inbound recorded"]
    assert records[0].product_id == product.id


@pytest.mark.parametrize("quantity", [0, -5, 1.5, "10", True, None])
async def test_inbound_rejects_non_positive_integer_quantity(session, make_product, quantity):
    product = await make_product()

    with pytest.raises(InvalidInputError):
        await ledger_service.process_inbound(
            session, product_id=product.id, quantity=quantity, transaction_date=TODAY
        )

    assert await stock_of(session, product.id) == 0
    assert await transaction_count(session, product.id) == 0


async def test_inbound_rejects_bad_date(session, make_product):
    product = await make_product()

    with pytest.raises(InvalidInputError):
        await ledger_service.process_inbound(
            session, product_id=product.id, quantity=1, transaction_date="15/01/2025"
        )


async def test_inbound_unknown_product(session):
    with pytest.raises(NotFoundError) as exc:
        await ledger_service.process_inbound(
            session, product_id=9999, quantity=1, transaction_date=TODAY
        )
    assert exc.value.error_code == ErrorCode.PRODUCT_NOT_FOUND


# =========================
# OUTBOUND
# =========================
async def test_outbound_subtracts_stock(session, make_product):
    product = await make_product()
    await ledger_service.process_inbound(session, product_id=product.id, quantity=10, transaction_date=TODAY)

    transaction = await ledger_service.process_outbound(
        session, product_id=product.id, quantity=4, transaction_date=TODAY, reason="sale"
    )

    assert transaction.type == "OUTBOUND"
    assert transaction.reason == "sale"
    assert await stock_of(session, product.id) == 6


async def test_outbound_can_empty_the_shelf(session, make_product):
    product = await make_product()
    await ledger_service.process_inbound(session, product_id=product.id, quantity=7, transaction_date=TODAY)

    await ledger_service.process_outbound(session, product_id=product.id, quantity=7, transaction_date=TODAY)

    assert await stock_of(session, product.id) == 0


async def test_outbound_insufficient_stock_changes_nothing(session, make_product):
    product = await make_product(unit="kg")
    await ledger_service.process_inbound(session, product_id=product.id, quantity=5, transaction_date=TODAY)

    with pytest.raises(InsufficientStockError) as exc:
        await ledger_service.process_outbound(
            session, product_id=product.id, quantity=6, transaction_date=TODAY
        )

    err = exc.value
    assert err.status_code == 400
    assert err.error_code == ErrorCode.INSUFFICIENT_STOCK
    assert "5kg" in err.message and "6kg" in err.message
    assert err.details == {"current_stock": 5, "requested_quantity": 6, "unit": "kg"}

    assert await stock_of(session, product.id) == 5
    assert await transaction_count(session, product.id) == 1


async def test_outbound_on_empty_product(session, make_product):
    product = await make_product()

    with pytest.raises(InsufficientStockError):
        await ledger_service.process_outbound(
            session, product_id=product.id, quantity=1, transaction_date=TODAY
        )


# =========================
# DELETE
# =========================
async def test_delete_inbound_reverses_stock(session, make_product):
    product = await make_product()
    first = await ledger_service.process_inbound(session, product_id=product.id, quantity=10, transaction_date=TODAY)
    await ledger_service.process_inbound(session, product_id=product.id, quantity=5, transaction_date=TODAY)

    deleted = await ledger_service.delete_transaction(session, first.id)

    assert deleted.id == first.id
    assert await stock_of(session, product.id) == 5
    assert await transaction_count(session, product.id) == 1


async def test_delete_outbound_restores_stock(session, make_product):
    product = await make_product()
    await ledger_service.process_inbound(session, product_id=product.id, quantity=10, transaction_date=TODAY)
    outbound = await ledger_service.process_outbound(session, product_id=product.id, quantity=4, transaction_date=TODAY)

    await ledger_service.delete_transaction(session, outbound.id)

    assert await stock_of(session, product.id) == 10


async def test_delete_inbound_that_was_consumed_is_rejected(session, make_product):
    product = await make_product(unit="box")
    inbound = await ledger_service.process_inbound(session, product_id=product.id, quantity=10, transaction_date=TODAY)
    await ledger_service.process_outbound(session, product_id=product.id, quantity=8, transaction_date=TODAY)

    with pytest.raises(InvariantViolationError) as exc:
        await ledger_service.delete_transaction(session, inbound.id)

    assert "current stock: 2box" in exc.value.message
    assert "after deletion: -8box" in exc.value.message
    assert await stock_of(session, product.id) == 2
    assert await transaction_count(session, product.id) == 2


async def test_delete_unknown_transaction(session):
    with pytest.raises(NotFoundError) as exc:
        await ledger_service.delete_transaction(session, 12345)
    assert exc.value.error_code == ErrorCode.TRANSACTION_NOT_FOUND


# =========================
# INVARIANTS
# =========================
async def test_stock_always_equals_ledger_sum(session, make_product):
    product = await make_product()
    steps = [("in", 20), ("out", 5), ("in", 3), ("out", 18), ("in", 9)]

    for kind, qty in steps:
        if kind == "in":
            await ledger_service.process_inbound(session, product_id=product.id, quantity=qty, transaction_date=TODAY)
        else:
            await ledger_service.process_outbound(session, product_id=product.id, quantity=qty, transaction_date=TODAY)
        assert await stock_of(session, product.id) == await ledger_sum(session, product.id)

    assert await stock_of(session, product.id) == 9


async def test_failure_mid_write_rolls_back_everything(session, make_product, monkeypatch):
    product = await make_product()

    async def broken(*args, **kwargs):
        raise SQLAlchemyError("disk on fire")

    monkeypatch.setattr(ledger_service, "_apply_stock_delta", broken)

    with pytest.raises(StoreFailureError) as exc:
        await ledger_service.process_inbound(session, product_id=product.id, quantity=5, transaction_date=TODAY)

    assert exc.value.status_code == 500
    assert await transaction_count(session, product.id) == 0
    assert await stock_of(session, product.id) == 0


async def test_concurrent_outbounds_cannot_oversell(database, make_product):
    product = await make_product()
    async with database.session() as s:
        await ledger_service.process_inbound(s, product_id=product.id, quantity=10, transaction_date=TODAY)

    async def take_eight():
        async with database.session() as s:
            return await ledger_service.process_outbound(
                s, product_id=product.id, quantity=8, transaction_date=TODAY
            )

    results = await asyncio.gather(take_eight(), take_eight(), return_exceptions=True)

    succeeded = [r for r in results if isinstance(r, StockTransaction)]
    rejected = [r for r in results if isinstance(r, InsufficientStockError)]
    assert len(succeeded) == 1
    assert len(rejected) == 1

    async with database.session() as s:
        assert await stock_of(s, product.id) == 2
        assert await ledger_sum(s, product.id) == 2


# =========================
# RECOMPUTE
# =========================
async def test_recompute_repairs_drift(session, make_product):
    drifted = await make_product()
    healthy = await make_product()
    await ledger_service.process_inbound(session, product_id=drifted.id, quantity=12, transaction_date=TODAY)
    await ledger_service.process_inbound(session, product_id=healthy.id, quantity=4, transaction_date=TODAY)

    await session.execute(update(Product).where(Product.id == drifted.id).values(current_stock=99))
    await session.commit()

    result = await ledger_service.recompute_all_stock(session)

    assert result.examined == 2
    assert result.corrected == 1
    assert result.adjustments[0].product_id == drifted.id
    assert result.adjustments[0].previous_stock == 99
    assert result.adjustments[0].recomputed_stock == 12
    assert await stock_of(session, drifted.id) == 12
    assert await stock_of(session, healthy.id) == 4


async def test_recompute_is_idempotent(session, make_product):
    product = await make_product()
    await ledger_service.process_inbound(session, product_id=product.id, quantity=6, transaction_date=TODAY)

    first = await ledger_service.recompute_all_stock(session)
    second = await ledger_service.recompute_all_stock(session)

    assert first.corrected == 0
    assert second.corrected == 0
    assert await stock_of(session, product.id) == 6
