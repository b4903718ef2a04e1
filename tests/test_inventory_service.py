from datetime import date, timedelta
from decimal import Decimal

import pytest

from stockroom.core.exceptions import AppException, NotFoundError
from stockroom.constants.stock_status import StockStatus
from stockroom.services.inventory import inventory_service
from stockroom.services.ledger import ledger_service
from stockroom.services.ledger.transaction_query_service import get_stock_movements

TODAY = date.today()


@pytest.fixture
async def shelf(session, make_product):
    empty = await make_product(name="A Empty", min_stock=5)
    low = await make_product(name="B Low", min_stock=5)
    full = await make_product(name="C Full", min_stock=5)

    await ledger_service.process_inbound(
        session, product_id=low.id, quantity=3, transaction_date=TODAY, unit_price=Decimal("1.00")
    )
    await ledger_service.process_inbound(
        session, product_id=full.id, quantity=20, transaction_date=TODAY, unit_price=Decimal("1.50")
    )
    await ledger_service.process_inbound(
        session, product_id=full.id, quantity=10, transaction_date=TODAY, unit_price=Decimal("2.00")
    )
    await ledger_service.process_outbound(session, product_id=full.id, quantity=10, transaction_date=TODAY)
    return empty, low, full


async def test_current_inventory_status(session, shelf):
    empty, low, full = shelf

    items = {i.id: i for i in await inventory_service.get_current_inventory(session)}

    assert items[empty.id].stock_status == StockStatus.OUT_OF_STOCK
    assert items[low.id].stock_status == StockStatus.LOW
    assert items[low.id].is_low_stock
    assert items[full.id].stock_status == StockStatus.NORMAL
    assert items[full.id].total_inbound == 30
    assert items[full.id].total_outbound == 10
    assert items[full.id].last_outbound_date == TODAY
    assert items[empty.id].last_inbound_date is None


async def test_summary(session, shelf):
    summary = await inventory_service.get_inventory_summary(session)

    assert summary.total_products == 3
    assert summary.low_stock_count == 1
    assert summary.out_of_stock_count == 1
    assert summary.recent_transactions_count == 4
    # 3 x 1.00 + 20 x 2.00 (latest inbound price)
    assert summary.total_stock_value == Decimal("43.00")


async def test_low_stock_puts_empty_shelves_first(session, shelf):
    empty, low, _ = shelf

    items = await inventory_service.get_low_stock_items(session)

    assert [i.id for i in items] == [empty.id, low.id]
    assert [i.id for i in await inventory_service.get_out_of_stock_items(session)] == [empty.id]


async def test_turnover(session, shelf):
    empty, low, full = shelf
    await ledger_service.process_outbound(
        session, product_id=full.id, quantity=5, transaction_date=TODAY - timedelta(days=60)
    )

    items = await inventory_service.get_stock_turnover(session)

    assert items[0].product_id == full.id
    assert items[0].outbound_last_30_days == 10
    assert items[0].turnover_ratio == 0.67
    by_id = {t.product_id: t for t in items}
    assert by_id[empty.id].turnover_ratio == 0.0


async def test_turnover_unknown_product(session):
    with pytest.raises(NotFoundError):
        await inventory_service.get_stock_turnover(session, product_id=404)


async def test_movements_window(session, make_product):
    product = await make_product()
    await ledger_service.process_inbound(
        session, product_id=product.id, quantity=10, transaction_date=TODAY - timedelta(days=40)
    )
    await ledger_service.process_outbound(session, product_id=product.id, quantity=4, transaction_date=TODAY)

    movements = await get_stock_movements(session, product.id, days=30)

    assert len(movements) == 1
    assert movements[0].stock_after_transaction == 6

    with pytest.raises(AppException):
        await get_stock_movements(session, product.id, days=0)


async def test_product_status(session, shelf):
    _, low, _ = shelf

    status = await inventory_service.get_product_status(session, low.id)

    assert status.product.id == low.id
    assert status.stock_status == StockStatus.LOW
    assert len(status.recent_movements) == 1
    assert status.turnover.product_id == low.id
