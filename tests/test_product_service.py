from datetime import date

import pytest
from sqlalchemy import select, func

from stockroom.core.exceptions import AppException, NotFoundError
from stockroom.constants.error_codes import ErrorCode
from stockroom.models.ledger.transaction_models import StockTransaction
from stockroom.models.support.activity_models import UserActivity
from stockroom.schemas.products.product_schemas import ProductUpdate
from stockroom.services.ledger import ledger_service
from stockroom.services.products import product_service


async def test_internal_codes_are_sequential(make_product):
    first = await make_product()
    second = await make_product()

    assert first.internal_code == "P000001"
    assert second.internal_code == "P000002"
    assert first.current_stock == 0
    assert first.created_by_name == "admin"


async def test_internal_code_follows_highest_in_use(session, make_product, admin_user):
    first = await make_product()
    await make_product()
    await product_service.delete_product(session, first.id, admin_user)

    third = await make_product()

    assert third.internal_code == "P000003"


async def test_duplicate_unique_code_is_rejected(make_product):
    await make_product(unique_code="DUP-1")

    with pytest.raises(AppException) as exc:
        await make_product(unique_code="DUP-1")

    assert exc.value.status_code == 409
    assert exc.value.error_code == ErrorCode.PRODUCT_UNIQUE_CODE_EXISTS


async def test_create_logs_activity(session, make_product):
    product = await make_product(name="Oak Plank")

    activity = (
        await session.execute(select(UserActivity).where(UserActivity.code == "CREATE_PRODUCT"))
    ).scalar_one()

    assert activity.record_id == product.id
    assert "Oak Plank" in activity.message
    assert activity.message.startswith("Admin (admin)")


async def test_lookup_by_codes(session, make_product):
    product = await make_product(unique_code="ABC-123")

    by_internal = await product_service.get_product_by_code(session, internal_code=product.internal_code)
    by_unique = await product_service.get_product_by_code(session, unique_code="ABC-123")

    assert by_internal.id == by_unique.id == product.id

    with pytest.raises(NotFoundError):
        await product_service.get_product_by_code(session, unique_code="missing")


async def test_search_and_pagination(session, make_product):
    await make_product(name="Steel Bolt")
    await make_product(name="Steel Nut")
    await make_product(name="Pine Board")

    data = await product_service.list_products(session, search="steel", page_size=1)

    assert data.total == 2
    assert len(data.items) == 1
    assert (data.page, data.page_size, data.pages) == (1, 1, 2)

    second = await product_service.list_products(session, search="steel", page=2, page_size=1)
    assert second.page == 2
    assert second.items[0].id != data.items[0].id


async def test_update_with_stale_version_conflicts(session, make_product, admin_user):
    product = await make_product()

    updated = await product_service.update_product(
        session, product.id, ProductUpdate(name="Renamed", version=product.version), admin_user
    )
    assert updated.name == "Renamed"
    assert updated.version == product.version + 1

    with pytest.raises(AppException) as exc:
        await product_service.update_product(
            session, product.id, ProductUpdate(min_stock=1, version=product.version), admin_user
        )
    assert exc.value.error_code == ErrorCode.PRODUCT_VERSION_CONFLICT


async def test_update_without_changes_is_rejected(session, make_product, admin_user):
    product = await make_product(name="Same")

    with pytest.raises(AppException) as exc:
        await product_service.update_product(
            session, product.id, ProductUpdate(name="Same", version=product.version), admin_user
        )
    assert exc.value.status_code == 400


async def test_delete_cascades_to_transactions(session, make_product, admin_user):
    product = await make_product()
    await ledger_service.process_inbound(session, product_id=product.id, quantity=3, transaction_date=date.today())

    await product_service.delete_product(session, product.id, admin_user)

    remaining = await session.scalar(
        select(func.count(StockTransaction.id)).where(StockTransaction.product_id == product.id)
    )
    assert remaining == 0
    with pytest.raises(NotFoundError):
        await product_service.get_product(session, product.id)


async def test_low_stock_list(session, make_product):
    low = await make_product(min_stock=5)
    stocked = await make_product(min_stock=1)
    await ledger_service.process_inbound(session, product_id=stocked.id, quantity=10, transaction_date=date.today())

    items = await product_service.list_low_stock_products(session)

    assert [p.id for p in items] == [low.id]
