# stockroom/services/ledger/ledger_activity_service.py

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stockroom.core.db import unit_of_work
from stockroom.constants.activity_codes import ActivityCode
from stockroom.constants.transaction_type import TransactionType
from stockroom.models.products.product_models import Product
from stockroom.models.ledger.transaction_models import StockTransaction
from stockroom.schemas.ledger.transaction_schemas import RecomputeResult
from stockroom.utils.activity_helpers import emit_activity, actor_context


async def record_movement(db: AsyncSession, transaction: StockTransaction, user, request=None):
    """Log a committed inbound or outbound movement."""
    actor = actor_context(user)
    actor_id = user.id

    product = (
        await db.execute(
            select(Product.name, Product.unit).where(Product.id == transaction.product_id)
        )
    ).one()

    code = (
        ActivityCode.INBOUND
        if transaction.type == TransactionType.INBOUND.value
        else ActivityCode.OUTBOUND
    )

    async with unit_of_work(db):
        await emit_activity(
            db=db,
            user_id=actor_id,
            username=actor["actor_name"],
            code=code,
            table_name="transactions",
            record_id=transaction.id,
            request=request,
            quantity=transaction.quantity,
            unit=product.unit,
            target_name=product.name,
            transaction_date=transaction.transaction_date.isoformat(),
            **actor,
        )


async def record_deletion(db: AsyncSession, transaction: StockTransaction, user, request=None):
    actor = actor_context(user)

    async with unit_of_work(db):
        await emit_activity(
            db=db,
            user_id=user.id,
            username=actor["actor_name"],
            code=ActivityCode.DELETE_TRANSACTION,
            table_name="transactions",
            record_id=transaction.id,
            request=request,
            transaction_type=transaction.type,
            target_id=transaction.id,
            quantity=transaction.quantity,
            product_id=transaction.product_id,
            **actor,
        )


async def record_recompute(db: AsyncSession, result: RecomputeResult, user, request=None):
    actor = actor_context(user)

    async with unit_of_work(db):
        await emit_activity(
            db=db,
            user_id=user.id,
            username=actor["actor_name"],
            code=ActivityCode.RECOMPUTE_STOCK,
            table_name="products",
            request=request,
            corrected=result.corrected,
            examined=result.examined,
            **actor,
        )
