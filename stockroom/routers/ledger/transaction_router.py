# stockroom/routers/ledger/transaction_router.py

import logging
from datetime import date

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from stockroom.core.db import get_db
from stockroom.constants.transaction_type import TransactionType
from stockroom.schemas.ledger.transaction_schemas import (
    InboundCreate,
    OutboundCreate,
    TransactionOut,
    TransactionDetailOut,
    TransactionListData,
    RecomputeResult,
)
from stockroom.services.ledger import ledger_service
from stockroom.services.ledger.ledger_activity_service import (
    record_movement,
    record_deletion,
    record_recompute,
)
from stockroom.services.ledger.transaction_query_service import (
    list_transactions,
    get_transaction,
)
from stockroom.utils.check_roles import require_admin, require_any_user
from stockroom.utils.response import APIResponse, success_response

router = APIRouter(prefix="/transactions", tags=["Transactions"])
logger = logging.getLogger(__name__)


# =========================
# LIST / GET
# =========================
@router.get("/", response_model=APIResponse[TransactionListData])
async def list_transactions_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_any_user),
    product_id: int | None = Query(None),
    transaction_type: TransactionType | None = Query(None, alias="type"),
    start_date: date | None = Query(None, description="YYYY-MM-DD"),
    end_date: date | None = Query(None, description="YYYY-MM-DD"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
):
    data = await list_transactions(
        db,
        product_id=product_id,
        transaction_type=transaction_type,
        start_date=start_date,
        end_date=end_date,
        page=page,
        page_size=page_size,
    )
    return success_response("Transactions fetched successfully", data)


@router.get("/product/{product_id}", response_model=APIResponse[TransactionListData])
async def list_product_transactions_api(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_any_user),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
):
    data = await list_transactions(db, product_id=product_id, page=page, page_size=page_size)
    return success_response("Transactions fetched successfully", data)


@router.get("/type/{transaction_type}", response_model=APIResponse[TransactionListData])
async def list_transactions_by_type_api(
    transaction_type: TransactionType,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_any_user),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
):
    data = await list_transactions(
        db, transaction_type=transaction_type, page=page, page_size=page_size
    )
    return success_response("Transactions fetched successfully", data)


@router.get("/{transaction_id}", response_model=APIResponse[TransactionDetailOut])
async def get_transaction_api(
    transaction_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_any_user),
):
    transaction = await get_transaction(db, transaction_id)
    return success_response("Transaction fetched successfully", transaction)


# =========================
# MOVEMENTS
# =========================
@router.post("/inbound", response_model=APIResponse[TransactionOut], status_code=201)
async def inbound_api(
    payload: InboundCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_any_user),
):
    logger.info("Inbound requested", extra={"product_id": payload.product_id, "quantity": payload.quantity})
    transaction = await ledger_service.process_inbound(
        db,
        product_id=payload.product_id,
        quantity=payload.quantity,
        transaction_date=payload.transaction_date,
        unit_price=payload.unit_price,
        supplier=payload.supplier,
        actor_id=user.id,
    )
    await record_movement(db, transaction, user, request)
    return success_response("Inbound transaction recorded", TransactionOut.model_validate(transaction))


@router.post("/outbound", response_model=APIResponse[TransactionOut], status_code=201)
async def outbound_api(
    payload: OutboundCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_any_user),
):
    logger.info("Outbound requested", extra={"product_id": payload.product_id, "quantity": payload.quantity})
    transaction = await ledger_service.process_outbound(
        db,
        product_id=payload.product_id,
        quantity=payload.quantity,
        transaction_date=payload.transaction_date,
        reason=payload.reason,
        actor_id=user.id,
    )
    await record_movement(db, transaction, user, request)
    return success_response("Outbound transaction recorded", TransactionOut.model_validate(transaction))


@router.delete("/{transaction_id}", response_model=APIResponse[TransactionOut])
async def delete_transaction_api(
    transaction_id: int,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin=Depends(require_admin),
):
    logger.info("Delete transaction", extra={"transaction_id": transaction_id})
    transaction = await ledger_service.delete_transaction(db, transaction_id)
    await record_deletion(db, transaction, admin, request)
    return success_response("Transaction deleted successfully", TransactionOut.model_validate(transaction))


@router.post("/recompute", response_model=APIResponse[RecomputeResult])
async def recompute_stock_api(
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin=Depends(require_admin),
):
    result = await ledger_service.recompute_all_stock(db)
    await record_recompute(db, result, admin, request)
    return success_response("Stock recomputed from transaction history", result)
