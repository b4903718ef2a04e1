# stockroom/services/exports/import_service.py

import logging
from types import SimpleNamespace

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from stockroom.core.db import unit_of_work
from stockroom.core.exceptions import AppException
from stockroom.constants.activity_codes import ActivityCode
from stockroom.schemas.products.product_schemas import ProductCreate
from stockroom.schemas.exports.export_schemas import (
    ImportResult,
    ImportResults,
    ImportRowSuccess,
    ImportRowFailure,
)
from stockroom.services.exports import excel_service
from stockroom.services.ledger import ledger_service
from stockroom.services.products.product_service import (
    create_product,
    find_product_id_by_code,
)
from stockroom.utils.activity_helpers import emit_activity, actor_context

logger = logging.getLogger(__name__)


def _snapshot_actor(user) -> SimpleNamespace:
    # A failed row rolls the session back and expires ORM instances
    return SimpleNamespace(id=user.id, username=user.username, role=user.role)


def _validation_message(exc: ValidationError) -> str:
    first = exc.errors()[0]
    field = ".".join(str(p) for p in first.get("loc", ()))
    return f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid row")


async def _record_import(db: AsyncSession, actor, kind: str, success: int, failed: int):
    async with unit_of_work(db):
        await emit_activity(
            db=db,
            user_id=actor.id,
            username=actor.username,
            code=ActivityCode.IMPORT_SPREADSHEET,
            table_name="products" if kind == "products" else "transactions",
            kind=kind,
            success_count=success,
            failed_count=failed,
            **actor_context(actor),
        )


def _result(total: int, success: list, failed: list) -> ImportResult:
    return ImportResult(
        total=total,
        success_count=len(success),
        failed_count=len(failed),
        results=ImportResults(success=success, failed=failed),
    )


# =========================
# PRODUCTS
# =========================
async def import_products(db: AsyncSession, content: bytes, user) -> ImportResult:
    actor = _snapshot_actor(user)
    rows = excel_service.parse_product_rows(content)

    success: list[ImportRowSuccess] = []
    failed: list[ImportRowFailure] = []

    for row in rows:
        code = row["unique_code"]
        try:
            payload = ProductCreate(
                unique_code=code,
                name=row["name"],
                description=row["description"],
                unit=row["unit"],
                unit_price=row["unit_price"],
                min_stock=row["min_stock"],
            )
            product = await create_product(db, payload, actor)
        except ValidationError as exc:
            failed.append(ImportRowFailure(row=row["row"], code=code, error=_validation_message(exc)))
            continue
        except AppException as exc:
            failed.append(ImportRowFailure(row=row["row"], code=code, error=exc.detail))
            continue

        success.append(ImportRowSuccess(row=row["row"], code=product.internal_code, record_id=product.id))

    await _record_import(db, actor, "products", len(success), len(failed))
    logger.info(
        "Product spreadsheet imported",
        extra={"total": len(rows), "success": len(success), "failed": len(failed)},
    )
    return _result(len(rows), success, failed)


# =========================
# INBOUND / OUTBOUND
# =========================
async def _resolve_product(db: AsyncSession, row: dict) -> int | None:
    return await find_product_id_by_code(
        db,
        internal_code=row.get("internal_code"),
        unique_code=row.get("unique_code"),
    )


async def _import_movements(db: AsyncSession, rows: list[dict], user, kind: str) -> ImportResult:
    actor = _snapshot_actor(user)

    success: list[ImportRowSuccess] = []
    failed: list[ImportRowFailure] = []

    for row in rows:
        code = row.get("internal_code") or row.get("unique_code")
        product_id = await _resolve_product(db, row)
        if product_id is None:
            failed.append(ImportRowFailure(row=row["row"], code=code, error="Product not found"))
            continue

        try:
            if kind == "inbound":
                transaction = await ledger_service.process_inbound(
                    db,
                    product_id=product_id,
                    quantity=row["quantity"],
                    transaction_date=row["transaction_date"],
                    unit_price=row.get("unit_price"),
                    supplier=row.get("supplier"),
                    actor_id=actor.id,
                )
            else:
                transaction = await ledger_service.process_outbound(
                    db,
                    product_id=product_id,
                    quantity=row["quantity"],
                    transaction_date=row["transaction_date"],
                    reason=row.get("reason"),
                    actor_id=actor.id,
                )
        except AppException as exc:
            failed.append(ImportRowFailure(row=row["row"], code=code, error=exc.detail))
            continue

        success.append(ImportRowSuccess(row=row["row"], code=code, record_id=transaction.id))

    await _record_import(db, actor, kind, len(success), len(failed))
    logger.info(
        "Transaction spreadsheet imported",
        extra={"kind": kind, "total": len(rows), "success": len(success), "failed": len(failed)},
    )
    return _result(len(rows), success, failed)


async def import_inbound(db: AsyncSession, content: bytes, user) -> ImportResult:
    return await _import_movements(db, excel_service.parse_inbound_rows(content), user, "inbound")


async def import_outbound(db: AsyncSession, content: bytes, user) -> ImportResult:
    return await _import_movements(db, excel_service.parse_outbound_rows(content), user, "outbound")
