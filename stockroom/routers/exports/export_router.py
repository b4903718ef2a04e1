# stockroom/routers/exports/export_router.py

import logging
import os
from datetime import date

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from stockroom.core.config import MAX_UPLOAD_BYTES
from stockroom.core.db import get_db
from stockroom.core.exceptions import AppException, InvalidInputError
from stockroom.constants.error_codes import ErrorCode
from stockroom.constants.transaction_type import TransactionType
from stockroom.schemas.exports.export_schemas import CustomExportRequest, ImportResult
from stockroom.services.exports import excel_service, import_service
from stockroom.services.inventory.inventory_service import get_current_inventory, get_low_stock_items
from stockroom.services.ledger.transaction_query_service import list_transactions
from stockroom.services.products.product_service import list_products
from stockroom.utils.check_roles import require_any_user
from stockroom.utils.response import APIResponse, success_response

router = APIRouter(prefix="/export", tags=["Spreadsheets"])
logger = logging.getLogger(__name__)

ALLOWED_UPLOAD_EXTENSIONS = {".xlsx"}


def _xlsx_response(content: bytes, kind: str) -> Response:
    filename = excel_service.export_filename(kind)
    return Response(
        content=content,
        media_type=excel_service.XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


async def _read_upload(file: UploadFile) -> bytes:
    if not file.filename:
        raise InvalidInputError("No file provided", ErrorCode.INVALID_FILE)

    ext = os.path.splitext(file.filename)[1].lower()
    if ext not in ALLOWED_UPLOAD_EXTENSIONS:
        raise InvalidInputError(
            f"Invalid file type '{ext}'. Allowed: {', '.join(sorted(ALLOWED_UPLOAD_EXTENSIONS))}",
            ErrorCode.INVALID_FILE,
        )

    content = await file.read(MAX_UPLOAD_BYTES + 1)
    if len(content) > MAX_UPLOAD_BYTES:
        raise AppException(
            413,
            f"File exceeds the {MAX_UPLOAD_BYTES // (1024 * 1024)}MB upload limit",
            ErrorCode.PAYLOAD_TOO_LARGE,
        )
    if not content:
        raise InvalidInputError("Uploaded file is empty", ErrorCode.INVALID_FILE)
    return content


# =========================
# EXPORTS
# =========================
@router.get("/products")
async def export_products_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_any_user),
    search: str | None = Query(None),
):
    data = await list_products(db, search=search, page_size=None, sort_by="internal_code", order="asc")
    return _xlsx_response(excel_service.export_products(data.items), "products")


@router.get("/inventory")
async def export_inventory_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_any_user),
):
    items = await get_current_inventory(db)
    return _xlsx_response(excel_service.export_inventory(items), "inventory")


@router.get("/transactions")
async def export_transactions_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_any_user),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    transaction_type: TransactionType | None = Query(None, alias="type"),
):
    data = await list_transactions(
        db,
        transaction_type=transaction_type,
        start_date=start_date,
        end_date=end_date,
        page_size=None,
    )
    return _xlsx_response(excel_service.export_transactions(data.items), "transactions")


@router.get("/transactions/inbound")
async def export_inbound_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_any_user),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
):
    data = await list_transactions(
        db,
        transaction_type=TransactionType.INBOUND,
        start_date=start_date,
        end_date=end_date,
        page_size=None,
    )
    return _xlsx_response(excel_service.export_inbound_transactions(data.items), "inbound")


@router.get("/transactions/outbound")
async def export_outbound_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_any_user),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
):
    data = await list_transactions(
        db,
        transaction_type=TransactionType.OUTBOUND,
        start_date=start_date,
        end_date=end_date,
        page_size=None,
    )
    return _xlsx_response(excel_service.export_outbound_transactions(data.items), "outbound")


@router.get("/low-stock")
async def export_low_stock_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_any_user),
):
    items = await get_low_stock_items(db)
    return _xlsx_response(excel_service.export_low_stock(items), "low_stock")


@router.post("/custom")
async def export_custom_api(
    payload: CustomExportRequest,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_any_user),
):
    logger.info("Custom export", extra=payload.model_dump(mode="json"))

    if payload.export_type == "products":
        data = await list_products(
            db,
            product_ids=payload.product_ids,
            low_stock_only=payload.include_low_stock_only,
            page_size=None,
            sort_by="internal_code",
            order="asc",
        )
        content = excel_service.export_products(data.items)

    elif payload.export_type == "transactions":
        data = await list_transactions(
            db,
            product_ids=payload.product_ids,
            transaction_type=payload.transaction_type,
            page_size=None,
        )
        content = excel_service.export_transactions(data.items)

    else:
        items = await get_current_inventory(
            db,
            product_ids=payload.product_ids,
            low_stock_only=payload.include_low_stock_only,
        )
        content = excel_service.export_inventory(items)

    return _xlsx_response(content, f"custom_{payload.export_type}")


# =========================
# TEMPLATES
# =========================
@router.get("/template/products")
async def product_template_api(user=Depends(require_any_user)):
    return _xlsx_response(excel_service.product_template(), "product_template")


@router.get("/template/inbound")
async def inbound_template_api(user=Depends(require_any_user)):
    return _xlsx_response(excel_service.inbound_template(), "inbound_template")


@router.get("/template/outbound")
async def outbound_template_api(user=Depends(require_any_user)):
    return _xlsx_response(excel_service.outbound_template(), "outbound_template")


# =========================
# IMPORTS
# =========================
@router.post("/upload/products", response_model=APIResponse[ImportResult])
async def upload_products_api(
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    user=Depends(require_any_user),
):
    content = await _read_upload(file)
    result = await import_service.import_products(db, content, user)
    return success_response("Product import finished", result)


@router.post("/upload/inbound", response_model=APIResponse[ImportResult])
async def upload_inbound_api(
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    user=Depends(require_any_user),
):
    content = await _read_upload(file)
    result = await import_service.import_inbound(db, content, user)
    return success_response("Inbound import finished", result)


@router.post("/upload/outbound", response_model=APIResponse[ImportResult])
async def upload_outbound_api(
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    user=Depends(require_any_user),
):
    content = await _read_upload(file)
    result = await import_service.import_outbound(db, content, user)
    return success_response("Outbound import finished", result)
