# stockroom/services/exports/excel_service.py

import logging
import io
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable

import pandas as pd
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from stockroom.core.exceptions import InvalidInputError
from stockroom.constants.error_codes import ErrorCode
from stockroom.constants.stock_status import StockStatus
from stockroom.constants.transaction_type import TransactionType
from stockroom.schemas.products.product_schemas import ProductOut
from stockroom.schemas.inventory.inventory_schemas import InventoryItemOut
from stockroom.schemas.ledger.transaction_schemas import TransactionDetailOut

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

MIN_COLUMN_WIDTH = 10
MAX_COLUMN_WIDTH = 50

HEADER_FONT = Font(bold=True)
HEADER_FILL = PatternFill(start_color="E6E6FA", end_color="E6E6FA", fill_type="solid")
HEADER_ALIGNMENT = Alignment(horizontal="center")

# =====================================================
# COLUMN LAYOUTS
# =====================================================
PRODUCT_COLUMNS = [
    "Internal Code", "Unique Code", "Name", "Description", "Unit",
    "Unit Price", "Min Stock", "Current Stock", "Created", "Updated",
]

INVENTORY_COLUMNS = [
    "Internal Code", "Unique Code", "Name", "Unit", "Unit Price",
    "Min Stock", "Current Stock", "Total Inbound", "Total Outbound",
    "Last Inbound Date", "Last Outbound Date", "Stock Status", "Low Stock", "Created",
]

TRANSACTION_COLUMNS = [
    "Transaction Date", "Type", "Internal Code", "Unique Code", "Name",
    "Quantity", "Unit", "Unit Price", "Total Amount", "Supplier", "Reason", "Recorded At",
]

INBOUND_COLUMNS = [
    "Inbound Date", "Internal Code", "Unique Code", "Name", "Inbound Quantity",
    "Unit", "Unit Price", "Total Amount", "Supplier", "Recorded At",
]

OUTBOUND_COLUMNS = [
    "Outbound Date", "Internal Code", "Unique Code", "Name", "Outbound Quantity",
    "Unit", "Reason", "Recorded At",
]

LOW_STOCK_COLUMNS = [
    "Internal Code", "Unique Code", "Name", "Unit", "Min Stock",
    "Current Stock", "Shortage", "Stock Status",
]

STOCK_STATUS_LABELS = {
    StockStatus.NORMAL: "Normal",
    StockStatus.LOW: "Low",
    StockStatus.OUT_OF_STOCK: "Out of stock",
}

TYPE_LABELS = {
    TransactionType.INBOUND: "Inbound",
    TransactionType.OUTBOUND: "Outbound",
}


# =====================================================
# FORMATTING HELPERS
# =====================================================
def _fmt_date(value) -> str:
    if not value:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def _fmt_datetime(value) -> str:
    if not value:
        return ""
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    return str(value)


def _num(value):
    if value is None:
        return ""
    if isinstance(value, Decimal):
        return float(value)
    return value


def column_width(header: str, values: Iterable) -> int:
    longest = len(str(header))
    for value in values:
        if value is None:
            continue
        longest = max(longest, len(str(value)))
    return min(max(longest + 2, MIN_COLUMN_WIDTH), MAX_COLUMN_WIDTH)


def export_filename(kind: str, now: datetime | None = None) -> str:
    now = now or datetime.now()
    return f"{kind}_{now.strftime('%Y%m%d')}_{now.strftime('%H%M%S')}.xlsx"


def build_workbook(rows: list[dict], columns: list[str], sheet_name: str) -> bytes:
    df = pd.DataFrame(rows, columns=columns)

    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name=sheet_name)
        worksheet = writer.sheets[sheet_name]

        for idx, header in enumerate(columns, start=1):
            cell = worksheet.cell(row=1, column=idx)
            cell.font = HEADER_FONT
            cell.fill = HEADER_FILL
            cell.alignment = HEADER_ALIGNMENT

            worksheet.column_dimensions[get_column_letter(idx)].width = column_width(
                header, (r.get(header) for r in rows)
            )

    return output.getvalue()


# =====================================================
# EXPORTS
# =====================================================
def export_products(products: list[ProductOut]) -> bytes:
    rows = [
        {
            "Internal Code": p.internal_code,
            "Unique Code": p.unique_code,
            "Name": p.name,
            "Description": p.description or "",
            "Unit": p.unit,
            "Unit Price": _num(p.unit_price),
            "Min Stock": p.min_stock,
            "Current Stock": p.current_stock,
            "Created": _fmt_date(p.created_at),
            "Updated": _fmt_date(p.updated_at),
        }
        for p in products
    ]
    return build_workbook(rows, PRODUCT_COLUMNS, "Products")


def _inventory_row(item: InventoryItemOut) -> dict:
    return {
        "Internal Code": item.internal_code,
        "Unique Code": item.unique_code,
        "Name": item.name,
        "Unit": item.unit,
        "Unit Price": _num(item.unit_price),
        "Min Stock": item.min_stock,
        "Current Stock": item.current_stock,
        "Total Inbound": item.total_inbound,
        "Total Outbound": item.total_outbound,
        "Last Inbound Date": _fmt_date(item.last_inbound_date),
        "Last Outbound Date": _fmt_date(item.last_outbound_date),
        "Stock Status": STOCK_STATUS_LABELS[item.stock_status],
        "Low Stock": "Yes" if item.is_low_stock else "No",
        "Created": _fmt_date(item.created_at),
    }


def export_inventory(items: list[InventoryItemOut]) -> bytes:
    return build_workbook([_inventory_row(i) for i in items], INVENTORY_COLUMNS, "Inventory")


def export_transactions(transactions: list[TransactionDetailOut]) -> bytes:
    rows = [
        {
            "Transaction Date": _fmt_date(t.transaction_date),
            "Type": TYPE_LABELS[t.type],
            "Internal Code": t.product_internal_code,
            "Unique Code": t.product_unique_code,
            "Name": t.product_name,
            "Quantity": t.quantity,
            "Unit": t.product_unit,
            "Unit Price": _num(t.unit_price),
            "Total Amount": _num(t.total_amount),
            "Supplier": t.supplier or "",
            "Reason": t.reason or "",
            "Recorded At": _fmt_datetime(t.created_at),
        }
        for t in transactions
    ]
    return build_workbook(rows, TRANSACTION_COLUMNS, "Transactions")


def export_inbound_transactions(transactions: list[TransactionDetailOut]) -> bytes:
    rows = [
        {
            "Inbound Date": _fmt_date(t.transaction_date),
            "Internal Code": t.product_internal_code,
            "Unique Code": t.product_unique_code,
            "Name": t.product_name,
            "Inbound Quantity": t.quantity,
            "Unit": t.product_unit,
            "Unit Price": _num(t.unit_price),
            "Total Amount": _num(t.total_amount),
            "Supplier": t.supplier or "",
            "Recorded At": _fmt_datetime(t.created_at),
        }
        for t in transactions
        if t.type == TransactionType.INBOUND
    ]
    return build_workbook(rows, INBOUND_COLUMNS, "Inbound")


def export_outbound_transactions(transactions: list[TransactionDetailOut]) -> bytes:
    rows = [
        {
            "Outbound Date": _fmt_date(t.transaction_date),
            "Internal Code": t.product_internal_code,
            "Unique Code": t.product_unique_code,
            "Name": t.product_name,
            "Outbound Quantity": t.quantity,
            "Unit": t.product_unit,
            "Reason": t.reason or "",
            "Recorded At": _fmt_datetime(t.created_at),
        }
        for t in transactions
        if t.type == TransactionType.OUTBOUND
    ]
    return build_workbook(rows, OUTBOUND_COLUMNS, "Outbound")


def export_low_stock(items: list[InventoryItemOut]) -> bytes:
    rows = [
        {
            "Internal Code": i.internal_code,
            "Unique Code": i.unique_code,
            "Name": i.name,
            "Unit": i.unit,
            "Min Stock": i.min_stock,
            "Current Stock": i.current_stock,
            "Shortage": max(0, i.min_stock - i.current_stock),
            "Stock Status": STOCK_STATUS_LABELS[i.stock_status],
        }
        for i in items
        if i.is_low_stock
    ]
    return build_workbook(rows, LOW_STOCK_COLUMNS, "Low Stock")


# =====================================================
# TEMPLATES (inventory layout, so exports can be re-uploaded)
# =====================================================
def _template_row(**values) -> dict:
    row = {column: "" for column in INVENTORY_COLUMNS}
    row.update(values)
    return row


def product_template() -> bytes:
    row = _template_row(**{
        "Unique Code": "ABC-123",
        "Name": "Sample product",
        "Unit": "ea",
        "Unit Price": 10000,
        "Min Stock": 10,
        "Current Stock": 0,
    })
    return build_workbook([row], INVENTORY_COLUMNS, "Product Template")


def inbound_template() -> bytes:
    row = _template_row(**{
        "Unique Code": "ABC-123",
        "Unit Price": 10000,
        "Total Inbound": 100,
        "Last Inbound Date": "2025-01-15",
    })
    return build_workbook([row], INVENTORY_COLUMNS, "Inbound Template")


def outbound_template() -> bytes:
    row = _template_row(**{
        "Unique Code": "ABC-123",
        "Total Outbound": 50,
        "Last Outbound Date": "2025-01-15",
    })
    return build_workbook([row], INVENTORY_COLUMNS, "Outbound Template")


# =====================================================
# PARSING
# =====================================================
UNIQUE_CODE_KEYS = ("Unique Code", "unique_code")
INTERNAL_CODE_KEYS = ("Internal Code", "internal_code")
UNIT_PRICE_KEYS = ("Unit Price", "unit_price")

INBOUND_QUANTITY_KEYS = ("Total Inbound", "Inbound Quantity", "Quantity", "quantity")
INBOUND_DATE_KEYS = ("Last Inbound Date", "Inbound Date", "Transaction Date", "transaction_date")
OUTBOUND_QUANTITY_KEYS = ("Total Outbound", "Outbound Quantity", "Quantity", "quantity")
OUTBOUND_DATE_KEYS = ("Last Outbound Date", "Outbound Date", "Transaction Date", "transaction_date")


def read_rows(content: bytes) -> list[dict]:
    """First sheet as a list of dicts; blank cells become None."""
    try:
        df = pd.read_excel(io.BytesIO(content), sheet_name=0, dtype=object)
    except Exception as exc:
        logger.warning("Unreadable spreadsheet upload", extra={"error": str(exc)})
        raise InvalidInputError(
            "Could not read the spreadsheet; upload a valid .xlsx file",
            ErrorCode.INVALID_FILE,
        ) from exc

    df = df.astype(object).where(pd.notna(df), None)
    df.columns = [str(c).strip() for c in df.columns]
    return df.to_dict(orient="records")


def _text(value) -> str | None:
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


def _pick(row: dict, keys: Iterable[str]):
    for key in keys:
        value = row.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def _quantity(value):
    """Whole numbers become int; anything else is left for the ledger to reject."""
    if isinstance(value, bool):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return value


def _number(value, default=0):
    if value is None:
        return default
    try:
        return Decimal(str(value).strip())
    except ArithmeticError:
        return value


def _date(value):
    if isinstance(value, pd.Timestamp):
        return value.date()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return _text(value)


def parse_product_rows(content: bytes) -> list[dict]:
    parsed = []
    for index, row in enumerate(read_rows(content)):
        unique_code = _text(_pick(row, UNIQUE_CODE_KEYS))
        name = _text(_pick(row, ("Name", "name")))
        unit = _text(_pick(row, ("Unit", "unit")))
        if not (unique_code and name and unit):
            continue

        parsed.append({
            "row": index + 2,
            "unique_code": unique_code,
            "name": name,
            "description": _text(_pick(row, ("Description", "description"))),
            "unit": unit,
            "unit_price": _number(_pick(row, UNIT_PRICE_KEYS)),
            "min_stock": _quantity(_pick(row, ("Min Stock", "min_stock"))) or 0,
        })
    return parsed


def _parse_movement_rows(content: bytes, quantity_keys, date_keys) -> list[tuple[int, dict, dict]]:
    rows = []
    for index, row in enumerate(read_rows(content)):
        unique_code = _text(_pick(row, UNIQUE_CODE_KEYS))
        internal_code = _text(_pick(row, INTERNAL_CODE_KEYS))
        quantity = _pick(row, quantity_keys)
        transaction_date = _pick(row, date_keys)
        if not ((unique_code or internal_code) and quantity is not None and transaction_date is not None):
            continue

        rows.append((index + 2, {
            "internal_code": internal_code,
            "unique_code": unique_code,
            "quantity": _quantity(quantity),
            "transaction_date": _date(transaction_date),
        }, row))
    return rows


def parse_inbound_rows(content: bytes) -> list[dict]:
    parsed = []
    for row_number, values, raw in _parse_movement_rows(content, INBOUND_QUANTITY_KEYS, INBOUND_DATE_KEYS):
        unit_price = _pick(raw, UNIT_PRICE_KEYS)
        parsed.append({
            "row": row_number,
            **values,
            "unit_price": _number(unit_price, default=None),
            "supplier": _text(_pick(raw, ("Supplier", "supplier"))),
        })
    return parsed


def parse_outbound_rows(content: bytes) -> list[dict]:
    parsed = []
    for row_number, values, raw in _parse_movement_rows(content, OUTBOUND_QUANTITY_KEYS, OUTBOUND_DATE_KEYS):
        parsed.append({
            "row": row_number,
            **values,
            "reason": _text(_pick(raw, ("Reason", "reason"))),
        })
    return parsed
