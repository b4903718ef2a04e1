import io
from datetime import datetime

import pandas as pd
import pytest
from openpyxl import load_workbook
from sqlalchemy import select

from stockroom.core.exceptions import InvalidInputError
from stockroom.models.products.product_models import Product
from stockroom.services.exports import excel_service, import_service
from stockroom.services.inventory.inventory_service import get_current_inventory


def workbook_bytes(rows: list[dict]) -> bytes:
    output = io.BytesIO()
    pd.DataFrame(rows).to_excel(output, index=False)
    return output.getvalue()


def test_column_width_is_clamped():
    assert excel_service.column_width("Id", [1, 2]) == 10
    assert excel_service.column_width("Name", ["x" * 80]) == 50
    assert excel_service.column_width("Description", ["a" * 20]) == 22


def test_export_filename():
    name = excel_service.export_filename("inventory", now=datetime(2025, 2, 3, 4, 5, 6))
    assert name == "inventory_20250203_040506.xlsx"


def test_header_row_is_bold():
    content = excel_service.build_workbook([{"Name": "Bolt"}], ["Name"], "Sheet")

    sheet = load_workbook(io.BytesIO(content)).active
    assert sheet.title == "Sheet"
    assert sheet.cell(row=1, column=1).value == "Name"
    assert sheet.cell(row=1, column=1).font.bold


def test_unreadable_upload():
    with pytest.raises(InvalidInputError):
        excel_service.read_rows(b"definitely not a spreadsheet")


def test_product_rows_skip_missing_required_cells():
    content = workbook_bytes([
        {"Unique Code": "A-1", "Name": "Alpha", "Unit": "pcs", "Unit Price": 10, "Min Stock": 3},
        {"Unique Code": "A-2", "Name": None, "Unit": "pcs"},
        {"Unique Code": "A-3", "Name": "Gamma", "Unit": "kg"},
    ])

    rows = excel_service.parse_product_rows(content)

    assert [r["unique_code"] for r in rows] == ["A-1", "A-3"]
    assert rows[0]["row"] == 2
    assert rows[0]["min_stock"] == 3
    assert rows[1]["row"] == 4


def test_inbound_rows_accept_template_layout():
    content = excel_service.inbound_template()

    rows = excel_service.parse_inbound_rows(content)

    assert len(rows) == 1
    assert rows[0]["unique_code"] == "ABC-123"
    assert rows[0]["quantity"] == 100
    assert rows[0]["transaction_date"] == "2025-01-15"


async def test_import_products_reports_per_row(session, admin_user, make_product):
    await make_product(unique_code="TAKEN")
    content = workbook_bytes([
        {"Unique Code": "NEW-1", "Name": "Fresh", "Unit": "pcs"},
        {"Unique Code": "TAKEN", "Name": "Clash", "Unit": "pcs"},
        {"Unique Code": "NEW-2", "Name": "Priced", "Unit": "pcs", "Unit Price": -4},
    ])

    result = await import_service.import_products(session, content, admin_user)

    assert result.total == 3
    assert result.success_count == 1
    assert result.failed_count == 2
    assert {f.code for f in result.results.failed} == {"TAKEN", "NEW-2"}


async def test_import_inbound_then_outbound(session, admin_user, make_product):
    product = await make_product(unique_code="IMP-1")
    inbound = workbook_bytes([
        {"Unique Code": "IMP-1", "Quantity": 12, "Transaction Date": "2025-01-10", "Unit Price": 2},
        {"Unique Code": "NOPE", "Quantity": 1, "Transaction Date": "2025-01-10"},
    ])
    outbound = workbook_bytes([
        {"Internal Code": product.internal_code, "Quantity": 5, "Transaction Date": "2025-01-11"},
        {"Internal Code": product.internal_code, "Quantity": 50, "Transaction Date": "2025-01-11"},
    ])

    in_result = await import_service.import_inbound(session, inbound, admin_user)
    out_result = await import_service.import_outbound(session, outbound, admin_user)

    assert in_result.success_count == 1
    assert in_result.results.failed[0].error == "Product not found"
    assert out_result.success_count == 1
    assert "Insufficient stock" in out_result.results.failed[0].error

    stock = await session.scalar(
        select(Product.current_stock)
        .where(Product.id == product.id)
        .execution_options(populate_existing=True)
    )
    assert stock == 7


async def test_inventory_export_round_trips_headers(session, make_product):
    await make_product(name="Widget")
    items = await get_current_inventory(session)

    content = excel_service.export_inventory(items)
    frame = pd.read_excel(io.BytesIO(content))

    assert list(frame.columns) == excel_service.INVENTORY_COLUMNS
    assert frame.loc[0, "Name"] == "Widget"
    assert frame.loc[0, "Stock Status"] == excel_service.STOCK_STATUS_LABELS[items[0].stock_status]
