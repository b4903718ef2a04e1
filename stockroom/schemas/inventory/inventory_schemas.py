# stockroom/schemas/inventory/inventory_schemas.py

from pydantic import BaseModel
from typing import Optional, List
from decimal import Decimal
from datetime import date, datetime

from stockroom.constants.stock_status import StockStatus
from stockroom.schemas.products.product_schemas import ProductOut
from stockroom.schemas.ledger.transaction_schemas import StockMovementOut


class InventoryItemOut(BaseModel):
    id: int
    internal_code: str
    unique_code: str
    name: str
    description: Optional[str]
    unit: str
    unit_price: Decimal
    min_stock: int
    current_stock: int

    stock_status: StockStatus
    is_low_stock: bool

    total_inbound: int
    total_outbound: int
    last_inbound_date: Optional[date]
    last_outbound_date: Optional[date]

    created_at: datetime
    updated_at: Optional[datetime]


class InventorySummary(BaseModel):
    total_products: int
    total_stock_value: Decimal
    low_stock_count: int
    out_of_stock_count: int
    recent_transactions_count: int


class TurnoverOut(BaseModel):
    product_id: int
    internal_code: str
    name: str
    current_stock: int
    outbound_last_30_days: int
    turnover_ratio: float


class ProductStatusOut(BaseModel):
    product: ProductOut
    stock_status: StockStatus
    recent_movements: List[StockMovementOut]
    turnover: TurnoverOut
