# stockroom/schemas/ledger/transaction_schemas.py

from pydantic import BaseModel, Field
from typing import Optional, List
from decimal import Decimal
from datetime import date, datetime

from stockroom.constants.transaction_type import TransactionType
from stockroom.utils.response import PageData


# =========================
# REQUESTS
# =========================
class InboundCreate(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)
    transaction_date: date
    unit_price: Optional[Decimal] = Field(default=None, ge=0)
    supplier: Optional[str] = Field(default=None, max_length=255)


class OutboundCreate(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)
    transaction_date: date
    reason: Optional[str] = Field(default=None, max_length=500)


# =========================
# RESPONSES
# =========================
class TransactionOut(BaseModel):
    id: int
    product_id: int
    type: TransactionType
    quantity: int
    unit_price: Optional[Decimal]
    total_amount: Optional[Decimal]
    supplier: Optional[str]
    reason: Optional[str]
    transaction_date: date
    created_at: datetime
    created_by_id: Optional[int] = None

    class Config:
        from_attributes = True


class TransactionDetailOut(TransactionOut):
    product_name: str
    product_internal_code: str
    product_unique_code: str
    product_unit: str


class TransactionListData(PageData[TransactionDetailOut]):
    pass


class StockMovementOut(TransactionOut):
    stock_after_transaction: int


class StockAdjustment(BaseModel):
    product_id: int
    internal_code: str
    previous_stock: int
    recomputed_stock: int


class RecomputeResult(BaseModel):
    examined: int
    corrected: int
    adjustments: List[StockAdjustment]
