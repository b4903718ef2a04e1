from pydantic import BaseModel
from typing import Optional, List, Literal

from stockroom.constants.transaction_type import TransactionType


class CustomExportRequest(BaseModel):
    export_type: Literal["products", "transactions", "inventory"]
    product_ids: Optional[List[int]] = None
    transaction_type: Optional[TransactionType] = None
    include_low_stock_only: bool = False


class ImportRowSuccess(BaseModel):
    row: int
    code: str
    record_id: int


class ImportRowFailure(BaseModel):
    row: int
    code: Optional[str]
    error: str


class ImportResults(BaseModel):
    success: List[ImportRowSuccess]
    failed: List[ImportRowFailure]


class ImportResult(BaseModel):
    total: int
    success_count: int
    failed_count: int
    results: ImportResults
