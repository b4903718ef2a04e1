# stockroom/constants/stock_status.py

from enum import Enum


class StockStatus(str, Enum):
    NORMAL = "NORMAL"
    LOW = "LOW"
    OUT_OF_STOCK = "OUT_OF_STOCK"


def classify_stock(current_stock: int, min_stock: int) -> StockStatus:
    if current_stock <= 0:
        return StockStatus.OUT_OF_STOCK
    if current_stock <= min_stock:
        return StockStatus.LOW
    return StockStatus.NORMAL
