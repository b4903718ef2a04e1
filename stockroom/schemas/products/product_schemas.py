# stockroom/schemas/products/product_schemas.py

from pydantic import BaseModel, Field
from typing import Optional
from decimal import Decimal
from datetime import datetime

from stockroom.utils.response import PageData


class ProductCreate(BaseModel):
    unique_code: str = Field(min_length=1, max_length=100)
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=500)
    unit: str = Field(min_length=1, max_length=20)
    unit_price: Decimal = Field(default=Decimal("0"), ge=0)
    min_stock: int = Field(default=0, ge=0)


class ProductUpdate(BaseModel):
    # unique_code is immutable once assigned
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=500)
    unit: Optional[str] = Field(default=None, min_length=1, max_length=20)
    unit_price: Optional[Decimal] = Field(default=None, ge=0)
    min_stock: Optional[int] = Field(default=None, ge=0)

    version: int


class ProductOut(BaseModel):
    id: int
    internal_code: str
    unique_code: str
    name: str
    description: Optional[str]
    unit: str
    unit_price: Decimal
    min_stock: int
    current_stock: int
    version: int

    created_by: Optional[int]
    updated_by: Optional[int]
    created_by_name: Optional[str] = None
    updated_by_name: Optional[str] = None

    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class ProductListData(PageData[ProductOut]):
    pass
