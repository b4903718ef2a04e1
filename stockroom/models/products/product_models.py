from sqlalchemy import Column, Integer, String, Numeric, CheckConstraint
from sqlalchemy.orm import relationship
from stockroom.core.db import Base
from stockroom.models.base.mixins import TimestampMixin, AuditMixin


class Product(Base, TimestampMixin, AuditMixin):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    internal_code = Column(String(20), nullable=False, unique=True, index=True)
    unique_code = Column(String(100), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(String(500), nullable=True)
    unit = Column(String(20), nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False, default=0)
    min_stock = Column(Integer, nullable=False, default=0)
    # Maintained only by the ledger service
    current_stock = Column(Integer, nullable=False, default=0)
    version = Column(Integer, nullable=False, default=1)

    transactions = relationship(
        "StockTransaction",
        back_populates="product",
        lazy="noload",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("current_stock >= 0", name="ck_products_current_stock_non_negative"),
        CheckConstraint("min_stock >= 0", name="ck_products_min_stock_non_negative"),
        CheckConstraint("unit_price >= 0", name="ck_products_unit_price_non_negative"),
    )

    def __repr__(self):
        return f"<Product id={self.id} internal_code={self.internal_code} stock={self.current_stock}>"
