from sqlalchemy import (
    Column,
    Integer,
    String,
    Numeric,
    Date,
    DateTime,
    CheckConstraint,
    ForeignKey,
    Index,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from stockroom.core.db import Base


class StockTransaction(Base):
    """Ledger row. Immutable once written; removal goes through the ledger service."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(10), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=True)
    total_amount = Column(Numeric(14, 2), nullable=True)
    supplier = Column(String(255), nullable=True)
    reason = Column(String(500), nullable=True)
    transaction_date = Column(Date, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    product = relationship("Product", back_populates="transactions", lazy="noload")

    __table_args__ = (
        CheckConstraint("type IN ('INBOUND', 'OUTBOUND')", name="ck_transactions_type"),
        CheckConstraint("quantity > 0", name="ck_transactions_quantity_positive"),
        Index("ix_transactions_product_created", "product_id", "created_at"),
    )

    # created_at is read back on insert
    __mapper_args__ = {"eager_defaults": True}

    def __repr__(self):
        return f"<StockTransaction id={self.id} product_id={self.product_id} {self.type} qty={self.quantity}>"
