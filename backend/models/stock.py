# backend/models/stock.py
import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, CheckConstraint, func
from sqlalchemy.orm import relationship
from database import Base

# Available/reserved quantities of a single product
class Stock(Base):
    __tablename__ = "stock"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), unique=True, nullable=False, index=True)

    quantity_available = Column(Integer, CheckConstraint("quantity_available >= 0"), nullable=False, default=0)
    quantity_reserved = Column(Integer, CheckConstraint("quantity_reserved >= 0"), nullable=False, default=0)
    minimum_level = Column(Integer, nullable=False, default=10)
    location = Column(String(100), nullable=True)
    last_updated = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    # Optimistic concurrency guard, bumped on every UPDATE
    version = Column(Integer, nullable=False, default=1)

    product = relationship("Product", back_populates="stock")
    movements = relationship("StockMovement", back_populates="stock", cascade="all, delete-orphan")

    __mapper_args__ = {"version_id_col": version}

    @property
    def total_quantity(self) -> int:
        return self.quantity_available + self.quantity_reserved

    @property
    def low_stock(self) -> bool:
        return self.quantity_available < self.minimum_level


# Movement classification
class MovementType(str, enum.Enum):
    IN = "IN"
    OUT = "OUT"
    RESERVE = "RESERVE"
    RELEASE = "RELEASE"
    CONSUME = "CONSUME"
    ADJUSTMENT = "ADJUSTMENT"


class StockMovement(Base):
    __tablename__ = "stock_movements"

    id = Column(Integer, primary_key=True, index=True)
    stock_id = Column(Integer, ForeignKey("stock.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Quantity involved in the movement
    qty = Column(Integer, nullable=False)
    type = Column(String(20), nullable=False)
    reason = Column(String, nullable=True)

    # Ledger state right after the movement
    available_after = Column(Integer, nullable=False)
    reserved_after = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    stock = relationship("Stock", back_populates="movements")
    user = relationship("User")
