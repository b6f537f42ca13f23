# backend/schemas/stock.py
from datetime import datetime
from typing import Optional

from schemas.common import ORMBase


# Administrative correction of a stock record, only the given fields change
class StockUpdate(ORMBase):
    quantity_available: Optional[int] = None
    quantity_reserved: Optional[int] = None
    minimum_level: Optional[int] = None
    location: Optional[str] = None


class StockOut(ORMBase):
    id: int
    product_id: int
    quantity_available: int
    quantity_reserved: int
    minimum_level: int
    location: Optional[str] = None
    total_quantity: int
    low_stock: bool
    last_updated: datetime


# Single ledger movement
class StockMovementOut(ORMBase):
    id: int
    stock_id: int
    user_id: Optional[int] = None
    qty: int
    type: str
    reason: Optional[str] = None
    available_after: int
    reserved_after: int
    created_at: Optional[datetime] = None
