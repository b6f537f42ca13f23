# backend/schemas/product.py
from datetime import datetime
from typing import Optional

from pydantic import Field

from schemas.common import ORMBase
from schemas.stock import StockOut


# Schema for creating a product together with its stock record
class ProductCreate(ORMBase):
    sku: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = None
    category: Optional[str] = None
    unit_price: float = Field(0.0, ge=0)
    active: bool = True
    # Initial stock
    initial_quantity: int = Field(0, ge=0)
    minimum_level: Optional[int] = Field(None, ge=0)
    location: Optional[str] = None


# Full product representation including its stock
class ProductOut(ORMBase):
    id: int
    sku: str
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    unit_price: float
    active: bool
    created_at: datetime
    stock: Optional[StockOut] = None
