# backend/models/product.py
from datetime import datetime

from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, CheckConstraint
from sqlalchemy.orm import relationship
from database import Base

# Model Product
# Catalogue entry of the warehouse. Owns exactly one Stock record, created
# together with the product and deleted with it.
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    sku = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(150), nullable=False, index=True)
    description = Column(String)
    category = Column(String(100))

    unit_price = Column(Float, CheckConstraint("unit_price >= 0"), nullable=False, default=0.0)
    active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    stock = relationship("Stock", back_populates="product", uselist=False, cascade="all, delete-orphan")
    # Non-owning: assignments belong to their task
    task_products = relationship("TaskProduct", viewonly=True)
