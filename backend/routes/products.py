# backend/routes/products.py
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from config import settings
from database import get_db, transaction
from models.product import Product
from models.stock import Stock
from models.users import User
from schemas.common import ApiResponse, ok
from schemas.product import ProductCreate, ProductOut
from services import stock_service
from utils.audit import write_log
from utils.tokenJWT import role_required, MANAGEMENT

router = APIRouter(prefix="/products", tags=["Products"])


def _norm_sku(sku: Optional[str]) -> Optional[str]:
    if sku is None:
        return None
    s = sku.strip().upper()
    return s if s else None


# Create a product together with its stock record
@router.post("", response_model=ApiResponse[ProductOut], status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*MANAGEMENT)),
):
    sku = _norm_sku(payload.sku)
    if not sku:
        raise HTTPException(status_code=400, detail="SKU is required")
    if db.query(Product).filter(Product.sku == sku).first():
        raise HTTPException(status_code=400, detail="Product with this SKU already exists")

    with transaction(db):
        product = Product(
            sku=sku,
            name=payload.name,
            description=payload.description,
            category=payload.category,
            unit_price=payload.unit_price,
            active=payload.active,
        )
        product.stock = Stock(
            quantity_available=0,
            quantity_reserved=0,
            minimum_level=payload.minimum_level if payload.minimum_level is not None else settings.DEFAULT_MINIMUM_LEVEL,
            location=payload.location,
        )
        db.add(product)
        if payload.initial_quantity:
            stock_service.increase(db, product.stock, payload.initial_quantity,
                                   user_id=current_user.id, reason="Initial stock")
        db.flush()
        write_log(db, user_id=current_user.id, action="PRODUCT_CREATE", resource="products", entity_id=product.id,
                  meta={"sku": product.sku})

    return ok(ProductOut.model_validate(product), "Product created")
