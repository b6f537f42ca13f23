# backend/routes/stock.py
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from schemas.common import ApiResponse, ok
from schemas.stock import StockOut, StockUpdate, StockMovementOut
from services import stock_service
from utils.tokenJWT import role_required, MANAGEMENT

router = APIRouter(tags=["Stock"])


def _many(stocks) -> List[StockOut]:
    return [StockOut.model_validate(s) for s in stocks]


@router.get("/product/{product_id}", response_model=ApiResponse[StockOut])
def get_stock_by_product(
    product_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*MANAGEMENT)),
):
    return ok(StockOut.model_validate(stock_service.get_stock_by_product_id(db, product_id)))


# Stocks below their minimum level
@router.get("/low-stock", response_model=ApiResponse[List[StockOut]])
def get_below_minimum_level(
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*MANAGEMENT)),
):
    return ok(_many(stock_service.get_below_minimum_level(db)))


@router.get("/out-of-stock", response_model=ApiResponse[List[StockOut]])
def get_out_of_stock_items(
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*MANAGEMENT)),
):
    return ok(_many(stock_service.get_out_of_stock_items(db)))


# Stocks at or below their minimum level, need replenishment
@router.get("/critical", response_model=ApiResponse[List[StockOut]])
def get_critical_stocks(
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*MANAGEMENT)),
):
    return ok(_many(stock_service.get_critical_stocks(db)))


@router.get("/most-reserved", response_model=ApiResponse[List[StockOut]])
def get_most_reserved_items(
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*MANAGEMENT)),
):
    return ok(_many(stock_service.get_most_reserved_items(db)))


# Total value of available units
@router.get("/value", response_model=ApiResponse[float])
def get_inventory_value(
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*MANAGEMENT)),
):
    return ok(stock_service.get_inventory_value(db))


@router.put("/{stock_id}", response_model=ApiResponse[StockOut])
def update_stock(
    stock_id: int,
    payload: StockUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*MANAGEMENT)),
):
    stock = stock_service.update_stock(db, stock_id, payload.model_dump(exclude_unset=True), user_id=current_user.id)
    return ok(StockOut.model_validate(stock), "Stock updated")


@router.post("/{stock_id}/increase", response_model=ApiResponse[StockOut])
def increase_stock(
    stock_id: int,
    quantity: int = Query(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*MANAGEMENT)),
):
    stock = stock_service.increase_stock(db, stock_id, quantity, user_id=current_user.id)
    return ok(StockOut.model_validate(stock), "Stock increased")


@router.post("/{stock_id}/decrease", response_model=ApiResponse[StockOut])
def decrease_stock(
    stock_id: int,
    quantity: int = Query(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*MANAGEMENT)),
):
    stock = stock_service.decrease_stock(db, stock_id, quantity, user_id=current_user.id)
    return ok(StockOut.model_validate(stock), "Stock decreased")


# Ledger history of a stock record, newest first
@router.get("/{stock_id}/movements", response_model=ApiResponse[List[StockMovementOut]])
def list_movements(
    stock_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*MANAGEMENT)),
):
    movements = stock_service.get_movements(db, stock_id)
    return ok([StockMovementOut.model_validate(m) for m in movements])
