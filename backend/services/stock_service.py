# backend/services/stock_service.py
"""
Stock Ledger - available/reserved quantities of a single stock record.

Two levels:
    - primitives (increase, decrease, reserve, release, consume) validate and
      mutate an already loaded, locked Stock row inside the caller's
      transaction; the assignment and task services compose them
    - *_stock functions are the public operations, each one is a single
      transaction that locks the row before the read-check-write sequence

No operation may leave a quantity negative. Checks run before mutation,
values are never clamped afterwards. Every mutation appends a StockMovement.
"""
import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from database import transaction
from models.product import Product
from models.stock import Stock, StockMovement, MovementType
from utils.exceptions import NotFoundError, InsufficientStockError, InvalidQuantityError

logger = logging.getLogger(__name__)

MUTABLE_FIELDS = ("quantity_available", "quantity_reserved", "minimum_level", "location")


def _check_positive(quantity: int, action: str) -> None:
    if quantity is None or quantity <= 0:
        raise InvalidQuantityError(f"Quantity to {action} must be positive")


def _record(db: Session, stock: Stock, movement_type: MovementType, qty: int,
            user_id: Optional[int], reason: Optional[str]) -> None:
    stock.last_updated = datetime.now()
    db.add(StockMovement(
        stock=stock,
        user_id=user_id,
        qty=qty,
        type=movement_type.value,
        reason=reason,
        available_after=stock.quantity_available,
        reserved_after=stock.quantity_reserved,
    ))


# ---- LOOKUPS ----

def get_stock(db: Session, stock_id: int, *, lock: bool = False) -> Stock:
    query = db.query(Stock).filter(Stock.id == stock_id)
    if lock:
        query = query.with_for_update()
    stock = query.first()
    if not stock:
        raise NotFoundError("Stock", stock_id)
    return stock


def get_stock_by_product_id(db: Session, product_id: int, *, lock: bool = False) -> Stock:
    logger.info("Fetching stock for product %s", product_id)
    query = db.query(Stock).filter(Stock.product_id == product_id)
    if lock:
        query = query.with_for_update()
    stock = query.first()
    if not stock:
        raise NotFoundError("Stock for product", product_id)
    return stock


def lock_stocks_for_products(db: Session, product_ids: Iterable[int]) -> Dict[int, Stock]:
    """Locks the stock rows of several products, always in ascending stock id order to avoid deadlocks."""
    ids = set(product_ids)
    if not ids:
        return {}
    rows = db.query(Stock).filter(Stock.product_id.in_(ids)).order_by(Stock.id).with_for_update().all()
    stocks = {s.product_id: s for s in rows}
    missing = ids - set(stocks)
    if missing:
        raise NotFoundError("Stock for product", min(missing))
    return stocks


# ---- PRIMITIVES ----

def increase(db: Session, stock: Stock, quantity: int, *, user_id=None, reason=None) -> Stock:
    _check_positive(quantity, "increase")
    stock.quantity_available += quantity
    _record(db, stock, MovementType.IN, quantity, user_id, reason)
    return stock


def decrease(db: Session, stock: Stock, quantity: int, *, user_id=None, reason=None) -> Stock:
    _check_positive(quantity, "decrease")
    if stock.quantity_available < quantity:
        raise InsufficientStockError(stock.quantity_available, quantity)
    stock.quantity_available -= quantity
    _record(db, stock, MovementType.OUT, -quantity, user_id, reason)
    return stock


def reserve(db: Session, stock: Stock, quantity: int, *, user_id=None, reason=None) -> Stock:
    _check_positive(quantity, "reserve")
    if stock.quantity_available < quantity:
        raise InsufficientStockError(
            stock.quantity_available, quantity,
            f"Insufficient stock to reserve. Available: {stock.quantity_available}, requested: {quantity}",
        )
    stock.quantity_available -= quantity
    stock.quantity_reserved += quantity
    _record(db, stock, MovementType.RESERVE, quantity, user_id, reason)
    return stock


def release(db: Session, stock: Stock, quantity: int, *, user_id=None, reason=None) -> Stock:
    _check_positive(quantity, "release")
    if stock.quantity_reserved < quantity:
        raise InvalidQuantityError(
            f"Not enough reserved stock to release. Reserved: {stock.quantity_reserved}, requested: {quantity}"
        )
    stock.quantity_reserved -= quantity
    stock.quantity_available += quantity
    _record(db, stock, MovementType.RELEASE, quantity, user_id, reason)
    return stock


def consume(db: Session, stock: Stock, quantity: int, *, user_id=None, reason=None) -> Stock:
    """Reserved units that were used leave the ledger, available is untouched."""
    _check_positive(quantity, "consume")
    if stock.quantity_reserved < quantity:
        raise InvalidQuantityError(
            f"Not enough reserved stock to consume. Reserved: {stock.quantity_reserved}, requested: {quantity}"
        )
    stock.quantity_reserved -= quantity
    _record(db, stock, MovementType.CONSUME, -quantity, user_id, reason)
    return stock


# ---- OPERATIONS ----

def increase_stock(db: Session, stock_id: int, quantity: int, user_id: Optional[int] = None,
                   reason: Optional[str] = None) -> Stock:
    logger.info("Increasing stock %s by %s units", stock_id, quantity)
    _check_positive(quantity, "increase")
    with transaction(db):
        stock = get_stock(db, stock_id, lock=True)
        increase(db, stock, quantity, user_id=user_id, reason=reason or "Delivery")
    logger.info("Stock %s increased, available=%s", stock_id, stock.quantity_available)
    return stock


def decrease_stock(db: Session, stock_id: int, quantity: int, user_id: Optional[int] = None,
                   reason: Optional[str] = None) -> Stock:
    logger.info("Decreasing stock %s by %s units", stock_id, quantity)
    _check_positive(quantity, "decrease")
    with transaction(db):
        stock = get_stock(db, stock_id, lock=True)
        decrease(db, stock, quantity, user_id=user_id, reason=reason or "Issue")
    logger.info("Stock %s decreased, available=%s", stock_id, stock.quantity_available)
    return stock


def reserve_stock(db: Session, stock_id: int, quantity: int, user_id: Optional[int] = None,
                  reason: Optional[str] = None) -> Stock:
    logger.info("Reserving %s units of stock %s", quantity, stock_id)
    _check_positive(quantity, "reserve")
    with transaction(db):
        stock = get_stock(db, stock_id, lock=True)
        reserve(db, stock, quantity, user_id=user_id, reason=reason)
    return stock


def release_reserved_stock(db: Session, stock_id: int, quantity: int, user_id: Optional[int] = None,
                           reason: Optional[str] = None) -> Stock:
    logger.info("Releasing %s reserved units of stock %s", quantity, stock_id)
    _check_positive(quantity, "release")
    with transaction(db):
        stock = get_stock(db, stock_id, lock=True)
        release(db, stock, quantity, user_id=user_id, reason=reason)
    return stock


def update_stock(db: Session, stock_id: int, changes: dict, user_id: Optional[int] = None) -> Stock:
    """
    Administrative overwrite of quantities, minimum level and location.

    Bypasses the reserve/release pairing: whoever calls it is responsible for
    keeping reservations consistent with the task assignments.
    """
    logger.info("Updating stock %s: %s", stock_id, changes)
    for field in ("quantity_available", "quantity_reserved", "minimum_level"):
        value = changes.get(field)
        if value is not None and value < 0:
            raise InvalidQuantityError(f"{field} cannot be negative")

    with transaction(db):
        stock = get_stock(db, stock_id, lock=True)
        old_available = stock.quantity_available
        for field in MUTABLE_FIELDS:
            if field in changes and (changes[field] is not None or field == "location"):
                setattr(stock, field, changes[field])
        _record(db, stock, MovementType.ADJUSTMENT, stock.quantity_available - old_available,
                user_id, "Manual correction")
    logger.warning("Stock %s overwritten manually, available=%s reserved=%s",
                   stock_id, stock.quantity_available, stock.quantity_reserved)
    return stock


# ---- QUERIES (read only) ----

def get_below_minimum_level(db: Session) -> List[Stock]:
    return (
        db.query(Stock)
        .filter(Stock.quantity_available < Stock.minimum_level)
        .order_by(Stock.quantity_available.asc(), Stock.id)
        .all()
    )


def get_critical_stocks(db: Session) -> List[Stock]:
    return (
        db.query(Stock)
        .filter(Stock.quantity_available <= Stock.minimum_level)
        .order_by(Stock.last_updated.desc(), Stock.id)
        .all()
    )


def get_out_of_stock_items(db: Session) -> List[Stock]:
    return (
        db.query(Stock)
        .join(Stock.product)
        .filter(Stock.quantity_available == 0)
        .order_by(Product.name)
        .all()
    )


def get_most_reserved_items(db: Session) -> List[Stock]:
    return (
        db.query(Stock)
        .filter(Stock.quantity_reserved > 0)
        .order_by(Stock.quantity_reserved.desc(), Stock.id)
        .all()
    )


def get_inventory_value(db: Session) -> float:
    value = (
        db.query(func.coalesce(func.sum(Stock.quantity_available * Product.unit_price), 0))
        .select_from(Stock)
        .join(Stock.product)
        .scalar()
    )
    return float(value or 0)


def get_movements(db: Session, stock_id: int) -> List[StockMovement]:
    get_stock(db, stock_id)
    return (
        db.query(StockMovement)
        .filter(StockMovement.stock_id == stock_id)
        .order_by(StockMovement.id.desc())
        .all()
    )
