# backend/services/task_product_service.py
"""
Task-Product assignment - binds a product to a task with a reserved quantity
and tracks how much of that reservation has been used.

Every write goes through the stock ledger primitives inside one transaction,
so the reservation on the Stock row and the TaskProduct row change together.
"""
import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from database import transaction
from models.product import Product
from models.task import Task, TaskProduct, TaskStatus, TERMINAL_STATUSES
from services import stock_service
from utils.audit import write_log
from utils.exceptions import (
    NotFoundError, InvalidTaskStateError, InvalidQuantityError, DuplicateAssignmentError,
)

logger = logging.getLogger(__name__)


def _get_task(db: Session, task_id: int) -> Task:
    task = db.query(Task).filter(Task.id == task_id).first()
    if not task:
        raise NotFoundError("Task", task_id)
    return task


def _get_product(db: Session, product_id: int) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise NotFoundError("Product", product_id)
    return product


def get_task_product(db: Session, task_product_id: int) -> TaskProduct:
    task_product = db.query(TaskProduct).filter(TaskProduct.id == task_product_id).first()
    if not task_product:
        raise NotFoundError("Task product assignment", task_product_id)
    return task_product


def assign_product_to_task(db: Session, task_id: int, product_id: int, quantity: int,
                           notes: Optional[str] = None, actor_id: Optional[int] = None) -> TaskProduct:
    """Reserves ``quantity`` units of the product and records the assignment."""
    logger.info("Assigning product %s to task %s (qty=%s)", product_id, task_id, quantity)

    with transaction(db):
        task = _get_task(db, task_id)
        product = _get_product(db, product_id)

        if task.status in TERMINAL_STATUSES:
            raise InvalidTaskStateError("Cannot assign products to a completed or cancelled task")

        if quantity is None or quantity < 1:
            raise InvalidQuantityError("Assigned quantity must be at least 1")

        existing = (
            db.query(TaskProduct)
            .filter(TaskProduct.task_id == task_id, TaskProduct.product_id == product_id)
            .first()
        )
        if existing:
            raise DuplicateAssignmentError("This product is already assigned to this task")

        stock = stock_service.get_stock_by_product_id(db, product.id, lock=True)
        stock_service.reserve(db, stock, quantity, user_id=actor_id, reason=f"Task #{task.id}")

        task_product = TaskProduct(task=task, product=product, quantity=quantity, quantity_used=0, notes=notes)
        db.add(task_product)
        db.flush()

        write_log(db, user_id=actor_id, action="TASK_PRODUCT_ASSIGN", resource="task_products", entity_id=task_product.id,
                  meta={"task_id": task.id, "product_id": product.id, "quantity": quantity})

    logger.info("Product %s assigned to task %s as assignment %s", product_id, task_id, task_product.id)
    return task_product


def update_task_product(db: Session, task_product_id: int, quantity: int,
                        notes: Optional[str] = None, actor_id: Optional[int] = None) -> TaskProduct:
    """Changes the requested quantity, reserving or releasing the difference."""
    logger.info("Updating assignment %s (qty=%s)", task_product_id, quantity)

    with transaction(db):
        task_product = get_task_product(db, task_product_id)
        task = task_product.task

        if task.status == TaskStatus.COMPLETED:
            raise InvalidTaskStateError("Cannot modify a product of a completed task")
        if task.status == TaskStatus.CANCELLED:
            raise InvalidTaskStateError("Cannot modify a product of a cancelled task")

        if quantity is None or quantity < 1:
            raise InvalidQuantityError("Assigned quantity must be at least 1")
        if quantity < task_product.quantity_used:
            raise InvalidQuantityError(
                f"Quantity cannot be lower than the quantity already used ({task_product.quantity_used})"
            )

        difference = quantity - task_product.quantity
        if difference:
            stock = stock_service.get_stock_by_product_id(db, task_product.product_id, lock=True)
            if difference > 0:
                stock_service.reserve(db, stock, difference, user_id=actor_id, reason=f"Task #{task.id}")
            else:
                stock_service.release(db, stock, -difference, user_id=actor_id, reason=f"Task #{task.id}")
            task_product.quantity = quantity

        task_product.notes = notes

        write_log(db, user_id=actor_id, action="TASK_PRODUCT_UPDATE", resource="task_products", entity_id=task_product.id,
                  meta={"quantity": quantity, "difference": difference})

    return task_product


def use_product(db: Session, task_product_id: int, quantity_used: int,
                actor_id: Optional[int] = None) -> TaskProduct:
    """Records how much of the assignment was used. Stock moves only when the task completes."""
    logger.info("Recording use of %s units for assignment %s", quantity_used, task_product_id)

    with transaction(db):
        task_product = get_task_product(db, task_product_id)

        if quantity_used is None or quantity_used < 0 or quantity_used > task_product.quantity:
            raise InvalidQuantityError(
                f"Used quantity must be between 0 and the assigned quantity ({task_product.quantity})"
            )

        task_product.quantity_used = quantity_used

        write_log(db, user_id=actor_id, action="TASK_PRODUCT_USE", resource="task_products", entity_id=task_product.id,
                  meta={"quantity_used": quantity_used})

    return task_product


def remove_product_from_task(db: Session, task_product_id: int, actor_id: Optional[int] = None) -> None:
    """Releases the outstanding reservation and deletes the assignment."""
    logger.info("Removing assignment %s", task_product_id)

    with transaction(db):
        task_product = get_task_product(db, task_product_id)
        task = task_product.task

        if task.status == TaskStatus.COMPLETED:
            raise InvalidTaskStateError("Cannot remove a product from a completed task")

        # A cancelled task already gave its outstanding units back
        to_release = task_product.outstanding if task.status != TaskStatus.CANCELLED else 0
        if to_release > 0:
            stock = stock_service.get_stock_by_product_id(db, task_product.product_id, lock=True)
            stock_service.release(db, stock, to_release, user_id=actor_id,
                                  reason=f"Removed from task #{task.id}")

        write_log(db, user_id=actor_id, action="TASK_PRODUCT_REMOVE", resource="task_products", entity_id=task_product.id,
                  meta={"task_id": task.id, "released": to_release})

        task.task_products.remove(task_product)
        db.delete(task_product)

    logger.info("Assignment %s removed, released %s units", task_product_id, to_release)


# ---- QUERIES ----

def get_products_by_task_id(db: Session, task_id: int) -> List[TaskProduct]:
    _get_task(db, task_id)
    return (
        db.query(TaskProduct)
        .filter(TaskProduct.task_id == task_id)
        .order_by(TaskProduct.created_at.desc(), TaskProduct.id.desc())
        .all()
    )


def get_tasks_by_product_id(db: Session, product_id: int) -> List[TaskProduct]:
    _get_product(db, product_id)
    return (
        db.query(TaskProduct)
        .join(TaskProduct.task)
        .filter(TaskProduct.product_id == product_id)
        .order_by(Task.due_date.asc(), TaskProduct.id)
        .all()
    )


def get_products_with_discrepancies(db: Session) -> List[TaskProduct]:
    return (
        db.query(TaskProduct)
        .filter(TaskProduct.quantity_used != TaskProduct.quantity)
        .order_by(TaskProduct.task_id, TaskProduct.id)
        .all()
    )


def get_unused_products_by_task(db: Session, task_id: int) -> List[TaskProduct]:
    _get_task(db, task_id)
    return (
        db.query(TaskProduct)
        .filter(TaskProduct.task_id == task_id, TaskProduct.quantity_used == 0)
        .order_by(TaskProduct.created_at, TaskProduct.id)
        .all()
    )


def get_used_products_by_task(db: Session, task_id: int) -> List[TaskProduct]:
    _get_task(db, task_id)
    return (
        db.query(TaskProduct)
        .filter(TaskProduct.task_id == task_id, TaskProduct.quantity_used > 0)
        .order_by(TaskProduct.created_at, TaskProduct.id)
        .all()
    )


def calculate_total_reserved_quantity(db: Session, product_id: int) -> int:
    """Sum of assigned quantities over tasks that are neither completed nor cancelled."""
    _get_product(db, product_id)
    total = (
        db.query(func.coalesce(func.sum(TaskProduct.quantity), 0))
        .join(TaskProduct.task)
        .filter(TaskProduct.product_id == product_id, Task.status.notin_(TERMINAL_STATUSES))
        .scalar()
    )
    return int(total or 0)
