# backend/routes/task_products.py
from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from schemas.common import ApiResponse, ok
from schemas.task import TaskProductRequest, TaskProductOut
from services import task_product_service
from utils.tokenJWT import role_required, MANAGEMENT, STAFF

router = APIRouter(prefix="/task-products", tags=["Task products"])


def _many(rows) -> List[TaskProductOut]:
    return [TaskProductOut.model_validate(r) for r in rows]


@router.get("/task/{task_id}", response_model=ApiResponse[List[TaskProductOut]])
def get_products_by_task(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*STAFF)),
):
    return ok(_many(task_product_service.get_products_by_task_id(db, task_id)))


@router.get("/task/{task_id}/unused", response_model=ApiResponse[List[TaskProductOut]])
def get_unused_products_by_task(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*STAFF)),
):
    return ok(_many(task_product_service.get_unused_products_by_task(db, task_id)))


@router.get("/task/{task_id}/used", response_model=ApiResponse[List[TaskProductOut]])
def get_used_products_by_task(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*STAFF)),
):
    return ok(_many(task_product_service.get_used_products_by_task(db, task_id)))


@router.get("/product/{product_id}", response_model=ApiResponse[List[TaskProductOut]])
def get_tasks_by_product(
    product_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*MANAGEMENT)),
):
    return ok(_many(task_product_service.get_tasks_by_product_id(db, product_id)))


# Units of the product held by tasks that are still active
@router.get("/product/{product_id}/reserved", response_model=ApiResponse[int])
def get_total_reserved_quantity(
    product_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*MANAGEMENT)),
):
    return ok(task_product_service.calculate_total_reserved_quantity(db, product_id))


@router.get("/discrepancies", response_model=ApiResponse[List[TaskProductOut]])
def get_products_with_discrepancies(
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*MANAGEMENT)),
):
    return ok(_many(task_product_service.get_products_with_discrepancies(db)))


@router.post("/assign", response_model=ApiResponse[TaskProductOut], status_code=status.HTTP_201_CREATED)
def assign_product_to_task(
    payload: TaskProductRequest,
    task_id: int = Query(..., alias="taskId"),
    product_id: int = Query(..., alias="productId"),
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*MANAGEMENT)),
):
    task_product = task_product_service.assign_product_to_task(
        db, task_id, product_id, payload.quantity, payload.notes, actor_id=current_user.id
    )
    return ok(TaskProductOut.model_validate(task_product), "Product assigned to task")


@router.put("/{task_product_id}", response_model=ApiResponse[TaskProductOut])
def update_task_product(
    task_product_id: int,
    payload: TaskProductRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*MANAGEMENT)),
):
    task_product = task_product_service.update_task_product(
        db, task_product_id, payload.quantity, payload.notes, actor_id=current_user.id
    )
    return ok(TaskProductOut.model_validate(task_product), "Assignment updated")


@router.post("/{task_product_id}/use", response_model=ApiResponse[TaskProductOut])
def use_product(
    task_product_id: int,
    quantity_used: int = Query(..., alias="quantityUsed"),
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*STAFF)),
):
    task_product = task_product_service.use_product(db, task_product_id, quantity_used, actor_id=current_user.id)
    return ok(TaskProductOut.model_validate(task_product), "Usage recorded")


@router.delete("/{task_product_id}", response_model=ApiResponse[None])
def remove_product_from_task(
    task_product_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*MANAGEMENT)),
):
    task_product_service.remove_product_from_task(db, task_product_id, actor_id=current_user.id)
    return ok(None, "Product removed from task")
