# backend/routes/tasks.py
from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from database import get_db
from models.users import User, Role
from schemas.common import ApiResponse, ok
from schemas.task import TaskCreate, TaskUpdate, TaskOut
from services import task_service
from utils.tokenJWT import role_required, MANAGEMENT, STAFF

router = APIRouter(prefix="/tasks", tags=["Tasks"])


def _many(tasks) -> List[TaskOut]:
    return [TaskOut.model_validate(t) for t in tasks]


# ---- QUERIES (static paths first, /{task_id} last) ----

@router.get("/user/{user_id}", response_model=ApiResponse[List[TaskOut]])
def get_tasks_by_assigned_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*MANAGEMENT)),
):
    return ok(_many(task_service.get_tasks_by_assigned_user(db, user_id)))


@router.get("/created-by/{user_id}", response_model=ApiResponse[List[TaskOut]])
def get_tasks_created_by_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*MANAGEMENT)),
):
    return ok(_many(task_service.get_tasks_created_by_user(db, user_id)))


@router.get("/unassigned", response_model=ApiResponse[List[TaskOut]])
def get_unassigned_tasks(
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*MANAGEMENT)),
):
    return ok(_many(task_service.get_unassigned_tasks(db)))


@router.get("/in-progress", response_model=ApiResponse[List[TaskOut]])
def get_tasks_in_progress(
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*MANAGEMENT)),
):
    return ok(_many(task_service.get_tasks_in_progress(db)))


@router.get("/overdue", response_model=ApiResponse[List[TaskOut]])
def get_overdue_tasks(
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*MANAGEMENT)),
):
    return ok(_many(task_service.get_overdue_tasks(db)))


@router.get("/high-priority", response_model=ApiResponse[List[TaskOut]])
def get_high_priority_active_tasks(
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*MANAGEMENT)),
):
    return ok(_many(task_service.get_high_priority_active_tasks(db)))


@router.get("/search", response_model=ApiResponse[List[TaskOut]])
def search_tasks(
    q: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*MANAGEMENT)),
):
    return ok(_many(task_service.search_tasks(db, q)))


@router.get("/{task_id}", response_model=ApiResponse[TaskOut])
def get_task(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*STAFF)),
):
    return ok(TaskOut.model_validate(task_service.get_task(db, task_id)))


# ---- LIFECYCLE ----

# The creator is always the authenticated user
@router.post("", response_model=ApiResponse[TaskOut], status_code=status.HTTP_201_CREATED)
def create_task(
    payload: TaskCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*MANAGEMENT)),
):
    task = task_service.create_task(db, payload, created_by_user_id=current_user.id)
    return ok(TaskOut.model_validate(task), "Task created")


@router.put("/{task_id}", response_model=ApiResponse[TaskOut])
def update_task(
    task_id: int,
    payload: TaskUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*MANAGEMENT)),
):
    task = task_service.update_task(db, task_id, payload, actor_id=current_user.id)
    return ok(TaskOut.model_validate(task), "Task updated")


@router.post("/{task_id}/start", response_model=ApiResponse[TaskOut])
def start_task(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*STAFF)),
):
    task = task_service.start_task(db, task_id, actor_id=current_user.id)
    return ok(TaskOut.model_validate(task), "Task started")


@router.post("/{task_id}/complete", response_model=ApiResponse[TaskOut])
def complete_task(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*STAFF)),
):
    task = task_service.complete_task(db, task_id, actor_id=current_user.id)
    return ok(TaskOut.model_validate(task), "Task completed")


@router.post("/{task_id}/cancel", response_model=ApiResponse[TaskOut])
def cancel_task(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*MANAGEMENT)),
):
    task = task_service.cancel_task(db, task_id, actor_id=current_user.id)
    return ok(TaskOut.model_validate(task), "Task cancelled")


@router.delete("/{task_id}", response_model=ApiResponse[None])
def delete_task(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(Role.ADMIN)),
):
    task_service.delete_task(db, task_id, actor_id=current_user.id)
    return ok(None, "Task deleted")
