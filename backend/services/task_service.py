# backend/services/task_service.py
"""
Task lifecycle.

State machine:
    PENDING -> IN_PROGRESS -> COMPLETED
    PENDING / IN_PROGRESS -> CANCELLED
COMPLETED and CANCELLED are terminal.

Completing a task consumes the used units from the reserved pool, cancelling
gives the outstanding (reserved but unused) units back to available. A worker
never holds more than MAX_ACTIVE_TASKS_PER_WORKER non-terminal tasks.
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import case, func, or_
from sqlalchemy.orm import Session

from config import settings
from database import transaction
from models.task import Task, TaskStatus, TaskPriority, TERMINAL_STATUSES
from models.users import User
from schemas.task import TaskCreate, TaskUpdate
from services import stock_service
from utils.audit import write_log
from utils.exceptions import (
    NotFoundError, InvalidTaskStateError, IncompleteProductsError, MaxActiveTasksExceededError,
)
from utils.labels import TASK_PRIORITY_LEVELS

logger = logging.getLogger(__name__)


def _priority_rank():
    return case(TASK_PRIORITY_LEVELS, value=Task.priority, else_=0)


def _get_user(db: Session, user_id: int, resource: str = "User", lock: bool = False) -> User:
    query = db.query(User).filter(User.id == user_id)
    if lock:
        query = query.with_for_update()
    user = query.first()
    if not user:
        raise NotFoundError(resource, user_id)
    return user


def get_task(db: Session, task_id: int) -> Task:
    task = db.query(Task).filter(Task.id == task_id).first()
    if not task:
        raise NotFoundError("Task", task_id)
    return task


def count_active_tasks(db: Session, user_id: int) -> int:
    return (
        db.query(func.count(Task.id))
        .filter(Task.assigned_user_id == user_id, Task.status.notin_(TERMINAL_STATUSES))
        .scalar()
    )


def validate_max_active_tasks(db: Session, user: User) -> None:
    limit = settings.MAX_ACTIVE_TASKS_PER_WORKER
    if count_active_tasks(db, user.id) >= limit:
        raise MaxActiveTasksExceededError(
            f"User {user.id} already has {limit} active tasks. No more tasks can be assigned."
        )


def _release_outstanding(db: Session, task: Task, actor_id: Optional[int], reason: str) -> int:
    """Gives back every reserved-but-unused unit of the task. Returns the released total."""
    pending = [tp for tp in task.task_products if tp.outstanding > 0]
    stocks = stock_service.lock_stocks_for_products(db, [tp.product_id for tp in pending])
    released = 0
    for tp in pending:
        stock_service.release(db, stocks[tp.product_id], tp.outstanding, user_id=actor_id, reason=reason)
        released += tp.outstanding
    return released


# ---- LIFECYCLE ----

def create_task(db: Session, payload: TaskCreate, created_by_user_id: int) -> Task:
    logger.info("Creating task '%s' for creator %s", payload.title, created_by_user_id)

    with transaction(db):
        creator = _get_user(db, created_by_user_id, "Creator user")

        assignee = None
        if payload.assigned_user_id is not None:
            assignee = _get_user(db, payload.assigned_user_id, "Assigned user", lock=True)
            validate_max_active_tasks(db, assignee)

        task = Task(
            title=payload.title,
            description=payload.description,
            notes=payload.notes,
            priority=payload.priority or TaskPriority.MEDIUM,
            due_date=payload.due_date,
            status=TaskStatus.PENDING,
            completed=False,
            assigned_user=assignee,
            created_by_user=creator,
        )
        db.add(task)
        db.flush()

        write_log(db, user_id=creator.id, action="TASK_CREATE", resource="tasks", entity_id=task.id,
                  meta={"assigned_user_id": payload.assigned_user_id})

    logger.info("Task %s created", task.id)
    return task


def update_task(db: Session, task_id: int, payload: TaskUpdate, actor_id: Optional[int] = None) -> Task:
    logger.info("Updating task %s", task_id)
    changes = payload.model_dump(exclude_unset=True)

    with transaction(db):
        task = get_task(db, task_id)

        new_assignee_id = changes.pop("assigned_user_id", None)
        if new_assignee_id is not None and new_assignee_id != task.assigned_user_id:
            assignee = _get_user(db, new_assignee_id, "Assigned user", lock=True)
            validate_max_active_tasks(db, assignee)
            task.assigned_user = assignee

        for field in ("title", "priority"):
            if changes.get(field) is not None:
                setattr(task, field, changes[field])
        for field in ("description", "due_date", "notes"):
            if field in changes:
                setattr(task, field, changes[field])

        write_log(db, user_id=actor_id, action="TASK_UPDATE", resource="tasks", entity_id=task.id,
                  meta={"assigned_user_id": task.assigned_user_id})

    return task


def start_task(db: Session, task_id: int, actor_id: Optional[int] = None) -> Task:
    logger.info("Starting task %s", task_id)

    with transaction(db):
        task = get_task(db, task_id)
        if task.status != TaskStatus.PENDING:
            raise InvalidTaskStateError("Only PENDING tasks can be started")

        task.status = TaskStatus.IN_PROGRESS
        task.start_date = datetime.now()

        write_log(db, user_id=actor_id, action="TASK_START", resource="tasks", entity_id=task.id)

    return task


def complete_task(db: Session, task_id: int, actor_id: Optional[int] = None) -> Task:
    logger.info("Completing task %s", task_id)

    with transaction(db):
        task = get_task(db, task_id)
        if task.status != TaskStatus.IN_PROGRESS:
            raise InvalidTaskStateError("Only IN_PROGRESS tasks can be completed")

        incomplete = [tp for tp in task.task_products if tp.quantity_used != tp.quantity]
        if incomplete:
            raise IncompleteProductsError(
                "The task cannot be completed. All assigned products must be fully used."
            )

        # Used units leave the reserved pool
        stocks = stock_service.lock_stocks_for_products(db, [tp.product_id for tp in task.task_products])
        for tp in task.task_products:
            if tp.quantity_used > 0:
                stock_service.consume(db, stocks[tp.product_id], tp.quantity_used,
                                      user_id=actor_id, reason=f"Task #{task.id} completed")

        task.status = TaskStatus.COMPLETED
        task.completed = True
        task.end_date = datetime.now()

        write_log(db, user_id=actor_id, action="TASK_COMPLETE", resource="tasks", entity_id=task.id)

    logger.info("Task %s completed", task_id)
    return task


def cancel_task(db: Session, task_id: int, actor_id: Optional[int] = None) -> Task:
    logger.info("Cancelling task %s", task_id)

    with transaction(db):
        task = get_task(db, task_id)
        if task.status == TaskStatus.COMPLETED:
            raise InvalidTaskStateError("A completed task cannot be cancelled")
        if task.status == TaskStatus.CANCELLED:
            raise InvalidTaskStateError("The task is already cancelled")

        released = _release_outstanding(db, task, actor_id, f"Task #{task.id} cancelled")
        task.status = TaskStatus.CANCELLED

        write_log(db, user_id=actor_id, action="TASK_CANCEL", resource="tasks", entity_id=task.id,
                  meta={"released": released})

    logger.info("Task %s cancelled, %s units released", task_id, released)
    return task


def delete_task(db: Session, task_id: int, actor_id: Optional[int] = None) -> None:
    """Deletes the task and its assignments, returning outstanding reservations of an active task first."""
    logger.info("Deleting task %s", task_id)

    with transaction(db):
        task = get_task(db, task_id)
        released = 0
        if task.status not in TERMINAL_STATUSES:
            released = _release_outstanding(db, task, actor_id, f"Task #{task.id} deleted")

        write_log(db, user_id=actor_id, action="TASK_DELETE", resource="tasks", entity_id=task.id,
                  meta={"released": released})
        db.delete(task)


# ---- QUERIES ----

def get_tasks_by_assigned_user(db: Session, user_id: int) -> List[Task]:
    _get_user(db, user_id)
    return (
        db.query(Task)
        .filter(Task.assigned_user_id == user_id)
        .order_by(_priority_rank().desc(), Task.due_date.asc(), Task.id)
        .all()
    )


def get_tasks_created_by_user(db: Session, user_id: int) -> List[Task]:
    _get_user(db, user_id)
    return (
        db.query(Task)
        .filter(Task.created_by_user_id == user_id)
        .order_by(Task.created_at.desc(), Task.id.desc())
        .all()
    )


def get_unassigned_tasks(db: Session) -> List[Task]:
    return (
        db.query(Task)
        .filter(Task.assigned_user_id.is_(None), Task.status != TaskStatus.CANCELLED)
        .order_by(_priority_rank().desc(), Task.id)
        .all()
    )


def get_tasks_in_progress(db: Session) -> List[Task]:
    return (
        db.query(Task)
        .filter(Task.status == TaskStatus.IN_PROGRESS)
        .order_by(_priority_rank().desc(), Task.due_date.asc(), Task.id)
        .all()
    )


def get_overdue_tasks(db: Session, now: Optional[datetime] = None) -> List[Task]:
    now = now or datetime.now()
    return (
        db.query(Task)
        .filter(Task.due_date < now, Task.status.notin_(TERMINAL_STATUSES))
        .order_by(Task.due_date.asc(), Task.id)
        .all()
    )


def get_high_priority_active_tasks(db: Session) -> List[Task]:
    return (
        db.query(Task)
        .filter(Task.priority == TaskPriority.HIGH, Task.status.notin_(TERMINAL_STATUSES))
        .order_by(Task.due_date.asc(), Task.id)
        .all()
    )


def search_tasks(db: Session, text: str) -> List[Task]:
    # User text is matched literally, wildcards included
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    like = f"%{escaped}%"
    return (
        db.query(Task)
        .filter(or_(Task.title.ilike(like, escape="\\"), Task.description.ilike(like, escape="\\")))
        .order_by(_priority_rank().desc(), Task.id)
        .all()
    )
