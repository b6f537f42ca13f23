from datetime import datetime
from typing import List, Optional

from pydantic import Field

from models.task import TaskStatus, TaskPriority
from models.users import Role
from schemas.common import ORMBase


# Compact user/product views embedded in task payloads
class UserSummary(ORMBase):
    id: int
    name: str
    email: str
    role: Role
    department: Optional[str] = None


class ProductSummary(ORMBase):
    id: int
    sku: str
    name: str
    category: Optional[str] = None
    unit_price: float
    active: bool


# Input schema for creating a task; it always starts as PENDING
class TaskCreate(ORMBase):
    title: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[datetime] = None
    notes: Optional[str] = None
    assigned_user_id: Optional[int] = None


# Schema for partial task updates. Status only changes through start/complete/cancel
class TaskUpdate(ORMBase):
    title: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = None
    notes: Optional[str] = None
    assigned_user_id: Optional[int] = None


# Body of assign / update requests on /task-products
class TaskProductRequest(ORMBase):
    quantity: int
    notes: Optional[str] = None


class TaskProductOut(ORMBase):
    id: int
    task_id: int
    quantity: int
    quantity_used: int
    notes: Optional[str] = None
    created_at: datetime
    product: ProductSummary


class TaskOut(ORMBase):
    id: int
    title: str
    description: Optional[str] = None
    notes: Optional[str] = None
    status: TaskStatus
    priority: TaskPriority
    due_date: Optional[datetime] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    completed: bool
    created_at: datetime
    updated_at: Optional[datetime] = None
    assigned_user: Optional[UserSummary] = None
    created_by_user: UserSummary
    task_products: List[TaskProductOut] = []
