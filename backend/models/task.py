# backend/models/task.py
import enum
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, Enum, ForeignKey,
    CheckConstraint, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from database import Base

# Task states, PENDING -> IN_PROGRESS -> COMPLETED / CANCELLED
class TaskStatus(str, enum.Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = (TaskStatus.COMPLETED, TaskStatus.CANCELLED)


class TaskPriority(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(150), nullable=False)
    description = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    status = Column(Enum(TaskStatus), nullable=False, default=TaskStatus.PENDING, index=True)
    priority = Column(Enum(TaskPriority), nullable=False, default=TaskPriority.MEDIUM, index=True)

    due_date = Column(DateTime, nullable=True)
    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)

    # Mirrors status == COMPLETED
    completed = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    assigned_user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    created_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    assigned_user = relationship("User", foreign_keys=[assigned_user_id])
    created_by_user = relationship("User", foreign_keys=[created_by_user_id])

    # The task owns its product assignments
    task_products = relationship(
        "TaskProduct", back_populates="task", cascade="all, delete-orphan", order_by="TaskProduct.id"
    )


# Product reserved for a task; one row per (task, product)
class TaskProduct(Base):
    __tablename__ = "task_products"

    id = Column(Integer, primary_key=True, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)

    quantity = Column(Integer, nullable=False, default=1)
    quantity_used = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.now)

    task = relationship("Task", back_populates="task_products")
    product = relationship("Product")

    __table_args__ = (
        UniqueConstraint("task_id", "product_id", name="uq_taskproduct_task_product"),
        CheckConstraint("quantity >= 1", name="ck_taskproduct_quantity"),
        CheckConstraint("quantity_used >= 0 AND quantity_used <= quantity", name="ck_taskproduct_quantity_used"),
    )

    @property
    def outstanding(self) -> int:
        """Reserved units not recorded as used yet."""
        return self.quantity - self.quantity_used
