# backend/schemas/common.py
from datetime import datetime
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


# Base configuration: ORM compatibility and camelCase JSON
class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


# Success envelope shared by every endpoint
class ApiResponse(ORMBase, Generic[T]):
    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None
    timestamp: datetime = Field(default_factory=datetime.now)


class FieldError(ORMBase):
    field: str
    message: str
    rejected_value: Optional[Any] = None


# Error envelope built by the exception handlers in main.py
class ErrorResponse(ORMBase):
    status: int
    error: str
    message: str
    error_code: str
    path: str
    timestamp: datetime = Field(default_factory=datetime.now)
    field_errors: Optional[List[FieldError]] = None


def ok(data=None, message: str = "OK") -> dict:
    return {"success": True, "message": message, "data": data, "timestamp": datetime.now()}
