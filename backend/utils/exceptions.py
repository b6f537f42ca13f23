# backend/utils/exceptions.py
"""Domain errors raised by the service layer.

Two families reach the caller: ``NotFoundError`` when a referenced record does
not exist, and ``BusinessRuleViolation`` (with a machine readable
``error_code``) when an operation would break a stock or task invariant.
Both are raised before any write, the HTTP layer maps them to 404 / 422.
"""


class ErrorCode:
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    BUSINESS_LOGIC_ERROR = "BUSINESS_LOGIC_ERROR"
    INVALID_TASK_STATE = "INVALID_TASK_STATE"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    INVALID_QUANTITY = "INVALID_QUANTITY"
    DUPLICATE_ASSIGNMENT = "DUPLICATE_ASSIGNMENT"
    INCOMPLETE_PRODUCTS = "INCOMPLETE_PRODUCTS"
    MAX_ACTIVE_TASKS_EXCEEDED = "MAX_ACTIVE_TASKS_EXCEEDED"
    CONCURRENT_MODIFICATION = "CONCURRENT_MODIFICATION"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    BAD_REQUEST = "BAD_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    HTTP_ERROR = "HTTP_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class WarehouseError(Exception):
    """Base class for every error the API reports with an error code."""
    error_code = ErrorCode.BUSINESS_LOGIC_ERROR

    def __init__(self, message: str, error_code: str = None):
        super().__init__(message)
        self.message = message
        if error_code is not None:
            self.error_code = error_code


class NotFoundError(WarehouseError):
    error_code = ErrorCode.RESOURCE_NOT_FOUND

    def __init__(self, resource: str, resource_id):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} not found with id: {resource_id}")


class BusinessRuleViolation(WarehouseError):
    """An invariant of the stock ledger or the task lifecycle would be broken."""


class InvalidTaskStateError(BusinessRuleViolation):
    error_code = ErrorCode.INVALID_TASK_STATE


class InsufficientStockError(BusinessRuleViolation):
    error_code = ErrorCode.INSUFFICIENT_STOCK

    def __init__(self, available: int, requested: int, message: str = None):
        self.available = available
        self.requested = requested
        super().__init__(message or f"Insufficient stock. Available: {available}, requested: {requested}")


class InvalidQuantityError(BusinessRuleViolation):
    error_code = ErrorCode.INVALID_QUANTITY


class DuplicateAssignmentError(BusinessRuleViolation):
    error_code = ErrorCode.DUPLICATE_ASSIGNMENT


class IncompleteProductsError(BusinessRuleViolation):
    error_code = ErrorCode.INCOMPLETE_PRODUCTS


class MaxActiveTasksExceededError(BusinessRuleViolation):
    error_code = ErrorCode.MAX_ACTIVE_TASKS_EXCEEDED



class ConcurrentModificationError(WarehouseError):
    error_code = ErrorCode.CONCURRENT_MODIFICATION

    def __init__(self, detail: str = None):
        super().__init__("The record was modified by another request, please retry")
        self.detail = detail
