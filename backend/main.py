# backend/main.py
import logging
from http import HTTPStatus
from typing import Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings
from database import init_db
from schemas.common import ErrorResponse, FieldError
from utils.exceptions import (
    ErrorCode,
    NotFoundError,
    BusinessRuleViolation,
    ConcurrentModificationError,
)

# Routers
from routes.auth import router as auth_router
from routes.users import router as users_router
from routes.products import router as products_router
from routes.stock import router as stock_router
from routes.tasks import router as tasks_router
from routes.task_products import router as task_products_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# Initialization
init_db()

app = FastAPI(title="Warehouse Tasks API", version="1.0.0")

# CORS: local frontend plus the deployed one from the environment
origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
if settings.FRONTEND_URL:
    origins.append(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---- ERROR ENVELOPE ----

HTTP_ERROR_CODES = {
    400: ErrorCode.BAD_REQUEST,
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.RESOURCE_NOT_FOUND,
    405: ErrorCode.METHOD_NOT_ALLOWED,
}


def _error(request: Request, status_code: int, error_code: str, message: str,
           field_errors: Optional[List[FieldError]] = None,
           headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    body = ErrorResponse(
        status=status_code,
        error=HTTPStatus(status_code).phrase,
        message=message,
        error_code=error_code,
        path=request.url.path,
        field_errors=field_errors,
    )
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(body.model_dump(by_alias=True, exclude_none=True)),
        headers=headers,
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    logger.warning("Not found: %s", exc.message)
    return _error(request, 404, exc.error_code, exc.message)


@app.exception_handler(BusinessRuleViolation)
async def business_rule_handler(request: Request, exc: BusinessRuleViolation):
    logger.warning("Business rule violated [%s]: %s", exc.error_code, exc.message)
    return _error(request, 422, exc.error_code, exc.message)


@app.exception_handler(ConcurrentModificationError)
async def concurrent_modification_handler(request: Request, exc: ConcurrentModificationError):
    logger.warning("Concurrent modification on %s: %s", request.url.path, exc.detail)
    return _error(request, 409, exc.error_code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_handler(request: Request, exc: RequestValidationError):
    field_errors = []
    for err in exc.errors():
        # loc is ("body" | "query" | "path", field, ...)
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        field_errors.append(FieldError(
            field=".".join(loc) or "request",
            message=err.get("msg", "Invalid value"),
            rejected_value=err.get("input"),
        ))
    return _error(request, 400, ErrorCode.VALIDATION_ERROR, "Validation failed", field_errors)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    code = HTTP_ERROR_CODES.get(exc.status_code, ErrorCode.HTTP_ERROR)
    # WWW-Authenticate on 401 must survive the envelope
    return _error(request, exc.status_code, code, str(exc.detail),
                  headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return _error(request, 500, ErrorCode.INTERNAL_ERROR, "An unexpected error occurred")


# Router registration
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(products_router)
app.include_router(tasks_router)
app.include_router(task_products_router)

# Stock registration
app.include_router(stock_router, prefix="/stock")


@app.get("/")
def read_root():
    return {"message": "Warehouse Tasks API is running"}
