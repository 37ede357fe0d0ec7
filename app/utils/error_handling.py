"""
Error Handling Module for Banco de Horas

This module provides centralized error handling with:
- Custom exception hierarchy
- Standardized error responses
- Error logging and tracking
- Hours/tickets quantity validation errors
- Cascade concurrency and database error handling
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from uuid import UUID
import logging

from fastapi import FastAPI, Request, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import (
    SQLAlchemyError,
    IntegrityError,
    OperationalError,
    DataError,
)
from starlette.exceptions import HTTPException as StarletteHTTPException

# Configure logging
logger = logging.getLogger("banco_horas.errors")


class ErrorCode(str, Enum):
    """Standardized error codes for the application"""

    # Validation Errors (4xx)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_QUANTITY = "INVALID_QUANTITY"
    BILLING_MODE_MISMATCH = "BILLING_MODE_MISMATCH"
    INVALID_PERIOD = "INVALID_PERIOD"
    INVALID_ALLOCATION = "INVALID_ALLOCATION"

    # Resource Errors (404/409)
    NOT_FOUND = "NOT_FOUND"
    RESOURCE_CONFLICT = "RESOURCE_CONFLICT"
    DUPLICATE_ENTRY = "DUPLICATE_ENTRY"
    CASCADE_IN_PROGRESS = "CASCADE_IN_PROGRESS"

    # Database Errors (500)
    DATABASE_ERROR = "DATABASE_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    TRANSACTION_ERROR = "TRANSACTION_ERROR"
    DATA_INTEGRITY_ERROR = "DATA_INTEGRITY_ERROR"

    # Internal Errors (500)
    SEGMENTATION_MISMATCH = "SEGMENTATION_MISMATCH"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AppException(Exception):
    """Base exception for all application exceptions"""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
        field: Optional[str] = None,
        original_error: Optional[Exception] = None,
        retryable: bool = False,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.field = field
        self.original_error = original_error
        self.retryable = retryable
        self.timestamp = datetime.utcnow()
        super().__init__(self.message)


# ============================================================================
# Validation Exceptions
# ============================================================================

class ValidationException(AppException):
    """Base validation exception"""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        code: ErrorCode = ErrorCode.VALIDATION_ERROR,
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details,
            field=field,
        )


class InvalidQuantityException(ValidationException):
    """Malformed hours or tickets value"""

    def __init__(self, value: Any, expected: str, field: Optional[str] = None, message: Optional[str] = None):
        super().__init__(
            message=message or f"Invalid quantity: {value!r}. Expected {expected}.",
            field=field,
            code=ErrorCode.INVALID_QUANTITY,
            details={"provided": repr(value), "expected_format": expected},
        )


class BillingModeMismatchException(ValidationException):
    """Quantity of one billing mode used where the other is required"""

    def __init__(self, expected_mode: str, value: Any, field: Optional[str] = None):
        super().__init__(
            message=f"Value {value!r} does not match billing mode '{expected_mode}'",
            field=field,
            code=ErrorCode.BILLING_MODE_MISMATCH,
            details={"expected_mode": expected_mode, "provided": repr(value)},
        )


class InvalidPeriodException(ValidationException):
    """Invalid month/year or apportionment period"""

    def __init__(self, mes: Any, ano: Any, message: Optional[str] = None):
        super().__init__(
            message=message or f"Invalid period: {mes}/{ano}. Month must be between 1 and 12.",
            field="periodo",
            code=ErrorCode.INVALID_PERIOD,
            details={"mes": str(mes), "ano": str(ano)},
        )


class InvalidAllocationException(ValidationException):
    """Allocation set cannot be used for segmentation"""

    def __init__(self, erros: List[str], soma_percentuais: Any = None):
        details: Dict[str, Any] = {"erros": erros}
        if soma_percentuais is not None:
            details["soma_percentuais"] = str(soma_percentuais)
        super().__init__(
            message="; ".join(erros) if erros else "Invalid allocation set",
            field="alocacoes",
            code=ErrorCode.INVALID_ALLOCATION,
            details=details,
        )


# ============================================================================
# Resource Exceptions
# ============================================================================

class NotFoundException(AppException):
    """Resource not found exception"""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[Union[str, UUID]] = None,
        message: Optional[str] = None,
        code: ErrorCode = ErrorCode.NOT_FOUND,
    ):
        if message is None:
            if resource_id:
                message = f"{resource_type} with ID '{resource_id}' not found"
            else:
                message = f"{resource_type} not found"
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": str(resource_id) if resource_id else None},
        )


class ConflictException(AppException):
    """Resource conflict exception"""

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        code: ErrorCode = ErrorCode.RESOURCE_CONFLICT,
        details: Optional[Dict[str, Any]] = None,
        retryable: bool = False,
    ):
        _details = details or {}
        if resource_type:
            _details["resource_type"] = resource_type
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            details=_details,
            retryable=retryable,
        )


class ConcurrencyException(ConflictException):
    """Another cascade is already running for the same company"""

    def __init__(self, empresa_id: Union[str, UUID]):
        super().__init__(
            message=f"A recalculation cascade is already in progress for company '{empresa_id}'",
            resource_type="EmpresaCliente",
            code=ErrorCode.CASCADE_IN_PROGRESS,
            details={"empresa_id": str(empresa_id), "action": "Retry once the running cascade finishes"},
            retryable=True,
        )


# ============================================================================
# Database Exceptions
# ============================================================================

class DatabaseException(AppException):
    """Database error exception"""

    def __init__(
        self,
        message: str = "A database error occurred",
        code: ErrorCode = ErrorCode.DATABASE_ERROR,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            original_error=original_error,
        )


class PersistenceException(DatabaseException):
    """A cascade transaction failed and was rolled back"""

    def __init__(self, message: str = "Transaction failed and was rolled back", original_error: Optional[Exception] = None):
        super().__init__(
            message=message,
            code=ErrorCode.TRANSACTION_ERROR,
            original_error=original_error,
        )


# ============================================================================
# Consistency Exceptions
# ============================================================================

class ConsistencyException(AppException):
    """Segmented values do not add up to the consolidated calculation"""

    def __init__(self, divergencias: List[Dict[str, Any]], calculo_id: Optional[Union[str, UUID]] = None):
        campos = ", ".join(d["campo"] for d in divergencias)
        super().__init__(
            code=ErrorCode.SEGMENTATION_MISMATCH,
            message=f"Segmented totals diverge from consolidated values: {campos}",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={
                "calculo_id": str(calculo_id) if calculo_id else None,
                "divergencias": divergencias,
            },
        )
        self.divergencias = divergencias


# ============================================================================
# Exception Handlers
# ============================================================================

def create_error_response(
    code: ErrorCode,
    message: str,
    status_code: int,
    details: Optional[Dict[str, Any]] = None,
    field: Optional[str] = None,
    retryable: bool = False,
) -> JSONResponse:
    """Create a standardized error response"""
    content = {
        "detail": {
            "code": code.value,
            "message": message,
            "retryable": retryable,
            "timestamp": datetime.utcnow().isoformat() + "Z",
        }
    }
    if field:
        content["detail"]["field"] = field
    if details:
        content["detail"]["details"] = details

    return JSONResponse(status_code=status_code, content=content)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle AppException"""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"AppException: {exc.code.value} - {exc.message}",
        extra={
            "code": exc.code.value,
            "path": request.url.path,
            "method": request.method,
            "details": exc.details,
        },
        exc_info=exc.original_error,
    )

    return create_error_response(
        code=exc.code,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
        field=exc.field,
        retryable=exc.retryable,
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTPException"""
    # Map status codes to error codes
    code_map = {
        400: ErrorCode.INVALID_INPUT,
        404: ErrorCode.NOT_FOUND,
        409: ErrorCode.RESOURCE_CONFLICT,
        422: ErrorCode.VALIDATION_ERROR,
        500: ErrorCode.INTERNAL_ERROR,
    }

    error_code = code_map.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)

    logger.warning(
        f"HTTPException: {exc.status_code} - {message}",
        extra={"path": request.url.path, "method": request.method},
    )

    return create_error_response(
        code=error_code,
        message=message,
        status_code=exc.status_code,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle Pydantic validation errors"""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })

    logger.warning(
        f"ValidationError: {len(errors)} validation errors",
        extra={"path": request.url.path, "method": request.method, "errors": errors},
    )

    return create_error_response(
        code=ErrorCode.VALIDATION_ERROR,
        message="Request validation failed",
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        details={"errors": errors},
    )


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Handle SQLAlchemy errors"""
    error_message = "A database error occurred"
    error_code = ErrorCode.DATABASE_ERROR
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    retryable = False

    if isinstance(exc, IntegrityError):
        error_message = "Data integrity constraint violated"
        error_code = ErrorCode.DATA_INTEGRITY_ERROR
        error_str = str(exc.orig).lower() if exc.orig else ""
        if ("unique" in error_str or "duplicate" in error_str) and "versao" in error_str:
            # Another writer recorded the same calculation version first
            error_message = "Calculation version was recorded by a concurrent recalculation"
            error_code = ErrorCode.CASCADE_IN_PROGRESS
            status_code = status.HTTP_409_CONFLICT
            retryable = True
        elif "unique" in error_str or "duplicate" in error_str:
            error_message = "A record with this value already exists"
            error_code = ErrorCode.DUPLICATE_ENTRY
            status_code = status.HTTP_409_CONFLICT
        elif "foreign key" in error_str:
            error_message = "Referenced record does not exist"
            status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    elif isinstance(exc, OperationalError):
        error_message = "Database operation failed"
        error_code = ErrorCode.CONNECTION_ERROR
    elif isinstance(exc, DataError):
        error_message = "Invalid data format for database"
        status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    logger.error(
        f"SQLAlchemyError: {type(exc).__name__} - {str(exc)}",
        extra={"path": request.url.path, "method": request.method},
        exc_info=True,
    )

    return create_error_response(
        code=error_code,
        message=error_message,
        status_code=status_code,
        retryable=retryable,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unhandled exceptions"""
    logger.critical(
        f"UnhandledException: {type(exc).__name__} - {str(exc)}",
        extra={"path": request.url.path, "method": request.method},
        exc_info=True,
    )

    # In production, don't expose internal error details
    return create_error_response(
        code=ErrorCode.INTERNAL_ERROR,
        message="An unexpected error occurred. Please try again later.",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application"""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


# ============================================================================
# Error Tracking Middleware
# ============================================================================

class ErrorTrackingMiddleware:
    """Middleware for tracking and logging all errors"""

    def __init__(self, app: FastAPI):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        try:
            await self.app(scope, receive, send)
        except Exception as exc:
            logger.error(
                f"Request failed: {scope.get('path', 'unknown')}",
                extra={
                    "path": scope.get("path"),
                    "method": scope.get("method"),
                    "exception_type": type(exc).__name__,
                },
                exc_info=True,
            )
            raise
