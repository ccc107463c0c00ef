"""
Error handler middleware and custom exceptions.

Provides consistent error responses and custom exception classes
for common application errors.
"""
import logging
from typing import Optional, Dict, Any
from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from zynkly.lib.logging import get_logger
from zynkly.services.errors import (
    DomainError,
    InvalidRequestError,
    NotFoundError,
    AccessDeniedError,
    DeliveryError,
    PaymentConfigurationError,
    PaymentProviderError,
)

logger = get_logger(__name__)


# Custom exception classes
class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, resource: str, resource_id: Optional[str] = None):
        message = f"{resource} not found"
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "resource_id": resource_id},
        )


class UnauthorizedException(AppException):
    """Unauthorized access exception."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
        )


class ForbiddenException(AppException):
    """Forbidden access exception."""

    def __init__(self, message: str = "Access denied"):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
        )


class BadRequestException(AppException):
    """Bad request exception."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details or {},
        )


class ConflictException(AppException):
    """Resource conflict exception."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            details=details or {},
        )


class ValidationException(AppException):
    """Validation error exception."""

    def __init__(self, message: str, errors: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details={"errors": errors or {}},
        )


class UpstreamException(AppException):
    """A third-party dependency answered with an error."""

    def __init__(self, message: str = "Upstream service error", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_502_BAD_GATEWAY,
            details=details or {},
        )


class ServiceUnavailableException(AppException):
    """A required dependency is not configured or not reachable."""

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details={"code": error_code} if error_code else {},
        )


# Exception handlers
async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Handler for custom application exceptions.

    Returns consistent error response with correlation ID.
    """
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    log_level = logging.WARNING if exc.status_code < 500 else logging.ERROR
    logger.log(
        log_level,
        f"Application error: {exc.message}",
        extra={
            "correlation_id": correlation_id,
            "status_code": exc.status_code,
            "path": request.url.path,
            "method": request.method,
            "details": exc.details,
        },
    )

    response_content = {
        "error": exc.message,
        "correlation_id": correlation_id,
    }
    if exc.details:
        response_content["details"] = exc.details

    return JSONResponse(
        status_code=exc.status_code,
        content=response_content,
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """
    Handler for Pydantic validation errors.

    Formats validation errors in a consistent way. The first error message is
    promoted to ``error`` so clients can show it directly, matching the
    single-message shape of business-rule rejections.
    """
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    errors = []
    for error in exc.errors():
        errors.append({
            "loc": list(error["loc"]),
            "msg": error["msg"],
            "type": error["type"],
        })

    logger.warning(
        "Validation error",
        extra={
            "correlation_id": correlation_id,
            "path": request.url.path,
            "method": request.method,
            "errors": errors,
        },
    )

    # Malformed payloads are rejected as 400 before any store access
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": errors[0]["msg"].removeprefix("Value error, ") if errors else "Validation error",
            "correlation_id": correlation_id,
            "details": {"errors": errors},
        },
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """
    Handler for Starlette HTTP exceptions.

    Provides consistent format for HTTP errors.
    """
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    logger.warning(
        f"HTTP exception: {exc.detail}",
        extra={
            "correlation_id": correlation_id,
            "status_code": exc.status_code,
            "path": request.url.path,
            "method": request.method,
        },
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.detail,
            "correlation_id": correlation_id,
        },
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handler for unhandled exceptions.

    Logs full stack trace and returns generic error message.
    """
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    logger.error(
        f"Unhandled exception: {exc}",
        extra={
            "correlation_id": correlation_id,
            "path": request.url.path,
            "method": request.method,
        },
        exc_info=True,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "correlation_id": correlation_id,
        },
    )


_DOMAIN_STATUS = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (AccessDeniedError, status.HTTP_403_FORBIDDEN),
    (PaymentConfigurationError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (PaymentProviderError, status.HTTP_502_BAD_GATEWAY),
    (DeliveryError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (InvalidRequestError, status.HTTP_400_BAD_REQUEST),
)


def to_app_exception(exc: DomainError) -> AppException:
    """Translate a service-layer error into its HTTP counterpart."""
    status_code = status.HTTP_400_BAD_REQUEST
    for error_cls, code in _DOMAIN_STATUS:
        if isinstance(exc, error_cls):
            status_code = code
            break

    details = dict(exc.details)
    if isinstance(exc, PaymentConfigurationError):
        details["code"] = exc.code

    return AppException(message=exc.message, status_code=status_code, details=details)


async def domain_exception_handler(request: Request, exc: DomainError) -> JSONResponse:
    """
    Handler for service-layer errors.

    Upstream failures keep their detail in the server log only; the client
    receives a generic message for 502s and for email delivery failures.
    """
    app_exc = to_app_exception(exc)
    if app_exc.status_code == status.HTTP_502_BAD_GATEWAY:
        logger.error(
            f"Upstream failure: {exc.message}",
            extra={"path": request.url.path, "details": exc.details},
        )
        app_exc = UpstreamException("Payment provider error. Please try again.")
    elif isinstance(exc, DeliveryError):
        logger.error(
            f"Email delivery failure: {exc.message}",
            extra={"path": request.url.path, "details": exc.details},
        )
        app_exc = AppException("Failed to send verification email. Please try again.")
    return await app_exception_handler(request, app_exc)
