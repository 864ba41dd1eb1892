"""
Error Handling System for Formapro

This module provides:
1. The application exception hierarchy, each error carrying its HTTP status
2. Structured error logging
3. Standardized JSON error responses and the FastAPI handlers producing them
"""

import logging
import traceback
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from datetime import datetime

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Severity levels for errors"""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCode(Enum):
    """Standard error codes"""
    # General errors
    UNKNOWN_ERROR = "unknown_error"
    VALIDATION_ERROR = "validation_error"
    AUTHENTICATION_ERROR = "authentication_error"
    AUTHORIZATION_ERROR = "authorization_error"
    NOT_FOUND_ERROR = "not_found_error"
    RATE_LIMIT_ERROR = "rate_limit_error"

    # Evaluation generation preconditions
    NO_MEDIA = "no_media"
    NO_SUPPORTED_MEDIA = "no_supported_media"
    INSUFFICIENT_CONTENT = "insufficient_content"
    INVALID_GENERATION = "invalid_generation"

    # Dependencies
    DATABASE_ERROR = "database_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class ErrorInfo(BaseModel):
    """Structured information about an error"""
    model_config = ConfigDict(use_enum_values=True)

    code: ErrorCode
    message: str
    timestamp: datetime = Field(default_factory=datetime.now)
    severity: ErrorSeverity = ErrorSeverity.ERROR
    details: Optional[Any] = None
    suggestions: Optional[List[str]] = None
    exception_type: Optional[str] = None
    context: Optional[Dict[str, Any]] = None


class FormaproError(Exception):
    """Base exception class for all application errors"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        details: Optional[Any] = None,
        cause: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.severity = severity
        self.details = details
        self.cause = cause
        self.context = context or {}
        self.timestamp = datetime.now()

    def to_error_info(self) -> ErrorInfo:
        """Convert the exception to an ErrorInfo object"""
        return ErrorInfo(
            code=self.code,
            message=self.message,
            timestamp=self.timestamp,
            severity=self.severity,
            details=self.details,
            suggestions=getattr(self, "suggestions", None),
            exception_type=type(self).__name__,
            context=self.context
        )

    def __str__(self) -> str:
        base_str = f"{self.code.value}: {self.message}"
        if self.cause:
            base_str += f" caused by {type(self.cause).__name__}: {str(self.cause)}"
        return base_str


class ValidationError(FormaproError):
    """Error raised when input validation fails"""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: Optional[Any] = None, cause: Optional[Exception] = None):
        super().__init__(
            message=message,
            code=ErrorCode.VALIDATION_ERROR,
            severity=ErrorSeverity.WARNING,
            details=details,
            cause=cause
        )


class PreconditionError(FormaproError):
    """
    Error raised when a request is well-formed but cannot be served yet,
    e.g. a session without usable documents. Carries remediation hints.
    """

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        details: Optional[Any] = None,
        suggestions: Optional[List[str]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(
            message=message,
            code=code,
            severity=ErrorSeverity.WARNING,
            details=details,
            cause=cause
        )
        self.suggestions = suggestions or []


class AuthenticationError(FormaproError):
    """Error raised when authentication fails"""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Authentication required", details: Optional[Any] = None):
        super().__init__(
            message=message,
            code=ErrorCode.AUTHENTICATION_ERROR,
            severity=ErrorSeverity.WARNING,
            details=details
        )


class AuthorizationError(FormaproError):
    """Error raised when the principal may not access a resource"""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Access denied", resource: Optional[str] = None):
        super().__init__(
            message=message,
            code=ErrorCode.AUTHORIZATION_ERROR,
            severity=ErrorSeverity.WARNING,
            context={"resource": resource} if resource else None
        )


class NotFoundError(FormaproError):
    """Error raised when a requested resource is not found"""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource_type: str, resource_id: Any):
        super().__init__(
            message=f"{resource_type} {resource_id} not found",
            code=ErrorCode.NOT_FOUND_ERROR,
            severity=ErrorSeverity.WARNING
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class RateLimitError(FormaproError):
    """Error raised when rate limits are exceeded"""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, message: str, retry_after: Optional[int] = None):
        super().__init__(
            message=message,
            code=ErrorCode.RATE_LIMIT_ERROR,
            severity=ErrorSeverity.WARNING,
            details={"retry_after_seconds": retry_after} if retry_after is not None else None
        )
        self.retry_after = retry_after


class DatabaseError(FormaproError):
    """Error raised when the store fails"""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(
            message=message,
            code=ErrorCode.DATABASE_ERROR,
            cause=cause
        )


class ExternalServiceError(FormaproError):
    """Error raised when a third-party service (text generation, extraction SDK) fails"""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, service: str, message: str, cause: Optional[Exception] = None):
        super().__init__(
            message=message,
            code=ErrorCode.EXTERNAL_SERVICE_ERROR,
            cause=cause,
            context={"service": service}
        )
        self.service = service


def convert_exception(
    exception: Exception,
    default_message: str = "An unexpected error occurred",
    context: Optional[Dict[str, Any]] = None
) -> FormaproError:
    """
    Convert a standard exception to a FormaproError.

    Args:
        exception: The exception to convert
        default_message: Default message if the exception has no message
        context: Optional additional context

    Returns:
        Converted FormaproError
    """
    if isinstance(exception, FormaproError):
        if context:
            exception.context.update(context)
        return exception

    return FormaproError(
        message=str(exception) or default_message,
        cause=exception,
        context=context
    )


def error_response(error: Union[FormaproError, Exception], include_details: bool = True) -> Dict[str, Any]:
    """
    Generate a standardized API error response body.

    Args:
        error: The error to generate a response for
        include_details: Whether to include error details

    Returns:
        Standardized error response dictionary
    """
    if not isinstance(error, FormaproError):
        error = convert_exception(error)

    info = error.to_error_info()
    response: Dict[str, Any] = {
        "error": info.message,
        "code": info.code
    }

    if include_details and info.details is not None:
        response["details"] = info.details
    if info.suggestions:
        response["suggestions"] = info.suggestions

    return response


def log_error(
    error: Union[FormaproError, Exception],
    level: int = logging.ERROR,
    include_stack_trace: bool = True,
    context: Optional[Dict[str, Any]] = None
) -> None:
    """
    Log an error with standardized format.

    Args:
        error: The error to log
        level: Logging level
        include_stack_trace: Whether to include stack trace
        context: Additional context to include
    """
    error = convert_exception(error, context=context)

    message = f"ERROR [{error.code.value}]: {error.message}"
    if error.context:
        context_str = ", ".join(f"{k}={v}" for k, v in error.context.items())
        message += f" (context: {context_str})"
    if error.cause:
        message += f" caused by {type(error.cause).__name__}: {str(error.cause)}"
    if include_stack_trace:
        message += f"\n{traceback.format_exc()}"

    logger.log(level, message)


def register_exception_handlers(app: FastAPI, production: bool = False) -> None:
    """
    Install the JSON error handlers on a FastAPI application.

    Application errors keep their own status code. Request validation errors
    become 400 with a ``details`` array. Anything else is logged and returned
    as a generic 500; the exception message is only exposed outside production.
    """

    @app.exception_handler(FormaproError)
    async def formapro_error_handler(request: Request, exc: FormaproError) -> JSONResponse:
        level = logging.WARNING if exc.status_code < 500 else logging.ERROR
        log_error(exc, level=level, include_stack_trace=exc.status_code >= 500,
                  context={"path": request.url.path})

        body = error_response(exc, include_details=exc.status_code < 500 or not production)
        headers = None
        if isinstance(exc, RateLimitError) and exc.retry_after is not None:
            headers = {"Retry-After": str(exc.retry_after)}
        if exc.status_code >= 500 and production:
            body["error"] = "Internal server error"
        return JSONResponse(status_code=exc.status_code, content=body, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        error_details = []
        for error in exc.errors():
            error_details.append({
                "location": [str(part) for part in error.get("loc", [])],
                "message": error.get("msg", "Invalid value"),
                "type": error.get("type", "")
            })

        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": "Invalid request data",
                "code": ErrorCode.VALIDATION_ERROR.value,
                "details": error_details
            }
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        log_error(exc, context={"path": request.url.path})
        content: Dict[str, Any] = {
            "error": "Internal server error",
            "code": ErrorCode.UNKNOWN_ERROR.value
        }
        if not production:
            content["details"] = str(exc)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)
