"""Custom exceptions and FastAPI exception handlers.

Application errors map to RFC 7807 problem responses. Data-store errors keep
the underlying driver exception on ``cause`` so fallback paths can branch on
the failure class and logs keep the original message.
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from app.core.logging import get_logger
from app.core.problem_details import (
    ERROR_TYPES,
    ProblemDetailResponse,
    problem_response,
)

logger = get_logger(__name__)


# =============================================================================
# Exception Classes
# =============================================================================


class ChaiVisionError(Exception):
    """Base exception for application errors.

    Each subclass maps to an RFC 7807 problem type URI.
    """

    error_type_uri: str = ERROR_TYPES["INTERNAL_ERROR"]

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize application error.

        Args:
            message: Human-readable error message.
            code: Machine-readable error code.
            status_code: HTTP status code.
            details: Additional error context.
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}

    @property
    def title(self) -> str:
        """RFC 7807 title - short summary of problem type."""
        return self.code.replace("_", " ").title()


class NotFoundError(ChaiVisionError):
    """Requested resource (brand, target) does not exist."""

    error_type_uri: str = ERROR_TYPES["NOT_FOUND"]

    def __init__(
        self,
        message: str = "Resource not found",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, code="NOT_FOUND", status_code=404, details=details)


class ValidationError(ChaiVisionError):
    """Input failed validation."""

    error_type_uri: str = ERROR_TYPES["VALIDATION_ERROR"]

    def __init__(
        self,
        message: str = "Validation failed",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message, code="VALIDATION_ERROR", status_code=422, details=details
        )


class ConflictError(ChaiVisionError):
    """Operation conflicts with existing state (e.g., duplicate brand name)."""

    error_type_uri: str = ERROR_TYPES["CONFLICT"]

    def __init__(
        self,
        message: str = "Resource conflict",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, code="CONFLICT", status_code=409, details=details)


class BadRequestError(ChaiVisionError):
    """Request is malformed or semantically invalid."""

    error_type_uri: str = ERROR_TYPES["BAD_REQUEST"]

    def __init__(
        self,
        message: str = "Bad request",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, code="BAD_REQUEST", status_code=400, details=details)


class RemoteTimeoutError(ChaiVisionError):
    """A remote call did not finish before its deadline.

    Kept distinct from DataStoreError so callers can show "this is taking a
    long time" messaging instead of a generic failure.
    """

    error_type_uri: str = ERROR_TYPES["TIMEOUT"]

    def __init__(self, operation: str, timeout_seconds: float) -> None:
        super().__init__(
            message=f"Operation '{operation}' timed out after {timeout_seconds:g}s",
            code="TIMEOUT",
            status_code=504,
            details={"operation": operation, "timeout_seconds": timeout_seconds},
        )
        self.operation = operation
        self.timeout_seconds = timeout_seconds


class DataStoreError(ChaiVisionError):
    """The managed data store rejected or failed an operation.

    Attributes:
        cause: Original driver/client exception.
        sqlstate: SQLSTATE reported by the store, when known.
    """

    error_type_uri: str = ERROR_TYPES["DATABASE_ERROR"]

    def __init__(
        self,
        message: str = "Database operation failed",
        cause: BaseException | None = None,
        sqlstate: str | None = None,
        details: dict[str, Any] | None = None,
        code: str = "DATABASE_ERROR",
        status_code: int = 500,
    ) -> None:
        merged = dict(details or {})
        if sqlstate:
            merged.setdefault("sqlstate", sqlstate)
        super().__init__(message=message, code=code, status_code=status_code, details=merged)
        self.cause = cause
        self.sqlstate = sqlstate


class UniqueViolationError(DataStoreError):
    """A write collided with a primary-key or unique constraint (SQLSTATE 23505)."""

    error_type_uri: str = ERROR_TYPES["DUPLICATE_KEY"]

    def __init__(
        self,
        message: str = "Duplicate key value violates unique constraint",
        cause: BaseException | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            cause=cause,
            sqlstate="23505",
            details=details,
            code="DUPLICATE_KEY",
            status_code=409,
        )


class MissingConflictTargetError(DataStoreError):
    """Upsert named a conflict target with no matching unique constraint (SQLSTATE 42P10)."""

    error_type_uri: str = ERROR_TYPES["NO_CONFLICT_TARGET"]

    def __init__(
        self,
        message: str = "No unique or exclusion constraint matching the ON CONFLICT specification",
        cause: BaseException | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            cause=cause,
            sqlstate="42P10",
            details=details,
            code="NO_CONFLICT_TARGET",
        )


class PermissionDeniedError(DataStoreError):
    """The store refused the operation for the current role (SQLSTATE 42501)."""

    error_type_uri: str = ERROR_TYPES["FORBIDDEN"]

    def __init__(
        self,
        message: str = "Permission denied",
        cause: BaseException | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            cause=cause,
            sqlstate="42501",
            details=details,
            code="FORBIDDEN",
            status_code=403,
        )


# =============================================================================
# Exception Handlers (RFC 7807)
# =============================================================================


async def chaivision_exception_handler(
    _request: Request,
    exc: ChaiVisionError,
) -> ProblemDetailResponse:
    """Handle ChaiVisionError exceptions with RFC 7807 Problem Details.

    Args:
        _request: FastAPI request object.
        exc: The raised exception.

    Returns:
        RFC 7807 Problem Detail response.
    """
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "app.error_handled",
        error=exc.message,
        error_type=type(exc).__name__,
        error_code=exc.code,
        status_code=exc.status_code,
        details=exc.details,
        exc_info=exc.status_code >= 500,
    )

    return problem_response(
        status=exc.status_code,
        title=exc.title,
        detail=exc.message,
        error_code=exc.code,
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> ProblemDetailResponse:
    """Handle request validation errors with field-level problem details.

    Args:
        request: FastAPI request object.
        exc: Pydantic validation error.

    Returns:
        RFC 7807 Problem Detail response with field-level errors.
    """
    field_errors: list[dict[str, str]] = []
    for error in exc.errors():
        loc = error.get("loc", [])
        field_path = ".".join(str(part) for part in loc if part != "body")
        field_errors.append(
            {
                "field": field_path,
                "message": str(error.get("msg", "Validation failed")),
                "type": str(error.get("type", "unknown")),
            }
        )

    logger.warning(
        "app.validation_error",
        error_count=len(field_errors),
        path=str(request.url.path),
        fields=[e["field"] for e in field_errors],
    )

    return problem_response(
        status=422,
        title="Validation Error",
        detail=f"Request validation failed with {len(field_errors)} error(s). "
        "Check the 'errors' field for details.",
        error_code="VALIDATION_ERROR",
        errors=field_errors,
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> ProblemDetailResponse:
    """Handle unexpected exceptions with a generic 500 problem."""
    logger.error(
        "app.unhandled_error",
        error=str(exc),
        error_type=type(exc).__name__,
        path=str(request.url.path),
        exc_info=True,
    )

    return problem_response(
        status=500,
        title="Internal Server Error",
        detail="An unexpected error occurred. Please try again later or "
        "contact support with the request_id.",
        error_code="INTERNAL_ERROR",
    )


# =============================================================================
# Handler Registration
# =============================================================================


def register_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance.
    """
    app.add_exception_handler(ChaiVisionError, chaivision_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)
