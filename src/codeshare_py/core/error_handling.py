"""Error handling and exception handlers for codeshare-py.

Provides structured JSON error responses with correlation IDs and proper
HTTP status codes. Errors on the collaboration WebSocket never reach these
handlers; they are logged and dropped by the protocol dispatcher.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog
from litestar import Response
from litestar.status_codes import (
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_422_UNPROCESSABLE_ENTITY,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

if TYPE_CHECKING:
    from litestar import Request
    from litestar.exceptions import HTTPException, ValidationException

    from codeshare_py.exceptions import ProjectNotFoundError, StorageError, UploadRejectedError

logger = structlog.get_logger(__name__)

STATUS_CODES = {
    400: "bad_request",
    404: "not_found",
    405: "method_not_allowed",
    413: "payload_too_large",
    422: "validation_error",
    429: "rate_limited",
    500: "internal_error",
    503: "service_unavailable",
}


@dataclass
class ErrorDetail:
    """Details about a specific error."""

    field: str | None = None
    message: str = ""
    code: str = "error"


@dataclass
class ErrorResponse:
    """Structured error response format.

    ``error`` carries the human readable message so clients written against
    ``{"error": "..."}`` bodies keep working.
    """

    message: str = ""
    code: str = "internal_error"
    correlation_id: str | None = None
    details: list[ErrorDetail] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON response."""
        result: dict[str, Any] = {
            "status": "error",
            "error": self.message,
            "code": self.code,
        }
        if self.correlation_id:
            result["correlation_id"] = self.correlation_id
        if self.details:
            result["details"] = [{"field": d.field, "message": d.message, "code": d.code} for d in self.details]
        return result


def get_correlation_id(request: Request) -> str | None:
    """Extract correlation ID from request state or headers."""
    correlation_id = request.scope.get("state", {}).get("correlation_id")
    if correlation_id:
        return correlation_id
    return request.headers.get("X-Correlation-ID") or request.headers.get("X-Request-ID")


def _json_error(status_code: int, error: ErrorResponse) -> Response[dict[str, Any]]:
    return Response(content=error.to_dict(), status_code=status_code, media_type="application/json")


def validation_exception_handler(request: Request, exc: ValidationException) -> Response[dict[str, Any]]:
    """Handle request body and parameter validation errors.

    Returns a structured response with per-field error details.
    """
    correlation_id = get_correlation_id(request)

    details: list[ErrorDetail] = []
    if exc.extra:
        for error in exc.extra:
            if isinstance(error, dict):
                key = error.get("key") or ".".join(str(p) for p in error.get("loc", [])) or None
                msg = error.get("message", error.get("msg", str(error)))
                details.append(ErrorDetail(field=key, message=msg, code="validation_error"))
            else:
                details.append(ErrorDetail(message=str(error), code="validation_error"))

    if not details:
        details.append(ErrorDetail(message=str(exc.detail), code="validation_error"))

    logger.warning(
        "Validation error",
        path=request.url.path,
        method=request.method,
        error_count=len(details),
    )

    return _json_error(
        HTTP_422_UNPROCESSABLE_ENTITY,
        ErrorResponse(
            message="Validation failed",
            code="validation_error",
            correlation_id=correlation_id,
            details=details,
        ),
    )


def http_exception_handler(request: Request, exc: HTTPException) -> Response[dict[str, Any]]:
    """Handle HTTP exceptions with structured responses."""
    error_code = STATUS_CODES.get(exc.status_code, "error")
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)

    log_method = logger.warning if exc.status_code < 500 else logger.error
    log_method(
        "HTTP exception",
        path=request.url.path,
        method=request.method,
        status_code=exc.status_code,
        error_code=error_code,
    )

    return _json_error(
        exc.status_code,
        ErrorResponse(message=message, code=error_code, correlation_id=get_correlation_id(request)),
    )


def project_not_found_handler(request: Request, exc: ProjectNotFoundError) -> Response[dict[str, Any]]:
    """Handle ProjectNotFoundError exceptions."""
    logger.warning("Project not found", project_id=exc.project_id, path=request.url.path)

    return _json_error(
        HTTP_404_NOT_FOUND,
        ErrorResponse(
            message=f"Project not found: {exc.project_id}",
            code="project_not_found",
            correlation_id=get_correlation_id(request),
            details=[ErrorDetail(field="project_id", message=str(exc), code="not_found")],
        ),
    )


def upload_rejected_handler(request: Request, exc: UploadRejectedError) -> Response[dict[str, Any]]:
    """Handle UploadRejectedError exceptions."""
    logger.warning("Upload rejected", reason=str(exc), path=request.url.path)

    return _json_error(
        HTTP_400_BAD_REQUEST,
        ErrorResponse(message=str(exc), code="upload_rejected", correlation_id=get_correlation_id(request)),
    )


def storage_error_handler(request: Request, exc: StorageError) -> Response[dict[str, Any]]:
    """Handle StorageError exceptions.

    The underlying cause is logged; the client only sees the operation that failed.
    """
    logger.error("Storage error", error=str(exc), path=request.url.path, method=request.method)

    return _json_error(
        HTTP_500_INTERNAL_SERVER_ERROR,
        ErrorResponse(message=str(exc), code="storage_error", correlation_id=get_correlation_id(request)),
    )


def generic_exception_handler(request: Request, exc: Exception) -> Response[dict[str, Any]]:
    """Handle unexpected exceptions with a generic error response.

    Logs the full exception but returns a safe message to the client.
    """
    logger.exception(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
        exc_info=exc,
    )

    return _json_error(
        HTTP_500_INTERNAL_SERVER_ERROR,
        ErrorResponse(
            message="An unexpected error occurred. Please try again later.",
            code="internal_error",
            correlation_id=get_correlation_id(request),
        ),
    )


def get_exception_handlers() -> dict:
    """Get all exception handlers for the application.

    Returns:
        Dictionary mapping exception types to handler functions.
    """
    from litestar.exceptions import HTTPException, ValidationException

    from codeshare_py.exceptions import ProjectNotFoundError, StorageError, UploadRejectedError

    return {
        ValidationException: validation_exception_handler,
        HTTPException: http_exception_handler,
        ProjectNotFoundError: project_not_found_handler,
        UploadRejectedError: upload_rejected_handler,
        StorageError: storage_error_handler,
        Exception: generic_exception_handler,
    }
