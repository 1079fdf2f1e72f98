"""otakuproxy Error Handling Module

This module defines the error handling system for otakuproxy, providing
structured error classes with context information and JSON-ready payloads.

The error hierarchy follows these principles:
- One Source of Truth: All error codes are defined in ErrorCode enum
- Structured Context: ErrorContext provides additional information
- Stable Taxonomy: Every failure surfaced by the core maps to one kind
- Proper Exception Chaining: Original exceptions are preserved
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Union

from otakuproxy.shared.constants.http_codes import HTTPStatusCodes

# Type alias for primitive context values (str, int, float, bool only)
PrimitiveContextValue = Union[str, int, float, bool]


class ErrorCode(str, Enum):
    """Error codes for otakuproxy.

    The first block is the public taxonomy that callers of the core see.
    The second block is internal and never leaves the core unconverted.
    """

    # Public taxonomy
    INVALID_REQUEST = "INVALID_REQUEST"
    NOT_FOUND = "NOT_FOUND"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    UPSTREAM_FETCH_ERROR = "UPSTREAM_FETCH_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    TIMEOUT = "TIMEOUT"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Internal
    CACHE_ERROR = "CACHE_ERROR"
    CACHE_SERIALIZATION_ERROR = "CACHE_SERIALIZATION_ERROR"
    CONFIG_ERROR = "CONFIG_ERROR"
    QUEUE_OPERATION_ERROR = "QUEUE_OPERATION_ERROR"


ERROR_STATUS_MAP: dict[ErrorCode, int] = {
    ErrorCode.INVALID_REQUEST: HTTPStatusCodes.BAD_REQUEST,
    ErrorCode.VALIDATION_ERROR: HTTPStatusCodes.BAD_REQUEST,
    ErrorCode.NOT_FOUND: HTTPStatusCodes.NOT_FOUND,
    ErrorCode.RATE_LIMIT_EXCEEDED: HTTPStatusCodes.TOO_MANY_REQUESTS,
    ErrorCode.UPSTREAM_FETCH_ERROR: HTTPStatusCodes.BAD_GATEWAY,
    ErrorCode.INTERNAL_ERROR: HTTPStatusCodes.INTERNAL_SERVER_ERROR,
    ErrorCode.SERVICE_UNAVAILABLE: HTTPStatusCodes.SERVICE_UNAVAILABLE,
    ErrorCode.TIMEOUT: HTTPStatusCodes.GATEWAY_TIMEOUT,
}

# Failures that indicate the request itself is wrong
NON_RETRYABLE_CODES: frozenset[ErrorCode] = frozenset(
    {
        ErrorCode.INVALID_REQUEST,
        ErrorCode.NOT_FOUND,
        ErrorCode.VALIDATION_ERROR,
    }
)


def _coerce_primitives(value: Any | None) -> dict[str, PrimitiveContextValue] | None:
    """Coerce additional_data values to primitives.

    Converts Path, Enum, Decimal to primitive types.

    Args:
        value: Input dictionary or None

    Returns:
        Dictionary with primitive values only, or None

    Raises:
        TypeError: If value is not a dict or contains unconvertible types
    """
    if value is None:
        return None

    if not isinstance(value, dict):
        error_msg = f"additional_data must be dict, got {type(value).__name__}"
        raise TypeError(error_msg)

    coerced: dict[str, PrimitiveContextValue] = {}
    for key, val in value.items():
        if isinstance(val, (str, int, float, bool)):
            coerced[key] = val
        elif isinstance(val, Enum):
            coerced[key] = val.value
        elif isinstance(val, Path):
            coerced[key] = str(val)
        elif isinstance(val, Decimal):
            coerced[key] = float(val)
        else:
            error_msg = (
                f"Cannot coerce {type(val).__name__} to primitive type. "
                f"Only str, int, float, bool, Path, Enum, Decimal are allowed."
            )
            raise TypeError(error_msg)

    return coerced


@dataclass(frozen=True)
class ErrorContext:
    """Context information for errors.

    Only primitive types (str, int, float, bool) are allowed in
    additional_data so the context can always be logged and serialized.

    Attributes:
        operation: Optional operation name that caused the error
        additional_data: Optional dict with primitive values only
    """

    operation: str | None = None
    additional_data: dict[str, PrimitiveContextValue] | None = None

    def __post_init__(self) -> None:
        if self.additional_data is not None:
            object.__setattr__(
                self, "additional_data", _coerce_primitives(self.additional_data)
            )

    def safe_dict(self) -> dict[str, Any]:
        """Export context as dict with additional_data always present.

        Example:
            >>> ErrorContext(operation="cache_get").safe_dict()
            {'operation': 'cache_get', 'additional_data': {}}
        """
        data: dict[str, Any] = {}
        if self.operation is not None:
            data["operation"] = self.operation
        data["additional_data"] = dict(self.additional_data or {})
        return data


class OtakuProxyError(Exception):
    """Base exception class for all otakuproxy errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        context: ErrorContext | None = None,
        original_error: BaseException | None = None,
        details: Any | None = None,
    ) -> None:
        """Initialize OtakuProxyError.

        Args:
            code: Error code from ErrorCode enum
            message: Human-readable error message
            context: Additional context information
            original_error: Original exception that caused this error
            details: Optional JSON-serializable details for the response body
        """
        self.code = code
        self.message = message
        self.context = context or ErrorContext()
        self.original_error = original_error
        self.details = details
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(f"{code.value}: {message}")

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"

    @property
    def status_code(self) -> int:
        """HTTP status for this error; internal codes map to 500."""
        return ERROR_STATUS_MAP.get(
            self.code, HTTPStatusCodes.INTERNAL_SERVER_ERROR
        )

    @property
    def retryable(self) -> bool:
        return self.code not in NON_RETRYABLE_CODES

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging."""
        return {
            "code": self.code.value,
            "message": self.message,
            "context": self.context.safe_dict(),
            "original_error": str(self.original_error) if self.original_error else None,
        }

    def to_response(self) -> dict[str, Any]:
        """Convert error to the JSON body returned to API clients."""
        error: dict[str, Any] = {
            "code": self.code.value,
            "message": self.message,
        }
        if self.details:
            error["details"] = self.details
        error["timestamp"] = self.timestamp
        return {"success": False, "error": error}


class DomainError(OtakuProxyError):
    """Errors caused by the request itself.

    Examples:
    - Unknown anime slug (NOT_FOUND)
    - Malformed parameters (INVALID_REQUEST, VALIDATION_ERROR)
    """


class InfrastructureError(OtakuProxyError):
    """Errors raised while talking to external systems.

    Examples:
    - Upstream site unreachable or returning 5xx
    - Request or per-task timeouts
    - Redis failures (absorbed inside the cache layer)
    """


class ApplicationError(OtakuProxyError):
    """Application-level errors such as configuration problems."""


def create_not_found_error(
    resource: str,
    operation: str | None = None,
    original_error: BaseException | None = None,
) -> DomainError:
    """Create a not found error with context."""
    return DomainError(
        ErrorCode.NOT_FOUND,
        f"{resource} not found",
        ErrorContext(operation=operation, additional_data={"resource": resource}),
        original_error,
    )


def create_validation_error(
    message: str,
    field: str | None = None,
    operation: str | None = None,
    details: Any | None = None,
) -> DomainError:
    """Create a validation error with context."""
    additional_data: dict[str, PrimitiveContextValue] | None = (
        {"field": field} if field else None
    )
    return DomainError(
        ErrorCode.VALIDATION_ERROR,
        message,
        ErrorContext(operation=operation, additional_data=additional_data),
        details=details,
    )


def create_timeout_error(
    timeout: float,
    operation: str | None = None,
    original_error: BaseException | None = None,
) -> InfrastructureError:
    """Create a timeout error with context."""
    return InfrastructureError(
        ErrorCode.TIMEOUT,
        f"Operation timed out after {timeout:g}s",
        ErrorContext(operation=operation, additional_data={"timeout": timeout}),
        original_error,
    )


def create_upstream_error(
    message: str,
    operation: str | None = None,
    url: str | None = None,
    status_code: int | None = None,
    original_error: BaseException | None = None,
) -> InfrastructureError:
    """Create an upstream fetch error with context."""
    additional_data: dict[str, PrimitiveContextValue] = {}
    if url is not None:
        additional_data["url"] = url
    if status_code is not None:
        additional_data["status_code"] = status_code
    return InfrastructureError(
        ErrorCode.UPSTREAM_FETCH_ERROR,
        message,
        ErrorContext(operation=operation, additional_data=additional_data or None),
        original_error,
    )


def create_config_error(
    message: str,
    config_key: str | None = None,
    operation: str | None = None,
    original_error: BaseException | None = None,
) -> ApplicationError:
    """Create a configuration error with context."""
    additional_data: dict[str, PrimitiveContextValue] | None = (
        {"config_key": config_key} if config_key else None
    )
    return ApplicationError(
        ErrorCode.CONFIG_ERROR,
        message,
        ErrorContext(operation=operation, additional_data=additional_data),
        original_error,
    )


def classify_exception(
    error: BaseException,
    operation: str | None = None,
) -> OtakuProxyError:
    """Map an arbitrary exception onto the error taxonomy.

    otakuproxy errors pass through unchanged. Timeouts become TIMEOUT,
    connection-level failures become UPSTREAM_FETCH_ERROR and anything
    else becomes INTERNAL_ERROR.

    Args:
        error: Exception to classify
        operation: Operation name recorded in the error context

    Returns:
        An OtakuProxyError wrapping the original exception
    """
    if isinstance(error, OtakuProxyError):
        return error

    context = ErrorContext(
        operation=operation,
        additional_data={"error_type": type(error).__name__},
    )

    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return InfrastructureError(
            ErrorCode.TIMEOUT, f"Operation timed out: {error!s}", context, error
        )
    if isinstance(error, (ConnectionError, OSError)):
        return InfrastructureError(
            ErrorCode.UPSTREAM_FETCH_ERROR,
            f"Connection failed: {error!s}",
            context,
            error,
        )
    return ApplicationError(
        ErrorCode.INTERNAL_ERROR, f"Unexpected error: {error!s}", context, error
    )


def is_retryable(error: BaseException) -> bool:
    """Return True unless the failure says the request itself is wrong.

    Cancellation and other non-Exception signals are never retried.
    """
    if not isinstance(error, Exception):
        return False
    return classify_exception(error).retryable
