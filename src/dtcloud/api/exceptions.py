#!/usr/bin/env python3
"""Exception Hierarchy for the DT Cloud REST and streaming API.

Every failure surfaced by the client is one of a closed set of error kinds.
Each kind is its own exception class so callers can catch exactly what they
care about, while ``DTError`` catches everything.

Design Principles:
    - All exceptions inherit from DTError
    - The HTTP status (or transport failure) decides the class
    - Server-provided message, error code and help link are preserved
    - Raw aiohttp / JSON / pydantic errors are chained, never leaked

Exception Hierarchy:
    DTError (base)
    ├── ServerUnavailableError (transport failure, timeout)
    ├── BadRequestError (400)
    ├── UnauthorizedError (401)
    ├── ForbiddenError (403)
    ├── NotFoundError (404)
    ├── ConflictError (409)
    ├── TooManyRequestsError (429, carries retry_after)
    ├── InternalServerError (500)
    ├── ServiceUnavailableError (503)
    ├── GatewayTimeoutError (504)
    └── UnknownError (anything else, decode failures)
        └── ConfigurationError (invalid client configuration)

Author: DT Cloud Client Team
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class ErrorType(str, Enum):
    """Closed set of error kinds the client can report."""

    SERVER_UNAVAILABLE = "server_unavailable"
    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    TOO_MANY_REQUESTS = "too_many_requests"
    INTERNAL_SERVER_ERROR = "internal_server_error"
    SERVICE_UNAVAILABLE = "service_unavailable"
    GATEWAY_TIMEOUT = "gateway_timeout"
    UNKNOWN_ERROR = "unknown_error"


# ============================================
# Base Exception
# ============================================

class DTError(Exception):
    """Base exception for all DT Cloud client errors.

    Attributes:
        error_type: The ErrorType kind of this error
        message: Human-readable description (server message when provided)
        server_message: The "error" field of the response body, if any
        help_link: The "help" URL from the response body, if any
        error_code: The "code" field of the response body, if any
        status_code: HTTP status that produced the error, if any
        details: Additional context as a dictionary
        timestamp: When the error occurred (UTC)
        cause: The original exception that caused this error
        recoverable: Whether retrying later could succeed
    """

    error_type: ErrorType = ErrorType.UNKNOWN_ERROR
    default_message: str = "Unexpected error"
    default_recoverable: bool = False

    def __init__(
        self,
        message: Optional[str] = None,
        help_link: Optional[str] = None,
        error_code: Optional[Any] = None,
        status_code: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
        recoverable: Optional[bool] = None,
    ):
        self.server_message = message
        self.message = message or self.default_message
        super().__init__(self.message)
        self.help_link = help_link
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc)
        self.cause = cause
        self.recoverable = self.default_recoverable if recoverable is None else recoverable

        if cause:
            self.__cause__ = cause

    @property
    def code(self) -> str:
        """Machine-readable code, e.g. "NOT_FOUND"."""
        return self.error_type.value.upper()

    def __str__(self) -> str:
        parts = [f"[{self.code}]", self.message]
        if self.status_code is not None:
            parts.append(f"(HTTP {self.status_code})")
        if self.help_link:
            parts.append(f"see {self.help_link}")
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            parts.append(f"({detail_str})")
        return " ".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"status_code={self.status_code!r}, "
            f"error_code={self.error_code!r}, "
            f"help_link={self.help_link!r}, "
            f"recoverable={self.recoverable})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.error_type.value,
            "message": self.message,
            "code": self.code,
            "error_code": self.error_code,
            "status_code": self.status_code,
            "help_link": self.help_link,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "recoverable": self.recoverable,
            "cause": str(self.cause) if self.cause else None,
        }


# ============================================
# Transport Errors
# ============================================

class ServerUnavailableError(DTError):
    """Raised when the server could not be reached or the request timed out."""

    error_type = ErrorType.SERVER_UNAVAILABLE
    default_message = "Server unavailable"
    default_recoverable = True


# ============================================
# Client Errors (4xx)
# ============================================

class BadRequestError(DTError):
    """Raised on HTTP 400."""

    error_type = ErrorType.BAD_REQUEST
    default_message = "Invalid arguments"


class UnauthorizedError(DTError):
    """Raised on HTTP 401 or when no credentials could be obtained."""

    error_type = ErrorType.UNAUTHORIZED
    default_message = "Unauthorized"


class ForbiddenError(DTError):
    """Raised on HTTP 403."""

    error_type = ErrorType.FORBIDDEN
    default_message = "Forbidden"


class NotFoundError(DTError):
    """Raised on HTTP 404."""

    error_type = ErrorType.NOT_FOUND
    default_message = "Not found"


class ConflictError(DTError):
    """Raised on HTTP 409."""

    error_type = ErrorType.CONFLICT
    default_message = "Already exists"


class TooManyRequestsError(DTError):
    """Raised on HTTP 429.

    The executor retries these transparently; callers only see one when
    they classify a response themselves.

    Attributes:
        retry_after: Seconds to wait before retrying (from Retry-After header)
    """

    error_type = ErrorType.TOO_MANY_REQUESTS
    default_message = "Too many requests"
    default_recoverable = True

    def __init__(self, retry_after: float, message: Optional[str] = None, **kwargs):
        details = dict(kwargs.pop("details", None) or {})
        details["retry_after_seconds"] = retry_after
        super().__init__(message, details=details, **kwargs)
        self.retry_after = retry_after


# ============================================
# Server Errors (5xx)
# ============================================

class InternalServerError(DTError):
    """Raised on HTTP 500."""

    error_type = ErrorType.INTERNAL_SERVER_ERROR
    default_message = "Server error"
    default_recoverable = True


class ServiceUnavailableError(DTError):
    """Raised on HTTP 503."""

    error_type = ErrorType.SERVICE_UNAVAILABLE
    default_message = "Server unavailable"
    default_recoverable = True


class GatewayTimeoutError(DTError):
    """Raised on HTTP 504."""

    error_type = ErrorType.GATEWAY_TIMEOUT
    default_message = "Request timed out"
    default_recoverable = True


# ============================================
# Everything Else
# ============================================

class UnknownError(DTError):
    """Raised for unexpected statuses, undecodable payloads and invalid URLs."""

    error_type = ErrorType.UNKNOWN_ERROR
    default_message = "Unexpected error"


class ConfigurationError(UnknownError):
    """Raised when client configuration is missing or invalid.

    Only raised while building a client or its configuration, never
    from a request.
    """

    def __init__(
        self,
        message: str,
        missing_keys: Optional[list[str]] = None,
        **kwargs,
    ):
        details = dict(kwargs.pop("details", None) or {})
        if missing_keys:
            details["missing_keys"] = missing_keys
        super().__init__(message, details=details, recoverable=False, **kwargs)
        self.missing_keys = missing_keys or []

    @property
    def code(self) -> str:
        return "CONFIGURATION_ERROR"
