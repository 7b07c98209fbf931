#!/usr/bin/env python3
"""Error Classification for DT Cloud API responses.

Maps every way a call can fail onto the closed DTError hierarchy:

    - Transport failures (connection refused, DNS, timeouts) -> ServerUnavailableError
    - HTTP statuses 400/401/403/404/409/429/500/503/504 -> their specific class
    - Any other non-2xx status -> UnknownError
    - Error frames received on an event stream (gRPC or HTTP codes)

The JSON error body ``{"error": ..., "code": ..., "help": ...}`` is parsed
on every path so the server's message, error code and help link are kept.
The HTTP status alone decides the class; the body code is only recorded.

Usage:
    error = classify_response(response.status, response.headers, body)
    if error is not None:
        raise error

Author: DT Cloud Client Team
"""
import json
import logging
import math
from typing import Any, Mapping, Optional

from .exceptions import (
    BadRequestError,
    ConflictError,
    DTError,
    ForbiddenError,
    GatewayTimeoutError,
    InternalServerError,
    NotFoundError,
    ServerUnavailableError,
    ServiceUnavailableError,
    TooManyRequestsError,
    UnauthorizedError,
    UnknownError,
)

logger = logging.getLogger(__name__)

# Used when a 429 carries no usable Retry-After header
DEFAULT_RETRY_AFTER_SECONDS = 5.0

STATUS_ERRORS: dict[int, type[DTError]] = {
    400: BadRequestError,
    401: UnauthorizedError,
    403: ForbiddenError,
    404: NotFoundError,
    409: ConflictError,
    500: InternalServerError,
    503: ServiceUnavailableError,
    504: GatewayTimeoutError,
}

# Stream error frames carry either a gRPC status code or an HTTP status.
STREAM_ERROR_CODES: dict[int, type[DTError]] = {
    3: BadRequestError,
    9: BadRequestError,
    11: BadRequestError,
    400: BadRequestError,
    16: UnauthorizedError,
    401: UnauthorizedError,
    7: ForbiddenError,
    403: ForbiddenError,
    5: NotFoundError,
    404: NotFoundError,
    2: InternalServerError,
    13: InternalServerError,
    15: InternalServerError,
    500: InternalServerError,
    14: ServiceUnavailableError,
    503: ServiceUnavailableError,
}

# Cancelled, deadline exceeded, gateway timeout: the server ended the
# stream session on its own schedule.
STREAM_SESSION_TIMEOUT_CODES = frozenset({1, 4, 504})


# ============================================
# Body / Header Parsing
# ============================================

def parse_error_body(body: Optional[bytes]) -> dict[str, Any]:
    """Extract message, code and help link from a JSON error body.

    Args:
        body: Raw response body (may be empty or not JSON)

    Returns:
        Dict with "message", "error_code" and "help_link" keys (values may be None)
    """
    parsed: dict[str, Any] = {"message": None, "error_code": None, "help_link": None}
    if not body:
        return parsed

    try:
        data = json.loads(body)
    except (ValueError, UnicodeDecodeError):
        return parsed

    if not isinstance(data, dict):
        return parsed

    message = data.get("error")
    if isinstance(message, str) and message:
        parsed["message"] = message
    parsed["error_code"] = data.get("code")
    help_link = data.get("help")
    if isinstance(help_link, str) and help_link:
        parsed["help_link"] = help_link
    return parsed


def parse_retry_after(headers: Optional[Mapping[str, str]]) -> float:
    """Read the Retry-After header as seconds.

    Falls back to DEFAULT_RETRY_AFTER_SECONDS when the header is absent,
    negative, infinite or not a number.
    """
    if not headers:
        return DEFAULT_RETRY_AFTER_SECONDS

    value = headers.get("Retry-After")
    if value is None:
        # Plain dicts are case-sensitive
        for key, candidate in headers.items():
            if key.lower() == "retry-after":
                value = candidate
                break

    if value is None:
        return DEFAULT_RETRY_AFTER_SECONDS

    try:
        seconds = float(str(value).strip())
    except ValueError:
        logger.debug(f"Unparseable Retry-After header {value!r}, using default")
        return DEFAULT_RETRY_AFTER_SECONDS

    if seconds < 0 or not math.isfinite(seconds):
        return DEFAULT_RETRY_AFTER_SECONDS
    return seconds


# ============================================
# Classification
# ============================================

def classify_transport_error(
    exc: BaseException,
    url: Optional[str] = None,
) -> ServerUnavailableError:
    """Wrap a connection/timeout failure as ServerUnavailableError."""
    details = {"url": url} if url else None
    return ServerUnavailableError(
        details=details,
        cause=exc,
    )


def classify_response(
    status: int,
    headers: Optional[Mapping[str, str]] = None,
    body: Optional[bytes] = None,
    url: Optional[str] = None,
) -> Optional[DTError]:
    """Classify an HTTP response.

    Args:
        status: HTTP status code
        headers: Response headers (for Retry-After)
        body: Raw response body
        url: Request URL, recorded in the error details

    Returns:
        None for 2xx responses, otherwise the matching DTError instance
    """
    if 200 <= status < 300:
        return None

    parsed = parse_error_body(body)
    details = {"url": url} if url else None

    if status == 429:
        return TooManyRequestsError(
            parse_retry_after(headers),
            status_code=status,
            details=details,
            **parsed,
        )

    error_cls = STATUS_ERRORS.get(status)
    if error_cls is None:
        error_cls = UnknownError
        if parsed["message"] is None:
            parsed["message"] = "Unexpected status code"

    return error_cls(status_code=status, details=details, **parsed)


def classify_stream_error(payload: Any) -> Optional[DTError]:
    """Classify the ``error`` object of an event-stream error frame.

    Expected shape: ``{"code": 5, "message": "...", "details": [{"help": "..."}]}``

    Returns:
        None for session-timeout codes that only mean the server rotated
        the stream, otherwise the matching DTError instance
    """
    if not isinstance(payload, dict):
        return UnknownError("Malformed stream error frame", details={"payload": repr(payload)[:200]})

    code = payload.get("code")
    if isinstance(code, int) and code in STREAM_SESSION_TIMEOUT_CODES:
        logger.debug(f"Stream session timeout frame (code={code})")
        return None

    message = payload.get("message")
    if not isinstance(message, str) or not message:
        message = None

    help_link = None
    stream_details = payload.get("details")
    if isinstance(stream_details, list) and stream_details:
        first = stream_details[0]
        if isinstance(first, dict) and isinstance(first.get("help"), str):
            help_link = first["help"]

    error_cls = STREAM_ERROR_CODES.get(code, UnknownError) if isinstance(code, int) else UnknownError
    status_code = code if isinstance(code, int) and code >= 100 else None
    return error_cls(
        message,
        help_link=help_link,
        error_code=code,
        status_code=status_code,
    )
