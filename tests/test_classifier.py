#!/usr/bin/env python3
"""Tests for error classification.

Tests cover:
    - HTTP status to error class mapping
    - Error body parsing (message, code, help link)
    - Retry-After parsing and its default
    - Transport errors
    - Event stream error frames, including session timeouts
"""
import asyncio
import json
import sys

import pytest

sys.path.insert(0, str(__file__).rsplit("/tests", 1)[0])
from src.dtcloud.api.classifier import (
    DEFAULT_RETRY_AFTER_SECONDS,
    classify_response,
    classify_stream_error,
    classify_transport_error,
    parse_error_body,
    parse_retry_after,
)
from src.dtcloud.api.exceptions import (
    BadRequestError,
    ConflictError,
    ErrorType,
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


# ============================================
# HTTP Status Classification Tests
# ============================================

class TestClassifyResponse:
    """Test classify_response()."""

    @pytest.mark.parametrize("status", [200, 201, 204, 299])
    def test_success_is_none(self, status):
        assert classify_response(status, {}, b"") is None

    @pytest.mark.parametrize(
        "status,error_cls",
        [
            (400, BadRequestError),
            (401, UnauthorizedError),
            (403, ForbiddenError),
            (404, NotFoundError),
            (409, ConflictError),
            (500, InternalServerError),
            (503, ServiceUnavailableError),
            (504, GatewayTimeoutError),
        ],
    )
    def test_status_mapping(self, status, error_cls):
        """Each documented status maps to exactly one error class."""
        error = classify_response(status, {}, b"")
        assert type(error) is error_cls
        assert error.status_code == status

    @pytest.mark.parametrize("status", [302, 418, 502])
    def test_unknown_status(self, status):
        """Statuses without a mapping become UnknownError."""
        error = classify_response(status, {}, b"")
        assert type(error) is UnknownError
        assert error.error_type is ErrorType.UNKNOWN_ERROR
        assert "Unexpected status code" in error.message

    def test_body_fields_are_kept(self):
        """Server message, code and help link are carried on the error."""
        body = json.dumps({
            "error": "Device not found",
            "code": 404,
            "help": "https://docs.example.com/errors#not-found",
        }).encode()
        error = classify_response(404, {}, body, url="https://api.test/v2/projects/p/devices/d")

        assert error.message == "Device not found"
        assert error.server_message == "Device not found"
        assert error.error_code == 404
        assert error.help_link == "https://docs.example.com/errors#not-found"
        assert error.details["url"].endswith("/devices/d")

    def test_non_json_body_uses_default_message(self):
        error = classify_response(500, {}, b"<html>oops</html>")
        assert error.message == "Server error"
        assert error.server_message is None

    def test_too_many_requests(self):
        """429 carries the Retry-After delay."""
        error = classify_response(429, {"Retry-After": "7"}, b"")
        assert isinstance(error, TooManyRequestsError)
        assert error.retry_after == 7
        assert error.recoverable

    def test_too_many_requests_without_body_or_url(self):
        error = classify_response(429, {"Retry-After": "4"})
        assert isinstance(error, TooManyRequestsError)
        assert error.retry_after == 4
        assert error.details["retry_after_seconds"] == 4


# ============================================
# Header / Body Parsing Tests
# ============================================

class TestParsing:
    """Test the small parsing helpers."""

    def test_retry_after_numeric(self):
        assert parse_retry_after({"Retry-After": "1.5"}) == 1.5

    def test_retry_after_case_insensitive_for_dicts(self):
        assert parse_retry_after({"retry-after": "3"}) == 3

    @pytest.mark.parametrize(
        "headers",
        [
            None,
            {},
            {"Retry-After": "soon"},
            {"Retry-After": "-4"},
            {"Retry-After": "inf"},
            {"Retry-After": "nan"},
        ],
    )
    def test_retry_after_default(self, headers):
        """Missing or invalid headers fall back to the default delay."""
        assert parse_retry_after(headers) == DEFAULT_RETRY_AFTER_SECONDS

    def test_default_retry_after_is_five_seconds(self):
        assert DEFAULT_RETRY_AFTER_SECONDS == 5

    def test_parse_error_body_non_object(self):
        assert parse_error_body(b"[1, 2]") == {"message": None, "error_code": None, "help_link": None}

    def test_parse_error_body_empty(self):
        assert parse_error_body(b"")["message"] is None


# ============================================
# Transport Error Tests
# ============================================

class TestTransportErrors:
    """Test classify_transport_error()."""

    def test_timeout_is_server_unavailable(self):
        cause = asyncio.TimeoutError()
        error = classify_transport_error(cause, "https://api.test/v2/x")

        assert isinstance(error, ServerUnavailableError)
        assert error.recoverable
        assert error.cause is cause
        assert error.__cause__ is cause
        assert error.details == {"url": "https://api.test/v2/x"}


# ============================================
# Stream Error Frame Tests
# ============================================

class TestClassifyStreamError:
    """Test classify_stream_error()."""

    @pytest.mark.parametrize("code", [1, 4, 504])
    def test_session_timeouts_are_ignored(self, code):
        """Codes meaning the server rotated the stream produce no error."""
        assert classify_stream_error({"code": code, "message": "timeout"}) is None

    @pytest.mark.parametrize(
        "code,error_cls",
        [
            (3, BadRequestError),
            (16, UnauthorizedError),
            (7, ForbiddenError),
            (5, NotFoundError),
            (13, InternalServerError),
            (14, ServiceUnavailableError),
            (403, ForbiddenError),
        ],
    )
    def test_code_mapping(self, code, error_cls):
        assert type(classify_stream_error({"code": code, "message": "x"})) is error_cls

    def test_help_link_from_details(self):
        error = classify_stream_error({
            "code": 7,
            "message": "Permission denied",
            "details": [{"help": "https://docs.example.com/403"}],
        })
        assert error.message == "Permission denied"
        assert error.help_link == "https://docs.example.com/403"
        assert error.error_code == 7
        assert error.status_code is None

    def test_http_code_sets_status(self):
        error = classify_stream_error({"code": 404, "message": "gone"})
        assert error.status_code == 404

    def test_unmapped_code(self):
        assert type(classify_stream_error({"code": 99})) is UnknownError

    def test_malformed_payload(self):
        assert type(classify_stream_error("boom")) is UnknownError
