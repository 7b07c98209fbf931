#!/usr/bin/env python3
"""Request Executor for the DT Cloud REST API.

This module turns a Request into a typed result or a DTError. It handles the
concerns every call shares:

    - Authorization header from a CredentialProvider, fresh on every attempt
    - One credential refresh and retry when the server answers 401
    - Transparent, unbounded retry of 429 responses after Retry-After seconds
    - Classification of every other failure into the DTError hierarchy
    - JSON decoding, optionally validated into pydantic models
    - Page envelopes ({"<key>": [...], "nextPageToken": "..."})
    - Debug diagnostics (network and parse timings)

Design Philosophy:
    The executor knows HOW to talk to the API, not WHAT to fetch. Resource
    modules (devices, projects, ...) build Requests and hand them over.

Usage:
    async with RequestExecutor(BasicAuthProvider(account)) as executor:
        project = await executor.get("projects/p1", model=Project)

        page = await executor.send_page(
            Request(HTTPMethod.GET, "projects/p1/devices"),
            paging_key="devices",
            model=Device,
            page_size=100,
        )

Author: DT Cloud Client Team
"""
import asyncio
import json
import logging
import time
from functools import lru_cache
from typing import Any, Optional

import aiohttp
from pydantic import TypeAdapter, ValidationError

from .auth import CredentialProvider
from .classifier import classify_response, classify_transport_error
from .config import ClientConfig
from .exceptions import (
    TooManyRequestsError,
    UnauthorizedError,
    UnknownError,
)
from .pagination import PagedResult
from .request import HTTPMethod, Request

logger = logging.getLogger(__name__)


class _EmptyResponse:
    """Marker returned for successful responses without a body."""

    _instance: Optional["_EmptyResponse"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "EMPTY_RESPONSE"


EMPTY_RESPONSE = _EmptyResponse()


@lru_cache(maxsize=256)
def _adapter(model: Any) -> TypeAdapter:
    return TypeAdapter(model)


def decode_json(body: bytes, model: Any = None, context: str = "response") -> Any:
    """Decode a JSON body, validating it into ``model`` when given.

    Raises:
        UnknownError: If the body is not JSON or does not match the model
    """
    try:
        data = json.loads(body)
        if model is None:
            return data
        return _adapter(model).validate_python(data)
    except ValidationError as e:
        raise UnknownError(
            f"Unexpected {context} format",
            details={"errors": e.error_count()},
            cause=e,
        )
    except ValueError as e:
        raise UnknownError(f"Invalid JSON in {context}", cause=e)


class RequestExecutor:
    """Async executor for DT Cloud API requests.

    Designed to be used as an async context manager so the aiohttp session
    is always closed:

        async with RequestExecutor(provider) as executor:
            data = await executor.get("organizations")

    An existing aiohttp.ClientSession may be passed in; it is then left
    open on exit.

    Attributes:
        credentials: CredentialProvider used for the Authorization header
        config: ClientConfig with base URLs and timeouts
    """

    def __init__(
        self,
        credentials: Optional[CredentialProvider],
        config: Optional[ClientConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.credentials = credentials
        self.config = config or ClientConfig()
        self._session = session
        self._owns_session = session is None

    # ----------------------------------------
    # Context Manager Protocol
    # ----------------------------------------

    async def __aenter__(self) -> "RequestExecutor":
        """Enter async context: create the HTTP session if none was given."""
        if self._session is None:
            self._session = aiohttp.ClientSession(
                connector=aiohttp.TCPConnector(
                    limit=10,
                    limit_per_host=10,
                ),
                timeout=aiohttp.ClientTimeout(
                    total=self.config.response_timeout,
                    sock_read=self.config.request_timeout,
                ),
            )
            self._owns_session = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP session if this executor created it."""
        if self._session and self._owns_session:
            await self._session.close()
            self._session = None

    @property
    def session(self) -> aiohttp.ClientSession:
        if not self._session:
            raise RuntimeError(
                "RequestExecutor must be used as async context manager: "
                "async with RequestExecutor(...) as executor:"
            )
        return self._session

    # ----------------------------------------
    # Low-Level Request Methods
    # ----------------------------------------

    async def _get_auth_headers(self, request: Request, force_refresh: bool) -> dict[str, str]:
        headers = dict(request.headers)
        if not request.authenticated:
            return headers

        if self.credentials is None:
            raise UnauthorizedError("No credential provider configured")

        token = await self.credentials.get_token(force_refresh=force_refresh)
        headers["Authorization"] = token.authorization_header
        return headers

    async def _open(
        self,
        request: Request,
        url: str,
        headers: dict[str, str],
        timeout: Optional[aiohttp.ClientTimeout],
    ) -> aiohttp.ClientResponse:
        kwargs: dict[str, Any] = {"headers": headers, "data": request.body}
        if timeout is not None:
            kwargs["timeout"] = timeout
        try:
            return await self.session.request(request.method.value, url, **kwargs)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"{request.method.value} {request.endpoint} failed: {e!r}")
            raise classify_transport_error(e, url) from e

    async def _read(self, response: aiohttp.ClientResponse, url: str) -> bytes:
        try:
            return await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise classify_transport_error(e, url) from e
        finally:
            response.release()

    async def _execute(
        self,
        request: Request,
        stream: bool = False,
        timeout: Optional[aiohttp.ClientTimeout] = None,
    ) -> tuple[aiohttp.ClientResponse, Optional[bytes]]:
        """Run the retry loop for a request.

        Returns the successful response together with its body. With
        ``stream=True`` the body is None and the response is left open for
        the caller to consume and release.

        Raises:
            UnknownError: If the URL cannot be built (no network call is made)
            DTError: For any failure other than 429
        """
        url = request.url(self.config.base_url)
        if url is None:
            raise UnknownError(
                "Could not build request URL",
                details={"endpoint": request.endpoint},
            )

        force_refresh = False
        auth_retried = False

        while True:
            headers = await self._get_auth_headers(request, force_refresh)
            force_refresh = False

            network_start = time.perf_counter()
            response = await self._open(request, url, headers, timeout)

            if 200 <= response.status < 300 and stream:
                return response, None

            body = await self._read(response, url)
            network_ms = (time.perf_counter() - network_start) * 1000
            logger.debug(
                f"Finished request to {request.endpoint} in {network_ms:.2f} ms "
                f"(HTTP {response.status}, {len(body)} bytes)"
            )

            error = classify_response(response.status, response.headers, body, url)
            if error is None:
                return response, body

            if isinstance(error, TooManyRequestsError):
                logger.warning(
                    f"Rate limited on {request.method.value} {request.endpoint}, "
                    f"retrying in {error.retry_after}s"
                )
                await asyncio.sleep(error.retry_after)
                continue

            if (
                isinstance(error, UnauthorizedError)
                and request.authenticated
                and self.credentials is not None
                and not auth_retried
            ):
                logger.warning(f"Unauthorized on {request.endpoint}, refreshing credentials")
                auth_retried = True
                force_refresh = True
                continue

            logger.error(f"{request.method.value} {request.endpoint} failed: {error}")
            raise error

    # ----------------------------------------
    # Public API
    # ----------------------------------------

    async def send(self, request: Request, model: Any = None) -> Any:
        """Execute a request and decode its response.

        Args:
            request: The request to send
            model: Optional type (pydantic model, list[Model], ...) to
                validate the JSON body into. None returns plain JSON.

        Returns:
            Decoded body, or EMPTY_RESPONSE for a successful empty body

        Raises:
            DTError: Classified failure (429 is retried, never raised)
        """
        _, body = await self._execute(request)
        if not body or not body.strip():
            return EMPTY_RESPONSE

        parse_start = time.perf_counter()
        result = decode_json(body, model, context=f"response from {request.endpoint}")
        parse_ms = (time.perf_counter() - parse_start) * 1000
        logger.debug(f"Parsed {len(body)} bytes from {request.endpoint} in {parse_ms:.2f} ms")
        return result

    async def send_page(
        self,
        request: Request,
        paging_key: str,
        model: Any = None,
        page_size: Optional[int] = None,
        page_token: Optional[str] = None,
    ) -> PagedResult:
        """Fetch one page of a list endpoint.

        Args:
            request: The list request (page params are added to a copy)
            paging_key: Envelope key holding the items, e.g. "devices"
            model: Optional item type to validate each element into
            page_size: Value for the page_size query parameter
            page_token: Value for the page_token query parameter

        Returns:
            PagedResult with items and next_page_token (None on the last page)
        """
        paged = request.with_params(page_size=page_size, page_token=page_token or None)
        data = await self.send(paged)
        if data is EMPTY_RESPONSE:
            data = {}

        if not isinstance(data, dict):
            raise UnknownError(
                "Unexpected page format",
                details={"endpoint": request.endpoint, "paging_key": paging_key},
            )

        raw_items = data.get(paging_key)
        if raw_items is None:
            raw_items = []
        if not isinstance(raw_items, list):
            raise UnknownError(
                f"Expected a list under {paging_key!r}",
                details={"endpoint": request.endpoint},
            )

        items = raw_items
        if model is not None:
            try:
                items = _adapter(list[model]).validate_python(raw_items)
            except ValidationError as e:
                raise UnknownError(
                    f"Unexpected {paging_key} format",
                    details={"errors": e.error_count()},
                    cause=e,
                )

        next_token = data.get("nextPageToken")
        if not isinstance(next_token, str) or not next_token:
            next_token = None
        return PagedResult(items=items, next_page_token=next_token)

    async def open_stream(
        self,
        request: Request,
        timeout: Optional[float] = None,
    ) -> aiohttp.ClientResponse:
        """Open a long-lived response (event stream) after auth and 429 handling.

        The caller owns the returned response and must release it.
        """
        total = timeout or self.config.stream_timeout
        response, _ = await self._execute(
            request,
            stream=True,
            timeout=aiohttp.ClientTimeout(total=total, sock_read=total),
        )
        return response

    # ----------------------------------------
    # High-Level Request Methods
    # ----------------------------------------

    async def get(
        self,
        endpoint: str,
        params: Optional[dict] = None,
        model: Any = None,
        base_url: Optional[str] = None,
    ) -> Any:
        """Make a GET request."""
        request = Request(HTTPMethod.GET, endpoint, base_url=base_url)
        for name, value in (params or {}).items():
            if value is not None:
                request.set_param(name, value)
        return await self.send(request, model)

    async def post(
        self,
        endpoint: str,
        json_body: Any = None,
        model: Any = None,
        base_url: Optional[str] = None,
    ) -> Any:
        """Make a POST request with an optional JSON body."""
        if json_body is None:
            request = Request(HTTPMethod.POST, endpoint, base_url=base_url)
        else:
            request = Request.json(HTTPMethod.POST, endpoint, json_body, base_url=base_url)
        return await self.send(request, model)

    async def patch(
        self,
        endpoint: str,
        json_body: Any,
        model: Any = None,
        base_url: Optional[str] = None,
    ) -> Any:
        """Make a PATCH request with a JSON body."""
        request = Request.json(HTTPMethod.PATCH, endpoint, json_body, base_url=base_url)
        return await self.send(request, model)

    async def delete(self, endpoint: str, base_url: Optional[str] = None) -> Any:
        """Make a DELETE request."""
        return await self.send(Request(HTTPMethod.DELETE, endpoint, base_url=base_url))

