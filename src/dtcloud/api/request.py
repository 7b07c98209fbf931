#!/usr/bin/env python3
"""Request description used by the executor.

A Request is plain data: method, base URL, endpoint path, multi-valued query
parameters, ordered headers and an optional body. Building the final URL is
the only logic here, and it never raises: an endpoint that cannot be
encoded gives ``None`` so the executor can fail without touching the network.
"""
import json
import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterable, Optional, Union
from urllib.parse import quote, urlencode, urlsplit


class HTTPMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


# RFC 3986 path characters (unreserved, sub-delims, ":", "@", "/") plus
# well-formed percent escapes.
_VALID_PATH = re.compile(r"^(?:[A-Za-z0-9\-._~!$&'()*+,;=:@/]|%[0-9A-Fa-f]{2})*$")

ParamValue = Union[str, int, float, bool]


def _param_str(value: ParamValue) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass
class Request:
    """One API call, ready to be sent.

    Attributes:
        method: HTTP method
        endpoint: Path relative to base_url, e.g. "projects/p1/devices"
        base_url: Base URL; None means the executor's configured base URL
        params: Query parameters, each name mapping to one or more values
        headers: Ordered (name, value) pairs; set_header replaces by name
        body: Raw request body
        authenticated: Attach the Authorization header when True
    """
    method: HTTPMethod
    endpoint: str
    base_url: Optional[str] = None
    params: dict[str, list[str]] = field(default_factory=dict)
    headers: list[tuple[str, str]] = field(default_factory=list)
    body: Optional[bytes] = None
    authenticated: bool = True

    @classmethod
    def json(
        cls,
        method: HTTPMethod,
        endpoint: str,
        payload: Any,
        **kwargs,
    ) -> "Request":
        """Build a request with a JSON-encoded body and matching Content-Type."""
        request = cls(method, endpoint, body=json.dumps(payload).encode("utf-8"), **kwargs)
        request.set_header("Content-Type", "application/json")
        return request

    # ----------------------------------------
    # Headers
    # ----------------------------------------

    def set_header(self, name: str, value: str) -> None:
        """Set a header, replacing any earlier value for the same name."""
        lowered = name.lower()
        self.headers = [(k, v) for k, v in self.headers if k.lower() != lowered]
        self.headers.append((name, value))

    def header(self, name: str) -> Optional[str]:
        lowered = name.lower()
        for key, value in reversed(self.headers):
            if key.lower() == lowered:
                return value
        return None

    # ----------------------------------------
    # Query parameters
    # ----------------------------------------

    def add_param(self, name: str, *values: ParamValue) -> None:
        """Append one or more values to a query parameter."""
        self.params.setdefault(name, []).extend(_param_str(v) for v in values)

    def set_param(self, name: str, values: Union[ParamValue, Iterable[ParamValue]]) -> None:
        """Replace all values of a query parameter."""
        if isinstance(values, (str, int, float, bool)):
            values = [values]
        self.params[name] = [_param_str(v) for v in values]

    def with_params(self, **params: Union[ParamValue, Iterable[ParamValue], None]) -> "Request":
        """Copy of this request with the given parameters replaced (None removes)."""
        copy = replace(
            self,
            params={k: list(v) for k, v in self.params.items()},
            headers=list(self.headers),
        )
        for name, values in params.items():
            if values is None:
                copy.params.pop(name, None)
            else:
                copy.set_param(name, values)
        return copy

    # ----------------------------------------
    # URL
    # ----------------------------------------

    def url(self, default_base_url: Optional[str] = None) -> Optional[str]:
        """Build the absolute URL, or None if it cannot be encoded."""
        base = self.base_url or default_base_url
        if not base:
            return None

        parts = urlsplit(base)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            return None
        if any(c.isspace() for c in base):
            return None
        if not _VALID_PATH.match(self.endpoint):
            return None

        url = base.rstrip("/")
        endpoint = self.endpoint.lstrip("/")
        if endpoint:
            url = f"{url}/{endpoint}"

        query = urlencode(
            [(name, value) for name, values in self.params.items() for value in values],
            quote_via=quote,
        )
        if query:
            url = f"{url}?{query}"
        return url

    def __repr__(self) -> str:
        return f"Request({self.method.value} {self.endpoint!r}, params={self.params!r})"
