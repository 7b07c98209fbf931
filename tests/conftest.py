"""Shared fixtures: fake aiohttp responses and sessions, credential providers."""
import json
import sys
from unittest.mock import AsyncMock, MagicMock

import pytest

sys.path.insert(0, str(__file__).rsplit("/tests", 1)[0])
from src.dtcloud.api.auth import StaticTokenProvider
from src.dtcloud.api.client import RequestExecutor
from src.dtcloud.api.config import ClientConfig


def _body_bytes(body) -> bytes:
    if body is None:
        return b""
    if isinstance(body, bytes):
        return body
    if isinstance(body, str):
        return body.encode("utf-8")
    return json.dumps(body).encode("utf-8")


@pytest.fixture
def make_response():
    """Factory for fake aiohttp.ClientResponse objects.

    ``chunks`` feeds ``response.content.iter_any()`` for streaming tests.
    """

    def factory(status=200, body=None, headers=None, chunks=None, url="https://api.test/v2/x"):
        response = MagicMock()
        response.status = status
        response.headers = headers or {}
        response.url = url
        response.read = AsyncMock(return_value=_body_bytes(body))
        response.release = MagicMock()
        response.close = MagicMock()

        async def iter_any():
            for chunk in chunks or []:
                yield chunk

        response.content.iter_any = iter_any
        return response

    return factory


@pytest.fixture
def make_session():
    """Factory for a fake session whose request() returns the given responses in order."""

    def factory(*responses):
        session = MagicMock()
        session.request = AsyncMock(side_effect=list(responses))
        session.close = AsyncMock()
        return session

    return factory


@pytest.fixture
def provider():
    return StaticTokenProvider("test-token")


@pytest.fixture
def config():
    return ClientConfig(base_url="https://api.test/v2/", emulator_base_url="https://emulator.test/v2/")


@pytest.fixture
def make_executor(provider, config, make_session):
    """Factory for a RequestExecutor bound to a fake session."""

    def factory(*responses):
        session = make_session(*responses)
        return RequestExecutor(provider, config, session=session)

    return factory
