#!/usr/bin/env python3
"""Tests for the RequestExecutor.

Tests cover:
    - Authorization header and decoding into models
    - Transparent 429 retry honoring Retry-After
    - One credential refresh on 401
    - Invalid URLs failing without a network call
    - Transport failures and error classification
    - Page envelopes
"""
import asyncio
import sys
import time
from unittest.mock import AsyncMock

import aiohttp
import pytest

sys.path.insert(0, str(__file__).rsplit("/tests", 1)[0])
from src.dtcloud.api.auth import CredentialProvider, AccessToken
from src.dtcloud.api.client import EMPTY_RESPONSE, RequestExecutor
from src.dtcloud.api.exceptions import (
    NotFoundError,
    ServerUnavailableError,
    UnauthorizedError,
    UnknownError,
)
from src.dtcloud.api.models import Project
from src.dtcloud.api.request import HTTPMethod, Request


class CountingProvider(CredentialProvider):
    """Issues token-1, token-2, ... on every refresh."""

    def __init__(self):
        super().__init__()
        self.refreshes = 0

    async def refresh(self) -> None:
        self.refreshes += 1
        self._store(AccessToken(f"token-{self.refreshes}"))


# ============================================
# Basic Request Tests
# ============================================

class TestSend:
    """Test successful requests."""

    @pytest.mark.asyncio
    async def test_get_decodes_model(self, make_executor, make_response):
        """A 200 body is validated into the requested model."""
        executor = make_executor(make_response(200, {
            "name": "projects/p1",
            "displayName": "Warehouse",
            "organization": "organizations/o1",
            "sensorCount": 4,
        }))

        project = await executor.get("projects/p1", model=Project)

        assert project.id == "p1"
        assert project.display_name == "Warehouse"
        assert project.organization_id == "o1"
        assert project.sensor_count == 4

        method, url = executor.session.request.call_args.args
        assert method == "GET"
        assert url == "https://api.test/v2/projects/p1"
        headers = executor.session.request.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer test-token"

    @pytest.mark.asyncio
    async def test_empty_body(self, make_executor, make_response):
        executor = make_executor(make_response(200, b""))
        result = await executor.delete("projects/p1")
        assert result is EMPTY_RESPONSE
        assert not result

    @pytest.mark.asyncio
    async def test_unauthenticated_request_has_no_auth_header(self, make_executor, make_response):
        executor = make_executor(make_response(200, {}))
        await executor.send(Request(HTTPMethod.GET, "public", authenticated=False))
        headers = executor.session.request.call_args.kwargs["headers"]
        assert "Authorization" not in headers

    @pytest.mark.asyncio
    async def test_response_is_released(self, make_executor, make_response):
        response = make_response(200, {})
        executor = make_executor(response)
        await executor.get("x")
        response.release.assert_called_once()

    @pytest.mark.asyncio
    async def test_decode_failure_is_unknown_error(self, make_executor, make_response):
        """A body that does not match the model is an UnknownError."""
        executor = make_executor(make_response(200, {"displayName": "no name field"}))
        with pytest.raises(UnknownError) as exc:
            await executor.get("projects/p1", model=Project)
        assert "format" in exc.value.message

    @pytest.mark.asyncio
    async def test_invalid_json_is_unknown_error(self, make_executor, make_response):
        executor = make_executor(make_response(200, b"{not json"))
        with pytest.raises(UnknownError):
            await executor.get("x")

    def test_session_outside_context_manager(self, provider):
        executor = RequestExecutor(provider)
        with pytest.raises(RuntimeError):
            executor.session


# ============================================
# Retry and Error Tests
# ============================================

class TestRetries:
    """Test 429 and 401 handling."""

    @pytest.mark.asyncio
    async def test_429_then_success(self, make_executor, make_response):
        """429 is retried after Retry-After seconds and never surfaces."""
        executor = make_executor(
            make_response(429, b"", headers={"Retry-After": "1"}),
            make_response(200, {"name": "projects/p1"}),
        )

        start = time.monotonic()
        project = await executor.get("projects/p1", model=Project)
        elapsed = time.monotonic() - start

        assert project.id == "p1"
        assert executor.session.request.call_count == 2
        assert elapsed >= 1.0

    @pytest.mark.asyncio
    async def test_429_retries_until_success(self, make_executor, make_response, monkeypatch):
        """Any number of 429s is retried."""
        sleeps = []

        async def fake_sleep(seconds):
            sleeps.append(seconds)

        monkeypatch.setattr(asyncio, "sleep", fake_sleep)
        executor = make_executor(
            make_response(429, headers={"Retry-After": "2"}),
            make_response(429),
            make_response(429, headers={"Retry-After": "0"}),
            make_response(200, {"ok": True}),
        )

        assert await executor.get("x") == {"ok": True}
        assert sleeps == [2, 5, 0]

    @pytest.mark.asyncio
    async def test_401_refreshes_once(self, config, make_session, make_response):
        """A 401 triggers one forced refresh and a retry with the new token."""
        provider = CountingProvider()
        session = make_session(make_response(401), make_response(200, {"ok": True}))
        executor = RequestExecutor(provider, config, session=session)

        assert await executor.get("x") == {"ok": True}
        assert provider.refreshes == 2
        headers = [call.kwargs["headers"]["Authorization"] for call in session.request.call_args_list]
        assert headers == ["Bearer token-1", "Bearer token-2"]

    @pytest.mark.asyncio
    async def test_second_401_is_raised(self, config, make_session, make_response):
        provider = CountingProvider()
        session = make_session(make_response(401), make_response(401))
        executor = RequestExecutor(provider, config, session=session)

        with pytest.raises(UnauthorizedError):
            await executor.get("x")
        assert session.request.call_count == 2

    @pytest.mark.asyncio
    async def test_error_status_raised_without_retry(self, make_executor, make_response):
        executor = make_executor(make_response(404, {"error": "Project not found"}))
        with pytest.raises(NotFoundError) as exc:
            await executor.get("projects/nope")
        assert exc.value.message == "Project not found"
        assert executor.session.request.call_count == 1

    @pytest.mark.asyncio
    async def test_invalid_url_makes_no_call(self, make_executor):
        """An endpoint that cannot be encoded fails before any network call."""
        executor = make_executor()
        with pytest.raises(UnknownError):
            await executor.get("projects/with space")
        executor.session.request.assert_not_called()

    @pytest.mark.asyncio
    async def test_transport_error(self, make_executor):
        executor = make_executor()
        executor.session.request = AsyncMock(side_effect=aiohttp.ClientConnectionError("refused"))

        with pytest.raises(ServerUnavailableError) as exc:
            await executor.get("x")
        assert exc.value.recoverable
        assert isinstance(exc.value.cause, aiohttp.ClientConnectionError)

    @pytest.mark.asyncio
    async def test_missing_credentials(self, config, make_session, make_response):
        executor = RequestExecutor(None, config, session=make_session(make_response(200, {})))
        with pytest.raises(UnauthorizedError):
            await executor.get("x")


# ============================================
# Page Envelope Tests
# ============================================

class TestSendPage:
    """Test send_page()."""

    @pytest.mark.asyncio
    async def test_page_items_and_token(self, make_executor, make_response):
        executor = make_executor(make_response(200, {
            "projects": [{"name": "projects/a"}, {"name": "projects/b"}],
            "nextPageToken": "t2",
        }))

        page = await executor.send_page(
            Request(HTTPMethod.GET, "projects"),
            "projects",
            model=Project,
            page_size=2,
            page_token="t1",
        )

        assert [p.id for p in page.items] == ["a", "b"]
        assert page.next_page_token == "t2"
        assert not page.is_last_page
        url = executor.session.request.call_args.args[1]
        assert "page_size=2" in url
        assert "page_token=t1" in url

    @pytest.mark.asyncio
    async def test_missing_key_is_empty_last_page(self, make_executor, make_response):
        executor = make_executor(make_response(200, {"nextPageToken": ""}))
        page = await executor.send_page(Request(HTTPMethod.GET, "projects"), "projects")
        assert page.items == []
        assert page.is_last_page

    @pytest.mark.asyncio
    async def test_non_list_items(self, make_executor, make_response):
        executor = make_executor(make_response(200, {"projects": {"a": 1}}))
        with pytest.raises(UnknownError):
            await executor.send_page(Request(HTTPMethod.GET, "projects"), "projects")
