#!/usr/bin/env python3
"""Tests for the Request value type and URL building."""
import json
import sys

import pytest

sys.path.insert(0, str(__file__).rsplit("/tests", 1)[0])
from src.dtcloud.api.request import HTTPMethod, Request

BASE = "https://api.test/v2/"


# ============================================
# URL Building Tests
# ============================================

class TestRequestURL:
    """Test Request.url()."""

    def test_joins_base_and_endpoint(self):
        request = Request(HTTPMethod.GET, "projects/p1/devices")
        assert request.url(BASE) == "https://api.test/v2/projects/p1/devices"

    def test_leading_slash_and_missing_trailing_slash(self):
        request = Request(HTTPMethod.GET, "/projects")
        assert request.url("https://api.test/v2") == "https://api.test/v2/projects"

    def test_request_base_url_wins(self):
        request = Request(HTTPMethod.GET, "projects", base_url="https://emulator.test/v2/")
        assert request.url(BASE) == "https://emulator.test/v2/projects"

    def test_custom_method_suffix_is_valid(self):
        """Paths like devices:batchUpdate are plain RFC 3986 paths."""
        request = Request(HTTPMethod.POST, "projects/p1/devices:batchUpdate")
        assert request.url(BASE).endswith("/devices:batchUpdate")

    def test_multi_valued_params(self):
        """A parameter with several values repeats in the query string."""
        request = Request(HTTPMethod.GET, "projects/p1/devices:stream")
        request.set_param("event_types", ["touch", "temperature"])
        request.set_param("label_filters", "room=3 14")

        url = request.url(BASE)
        assert "event_types=touch&event_types=temperature" in url
        assert "label_filters=room%3D3%2014" in url

    @pytest.mark.parametrize("endpoint", ["projects/p 1", "projects/%zz", "projects/<p>"])
    def test_invalid_endpoint_gives_none(self, endpoint):
        assert Request(HTTPMethod.GET, endpoint).url(BASE) is None

    @pytest.mark.parametrize("base", [None, "", "ftp://api.test/", "not a url", "https://"])
    def test_invalid_base_gives_none(self, base):
        assert Request(HTTPMethod.GET, "projects").url(base) is None


# ============================================
# Params and Headers Tests
# ============================================

class TestParamsAndHeaders:
    """Test parameter and header helpers."""

    def test_add_param_appends(self):
        request = Request(HTTPMethod.GET, "x")
        request.add_param("device_ids", "a")
        request.add_param("device_ids", "b", "c")
        assert request.params == {"device_ids": ["a", "b", "c"]}

    def test_bool_params_are_lowercase(self):
        request = Request(HTTPMethod.GET, "x")
        request.set_param("inventory", True)
        assert request.params["inventory"] == ["true"]

    def test_with_params_copies(self):
        """with_params leaves the original untouched and None removes a param."""
        original = Request(HTTPMethod.GET, "x")
        original.set_param("page_token", "abc")
        original.set_param("query", "fridge")

        copy = original.with_params(page_size=10, page_token=None)

        assert copy.params == {"query": ["fridge"], "page_size": ["10"]}
        assert original.params == {"page_token": ["abc"], "query": ["fridge"]}

    def test_set_header_replaces_case_insensitively(self):
        request = Request(HTTPMethod.GET, "x")
        request.set_header("accept", "application/json")
        request.set_header("Accept", "text/event-stream")

        assert request.headers == [("Accept", "text/event-stream")]
        assert request.header("ACCEPT") == "text/event-stream"
        assert request.header("Missing") is None

    def test_json_request(self):
        request = Request.json(HTTPMethod.POST, "projects", {"displayName": "P"})
        assert request.header("Content-Type") == "application/json"
        assert json.loads(request.body) == {"displayName": "P"}
        assert request.authenticated
