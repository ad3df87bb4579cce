"""Shared HTTP client lifecycle and error mapping."""

from __future__ import annotations

import httpx
import pytest
from pydantic import TypeAdapter

from BrowserFetch.errors import FormatError, TransportError
from BrowserFetch.net import (
    build_http_client,
    get_http_client,
    get_json,
    get_response,
    reset_http_client,
    validate_payload,
)
from BrowserFetch.settings import HttpConfiguration
from BrowserFetch.testing import use_mock_http_client


def test_shared_client_is_reused_and_reset():
    first = get_http_client()
    assert get_http_client() is first

    reset_http_client()

    assert get_http_client() is not first


def test_build_http_client_applies_configuration():
    client = build_http_client(HttpConfiguration(user_agent="bf-test/1.0", timeout_sec=5))
    try:
        assert client.headers["User-Agent"] == "bf-test/1.0"
        assert client.timeout.read == 5
        assert client.follow_redirects
    finally:
        client.close()


def test_mock_client_is_installed_for_default_calls():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.params["q"])
        return httpx.Response(200, json={"ok": True})

    with use_mock_http_client(httpx.MockTransport(handler)) as client:
        assert get_http_client() is client
        assert get_json("https://api.example.org/x", params={"q": "1"}) == {"ok": True}

    assert seen == ["1"]


def test_status_errors_carry_code_and_url():
    transport = httpx.MockTransport(lambda request: httpx.Response(418))

    with use_mock_http_client(transport):
        with pytest.raises(TransportError) as excinfo:
            get_response("https://api.example.org/teapot")

    assert excinfo.value.status_code == 418
    assert excinfo.value.url == "https://api.example.org/teapot"


def test_connection_errors_become_transport_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with use_mock_http_client(httpx.MockTransport(handler)):
        with pytest.raises(TransportError) as excinfo:
            get_json("https://api.example.org/down")

    assert excinfo.value.status_code is None
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)


def test_non_json_body_is_format_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html/>"))

    with use_mock_http_client(transport):
        with pytest.raises(FormatError):
            get_json("https://api.example.org/html")


def test_validate_payload_maps_validation_errors():
    adapter = TypeAdapter(int)

    assert validate_payload(adapter, "12", url="u") == 12
    with pytest.raises(FormatError) as excinfo:
        validate_payload(adapter, "twelve", url="https://api.example.org/n")

    assert excinfo.value.url == "https://api.example.org/n"
