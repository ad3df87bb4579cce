"""Test helpers for exercising BrowserFetch against in-process HTTP fakes."""

from __future__ import annotations

import contextlib
from typing import Iterator

import httpx

from .net import configure_http_client, reset_http_client

__all__ = ["use_mock_http_client"]


@contextlib.contextmanager
def use_mock_http_client(transport: httpx.BaseTransport, **client_kwargs) -> Iterator[httpx.Client]:
    """Temporarily install an HTTPX client backed by ``transport``."""

    client = httpx.Client(transport=transport, **client_kwargs)
    configure_http_client(client)
    try:
        yield client
    finally:
        reset_http_client()
        client.close()
