# === NAVMAP v1 ===
# {
#   "module": "BrowserFetch.net",
#   "purpose": "Provide the shared HTTPX client and error-mapped request helpers",
#   "sections": [
#     {"id": "globals", "name": "Client State", "anchor": "STATE", "kind": "constants"},
#     {"id": "helpers", "name": "Client construction helpers", "anchor": "HELP", "kind": "helpers"},
#     {"id": "api", "name": "Public API", "anchor": "API", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Shared HTTPX client used by every remote lookup.

The client is created lazily and reused for the process lifetime.  Tests swap
it for a ``MockTransport``-backed instance through :func:`configure_http_client`
(see :func:`BrowserFetch.testing.use_mock_http_client`).  The request helpers
translate ``httpx`` failures into :class:`~BrowserFetch.errors.TransportError`
and undecodable or mis-shaped bodies into
:class:`~BrowserFetch.errors.FormatError` so the resolution layer never sees
raw transport exceptions.  No retries are attempted.
"""

from __future__ import annotations

import contextlib
import json
import logging
import ssl
import threading
from typing import Any, Iterator, Mapping, Optional, TypeVar

import certifi
import httpx
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .errors import FormatError, TransportError
from .settings import HttpConfiguration

LOGGER = logging.getLogger("BrowserFetch.net")

T = TypeVar("T")

# --- Client State ----------------------------------------------------------------

_CLIENT_LOCK = threading.RLock()
_HTTP_CLIENT: Optional[httpx.Client] = None

# --- Client construction helpers -------------------------------------------------


def _build_ssl_context() -> ssl.SSLContext:
    context = ssl.create_default_context()
    context.load_verify_locations(certifi.where())
    return context


def _timeout_for(config: HttpConfiguration) -> httpx.Timeout:
    return httpx.Timeout(
        connect=config.connect_timeout_sec,
        read=config.timeout_sec,
        write=config.timeout_sec,
        pool=config.connect_timeout_sec,
    )


def _response_hook(response: httpx.Response) -> None:
    LOGGER.debug(
        "http-response",
        extra={
            "stage": "http",
            "url": str(response.request.url),
            "status": response.status_code,
        },
    )


def build_http_client(config: Optional[HttpConfiguration] = None) -> httpx.Client:
    """Construct a new client from ``config`` without installing it."""

    cfg = config or HttpConfiguration()
    return httpx.Client(
        http2=cfg.http2_enabled,
        verify=_build_ssl_context(),
        timeout=_timeout_for(cfg),
        proxy=cfg.proxy,
        headers={"User-Agent": cfg.user_agent},
        trust_env=True,
        follow_redirects=True,
        event_hooks={"response": [_response_hook]},
    )


def _close_client_unlocked() -> None:
    global _HTTP_CLIENT
    if _HTTP_CLIENT is not None:
        with contextlib.suppress(Exception):
            _HTTP_CLIENT.close()
    _HTTP_CLIENT = None


# --- Public API ------------------------------------------------------------------


def configure_http_client(client: Optional[httpx.Client] = None) -> None:
    """Install ``client`` as the shared client (``None`` closes the current one)."""

    global _HTTP_CLIENT
    with _CLIENT_LOCK:
        if client is None or _HTTP_CLIENT is not client:
            _close_client_unlocked()
        _HTTP_CLIENT = client


def reset_http_client() -> None:
    """Drop the shared client so the next call rebuilds it (test helper)."""

    with _CLIENT_LOCK:
        _close_client_unlocked()


def get_http_client(config: Optional[HttpConfiguration] = None) -> httpx.Client:
    """Return the shared HTTPX client, creating it if necessary."""

    global _HTTP_CLIENT
    with _CLIENT_LOCK:
        if _HTTP_CLIENT is None:
            _HTTP_CLIENT = build_http_client(config)
        return _HTTP_CLIENT


def _transport_error(url: str, exc: httpx.HTTPError) -> TransportError:
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return TransportError(f"request to {url} failed with HTTP {status}", url=url, status_code=status)
    return TransportError(f"request to {url} failed: {exc}", url=url)


def get_response(
    url: str,
    *,
    params: Optional[Mapping[str, str]] = None,
    client: Optional[httpx.Client] = None,
) -> httpx.Response:
    """Issue a GET, read the full body, and raise on non-2xx statuses."""

    http = client or get_http_client()
    LOGGER.debug("GET %s", url, extra={"stage": "http", "url": url, "params": dict(params or {})})
    try:
        response = http.get(url, params=params)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise _transport_error(url, exc) from exc
    return response


def get_json(
    url: str,
    *,
    params: Optional[Mapping[str, str]] = None,
    client: Optional[httpx.Client] = None,
) -> Any:
    """GET ``url`` and decode its JSON body."""

    response = get_response(url, params=params, client=client)
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise FormatError(f"response from {url} is not valid JSON: {exc}", url=url) from exc


def validate_payload(adapter: TypeAdapter[T], payload: Any, *, url: str) -> T:
    """Validate a decoded JSON payload, mapping failures to :class:`FormatError`."""

    try:
        return adapter.validate_python(payload)
    except PydanticValidationError as exc:
        raise FormatError(f"unexpected response shape from {url}: {exc}", url=url) from exc


@contextlib.contextmanager
def open_stream(url: str, *, client: Optional[httpx.Client] = None) -> Iterator[httpx.Response]:
    """Open a streamed GET; the body is consumed by the caller chunk by chunk."""

    http = client or get_http_client()
    LOGGER.info("downloading %s", url, extra={"stage": "download", "url": url})
    try:
        with http.stream("GET", url) as response:
            response.raise_for_status()
            yield response
    except httpx.HTTPError as exc:
        raise _transport_error(url, exc) from exc


__all__ = [
    "build_http_client",
    "configure_http_client",
    "reset_http_client",
    "get_http_client",
    "get_response",
    "get_json",
    "validate_payload",
    "open_stream",
]
