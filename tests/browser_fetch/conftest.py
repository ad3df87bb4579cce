"""Shared fixtures for the BrowserFetch suite."""

from __future__ import annotations

import logging
import os

import httpx
import pytest
from fakes import FakeSnapshotService

from BrowserFetch.net import reset_http_client
from BrowserFetch.settings import BrowserFetchConfig, invalidate_default_config_cache


@pytest.fixture(autouse=True)
def _isolate_browserfetch(monkeypatch):
    for key in list(os.environ):
        if key.startswith("BROWSERFETCH_"):
            monkeypatch.delenv(key, raising=False)
    invalidate_default_config_cache()
    reset_http_client()
    yield
    reset_http_client()
    invalidate_default_config_cache()
    logger = logging.getLogger("BrowserFetch")
    for handler in list(logger.handlers):
        if getattr(handler, "_browserfetch_managed", False):
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def config(tmp_path) -> BrowserFetchConfig:
    cfg = BrowserFetchConfig()
    cfg.storage.cache_dir = tmp_path / "cache"
    cfg.storage.output_dir = tmp_path / "out"
    cfg.logging.log_dir = tmp_path / "logs"
    return cfg


@pytest.fixture
def service() -> FakeSnapshotService:
    return FakeSnapshotService()


@pytest.fixture
def client(service):
    with httpx.Client(transport=httpx.MockTransport(service)) as http:
        yield http
