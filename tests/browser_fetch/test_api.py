"""End-to-end resolution and download against the fake snapshot service."""

from __future__ import annotations

import logging

import pytest
from fakes import make_zip

from BrowserFetch.api import fetch, resolve_chromium, split_vendor
from BrowserFetch.errors import NotFoundError, TransportError
from BrowserFetch.platforms import Arch, Os, Platform

VERSION = "114.0.5735.90"
CHROME_ZIP = make_zip([("chrome-win/", None), ("chrome-win/chrome.exe", b"MZchrome")])


def _publish_win64(service, revisions=(1135500, 1135580)):
    service.add_release("win64", "114.0.5735.110", None)
    service.add_release("win64", VERSION, "1135570")
    service.add_builds("Win_x64", revisions)
    for revision in revisions:
        service.add_archive(f"Win_x64/{revision}/", "chrome-win.zip", CHROME_ZIP)


def test_split_vendor():
    assert split_vendor(" ff115.0 ") == ("firefox", "115.0")
    assert split_vendor("114") == ("chromium", "114")


def test_fetch_resolves_and_unpacks(service, client, config, tmp_path):
    _publish_win64(service)

    outcome = fetch("114", config=config, os_name="windows", client=client)

    assert outcome.vendor == "chromium"
    assert outcome.version == VERSION
    assert outcome.platform == Platform(Os.WINDOWS, Arch.X86_64)
    assert outcome.path == tmp_path / "out" / f"chromium-{VERSION}"
    assert (outcome.path / "chrome.exe").read_bytes() == b"MZchrome"
    archive_requests = [r for r in service.requests if r.url.path.endswith("chrome-win.zip")]
    assert [r.url.path for r in archive_requests] == ["/download/Win_x64/1135580/chrome-win.zip"]


def test_second_fetch_reuses_cached_listing_and_history(service, client, config):
    _publish_win64(service)

    fetch(VERSION, config=config, os_name="windows", client=client)
    fetch(VERSION, config=config, os_name="windows", client=client)

    assert len(service.paths("/history.json")) == 1
    listing_walks = [r for r in service.paths("/o") if r.url.params["prefix"] == "Win_x64/"]
    assert len(listing_walks) == 1
    assert (config.storage.cache_dir / "builds-Win_x64.json").exists()


def test_falls_back_to_x86_when_x64_has_no_build(service, client, config, caplog):
    _publish_win64(service, revisions=(2000000,))
    service.add_release("win", VERSION, "1135570")
    service.add_builds("Win", [1135571])
    service.add_archive("Win/1135571/", "chrome-win.zip", CHROME_ZIP)
    caplog.set_level(logging.WARNING, logger="BrowserFetch")

    outcome = fetch(VERSION, config=config, os_name="windows", client=client)

    assert outcome.platform == Platform(Os.WINDOWS, Arch.X86)
    assert (outcome.path / "chrome.exe").exists()
    assert "trying windows-x86" in caplog.text


def test_transport_errors_are_not_retried_on_x86(service, client, config):
    service.fail("/history.json", status=502)

    with pytest.raises(TransportError):
        fetch(VERSION, config=config, os_name="windows", client=client)

    assert [r.url.params["os"] for r in service.paths("/history.json")] == ["win64"]


def test_mac_has_no_fallback_platform(service, client, config):
    with pytest.raises(NotFoundError):
        resolve_chromium("114", config=config, os_name="macos", client=client)

    assert [r.url.params["os"] for r in service.paths("/history.json")] == ["mac"]


def test_linux_falls_back_between_distinct_prefixes(service, client, config):
    service.add_release("linux", VERSION, "1135570")
    service.add_builds("Linux_x64", [1])
    service.add_builds("Linux", [1135600])

    platform, build = resolve_chromium("114", config=config, os_name="linux", client=client)

    assert platform == Platform(Os.LINUX, Arch.X86)
    assert build.prefix == "Linux/1135600/"


def test_missing_archive_is_not_found(service, client, config):
    service.add_release("win64", VERSION, "1135570")
    service.add_builds("Win_x64", [1135570])

    with pytest.raises(NotFoundError, match="chrome-win.zip"):
        fetch(VERSION, config=config, os_name="windows", client=client)
