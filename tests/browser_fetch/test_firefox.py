"""Firefox release scraping, matching, and installer handling."""

from __future__ import annotations

import logging

import httpx
import pytest

from BrowserFetch.cache import JsonFileCache
from BrowserFetch.errors import FormatError, NotFoundError, TransportError
from BrowserFetch.vendors import BrowserReleases, FirefoxReleases, ReleaseItem, first_match
from BrowserFetch.vendors.firefox import (
    SEVEN_ZIP_SIGNATURE,
    FirefoxReleaseItem,
    find_payload,
    match_releases,
    parse_release_listing,
)

INDEX_HTML = """
<html><body><table>
<tr><th>Type</th><th>Name</th></tr>
<tr><td>Dir</td><td><a href="/pub/firefox/releases/../">..</a></td></tr>
<tr><td>Dir</td><td><a href="/pub/firefox/releases/114.0.2/">114.0.2/</a></td></tr>
<tr><td>Dir</td><td><a href="/pub/firefox/releases/115.0/">115.0/</a></td></tr>
<tr><td>Dir</td><td><a href="/pub/firefox/releases/115.0b9/">115.0b9/</a></td></tr>
<tr><td>Dir</td><td><a href="/pub/firefox/releases/115.0esr/">115.0esr/</a></td></tr>
<tr><td>Dir</td><td><a href="/pub/firefox/releases/latest/">latest/</a></td></tr>
</table>
<a href="/outside-table/">116.0/</a>
</body></html>
"""


def test_parse_release_listing_keeps_valid_rows():
    assert parse_release_listing(INDEX_HTML) == ["114.0.2", "115.0"]


def test_match_releases_respects_number_boundary():
    releases = ["115.0b9", "115.0", "1150.0", "115.0.2", "115.01", "114.0"]

    assert match_releases(releases, "115.0") == ["115.0", "115.0.2", "115.0b9"]
    assert match_releases(releases, "115") == ["115.0", "115.0.2", "115.01", "115.0b9"]
    assert match_releases(releases, "116") == []


def test_find_payload():
    assert find_payload(b"MZ-stub" + SEVEN_ZIP_SIGNATURE + b"rest") == 7
    assert find_payload(b"MZ-stub-without-payload") is None


def _releases_transport(calls):
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url))
        return httpx.Response(200, text=INDEX_HTML)

    return httpx.MockTransport(handler)


def test_releases_load_caches_scraped_list(config, tmp_path):
    calls = []
    cache = JsonFileCache(tmp_path / "cache")

    with httpx.Client(transport=_releases_transport(calls)) as client:
        FirefoxReleases.load(config=config, client=client, cache=cache)
        releases = FirefoxReleases.load(config=config, client=client, cache=cache)

    assert len(calls) == 1
    assert (tmp_path / "cache" / "firefox-releases.json").exists()
    assert isinstance(releases, BrowserReleases)
    item = first_match(releases, "115.0")
    assert isinstance(item, ReleaseItem)
    assert item.version == "115.0"


def test_first_match_without_release_raises(config):
    with pytest.raises(NotFoundError, match="firefox"):
        first_match(FirefoxReleases(["115.0"], config=config), "99")


def test_installer_url(config):
    item = FirefoxReleaseItem("115.0", config=config)

    assert item.installer_url("win64") == (
        "https://ftp.mozilla.org/pub/firefox/releases/115.0/win64/zh-CN/Firefox%20Setup%20115.0.exe"
    )


class _RecordingExtractor:
    def __init__(self):
        self.calls = []

    def extract_subtree(self, source, destination, root):
        self.calls.append((bytes(source), destination, root))


def test_download_falls_back_to_win32_and_extracts_core(config, tmp_path):
    requested = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(request.url.path)
        if "/win64/" in request.url.path:
            return httpx.Response(404)
        return httpx.Response(200, content=b"MZ-stub" + SEVEN_ZIP_SIGNATURE + b"payload")

    extractor = _RecordingExtractor()
    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        item = FirefoxReleaseItem("115.0", config=config, client=client, extractor=extractor)
        destination = item.download(tmp_path / "out")

    assert [("/win64/" in path, "/win32/" in path) for path in requested] == [
        (True, False),
        (False, True),
    ]
    assert destination == tmp_path / "out" / "firefox-115.0"
    ((source, target, root),) = extractor.calls
    assert source == SEVEN_ZIP_SIGNATURE + b"payload"
    assert target == destination
    assert root == "core"


def test_download_without_signature_saves_installer(config, tmp_path):
    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"MZ-plain"))

    with httpx.Client(transport=transport) as client:
        item = FirefoxReleaseItem("115.0", config=config, client=client)
        with pytest.raises(FormatError, match="no 7z signature"):
            item.download(tmp_path / "out")

    assert (tmp_path / "out" / "Firefox Setup 115.0.exe").read_bytes() == b"MZ-plain"


def test_download_fails_when_every_arch_fails(config, tmp_path, caplog):
    requested = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(request.url.path.split("/")[5])
        return httpx.Response(503)

    caplog.set_level(logging.WARNING, logger="BrowserFetch")
    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(TransportError) as excinfo:
            FirefoxReleaseItem("115.0", config=config, client=client).download(tmp_path)

    assert requested == ["win64", "win32"]
    assert "win32" in excinfo.value.url
    assert excinfo.value.status_code == 503
    assert caplog.text.count("download firefox") == 2
