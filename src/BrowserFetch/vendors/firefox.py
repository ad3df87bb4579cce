"""Firefox releases scraped from the public release directory.

Firefox has no revision catalog; the release directory page lists one folder
per version.  The Windows installer is a self-extracting executable carrying a
7z payload, so the download locates the 7z signature inside the installer and
extracts the payload's ``core/`` folder.
"""

from __future__ import annotations

import logging
from functools import cmp_to_key
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

import httpx
from bs4 import BeautifulSoup

from ..cache import JsonFileCache
from ..errors import FormatError, TransportError
from ..extraction import ArchiveExtractor
from ..net import get_response
from ..settings import BrowserFetchConfig
from ..versions import is_pure_numeric

__all__ = [
    "SEVEN_ZIP_SIGNATURE",
    "FirefoxReleases",
    "FirefoxReleaseItem",
    "parse_release_listing",
    "is_valid_release",
    "match_releases",
    "find_payload",
]

LOGGER = logging.getLogger("BrowserFetch.vendors.firefox")

SEVEN_ZIP_SIGNATURE = b"7z\xbc\xaf\x27\x1c"
INSTALLER_ARCHES = ("win64", "win32")
PAYLOAD_ROOT = "core"


def is_valid_release(name: str) -> bool:
    """Return ``True`` when the first two dotted components are integers.

    Examples:
        >>> is_valid_release("115.0esr")
        False
        >>> is_valid_release("115.0.2")
        True
        >>> is_valid_release("latest")
        False
    """

    parts = name.split(".")
    if len(parts) < 2:
        return False
    return all(part.isascii() and part.isdigit() for part in parts[:2])


def parse_release_listing(html: str) -> List[str]:
    """Extract release folder names from the directory index page."""

    soup = BeautifulSoup(html, "html.parser")
    names = (anchor.get_text().strip().rstrip("/") for anchor in soup.select("tr td a"))
    return [name for name in names if is_valid_release(name)]


def _compare(a: str, b: str) -> int:
    a_numeric, b_numeric = is_pure_numeric(a), is_pure_numeric(b)
    if a_numeric != b_numeric:
        return -1 if a_numeric else 1
    return (a > b) - (a < b)


def match_releases(releases: Sequence[str], query: str) -> List[str]:
    """Return releases starting with ``query`` and not continuing its number.

    Pure numeric releases sort ahead of suffixed ones (``115.0`` before
    ``115.0b9``).

    Examples:
        >>> match_releases(["115.0b9", "115.0", "1150.0", "115.0.2"], "115.0")
        ['115.0', '115.0.2', '115.0b9']
    """

    matched = []
    for name in releases:
        if not name.startswith(query):
            continue
        following = name[len(query):len(query) + 1]
        if following and following.isdigit():
            continue
        matched.append(name)
    return sorted(matched, key=cmp_to_key(_compare))


def find_payload(installer: bytes) -> Optional[int]:
    """Return the offset of the embedded 7z archive, or ``None``."""

    index = installer.find(SEVEN_ZIP_SIGNATURE)
    return None if index < 0 else index


class FirefoxReleaseItem:
    """One Firefox release folder."""

    def __init__(
        self,
        version: str,
        *,
        config: BrowserFetchConfig,
        client: Optional[httpx.Client] = None,
        extractor: Optional[ArchiveExtractor] = None,
    ) -> None:
        self._version = version
        self._config = config
        self._client = client
        self._extractor = extractor or ArchiveExtractor(block_size=config.http.stream_chunk_bytes)

    @property
    def version(self) -> str:
        return self._version

    def installer_url(self, arch: str) -> str:
        base = self._config.endpoints.firefox_releases_url.rstrip("/")
        locale = self._config.endpoints.firefox_locale
        return f"{base}/{self._version}/{arch}/{locale}/Firefox%20Setup%20{self._version}.exe"

    def _fetch_installer(self) -> bytes:
        failures: List[TransportError] = []
        for arch in INSTALLER_ARCHES:
            url = self.installer_url(arch)
            try:
                return get_response(url, client=self._client).content
            except TransportError as exc:
                LOGGER.warning(
                    "download firefox %s failed: %s",
                    arch,
                    exc,
                    extra={"stage": "download", "url": url, "arch": arch},
                )
                failures.append(exc)
        raise failures[-1]

    def download(self, output_dir: Path) -> Path:
        output_dir = Path(output_dir)
        installer = self._fetch_installer()
        offset = find_payload(installer)
        if offset is None:
            saved = output_dir / f"Firefox Setup {self._version}.exe"
            output_dir.mkdir(parents=True, exist_ok=True)
            saved.write_bytes(installer)
            raise FormatError(f"no 7z signature found in installer; saved at {saved}")
        destination = output_dir / f"firefox-{self._version}"
        self._extractor.extract_subtree(installer[offset:], destination, PAYLOAD_ROOT)
        return destination

    def __repr__(self) -> str:
        return f"FirefoxReleaseItem(version={self._version!r})"


class FirefoxReleases:
    """Release list scraped from the directory index."""

    name = "firefox"

    def __init__(
        self,
        releases: Sequence[str],
        *,
        config: Optional[BrowserFetchConfig] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.releases = list(releases)
        self.config = config or BrowserFetchConfig()
        self.client = client

    @classmethod
    def load(
        cls,
        *,
        config: BrowserFetchConfig,
        client: Optional[httpx.Client] = None,
        cache: Optional[JsonFileCache] = None,
    ) -> "FirefoxReleases":
        url = config.endpoints.firefox_releases_url

        def _scrape() -> List[str]:
            LOGGER.info("fetching firefox releases from %s", url, extra={"stage": "history", "url": url})
            return parse_release_listing(get_response(url, client=client).text)

        releases = _scrape() if cache is None else cache.get_or_fetch("firefox-releases.json", _scrape)
        return cls(releases, config=config, client=client)

    def match_version(self, version: str) -> Iterator[FirefoxReleaseItem]:
        for name in match_releases(self.releases, version):
            yield FirefoxReleaseItem(name, config=self.config, client=self.client)
