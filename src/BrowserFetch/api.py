"""High-level orchestration behind the CLI.

These helpers choose the vendor for a version string, build the cache and
HTTP collaborators from configuration, and apply the architecture fallback:
a Chromium version that cannot be found for x64 is retried for x86 when the
x86 platform maps to a different remote target.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from importlib import metadata as importlib_metadata
from pathlib import Path
from typing import Optional

import httpx

from .cache import JsonFileCache
from .errors import NotFoundError
from .net import get_http_client
from .platforms import Arch, Os, Platform, current_os
from .resolver import ResolvedBuild
from .settings import BrowserFetchConfig, ReleaseChannel, get_default_config
from .vendors import BrowserReleases, ChromiumReleases, FirefoxReleases, first_match

__all__ = [
    "__version__",
    "FIREFOX_PREFIX",
    "FetchOutcome",
    "split_vendor",
    "resolve_chromium",
    "fetch",
]

LOGGER = logging.getLogger("BrowserFetch.api")

try:  # pragma: no cover - metadata may be unavailable during development
    __version__ = importlib_metadata.version("browserfetch")
except importlib_metadata.PackageNotFoundError:  # pragma: no cover - local source tree
    __version__ = "0.0.0"

FIREFOX_PREFIX = "ff"


@dataclass(frozen=True)
class FetchOutcome:
    """Where a release ended up and what was fetched."""

    vendor: str
    version: str
    path: Path
    platform: Optional[Platform] = None


def split_vendor(version: str) -> tuple[str, str]:
    """Return ``(vendor, version)``; an ``ff`` prefix selects Firefox.

    Examples:
        >>> split_vendor("ff115.0")
        ('firefox', '115.0')
        >>> split_vendor("114")
        ('chromium', '114')
    """

    text = version.strip()
    if text.startswith(FIREFOX_PREFIX):
        return "firefox", text[len(FIREFOX_PREFIX):]
    return "chromium", text


def _platform_candidates(os_name: Optional[str]) -> list[Platform]:
    target_os = Os.parse(os_name) if os_name else current_os()
    primary = Platform(target_os, Arch.X86_64)
    fallback = primary.with_arch(Arch.X86)
    if fallback.same_remote_target(primary):
        return [primary]
    return [primary, fallback]


def _chromium_releases(
    platform: Platform,
    config: BrowserFetchConfig,
    channel: Optional[ReleaseChannel],
    client: Optional[httpx.Client],
) -> ChromiumReleases:
    cache = JsonFileCache(config.storage.cache_dir)
    return ChromiumReleases.load(
        platform, config=config, channel=channel, client=client, cache=cache
    )


def _resolve_with_fallback(
    version: str,
    config: BrowserFetchConfig,
    os_name: Optional[str],
    channel: Optional[ReleaseChannel],
    client: Optional[httpx.Client],
) -> tuple[ChromiumReleases, ResolvedBuild]:
    platforms = _platform_candidates(os_name)
    for index, platform in enumerate(platforms):
        try:
            releases = _chromium_releases(platform, config, channel, client)
            return releases, releases.resolve(version)
        except NotFoundError as exc:
            if index + 1 >= len(platforms):
                raise
            LOGGER.warning(
                "resolving %s for %s failed, trying %s: %s",
                version,
                platform,
                platforms[index + 1],
                exc,
                extra={"stage": "resolve", "platform": str(platform)},
            )
    raise NotFoundError(f"no platform resolved version {version}")  # pragma: no cover


def resolve_chromium(
    version: str,
    *,
    config: Optional[BrowserFetchConfig] = None,
    os_name: Optional[str] = None,
    channel: Optional[ReleaseChannel] = None,
    client: Optional[httpx.Client] = None,
) -> tuple[Platform, ResolvedBuild]:
    """Resolve ``version`` without downloading, with the x86 fallback."""

    config = config or get_default_config()
    client = client or get_http_client(config.http)
    releases, build = _resolve_with_fallback(version, config, os_name, channel, client)
    return releases.platform, build


def fetch(
    version: str,
    *,
    config: Optional[BrowserFetchConfig] = None,
    os_name: Optional[str] = None,
    channel: Optional[ReleaseChannel] = None,
    output_dir: Optional[Path] = None,
    client: Optional[httpx.Client] = None,
) -> FetchOutcome:
    """Resolve and unpack ``version`` below the output directory.

    Raises:
        NotFoundError: If no release matches on any candidate platform.
        TransportError: On network failures (never retried on another platform).
        FormatError: On unexpected server responses.
        ExtractError: If the archive is malformed or cannot be written.
    """

    config = config or get_default_config()
    client = client or get_http_client(config.http)
    target_dir = Path(output_dir or config.storage.output_dir)
    vendor, query = split_vendor(version)

    if vendor == "firefox":
        releases: BrowserReleases = FirefoxReleases.load(
            config=config, client=client, cache=JsonFileCache(config.storage.cache_dir)
        )
        item = first_match(releases, query)
        return FetchOutcome("firefox", item.version, item.download(target_dir))

    chromium, build = _resolve_with_fallback(query, config, os_name, channel, client)
    item = chromium.item_for(build)
    return FetchOutcome("chromium", build.version, item.download(target_dir), chromium.platform)
