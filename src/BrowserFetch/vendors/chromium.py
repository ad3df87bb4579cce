"""Chromium snapshot releases.

Resolution runs in two stages: the release history maps the user's version to
full versions, and each full version's commit position is matched to the
nearest snapshot build in the catalog.  The chosen build's archive is then
streamed into ``chromium-<version>`` below the output directory.
"""

from __future__ import annotations

import logging
from functools import partial
from pathlib import Path
from typing import Iterator, Optional

import httpx

from ..cache import JsonFileCache
from ..catalog import BuildCatalog, fetch_build_files, select_archive
from ..extraction import ArchiveExtractor
from ..history import HistoryIndex, fetch_deps
from ..platforms import Platform
from ..resolver import ResolvedBuild, VersionResolver
from ..settings import BrowserFetchConfig, ReleaseChannel

__all__ = ["ChromiumReleases", "ChromiumReleaseItem"]

LOGGER = logging.getLogger("BrowserFetch.vendors.chromium")


class ChromiumReleaseItem:
    """A resolved snapshot build ready for download."""

    def __init__(
        self,
        build: ResolvedBuild,
        *,
        config: BrowserFetchConfig,
        client: Optional[httpx.Client] = None,
        extractor: Optional[ArchiveExtractor] = None,
    ) -> None:
        self.build = build
        self._config = config
        self._client = client
        self._extractor = extractor or ArchiveExtractor(block_size=config.http.stream_chunk_bytes)

    @property
    def version(self) -> str:
        return self.build.version

    def destination(self, output_dir: Path) -> Path:
        return Path(output_dir) / f"chromium-{self.build.version}"

    def download(self, output_dir: Path) -> Path:
        files = fetch_build_files(
            self.build.prefix, endpoints=self._config.endpoints, client=self._client
        )
        archive = select_archive(
            files, self._config.resolution.archive_names, prefix=self.build.prefix
        )
        destination = self.destination(output_dir)
        LOGGER.info(
            "unpacking %s into %s",
            archive.name,
            destination,
            extra={"stage": "download", "prefix": self.build.prefix, "archive": archive.name},
        )
        self._extractor.extract_url(archive.media_link, destination, client=self._client)
        return destination

    def __repr__(self) -> str:
        return f"ChromiumReleaseItem(prefix={self.build.prefix!r}, version={self.build.version!r})"


class ChromiumReleases:
    """History + catalog for one platform and channel."""

    name = "chromium"

    def __init__(
        self,
        platform: Platform,
        history: HistoryIndex,
        catalog: BuildCatalog,
        *,
        config: Optional[BrowserFetchConfig] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.platform = platform
        self.history = history
        self.catalog = catalog
        self.config = config or BrowserFetchConfig()
        self.client = client

    @classmethod
    def load(
        cls,
        platform: Platform,
        *,
        config: BrowserFetchConfig,
        channel: Optional[ReleaseChannel] = None,
        client: Optional[httpx.Client] = None,
        cache: Optional[JsonFileCache] = None,
    ) -> "ChromiumReleases":
        """Load history and catalog for ``platform`` through ``cache``."""

        history = HistoryIndex.load(
            platform,
            channel or config.resolution.channel,
            endpoints=config.endpoints,
            client=client,
            cache=cache,
        )
        catalog = BuildCatalog.enumerate(
            platform.prefix,
            endpoints=config.endpoints,
            client=client,
            cache=cache,
            tolerance=config.resolution.revision_tolerance,
        )
        LOGGER.info(
            "loaded %d history records and %d builds for %s",
            len(history),
            len(catalog),
            platform,
            extra={"stage": "load", "platform": str(platform)},
        )
        return cls(platform, history, catalog, config=config, client=client)

    def resolver(self) -> VersionResolver:
        deps_fetcher = partial(fetch_deps, endpoints=self.config.endpoints, client=self.client)
        return VersionResolver(
            self.catalog, deps_fetcher, order=self.config.resolution.candidate_order
        )

    def resolve(self, version: str) -> ResolvedBuild:
        """Resolve ``version`` to a build or raise :class:`NotFoundError`."""

        return self.resolver().resolve(self.history.filter(version), query=version)

    def item_for(self, build: ResolvedBuild) -> ChromiumReleaseItem:
        return ChromiumReleaseItem(build, config=self.config, client=self.client)

    def match_version(self, version: str) -> Iterator[ChromiumReleaseItem]:
        for build in self.resolver().iter_resolved(self.history.filter(version)):
            yield self.item_for(build)
