# === NAVMAP v1 ===
# {
#   "module": "BrowserFetch.catalog",
#   "purpose": "Enumerate snapshot revision folders and answer nearest-build queries",
#   "sections": [
#     {"id": "models", "name": "Listing Models", "anchor": "MOD", "kind": "models"},
#     {"id": "pagination", "name": "Paginated Listing Walk", "anchor": "PAG", "kind": "helpers"},
#     {"id": "catalog", "name": "BuildCatalog", "anchor": "CAT", "kind": "api"},
#     {"id": "files", "name": "Build File Listing", "anchor": "FIL", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Snapshot build catalog.

The snapshot object store exposes one folder per built commit position
(``Win_x64/1135570/``).  The listing API returns those folders as ``prefixes``
in pages chained by ``nextPageToken`` with no total count, so the walk is a
generator that keeps requesting pages until the service signals exhaustion.
Once every page is in hand the prefixes are flattened, filtered down to
well-formed ``<platform>/<revision>/`` entries, and sorted by revision so
:meth:`BuildCatalog.find` can bisect for the nearest build.
"""

from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

import httpx
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from .cache import JsonFileCache
from .errors import NotFoundError
from .net import get_json, validate_payload
from .settings import DEFAULT_REVISION_TOLERANCE, EndpointConfiguration

__all__ = [
    "StorageObject",
    "ListingPage",
    "BuildEntry",
    "BuildCatalog",
    "iter_listing_pages",
    "parse_build_prefix",
    "fetch_build_files",
    "select_archive",
]

LOGGER = logging.getLogger("BrowserFetch.catalog")

# --- Listing Models ----------------------------------------------------------------


class StorageObject(BaseModel):
    """A file inside a revision folder."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    kind: str = ""
    name: str
    media_link: str = Field(alias="mediaLink")
    size: str = "0"
    updated: str = ""


class ListingPage(BaseModel):
    """One page of the object listing response."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    kind: str = ""
    next_page_token: Optional[str] = Field(default=None, alias="nextPageToken")
    prefixes: List[str] = Field(default_factory=list)
    items: List[StorageObject] = Field(default_factory=list)


_PAGE_ADAPTER = TypeAdapter(ListingPage)


@dataclass(frozen=True, order=True)
class BuildEntry:
    """A revision folder: ``revision`` sorts first so entries order by position."""

    revision: int
    prefix: str


# --- Paginated Listing Walk --------------------------------------------------------


def _fetch_page(
    prefix: str,
    page_token: Optional[str],
    *,
    endpoints: EndpointConfiguration,
    client: Optional[httpx.Client],
) -> ListingPage:
    params: Dict[str, str] = {
        "delimiter": "/",
        "prefix": prefix,
        "fields": endpoints.listing_fields,
    }
    if page_token:
        params["pageToken"] = page_token
    payload = get_json(endpoints.listing_url, params=params, client=client)
    return validate_payload(_PAGE_ADAPTER, payload, url=endpoints.listing_url)


def iter_listing_pages(
    platform_tag: str,
    *,
    endpoints: Optional[EndpointConfiguration] = None,
    client: Optional[httpx.Client] = None,
) -> Iterator[ListingPage]:
    """Yield listing pages for ``<platform_tag>/`` until the listing is exhausted.

    A page without ``nextPageToken`` is the last one.  A page carrying no
    prefixes also ends the walk, even if the service handed back a token.

    Raises:
        TransportError: If any page request fails.
        FormatError: If a page body cannot be decoded.
    """

    endpoints = endpoints or EndpointConfiguration()
    page_token: Optional[str] = None
    page_number = 0
    while True:
        page = _fetch_page(f"{platform_tag}/", page_token, endpoints=endpoints, client=client)
        page_number += 1
        LOGGER.debug(
            "listing page %d: %d prefixes",
            page_number,
            len(page.prefixes),
            extra={"stage": "catalog", "platform": platform_tag, "page": page_number},
        )
        if not page.prefixes:
            return
        yield page
        if not page.next_page_token:
            return
        page_token = page.next_page_token


def parse_build_prefix(prefix: str, platform_tag: str) -> Optional[BuildEntry]:
    """Parse ``<platform_tag>/<digits>/`` into a :class:`BuildEntry`.

    Examples:
        >>> parse_build_prefix("Win_x64/1000/", "Win_x64")
        BuildEntry(revision=1000, prefix='Win_x64/1000/')
        >>> parse_build_prefix("Win_x64/LAST_CHANGE", "Win_x64") is None
        True
    """

    segments = prefix.split("/")
    if len(segments) != 3:
        return None
    tag, revision, tail = segments
    if tag != platform_tag or tail != "":
        return None
    if not (revision.isascii() and revision.isdigit()):
        return None
    return BuildEntry(revision=int(revision), prefix=prefix)


# --- BuildCatalog ------------------------------------------------------------------


class BuildCatalog:
    """Sorted, read-only set of revision folders for one platform."""

    def __init__(
        self,
        entries: Iterable[BuildEntry],
        *,
        tolerance: int = DEFAULT_REVISION_TOLERANCE,
    ) -> None:
        unique: Dict[str, BuildEntry] = {}
        for entry in entries:
            unique.setdefault(entry.prefix, entry)
        self._entries: List[BuildEntry] = sorted(unique.values())
        self._revisions: List[int] = [entry.revision for entry in self._entries]
        self.tolerance = tolerance

    @classmethod
    def from_prefixes(
        cls,
        prefixes: Iterable[str],
        platform_tag: str,
        *,
        tolerance: int = DEFAULT_REVISION_TOLERANCE,
    ) -> "BuildCatalog":
        """Build a catalog from raw listing prefixes, discarding malformed ones."""

        entries: List[BuildEntry] = []
        discarded = 0
        for prefix in prefixes:
            entry = parse_build_prefix(prefix, platform_tag)
            if entry is None:
                discarded += 1
                continue
            entries.append(entry)
        if discarded:
            LOGGER.debug(
                "discarded %d listing prefixes",
                discarded,
                extra={"stage": "catalog", "platform": platform_tag},
            )
        return cls(entries, tolerance=tolerance)

    @classmethod
    def enumerate(
        cls,
        platform_tag: str,
        *,
        endpoints: Optional[EndpointConfiguration] = None,
        client: Optional[httpx.Client] = None,
        cache: Optional[JsonFileCache] = None,
        tolerance: int = DEFAULT_REVISION_TOLERANCE,
    ) -> "BuildCatalog":
        """Walk the remote listing (or the cache) and build the catalog."""

        def _walk() -> List[str]:
            LOGGER.info("retrieving builds ...", extra={"stage": "catalog", "platform": platform_tag})
            pages = [
                page.prefixes
                for page in iter_listing_pages(platform_tag, endpoints=endpoints, client=client)
            ]
            return [prefix for page in pages for prefix in page]

        if cache is None:
            prefixes = _walk()
        else:
            prefixes = cache.get_or_fetch(f"builds-{platform_tag}.json", _walk)
        return cls.from_prefixes(prefixes, platform_tag, tolerance=tolerance)

    @property
    def entries(self) -> Sequence[BuildEntry]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[BuildEntry]:
        return iter(self._entries)

    def find(self, position: int) -> Optional[BuildEntry]:
        """Return the first build at or after ``position`` within tolerance.

        Examples:
            >>> catalog = BuildCatalog([BuildEntry(100, "W/100/"), BuildEntry(250, "W/250/")])
            >>> catalog.find(200).revision
            250
            >>> catalog.find(1000) is None
            True
        """

        index = bisect.bisect_left(self._revisions, position)
        if index >= len(self._entries):
            return None
        entry = self._entries[index]
        if entry.revision - position > self.tolerance:
            return None
        return entry


# --- Build File Listing ------------------------------------------------------------


def fetch_build_files(
    prefix: str,
    *,
    endpoints: Optional[EndpointConfiguration] = None,
    client: Optional[httpx.Client] = None,
) -> List[StorageObject]:
    """List the files stored inside one revision folder."""

    endpoints = endpoints or EndpointConfiguration()
    LOGGER.info("fetching build files for %s", prefix, extra={"stage": "catalog", "prefix": prefix})
    page = _fetch_page(prefix, None, endpoints=endpoints, client=client)
    for item in page.items:
        LOGGER.debug("    %s", item.name, extra={"stage": "catalog", "prefix": prefix})
    return page.items


def select_archive(files: Sequence[StorageObject], names: Sequence[str], *, prefix: str = "") -> StorageObject:
    """Pick the first file matching ``names`` in preference order.

    Raises:
        NotFoundError: If none of the preferred archive names is present.
    """

    for name in names:
        for file in files:
            if file.name.endswith(name):
                return file
    raise NotFoundError(f"no archive named {'/'.join(names)} found in build {prefix}")
