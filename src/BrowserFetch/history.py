"""Release history index and per-version dependency metadata.

The history service publishes every shipped version for an ``os``/``channel``
pair.  A user query such as ``"114"`` is matched against those records by
dotted-prefix (never plain string prefix), and each match can then be expanded
into :class:`DepsInfo`, whose ``chromium_base_position`` ties the human
version to a commit position in the snapshot catalog.
"""

from __future__ import annotations

import logging
from typing import Iterator, List, Optional, Sequence

import httpx
from pydantic import BaseModel, ConfigDict, TypeAdapter

from .cache import JsonFileCache
from .net import get_json, validate_payload
from .platforms import Platform
from .settings import EndpointConfiguration, ReleaseChannel
from .versions import matches_version_prefix

__all__ = ["HistoryRecord", "DepsInfo", "HistoryIndex", "fetch_deps"]

LOGGER = logging.getLogger("BrowserFetch.history")


class HistoryRecord(BaseModel):
    """A shipped version on one platform/channel."""

    model_config = ConfigDict(extra="ignore")

    version: str
    channel: str = ""
    os: str = ""
    timestamp: str = ""


class DepsInfo(BaseModel):
    """Dependency detail for a single version."""

    model_config = ConfigDict(extra="ignore")

    chromium_version: str
    chromium_base_position: Optional[str] = None
    chromium_base_commit: Optional[str] = None
    chromium_branch: Optional[str] = None
    chromium_commit: Optional[str] = None
    skia_commit: Optional[str] = None
    v8_commit: Optional[str] = None
    v8_position: Optional[str] = None
    v8_version: Optional[str] = None


_HISTORY_ADAPTER = TypeAdapter(List[HistoryRecord])
_DEPS_ADAPTER = TypeAdapter(DepsInfo)


class HistoryIndex:
    """History records for one platform and channel, in service order."""

    def __init__(self, records: Sequence[HistoryRecord]) -> None:
        self._records: List[HistoryRecord] = list(records)

    @classmethod
    def load(
        cls,
        platform: Platform,
        channel: ReleaseChannel = ReleaseChannel.STABLE,
        *,
        endpoints: Optional[EndpointConfiguration] = None,
        client: Optional[httpx.Client] = None,
        cache: Optional[JsonFileCache] = None,
    ) -> "HistoryIndex":
        """Load the history for ``platform``/``channel`` through the cache."""

        endpoints = endpoints or EndpointConfiguration()
        channel = ReleaseChannel(channel)
        url = endpoints.history_url
        params = {"os": platform.arg_name, "channel": channel.value}

        def _fetch() -> object:
            LOGGER.info(
                "retrieving release history ...",
                extra={"stage": "history", "os": platform.arg_name, "channel": channel.value},
            )
            records = validate_payload(
                _HISTORY_ADAPTER, get_json(url, params=params, client=client), url=url
            )
            return [record.model_dump() for record in records]

        if cache is None:
            payload = _fetch()
        else:
            payload = cache.get_or_fetch(f"history-{platform.arg_name}-{channel.value}.json", _fetch)
        return cls(validate_payload(_HISTORY_ADAPTER, payload, url=url))

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[HistoryRecord]:
        return iter(self._records)

    def filter(self, version_prefix: str) -> List[HistoryRecord]:
        """Return records equal to ``version_prefix`` or extending it by ``.``."""

        query = version_prefix.strip()
        return [record for record in self._records if matches_version_prefix(record.version, query)]


def fetch_deps(
    record: HistoryRecord,
    *,
    endpoints: Optional[EndpointConfiguration] = None,
    client: Optional[httpx.Client] = None,
) -> DepsInfo:
    """Fetch :class:`DepsInfo` for ``record``.

    Raises:
        TransportError: On network failure.
        FormatError: If the deps document lacks the expected fields.
    """

    endpoints = endpoints or EndpointConfiguration()
    url = endpoints.deps_url
    LOGGER.info(
        "fetching deps for %s",
        record.version,
        extra={"stage": "deps", "version": record.version},
    )
    payload = get_json(url, params={"version": record.version}, client=client)
    return validate_payload(_DEPS_ADAPTER, payload, url=url)
