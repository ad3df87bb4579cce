"""Public API for resolving browser versions to snapshot builds and unpacking them.

A version string such as ``"114"`` is matched against the release history,
mapped to a commit position, located in the snapshot catalog, and the chosen
build's archive is streamed to disk with its root folder stripped.
"""

from __future__ import annotations

from .api import FetchOutcome, __version__, fetch, resolve_chromium
from .catalog import BuildCatalog, BuildEntry
from .errors import (
    ArchiveReadError,
    BrowserFetchError,
    ExtractError,
    ExtractIOError,
    FormatError,
    MalformedLayoutError,
    NotFoundError,
    TransportError,
    UserConfigError,
)
from .extraction import ArchiveExtractor, ExtractionResult
from .history import DepsInfo, HistoryIndex, HistoryRecord
from .resolver import ResolvedBuild, VersionResolver
from .settings import BrowserFetchConfig, load_config

__all__ = [
    "__version__",
    "fetch",
    "resolve_chromium",
    "FetchOutcome",
    "BuildCatalog",
    "BuildEntry",
    "HistoryIndex",
    "HistoryRecord",
    "DepsInfo",
    "VersionResolver",
    "ResolvedBuild",
    "ArchiveExtractor",
    "ExtractionResult",
    "BrowserFetchConfig",
    "load_config",
    "BrowserFetchError",
    "TransportError",
    "FormatError",
    "NotFoundError",
    "ExtractError",
    "MalformedLayoutError",
    "ExtractIOError",
    "ArchiveReadError",
    "UserConfigError",
]
