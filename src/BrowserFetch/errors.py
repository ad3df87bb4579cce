"""Exception hierarchy shared across build resolution and archive extraction.

Browser fetching spans remote listing enumeration, release history lookups,
commit-position resolution, and streaming archive extraction.  The failure
modes are grouped here so callers can react to broad categories (network
trouble vs. a version that simply has no build) while still inspecting the
specialised subclasses when they need the offending URL or path.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

__all__ = [
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


class BrowserFetchError(RuntimeError):
    """Base exception for resolution, download, or extraction failures."""


class TransportError(BrowserFetchError):
    """Raised when an HTTP request fails at the network or status level."""

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class FormatError(BrowserFetchError):
    """Raised when a server response cannot be parsed into the expected shape."""

    def __init__(self, message: str, *, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.url = url


class NotFoundError(BrowserFetchError):
    """Raised when a version string resolves to no build within tolerance."""


class ExtractError(BrowserFetchError):
    """Base class for archive extraction failures."""


class MalformedLayoutError(ExtractError):
    """Raised when an archive lacks a single root directory or leaves it."""

    def __init__(self, message: str, *, entry: Optional[str] = None) -> None:
        super().__init__(message)
        self.entry = entry


class ExtractIOError(ExtractError):
    """Raised when creating a directory or writing a file fails locally."""

    def __init__(self, message: str, *, path: Union[str, Path]) -> None:
        super().__init__(message)
        self.path = Path(path)


class ArchiveReadError(ExtractError):
    """Raised when the archive byte stream itself is corrupt or unsupported."""


class UserConfigError(BrowserFetchError):
    """Raised when CLI arguments or YAML configuration inputs are invalid."""
