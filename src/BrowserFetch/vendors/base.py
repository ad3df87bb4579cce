"""Capability interface shared by browser vendors.

Every vendor answers the same two questions: which releases match a version
string, and how to materialise one of them on disk.  Vendor differences stay
behind :class:`BrowserReleases`; callers only iterate matches and call
:meth:`ReleaseItem.download`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterator, Protocol, runtime_checkable

from ..errors import NotFoundError

__all__ = ["ReleaseItem", "BrowserReleases", "first_match"]


@runtime_checkable
class ReleaseItem(Protocol):
    """A concrete, downloadable release."""

    @property
    def version(self) -> str:  # pragma: no cover - protocol
        ...

    def download(self, output_dir: Path) -> Path:  # pragma: no cover - protocol
        """Download and unpack into ``output_dir``; return the unpacked folder."""
        ...


@runtime_checkable
class BrowserReleases(Protocol):
    """Release catalogue of one browser vendor."""

    name: str

    def match_version(self, version: str) -> Iterator[ReleaseItem]:  # pragma: no cover - protocol
        """Lazily yield downloadable releases for ``version`` in preference order."""
        ...


def first_match(releases: BrowserReleases, version: str) -> ReleaseItem:
    """Return the preferred release for ``version``.

    Raises:
        NotFoundError: If the vendor has nothing matching ``version``.
    """

    for item in releases.match_version(version):
        return item
    raise NotFoundError(f"no {releases.name} release matches version {version}")
