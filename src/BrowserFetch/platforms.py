"""Operating system and architecture model for snapshot lookups.

Every platform maps to two remote identifiers: the folder prefix used by the
snapshot object store (``Win_x64``, ``Linux`` ...) and the ``os`` argument
understood by the release history service (``win64``, ``mac`` ...).  Several
platforms share identifiers, which is why callers compare platforms with
:meth:`Platform.same_remote_target` before retrying on another architecture.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from .errors import UserConfigError

__all__ = ["Os", "Arch", "Platform", "current_os"]


class Os(str, Enum):
    """Operating systems with published snapshot builds."""

    WINDOWS = "windows"
    LINUX = "linux"
    MAC = "macos"

    @classmethod
    def parse(cls, value: str) -> "Os":
        """Parse user input or ``sys.platform`` spellings into an :class:`Os`."""

        normalized = value.strip().lower()
        aliases = {
            "windows": cls.WINDOWS,
            "win32": cls.WINDOWS,
            "linux": cls.LINUX,
            "macos": cls.MAC,
            "darwin": cls.MAC,
        }
        try:
            return aliases[normalized]
        except KeyError:
            raise UserConfigError(f"Unsupported OS: {value}") from None


class Arch(str, Enum):
    X86 = "x86"
    X86_64 = "x86_64"


_REMOTE_IDS: Dict[Tuple[Os, Arch], Tuple[str, str]] = {
    (Os.WINDOWS, Arch.X86): ("Win", "win"),
    (Os.WINDOWS, Arch.X86_64): ("Win_x64", "win64"),
    (Os.LINUX, Arch.X86): ("Linux", "linux"),
    (Os.LINUX, Arch.X86_64): ("Linux_x64", "linux"),
    (Os.MAC, Arch.X86): ("Mac", "mac"),
    (Os.MAC, Arch.X86_64): ("Mac", "mac"),
}


@dataclass(frozen=True)
class Platform:
    """An (os, arch) pair with its remote identifiers."""

    os: Os
    arch: Arch

    @property
    def prefix(self) -> str:
        """Folder prefix inside the snapshot object store."""

        return _REMOTE_IDS[(self.os, self.arch)][0]

    @property
    def arg_name(self) -> str:
        """``os`` query argument for the release history service."""

        return _REMOTE_IDS[(self.os, self.arch)][1]

    def same_remote_target(self, other: "Platform") -> bool:
        return self.prefix == other.prefix and self.arg_name == other.arg_name

    def with_arch(self, arch: Arch) -> "Platform":
        return Platform(self.os, arch)

    def __str__(self) -> str:
        return f"{self.os.value}-{self.arch.value}"


def current_os(platform_name: Optional[str] = None) -> Os:
    """Return the :class:`Os` for ``platform_name`` (defaults to ``sys.platform``)."""

    name = platform_name or sys.platform
    if name.startswith("linux"):
        name = "linux"
    return Os.parse(name)
