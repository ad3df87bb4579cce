"""Platform identifiers and OS parsing."""

from __future__ import annotations

import pytest

from BrowserFetch.errors import UserConfigError
from BrowserFetch.platforms import Arch, Os, Platform, current_os


@pytest.mark.parametrize(
    "os_, arch, prefix, arg_name",
    [
        (Os.WINDOWS, Arch.X86, "Win", "win"),
        (Os.WINDOWS, Arch.X86_64, "Win_x64", "win64"),
        (Os.LINUX, Arch.X86, "Linux", "linux"),
        (Os.LINUX, Arch.X86_64, "Linux_x64", "linux"),
        (Os.MAC, Arch.X86, "Mac", "mac"),
        (Os.MAC, Arch.X86_64, "Mac", "mac"),
    ],
)
def test_remote_identifiers(os_, arch, prefix, arg_name):
    platform = Platform(os_, arch)

    assert platform.prefix == prefix
    assert platform.arg_name == arg_name


def test_same_remote_target():
    mac = Platform(Os.MAC, Arch.X86_64)
    linux = Platform(Os.LINUX, Arch.X86_64)

    assert mac.same_remote_target(mac.with_arch(Arch.X86))
    assert not linux.same_remote_target(linux.with_arch(Arch.X86))
    assert str(linux) == "linux-x86_64"


@pytest.mark.parametrize(
    "value, expected",
    [("Windows", Os.WINDOWS), ("win32", Os.WINDOWS), ("darwin", Os.MAC), (" linux ", Os.LINUX)],
)
def test_os_parse_aliases(value, expected):
    assert Os.parse(value) is expected


def test_unsupported_os():
    with pytest.raises(UserConfigError, match="Unsupported OS"):
        Os.parse("freebsd")


def test_current_os_from_platform_name():
    assert current_os("linux2") is Os.LINUX
    assert current_os("darwin") is Os.MAC
    with pytest.raises(UserConfigError):
        current_os("cygwin")
