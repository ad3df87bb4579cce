"""Vendor-specific release catalogues behind a common interface."""

from .base import BrowserReleases, ReleaseItem, first_match
from .chromium import ChromiumReleaseItem, ChromiumReleases
from .firefox import FirefoxReleaseItem, FirefoxReleases

__all__ = [
    "BrowserReleases",
    "ReleaseItem",
    "first_match",
    "ChromiumReleases",
    "ChromiumReleaseItem",
    "FirefoxReleases",
    "FirefoxReleaseItem",
]
