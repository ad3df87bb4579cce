# === NAVMAP v1 ===
# {
#   "module": "BrowserFetch.settings",
#   "purpose": "Pydantic configuration models, YAML loading, and environment overrides",
#   "sections": [
#     {"id": "models", "name": "Configuration Models", "anchor": "MOD", "kind": "api"},
#     {"id": "env", "name": "Environment Overrides", "anchor": "ENV", "kind": "helpers"},
#     {"id": "loading", "name": "Configuration Loading", "anchor": "LOAD", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Configuration for browser build resolution and download.

Settings are grouped into small pydantic models (HTTP, endpoints, resolution,
storage, logging) under a single :class:`BrowserFetchConfig`.  A YAML file can
override any field; a handful of ``BROWSERFETCH_*`` environment variables are
applied last so CI jobs can tweak behaviour without editing files.  Directory
locations are ordinary configuration values injected into collaborators such as
:class:`~BrowserFetch.cache.JsonFileCache`; core modules never consult the
environment themselves.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import platformdirs
import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import UserConfigError

__all__ = [
    "DEFAULT_REVISION_TOLERANCE",
    "DEFAULT_ARCHIVE_NAMES",
    "ReleaseChannel",
    "CandidateOrder",
    "HttpConfiguration",
    "EndpointConfiguration",
    "ResolutionConfiguration",
    "StorageConfiguration",
    "LoggingConfiguration",
    "BrowserFetchConfig",
    "EnvironmentOverrides",
    "load_raw_yaml",
    "load_config",
    "get_default_config",
    "invalidate_default_config_cache",
]

LOGGER = logging.getLogger("BrowserFetch.settings")

# --- Configuration Models ------------------------------------------------------

# Snapshots are not built for every commit position; beyond this window the
# nearest build no longer corresponds to the requested release.
DEFAULT_REVISION_TOLERANCE = 120

DEFAULT_ARCHIVE_NAMES = (
    "chrome-win.zip",
    "chrome-win32.zip",
    "chrome-mac.zip",
    "chrome-linux.zip",
)


class ReleaseChannel(str, Enum):
    """Release channels published by the history service."""

    STABLE = "stable"
    BETA = "beta"
    DEV = "dev"
    CANARY = "canary"


class CandidateOrder(str, Enum):
    """How matched history records are ordered before resolution."""

    AS_LISTED = "as-listed"
    NEWEST_FIRST = "newest-first"
    OLDEST_FIRST = "oldest-first"


class HttpConfiguration(BaseModel):
    """HTTP client settings shared by every remote call."""

    timeout_sec: float = Field(default=30.0, gt=0.0, le=600.0)
    connect_timeout_sec: float = Field(default=10.0, gt=0.0, le=120.0)
    http2_enabled: bool = Field(default=False)
    user_agent: str = Field(default="browserfetch/0.1")
    proxy: Optional[str] = Field(default=None, description="Proxy URL passed to httpx")
    stream_chunk_bytes: int = Field(default=64 * 1024, ge=1024)

    model_config = {"validate_assignment": True}


class EndpointConfiguration(BaseModel):
    """Remote service locations."""

    listing_url: str = Field(
        default="https://www.googleapis.com/storage/v1/b/chromium-browser-snapshots/o"
    )
    listing_fields: str = Field(
        default="items(kind,mediaLink,metadata,name,size,updated),kind,prefixes,nextPageToken"
    )
    history_url: str = Field(default="https://omahaproxy.appspot.com/history.json")
    deps_url: str = Field(default="https://omahaproxy.appspot.com/deps.json")
    firefox_releases_url: str = Field(default="https://ftp.mozilla.org/pub/firefox/releases/")
    firefox_locale: str = Field(default="zh-CN")


class ResolutionConfiguration(BaseModel):
    """Knobs for version → build resolution."""

    revision_tolerance: int = Field(default=DEFAULT_REVISION_TOLERANCE, ge=0)
    candidate_order: CandidateOrder = Field(default=CandidateOrder.AS_LISTED)
    channel: ReleaseChannel = Field(default=ReleaseChannel.STABLE)
    archive_names: List[str] = Field(default_factory=lambda: list(DEFAULT_ARCHIVE_NAMES))

    @field_validator("archive_names")
    @classmethod
    def validate_archive_names(cls, value: List[str]) -> List[str]:
        """Reject an empty archive preference list."""

        if not value:
            raise ValueError("archive_names must contain at least one entry")
        return value

    model_config = {"validate_assignment": True}


class StorageConfiguration(BaseModel):
    """Filesystem locations for cached listings and unpacked builds."""

    cache_dir: Path = Field(
        default_factory=lambda: Path(platformdirs.user_cache_dir("browserfetch"))
    )
    output_dir: Path = Field(default_factory=Path.cwd)


class LoggingConfiguration(BaseModel):
    """Logging-related configuration."""

    level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    max_log_size_mb: int = Field(default=20, gt=0, description="Maximum size of rotated log files")
    retention_days: int = Field(default=14, ge=1, description="Retention period for log files")
    log_dir: Optional[Path] = Field(default=None, description="Directory for JSONL log files")

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        """Normalise logging levels and ensure they match the supported set."""

        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR"}
        upper = value.upper()
        if upper not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}")
        return upper

    model_config = {"validate_assignment": True}


class BrowserFetchConfig(BaseModel):
    """Top-level configuration object."""

    http: HttpConfiguration = Field(default_factory=HttpConfiguration)
    endpoints: EndpointConfiguration = Field(default_factory=EndpointConfiguration)
    resolution: ResolutionConfiguration = Field(default_factory=ResolutionConfiguration)
    storage: StorageConfiguration = Field(default_factory=StorageConfiguration)
    logging: LoggingConfiguration = Field(default_factory=LoggingConfiguration)

    model_config = {"extra": "forbid"}

    @classmethod
    def from_defaults(cls) -> "BrowserFetchConfig":
        config = cls()
        _apply_env_overrides(config)
        return config


# --- Environment Overrides -----------------------------------------------------


class EnvironmentOverrides(BaseSettings):
    """Pydantic settings model exposing environment-derived overrides."""

    log_level: Optional[str] = Field(default=None, alias="BROWSERFETCH_LOG_LEVEL")
    cache_dir: Optional[Path] = Field(default=None, alias="BROWSERFETCH_CACHE_DIR")
    output_dir: Optional[Path] = Field(default=None, alias="BROWSERFETCH_OUTPUT_DIR")
    proxy: Optional[str] = Field(default=None, alias="BROWSERFETCH_PROXY")
    revision_tolerance: Optional[int] = Field(
        default=None, alias="BROWSERFETCH_REVISION_TOLERANCE"
    )

    model_config = SettingsConfigDict(
        env_prefix="BROWSERFETCH_", case_sensitive=False, extra="ignore"
    )


def _apply_env_overrides(config: BrowserFetchConfig) -> None:
    """Mutate ``config`` in-place using values from :class:`EnvironmentOverrides`."""

    try:
        env = EnvironmentOverrides()
    except PydanticValidationError as exc:
        raise UserConfigError(f"Invalid BROWSERFETCH_* environment value: {exc}") from exc

    if env.log_level is not None:
        config.logging.level = env.log_level
        LOGGER.info("Config overridden: log_level=%s", env.log_level, extra={"stage": "config"})
    if env.cache_dir is not None:
        config.storage.cache_dir = env.cache_dir
        LOGGER.info("Config overridden: cache_dir=%s", env.cache_dir, extra={"stage": "config"})
    if env.output_dir is not None:
        config.storage.output_dir = env.output_dir
        LOGGER.info("Config overridden: output_dir=%s", env.output_dir, extra={"stage": "config"})
    if env.proxy is not None:
        config.http.proxy = env.proxy
        LOGGER.info("Config overridden: proxy set", extra={"stage": "config"})
    if env.revision_tolerance is not None:
        config.resolution.revision_tolerance = env.revision_tolerance
        LOGGER.info(
            "Config overridden: revision_tolerance=%s",
            env.revision_tolerance,
            extra={"stage": "config"},
        )


# --- Configuration Loading -----------------------------------------------------

_DEFAULT_CONFIG_LOCK = threading.Lock()
_DEFAULT_CONFIG_CACHE: Optional[BrowserFetchConfig] = None


def load_raw_yaml(config_path: Path) -> Mapping[str, Any]:
    """Read a YAML configuration file and return its top-level mapping."""

    path = Path(config_path).expanduser()
    if not path.exists():
        raise UserConfigError(f"Configuration file not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise UserConfigError(f"Configuration file '{path}' contains invalid YAML") from exc

    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise UserConfigError("Configuration file must contain a mapping at the root")
    return data


def load_config(config_path: Optional[Path] = None) -> BrowserFetchConfig:
    """Load, validate, and apply environment overrides.

    Args:
        config_path: Optional YAML file. Without one the defaults are used.

    Returns:
        Fully validated configuration.

    Raises:
        UserConfigError: If the file is missing, malformed, or fails validation.
    """

    raw: Dict[str, Any] = dict(load_raw_yaml(config_path)) if config_path else {}
    try:
        config = BrowserFetchConfig.model_validate(raw)
    except PydanticValidationError as exc:
        raise UserConfigError(f"Invalid configuration: {exc}") from exc
    _apply_env_overrides(config)
    return config


def get_default_config(*, copy: bool = False) -> BrowserFetchConfig:
    """Return a memoised :class:`BrowserFetchConfig` constructed from defaults."""

    global _DEFAULT_CONFIG_CACHE  # noqa: PLW0603

    with _DEFAULT_CONFIG_LOCK:
        if _DEFAULT_CONFIG_CACHE is None:
            _DEFAULT_CONFIG_CACHE = BrowserFetchConfig.from_defaults()
        cached = _DEFAULT_CONFIG_CACHE
    if copy:
        return cached.model_copy(deep=True)
    return cached


def invalidate_default_config_cache() -> None:
    """Invalidate the cached default configuration."""

    global _DEFAULT_CONFIG_CACHE  # noqa: PLW0603

    with _DEFAULT_CONFIG_LOCK:
        _DEFAULT_CONFIG_CACHE = None
