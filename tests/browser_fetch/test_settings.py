"""Configuration loading, validation, and environment overrides."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from BrowserFetch.errors import UserConfigError
from BrowserFetch.settings import (
    BrowserFetchConfig,
    CandidateOrder,
    ReleaseChannel,
    get_default_config,
    invalidate_default_config_cache,
    load_config,
)


def test_defaults():
    config = BrowserFetchConfig()

    assert config.resolution.revision_tolerance == 120
    assert config.resolution.candidate_order is CandidateOrder.AS_LISTED
    assert config.resolution.channel is ReleaseChannel.STABLE
    assert config.resolution.archive_names[0] == "chrome-win.zip"
    assert config.endpoints.firefox_locale == "zh-CN"
    assert config.logging.level == "INFO"


def test_load_config_from_yaml(tmp_path):
    path = tmp_path / "browserfetch.yaml"
    path.write_text(
        "resolution:\n"
        "  revision_tolerance: 40\n"
        "  candidate_order: newest-first\n"
        "storage:\n"
        f"  cache_dir: {tmp_path / 'c'}\n"
        "logging:\n"
        "  level: debug\n",
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.resolution.revision_tolerance == 40
    assert config.resolution.candidate_order is CandidateOrder.NEWEST_FIRST
    assert config.storage.cache_dir == tmp_path / "c"
    assert config.logging.level == "DEBUG"


def test_empty_yaml_uses_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")

    assert load_config(path).resolution.revision_tolerance == 120


@pytest.mark.parametrize(
    "content",
    [
        "- just\n- a list\n",
        "resolution: [unclosed\n",
        "unknown_section: {}\n",
        "resolution:\n  revision_tolerance: -1\n",
        "resolution:\n  archive_names: []\n",
    ],
)
def test_invalid_yaml_raises_user_config_error(tmp_path, content):
    path = tmp_path / "bad.yaml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(UserConfigError):
        load_config(path)


def test_missing_config_file(tmp_path):
    with pytest.raises(UserConfigError, match="not found"):
        load_config(tmp_path / "nope.yaml")


def test_environment_overrides_apply_last(tmp_path, monkeypatch):
    path = tmp_path / "config.yaml"
    path.write_text("resolution:\n  revision_tolerance: 40\n", encoding="utf-8")
    monkeypatch.setenv("BROWSERFETCH_REVISION_TOLERANCE", "7")
    monkeypatch.setenv("BROWSERFETCH_CACHE_DIR", str(tmp_path / "env-cache"))
    monkeypatch.setenv("BROWSERFETCH_LOG_LEVEL", "warning")

    config = load_config(path)

    assert config.resolution.revision_tolerance == 7
    assert config.storage.cache_dir == Path(tmp_path / "env-cache")
    assert config.logging.level == "WARNING"


def test_invalid_environment_value(monkeypatch):
    monkeypatch.setenv("BROWSERFETCH_REVISION_TOLERANCE", "lots")

    with pytest.raises(UserConfigError):
        load_config()


def test_log_level_assignment_is_validated():
    config = BrowserFetchConfig()

    with pytest.raises(ValidationError):
        config.logging.level = "chatty"


def test_default_config_is_memoised(monkeypatch):
    first = get_default_config()
    assert get_default_config() is first
    assert get_default_config(copy=True) is not first

    monkeypatch.setenv("BROWSERFETCH_REVISION_TOLERANCE", "3")
    invalidate_default_config_cache()
    assert get_default_config().resolution.revision_tolerance == 3
