"""Read-through JSON document cache.

Listings and release histories are expensive to enumerate and change slowly, so
they are stored as plain JSON files under a cache directory and reused on the
next run.  The directory is supplied by the caller (normally
``config.storage.cache_dir``); nothing here looks at the environment.
"""

from __future__ import annotations

import json
import logging
import os
import re
import uuid
from pathlib import Path
from typing import Any, Callable, List, Optional

from .errors import FormatError

__all__ = ["JsonFileCache"]

LOGGER = logging.getLogger("BrowserFetch.cache")

_SAFE_NAME = re.compile(r"^[A-Za-z0-9._-]+$")


class JsonFileCache:
    """Cache of JSON documents keyed by filename.

    Examples:
        >>> import tempfile
        >>> cache = JsonFileCache(Path(tempfile.mkdtemp()))
        >>> cache.get_or_fetch("demo.json", lambda: [1, 2])
        [1, 2]
        >>> cache.get_or_fetch("demo.json", lambda: [3])
        [1, 2]
    """

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def path_for(self, name: str) -> Path:
        if not _SAFE_NAME.match(name):
            raise ValueError(f"unsafe cache key: {name!r}")
        return self.directory / name

    def load(self, name: str) -> Optional[Any]:
        """Return the cached document for ``name`` or ``None`` when absent."""

        path = self.path_for(name)
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as handle:
                return json.load(handle)
        except json.JSONDecodeError as exc:
            raise FormatError(f"cached document {path} is not valid JSON: {exc}") from exc

    def store(self, name: str, payload: Any) -> Path:
        """Write ``payload`` atomically and return the final path."""

        path = self.path_for(name)
        self.directory.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(f".{path.name}.{os.getpid()}-{uuid.uuid4().hex[:8]}.tmp")
        try:
            with tmp_path.open("w", encoding="utf-8") as handle:
                json.dump(payload, handle)
            tmp_path.replace(path)
        finally:
            tmp_path.unlink(missing_ok=True)
        return path

    def get_or_fetch(self, name: str, fetch: Callable[[], Any]) -> Any:
        """Return the cached document or call ``fetch`` and cache its result."""

        cached = self.load(name)
        if cached is not None:
            LOGGER.info(
                "using cached %s",
                self.path_for(name),
                extra={"stage": "cache", "cache_key": name, "cache_hit": True},
            )
            return cached
        payload = fetch()
        path = self.store(name, payload)
        LOGGER.debug(
            "cached %s",
            path,
            extra={"stage": "cache", "cache_key": name, "cache_hit": False},
        )
        return payload

    def clear(self) -> List[Path]:
        """Delete every cached document and return the removed paths."""

        if not self.directory.exists():
            return []
        removed: List[Path] = []
        for path in sorted(self.directory.glob("*.json")):
            path.unlink(missing_ok=True)
            removed.append(path)
        return removed
