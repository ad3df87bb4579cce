# === NAVMAP v1 ===
# {
#   "module": "BrowserFetch.extraction",
#   "purpose": "Single-pass streaming archive extraction with root-folder stripping",
#   "sections": [
#     {"id": "streams", "name": "Response Stream Adapter", "anchor": "STR", "kind": "helpers"},
#     {"id": "writers", "name": "Entry Writers", "anchor": "WRT", "kind": "helpers"},
#     {"id": "extractor", "name": "ArchiveExtractor", "anchor": "EXT", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Streaming archive extraction.

Snapshot archives contain exactly one top-level folder (``chrome-win/``,
``chrome-linux/`` ...) whose name is not known in advance.  The extractor reads
the archive as a single forward pass with libarchive: the first entry must be a
directory and becomes the root, every later entry must live under that root,
and the root component is stripped from each path before it is written below
the destination.  Entries are written in stream order; the archive guarantees
that directories precede their contents.

Nothing is rolled back on failure.  A destination left behind by a failed
extraction is partially populated and should be removed by the caller.
"""

from __future__ import annotations

import io
import logging
import os
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Iterator, Optional, Union

import httpx
import libarchive

from .errors import (
    ArchiveReadError,
    ExtractIOError,
    MalformedLayoutError,
    TransportError,
)
from .net import open_stream

__all__ = ["ExtractionResult", "ArchiveExtractor", "ResponseStream"]

LOGGER = logging.getLogger("BrowserFetch.extraction")

ArchiveSource = Union[bytes, BinaryIO]

# --- Response Stream Adapter -------------------------------------------------------


class ResponseStream(io.RawIOBase):
    """Non-seekable raw stream over an iterator of byte chunks.

    libarchive pulls data through ``readinto``; a transport failure raised by
    the chunk iterator is recorded in :attr:`error` and reported as end of
    stream so libarchive aborts cleanly.  The caller re-raises it afterwards.
    """

    def __init__(self, chunks: Iterator[bytes]) -> None:
        super().__init__()
        self._chunks = chunks
        self._pending = b""
        self.error: Optional[httpx.HTTPError] = None
        self.bytes_read = 0

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:  # type: ignore[override]
        if self.error is not None:
            return 0
        while not self._pending:
            try:
                self._pending = next(self._chunks)
            except StopIteration:
                return 0
            except httpx.HTTPError as exc:
                self.error = exc
                return 0
        size = min(len(buffer), len(self._pending))
        buffer[:size] = self._pending[:size]
        self._pending = self._pending[size:]
        self.bytes_read += size
        return size


# --- Entry Writers -----------------------------------------------------------------


def _relative_target(relative: str, entry_name: str) -> PurePosixPath:
    """Validate the root-stripped entry path and return it as a relative path."""

    path = PurePosixPath(relative)
    if path.is_absolute() or ".." in path.parts:
        raise MalformedLayoutError(f"archive entry escapes its root: {entry_name}", entry=entry_name)
    return path


def _ensure_within(path: Path, destination: Path, entry_name: str) -> None:
    """Reject ``path`` when, after following symlinks, it lies outside ``destination``."""

    try:
        path.resolve().relative_to(destination.resolve())
    except ValueError:
        raise MalformedLayoutError(
            f"archive entry resolves outside the destination: {entry_name}", entry=entry_name
        ) from None


def _check_link_target(path: Path, linkpath: str, destination: Path, entry_name: str) -> None:
    if os.path.isabs(linkpath):
        raise MalformedLayoutError(
            f"archive symlink points to an absolute path: {entry_name} -> {linkpath}",
            entry=entry_name,
        )
    _ensure_within(path.parent / linkpath, destination, entry_name)


def _make_dir(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ExtractIOError(f"cannot create directory {path}: {exc}", path=path) from exc


def _write_file(path: Path, entry) -> int:
    written = 0
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        # Replace, never write through, a symlink left at the target.
        if path.is_symlink():
            path.unlink()
        with path.open("wb") as handle:
            for block in entry.get_blocks():
                handle.write(block)
                written += len(block)
    except OSError as exc:
        raise ExtractIOError(f"cannot extract file {path}: {exc}", path=path) from exc
    return written


def _write_symlink(path: Path, entry) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.is_symlink() or path.exists():
            path.unlink()
        os.symlink(entry.linkpath, path)
    except OSError as exc:
        raise ExtractIOError(f"cannot create symlink {path}: {exc}", path=path) from exc


@dataclass
class ExtractionResult:
    """Summary of one extraction."""

    destination: Path
    root: Optional[str] = None
    directories: int = 0
    files: int = 0
    symlinks: int = 0
    skipped: int = 0
    bytes_written: int = 0


# --- ArchiveExtractor --------------------------------------------------------------


class ArchiveExtractor:
    """Extract single-root archives into a destination directory."""

    def __init__(self, *, block_size: int = 64 * 1024) -> None:
        self.block_size = block_size

    def _reader(self, source: ArchiveSource):
        if isinstance(source, (bytes, bytearray, memoryview)):
            return libarchive.memory_reader(bytes(source))
        return libarchive.stream_reader(source, block_size=self.block_size)

    def _write_entry(self, entry, relative: str, destination: Path, result: ExtractionResult) -> None:
        if not relative.strip("/"):
            return
        name = entry.pathname
        target = destination.joinpath(*_relative_target(relative, name).parts)
        if entry.isdir:
            _ensure_within(target, destination, name)
            _make_dir(target)
            result.directories += 1
            return
        _ensure_within(target.parent, destination, name)
        if entry.issym:
            _check_link_target(target, entry.linkpath, destination, name)
            _write_symlink(target, entry)
            result.symlinks += 1
        else:
            result.bytes_written += _write_file(target, entry)
            result.files += 1

    def extract(self, source: ArchiveSource, destination: Path) -> ExtractionResult:
        """Extract ``source`` into ``destination``, stripping the archive root.

        Args:
            source: Archive bytes or a readable binary stream. Streams are read
                once, front to back.
            destination: Directory receiving the root's contents. Created once
                the root directory entry has been seen.

        Returns:
            Counts of what was written.

        Raises:
            MalformedLayoutError: If the first entry is not a directory or a
                later entry lies outside it.
            ExtractIOError: If a directory or file cannot be written.
            ArchiveReadError: If the archive data is corrupt.
        """

        destination = Path(destination)
        result = ExtractionResult(destination=destination)
        root: Optional[str] = None
        try:
            with self._reader(source) as archive:
                for entry in archive:
                    name = entry.pathname
                    LOGGER.debug("unzip: %s", name, extra={"stage": "extract", "entry": name})
                    if root is None:
                        if not entry.isdir:
                            raise MalformedLayoutError(
                                f"archive does not start with a root directory: {name}",
                                entry=name,
                            )
                        root = name.rstrip("/") + "/"
                        result.root = root
                        _make_dir(destination)
                        continue
                    if not (name + "/").startswith(root):
                        raise MalformedLayoutError(
                            f"archive entry {name} is outside root {root}", entry=name
                        )
                    self._write_entry(entry, name[len(root):], destination, result)
        except libarchive.ArchiveError as exc:
            raise ArchiveReadError(f"failed to read archive: {exc}") from exc

        if root is None:
            LOGGER.warning("archive contained no entries", extra={"stage": "extract"})
        LOGGER.info(
            "extracted %d files into %s",
            result.files,
            destination,
            extra={
                "stage": "extract",
                "root": root,
                "directories": result.directories,
                "files": result.files,
                "bytes_written": result.bytes_written,
            },
        )
        return result

    def extract_subtree(self, source: ArchiveSource, destination: Path, root: str) -> ExtractionResult:
        """Extract only entries below ``root``; everything else is skipped.

        Used for installer payloads whose interesting files share a known
        folder next to unrelated top-level entries.
        """

        destination = Path(destination)
        prefix = root.rstrip("/") + "/"
        result = ExtractionResult(destination=destination, root=prefix)
        try:
            with self._reader(source) as archive:
                for entry in archive:
                    name = entry.pathname
                    if not (name + "/").startswith(prefix):
                        result.skipped += 1
                        continue
                    if result.directories == 0 and result.files == 0:
                        _make_dir(destination)
                    self._write_entry(entry, name[len(prefix):], destination, result)
        except libarchive.ArchiveError as exc:
            raise ArchiveReadError(f"failed to read archive: {exc}") from exc
        if result.files == 0:
            raise MalformedLayoutError(f"archive has no files under {prefix}")
        return result

    def extract_url(
        self,
        url: str,
        destination: Path,
        *,
        client: Optional[httpx.Client] = None,
        chunk_size: Optional[int] = None,
    ) -> ExtractionResult:
        """Stream the archive at ``url`` straight into :meth:`extract`."""

        with open_stream(url, client=client) as response:
            raw = ResponseStream(response.iter_bytes(chunk_size or self.block_size))
            stream = io.BufferedReader(raw, buffer_size=self.block_size)
            try:
                result = self.extract(stream, destination)
            except ArchiveReadError:
                if raw.error is not None:
                    raise TransportError(
                        f"download of {url} failed mid-stream: {raw.error}", url=url
                    ) from raw.error
                raise
            if raw.error is not None:
                raise TransportError(
                    f"download of {url} failed mid-stream: {raw.error}", url=url
                ) from raw.error
        LOGGER.info(
            "downloaded %d bytes from %s",
            raw.bytes_read,
            url,
            extra={"stage": "download", "url": url, "bytes": raw.bytes_read},
        )
        return result
