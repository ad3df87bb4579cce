"""Dotted version helpers shared by the vendor history indexes."""

from __future__ import annotations

from typing import Optional, Tuple

__all__ = ["parse_version", "version_sort_key", "matches_version_prefix", "is_pure_numeric"]


def parse_version(value: str) -> Optional[Tuple[int, ...]]:
    """Return the integer components of ``value`` or ``None`` when not numeric.

    Examples:
        >>> parse_version("114.0.5735.90")
        (114, 0, 5735, 90)
        >>> parse_version("114.0b1") is None
        True
    """

    parts = value.split(".")
    if not parts or any(not (part.isascii() and part.isdigit()) for part in parts):
        return None
    return tuple(int(part) for part in parts)


def version_sort_key(value: str) -> Tuple[int, Tuple[int, ...], str]:
    """Order numeric versions by value; push unparsable strings last."""

    parsed = parse_version(value)
    if parsed is None:
        return (1, (), value)
    return (0, parsed, value)


def matches_version_prefix(candidate: str, query: str) -> bool:
    """Return ``True`` when ``candidate`` equals ``query`` or extends it by a ``.``.

    A plain string prefix is not enough: ``"11"`` must not select ``"110.0"``.

    Examples:
        >>> matches_version_prefix("11.0.1", "11")
        True
        >>> matches_version_prefix("115.0.0.1", "11")
        False
    """

    if candidate == query:
        return True
    return candidate.startswith(query + ".")


def is_pure_numeric(value: str) -> bool:
    return all(ch == "." or ch.isdigit() for ch in value)
