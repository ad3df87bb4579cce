"""Resolve history records to a concrete snapshot build.

Each candidate record is expanded into :class:`~BrowserFetch.history.DepsInfo`
and its commit position is looked up in the :class:`~BrowserFetch.catalog.BuildCatalog`.
A candidate that cannot be used (no position, a non-numeric position, or no
build within tolerance) is logged and skipped; only transport and format
failures abort the search.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Sequence

from .catalog import BuildCatalog
from .errors import NotFoundError
from .history import DepsInfo, HistoryRecord
from .settings import CandidateOrder
from .versions import version_sort_key

__all__ = ["ResolvedBuild", "VersionResolver", "order_candidates"]

LOGGER = logging.getLogger("BrowserFetch.resolver")

DepsFetcher = Callable[[HistoryRecord], DepsInfo]


@dataclass(frozen=True)
class ResolvedBuild:
    """Storage prefix of the chosen build and the full version it serves."""

    prefix: str
    version: str
    revision: int
    position: int


def order_candidates(
    candidates: Sequence[HistoryRecord], order: CandidateOrder
) -> List[HistoryRecord]:
    """Apply the candidate ordering policy.

    ``as-listed`` keeps the service order, which is newest first for the
    history endpoint.
    """

    order = CandidateOrder(order)
    if order is CandidateOrder.AS_LISTED:
        return list(candidates)
    ranked = sorted(candidates, key=lambda record: version_sort_key(record.version))
    if order is CandidateOrder.OLDEST_FIRST:
        return ranked
    # Unparsable versions stay at the end in both directions.
    numeric = [record for record in ranked if version_sort_key(record.version)[0] == 0]
    return numeric[::-1] + ranked[len(numeric):]


class VersionResolver:
    """Walk candidates in preference order; the first resolvable one wins."""

    def __init__(
        self,
        catalog: BuildCatalog,
        deps_fetcher: DepsFetcher,
        *,
        order: CandidateOrder = CandidateOrder.AS_LISTED,
    ) -> None:
        self.catalog = catalog
        self.deps_fetcher = deps_fetcher
        self.order = CandidateOrder(order)

    def _try_candidate(self, record: HistoryRecord) -> Optional[ResolvedBuild]:
        deps = self.deps_fetcher(record)
        extra = {"stage": "resolve", "version": deps.chromium_version}
        raw_position = deps.chromium_base_position
        if raw_position is None:
            LOGGER.info("chromium %s: no chromium_base_position", deps.chromium_version, extra=extra)
            return None
        digits = raw_position.strip()
        if not (digits.isascii() and digits.isdigit()):
            LOGGER.info(
                "chromium %s: cannot parse base position %r",
                deps.chromium_version,
                raw_position,
                extra=extra,
            )
            return None
        position = int(digits)
        entry = self.catalog.find(position)
        if entry is None:
            LOGGER.info(
                "no build found for rev: %d",
                position,
                extra={**extra, "position": position, "tolerance": self.catalog.tolerance},
            )
            return None
        LOGGER.info(
            "chromium %s: position %d -> build %s",
            deps.chromium_version,
            position,
            entry.prefix,
            extra={**extra, "position": position, "revision": entry.revision},
        )
        return ResolvedBuild(
            prefix=entry.prefix,
            version=deps.chromium_version,
            revision=entry.revision,
            position=position,
        )

    def iter_resolved(self, candidates: Sequence[HistoryRecord]) -> Iterator[ResolvedBuild]:
        """Lazily yield every resolvable candidate in policy order."""

        for record in order_candidates(candidates, self.order):
            resolved = self._try_candidate(record)
            if resolved is not None:
                yield resolved

    def resolve(self, candidates: Sequence[HistoryRecord], *, query: str = "") -> ResolvedBuild:
        """Return the first resolvable candidate.

        Raises:
            NotFoundError: If no candidate maps to a build within tolerance.
            TransportError: If fetching deps fails.
            FormatError: If a deps document is malformed.
        """

        for resolved in self.iter_resolved(candidates):
            return resolved
        label = query or ", ".join(record.version for record in candidates) or "<none>"
        raise NotFoundError(
            f"no build within {self.catalog.tolerance} revisions found for version {label}"
        )
