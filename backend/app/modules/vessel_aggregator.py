"""Multi-source vessel search: one query fanned out to every vessel source.

Branches:
  - index      live aisstream index (only while the feed is attached)
  - remote     Marinesia profile service
  - reference  static reference fleet
  - local      the caller's saved vessels

All branches run concurrently under ``asyncio.gather(..., return_exceptions=True)``
so a slow or failing source never starves the others.  A failing branch is
logged and contributes an empty group.  Groups are returned as-is, tagged by
source and not deduplicated against each other; ``prioritize`` gives the
presentation order.
"""
from __future__ import annotations

import asyncio
import enum
import logging
import re
from typing import Any, Awaitable, Callable, Iterable

from app.config import settings
from app.modules.aisstream_client import AISStreamManager
from app.modules.marinesia_client import MarinesiaClient
from app.modules.normalize import from_reference, from_saved
from app.modules.reference_fleet import load_reference_vessels, match_reference
from app.modules.vessel_index import VesselIndex
from app.modules.vessel_search import search_index
from app.schemas.vessel import AggregatedSearchResult, VesselResult

logger = logging.getLogger(__name__)

# Name searches against the remote service need at least this many characters
MIN_REMOTE_TEXT_LENGTH = 3

_MMSI_RE = re.compile(r"^\d{9}$")
_IMO_RE = re.compile(r"^\d{7}$")


class QueryKind(str, enum.Enum):
    MMSI = "mmsi"
    IMO = "imo"
    TEXT = "text"


def classify_query(query: str) -> QueryKind:
    normalized = query.strip().upper()
    if _MMSI_RE.match(normalized):
        return QueryKind.MMSI
    if _IMO_RE.match(normalized):
        return QueryKind.IMO
    return QueryKind.TEXT


def search_local(records: Iterable[Any], query: str) -> list[VesselResult]:
    """Saved vessels whose name, MMSI or IMO contains *query*."""
    q = query.strip()
    q_lower = q.lower()
    if not q:
        return []
    matches = []
    for vessel in records:
        name = getattr(vessel, "vessel_name", None) or ""
        imo = getattr(vessel, "imo_number", None) or ""
        mmsi = getattr(vessel, "mmsi", None) or ""
        if q_lower in name.lower() or q in str(imo) or q in str(mmsi):
            matches.append(from_saved(vessel))
    return matches


def prioritize(result: AggregatedSearchResult) -> list[VesselResult]:
    """Flatten groups in display order: index, remote, reference, local.

    Reference vessels are only included when neither live source found anything.
    """
    ordered = [*result.index_results, *result.remote_results]
    if not ordered:
        ordered.extend(result.reference_results)
    ordered.extend(result.local_results)
    return ordered


class VesselSearchAggregator:
    """Answers a vessel search from the index, Marinesia, reference set and saved records."""

    def __init__(
        self,
        index: VesselIndex,
        feed: AISStreamManager | None = None,
        remote: MarinesiaClient | None = None,
        reference: list[dict] | None = None,
        index_limit: int | None = None,
    ) -> None:
        self.index = index
        self.feed = feed
        self.remote = remote
        self.reference = reference if reference is not None else load_reference_vessels()
        self.index_limit = index_limit or settings.SEARCH_RESULT_LIMIT

    @property
    def index_enabled(self) -> bool:
        return self.feed is not None and self.feed.is_attached

    async def search(
        self,
        query: str,
        local_records: Iterable[Any] = (),
        load_local: Callable[[], Awaitable[Iterable[Any]]] | None = None,
    ) -> AggregatedSearchResult:
        """Fan *query* out to every source.

        Saved vessels come from *local_records*, or from *load_local* when
        given; a loader failure only empties the local group.
        """
        trimmed = query.strip()
        kind = classify_query(trimmed)
        logger.info("Vessel search: %r (%s)", trimmed, kind.value)

        branches = {
            "local": self._search_local(local_records, trimmed, load_local),
            "reference": self._search_reference(trimmed),
            "remote": self._search_remote(trimmed, kind),
        }
        if self.index_enabled:
            branches["index"] = self._search_index(trimmed)

        outcomes = await asyncio.gather(*branches.values(), return_exceptions=True)

        groups: dict[str, list[VesselResult]] = {}
        for name, outcome in zip(branches, outcomes):
            if isinstance(outcome, Exception):
                logger.warning("Vessel search branch %s failed: %s", name, outcome)
                groups[name] = []
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                groups[name] = outcome

        result = AggregatedSearchResult(
            index_results=groups.get("index", []),
            remote_results=groups["remote"],
            reference_results=groups["reference"],
            local_results=groups["local"],
        )
        result.total_count = (
            len(result.index_results) + len(result.remote_results)
            + len(result.reference_results) + len(result.local_results)
        )
        logger.info(
            "   index: %d | remote: %d | reference: %d | local: %d",
            len(result.index_results), len(result.remote_results),
            len(result.reference_results), len(result.local_results),
        )
        return result

    # -- branches ------------------------------------------------------------

    async def _search_local(
        self,
        records: Iterable[Any],
        query: str,
        load_local: Callable[[], Awaitable[Iterable[Any]]] | None = None,
    ) -> list[VesselResult]:
        if load_local is not None:
            records = await load_local()
        return search_local(records, query)

    async def _search_reference(self, query: str) -> list[VesselResult]:
        return [from_reference(entry) for entry in match_reference(self.reference, query)]

    async def _search_index(self, query: str) -> list[VesselResult]:
        return search_index(self.index, query, limit=self.index_limit)

    async def _search_remote(self, query: str, kind: QueryKind) -> list[VesselResult]:
        if self.remote is None or not self.remote.is_configured:
            return []

        if kind is QueryKind.MMSI:
            profile = await self.remote.get_profile(query)
            return [profile] if profile is not None else []

        if kind is QueryKind.IMO:
            return await self.remote.search_profiles(f"imo:{query}")

        if len(query) < MIN_REMOTE_TEXT_LENGTH:
            return []

        results = await self.remote.search_profiles(f"name:{query}")
        if not results:
            first_word = query.split()[0]
            if len(first_word) >= MIN_REMOTE_TEXT_LENGTH and first_word != query:
                logger.debug("No remote match for %r, retrying with %r", query, first_word)
                results = await self.remote.search_profiles(f"name:{first_word}")
        return results
