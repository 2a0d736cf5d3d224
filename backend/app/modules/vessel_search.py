"""Tiered vessel search over the in-memory aisstream index.

Tiers run in order and earlier hits are never displaced by later ones:

  1. exact MMSI (9 digits)
  2. exact IMO (7 digits) via the IMO index
  3. name index entries whose key is contained in the query, or contains it
  4. brute-force scan of record names, only while fewer than 20 hits exist

The result is capped at ``limit`` (50 by default) regardless of which tier
produced the hits.
"""
from __future__ import annotations

import re

from app.modules.normalize import from_index_record
from app.modules.vessel_index import VesselIndex, VesselRecord
from app.schemas.vessel import VesselResult

DEFAULT_LIMIT = 50
# Brute-force scan only runs while the indexed tiers found fewer than this
BRUTE_FORCE_THRESHOLD = 20

_MMSI_RE = re.compile(r"^\d{9}$")
_IMO_RE = re.compile(r"^\d{7}$")


def search_index(index: VesselIndex, query: str, limit: int = DEFAULT_LIMIT) -> list[VesselResult]:
    """Search the index and return normalized results tagged as index hits."""
    query = query.strip()
    query_lower = query.lower()
    hits: list[VesselRecord] = []
    seen: set[str] = set()

    def _collect(record: VesselRecord | None) -> None:
        if record is not None and record.mmsi not in seen:
            hits.append(record)
            seen.add(record.mmsi)

    if _MMSI_RE.match(query):
        _collect(index.get(query))

    if _IMO_RE.match(query):
        _collect(index.get_by_imo(query))

    if query_lower:
        for key, mmsis in index.name_entries():
            if query_lower in key or key in query_lower:
                for mmsi in mmsis:
                    if mmsi not in seen:
                        _collect(index.get(mmsi))

    if len(hits) < BRUTE_FORCE_THRESHOLD and query_lower:
        words = [w for w in query_lower.split() if len(w) >= 2]
        for record in index.records():
            if record.mmsi in seen or not record.name:
                continue
            name_lower = record.name.lower()
            if query_lower in name_lower or any(w in name_lower for w in words):
                _collect(record)
                if len(hits) >= limit:
                    break

    return [from_index_record(r) for r in hits[:limit]]
