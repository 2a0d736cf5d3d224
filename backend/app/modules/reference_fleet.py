"""Static reference fleet: a small fixed set of well-known vessels.

Loaded once from ``app/data/reference_vessels.yaml`` and matched offline by
the search aggregator.  Results from this set are only shown when neither the
live index nor the remote profile service produced anything.
"""
from __future__ import annotations

import logging
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

REFERENCE_PATH = Path(__file__).resolve().parent.parent / "data" / "reference_vessels.yaml"

# ── Lazy-loaded reference set ───────────────────────────────────────────────
_REFERENCE_VESSELS: list[dict] | None = None


def load_reference_vessels(path: Path | None = None) -> list[dict]:
    """Load and cache the reference vessels.

    Identifiers are coerced to strings; entries without a name are skipped.
    An explicit *path* bypasses the cache.
    """
    global _REFERENCE_VESSELS
    if path is None and _REFERENCE_VESSELS is not None:
        return _REFERENCE_VESSELS

    config_path = path or REFERENCE_PATH
    if not config_path.exists():
        logger.warning("reference_vessels.yaml not found at %s", config_path)
        return []

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    vessels = []
    for entry in raw.get("reference_vessels", []):
        name = str(entry.get("name") or "").strip()
        if not name:
            continue
        vessels.append({
            **entry,
            "name": name,
            "imo": str(entry.get("imo") or ""),
            "mmsi": str(entry.get("mmsi") or ""),
        })

    if path is None:
        _REFERENCE_VESSELS = vessels
        logger.info("Loaded %d reference vessels", len(vessels))
    return vessels


def match_reference(vessels: list[dict], query: str) -> list[dict]:
    """Reference entries matching *query* by name, type, name token or identifier.

    A query token of 2+ characters matches a name token when either contains
    the other, so "MAERSK HIGH" finds "MAERSK HIGHLANDER".
    """
    raw = query.strip()
    q = raw.lower()
    if not q:
        return []
    query_words = [w for w in q.split() if len(w) >= 2]

    matches = []
    for vessel in vessels:
        name = vessel["name"].lower()
        vessel_type = str(vessel.get("vessel_type") or "").lower()

        if q in name or q in vessel_type:
            matches.append(vessel)
            continue

        name_words = name.split()
        if any(nw in qw or qw in nw for qw in query_words for nw in name_words):
            matches.append(vessel)
            continue

        if (vessel["imo"] and raw in vessel["imo"]) or (vessel["mmsi"] and raw in vessel["mmsi"]):
            matches.append(vessel)
    return matches
