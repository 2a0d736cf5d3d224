"""Normalization of vessel data from every source into ``VesselResult``.

Each source speaks its own dialect (aisstream index records, Marinesia
profiles, the reference fleet, saved vessels).  Everything leaving this module
has the same shape: text fields default to "" and measurements are either a
number or "", so callers never see None for the core identity fields.
"""
from __future__ import annotations

from typing import Any

from app.modules.vessel_index import VesselRecord
from app.schemas.vessel import LatestPosition, ResultSource, VesselResult


# ISO 3166 alpha-3 flag codes returned by Marinesia -> display name
COUNTRY_NAMES: dict[str, str] = {
    "PAN": "Panama", "GBR": "United Kingdom", "USA": "United States",
    "AUS": "Australia", "NOR": "Norway", "SGP": "Singapore",
    "MHL": "Marshall Islands", "LBR": "Liberia", "HKG": "Hong Kong",
    "MLT": "Malta", "BHS": "Bahamas", "CYP": "Cyprus", "GRC": "Greece",
    "JPN": "Japan", "CHN": "China", "KOR": "South Korea", "DNK": "Denmark",
    "NLD": "Netherlands", "DEU": "Germany", "ITA": "Italy", "FRA": "France",
    "ESP": "Spain", "PRT": "Portugal", "BEL": "Belgium", "IND": "India",
    "IDN": "Indonesia", "MYS": "Malaysia", "PHL": "Philippines",
    "THA": "Thailand", "VNM": "Vietnam", "NZL": "New Zealand",
    "BRA": "Brazil", "ARG": "Argentina", "CHL": "Chile", "MEX": "Mexico",
    "RUS": "Russia", "UKR": "Ukraine", "TUR": "Turkey",
    "SAU": "Saudi Arabia", "ARE": "United Arab Emirates", "QAT": "Qatar",
}

# AIS ship type codes with a dedicated label (ITU-R M.1371 table 53)
_SHIP_TYPE_NAMES: dict[int, str] = {
    20: "Wing in Ground", 30: "Fishing", 31: "Towing", 32: "Towing (Large)",
    33: "Dredging", 34: "Diving Operations", 35: "Military Operations",
    36: "Sailing", 37: "Pleasure Craft", 40: "High-Speed Craft",
    50: "Pilot Vessel", 51: "Search and Rescue Vessel", 52: "Tug",
    53: "Port Tender", 54: "Anti-Pollution Vessel", 55: "Law Enforcement",
    58: "Medical Transport", 59: "Naval Ship",
    60: "Passenger Ship", 69: "Passenger Ship",
    70: "Cargo Ship", 79: "Cargo Ship",
    80: "Tanker", 89: "Tanker",
    90: "Other Type",
}

_NAV_STATUS_NAMES: dict[int, str] = {
    0: "Under way using engine", 1: "At anchor", 2: "Not under command",
    3: "Restricted manoeuvrability", 4: "Constrained by draught",
    5: "Moored", 6: "Aground", 7: "Engaged in fishing",
    8: "Under way sailing", 11: "Power-driven vessel towing astern",
    12: "Power-driven vessel pushing ahead", 14: "AIS-SART (active)",
    15: "Not defined",
}


def country_name(code: Any) -> str:
    """Resolve a flag code to a country name; unknown codes pass through."""
    if not code:
        return ""
    code = str(code).strip()
    return COUNTRY_NAMES.get(code.upper(), code)


def ship_type_name(type_code: Any) -> str:
    """Convert an AIS ship type code to a human-readable label."""
    try:
        code = int(type_code)
    except (TypeError, ValueError):
        return "Unknown"
    if not code:
        return "Unknown"
    if code in _SHIP_TYPE_NAMES:
        return _SHIP_TYPE_NAMES[code]
    return f"Type {code}"


def nav_status_name(status: Any) -> str:
    try:
        return _NAV_STATUS_NAMES.get(int(status), "Unknown")
    except (TypeError, ValueError):
        return "Unknown"


def _text(value: Any) -> str:
    if value is None or value == "" or value == 0:
        return ""
    return str(value).strip()


def _measure(value: Any) -> float | str:
    if value is None or value == "" or value == 0:
        return ""
    try:
        return float(value)
    except (TypeError, ValueError):
        return ""


def from_index_record(record: VesselRecord) -> VesselResult:
    static = record.static
    position = record.position
    destination = _text(static.destination) if static else ""
    return VesselResult(
        name=_text(record.name),
        mmsi=_text(record.mmsi),
        imo=_text(record.imo),
        vessel_type=ship_type_name(static.ship_type if static else None),
        length=_measure(static.length if static else None),
        beam=_measure(static.beam if static else None),
        callsign=_text(static.call_sign if static else None),
        latitude=position.latitude if position else None,
        longitude=position.longitude if position else None,
        destination=destination or None,
        last_seen=record.last_seen,
        source=ResultSource.INDEX,
    )


def from_profile(payload: dict) -> VesselResult:
    """Marinesia ``/vessel/.../profile`` entry."""
    return VesselResult(
        name=_text(payload.get("name")),
        mmsi=_text(payload.get("mmsi")),
        imo=_text(payload.get("imo")),
        vessel_type=_text(payload.get("ship_type")),
        length=_measure(payload.get("length")),
        beam=_measure(payload.get("width")),
        flag=country_name(payload.get("country")),
        callsign=_text(payload.get("callsign")),
        source=ResultSource.REMOTE,
    )


def from_reference(entry: dict) -> VesselResult:
    return VesselResult(
        name=_text(entry.get("name")),
        mmsi=_text(entry.get("mmsi")),
        imo=_text(entry.get("imo")),
        vessel_type=_text(entry.get("vessel_type")),
        length=_measure(entry.get("length")),
        beam=_measure(entry.get("beam")),
        flag=country_name(entry.get("flag")),
        callsign=_text(entry.get("callsign")),
        gross_tonnage=_measure(entry.get("gross_tonnage")),
        source=ResultSource.REFERENCE,
    )


def from_saved(vessel: Any) -> VesselResult:
    """A ``SavedVessel`` row (or any object with the same attributes)."""
    return VesselResult(
        name=_text(getattr(vessel, "vessel_name", None)),
        mmsi=_text(getattr(vessel, "mmsi", None)),
        imo=_text(getattr(vessel, "imo_number", None)),
        vessel_type=_text(getattr(vessel, "vessel_type", None)),
        length=_measure(getattr(vessel, "loa", None)),
        beam=_measure(getattr(vessel, "beam", None)),
        flag=country_name(getattr(vessel, "flag", None)),
        callsign=_text(getattr(vessel, "callsign", None)),
        gross_tonnage=_measure(getattr(vessel, "gross_tonnage", None)),
        source=ResultSource.LOCAL,
    )


def latest_position_from_payload(data: dict) -> LatestPosition:
    """Marinesia ``/vessel/{mmsi}/location/latest`` data block."""
    eta = data.get("eta")
    return LatestPosition(
        latitude=data.get("lat"),
        longitude=data.get("lng"),
        speed=data.get("sog"),
        course=data.get("cog"),
        heading=data.get("hdt"),
        status=nav_status_name(data.get("status")),
        timestamp=str(data["ts"]) if data.get("ts") is not None else None,
        destination=data.get("dest"),
        eta=str(eta) if eta is not None else None,
    )
