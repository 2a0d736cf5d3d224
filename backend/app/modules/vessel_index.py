"""In-memory vessel index fed by the aisstream.io WebSocket feed.

Records are keyed by MMSI and merged field by field as static and position
reports arrive.  Two secondary indexes resolve back to MMSIs:

  - name index: the lowercased full name (last writer wins) and every name
    token of 3+ characters (accumulating, duplicate-free, insertion ordered)
  - IMO index: IMO number -> most recent MMSI that reported it

Records are never evicted.  The index is volatile and lives exactly as long as
the process that built it; it is constructed in the application lifespan and
passed to the feed manager, search engine and aggregator explicitly.

Writes come from a single coroutine (the feed manager's message handler), so
no locking is done.  Readers take snapshot copies before iterating and may miss
a write that lands concurrently.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Union

logger = logging.getLogger(__name__)

MIN_TOKEN_LENGTH = 3


@dataclass
class Position:
    latitude: float
    longitude: float


@dataclass
class Kinematics:
    course_over_ground: float | None = None
    speed_over_ground: float | None = None
    heading: float | None = None
    navigational_status: int | None = None


@dataclass
class StaticAttributes:
    call_sign: str | None = None
    ship_type: int | None = None
    destination: str | None = None
    eta: Any = None  # aisstream sends {"Month", "Day", "Hour", "Minute"}
    draught: float | None = None
    length: float | None = None
    beam: float | None = None


@dataclass
class VesselRecord:
    mmsi: str
    name: str | None = None
    imo: str | None = None
    position: Position | None = None
    kinematics: Kinematics | None = None
    static: StaticAttributes | None = None
    last_seen: datetime | None = None


# ---------------------------------------------------------------------------
# Feed update variants: None always means "not reported, keep what we have"
# ---------------------------------------------------------------------------


def _merge_static(record: VesselRecord, **values: Any) -> None:
    present = {k: v for k, v in values.items() if v is not None}
    if not present:
        return
    if record.static is None:
        record.static = StaticAttributes()
    for key, value in present.items():
        setattr(record.static, key, value)


def _merge_name(record: VesselRecord, name: str | None) -> None:
    if name and name.strip():
        record.name = name.strip()


@dataclass(frozen=True)
class StaticDataUpdate:
    """Projection of a ShipStaticData message (Class A voyage/static report)."""

    name: str | None = None
    imo: str | None = None
    call_sign: str | None = None
    ship_type: int | None = None
    destination: str | None = None
    eta: Any = None
    draught: float | None = None
    length: float | None = None
    beam: float | None = None

    def apply(self, record: VesselRecord) -> None:
        _merge_name(record, self.name)
        if self.imo:
            record.imo = self.imo
        _merge_static(
            record,
            call_sign=self.call_sign,
            ship_type=self.ship_type,
            destination=self.destination,
            eta=self.eta,
            draught=self.draught,
            length=self.length,
            beam=self.beam,
        )


@dataclass(frozen=True)
class PositionUpdate:
    """Projection of a PositionReport message."""

    latitude: float | None = None
    longitude: float | None = None
    course_over_ground: float | None = None
    speed_over_ground: float | None = None
    heading: float | None = None
    navigational_status: int | None = None

    def apply(self, record: VesselRecord) -> None:
        if self.latitude is not None and self.longitude is not None:
            record.position = Position(latitude=self.latitude, longitude=self.longitude)
        if record.kinematics is None:
            record.kinematics = Kinematics()
        kin = record.kinematics
        if self.course_over_ground is not None:
            kin.course_over_ground = self.course_over_ground
        if self.speed_over_ground is not None:
            kin.speed_over_ground = self.speed_over_ground
        if self.heading is not None:
            kin.heading = self.heading
        if self.navigational_status is not None:
            kin.navigational_status = self.navigational_status


@dataclass(frozen=True)
class CombinedReportUpdate:
    """Projection of a StaticDataReport (Class B part A / part B).

    Only the parts flagged valid by the transmitter are populated.
    """

    name: str | None = None
    call_sign: str | None = None
    ship_type: int | None = None
    length: float | None = None
    beam: float | None = None

    def apply(self, record: VesselRecord) -> None:
        _merge_name(record, self.name)
        _merge_static(
            record,
            call_sign=self.call_sign,
            ship_type=self.ship_type,
            length=self.length,
            beam=self.beam,
        )


FeedUpdate = Union[StaticDataUpdate, PositionUpdate, CombinedReportUpdate]


# ---------------------------------------------------------------------------
# Index
# ---------------------------------------------------------------------------


class VesselIndex:
    """MMSI-keyed vessel store with name-token and IMO secondary indexes."""

    def __init__(self) -> None:
        self._records: dict[str, VesselRecord] = {}
        self._by_full_name: dict[str, str] = {}
        self._by_token: dict[str, list[str]] = {}
        self._by_imo: dict[str, str] = {}
        self.last_update: datetime | None = None
        self.message_count = 0

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, mmsi: object) -> bool:
        return mmsi in self._records

    def upsert(self, mmsi: str, update: FeedUpdate) -> VesselRecord:
        """Create or merge the record for *mmsi* and refresh secondary indexes."""
        now = datetime.now(timezone.utc)
        record = self._records.get(mmsi)
        if record is None:
            record = VesselRecord(mmsi=mmsi)
            self._records[mmsi] = record

        update.apply(record)
        record.last_seen = now

        if isinstance(update, (StaticDataUpdate, CombinedReportUpdate)):
            self._index_name(mmsi, update.name)
        if isinstance(update, StaticDataUpdate):
            self._index_imo(mmsi, update.imo)

        self.last_update = now
        self.message_count += 1
        return record

    def _index_name(self, mmsi: str, name: str | None) -> None:
        if not name or not name.strip():
            return
        name_lower = name.lower().strip()
        self._by_full_name[name_lower] = mmsi
        for token in name_lower.split():
            if len(token) < MIN_TOKEN_LENGTH:
                continue
            bucket = self._by_token.setdefault(token, [])
            if mmsi not in bucket:
                bucket.append(mmsi)

    def _index_imo(self, mmsi: str, imo: str | None) -> None:
        if not imo or imo == "0":
            return
        self._by_imo[imo] = mmsi

    # -- reads ---------------------------------------------------------------

    def get(self, mmsi: str) -> VesselRecord | None:
        return self._records.get(mmsi)

    def get_by_imo(self, imo: str) -> VesselRecord | None:
        mmsi = self._by_imo.get(imo)
        if mmsi is None:
            return None
        return self._records.get(mmsi)

    def name_entries(self) -> list[tuple[str, list[str]]]:
        """Snapshot of name index keys and the MMSIs they resolve to.

        Full-name entries come first (one MMSI each), then token entries.
        """
        entries: list[tuple[str, list[str]]] = [
            (key, [mmsi]) for key, mmsi in list(self._by_full_name.items())
        ]
        entries.extend((key, list(bucket)) for key, bucket in list(self._by_token.items()))
        return entries

    def records(self) -> list[VesselRecord]:
        """Snapshot of all records in insertion order."""
        return list(self._records.values())

    def stats(self) -> dict:
        return {
            "total_vessels": len(self._records),
            "last_update": self.last_update,
            "message_count": self.message_count,
        }
