"""Tests for the in-memory vessel index (vessel_index.py).

Covers:
- create-or-merge semantics per update variant
- name index: full name last-writer-wins, token accumulation without duplicates
- IMO index
- bookkeeping: last_seen, last_update, message_count
"""
from app.modules.vessel_index import (
    CombinedReportUpdate,
    PositionUpdate,
    StaticDataUpdate,
    VesselIndex,
)


def _name_map(index: VesselIndex) -> dict[str, list[str]]:
    return {key: mmsis for key, mmsis in index.name_entries()}


class TestUpsertMerge:
    def test_first_message_creates_record(self, index):
        record = index.upsert("244660000", PositionUpdate(latitude=51.9, longitude=4.1))
        assert len(index) == 1
        assert "244660000" in index
        assert record.position.latitude == 51.9
        assert record.last_seen is not None

    def test_position_does_not_erase_static_fields(self, index):
        index.upsert("244660000", StaticDataUpdate(name="EVER GIVEN", call_sign="H3RC", ship_type=70))
        index.upsert("244660000", PositionUpdate(latitude=30.0, longitude=32.5, speed_over_ground=12.1))
        record = index.get("244660000")
        assert record.name == "EVER GIVEN"
        assert record.static.call_sign == "H3RC"
        assert record.static.ship_type == 70
        assert record.kinematics.speed_over_ground == 12.1

    def test_position_most_recent_wins(self, index):
        index.upsert("244660000", PositionUpdate(latitude=1.0, longitude=2.0))
        index.upsert("244660000", PositionUpdate(latitude=3.0, longitude=4.0))
        assert index.get("244660000").position.latitude == 3.0
        assert index.get("244660000").position.longitude == 4.0

    def test_position_without_both_coordinates_keeps_previous(self, index):
        index.upsert("244660000", PositionUpdate(latitude=1.0, longitude=2.0))
        index.upsert("244660000", PositionUpdate(latitude=5.0, heading=90))
        record = index.get("244660000")
        assert record.position.latitude == 1.0
        assert record.kinematics.heading == 90

    def test_absent_static_fields_keep_existing_values(self, index):
        index.upsert("244660000", StaticDataUpdate(name="A", destination="ROTTERDAM", draught=12.5))
        index.upsert("244660000", StaticDataUpdate(name="A", destination=None, draught=None))
        static = index.get("244660000").static
        assert static.destination == "ROTTERDAM"
        assert static.draught == 12.5

    def test_blank_name_never_erases_stored_name(self, index):
        index.upsert("244660000", StaticDataUpdate(name="EVER GIVEN"))
        index.upsert("244660000", StaticDataUpdate(name="   "))
        index.upsert("244660000", CombinedReportUpdate(name=None, call_sign="H3RC"))
        record = index.get("244660000")
        assert record.name == "EVER GIVEN"
        assert record.static.call_sign == "H3RC"

    def test_name_is_trimmed(self, index):
        index.upsert("244660000", StaticDataUpdate(name="  EVER GIVEN  "))
        assert index.get("244660000").name == "EVER GIVEN"

    def test_combined_report_sets_dimensions(self, index):
        index.upsert("503123000", CombinedReportUpdate(name="SVITZER FALCON", length=32, beam=12))
        static = index.get("503123000").static
        assert static.length == 32
        assert static.beam == 12

    def test_records_are_never_removed(self, index):
        for i in range(5):
            index.upsert(f"23509{i:04d}", PositionUpdate(latitude=0.0, longitude=0.0))
        index.upsert("235090001", PositionUpdate(latitude=1.0, longitude=1.0))
        assert len(index) == 5


class TestNameIndex:
    def test_full_name_and_tokens_indexed(self, index):
        index.upsert("235095000", StaticDataUpdate(name="FUGRO ETIVE"))
        names = _name_map(index)
        assert names["fugro etive"] == ["235095000"]
        assert names["fugro"] == ["235095000"]
        assert names["etive"] == ["235095000"]

    def test_short_tokens_not_indexed(self, index):
        index.upsert("503000000", StaticDataUpdate(name="RV INVESTIGATOR"))
        names = _name_map(index)
        assert "rv" not in names
        assert "investigator" in names

    def test_tokens_accumulate_without_duplicates(self, index):
        index.upsert("235095000", StaticDataUpdate(name="FUGRO ETIVE"))
        index.upsert("235096000", StaticDataUpdate(name="FUGRO SALTIRE"))
        index.upsert("235095000", StaticDataUpdate(name="FUGRO ETIVE"))
        assert _name_map(index)["fugro"] == ["235095000", "235096000"]

    def test_full_name_last_writer_wins(self, index):
        index.upsert("111111111", StaticDataUpdate(name="SEA STAR"))
        index.upsert("222222222", StaticDataUpdate(name="Sea Star"))
        assert _name_map(index)["sea star"] == ["222222222"]

    def test_position_reports_do_not_touch_name_index(self, index):
        index.upsert("244660000", PositionUpdate(latitude=1.0, longitude=1.0))
        assert index.name_entries() == []

    def test_full_names_listed_before_tokens(self, index):
        index.upsert("235095000", StaticDataUpdate(name="FUGRO ETIVE"))
        keys = [key for key, _ in index.name_entries()]
        assert keys[0] == "fugro etive"

    def test_name_entries_is_a_snapshot(self, index):
        index.upsert("235095000", StaticDataUpdate(name="FUGRO ETIVE"))
        entries = index.name_entries()
        index.upsert("235096000", StaticDataUpdate(name="FUGRO SALTIRE"))
        assert dict(entries)["fugro"] == ["235095000"]


class TestImoIndex:
    def test_imo_lookup(self, index):
        index.upsert("352002084", StaticDataUpdate(name="GINGKO", imo="9389112"))
        record = index.get_by_imo("9389112")
        assert record is not None
        assert record.mmsi == "352002084"
        assert record.imo == "9389112"

    def test_zero_imo_not_indexed(self, index):
        index.upsert("352002084", StaticDataUpdate(name="GINGKO", imo="0"))
        assert index.get_by_imo("0") is None

    def test_imo_last_writer_wins(self, index):
        index.upsert("111111111", StaticDataUpdate(imo="9389112"))
        index.upsert("222222222", StaticDataUpdate(imo="9389112"))
        assert index.get_by_imo("9389112").mmsi == "222222222"

    def test_unknown_imo(self, index):
        assert index.get_by_imo("1234567") is None


class TestStats:
    def test_empty_stats(self, index):
        stats = index.stats()
        assert stats == {"total_vessels": 0, "last_update": None, "message_count": 0}

    def test_message_count_counts_every_upsert(self, index):
        index.upsert("244660000", PositionUpdate(latitude=1.0, longitude=1.0))
        index.upsert("244660000", PositionUpdate(latitude=2.0, longitude=2.0))
        index.upsert("235095000", StaticDataUpdate(name="FUGRO ETIVE"))
        stats = index.stats()
        assert stats["message_count"] == 3
        assert stats["total_vessels"] == 2
        assert stats["last_update"] is not None

    def test_last_seen_refreshed_on_every_write(self, index):
        first = index.upsert("244660000", PositionUpdate(latitude=1.0, longitude=1.0)).last_seen
        second = index.upsert("244660000", PositionUpdate(latitude=2.0, longitude=2.0)).last_seen
        assert second >= first
        assert index.last_update == second
