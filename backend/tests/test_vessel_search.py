"""Tests for tiered index search (vessel_search.py)."""
from app.modules.vessel_index import PositionUpdate, StaticDataUpdate
from app.modules.vessel_search import search_index
from app.schemas.vessel import ResultSource


def _add(index, mmsi, name=None, imo=None, **kwargs):
    index.upsert(mmsi, StaticDataUpdate(name=name, imo=imo, **kwargs))


class TestIdentifierTiers:
    def test_exact_mmsi(self, index):
        _add(index, "352002084", "GINGKO")
        results = search_index(index, "352002084")
        assert [r.mmsi for r in results] == ["352002084"]
        assert results[0].source == ResultSource.INDEX

    def test_exact_imo(self, index):
        _add(index, "352002084", "GINGKO", imo="9389112")
        results = search_index(index, "9389112")
        assert [r.mmsi for r in results] == ["352002084"]
        assert results[0].imo == "9389112"

    def test_unknown_mmsi_returns_nothing(self, index):
        _add(index, "352002084", "GINGKO")
        assert search_index(index, "999999999") == []

    def test_identifier_query_is_trimmed(self, index):
        _add(index, "352002084", "GINGKO")
        assert len(search_index(index, "  352002084 ")) == 1


class TestNameTiers:
    def test_token_match_case_insensitive(self, index):
        _add(index, "235095000", "FUGRO ETIVE")
        _add(index, "235096000", "FUGRO SALTIRE")
        results = search_index(index, "fugro")
        assert {r.mmsi for r in results} == {"235095000", "235096000"}

    def test_query_containing_index_key(self, index):
        _add(index, "219633000", "MAERSK HIGHLANDER")
        results = search_index(index, "maersk highlander ii")
        assert [r.mmsi for r in results] == ["219633000"]

    def test_partial_token(self, index):
        _add(index, "219633000", "MAERSK HIGHLANDER")
        assert [r.mmsi for r in search_index(index, "HIGHL")] == ["219633000"]

    def test_brute_force_finds_short_word(self, index):
        # "rv" is below the token length so only the scan can find it
        _add(index, "503000000", "RV INVESTIGATOR")
        results = search_index(index, "rv x")
        assert [r.mmsi for r in results] == ["503000000"]

    def test_unnamed_records_never_match_text(self, index):
        index.upsert("244660000", PositionUpdate(latitude=1.0, longitude=1.0))
        assert search_index(index, "ever") == []

    def test_no_duplicates_across_tiers(self, index):
        _add(index, "235095000", "FUGRO ETIVE")
        results = search_index(index, "FUGRO ETIVE")
        assert [r.mmsi for r in results] == ["235095000"]

    def test_mmsi_hit_comes_first(self, index):
        # A vessel whose name happens to contain the digits is still ranked after the exact MMSI
        _add(index, "111111111", "TEST 352002084")
        _add(index, "352002084", "GINGKO")
        results = search_index(index, "352002084")
        assert results[0].mmsi == "352002084"
        assert results[1].mmsi == "111111111"


class TestLimits:
    def test_result_capped_at_limit(self, index):
        for i in range(80):
            _add(index, f"2350{i:05d}", f"OCEAN TRADER {i}")
        assert len(search_index(index, "ocean")) == 50

    def test_custom_limit(self, index):
        for i in range(10):
            _add(index, f"2350{i:05d}", f"OCEAN TRADER {i}")
        assert len(search_index(index, "ocean", limit=3)) == 3

    def test_brute_force_skipped_with_enough_indexed_hits(self, index):
        for i in range(25):
            _add(index, f"2350{i:05d}", f"NORDIC {i}")
        # Only reachable by scan: "no" is a 2-char word inside "NORTH"
        _add(index, "999000001", "NORTH STAR")
        results = search_index(index, "nordic no")
        assert "999000001" not in {r.mmsi for r in results}
        assert len(results) == 25


class TestResultShape:
    def test_static_fields_normalized(self, index):
        _add(index, "352002084", "GINGKO", imo="9389112", ship_type=70, length=190, beam=32, call_sign="3E3768")
        index.upsert("352002084", PositionUpdate(latitude=-32.05, longitude=115.74))
        result = search_index(index, "gingko")[0]
        assert result.vessel_type == "Cargo Ship"
        assert result.length == 190.0
        assert result.beam == 32.0
        assert result.callsign == "3E3768"
        assert result.latitude == -32.05
        assert result.flag == ""
        assert result.gross_tonnage == ""
        assert result.last_seen is not None

    def test_missing_fields_default_to_empty(self, index):
        _add(index, "503800000", "HMAS ANZAC")
        result = search_index(index, "anzac")[0]
        assert result.imo == ""
        assert result.callsign == ""
        assert result.length == ""
        assert result.vessel_type == "Unknown"
        assert result.latitude is None
