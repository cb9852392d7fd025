"""
Tests — per-kind id counters.
"""

import pytest

from qa_hub.models import db as _db
from qa_hub.models.requirement import Requirement
from qa_hub.models.sequence import IdSequence, highest_suffix
from qa_hub.services.id_generator import ID_KINDS, new_id, reserve_id


def _counter(kind):
    return _db.session.get(IdSequence, kind).last_value


class TestNewId:
    @pytest.mark.parametrize("kind", sorted(ID_KINDS))
    def test_first_id_per_kind(self, kind):
        assert new_id(kind) == f"{kind}-0001"

    def test_consecutive_allocations(self):
        assert [new_id("DEF") for _ in range(3)] == ["DEF-0001", "DEF-0002", "DEF-0003"]

    def test_kinds_count_independently(self):
        new_id("TC")
        new_id("TC")
        assert new_id("PLAN") == "PLAN-0001"

    def test_rolled_back_allocation_is_released(self):
        new_id("TC")
        _db.session.commit()
        new_id("TC")
        _db.session.rollback()
        assert new_id("TC") == "TC-0002"

    def test_widens_past_four_digits(self):
        _db.session.get(IdSequence, "REQ").last_value = 9999
        _db.session.commit()
        assert new_id("REQ") == "REQ-10000"

    def test_missing_counter_row_starts_from_stored_ids(self):
        _db.session.add(Requirement(requirement_id="REQ-0041", title="Imported"))
        _db.session.delete(_db.session.get(IdSequence, "REQ"))
        _db.session.commit()
        assert new_id("REQ") == "REQ-0042"

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            new_id("XYZ")


class TestReserveId:
    def test_moves_counter_up(self):
        reserve_id("REQ-0040")
        assert new_id("REQ") == "REQ-0041"

    def test_never_moves_counter_down(self):
        for _ in range(5):
            new_id("REQ")
        reserve_id("REQ-0002")
        assert _counter("REQ") == 5

    @pytest.mark.parametrize("value", ["REQ-PCI-01", "XYZ-0009", "REQ-"])
    def test_ignores_non_sequence_values(self, value):
        reserve_id(value)
        assert _counter("REQ") == 0


class TestSequenceInitialisation:
    def test_schema_creation_seeds_counters_from_existing_rows(self):
        _db.session.add(Requirement(requirement_id="REQ-0017", title="Imported"))
        _db.session.query(IdSequence).delete()
        _db.session.commit()

        _db.create_all()

        assert _counter("REQ") == 17
        assert _counter("TC") == 0

    def test_highest_suffix_reads_numerically(self):
        values = ["REQ-006", "REQ-0041", "REQ-SEC-1", "TC-0099", None]
        assert highest_suffix("REQ", values) == 41
        assert highest_suffix("DEF", values) == 0
