"""Tests for applying a floor-plan mapping to homesite records.

Covers:
  - dict record streams
  - polars frames: column order, other fields and row order preserved
  - unmapped records pass through
  - rewriting twice changes nothing further
"""
import polars as pl
import pytest

from planchain.models import GroupKey, LabelMapping
from planchain.modules.record_rewriter import rewrite_frame, rewrite_record, rewrite_records

GROUP = GroupKey("ABC", 3, 2)

MAPPING = LabelMapping({
    (GROUP, "Aspen"): "Aspen",
    (GROUP, "Aspen II"): "Aspen",
    (GROUP, "Aspen III"): "Aspen",
})


def _record(plan, community="ABC", bed=3, bath=2, **extra):
    record = {
        "homesite_id": "H-1",
        "community_id": community,
        "floor_plan": plan,
        "bed": bed,
        "bath": bath,
        "report_date": "2024-01-02",
    }
    record.update(extra)
    return record


class TestRewriteRecords:
    def test_mapped_plan_replaced(self):
        assert rewrite_record(_record("Aspen II"), MAPPING)["floor_plan"] == "Aspen"

    def test_input_not_mutated(self):
        record = _record("Aspen II")
        rewrite_record(record, MAPPING)
        assert record["floor_plan"] == "Aspen II"

    def test_other_fields_untouched(self):
        out = rewrite_record(_record("Aspen III", price=450000), MAPPING)
        assert out == _record("Aspen", price=450000)

    def test_unmapped_plan_passes_through(self):
        assert rewrite_record(_record("Birch"), MAPPING)["floor_plan"] == "Birch"

    def test_other_group_not_rewritten(self):
        """Same plan name at a different bed count is a different plan."""
        assert rewrite_record(_record("Aspen II", bed=4), MAPPING)["floor_plan"] == "Aspen II"

    def test_record_without_key_fields_passes_through(self):
        record = {"homesite_id": "H-1", "floor_plan": "Aspen II"}
        assert rewrite_record(record, MAPPING) == record

    def test_stream(self):
        records = [_record("Aspen"), _record("Aspen II"), _record("Birch")]
        out = rewrite_records(iter(records), MAPPING)
        assert [r["floor_plan"] for r in out] == ["Aspen", "Aspen", "Birch"]


class TestRewriteFrame:
    def _frame(self):
        return pl.DataFrame({
            "homesite_id": ["H-3", "H-1", "H-2", "H-4"],
            "price": [1.0, 2.0, 3.0, 4.0],
            "community_id": ["ABC", "ABC", "ABC", "ABC"],
            "bed": [3, 3, 3, 4],
            "bath": [2, 2, 2, 2],
            "floor_plan": ["Aspen III", "Birch", "Aspen II", "Aspen II"],
        })

    def test_frame_rewritten_in_place(self):
        df = self._frame()
        out = rewrite_frame(df, MAPPING)
        assert out.columns == df.columns
        assert out["floor_plan"].to_list() == ["Aspen", "Birch", "Aspen", "Aspen II"]
        assert out["homesite_id"].to_list() == df["homesite_id"].to_list()
        assert out["price"].to_list() == df["price"].to_list()

    def test_rewrite_is_idempotent(self):
        once = rewrite_frame(self._frame(), MAPPING)
        twice = rewrite_frame(once, MAPPING)
        assert twice.equals(once)

    def test_empty_mapping_returns_frame(self):
        df = self._frame()
        assert rewrite_frame(df, LabelMapping()).equals(df)

    def test_missing_key_column_raises(self):
        df = self._frame().drop("bath")
        with pytest.raises(ValueError, match="missing required columns"):
            rewrite_frame(df, MAPPING)
