"""Tests for row-span propagation."""

from __future__ import annotations

import pytest

from extragrid.exceptions import RowSpanOverflowError
from extragrid.row import Row, SpanData
from extragrid.span import (
    extend_for_insert,
    iter_block,
    resolve_main_row,
    restamp,
    seed_row_span,
    shrink_for_remove,
    sync_value,
    validate_spans,
)


def make_rows(values: list[str], spans: dict[int, int] | None = None) -> list[Row]:
    """Rows keyed 0..n-1 with column a; ``spans`` maps index -> declared count."""
    rows = [Row(i, {"a": value}) for i, value in enumerate(values)]
    for index, count in (spans or {}).items():
        rows[index].row_span = {"a": count}
    return rows


def seed_all(rows: list[Row]) -> list[Row]:
    for index in range(len(rows)):
        seed_row_span(rows, index)
    return rows


def span_of(row: Row) -> tuple[int, bool, object] | None:
    data = row.get_span_data("a")
    return None if data is None else (data.count, data.is_main, data.main_key)


class TestSeedRowSpan:
    """Tests for materializing rowSpan declarations."""

    def test_seeds_block(self) -> None:
        """Test a main row stamps its covered rows and copies its value."""
        rows = seed_all(make_rows(["x", "", "", "y"], {0: 3}))

        assert [span_of(r) for r in rows] == [(3, True, 0), (-1, False, 0), (-2, False, 0), None]
        assert [r.get("a") for r in rows] == ["x", "x", "x", "y"]
        assert validate_spans(rows) == []

    def test_clamps_overflow(self) -> None:
        """Test a declaration past the last row is shortened."""
        rows = seed_all(make_rows(["x", "y"], {0: 5}))

        assert span_of(rows[0]) == (2, True, 0)
        assert span_of(rows[1]) == (-1, False, 0)
        assert validate_spans(rows) == []

    def test_rejects_overflow(self) -> None:
        """Test the reject policy raises on overflow."""
        rows = make_rows(["x", "y"], {0: 5})

        with pytest.raises(RowSpanOverflowError) as exc_info:
            seed_row_span(rows, 0, overflow="reject")

        assert exc_info.value.count == 5
        assert exc_info.value.available == 2

    def test_covered_row_declaration_is_ignored(self) -> None:
        """Test a declaration inside an earlier block does not break it."""
        rows = seed_all(make_rows(["x", "y", "z", "w"], {0: 3, 1: 3}))

        assert span_of(rows[1]) == (-1, False, 0)
        assert span_of(rows[3]) is None
        assert validate_spans(rows) == []

    def test_non_positive_declaration_is_skipped(self) -> None:
        """Test rowSpan of zero or less is ignored."""
        rows = seed_all(make_rows(["x", "y"], {0: 0}))

        assert span_of(rows[0]) is None

    def test_existing_span_data_is_kept(self) -> None:
        """Test rows loaded with rowSpanData are not re-seeded."""
        rows = make_rows(["x", "x"], {0: 2})
        rows[0].span_data["a"] = SpanData(2, True, 0)
        rows[1].span_data["a"] = SpanData(-1, False, 0)

        assert seed_row_span(rows, 0) == []
        assert validate_spans(rows) == []


class TestRestamp:
    def test_restamp_rewrites_block(self) -> None:
        """Test restamp rewrites every row of a block."""
        rows = make_rows(["x", "a", "b"])

        restamp(rows, 0, "a", 1, 3)

        assert [span_of(r) for r in rows] == [(3, True, 0), (-1, False, 0), (-2, False, 0)]
        assert [r.get("a") for r in rows] == ["x", "x", "x"]

    def test_restamp_stops_at_last_row(self) -> None:
        """Test restamp stops at the end of the rows."""
        rows = make_rows(["x", "a"])

        restamp(rows, 0, "a", 1, 4)

        assert span_of(rows[1]) == (-1, False, 0)


class TestSyncValue:
    """Tests for value synchronization within a block."""

    def test_copies_main_value_down(self) -> None:
        """Test sync copies the main value to covered rows."""
        rows = seed_all(make_rows(["x", "", "", "y"], {0: 3}))
        rows[0].set("a", "new")

        written = sync_value(rows, 0, "a")

        assert [r.get("a") for r in rows] == ["new", "new", "new", "y"]
        assert [(row.key, previous) for row, previous in written] == [(1, "x"), (2, "x")]

    def test_unspanned_row_writes_nothing(self) -> None:
        """Test sync on an unspanned row writes nothing."""
        rows = make_rows(["x", "y"])

        assert sync_value(rows, 0, "a") == []

    def test_resolve_main_row(self) -> None:
        """Test covered rows resolve to their main row."""
        rows = seed_all(make_rows(["x", "", "y"], {0: 2}))
        by_key = {row.key: row for row in rows}

        assert resolve_main_row(by_key, rows[1], "a") is rows[0]
        assert resolve_main_row(by_key, rows[0], "a") is rows[0]
        assert resolve_main_row(by_key, rows[2], "a") is rows[2]


class TestExtendForInsert:
    """Tests for span growth when rows are inserted."""

    def test_insert_inside_block_extends(self) -> None:
        """Test rows inserted below a covered row that is not the last grow the block."""
        rows = seed_all(make_rows(["x", "", "", "y"], {0: 3}))
        rows.insert(2, Row(10, {"a": "new"}))

        assert extend_for_insert(rows, 2, 1) == ["a"]
        assert [span_of(r) for r in rows] == [
            (4, True, 0),
            (-1, False, 0),
            (-2, False, 0),
            (-3, False, 0),
            None,
        ]
        assert rows[2].get("a") == "x"
        assert validate_spans(rows) == []

    def test_insert_after_block_end_does_not_extend(self) -> None:
        """Test inserting after a block leaves it alone."""
        rows = seed_all(make_rows(["x", "", "y"], {0: 2}))
        rows.insert(2, Row(10, {"a": "new"}))

        assert extend_for_insert(rows, 2, 1) == []
        assert span_of(rows[2]) is None
        assert rows[2].get("a") == "new"

    def test_insert_after_block_end_with_extend(self) -> None:
        """Test extend_prev_row_span grows a block that ends at the insertion point."""
        rows = seed_all(make_rows(["x", "", "y"], {0: 2}))
        rows[2:2] = [Row(10, {"a": "n1"}), Row(11, {"a": "n2"})]

        assert extend_for_insert(rows, 2, 2, extend_prev_row_span=True) == ["a"]
        assert span_of(rows[0]) == (4, True, 0)
        assert span_of(rows[3]) == (-3, False, 0)
        assert span_of(rows[4]) is None
        assert validate_spans(rows) == []

    def test_insert_at_top_does_not_extend(self) -> None:
        """Test inserting at the top extends nothing."""
        rows = seed_all(make_rows(["x", ""], {0: 2}))
        rows.insert(0, Row(10, {"a": "new"}))

        assert extend_for_insert(rows, 0, 1, extend_prev_row_span=True) == []
        assert validate_spans(rows) == []


class TestShrinkForRemove:
    """Tests for span shrinkage when a row is removed."""

    def test_remove_main_row_promotes_next(self) -> None:
        """Test removing a main row promotes the next row."""
        rows = seed_all(make_rows(["x", "", "", "y"], {0: 3}))
        removed = rows.pop(0)

        shrink_for_remove(rows, 0, removed.span_data)

        assert span_of(rows[0]) == (2, True, 1)
        assert span_of(rows[1]) == (-1, False, 1)
        assert rows[0].get("a") == ""
        assert validate_spans(rows) == []

    def test_remove_main_row_keeps_value(self) -> None:
        """Test the promoted row can keep the value."""
        rows = seed_all(make_rows(["x", "", "", "y"], {0: 3}))
        removed = rows.pop(0)

        shrink_for_remove(rows, 0, removed.span_data, kept_values=removed.fields)

        assert [r.get("a") for r in rows] == ["x", "x", "y"]

    def test_remove_main_of_two_clears_span(self) -> None:
        """Test removing the main of a pair clears the span."""
        rows = seed_all(make_rows(["x", "", "y"], {0: 2}))
        removed = rows.pop(0)

        shrink_for_remove(rows, 0, removed.span_data)

        assert span_of(rows[0]) is None

    def test_remove_covered_row_shrinks_block(self) -> None:
        """Test removing a covered row shrinks the block."""
        rows = seed_all(make_rows(["x", "", "", "", "y"], {0: 4}))
        removed = rows.pop(1)

        shrink_for_remove(rows, 1, removed.span_data)

        assert [span_of(r) for r in rows] == [(3, True, 0), (-1, False, 0), (-2, False, 0), None]
        assert validate_spans(rows) == []

    def test_remove_covered_row_of_two_clears_main(self) -> None:
        """Test removing the covered row of a pair clears the main."""
        rows = seed_all(make_rows(["x", "", "y"], {0: 2}))
        removed = rows.pop(1)

        shrink_for_remove(rows, 1, removed.span_data)

        assert span_of(rows[0]) is None
        assert rows[0].get("a") == "x"

    def test_remove_block_of_one_is_noop(self) -> None:
        """Test removing a block of one touches no other rows."""
        rows = make_rows(["x", "y"])
        rows[0].span_data["a"] = SpanData(1, True, 0)
        removed = rows.pop(0)

        assert shrink_for_remove(rows, 0, removed.span_data) == []
        assert rows[0].get("a") == "y"


class TestValidateSpans:
    def test_reports_dangling_covered_row(self) -> None:
        """Test a covered row without a main is reported."""
        rows = make_rows(["x", "y"])
        rows[1].span_data["a"] = SpanData(-1, False, 99)

        assert len(validate_spans(rows)) == 1

    def test_reports_short_block(self) -> None:
        """Test a block shorter than its count is reported."""
        rows = make_rows(["x", "y"])
        rows[0].span_data["a"] = SpanData(2, True, 0)

        assert validate_spans(rows)


def test_iter_block() -> None:
    """Test iter_block yields the block rows."""
    rows = seed_all(make_rows(["x", "", "y"], {0: 2}))

    assert [r.key for r in iter_block(rows, 0, "a")] == [0, 1]
    assert [r.key for r in iter_block(rows, 2, "a")] == [2]
