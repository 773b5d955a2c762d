"""Tests for ResultCursor projections and the buffered RowListCursor."""

import pytest
from rich.table import Table

from db_reconcile.query.cursor import NO_RECORDS, ResultCursor, RowListCursor

ROWS = [
    {"ID": 1, "Title": "Home"},
    {"ID": 2, "Title": "About"},
    {"ID": 3, "Title": "Contact"},
]


class ForwardCursor(ResultCursor):
    """Cursor that only implements the three primitives over a list."""

    def __init__(self, rows: list[dict]) -> None:
        super().__init__()
        self.rows = rows
        self.pos = -1
        self.seeks: list[int] = []

    def seek(self, row_num: int) -> dict | None:
        self.seeks.append(row_num)
        self.pos = row_num
        return self.rows[row_num]

    def next_record(self) -> dict | None:
        self.pos += 1
        return self.rows[self.pos] if self.pos < len(self.rows) else None

    def num_records(self) -> int:
        return len(self.rows)


# ============================================================================
# Test: Iteration
# ============================================================================


class TestIteration:
    """Verify iteration, record() and first()."""

    def test_iterates_all_rows(self) -> None:
        assert list(RowListCursor(ROWS)) == ROWS

    def test_iteration_restarts_from_first_row(self) -> None:
        cursor = RowListCursor(ROWS)
        assert list(cursor) == list(cursor)

    def test_empty_result(self) -> None:
        cursor = RowListCursor([])
        assert list(cursor) == []
        assert cursor.first() is None
        assert len(cursor) == 0

    def test_record_past_end_returns_none(self) -> None:
        cursor = RowListCursor(ROWS[:1])
        assert cursor.first() == ROWS[0]
        assert cursor.record() is None
        assert cursor.record() is None

    def test_row_number_tracks_position(self) -> None:
        cursor = RowListCursor(ROWS)
        assert cursor.row_number == -1
        cursor.first()
        assert cursor.row_number == 0
        cursor.record()
        assert cursor.row_number == 1
        assert cursor.current == ROWS[1]

    def test_derived_behavior_from_primitives(self) -> None:
        """A subclass with only the primitives gets the full API."""
        cursor = ForwardCursor(ROWS)
        assert cursor.column() == [1, 2, 3]
        assert cursor.seeks == [0]


# ============================================================================
# Test: Seek
# ============================================================================


class TestSeek:
    """Verify random access in RowListCursor."""

    def test_seek_then_next(self) -> None:
        cursor = RowListCursor(ROWS)
        assert cursor.seek(1) == ROWS[1]
        assert cursor.next_record() == ROWS[2]
        assert cursor.next_record() is None

    def test_seek_out_of_range(self) -> None:
        cursor = RowListCursor(ROWS)
        with pytest.raises(IndexError):
            cursor.seek(3)
        with pytest.raises(IndexError):
            cursor.seek(-1)


# ============================================================================
# Test: Projections
# ============================================================================


class TestProjections:
    """Verify column(), keyed_column(), map(), value() and table()."""

    def test_column(self) -> None:
        assert RowListCursor(ROWS).column() == [1, 2, 3]

    def test_keyed_column(self) -> None:
        rows = [{"Title": "a"}, {"Title": "b"}, {"Title": "a"}]
        assert RowListCursor(rows).keyed_column() == {"a": "a", "b": "b"}

    def test_map(self) -> None:
        assert RowListCursor(ROWS).map() == {1: "Home", 2: "About", 3: "Contact"}

    def test_map_last_duplicate_wins(self) -> None:
        rows = [{"k": "x", "v": 1}, {"k": "y", "v": 2}, {"k": "x", "v": 3}]
        result = RowListCursor(rows).map()
        assert result == {"x": 3, "y": 2}
        assert list(result) == ["x", "y"]

    def test_map_single_column(self) -> None:
        assert RowListCursor([{"ID": 1}]).map() == {1: None}

    def test_value(self) -> None:
        assert RowListCursor([{"count": 42, "other": 1}]).value() == 42
        assert RowListCursor([]).value() is None

    def test_table(self) -> None:
        table = RowListCursor(ROWS).table(title="Pages")
        assert isinstance(table, Table)
        assert [c.header for c in table.columns] == ["ID", "Title"]
        assert table.row_count == 3
        assert table.title == "Pages"

    def test_table_empty(self) -> None:
        assert RowListCursor([]).table() == NO_RECORDS
        assert NO_RECORDS == "No records found"
