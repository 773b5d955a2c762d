"""Backend-agnostic result cursor.

``ResultCursor`` takes care of the iteration plumbing and the common
projections (first column, key/value map, scalar, table) so that backend
cursors only implement three primitives: ``seek()``, ``next_record()`` and
``num_records()``.

Rows are dicts mapping column name to value, in select-list order.

Usage:
    cursor = backend.execute_query('SELECT "ID", "Title" FROM "Page"')

    for row in cursor:
        print(row["Title"])

    ids = cursor.column()            # [1, 2, ...]
    titles = cursor.map()            # {1: "Home", 2: "About"}
    count = backend.execute_query("SELECT COUNT(*) FROM \"Page\"").value()
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import Any

from rich.table import Table

NO_RECORDS = "No records found"


class ResultCursor(ABC):
    """Forward-and-random-access cursor over one query result.

    States: not started (``row_number == -1``), positioned at row *i*,
    exhausted (``next_record()`` returns ``None``).  Running off the end is
    not an error.

    Iterating a cursor always restarts from row 0 via ``seek(0)``.  Backends
    that can only stream forward may restrict ``seek()`` to monotonic
    positions; ``RowListCursor`` supports any position.
    """

    def __init__(self) -> None:
        self._current: dict[str, Any] | None = None
        self._row_num: int = -1

    # ------------------------------------------------------------------
    # Backend primitives
    # ------------------------------------------------------------------

    @abstractmethod
    def seek(self, row_num: int) -> dict[str, Any] | None:
        """Position the cursor at ``row_num`` and return that record.

        The following ``next_record()`` call returns ``row_num + 1``.
        """
        ...

    @abstractmethod
    def next_record(self) -> dict[str, Any] | None:
        """Return the next record, or ``None`` past the last row."""
        ...

    @abstractmethod
    def num_records(self) -> int:
        """Return the total number of rows in the result."""
        ...

    # ------------------------------------------------------------------
    # Iteration plumbing
    # ------------------------------------------------------------------

    def __iter__(self) -> Iterator[dict[str, Any]]:
        if self.num_records() == 0:
            return
        record = self.first()
        while record is not None:
            yield record
            record = self.record()

    def __len__(self) -> int:
        return self.num_records()

    @property
    def row_number(self) -> int:
        """Index of the current row (``-1`` before the first read)."""
        return self._row_num

    @property
    def current(self) -> dict[str, Any] | None:
        """The record the cursor is positioned at, if any."""
        return self._current

    def first(self) -> dict[str, Any] | None:
        """Rewind to row 0 and return it (``None`` for an empty result)."""
        if self.num_records() == 0:
            self._current = None
            return None
        self._current = self.seek(0)
        self._row_num = 0
        return self._current

    def record(self) -> dict[str, Any] | None:
        """Advance one row and return it, or ``None`` when exhausted."""
        self._current = self.next_record()
        self._row_num += 1
        return self._current

    # ------------------------------------------------------------------
    # Projections
    # ------------------------------------------------------------------

    def column(self) -> list[Any]:
        """Return the leftmost column's value from every row."""
        return [_first_value(record) for record in self]

    def keyed_column(self) -> dict[Any, Any]:
        """Return the leftmost column as a ``{value: value}`` map.

        Duplicate values collapse to one key.
        """
        column: dict[Any, Any] = {}
        for record in self:
            value = _first_value(record)
            column[value] = value
        return column

    def map(self) -> dict[Any, Any]:
        """Return a map from the first column to the second column.

        Keys keep the order in which they were first seen; a repeated key
        takes the last row's value.  Single-column rows map to ``None``.
        """
        result: dict[Any, Any] = {}
        for record in self:
            values = iter(record.values())
            key = next(values, None)
            result[key] = next(values, None)
        return result

    def value(self) -> Any:
        """Return the first column of the first row, or ``None`` if empty."""
        for record in self:
            return _first_value(record)
        return None

    def table(self, title: str | None = None) -> Table | str:
        """Render the full result set as a rich ``Table``.

        Returns ``NO_RECORDS`` for an empty result.
        """
        table: Table | None = None
        for record in self:
            if table is None:
                table = Table(title=title, show_header=True, header_style="bold")
                for name in record:
                    table.add_column(str(name))
            table.add_row(*("" if v is None else str(v) for v in record.values()))

        if table is None:
            return NO_RECORDS
        return table


class RowListCursor(ResultCursor):
    """Cursor over a fully buffered list of rows.

    Used by backends whose driver results are read eagerly.  Supports
    ``seek()`` to any valid position, in any order.

    Example:
        >>> cursor = RowListCursor([{"ID": 1, "Title": "x"}, {"ID": 2, "Title": "y"}])
        >>> cursor.column()
        [1, 2]
        >>> cursor.map()
        {1: 'x', 2: 'y'}
    """

    def __init__(self, rows: list[dict[str, Any]] | None = None) -> None:
        super().__init__()
        self._rows: list[dict[str, Any]] = list(rows or [])
        self._position: int = -1

    def seek(self, row_num: int) -> dict[str, Any] | None:
        if not 0 <= row_num < len(self._rows):
            raise IndexError(
                f"Row {row_num} out of range for result with {len(self._rows)} rows"
            )
        self._position = row_num
        return self._rows[row_num]

    def next_record(self) -> dict[str, Any] | None:
        if self._position + 1 >= len(self._rows):
            self._position = len(self._rows)
            return None
        self._position += 1
        return self._rows[self._position]

    def num_records(self) -> int:
        return len(self._rows)


def _first_value(record: dict[str, Any]) -> Any:
    return next(iter(record.values()), None)
