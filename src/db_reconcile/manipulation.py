"""Row writes with update-or-insert fallback.

A manipulation maps table names to write sets.  Field values are SQL value
expressions and are inserted verbatim (``"'Joe'"``, ``"now()"``, ``"3"``);
quoting is the caller's job.

Usage:
    from db_reconcile.manipulation import manipulate

    manipulate(backend, {
        "Member": {"command": "update", "id": 7, "fields": {"Email": "'a@b.c'"}},
        "Member_Log": {"command": "insert", "fields": {"Note": "'signed up'"}},
    })
"""

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from db_reconcile.errors import UnsupportedCommand
from db_reconcile.query.builder import SQLQuery, render_query
from db_reconcile.schema.models import ID_FIELD

if TYPE_CHECKING:
    from db_reconcile.adapters.base import DatabaseBackend

logger = logging.getLogger(__name__)

_EMPTY_LITERALS = ("''", "")


class RowWriteSet(BaseModel):
    """One table's write: an ``insert`` or an ``update`` of literal values.

    Attributes:
        command: ``"insert"`` or ``"update"``.
        fields: Field name to SQL value expression.
        id: Identity of the row; builds the filter when ``where`` is absent
            and is inserted explicitly when ``fields`` lacks ``ID``.
        where: SQL predicate selecting the row(s) to update.
    """

    command: str
    fields: dict[str, Any] = Field(default_factory=dict)
    id: int | None = None
    where: str | None = None

    def filter_clause(self) -> str | None:
        if self.where is not None:
            return self.where
        if self.id is not None:
            return f'"{ID_FIELD}" = {int(self.id)}'
        return None


def _value(value: Any) -> str:
    return "null" if value is None else str(value)


def _update_sql(table: str, write: RowWriteSet, where: str) -> str:
    assignments = ", ".join(f'"{name}" = {_value(v)}' for name, v in write.fields.items())
    return f'UPDATE "{table}" SET {assignments} WHERE {where}'


def _insert_sql(table: str, write: RowWriteSet) -> str:
    columns = [f'"{name}"' for name in write.fields]
    values = ["null" if v in _EMPTY_LITERALS else _value(v) for v in write.fields.values()]

    if ID_FIELD not in write.fields and write.id is not None:
        columns.append(f'"{ID_FIELD}"')
        values.append(str(int(write.id)))

    return f'INSERT INTO "{table}" ({", ".join(columns)}) VALUES ({", ".join(values)})'


def manipulate(
    backend: "DatabaseBackend",
    manipulation: Mapping[str, RowWriteSet | Mapping[str, Any]],
) -> dict[str, str]:
    """Apply a set of row writes, one statement per table.

    An ``update`` first looks the row up with
    ``SELECT "ID" FROM "t" WHERE <filter>``; when nothing matches it falls
    through to an insert with the same values.  The lookup and the write
    are separate statements, so a concurrent writer can insert the same
    row in between.  Callers needing atomic upserts must serialize writes
    themselves.

    Empty ``''`` values become ``null`` in inserts only.  Write sets
    without fields are skipped.

    Args:
        backend: Backend to execute against.
        manipulation: Table name to write set (model or plain dict).

    Returns:
        Table name to the statement kind that ran (``"insert"`` or
        ``"update"``).  Skipped tables are absent.

    Raises:
        UnsupportedCommand: If a write set's command is not insert/update.
        ValueError: If an ``update`` has neither ``where`` nor ``id``.
    """
    performed: dict[str, str] = {}

    for table, raw in manipulation.items():
        write = raw if isinstance(raw, RowWriteSet) else RowWriteSet.model_validate(raw)
        if not write.fields:
            logger.debug("Skipping %s: no fields to write", table)
            continue

        if write.command == "update":
            where = write.filter_clause()
            if where is None:
                raise ValueError(f"Update of {table} needs a 'where' or an 'id'")

            lookup = render_query(SQLQuery(select=[f'"{ID_FIELD}"'], from_=[f'"{table}"'], where=[where]))
            if backend.execute_query(lookup).value() is not None:
                backend.execute_query(_update_sql(table, write, where))
                performed[table] = "update"
                continue
            logger.debug("No row in %s matches %s, inserting instead", table, where)

        elif write.command != "insert":
            raise UnsupportedCommand(f"Can't recognise command {write.command!r} for table {table}")

        backend.execute_query(_insert_sql(table, write))
        performed[table] = "insert"

    return performed
