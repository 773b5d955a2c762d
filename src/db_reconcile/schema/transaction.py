"""Pending schema changes for one reconciliation pass.

``SchemaTransaction`` is pure bookkeeping: ``create_*``/``alter_*`` calls
only record what a pass wants.  Nothing reaches the database until
``commit()``, which issues exactly one ``create_table`` or ``alter_table``
call per touched table.

Usage:
    txn = SchemaTransaction()
    txn.create_table("Member")
    txn.create_field("Member", "Email", FieldSpec(name="Email", sql="varchar(255)"))
    txn.alter_index("Page", "URLSegment", IndexSpec(kind="unique", fields=("URLSegment",)))
    txn.commit(backend)
"""

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from db_reconcile.schema.models import FieldSpec, IndexSpec

if TYPE_CHECKING:
    from db_reconcile.adapters.base import DatabaseBackend

logger = logging.getLogger(__name__)


class ChangeCommand(StrEnum):
    CREATE = "create"
    ALTER = "alter"


@dataclass
class TableChanges:
    """Accumulated changes for one table.

    A ``create`` entry keeps absorbing new fields and indexes; it never
    escalates to ``alter``.
    """

    command: ChangeCommand
    new_fields: dict[str, FieldSpec] = field(default_factory=dict)
    new_indexes: dict[str, IndexSpec] = field(default_factory=dict)
    altered_fields: dict[str, FieldSpec] = field(default_factory=dict)
    altered_indexes: dict[str, IndexSpec] = field(default_factory=dict)

    @property
    def change_count(self) -> int:
        """Total number of field and index changes."""
        return (
            len(self.new_fields)
            + len(self.new_indexes)
            + len(self.altered_fields)
            + len(self.altered_indexes)
        )


class SchemaTransaction:
    """Per-table change set of a reconciliation pass."""

    def __init__(self) -> None:
        self.changes: dict[str, TableChanges] = {}

    def __len__(self) -> int:
        return len(self.changes)

    def __contains__(self, table: object) -> bool:
        return table in self.changes

    def __getitem__(self, table: str) -> TableChanges:
        return self.changes[table]

    @property
    def is_empty(self) -> bool:
        return not self.changes

    def create_table(self, table: str) -> None:
        self.changes[table] = TableChanges(command=ChangeCommand.CREATE)

    def create_field(self, table: str, name: str, spec: FieldSpec) -> None:
        self._init_table(table).new_fields[name] = spec

    def create_index(self, table: str, name: str, spec: IndexSpec) -> None:
        self._init_table(table).new_indexes[name] = spec

    def alter_field(self, table: str, name: str, spec: FieldSpec) -> None:
        self._init_table(table).altered_fields[name] = spec

    def alter_index(self, table: str, name: str, spec: IndexSpec) -> None:
        self._init_table(table).altered_indexes[name] = spec

    def _init_table(self, table: str) -> TableChanges:
        """Mark ``table`` as altered unless it already has an entry."""
        if table not in self.changes:
            self.changes[table] = TableChanges(command=ChangeCommand.ALTER)
        return self.changes[table]

    def commit(self, backend: "DatabaseBackend") -> int:
        """Issue the grouped DDL calls and clear the change set.

        Backend errors propagate unmodified; tables committed before the
        failing one stay committed.

        Returns:
            Number of ``create_table``/``alter_table`` calls issued.
        """
        calls = 0
        for table, changes in self.changes.items():
            if changes.command == ChangeCommand.CREATE:
                logger.debug("Creating table %s (%d changes)", table, changes.change_count)
                backend.create_table(table, changes.new_fields, changes.new_indexes)
            else:
                logger.debug("Altering table %s (%d changes)", table, changes.change_count)
                backend.alter_table(
                    table,
                    changes.new_fields,
                    changes.new_indexes,
                    changes.altered_fields,
                    changes.altered_indexes,
                )
            calls += 1

        self.changes = {}
        return calls
