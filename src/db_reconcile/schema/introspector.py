"""Live catalog snapshot for one reconciliation pass.

``LiveCatalog`` loads the table list eagerly and each table's fields and
indexes lazily, caching them until the pass ends.  It never writes.

Usage:
    catalog = LiveCatalog(backend)
    if catalog.has_table("Member"):
        fields = catalog.fields("Member")
        indexes = catalog.indexes("Member")
"""

import logging
from typing import TYPE_CHECKING

from db_reconcile.schema.models import FieldSpec, IndexSpec

if TYPE_CHECKING:
    from db_reconcile.adapters.base import DatabaseBackend

logger = logging.getLogger(__name__)


class LiveCatalog:
    """Introspected snapshot of the live schema.

    Must not outlive the pass it was created for: the live database may
    change underneath it.

    Args:
        backend: Backend to introspect.

    Raises:
        BackendUnavailable: If the table list cannot be read.
    """

    def __init__(self, backend: "DatabaseBackend") -> None:
        self._backend = backend
        self.tables: set[str] = {name.lower() for name in backend.list_tables()}
        self._fields: dict[str, dict[str, FieldSpec]] = {}
        self._indexes: dict[str, dict[str, IndexSpec]] = {}
        logger.debug("Loaded live catalog with %d tables", len(self.tables))

    def has_table(self, table: str) -> bool:
        """Case-insensitive table existence check."""
        return table.lower() in self.tables

    def fields(self, table: str) -> dict[str, FieldSpec]:
        """Live fields of ``table`` (empty if the table does not exist)."""
        if not self.has_table(table):
            return {}
        if table not in self._fields:
            self._fields[table] = self._backend.list_fields(table)
        return self._fields[table]

    def indexes(self, table: str) -> dict[str, IndexSpec]:
        """Live indexes of ``table`` (empty if the table does not exist)."""
        if not self.has_table(table):
            return {}
        if table not in self._indexes:
            self._indexes[table] = self._backend.list_indexes(table)
        return self._indexes[table]

    def invalidate(self, table: str) -> None:
        """Forget cached fields and indexes of ``table``."""
        self._fields.pop(table, None)
        self._indexes.pop(table, None)

    def note_rename(self, old_name: str, new_name: str) -> None:
        """Record a table rename performed during the pass."""
        self.tables.discard(old_name.lower())
        self.tables.add(new_name.lower())
        self.invalidate(old_name)
