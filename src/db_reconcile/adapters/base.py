"""Database backend protocol definition.

Defines the ``DatabaseBackend`` Protocol that every backend driver must
implement.  The reconciliation engine, the manipulation executor and the
introspector only talk to the database through this interface.

Usage:
    from db_reconcile.adapters.base import DatabaseBackend

    def show_tables(backend: DatabaseBackend) -> None:
        for name in sorted(backend.list_tables()):
            fields = backend.list_fields(name)
            print(name, ", ".join(fields))
"""

from typing import Protocol

from db_reconcile.query.cursor import ResultCursor
from db_reconcile.schema.models import BaseField, FieldSpec, IndexSpec


class DatabaseBackend(Protocol):
    """Backend driver interface used by the reconciliation engine.

    Structural calls (``create_table``, ``alter_table``, renames) receive
    ``FieldSpec``/``IndexSpec`` objects and are responsible for the actual
    DDL dialect.  Introspection calls (``list_*``) must be read-only.
    """

    # ------------------------------------------------------------------
    # Query execution
    # ------------------------------------------------------------------

    def execute_query(self, sql: str) -> ResultCursor:
        """Execute an SQL statement and return its result cursor.

        Statements that return no rows yield an empty cursor.

        Raises:
            BackendUnavailable: If the connection cannot be established.
        """
        ...

    def affected_rows(self) -> int:
        """Number of rows affected by the last ``execute_query()`` call."""
        ...

    def get_generated_id(self, table: str) -> int | None:
        """Return the identity value generated by the last INSERT on ``table``."""
        ...

    def is_active(self) -> bool:
        """Return ``True`` if the backend connection is usable."""
        ...

    def close(self) -> None:
        """Release the connection pool."""
        ...

    # ------------------------------------------------------------------
    # Structural changes
    # ------------------------------------------------------------------

    def create_table(
        self,
        table: str,
        fields: dict[str, FieldSpec] | None = None,
        indexes: dict[str, IndexSpec] | None = None,
    ) -> None:
        """Create a table with all of its fields and indexes in one call."""
        ...

    def alter_table(
        self,
        table: str,
        new_fields: dict[str, FieldSpec] | None = None,
        new_indexes: dict[str, IndexSpec] | None = None,
        altered_fields: dict[str, FieldSpec] | None = None,
        altered_indexes: dict[str, IndexSpec] | None = None,
    ) -> None:
        """Apply every field and index change for one table in one call."""
        ...

    def rename_table(self, old_name: str, new_name: str) -> None:
        ...

    def create_field(self, table: str, field: str, spec: FieldSpec) -> None:
        ...

    def rename_field(self, table: str, old_name: str, new_name: str) -> None:
        ...

    def check_and_repair_table(self, table: str) -> bool:
        """Check an existing table for storage-level damage and repair it.

        Returns ``True`` only if a repair was performed.
        """
        ...

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def list_tables(self) -> set[str]:
        """Return all table names, lower-cased."""
        ...

    def list_fields(self, table: str) -> dict[str, FieldSpec]:
        """Return a map of field name to live field spec."""
        ...

    def list_indexes(self, table: str) -> dict[str, IndexSpec]:
        """Return a map of index name to live index spec (primary key excluded)."""
        ...

    def has_table(self, table: str) -> bool:
        ...

    def resolve_table_name(self, table: str) -> str:
        """Return the live spelling of ``table``, matched case-insensitively.

        Returns ``table`` unchanged when no live table matches.
        """
        ...

    def enum_values_for_field(self, table: str, field: str) -> list[str]:
        """Return the allowed values of an enumerated field (empty if none)."""
        ...

    # ------------------------------------------------------------------
    # Dialect
    # ------------------------------------------------------------------

    def supports_collations(self) -> bool:
        ...

    def id_column(self, as_db_value: bool = False, auto_increment: bool = True) -> str:
        """Return the identity column definition.

        Args:
            as_db_value: Return the form ``list_fields()`` reports for an
                existing identity column instead of the creation form.
            auto_increment: Whether the identity value is generated.
        """
        ...

    def render_field(self, field: BaseField) -> str:
        """Render a structured field variant as column definition text.

        Raises:
            RenderError: If the variant is unsupported or malformed.
        """
        ...

    def canonical_field_text(self, sql: str) -> str:
        """Rewrite raw column text into the form ``list_fields()`` reports.

        Resolves type aliases so that equivalent spellings compare equal.
        """
        ...

    def render_index(self, table: str, index: str, spec: IndexSpec) -> str:
        """Render the statement that creates ``index`` on ``table``."""
        ...

    def normalize_index_spec(self, spec: IndexSpec) -> IndexSpec:
        """Convert a desired index spec to the form ``list_indexes()`` reports."""
        ...
