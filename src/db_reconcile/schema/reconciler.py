"""Declarative schema reconciliation.

``SchemaReconciler`` compares the layout application code asks for with
the live catalog, records the differences in a ``SchemaTransaction`` and
applies them as one grouped DDL call per table when the pass ends.

Nothing is ever dropped: tables and fields that are no longer wanted are
renamed to ``_obsolete_<name>`` instead.

Usage:
    from db_reconcile.schema.reconciler import SchemaReconciler

    reconciler = SchemaReconciler(backend, events=ConsoleEventSink())
    with reconciler.schema_update():
        reconciler.require_table(
            "Member",
            fields={
                "Email": {"kind": "varchar", "size": 254},
                "Status": {"kind": "enum", "values": ["Active", "Banned"]},
            },
            indexes={"Email": "unique (Email)"},
        )
        reconciler.dont_require_field("Member", "Password")
"""

import logging
import re
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from db_reconcile.errors import BackendUnavailable
from db_reconcile.events import AlterationKind, EventSink, LoggingEventSink, NullEventSink
from db_reconcile.query.builder import SQLQuery, render_query
from db_reconcile.schema.introspector import LiveCatalog
from db_reconcile.schema.models import (
    ID_FIELD,
    BaseField,
    FieldSpec,
    IndexSpec,
    coerce_field,
    normalize_type_text,
    parse_index_spec,
    sql_literal,
)
from db_reconcile.schema.transaction import SchemaTransaction

if TYPE_CHECKING:
    from db_reconcile.adapters.base import DatabaseBackend

logger = logging.getLogger(__name__)

_COLLATION_RE = re.compile(r" *character set [^ ]+( collate [^ ]+)?( |$)", re.IGNORECASE)


def strip_collation(sql: str) -> str:
    """Remove ``character set X [collate Y]`` clauses from a column spec.

    Example:
        >>> strip_collation("varchar(50) character set utf8 collate utf8_general_ci not null")
        'varchar(50) not null'
    """
    return _COLLATION_RE.sub(r"\2", sql)


def obsolete_name(name: str, taken: set[str]) -> str:
    """Pick the first free ``_obsolete_<name>[N]`` name.

    ``taken`` holds lower-cased names already in use; suffixes go
    ``''``, ``2``, ``3``, ...

    Example:
        >>> obsolete_name("Page", {"_obsolete_page"})
        '_obsolete_Page2'
    """
    suffix = ""
    while f"_obsolete_{name}{suffix}".lower() in taken:
        suffix = str(int(suffix) + 1) if suffix else "2"
    return f"_obsolete_{name}{suffix}"


class SchemaReconciler:
    """Converges the live schema toward the declared one.

    A pass starts with ``begin_schema_update()`` and ends with
    ``end_schema_update()`` (or ``abort_schema_update()``); ``require_*``
    calls are only valid in between.

    Args:
        backend: Backend driver used for introspection and DDL.
        events: Sink for alteration messages. Defaults to a
            ``LoggingEventSink``.
        quiet: Discard all alteration messages.
        dry_run: Report the data migrations and renames that would run
            immediately instead of running them.
    """

    def __init__(
        self,
        backend: "DatabaseBackend",
        events: EventSink | None = None,
        quiet: bool = False,
        dry_run: bool = False,
    ) -> None:
        self.backend = backend
        self.events: EventSink = NullEventSink() if quiet else (events or LoggingEventSink())
        self.dry_run = dry_run
        self._catalog: LiveCatalog | None = None
        self._transaction: SchemaTransaction | None = None
        # renames and enum remaps since the last begin_schema_update()
        self.immediate_changes = 0

    # ------------------------------------------------------------------
    # Pass lifecycle
    # ------------------------------------------------------------------

    @property
    def in_progress(self) -> bool:
        return self._transaction is not None

    @property
    def transaction(self) -> SchemaTransaction:
        """The pending change set of the current pass."""
        return self._require_pass()[1]

    def begin_schema_update(self) -> None:
        """Snapshot the live catalog and open an empty change set.

        Raises:
            BackendUnavailable: If the backend is not reachable.
        """
        if not self.backend.is_active():
            raise BackendUnavailable("Backend connection is not active")
        self._catalog = LiveCatalog(self.backend)
        self._transaction = SchemaTransaction()
        self.immediate_changes = 0
        logger.debug("Schema update started")

    def end_schema_update(self) -> int:
        """Commit the pending change set and end the pass.

        Returns:
            Number of ``create_table``/``alter_table`` calls issued.
        """
        _, transaction = self._require_pass()
        try:
            calls = transaction.commit(self.backend)
        finally:
            self._catalog = None
            self._transaction = None
        logger.debug("Schema update committed (%d table calls)", calls)
        return calls

    def abort_schema_update(self) -> None:
        """End the pass without issuing any DDL."""
        if self._transaction is not None:
            logger.debug("Schema update aborted (%d tables pending)", len(self._transaction))
        self._catalog = None
        self._transaction = None

    @contextmanager
    def schema_update(self) -> Iterator["SchemaReconciler"]:
        """Run a pass: commit on success, discard on error.

        Example:
            with reconciler.schema_update():
                reconciler.require_table("Member", fields={"Email": "varchar(255)"})
        """
        self.begin_schema_update()
        try:
            yield self
        except BaseException:
            self.abort_schema_update()
            raise
        self.end_schema_update()

    def _require_pass(self) -> tuple[LiveCatalog, SchemaTransaction]:
        if self._catalog is None or self._transaction is None:
            raise RuntimeError("No schema update in progress; call begin_schema_update() first")
        return self._catalog, self._transaction

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def require_table(
        self,
        table: str,
        fields: Mapping[str, Any] | None = None,
        indexes: Mapping[str, Any] | None = None,
        auto_increment: bool = True,
    ) -> None:
        """Make sure ``table`` exists with the given fields and indexes.

        The ``ID`` identity field is reconciled first, then each field,
        then each index.

        Raises:
            RuntimeError: If no pass is in progress.
            RenderError: If a field or index declaration is malformed.
        """
        catalog, transaction = self._require_pass()

        if not catalog.has_table(table):
            transaction.create_table(table)
            self.events(f"Table {table}: created", AlterationKind.CREATED)
        elif self.backend.check_and_repair_table(table):
            self.events(f"Table {table}: repaired", AlterationKind.REPAIRED)

        self.require_field(table, ID_FIELD, self.backend.id_column(False, auto_increment))

        for name, spec in (fields or {}).items():
            self.require_field(table, name, spec)

        for name, spec in (indexes or {}).items():
            self.require_index(table, name, spec)

    def dont_require_table(self, table: str) -> str | None:
        """Rename ``table`` out of the way if it exists.

        Runs immediately, not at commit.  ``table`` is matched
        case-insensitively; the rename uses the live spelling.

        Returns:
            The new table name, or ``None`` if the table does not exist.
        """
        if self._catalog is not None:
            taken = self._catalog.tables
        else:
            taken = {name.lower() for name in self.backend.list_tables()}

        if table.lower() not in taken:
            return None

        live_name = self.backend.resolve_table_name(table)
        new_name = obsolete_name(live_name, taken)
        self.immediate_changes += 1
        if self.dry_run:
            self.events(f"Table {live_name}: would be renamed to {new_name}", AlterationKind.OBSOLETE)
            return new_name

        self.backend.rename_table(live_name, new_name)
        if self._catalog is not None:
            self._catalog.note_rename(live_name, new_name)
        self.events(f"Table {live_name}: renamed to {new_name}", AlterationKind.OBSOLETE)
        return new_name

    # ------------------------------------------------------------------
    # Fields
    # ------------------------------------------------------------------

    def desired_field(self, field: str, spec: Any) -> FieldSpec:
        """Turn a field declaration into a ``FieldSpec`` for this backend.

        Raises:
            RenderError: If the declaration is malformed.
        """
        coerced = coerce_field(spec)
        if isinstance(coerced, BaseField):
            declared = coerced.model_copy(update={"name": field})
            sql = self.backend.render_field(declared)
        else:
            declared = None
            sql = coerced

        if not self.backend.supports_collations():
            sql = strip_collation(sql)
        if declared is None:
            sql = self.backend.canonical_field_text(sql)
        return FieldSpec(name=field, sql=sql, declared=declared)

    def require_field(self, table: str, field: str, spec: Any) -> None:
        """Make sure ``field`` exists on ``table`` with the given spec.

        Raises:
            RuntimeError: If no pass is in progress.
            RenderError: If the declaration is malformed.
        """
        catalog, transaction = self._require_pass()
        desired = self.desired_field(field, spec)

        live = catalog.fields(table).get(field)
        if not catalog.has_table(table) or live is None or not live.sql:
            transaction.create_field(table, field, desired)
            self.events(f"Field {table}.{field}: created as {desired}", AlterationKind.CREATED)
            return

        if live.comparison_key == self._comparison_key(desired):
            return

        if desired.enum_values is not None:
            self._narrow_enum(table, field, desired)

        transaction.alter_field(table, field, desired)
        self.events(
            f"Field {table}.{field}: changed to {desired} (from {live})",
            AlterationKind.CHANGED,
        )

    def _comparison_key(self, desired: FieldSpec) -> str:
        """Key to compare against the live field.

        Identity columns are compared in the form the backend reports
        for an existing column.
        """
        key = desired.comparison_key
        for auto_increment in (True, False):
            forms = {
                normalize_type_text(self.backend.id_column(False, auto_increment)),
                normalize_type_text(self.backend.id_column(True, auto_increment)),
            }
            if key in forms:
                return normalize_type_text(self.backend.id_column(True, auto_increment))
        return key

    def _narrow_enum(self, table: str, field: str, desired: FieldSpec) -> None:
        """Move rows holding values the new enumeration drops to its default."""
        allowed = desired.enum_values or []
        removed = [v for v in self.backend.enum_values_for_field(table, field) if v not in allowed]
        if not removed:
            return

        default = desired.default_literal
        if default is None:
            default = sql_literal(allowed[0]) if allowed else "null"

        sql = render_query(
            SQLQuery(
                update={f'"{field}"': default},
                from_=[f'"{table}"'],
                where=[f'"{field}" IN ({", ".join(sql_literal(v) for v in removed)})'],
            )
        )
        self.immediate_changes += 1
        if self.dry_run:
            logger.debug("Dry run, not executing: %s", sql)
            self.events(
                f"Rows of field {field} with removed values {', '.join(removed)} "
                f"would change to default value (Value: {default})",
                AlterationKind.INFO,
            )
            return

        self.backend.execute_query(sql)
        amount = self.backend.affected_rows()
        self.events(
            f"Changed {amount} rows to default value of field {field} (Value: {default})",
            AlterationKind.INFO,
        )

    def dont_require_field(self, table: str, field: str) -> str | None:
        """Rename ``field`` of ``table`` out of the way if it exists.

        Runs immediately, not at commit.

        Returns:
            The new field name, or ``None`` if the field does not exist.
        """
        live_fields = self.backend.list_fields(table)
        if field not in live_fields:
            return None

        new_name = obsolete_name(field, {name.lower() for name in live_fields})
        self.immediate_changes += 1
        if self.dry_run:
            self.events(
                f"Field {table}.{field}: would be renamed to {table}.{new_name}",
                AlterationKind.OBSOLETE,
            )
            return new_name

        self.backend.rename_field(table, field, new_name)
        if self._catalog is not None:
            self._catalog.invalidate(table)
        self.events(f"Field {table}.{field}: renamed to {table}.{new_name}", AlterationKind.OBSOLETE)
        return new_name

    # ------------------------------------------------------------------
    # Indexes
    # ------------------------------------------------------------------

    def require_index(self, table: str, index: str, spec: Any) -> None:
        """Make sure ``index`` exists on ``table`` with the given spec.

        Raises:
            RuntimeError: If no pass is in progress.
            RenderError: If the declaration cannot be parsed.
        """
        catalog, transaction = self._require_pass()
        desired: IndexSpec = parse_index_spec(spec, index)

        live = catalog.indexes(table).get(index)
        if not catalog.has_table(table) or live is None:
            transaction.create_index(table, index, desired)
            self.events(f"Index {table}.{index}: created as {desired}", AlterationKind.CREATED)
            return

        normalized = self.backend.normalize_index_spec(desired)
        if normalized != live:
            transaction.alter_index(table, index, desired)
            self.events(
                f"Index {table}.{index}: changed to {normalized} (from {live})",
                AlterationKind.CHANGED,
            )
