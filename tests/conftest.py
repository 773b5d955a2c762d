"""Shared fixtures: an in-memory ``DatabaseBackend`` and a recording sink.

``FakeBackend`` keeps tables as dicts of ``FieldSpec``/``IndexSpec`` and
records every structural call, so tests can assert on exactly what a
reconciliation pass sent to the backend.  Its dialect is MySQL-flavoured
(``enum(...)`` columns, ``auto_increment`` identity).
"""

from typing import Any

import pytest

from db_reconcile.errors import BackendUnavailable
from db_reconcile.events import RecordingEventSink
from db_reconcile.query.cursor import ResultCursor, RowListCursor
from db_reconcile.schema.models import (
    BaseField,
    EnumField,
    FieldSpec,
    IdentityField,
    IndexSpec,
    normalize_type_text,
    parse_enum_values,
    sql_literal,
)


class FakeBackend:
    """In-memory backend implementing the ``DatabaseBackend`` protocol."""

    def __init__(self, collations: bool = True) -> None:
        self.tables: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, tuple]] = []
        self.queries: list[str] = []
        self.query_results: list[list[dict[str, Any]]] = []
        self.rows_affected = 0
        self.damaged: set[str] = set()
        self.active = True
        self.collations = collations

    # -- helpers -------------------------------------------------------

    def add_table(
        self,
        name: str,
        fields: dict[str, str] | None = None,
        indexes: dict[str, IndexSpec] | None = None,
    ) -> None:
        """Seed a live table (field specs given as text)."""
        self.tables[name] = {
            "fields": {f: FieldSpec(name=f, sql=sql) for f, sql in (fields or {}).items()},
            "indexes": dict(indexes or {}),
        }

    def _table(self, name: str) -> dict[str, Any] | None:
        for key, value in self.tables.items():
            if key.lower() == name.lower():
                return value
        return None

    def _stored(self, spec: FieldSpec) -> FieldSpec:
        # identity columns are reported in their db-value form
        for auto_increment in (True, False):
            if spec.comparison_key == normalize_type_text(self.id_column(False, auto_increment)):
                return FieldSpec(name=spec.name, sql=self.id_column(True, auto_increment))
        return FieldSpec(name=spec.name, sql=spec.sql)

    def structural_calls(self) -> list[str]:
        return [name for name, _ in self.calls if name in ("create_table", "alter_table")]

    # -- query execution -----------------------------------------------

    def execute_query(self, sql: str) -> ResultCursor:
        self.queries.append(sql)
        rows = self.query_results.pop(0) if self.query_results else []
        return RowListCursor(rows)

    def affected_rows(self) -> int:
        return self.rows_affected

    def get_generated_id(self, table: str) -> int | None:
        return None

    def is_active(self) -> bool:
        return self.active

    def close(self) -> None:
        self.calls.append(("close", ()))

    # -- structural changes --------------------------------------------

    def create_table(self, table, fields=None, indexes=None) -> None:
        self.calls.append(("create_table", (table, dict(fields or {}), dict(indexes or {}))))
        self.tables[table] = {
            "fields": {name: self._stored(spec) for name, spec in (fields or {}).items()},
            "indexes": dict(indexes or {}),
        }

    def alter_table(
        self, table, new_fields=None, new_indexes=None, altered_fields=None, altered_indexes=None
    ) -> None:
        self.calls.append(
            (
                "alter_table",
                (
                    table,
                    dict(new_fields or {}),
                    dict(new_indexes or {}),
                    dict(altered_fields or {}),
                    dict(altered_indexes or {}),
                ),
            )
        )
        live = self._table(table)
        for name, spec in {**(new_fields or {}), **(altered_fields or {})}.items():
            live["fields"][name] = self._stored(spec)
        live["indexes"].update(new_indexes or {})
        live["indexes"].update(altered_indexes or {})

    def rename_table(self, old_name: str, new_name: str) -> None:
        self.calls.append(("rename_table", (old_name, new_name)))
        self.tables[new_name] = self.tables.pop(old_name)

    def create_field(self, table: str, field: str, spec: FieldSpec) -> None:
        self.calls.append(("create_field", (table, field, spec)))
        self._table(table)["fields"][field] = self._stored(spec)

    def rename_field(self, table: str, old_name: str, new_name: str) -> None:
        self.calls.append(("rename_field", (table, old_name, new_name)))
        fields = self._table(table)["fields"]
        spec = fields.pop(old_name)
        fields[new_name] = FieldSpec(name=new_name, sql=spec.sql)

    def check_and_repair_table(self, table: str) -> bool:
        if table in self.damaged:
            self.damaged.discard(table)
            return True
        return False

    # -- introspection -------------------------------------------------

    def list_tables(self) -> set[str]:
        if not self.active:
            raise BackendUnavailable("fake backend is down")
        return {name.lower() for name in self.tables}

    def list_fields(self, table: str) -> dict[str, FieldSpec]:
        live = self._table(table)
        return dict(live["fields"]) if live else {}

    def list_indexes(self, table: str) -> dict[str, IndexSpec]:
        live = self._table(table)
        return dict(live["indexes"]) if live else {}

    def has_table(self, table: str) -> bool:
        return self._table(table) is not None

    def resolve_table_name(self, table: str) -> str:
        if table in self.tables:
            return table
        return next((key for key in self.tables if key.lower() == table.lower()), table)

    def enum_values_for_field(self, table: str, field: str) -> list[str]:
        spec = self.list_fields(table).get(field)
        if spec is None:
            return []
        return parse_enum_values(spec.sql) or []

    # -- dialect -------------------------------------------------------

    def supports_collations(self) -> bool:
        return self.collations

    def id_column(self, as_db_value: bool = False, auto_increment: bool = True) -> str:
        base = "int(11) not null auto_increment" if auto_increment else "int(11) not null"
        return base if as_db_value else f"{base} primary key"

    def render_field(self, field: BaseField) -> str:
        if isinstance(field, IdentityField):
            return self.id_column(False, field.auto_increment)
        if isinstance(field, EnumField):
            values = ",".join(sql_literal(v) for v in field.values)
            return f"enum({values}) default {sql_literal(field.default_value)}"

        types = {
            "varchar": lambda f: f"varchar({f.size})",
            "int": lambda f: "int(11)",
            "bigint": lambda f: "bigint(20)",
            "boolean": lambda f: "tinyint(1)",
            "decimal": lambda f: f"decimal({f.precision},{f.scale})",
            "text": lambda f: "mediumtext",
            "date": lambda f: "date",
            "datetime": lambda f: "datetime",
        }
        parts = [types[field.kind](field)]
        if not field.nullable:
            parts.append("not null")
        if field.default is not None:
            parts.append(f"default {sql_literal(field.default)}")
        return " ".join(parts)

    def canonical_field_text(self, sql: str) -> str:
        return sql

    def render_index(self, table: str, index: str, spec: IndexSpec) -> str:
        return f"create index {index} on {table} {spec.sql}"

    def normalize_index_spec(self, spec: IndexSpec) -> IndexSpec:
        return spec


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def events() -> RecordingEventSink:
    return RecordingEventSink()
