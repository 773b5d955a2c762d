"""Declarative schema file (``schema.toml``).

Example file::

    [tables.Member]
    auto_increment = true

    [tables.Member.fields]
    Email = { kind = "varchar", size = 255 }
    Status = { kind = "enum", values = ["Active", "Banned"], default = "Active" }
    Legacy = "integer not null default 0"

    [tables.Member.indexes]
    Email = true
    Name = "(FirstName, Surname)"

    [obsolete]
    tables = ["OldTable"]

    [obsolete.fields]
    Member = ["OldField"]

Usage:
    declaration = load_schema_file(Path("schema.toml"))
    with reconciler.schema_update():
        reconcile_declaration(reconciler, declaration)
"""

import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, model_validator

from db_reconcile.errors import RenderError
from db_reconcile.schema.models import TableSpec
from db_reconcile.schema.reconciler import SchemaReconciler


class ObsoleteDeclaration(BaseModel):
    """Tables and fields to move out of the way."""

    tables: list[str] = Field(default_factory=list)
    fields: dict[str, list[str]] = Field(default_factory=dict)


class SchemaDeclaration(BaseModel):
    """Every table a project requires, plus what it no longer requires."""

    tables: dict[str, TableSpec] = Field(default_factory=dict)
    obsolete: ObsoleteDeclaration = Field(default_factory=ObsoleteDeclaration)

    @model_validator(mode="before")
    @classmethod
    def _name_tables(cls, data: Any) -> Any:
        # table names come from the TOML keys
        if isinstance(data, dict) and isinstance(data.get("tables"), dict):
            tables = {
                name: {"name": name, **spec} if isinstance(spec, dict) else spec
                for name, spec in data["tables"].items()
            }
            data = {**data, "tables": tables}
        return data


def load_schema_file(path: Path) -> SchemaDeclaration:
    """Read and validate a ``schema.toml`` file.

    Raises:
        FileNotFoundError: If the file does not exist.
        RenderError: If the file content does not describe a valid schema.
    """
    if not path.exists():
        raise FileNotFoundError(f"Schema file not found: {path}")

    with open(path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise RenderError(f"Invalid TOML in {path.name}: {e}") from e

    try:
        return SchemaDeclaration.model_validate(data)
    except ValidationError as e:
        raise RenderError(f"Invalid schema declaration in {path.name}: {e}") from e


def reconcile_declaration(reconciler: SchemaReconciler, declaration: SchemaDeclaration) -> None:
    """Run the require/dont-require calls for ``declaration``.

    Must be called while a pass is in progress.  Required tables are
    reconciled first, then obsolete fields, then obsolete tables.
    """
    for name, table in declaration.tables.items():
        reconciler.require_table(
            name,
            fields=table.fields,
            indexes=table.indexes,
            auto_increment=table.auto_increment,
        )

    for table, fields in declaration.obsolete.fields.items():
        for field in fields:
            reconciler.dont_require_field(table, field)

    for table in declaration.obsolete.tables:
        reconciler.dont_require_table(table)
