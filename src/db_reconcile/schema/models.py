"""Pydantic models for desired and live schema definitions.

This module contains:
- Field variants: VarcharField, IntField, BigIntField, BooleanField,
  DecimalField, TextField, DateField, DatetimeField, EnumField,
  IdentityField (a closed union discriminated by ``kind``)
- Spec models: FieldSpec, IndexSpec, TableSpec
- Text helpers: normalize_type_text, parse_enum_values, parse_default,
  parse_index_spec, coerce_field, sql_literal

A ``FieldSpec`` always carries the rendered SQL text used for comparison
and, when it came from a structured declaration, the declaration itself.
"""

import re
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)

from db_reconcile.errors import RenderError

ID_FIELD = "ID"

_QUOTED = r"'(?:[^']|'')*'"


# ============================================================================
# Field Variants
# ============================================================================


class BaseField(BaseModel):
    """Attributes shared by every field variant."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = ""
    nullable: bool = True
    default: str | int | float | bool | None = None


class VarcharField(BaseField):
    kind: Literal["varchar"] = "varchar"
    size: int = 255


class IntField(BaseField):
    kind: Literal["int"] = "int"


class BigIntField(BaseField):
    kind: Literal["bigint"] = "bigint"


class BooleanField(BaseField):
    kind: Literal["boolean"] = "boolean"


class DecimalField(BaseField):
    kind: Literal["decimal"] = "decimal"
    precision: int = 9
    scale: int = 2


class TextField(BaseField):
    kind: Literal["text"] = "text"


class DateField(BaseField):
    kind: Literal["date"] = "date"


class DatetimeField(BaseField):
    kind: Literal["datetime"] = "datetime"


class EnumField(BaseField):
    """Enumerated field restricted to ``values``.

    ``default`` falls back to the first allowed value.

    Example:
        >>> EnumField(values=("Active", "Banned")).default_value
        'Active'
    """

    kind: Literal["enum"] = "enum"
    values: tuple[str, ...]
    default: str | None = None
    nullable: bool = False

    @property
    def default_value(self) -> str | None:
        if self.default is not None:
            return self.default
        return self.values[0] if self.values else None


class IdentityField(BaseField):
    """The primary identity column (``ID``)."""

    kind: Literal["identity"] = "identity"
    auto_increment: bool = True
    nullable: bool = False


FieldType = Annotated[
    VarcharField
    | IntField
    | BigIntField
    | BooleanField
    | DecimalField
    | TextField
    | DateField
    | DatetimeField
    | EnumField
    | IdentityField,
    Field(discriminator="kind"),
]

_FIELD_ADAPTER: TypeAdapter[Any] = TypeAdapter(FieldType)


def coerce_field(spec: Any) -> BaseField | str:
    """Turn a field declaration into a field variant or raw SQL text.

    Accepts a variant instance, a ``{"kind": ..., ...}`` dict, the legacy
    ``{"type": ..., "parts": {...}}`` dict, or pre-rendered SQL text.

    Raises:
        RenderError: If the declaration names an unknown kind or carries
            invalid parameters.
    """
    if isinstance(spec, str | BaseField):
        return spec
    if isinstance(spec, dict):
        data = spec
        if "type" in data and "kind" not in data:
            data = {"kind": data["type"], **data.get("parts", {})}
        try:
            return _FIELD_ADAPTER.validate_python(data)
        except ValidationError as e:
            raise RenderError(f"Invalid field spec {spec!r}: {e}") from e
    raise RenderError(f"Unsupported field spec type: {type(spec).__name__}")


# ============================================================================
# Text Helpers
# ============================================================================


def normalize_type_text(sql: str) -> str:
    """Normalize a column type string for comparison.

    Lower-cases and collapses whitespace outside quoted literals and drops
    spaces around parentheses and commas.

    Example:
        >>> normalize_type_text("VARCHAR( 255 )  NOT NULL default 'A'")
        "varchar(255)not null default 'A'"
    """
    # odd indexes are quoted literals and stay untouched
    parts = re.split(f"({_QUOTED})", sql)
    for i in range(0, len(parts), 2):
        segment = re.sub(r"\s+", " ", parts[i].lower())
        parts[i] = re.sub(r" ?([(),]) ?", r"\1", segment)
    return "".join(parts).strip()


def parse_enum_values(sql: str) -> list[str] | None:
    """Extract allowed literals from ``enum('a','b')`` or ``... in ('a','b')``.

    Returns ``None`` when the text is not an enumeration.
    """
    match = re.search(
        rf"(?:\benum|\bin)\s*\(\s*({_QUOTED}(?:\s*,\s*{_QUOTED})*)\s*\)",
        sql,
        re.IGNORECASE,
    )
    if not match:
        return None
    return [v.replace("''", "'") for v in re.findall(r"'((?:[^']|'')*)'", match.group(1))]


def parse_default(sql: str) -> str | None:
    """Return the literal following ``default`` in a column spec, if any."""
    match = re.search(rf"\bdefault\s+({_QUOTED}|[^\s]+)", sql, re.IGNORECASE)
    return match.group(1) if match else None


def sql_literal(value: Any) -> str:
    """Render a Python value as an SQL literal."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int | float):
        return str(value)
    return "'" + str(value).replace("'", "''") + "'"


# ============================================================================
# Field Spec
# ============================================================================


class FieldSpec(BaseModel):
    """A field definition: rendered SQL plus its structured source, if any.

    Example:
        >>> spec = FieldSpec(name="Title", sql="varchar(255)")
        >>> spec.comparison_key == FieldSpec(name="Title", sql="VARCHAR (255)").comparison_key
        True
    """

    model_config = ConfigDict(frozen=True)

    name: str
    sql: str
    declared: FieldType | None = None

    @property
    def comparison_key(self) -> str:
        return normalize_type_text(self.sql)

    @property
    def enum_values(self) -> list[str] | None:
        if isinstance(self.declared, EnumField):
            return list(self.declared.values)
        return parse_enum_values(self.sql)

    @property
    def default_literal(self) -> str | None:
        """The field's default as an SQL literal (``None`` if undeclared)."""
        if isinstance(self.declared, EnumField):
            return sql_literal(self.declared.default_value)
        if self.declared is not None and self.declared.default is not None:
            return sql_literal(self.declared.default)
        return parse_default(self.sql)

    def __str__(self) -> str:
        return self.sql


# ============================================================================
# Index Spec
# ============================================================================


class IndexKind(StrEnum):
    SINGLE_COLUMN = "single-column"
    COMPOSITE = "composite"
    UNIQUE = "unique"
    FULLTEXT = "fulltext"


_PLAIN_KINDS = {"index", IndexKind.SINGLE_COLUMN, IndexKind.COMPOSITE}


class IndexSpec(BaseModel):
    """An index definition compared structurally.

    Plain indexes are ``single-column`` or ``composite`` depending on how
    many fields they cover.

    Example:
        >>> parse_index_spec("(A,B)", "AB") == parse_index_spec("(A, B)", "AB")
        True
        >>> IndexSpec(kind="unique", fields=("Email",)).sql
        'unique (Email)'
    """

    model_config = ConfigDict(frozen=True)

    kind: IndexKind = IndexKind.SINGLE_COLUMN
    fields: tuple[str, ...]

    @model_validator(mode="before")
    @classmethod
    def _derive_plain_kind(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        fields = data.get("fields") or ()
        if isinstance(fields, str):
            fields = _split_field_list(fields)
        data = {**data, "fields": tuple(fields)}
        if data.get("kind", IndexKind.SINGLE_COLUMN) in _PLAIN_KINDS:
            data["kind"] = IndexKind.COMPOSITE if len(fields) > 1 else IndexKind.SINGLE_COLUMN
        return data

    @field_validator("fields")
    @classmethod
    def _require_fields(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        if not v:
            raise ValueError("an index needs at least one field")
        return v

    @property
    def is_plain(self) -> bool:
        return self.kind in (IndexKind.SINGLE_COLUMN, IndexKind.COMPOSITE)

    @property
    def sql(self) -> str:
        columns = "(" + ",".join(self.fields) + ")"
        return columns if self.is_plain else f"{self.kind.value} {columns}"

    def __str__(self) -> str:
        return self.sql


def _split_field_list(value: str) -> tuple[str, ...]:
    return tuple(f.strip().strip('"`') for f in value.split(",") if f.strip())


def normalize_index_text(spec: str) -> str:
    """Remove whitespace around commas in a textual index spec."""
    return re.sub(r" *, *", ",", spec).strip()


def parse_index_spec(spec: Any, index_name: str) -> IndexSpec:
    """Turn an index declaration into an ``IndexSpec``.

    Accepted forms:
    - ``True``: single-column index on the field named like the index
    - text: ``"(A, B)"``, ``"unique (Email)"``, ``"fulltext (Title,Content)"``
    - dict: ``{"type": "unique", "value": "A, B"}`` or ``{"kind": ..., "fields": [...]}``
    - an ``IndexSpec`` instance

    Raises:
        RenderError: If the declaration cannot be parsed.
    """
    if isinstance(spec, IndexSpec):
        return spec
    if spec is True:
        return IndexSpec(fields=(index_name,))

    if isinstance(spec, str):
        text = normalize_index_text(spec)
        match = re.fullmatch(r"(?:(unique|fulltext|index)\s*)?\((.*)\)", text, re.IGNORECASE)
        if not match:
            raise RenderError(f"Cannot parse index spec for {index_name}: {spec!r}")
        data: dict[str, Any] = {
            "kind": (match.group(1) or "index").lower(),
            "fields": _split_field_list(match.group(2)),
        }
    elif isinstance(spec, dict):
        data = {
            "kind": spec.get("kind", spec.get("type", "index")),
            "fields": spec.get("fields", spec.get("value", ())),
        }
    else:
        raise RenderError(f"Unsupported index spec for {index_name}: {spec!r}")

    try:
        return IndexSpec(**data)
    except ValidationError as e:
        raise RenderError(f"Invalid index spec for {index_name}: {e}") from e


# ============================================================================
# Table Spec
# ============================================================================


class TableSpec(BaseModel):
    """Desired layout of one table.

    The ``ID`` identity field is implicit; ``auto_increment`` chooses its type.
    """

    name: str
    fields: dict[str, FieldType | str] = Field(default_factory=dict)
    indexes: dict[str, IndexSpec | bool | str | dict[str, Any]] = Field(default_factory=dict)
    auto_increment: bool = True
