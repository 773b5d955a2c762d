"""Schema models, live introspection and declarative reconciliation.

Provides the field/index/table spec models, the per-pass live catalog
(``LiveCatalog``), the pending change set (``SchemaTransaction``), the
reconciliation engine (``SchemaReconciler``) and the ``schema.toml``
loader.

Usage:
    from db_reconcile.schema import SchemaReconciler, load_schema_file
    from db_reconcile.schema import FieldSpec, IndexSpec, TableSpec
"""

from db_reconcile.schema.declaration import (
    ObsoleteDeclaration,
    SchemaDeclaration,
    load_schema_file,
    reconcile_declaration,
)
from db_reconcile.schema.introspector import LiveCatalog
from db_reconcile.schema.models import (
    ID_FIELD,
    BigIntField,
    BooleanField,
    DateField,
    DatetimeField,
    DecimalField,
    EnumField,
    FieldSpec,
    IdentityField,
    IndexKind,
    IndexSpec,
    IntField,
    TableSpec,
    TextField,
    VarcharField,
    coerce_field,
    parse_index_spec,
)
from db_reconcile.schema.reconciler import SchemaReconciler
from db_reconcile.schema.transaction import ChangeCommand, SchemaTransaction, TableChanges

__all__ = [
    "ID_FIELD",
    "FieldSpec",
    "IndexSpec",
    "IndexKind",
    "TableSpec",
    "VarcharField",
    "IntField",
    "BigIntField",
    "BooleanField",
    "DecimalField",
    "TextField",
    "DateField",
    "DatetimeField",
    "EnumField",
    "IdentityField",
    "coerce_field",
    "parse_index_spec",
    "LiveCatalog",
    "SchemaTransaction",
    "TableChanges",
    "ChangeCommand",
    "SchemaReconciler",
    "SchemaDeclaration",
    "ObsoleteDeclaration",
    "load_schema_file",
    "reconcile_declaration",
]
