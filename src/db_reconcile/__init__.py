"""db-reconcile: Declarative schema reconciliation for relational databases.

Compares the tables, fields and indexes an application declares with the
live database and applies the minimal grouped DDL to converge them.
Also provides a backend-agnostic result cursor and an update-or-insert
row writer.

Usage:
    from db_reconcile import SchemaReconciler, get_backend, manipulate
    from db_reconcile import ResultCursor, SQLQuery, render_query
    from db_reconcile import load_db_config, DatabaseProfile, DatabaseConfig
"""

__version__ = "0.1.0"

# Backends
from db_reconcile.adapters.base import DatabaseBackend
from db_reconcile.adapters.postgres import PostgresBackend

# Config
from db_reconcile.config.loader import load_db_config
from db_reconcile.config.models import DatabaseConfig, DatabaseProfile

# Errors and events
from db_reconcile.errors import BackendUnavailable, ReconcileError, RenderError, UnsupportedCommand
from db_reconcile.events import (
    AlterationKind,
    ConsoleEventSink,
    EventSink,
    LoggingEventSink,
    NullEventSink,
    RecordingEventSink,
)

# Factory
from db_reconcile.factory import ProfileNotFoundError, get_backend, resolve_url

# Row writes
from db_reconcile.manipulation import RowWriteSet, manipulate

# Queries
from db_reconcile.query import NO_RECORDS, ResultCursor, RowListCursor, SQLQuery, render_query

# Schema
from db_reconcile.schema import (
    FieldSpec,
    IndexSpec,
    SchemaReconciler,
    SchemaTransaction,
    TableSpec,
    load_schema_file,
    reconcile_declaration,
)

__all__ = [
    # Backends
    "DatabaseBackend",
    "PostgresBackend",
    # Config
    "load_db_config",
    "DatabaseProfile",
    "DatabaseConfig",
    # Errors and events
    "ReconcileError",
    "BackendUnavailable",
    "UnsupportedCommand",
    "RenderError",
    "AlterationKind",
    "EventSink",
    "ConsoleEventSink",
    "LoggingEventSink",
    "NullEventSink",
    "RecordingEventSink",
    # Factory
    "get_backend",
    "ProfileNotFoundError",
    "resolve_url",
    # Row writes
    "RowWriteSet",
    "manipulate",
    # Queries
    "NO_RECORDS",
    "ResultCursor",
    "RowListCursor",
    "SQLQuery",
    "render_query",
    # Schema
    "FieldSpec",
    "IndexSpec",
    "TableSpec",
    "SchemaReconciler",
    "SchemaTransaction",
    "load_schema_file",
    "reconcile_declaration",
]
