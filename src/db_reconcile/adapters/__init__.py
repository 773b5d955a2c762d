"""Database backends package.

Provides the ``DatabaseBackend`` Protocol and the PostgreSQL driver.

Usage:
    from db_reconcile.adapters import DatabaseBackend, PostgresBackend
"""

from db_reconcile.adapters.base import DatabaseBackend
from db_reconcile.adapters.postgres import PostgresBackend

__all__ = [
    "DatabaseBackend",
    "PostgresBackend",
]
