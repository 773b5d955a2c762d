"""Result cursors and query text rendering.

Usage:
    from db_reconcile.query import ResultCursor, RowListCursor, SQLQuery, render_query
"""

from db_reconcile.query.builder import SQLQuery, render_query
from db_reconcile.query.cursor import NO_RECORDS, ResultCursor, RowListCursor

__all__ = [
    "NO_RECORDS",
    "ResultCursor",
    "RowListCursor",
    "SQLQuery",
    "render_query",
]
