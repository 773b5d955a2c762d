"""Exception types raised by the reconciliation engine and its backends.

Usage:
    from db_reconcile.errors import BackendUnavailable, RenderError

    try:
        reconciler.begin_schema_update()
    except BackendUnavailable as e:
        print(f"Cannot reconcile: {e}")
"""


class ReconcileError(Exception):
    """Base class for all db-reconcile errors."""

    pass


class BackendUnavailable(ReconcileError):
    """Raised when the backend connection is unusable.

    Introspection failures abort a reconciliation pass before any mutation.
    """

    pass


class UnsupportedCommand(ReconcileError):
    """Raised for an unrecognized manipulation or schema command."""

    pass


class RenderError(ReconcileError):
    """Raised when a structured field, index, or query spec cannot be rendered."""

    pass
