"""Structured query description and its SQL text rendering.

A thin builder used by the engine for the ad-hoc statements it issues
itself (the upsert row lookup, enum-narrowing updates).  It does not quote or
escape anything: every part is an SQL fragment supplied by the caller.

Usage:
    from db_reconcile.query.builder import SQLQuery, render_query

    sql = render_query(SQLQuery(
        select=['"ID"', '"Title"'],
        from_=['"Page"'],
        where=['"ParentID" = 0'],
        order_by='"Sort"',
        limit={"limit": 10, "start": 20},
    ))
    # SELECT "ID", "Title" FROM "Page" WHERE ("ParentID" = 0) ORDER BY "Sort" LIMIT 10 OFFSET 20
"""

from typing import Any

from pydantic import BaseModel, Field

from db_reconcile.errors import RenderError


class SQLQuery(BaseModel):
    """Structured description of a SELECT, DELETE or UPDATE statement."""

    select: list[str] = Field(default_factory=lambda: ["*"])
    from_: list[str] = Field(default_factory=list)
    where: list[str] = Field(default_factory=list)
    group_by: list[str] = Field(default_factory=list)
    having: list[str] = Field(default_factory=list)
    order_by: str | None = None
    limit: int | str | dict[str, Any] | None = None
    distinct: bool = False
    delete: bool = False
    update: dict[str, str] = Field(default_factory=dict)  # column -> SQL literal

    def filter_clause(self) -> str:
        """Join the where fragments into one predicate."""
        return ") AND (".join(self.where)


def _render_limit(limit: int | str | dict[str, Any]) -> str:
    if not isinstance(limit, dict):
        return f" LIMIT {limit}"

    if "limit" not in limit:
        raise RenderError(f"Wrong format for limit: {limit!r}")

    count = limit["limit"]
    start = limit.get("start")
    if _is_numeric(count) and _is_numeric(start):
        return f" LIMIT {count} OFFSET {start}"
    if _is_numeric(count):
        return f" LIMIT {int(count)}"
    return ""


def _is_numeric(value: Any) -> bool:
    if isinstance(value, bool) or value is None:
        return False
    if isinstance(value, int | float):
        return True
    return isinstance(value, str) and value.strip().lstrip("-").isdigit()


def render_query(query: SQLQuery) -> str:
    """Convert a ``SQLQuery`` into SQL text.

    Returns an empty string when the query has no source.

    Raises:
        RenderError: If ``limit`` is a mapping without a ``limit`` key.

    Examples:
        >>> render_query(SQLQuery(from_=['"Member"'], where=['"ID" = 3']))
        'SELECT * FROM "Member" WHERE ("ID" = 3)'

        >>> render_query(SQLQuery(
        ...     from_=['"Member"'],
        ...     update={'"Status"': "'Active'"},
        ...     where=["\\"Status\\" IN ('Gone')"],
        ... ))
        'UPDATE "Member" SET "Status" = \\'Active\\' WHERE ("Status" IN (\\'Gone\\'))'
    """
    if not query.from_:
        return ""

    source = " ".join(query.from_)

    if query.update:
        assignments = ", ".join(f"{col} = {val}" for col, val in query.update.items())
        text = f"UPDATE {source} SET {assignments}"
    else:
        if query.delete:
            text = "DELETE"
        else:
            distinct = "DISTINCT " if query.distinct else ""
            text = f"SELECT {distinct}" + ", ".join(query.select)
        text += f" FROM {source}"

    if query.where:
        text += f" WHERE ({query.filter_clause()})"
    if query.group_by:
        text += " GROUP BY " + ", ".join(query.group_by)
    if query.having:
        text += " HAVING ( " + " ) AND ( ".join(query.having) + " )"
    if query.order_by:
        text += f" ORDER BY {query.order_by}"
    if query.limit:
        text += _render_limit(query.limit)

    return text
