"""Shared building blocks of the catalog commands: pattern filters, the object resolver and row results."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Optional

from .. import util
from .._core import CatalogObjectRef, ObjectNotFoundError, RelationKind
from .._results import RowsResult
from ..db import QueryBuilder, QueryContext, Queryer, fetch_all, run_query
from ..patterns import NamePattern, compile_pattern

SystemSchemaFilter = """
    AND n.nspname <> 'pg_catalog'
    AND n.nspname <> 'information_schema'
    AND n.nspname !~ '^pg_toast'
"""
"""Excludes the internal schemas of Postgres. Only applied if the user did not supply any pattern at all."""


def append_name_filters(query: QueryBuilder, filters: NamePattern, *, name_column: str,
                        schema_column: str = "n.nspname", visibility: str = "") -> QueryBuilder:
    """Restricts a catalog query to the objects that match a compiled pattern.

    If the pattern names a schema, the schema column is matched against it. Otherwise, the `visibility` predicate (e.g.
    ``pg_catalog.pg_table_is_visible(c.oid)``) restricts the query to the current search path. If the pattern is empty
    altogether, the internal schemas are excluded as well. The query is expected to alias the namespace catalog as *n* and to
    end with a *WHERE* clause that the filters can be appended to.
    """
    if filters.schema:
        query.append(f"AND {schema_column} OPERATOR(pg_catalog.~) %s", filters.schema)
    elif visibility:
        query.append(f"AND {visibility}")
    query.append_if(bool(filters.name), f"AND {name_column} OPERATOR(pg_catalog.~) %s", filters.name)
    query.append_if(filters.is_empty(), SystemSchemaFilter)
    return query


def rows_result(ctx: QueryContext, queryer: Queryer, query: QueryBuilder, *, debug: bool = False) -> RowsResult:
    """Runs a listing query and hands its live cursor to the caller."""
    log = util.make_logger(debug, prefix=util.timestamp)
    log("Running listing query:", util.compact_query(query))
    return RowsResult(run_query(queryer, query, ctx=ctx))


def resolve(
    queryer: Queryer,
    pattern: str,
    kinds: Optional[Iterable[RelationKind]] = None,
    *,
    ctx: Optional[QueryContext] = None,
    require_match: bool = False,
    debug: bool = False,
) -> list[CatalogObjectRef]:
    """Determines all relations that match a pattern.

    If the pattern does not name a schema, only relations that are visible on the current search path are considered. If
    the pattern is empty altogether, the internal schemas (*pg_catalog*, *information_schema* and the TOAST schemas) are
    excluded as well.

    Parameters
    ----------
    queryer : Queryer
        The database to search
    pattern : str
        A psql-style name pattern, see `compile_pattern`
    kinds : Optional[Iterable[RelationKind]], optional
        Restricts the matches to relations of specific kinds. By default, all kinds are allowed.
    ctx : Optional[QueryContext], optional
        The cancellation signal of the current command
    require_match : bool, optional
        Whether an empty result is an error. This is the case for describe-style commands.
    debug : bool, optional
        Whether the resolver query should be logged

    Returns
    -------
    list[CatalogObjectRef]
        The matching relations, sorted by schema and name

    Raises
    ------
    ObjectNotFoundError
        If `require_match` is set and no relation matched
    """
    log = util.make_logger(debug, prefix=util.timestamp)
    filters = compile_pattern(pattern)

    query = QueryBuilder("""
        SELECT c.oid, n.nspname, c.relname, c.relkind::text
        FROM pg_catalog.pg_class c
            LEFT JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
        WHERE true""")
    append_name_filters(query, filters, name_column="c.relname", visibility="pg_catalog.pg_table_is_visible(c.oid)")
    if kinds is not None:
        relkinds = sorted({kind.value for kind in util.enlist(kinds)})
        query.append("AND c.relkind::text = ANY(%s)", relkinds)
    query.append("ORDER BY 2, 3")

    log("Resolving pattern", repr(pattern), "::", filters)
    result_set = fetch_all(queryer, query, ctx=ctx)
    matches = [CatalogObjectRef(oid, schema, name, RelationKind.parse(relkind))
               for oid, schema, name, relkind in result_set]

    if require_match and not matches:
        raise ObjectNotFoundError(pattern)
    return matches
