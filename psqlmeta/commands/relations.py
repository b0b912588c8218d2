"""Listing commands for relations: ``\\dt``, ``\\dv``, ``\\dm``, ``\\ds``, ``\\di`` and ``\\dE``."""

from __future__ import annotations

from collections.abc import Sequence

from .._results import RowsResult
from ..db import QueryBuilder, QueryContext, Queryer
from ..patterns import compile_pattern
from ..registry import CommandRegistry
from .catalog import SystemSchemaFilter, append_name_filters, rows_result

RelationTypeNames = """
    CASE c.relkind
        WHEN 'r' THEN 'table' WHEN 'v' THEN 'view'
        WHEN 'p' THEN 'partitioned table'
        WHEN 'm' THEN 'materialized view' WHEN 'i' THEN 'index'
        WHEN 'I' THEN 'partitioned index'
        WHEN 'S' THEN 'sequence' WHEN 's' THEN 'special'
        WHEN 'f' THEN 'foreign table' END AS type"""
"""Translates the *relkind* codes into the type names that are shown by the listing commands."""


def list_objects(ctx: QueryContext, queryer: Queryer, pattern: str, verbose: bool, relkinds: Sequence[str], *,
                 debug: bool = False) -> RowsResult:
    """Lists all relations of specific kinds that match a pattern.

    Parameters
    ----------
    ctx : QueryContext
        The cancellation signal of the current command
    queryer : Queryer
        The database to query
    pattern : str
        A psql-style name pattern. An empty pattern lists all relations on the search path.
    verbose : bool
        Whether the size and description of the relations should be included
    relkinds : Sequence[str]
        The *relkind* codes of the relations to list

    Returns
    -------
    RowsResult
        The columns *schema*, *name*, *type* and *owner*, plus *size* and *description* in verbose mode
    """
    query = QueryBuilder(f"""
        SELECT n.nspname AS schema,
            c.relname AS name,
            {RelationTypeNames.strip()},
            pg_catalog.pg_get_userbyid(c.relowner) AS owner""")
    query.append_if(verbose, """
            , pg_catalog.pg_size_pretty(pg_catalog.pg_table_size(c.oid)) AS size
            , pg_catalog.obj_description(c.oid, 'pg_class') AS description""")
    query.append("""
        FROM pg_catalog.pg_class c
            LEFT JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
        WHERE c.relkind::text = ANY(%s)""", list(relkinds))
    append_name_filters(query, compile_pattern(pattern), name_column="c.relname",
                        visibility="pg_catalog.pg_table_is_visible(c.oid)")
    query.append("ORDER BY 1, 2")
    return rows_result(ctx, queryer, query, debug=debug)


def list_foreign_tables(ctx: QueryContext, queryer: Queryer, pattern: str, verbose: bool, *,
                        debug: bool = False) -> RowsResult:
    """Lists the foreign tables on the search path. Only the name part of the pattern is considered."""
    query = QueryBuilder(f"""
        SELECT n.nspname AS schema,
            c.relname AS name,
            {RelationTypeNames.strip()},
            pg_catalog.pg_get_userbyid(c.relowner) AS owner""")
    query.append_if(verbose, """
            , pg_catalog.pg_size_pretty(pg_catalog.pg_table_size(c.oid)) AS size
            , pg_catalog.obj_description(c.oid, 'pg_class') AS description""")
    query.append("""
        FROM pg_catalog.pg_class c
            LEFT JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
        WHERE c.relkind = 'f'
            AND pg_catalog.pg_table_is_visible(c.oid)""")
    query.append(SystemSchemaFilter)

    filters = compile_pattern(pattern)
    query.append_if(bool(filters.name), "AND c.relname OPERATOR(pg_catalog.~) %s", filters.name)
    query.append("ORDER BY 1, 2")
    return rows_result(ctx, queryer, query, debug=debug)


def register(registry: CommandRegistry) -> None:
    debug = registry.debug

    def _lister(*relkinds: str):
        def _list(ctx: QueryContext, queryer: Queryer, pattern: str, verbose: bool) -> RowsResult:
            return list_objects(ctx, queryer, pattern, verbose, relkinds, debug=debug)
        return _list

    registry.command("\\dt", syntax="\\dt[+] [pattern]", description="List tables.")(_lister("r", "p", ""))
    registry.command("\\dv", syntax="\\dv[+] [pattern]", description="List views.")(_lister("v", "s", ""))
    registry.command("\\dm", syntax="\\dm[+] [pattern]", description="List materialized views.")(_lister("m", "s", ""))
    registry.command("\\ds", syntax="\\ds[+] [pattern]", description="List sequences.")(_lister("S", "s", ""))
    registry.command("\\di", syntax="\\di[+] [pattern]", description="List indexes.")(_lister("i", "I", "s", ""))

    @registry.command("\\dE", syntax="\\dE[+] [pattern]", description="List foreign tables.")
    def _list_foreign_tables(ctx: QueryContext, queryer: Queryer, pattern: str, verbose: bool) -> RowsResult:
        return list_foreign_tables(ctx, queryer, pattern, verbose, debug=debug)
