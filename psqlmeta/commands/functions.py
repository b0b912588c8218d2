"""Commands for functions: listing them (``\\df``) and showing their source code (``\\sf``)."""

from __future__ import annotations

from .._results import RowsResult
from ..db import QueryBuilder, QueryContext, Queryer, fetch_one
from ..patterns import compile_pattern
from ..registry import CommandRegistry
from .catalog import append_name_filters, rows_result

LineNumberWidth = 7
"""Width of the line number gutter of ``\\sf+``."""


def list_functions(ctx: QueryContext, queryer: Queryer, pattern: str, verbose: bool, *,
                   debug: bool = False) -> RowsResult:
    """Lists the functions, aggregates and procedures that match a pattern.

    In verbose mode, the volatility, owner, language, source code and description of each function are included as well.
    """
    query = QueryBuilder("""
        SELECT n.nspname AS schema,
            p.proname AS name,
            pg_catalog.pg_get_function_result(p.oid) AS "Result data type",
            pg_catalog.pg_get_function_arguments(p.oid) AS "Argument data types",
            CASE WHEN p.prokind = 'a' THEN 'agg'
                 WHEN p.prokind = 'w' THEN 'window'
                 WHEN p.prorettype = 'pg_catalog.trigger'::pg_catalog.regtype THEN 'trigger'
                 ELSE 'normal'
            END AS type""")
    query.append_if(verbose, """
            , CASE WHEN p.provolatile = 'i' THEN 'immutable'
                   WHEN p.provolatile = 's' THEN 'stable'
                   WHEN p.provolatile = 'v' THEN 'volatile'
              END AS "Volatility"
            , pg_catalog.pg_get_userbyid(p.proowner) AS owner
            , l.lanname AS "Language"
            , p.prosrc AS "Source code"
            , pg_catalog.obj_description(p.oid, 'pg_proc') AS description""")
    query.append("""
        FROM pg_catalog.pg_proc p
            LEFT JOIN pg_catalog.pg_namespace n ON n.oid = p.pronamespace""")
    query.append_if(verbose, "LEFT JOIN pg_catalog.pg_language l ON l.oid = p.prolang")
    query.append("WHERE true")
    append_name_filters(query, compile_pattern(pattern), name_column="p.proname",
                        visibility="pg_catalog.pg_function_is_visible(p.oid)")
    query.append("ORDER BY 1, 2, 4")
    return rows_result(ctx, queryer, query, debug=debug)


def number_source_lines(source: str) -> str:
    """Adds line numbers to the source code of a function, as shown by ``\\sf+``.

    Numbering starts with the line that contains the function body (the line starting with *AS*). All header lines before
    that get an empty gutter.
    """
    numbered: list[str] = []
    line_number = 0
    for line in source.split("\n"):
        if not line_number and line.startswith("AS "):
            line_number = 1
        elif line_number:
            line_number += 1
        gutter = f"{line_number:<{LineNumberWidth}}" if line_number else " " * LineNumberWidth
        numbered.append(f"{gutter} {line}\n")
    return "".join(numbered)


def show_function_definition(ctx: QueryContext, queryer: Queryer, function: str, verbose: bool, *,
                             debug: bool = False) -> RowsResult:
    """Shows the *CREATE FUNCTION* statement of a single function.

    If the function name contains an argument list (e.g. ``add(int, int)``), it is resolved as a *regprocedure*, otherwise as
    a *regproc*. The latter fails if the name is overloaded.

    Returns
    -------
    RowsResult
        A single *source* column with a single row. In verbose mode, the body lines of the source are numbered.
    """
    if not function:
        raise ValueError("Function name is required")
    cast = "pg_catalog.regprocedure" if "(" in function else "pg_catalog.regproc"
    oid_row = fetch_one(queryer, f"SELECT %s::{cast}::pg_catalog.oid", [function], ctx=ctx)
    function_oid = oid_row[0]

    query = QueryBuilder("SELECT pg_catalog.pg_get_functiondef(%s) AS source", function_oid)
    if not verbose:
        return rows_result(ctx, queryer, query, debug=debug)

    source_row = fetch_one(queryer, query, ctx=ctx)
    numbered = number_source_lines(source_row[0])
    return rows_result(ctx, queryer, QueryBuilder("SELECT %s::text AS source", numbered), debug=debug)


def register(registry: CommandRegistry) -> None:
    debug = registry.debug

    @registry.command("\\df", syntax="\\df[+] [pattern]", description="List functions.")
    def _list_functions(ctx: QueryContext, queryer: Queryer, pattern: str, verbose: bool) -> RowsResult:
        return list_functions(ctx, queryer, pattern, verbose, debug=debug)

    @registry.command("\\sf", syntax="\\sf[+] FUNCNAME", description="Show a function's definition.")
    def _show_function(ctx: QueryContext, queryer: Queryer, function: str, verbose: bool) -> RowsResult:
        return show_function_definition(ctx, queryer, function, verbose, debug=debug)
