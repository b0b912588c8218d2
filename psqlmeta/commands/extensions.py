"""Implements ``\\dx``, which lists the installed extensions or the objects they are made of."""

from __future__ import annotations

from typing import Optional

from .. import util
from .._results import ExtensionDescription, ExtensionVerboseResult, RowsResult, SpecialCommandResult
from ..db import QueryBuilder, QueryContext, Queryer, fetch_all
from ..patterns import compile_pattern
from ..registry import CommandRegistry
from .catalog import rows_result


def list_extensions(ctx: QueryContext, queryer: Queryer, pattern: str, *, debug: bool = False) -> RowsResult:
    query = QueryBuilder("""
        SELECT e.extname AS name,
            e.extversion AS version,
            n.nspname AS schema,
            c.description AS description
        FROM pg_catalog.pg_extension e
            LEFT JOIN pg_catalog.pg_namespace n ON n.oid = e.extnamespace
            LEFT JOIN pg_catalog.pg_description c
                ON c.objoid = e.oid AND c.classoid = 'pg_catalog.pg_extension'::pg_catalog.regclass""")
    filters = compile_pattern(pattern)
    query.append_if(bool(filters.name), "WHERE e.extname OPERATOR(pg_catalog.~) %s", filters.name)
    query.append("ORDER BY 1, 2")
    return rows_result(ctx, queryer, query, debug=debug)


def describe_extensions(ctx: QueryContext, queryer: Queryer, pattern: str, *,
                        debug: bool = False) -> ExtensionVerboseResult:
    """Determines the member objects of all extensions that match a pattern.

    This requires one query to find the extensions and another query per extension to collect its members. Member objects
    are described in the format of ``pg_describe_object``, e.g. *function hstore_in(cstring)*.
    """
    log = util.make_logger(debug, prefix=util.timestamp)

    query = QueryBuilder("SELECT e.extname, e.oid FROM pg_catalog.pg_extension e")
    filters = compile_pattern(pattern)
    query.append_if(bool(filters.name), "WHERE e.extname OPERATOR(pg_catalog.~) %s", filters.name)
    query.append("ORDER BY 1, 2")
    log("Running extension query:", util.compact_query(query))
    extensions = fetch_all(queryer, query, ctx=ctx)

    descriptions: list[ExtensionDescription] = []
    for name, oid in extensions:
        members = fetch_all(queryer, """
            SELECT pg_catalog.pg_describe_object(classid, objid, 0) AS object_description
            FROM pg_catalog.pg_depend
            WHERE refclassid = 'pg_catalog.pg_extension'::pg_catalog.regclass
                AND refobjid = %s::pg_catalog.oid
                AND deptype = 'e'
            ORDER BY 1""", [oid], ctx=ctx)
        log("Extension", name, "has", len(members), "member objects")
        descriptions.append(ExtensionDescription(name, tuple(member for member, in members)))

    return ExtensionVerboseResult(descriptions)


def register(registry: CommandRegistry) -> None:
    debug = registry.debug

    @registry.command("\\dx", syntax="\\dx[+] [pattern]", description="List extensions.")
    def _extensions(ctx: QueryContext, queryer: Queryer, pattern: str, verbose: bool) -> Optional[SpecialCommandResult]:
        if verbose:
            return describe_extensions(ctx, queryer, pattern, debug=debug)
        return list_extensions(ctx, queryer, pattern, debug=debug)
