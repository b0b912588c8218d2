"""Listing commands for the global and schema-level catalog objects.

This covers databases (``\\l``), schemas (``\\dn``), roles (``\\du``), privileges (``\\dp`` and ``\\ddp``), tablespaces
(``\\db``), data types (``\\dT``) and domains (``\\dD``). Each command issues a single listing query and hands its live cursor
back to the caller.
"""

from __future__ import annotations

from .._results import RowsResult
from ..db import QueryBuilder, QueryContext, Queryer, fetch_one
from ..patterns import compile_pattern
from ..registry import CommandRegistry
from .catalog import append_name_filters, rows_result


def list_databases(ctx: QueryContext, queryer: Queryer, pattern: str, verbose: bool, *,
                   debug: bool = False) -> RowsResult:
    query = QueryBuilder("""
        SELECT d.datname AS name,
            pg_catalog.pg_get_userbyid(d.datdba) AS owner,
            pg_catalog.pg_encoding_to_char(d.encoding) AS encoding,
            d.datcollate AS collate,
            d.datctype AS ctype,
            pg_catalog.array_to_string(d.datacl, E'\\n') AS access_privileges""")
    query.append_if(verbose, """
            , CASE WHEN pg_catalog.has_database_privilege(d.datname, 'CONNECT')
                THEN pg_catalog.pg_size_pretty(pg_catalog.pg_database_size(d.datname))
                ELSE 'No Access'
            END AS size
            , t.spcname AS "Tablespace"
            , pg_catalog.shobj_description(d.oid, 'pg_database') AS description""")
    query.append("FROM pg_catalog.pg_database d")
    query.append_if(verbose, "JOIN pg_catalog.pg_tablespace t ON d.dattablespace = t.oid")

    filters = compile_pattern(pattern)
    query.append_if(bool(filters.name), "WHERE d.datname OPERATOR(pg_catalog.~) %s", filters.name)
    query.append("ORDER BY 1")
    return rows_result(ctx, queryer, query, debug=debug)


def list_schemas(ctx: QueryContext, queryer: Queryer, pattern: str, verbose: bool, *,
                 debug: bool = False) -> RowsResult:
    """Lists the schemas. Without a pattern, the internal schemas are hidden."""
    query = QueryBuilder("SELECT n.nspname AS name, pg_catalog.pg_get_userbyid(n.nspowner) AS owner")
    query.append_if(verbose, """
        , pg_catalog.array_to_string(n.nspacl, E'\\n') AS access_privileges
        , pg_catalog.obj_description(n.oid, 'pg_namespace') AS description""")
    query.append("FROM pg_catalog.pg_namespace n")

    filters = compile_pattern(pattern)
    if filters.name:
        query.append("WHERE n.nspname OPERATOR(pg_catalog.~) %s", filters.name)
    elif not pattern:
        query.append("WHERE n.nspname !~ '^pg_' AND n.nspname <> 'information_schema'")
    query.append("ORDER BY 1")
    return rows_result(ctx, queryer, query, debug=debug)


def list_roles(ctx: QueryContext, queryer: Queryer, pattern: str, verbose: bool, *,
               debug: bool = False) -> RowsResult:
    query = QueryBuilder("""
        SELECT r.rolname,
            r.rolsuper,
            r.rolinherit,
            r.rolcreaterole,
            r.rolcreatedb,
            r.rolcanlogin,
            r.rolconnlimit,
            r.rolvaliduntil,
            ARRAY(SELECT b.rolname
                  FROM pg_catalog.pg_auth_members m JOIN pg_catalog.pg_roles b ON (m.roleid = b.oid)
                  WHERE m.member = r.oid) AS memberof,""")
    query.append_if(verbose, "pg_catalog.shobj_description(r.oid, 'pg_authid') AS description,")
    query.append("""
            r.rolreplication
        FROM pg_catalog.pg_roles r""")

    filters = compile_pattern(pattern)
    query.append_if(bool(filters.name), "WHERE r.rolname OPERATOR(pg_catalog.~) %s", filters.name)
    query.append("ORDER BY 1")
    return rows_result(ctx, queryer, query, debug=debug)


def list_privileges(ctx: QueryContext, queryer: Queryer, pattern: str, verbose: bool, *,
                    debug: bool = False) -> RowsResult:
    """Lists the access privileges, column privileges and row security policies of relations."""
    query = QueryBuilder("""
        SELECT n.nspname AS schema,
            c.relname AS name,
            CASE c.relkind WHEN 'r' THEN 'table'
                           WHEN 'v' THEN 'view'
                           WHEN 'm' THEN 'materialized view'
                           WHEN 'S' THEN 'sequence'
                           WHEN 'f' THEN 'foreign table'
                           WHEN 'p' THEN 'partitioned table' END AS type,
            pg_catalog.array_to_string(c.relacl, E'\\n') AS access_privileges,
            pg_catalog.array_to_string(ARRAY(
                SELECT attname || E':\\n  ' || pg_catalog.array_to_string(attacl, E'\\n  ')
                FROM pg_catalog.pg_attribute a
                WHERE attrelid = c.oid AND NOT attisdropped AND attacl IS NOT NULL
            ), E'\\n') AS column_privileges,
            pg_catalog.array_to_string(ARRAY(
                SELECT polname
                    || CASE WHEN NOT polpermissive THEN E' (RESTRICTIVE)' ELSE '' END
                    || CASE WHEN polcmd != '*' THEN E' (' || polcmd::pg_catalog.text || E'):' ELSE E':' END
                    || CASE WHEN polqual IS NOT NULL
                        THEN E'\\n  (u): ' || pg_catalog.pg_get_expr(polqual, polrelid) ELSE E'' END
                    || CASE WHEN polwithcheck IS NOT NULL
                        THEN E'\\n  (c): ' || pg_catalog.pg_get_expr(polwithcheck, polrelid) ELSE E'' END
                    || CASE WHEN polroles <> '{0}'
                        THEN E'\\n  to: ' || pg_catalog.array_to_string(ARRAY(
                            SELECT rolname FROM pg_catalog.pg_roles WHERE oid = ANY (polroles) ORDER BY 1), E', ')
                        ELSE E'' END
                FROM pg_catalog.pg_policy pol
                WHERE polrelid = c.oid), E'\\n') AS policies
        FROM pg_catalog.pg_class c
            LEFT JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
        WHERE c.relkind IN ('r', 'v', 'm', 'S', 'f', 'p')""")

    filters = compile_pattern(pattern)
    if filters.is_empty():
        query.append("AND pg_catalog.pg_table_is_visible(c.oid)")
    query.append_if(bool(filters.name), "AND c.relname OPERATOR(pg_catalog.~) %s COLLATE pg_catalog.default",
                    filters.name)
    query.append_if(bool(filters.schema), "AND n.nspname OPERATOR(pg_catalog.~) %s COLLATE pg_catalog.default",
                    filters.schema)
    query.append("AND n.nspname !~ '^pg_'")
    query.append("ORDER BY 1, 2")
    return rows_result(ctx, queryer, query, debug=debug)


def list_default_privileges(ctx: QueryContext, queryer: Queryer, pattern: str, verbose: bool, *,
                            debug: bool = False) -> RowsResult:
    """Lists the default privileges. The pattern is matched against both the owner and the schema."""
    query = QueryBuilder("""
        SELECT pg_catalog.pg_get_userbyid(d.defaclrole) AS owner,
            n.nspname AS schema,
            CASE d.defaclobjtype WHEN 'r' THEN 'table'
                                 WHEN 'S' THEN 'sequence'
                                 WHEN 'f' THEN 'function'
                                 WHEN 'T' THEN 'type'
                                 WHEN 'n' THEN 'schema' END AS type,
            pg_catalog.array_to_string(d.defaclacl, E'\\n') AS access_privileges
        FROM pg_catalog.pg_default_acl d
            LEFT JOIN pg_catalog.pg_namespace n ON n.oid = d.defaclnamespace""")

    filters = compile_pattern(pattern)
    query.append_if(bool(filters.name), """
        WHERE (n.nspname OPERATOR(pg_catalog.~) %s COLLATE pg_catalog.default
            OR pg_catalog.pg_get_userbyid(d.defaclrole) OPERATOR(pg_catalog.~) %s COLLATE pg_catalog.default)""",
                    filters.name, filters.name)
    query.append("ORDER BY 1, 2, 3")
    return rows_result(ctx, queryer, query, debug=debug)


def list_tablespaces(ctx: QueryContext, queryer: Queryer, pattern: str, verbose: bool, *,
                     debug: bool = False) -> RowsResult:
    """Lists the tablespaces along with their location, if the server is able to report it."""
    location_supported = fetch_one(queryer, """
        SELECT EXISTS (SELECT * FROM pg_catalog.pg_proc WHERE proname = 'pg_tablespace_location')""", ctx=ctx)
    location = ("pg_catalog.pg_tablespace_location(n.oid) AS location"
                if location_supported and location_supported[0] else "'Not supported' AS location")

    query = QueryBuilder(f"""
        SELECT n.spcname AS name,
            pg_catalog.pg_get_userbyid(n.spcowner) AS owner,
            {location}
        FROM pg_catalog.pg_tablespace n""")
    filters = compile_pattern(pattern)
    query.append_if(bool(filters.name), "WHERE n.spcname OPERATOR(pg_catalog.~) %s COLLATE pg_catalog.default",
                    filters.name)
    query.append("ORDER BY 1")
    return rows_result(ctx, queryer, query, debug=debug)


def list_datatypes(ctx: QueryContext, queryer: Queryer, pattern: str, verbose: bool, *,
                   debug: bool = False) -> RowsResult:
    """Lists the data types. Array types and the row types of tables are skipped."""
    query = QueryBuilder("""
        SELECT n.nspname AS schema,
            pg_catalog.format_type(t.oid, NULL) AS name,""")
    if verbose:
        query.append("""
            t.typname AS internal_name,
            CASE WHEN t.typrelid != 0 THEN 'tuple'
                 WHEN t.typlen < 0 THEN 'var'
                 ELSE t.typlen::text END AS size,
            pg_catalog.array_to_string(ARRAY(
                SELECT e.enumlabel FROM pg_catalog.pg_enum e
                WHERE e.enumtypid = t.oid
                ORDER BY e.enumsortorder), E'\\n') AS elements,
            pg_catalog.array_to_string(t.typacl, E'\\n') AS access_privileges,""")
    query.append("""
            pg_catalog.obj_description(t.oid, 'pg_type') AS description
        FROM pg_catalog.pg_type t
            LEFT JOIN pg_catalog.pg_namespace n ON n.oid = t.typnamespace
        WHERE (t.typrelid = 0 OR (SELECT c.relkind = 'c' FROM pg_catalog.pg_class c WHERE c.oid = t.typrelid))
            AND NOT EXISTS (SELECT 1 FROM pg_catalog.pg_type el WHERE el.oid = t.typelem AND el.typarray = t.oid)""")

    filters = compile_pattern(pattern)
    if filters.schema:
        query.append("AND n.nspname OPERATOR(pg_catalog.~) %s", filters.schema)
    else:
        query.append("AND pg_catalog.pg_type_is_visible(t.oid)")
    query.append_if(bool(filters.name), """
        AND (t.typname OPERATOR(pg_catalog.~) %s
             OR pg_catalog.format_type(t.oid, NULL) OPERATOR(pg_catalog.~) %s)""", filters.name, filters.name)
    query.append_if(filters.is_empty(), "AND n.nspname <> 'pg_catalog' AND n.nspname <> 'information_schema'")
    query.append("ORDER BY 1, 2")
    return rows_result(ctx, queryer, query, debug=debug)


def list_domains(ctx: QueryContext, queryer: Queryer, pattern: str, verbose: bool, *,
                 debug: bool = False) -> RowsResult:
    query = QueryBuilder("""
        SELECT n.nspname AS schema,
            t.typname AS name,
            pg_catalog.format_type(t.typbasetype, t.typtypmod) AS type,
            pg_catalog.ltrim((COALESCE((SELECT (' collate ' || c.collname)
                                        FROM pg_catalog.pg_collation AS c, pg_catalog.pg_type AS bt
                                        WHERE c.oid = t.typcollation
                                            AND bt.oid = t.typbasetype
                                            AND t.typcollation <> bt.typcollation), '')
                              || CASE WHEN t.typnotnull THEN ' not null' ELSE '' END)
                             || CASE WHEN t.typdefault IS NOT NULL THEN (' default ' || t.typdefault) ELSE '' END)
                AS modifier,
            pg_catalog.array_to_string(ARRAY(
                SELECT pg_catalog.pg_get_constraintdef(r.oid, TRUE)
                FROM pg_catalog.pg_constraint AS r
                WHERE t.oid = r.contypid), ' ') AS check""")
    query.append_if(verbose, """
            , pg_catalog.array_to_string(t.typacl, E'\\n') AS access_privileges
            , d.description AS description""")
    query.append("""
        FROM pg_catalog.pg_type AS t
            LEFT JOIN pg_catalog.pg_namespace AS n ON n.oid = t.typnamespace""")
    query.append_if(verbose, """
            LEFT JOIN pg_catalog.pg_description d
                ON d.classoid = t.tableoid AND d.objoid = t.oid AND d.objsubid = 0""")
    query.append("WHERE t.typtype = 'd'")
    append_name_filters(query, compile_pattern(pattern), name_column="t.typname",
                        visibility="pg_catalog.pg_type_is_visible(t.oid)")
    query.append("ORDER BY 1, 2")
    return rows_result(ctx, queryer, query, debug=debug)


def register(registry: CommandRegistry) -> None:
    debug = registry.debug

    def _bind(lister):
        def _list(ctx: QueryContext, queryer: Queryer, pattern: str, verbose: bool) -> RowsResult:
            return lister(ctx, queryer, pattern, verbose, debug=debug)
        return _list

    registry.command("\\l", aliases=["\\list"], syntax="\\l[+] [pattern]",
                     description="List databases.")(_bind(list_databases))
    registry.command("\\dn", syntax="\\dn[+] [pattern]", description="List schemas.")(_bind(list_schemas))
    registry.command("\\du", aliases=["\\dg"], syntax="\\du[+] [pattern]", description="List roles.")(_bind(list_roles))
    registry.command("\\dp", aliases=["\\z"], syntax="\\dp [pattern]",
                     description="List privileges.")(_bind(list_privileges))
    registry.command("\\ddp", syntax="\\ddp [pattern]",
                     description="Lists default access privilege settings.")(_bind(list_default_privileges))
    registry.command("\\db", syntax="\\db[+] [pattern]", description="List tablespaces.")(_bind(list_tablespaces))
    registry.command("\\dT", syntax="\\dT[+] [pattern]", description="List data types.")(_bind(list_datatypes))
    registry.command("\\dD", syntax="\\dD[+] [pattern]", description="List or describe domains.")(_bind(list_domains))
