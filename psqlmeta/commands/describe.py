"""Implements ``\\d``: the detailed description of tables, views, indexes, sequences and the other relation kinds.

Describing a relation is a fixed sequence of catalog queries. First, the general information about the relation is loaded
from *pg_class* (its kind and a couple of flags such as whether it has indexes or triggers). Based on this information, the
column listing is computed and the applicable footer sections are fetched one after another. Which sections apply depends
on the relation kind and on the flags, mirroring the behavior of psql.

All queries of a single ``\\d`` invocation share the same `QueryContext`. Cancelling the context aborts the description and
no partial reports are returned.
"""

from __future__ import annotations

import contextlib
import warnings
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Optional

from .. import util
from .._core import CatalogObjectRef, ObjectNotFoundError, RelationKind
from .._results import DescribeReport, DescribeTableResult, FooterSections, SpecialCommandResult
from ..db import QueryBuilder, QueryContext, QueryExecutionError, Queryer, ResultRow, fetch_all, fetch_one
from ..registry import CommandRegistry
from .catalog import resolve
from .relations import list_objects

DescribeListingKinds = ["r", "p", "v", "m", "S", "f", ""]
"""Relation kinds that are listed by ``\\d`` if no pattern is given."""

StorageModes = {"p": "plain", "m": "main", "x": "extended", "e": "external"}
"""Display names of the *attstorage* codes."""

FiringModes = ("O", "D", "A", "R")
"""Codes of the firing modes of rules and triggers: enabled, disabled, always and replica-only."""


class SectionWarning(UserWarning):
    """Warning to indicate that an optional section of a describe report could not be loaded and was skipped."""


@dataclass(frozen=True)
class TableInfo:
    """General information about a relation, as stored in *pg_class*.

    Attributes
    ----------
    kind : RelationKind
        The actual kind of the relation
    checks : int
        The number of check constraints
    has_index : bool
        Whether the relation has (or once had) any indexes
    has_rules : bool
        Whether the relation has rewrite rules
    has_triggers : bool
        Whether the relation has (or once had) triggers. Foreign keys are implemented as triggers, hence this flag also
        controls whether foreign key information is loaded.
    has_oids : bool
        Whether the relation has OIDs. Always *False* on current Postgres versions.
    options : str
        The storage parameters of the relation and its TOAST table, as a comma-separated list
    tablespace : str
        The OID of the tablespace of the relation, *0* for the default tablespace
    of_type : str
        The composite type of a typed table, empty for all other relations
    persistence : str
        The persistence code of the relation
    is_partition : bool
        Whether the relation is a partition of another relation
    """

    kind: RelationKind
    checks: int = 0
    has_index: bool = False
    has_rules: bool = False
    has_triggers: bool = False
    has_oids: bool = False
    options: str = ""
    tablespace: str = ""
    of_type: str = ""
    persistence: str = ""
    is_partition: bool = False


def _shows_modifiers(kind: RelationKind) -> bool:
    match kind:
        case (RelationKind.Table | RelationKind.PartitionedTable | RelationKind.View | RelationKind.MaterializedView
              | RelationKind.ForeignTable | RelationKind.CompositeType):
            return True
        case RelationKind.Index | RelationKind.PartitionedIndex | RelationKind.Sequence | RelationKind.Other:
            return False
        case _:
            raise util.LogicError(f"Unhandled relation kind: {kind}")


def _shows_stats_target(kind: RelationKind) -> bool:
    match kind:
        case RelationKind.Table | RelationKind.MaterializedView | RelationKind.ForeignTable:
            return True
        case (RelationKind.PartitionedTable | RelationKind.View | RelationKind.Index | RelationKind.PartitionedIndex
              | RelationKind.Sequence | RelationKind.CompositeType | RelationKind.Other):
            return False
        case _:
            raise util.LogicError(f"Unhandled relation kind: {kind}")


def _shows_description(kind: RelationKind) -> bool:
    match kind:
        case (RelationKind.Table | RelationKind.View | RelationKind.MaterializedView | RelationKind.CompositeType
              | RelationKind.ForeignTable):
            return True
        case (RelationKind.PartitionedTable | RelationKind.Index | RelationKind.PartitionedIndex | RelationKind.Sequence
              | RelationKind.Other):
            return False
        case _:
            raise util.LogicError(f"Unhandled relation kind: {kind}")


def _column_headers(kind: RelationKind, verbose: bool) -> list[str]:
    headers = ["Column", "Type"]
    if _shows_modifiers(kind):
        headers.append("Modifiers")
    if kind == RelationKind.Sequence:
        headers.append("Value")
    if kind.is_index():
        headers.append("Definition")
    if kind == RelationKind.ForeignTable:
        headers.append("FDW Options")
    if verbose:
        headers.append("Storage")
        if _shows_stats_target(kind):
            headers.append("Stats target")
        if _shows_description(kind):
            headers.append("Description")
    return headers


def format_modifiers(default: Optional[str], not_null: bool, collation: Optional[str], identity: str,
                     generated: str) -> str:
    """Builds the *Modifiers* entry of a single column.

    The individual parts are concatenated in a fixed order: collation, not-null, default and finally the identity or
    generation clause. Each part starts with a space.
    """
    modifier = ""
    if collation is not None:
        modifier += f" collate {collation}"
    if not_null:
        modifier += " not null"
    if default is not None:
        modifier += f" default {default}"
    if identity == "a":
        modifier += " generated always as identity"
    elif identity == "d":
        modifier += " generated by default as identity"
    elif generated == "s" and default is not None:
        modifier += f" generated always as ({default}) stored"
    return modifier


def _format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _group_by_firing_mode(entries: Iterable[tuple[str, str]]) -> dict[str, list[str]]:
    groups: dict[str, list[str]] = {mode: [] for mode in FiringModes}
    for definition, mode in entries:
        if mode in groups:
            groups[mode].append(definition)
    return groups


class DescribeEngine:
    """Produces the describe reports of individual relations.

    Parameters
    ----------
    queryer : Queryer
        The database that contains the relations. It is only borrowed and never closed.
    ctx : Optional[QueryContext], optional
        The cancellation signal that is checked before each catalog query
    debug : bool, optional
        Whether all catalog queries should be logged to stderr
    """

    def __init__(self, queryer: Queryer, *, ctx: Optional[QueryContext] = None, debug: bool = False) -> None:
        self._queryer = queryer
        self._ctx = ctx if ctx is not None else QueryContext()
        self._debug = debug
        self._log = util.make_logger(debug, prefix=util.timestamp)

    def describe_all(self, relations: Iterable[CatalogObjectRef], *, verbose: bool = False) -> DescribeTableResult:
        """Describes multiple relations in order. The first failing relation aborts the entire batch."""
        return DescribeTableResult([self.describe(relation, verbose=verbose) for relation in relations])

    def describe(self, relation: CatalogObjectRef, *, verbose: bool = False) -> DescribeReport:
        """Produces the complete report of a single relation.

        Parameters
        ----------
        relation : CatalogObjectRef
            The relation to describe
        verbose : bool, optional
            Whether additional columns (storage, statistics target and description) and the full enumeration of partitions
            and child tables should be included

        Returns
        -------
        DescribeReport
            The report

        Raises
        ------
        ObjectNotFoundError
            If the relation has been dropped in the meantime
        QueryExecutionError
            If any of the required catalog queries failed
        CommandCancelledError
            If the context was cancelled during the description
        """
        self._log("Describing", relation, f"(OID {relation.oid})")
        info = self.table_info(relation)
        headers, rows = self.columns(relation, info, verbose=verbose)
        footer = self.footer(relation, info, verbose=verbose)
        return DescribeReport(headers, rows, footer, relation)

    def table_info(self, relation: CatalogObjectRef) -> TableInfo:
        query = """
            SELECT c.relchecks, c.relkind::text, c.relhasindex, c.relhasrules, c.relhastriggers, false AS relhasoids,
                pg_catalog.array_to_string(c.reloptions || array(
                    SELECT 'toast.' || x FROM pg_catalog.unnest(tc.reloptions) x), ', '),
                c.reltablespace::text,
                CASE WHEN c.reloftype = 0 THEN '' ELSE c.reloftype::pg_catalog.regtype::pg_catalog.text END,
                c.relpersistence::text,
                c.relispartition
            FROM pg_catalog.pg_class c
                LEFT JOIN pg_catalog.pg_class tc ON (c.reltoastrelid = tc.oid)
            WHERE c.oid = %s::pg_catalog.oid"""
        row = self._fetch_one(QueryBuilder(query, relation.oid))
        if row is None:
            raise ObjectNotFoundError(str(relation))

        checks, relkind, has_index, has_rules, has_triggers, has_oids, options, tablespace, of_type, persistence, partition = row
        return TableInfo(RelationKind.parse(relkind), checks, has_index, has_rules, has_triggers, has_oids,
                         options or "", tablespace or "", of_type or "", persistence or "", partition)

    def columns(self, relation: CatalogObjectRef, info: TableInfo, *,
                verbose: bool = False) -> tuple[list[str], list[list[str]]]:
        """Computes the column listing of a relation, i.e. the report headers and one row per attribute."""
        kind = info.kind
        query = QueryBuilder("""
            SELECT a.attname,
                pg_catalog.format_type(a.atttypid, a.atttypmod),
                (SELECT substring(pg_catalog.pg_get_expr(d.adbin, d.adrelid, true) for 128)
                 FROM pg_catalog.pg_attrdef d
                 WHERE d.adrelid = a.attrelid AND d.adnum = a.attnum AND a.atthasdef),
                a.attnotnull,
                (SELECT c.collname FROM pg_catalog.pg_collation c, pg_catalog.pg_type t
                 WHERE c.oid = a.attcollation AND t.oid = a.atttypid AND a.attcollation <> t.typcollation) AS attcollation,
                a.attidentity::text,
                a.attgenerated::text""")

        if kind.is_index():
            query.append("""
                , CASE WHEN a.attnum <= (SELECT i.indnkeyatts FROM pg_catalog.pg_index i
                                         WHERE i.indexrelid = %s::pg_catalog.oid)
                    THEN 'yes' ELSE 'no' END AS is_key
                , pg_catalog.pg_get_indexdef(a.attrelid, a.attnum, TRUE) AS indexdef""", relation.oid)
        else:
            query.append(", NULL AS is_key, NULL AS indexdef")

        if kind == RelationKind.ForeignTable:
            query.append("""
                , CASE WHEN attfdwoptions IS NULL THEN '' ELSE '(' || pg_catalog.array_to_string(ARRAY(
                    SELECT pg_catalog.quote_ident(option_name) || ' ' || pg_catalog.quote_literal(option_value)
                    FROM pg_catalog.pg_options_to_table(attfdwoptions)), ', ') || ')' END AS attfdwoptions""")
        else:
            query.append(", NULL AS attfdwoptions")

        if verbose:
            query.append(", a.attstorage::text")
            query.append(", CASE WHEN a.attstattarget = -1 THEN NULL ELSE a.attstattarget END AS attstattarget"
                         if _shows_stats_target(kind) else ", NULL AS attstattarget")
            query.append(", pg_catalog.col_description(a.attrelid, a.attnum)"
                         if _shows_description(kind) else ", NULL AS attdescr")
        else:
            query.append(", NULL AS attstorage, NULL AS attstattarget, NULL AS attdescr")

        query.append("""
            FROM pg_catalog.pg_attribute a
            WHERE a.attrelid = %s::pg_catalog.oid AND a.attnum > 0 AND NOT a.attisdropped
            ORDER BY a.attnum""", relation.oid)

        attributes = self._fetch_all(query)
        sequence_state = self.sequence_state(relation) if kind == RelationKind.Sequence else []

        headers = _column_headers(kind, verbose)
        rows: list[list[str]] = []
        for i, attribute in enumerate(attributes):
            (name, type_name, default, not_null, collation, identity, generated, _, index_def, fdw_options,
             storage, stats_target, description) = attribute

            row = [name, type_name]
            if _shows_modifiers(kind):
                row.append(format_modifiers(default, not_null, collation, identity or "", generated or ""))
            if kind == RelationKind.Sequence:
                row.append(_format_value(sequence_state[i]) if i < len(sequence_state) else "")
            if kind.is_index():
                row.append(index_def or "")
            if kind == RelationKind.ForeignTable:
                row.append(fdw_options or "")
            if verbose:
                row.append(StorageModes.get(storage[0], "???") if storage else "")
                if _shows_stats_target(kind):
                    row.append("" if stats_target is None else str(stats_target))
                if _shows_description(kind):
                    row.append(description or "")
            rows.append(row)

        return headers, rows

    def sequence_state(self, relation: CatalogObjectRef) -> list[Any]:
        """Loads the current state of a sequence. The i-th value belongs to the i-th attribute of the sequence."""
        row = self._fetch_one(f"SELECT * FROM {relation.qualified_name()}")
        return list(row) if row is not None else []

    def footer(self, relation: CatalogObjectRef, info: TableInfo, *, verbose: bool = False) -> FooterSections:
        """Loads all footer sections that apply to the relation."""
        footer = FooterSections()
        kind = info.kind

        if verbose and kind in (RelationKind.View, RelationKind.MaterializedView):
            footer.view_definition = self.view_definition(relation)

        match kind:
            case RelationKind.Index | RelationKind.PartitionedIndex:
                footer.index_summary = self.index_summary(relation)
            case RelationKind.Sequence:
                footer.owned_by = self.sequence_owner(relation)
            case (RelationKind.Table | RelationKind.PartitionedTable | RelationKind.MaterializedView
                  | RelationKind.ForeignTable):
                self._base_relation_footer(relation, info, footer, verbose=verbose)
            case RelationKind.View | RelationKind.CompositeType | RelationKind.Other:
                pass
            case _:
                raise util.LogicError(f"Unhandled relation kind: {kind}")

        if info.has_triggers:
            triggers = self.triggers(relation)
            footer.triggers_enabled = triggers["O"]
            footer.triggers_disabled = triggers["D"]
            footer.triggers_always = triggers["A"]
            footer.triggers_replica = triggers["R"]

        if kind in (RelationKind.Table, RelationKind.MaterializedView, RelationKind.ForeignTable):
            if kind == RelationKind.ForeignTable:
                footer.server, footer.fdw_options = self.foreign_table_info(relation)
            if not info.is_partition:
                footer.inherits = self.inherits(relation)
            footer.child_tables, footer.child_tables_summary = self.child_tables(relation, verbose=verbose)
            if info.of_type:
                footer.typed_table_of = info.of_type
            if verbose and kind != RelationKind.MaterializedView:
                footer.has_oids = info.has_oids

        if verbose and info.options:
            footer.options = info.options

        return footer

    def _base_relation_footer(self, relation: CatalogObjectRef, info: TableInfo, footer: FooterSections, *,
                              verbose: bool) -> None:
        if info.has_index:
            footer.indexes = self.indexes(relation)
        if info.checks > 0:
            footer.check_constraints = self.check_constraints(relation)
        if info.has_triggers:
            footer.foreign_keys = self.foreign_keys(relation)
            footer.referenced_by = self.referenced_by(relation)
        if info.has_rules and info.kind != RelationKind.MaterializedView:
            rules = self.rules(relation)
            footer.rules_enabled = rules["O"]
            footer.rules_disabled = rules["D"]
            footer.rules_always = rules["A"]
            footer.rules_replica = rules["R"]
        if info.is_partition:
            footer.partition_of, footer.partition_constraints = self.partition_info(relation)
        if info.kind == RelationKind.PartitionedTable:
            footer.partition_key = self.partition_key(relation)
            footer.partitions, footer.partitions_summary = self.partitions(relation, verbose=verbose)

    def view_definition(self, relation: CatalogObjectRef) -> Optional[str]:
        """Loads the definition of a view. This section is optional: if it cannot be loaded, it is skipped with a warning.

        If the queryer manages transactions (e.g. a plain `psycopg.Connection` outside of autocommit mode), the lookup runs
        in its own savepoint. A failed lookup is rolled back to that savepoint and the remaining sections can still be
        loaded in the surrounding transaction.
        """
        query = QueryBuilder("SELECT pg_catalog.pg_get_viewdef(%s::pg_catalog.oid, true)", relation.oid)
        try:
            with self._savepoint():
                row = self._fetch_one(query)
        except QueryExecutionError as e:
            self._log("Could not load view definition of", relation, "::", e)
            warnings.warn(f"Skipping view definition of {relation}: {e}", SectionWarning)
            return None
        return row[0] if row is not None else None

    def index_summary(self, relation: CatalogObjectRef) -> Optional[str]:
        query = QueryBuilder("""
            SELECT i.indisunique, i.indisprimary, i.indisclustered, i.indisvalid,
                (NOT i.indimmediate) AND EXISTS (
                    SELECT 1 FROM pg_catalog.pg_constraint
                    WHERE conrelid = i.indrelid AND conindid = i.indexrelid AND contype IN ('p','u','x') AND condeferrable
                ) AS condeferrable,
                (NOT i.indimmediate) AND EXISTS (
                    SELECT 1 FROM pg_catalog.pg_constraint
                    WHERE conrelid = i.indrelid AND conindid = i.indexrelid AND contype IN ('p','u','x') AND condeferred
                ) AS condeferred,
                a.amname, c2.relname, pg_catalog.pg_get_expr(i.indpred, i.indrelid, true)
            FROM pg_catalog.pg_index i, pg_catalog.pg_class c, pg_catalog.pg_class c2, pg_catalog.pg_am a
            WHERE i.indexrelid = c.oid AND c.oid = %s::pg_catalog.oid AND c.relam = a.oid AND i.indrelid = c2.oid""",
                             relation.oid)
        row = self._fetch_one(query)
        if row is None:
            return None

        unique, primary, clustered, valid, deferrable, deferred, access_method, table, predicate = row
        parts: list[str] = []
        if primary:
            parts.append("primary key")
        elif unique:
            parts.append("unique")
        parts.append(access_method)
        parts.append(f'for table "{relation.schema}.{table}"')
        if predicate is not None:
            parts.append(f"predicate ({predicate})")
        if clustered:
            parts.append("clustered")
        if not valid:
            parts.append("invalid")
        if deferrable:
            parts.append("deferrable")
        if deferred:
            parts.append("initially deferred")
        return ", ".join(parts)

    def sequence_owner(self, relation: CatalogObjectRef) -> Optional[str]:
        query = QueryBuilder("""
            SELECT pg_catalog.quote_ident(nspname) || '.' || pg_catalog.quote_ident(relname) || '.'
                || pg_catalog.quote_ident(attname)
            FROM pg_catalog.pg_class c
                INNER JOIN pg_catalog.pg_depend d ON c.oid = d.refobjid
                INNER JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
                INNER JOIN pg_catalog.pg_attribute a ON (a.attrelid = c.oid AND a.attnum = d.refobjsubid)
            WHERE d.classid = 'pg_catalog.pg_class'::pg_catalog.regclass
                AND d.refclassid = 'pg_catalog.pg_class'::pg_catalog.regclass
                AND d.objid = %s::pg_catalog.oid AND d.deptype = 'a'""", relation.oid)
        row = self._fetch_one(query)
        return row[0] if row is not None else None

    def indexes(self, relation: CatalogObjectRef) -> list[str]:
        query = QueryBuilder("""
            SELECT c2.relname, i.indisprimary, i.indisunique, i.indisclustered, i.indisvalid,
                pg_catalog.pg_get_indexdef(i.indexrelid, 0, true),
                pg_catalog.pg_get_constraintdef(con.oid, true),
                contype::text, condeferrable, condeferred, c2.reltablespace
            FROM pg_catalog.pg_class c, pg_catalog.pg_class c2, pg_catalog.pg_index i
                LEFT JOIN pg_catalog.pg_constraint con
                ON conrelid = i.indrelid AND conindid = i.indexrelid AND contype IN ('p','u','x')
            WHERE c.oid = %s::pg_catalog.oid AND c.oid = i.indrelid AND i.indexrelid = c2.oid
            ORDER BY i.indisprimary DESC, i.indisunique DESC, c2.relname""", relation.oid)

        entries: list[str] = []
        for row in self._fetch_all(query):
            name, primary, unique, clustered, valid, index_def, constraint_def, constraint_type, deferrable, deferred, _ = row
            entry = f'"{name}"'
            if constraint_type == "x":
                entry += f" {constraint_def}"
            else:
                if primary:
                    entry += " PRIMARY KEY,"
                elif unique:
                    entry += " UNIQUE CONSTRAINT," if constraint_type == "u" else " UNIQUE,"

                using_pos = index_def.find(" USING ")
                if using_pos >= 0:
                    entry += " " + index_def[using_pos + len(" USING "):]

                if deferrable:
                    entry += " DEFERRABLE"
                if deferred:
                    entry += " INITIALLY DEFERRED"
            if clustered:
                entry += " CLUSTER"
            if not valid:
                entry += " INVALID"
            entries.append(entry)
        return entries

    def check_constraints(self, relation: CatalogObjectRef) -> list[str]:
        query = QueryBuilder("""
            SELECT r.conname, pg_catalog.pg_get_constraintdef(r.oid, true)
            FROM pg_catalog.pg_constraint r
            WHERE r.conrelid = %s::pg_catalog.oid AND r.contype = 'c'
            ORDER BY 1""", relation.oid)
        return [f'"{name}" {definition}' for name, definition in self._fetch_all(query)]

    def foreign_keys(self, relation: CatalogObjectRef) -> list[str]:
        query = QueryBuilder("""
            SELECT conname, pg_catalog.pg_get_constraintdef(r.oid, true)
            FROM pg_catalog.pg_constraint r
            WHERE r.conrelid = %s::pg_catalog.oid AND r.contype = 'f'
            ORDER BY 1""", relation.oid)
        return [f'"{name}" {definition}' for name, definition in self._fetch_all(query)]

    def referenced_by(self, relation: CatalogObjectRef) -> list[str]:
        query = QueryBuilder("""
            SELECT conrelid::pg_catalog.regclass::text, conname, pg_catalog.pg_get_constraintdef(c.oid, true)
            FROM pg_catalog.pg_constraint c
            WHERE c.confrelid = %s::pg_catalog.oid AND c.contype = 'f'
            ORDER BY 1""", relation.oid)
        return [f'TABLE "{table}" CONSTRAINT "{name}" {definition}' for table, name, definition in self._fetch_all(query)]

    def rules(self, relation: CatalogObjectRef) -> dict[str, list[str]]:
        """Loads the rewrite rules of a relation, grouped by their firing mode."""
        query = QueryBuilder("""
            SELECT r.rulename, trim(trailing ';' from pg_catalog.pg_get_ruledef(r.oid, true)), ev_enabled::text
            FROM pg_catalog.pg_rewrite r
            WHERE r.ev_class = %s::pg_catalog.oid
            ORDER BY 1""", relation.oid)
        return _group_by_firing_mode((definition, mode) for _, definition, mode in self._fetch_all(query))

    def triggers(self, relation: CatalogObjectRef) -> dict[str, list[str]]:
        """Loads the user-defined triggers of a relation, grouped by their firing mode.

        The trigger definitions only contain the part after the *CREATE TRIGGER* keywords.
        """
        query = QueryBuilder("""
            SELECT t.tgname, pg_catalog.pg_get_triggerdef(t.oid, true), t.tgenabled::text
            FROM pg_catalog.pg_trigger t
            WHERE t.tgrelid = %s::pg_catalog.oid AND NOT t.tgisinternal
            ORDER BY 1""", relation.oid)

        entries: list[tuple[str, str]] = []
        for _, definition, mode in self._fetch_all(query):
            trigger_pos = definition.find(" TRIGGER ")
            if trigger_pos >= 0:
                definition = definition[trigger_pos + len(" TRIGGER "):]
            entries.append((definition, mode))
        return _group_by_firing_mode(entries)

    def partition_info(self, relation: CatalogObjectRef) -> tuple[list[str], list[str]]:
        """Loads the parent relations of a partition along with the partition constraints."""
        query = QueryBuilder("""
            SELECT pg_catalog.quote_ident(np.nspname) || '.' || pg_catalog.quote_ident(cp.relname) || ' '
                    || pg_catalog.pg_get_expr(cc.relpartbound, cc.oid, true),
                pg_catalog.pg_get_partition_constraintdef(cc.oid)
            FROM pg_catalog.pg_inherits i
                INNER JOIN pg_catalog.pg_class cp ON cp.oid = i.inhparent
                INNER JOIN pg_catalog.pg_namespace np ON np.oid = cp.relnamespace
                INNER JOIN pg_catalog.pg_class cc ON cc.oid = i.inhrelid
            WHERE cc.oid = %s::pg_catalog.oid""", relation.oid)
        partition_of: list[str] = []
        constraints: list[str] = []
        for parent, constraint in self._fetch_all(query):
            partition_of.append(parent)
            if constraint is not None:
                constraints.append(constraint)
        return partition_of, constraints

    def partition_key(self, relation: CatalogObjectRef) -> Optional[str]:
        row = self._fetch_one(QueryBuilder("SELECT pg_catalog.pg_get_partkeydef(%s::pg_catalog.oid)", relation.oid))
        return row[0] if row is not None else None

    def partitions(self, relation: CatalogObjectRef, *, verbose: bool = False) -> tuple[list[str], Optional[str]]:
        """Loads the partitions of a partitioned table.

        In verbose mode, all partitions are enumerated. Otherwise, only their number is reported as a summary line.
        """
        query = QueryBuilder("""
            SELECT pg_catalog.quote_ident(n.nspname) || '.' || pg_catalog.quote_ident(c.relname) || ' '
                || pg_catalog.pg_get_expr(c.relpartbound, c.oid, true)
            FROM pg_catalog.pg_inherits i
                INNER JOIN pg_catalog.pg_class c ON c.oid = i.inhrelid
                INNER JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
            WHERE i.inhparent = %s::pg_catalog.oid
            ORDER BY 1""", relation.oid)
        partitions = [partition for partition, in self._fetch_all(query)]
        if verbose:
            return partitions, None
        return [], f"Number of partitions {len(partitions)}: (Use \\d+ to list them.)"

    def foreign_table_info(self, relation: CatalogObjectRef) -> tuple[Optional[str], Optional[str]]:
        """Loads the foreign server and the options of a foreign table. Both are *None* if the table has no server."""
        query = QueryBuilder("""
            SELECT s.srvname,
                pg_catalog.array_to_string(ARRAY(
                    SELECT pg_catalog.quote_ident(option_name) || ' ' || pg_catalog.quote_literal(option_value)
                    FROM pg_catalog.pg_options_to_table(ftoptions)), ', ')
            FROM pg_catalog.pg_foreign_table f, pg_catalog.pg_foreign_server s
            WHERE f.ftrelid = %s::pg_catalog.oid AND s.oid = f.ftserver""", relation.oid)
        row = self._fetch_one(query)
        if row is None:
            return None, None
        server, options = row
        return server, f"({options})" if options else None

    def inherits(self, relation: CatalogObjectRef) -> list[str]:
        query = QueryBuilder("""
            SELECT c.oid::pg_catalog.regclass::text
            FROM pg_catalog.pg_class c, pg_catalog.pg_inherits i
            WHERE c.oid = i.inhparent AND i.inhrelid = %s::pg_catalog.oid
            ORDER BY inhseqno""", relation.oid)
        return [parent for parent, in self._fetch_all(query)]

    def child_tables(self, relation: CatalogObjectRef, *, verbose: bool = False) -> tuple[list[str], Optional[str]]:
        """Loads the tables that inherit from a relation.

        In verbose mode, all child tables are enumerated. Otherwise, only their number is reported as a summary line (if
        there are any children at all).
        """
        query = QueryBuilder("""
            SELECT c.oid::pg_catalog.regclass::text
            FROM pg_catalog.pg_class c, pg_catalog.pg_inherits i
            WHERE c.oid = i.inhrelid AND i.inhparent = %s::pg_catalog.oid
            ORDER BY c.oid::pg_catalog.regclass::pg_catalog.text""", relation.oid)
        children = [child for child, in self._fetch_all(query)]
        if verbose or not children:
            return children, None
        return [], f"Number of child tables: {len(children)} (Use \\d+ to list them.)"

    def _savepoint(self) -> contextlib.AbstractContextManager:
        transaction = getattr(self._queryer, "transaction", None)
        return transaction() if callable(transaction) else contextlib.nullcontext()

    def _fetch_all(self, query: str | QueryBuilder) -> list[ResultRow]:
        self._log("Running catalog query:", util.compact_query(query))
        return fetch_all(self._queryer, query, ctx=self._ctx)

    def _fetch_one(self, query: str | QueryBuilder) -> Optional[ResultRow]:
        self._log("Running catalog query:", util.compact_query(query))
        return fetch_one(self._queryer, query, ctx=self._ctx)


def describe_relations(ctx: QueryContext, queryer: Queryer, pattern: str, verbose: bool, *,
                       debug: bool = False) -> SpecialCommandResult:
    """Describes all relations that match a pattern.

    If the pattern is empty, all tables, views, materialized views, sequences and foreign tables on the search path are
    listed instead.

    Raises
    ------
    ObjectNotFoundError
        If the pattern does not match any relation
    """
    if not pattern:
        return list_objects(ctx, queryer, "", verbose, DescribeListingKinds, debug=debug)

    relations = resolve(queryer, pattern, ctx=ctx, require_match=True, debug=debug)
    engine = DescribeEngine(queryer, ctx=ctx, debug=debug)
    return engine.describe_all(relations, verbose=verbose)


def register(registry: CommandRegistry) -> None:
    def _describe(ctx: QueryContext, queryer: Queryer, pattern: str, verbose: bool) -> SpecialCommandResult:
        return describe_relations(ctx, queryer, pattern, verbose, debug=registry.debug)

    registry.command("\\d", syntax="\\d[+] [pattern]",
                     description="List or describe tables, views and sequences.")(_describe)
    registry.command("DESCRIBE", case_sensitive=False, syntax="DESCRIBE [pattern]",
                     description="Describe tables, views and sequences.")(_describe)
