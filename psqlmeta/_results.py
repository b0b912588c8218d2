"""Contains the result types that meta-commands hand back to their callers.

There are three kinds of results, distinguished by `ResultKind`:

- `RowsResult` wraps a live cursor of a single listing query (e.g. ``\\dt``). The caller consumes and closes it.
- `DescribeTableResult` contains one `DescribeReport` per relation that matched a ``\\d`` pattern.
- `ExtensionVerboseResult` contains the objects that belong to each extension matched by ``\\dx+``.
"""

from __future__ import annotations

import abc
import enum
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional

import pandas as pd

from . import util
from ._core import CatalogObjectRef
from .db import Cursor, ResultRow, column_names
from .util import jsondict


class ResultKind(enum.Enum):
    """Tags the different result types."""
    Rows = "rows"
    DescribeTable = "describe_table"
    ExtensionVerbose = "extension_verbose"


class SpecialCommandResult(abc.ABC):
    """Base class of all meta-command results."""

    @property
    @abc.abstractmethod
    def kind(self) -> ResultKind:
        raise NotImplementedError


class RowsResult(SpecialCommandResult):
    """The result of a single listing query.

    The result keeps the cursor open until all rows have been consumed or `close` is called explicitly. Results can also be
    used as context managers, which closes the cursor on exit.

    Parameters
    ----------
    cursor : Cursor
        The cursor that holds the result set of the query
    """

    def __init__(self, cursor: Cursor) -> None:
        self._cursor = cursor
        self._columns = column_names(cursor)
        self._closed = False

    @property
    def kind(self) -> ResultKind:
        return ResultKind.Rows

    @property
    def columns(self) -> list[str]:
        """The column names of the result set, in order."""
        return list(self._columns)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def cursor(self) -> Cursor:
        return self._cursor

    def fetchall(self) -> list[ResultRow]:
        """Provides all remaining rows of the result set.

        Raises
        ------
        StateError
            If the result has been closed already
        """
        self._assert_open()
        return list(self._cursor.fetchall()) if self._columns else []

    def fetchone(self) -> Optional[ResultRow]:
        self._assert_open()
        return self._cursor.fetchone() if self._columns else None

    def as_df(self) -> pd.DataFrame:
        """Consumes all remaining rows and provides them as a data frame with the result columns."""
        return util.as_df(self.fetchall(), column_names=self._columns)

    def close(self) -> None:
        if not self._closed:
            self._cursor.close()
            self._closed = True

    def _assert_open(self) -> None:
        if self._closed:
            raise util.StateError("Result has been closed already")

    def __iter__(self) -> Iterator[ResultRow]:
        self._assert_open()
        if not self._columns:
            return
        row = self._cursor.fetchone()
        while row is not None:
            yield row
            row = self._cursor.fetchone()

    def __enter__(self) -> RowsResult:
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"RowsResult(columns={self._columns}, closed={self._closed})"


@dataclass
class FooterSections:
    """The descriptive blocks that follow the column listing of a describe report.

    Each block is only filled if it applies to the kind of the described relation and has content. List-valued blocks that do
    not apply are empty, scalar blocks are *None*. Rules and triggers are grouped according to their firing mode.

    Use `sections` to iterate over the present blocks in display order.
    """

    index_summary: Optional[str] = None
    owned_by: Optional[str] = None
    view_definition: Optional[str] = None
    partition_of: list[str] = field(default_factory=list)
    partition_constraints: list[str] = field(default_factory=list)
    partition_key: Optional[str] = None
    indexes: list[str] = field(default_factory=list)
    check_constraints: list[str] = field(default_factory=list)
    foreign_keys: list[str] = field(default_factory=list)
    referenced_by: list[str] = field(default_factory=list)
    rules_enabled: list[str] = field(default_factory=list)
    rules_disabled: list[str] = field(default_factory=list)
    rules_always: list[str] = field(default_factory=list)
    rules_replica: list[str] = field(default_factory=list)
    triggers_enabled: list[str] = field(default_factory=list)
    triggers_disabled: list[str] = field(default_factory=list)
    triggers_always: list[str] = field(default_factory=list)
    triggers_replica: list[str] = field(default_factory=list)
    server: Optional[str] = None
    fdw_options: Optional[str] = None
    inherits: list[str] = field(default_factory=list)
    partitions: list[str] = field(default_factory=list)
    partitions_summary: Optional[str] = None
    child_tables: list[str] = field(default_factory=list)
    child_tables_summary: Optional[str] = None
    typed_table_of: Optional[str] = None
    has_oids: Optional[bool] = None
    options: Optional[str] = None

    def sections(self) -> list[tuple[Optional[str], list[str]]]:
        """Provides all non-empty blocks as *(title, lines)* pairs in display order.

        Titles follow the psql conventions (e.g. *Indexes:*). Summary lines do not have a title, in which case it is *None*.
        """
        has_oids = None if self.has_oids is None else ("yes" if self.has_oids else "no")
        candidates: list[tuple[Optional[str], Any]] = [
            (None, self.index_summary),
            ("Owned by:", self.owned_by),
            ("View definition:", self.view_definition),
            ("Partition of:", self.partition_of),
            ("Partition constraint:", self.partition_constraints),
            ("Partition key:", self.partition_key),
            ("Indexes:", self.indexes),
            ("Check constraints:", self.check_constraints),
            ("Foreign-key constraints:", self.foreign_keys),
            ("Referenced by:", self.referenced_by),
            ("Rules:", self.rules_enabled),
            ("Disabled rules:", self.rules_disabled),
            ("Rules firing always:", self.rules_always),
            ("Rules firing on replica only:", self.rules_replica),
            ("Triggers:", self.triggers_enabled),
            ("Disabled triggers:", self.triggers_disabled),
            ("Triggers firing always:", self.triggers_always),
            ("Triggers firing on replica only:", self.triggers_replica),
            ("Server:", self.server),
            ("FDW options:", self.fdw_options),
            ("Inherits:", self.inherits),
            ("Partitions:", self.partitions),
            (None, self.partitions_summary),
            ("Child tables:", self.child_tables),
            (None, self.child_tables_summary),
            ("Typed table of type:", self.typed_table_of),
            ("Has OIDs:", has_oids),
            ("Options:", self.options),
        ]

        present: list[tuple[Optional[str], list[str]]] = []
        for title, content in candidates:
            if not content:
                continue
            present.append((title, list(content) if isinstance(content, list) else [content]))
        return present

    def __json__(self) -> jsondict:
        return {title or "": lines for title, lines in self.sections()}


@dataclass
class DescribeReport:
    """The complete description of a single relation, as produced by ``\\d``.

    Attributes
    ----------
    columns : list[str]
        The headers of the column listing, e.g. *Column*, *Type*, *Modifiers*
    rows : list[list[str]]
        One row per attribute of the relation. Every row has exactly one value per header.
    footer : FooterSections
        The additional blocks (indexes, constraints, ...) of the relation
    relation : Optional[CatalogObjectRef]
        The relation that is described by this report

    Raises
    ------
    InvariantViolationError
        If any row does not match the column headers
    """

    columns: list[str]
    rows: list[list[str]] = field(default_factory=list)
    footer: FooterSections = field(default_factory=FooterSections)
    relation: Optional[CatalogObjectRef] = None

    def __post_init__(self) -> None:
        for row in self.rows:
            if len(row) != len(self.columns):
                raise util.InvariantViolationError(f"Row {row} does not match the report columns {self.columns}")

    def as_df(self) -> pd.DataFrame:
        return util.as_df(self.rows, column_names=self.columns)

    def __json__(self) -> jsondict:
        return {
            "relation": str(self.relation) if self.relation else None,
            "columns": self.columns,
            "rows": self.rows,
            "footer": self.footer,
        }


class DescribeTableResult(SpecialCommandResult):
    """Contains the describe reports of all relations that matched a pattern, ordered by schema and name."""

    def __init__(self, reports: Sequence[DescribeReport]) -> None:
        self.reports = list(reports)

    @property
    def kind(self) -> ResultKind:
        return ResultKind.DescribeTable

    def __iter__(self) -> Iterator[DescribeReport]:
        return iter(self.reports)

    def __len__(self) -> int:
        return len(self.reports)

    def __json__(self) -> list:
        return self.reports

    def __repr__(self) -> str:
        return f"DescribeTableResult({[str(report.relation) for report in self.reports]})"


@dataclass(frozen=True)
class ExtensionDescription:
    """The objects that are part of a single extension, as described by ``pg_describe_object``."""
    name: str
    objects: tuple[str, ...] = ()

    def __json__(self) -> jsondict:
        return {"name": self.name, "objects": list(self.objects)}


class ExtensionVerboseResult(SpecialCommandResult):
    """Contains the descriptions of all extensions that matched the pattern of ``\\dx+``."""

    def __init__(self, extensions: Sequence[ExtensionDescription]) -> None:
        self.extensions = list(extensions)

    @property
    def kind(self) -> ResultKind:
        return ResultKind.ExtensionVerbose

    def __iter__(self) -> Iterator[ExtensionDescription]:
        return iter(self.extensions)

    def __len__(self) -> int:
        return len(self.extensions)

    def __json__(self) -> list:
        return self.extensions
