"""psqlmeta - psql-style meta-commands for Postgres clients written in Python.

Interactive Postgres clients usually support a number of backslash commands in addition to plain SQL, e.g. ``\\dt`` to list
the tables of the current database or ``\\d users`` to describe a specific table. psqlmeta implements these commands on top
of the system catalogs, such that any Python client with a psycopg connection can offer them as well.

The central entry point is the `execute` function: it receives a single input line and either recognizes it as a
meta-command and runs the matching handler, or tells the caller to treat the line as regular SQL. The available commands are
stored in a `CommandRegistry`. `default_registry` provides a registry with all built-in commands.

On a high-level, psqlmeta is structured as follows:

- this module re-exports the most important types and functions
- the `registry` module contains the command registry and the dispatcher
- the `patterns` module translates psql name patterns (e.g. ``public.user*``) into regular expressions
- the `commands` package contains the actual meta-commands. The most complex one is ``\\d`` in the `commands.describe`
  module, which assembles a detailed report for each matching relation from a series of catalog queries.
- the `db` package contains the database abstraction that is used by the commands, including the cancellation signal that
  is threaded through all queries of a command
- the `util` package contains general utilities, e.g. for logging and serialization

A typical session looks like this:

>>> import psqlmeta
>>> registry = psqlmeta.default_registry()
>>> with psqlmeta.connect(connect_string="dbname=imdb") as conn:
...     result, is_special = psqlmeta.execute(registry, conn, "\\\\dt+ title*")
...     if is_special:
...         print(result.as_df())
"""

from __future__ import annotations

from . import commands, db, patterns, registry, util
from ._core import (
    CatalogObjectRef,
    CommandExecutionError,
    ObjectNotFoundError,
    RelationKind,
    SpecialCommandError,
    UnknownCommandError,
)
from ._results import (
    DescribeReport,
    DescribeTableResult,
    ExtensionDescription,
    ExtensionVerboseResult,
    FooterSections,
    ResultKind,
    RowsResult,
    SpecialCommandResult,
)
from .commands import DescribeEngine, default_registry, register_all, resolve
from .db import CommandCancelledError, QueryContext, QueryExecutionError, Queryer
from .db.postgres import PostgresInterface, connect
from .patterns import NamePattern, PatternCompileError, PatternWarning, compile_pattern
from .registry import CommandDescriptor, CommandRegistry, execute, parse_command

__version__ = "0.1.0"

__all__ = [
    "commands", "db", "patterns", "registry", "util",
    "CatalogObjectRef", "RelationKind",
    "SpecialCommandError", "UnknownCommandError", "CommandExecutionError", "ObjectNotFoundError",
    "SpecialCommandResult", "ResultKind", "RowsResult", "DescribeReport", "DescribeTableResult", "FooterSections",
    "ExtensionDescription", "ExtensionVerboseResult",
    "DescribeEngine", "default_registry", "register_all", "resolve",
    "Queryer", "QueryContext", "QueryExecutionError", "CommandCancelledError",
    "PostgresInterface", "connect",
    "NamePattern", "PatternCompileError", "PatternWarning", "compile_pattern",
    "CommandDescriptor", "CommandRegistry", "execute", "parse_command",
]
