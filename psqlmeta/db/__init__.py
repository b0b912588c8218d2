"""The `db` package provides the tools that meta-commands use to talk to a database.

Meta-commands never manage connections themselves. Instead, they borrow a handle from the caller which satisfies the
`Queryer` protocol: a plain psycopg connection works just as well as the `PostgresInterface` from the `postgres` module.
All catalog queries are routed through `run_query` (or its `fetch_all`/`fetch_one` variants), which translates driver errors
into `QueryExecutionError`s and honors the cancellation signal of the current command (`QueryContext`).

Queries that need optional filters are assembled by the `QueryBuilder`, which keeps SQL fragments and their parameters
together.
"""

from __future__ import annotations

from . import postgres
from ._db import (
    CommandCancelledError,
    Cursor,
    DatabaseServerError,
    DatabaseUserError,
    QueryBuilder,
    QueryContext,
    Queryer,
    QueryExecutionError,
    ResultRow,
    ResultSet,
    column_names,
    fetch_all,
    fetch_one,
    run_query,
    wrap_driver_error,
)

__all__ = [
    "postgres",
    "Cursor",
    "Queryer",
    "ResultRow",
    "ResultSet",
    "QueryBuilder",
    "QueryContext",
    "QueryExecutionError",
    "DatabaseServerError",
    "DatabaseUserError",
    "CommandCancelledError",
    "run_query",
    "fetch_all",
    "fetch_one",
    "column_names",
    "wrap_driver_error",
]
