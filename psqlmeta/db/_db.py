"""This module provides psqlmeta's basic interaction with databases.

More specifically, this includes

- the structural interfaces that all database handles have to satisfy (the `Queryer` and `Cursor` protocols)
- the error hierarchy for failing catalog queries (`QueryExecutionError` and its subclasses)
- a small query builder that keeps SQL fragments and their parameters aligned (the `QueryBuilder`)
- the per-call cancellation signal (the `QueryContext`) along with the `run_query` helper that ties everything together.

All meta-commands borrow a queryer from the caller. They never open, close or reconfigure it.
"""

from __future__ import annotations

import abc
import textwrap
import threading
from collections.abc import Callable, Sequence
from typing import Any, Optional, Protocol, runtime_checkable

import psycopg

from .. import util

ResultRow = tuple
"""Simple type alias to denote a single tuple from a result set."""

ResultSet = Sequence[ResultRow]
"""Simple type alias to denote the result relation of a query."""


class Cursor(Protocol):
    """Interface for database cursors that adhere to the Python Database API specification.

    This is not a complete representation and only focuses on the parts of the specification that are important for
    psqlmeta right now. All psycopg cursors are compatible with this interface by default.

    See PEP 249 for details (https://peps.python.org/pep-0249/)
    """

    description: Optional[Sequence[Any]]

    @abc.abstractmethod
    def close(self) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def fetchone(self) -> Optional[ResultRow]:
        raise NotImplementedError

    @abc.abstractmethod
    def fetchall(self) -> ResultSet:
        raise NotImplementedError


@runtime_checkable
class Queryer(Protocol):
    """Interface for everything that can run catalog queries on behalf of a meta-command.

    A plain `psycopg.Connection` satisfies this protocol, as does the `PostgresInterface`. Queries use psycopg's positional
    ``%s`` placeholders and rows are expected to be plain tuples (psycopg's default row factory).
    """

    @abc.abstractmethod
    def execute(self, query: str, params: Optional[Sequence[Any]] = None) -> Cursor:
        raise NotImplementedError


class QueryExecutionError(RuntimeError):
    """Indicates that a catalog query could not be executed.

    Parameters
    ----------
    message : str, optional
        A textual description of the error. Can be left empty by default.
    context : Optional[object], optional
        The original driver error. Mainly intended for debugging purposes.
    query : str, optional
        The query that caused the error.
    """

    def __init__(self, message: str = "", context: Optional[object] = None, *, query: str = "") -> None:
        super().__init__(message)
        self.ctx = context
        self.query = query


class DatabaseServerError(QueryExecutionError):
    """Indicates an error caused by the database server occured while executing a catalog query.

    The error was **not** due to a mistake in the user input (such as an SQL syntax error or access privilege
    violation), but a server issue instead (such as a terminated connection).
    """


class DatabaseUserError(QueryExecutionError):
    """Indicates that a catalog query failed due to an error on the user's end.

    The error could be due to an invalid regular expression in the pattern, an access privilege violation, etc.
    """


class CommandCancelledError(RuntimeError):
    """Indicates that a meta-command was cancelled (or timed out) while it was still issuing queries.

    No partial results are available once this error is raised.
    """

    def __init__(self, message: str = "Command was cancelled") -> None:
        super().__init__(message)


def wrap_driver_error(query: str, error: psycopg.Error) -> QueryExecutionError:
    """Translates a psycopg error into the matching `QueryExecutionError`.

    Internal and operational errors are attributed to the server, everything else to the user.
    """
    msg = "\n".join([f"At {util.timestamp()}", "For query:", str(query), "Message:", str(error)])
    if isinstance(error, (psycopg.InternalError, psycopg.OperationalError)):
        return DatabaseServerError(msg, error, query=query)
    return DatabaseUserError(msg, error, query=query)


class QueryBuilder:
    """Assembles a query from an ordered list of SQL fragments and their parameters.

    Each fragment brings its own parameters along, using psycopg's positional ``%s`` placeholders. Since parameters are
    bound by position and appended together with their fragment, branches can be added, removed or re-ordered without
    keeping track of parameter indices.

    Parameters
    ----------
    base : str, optional
        The first fragment of the query. It is dedented automatically.
    *params : Any
        Parameters for the placeholders in `base`

    Examples
    --------
    >>> builder = QueryBuilder("SELECT c.oid FROM pg_catalog.pg_class c WHERE true")
    >>> builder.append("AND c.relname ~ %s", "^(users)$")
    >>> builder.build()
    ('SELECT c.oid FROM pg_catalog.pg_class c WHERE true\\nAND c.relname ~ %s', ('^(users)$',))
    """

    def __init__(self, base: str = "", *params: Any) -> None:
        self._fragments: list[str] = []
        self._params: list[Any] = []
        if base:
            self.append(base, *params)

    def append(self, fragment: str, *params: Any) -> QueryBuilder:
        """Adds another fragment to the end of the query.

        Parameters
        ----------
        fragment : str
            The SQL text. It is dedented and stripped of surrounding blank lines.
        *params : Any
            Parameters for the placeholders in this fragment. Their number has to match the placeholders.

        Returns
        -------
        QueryBuilder
            The builder itself to allow chaining.

        Raises
        ------
        ValueError
            If the number of parameters does not match the number of placeholders in the fragment.
        """
        fragment = textwrap.dedent(fragment).strip("\n")
        n_placeholders = fragment.count("%s")
        if n_placeholders != len(params):
            raise ValueError(f"Fragment expects {n_placeholders} parameters, but {len(params)} were given: '{fragment}'")
        self._fragments.append(fragment)
        self._params.extend(params)
        return self

    def append_if(self, condition: bool, fragment: str, *params: Any) -> QueryBuilder:
        """Adds a fragment only if the `condition` holds. Otherwise, the builder is left unchanged."""
        if condition:
            self.append(fragment, *params)
        return self

    def build(self) -> tuple[str, tuple[Any, ...]]:
        """Provides the final query text along with all parameters in placeholder order."""
        return "\n".join(self._fragments), tuple(self._params)

    def __str__(self) -> str:
        return self.build()[0]


class QueryContext:
    """The cancellation and timeout signal that is threaded through all queries of a single meta-command.

    The context can be cancelled from any thread by calling `cancel`. This marks the context as cancelled and fires all
    registered cancel hooks (typically the ``cancel`` method of the connection that is currently running a query), such
    that in-flight queries are stopped as well. Every query that is issued through `run_query` checks the context first.

    If a `timeout` is given, the context has to be entered as a context manager. This arms a timer which cancels the
    context once the timeout expires.

    Parameters
    ----------
    timeout : Optional[float], optional
        The maximum duration of the command in seconds. Defaults to no timeout.
    """

    def __init__(self, timeout: Optional[float] = None) -> None:
        self.timeout = timeout
        self._cancelled = threading.Event()
        self._hooks: list[Callable[[], Any]] = []
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self.timed_out = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        """Cancels the context and stops all in-flight queries."""
        with self._lock:
            self._cancelled.set()
            hooks = list(self._hooks)
        for hook in hooks:
            try:
                hook()
            except psycopg.Error:
                # the query might have finished in the meantime, the cancellation flag is authoritative
                pass

    def register_cancel_hook(self, hook: Callable[[], Any]) -> None:
        with self._lock:
            if hook not in self._hooks:
                self._hooks.append(hook)

    def unregister_cancel_hook(self, hook: Callable[[], Any]) -> None:
        with self._lock:
            if hook in self._hooks:
                self._hooks.remove(hook)

    def checkpoint(self) -> None:
        """Raises a `CommandCancelledError` if the context has been cancelled already."""
        if self.cancelled:
            reason = f"Command timed out after {self.timeout} seconds" if self.timed_out else "Command was cancelled"
            raise CommandCancelledError(reason)

    def _expire(self) -> None:
        self.timed_out = True
        self.cancel()

    def __enter__(self) -> QueryContext:
        if self.timeout is not None and self.timeout > 0:
            self._timer = threading.Timer(self.timeout, self._expire)
            self._timer.daemon = True
            self._timer.start()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def __repr__(self) -> str:
        return f"QueryContext(timeout={self.timeout}, cancelled={self.cancelled})"


def _cancel_hook(queryer: Queryer) -> Optional[Callable[[], Any]]:
    return getattr(queryer, "cancel_safe", None) or getattr(queryer, "cancel", None)


def run_query(
    queryer: Queryer, query: str | QueryBuilder, params: Optional[Sequence[Any]] = None, *, ctx: Optional[QueryContext] = None
) -> Cursor:
    """Executes a single catalog query on behalf of a meta-command.

    Parameters
    ----------
    queryer : Queryer
        The database handle that was borrowed from the caller
    query : str | QueryBuilder
        The query to execute. If this is a `QueryBuilder`, its parameters are used and `params` must be omitted.
    params : Optional[Sequence[Any]], optional
        The parameters for the query placeholders
    ctx : Optional[QueryContext], optional
        The cancellation signal of the current command

    Returns
    -------
    Cursor
        The cursor holding the result set. It is owned by the caller.

    Raises
    ------
    CommandCancelledError
        If the context was cancelled before or while the query was running
    QueryExecutionError
        If the query failed for any other reason
    """
    if isinstance(query, QueryBuilder):
        if params is not None:
            raise ValueError("Parameters are provided by the query builder")
        query, params = query.build()
    if ctx is not None:
        ctx.checkpoint()

    hook = _cancel_hook(queryer) if ctx is not None else None
    if hook is not None:
        ctx.register_cancel_hook(hook)
    try:
        return queryer.execute(query, params) if params else queryer.execute(query)
    except psycopg.Error as e:
        if ctx is not None and ctx.cancelled:
            raise CommandCancelledError() from e
        raise wrap_driver_error(query, e) from e
    except QueryExecutionError as e:
        # already translated by the queryer, e.g. the PostgresInterface
        if ctx is not None and ctx.cancelled:
            raise CommandCancelledError() from e
        raise
    finally:
        if hook is not None:
            ctx.unregister_cancel_hook(hook)


def fetch_all(
    queryer: Queryer, query: str | QueryBuilder, params: Optional[Sequence[Any]] = None, *, ctx: Optional[QueryContext] = None
) -> list[ResultRow]:
    """Executes a query and materializes its complete result set. See `run_query` for details."""
    cursor = run_query(queryer, query, params, ctx=ctx)
    try:
        return list(cursor.fetchall())
    except psycopg.Error as e:
        raise wrap_driver_error(str(query), e) from e
    finally:
        cursor.close()


def fetch_one(
    queryer: Queryer, query: str | QueryBuilder, params: Optional[Sequence[Any]] = None, *, ctx: Optional[QueryContext] = None
) -> Optional[ResultRow]:
    """Executes a query and provides its first row, or *None* if the result set is empty. See `run_query` for details."""
    cursor = run_query(queryer, query, params, ctx=ctx)
    try:
        return cursor.fetchone()
    except psycopg.Error as e:
        raise wrap_driver_error(str(query), e) from e
    finally:
        cursor.close()


def column_names(cursor: Cursor) -> list[str]:
    """Extracts the column names from the description of a cursor. Cursors without a result set have no columns."""
    if not cursor.description:
        return []
    return [col.name if hasattr(col, "name") else col[0] for col in cursor.description]
