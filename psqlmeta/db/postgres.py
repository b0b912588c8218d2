"""Contains the Postgres implementation of the `Queryer` interface.

Meta-commands work with any psycopg connection, but the `PostgresInterface` adds a couple of conveniences on top: it
takes care of sensible connection defaults, translates driver errors into psqlmeta's error hierarchy and allows to cancel
running catalog queries from another thread. The `connect` function obtains such an interface from the usual configuration
sources.
"""

from __future__ import annotations

import os
import re
import warnings
from collections.abc import Sequence
from pathlib import Path
from typing import Any, Optional

import psycopg
import psycopg.rows

from .. import util
from ._db import Cursor, QueryExecutionError, wrap_driver_error

_PGVersionPattern = re.compile(r"^PostgreSQL (?P<pg_ver>[\d]+(\.[\d]+)?).*$")
"""Extracts the major (and minor) version from the output of ``SELECT VERSION()``."""

DefaultConfigFile = ".psycopg_connection"
"""The file in the working directory that is consulted if no explicit connection information is supplied."""


class PostgresInterface:
    """Database handle for PostgreSQL backends.

    The interface owns exactly one connection. The connection runs in autocommit mode, such that a single failing catalog
    query does not poison all subsequent ones (which is important for best-effort sections of a describe report).

    Parameters
    ----------
    connect_string : str
        Connection string for `psycopg` to establish a connection to the Postgres server
    system_name : str, optional
        Description of the specific Postgres server, by default *Postgres*
    application_name : str, optional
        Identifier for the client. This will be the name that is shown in the server logs and process lists.
    client_encoding : str, optional
        The client encoding to use for the connection, by default *UTF8*
    debug : bool, optional
        Whether all executed queries should be logged to stderr. Defaults to *False*.
    """

    def __init__(
        self,
        connect_string: str,
        system_name: str = "Postgres",
        *,
        application_name: str = "psqlmeta",
        client_encoding: str = "UTF8",
        debug: bool = False,
    ) -> None:
        self.connect_string = connect_string
        self.system_name = system_name
        self.debug = debug
        self._application_name = application_name or "psqlmeta"
        self._client_encoding = client_encoding
        self._log = util.make_logger(debug, prefix=lambda: f"{util.timestamp()} [{self.system_name}]")
        self._init_connection()

    def execute(self, query: str, params: Optional[Sequence[Any]] = None) -> Cursor:
        """Runs a query on a fresh cursor and provides that cursor. The caller is responsible for closing it.

        Raises
        ------
        StateError
            If the interface has been closed already
        QueryExecutionError
            If the query failed
        """
        if self._connection.closed:
            raise util.StateError(f"Connection to {self.system_name} is closed")
        self._log("Executing query", util.compact_query(query, max_length=500), "with parameters", params)
        cursor = self._connection.cursor()
        try:
            cursor.execute(query, params)
        except psycopg.Error as e:
            cursor.close()
            raise wrap_driver_error(query, e) from e
        return cursor

    def cancel(self) -> None:
        """Cancels the query that is currently running on the connection, if any.

        This method is safe to call from another thread.
        """
        if self._connection.closed:
            return
        self._connection.cancel_safe()

    def database_name(self) -> str:
        with self._connection.cursor() as cursor:
            cursor.execute("SELECT CURRENT_DATABASE();")
            return cursor.fetchone()[0]

    def server_version(self) -> tuple[int, ...]:
        """Provides the version of the Postgres server as a tuple, e.g. *(16, 2)*."""
        with self._connection.cursor() as cursor:
            cursor.execute("SELECT VERSION();")
            version_string = cursor.fetchone()[0]
        version_match = _PGVersionPattern.match(version_string)
        if not version_match:
            raise RuntimeError(f"Could not extract Postgres version from string '{version_string}'")
        return tuple(int(part) for part in version_match.group("pg_ver").split("."))

    def backend_pid(self) -> int:
        """Provides the backend process ID of the current connection."""
        return self._connection.info.backend_pid

    def reset_connection(self) -> int:
        """Discards the current connection and establishes a new one.

        Returns
        -------
        int
            The backend process ID of the new connection
        """
        try:
            self._connection.cancel_safe()
            self._connection.close()
        except psycopg.Error:
            pass
        return self._init_connection()

    def close(self) -> None:
        self._connection.close()

    def _init_connection(self) -> int:
        """Sets all default connection parameters.

        Returns
        -------
        int
            The backend process ID of the new connection
        """
        self._connection: psycopg.Connection = psycopg.connect(
            self.connect_string,
            application_name=self._application_name,
            client_encoding=self._client_encoding,
            row_factory=psycopg.rows.tuple_row,
        )
        self._connection.autocommit = True
        self._connection.prepare_threshold = None
        return self.backend_pid()

    def __enter__(self) -> PostgresInterface:
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def __repr__(self) -> str:
        return str(self)

    def __str__(self) -> str:
        return f"PostgresInterface({self.system_name})"


def _read_connect_string(config_file: Path) -> str:
    with open(config_file, "r") as f:
        return f.readline().strip()


def connect(
    *,
    name: str = "postgres",
    application_name: str = "psqlmeta",
    connect_string: str = "",
    config_file: str | Path = "",
    encoding: str = "UTF8",
    debug: bool = False,
) -> PostgresInterface:
    """Convenience function to seamlessly connect to a Postgres instance.

    This function obtains a connection to a Postgres database by trying the following methods in order:

    1. if the connect-string is supplied directly via the `connect_string` parameter, this is used
    2. the connect string is read from the `config_file` if this parameter is supplied. Absolute and relative paths are
       supported. If the file does not exist, an error is raised.
    3. the connect string is read from the default connection file *.psycopg_connection* in the current working directory
    4. the connection parameters are read from the standard Postgres environment variables (e.g. *PGDATABASE*, *PGHOST*, ...).
       This method is triggered via the presence of the *PGDATABASE* environment variable. Note that this method is generally
       discouraged due to its implicit and non-obvious nature. A warning is emitted if this method is used.

    If none of these methods worked, an error is raised.

    Parameters
    ----------
    name : str, optional
        A name to identify the current connection, e.g. in debug output. Defaults to *postgres*.
    application_name : str, optional
        Identifier for the client. This will be the name that is shown in the server logs and process lists.
    connect_string : str, optional
        A Psycopg-compatible connect string for the database. Supplying this parameter overwrites any other connection
        information
    config_file : str | Path, optional
        A file containing a Psycopg-compatible connect string for the database in its first line.
    encoding : str, optional
        The client enconding of the connection. Defaults to *UTF8*.
    debug : bool, optional
        Whether all executed queries should be logged. Defaults to *False*.

    Returns
    -------
    PostgresInterface
        The Postgres database handle

    Raises
    ------
    ValueError
        If neither a config file nor a connect string was given, or if the connect file should be used but does not exist
    QueryExecutionError
        If the connection could not be established

    References
    ----------

    .. Psyopg v3: https://www.psycopg.org/psycopg3/
    .. Postgres environment variables: https://www.postgresql.org/docs/current/libpq-envars.html
    """
    if connect_string:
        connect_string = connect_string.strip()
    elif config_file:
        config_file = Path(config_file)
        if not config_file.is_file():
            wdir = os.getcwd()
            raise ValueError(
                f"Failed to obtain a database connection. Tried to read the config file '{config_file}', but the file "
                f"was not found. Your working directory is {wdir}. Please either supply the connect string directly to "
                "the connect() method, or ensure that the config file exists."
            )
        connect_string = _read_connect_string(config_file)
    elif Path(DefaultConfigFile).is_file():
        connect_string = _read_connect_string(Path(DefaultConfigFile))
    elif os.getenv("PGDATABASE"):
        warnings.warn("Using environment variables to construct connection string.")
        env_vars = {
            "PGDATABASE": "dbname",
            "PGHOST": "host",
            "PGPORT": "port",
            "PGUSER": "user",
            "PGPASSWORD": "password",
            "PGPASSFILE": "passfile",
        }
        components: list[str] = []
        for var, key in env_vars.items():
            val = os.getenv(var)
            if not val:
                continue
            components.append(f"{key} = '{val}'")
        connect_string = " ".join(components)
    else:
        raise ValueError(
            "Failed to obtain a database connection. Please either supply the connect string directly to the "
            "connect() method, or put a configuration file in your working directory. See the documentation of "
            "the connect() method for more details."
        )

    try:
        return PostgresInterface(
            connect_string,
            system_name=name,
            application_name=application_name,
            client_encoding=encoding,
            debug=debug,
        )
    except psycopg.Error as e:
        raise wrap_driver_error(f"<connect to {name}>", e) from e


__all__ = ["PostgresInterface", "connect", "DefaultConfigFile", "QueryExecutionError"]
