"""Contains the logging helpers of psqlmeta.

Logging is print-based and strictly opt-in: every component that issues catalog queries accepts a ``debug`` flag and creates
its logger through `make_logger`. Disabled loggers are no-ops, so call sites never have to check the flag themselves.
"""
from __future__ import annotations

import re
import sys
from collections.abc import Callable
from datetime import datetime
from typing import IO, Any

_WhitespacePattern = re.compile(r"\s+")


def timestamp() -> str:
    """Provides the current time as a nice and normalized string."""
    return datetime.now().strftime("%y-%m-%d %H:%M:%S")


def compact_query(query: Any, *, max_length: int = 0) -> str:
    """Collapses a (multi-line) catalog query into a single line for log output.

    Parameters
    ----------
    query : Any
        The query. Anything that is not a string (e.g. a query builder) is converted via ``str``.
    max_length : int, optional
        Truncates the query to this many characters (plus an ellipsis). A value of *0* disables truncation.
    """
    compacted = _WhitespacePattern.sub(" ", str(query)).strip()
    if max_length and len(compacted) > max_length:
        return compacted[:max_length] + "..."
    return compacted


def make_logger(enabled: bool = True, *, file: IO[str] | None = None,
                prefix: str | Callable[[], str] = "") -> Callable[..., None]:
    """Creates a new ``print``-like logging function.

    If `enabled` is *False*, the returned function simply discards its arguments. Otherwise, all entries are written to
    `file`, which defaults to whatever ``sys.stderr`` is at the time of logging.

    Parameters
    ----------
    enabled : bool, optional
        Whether logging is enabled, by default *True*
    file : IO[str] | None, optional
        Destination of the log entries
    prefix : str | Callable[[], str], optional
        Added before each log entry. Can be either a fixed string, or a callable that produces the prefix for each entry
        separately (e.g. `timestamp`).
    """
    if not enabled:
        return _discard

    def _log(*args, **kwargs) -> None:
        entry_prefix = prefix() if callable(prefix) else prefix
        if entry_prefix:
            args = (entry_prefix, *args)
        kwargs.pop("file", None)
        print(*args, file=file if file is not None else sys.stderr, **kwargs)

    return _log


def _discard(*args, **kwargs) -> None:
    pass
