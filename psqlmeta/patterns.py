"""Translates psql-style name patterns into regular expressions for catalog filters.

Patterns follow the conventions of psql: an optional schema is separated from the object name by the first unquoted dot,
``*`` matches any sequence of characters and ``?`` matches a single character. Unquoted letters are folded to lowercase,
whereas double-quoted segments keep their case and are matched literally. Within quotes, a doubled quote stands for a
literal quote character.

The compiled filters are anchored regular expressions that can be used with Postgres' ``~`` operator. An empty filter means
that the corresponding part is unconstrained. In this case the caller has to fall back to a visibility rule (e.g.
``pg_table_is_visible``) instead of filtering by schema.
"""

from __future__ import annotations

import warnings
from typing import NamedTuple

_QuotedMetaCharacters = frozenset("|*+?()[]{}.^\\")
"""Characters that have a special meaning in regular expressions and need to be escaped if they appear within quotes."""


class PatternWarning(UserWarning):
    """Warning to indicate that a pattern is malformed, but could still be compiled."""


class PatternCompileError(ValueError):
    """Error to indicate that a pattern cannot be compiled unambiguously, e.g. because a quote is not terminated."""

    def __init__(self, pattern: str, message: str = "") -> None:
        super().__init__(message or f"Unterminated quoted identifier in pattern {pattern!r}")
        self.pattern = pattern


class NamePattern(NamedTuple):
    """The compiled filters of a pattern. Empty strings denote unconstrained parts."""
    schema: str
    name: str

    def is_empty(self) -> bool:
        return not self.schema and not self.name


def _anchor(buffer: str) -> str:
    return f"^({buffer})$" if buffer else ""


def compile_pattern(pattern: str, *, strict: bool = False) -> NamePattern:
    """Compiles a psql name pattern into regular expressions for the schema and the object name.

    Parameters
    ----------
    pattern : str
        The raw pattern, e.g. ``public.user*`` or ``"MyTable"``
    strict : bool, optional
        How to treat a quote that is never closed. By default, the remainder of the pattern is treated as quoted and a
        `PatternWarning` is emitted. In strict mode, a `PatternCompileError` is raised instead.

    Returns
    -------
    NamePattern
        The schema and name filters. Each filter is either empty or an anchored regular expression of the form
        ``^(...)$``.

    Raises
    ------
    PatternCompileError
        If `strict` is enabled and the pattern contains an unterminated quote

    Examples
    --------
    >>> compile_pattern("public.users")
    NamePattern(schema='^(public)$', name='^(users)$')
    >>> compile_pattern('"Users"')
    NamePattern(schema='', name='^(Users)$')
    >>> compile_pattern("user*")
    NamePattern(schema='', name='^(user.*)$')
    """
    in_quotes = False
    buffer: list[str] = []
    schema_buffer: str | None = None

    i = 0
    while i < len(pattern):
        char = pattern[i]

        if char == '"':
            if in_quotes and i + 1 < len(pattern) and pattern[i + 1] == '"':
                buffer.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif not in_quotes and "A" <= char <= "Z":
            buffer.append(char.lower())
        elif not in_quotes and char == "*":
            buffer.append(".*")
        elif not in_quotes and char == "?":
            buffer.append(".")
        elif not in_quotes and char == "." and schema_buffer is None:
            schema_buffer = "".join(buffer)
            buffer = []
        else:
            if char == "$" or (in_quotes and char in _QuotedMetaCharacters):
                buffer.append("\\")
            buffer.append(char)

        i += 1

    if in_quotes:
        if strict:
            raise PatternCompileError(pattern)
        warnings.warn(f"Unterminated quoted identifier in pattern {pattern!r}. Treating the remainder as quoted.",
                      PatternWarning)

    schema = _anchor(schema_buffer) if schema_buffer is not None else ""
    return NamePattern(schema, _anchor("".join(buffer)))
