"""Contains various general errors that extend Python's base errors.

These errors do not describe failing catalog lookups (those live next to the database interface), but rather problems
within psqlmeta itself or objects that are used in the wrong way.
"""
from __future__ import annotations


class LogicError(RuntimeError):
    """Generic error to indicate that an internal assumption of psqlmeta was violated.

    Typical examples are relation kinds that a section builder does not know how to handle. As a rule of thumb, faulty user
    input (e.g. a malformed pattern) results in a `ValueError` instead. Therefore, encountering a `LogicError` indicates a bug
    in psqlmeta.
    """
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)


class StateError(RuntimeError):
    """Indicates that an object is not in the right state to perform an operation, e.g. reading from a closed result."""
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)


class InvariantViolationError(LogicError):
    """Indicates that some structural contract was violated, e.g. a report row that does not match its header."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
