"""Provides utilities to work with arbitrary collections like lists, sets and tuples."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TypeVar

T = TypeVar("T")


def enlist(obj: T | Iterable[T]) -> list[T]:
    """Transforms any object into a list.

    Strings are treated as scalar values, i.e. ``enlist("r")`` becomes ``["r"]`` rather than a list of characters. Other
    iterables are materialized into a list, preserving their order. Everything else is wrapped into a single-element list.
    """
    if isinstance(obj, (str, bytes)):
        return [obj]
    if isinstance(obj, Iterable):
        return list(obj)
    return [obj]
