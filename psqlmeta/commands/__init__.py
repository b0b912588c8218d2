"""Contains the built-in meta-commands.

Each module provides a ``register`` function that adds its commands to a `CommandRegistry`. Use `default_registry` to obtain
a registry with all commands, or `register_all` to add them to an existing registry.
"""

from __future__ import annotations

from ..registry import CommandRegistry, build_registry
from . import catalog, describe, extensions, functions, listing, relations, system
from .catalog import resolve
from .describe import DescribeEngine, SectionWarning, TableInfo, describe_relations
from .relations import list_objects

_Registrations = [
    describe.register,
    relations.register,
    listing.register,
    functions.register,
    extensions.register,
    system.register,
]


def register_all(registry: CommandRegistry) -> CommandRegistry:
    """Adds all built-in commands to a registry."""
    for register in _Registrations:
        register(registry)
    return registry


def default_registry(*, debug: bool = False) -> CommandRegistry:
    """Creates a new registry that contains all built-in commands."""
    return build_registry(_Registrations, debug=debug)


__all__ = [
    "catalog",
    "describe",
    "extensions",
    "functions",
    "listing",
    "relations",
    "system",
    "resolve",
    "DescribeEngine",
    "SectionWarning",
    "TableInfo",
    "describe_relations",
    "list_objects",
    "register_all",
    "default_registry",
]
