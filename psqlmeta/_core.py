"""Contains the fundamental types that are shared by all meta-commands: relation kinds, catalog references and errors."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional


class RelationKind(enum.Enum):
    """The different kinds of relations that are stored in the *pg_class* catalog.

    The value of each member is the single-character code that Postgres uses in the *relkind* column. Codes that psqlmeta
    does not handle explicitly (e.g. TOAST tables) are mapped to `Other`.
    """

    Table = "r"
    PartitionedTable = "p"
    View = "v"
    MaterializedView = "m"
    Index = "i"
    PartitionedIndex = "I"
    Sequence = "S"
    ForeignTable = "f"
    CompositeType = "c"
    Other = "?"

    @staticmethod
    def parse(code: str) -> RelationKind:
        """Determines the relation kind for a *relkind* code. Unknown codes result in `Other`."""
        try:
            return RelationKind(code)
        except ValueError:
            return RelationKind.Other

    def is_index(self) -> bool:
        return self in (RelationKind.Index, RelationKind.PartitionedIndex)

    def is_base_relation(self) -> bool:
        """Checks, whether relations of this kind own actual tuples (or, for foreign tables, pretend to)."""
        return self in (RelationKind.Table, RelationKind.PartitionedTable, RelationKind.MaterializedView,
                        RelationKind.ForeignTable)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class CatalogObjectRef:
    """Identifies a single relation that matched a pattern.

    Attributes
    ----------
    oid : int
        The object identifier of the relation in *pg_class*
    schema : str
        The namespace the relation belongs to
    name : str
        The name of the relation, without schema
    kind : RelationKind
        What kind of relation this is
    """

    oid: int
    schema: str
    name: str
    kind: RelationKind = RelationKind.Other

    def qualified_name(self) -> str:
        """Provides the fully-qualified and quoted name of the relation, e.g. ``"public"."users"``."""
        schema = self.schema.replace('"', '""')
        name = self.name.replace('"', '""')
        return f'"{schema}"."{name}"'

    def __str__(self) -> str:
        return f"{self.schema}.{self.name}"


class SpecialCommandError(RuntimeError):
    """Base class for all errors that are raised when an input line was recognized as a meta-command.

    Parameters
    ----------
    message : str
        A textual description of the error
    verb : str
        The command verb (without verbosity suffix) that was used in the input line
    """

    def __init__(self, message: str, verb: str) -> None:
        super().__init__(message)
        self.verb = verb

    @property
    def is_special_command(self) -> bool:
        return True


class UnknownCommandError(SpecialCommandError):
    """Indicates that the input line looked like a meta-command, but no command is registered under its verb."""

    def __init__(self, verb: str) -> None:
        super().__init__(f"Unknown Command: {verb}", verb)


class CommandExecutionError(SpecialCommandError):
    """Indicates that a registered meta-command failed.

    Parameters
    ----------
    verb : str
        The command verb that was dispatched
    cause : Exception
        The error raised by the command handler. It is also available as the ``__cause__`` of this error.
    """

    def __init__(self, verb: str, cause: Exception) -> None:
        super().__init__(f"Command {verb} failed: {cause}", verb)
        self.cause = cause


class ObjectNotFoundError(RuntimeError):
    """Indicates that a describe-style command could not find any relation for its pattern.

    Parameters
    ----------
    pattern : str
        The pattern as it was supplied by the user
    """

    def __init__(self, pattern: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"Did not find any relation named {pattern}")
        self.pattern = pattern
