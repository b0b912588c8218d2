"""Contains the command registry and the dispatcher that maps input lines to meta-command handlers.

The registry is an explicit object: it is constructed once during startup (typically through `default_registry`, which
invokes the registration routine of every command module) and treated as read-only afterwards. Since no writes happen
after startup, concurrent dispatching does not require any locking.

Dispatching an input line has three distinct outcomes:

1. the line is not a meta-command at all. `execute` returns *(None, False)* and the caller should treat the line as SQL.
2. the line is a meta-command, but its verb is unknown. An `UnknownCommandError` is raised.
3. the line is a known meta-command, but its handler failed. A `CommandExecutionError` is raised.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import NamedTuple, Optional

import natsort

from . import util
from ._core import CommandExecutionError, UnknownCommandError
from ._results import SpecialCommandResult
from .db import QueryContext, Queryer

CommandPrefix = "\\"
"""The sentinel that every meta-command line starts with."""

VerboseSuffix = "+"
"""Appending this character to a verb enables verbose mode, e.g. ``\\d+``."""

CommandHandler = Callable[[QueryContext, Queryer, str, bool], Optional[SpecialCommandResult]]
"""Signature of all command handlers: *(context, queryer, arguments, verbose) -> result*."""


@dataclass(frozen=True)
class CommandDescriptor:
    """Describes a single meta-command.

    Attributes
    ----------
    verb : str
        The primary name of the command, including the prefix (e.g. ``\\dt``)
    handler : CommandHandler
        The function that executes the command
    aliases : tuple[str, ...]
        Alternative names under which the command can be invoked
    case_sensitive : bool
        Whether the verb and its aliases have to match exactly. If disabled, lookups ignore case.
    syntax : str
        Short usage information, e.g. ``\\dt[+] [pattern]``
    description : str
        One-line description of the command
    """

    verb: str
    handler: CommandHandler = field(compare=False)
    aliases: tuple[str, ...] = ()
    case_sensitive: bool = True
    syntax: str = ""
    description: str = ""

    def normalize(self, name: str) -> str:
        return name if self.case_sensitive else name.lower()

    def keys(self) -> list[str]:
        """Provides all registry keys of this command, i.e. the normalized verb and aliases."""
        return [self.normalize(self.verb)] + [self.normalize(alias) for alias in self.aliases]


class ParsedCommand(NamedTuple):
    """A meta-command line split into its components."""
    verb: str
    args: str
    verbose: bool


def parse_command(line: str) -> Optional[ParsedCommand]:
    """Splits an input line into verb, arguments and verbosity.

    Parameters
    ----------
    line : str
        The raw input line

    Returns
    -------
    Optional[ParsedCommand]
        The parsed command, or *None* if the line does not start with the command prefix. The verb does not contain the
        verbosity suffix anymore. The arguments are the remainder of the line after the verb, with surrounding whitespace
        removed but inner spacing preserved.
    """
    if not line.startswith(CommandPrefix):
        return None
    tokens = line.split(maxsplit=1)
    raw_verb = tokens[0]
    args = tokens[1].strip() if len(tokens) > 1 else ""

    verbose = raw_verb.endswith(VerboseSuffix)
    verb = raw_verb.removesuffix(VerboseSuffix) if verbose else raw_verb
    return ParsedCommand(verb, args, verbose)


class CommandRegistry:
    """Maps command verbs and aliases to their descriptors.

    Registration does not check for duplicates. If a key is registered multiple times, the last registration wins.

    Parameters
    ----------
    debug : bool, optional
        Whether dispatched commands should be logged to stderr. Defaults to *False*.
    """

    def __init__(self, *, debug: bool = False) -> None:
        self._commands: dict[str, CommandDescriptor] = {}
        self.debug = debug
        self._log = util.make_logger(debug, prefix=util.timestamp)

    def register(self, descriptor: CommandDescriptor) -> CommandDescriptor:
        """Stores a command under its verb and all its aliases.

        Returns
        -------
        CommandDescriptor
            The registered descriptor, to allow usage as part of expressions
        """
        for key in descriptor.keys():
            self._commands[key] = descriptor
        return descriptor

    def command(self, verb: str, *, aliases: Sequence[str] = (), case_sensitive: bool = True, syntax: str = "",
                description: str = "") -> Callable[[CommandHandler], CommandHandler]:
        """Decorator to register a function as a command handler. The parameters mirror the `CommandDescriptor`."""
        def _register(handler: CommandHandler) -> CommandHandler:
            self.register(CommandDescriptor(verb, handler, tuple(aliases), case_sensitive, syntax, description))
            return handler

        return _register

    def lookup(self, verb: str) -> Optional[CommandDescriptor]:
        """Provides the command that is registered under a verb.

        The verb is first looked up exactly. If this fails, the lowercase verb is tried, which only matches commands that
        have been registered case-insensitively.
        """
        descriptor = self._commands.get(verb)
        if descriptor is not None:
            return descriptor
        descriptor = self._commands.get(verb.lower())
        if descriptor is not None and not descriptor.case_sensitive:
            return descriptor
        return None

    def commands(self) -> list[CommandDescriptor]:
        """Provides all distinct commands, sorted naturally by their verb."""
        unique: dict[int, CommandDescriptor] = {}
        for descriptor in self._commands.values():
            unique.setdefault(id(descriptor), descriptor)
        return natsort.natsorted(unique.values(), key=lambda descriptor: descriptor.verb)

    def execute(self, queryer: Queryer, line: str, *,
                ctx: Optional[QueryContext] = None) -> tuple[Optional[SpecialCommandResult], bool]:
        """Parses and executes a meta-command. See the module-level `execute` function for details."""
        parsed = parse_command(line)
        if parsed is None:
            return None, False

        descriptor = self.lookup(parsed.verb)
        if descriptor is None:
            self._log("Unknown command", parsed.verb)
            raise UnknownCommandError(parsed.verb)

        self._log("Dispatching", descriptor.verb, "with arguments", repr(parsed.args), "verbose" if parsed.verbose else "")
        ctx = ctx if ctx is not None else QueryContext()
        try:
            result = descriptor.handler(ctx, queryer, parsed.args, parsed.verbose)
        except Exception as e:
            self._log("Command", descriptor.verb, "failed:", e)
            raise CommandExecutionError(parsed.verb, e) from e
        return result, True

    def __contains__(self, verb: str) -> bool:
        return self.lookup(verb) is not None

    def __len__(self) -> int:
        return len(self.commands())

    def __iter__(self):
        return iter(self.commands())

    def __repr__(self) -> str:
        return str(self)

    def __str__(self) -> str:
        return f"CommandRegistry({', '.join(descriptor.verb for descriptor in self.commands())})"


def execute(registry: CommandRegistry, queryer: Queryer, line: str, *,
            ctx: Optional[QueryContext] = None) -> tuple[Optional[SpecialCommandResult], bool]:
    """Parses and executes a meta-command.

    Syntax: ``\\verb[+] [args]``

    Parameters
    ----------
    registry : CommandRegistry
        The commands that are available
    queryer : Queryer
        The database handle that is borrowed to the command handler
    line : str
        The raw input line
    ctx : Optional[QueryContext], optional
        The cancellation signal for the command. A fresh context without timeout is used by default.

    Returns
    -------
    tuple[Optional[SpecialCommandResult], bool]
        The result of the command handler (which can be *None* for commands that do not produce results) and whether the
        line was recognized as a meta-command. For normal SQL input, this is *(None, False)*.

    Raises
    ------
    UnknownCommandError
        If the line is a meta-command, but no command is registered under its verb
    CommandExecutionError
        If the command handler failed. The original error is available as `CommandExecutionError.cause`.
    """
    return registry.execute(queryer, line, ctx=ctx)


def build_registry(registrations: Iterable[Callable[[CommandRegistry], None]], *, debug: bool = False) -> CommandRegistry:
    """Creates a new registry and applies all registration routines to it, in order."""
    registry = CommandRegistry(debug=debug)
    for register in registrations:
        register(registry)
    return registry
