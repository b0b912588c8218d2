"""Commands that do not inspect the catalog: the shell escape (``\\!``) and the help listing (``\\?``)."""

from __future__ import annotations

import shlex
import subprocess

from .. import util
from .._results import RowsResult
from ..db import QueryBuilder, QueryContext, Queryer
from ..registry import CommandRegistry
from .catalog import rows_result


def run_shell_command(ctx: QueryContext, command: str, *, debug: bool = False) -> None:
    """Runs a shell command with the output streams of the current process.

    The command line is split according to the POSIX shell rules, but no actual shell is involved. The command inherits the
    timeout of the context.

    Raises
    ------
    ValueError
        If the command line is empty or cannot be split
    subprocess.CalledProcessError
        If the command exited with a non-zero status
    subprocess.TimeoutExpired
        If the command did not finish before the timeout of the context
    """
    log = util.make_logger(debug, prefix=util.timestamp)
    args = shlex.split(command)
    if not args:
        raise ValueError("No shell command given")
    ctx.checkpoint()
    log("Running shell command", args)
    subprocess.run(args, check=True, timeout=ctx.timeout)


def help_listing(ctx: QueryContext, queryer: Queryer, registry: CommandRegistry, *, debug: bool = False) -> RowsResult:
    """Provides the syntax and description of all registered commands as a result set, sorted naturally by their verb."""
    commands = registry.commands()
    query = QueryBuilder("""
        SELECT *
        FROM ROWS FROM (pg_catalog.unnest(%s::text[]), pg_catalog.unnest(%s::text[])) AS help(command, description)""",
                         [cmd.syntax or cmd.verb for cmd in commands], [cmd.description for cmd in commands])
    return rows_result(ctx, queryer, query, debug=debug)


def register(registry: CommandRegistry) -> None:
    debug = registry.debug

    @registry.command("\\!", syntax="\\! command", description="Execute a shell command.")
    def _shell(ctx: QueryContext, queryer: Queryer, command: str, verbose: bool) -> None:
        run_shell_command(ctx, command, debug=debug)
        return None

    @registry.command("\\?", syntax="\\?", description="Show commands.")
    def _help(ctx: QueryContext, queryer: Queryer, args: str, verbose: bool) -> RowsResult:
        return help_listing(ctx, queryer, registry, debug=debug)
