from __future__ import annotations

import unittest

from psqlmeta import commands, registry
from psqlmeta._core import CommandExecutionError, SpecialCommandError, UnknownCommandError
from psqlmeta.db import QueryContext
from psqlmeta.registry import CommandDescriptor, CommandRegistry, parse_command
from tests import regression_suite


def _recording_handler(calls: list):
    def handler(ctx, queryer, args, verbose):
        calls.append((ctx, queryer, args, verbose))
        return None
    return handler


class ParseCommandTests(unittest.TestCase):
    def test_plain_sql_is_not_a_command(self) -> None:
        self.assertIsNone(parse_command("SELECT * FROM users"))
        self.assertIsNone(parse_command(" \\dt"))

    def test_verb_and_arguments(self) -> None:
        parsed = parse_command("\\dt   public.users  ")
        self.assertEqual(parsed.verb, "\\dt")
        self.assertEqual(parsed.args, "public.users")
        self.assertFalse(parsed.verbose)

    def test_verbose_suffix(self) -> None:
        parsed = parse_command("\\d+ users")
        self.assertEqual(parsed.verb, "\\d")
        self.assertEqual(parsed.args, "users")
        self.assertTrue(parsed.verbose)

    def test_inner_spacing_is_preserved(self) -> None:
        parsed = parse_command("\\! echo  'a  b'")
        self.assertEqual(parsed.args, "echo  'a  b'")

    def test_command_without_arguments(self) -> None:
        self.assertEqual(parse_command("\\l"), ("\\l", "", False))


class CommandRegistryTests(unittest.TestCase):
    def test_aliases_resolve_to_same_handler(self) -> None:
        reg = CommandRegistry()
        handler = _recording_handler([])
        reg.command("\\dp", aliases=["\\z", "\\privs"])(handler)
        for verb in ["\\dp", "\\z", "\\privs"]:
            with self.subTest("Verb", verb=verb):
                self.assertIs(reg.lookup(verb).handler, handler)
        self.assertEqual(len(reg), 1)
        self.assertEqual(len(reg), len(list(reg)))

    def test_case_insensitive_lookup(self) -> None:
        reg = CommandRegistry()
        handler = _recording_handler([])
        reg.command("DESCRIBE", case_sensitive=False)(handler)
        for verb in ["DESCRIBE", "describe", "Describe"]:
            with self.subTest("Verb", verb=verb):
                self.assertIs(reg.lookup(verb).handler, handler)

    def test_case_sensitive_lookup(self) -> None:
        reg = CommandRegistry()
        reg.command("\\dT")(_recording_handler([]))
        reg.command("\\dt")(_recording_handler([]))
        self.assertIsNot(reg.lookup("\\dT"), reg.lookup("\\dt"))
        self.assertIsNone(reg.lookup("\\DT"))

    def test_last_registration_wins(self) -> None:
        reg = CommandRegistry()
        first, second = _recording_handler([]), _recording_handler([])
        reg.command("\\dx")(first)
        reg.command("\\dx")(second)
        self.assertIs(reg.lookup("\\dx").handler, second)
        self.assertEqual(len(reg.commands()), 1)

    def test_descriptor_keys(self) -> None:
        descriptor = CommandDescriptor("DESCRIBE", _recording_handler([]), ("DESC",), case_sensitive=False)
        self.assertEqual(descriptor.keys(), ["describe", "desc"])

    def test_commands_are_sorted_naturally(self) -> None:
        reg = CommandRegistry()
        for verb in ["\\dt", "\\d", "\\db", "\\dT"]:
            reg.command(verb)(_recording_handler([]))
        reg.command("\\l", aliases=["\\list"])(_recording_handler([]))
        verbs = [descriptor.verb for descriptor in reg.commands()]
        self.assertEqual(len(verbs), 5)
        self.assertEqual(verbs[0], "\\d")
        self.assertEqual(set(verbs), {"\\d", "\\db", "\\dt", "\\dT", "\\l"})


class DispatcherTests(unittest.TestCase):
    def setUp(self) -> None:
        self.calls: list = []
        self.registry = CommandRegistry()
        self.registry.command("\\dt")(_recording_handler(self.calls))
        self.queryer = regression_suite.FakeQueryer()

    def test_plain_sql_passes_through(self) -> None:
        result, is_special = registry.execute(self.registry, self.queryer, "SELECT 1")
        self.assertIsNone(result)
        self.assertFalse(is_special)
        self.assertEqual(self.calls, [])
        self.assertEqual(self.queryer.executed, [])

    def test_dispatch_with_arguments(self) -> None:
        ctx = QueryContext()
        result, is_special = registry.execute(self.registry, self.queryer, "\\dt+  public.* ", ctx=ctx)
        self.assertTrue(is_special)
        self.assertIsNone(result)
        self.assertEqual(self.calls, [(ctx, self.queryer, "public.*", True)])

    def test_default_context(self) -> None:
        self.registry.execute(self.queryer, "\\dt")
        ctx, _, args, verbose = self.calls[0]
        self.assertIsInstance(ctx, QueryContext)
        self.assertEqual(args, "")
        self.assertFalse(verbose)

    def test_unknown_command(self) -> None:
        with self.assertRaises(UnknownCommandError) as ctx:
            registry.execute(self.registry, self.queryer, "\\nope+ foo")
        self.assertEqual(str(ctx.exception), "Unknown Command: \\nope")
        self.assertEqual(ctx.exception.verb, "\\nope")
        self.assertTrue(ctx.exception.is_special_command)

    def test_failing_handler_is_wrapped(self) -> None:
        cause = RuntimeError("boom")

        def failing(ctx, queryer, args, verbose):
            raise cause

        self.registry.command("\\fail")(failing)
        with self.assertRaises(CommandExecutionError) as ctx:
            registry.execute(self.registry, self.queryer, "\\fail")
        self.assertIs(ctx.exception.cause, cause)
        self.assertIs(ctx.exception.__cause__, cause)
        self.assertIsInstance(ctx.exception, SpecialCommandError)


class DefaultRegistryTests(unittest.TestCase):
    ExpectedVerbs = ["\\d", "DESCRIBE", "\\dt", "\\dv", "\\dm", "\\ds", "\\di", "\\l", "\\list", "\\dn", "\\du", "\\dg",
                     "\\dp", "\\z", "\\ddp", "\\db", "\\df", "\\dT", "\\dD", "\\dE", "\\dx", "\\sf", "\\!", "\\?"]

    def test_all_commands_are_registered(self) -> None:
        reg = commands.default_registry()
        for verb in self.ExpectedVerbs:
            with self.subTest("Verb", verb=verb):
                self.assertIn(verb, reg)

    def test_describe_is_case_insensitive(self) -> None:
        reg = commands.default_registry()
        self.assertIs(reg.lookup("describe"), reg.lookup("DESCRIBE"))
        self.assertIsNone(reg.lookup("\\D"))

    def test_register_all_on_existing_registry(self) -> None:
        reg = CommandRegistry()
        commands.register_all(reg)
        self.assertEqual(len(reg.commands()), len(commands.default_registry().commands()))

    def test_aliases_share_descriptor(self) -> None:
        reg = commands.default_registry()
        self.assertIs(reg.lookup("\\l").handler, reg.lookup("\\list").handler)
        self.assertIs(reg.lookup("\\dp").handler, reg.lookup("\\z").handler)
        self.assertIs(reg.lookup("\\du").handler, reg.lookup("\\dg").handler)


if __name__ == "__main__":
    unittest.main()
