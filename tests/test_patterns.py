from __future__ import annotations

import re
import unittest
import warnings

from psqlmeta.patterns import NamePattern, PatternCompileError, PatternWarning, compile_pattern


class PatternCompilationTests(unittest.TestCase):
    def test_empty_pattern(self) -> None:
        self.assertEqual(compile_pattern(""), NamePattern("", ""))
        self.assertTrue(compile_pattern("").is_empty())

    def test_plain_name(self) -> None:
        self.assertEqual(compile_pattern("users"), ("", "^(users)$"))

    def test_schema_qualified_name(self) -> None:
        self.assertEqual(compile_pattern("public.users"), ("^(public)$", "^(users)$"))

    def test_unquoted_name_is_lowercased(self) -> None:
        self.assertEqual(compile_pattern("Users"), ("", "^(users)$"))
        self.assertEqual(compile_pattern("PUBLIC.USERS"), ("^(public)$", "^(users)$"))

    def test_quoted_name_keeps_case(self) -> None:
        self.assertEqual(compile_pattern('"Users"'), ("", "^(Users)$"))
        self.assertEqual(compile_pattern('"MySchema"."MyTable"'), ("^(MySchema)$", "^(MyTable)$"))

    def test_wildcards(self) -> None:
        self.assertEqual(compile_pattern("user*"), ("", "^(user.*)$"))
        self.assertEqual(compile_pattern("user?"), ("", "^(user.)$"))
        self.assertEqual(compile_pattern("*.users"), ("^(.*)$", "^(users)$"))

    def test_wildcards_are_literal_within_quotes(self) -> None:
        self.assertEqual(compile_pattern('"user*"'), ("", "^(user\\*)$"))
        self.assertEqual(compile_pattern('"user?"'), ("", "^(user\\?)$"))

    def test_dollar_is_always_escaped(self) -> None:
        self.assertEqual(compile_pattern('"foo$bar"'), ("", "^(foo\\$bar)$"))
        self.assertEqual(compile_pattern("foo$bar"), ("", "^(foo\\$bar)$"))

    def test_quoted_metacharacters_are_escaped(self) -> None:
        schema, name = compile_pattern('"a.b(c)|d"')
        self.assertEqual(schema, "")
        self.assertEqual(name, "^(a\\.b\\(c\\)\\|d)$")
        self.assertIsNotNone(re.match(name, "a.b(c)|d"))
        self.assertIsNone(re.match(name, "aXb(c)|d"))

    def test_doubled_quote_within_quotes(self) -> None:
        self.assertEqual(compile_pattern('"say""hi"'), ("", '^(say"hi)$'))

    def test_dot_within_quotes_does_not_split(self) -> None:
        self.assertEqual(compile_pattern('"my.table"'), ("", "^(my\\.table)$"))

    def test_only_first_dot_splits(self) -> None:
        schema, name = compile_pattern("db.public.users")
        self.assertEqual(schema, "^(db)$")
        self.assertEqual(name, "^(public.users)$")

    def test_schema_only_pattern(self) -> None:
        self.assertEqual(compile_pattern("public."), ("^(public)$", ""))

    def test_compiled_patterns_are_anchored(self) -> None:
        for pattern in ["users", "public.users", "user*", '"Users"', "a?c"]:
            with self.subTest("Pattern", pattern=pattern):
                schema, name = compile_pattern(pattern)
                for part in (schema, name):
                    if not part:
                        continue
                    self.assertTrue(part.startswith("^("), part)
                    self.assertTrue(part.endswith(")$"), part)

    def test_compiled_patterns_match_expected_names(self) -> None:
        _, name = compile_pattern("user*")
        self.assertIsNotNone(re.match(name, "users"))
        self.assertIsNotNone(re.match(name, "user_accounts"))
        self.assertIsNone(re.match(name, "my_users"))


class UnterminatedQuoteTests(unittest.TestCase):
    def test_unterminated_quote_warns(self) -> None:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            schema, name = compile_pattern('"Users')
        self.assertEqual((schema, name), ("", "^(Users)$"))
        self.assertTrue(any(issubclass(warning.category, PatternWarning) for warning in caught))

    def test_unterminated_quote_raises_in_strict_mode(self) -> None:
        with self.assertRaises(PatternCompileError) as ctx:
            compile_pattern('public."Users', strict=True)
        self.assertEqual(ctx.exception.pattern, 'public."Users')
        self.assertIsInstance(ctx.exception, ValueError)

    def test_terminated_quote_does_not_warn(self) -> None:
        with warnings.catch_warnings():
            warnings.simplefilter("error", PatternWarning)
            compile_pattern('"Users"', strict=False)


if __name__ == "__main__":
    unittest.main()
