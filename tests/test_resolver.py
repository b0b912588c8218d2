from __future__ import annotations

from psqlmeta._core import CatalogObjectRef, ObjectNotFoundError, RelationKind
from psqlmeta.commands.catalog import resolve
from psqlmeta.commands.describe import DescribeEngine
from psqlmeta.db import QueryContext
from tests import regression_suite

ResolverQuery = "SELECT c.oid, n.nspname"


class ResolverTests(regression_suite.QueryTestCase):
    def test_references_are_built_from_rows(self) -> None:
        queryer = regression_suite.FakeQueryer().script(ResolverQuery, [(10, "public", "users", "r"),
                                                                         (11, "public", "users_view", "v"),
                                                                         (12, "pg_toast", "pg_toast_10", "t")])
        matches = resolve(queryer, "users*")
        self.assertEqual(matches, [CatalogObjectRef(10, "public", "users", RelationKind.Table),
                                   CatalogObjectRef(11, "public", "users_view", RelationKind.View),
                                   CatalogObjectRef(12, "pg_toast", "pg_toast_10", RelationKind.Other)])

    def test_unqualified_pattern_uses_search_path(self) -> None:
        queryer = regression_suite.FakeQueryer()
        resolve(queryer, "users")
        query, params = queryer.executed[0]
        self.assertIn("pg_catalog.pg_table_is_visible(c.oid)", query)
        self.assertIn("c.relname OPERATOR(pg_catalog.~) %s", query)
        self.assertNotIn("n.nspname OPERATOR(pg_catalog.~)", query)
        self.assertNotIn("information_schema", query)
        self.assertEqual(params, ("^(users)$",))

    def test_qualified_pattern_matches_schema(self) -> None:
        queryer = regression_suite.FakeQueryer()
        resolve(queryer, "public.users")
        query, params = queryer.executed[0]
        self.assertIn("n.nspname OPERATOR(pg_catalog.~) %s", query)
        self.assertNotIn("pg_table_is_visible", query)
        self.assertEqual(params, ("^(public)$", "^(users)$"))

    def test_empty_pattern_excludes_system_schemas(self) -> None:
        queryer = regression_suite.FakeQueryer()
        resolve(queryer, "")
        query, params = queryer.executed[0]
        self.assertIn("n.nspname <> 'pg_catalog'", query)
        self.assertIn("n.nspname <> 'information_schema'", query)
        self.assertIn("n.nspname !~ '^pg_toast'", query)
        self.assertIn("pg_table_is_visible", query)
        self.assertIsNone(params)

    def test_kinds_restrict_matches(self) -> None:
        queryer = regression_suite.FakeQueryer()
        resolve(queryer, "users", [RelationKind.View, RelationKind.Table, RelationKind.View])
        query, params = queryer.executed[0]
        self.assertIn("c.relkind::text = ANY(%s)", query)
        self.assertEqual(params, ("^(users)$", ["r", "v"]))

    def test_results_are_ordered_by_schema_and_name(self) -> None:
        queryer = regression_suite.FakeQueryer()
        resolve(queryer, "*")
        query, _ = queryer.executed[0]
        self.assertTrue(query.endswith("ORDER BY 2, 3"))

    def test_no_match(self) -> None:
        queryer = regression_suite.FakeQueryer().script(ResolverQuery, [])
        self.assertEqual(resolve(queryer, "missing"), [])
        with self.assertRaises(ObjectNotFoundError) as ctx:
            resolve(queryer, "missing", require_match=True)
        self.assertEqual(str(ctx.exception), "Did not find any relation named missing")
        self.assertEqual(ctx.exception.pattern, "missing")

    def test_pattern_text_is_never_inlined(self) -> None:
        queryer = regression_suite.FakeQueryer()
        resolve(queryer, "'; DROP TABLE users; --")
        query, _ = queryer.executed[0]
        self.assertNotIn("DROP TABLE", query)

    def test_context_is_honored(self) -> None:
        queryer = regression_suite.FakeQueryer()
        ctx = QueryContext()
        resolve(queryer, "users", ctx=ctx)
        self.assertEqual(len(queryer.executed), 1)

    def test_resolved_tables_can_be_described(self) -> None:
        queryer = (regression_suite.FakeQueryer()
                   .script(ResolverQuery, [(20, "public", "pattern_test_1", "r"), (21, "public", "pattern_test_2", "r")])
                   .script("c.relchecks", [(0, "r", False, False, False, False, "", "0", "", "p", False)])
                   .script("a.attname,", [("id", "integer", None, False, None, "", "", None, None, None, None, None,
                                           None)]))

        matches = resolve(queryer, "pattern_test*", [RelationKind.Table])
        self.assertEqual([ref.name for ref in matches], ["pattern_test_1", "pattern_test_2"])
        _, params = queryer.executed[0]
        self.assertEqual(params, ("^(pattern_test.*)$", ["r"]))

        engine = DescribeEngine(queryer)
        for ref in matches:
            with self.subTest("Relation", relation=str(ref)):
                report = engine.describe(ref)
                self.assertEqual(report.columns, ["Column", "Type", "Modifiers"])
                self.assertEqual(report.rows, [["id", "integer", ""]])
