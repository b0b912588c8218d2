from __future__ import annotations

import unittest

import psycopg

from psqlmeta.db import (
    CommandCancelledError,
    DatabaseServerError,
    DatabaseUserError,
    QueryBuilder,
    QueryContext,
    QueryExecutionError,
    column_names,
    fetch_all,
    fetch_one,
    run_query,
)
from tests import regression_suite


class QueryBuilderTests(unittest.TestCase):
    def test_fragments_and_parameters_stay_aligned(self) -> None:
        query = QueryBuilder("""
            SELECT c.oid
            FROM pg_catalog.pg_class c
            WHERE true""")
        query.append("AND c.relname OPERATOR(pg_catalog.~) %s", "^(users)$")
        query.append_if(False, "AND n.nspname OPERATOR(pg_catalog.~) %s", "^(public)$")
        query.append_if(True, "AND c.relkind::text = ANY(%s)", ["r", "v"])
        text, params = query.build()
        self.assertEqual(text, "SELECT c.oid\nFROM pg_catalog.pg_class c\nWHERE true\n"
                               "AND c.relname OPERATOR(pg_catalog.~) %s\nAND c.relkind::text = ANY(%s)")
        self.assertEqual(params, ("^(users)$", ["r", "v"]))

    def test_placeholder_mismatch(self) -> None:
        with self.assertRaises(ValueError):
            QueryBuilder("SELECT %s, %s", 1)
        with self.assertRaises(ValueError):
            QueryBuilder().append("SELECT 1", 1)

    def test_str_is_query_text(self) -> None:
        self.assertEqual(str(QueryBuilder("SELECT %s", 1)), "SELECT %s")


class QueryContextTests(unittest.TestCase):
    def test_checkpoint(self) -> None:
        ctx = QueryContext()
        ctx.checkpoint()
        ctx.cancel()
        self.assertTrue(ctx.cancelled)
        with self.assertRaises(CommandCancelledError):
            ctx.checkpoint()

    def test_cancel_fires_hooks(self) -> None:
        calls: list[str] = []
        ctx = QueryContext()
        def second() -> None:
            calls.append("second")

        ctx.register_cancel_hook(lambda: calls.append("first"))
        ctx.register_cancel_hook(second)
        ctx.unregister_cancel_hook(second)
        ctx.cancel()
        self.assertEqual(calls, ["first"])

    def test_failing_hook_does_not_prevent_cancellation(self) -> None:
        def failing_hook() -> None:
            raise psycopg.OperationalError("connection is gone")

        ctx = QueryContext()
        ctx.register_cancel_hook(failing_hook)
        ctx.cancel()
        self.assertTrue(ctx.cancelled)

    def test_timeout_without_expiry(self) -> None:
        with QueryContext(timeout=60) as ctx:
            ctx.checkpoint()
        self.assertFalse(ctx.cancelled)
        self.assertFalse(ctx.timed_out)

    def test_timeout_message(self) -> None:
        ctx = QueryContext(timeout=0.5)
        ctx._expire()
        with self.assertRaises(CommandCancelledError) as error:
            ctx.checkpoint()
        self.assertIn("timed out", str(error.exception))


class RunQueryTests(unittest.TestCase):
    def test_builder_parameters(self) -> None:
        queryer = regression_suite.FakeQueryer()
        run_query(queryer, QueryBuilder("SELECT %s", 42))
        self.assertEqual(queryer.executed, [("SELECT %s", (42,))])

    def test_builder_rejects_extra_parameters(self) -> None:
        with self.assertRaises(ValueError):
            run_query(regression_suite.FakeQueryer(), QueryBuilder("SELECT 1"), [1])

    def test_cancelled_context_skips_query(self) -> None:
        queryer = regression_suite.FakeQueryer()
        ctx = QueryContext()
        ctx.cancel()
        with self.assertRaises(CommandCancelledError):
            run_query(queryer, "SELECT 1", ctx=ctx)
        self.assertEqual(queryer.executed, [])

    def test_user_errors(self) -> None:
        queryer = regression_suite.FakeQueryer().script("SELECT", psycopg.errors.InvalidRegularExpression("bad regex"))
        with self.assertRaises(DatabaseUserError) as error:
            run_query(queryer, "SELECT 1")
        self.assertIsInstance(error.exception.ctx, psycopg.errors.InvalidRegularExpression)
        self.assertEqual(error.exception.query, "SELECT 1")

    def test_server_errors(self) -> None:
        for driver_error in (psycopg.OperationalError("server closed the connection"),
                             psycopg.InternalError("oops")):
            with self.subTest("Error", error=type(driver_error).__name__):
                queryer = regression_suite.FakeQueryer().script("SELECT", driver_error)
                with self.assertRaises(DatabaseServerError):
                    run_query(queryer, "SELECT 1")

    def test_translated_errors_pass_through(self) -> None:
        failure = DatabaseUserError("permission denied")
        queryer = regression_suite.FakeQueryer().script("SELECT", failure)
        with self.assertRaises(QueryExecutionError) as error:
            run_query(queryer, "SELECT 1")
        self.assertIs(error.exception, failure)

    def test_failure_after_cancellation(self) -> None:
        ctx = QueryContext()

        class CancelledQueryer(regression_suite.FakeQueryer):
            def execute(self, query, params=None):
                ctx.cancel()
                raise psycopg.errors.QueryCanceled("canceling statement due to user request")

        queryer = CancelledQueryer()
        with self.assertRaises(CommandCancelledError):
            run_query(queryer, "SELECT pg_sleep(10)", ctx=ctx)
        self.assertEqual(queryer.cancelled, 1)

    def test_cancel_hook_is_released(self) -> None:
        queryer = regression_suite.FakeQueryer()
        ctx = QueryContext()
        run_query(queryer, "SELECT 1", ctx=ctx)
        ctx.cancel()
        self.assertEqual(queryer.cancelled, 0)

    def test_fetch_helpers(self) -> None:
        queryer = regression_suite.FakeQueryer().script("SELECT", [(1,), (2,)])
        self.assertEqual(fetch_all(queryer, "SELECT 1"), [(1,), (2,)])
        self.assertEqual(fetch_one(queryer, "SELECT 1"), (1,))
        self.assertIsNone(fetch_one(regression_suite.FakeQueryer(), "SELECT 1"))

    def test_column_names(self) -> None:
        self.assertEqual(column_names(regression_suite.FakeCursor([], ("a", "b"))), ["a", "b"])
        self.assertEqual(column_names(regression_suite.FakeCursor()), [])


if __name__ == "__main__":
    unittest.main()
