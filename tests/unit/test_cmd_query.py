"""CLI tests for the query command."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from roam_query.cli import Context
from roam_query.commands.query import cli
from roam_query.config import Config
from roam_query.query.executor import QueryExecutor

ROWS = [
    ["uid000001", "Write the [[report]]", "Work"],
    ["uid000002", "Call [[Alice]]", "Home"],
]


class FakeRunner:
    def __init__(self, rows: list[list[Any]], total: int = 2) -> None:
        self.rows = rows
        self.total = total
        self.queries: list[str] = []

    def __call__(self, query: str, args: list[Any]) -> list[list[Any]]:
        self.queries.append(query)
        if "(count ?b)" in query:
            return [[self.total]]
        return self.rows


def _make_ctx(**config: Any) -> Context:
    ctx = Context()
    ctx.config = Config(graph_name="test-graph", api_token="token", **config)
    return ctx


class TestQueryCLI:
    @patch("roam_query.commands.query.build_executor")
    def test_table_output(self, mock_build) -> None:
        mock_build.return_value = QueryExecutor(FakeRunner(ROWS))

        result = CliRunner().invoke(cli, ["[[TODO]]"], obj=_make_ctx(), catch_exceptions=False)

        assert result.exit_code == 0
        assert "uid000001" in result.output
        assert "Write the [[report]]" in result.output
        assert "(2 of 2 matches)" in result.output

    @patch("roam_query.commands.query.build_executor")
    def test_uids_output(self, mock_build) -> None:
        mock_build.return_value = QueryExecutor(FakeRunner(ROWS))

        result = CliRunner().invoke(
            cli, ["{and:", "[[a]]", "[[b]]}", "--format", "uids"], obj=_make_ctx()
        )

        assert result.exit_code == 0
        assert result.output.splitlines() == ["uid000001", "uid000002"]

    @patch("roam_query.commands.query.build_executor")
    def test_json_output(self, mock_build) -> None:
        runner = FakeRunner(ROWS, total=40)
        mock_build.return_value = QueryExecutor(runner)

        result = CliRunner().invoke(
            cli, ["[[TODO]]", "--format", "json", "--limit", "2"], obj=_make_ctx()
        )

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["success"] is True
        assert data["total_count"] == 40
        assert data["matches"][1] == {
            "block_uid": "uid000002",
            "content": "Call [[Alice]]",
            "page_title": "Home",
        }
        assert "query" not in data

    @patch("roam_query.commands.query.build_executor")
    def test_config_defaults_applied(self, mock_build) -> None:
        runner = FakeRunner([])
        mock_build.return_value = QueryExecutor(runner)

        CliRunner().invoke(
            cli, ["[[a]]"], obj=_make_ctx(default_limit=7, order_by="?block-str desc")
        )

        assert ":limit 7" in runner.queries[0]
        assert ":order ?block-str desc" in runner.queries[0]

    @patch("roam_query.commands.query.build_executor")
    def test_options_override_config(self, mock_build) -> None:
        runner = FakeRunner([])
        mock_build.return_value = QueryExecutor(runner)

        CliRunner().invoke(
            cli,
            ["[[a]]", "--limit", "-1", "--offset", "5", "--page-uid", "pg1"],
            obj=_make_ctx(default_limit=7),
        )

        query = runner.queries[0]
        assert ":limit" not in query
        assert ":offset 5" in query
        assert "?target-page-uid" in query

    @patch("roam_query.commands.query.build_executor")
    def test_no_results(self, mock_build) -> None:
        mock_build.return_value = QueryExecutor(FakeRunner([], total=0))

        result = CliRunner().invoke(cli, ["[[nothing]]"], obj=_make_ctx())

        assert result.exit_code == 0
        assert "No results for: [[nothing]]" in result.output

    @patch("roam_query.commands.query.build_executor")
    def test_parse_error_exit_code(self, mock_build) -> None:
        mock_build.return_value = QueryExecutor(FakeRunner(ROWS))

        result = CliRunner().invoke(cli, ["{bogus: [[a]]}"], obj=_make_ctx())

        assert result.exit_code == 1

    @patch("roam_query.commands.query.build_executor")
    def test_json_failure(self, mock_build) -> None:
        mock_build.return_value = QueryExecutor(FakeRunner(ROWS))

        result = CliRunner().invoke(cli, ["{and: }", "-f", "json"], obj=_make_ctx())

        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["success"] is False
        assert data["matches"] == []

    def test_no_graph_configured(self) -> None:
        ctx = Context()
        ctx.config = Config()

        result = CliRunner().invoke(cli, ["[[a]]"], obj=ctx)

        assert result.exit_code == 2

    @pytest.mark.parametrize("limit", ["0", "-5"])
    @patch("roam_query.commands.query.build_executor")
    def test_rejects_invalid_limit(self, mock_build, limit: str) -> None:
        result = CliRunner().invoke(cli, ["[[a]]", "--limit", limit], obj=_make_ctx())

        assert result.exit_code == 2
        assert "must be positive or -1" in result.output
        mock_build.assert_not_called()

    @patch("roam_query.commands.query.build_executor")
    def test_unbounded_limit(self, mock_build) -> None:
        runner = FakeRunner(ROWS)
        mock_build.return_value = QueryExecutor(runner)

        result = CliRunner().invoke(cli, ["[[a]]", "--limit", "-1"], obj=_make_ctx())

        assert result.exit_code == 0
        assert ":limit" not in runner.queries[0]
