"""Parse, compile and run query blocks against a graph.

The executor never talks to a graph directly. It is given two callables:

- ``run_query(query, args) -> rows`` executes Datalog and returns rows.
- ``resolve_refs(text) -> text`` expands ``((uid))`` references in block text.

Usage::

    from roam_query.graph.client import RoamGraphClient
    from roam_query.graph.refs import make_ref_resolver

    client = RoamGraphClient("my-graph", token)
    executor = QueryExecutor(client, make_ref_resolver(client))
    result = executor.execute("{{[[query]]: {and: [[Project]] [[TODO]]}}}")
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Protocol

from roam_query.query.ast_nodes import QueryNode
from roam_query.query.builder import (
    DEFAULT_ORDER,
    BuiltQuery,
    QueryOptions,
    build_count_query,
    build_datalog_query,
)
from roam_query.query.dates import Clock
from roam_query.query.generator import DatalogGenerator
from roam_query.query.parser import parse_query, parse_query_with_name

logger = logging.getLogger(__name__)

_DEFAULT_MAX_WORKERS = 8


class QueryRunner(Protocol):
    def __call__(self, query: str, args: list[str | int]) -> list[list[Any]]: ...


class RefResolver(Protocol):
    def __call__(self, text: str) -> str: ...


@dataclass
class QueryMatch:
    """A single matching block."""

    block_uid: str
    content: str
    page_title: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "block_uid": self.block_uid,
            "content": self.content,
            "page_title": self.page_title,
        }


@dataclass
class QueryResult:
    """Outcome of executing a query block.

    ``total_count`` and ``query`` are only set on success.
    """

    success: bool
    matches: list[QueryMatch] = field(default_factory=list)
    message: str = ""
    total_count: int | None = None
    query: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "matches": [m.to_dict() for m in self.matches],
            "message": self.message,
        }
        if self.total_count is not None:
            data["total_count"] = self.total_count
        if self.query is not None:
            data["query"] = self.query
        return data


@dataclass
class ParsedQuery:
    """A compiled but unexecuted query block."""

    ast: QueryNode
    datalog: BuiltQuery
    name: str | None = None


def _count_from_rows(rows: list[list[Any]]) -> int:
    if rows and rows[0]:
        return int(rows[0][0])
    return 0


def _identity(text: str) -> str:
    return text


class QueryExecutor:
    """Runs query blocks through parse -> generate -> build -> execute.

    Args:
        run_query: Executes Datalog with positional arguments.
        resolve_refs: Expands block references in result text. Defaults
            to leaving text unchanged.
        clock: Current-time source for relative dates.
        max_workers: Thread pool size for reference resolution.
    """

    def __init__(
        self,
        run_query: QueryRunner,
        resolve_refs: RefResolver | None = None,
        clock: Clock | None = None,
        max_workers: int = _DEFAULT_MAX_WORKERS,
    ) -> None:
        self.run_query = run_query
        self.resolve_refs = resolve_refs or _identity
        self.generator = DatalogGenerator(clock)
        self.max_workers = max_workers

    def execute(self, source: str, options: QueryOptions | None = None) -> QueryResult:
        """Parse and execute a query block.

        Never raises: parse errors, date errors and backend failures are
        all returned as an unsuccessful QueryResult.

        Args:
            source: Query block text, e.g. ``{{[[query]]: {and: [[a]] [[b]]}}}``.
            options: Limit, offset, ordering and page scope.
        """
        options = options or QueryOptions()
        try:
            return self._execute(source, options)
        except Exception as e:
            logger.info("Query failed: %s", e)
            return QueryResult(success=False, matches=[], message=str(e) or type(e).__name__)

    def _execute(self, source: str, options: QueryOptions) -> QueryResult:
        ast = parse_query(source)
        clauses = self.generator.generate(ast)

        built = build_datalog_query(
            clauses,
            QueryOptions(
                limit=options.limit,
                offset=options.offset,
                order_by=options.order_by or DEFAULT_ORDER,
                page_uid=options.page_uid,
            ),
        )
        logger.debug("Running query %s with args %r", built.query, built.args)
        rows = self.run_query(built.query, built.args)

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            count_future = None
            if options.is_bounded:
                count = build_count_query(clauses, options.page_uid)
                count_future = pool.submit(self.run_query, count.query, count.args)

            matches = list(pool.map(self._to_match, rows))

            total_count = len(matches)
            if count_future is not None:
                total_count = _count_from_rows(count_future.result())

        return QueryResult(
            success=True,
            matches=matches,
            message=f"Found {len(matches)} block(s) matching query",
            total_count=total_count,
            query=built.query,
        )

    def _to_match(self, row: list[Any]) -> QueryMatch:
        uid, content = row[0], row[1]
        page_title = row[2] if len(row) > 2 else None
        return QueryMatch(block_uid=uid, content=self.resolve_refs(content), page_title=page_title)

    def parse(self, source: str) -> ParsedQuery:
        """Compile a query block without executing it.

        Raises:
            QueryParseError: If the source is malformed.
            DateParseError: If a ``between`` date cannot be resolved.
        """
        parsed = parse_query_with_name(source)
        clauses = self.generator.generate(parsed.query)
        return ParsedQuery(ast=parsed.query, datalog=build_datalog_query(clauses), name=parsed.name)


def compile_query(
    source: str, options: QueryOptions | None = None, clock: Clock | None = None
) -> ParsedQuery:
    """Parse a query block and build its Datalog without a graph.

    Raises:
        QueryParseError: If the source is malformed.
        DateParseError: If a ``between`` date cannot be resolved.
    """
    parsed = parse_query_with_name(source)
    clauses = DatalogGenerator(clock).generate(parsed.query)
    return ParsedQuery(
        ast=parsed.query, datalog=build_datalog_query(clauses, options), name=parsed.name
    )
