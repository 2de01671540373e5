"""Roam query block parsing, Datalog generation and execution."""

from roam_query.query.ast_nodes import (
    And,
    Between,
    BlockRef,
    By,
    CreatedBy,
    DailyNotes,
    EditedBy,
    Not,
    Or,
    ParseResult,
    QueryNode,
    Search,
    Tag,
)
from roam_query.query.blocks import extract_query_blocks, is_query_block
from roam_query.query.builder import (
    BuiltQuery,
    QueryOptions,
    build_count_query,
    build_datalog_query,
)
from roam_query.query.executor import (
    ParsedQuery,
    QueryExecutor,
    QueryMatch,
    QueryResult,
    compile_query,
)
from roam_query.query.generator import DatalogClauses, DatalogGenerator, escape_string
from roam_query.query.parser import parse_query, parse_query_with_name

__all__ = [
    "And",
    "Between",
    "BlockRef",
    "BuiltQuery",
    "By",
    "CreatedBy",
    "DailyNotes",
    "DatalogClauses",
    "DatalogGenerator",
    "EditedBy",
    "Not",
    "Or",
    "ParseResult",
    "ParsedQuery",
    "QueryExecutor",
    "QueryMatch",
    "QueryNode",
    "QueryOptions",
    "QueryResult",
    "Search",
    "Tag",
    "build_count_query",
    "build_datalog_query",
    "compile_query",
    "escape_string",
    "extract_query_blocks",
    "is_query_block",
    "parse_query",
    "parse_query_with_name",
]
