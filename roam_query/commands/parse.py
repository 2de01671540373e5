"""Show the AST and Datalog for a query block without running it."""

from __future__ import annotations

import json
from datetime import datetime

import click
from rich.markup import escape
from rich.tree import Tree

from roam_query.cli import Context, pass_context
from roam_query.exceptions import QueryError, QueryParseError
from roam_query.query.ast_nodes import And, Not, Or, QueryNode
from roam_query.query.dates import format_roam_date
from roam_query.query.executor import compile_query
from roam_query.query.parser import extract_query_expression
from roam_query.utils.output import console, error, print_datalog

EXIT_SUCCESS = 0
EXIT_PARSE_ERROR = 1


def _label(node: QueryNode) -> str:
    payload = {k: v for k, v in node.to_dict().items() if k not in ("type", "children", "child")}
    details = " ".join(f"{k}={v!r}" for k, v in payload.items())
    label = f"[bold]{node.kind}[/bold]"
    return f"{label} {escape(details)}" if details else label


def _build_tree(node: QueryNode, tree: Tree) -> None:
    branch = tree.add(_label(node))
    if isinstance(node, (And, Or)):
        for child in node.children:
            _build_tree(child, branch)
    elif isinstance(node, Not):
        _build_tree(node.child, branch)


def _describe_arg(arg: str | int) -> str:
    """Show timestamps next to the daily page they fall on."""
    if isinstance(arg, int):
        return f"{arg} ({format_roam_date(datetime.fromtimestamp(arg / 1000))})"
    return repr(arg)


def _error_context(source: str, position: int) -> str:
    """Render the expression with a caret under the failing offset."""
    expression = extract_query_expression(source)
    return f"  {expression}\n  {' ' * position}^"


@click.command("parse")
@click.argument("source", nargs=-1, required=True)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format (default: text)",
)
@pass_context
def cli(ctx: Context, source: tuple[str, ...], output_format: str) -> None:
    """Parse a query block and print its AST and generated Datalog.

    Nothing is sent to the graph; use this to validate query syntax.

    \b
    Examples:
      roam-query parse "{{[[query]]: \\"Open\\" {and: [[TODO]] {not: [[DONE]]}}}}"
      roam-query parse "{between: [[January 1st, 2026]] [[today]]}" -f json
    """
    source_text = " ".join(source)

    try:
        parsed = compile_query(source_text)
    except QueryParseError as e:
        error(f"Invalid query: {e}")
        if e.position is not None:
            click.echo(_error_context(source_text, e.position), err=True)
        raise SystemExit(EXIT_PARSE_ERROR)
    except QueryError as e:
        error(f"Invalid query: {e}")
        raise SystemExit(EXIT_PARSE_ERROR)

    if output_format == "json":
        data = {
            "name": parsed.name,
            "ast": parsed.ast.to_dict(),
            "query": parsed.datalog.query,
            "args": parsed.datalog.args,
        }
        click.echo(json.dumps(data, indent=2, ensure_ascii=False))
        raise SystemExit(EXIT_SUCCESS)

    root = Tree(f"[query.name]{escape(parsed.name)}[/query.name]" if parsed.name else "query")
    _build_tree(parsed.ast, root)
    console.print(root)
    print_datalog(parsed.datalog.query)
    for index, arg in enumerate(parsed.datalog.args):
        console.print(f"arg {index}: {_describe_arg(arg)}", markup=False, highlight=False)

    raise SystemExit(EXIT_SUCCESS)
