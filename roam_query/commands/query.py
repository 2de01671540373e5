"""Run a query block against the configured Roam graph."""

from __future__ import annotations

import click

from roam_query.cli import Context, pass_context
from roam_query.exceptions import GraphNotConfiguredError
from roam_query.utils.output import debug, error, info, print_datalog, verbose
from roam_query.utils.query_ops import (
    build_executor,
    print_result_table,
    resolve_options,
    result_json,
    validate_limit,
)

EXIT_SUCCESS = 0
EXIT_QUERY_ERROR = 1
EXIT_NO_GRAPH = 2


@click.command("query")
@click.argument("source", nargs=-1, required=True)
@click.option(
    "--limit",
    "-l",
    type=int,
    default=None,
    callback=validate_limit,
    help="Maximum number of matches (default: query.default_limit; -1 = unbounded)",
)
@click.option(
    "--offset",
    "-o",
    type=click.IntRange(min=0),
    default=0,
    show_default=True,
    help="Number of matches to skip",
)
@click.option(
    "--order-by",
    default=None,
    help="Datalog :order value (default: query.order_by, '?block-uid asc')",
)
@click.option(
    "--page-uid",
    "-p",
    default=None,
    help="Only match blocks on the page with this uid",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["table", "json", "uids"]),
    default="table",
    help="Output format (default: table)",
)
@click.option(
    "--show-query",
    is_flag=True,
    default=False,
    help="Print the generated Datalog query",
)
@click.option(
    "--refs-depth",
    type=click.IntRange(min=0),
    default=None,
    help="Depth for expanding ((uid)) references in results (0 = off)",
)
@pass_context
def cli(
    ctx: Context,
    source: tuple[str, ...],
    limit: int | None,
    offset: int,
    order_by: str | None,
    page_uid: str | None,
    output_format: str,
    show_query: bool,
    refs_depth: int | None,
) -> None:
    """Execute a Roam query block and list matching blocks.

    SOURCE is a full {{[[query]]: ...}} block or a bare expression.
    Multiple arguments are joined with spaces.

    \b
    Syntax examples:
      roam-query query "[[Project]]"
      roam-query query "{and: [[Project]] {not: [[Archive]]}}"
      roam-query query "{{[[query]]: {between: [[last week]] [[today]]}}}"
      roam-query query "{and: {search: meeting notes} {created by: Alice}}"

    \b
    Output formats:
      --format table   Rich table (default)
      --format json    Result object with matches and total_count
      --format uids    One block uid per line (for piping)
    """
    config = ctx.config
    if config is None:
        error("Configuration not loaded")
        raise SystemExit(EXIT_NO_GRAPH)

    try:
        executor = build_executor(config, refs_depth)
    except GraphNotConfiguredError as e:
        error(str(e), hint="Create a config with: roam-query init-config")
        raise SystemExit(EXIT_NO_GRAPH)

    source_text = " ".join(source)
    options = resolve_options(config, limit, offset, order_by, page_uid)
    if output_format == "table":
        verbose(f"Querying graph '{config.graph_name}'")
    debug(f"limit={options.limit} offset={options.offset} order={options.order_by!r}")
    result = executor.execute(source_text, options)

    if output_format == "json":
        click.echo(result_json(result, include_query=show_query))
        raise SystemExit(EXIT_SUCCESS if result.success else EXIT_QUERY_ERROR)

    if not result.success:
        error(f"Query failed: {result.message}")
        raise SystemExit(EXIT_QUERY_ERROR)

    if show_query and result.query:
        print_datalog(result.query)

    if output_format == "uids":
        for match in result.matches:
            click.echo(match.block_uid)
    elif not result.matches:
        info(f"No results for: {source_text}")
    else:
        print_result_table(result, source_text)

    raise SystemExit(EXIT_SUCCESS)
