"""List (and optionally run) the query blocks embedded in a document."""

from __future__ import annotations

import json
from typing import IO, Any

import click
from rich.markup import escape

from roam_query.cli import Context, pass_context
from roam_query.exceptions import GraphNotConfiguredError
from roam_query.query.blocks import extract_query_blocks
from roam_query.utils.output import console, create_progress, error, info, warning
from roam_query.utils.query_ops import (
    build_executor,
    print_result_table,
    resolve_options,
    validate_limit,
)

EXIT_SUCCESS = 0
EXIT_QUERY_ERROR = 1
EXIT_NO_GRAPH = 2


@click.command("extract")
@click.argument("file", type=click.File("r", encoding="utf-8"))
@click.option(
    "--execute",
    "-x",
    is_flag=True,
    default=False,
    help="Run every extracted query against the configured graph",
)
@click.option(
    "--limit",
    "-l",
    type=int,
    default=None,
    callback=validate_limit,
    help="Maximum matches per query when executing (default: query.default_limit)",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format (default: text)",
)
@pass_context
def cli(
    ctx: Context,
    file: IO[str],
    execute: bool,
    limit: int | None,
    output_format: str,
) -> None:
    """Find {{[[query]]: ...}} blocks in FILE.

    FILE may be a Markdown export of a Roam page, or '-' for stdin.

    \b
    Examples:
      roam-query extract page.md
      roam-query extract page.md --execute --limit 10
      cat page.md | roam-query extract - -f json
    """
    text = file.read()
    blocks = extract_query_blocks(text)

    if not execute:
        if output_format == "json":
            click.echo(json.dumps(blocks, indent=2, ensure_ascii=False))
        elif not blocks:
            info("No query blocks found")
        else:
            for block in blocks:
                click.echo(block)
        raise SystemExit(EXIT_SUCCESS)

    config = ctx.config
    if config is None:
        error("Configuration not loaded")
        raise SystemExit(EXIT_NO_GRAPH)

    try:
        executor = build_executor(config)
    except GraphNotConfiguredError as e:
        error(str(e), hint="Create a config with: roam-query init-config")
        raise SystemExit(EXIT_NO_GRAPH)

    options = resolve_options(config, limit, 0, None, None)
    results = []
    with create_progress() as progress:
        task = progress.add_task("Running queries", total=len(blocks))
        for block in blocks:
            results.append((block, executor.execute(block, options)))
            progress.advance(task)

    failed = sum(1 for _, result in results if not result.success)

    if output_format == "json":
        data: list[dict[str, Any]] = [
            {"block": block, **result.to_dict()} for block, result in results
        ]
        click.echo(json.dumps(data, indent=2, ensure_ascii=False))
    else:
        for block, result in results:
            if not result.success:
                warning(f"{block}: {result.message}")
            elif not result.matches:
                console.print(f"[query.name]{escape(block)}[/query.name]: no matches")
            else:
                print_result_table(result, block)

    raise SystemExit(EXIT_QUERY_ERROR if failed else EXIT_SUCCESS)
