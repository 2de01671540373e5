"""Shared helpers for commands that execute query blocks."""

from __future__ import annotations

import io
import json

import click
from rich.console import Console
from rich.markup import escape

from roam_query.config import Config
from roam_query.exceptions import GraphNotConfiguredError
from roam_query.graph.client import RoamGraphClient
from roam_query.graph.refs import make_ref_resolver
from roam_query.query.builder import QueryOptions
from roam_query.query.executor import QueryExecutor, QueryResult
from roam_query.utils.output import THEME, console, create_table, info, pager_print

# Content column is clipped to this many characters in table output
CONTENT_CLIP = 120


def build_executor(config: Config, refs_depth: int | None = None) -> QueryExecutor:
    """Create an executor bound to the configured graph.

    Args:
        config: Loaded configuration with graph credentials.
        refs_depth: Override for reference expansion depth (0 disables it).

    Raises:
        GraphNotConfiguredError: If graph name or token is missing.
    """
    if not config.graph_name or not config.api_token:
        raise GraphNotConfiguredError()

    client = RoamGraphClient(config.graph_name, config.api_token, config.base_url)
    depth = config.refs_depth if refs_depth is None else refs_depth
    resolver = make_ref_resolver(client, depth) if depth > 0 else None
    return QueryExecutor(client, resolver)


def validate_limit(ctx: click.Context, param: click.Parameter, value: int | None) -> int | None:
    """Click callback accepting -1 (unbounded) or a positive row limit."""
    if value is not None and value != -1 and value < 1:
        raise click.BadParameter("must be positive or -1 for unbounded")
    return value


def resolve_options(
    config: Config,
    limit: int | None,
    offset: int,
    order_by: str | None,
    page_uid: str | None,
) -> QueryOptions:
    """Merge command-line options with config defaults."""
    return QueryOptions(
        limit=config.default_limit if limit is None else limit,
        offset=offset,
        order_by=order_by or config.order_by,
        page_uid=page_uid,
    )


def _clip(value: str, max_width: int) -> str:
    value = " ".join(value.split())
    if len(value) <= max_width:
        return value
    return value[: max_width - 1] + "…"


def print_result_table(result: QueryResult, title: str) -> None:
    """Print matches as a Rich table, using the pager when appropriate."""
    shown = len(result.matches)
    total = result.total_count if result.total_count is not None else shown
    info(f"{title} ({shown} of {total} matches)")

    table = create_table(show_header=True, header_style="bold")
    table.add_column("UID", style="uid", no_wrap=True)
    table.add_column("Page", style="page.title", no_wrap=True)
    table.add_column("Content")

    for match in result.matches:
        table.add_row(
            match.block_uid,
            escape(match.page_title or ""),
            escape(_clip(match.content, CONTENT_CLIP)),
        )

    buf = io.StringIO()
    render_console = Console(
        file=buf,
        theme=THEME,
        force_terminal=not console.no_color,
        width=max(console.width, 100),
        no_color=console.no_color,
    )
    render_console.print(table)
    pager_print(buf.getvalue())


def result_json(result: QueryResult, *, include_query: bool = False) -> str:
    """Serialize a result to the JSON shape returned by ``execute``."""
    data = result.to_dict()
    if not include_query:
        data.pop("query", None)
    return json.dumps(data, indent=2, ensure_ascii=False)
