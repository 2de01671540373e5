"""Command-line interface for roam-query."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

import click

from roam_query import __version__
from roam_query.config import Config, load_config
from roam_query.exceptions import RoamQueryError
from roam_query.utils.output import error, set_color, set_pager, set_verbosity, warning


@dataclass
class Context:
    """State shared with every subcommand through ``pass_context``."""

    config: Config | None = None
    verbose: bool = False
    debug: bool = False
    quiet: bool = False


pass_context = click.make_pass_decorator(Context, ensure=True)


def _configure_logging(debug: bool) -> None:
    if debug:
        logging.basicConfig(
            level=logging.DEBUG, format="%(asctime)s %(name)s %(levelname)s: %(message)s"
        )


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Config file (default: ~/.config/roam-query/config.toml)",
)
@click.option(
    "-g",
    "--graph",
    help="Graph name, overriding the config file and ROAM_GRAPH_NAME",
)
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.option("-v", "--verbose", is_flag=True, help="Print progress details")
@click.option("--debug", is_flag=True, help="Log generated queries and HTTP retries (implies -v)")
@click.option("-q", "--quiet", is_flag=True, help="Only print errors and results")
@click.option(
    "--pager/--no-pager",
    default=None,
    help="Always or never page table output (default: page long output on a TTY)",
)
@click.version_option(version=__version__, prog_name="roam-query")
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Path | None,
    graph: str | None,
    no_color: bool,
    verbose: bool,
    debug: bool,
    quiet: bool,
    pager: bool | None,
) -> None:
    """roam-query: Compile and run Roam Research query blocks.

    Parses {{[[query]]: ...}} blocks, translates them into Datalog and
    runs them against a Roam graph through the backend API.

    Configuration is read from ~/.config/roam-query/config.toml unless
    --config is given. ROAM_GRAPH_NAME and ROAM_API_TOKEN override the file.

    Examples:

    \b
        # Show the Datalog generated for a query
        roam-query parse "{and: [[Project]] [[TODO]]}"

    \b
        # Run a query against the configured graph
        roam-query query "{{[[query]]: {or: [[a]] [[b]]}}}" --limit 20
    """
    app = ctx.ensure_object(Context)
    app.verbose = verbose or debug
    app.debug = debug
    app.quiet = quiet

    set_verbosity(verbose=verbose, debug=debug)
    set_pager(pager)
    _configure_logging(debug)

    # --no-color and NO_COLOR win over display.colored_output
    color_forced_off = no_color or "NO_COLOR" in os.environ
    if color_forced_off:
        set_color(False)

    try:
        config, warnings = load_config(config_path)
    except (RoamQueryError, OSError) as e:
        error(str(e), hint="Fix the file or point --config at another one")
        ctx.exit(1)
        return

    if graph is not None:
        config.graph_name = graph
    if not config.colored_output and not color_forced_off:
        set_color(False)
    app.config = config

    if not quiet:
        for message in warnings:
            warning(message)


@cli.command("help")
@click.argument("command_name", required=False)
@click.pass_context
def help_cmd(ctx: click.Context, command_name: str | None) -> None:
    """Show help for roam-query or one of its commands."""
    parent = ctx.parent or ctx
    if command_name is None:
        click.echo(cli.get_help(parent))
        return

    command = cli.get_command(parent, command_name)
    if command is None:
        error(f"Unknown command: {command_name}", hint="Run 'roam-query help' for a list")
        ctx.exit(1)
        return

    with click.Context(command, info_name=command_name, parent=parent) as sub_ctx:
        click.echo(command.get_help(sub_ctx))


def register_commands() -> None:
    from roam_query.commands import discover_commands

    for command in discover_commands():
        cli.add_command(command)


register_commands()
