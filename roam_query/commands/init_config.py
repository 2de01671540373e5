"""Initialize configuration file for roam-query."""

from __future__ import annotations

from importlib import resources
from pathlib import Path

import click
import tomli_w

from roam_query.cli import Context, pass_context
from roam_query.config import get_default_config_path, write_private_file
from roam_query.utils.output import error, info, success


def _load_example_config() -> str:
    """Load the example configuration from package data."""
    return resources.files("roam_query").joinpath("config.example.toml").read_text()


def _toml_line(key: str, value: str) -> str:
    return tomli_w.dumps({key: value}).strip()


def _fill_graph(content: str, graph: str | None, token: str | None) -> str:
    """Uncomment the example graph name and token lines with the given values."""
    if graph:
        content = content.replace('# name = "my-graph"', _toml_line("name", graph), 1)
    if token:
        content = content.replace(
            '# token = "roam-graph-token-..."', _toml_line("token", token), 1
        )
    return content


@click.command("init-config")
@click.option(
    "--force",
    "-f",
    is_flag=True,
    default=False,
    help="Overwrite existing config file",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Output path for config file (default: ~/.config/roam-query/config.toml)",
)
@click.option("--graph", "graph_name", default=None, help="Graph name to write into the file")
@click.option(
    "--token",
    default=None,
    help="API token to write into the file (prefer ROAM_API_TOKEN for shared machines)",
)
@pass_context
def cli(
    ctx: Context,
    force: bool,
    output: Path | None,
    graph_name: str | None,
    token: str | None,
) -> None:
    """Create a new configuration file with default settings.

    Creates a configuration file at the default location
    (~/.config/roam-query/config.toml) or at a custom path
    specified with --output. The file is written with owner-only
    permissions since it may hold an API token.

    Examples:

    \b
      # Create config at default location
      roam-query init-config

    \b
      # Create config for a graph
      roam-query init-config --graph my-graph --token roam-graph-token-abc

    \b
      # Overwrite existing config
      roam-query init-config --force
    """
    config_path = output if output is not None else get_default_config_path()
    config_path = config_path.expanduser().resolve()

    if config_path.exists() and not force:
        error(
            f"Config file already exists: {config_path}",
            hint="Use --force to overwrite",
        )
        raise SystemExit(1)

    config_content = _fill_graph(_load_example_config(), graph_name, token)

    try:
        write_private_file(config_path, config_content)
    except OSError as e:
        error(f"Failed to write config file: {e}")
        raise SystemExit(1)

    success(f"Created config file: {config_path}")
    if graph_name and token:
        info("Try it with: roam-query query \"[[TODO]]\" --limit 5")
    else:
        info("Edit this file to set your graph name and API token.")
