"""Subcommands of the roam-query CLI.

Every public module in this package that defines a click command named
``cli`` is registered on the top-level group.
"""

from __future__ import annotations

import importlib
import pkgutil
from typing import TYPE_CHECKING

import click

if TYPE_CHECKING:
    from collections.abc import Iterator


def discover_commands() -> Iterator[click.Command]:
    """Yield the ``cli`` command of each command module, sorted by module name."""
    modules = sorted(
        info.name for info in pkgutil.iter_modules(__path__) if not info.name.startswith("_")
    )
    for name in modules:
        module = importlib.import_module(f"{__name__}.{name}")
        command = getattr(module, "cli", None)
        if isinstance(command, click.Command):
            yield command
