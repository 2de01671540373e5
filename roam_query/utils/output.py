"""Terminal output for roam-query.

All user-facing text goes through the helpers here so that colour, verbosity
and paging are decided in one place. Messages are escaped before printing:
query text is full of ``[[...]]`` which rich would otherwise read as markup.
"""

from __future__ import annotations

import os
import shlex
import shutil
import subprocess
import sys
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn
from rich.syntax import Syntax
from rich.table import Table
from rich.theme import Theme

THEME = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
        "uid": "magenta",
        "page.title": "bold",
        "query.name": "italic cyan",
        "progress.description": "bold blue",
    }
)

console = Console(theme=THEME)
error_console = Console(theme=THEME, stderr=True)

# Set once by the CLI group callback
_verbosity = {"verbose": False, "debug": False}
_pager: bool | None = None

_DEFAULT_PAGER = "less -RFS"


def set_verbosity(*, verbose: bool = False, debug: bool = False) -> None:
    """Enable verbose and/or debug messages (debug implies verbose)."""
    _verbosity["verbose"] = verbose or debug
    _verbosity["debug"] = debug


def set_color(enabled: bool) -> None:
    for target in (console, error_console):
        target.no_color = not enabled


def set_pager(mode: bool | None) -> None:
    """Force the pager on (True) or off (False); None pages long output on a TTY."""
    global _pager
    _pager = mode


def _should_page(content: str) -> bool:
    if _pager is not None:
        return _pager
    if not sys.stdout.isatty():
        return False
    return content.count("\n") > shutil.get_terminal_size().lines


def _write_stdout(content: str) -> None:
    sys.stdout.write(content)
    sys.stdout.flush()


def pager_print(content: str) -> None:
    """Write pre-rendered output, through ``$PAGER`` when it would not fit."""
    if not _should_page(content):
        _write_stdout(content)
        return

    command = shlex.split(os.environ.get("PAGER") or _DEFAULT_PAGER)
    env = {**os.environ, "LESSCHARSET": os.environ.get("LESSCHARSET", "utf-8")}
    try:
        subprocess.run(command, input=content, encoding="utf-8", errors="replace", env=env)
    except (OSError, subprocess.SubprocessError):
        _write_stdout(content)


def info(message: str) -> None:
    console.print(f"[info]{escape(message)}[/info]")


def success(message: str) -> None:
    console.print(f"[success]{escape(message)}[/success]")


def warning(message: str) -> None:
    error_console.print(f"[warning]Warning:[/warning] {escape(message)}")


def error(message: str, hint: str | None = None) -> None:
    """Print an error, and optionally a hint on how to fix it, to stderr."""
    error_console.print(f"[error]Error:[/error] {escape(message)}")
    if hint:
        error_console.print(f"  [info]Hint:[/info] {escape(hint)}")


def verbose(message: str) -> None:
    if _verbosity["verbose"]:
        console.print(f"[info]{escape(message)}[/info]")


def debug(message: str) -> None:
    if _verbosity["debug"]:
        error_console.print(f"[dim]debug:[/dim] {escape(message)}")


def create_progress() -> Progress:
    """Progress bar on stderr that disappears when finished."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        console=error_console,
        transient=True,
    )


def create_table(title: str | None = None, **kwargs: Any) -> Table:
    return Table(title=title, **kwargs)


def print_datalog(query: str) -> None:
    """Print a Datalog query with Clojure syntax highlighting."""
    if console.no_color:
        console.print(query, markup=False, highlight=False)
    else:
        console.print(Syntax(query, "clojure", word_wrap=True))
