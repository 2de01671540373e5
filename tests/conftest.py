"""Shared pytest fixtures."""

from __future__ import annotations

import shutil
import tempfile
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from collections.abc import Generator

# Thursday; every relative date in the tests is computed from here
FIXED_NOW = datetime(2026, 3, 12, 15, 30, 45, tzinfo=timezone.utc)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    path = Path(tempfile.mkdtemp())
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    """A clock pinned to FIXED_NOW in UTC."""
    return lambda: FIXED_NOW


@pytest.fixture
def sample_config(temp_dir: Path) -> Path:
    """Create a sample config file."""
    config_path = temp_dir / "config.toml"
    config_path.write_text("""[graph]
name = "test-graph"
token = "roam-graph-token-test"

[query]
default_limit = 25
refs_depth = 2
order_by = "?block-str desc"

[display]
colored_output = false
""")
    return config_path


@pytest.fixture(autouse=True)
def _clear_roam_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's ROAM_* variables out of the tests."""
    monkeypatch.delenv("ROAM_GRAPH_NAME", raising=False)
    monkeypatch.delenv("ROAM_API_TOKEN", raising=False)
