"""Configuration management for roam-query."""

from __future__ import annotations

import os
import tempfile
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import tomli_w

from roam_query.exceptions import (
    ConfigParseError,
    ConfigValidationError,
)
from roam_query.graph.client import DEFAULT_BASE_URL
from roam_query.graph.refs import DEFAULT_MAX_DEPTH
from roam_query.query.builder import DEFAULT_ORDER

ENV_GRAPH_NAME = "ROAM_GRAPH_NAME"
ENV_API_TOKEN = "ROAM_API_TOKEN"

DEFAULT_LIMIT = 50


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    return Path.home() / ".config" / "roam-query" / "config.toml"


@dataclass
class Config:
    """Application configuration.

    Attributes:
        graph_name: Roam graph to query.
        api_token: Backend API token for the graph.
        base_url: Roam backend API host.
        default_limit: Row limit used when --limit is not given (-1 = unbounded).
        refs_depth: How deep to expand ((uid)) references in results.
        order_by: Default ``:order`` for query results.
        colored_output: Whether to use colored terminal output.
        config_path: Path where config was loaded from (None if defaults).
    """

    graph_name: str | None = None
    api_token: str | None = None
    base_url: str = DEFAULT_BASE_URL
    default_limit: int = DEFAULT_LIMIT
    refs_depth: int = DEFAULT_MAX_DEPTH
    order_by: str = DEFAULT_ORDER
    colored_output: bool = True
    config_path: Path | None = None

    @property
    def has_credentials(self) -> bool:
        return bool(self.graph_name and self.api_token)

    def validate(self) -> list[str]:
        """Validate configuration values.

        Returns:
            List of warning messages for non-fatal issues.

        Raises:
            ConfigValidationError: If a critical validation fails.
        """
        warnings: list[str] = []

        if self.default_limit < -1 or self.default_limit == 0:
            raise ConfigValidationError(
                "query.default_limit", self.default_limit, "must be positive or -1 for unbounded"
            )

        if self.refs_depth < 0:
            raise ConfigValidationError("query.refs_depth", self.refs_depth, "must be >= 0")

        if not self.base_url.startswith(("http://", "https://")):
            raise ConfigValidationError("graph.base_url", self.base_url, "must be an http(s) URL")

        if self.graph_name and not self.api_token:
            warnings.append(
                f"No API token configured for graph '{self.graph_name}'. "
                f"Set graph.token or {ENV_API_TOKEN}."
            )

        return warnings


def load_config(config_path: Path | None = None) -> tuple[Config, list[str]]:
    """Load configuration from file or use defaults.

    Environment variables ``ROAM_GRAPH_NAME`` and ``ROAM_API_TOKEN``
    override the file.

    Args:
        config_path: Explicit config file path. If None, uses default location.

    Returns:
        Tuple of (Config object, list of warning messages).

    Raises:
        ConfigParseError: If config file exists but has invalid syntax.
        ConfigValidationError: If config values are invalid.
    """
    warnings: list[str] = []

    if config_path is None:
        config_path = get_default_config_path()

    config_path = config_path.expanduser().resolve()

    if not config_path.exists():
        config = Config()
        _apply_env(config)
        if not config.has_credentials:
            warnings.append(
                f"No config file found at {config_path}. Using defaults. "
                f"Create config with: roam-query init-config"
            )
        config_warnings = config.validate()
        return config, warnings + config_warnings

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(config_path, str(e)) from e

    config = _parse_config_dict(data, config_path)
    _apply_env(config)
    config_warnings = config.validate()

    return config, warnings + config_warnings


def _apply_env(config: Config) -> None:
    graph_name = os.environ.get(ENV_GRAPH_NAME)
    if graph_name:
        config.graph_name = graph_name
    api_token = os.environ.get(ENV_API_TOKEN)
    if api_token:
        config.api_token = api_token


def _expect_str(section: dict[str, Any], key: str, full_key: str, *, nullable: bool) -> str | None:
    value = section[key]
    if value is None and nullable:
        return None
    if not isinstance(value, str):
        reason = "must be a string or null" if nullable else "must be a string"
        raise ConfigValidationError(full_key, value, reason)
    return value


def _expect_int(section: dict[str, Any], key: str, full_key: str) -> int:
    value = section[key]
    # bool is an int subclass
    if not isinstance(value, int) or isinstance(value, bool):
        raise ConfigValidationError(full_key, value, "must be an integer")
    return value


def _parse_config_dict(data: dict[str, Any], config_path: Path) -> Config:
    """Parse configuration dictionary into Config object."""
    config = Config(config_path=config_path)

    # Parse [graph] section
    graph = data.get("graph", {})
    if "name" in graph:
        config.graph_name = _expect_str(graph, "name", "graph.name", nullable=True)
    if "token" in graph:
        config.api_token = _expect_str(graph, "token", "graph.token", nullable=True)
    if "base_url" in graph:
        config.base_url = _expect_str(graph, "base_url", "graph.base_url", nullable=False)

    # Parse [query] section
    query = data.get("query", {})
    if "default_limit" in query:
        config.default_limit = _expect_int(query, "default_limit", "query.default_limit")
    if "refs_depth" in query:
        config.refs_depth = _expect_int(query, "refs_depth", "query.refs_depth")
    if "order_by" in query:
        config.order_by = _expect_str(query, "order_by", "query.order_by", nullable=False)

    # Parse [display] section
    display = data.get("display", {})
    if "colored_output" in display:
        value = display["colored_output"]
        if not isinstance(value, bool):
            raise ConfigValidationError("display.colored_output", value, "must be a boolean")
        config.colored_output = value

    return config


def save_config(config: Config, config_path: Path | None = None) -> None:
    """Save configuration to file.

    Args:
        config: Configuration to save.
        config_path: Path to save to. If None, uses config.config_path or default.
    """
    if config_path is None:
        config_path = config.config_path or get_default_config_path()

    config_path = config_path.expanduser().resolve()

    graph_data: dict[str, Any] = {}
    if config.graph_name is not None:
        graph_data["name"] = config.graph_name
    if config.api_token is not None:
        graph_data["token"] = config.api_token
    if config.base_url != DEFAULT_BASE_URL:
        graph_data["base_url"] = config.base_url

    data: dict[str, Any] = {
        "query": {
            "default_limit": config.default_limit,
            "refs_depth": config.refs_depth,
            "order_by": config.order_by,
        },
        "display": {
            "colored_output": config.colored_output,
        },
    }
    if graph_data:
        data["graph"] = graph_data

    write_private_file(config_path, tomli_w.dumps(data))


def write_private_file(path: Path, content: str) -> None:
    """Atomically write a file readable only by its owner.

    Config files carry the graph API token, so the parent directory is
    created with 0o700 and the file with 0o600. The content goes to a
    temporary sibling first and is renamed into place.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    path.parent.chmod(0o700)

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    tmp_path = Path(tmp_name)
    try:
        os.fchmod(fd, 0o600)
        with open(fd, "w", encoding="utf-8") as f:
            f.write(content)
        tmp_path.replace(path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
