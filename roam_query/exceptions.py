"""Exception hierarchy for roam-query."""

from pathlib import Path


class RoamQueryError(Exception):
    """Base exception for all roam-query errors.

    All exceptions in this package inherit from this class,
    allowing callers to catch all roam-query errors with
    a single except clause.
    """

    pass


# Configuration Errors
class ConfigError(RoamQueryError):
    """Configuration-related errors."""

    pass


class ConfigParseError(ConfigError):
    """Configuration file has invalid syntax."""

    def __init__(self, path: Path, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Invalid config at {path}: {detail}")


class ConfigValidationError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: object, reason: str) -> None:
        self.key = key
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid config value for '{key}': {reason}")


class GraphNotConfiguredError(ConfigError):
    """No graph name or API token available."""

    def __init__(self) -> None:
        super().__init__(
            "No Roam graph configured. Set graph.name and graph.token in the config "
            "file or ROAM_GRAPH_NAME and ROAM_API_TOKEN in the environment."
        )


# Query Errors
class QueryError(RoamQueryError):
    """Errors raised while compiling a query block."""

    pass


class QueryParseError(QueryError):
    """Query block source is malformed.

    Attributes:
        message: Human readable description of the violation.
        position: Character offset in the query expression where
            parsing failed, if known.
    """

    def __init__(self, message: str, position: int | None = None) -> None:
        self.message = message
        self.position = position
        super().__init__(message)


class DateParseError(QueryError):
    """A ``between`` date expression could not be resolved."""

    def __init__(self, text: str) -> None:
        self.text = text
        super().__init__(f"Cannot parse date: {text}")


# Graph Errors
class GraphError(RoamQueryError):
    """Errors talking to the Roam graph backend."""

    pass


class GraphAuthError(GraphError):
    """The graph rejected the API token."""

    def __init__(self, graph: str) -> None:
        self.graph = graph
        super().__init__(
            f"Authentication failed for graph '{graph}'. "
            "Check the API token in your config or ROAM_API_TOKEN."
        )


class GraphConnectionError(GraphError):
    """Failed to reach the graph backend."""

    pass
