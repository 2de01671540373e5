"""roam-query: compile Roam Research query blocks into Datalog."""

__version__ = "0.1.0"
