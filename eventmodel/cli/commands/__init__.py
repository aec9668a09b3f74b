"""CLI commands for eventmodel."""

from . import (
    validate,
    inspect,
    graph,
    normalize,
    config_cmd,
)

__all__ = [
    "validate",
    "inspect",
    "graph",
    "normalize",
    "config_cmd",
]
