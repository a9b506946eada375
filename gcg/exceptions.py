"""Exception hierarchy for gcg.

    GraphError (base)
    ├── ConfigurationError - invalid settings
    ├── RepositoryError - repository cannot be opened or read
    ├── GraphLoadError - persisted graph exists but is malformed
    └── GraphIntegrityError - an edge references a missing node
"""

from __future__ import annotations


class GraphError(Exception):
    """Base exception for all gcg errors."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause

    def __str__(self) -> str:
        if self.cause:
            return f"{super().__str__()} (caused by: {self.cause})"
        return super().__str__()


class ConfigurationError(GraphError):
    pass


class RepositoryError(GraphError):
    """The git repository could not be opened or walked."""


class GraphLoadError(GraphError):
    """A persisted graph is present but cannot be turned back into a graph.

    A missing file is not an error; it loads as an empty graph.
    """


class GraphIntegrityError(GraphError):
    """An edge points at a node that is not in the graph.

    This only happens when the graph was mutated outside of
    CorrelationGraph's own operations.
    """
