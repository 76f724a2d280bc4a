"""Exception hierarchy for the extraction engine.

Malformed or unterminated tags are not errors: they are deferred until more
text arrives and silently dropped if the session ends first. Duplicate
artifact paths are not errors either; the store overwrites them. The
exceptions below cover contract violations by callers and broken internal
invariants.
"""

from __future__ import annotations

__all__ = [
    "ArtifactNotFoundError",
    "ArtifactStreamError",
    "ConfigError",
    "DanglingEdgeError",
    "InvalidArtifactError",
    "NoActiveStreamError",
    "SessionClosedError",
    "StreamAlreadyActiveError",
    "StreamStateError",
]


class ArtifactStreamError(Exception):
    """Base class for all artifact-stream errors."""


# =============================================================================
# Session state
# =============================================================================


class StreamStateError(ArtifactStreamError):
    """A coordinator operation was called in the wrong session state."""


class StreamAlreadyActiveError(StreamStateError):
    """A new stream was started while another one is still streaming."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(
            f"Stream {session_id} is still active. "
            f"Cancel it or wait for it to finish before starting another."
        )


class NoActiveStreamError(StreamStateError):
    """A stream event arrived but no session was ever started."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Cannot {operation}: no stream has been started")


class SessionClosedError(StreamStateError):
    """A stream event arrived after the session reached a terminal state."""

    def __init__(self, session_id: str, state: str, operation: str) -> None:
        self.session_id = session_id
        self.state = state
        self.operation = operation
        super().__init__(f"Cannot {operation}: stream {session_id} is already {state}")


# =============================================================================
# Artifacts and graph
# =============================================================================


class InvalidArtifactError(ArtifactStreamError, ValueError):
    """An artifact record violates the data model (e.g. empty path)."""


class ArtifactNotFoundError(ArtifactStreamError, KeyError):
    """A user action referenced a path that is not in the store."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(path)

    def __str__(self) -> str:
        return f"No artifact stored at path: {self.path!r}"


class DanglingEdgeError(ArtifactStreamError):
    """An edge referenced a node id that does not exist in the graph."""

    def __init__(self, edge_id: str, missing: list[str]) -> None:
        self.edge_id = edge_id
        self.missing = missing
        super().__init__(f"Edge {edge_id} references unknown node(s): {', '.join(missing)}")


# =============================================================================
# Configuration
# =============================================================================


class ConfigError(ArtifactStreamError, ValueError):
    """The configuration file or environment held invalid values."""
