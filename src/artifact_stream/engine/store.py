"""Path-keyed store holding the latest version of every artifact.

Insertion order is preserved: updating an artifact replaces its content in
place, it never moves to the end. ``upsert`` is the only mutation used by
the extraction path; ``create``, ``update_content`` and ``remove`` exist for
explicit user actions.

Example:
    ```python
    store = ArtifactStore()
    store.upsert(Artifact.from_path("a.py", "v1"))   # UpsertOutcome.CREATED
    store.upsert(Artifact.from_path("b.py", "x"))    # UpsertOutcome.CREATED
    store.upsert(Artifact.from_path("a.py", "v2"))   # UpsertOutcome.UPDATED
    [a.path for a in store.snapshot()]               # ["a.py", "b.py"]
    ```
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from artifact_stream.engine.artifacts import Artifact
from artifact_stream.errors import ArtifactNotFoundError
from artifact_stream.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

__all__ = [
    "ArtifactStore",
    "UpsertOutcome",
]

logger = get_logger("engine.store")


class UpsertOutcome(str, Enum):
    """Result of an upsert."""

    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


class ArtifactStore:
    """Ordered mapping from path to :class:`Artifact`.

    ``version`` increases on every observable change, which lets consumers
    skip rebuilding derived views when nothing changed.
    """

    def __init__(self, artifacts: Iterable[Artifact] | None = None) -> None:
        self._artifacts: dict[str, Artifact] = {}
        self._version = 0
        for artifact in artifacts or ():
            self.upsert(artifact)

    @property
    def version(self) -> int:
        """Monotonic change counter."""
        return self._version

    def upsert(self, artifact: Artifact) -> UpsertOutcome:
        """Insert an artifact or replace the stored version of its path.

        Args:
            artifact: Artifact to store.

        Returns:
            Whether the path was created, updated or already identical.
        """
        existing = self._artifacts.get(artifact.path)
        if existing == artifact:
            return UpsertOutcome.UNCHANGED

        # Assigning to an existing key keeps its insertion position
        self._artifacts[artifact.path] = artifact
        self._version += 1

        if existing is None:
            logger.debug(f"Stored new artifact: {artifact.path} ({artifact.language})")
            return UpsertOutcome.CREATED
        logger.debug(f"Updated artifact: {artifact.path} ({len(artifact.content)} chars)")
        return UpsertOutcome.UPDATED

    def create(self, path: str) -> Artifact:
        """Create an empty artifact for a user-added file.

        Returns the existing artifact unchanged if the path is already stored.
        """
        existing = self._artifacts.get(path)
        if existing is not None:
            return existing
        artifact = Artifact.from_path(path)
        self.upsert(artifact)
        return artifact

    def update_content(self, path: str, content: str) -> Artifact:
        """Replace the content of a stored artifact (user edit).

        Raises:
            ArtifactNotFoundError: If the path is not stored.
        """
        existing = self._artifacts.get(path)
        if existing is None:
            raise ArtifactNotFoundError(path)
        updated = existing.with_content(content)
        self.upsert(updated)
        return updated

    def remove(self, path: str) -> Artifact:
        """Delete an artifact (user action, never called by extraction).

        Raises:
            ArtifactNotFoundError: If the path is not stored.
        """
        try:
            artifact = self._artifacts.pop(path)
        except KeyError:
            raise ArtifactNotFoundError(path) from None
        self._version += 1
        logger.debug(f"Removed artifact: {path}")
        return artifact

    def clear(self) -> None:
        """Remove all artifacts."""
        if self._artifacts:
            self._artifacts.clear()
            self._version += 1

    def get(self, path: str) -> Artifact | None:
        """Get the stored artifact for a path."""
        return self._artifacts.get(path)

    def paths(self) -> list[str]:
        """Stored paths in insertion order."""
        return list(self._artifacts)

    def snapshot(self) -> tuple[Artifact, ...]:
        """Immutable ordered view of all artifacts."""
        return tuple(self._artifacts.values())

    def __len__(self) -> int:
        return len(self._artifacts)

    def __contains__(self, path: object) -> bool:
        return path in self._artifacts

    def __iter__(self) -> Iterator[Artifact]:
        return iter(self.snapshot())
