"""Project file tree derived from a store snapshot.

The tree is rebuilt from scratch on every store change and holds no state
of its own. Paths are split on "/" with empty parts ignored, so
``"/src//app.py"`` lands at ``src/app.py``. Node paths are these
normalized forms and can differ from the stored artifact path. Two stored
paths that normalize to the same file keep the first one.

When one path needs a directory where an earlier path already placed a
file (or the other way around) the first one wins and the later path is
left out of the tree.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from artifact_stream.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from artifact_stream.engine.artifacts import Artifact

__all__ = [
    "PATH_SEPARATOR",
    "FileTreeNode",
    "NodeType",
    "build_file_tree",
    "find_node",
    "iter_files",
]

logger = get_logger("engine.tree")

PATH_SEPARATOR = "/"


class NodeType(str, Enum):
    """Type of a tree node."""

    DIRECTORY = "directory"
    FILE = "file"


@dataclass
class FileTreeNode:
    """A directory or file in the project tree.

    Attributes:
        name: Final path segment.
        path: Normalized path from the tree root.
        type: Directory or file.
        children: Child nodes (directories only).
        content: File content (files only).
    """

    name: str
    path: str
    type: NodeType
    children: list[FileTreeNode] = field(default_factory=list)
    content: str | None = None

    @property
    def is_directory(self) -> bool:
        return self.type == NodeType.DIRECTORY

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        data: dict[str, Any] = {"name": self.name, "path": self.path, "type": self.type.value}
        if self.is_directory:
            data["children"] = [child.to_dict() for child in self.children]
        else:
            data["content"] = self.content
        return data


def _sort_nodes(nodes: list[FileTreeNode]) -> None:
    nodes.sort(key=lambda node: (not node.is_directory, node.name))
    for node in nodes:
        if node.is_directory:
            _sort_nodes(node.children)


def build_file_tree(artifacts: Iterable[Artifact]) -> list[FileTreeNode]:
    """Build a sorted directory tree from artifacts.

    Args:
        artifacts: Store snapshot, in insertion order.

    Returns:
        Top-level nodes. Every level lists directories before files, each
        group sorted by name.
    """
    root: list[FileTreeNode] = []

    for artifact in artifacts:
        parts = [part for part in artifact.path.split(PATH_SEPARATOR) if part]
        level = root
        current_path = ""

        for index, part in enumerate(parts):
            current_path = f"{current_path}{PATH_SEPARATOR}{part}" if current_path else part
            is_file = index == len(parts) - 1
            existing = next((node for node in level if node.name == part), None)

            if existing is None:
                existing = FileTreeNode(
                    name=part,
                    path=current_path,
                    type=NodeType.FILE if is_file else NodeType.DIRECTORY,
                    content=artifact.content if is_file else None,
                )
                level.append(existing)
            elif existing.is_directory == is_file:
                logger.debug(
                    f"Skipping {artifact.path}: {current_path} is already a "
                    f"{existing.type.value}"
                )
                break
            elif is_file:
                logger.debug(
                    f"Skipping {artifact.path}: normalizes to {current_path}, "
                    "which an earlier path already placed"
                )

            if not is_file:
                level = existing.children

    _sort_nodes(root)
    return root


def iter_files(nodes: Iterable[FileTreeNode]) -> Iterator[FileTreeNode]:
    """Yield every file node depth-first in display order."""
    for node in nodes:
        if node.is_directory:
            yield from iter_files(node.children)
        else:
            yield node


def find_node(nodes: Iterable[FileTreeNode], path: str) -> FileTreeNode | None:
    """Find the node at a path, or None."""
    parts = [part for part in path.split(PATH_SEPARATOR) if part]
    level = list(nodes)
    found: FileTreeNode | None = None
    for part in parts:
        found = next((node for node in level if node.name == part), None)
        if found is None:
            return None
        level = found.children
    return found
