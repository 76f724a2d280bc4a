"""Stream events from the transport and notifications to presentation layers.

Inbound, a transport delivers :class:`StreamUpdate` objects (a text delta
plus optional :class:`StreamMetadata`). Outbound, the coordinator notifies
:class:`StreamListener` implementations whenever one of the derived views
changes.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from artifact_stream.engine.transcript import TokenUsage

if TYPE_CHECKING:
    from artifact_stream.engine.artifacts import Artifact
    from artifact_stream.engine.graph import FlowEdge, FlowNode
    from artifact_stream.engine.segments import Segment
    from artifact_stream.engine.tree import FileTreeNode

__all__ = [
    "StreamListener",
    "StreamMetadata",
    "StreamUpdate",
]


class StreamMetadata(BaseModel):
    """Structured metadata attached to a chunk.

    Accepts the backend's ``groundingMetadata``/``usageMetadata`` keys as
    well as the field names.
    """

    model_config = ConfigDict(populate_by_name=True)

    grounding: dict[str, Any] | None = Field(default=None, alias="groundingMetadata")
    usage: TokenUsage | None = Field(default=None, alias="usageMetadata")

    @property
    def source_count(self) -> int:
        """Number of grounding sources, 0 without grounding."""
        if not self.grounding:
            return 0
        chunks = self.grounding.get("groundingChunks")
        return len(chunks) if isinstance(chunks, Sequence) else 0


class StreamUpdate(BaseModel):
    """One increment from the stream source."""

    text: str = ""
    metadata: StreamMetadata | None = None


class StreamListener:
    """Receives derived-view updates from a coordinator.

    Subclasses override the callbacks they care about. Each callback fires
    at most once per processed chunk, only when its view changed, and must
    tolerate receiving the same state twice.
    """

    def on_rendered_text_update(self, segments: Sequence[Segment]) -> None:
        """Called with the current prose/thought segments."""

    def on_artifacts_changed(self, artifacts: tuple[Artifact, ...]) -> None:
        """Called with the store snapshot after it changed."""

    def on_tree_changed(self, tree: Sequence[FileTreeNode]) -> None:
        """Called with the rebuilt project tree."""

    def on_graph_changed(
        self,
        nodes: tuple[FlowNode, ...],
        edges: tuple[FlowEdge, ...],
    ) -> None:
        """Called with the flow graph after it changed."""
