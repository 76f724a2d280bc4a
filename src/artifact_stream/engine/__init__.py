"""Incremental extraction and projection engine.

Turns a growing model response into derived views:

- segments: prose/thought split of the response (``segments``)
- blocks: fenced code, line rules and inline spans (``blocks``)
- artifacts: ``<file path="...">`` declarations (``artifacts``, ``store``)
- tree: project directory tree of the stored artifacts (``tree``)
- graph: request/agent/tool/artifact flow graph (``graph``)
- transcript: chat messages and prompt augmentation (``transcript``)

:class:`StreamCoordinator` ties them together for one stream at a time.
"""

from __future__ import annotations

from artifact_stream.engine.artifacts import (
    Artifact,
    ArtifactExtractor,
    detect_language,
    extract_artifacts,
)
from artifact_stream.engine.blocks import (
    Block,
    BlockKind,
    InlineSpan,
    Line,
    LineKind,
    SpanKind,
    parse_blocks,
    parse_inline,
    parse_line,
    parse_lines,
)
from artifact_stream.engine.coordinator import SessionState, StreamCoordinator, StreamSession
from artifact_stream.engine.events import StreamListener, StreamMetadata, StreamUpdate
from artifact_stream.engine.graph import (
    FlowEdge,
    FlowGraph,
    FlowGraphProjector,
    FlowNode,
    FlowNodeKind,
    FlowNodeStatus,
    FlowTurn,
)
from artifact_stream.engine.segments import Segment, SegmentKind, SegmentSplitter, split_segments
from artifact_stream.engine.store import ArtifactStore, UpsertOutcome
from artifact_stream.engine.transcript import (
    ChatMessage,
    Role,
    TokenUsage,
    Transcript,
    build_effective_prompt,
)
from artifact_stream.engine.tree import FileTreeNode, NodeType, build_file_tree

__all__ = [
    # Artifacts
    "Artifact",
    "ArtifactExtractor",
    "ArtifactStore",
    "UpsertOutcome",
    "detect_language",
    "extract_artifacts",
    # Blocks
    "Block",
    "BlockKind",
    "InlineSpan",
    "Line",
    "LineKind",
    "SpanKind",
    "parse_blocks",
    "parse_inline",
    "parse_line",
    "parse_lines",
    # Coordinator
    "SessionState",
    "StreamCoordinator",
    "StreamListener",
    "StreamMetadata",
    "StreamSession",
    "StreamUpdate",
    # Graph
    "FlowEdge",
    "FlowGraph",
    "FlowGraphProjector",
    "FlowNode",
    "FlowNodeKind",
    "FlowNodeStatus",
    "FlowTurn",
    # Segments
    "Segment",
    "SegmentKind",
    "SegmentSplitter",
    "split_segments",
    # Transcript
    "ChatMessage",
    "Role",
    "TokenUsage",
    "Transcript",
    "build_effective_prompt",
    # Tree
    "FileTreeNode",
    "NodeType",
    "build_file_tree",
]
