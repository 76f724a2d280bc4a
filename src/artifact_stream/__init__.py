"""artifact-stream: live extraction of files, thoughts and flow from LLM streams.

Example:
    ```python
    from artifact_stream import StreamCoordinator

    coordinator = StreamCoordinator()
    coordinator.start("Create a hello world page")
    coordinator.on_chunk('<file path="index.html">\\n<h1>Hello</h1>\\n</file>')
    coordinator.on_complete()
    coordinator.store.paths()  # ["index.html"]
    ```
"""

from __future__ import annotations

from artifact_stream.config import EngineConfig, load_config
from artifact_stream.engine import (
    Artifact,
    ArtifactStore,
    FileTreeNode,
    FlowEdge,
    FlowGraph,
    FlowNode,
    Segment,
    SessionState,
    StreamCoordinator,
    StreamListener,
    StreamMetadata,
    StreamUpdate,
    Transcript,
    build_file_tree,
    extract_artifacts,
    parse_blocks,
    split_segments,
)
from artifact_stream.errors import (
    ArtifactNotFoundError,
    ArtifactStreamError,
    ConfigError,
    DanglingEdgeError,
    InvalidArtifactError,
    NoActiveStreamError,
    SessionClosedError,
    StreamAlreadyActiveError,
    StreamStateError,
)
from artifact_stream.logging import configure_logging, get_logger

__version__ = "0.1.0"

__all__ = [
    "Artifact",
    "ArtifactNotFoundError",
    "ArtifactStore",
    "ArtifactStreamError",
    "ConfigError",
    "DanglingEdgeError",
    "EngineConfig",
    "FileTreeNode",
    "FlowEdge",
    "FlowGraph",
    "FlowNode",
    "InvalidArtifactError",
    "NoActiveStreamError",
    "Segment",
    "SessionClosedError",
    "SessionState",
    "StreamAlreadyActiveError",
    "StreamCoordinator",
    "StreamListener",
    "StreamMetadata",
    "StreamStateError",
    "StreamUpdate",
    "Transcript",
    "__version__",
    "build_file_tree",
    "configure_logging",
    "extract_artifacts",
    "get_logger",
    "load_config",
    "parse_blocks",
    "split_segments",
]
