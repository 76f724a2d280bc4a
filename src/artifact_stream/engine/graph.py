"""Flow graph of a conversation: requests, agent turns, tools and artifacts.

Each generation turn adds a user node and an agent node joined by an
animated edge. While the turn streams, the first grounding event adds a
tool node and every newly seen artifact path adds an artifact node, both
connected from the agent. Repeated events for the same tool or path update
the existing node instead of adding a duplicate.

Layout (defaults from :class:`~artifact_stream.config.EngineConfig`):

    user (100, y) ──> agent (500, y) ──> file (900, y), (900, y+150), ...
                                    └──> tool (300, y+150)

where ``y`` is 300 below the lowest node of previous turns.

Example:
    ```python
    projector = FlowGraphProjector()
    turn = projector.begin_turn("t1", "Build a todo app")
    projector.record_artifact(turn, Artifact.from_path("index.html", "<html>"))
    projector.end_turn(turn)
    nodes, edges = projector.graph.snapshot()
    ```
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any

from artifact_stream.config import EngineConfig
from artifact_stream.errors import DanglingEdgeError
from artifact_stream.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Mapping

    from artifact_stream.engine.artifacts import Artifact

__all__ = [
    "FlowEdge",
    "FlowGraph",
    "FlowGraphProjector",
    "FlowNode",
    "FlowNodeKind",
    "FlowNodeStatus",
    "FlowTurn",
    "edge_id",
]

logger = get_logger("engine.graph")


# =============================================================================
# Data Structures
# =============================================================================


class FlowNodeKind(str, Enum):
    """Kind of a flow graph node."""

    USER = "user"
    AGENT = "agent"
    TOOL = "tool"
    ARTIFACT = "artifact"


class FlowNodeStatus(str, Enum):
    """Status of a flow graph node."""

    PENDING = "pending"
    ACTIVE = "active"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class FlowNode:
    """A node of the flow graph.

    Nodes are immutable; updates replace the node (and its payload dict)
    wholesale, so snapshots handed to listeners never change under them.

    Attributes:
        id: Unique node id.
        kind: User, agent, tool or artifact.
        label: Display title.
        status: Lifecycle status.
        x: Horizontal position.
        y: Vertical position.
        sub_label: Secondary display text.
        payload: Display data, typically ``preview`` and ``full_content``.
    """

    id: str
    kind: FlowNodeKind
    label: str
    status: FlowNodeStatus = FlowNodeStatus.PENDING
    x: float = 0
    y: float = 0
    sub_label: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def position(self) -> tuple[float, float]:
        return (self.x, self.y)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "kind": self.kind.value,
            "label": self.label,
            "sub_label": self.sub_label,
            "status": self.status.value,
            "x": self.x,
            "y": self.y,
            "payload": dict(self.payload),
        }


@dataclass(frozen=True)
class FlowEdge:
    """A directed edge between two existing nodes."""

    id: str
    source_id: str
    target_id: str
    animated: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "source_id": self.source_id,
            "target_id": self.target_id,
            "animated": self.animated,
        }


def edge_id(source_id: str, target_id: str) -> str:
    """Conventional edge id for a source/target pair."""
    return f"e-{source_id}-{target_id}"


# =============================================================================
# Graph
# =============================================================================


class FlowGraph:
    """Node and edge container that never holds a dangling edge."""

    def __init__(self) -> None:
        self._nodes: dict[str, FlowNode] = {}
        self._edges: dict[str, FlowEdge] = {}
        self._version = 0

    @property
    def version(self) -> int:
        """Monotonic change counter."""
        return self._version

    @property
    def nodes(self) -> tuple[FlowNode, ...]:
        return tuple(self._nodes.values())

    @property
    def edges(self) -> tuple[FlowEdge, ...]:
        return tuple(self._edges.values())

    def snapshot(self) -> tuple[tuple[FlowNode, ...], tuple[FlowEdge, ...]]:
        """Current nodes and edges, in insertion order."""
        return self.nodes, self.edges

    def get_node(self, node_id: str) -> FlowNode | None:
        return self._nodes.get(node_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def add_node(self, node: FlowNode) -> FlowNode:
        """Add a node.

        Raises:
            ValueError: If a node with the same id exists.
        """
        if node.id in self._nodes:
            raise ValueError(f"Duplicate flow node id: {node.id}")
        self._nodes[node.id] = node
        self._version += 1
        return node

    def update_node(self, node_id: str, **changes: Any) -> FlowNode:
        """Replace a node with updated fields.

        Raises:
            KeyError: If the node does not exist.
        """
        current = self._nodes[node_id]
        updated = replace(current, **changes)
        if updated != current:
            self._nodes[node_id] = updated
            self._version += 1
        return updated

    def add_edge(self, edge: FlowEdge) -> FlowEdge:
        """Add an edge between existing nodes.

        Adding an edge whose id already exists returns the stored edge.

        Raises:
            DanglingEdgeError: If either endpoint is not a node.
        """
        missing = [
            node_id for node_id in (edge.source_id, edge.target_id) if node_id not in self._nodes
        ]
        if missing:
            raise DanglingEdgeError(edge.id, missing)
        existing = self._edges.get(edge.id)
        if existing is not None:
            return existing
        self._edges[edge.id] = edge
        self._version += 1
        return edge

    def update_edge(self, edge_id: str, **changes: Any) -> FlowEdge:
        """Replace an edge with updated fields (endpoints are fixed).

        Raises:
            KeyError: If the edge does not exist.
            ValueError: If an endpoint change is requested.
        """
        if {"source_id", "target_id", "id"} & set(changes):
            raise ValueError("Edge endpoints and id cannot be changed")
        current = self._edges[edge_id]
        updated = replace(current, **changes)
        if updated != current:
            self._edges[edge_id] = updated
            self._version += 1
        return updated

    def edges_touching(self, node_id: str) -> list[FlowEdge]:
        """Edges with the node as source or target."""
        return [e for e in self._edges.values() if node_id in (e.source_id, e.target_id)]

    def max_y(self) -> float | None:
        """Lowest node position (largest y), None for an empty graph."""
        if not self._nodes:
            return None
        return max(node.y for node in self._nodes.values())

    def dangling_edges(self) -> list[FlowEdge]:
        """Edges whose endpoints are missing (always empty unless corrupted)."""
        return [
            e
            for e in self._edges.values()
            if e.source_id not in self._nodes or e.target_id not in self._nodes
        ]

    def clear(self) -> None:
        if self._nodes or self._edges:
            self._nodes.clear()
            self._edges.clear()
            self._version += 1

    def __len__(self) -> int:
        return len(self._nodes)


# =============================================================================
# Projector
# =============================================================================


@dataclass
class FlowTurn:
    """Graph bookkeeping for one generation turn.

    Attributes:
        turn_id: Turn identifier (the stream session id).
        user_node_id: Id of the request node.
        agent_node_id: Id of the agent node.
        origin_y: Vertical origin of the turn.
        tool_node_id: Id of the tool node once grounding was seen.
        artifact_nodes: Path -> node id for artifacts seen in this turn.
        closed: True after :meth:`FlowGraphProjector.end_turn`.
    """

    turn_id: str
    user_node_id: str
    agent_node_id: str
    origin_y: float
    tool_node_id: str | None = None
    artifact_nodes: dict[str, str] = field(default_factory=dict)
    closed: bool = False


def _preview(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


class FlowGraphProjector:
    """Projects stream events of each turn onto a :class:`FlowGraph`."""

    def __init__(
        self,
        graph: FlowGraph | None = None,
        *,
        config: EngineConfig | None = None,
    ) -> None:
        self.graph = graph if graph is not None else FlowGraph()
        self.config = config or EngineConfig()

    def begin_turn(self, turn_id: str, prompt: str) -> FlowTurn:
        """Add the user and agent nodes for a new turn.

        Args:
            turn_id: Unique turn identifier.
            prompt: The user's request text.

        Returns:
            Turn handle for the other projector calls.
        """
        cfg = self.config
        lowest = self.graph.max_y()
        origin_y = cfg.first_turn_y if lowest is None else lowest + cfg.turn_spacing

        user = self.graph.add_node(
            FlowNode(
                id=f"user-{turn_id}",
                kind=FlowNodeKind.USER,
                label=cfg.user_label,
                sub_label="Input",
                status=FlowNodeStatus.COMPLETE,
                x=cfg.user_x,
                y=origin_y,
                payload={
                    "preview": _preview(prompt, cfg.user_preview_chars),
                    "full_content": prompt,
                },
            )
        )
        agent = self.graph.add_node(
            FlowNode(
                id=f"agent-{turn_id}",
                kind=FlowNodeKind.AGENT,
                label=cfg.agent_label,
                sub_label=cfg.agent_sub_label,
                status=FlowNodeStatus.ACTIVE,
                x=cfg.agent_x,
                y=origin_y,
                payload={"preview": "Thinking...", "full_content": ""},
            )
        )
        self._connect(user.id, agent.id, animated=True)

        logger.debug(f"Began flow turn {turn_id} at y={origin_y}")
        return FlowTurn(
            turn_id=turn_id,
            user_node_id=user.id,
            agent_node_id=agent.id,
            origin_y=origin_y,
        )

    def update_agent(self, turn: FlowTurn, text: str) -> FlowNode:
        """Refresh the agent node payload with the response so far."""
        return self.graph.update_node(
            turn.agent_node_id,
            payload={
                "preview": _preview(text, self.config.agent_preview_chars),
                "full_content": text,
            },
        )

    def record_grounding(self, turn: FlowTurn, grounding: Mapping[str, Any]) -> FlowNode:
        """Add or update the tool node for a grounding/tool-use event."""
        chunks = grounding.get("groundingChunks") or []
        payload = {
            "preview": f"Found {len(chunks)} sources",
            "full_content": json.dumps(grounding, indent=2, default=str),
        }

        if turn.tool_node_id is not None:
            return self.graph.update_node(turn.tool_node_id, payload=payload)

        cfg = self.config
        node = self.graph.add_node(
            FlowNode(
                id=f"tool-{turn.turn_id}",
                kind=FlowNodeKind.TOOL,
                label=cfg.tool_label,
                sub_label=cfg.tool_sub_label,
                status=FlowNodeStatus.COMPLETE,
                x=cfg.tool_x,
                y=turn.origin_y + cfg.tool_offset_y,
                payload=payload,
            )
        )
        turn.tool_node_id = node.id
        self._connect(turn.agent_node_id, node.id)
        logger.debug(f"Added tool node for turn {turn.turn_id}")
        return node

    def record_artifact(self, turn: FlowTurn, artifact: Artifact) -> FlowNode:
        """Add an artifact node for a new path, or update the existing one."""
        payload = {"preview": artifact.language, "full_content": artifact.content}

        node_id = turn.artifact_nodes.get(artifact.path)
        if node_id is not None:
            return self.graph.update_node(node_id, payload=payload)

        cfg = self.config
        node = self.graph.add_node(
            FlowNode(
                id=f"file-{turn.turn_id}-{artifact.path}",
                kind=FlowNodeKind.ARTIFACT,
                label=artifact.name,
                sub_label=cfg.artifact_sub_label,
                status=FlowNodeStatus.COMPLETE,
                x=cfg.artifact_x,
                y=turn.origin_y + len(turn.artifact_nodes) * cfg.artifact_spacing,
                payload=payload,
            )
        )
        turn.artifact_nodes[artifact.path] = node.id
        self._connect(turn.agent_node_id, node.id)
        logger.debug(f"Added artifact node {node.id}")
        return node

    def end_turn(
        self,
        turn: FlowTurn,
        status: FlowNodeStatus = FlowNodeStatus.COMPLETE,
    ) -> None:
        """Settle the agent node and stop animating its edges."""
        if turn.closed:
            logger.debug(f"Flow turn {turn.turn_id} already closed")
            return

        self.graph.update_node(turn.agent_node_id, status=status)
        for edge in self.graph.edges_touching(turn.agent_node_id):
            if edge.animated:
                self.graph.update_edge(edge.id, animated=False)
        turn.closed = True
        logger.debug(f"Closed flow turn {turn.turn_id} ({status.value})")

    def _connect(
        self, source_id: str, target_id: str, *, animated: bool = False
    ) -> FlowEdge | None:
        try:
            return self.graph.add_edge(
                FlowEdge(
                    id=edge_id(source_id, target_id),
                    source_id=source_id,
                    target_id=target_id,
                    animated=animated,
                )
            )
        except DanglingEdgeError as e:
            logger.warning(f"Dropping edge: {e}")
            return None
