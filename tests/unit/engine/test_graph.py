"""Tests for the flow graph and its projector."""

from __future__ import annotations

import json

import pytest

from artifact_stream.config import EngineConfig
from artifact_stream.engine.artifacts import Artifact
from artifact_stream.engine.graph import (
    FlowEdge,
    FlowGraph,
    FlowGraphProjector,
    FlowNode,
    FlowNodeKind,
    FlowNodeStatus,
    edge_id,
)
from artifact_stream.errors import DanglingEdgeError

# =============================================================================
# FlowGraph Tests
# =============================================================================


def _node(node_id: str, y: float = 0) -> FlowNode:
    return FlowNode(id=node_id, kind=FlowNodeKind.USER, label=node_id, y=y)


class TestFlowGraph:
    """Tests for the node/edge container."""

    def test_add_node_duplicate_rejected(self) -> None:
        """Test node ids are unique."""
        graph = FlowGraph()
        graph.add_node(_node("a"))

        with pytest.raises(ValueError, match="Duplicate"):
            graph.add_node(_node("a"))

    def test_dangling_edge_rejected(self) -> None:
        """Test edges need both endpoints."""
        graph = FlowGraph()
        graph.add_node(_node("a"))

        with pytest.raises(DanglingEdgeError) as exc_info:
            graph.add_edge(FlowEdge(id="e", source_id="a", target_id="b"))

        assert exc_info.value.missing == ["b"]
        assert graph.edges == ()

    def test_add_existing_edge_returns_stored(self) -> None:
        """Test re-adding an edge id keeps the first edge."""
        graph = FlowGraph()
        graph.add_node(_node("a"))
        graph.add_node(_node("b"))
        first = graph.add_edge(FlowEdge(id="e", source_id="a", target_id="b", animated=True))

        again = graph.add_edge(FlowEdge(id="e", source_id="a", target_id="b"))

        assert again is first
        assert len(graph.edges) == 1

    def test_update_node_versioning(self) -> None:
        """Test updates replace the node and bump the version only on change."""
        graph = FlowGraph()
        original = graph.add_node(_node("a"))
        version = graph.version

        graph.update_node("a", label="a")
        assert graph.version == version

        updated = graph.update_node("a", status=FlowNodeStatus.COMPLETE)
        assert graph.version == version + 1
        assert original.status == FlowNodeStatus.PENDING
        assert graph.get_node("a") is updated

    def test_update_missing_node(self) -> None:
        """Test updating an unknown node raises KeyError."""
        with pytest.raises(KeyError):
            FlowGraph().update_node("ghost", label="x")

    def test_edge_endpoints_fixed(self) -> None:
        """Test edge endpoints cannot be rewired."""
        graph = FlowGraph()
        graph.add_node(_node("a"))
        graph.add_node(_node("b"))
        graph.add_edge(FlowEdge(id="e", source_id="a", target_id="b"))

        with pytest.raises(ValueError):
            graph.update_edge("e", target_id="a")

    def test_max_y_and_clear(self) -> None:
        """Test lowest position and clearing."""
        graph = FlowGraph()
        assert graph.max_y() is None

        graph.add_node(_node("a", y=100))
        graph.add_node(_node("b", y=400))
        assert graph.max_y() == 400

        graph.clear()
        assert len(graph) == 0
        assert graph.max_y() is None

    def test_edge_id(self) -> None:
        """Test the conventional edge id."""
        assert edge_id("user-1", "agent-1") == "e-user-1-agent-1"


# =============================================================================
# Projector Tests
# =============================================================================


class TestFlowGraphProjector:
    """Tests for per-turn projection and layout."""

    def test_begin_turn_layout(self) -> None:
        """Test user and agent nodes of the first turn."""
        projector = FlowGraphProjector()

        turn = projector.begin_turn("t1", "Build a todo app")

        graph = projector.graph
        user = graph.get_node("user-t1")
        agent = graph.get_node("agent-t1")
        assert user.position == (100, 100)
        assert agent.position == (500, 100)
        assert user.status == FlowNodeStatus.COMPLETE
        assert agent.status == FlowNodeStatus.ACTIVE
        assert user.payload["full_content"] == "Build a todo app"
        assert graph.edges == (
            FlowEdge(
                id="e-user-t1-agent-t1", source_id="user-t1", target_id="agent-t1", animated=True
            ),
        )
        assert turn.origin_y == 100

    def test_user_preview_truncated(self) -> None:
        """Test long prompts are shortened in the preview."""
        projector = FlowGraphProjector()
        prompt = "x" * 60

        projector.begin_turn("t1", prompt)

        assert projector.graph.get_node("user-t1").payload["preview"] == "x" * 50 + "..."

    def test_agent_preview(self) -> None:
        """Test agent preview is limited to 80 characters."""
        projector = FlowGraphProjector()
        turn = projector.begin_turn("t1", "p")

        projector.update_agent(turn, "y" * 100)

        payload = projector.graph.get_node("agent-t1").payload
        assert payload["preview"] == "y" * 80 + "..."
        assert payload["full_content"] == "y" * 100

    def test_artifacts_stack_vertically(self) -> None:
        """Test artifact nodes are spaced within the turn."""
        projector = FlowGraphProjector()
        turn = projector.begin_turn("t1", "p")

        first = projector.record_artifact(turn, Artifact.from_path("src/a.js", "1"))
        second = projector.record_artifact(turn, Artifact.from_path("b.css", "2"))

        assert first.id == "file-t1-src/a.js"
        assert first.label == "a.js"
        assert first.position == (900, 100)
        assert second.position == (900, 250)
        assert first.payload == {"preview": "javascript", "full_content": "1"}
        assert projector.graph.has_node("b.css") is False
        assert len(projector.graph.edges_touching("agent-t1")) == 3

    def test_repeated_artifact_updates_node(self) -> None:
        """Test the same path twice yields one node with the latest content."""
        projector = FlowGraphProjector()
        turn = projector.begin_turn("t1", "p")
        projector.record_artifact(turn, Artifact.from_path("a.py", "v1"))
        count = len(projector.graph)

        node = projector.record_artifact(turn, Artifact.from_path("a.py", "v2"))

        assert len(projector.graph) == count
        assert node.payload["full_content"] == "v2"
        assert node.position == (900, 100)

    def test_grounding_creates_then_updates_tool_node(self) -> None:
        """Test a single tool node per turn."""
        projector = FlowGraphProjector()
        turn = projector.begin_turn("t1", "p")
        grounding = {"groundingChunks": [{"web": {"uri": "a"}}, {"web": {"uri": "b"}}]}

        tool = projector.record_grounding(turn, grounding)

        assert tool.id == "tool-t1"
        assert tool.position == (300, 250)
        assert tool.payload["preview"] == "Found 2 sources"
        assert json.loads(tool.payload["full_content"]) == grounding

        updated = projector.record_grounding(turn, {"groundingChunks": [{}]})
        assert updated.id == "tool-t1"
        assert updated.payload["preview"] == "Found 1 sources"
        assert len([n for n in projector.graph.nodes if n.kind == FlowNodeKind.TOOL]) == 1

    def test_next_turn_below_previous(self) -> None:
        """Test a new turn starts below the lowest existing node."""
        projector = FlowGraphProjector()
        turn = projector.begin_turn("t1", "p")
        projector.record_artifact(turn, Artifact.from_path("a.py"))
        projector.record_artifact(turn, Artifact.from_path("b.py"))
        projector.end_turn(turn)

        second = projector.begin_turn("t2", "again")

        assert second.origin_y == 250 + 300
        assert projector.graph.get_node("user-t2").y == 550

    def test_end_turn(self) -> None:
        """Test ending a turn settles the agent and stops animation."""
        projector = FlowGraphProjector()
        turn = projector.begin_turn("t1", "p")
        projector.record_artifact(turn, Artifact.from_path("a.py"))

        projector.end_turn(turn, FlowNodeStatus.ERROR)

        assert projector.graph.get_node("agent-t1").status == FlowNodeStatus.ERROR
        assert not any(edge.animated for edge in projector.graph.edges)
        assert turn.closed

        version = projector.graph.version
        projector.end_turn(turn)
        assert projector.graph.version == version

    def test_custom_config(self) -> None:
        """Test layout follows the configuration."""
        config = EngineConfig(artifact_x=1200, artifact_spacing=50, agent_label="Coder")
        projector = FlowGraphProjector(config=config)
        turn = projector.begin_turn("t1", "p")
        projector.record_artifact(turn, Artifact.from_path("a.py"))
        node = projector.record_artifact(turn, Artifact.from_path("b.py"))

        assert node.position == (1200, 150)
        assert projector.graph.get_node("agent-t1").label == "Coder"

    def test_no_dangling_edges(self) -> None:
        """Test every edge references existing nodes after a full turn."""
        projector = FlowGraphProjector()
        turn = projector.begin_turn("t1", "p")
        projector.record_grounding(turn, {"groundingChunks": []})
        projector.record_artifact(turn, Artifact.from_path("a.py"))
        projector.end_turn(turn)

        assert projector.graph.dangling_edges() == []
