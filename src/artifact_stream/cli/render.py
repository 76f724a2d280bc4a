"""Rich renderables for the derived stream views.

This module provides:
- render_segments: prose with fenced code highlighted, thoughts as panels
- render_file_tree: the project tree as a Rich Tree
- render_artifacts / render_flow_graph: tables of artifacts and graph nodes
- LiveStreamView: a StreamListener that keeps a Rich Live display current

Example:
    ```python
    from artifact_stream.cli.render import LiveStreamView
    from artifact_stream.engine import StreamCoordinator

    with LiveStreamView() as view:
        coordinator = StreamCoordinator(listeners=[view])
        await coordinator.run("Build a page", source)
    ```
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rich.console import Console, Group, RenderableType
from rich.live import Live
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from artifact_stream.cli.console import BOX_STYLES, get_console
from artifact_stream.engine.blocks import LineKind, SpanKind, parse_blocks, parse_lines
from artifact_stream.engine.events import StreamListener

if TYPE_CHECKING:
    from collections.abc import Sequence

    from artifact_stream.engine.artifacts import Artifact
    from artifact_stream.engine.blocks import InlineSpan
    from artifact_stream.engine.graph import FlowEdge, FlowNode
    from artifact_stream.engine.segments import Segment
    from artifact_stream.engine.tree import FileTreeNode

__all__ = [
    "LINE_NUMBER_THRESHOLD",
    "LiveStreamView",
    "create_syntax",
    "render_artifacts",
    "render_blocks",
    "render_file_tree",
    "render_flow_graph",
    "render_inline",
    "render_lines",
    "render_segments",
    "render_thought",
]

# Line threshold for showing line numbers
LINE_NUMBER_THRESHOLD = 10

_SPAN_STYLES: dict[SpanKind, str] = {
    SpanKind.TEXT: "",
    SpanKind.CODE: "code",
    SpanKind.BOLD: "bold",
}


# =============================================================================
# Prose and Code
# =============================================================================


def create_syntax(
    code: str,
    language: str = "text",
    *,
    line_numbers: bool | None = None,
    theme: str = "monokai",
) -> Syntax:
    """Create a Rich Syntax object for a code block or artifact.

    Args:
        code: Source code, shown verbatim.
        language: Lexer name; unknown names render as plain text.
        line_numbers: Show line numbers (auto if None).
        theme: Pygments color theme.

    Returns:
        Configured Syntax object.
    """
    if line_numbers is None:
        line_numbers = code.count("\n") + 1 >= LINE_NUMBER_THRESHOLD
    return Syntax(code, language, line_numbers=line_numbers, theme=theme, word_wrap=True)


def render_inline(spans: Sequence[InlineSpan], *, style: str = "") -> Text:
    """Render inline spans into one styled Text."""
    text = Text(style=style)
    for span in spans:
        text.append(span.text, style=_SPAN_STYLES[span.kind])
    return text


def render_lines(text: str) -> Text:
    """Render a text block line by line (headings, list items, paragraphs)."""
    rendered = Text()
    for index, line in enumerate(parse_lines(text)):
        if index:
            rendered.append("\n")
        if line.kind == LineKind.HEADING:
            rendered.append_text(render_inline(line.spans, style="heading"))
        elif line.kind == LineKind.BULLET:
            rendered.append("  • ", style="marker")
            rendered.append_text(render_inline(line.spans))
        elif line.kind == LineKind.ORDERED:
            rendered.append(f"  {line.marker} ", style="marker")
            rendered.append_text(render_inline(line.spans))
        elif line.kind == LineKind.PARAGRAPH:
            rendered.append_text(render_inline(line.spans))
    return rendered


def render_blocks(text: str) -> list[RenderableType]:
    """Render prose text with fenced code blocks highlighted."""
    parts: list[RenderableType] = []
    for block in parse_blocks(text):
        if block.is_code:
            parts.append(create_syntax(block.text, block.language or "text"))
        else:
            parts.append(render_lines(block.text))
    return parts


def render_thought(segment: Segment) -> Panel:
    """Render a thought segment as a dimmed panel.

    Open thoughts (the model is still reasoning) get a "Thinking..." title.
    """
    title = "Thought process" if segment.closed else "Thinking..."
    return Panel(
        Text(segment.text.strip(), style="thought"),
        title=f"[thought.title]{title}[/]",
        title_align="left",
        border_style="muted",
        box=BOX_STYLES["minimal"],
    )


def render_segments(segments: Sequence[Segment]) -> Group:
    """Render all segments in stream order."""
    parts: list[RenderableType] = []
    for segment in segments:
        if segment.is_thought:
            parts.append(render_thought(segment))
        else:
            parts.extend(render_blocks(segment.text))
    return Group(*parts)


# =============================================================================
# Artifacts, Tree and Graph
# =============================================================================


def _add_tree_nodes(branch: Tree, nodes: Sequence[FileTreeNode]) -> None:
    for node in nodes:
        if node.is_directory:
            child = branch.add(Text(f"{node.name}/", style="directory"), guide_style="dim")
            _add_tree_nodes(child, node.children)
        else:
            branch.add(Text(node.name, style="path"))


def render_file_tree(nodes: Sequence[FileTreeNode], *, root_label: str = "Project") -> Tree:
    """Render the project tree (directories first, as built)."""
    tree = Tree(Text(root_label, style="bold white"), guide_style="dim")
    _add_tree_nodes(tree, nodes)
    return tree


def render_artifacts(artifacts: Sequence[Artifact]) -> Table:
    """Render a table of stored artifacts in insertion order."""
    table = Table(box=BOX_STYLES["table"], header_style="bold", expand=False)
    table.add_column("Path", style="path")
    table.add_column("Language", style="language")
    table.add_column("Lines", justify="right")
    table.add_column("Chars", justify="right", style="dim")
    for artifact in artifacts:
        lines = artifact.content.count("\n") + 1 if artifact.content else 0
        table.add_row(artifact.path, artifact.language, str(lines), str(len(artifact.content)))
    return table


def render_flow_graph(nodes: Sequence[FlowNode], edges: Sequence[FlowEdge]) -> Table:
    """Render flow graph nodes with their position and incoming edges."""
    incoming: dict[str, list[str]] = {}
    for edge in edges:
        arrow = "~>" if edge.animated else "->"
        incoming.setdefault(edge.target_id, []).append(f"{edge.source_id} {arrow}")

    table = Table(box=BOX_STYLES["table"], header_style="bold", expand=False)
    table.add_column("Node")
    table.add_column("Status")
    table.add_column("Position", justify="right", style="dim")
    table.add_column("From", style="dim")
    table.add_column("Preview", overflow="ellipsis", no_wrap=True, max_width=48)

    for node in nodes:
        label = Text(node.label, style=f"node.{node.kind.value}")
        if node.sub_label:
            label.append(f" · {node.sub_label}", style="dim")
        table.add_row(
            label,
            Text(node.status.value, style=f"status.{node.status.value}"),
            f"{node.x:g}, {node.y:g}",
            ", ".join(incoming.get(node.id, [])),
            str(node.payload.get("preview", "")).replace("\n", " "),
        )
    return table


# =============================================================================
# Live Display
# =============================================================================


class LiveStreamView(StreamListener):
    """Keeps a Rich Live display in sync with coordinator notifications.

    Without an active Live display (non-interactive output) the view only
    records the latest state; call :meth:`render` to print it once.
    """

    def __init__(
        self,
        console: Console | None = None,
        *,
        show_tree: bool = True,
        show_graph: bool = True,
        refresh_per_second: int = 10,
    ) -> None:
        """Initialize the live view.

        Args:
            console: Rich console instance.
            show_tree: Whether to show the project tree.
            show_graph: Whether to show the flow graph table.
            refresh_per_second: Live refresh rate.
        """
        self.console = console or get_console()
        self.show_tree = show_tree
        self.show_graph = show_graph
        self.refresh_per_second = refresh_per_second

        self.segments: list[Segment] = []
        self.artifacts: tuple[Artifact, ...] = ()
        self.tree: list[FileTreeNode] = []
        self.nodes: tuple[FlowNode, ...] = ()
        self.edges: tuple[FlowEdge, ...] = ()
        self.update_count = 0

        self._live: Live | None = None

    @property
    def is_live(self) -> bool:
        return self._live is not None

    def start(self) -> None:
        """Start the live display."""
        self._live = Live(
            self.render(),
            console=self.console,
            refresh_per_second=self.refresh_per_second,
            transient=False,
        )
        self._live.start()

    def stop(self) -> None:
        """Stop the live display, leaving the last frame on screen."""
        if self._live:
            self._live.update(self.render(), refresh=True)
            self._live.stop()
            self._live = None

    # StreamListener callbacks

    def on_rendered_text_update(self, segments: Sequence[Segment]) -> None:
        self.segments = list(segments)
        self._update()

    def on_artifacts_changed(self, artifacts: tuple[Artifact, ...]) -> None:
        self.artifacts = artifacts
        self._update()

    def on_tree_changed(self, tree: Sequence[FileTreeNode]) -> None:
        self.tree = list(tree)
        self._update()

    def on_graph_changed(self, nodes: tuple[FlowNode, ...], edges: tuple[FlowEdge, ...]) -> None:
        self.nodes = nodes
        self.edges = edges
        self._update()

    def _update(self) -> None:
        self.update_count += 1
        if self._live:
            self._live.update(self.render())

    def render(self) -> Group:
        """Render the complete display."""
        parts: list[RenderableType] = [render_segments(self.segments)]

        if self.artifacts:
            parts.append(Text())
            parts.append(render_artifacts(self.artifacts))
        if self.show_tree and self.tree:
            parts.append(Text())
            parts.append(render_file_tree(self.tree))
        if self.show_graph and self.nodes:
            parts.append(Text())
            parts.append(render_flow_graph(self.nodes, self.edges))

        return Group(*parts)

    def __enter__(self) -> LiveStreamView:
        self.start()
        return self

    def __exit__(self, *args: Any) -> None:
        self.stop()
