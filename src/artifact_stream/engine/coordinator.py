"""Stream coordinator: one streaming session fanned out to every derived view.

The coordinator owns the stream buffer of the active session and is the
only writer of the artifact store, the flow graph and the transcript. For
each chunk it runs, in order:

1. append the chunk to the session buffer
2. split thinking segments (incrementally)
3. extract newly closed file artifacts (incrementally)
4. upsert them into the store and project them onto the flow graph
5. rebuild the project tree if the store changed
6. notify listeners of each view that changed

Session lifecycle:

    IDLE -> STREAMING -> COMPLETED | CANCELLED | FAILED

Only one session may stream at a time; :meth:`StreamCoordinator.start`
rejects a second one with :class:`StreamAlreadyActiveError` rather than
queueing it. Cancellation and failure keep everything computed so far.

Example:
    ```python
    coordinator = StreamCoordinator(listeners=[my_view])
    coordinator.start("Create a landing page")
    await coordinator.consume(transport.stream(coordinator.session.effective_prompt))
    coordinator.store.snapshot()
    ```
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from artifact_stream.config import EngineConfig
from artifact_stream.engine.artifacts import Artifact, ArtifactExtractor
from artifact_stream.engine.events import StreamListener, StreamMetadata, StreamUpdate
from artifact_stream.engine.graph import FlowGraph, FlowGraphProjector, FlowNodeStatus, FlowTurn
from artifact_stream.engine.segments import Segment, SegmentSplitter
from artifact_stream.engine.store import ArtifactStore
from artifact_stream.engine.transcript import (
    ChatMessage,
    Role,
    TokenUsage,
    Transcript,
    build_effective_prompt,
)
from artifact_stream.engine.tree import FileTreeNode, build_file_tree
from artifact_stream.errors import (
    NoActiveStreamError,
    SessionClosedError,
    StreamAlreadyActiveError,
)
from artifact_stream.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import AsyncIterable, Iterable, Sequence

__all__ = [
    "CANCELLED_NOTE",
    "SessionState",
    "StreamCoordinator",
    "StreamSession",
]

logger = get_logger("engine.coordinator")

CANCELLED_NOTE = "Stopped by user."


class SessionState(str, Enum):
    """Lifecycle state of a stream session."""

    IDLE = "idle"
    STREAMING = "streaming"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


TERMINAL_STATES = frozenset({SessionState.COMPLETED, SessionState.CANCELLED, SessionState.FAILED})


@dataclass
class StreamSession:
    """One generation session.

    Attributes:
        id: Session id, also used as the flow graph turn id.
        prompt: The user's request.
        effective_prompt: Prompt to send to the backend (with context).
        state: Lifecycle state.
        buffer: Full text received so far (append-only).
        cancelled: True once cancellation was requested.
        error: Transport error for failed sessions.
        chunk_count: Number of chunks applied to the buffer.
        usage: Latest token usage reported.
        grounding: First grounding metadata reported.
    """

    id: str
    prompt: str
    effective_prompt: str
    state: SessionState = SessionState.STREAMING
    buffer: str = ""
    cancelled: bool = False
    error: BaseException | None = None
    chunk_count: int = 0
    usage: TokenUsage | None = None
    grounding: dict[str, Any] | None = None

    @property
    def terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def turn_id(self) -> str:
        return self.id

    @property
    def user_message_id(self) -> str:
        return f"{self.id}-user"

    @property
    def model_message_id(self) -> str:
        return f"{self.id}-model"


class StreamCoordinator:
    """Drives one stream at a time through the extraction pipeline.

    All state lives on the instance; there is no module-level session. The
    store, graph and transcript persist across sessions, while the buffer,
    segment cache and extractor offset are per session.
    """

    def __init__(
        self,
        *,
        store: ArtifactStore | None = None,
        graph: FlowGraph | None = None,
        transcript: Transcript | None = None,
        config: EngineConfig | None = None,
        listeners: Iterable[StreamListener] = (),
    ) -> None:
        """Initialize the coordinator.

        Args:
            store: Artifact store to update (new empty store by default).
            graph: Flow graph to project onto (new empty graph by default).
            transcript: Chat transcript to fill (new empty one by default).
            config: Engine configuration.
            listeners: View listeners to notify.
        """
        self.config = config or EngineConfig()
        self.store = store if store is not None else ArtifactStore()
        self.projector = FlowGraphProjector(graph, config=self.config)
        self.transcript = transcript if transcript is not None else Transcript()
        self._listeners: list[StreamListener] = list(listeners)

        self._session: StreamSession | None = None
        self._turn: FlowTurn | None = None
        self._splitter = SegmentSplitter()
        self._extractor = ArtifactExtractor()
        self._segments: list[Segment] = []
        self._tree: list[FileTreeNode] = build_file_tree(self.store.snapshot())
        self._published_store_version = self.store.version

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def session(self) -> StreamSession | None:
        """Most recent session (active or terminal)."""
        return self._session

    @property
    def state(self) -> SessionState:
        return self._session.state if self._session else SessionState.IDLE

    @property
    def is_streaming(self) -> bool:
        return self.state == SessionState.STREAMING

    @property
    def graph(self) -> FlowGraph:
        return self.projector.graph

    @property
    def segments(self) -> list[Segment]:
        """Segments of the current session's buffer."""
        return list(self._segments)

    @property
    def tree(self) -> list[FileTreeNode]:
        """Project tree built from the latest store snapshot."""
        return self._tree

    def add_listener(self, listener: StreamListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: StreamListener) -> None:
        self._listeners.remove(listener)

    # -------------------------------------------------------------------------
    # Session lifecycle
    # -------------------------------------------------------------------------

    def start(
        self,
        prompt: str,
        *,
        images: Sequence[str] = (),
        replace_from: str | None = None,
    ) -> StreamSession:
        """Start a new streaming session.

        Args:
            prompt: The user's request.
            images: Attached images (base64 data URLs) for the transcript.
            replace_from: Message id to edit-and-resend from; that message
                and everything after it are dropped from the transcript.

        Returns:
            The new session in STREAMING state.

        Raises:
            StreamAlreadyActiveError: If a session is still streaming.
        """
        if self._session is not None and self._session.state == SessionState.STREAMING:
            raise StreamAlreadyActiveError(self._session.id)

        if replace_from is not None:
            self.transcript.truncate_before(replace_from)

        cfg = self.config
        context = self.store.snapshot() if cfg.include_project_context else ()
        session = StreamSession(
            id=uuid.uuid4().hex[:12],
            prompt=prompt,
            effective_prompt=build_effective_prompt(
                prompt, context, thinking_hint=cfg.thinking_hint
            ),
        )

        self._session = session
        self._splitter.reset()
        self._extractor.reset()

        self.transcript.append(
            ChatMessage(
                id=session.user_message_id, role=Role.USER, text=prompt, images=list(images)
            )
        )
        self.transcript.append(
            ChatMessage(id=session.model_message_id, role=Role.MODEL, is_loading=True)
        )
        self._turn = self.projector.begin_turn(session.turn_id, prompt)

        logger.info(f"Stream {session.id} started ({len(context)} context files)")
        self._publish(segments=[], artifacts=self._store_changed(), graph=True)
        return session

    def on_chunk(self, text: str, metadata: StreamMetadata | None = None) -> bool:
        """Apply one text increment.

        Args:
            text: Text delta (may be empty when only metadata arrived).
            metadata: Optional grounding/usage metadata.

        Returns:
            True if the chunk was applied, False if it was dropped because
            the session was cancelled.

        Raises:
            NoActiveStreamError: If no session was started.
            SessionClosedError: If the session already completed or failed.
        """
        session = self._require_streaming("process a chunk")
        if session is None:
            return False
        turn = self._require_turn()

        graph_version = self.graph.version

        session.buffer += text
        session.chunk_count += 1

        segments = self._splitter.feed(session.buffer)

        for artifact in self._extractor.feed(session.buffer):
            outcome = self.store.upsert(artifact)
            self.projector.record_artifact(turn, artifact)
            logger.debug(f"Stream {session.id}: artifact {artifact.path} {outcome.value}")

        if metadata is not None:
            if metadata.usage is not None:
                session.usage = metadata.usage
            if metadata.grounding:
                if session.grounding is None:
                    session.grounding = metadata.grounding
                self.projector.record_grounding(turn, metadata.grounding)

        self.projector.update_agent(turn, session.buffer)
        self.transcript.update(
            session.model_message_id,
            text=session.buffer,
            is_loading=False,
            usage=session.usage,
        )

        self._publish(
            segments=segments,
            artifacts=self._store_changed(),
            graph=self.graph.version != graph_version,
        )
        return True

    def on_complete(self) -> None:
        """Mark the session completed after the last chunk.

        A completion that arrives after cancellation is ignored.
        """
        session = self._require_streaming("complete the stream")
        if session is None:
            return
        self._finish(session, SessionState.COMPLETED)

    def on_error(self, error: BaseException) -> None:
        """Mark the session failed, keeping everything extracted so far.

        An error that arrives after cancellation is ignored.
        """
        session = self._require_streaming("fail the stream")
        if session is None:
            return
        session.error = error
        logger.warning(f"Stream {session.id} failed: {error}")
        self.transcript.update(
            session.model_message_id,
            error=f"Error generating response: {error}",
        )
        self._finish(session, SessionState.FAILED)

    def cancel(self) -> bool:
        """Request cancellation of the streaming session.

        Returns:
            True if a streaming session was cancelled, False if there was
            nothing to cancel.
        """
        session = self._session
        if session is None or session.state != SessionState.STREAMING:
            return False
        session.cancelled = True
        self.transcript.update(session.model_message_id, error=CANCELLED_NOTE)
        self._finish(session, SessionState.CANCELLED)
        return True

    async def consume(self, source: AsyncIterable[StreamUpdate | str]) -> StreamSession:
        """Drive the started session from an async stream source.

        Chunks are applied strictly in order; the cancel flag is checked
        between chunks. Errors raised by the source mark the session failed
        and are re-raised unchanged. If the consuming task itself is
        cancelled, the session is cancelled too.

        Args:
            source: Async iterable of updates (plain strings are text deltas).

        Returns:
            The session in its terminal state.

        Raises:
            NoActiveStreamError: If no session was started.
            SessionClosedError: If the session is not streaming.
        """
        session = self._session
        if session is None:
            raise NoActiveStreamError("consume a stream")
        if session.state != SessionState.STREAMING:
            raise SessionClosedError(session.id, session.state.value, "consume a stream")

        iterator = aiter(source)
        try:
            while not session.cancelled:
                try:
                    update = await anext(iterator)
                except StopAsyncIteration:
                    break
                except Exception as e:
                    self.on_error(e)
                    raise

                if isinstance(update, str):
                    self.on_chunk(update)
                else:
                    self.on_chunk(update.text, update.metadata)
        except asyncio.CancelledError:
            self.cancel()
            raise
        finally:
            if session.cancelled and hasattr(iterator, "aclose"):
                await iterator.aclose()

        if session.state == SessionState.STREAMING:
            self.on_complete()
        return session

    async def run(
        self,
        prompt: str,
        source: AsyncIterable[StreamUpdate | str],
        *,
        images: Sequence[str] = (),
    ) -> StreamSession:
        """Start a session and consume ``source`` to the end."""
        self.start(prompt, images=images)
        return await self.consume(source)

    # -------------------------------------------------------------------------
    # User edits
    # -------------------------------------------------------------------------

    def create_artifact(self, path: str) -> Artifact:
        """Add an empty file to the project and publish the change."""
        artifact = self.store.create(path)
        self.sync_store()
        return artifact

    def update_artifact(self, path: str, content: str) -> Artifact:
        """Replace a file's content and publish the change.

        Raises:
            ArtifactNotFoundError: If the path is not stored.
        """
        artifact = self.store.update_content(path, content)
        self.sync_store()
        return artifact

    def remove_artifact(self, path: str) -> Artifact:
        """Delete a file from the project and publish the change.

        Raises:
            ArtifactNotFoundError: If the path is not stored.
        """
        artifact = self.store.remove(path)
        self.sync_store()
        return artifact

    def sync_store(self) -> bool:
        """Rebuild the tree and notify listeners if the store changed.

        Call after editing :attr:`store` directly. Returns True if anything
        was published.
        """
        if not self._store_changed():
            return False
        self._publish(artifacts=True)
        return True

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _store_changed(self) -> bool:
        return self.store.version != self._published_store_version

    def _require_streaming(self, operation: str) -> StreamSession | None:
        session = self._session
        if session is None:
            raise NoActiveStreamError(operation)
        if session.state == SessionState.CANCELLED:
            logger.debug(f"Stream {session.id} cancelled, ignoring request to {operation}")
            return None
        if session.terminal:
            raise SessionClosedError(session.id, session.state.value, operation)
        return session

    def _require_turn(self) -> FlowTurn:
        if self._turn is None:
            raise NoActiveStreamError("project onto the flow graph")
        return self._turn

    def _finish(self, session: StreamSession, state: SessionState) -> None:
        turn = self._require_turn()
        graph_version = self.graph.version

        pending = self._extractor.pending_path(session.buffer)
        if pending is not None:
            logger.debug(f"Stream {session.id}: discarding unterminated file tag for {pending}")

        segments = self._splitter.finalize(session.buffer)
        status = (
            FlowNodeStatus.COMPLETE if state == SessionState.COMPLETED else FlowNodeStatus.ERROR
        )
        self.projector.end_turn(turn, status)
        self.transcript.update(session.model_message_id, is_loading=False)
        session.state = state

        logger.info(
            f"Stream {session.id} {state.value} after {session.chunk_count} chunks "
            f"({len(session.buffer)} chars, {len(turn.artifact_nodes)} artifacts)"
        )
        self._publish(segments=segments, graph=self.graph.version != graph_version)

    def _publish(
        self,
        *,
        segments: list[Segment] | None = None,
        artifacts: bool = False,
        graph: bool = False,
    ) -> None:
        text_changed = segments is not None and segments != self._segments
        if segments is not None:
            self._segments = segments

        snapshot = self.store.snapshot() if artifacts else None
        if snapshot is not None:
            self._tree = build_file_tree(snapshot)
            self._published_store_version = self.store.version

        for listener in self._listeners:
            if text_changed:
                listener.on_rendered_text_update(list(self._segments))
            if snapshot is not None:
                listener.on_artifacts_changed(snapshot)
                listener.on_tree_changed(self._tree)
            if graph:
                nodes, edges = self.graph.snapshot()
                listener.on_graph_changed(nodes, edges)
