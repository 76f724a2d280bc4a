"""Thinking-block segmentation for streamed model output.

Splits the accumulated response text into ordered prose and thought
segments. A thought opens with ``<think>`` and runs until ``</think>`` or
the end of the available text, so a model that is still "thinking" yields
an open trailing thought segment.

Two forms are provided:

- :func:`split_segments`: pure function over a complete text snapshot.
- :class:`SegmentSplitter`: incremental wrapper that caches closed
  segments and only re-splits the unsettled tail of a growing buffer.

Example:
    ```python
    splitter = SegmentSplitter()
    splitter.feed("Intro <think>still reason")
    # [Segment(PROSE, "Intro "), Segment(THOUGHT, "still reason", closed=False)]
    splitter.feed("Intro <think>still reasoning</think> done")
    ```
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

__all__ = [
    "THINK_CLOSE",
    "THINK_OPEN",
    "Segment",
    "SegmentKind",
    "SegmentSplitter",
    "split_segments",
]

THINK_OPEN = "<think>"
THINK_CLOSE = "</think>"


class SegmentKind(str, Enum):
    """Kind of a top-level stream segment."""

    PROSE = "prose"
    THOUGHT = "thought"


@dataclass(frozen=True)
class Segment:
    """A contiguous slice of the stream buffer.

    Attributes:
        kind: Prose or thought.
        text: Segment text without thinking markers.
        start: Buffer offset where the segment starts (at the opening
            marker for thoughts).
        end: Buffer offset just past the segment (past the closing marker
            for closed thoughts).
        closed: True once the segment can no longer change as more text
            arrives. Closed segments are never revised by later splits.
    """

    kind: SegmentKind
    text: str
    start: int
    end: int
    closed: bool = True

    @property
    def is_thought(self) -> bool:
        return self.kind == SegmentKind.THOUGHT

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "kind": self.kind.value,
            "text": self.text,
            "start": self.start,
            "end": self.end,
            "closed": self.closed,
        }


def _partial_marker_length(text: str, marker: str) -> int:
    """Length of the longest proper prefix of ``marker`` that ends ``text``."""
    for size in range(min(len(marker) - 1, len(text)), 0, -1):
        if text.endswith(marker[:size]):
            return size
    return 0


def split_segments(text: str, *, final: bool = False, offset: int = 0) -> list[Segment]:
    """Split text into ordered prose and thought segments.

    While ``final`` is False, a marker cut in half at the very end of the
    text (e.g. ``"<thi"`` or ``"</th"``) is held back from the trailing
    segment so that a half-arrived tag never shows up as content. With
    ``final=True`` the trailing segment is taken as-is and marked closed;
    no closing marker is invented for an unterminated thought.

    Args:
        text: Text to split.
        final: Whether the stream has ended.
        offset: Buffer offset of ``text[0]``, added to segment positions.

    Returns:
        Segments in buffer order. Empty prose is not emitted.
    """
    segments: list[Segment] = []
    pos = 0
    length = len(text)

    while pos < length:
        open_at = text.find(THINK_OPEN, pos)

        if open_at == -1:
            end = length
            if not final:
                end -= _partial_marker_length(text[pos:], THINK_OPEN)
            if end > pos:
                segments.append(
                    Segment(
                        kind=SegmentKind.PROSE,
                        text=text[pos:end],
                        start=offset + pos,
                        end=offset + end,
                        closed=final,
                    )
                )
            break

        if open_at > pos:
            segments.append(
                Segment(
                    kind=SegmentKind.PROSE,
                    text=text[pos:open_at],
                    start=offset + pos,
                    end=offset + open_at,
                )
            )

        body_start = open_at + len(THINK_OPEN)
        close_at = text.find(THINK_CLOSE, body_start)

        if close_at == -1:
            end = length
            if not final:
                end -= _partial_marker_length(text[body_start:], THINK_CLOSE)
            segments.append(
                Segment(
                    kind=SegmentKind.THOUGHT,
                    text=text[body_start:end],
                    start=offset + open_at,
                    end=offset + end,
                    closed=final,
                )
            )
            break

        pos = close_at + len(THINK_CLOSE)
        segments.append(
            Segment(
                kind=SegmentKind.THOUGHT,
                text=text[body_start:close_at],
                start=offset + open_at,
                end=offset + pos,
            )
        )

    return segments


class SegmentSplitter:
    """Incremental splitter for one append-only buffer.

    Closed segments are cached and the buffer is only re-split from the end
    of the last closed segment, so settled text is never processed twice.
    """

    def __init__(self) -> None:
        self._closed: list[Segment] = []
        self._offset = 0

    @property
    def settled_offset(self) -> int:
        """Buffer offset up to which all segments are closed."""
        return self._offset

    def feed(self, buffer: str) -> list[Segment]:
        """Split the current buffer.

        Args:
            buffer: The full buffer so far. Must extend the previous one.

        Returns:
            All segments: the cached closed prefix plus the re-split tail.

        Raises:
            ValueError: If the buffer is shorter than the settled prefix.
        """
        tail = self._split_tail(buffer, final=False)
        settled = 0
        for segment in tail:
            if not segment.closed:
                break
            settled += 1
        if settled:
            self._closed.extend(tail[:settled])
            self._offset = tail[settled - 1].end
        return [*self._closed, *tail[settled:]]

    def finalize(self, buffer: str) -> list[Segment]:
        """Split the buffer for the last time, closing any open segment."""
        tail = self._split_tail(buffer, final=True)
        return [*self._closed, *tail]

    def reset(self) -> None:
        """Forget all cached segments (for a new buffer)."""
        self._closed = []
        self._offset = 0

    def _split_tail(self, buffer: str, *, final: bool) -> list[Segment]:
        if len(buffer) < self._offset:
            raise ValueError(
                f"Buffer shrank below settled offset ({len(buffer)} < {self._offset}); "
                f"call reset() before feeding a new buffer"
            )
        return split_segments(buffer[self._offset :], final=final, offset=self._offset)
