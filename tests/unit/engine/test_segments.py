"""Tests for thinking-block segmentation."""

from __future__ import annotations

import pytest

from artifact_stream.engine.segments import (
    Segment,
    SegmentKind,
    SegmentSplitter,
    split_segments,
)

# =============================================================================
# split_segments Tests
# =============================================================================


class TestSplitSegments:
    """Tests for the pure split function."""

    def test_prose_and_closed_thought(self) -> None:
        """Test prose around a closed thought."""
        segments = split_segments("Hello <think>plan</think> world", final=True)

        assert [s.kind for s in segments] == [
            SegmentKind.PROSE,
            SegmentKind.THOUGHT,
            SegmentKind.PROSE,
        ]
        assert [s.text for s in segments] == ["Hello ", "plan", " world"]
        assert segments[1].start == 6
        assert segments[1].end == 25
        assert all(s.closed for s in segments)

    def test_empty_text(self) -> None:
        """Test empty text yields no segments."""
        assert split_segments("") == []
        assert split_segments("", final=True) == []

    def test_no_empty_prose_around_thought(self) -> None:
        """Test a bare thought yields a single segment."""
        segments = split_segments("<think>only</think>")

        assert len(segments) == 1
        assert segments[0].is_thought
        assert segments[0].text == "only"
        assert segments[0].closed

    def test_unterminated_thought_is_open(self) -> None:
        """Test a thought without close marker stays open while streaming."""
        segments = split_segments("Hi <think>still going")

        assert segments[0] == Segment(SegmentKind.PROSE, "Hi ", 0, 3, closed=True)
        assert segments[1].kind == SegmentKind.THOUGHT
        assert segments[1].text == "still going"
        assert not segments[1].closed

    def test_unterminated_thought_finalized_as_is(self) -> None:
        """Test finalizing keeps the open thought text without inventing a close."""
        segments = split_segments("<think>abc", final=True)

        assert len(segments) == 1
        assert segments[0].text == "abc"
        assert segments[0].closed
        assert segments[0].end == len("<think>abc")

    def test_trailing_prose_open_until_final(self) -> None:
        """Test trailing prose can still grow while streaming."""
        assert not split_segments("just prose")[0].closed
        assert split_segments("just prose", final=True)[0].closed

    def test_partial_open_marker_held_back(self) -> None:
        """Test a half-arrived open marker is not shown as prose."""
        segments = split_segments("Hi <thi")

        assert len(segments) == 1
        assert segments[0].text == "Hi "

    def test_partial_open_marker_kept_when_final(self) -> None:
        """Test a dangling marker prefix is literal text once the stream ends."""
        segments = split_segments("Hi <thi", final=True)

        assert segments[0].text == "Hi <thi"

    def test_partial_close_marker_held_back(self) -> None:
        """Test a half-arrived close marker is not shown as thought text."""
        segments = split_segments("<think>abc</th")

        assert segments[0].text == "abc"
        assert not segments[0].closed

    def test_multiple_thoughts(self) -> None:
        """Test several thoughts interleaved with prose."""
        segments = split_segments("a<think>b</think>c<think>d</think>e", final=True)

        assert [s.text for s in segments] == ["a", "b", "c", "d", "e"]
        assert [s.is_thought for s in segments] == [False, True, False, True, False]

    def test_offset_applied(self) -> None:
        """Test positions are shifted by the offset."""
        segments = split_segments("x<think>y</think>", offset=10)

        assert segments[0].start == 10
        assert segments[1].start == 11
        assert segments[1].end == 10 + len("x<think>y</think>")

    def test_to_dict(self) -> None:
        """Test serialization to dictionary."""
        data = split_segments("<think>t", final=False)[0].to_dict()

        assert data == {"kind": "thought", "text": "t", "start": 0, "end": 8, "closed": False}


# =============================================================================
# SegmentSplitter Tests
# =============================================================================


class TestSegmentSplitter:
    """Tests for the incremental splitter."""

    def test_closed_segments_are_cached(self) -> None:
        """Test closed segments are not revised as the buffer grows."""
        splitter = SegmentSplitter()

        first = splitter.feed("Intro <think>rea")
        assert [s.text for s in first] == ["Intro ", "rea"]
        assert splitter.settled_offset == 6

        second = splitter.feed("Intro <think>reasoning</think> done")
        assert second[0] is first[0]
        assert [s.text for s in second] == ["Intro ", "reasoning", " done"]
        assert second[1].closed
        assert not second[2].closed
        assert splitter.settled_offset == 30

    def test_char_by_char_matches_full_split(self) -> None:
        """Test feeding one character at a time converges to the full split."""
        text = "A<think>b and c</think>C ```py\nx\n``` <think>d"
        splitter = SegmentSplitter()

        for end in range(1, len(text) + 1):
            result = splitter.feed(text[:end])

        assert result == split_segments(text)
        assert splitter.finalize(text) == split_segments(text, final=True)

    def test_closed_prefix_never_changes(self) -> None:
        """Test a closed segment keeps its text once reported."""
        text = "x<think>one</think>y<think>two</think>z"
        splitter = SegmentSplitter()
        seen: dict[int, Segment] = {}

        for end in range(1, len(text) + 1):
            for segment in splitter.feed(text[:end]):
                if segment.closed:
                    assert seen.setdefault(segment.start, segment) == segment

    def test_finalize_closes_open_thought(self) -> None:
        """Test finalize marks the trailing thought closed."""
        splitter = SegmentSplitter()
        splitter.feed("<think>half")

        segments = splitter.finalize("<think>half")

        assert segments[-1].text == "half"
        assert segments[-1].closed

    def test_shrinking_buffer_rejected(self) -> None:
        """Test a buffer shorter than the settled prefix raises."""
        splitter = SegmentSplitter()
        splitter.feed("<think>done</think> tail")

        with pytest.raises(ValueError, match="reset"):
            splitter.feed("<think>")

    def test_reset(self) -> None:
        """Test reset allows a new buffer."""
        splitter = SegmentSplitter()
        splitter.feed("<think>done</think> tail")
        splitter.reset()

        assert splitter.settled_offset == 0
        assert [s.text for s in splitter.feed("new")] == ["new"]
