"""Tests for the chat transcript and prompt augmentation."""

from __future__ import annotations

import pytest

from artifact_stream.engine.artifacts import Artifact
from artifact_stream.engine.events import StreamMetadata, StreamUpdate
from artifact_stream.engine.transcript import (
    PROJECT_CONTEXT_HEADER,
    THINKING_HINT,
    ChatMessage,
    Role,
    TokenUsage,
    Transcript,
    build_effective_prompt,
    render_project_context,
)


class TestTranscript:
    """Tests for Transcript."""

    def test_append_and_get(self) -> None:
        """Test appending and looking up messages."""
        transcript = Transcript()
        transcript.append(ChatMessage(id="1", role=Role.USER, text="hi"))

        assert transcript.get("1").text == "hi"
        assert transcript.get("2") is None
        assert len(transcript) == 1

    def test_duplicate_id_rejected(self) -> None:
        """Test message ids are unique."""
        transcript = Transcript([ChatMessage(id="1", role=Role.USER)])

        with pytest.raises(ValueError, match="Duplicate"):
            transcript.append(ChatMessage(id="1", role=Role.MODEL))

    def test_update(self) -> None:
        """Test updating fields in place."""
        transcript = Transcript([ChatMessage(id="m", role=Role.MODEL, is_loading=True)])

        message = transcript.update("m", text="partial", is_loading=False)

        assert message.text == "partial"
        assert not message.is_loading

    def test_update_unknown_field(self) -> None:
        """Test unknown fields are rejected."""
        transcript = Transcript([ChatMessage(id="m", role=Role.MODEL)])

        with pytest.raises(ValueError, match="bogus"):
            transcript.update("m", bogus=1)

    def test_update_missing_message(self) -> None:
        """Test updating an unknown message raises KeyError."""
        with pytest.raises(KeyError):
            Transcript().update("nope", text="x")

    def test_truncate_before(self) -> None:
        """Test edit-and-resend drops the message and everything after."""
        transcript = Transcript(
            [
                ChatMessage(id="u1", role=Role.USER, text="first"),
                ChatMessage(id="m1", role=Role.MODEL, text="answer"),
                ChatMessage(id="u2", role=Role.USER, text="second"),
                ChatMessage(id="m2", role=Role.MODEL, text="answer 2"),
            ]
        )

        history = transcript.truncate_before("u2")

        assert [m.id for m in history] == ["u1", "m1"]
        assert [m.id for m in transcript] == ["u1", "m1"]

    def test_to_dict(self) -> None:
        """Test serialization to dictionary."""
        message = ChatMessage(
            id="m",
            role=Role.MODEL,
            text="t",
            usage=TokenUsage(prompt_tokens=1, response_tokens=2, total_tokens=3),
        )

        data = message.to_dict()

        assert data["role"] == "model"
        assert data["usage"] == {"prompt_tokens": 1, "response_tokens": 2, "total_tokens": 3}


class TestTokenUsage:
    """Tests for backend usage parsing."""

    def test_backend_aliases(self) -> None:
        """Test camelCase keys from the backend."""
        usage = TokenUsage.model_validate(
            {"promptTokenCount": 10, "candidatesTokenCount": 20, "totalTokenCount": 30}
        )

        assert (usage.prompt_tokens, usage.response_tokens, usage.total_tokens) == (10, 20, 30)

    def test_stream_metadata(self) -> None:
        """Test metadata with grounding and usage."""
        metadata = StreamMetadata.model_validate(
            {
                "groundingMetadata": {"groundingChunks": [{}, {}, {}]},
                "usageMetadata": {"totalTokenCount": 5},
            }
        )

        assert metadata.source_count == 3
        assert metadata.usage.total_tokens == 5
        assert StreamMetadata().source_count == 0

    def test_stream_update_defaults(self) -> None:
        """Test an update may carry only metadata."""
        update = StreamUpdate(metadata=StreamMetadata(usage=TokenUsage(total_tokens=1)))

        assert update.text == ""
        assert update.metadata.usage.total_tokens == 1


class TestBuildEffectivePrompt:
    """Tests for prompt augmentation."""

    def test_plain_prompt(self) -> None:
        """Test no context and no hint leaves the prompt unchanged."""
        assert build_effective_prompt("hello") == "hello"

    def test_thinking_hint(self) -> None:
        """Test the thinking hint is appended."""
        assert build_effective_prompt("hello", thinking_hint=True) == "hello" + THINKING_HINT

    def test_project_context(self) -> None:
        """Test current files are rendered back as file tags."""
        artifacts = [
            Artifact.from_path("a.py", "print(1)"),
            Artifact.from_path("b/c.css", "body {}"),
        ]

        prompt = build_effective_prompt("fix it", artifacts)

        assert prompt == (
            "fix it"
            + PROJECT_CONTEXT_HEADER
            + '<file path="a.py">\nprint(1)\n</file>\n\n<file path="b/c.css">\nbody {}\n</file>'
        )

    def test_context_round_trips_through_extraction(self) -> None:
        """Test rendered context can be extracted again."""
        from artifact_stream.engine.artifacts import extract_artifacts

        artifacts = [Artifact.from_path("a.py", "x = 1")]

        extracted = extract_artifacts(render_project_context(artifacts))

        assert extracted[0].path == "a.py"
        assert extracted[0].content == "x = 1\n"
