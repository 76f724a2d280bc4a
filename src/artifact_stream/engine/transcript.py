"""Chat transcript surface and prompt augmentation.

The transcript is the chat view of a conversation: user requests and model
responses, with the model message filled in as the stream grows. Prompt
helpers add the current project files and an optional thinking-format hint
to the request sent to the backend.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from artifact_stream.engine.artifacts import Artifact

__all__ = [
    "PROJECT_CONTEXT_HEADER",
    "THINKING_HINT",
    "ChatMessage",
    "Role",
    "TokenUsage",
    "Transcript",
    "build_effective_prompt",
    "render_project_context",
]

THINKING_HINT = (
    "\nPlease wrap your thought process in <think>...</think> tags "
    "before providing the final answer."
)

PROJECT_CONTEXT_HEADER = (
    "\n\nCurrent Project Context (The user has these files open, "
    "consider their content when answering):\n"
)


class Role(str, Enum):
    """Author of a chat message."""

    USER = "user"
    MODEL = "model"


class TokenUsage(BaseModel):
    """Token counters reported by the backend.

    Accepts both field names and the backend's camelCase keys
    (``promptTokenCount``, ``candidatesTokenCount``, ``totalTokenCount``).
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    prompt_tokens: int = Field(default=0, alias="promptTokenCount")
    response_tokens: int = Field(default=0, alias="candidatesTokenCount")
    total_tokens: int = Field(default=0, alias="totalTokenCount")


@dataclass
class ChatMessage:
    """A single chat message.

    Attributes:
        id: Unique message id.
        role: User or model.
        text: Message text (for model messages, the raw stream buffer).
        images: Attached images as base64 data URLs.
        is_loading: True until the first chunk arrives.
        usage: Latest token usage for model messages.
        error: Error note when the response failed or was stopped.
    """

    id: str
    role: Role
    text: str = ""
    images: list[str] = field(default_factory=list)
    is_loading: bool = False
    usage: TokenUsage | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "role": self.role.value,
            "text": self.text,
            "images": list(self.images),
            "is_loading": self.is_loading,
            "usage": self.usage.model_dump() if self.usage else None,
            "error": self.error,
        }


_MESSAGE_FIELDS = frozenset(f.name for f in fields(ChatMessage)) - {"id"}


class Transcript:
    """Ordered list of chat messages with id lookup."""

    def __init__(self, messages: Iterable[ChatMessage] | None = None) -> None:
        self._messages: list[ChatMessage] = []
        for message in messages or ():
            self.append(message)

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return tuple(self._messages)

    def append(self, message: ChatMessage) -> ChatMessage:
        """Append a message.

        Raises:
            ValueError: If a message with the same id exists.
        """
        if self.get(message.id) is not None:
            raise ValueError(f"Duplicate message id: {message.id}")
        self._messages.append(message)
        return message

    def get(self, message_id: str) -> ChatMessage | None:
        """Find a message by id."""
        return next((m for m in self._messages if m.id == message_id), None)

    def update(self, message_id: str, **changes: Any) -> ChatMessage:
        """Update fields of a message in place.

        Raises:
            KeyError: If the message does not exist.
            ValueError: If an unknown field is given.
        """
        message = self.get(message_id)
        if message is None:
            raise KeyError(message_id)
        unknown = set(changes) - _MESSAGE_FIELDS
        if unknown:
            raise ValueError(f"Unknown message fields: {sorted(unknown)}")
        for name, value in changes.items():
            setattr(message, name, value)
        return message

    def truncate_before(self, message_id: str) -> list[ChatMessage]:
        """Drop a message and everything after it, for edit-and-resend.

        Returns:
            The remaining history (messages before ``message_id``).

        Raises:
            KeyError: If the message does not exist.
        """
        for index, message in enumerate(self._messages):
            if message.id == message_id:
                del self._messages[index:]
                return list(self._messages)
        raise KeyError(message_id)

    def clear(self) -> None:
        self._messages.clear()

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(self.messages)


# =============================================================================
# Prompt augmentation
# =============================================================================


def render_project_context(artifacts: Iterable[Artifact]) -> str:
    """Render artifacts back into the file tag format, separated by blank lines."""
    return "\n\n".join(
        f'<file path="{artifact.path}">\n{artifact.content}\n</file>' for artifact in artifacts
    )


def build_effective_prompt(
    prompt: str,
    artifacts: Iterable[Artifact] = (),
    *,
    thinking_hint: bool = False,
) -> str:
    """Build the prompt actually sent to the backend.

    Args:
        prompt: The user's request.
        artifacts: Current project files to include as context.
        thinking_hint: Ask the model to wrap reasoning in think tags.

    Returns:
        The augmented prompt.
    """
    effective = prompt
    if thinking_hint:
        effective += THINKING_HINT

    context = render_project_context(artifacts)
    if context:
        effective += PROJECT_CONTEXT_HEADER + context
    return effective
