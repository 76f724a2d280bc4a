"""File artifact extraction from streamed model output.

Models declare files with a tagged convention:

    <file path="src/app.py">
    print("hello")
    </file>

The attribute value may use single or double quotes. Content is taken
verbatim up to the literal ``</file>``, with exactly one newline directly
after the opening tag removed. An opening tag that is not closed yet
produces nothing; it is retried once more text has arrived.

Example:
    ```python
    extract_artifacts('<file path="a/b.js">content</file>')
    # [Artifact(path="a/b.js", content="content", language="javascript")]

    extractor = ArtifactExtractor()
    extractor.feed('<file path="x.ts">ABC')  # []
    extractor.feed('<file path="x.ts">ABCDEF</file>')  # [Artifact("x.ts", ...)]
    ```
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from artifact_stream.errors import InvalidArtifactError

__all__ = [
    "DEFAULT_LANGUAGE",
    "FILE_OPEN_PATTERN",
    "FILE_TAG_PATTERN",
    "LANGUAGE_BY_EXTENSION",
    "Artifact",
    "ArtifactExtractor",
    "detect_language",
    "extract_artifacts",
]


# =============================================================================
# Constants
# =============================================================================

# Complete declaration; group 1 is the quote so both quotes must match
FILE_TAG_PATTERN = re.compile(
    r"<file\s+path=([\"'])([^\"']+)\1\s*>(.*?)</file>",
    re.DOTALL,
)

# Opening tag only, used to detect declarations still in flight
FILE_OPEN_PATTERN = re.compile(r"<file\s+path=([\"'])([^\"']+)\1\s*>")

DEFAULT_LANGUAGE = "text"

LANGUAGE_BY_EXTENSION: dict[str, str] = {
    "js": "javascript",
    "jsx": "javascript",
    "ts": "javascript",
    "tsx": "javascript",
    "html": "html",
    "css": "css",
    "json": "json",
    "py": "python",
}


# =============================================================================
# Data Structures
# =============================================================================


def detect_language(path: str) -> str:
    """Derive an artifact language from the path's final extension.

    Args:
        path: Artifact path.

    Returns:
        Language name, "text" when the extension is unknown or missing.
    """
    extension = path.rsplit(".", 1)[-1].lower()
    return LANGUAGE_BY_EXTENSION.get(extension, DEFAULT_LANGUAGE)


@dataclass(frozen=True)
class Artifact:
    """A named file extracted from the stream.

    Identity is the path: two artifacts with the same path are versions of
    the same file.

    Attributes:
        path: Non-empty file path, used as the unique key.
        content: File content.
        language: Language derived from the path extension.
    """

    path: str
    content: str
    language: str = DEFAULT_LANGUAGE

    def __post_init__(self) -> None:
        if not self.path:
            raise InvalidArtifactError("Artifact path must be a non-empty string")

    @classmethod
    def from_path(cls, path: str, content: str = "") -> Artifact:
        """Create an artifact with its language derived from the path."""
        return cls(path=path, content=content, language=detect_language(path))

    @property
    def name(self) -> str:
        """Final path segment."""
        return self.path.rstrip("/").rsplit("/", 1)[-1] or self.path

    def with_content(self, content: str) -> Artifact:
        """Copy of this artifact with new content."""
        return Artifact(path=self.path, content=content, language=self.language)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "path": self.path,
            "content": self.content,
            "language": self.language,
        }


# =============================================================================
# Extraction
# =============================================================================


def _artifact_from_match(match: re.Match[str]) -> Artifact:
    content = match.group(3)
    if content.startswith("\n"):
        content = content[1:]
    return Artifact.from_path(match.group(2), content)


def extract_artifacts(text: str) -> list[Artifact]:
    """Extract every complete file declaration from text.

    Args:
        text: Full or partial response text.

    Returns:
        Artifacts in declaration order. A path declared twice appears twice;
        deduplication is the store's job.
    """
    return [_artifact_from_match(match) for match in FILE_TAG_PATTERN.finditer(text)]


class ArtifactExtractor:
    """Incremental extractor for one growing buffer.

    Remembers where the last complete declaration ended and only scans from
    there, so each declaration is emitted exactly once per buffer.
    """

    def __init__(self) -> None:
        self._settled = 0

    @property
    def settled_offset(self) -> int:
        """Buffer offset just past the last complete declaration."""
        return self._settled

    def feed(self, buffer: str) -> list[Artifact]:
        """Extract declarations closed since the previous call.

        Args:
            buffer: The full buffer so far. Must extend the previous one.

        Returns:
            Newly completed artifacts in order.

        Raises:
            ValueError: If the buffer is shorter than the settled prefix.
        """
        if len(buffer) < self._settled:
            raise ValueError(
                f"Buffer shrank below settled offset ({len(buffer)} < {self._settled}); "
                f"call reset() before feeding a new buffer"
            )

        found: list[Artifact] = []
        for match in FILE_TAG_PATTERN.finditer(buffer, self._settled):
            found.append(_artifact_from_match(match))
            self._settled = match.end()
        return found

    def pending_path(self, buffer: str) -> str | None:
        """Path of a declaration opened but not yet closed, if any."""
        match = FILE_OPEN_PATTERN.search(buffer, self._settled)
        return match.group(2) if match else None

    def reset(self) -> None:
        """Start over for a new buffer."""
        self._settled = 0
