"""Block, line and inline parsing for prose segments.

A deliberately small markdown subset, enough to display streamed answers:

- Fenced code blocks (```language ... ```)
- Headings (#, ##, ###)
- Unordered (- / *) and ordered (1.) list items
- Blank lines
- Inline code (`...`) and bold (**...**)

Code text is kept verbatim; escaping and highlighting are display concerns.
A fence that has not been closed yet stays part of the surrounding text so
a half-streamed code block is never shown as a malformed block.

Example:
    ```python
    blocks = parse_blocks("See:\\n```py\\nprint(1)\\n```")
    # [Block(TEXT, "See:\\n"), Block(CODE, "print(1)\\n", language="py")]
    lines = parse_lines("# Title\\n- item with `code`")
    ```
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

__all__ = [
    "CODE_FENCE_PATTERN",
    "DEFAULT_CODE_LANGUAGE",
    "Block",
    "BlockKind",
    "InlineSpan",
    "Line",
    "LineKind",
    "SpanKind",
    "parse_blocks",
    "parse_inline",
    "parse_line",
    "parse_lines",
]


# =============================================================================
# Patterns
# =============================================================================

# Code block detection regex
CODE_FENCE_PATTERN = re.compile(r"```(\w+)?\n(.*?)```", re.DOTALL)

INLINE_CODE_PATTERN = re.compile(r"(`[^`\n]+`)")
BOLD_PATTERN = re.compile(r"(\*\*[^*\n]+\*\*)")
ORDERED_ITEM_PATTERN = re.compile(r"^(\d+\.)\s")

HEADING_PREFIXES: tuple[tuple[str, int], ...] = (
    ("### ", 3),
    ("## ", 2),
    ("# ", 1),
)
BULLET_PREFIXES: tuple[str, ...] = ("- ", "* ")

DEFAULT_CODE_LANGUAGE = "text"


# =============================================================================
# Data Structures
# =============================================================================


class BlockKind(str, Enum):
    """Kind of a prose sub-segment."""

    TEXT = "text"
    CODE = "code"


class LineKind(str, Enum):
    """Display role of a single text line."""

    HEADING = "heading"
    BULLET = "bullet"
    ORDERED = "ordered"
    BLANK = "blank"
    PARAGRAPH = "paragraph"


class SpanKind(str, Enum):
    """Inline span style."""

    TEXT = "text"
    CODE = "code"
    BOLD = "bold"


@dataclass(frozen=True)
class Block:
    """A text or fenced-code sub-segment of a prose segment.

    Attributes:
        kind: Text or code.
        text: Verbatim block text (code without its fences).
        language: Fence language tag for code, None for text.
    """

    kind: BlockKind
    text: str
    language: str | None = None

    @property
    def is_code(self) -> bool:
        return self.kind == BlockKind.CODE


@dataclass(frozen=True)
class InlineSpan:
    """A styled run of characters inside one line."""

    kind: SpanKind
    text: str


@dataclass(frozen=True)
class Line:
    """One display line of a text block.

    Attributes:
        kind: Display role.
        spans: Inline spans of the line content (marker removed).
        level: Heading level (1-3), 0 otherwise.
        marker: Ordered list marker such as "2.", None otherwise.
    """

    kind: LineKind
    spans: tuple[InlineSpan, ...] = ()
    level: int = 0
    marker: str | None = None

    @property
    def text(self) -> str:
        """Plain text of the line content."""
        return "".join(span.text for span in self.spans)


# =============================================================================
# Parsing
# =============================================================================


def parse_blocks(text: str) -> list[Block]:
    """Split prose text into text and fenced-code blocks.

    Args:
        text: Text of one prose segment.

    Returns:
        Blocks in order. Empty text between fences is skipped.
    """
    blocks: list[Block] = []
    last_index = 0

    for match in CODE_FENCE_PATTERN.finditer(text):
        if match.start() > last_index:
            blocks.append(Block(kind=BlockKind.TEXT, text=text[last_index : match.start()]))
        blocks.append(
            Block(
                kind=BlockKind.CODE,
                text=match.group(2),
                language=match.group(1) or DEFAULT_CODE_LANGUAGE,
            )
        )
        last_index = match.end()

    if last_index < len(text):
        blocks.append(Block(kind=BlockKind.TEXT, text=text[last_index:]))

    return blocks


def parse_inline(text: str) -> list[InlineSpan]:
    """Tokenize a single line into inline spans.

    Inline code is resolved first, so ``**`` inside backticks stays literal.
    Unmatched delimiters are kept as plain text.

    Args:
        text: One line of text.

    Returns:
        Non-empty spans in order.
    """
    spans: list[InlineSpan] = []
    for index, part in enumerate(INLINE_CODE_PATTERN.split(text)):
        if not part:
            continue
        # Odd indices are the captured delimiters of split()
        if index % 2 == 1:
            spans.append(InlineSpan(kind=SpanKind.CODE, text=part[1:-1]))
            continue
        for sub_index, sub_part in enumerate(BOLD_PATTERN.split(part)):
            if not sub_part:
                continue
            if sub_index % 2 == 1:
                spans.append(InlineSpan(kind=SpanKind.BOLD, text=sub_part[2:-2]))
            else:
                spans.append(InlineSpan(kind=SpanKind.TEXT, text=sub_part))
    return spans


def parse_line(line: str) -> Line:
    """Classify one line and parse its inline content."""
    for prefix, level in HEADING_PREFIXES:
        if line.startswith(prefix):
            return Line(
                kind=LineKind.HEADING,
                spans=tuple(parse_inline(line[len(prefix) :])),
                level=level,
            )

    stripped = line.strip()
    if stripped.startswith(BULLET_PREFIXES):
        return Line(kind=LineKind.BULLET, spans=tuple(parse_inline(stripped[2:])))

    ordered = ORDERED_ITEM_PATTERN.match(stripped)
    if ordered:
        return Line(
            kind=LineKind.ORDERED,
            spans=tuple(parse_inline(stripped[ordered.end() :])),
            marker=ordered.group(1),
        )

    if not stripped:
        return Line(kind=LineKind.BLANK)

    return Line(kind=LineKind.PARAGRAPH, spans=tuple(parse_inline(line)))


def parse_lines(text: str) -> list[Line]:
    """Parse a text block into display lines (one per newline-separated line)."""
    return [parse_line(line) for line in text.split("\n")]
