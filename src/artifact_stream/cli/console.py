"""Themed console for the artifact-stream CLI.

Provides:
- STREAM_THEME: styles for segments, graph nodes and artifacts
- get_console(): lazily created themed console singleton
- Semantic output helpers: print_header, print_success, print_error, etc.

Example:
    ```python
    from artifact_stream.cli.console import get_console, print_error

    console = get_console()
    console.print("[thought]thinking...[/thought]")
    print_error("Could not read replay file", hint="Check the path")
    ```
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from functools import lru_cache
from typing import Literal

from rich.box import HEAVY, MINIMAL, ROUNDED, SIMPLE_HEAD, Box
from rich.console import Console
from rich.panel import Panel
from rich.text import Text
from rich.theme import Theme

__all__ = [
    "ACCENT",
    "BOX_STYLES",
    "STREAM_THEME",
    "TerminalCapabilities",
    "detect_terminal_capabilities",
    "get_console",
    "print_error",
    "print_header",
    "print_info",
    "print_section",
    "print_success",
    "print_warning",
    "reset_console",
]


# =============================================================================
# Theme Definition
# =============================================================================

ACCENT = "#3b82f6"
MUTED = "#64748b"

STREAM_THEME = Theme(
    {
        "brand": ACCENT,
        "info": ACCENT,
        "success": "bold green",
        "warning": "bold yellow",
        "error": "bold red",
        "hint": "dim italic",
        "muted": "dim",
        # Segments
        "thought": f"italic {MUTED}",
        "thought.title": f"bold {MUTED}",
        "heading": "bold white",
        "bold": "bold",
        "code": ACCENT,
        "marker": f"dim {ACCENT}",
        # Graph nodes
        "node.user": "bold cyan",
        "node.agent": "bold magenta",
        "node.tool": "bold yellow",
        "node.artifact": "bold green",
        # Node status
        "status.pending": "dim white",
        "status.active": "bold yellow",
        "status.complete": "bold green",
        "status.error": "bold red",
        # Files
        "path": f"{ACCENT} underline",
        "directory": f"bold {ACCENT}",
        "language": "dim green",
    }
)


# =============================================================================
# Terminal Detection
# =============================================================================


@dataclass(frozen=True)
class TerminalCapabilities:
    """Detected terminal capabilities.

    Attributes:
        color: Whether colored output should be used.
        interactive: Whether stdout is a TTY (enables live rendering).
        width: Terminal width in columns.
    """

    color: bool
    interactive: bool
    width: int


@lru_cache(maxsize=1)
def detect_terminal_capabilities() -> TerminalCapabilities:
    """Detect terminal capabilities (cached)."""
    interactive = sys.stdout.isatty()
    term = os.environ.get("TERM", "").lower()
    if os.environ.get("NO_COLOR"):
        color = False
    elif os.environ.get("FORCE_COLOR"):
        color = True
    else:
        color = interactive and term != "dumb"

    return TerminalCapabilities(
        color=color,
        interactive=interactive,
        width=os.get_terminal_size().columns if interactive else 100,
    )


# =============================================================================
# Console Factory
# =============================================================================

_console: Console | None = None


def get_console(*, force_terminal: bool | None = None, width: int | None = None) -> Console:
    """Get the themed console instance.

    Args:
        force_terminal: Force terminal mode (for testing).
        width: Override terminal width.

    Returns:
        Themed Console instance, created on first use.
    """
    global _console

    if _console is None:
        caps = detect_terminal_capabilities()
        color_system: Literal["auto", None] = "auto" if caps.color else None
        _console = Console(
            theme=STREAM_THEME,
            force_terminal=force_terminal,
            color_system=color_system,
            width=width or caps.width,
            highlight=False,
        )

    return _console


def reset_console() -> None:
    """Drop the console singleton and the cached terminal detection."""
    global _console
    _console = None
    detect_terminal_capabilities.cache_clear()


# =============================================================================
# Box Styles
# =============================================================================

BOX_STYLES: dict[str, Box] = {
    "default": ROUNDED,
    "error": HEAVY,
    "table": SIMPLE_HEAD,
    "minimal": MINIMAL,
}


# =============================================================================
# Semantic Output Helpers
# =============================================================================


def print_header(title: str, subtitle: str | None = None) -> None:
    """Print a boxed header with an optional dim subtitle."""
    content = Text(title, style="bold white")
    if subtitle:
        content.append("\n")
        content.append(subtitle, style="dim white")
    get_console().print(Panel(content, box=ROUNDED, padding=(0, 2), expand=False))


def print_success(message: str, details: str | None = None) -> None:
    text = Text()
    text.append("[OK] ", style="bold green")
    text.append(message, style="success")
    if details:
        text.append("\n     ")
        text.append(details, style="dim")
    get_console().print(text)


def print_error(message: str, hint: str | None = None) -> None:
    """Print an error message.

    Args:
        message: Error message.
        hint: Optional hint for resolution.
    """
    text = Text()
    text.append("[X] ", style="bold red")
    text.append(message, style="error")
    if hint:
        text.append("\n    Hint: ", style="dim")
        text.append(hint, style="hint")
    get_console().print(text)


def print_warning(message: str) -> None:
    text = Text()
    text.append("[!] ", style="bold yellow")
    text.append(message, style="warning")
    get_console().print(text)


def print_info(message: str) -> None:
    text = Text()
    text.append("[*] ", style=f"bold {ACCENT}")
    text.append(message, style="info")
    get_console().print(text)


def print_section(title: str) -> None:
    """Print an upper-cased section title followed by a divider."""
    console = get_console()
    console.print()
    console.print(Text(title.upper(), style="bold white"))
    console.print(Text("─" * min(console.width, 72), style="dim"))
