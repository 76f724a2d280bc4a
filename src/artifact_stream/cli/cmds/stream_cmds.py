"""
CLI commands that run recorded model responses through the engine.

Usage:
    artifact-stream replay response.txt                 # Live replay in 24-char chunks
    artifact-stream replay response.txt -c 5 -d 0.02    # Smaller chunks, slower
    artifact-stream replay response.txt --cancel-after 10
    artifact-stream extract response.txt                # Artifacts and tree only
    artifact-stream extract response.txt --json         # Machine-readable output

A recorded response is the raw text a model streamed, including any
<think> blocks and <file path="..."> declarations.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING

import typer

from artifact_stream.cli.console import (
    detect_terminal_capabilities,
    get_console,
    print_error,
    print_header,
    print_info,
    print_section,
    print_success,
    print_warning,
)
from artifact_stream.cli.render import (
    LiveStreamView,
    render_artifacts,
    render_file_tree,
    render_segments,
)
from artifact_stream.config import EngineConfig, load_config
from artifact_stream.engine import (
    SessionState,
    StreamCoordinator,
    StreamUpdate,
    build_file_tree,
    extract_artifacts,
    split_segments,
)
from artifact_stream.errors import ConfigError
from artifact_stream.logging import configure_logging

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

DEFAULT_CHUNK_SIZE = 24


# =============================================================================
# Helpers
# =============================================================================


def _read_response(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        print_error(f"Could not read {path}: {e.strerror or e}", hint="Check the file path")
        raise typer.Exit(1) from e


def _load_engine_config(ctx: typer.Context) -> EngineConfig:
    config_path = ctx.obj.get("config_path") if ctx.obj else None
    try:
        return load_config(config_path)
    except ConfigError as e:
        print_error(str(e), hint="Fix the [engine] section or the ARTIFACT_STREAM_* variables")
        raise typer.Exit(1) from e


def chunk_text(text: str, size: int) -> list[str]:
    """Split text into consecutive chunks of at most ``size`` characters."""
    if size < 1:
        raise ValueError(f"Chunk size must be positive, got {size}")
    return [text[i : i + size] for i in range(0, len(text), size)]


async def replay_chunks(
    chunks: list[str],
    *,
    delay: float = 0.0,
) -> AsyncIterator[StreamUpdate]:
    """Yield recorded chunks as stream updates, pausing ``delay`` seconds between them."""
    for index, chunk in enumerate(chunks):
        if index and delay > 0:
            await asyncio.sleep(delay)
        yield StreamUpdate(text=chunk)


# =============================================================================
# Commands
# =============================================================================


def replay_cmd(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="Recorded model response", dir_okay=False),
    chunk_size: int = typer.Option(
        DEFAULT_CHUNK_SIZE,
        "--chunk-size",
        "-c",
        min=1,
        help="Characters per replayed chunk",
    ),
    delay: float = typer.Option(
        0.03,
        "--delay",
        "-d",
        min=0.0,
        help="Seconds to wait between chunks",
    ),
    prompt: str = typer.Option(
        "Replay recorded response",
        "--prompt",
        "-p",
        help="User request shown in the flow graph",
    ),
    cancel_after: int | None = typer.Option(
        None,
        "--cancel-after",
        min=0,
        help="Cancel the stream after this many chunks",
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Log engine activity"),
):
    """
    Replay a recorded response through the engine with a live view.

    Examples:

        artifact-stream replay response.txt

        artifact-stream replay response.txt --chunk-size 4 --delay 0.05

        artifact-stream replay response.txt --cancel-after 10
    """
    if verbose:
        configure_logging(logging.DEBUG)

    text = _read_response(file)
    config = _load_engine_config(ctx)
    console = get_console()
    interactive = detect_terminal_capabilities().interactive

    chunks = chunk_text(text, chunk_size)
    view = LiveStreamView(console)
    coordinator = StreamCoordinator(config=config, listeners=[view])

    async def source() -> AsyncIterator[StreamUpdate]:
        count = 0
        async for update in replay_chunks(chunks, delay=delay):
            if cancel_after is not None and count >= cancel_after:
                coordinator.cancel()
            count += 1
            yield update

    print_header(f"Replaying {file.name}", subtitle=f"{len(chunks)} chunks of {chunk_size} chars")

    coordinator.start(prompt)
    if interactive:
        with view:
            session = asyncio.run(coordinator.consume(source()))
    else:
        session = asyncio.run(coordinator.consume(source()))
        console.print(view.render())

    console.print()
    if session.state == SessionState.COMPLETED:
        print_success(
            f"Stream completed: {len(coordinator.store)} artifact(s)",
            details=f"{session.chunk_count} chunks, {len(session.buffer)} chars",
        )
    elif session.state == SessionState.CANCELLED:
        print_warning(
            f"Stream cancelled after {session.chunk_count} chunks; "
            f"kept {len(coordinator.store)} artifact(s)"
        )
    else:
        print_error(f"Stream failed: {session.error}")
        raise typer.Exit(1)


def extract_cmd(
    file: Path = typer.Argument(..., help="Complete model response", dir_okay=False),
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output artifacts and tree as JSON",
    ),
    show_text: bool = typer.Option(
        False,
        "--text",
        "-t",
        help="Also render the prose and thoughts",
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Log engine activity"),
):
    """
    Extract file artifacts from a complete response.

    Later declarations of the same path replace earlier ones, keeping the
    position of the first.
    """
    if verbose:
        configure_logging(logging.DEBUG)

    text = _read_response(file)
    artifacts = {artifact.path: artifact for artifact in extract_artifacts(text)}
    snapshot = tuple(artifacts.values())
    tree = build_file_tree(snapshot)

    if output_json:
        payload = {
            "artifacts": [artifact.to_dict() for artifact in snapshot],
            "tree": [node.to_dict() for node in tree],
        }
        typer.echo(json.dumps(payload, indent=2))
        return

    console = get_console()
    if show_text:
        print_section("Response")
        console.print(render_segments(split_segments(text, final=True)))

    if not snapshot:
        print_info("No file artifacts found")
        return

    print_section(f"Artifacts ({len(snapshot)})")
    console.print(render_artifacts(snapshot))
    print_section("Project")
    console.print(render_file_tree(tree))


def register(main_app: typer.Typer):
    """Register stream commands on the main app."""
    main_app.command("replay", rich_help_panel="Streams")(replay_cmd)
    main_app.command("extract", rich_help_panel="Streams")(extract_cmd)
