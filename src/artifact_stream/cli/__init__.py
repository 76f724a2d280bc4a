from __future__ import annotations

from pathlib import Path

import typer
from rich.text import Text

from artifact_stream import __version__
from artifact_stream.cli.cmds import register_stream
from artifact_stream.cli.console import ACCENT, get_console


def version_callback(value: bool):
    """Show version and exit."""
    if value:
        get_console().print(Text(f"artifact-stream v{__version__}", style=f"bold {ACCENT}"))
        raise typer.Exit()


_TYPER_HELP = """Live extraction of files, thoughts and agent flow from LLM response streams.

**Quick start:**

* `artifact-stream replay response.txt`: Replay a recorded response with a live view
* `artifact-stream extract response.txt`: List the files a response declares
"""

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=_TYPER_HELP,
    rich_markup_mode="markdown",
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        help="Engine config file "
        "(default: $ARTIFACT_STREAM_CONFIG or ~/.config/artifact-stream/config)",
        dir_okay=False,
    ),
):
    """artifact-stream: live extraction from LLM response streams."""
    ctx.obj = {"config_path": config}


register_stream(app)


def main():
    app()


if __name__ == "__main__":
    main()
