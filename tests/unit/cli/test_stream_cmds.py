"""Tests for the replay and extract commands."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from artifact_stream import __version__
from artifact_stream.cli import app
from artifact_stream.cli.cmds.stream_cmds import chunk_text, replay_chunks
from artifact_stream.cli.console import reset_console
from artifact_stream.config import CONFIG_PATH_ENV

RESPONSE = (
    "<think>Two files are enough.</think>Here is the app:\n"
    '<file path="src/app.py">\nprint("hi")\n</file>\n'
    '<file path="README.md">\n# App\n</file>\n'
    "Done."
)

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolated_console(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    monkeypatch.delenv("FORCE_COLOR", raising=False)
    monkeypatch.setenv(CONFIG_PATH_ENV, str(tmp_path / "no-config"))
    reset_console()
    yield
    reset_console()


@pytest.fixture
def response_file(tmp_path: Path) -> Path:
    path = tmp_path / "response.txt"
    path.write_text(RESPONSE, encoding="utf-8")
    return path


class TestHelpers:
    """Tests for replay helpers."""

    def test_chunk_text(self) -> None:
        """Test fixed-size chunking keeps every character."""
        chunks = chunk_text("abcdefg", 3)

        assert chunks == ["abc", "def", "g"]
        assert "".join(chunks) == "abcdefg"

    def test_chunk_text_invalid_size(self) -> None:
        """Test the chunk size must be positive."""
        with pytest.raises(ValueError):
            chunk_text("abc", 0)

    @pytest.mark.asyncio
    async def test_replay_chunks(self) -> None:
        """Test chunks become stream updates."""
        updates = [update async for update in replay_chunks(["a", "b"])]

        assert [u.text for u in updates] == ["a", "b"]


class TestCli:
    """Tests for the typer application."""

    def test_version(self) -> None:
        """Test --version prints and exits."""
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_extract_json(self, response_file: Path) -> None:
        """Test extract emits artifacts and tree as JSON."""
        result = runner.invoke(app, ["extract", str(response_file), "--json"])

        assert result.exit_code == 0
        payload = json.loads(result.output)
        assert [a["path"] for a in payload["artifacts"]] == ["src/app.py", "README.md"]
        assert payload["artifacts"][0]["language"] == "python"
        assert [n["name"] for n in payload["tree"]] == ["src", "README.md"]

    def test_extract_table(self, response_file: Path) -> None:
        """Test extract renders artifacts and the project tree."""
        result = runner.invoke(app, ["extract", str(response_file), "--text"])

        assert result.exit_code == 0
        assert "ARTIFACTS (2)" in result.output
        assert "src/app.py" in result.output
        assert "Two files are enough." in result.output

    def test_extract_without_artifacts(self, tmp_path: Path) -> None:
        """Test a response with no file tags."""
        path = tmp_path / "plain.txt"
        path.write_text("nothing here")

        result = runner.invoke(app, ["extract", str(path)])

        assert result.exit_code == 0
        assert "No file artifacts found" in result.output

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test an unreadable file exits with an error."""
        result = runner.invoke(app, ["extract", str(tmp_path / "missing.txt")])

        assert result.exit_code == 1
        assert "Could not read" in result.output

    def test_replay_completes(self, response_file: Path) -> None:
        """Test replay runs the whole response through the engine."""
        result = runner.invoke(
            app,
            ["replay", str(response_file), "--chunk-size", "7", "--delay", "0"],
        )

        assert result.exit_code == 0
        assert "Stream completed: 2 artifact(s)" in result.output
        assert "src/app.py" in result.output

    def test_replay_cancel_after(self, response_file: Path) -> None:
        """Test replay can cancel mid-stream."""
        result = runner.invoke(
            app,
            ["replay", str(response_file), "-c", "5", "-d", "0", "--cancel-after", "2"],
        )

        assert result.exit_code == 0
        assert "Stream cancelled after 2 chunks" in result.output

    def test_replay_invalid_config(self, response_file: Path, tmp_path: Path) -> None:
        """Test an invalid config file is reported."""
        config = tmp_path / "config"
        config.write_text("[engine]\nartifact_spacing = -1\n")

        result = runner.invoke(app, ["--config", str(config), "replay", str(response_file)])

        assert result.exit_code == 1
        assert "artifact_spacing" in result.output
