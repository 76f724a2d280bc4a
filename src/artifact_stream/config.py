"""Engine configuration for artifact-stream.

Settings live in an INI-style file, by default
``~/.config/artifact-stream/config``:

    [engine]
    agent_label = Coding Agent
    artifact_spacing = 120
    thinking_hint = true

Environment variables named ``ARTIFACT_STREAM_<FIELD>`` override the file
(env takes precedence), and ``ARTIFACT_STREAM_CONFIG`` points at an
alternative file. Values are validated by pydantic.
"""

from __future__ import annotations

import logging
import os
from configparser import ConfigParser
from configparser import Error as ConfigParserError
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from artifact_stream.errors import ConfigError

if TYPE_CHECKING:
    from collections.abc import Mapping

__all__ = [
    "CONFIG_DIR",
    "CONFIG_FILE",
    "CONFIG_PATH_ENV",
    "ENV_PREFIX",
    "EngineConfig",
    "load_config",
]

log = logging.getLogger(__name__)

# Configuration paths
CONFIG_DIR = Path.home() / ".config" / "artifact-stream"
CONFIG_FILE = CONFIG_DIR / "config"
CONFIG_SECTION = "engine"

ENV_PREFIX = "ARTIFACT_STREAM_"
CONFIG_PATH_ENV = "ARTIFACT_STREAM_CONFIG"


class EngineConfig(BaseModel):
    """Layout, labelling and prompt settings for the engine."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    # Flow graph labels
    user_label: str = "User Request"
    agent_label: str = "Agent"
    agent_sub_label: str = "Reasoning & Orchestration"
    tool_label: str = "Web Search"
    tool_sub_label: str = "Grounding"
    artifact_sub_label: str = "Artifact Generation"

    # Flow graph layout
    user_x: float = 100
    agent_x: float = 500
    tool_x: float = 300
    artifact_x: float = 900
    first_turn_y: float = 100
    turn_spacing: float = Field(default=300, gt=0)
    tool_offset_y: float = 150
    artifact_spacing: float = Field(default=150, gt=0)

    # Payload previews
    user_preview_chars: int = Field(default=50, ge=1)
    agent_preview_chars: int = Field(default=80, ge=1)

    # Prompt augmentation
    thinking_hint: bool = False
    include_project_context: bool = True


def _read_file(path: Path) -> dict[str, str]:
    if not path.exists():
        return {}

    parser = ConfigParser(interpolation=None)
    try:
        parser.read(path, encoding="utf-8")
        if not parser.has_section(CONFIG_SECTION):
            log.debug(f"No [{CONFIG_SECTION}] section in {path}")
            return {}
        return dict(parser.items(CONFIG_SECTION))
    except (ConfigParserError, UnicodeDecodeError) as e:
        raise ConfigError(f"Could not parse config file {path}: {e}") from e


def load_config(
    path: Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> EngineConfig:
    """Load configuration from file and environment.

    Args:
        path: Config file path. Defaults to ``$ARTIFACT_STREAM_CONFIG`` or
            ~/.config/artifact-stream/config. A missing file is not an error.
        environ: Environment mapping (defaults to ``os.environ``).

    Returns:
        Validated configuration.

    Raises:
        ConfigError: If the file cannot be parsed or a value is invalid.
    """
    env = os.environ if environ is None else environ
    if path is None:
        path = Path(env[CONFIG_PATH_ENV]) if env.get(CONFIG_PATH_ENV) else CONFIG_FILE

    values: dict[str, str] = _read_file(path)

    for name in EngineConfig.model_fields:
        env_value = env.get(f"{ENV_PREFIX}{name.upper()}")
        if env_value is not None:
            values[name] = env_value

    try:
        return EngineConfig.model_validate(values)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e
