"""User settings for gifclip.

Settings live in ``~/.gifclip/settings.json`` (or ``$GIFCLIP_HOME``).
Only the command line reads them; the clip resolution core receives
already-resolved collaborators instead.
"""

from __future__ import annotations

import json
import os
from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from gifclip.errors import ConfigurationError

CONFIG_DIR_ENV = "GIFCLIP_HOME"
SETTINGS_FILENAME = "settings.json"


class ToolSource(str, Enum):
    """Where ffmpeg comes from."""

    SYSTEM = "system"  # ffmpeg/ffprobe on PATH
    MANAGED = "managed"  # ffmpeg bundled by imageio-ffmpeg


class Settings(BaseModel):
    """Persistent user settings."""

    tool_source: ToolSource = ToolSource.SYSTEM
    custom_ffmpeg_path: str | None = Field(
        default=None, description="Explicit ffmpeg executable, wins over tool_source"
    )
    custom_ffprobe_path: str | None = Field(
        default=None, description="Explicit ffprobe executable"
    )
    default_lang: str = "en"
    default_format: Literal["gif", "webm", "mp4"] = "gif"
    default_width: int = Field(default=480, gt=0)
    default_fps: int = Field(default=15, gt=0)
    default_quality: int = Field(default=80, ge=1, le=100)


def get_config_dir() -> Path:
    """Get the gifclip configuration directory."""
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".gifclip"


def get_settings_path() -> Path:
    return get_config_dir() / SETTINGS_FILENAME


def settings_exist() -> bool:
    return get_settings_path().exists()


def load_settings(path: Path | None = None) -> Settings:
    """Load settings, falling back to defaults when no file exists.

    Args:
        path: Settings file (defaults to the user settings file)

    Returns:
        Settings object

    Raises:
        ConfigurationError: If the file exists but is not valid
    """
    path = path or get_settings_path()
    if not path.exists():
        return Settings()

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        return Settings(**data)
    except OSError as e:
        raise ConfigurationError(
            f"Failed to read settings from {path}", {"path": str(path)}
        ) from e
    except (json.JSONDecodeError, PydanticValidationError, TypeError) as e:
        raise ConfigurationError(
            f"Failed to parse settings from {path}", {"path": str(path)}
        ) from e


def save_settings(settings: Settings, path: Path | None = None) -> Path:
    """Save settings with an atomic write.

    Args:
        settings: Settings to save
        path: Target file (defaults to the user settings file)

    Returns:
        Path to the saved file
    """
    path = path or get_settings_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    temp_path = path.with_suffix(path.suffix + ".tmp")
    with open(temp_path, "w", encoding="utf-8") as f:
        json.dump(settings.model_dump(mode="json"), f, indent=2)

    temp_path.replace(path)
    return path
