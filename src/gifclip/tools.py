"""External tool discovery for gifclip.

ffmpeg is located according to the configured ``ToolSource``:

- ``system``: ffmpeg on PATH, falling back to the imageio-ffmpeg binary
- ``managed``: the imageio-ffmpeg binary, falling back to PATH

A ``custom_ffmpeg_path`` in the settings always wins. yt-dlp is used as a
Python library, so only its version is reported here.
"""

from __future__ import annotations

import platform
import shutil
import subprocess
import sys
from pathlib import Path
from typing import NamedTuple

from gifclip.config import Settings, ToolSource
from gifclip.errors import ToolNotFoundError


class ToolInfo(NamedTuple):
    """Information about an external executable."""

    path: str
    version: str
    available: bool
    source: str  # "custom", "managed", "system" or "not_found"


def subprocess_flags() -> int:
    """Platform-specific subprocess creation flags."""
    if platform.system() == "Windows":
        return subprocess.CREATE_NO_WINDOW
    return 0


def _get_ffmpeg_from_imageio() -> str | None:
    try:
        import imageio_ffmpeg

        return imageio_ffmpeg.get_ffmpeg_exe()
    except (ImportError, RuntimeError):
        return None


def _get_system_ffmpeg() -> str | None:
    return shutil.which("ffmpeg")


def _locate_ffmpeg(settings: Settings) -> tuple[str | None, str]:
    if settings.custom_ffmpeg_path and Path(settings.custom_ffmpeg_path).exists():
        return settings.custom_ffmpeg_path, "custom"

    if settings.tool_source == ToolSource.MANAGED:
        order = [(_get_ffmpeg_from_imageio, "managed"), (_get_system_ffmpeg, "system")]
    else:
        order = [(_get_system_ffmpeg, "system"), (_get_ffmpeg_from_imageio, "managed")]

    for finder, source in order:
        path = finder()
        if path:
            return path, source
    return None, "not_found"


def get_ffmpeg_path(settings: Settings | None = None) -> str | None:
    """Get the path to the ffmpeg executable, or None if not found."""
    path, _ = _locate_ffmpeg(settings or Settings())
    return path


def require_ffmpeg(settings: Settings | None = None) -> str:
    """Like ``get_ffmpeg_path`` but raises when ffmpeg is missing."""
    path = get_ffmpeg_path(settings)
    if path is None:
        raise ToolNotFoundError(
            "ffmpeg not found. Install ffmpeg, or run 'gifclip setup' and "
            "choose the managed tool source (pip install imageio-ffmpeg)."
        )
    return path


def get_ffprobe_path(settings: Settings | None = None) -> str | None:
    """Get the path to ffprobe, or None.

    imageio-ffmpeg does not bundle ffprobe, so for the managed source we
    look next to the bundled ffmpeg before trying PATH.
    """
    settings = settings or Settings()

    if settings.custom_ffprobe_path and Path(settings.custom_ffprobe_path).exists():
        return settings.custom_ffprobe_path

    ffmpeg_path = get_ffmpeg_path(settings)
    if ffmpeg_path:
        name = "ffprobe.exe" if platform.system() == "Windows" else "ffprobe"
        sibling = Path(ffmpeg_path).parent / name
        if sibling.exists():
            return str(sibling)

    return shutil.which("ffprobe")


def _get_version(executable: str) -> str | None:
    try:
        result = subprocess.run(
            [executable, "-version"],
            capture_output=True,
            text=True,
            timeout=10,
            creationflags=subprocess_flags(),
        )
    except (subprocess.TimeoutExpired, OSError):
        return None

    if result.returncode != 0:
        return None

    # e.g. "ffmpeg version 6.0-static https://johnvansickle.com/ffmpeg/"
    first_line = result.stdout.split("\n")[0]
    if "version" in first_line.lower():
        parts = first_line.split("version", 1)
        if parts[1].strip():
            return parts[1].strip().split()[0]
    return first_line.strip() or None


def get_ffmpeg_info(settings: Settings | None = None) -> ToolInfo:
    """Describe the ffmpeg that would be used."""
    path, source = _locate_ffmpeg(settings or Settings())
    if path is None:
        return ToolInfo(path="", version="", available=False, source="not_found")
    return ToolInfo(
        path=path,
        version=_get_version(path) or "unknown",
        available=True,
        source=source,
    )


def get_ffprobe_info(settings: Settings | None = None) -> ToolInfo:
    path = get_ffprobe_path(settings)
    if path is None:
        return ToolInfo(path="", version="", available=False, source="not_found")
    return ToolInfo(path=path, version=_get_version(path) or "unknown", available=True, source="system")


def get_ytdlp_version() -> str | None:
    try:
        from yt_dlp.version import __version__
    except ImportError:
        return None
    return __version__


def get_imageio_ffmpeg_version() -> str | None:
    try:
        import imageio_ffmpeg
    except ImportError:
        return None
    return getattr(imageio_ffmpeg, "__version__", "unknown")


def get_dependency_report(settings: Settings | None = None) -> dict[str, dict[str, str | bool]]:
    """Collect the status of every external dependency.

    Returns:
        Mapping of component name to status fields
    """
    settings = settings or Settings()
    ffmpeg = get_ffmpeg_info(settings)
    ffprobe = get_ffprobe_info(settings)
    ytdlp_version = get_ytdlp_version()
    imageio_version = get_imageio_ffmpeg_version()

    return {
        "ffmpeg": {
            "available": ffmpeg.available,
            "path": ffmpeg.path,
            "version": ffmpeg.version,
            "source": ffmpeg.source,
        },
        "ffprobe": {
            "available": ffprobe.available,
            "path": ffprobe.path,
            "version": ffprobe.version,
        },
        "yt_dlp": {
            "available": ytdlp_version is not None,
            "version": ytdlp_version or "",
        },
        "imageio_ffmpeg": {
            "available": imageio_version is not None,
            "version": imageio_version or "",
        },
        "platform": {
            "system": platform.system(),
            "machine": platform.machine(),
            "python": sys.version.split()[0],
        },
    }
