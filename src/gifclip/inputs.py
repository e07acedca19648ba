"""Classification of the clip source given on the command line."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from urllib.parse import urlparse

MEDIA_EXTENSIONS = frozenset({".mp4", ".webm", ".mkv", ".mov", ".avi", ".m4v", ".gif"})


class InputKind(str, Enum):
    """Kinds of clip source."""

    REMOTE_PLATFORM = "remote"  # A page yt-dlp understands (YouTube, ...)
    DIRECT_URL = "direct_url"  # A URL pointing straight at a media file
    LOCAL_FILE = "local_file"


def is_url(value: str) -> bool:
    return urlparse(value).scheme in ("http", "https")


def detect_input_kind(source: str) -> InputKind:
    """Decide how a clip source has to be fetched.

    Args:
        source: URL or filesystem path

    Returns:
        InputKind for the source
    """
    if not is_url(source):
        return InputKind.LOCAL_FILE

    suffix = Path(urlparse(source).path).suffix.lower()
    if suffix in MEDIA_EXTENSIONS:
        return InputKind.DIRECT_URL
    return InputKind.REMOTE_PLATFORM
