"""Subtitle parsing and source resolution."""

from __future__ import annotations

from gifclip.subtitles.models import (
    Cue,
    SubtitleFormat,
    SubtitleOrigin,
    SubtitleTrack,
    normalize_text,
)
from gifclip.subtitles.parser import detect_format, format_from_path, parse_subtitles
from gifclip.subtitles.sources import (
    SourceStrategy,
    SubtitleBackend,
    SubtitleRequest,
    resolve_subtitles,
    select_strategy,
)

__all__ = [
    # Models
    "Cue",
    "SubtitleFormat",
    "SubtitleOrigin",
    "SubtitleTrack",
    "normalize_text",
    # Parsing
    "detect_format",
    "format_from_path",
    "parse_subtitles",
    # Source resolution
    "SourceStrategy",
    "SubtitleBackend",
    "SubtitleRequest",
    "resolve_subtitles",
    "select_strategy",
]
