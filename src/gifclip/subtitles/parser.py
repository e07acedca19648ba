"""Subtitle parsing for SRT, WebVTT and ASS/SSA.

Each format has its own parse function; ``parse_subtitles`` picks one from
a format hint or by sniffing the content. Malformed cue blocks are skipped
with a warning; a track with no usable cues is an error.
"""

from __future__ import annotations

import html
import re
from pathlib import Path
from typing import Callable

from gifclip.errors import SubtitleError, SubtitleErrorKind
from gifclip.logging import get_logger
from gifclip.subtitles.models import Cue, SubtitleFormat, SubtitleOrigin, SubtitleTrack

logger = get_logger(__name__)

SUBTITLE_EXTENSIONS: dict[str, SubtitleFormat] = {
    ".srt": SubtitleFormat.SRT,
    ".vtt": SubtitleFormat.VTT,
    ".ass": SubtitleFormat.ASS,
    ".ssa": SubtitleFormat.ASS,
}

_BLOCK_SPLIT_RE = re.compile(r"\n[ \t]*\n")

# 00:01:23,456 --> 00:01:25,789 (hours may have any width, "." tolerated)
_SRT_TIMING_RE = re.compile(
    r"(\d+):(\d{1,2}):(\d{1,2})[,.](\d{1,3})\s*-->\s*(\d+):(\d{1,2}):(\d{1,2})[,.](\d{1,3})"
)
# 00:01:23.456 --> 00:01:25.789 align:start, hours optional
_VTT_TIMING_RE = re.compile(
    r"^((?:\d+:)?\d{1,2}:\d{1,2}\.\d{1,3})\s+-->\s+((?:\d+:)?\d{1,2}:\d{1,2}\.\d{1,3})"
)
# 0:01:23.45 (centiseconds)
_ASS_TIME_RE = re.compile(r"^(\d+):(\d{1,2}):(\d{1,2})(?:\.(\d{1,3}))?$")

_HTML_TAG_RE = re.compile(r"<[^>]*>")
_ASS_OVERRIDE_RE = re.compile(r"\{\\[^}]*\}")
_ASS_BLOCK_RE = re.compile(r"\{[^}]*\}")

_ASS_DEFAULT_FIELDS = [
    "layer", "start", "end", "style", "name",
    "marginl", "marginr", "marginv", "effect", "text",
]

_VTT_SKIPPED_BLOCKS = ("NOTE", "STYLE", "REGION")


class _MalformedCue(Exception):
    """Internal signal that a single cue block has to be skipped."""


def format_from_path(path: str | Path) -> SubtitleFormat | None:
    """Map a subtitle file extension to its format."""
    return SUBTITLE_EXTENSIONS.get(Path(path).suffix.lower())


def detect_format(content: str) -> SubtitleFormat:
    """Sniff the subtitle format from decoded content."""
    head = content.lstrip()
    if head.startswith("WEBVTT"):
        return SubtitleFormat.VTT
    if "[Script Info]" in content or "[Events]" in content:
        return SubtitleFormat.ASS
    return SubtitleFormat.SRT


def _decode(raw: bytes | str) -> str:
    text = raw.decode("utf-8-sig", errors="replace") if isinstance(raw, bytes) else raw
    text = text.lstrip("\ufeff")
    return text.replace("\r\n", "\n").replace("\r", "\n")


def _clock_to_seconds(hours: str, minutes: str, seconds: str, fraction: str | None) -> float:
    # Fractions are right-padded: ".5" is 500 ms, ".45" (ASS centiseconds) is 450 ms
    millis = int(fraction.ljust(3, "0")) if fraction else 0
    if int(minutes) >= 60 or int(seconds) >= 60:
        raise _MalformedCue(f"clock field out of range: {hours}:{minutes}:{seconds}")
    return round(int(hours) * 3600 + int(minutes) * 60 + int(seconds) + millis / 1000, 3)


def clean_text_lines(lines: list[str]) -> str:
    """Strip markup from cue text lines and join them with newlines.

    Removes HTML-style tags (``<i>``, ``<font ...>``, VTT ``<c.x>`` and
    karaoke timestamps), ASS override blocks (``{\\an8}``) and unescapes
    entities. Blank lines are dropped.
    """
    cleaned = []
    for line in lines:
        line = _ASS_OVERRIDE_RE.sub("", line)
        line = _HTML_TAG_RE.sub("", line)
        line = html.unescape(line).strip()
        if line:
            cleaned.append(line)
    return "\n".join(cleaned)


def _make_cue(start: float, end: float, text: str) -> Cue:
    if end < start:
        raise _MalformedCue(f"end {end} is before start {start}")
    if not text:
        raise _MalformedCue("no text")
    return Cue(start=start, end=end, text=text)


def _parse_srt(content: str) -> list[Cue]:
    cues = []
    for number, block in enumerate(_BLOCK_SPLIT_RE.split(content.strip()), 1):
        if not block.strip():
            continue
        lines = block.split("\n")
        try:
            timing_index = next((i for i, line in enumerate(lines) if "-->" in line), None)
            if timing_index is None:
                raise _MalformedCue("no timing line")

            match = _SRT_TIMING_RE.search(lines[timing_index])
            if not match:
                raise _MalformedCue(f"unreadable timing line {lines[timing_index]!r}")

            groups = match.groups()
            start = _clock_to_seconds(*groups[:4])
            end = _clock_to_seconds(*groups[4:])
            cues.append(_make_cue(start, end, clean_text_lines(lines[timing_index + 1:])))
        except _MalformedCue as e:
            logger.warning(f"Skipping SRT block {number}: {e}", extra={"block": number})
    return cues


def _parse_vtt_time(value: str) -> float:
    clock, _, fraction = value.partition(".")
    parts = clock.split(":")
    if len(parts) == 2:
        parts.insert(0, "0")
    return _clock_to_seconds(parts[0], parts[1], parts[2], fraction)


def _parse_vtt(content: str) -> list[Cue]:
    cues = []
    blocks = _BLOCK_SPLIT_RE.split(content.strip())
    for number, block in enumerate(blocks, 1):
        stripped = block.strip()
        if not stripped:
            continue
        if number == 1 and stripped.startswith("WEBVTT"):
            continue
        if stripped.startswith(_VTT_SKIPPED_BLOCKS):
            continue

        lines = block.split("\n")
        try:
            # The timing line is first, or second after an optional cue id
            timing_index = next(
                (i for i, line in enumerate(lines[:2]) if "-->" in line), None
            )
            if timing_index is None:
                raise _MalformedCue("no timing line")

            match = _VTT_TIMING_RE.match(lines[timing_index].strip())
            if not match:
                raise _MalformedCue(f"unreadable timing line {lines[timing_index]!r}")

            start = _parse_vtt_time(match.group(1))
            end = _parse_vtt_time(match.group(2))
            cues.append(_make_cue(start, end, clean_text_lines(lines[timing_index + 1:])))
        except _MalformedCue as e:
            logger.warning(f"Skipping WebVTT block {number}: {e}", extra={"block": number})
    return cues


def _parse_ass_time(value: str) -> float:
    match = _ASS_TIME_RE.match(value.strip())
    if not match:
        raise _MalformedCue(f"unreadable time {value!r}")
    return _clock_to_seconds(*match.groups())


def _clean_ass_text(text: str) -> str:
    text = _ASS_BLOCK_RE.sub("", text)
    text = text.replace("\\N", "\n").replace("\\n", "\n").replace("\\h", " ")
    return clean_text_lines(text.split("\n"))


def _parse_ass(content: str) -> list[Cue]:
    cues = []
    fields = list(_ASS_DEFAULT_FIELDS)
    in_events = False

    for line_number, raw_line in enumerate(content.split("\n"), 1):
        line = raw_line.strip()
        if line.startswith("[") and line.endswith("]"):
            in_events = line.lower() == "[events]"
            continue
        if not in_events or not line or line.startswith(";"):
            continue

        key, sep, rest = line.partition(":")
        if not sep:
            continue
        key = key.strip().lower()

        if key == "format":
            fields = [field.strip().lower() for field in rest.split(",")]
            continue
        if key != "dialogue":
            continue

        try:
            values = rest.split(",", len(fields) - 1)
            if len(values) < len(fields):
                raise _MalformedCue(f"expected {len(fields)} fields, got {len(values)}")
            record = dict(zip(fields, values))
            if "start" not in record or "end" not in record or "text" not in record:
                raise _MalformedCue("Format line lacks Start/End/Text")

            start = _parse_ass_time(record["start"])
            end = _parse_ass_time(record["end"])
            cues.append(_make_cue(start, end, _clean_ass_text(record["text"])))
        except _MalformedCue as e:
            logger.warning(f"Skipping ASS line {line_number}: {e}", extra={"line": line_number})

    return cues


_PARSERS: dict[SubtitleFormat, Callable[[str], list[Cue]]] = {
    SubtitleFormat.SRT: _parse_srt,
    SubtitleFormat.VTT: _parse_vtt,
    SubtitleFormat.ASS: _parse_ass,
}


def parse_subtitles(
    raw: bytes | str,
    format_hint: SubtitleFormat | None = None,
    *,
    language: str = "en",
    origin: SubtitleOrigin = SubtitleOrigin.NONE,
    source: str | None = None,
) -> SubtitleTrack:
    """Parse subtitle data into a track of cues ordered by start time.

    Args:
        raw: File content, bytes (UTF-8, BOM tolerated) or text
        format_hint: Format to use instead of sniffing the content
        language: Language code recorded on the track
        origin: Where the data came from
        source: Path or URL, used in messages

    Returns:
        SubtitleTrack with at least one cue

    Raises:
        SubtitleError: If no cue could be parsed
    """
    content = _decode(raw)
    subtitle_format = format_hint or detect_format(content)

    cues = _PARSERS[subtitle_format](content)
    if not cues:
        raise SubtitleError(
            f"No subtitle cues could be parsed from {source or 'subtitle data'}",
            SubtitleErrorKind.EMPTY,
            source=source,
        )

    # Stable sort keeps source order for cues sharing a start time
    cues.sort(key=lambda cue: cue.start)

    logger.debug(
        f"Parsed {len(cues)} {subtitle_format.value} cues",
        extra={"origin": origin.value, "source": source},
    )

    return SubtitleTrack(
        cues=tuple(cues),
        language=language,
        origin=origin,
        format=subtitle_format,
        source=source,
    )
