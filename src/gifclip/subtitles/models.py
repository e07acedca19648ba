"""Subtitle data models.

Cues and tracks are immutable values: a track is built once per
invocation by the parser and only ever narrowed into new tracks.
"""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Casefold and collapse whitespace, for matching only."""
    return _WHITESPACE_RE.sub(" ", text).strip().casefold()


class SubtitleFormat(str, Enum):
    """Supported subtitle file formats."""

    SRT = "srt"
    VTT = "vtt"
    ASS = "ass"


class SubtitleOrigin(str, Enum):
    """Where a subtitle track came from."""

    REMOTE = "remote"  # Fetched from the video platform
    EMBEDDED = "embedded"  # Extracted from the video container
    ADJACENT = "adjacent"  # Sibling file next to a local video
    OVERRIDE = "override"  # Given explicitly with --subs
    NONE = "none"


class Cue(BaseModel):
    """A single timed subtitle entry.

    ``text`` keeps its line breaks for rendering; use ``normalized_text``
    for matching.
    """

    model_config = ConfigDict(frozen=True)

    start: float = Field(ge=0.0)  # Seconds
    end: float = Field(ge=0.0)  # Seconds
    text: str

    @model_validator(mode="after")
    def _check_order(self) -> "Cue":
        if self.end < self.start:
            raise ValueError(f"Cue ends before it starts: {self.start} -> {self.end}")
        return self

    @property
    def duration(self) -> float:
        return self.end - self.start

    @property
    def normalized_text(self) -> str:
        return normalize_text(self.text)

    def overlaps(self, start: float, end: float) -> bool:
        """Check if this cue overlaps the half-open range ``[start, end)``."""
        return self.start < end and self.end > start


class SubtitleTrack(BaseModel):
    """An ordered sequence of cues plus provenance.

    Cues are kept in non-decreasing ``start`` order.
    """

    model_config = ConfigDict(frozen=True)

    cues: tuple[Cue, ...]
    language: str = "en"
    origin: SubtitleOrigin = SubtitleOrigin.NONE
    format: SubtitleFormat = SubtitleFormat.SRT
    source: str | None = None  # Path or URL, for messages

    @model_validator(mode="after")
    def _check_sorted(self) -> "SubtitleTrack":
        starts = [cue.start for cue in self.cues]
        if starts != sorted(starts):
            raise ValueError("Cues must be ordered by start time")
        return self

    def __len__(self) -> int:
        return len(self.cues)

    def window(self, start: float, end: float) -> "SubtitleTrack":
        """Cues overlapping ``[start, end)``, re-timed relative to ``start``.

        Cue times are clipped to the window so the result can be burned
        onto a clip that begins at ``start``.
        """
        shifted = []
        for cue in self.cues:
            if not cue.overlaps(start, end):
                continue
            shifted.append(
                Cue(
                    start=round(max(cue.start, start) - start, 3),
                    end=round(min(cue.end, end) - start, 3),
                    text=cue.text,
                )
            )
        return self.model_copy(update={"cues": tuple(shifted)})

    def to_srt(self) -> str:
        """Serialise the track as SRT."""
        blocks = []
        for index, cue in enumerate(self.cues, 1):
            blocks.append(
                f"{index}\n"
                f"{_format_srt_time(cue.start)} --> {_format_srt_time(cue.end)}\n"
                f"{cue.text}\n"
            )
        return "\n".join(blocks)


def _format_srt_time(seconds: float) -> str:
    total_ms = round(seconds * 1000)
    hours, rem = divmod(total_ms, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    secs, millis = divmod(rem, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"
