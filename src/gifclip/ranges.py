"""Clip range resolution.

Turns explicit timestamps, or matched cues plus padding, into the final
``ClipRange``, clamped to the video duration when it is known.

Padding precedence, per side: an explicit ``pad_before``/``pad_after``
beats a symmetric ``pad``, which beats the mode default.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from gifclip.errors import RangeError, RangeErrorKind, ValidationError
from gifclip.subtitles.models import Cue

# Mode defaults as (before, after) in seconds
SINGLE_CUE_PADDING = (0.0, 2.0)
CUE_PAIR_PADDING = (0.0, 0.5)


@dataclass(frozen=True)
class ClipRange:
    """Final clip interval in seconds (``end > start``)."""

    start: float
    end: float

    @property
    def duration(self) -> float:
        return round(self.end - self.start, 3)


@dataclass(frozen=True)
class ExplicitRange:
    """Start/end straight from parsed timestamps."""

    start: float
    end: float


@dataclass(frozen=True)
class SingleCueRange:
    """One matched cue plus padding."""

    cue: Cue
    pad: float | None = None
    pad_before: float | None = None
    pad_after: float | None = None


@dataclass(frozen=True)
class CuePairRange:
    """From the start of one cue to the end of another, plus padding."""

    from_cue: Cue
    to_cue: Cue
    pad: float | None = None
    pad_before: float | None = None
    pad_after: float | None = None


RangeMode = Union[ExplicitRange, SingleCueRange, CuePairRange]


def resolve_padding(
    pad: float | None,
    pad_before: float | None,
    pad_after: float | None,
    default: tuple[float, float],
) -> tuple[float, float]:
    """Apply padding precedence.

    Args:
        pad: Symmetric padding, if given
        pad_before: Explicit leading padding, if given
        pad_after: Explicit trailing padding, if given
        default: Mode default as (before, after)

    Returns:
        Effective (before, after) padding

    Raises:
        ValidationError: If any given padding is negative
    """
    for name, value in (("pad", pad), ("pad_before", pad_before), ("pad_after", pad_after)):
        if value is not None and value < 0:
            raise ValidationError(f"Padding must not be negative: {name}={value}")

    symmetric_before = pad if pad is not None else default[0]
    symmetric_after = pad if pad is not None else default[1]

    before = pad_before if pad_before is not None else symmetric_before
    after = pad_after if pad_after is not None else symmetric_after
    return before, after


def _unclamped_bounds(mode: RangeMode) -> tuple[float, float]:
    if isinstance(mode, ExplicitRange):
        if mode.end <= mode.start:
            raise RangeError(
                f"End time must be after start time ({mode.start}s -> {mode.end}s)",
                RangeErrorKind.EMPTY_OR_NEGATIVE,
                {"start": mode.start, "end": mode.end},
            )
        return mode.start, mode.end

    if isinstance(mode, SingleCueRange):
        before, after = resolve_padding(
            mode.pad, mode.pad_before, mode.pad_after, SINGLE_CUE_PADDING
        )
        return max(0.0, mode.cue.start - before), mode.cue.end + after

    if isinstance(mode, CuePairRange):
        before, after = resolve_padding(
            mode.pad, mode.pad_before, mode.pad_after, CUE_PAIR_PADDING
        )
        return max(0.0, mode.from_cue.start - before), mode.to_cue.end + after

    raise TypeError(f"Unknown range mode: {type(mode).__name__}")


def resolve_range(mode: RangeMode, video_duration: float | None = None) -> ClipRange:
    """Resolve a range mode into a clip range.

    Args:
        mode: Explicit timestamps or matched cue(s) with padding
        video_duration: Video length in seconds, if known

    Returns:
        ClipRange with ``end > start``

    Raises:
        RangeError: ``EMPTY_OR_NEGATIVE`` for explicit ``end <= start``,
            ``OUT_OF_BOUNDS`` if the range starts past the end of the video
            or is empty once clamped
    """
    start, end = _unclamped_bounds(mode)
    # millisecond precision; emptiness is judged on what gets rendered
    start, end = round(start, 3), round(end, 3)

    if video_duration is not None:
        video_duration = round(video_duration, 3)
        if start > video_duration:
            raise RangeError(
                f"Clip starts at {start:.3f}s, after the end of the video ({video_duration:.3f}s)",
                RangeErrorKind.OUT_OF_BOUNDS,
                {"start": start, "duration": video_duration},
            )
        end = min(end, video_duration)

    if start >= end:
        raise RangeError(
            f"Clip range is empty after clamping to the video ({start:.3f}s -> {end:.3f}s)",
            RangeErrorKind.OUT_OF_BOUNDS,
            {"start": start, "end": end},
        )

    return ClipRange(start=start, end=end)
