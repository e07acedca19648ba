"""Clip resolution: from a user request to a clip range and captions.

``resolve_clip`` is the single entry point the renderer consumes. It runs
the pipeline synchronously: subtitle acquisition, dialogue matching,
range resolution and caption windowing.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, Field, model_validator

from gifclip.errors import ResourceError
from gifclip.inputs import InputKind
from gifclip.logging import get_logger
from gifclip.matcher import DialogueQuery, find_all, find_dialogue
from gifclip.ranges import (
    ClipRange,
    CuePairRange,
    ExplicitRange,
    RangeMode,
    SingleCueRange,
    resolve_range,
)
from gifclip.subtitles.models import SubtitleTrack
from gifclip.subtitles.sources import SubtitleBackend, SubtitleRequest, resolve_subtitles
from gifclip.timestamps import parse_timestamp

logger = get_logger(__name__)


class ClipRequest(BaseModel):
    """Everything the user specified about the clip.

    Exactly one of ``start``/``end`` (timestamp mode) or ``dialogue``
    (dialogue mode) must be given.
    """

    source: str
    input_kind: InputKind
    start: str | None = None
    end: str | None = None
    dialogue: DialogueQuery | None = None
    subs_override: str | None = None
    no_subs: bool = False
    lang: str = "en"
    text: str | None = Field(default=None, description="Literal caption instead of subtitles")
    video_path: Path | None = Field(default=None, description="Local media file, if available")

    @model_validator(mode="after")
    def _check_mode(self) -> "ClipRequest":
        has_times = self.start is not None or self.end is not None
        if has_times and self.dialogue is not None:
            raise ValueError("Give either start/end timestamps or a dialogue quote, not both")
        if not has_times and self.dialogue is None:
            raise ValueError("Give start/end timestamps or a dialogue quote (--from)")
        if has_times and (self.start is None or self.end is None):
            raise ValueError("Both start and end timestamps are required")
        return self

    @property
    def is_dialogue(self) -> bool:
        return self.dialogue is not None

    def subtitle_request(self) -> SubtitleRequest:
        return SubtitleRequest(
            input_kind=self.input_kind,
            video_ref=self.source,
            video_path=self.video_path,
            override=self.subs_override,
            no_subs=self.no_subs,
            lang=self.lang,
        )


@dataclass(frozen=True)
class ClipPlan:
    """Resolved clip ready for rendering.

    Attributes:
        clip_range: Final interval in source-video seconds
        captions: Cues inside the range, timed relative to the clip start
        caption_text: Literal caption overriding subtitles
    """

    clip_range: ClipRange
    captions: SubtitleTrack | None = None
    caption_text: str | None = None

    @property
    def has_captions(self) -> bool:
        return bool(self.caption_text) or (self.captions is not None and len(self.captions) > 0)


def _needs_subtitles(request: ClipRequest) -> bool:
    if request.no_subs:
        return False
    # A literal caption replaces subtitles unless they are needed for searching.
    # An explicit override is always loaded so a bad path fails the request.
    return request.is_dialogue or request.text is None or request.subs_override is not None


def _range_mode(request: ClipRequest, track: SubtitleTrack | None) -> RangeMode:
    if not request.is_dialogue:
        return ExplicitRange(parse_timestamp(request.start), parse_timestamp(request.end))

    if track is None:
        if request.no_subs:
            raise ResourceError("Dialogue search needs subtitles, but --no-subs was given")
        raise ResourceError(
            f"No {request.lang!r} subtitles found to search for dialogue",
            {"source": request.source},
        )

    query = request.dialogue
    match = find_dialogue(track, query)
    logger.info(
        f"Matched dialogue at {match.from_cue.start:.3f}s",
        extra={"from": query.from_text, "to": query.to_text},
    )
    occurrences = find_all(track, query.from_text)
    if len(occurrences) > 1:
        logger.info(
            f"{len(occurrences)} cues match {query.from_text!r}, using the first",
            extra={"starts": [cue.start for cue in occurrences]},
        )

    if match.to_cue is None:
        return SingleCueRange(
            match.from_cue, query.pad, query.pad_before, query.pad_after
        )
    return CuePairRange(
        match.from_cue, match.to_cue, query.pad, query.pad_before, query.pad_after
    )


def resolve_clip(
    request: ClipRequest,
    backend: SubtitleBackend,
    video_duration: float | None = None,
) -> ClipPlan:
    """Resolve a clip request into a range and render-ready captions.

    Args:
        request: The user's clip request
        backend: Subtitle fetch/extract capabilities
        video_duration: Video length in seconds, if known

    Returns:
        ClipPlan

    Raises:
        TimestampParseError: Invalid time literal
        DialogueNotFoundError: Quote not found in the subtitles
        RangeError: Empty or out-of-bounds range
        ResourceError / SubtitleError / FetchError: Subtitle acquisition failed
    """
    # Timestamps are validated before any fetch happens
    explicit = None if request.is_dialogue else _range_mode(request, None)

    track = None
    if _needs_subtitles(request):
        track = resolve_subtitles(request.subtitle_request(), backend)
        if track is None:
            logger.warning("No subtitles found, proceeding without them")

    mode = explicit if explicit is not None else _range_mode(request, track)
    clip_range = resolve_range(mode, video_duration)

    if request.text is not None:
        return ClipPlan(clip_range=clip_range, caption_text=request.text)

    captions = None
    if track is not None:
        window = track.window(clip_range.start, clip_range.end)
        if len(window) > 0:
            captions = window

    return ClipPlan(clip_range=clip_range, captions=captions)
