"""Dialogue search over subtitle cues.

A cue matches a phrase when the phrase is a case-insensitive substring
of the cue text after whitespace is collapsed, so a quote spanning a
line break in the subtitle still matches.
"""

from __future__ import annotations

from dataclasses import dataclass

from gifclip.errors import DialogueNotFoundError
from gifclip.subtitles.models import Cue, SubtitleTrack, normalize_text


@dataclass(frozen=True)
class DialogueQuery:
    """A quoted moment of dialogue.

    Attributes:
        from_text: Phrase to find (start of the clip)
        to_text: Optional second phrase ending the clip (range mode)
        pad: Symmetric padding in seconds, if given
        pad_before: Padding before the clip, overrides ``pad``
        pad_after: Padding after the clip, overrides ``pad``
    """

    from_text: str
    to_text: str | None = None
    pad: float | None = None
    pad_before: float | None = None
    pad_after: float | None = None

    @property
    def is_range(self) -> bool:
        return self.to_text is not None


@dataclass(frozen=True)
class DialogueMatch:
    """Matched cue(s) for a query; ``to_cue`` is set in range mode."""

    from_cue: Cue
    to_cue: Cue | None = None


def cue_matches(cue: Cue, phrase: str) -> bool:
    """Check whether a cue contains a phrase (case/whitespace-insensitive)."""
    return normalize_text(phrase) in cue.normalized_text


def find_all(track: SubtitleTrack, phrase: str) -> list[Cue]:
    """Every cue matching a phrase, in start order."""
    if not normalize_text(phrase):
        return []
    return [cue for cue in track.cues if cue_matches(cue, phrase)]


def _first_match(cues: tuple[Cue, ...], phrase: str, not_before: float = 0.0) -> Cue | None:
    for cue in cues:
        if cue.start >= not_before and cue_matches(cue, phrase):
            return cue
    return None


def find_dialogue(track: SubtitleTrack, query: DialogueQuery) -> DialogueMatch:
    """Locate the cue (or cue pair) for a dialogue query.

    In range mode the ``to`` phrase is searched among cues starting at or
    after the matched ``from`` cue, the ``from`` cue included.

    Args:
        track: Subtitle track ordered by start time
        query: Dialogue query

    Returns:
        DialogueMatch

    Raises:
        DialogueNotFoundError: Naming the first phrase that failed to match
    """
    if not normalize_text(query.from_text):
        raise DialogueNotFoundError(query.from_text)

    from_cue = _first_match(track.cues, query.from_text)
    if from_cue is None:
        raise DialogueNotFoundError(query.from_text)

    if not query.is_range:
        return DialogueMatch(from_cue=from_cue)

    if not normalize_text(query.to_text):
        raise DialogueNotFoundError(query.to_text)

    to_cue = _first_match(track.cues, query.to_text, not_before=from_cue.start)
    if to_cue is None:
        raise DialogueNotFoundError(query.to_text)

    return DialogueMatch(from_cue=from_cue, to_cue=to_cue)
