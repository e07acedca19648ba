"""Selection and acquisition of the subtitle track for a clip.

The order in which sources are considered is an explicit decision table
(``DECISION_TABLE``): the first row whose condition holds picks the
strategy. Absent sources yield ``None``; failures to fetch or read
(network, permissions) are raised, never downgraded to "no subtitles".
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable

from gifclip.errors import FetchError, ResourceError, SubtitleError
from gifclip.inputs import InputKind, is_url
from gifclip.logging import get_logger
from gifclip.subtitles.models import SubtitleFormat, SubtitleOrigin, SubtitleTrack
from gifclip.subtitles.parser import SUBTITLE_EXTENSIONS, format_from_path, parse_subtitles

logger = get_logger(__name__)


class SubtitleBackend(ABC):
    """Capabilities the resolver needs from the outside world."""

    @abstractmethod
    def fetch_remote_subtitles(
        self, video_ref: str, lang: str
    ) -> tuple[bytes, SubtitleFormat] | None:
        """Fetch a platform subtitle track, preferring human-authored ones.

        Returns:
            Raw track and its format, or None if the language is unavailable

        Raises:
            FetchError: On network or platform failures
        """

    @abstractmethod
    def fetch_bytes(self, url: str) -> bytes:
        """Download a URL.

        Raises:
            FetchError: On any transport failure
        """

    @abstractmethod
    def extract_embedded(self, video_path: Path) -> bytes | None:
        """Extract the first embedded subtitle stream as SRT.

        Returns:
            SRT bytes, or None if the container has no subtitle stream
        """


@dataclass(frozen=True)
class SubtitleRequest:
    """What the user asked for, subtitle-wise.

    Attributes:
        input_kind: Kind of clip source
        video_ref: URL or path as given by the user
        video_path: Local media file (downloaded for URL sources), if any
        override: Explicit subtitle file path or URL (``--subs``)
        no_subs: Subtitles disabled (``--no-subs``)
        lang: Subtitle language code
    """

    input_kind: InputKind
    video_ref: str
    video_path: Path | None = None
    override: str | None = None
    no_subs: bool = False
    lang: str = "en"


class SourceStrategy(str, Enum):
    """How the subtitle track will be acquired."""

    DISABLED = "disabled"
    OVERRIDE = "override"
    REMOTE = "remote"
    EMBEDDED_THEN_ADJACENT = "embedded_then_adjacent"
    EMBEDDED = "embedded"


# First matching row wins.
DECISION_TABLE: list[tuple[Callable[[SubtitleRequest], bool], SourceStrategy]] = [
    (lambda r: r.no_subs, SourceStrategy.DISABLED),
    (lambda r: bool(r.override), SourceStrategy.OVERRIDE),
    (lambda r: r.input_kind == InputKind.REMOTE_PLATFORM, SourceStrategy.REMOTE),
    (lambda r: r.input_kind == InputKind.LOCAL_FILE, SourceStrategy.EMBEDDED_THEN_ADJACENT),
    (lambda r: r.input_kind == InputKind.DIRECT_URL, SourceStrategy.EMBEDDED),
]


def select_strategy(request: SubtitleRequest) -> SourceStrategy:
    """Pick the subtitle strategy for a request from the decision table."""
    for condition, strategy in DECISION_TABLE:
        if condition(request):
            return strategy
    raise ValueError(f"No subtitle strategy for input kind {request.input_kind}")


def find_adjacent_subtitle(video_path: Path, lang: str) -> Path | None:
    """Find a subtitle file next to a local video.

    Matches ``<stem>.<ext>`` and language-tagged ``<stem>.<lang>.<ext>``
    names with a recognised subtitle extension. A file tagged with the
    requested language wins over an untagged one, which wins over other
    languages.

    Args:
        video_path: Local video file
        lang: Preferred language code

    Returns:
        Path to the subtitle file, or None
    """
    directory = video_path.parent
    stem = video_path.stem

    candidates: list[tuple[int, str, Path]] = []
    for path in directory.iterdir():
        if not path.is_file() or path.suffix.lower() not in SUBTITLE_EXTENSIONS:
            continue
        name_stem = path.stem
        if name_stem == stem:
            rank = 1
        elif name_stem.startswith(stem + "."):
            tag = name_stem[len(stem) + 1:].lower()
            rank = 0 if tag == lang.lower() or tag.startswith(lang.lower() + "-") else 2
        else:
            continue
        candidates.append((rank, path.name, path))

    if not candidates:
        return None
    candidates.sort()
    return candidates[0][2]


def _read_local_subtitles(path: Path) -> bytes:
    if not path.exists():
        raise ResourceError(f"Subtitle file not found: {path}", {"path": str(path)})
    try:
        return path.read_bytes()
    except OSError as e:
        raise FetchError(f"Failed to read subtitle file: {path}", {"path": str(path)}) from e


def _load_override(request: SubtitleRequest, backend: SubtitleBackend) -> SubtitleTrack:
    override = request.override
    if is_url(override):
        raw = backend.fetch_bytes(override)
    else:
        raw = _read_local_subtitles(Path(override).expanduser())

    # Errors propagate: an explicit source must not silently disappear
    return parse_subtitles(
        raw,
        format_from_path(override),
        language=request.lang,
        origin=SubtitleOrigin.OVERRIDE,
        source=override,
    )


def _parse_optional(
    raw: bytes,
    subtitle_format: SubtitleFormat | None,
    request: SubtitleRequest,
    origin: SubtitleOrigin,
    source: str,
) -> SubtitleTrack | None:
    try:
        return parse_subtitles(
            raw, subtitle_format, language=request.lang, origin=origin, source=source
        )
    except SubtitleError as e:
        logger.warning(f"Ignoring unusable {origin.value} subtitles: {e.message}")
        return None


def _load_remote(request: SubtitleRequest, backend: SubtitleBackend) -> SubtitleTrack | None:
    fetched = backend.fetch_remote_subtitles(request.video_ref, request.lang)
    if fetched is None:
        return None
    raw, subtitle_format = fetched
    return _parse_optional(raw, subtitle_format, request, SubtitleOrigin.REMOTE, request.video_ref)


def _load_embedded(request: SubtitleRequest, backend: SubtitleBackend) -> SubtitleTrack | None:
    if request.video_path is None:
        return None
    raw = backend.extract_embedded(request.video_path)
    if raw is None:
        return None
    return _parse_optional(
        raw, SubtitleFormat.SRT, request, SubtitleOrigin.EMBEDDED, str(request.video_path)
    )


def _load_adjacent(request: SubtitleRequest) -> SubtitleTrack | None:
    video_path = request.video_path or Path(request.video_ref)
    try:
        path = find_adjacent_subtitle(video_path, request.lang)
    except OSError as e:
        raise FetchError(f"Failed to list directory: {video_path.parent}") from e
    if path is None:
        return None
    return _parse_optional(
        _read_local_subtitles(path),
        format_from_path(path),
        request,
        SubtitleOrigin.ADJACENT,
        str(path),
    )


def resolve_subtitles(
    request: SubtitleRequest, backend: SubtitleBackend
) -> SubtitleTrack | None:
    """Acquire the subtitle track for a clip, if there is one.

    Args:
        request: Subtitle request
        backend: Fetch/extract capabilities

    Returns:
        Parsed track, or None when subtitles are disabled or absent

    Raises:
        ResourceError: Explicit override file does not exist
        SubtitleError: Explicit override could not be parsed
        FetchError: Any fetch/read failure other than absence
    """
    strategy = select_strategy(request)
    logger.info(
        f"Subtitle strategy: {strategy.value}",
        extra={"input_kind": request.input_kind.value, "lang": request.lang},
    )

    if strategy == SourceStrategy.DISABLED:
        return None
    if strategy == SourceStrategy.OVERRIDE:
        return _load_override(request, backend)
    if strategy == SourceStrategy.REMOTE:
        return _load_remote(request, backend)
    if strategy == SourceStrategy.EMBEDDED:
        return _load_embedded(request, backend)

    track = _load_embedded(request, backend)
    if track is None:
        track = _load_adjacent(request)
    return track
