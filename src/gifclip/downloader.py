"""Network access: yt-dlp for video platforms, urllib for plain URLs.

No retries happen here; every transport failure surfaces as a
``FetchError`` with the original exception as its cause.
"""

from __future__ import annotations

import shutil
import urllib.error
import urllib.request
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yt_dlp
from yt_dlp.utils import DownloadError

from gifclip import __version__
from gifclip.errors import FetchError
from gifclip.logging import get_logger
from gifclip.subtitles.models import SubtitleFormat

logger = get_logger(__name__)

USER_AGENT = f"gifclip/{__version__}"
DEFAULT_TIMEOUT = 60

# Subtitle formats we can parse, in order of preference
REMOTE_SUBTITLE_FORMATS: list[tuple[str, SubtitleFormat]] = [
    ("vtt", SubtitleFormat.VTT),
    ("srt", SubtitleFormat.SRT),
    ("ass", SubtitleFormat.ASS),
]


def _open(url: str, timeout: int):
    request = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
    try:
        return urllib.request.urlopen(request, timeout=timeout)
    except urllib.error.HTTPError as e:
        raise FetchError(f"HTTP {e.code} fetching {url}", {"url": url}) from e
    except (urllib.error.URLError, TimeoutError, OSError) as e:
        raise FetchError(f"Failed to fetch {url}", {"url": url}) from e


def fetch_bytes(url: str, timeout: int = DEFAULT_TIMEOUT) -> bytes:
    """Download a URL into memory.

    Raises:
        FetchError: On any HTTP or transport failure
    """
    with _open(url, timeout) as response:
        try:
            return response.read()
        except OSError as e:
            raise FetchError(f"Connection lost while reading {url}", {"url": url}) from e


def download_file(url: str, dest: Path, timeout: int = DEFAULT_TIMEOUT) -> Path:
    """Stream a URL to a file.

    Raises:
        FetchError: On any HTTP, transport or write failure
    """
    dest.parent.mkdir(parents=True, exist_ok=True)
    with _open(url, timeout) as response:
        try:
            with open(dest, "wb") as f:
                shutil.copyfileobj(response, f)
        except OSError as e:
            raise FetchError(f"Failed to download {url} to {dest}", {"url": url}) from e
    return dest


@dataclass
class VideoMetadata:
    """Metadata reported by the platform."""

    title: str | None
    duration: float | None
    video_id: str | None = None


@dataclass
class RemoteSubtitle:
    """A subtitle track offered by the platform."""

    language: str
    url: str
    format: SubtitleFormat
    automatic: bool


def _language_keys(available: dict[str, Any], lang: str) -> list[str]:
    """Keys for ``lang`` in a yt-dlp subtitle map: exact first, then regional."""
    lang = lang.lower()
    exact = [key for key in available if key.lower() == lang]
    regional = sorted(key for key in available if key.lower().startswith(lang + "-"))
    return exact + regional


def select_subtitle(info: dict[str, Any], lang: str) -> RemoteSubtitle | None:
    """Choose a subtitle track from yt-dlp info.

    Human-authored ``subtitles`` are preferred over ``automatic_captions``;
    within a track, formats follow ``REMOTE_SUBTITLE_FORMATS``.

    Args:
        info: Result of ``YoutubeDL.extract_info``
        lang: Requested language code

    Returns:
        RemoteSubtitle, or None if no parseable track exists in that language
    """
    sources = [
        (info.get("subtitles") or {}, False),
        (info.get("automatic_captions") or {}, True),
    ]

    for available, automatic in sources:
        for key in _language_keys(available, lang):
            formats = {entry.get("ext"): entry for entry in available[key] if entry.get("url")}
            for ext, subtitle_format in REMOTE_SUBTITLE_FORMATS:
                if ext in formats:
                    return RemoteSubtitle(
                        language=key,
                        url=formats[ext]["url"],
                        format=subtitle_format,
                        automatic=automatic,
                    )
            logger.debug(f"No parseable format among {sorted(formats)} for {key}")

    return None


class YtDlpClient:
    """Thin wrapper around ``yt_dlp.YoutubeDL``.

    Info dictionaries are cached per URL so metadata, subtitles and the
    download share one extraction.
    """

    def __init__(self, ffmpeg_path: str | None = None, timeout: int = DEFAULT_TIMEOUT):
        self.ffmpeg_path = ffmpeg_path
        self.timeout = timeout
        self._info_cache: dict[str, dict[str, Any]] = {}

    def _options(self, **extra: Any) -> dict[str, Any]:
        options: dict[str, Any] = {
            "quiet": True,
            "no_warnings": True,
            "noplaylist": True,
            "socket_timeout": self.timeout,
        }
        if self.ffmpeg_path:
            options["ffmpeg_location"] = self.ffmpeg_path
        options.update(extra)
        return options

    def extract_info(self, url: str) -> dict[str, Any]:
        """Fetch (and cache) platform info for a URL.

        Raises:
            FetchError: If yt-dlp cannot extract the page
        """
        if url not in self._info_cache:
            try:
                with yt_dlp.YoutubeDL(self._options(skip_download=True)) as ydl:
                    info = ydl.sanitize_info(ydl.extract_info(url, download=False))
            except DownloadError as e:
                raise FetchError(f"yt-dlp could not read {url}", {"url": url}) from e
            self._info_cache[url] = info
        return self._info_cache[url]

    def get_metadata(self, url: str) -> VideoMetadata:
        info = self.extract_info(url)
        duration = info.get("duration")
        return VideoMetadata(
            title=info.get("title"),
            duration=float(duration) if duration else None,
            video_id=info.get("id"),
        )

    def download_video(self, url: str, dest_dir: Path) -> Path:
        """Download the best single-file (preferably MP4) format.

        Raises:
            FetchError: If the download fails
        """
        dest_dir.mkdir(parents=True, exist_ok=True)
        options = self._options(
            format="b[ext=mp4]/b",
            outtmpl=str(dest_dir / "video.%(ext)s"),
        )
        try:
            with yt_dlp.YoutubeDL(options) as ydl:
                info = ydl.extract_info(url, download=True)
                if info.get("requested_downloads"):
                    filepath = info["requested_downloads"][0]["filepath"]
                else:
                    filepath = ydl.prepare_filename(info)
        except DownloadError as e:
            raise FetchError(f"yt-dlp failed to download {url}", {"url": url}) from e

        path = Path(filepath)
        if not path.exists():
            raise FetchError(f"yt-dlp reported {path} but no file was written", {"url": url})
        return path

    def fetch_subtitles(self, url: str, lang: str) -> tuple[bytes, SubtitleFormat] | None:
        """Fetch the platform subtitle track for ``lang``, if any."""
        subtitle = select_subtitle(self.extract_info(url), lang)
        if subtitle is None:
            logger.info(f"No {lang!r} subtitles offered for {url}")
            return None

        logger.info(
            f"Fetching {'automatic' if subtitle.automatic else 'manual'} subtitles",
            extra={"language": subtitle.language, "format": subtitle.format.value},
        )
        return fetch_bytes(subtitle.url, self.timeout), subtitle.format
